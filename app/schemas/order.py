from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional
from datetime import datetime
from decimal import Decimal
import uuid

from app.utils.text import normalize_text

PAYMENT_METHODS = ("COD", "BANK_TRANSFER", "MOMO", "ZALO_PAY", "CREDIT_CARDS", "OTHER")

# Normalized spelling -> payment method code
PAYMENT_ALIASES: Dict[str, str] = {
    "cod": "COD",
    "cash": "COD",
    "cash on delivery": "COD",
    "tien mat": "COD",
    "thanh toan khi nhan hang": "COD",
    "bank transfer": "BANK_TRANSFER",
    "bank": "BANK_TRANSFER",
    "banking": "BANK_TRANSFER",
    "transfer": "BANK_TRANSFER",
    "chuyen khoan": "BANK_TRANSFER",
    "momo": "MOMO",
    "vi momo": "MOMO",
    "zalopay": "ZALO_PAY",
    "zalo pay": "ZALO_PAY",
    "zalo": "ZALO_PAY",
    "credit card": "CREDIT_CARDS",
    "credit cards": "CREDIT_CARDS",
    "card": "CREDIT_CARDS",
    "the": "CREDIT_CARDS",
    "the tin dung": "CREDIT_CARDS",
    "visa": "CREDIT_CARDS",
    "mastercard": "CREDIT_CARDS",
    "other": "OTHER",
    "khac": "OTHER",
}


def payment_method_code(value: Any) -> Optional[str]:
    """Payment method code for a code or a common spelling; empty means COD."""
    text = normalize_text(value)
    if not text:
        return "COD"
    return PAYMENT_ALIASES.get(text)

# Fields shared by manual creation and imported rows
class OrderBase(BaseModel):
    order_code: str
    customer_name: str
    phone: str
    product_name: str
    amount: Decimal = Field(gt=0)
    product_id: Optional[uuid.UUID] = None
    address: Optional[str] = None
    address_detail: Optional[str] = None
    ward: Optional[str] = None
    district: Optional[str] = None
    province: Optional[str] = None
    payment_method: str = "COD"
    discount_amount: Optional[Decimal] = None
    shipping_fee: Optional[Decimal] = None
    channel: Optional[str] = None
    source: Optional[str] = None
    order_date: Optional[datetime] = None
    gender: Optional[str] = None
    birth_year: Optional[int] = None

    @field_validator("payment_method", mode="before")
    @classmethod
    def normalize_payment_method(cls, v: Any) -> str:
        code = payment_method_code(v)
        if code is None:
            raise ValueError(f"Unknown payment method {v!r}; expected one of {', '.join(PAYMENT_METHODS)}")
        return code

class OrderCreate(OrderBase):
    pass

# Partial update: only fields that are set are applied
class OrderUpdate(BaseModel):
    customer_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    address_detail: Optional[str] = None
    ward: Optional[str] = None
    district: Optional[str] = None
    province: Optional[str] = None
    product_id: Optional[uuid.UUID] = None
    product_name: Optional[str] = None
    amount: Optional[Decimal] = Field(default=None, gt=0)
    discount_amount: Optional[Decimal] = None
    shipping_fee: Optional[Decimal] = None
    channel: Optional[str] = None
    source: Optional[str] = None
    order_date: Optional[datetime] = None
    gender: Optional[str] = None
    birth_year: Optional[int] = None

class Order(OrderBase):
    id: uuid.UUID
    user_id: uuid.UUID
    status: str
    risk_score: Optional[int] = None
    risk_level: str = "none"
    approved_at: Optional[datetime] = None
    confirmation_sent_at: Optional[datetime] = None
    customer_confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    reject_reason: Optional[str] = None
    verification_reason: Optional[str] = None
    cancel_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True
    }

class FilterOptions(BaseModel):
    statuses: List[str] = Field(default_factory=list)
    payment_methods: List[str] = Field(default_factory=list)
    risk_levels: List[str] = Field(default_factory=list)

class OrderEvent(BaseModel):
    id: int
    order_id: uuid.UUID
    event_type: str
    payload: Dict[str, Any]
    created_at: datetime

    model_config = {
        "from_attributes": True
    }
