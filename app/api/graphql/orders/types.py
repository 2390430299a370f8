from typing import List, Optional
import strawberry
from strawberry.scalars import ID, JSON
from app.api.graphql.types.scalars import DateTime, Numeric

@strawberry.type
class Order:
    id: ID
    order_code: str
    customer_name: str
    phone: str
    product_name: str
    amount: Numeric
    payment_method: str
    status: str
    risk_level: str
    risk_score: Optional[int] = None
    product_id: Optional[ID] = None
    address: Optional[str] = None
    address_detail: Optional[str] = None
    ward: Optional[str] = None
    district: Optional[str] = None
    province: Optional[str] = None
    discount_amount: Optional[Numeric] = None
    shipping_fee: Optional[Numeric] = None
    channel: Optional[str] = None
    source: Optional[str] = None
    order_date: Optional[DateTime] = None
    gender: Optional[str] = None
    birth_year: Optional[int] = None
    approved_at: Optional[DateTime] = None
    confirmation_sent_at: Optional[DateTime] = None
    customer_confirmed_at: Optional[DateTime] = None
    cancelled_at: Optional[DateTime] = None
    paid_at: Optional[DateTime] = None
    shipped_at: Optional[DateTime] = None
    completed_at: Optional[DateTime] = None
    reject_reason: Optional[str] = None
    verification_reason: Optional[str] = None
    cancel_reason: Optional[str] = None
    created_at: Optional[DateTime] = None
    updated_at: Optional[DateTime] = None

@strawberry.type
class Invoice:
    id: ID
    order_id: ID
    invoice_code: str
    amount: Numeric
    status: str
    issue_date: DateTime
    paid_at: Optional[DateTime] = None
    document_ref: Optional[str] = None

@strawberry.type
class OrderEvent:
    id: ID
    order_id: ID
    event_type: str
    payload: JSON
    created_at: DateTime

@strawberry.type
class OrderFilterOptions:
    statuses: List[str]
    payment_methods: List[str]
    risk_levels: List[str]

@strawberry.type
class TransitionPayload:
    order: Order
    applied: bool
    message: Optional[str] = None
    confirmation_flow: Optional[str] = None
    invoice: Optional[Invoice] = None
