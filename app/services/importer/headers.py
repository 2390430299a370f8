"""Spreadsheet header recognition.

Observed headers are normalized and matched exactly against an alias table
per canonical field. A header that only *resembles* an alias (contains it as
a whole phrase, or is a near spelling) is reported as misnamed rather than
silently accepted.
"""
import re
from difflib import SequenceMatcher
from typing import Dict, List, Optional, Sequence

from app.core.result import Err, Ok, Result
from app.schemas.imports import HeaderIssue, MisnamedColumn
from app.utils.text import normalize_text

SIMILARITY_THRESHOLD = 0.8

HEADER_ALIASES: Dict[str, List[str]] = {
    "order_code": ["order id", "order_id", "ma don", "ma don hang", "order", "orderid", "id don", "order code"],
    "customer_name": ["customer name", "customer_name", "ten khach", "ten khach hang", "full name", "fullname", "ho ten"],
    "phone": ["phone", "phone number", "phone_number", "so dien thoai", "sdt", "mobile", "phone mobile"],
    "product": ["product", "ten san pham", "san pham", "sku name", "product name"],
    "amount": ["amount", "amount vnd", "tong tien", "gia tri don", "order value", "order amount", "total amount", "total"],
    "payment_method": ["payment method", "payment_method", "hinh thuc thanh toan", "thanh toan", "kenh thanh toan", "payment"],
    "address": ["address", "full address", "shipping address", "delivery address", "dia chi giao hang"],
    "address_detail": ["address detail", "dia chi chi tiet", "dia chi", "street address", "address line 1"],
    "ward": ["ward", "phuong xa", "phuong", "xa"],
    "district": ["district", "quan huyen", "quan", "huyen"],
    "province": ["province", "tinh thanh pho", "tinh", "thanh pho", "city", "province city"],
    "channel": ["channel", "kenh", "sales channel", "platform"],
    "source": ["source", "nguon", "campaign", "utm source"],
    "order_date": ["order date", "ngay dat hang", "ngay tao don", "ngay don hang", "date", "order_date", "ngay dat"],
    "gender": ["gender", "gioi tinh", "sex"],
    "birth_year": ["birthday", "birth year", "nam sinh", "year of birth"],
    "discount_amount": ["discount", "discount amount", "giam gia", "voucher amount", "coupon amount"],
    "shipping_fee": ["shipping fee", "phi ship", "phi van chuyen", "van chuyen", "delivery fee"],
}

# Aliases compared in normalized form
_NORMALIZED_ALIASES: Dict[str, List[str]] = {
    key: [normalize_text(alias) for alias in aliases] for key, aliases in HEADER_ALIASES.items()
}

REQUIRED_KEYS = ("order_code", "customer_name", "phone", "product", "amount")

DISPLAY_NAMES: Dict[str, str] = {
    "order_code": "Order ID",
    "customer_name": "Customer Name",
    "phone": "Phone",
    "product": "Product",
    "amount": "Amount",
    "payment_method": "Payment Method",
    "address": "Address",
    "address_detail": "Address Detail",
    "ward": "Ward",
    "district": "District",
    "province": "Province",
    "channel": "Channel",
    "source": "Source",
    "order_date": "Order Date",
    "gender": "Gender",
    "birth_year": "Birth Year",
    "discount_amount": "Discount",
    "shipping_fee": "Shipping Fee",
}

HeaderMapping = Dict[str, str]


def match_header(header: str) -> Optional[str]:
    """Return the canonical key whose alias equals ``header`` after normalization."""
    normalized = normalize_text(header)
    for key, aliases in _NORMALIZED_ALIASES.items():
        if normalized in aliases:
            return key
    return None


def _resembles(normalized_header: str, alias: str) -> bool:
    if re.search(rf"\b{re.escape(alias)}\b", normalized_header):
        return True
    return SequenceMatcher(None, normalized_header, alias).ratio() >= SIMILARITY_THRESHOLD


def _resembled_key(header: str, candidates: Sequence[str]) -> Optional[str]:
    normalized = normalize_text(header)
    if not normalized:
        return None
    for key in candidates:
        if any(_resembles(normalized, alias) for alias in _NORMALIZED_ALIASES[key]):
            return key
    return None


def validate_headers(headers: Sequence[str]) -> Result[HeaderMapping, HeaderIssue]:
    """Map observed headers to canonical keys.

    Args:
        headers: Header cells of the first row, in column order

    Returns:
        Ok with ``{canonical_key: observed_header}``, or Err(HeaderIssue) when a
        required column is missing or any header is misnamed
    """
    mapping: HeaderMapping = {}
    unmatched: List[str] = []

    for header in headers:
        key = match_header(header)
        if key is None:
            unmatched.append(header)
        elif key not in mapping:
            # First occurrence wins for repeated columns
            mapping[key] = header

    misnamed: List[MisnamedColumn] = []
    claimed = set()
    for header in unmatched:
        open_keys = [key for key in HEADER_ALIASES if key not in mapping and key not in claimed]
        key = _resembled_key(header, open_keys)
        if key is not None:
            claimed.add(key)
            misnamed.append(MisnamedColumn(actual=header, expected=DISPLAY_NAMES[key]))

    missing = [
        DISPLAY_NAMES[key]
        for key in REQUIRED_KEYS
        if key not in mapping and key not in claimed
    ]

    if missing or misnamed:
        return Err(HeaderIssue(missing_columns=missing, misnamed_columns=misnamed))
    return Ok(mapping)
