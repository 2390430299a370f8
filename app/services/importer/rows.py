import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

import pandas as pd

from app.schemas.imports import ImportRow
from app.schemas.order import payment_method_code
from app.services.importer.headers import HeaderMapping
from app.utils.text import normalize_text

_CURRENCY = re.compile(r"(vnd|vnđ|usd|dong|đ|₫|\$)", re.IGNORECASE)
_DOT_THOUSANDS = re.compile(r"^-?\d{1,3}(\.\d{3})+$")
_YEAR = re.compile(r"(19|20)\d{2}")
_DAY_FIRST = re.compile(r"^\d{1,2}[/.-]\d{1,2}[/.-]\d{2,4}")

GENDER_ALIASES: Dict[str, str] = {
    "male": "male",
    "m": "male",
    "nam": "male",
    "female": "female",
    "f": "female",
    "nu": "female",
}


def parse_amount(value: Any) -> Optional[Decimal]:
    """Tolerant money parse: ``"1,200,000 VND"``, ``"1.200.000đ"`` and ``1200000`` agree."""
    if value is None:
        return None
    text = _CURRENCY.sub("", str(value).replace("\xa0", " ")).replace(" ", "").replace(",", "")
    if not text:
        return None
    if _DOT_THOUSANDS.match(text):
        text = text.replace(".", "")
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return amount


def normalize_payment_method(value: Any) -> str:
    return payment_method_code(value) or "OTHER"


def normalize_gender(value: Any) -> Optional[str]:
    text = normalize_text(value)
    if not text:
        return None
    return GENDER_ALIASES.get(text, "other")


def parse_birth_year(value: Any) -> Optional[int]:
    match = _YEAR.search(str(value or ""))
    if match is None:
        return None
    year = int(match.group(0))
    if 1900 <= year <= datetime.now(timezone.utc).year:
        return year
    return None


def parse_order_date(value: Any) -> Optional[datetime]:
    text = str(value or "").strip()
    if not text:
        return None
    parsed = pd.to_datetime(text, errors="coerce", dayfirst=bool(_DAY_FIRST.match(text)))
    if pd.isna(parsed):
        return None
    moment = parsed.to_pydatetime()
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def _text(record: Dict[str, str], mapping: HeaderMapping, key: str) -> str:
    header = mapping.get(key)
    if header is None:
        return ""
    return str(record.get(header, "") or "").strip()


def _optional(record: Dict[str, str], mapping: HeaderMapping, key: str) -> Optional[str]:
    return _text(record, mapping, key) or None


def map_row(row_number: int, record: Dict[str, str], mapping: HeaderMapping) -> ImportRow:
    """Turn one raw spreadsheet record into a canonical ImportRow.

    Args:
        row_number: 1-based index of the data row
        record: Cell text keyed by observed header
        mapping: Canonical key to observed header, from ``validate_headers``

    Returns:
        ImportRow; unparsable optional values become None
    """
    return ImportRow(
        row_number=row_number,
        order_code=_text(record, mapping, "order_code"),
        customer_name=_text(record, mapping, "customer_name"),
        phone=_text(record, mapping, "phone"),
        product=_text(record, mapping, "product"),
        amount=parse_amount(_text(record, mapping, "amount")),
        payment_method=normalize_payment_method(_text(record, mapping, "payment_method")),
        address=_optional(record, mapping, "address"),
        address_detail=_optional(record, mapping, "address_detail"),
        ward=_optional(record, mapping, "ward"),
        district=_optional(record, mapping, "district"),
        province=_optional(record, mapping, "province"),
        channel=_optional(record, mapping, "channel"),
        source=_optional(record, mapping, "source"),
        order_date=parse_order_date(_text(record, mapping, "order_date")),
        gender=normalize_gender(_text(record, mapping, "gender")),
        birth_year=parse_birth_year(_text(record, mapping, "birth_year")),
        discount_amount=parse_amount(_text(record, mapping, "discount_amount")),
        shipping_fee=parse_amount(_text(record, mapping, "shipping_fee")),
    )
