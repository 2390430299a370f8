from datetime import datetime, timezone
from decimal import Decimal

import pytest

from app.core.result import Ok
from app.services.importer.headers import validate_headers
from app.services.importer.rows import (
    map_row,
    normalize_gender,
    normalize_payment_method,
    parse_amount,
    parse_birth_year,
    parse_order_date,
)


@pytest.mark.parametrize("raw,expected", [
    ("1,200,000 VND", Decimal("1200000")),
    ("1.200.000đ", Decimal("1200000")),
    ("₫ 99", Decimal("99")),
    ("120000.50", Decimal("120000.50")),
    (250000, Decimal("250000")),
    ("", None),
    ("abc", None),
    (None, None),
])
def test_parse_amount(raw, expected):
    assert parse_amount(raw) == expected


@pytest.mark.parametrize("raw,expected", [
    ("", "COD"),
    ("cod", "COD"),
    ("Chuyển khoản", "BANK_TRANSFER"),
    ("MoMo", "MOMO"),
    ("Zalo Pay", "ZALO_PAY"),
    ("Visa", "CREDIT_CARDS"),
    ("Bitcoin", "OTHER"),
])
def test_normalize_payment_method(raw, expected):
    assert normalize_payment_method(raw) == expected


def test_normalize_gender():
    assert normalize_gender("Nữ") == "female"
    assert normalize_gender("Nam") == "male"
    assert normalize_gender("x") == "other"
    assert normalize_gender("") is None


def test_parse_birth_year():
    assert parse_birth_year("1990") == 1990
    assert parse_birth_year("15/04/1988") == 1988
    assert parse_birth_year("1850") is None
    assert parse_birth_year("") is None


def test_parse_order_date_day_first():
    moment = parse_order_date("25/12/2025")

    assert moment == datetime(2025, 12, 25, tzinfo=timezone.utc)


def test_parse_order_date_iso_and_garbage():
    assert parse_order_date("2025-03-04") == datetime(2025, 3, 4, tzinfo=timezone.utc)
    assert parse_order_date("not a date") is None
    assert parse_order_date("") is None


def test_map_row():
    headers = ["Mã đơn", "Tên khách hàng", "SĐT", "Sản phẩm", "Tổng tiền", "Thanh toán", "Phường", "Quận", "Tỉnh"]
    mapping = validate_headers(headers)
    assert isinstance(mapping, Ok)
    record = dict(zip(headers, [
        " DH-01 ", "Trần Thị B", "0912345678", "Áo thun", "350.000đ", "", "Phường 7", "Quận 3", "TP HCM",
    ]))

    row = map_row(4, record, mapping.value)

    assert row.row_number == 4
    assert row.order_code == "DH-01"
    assert row.amount == Decimal("350000")
    assert row.payment_method == "COD"
    assert row.ward == "Phường 7"
    assert row.province == "TP HCM"
    assert row.address is None
    assert row.order_date is None
