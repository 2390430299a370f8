from typing import Dict, List, Sequence, Tuple

from app.db.models.product import Product
from app.schemas.imports import ImportRow, InvalidRow, ValidRow, ValidatedRow
from app.utils.text import normalize_text

Catalog = Dict[str, Product]


def row_problems(row: ImportRow, catalog: Catalog) -> List[str]:
    reasons: List[str] = []
    if not row.order_code:
        reasons.append("Order ID missing")
    if not row.customer_name:
        reasons.append("Customer name missing")
    if not row.phone:
        reasons.append("Phone missing")
    if not row.product:
        reasons.append("Product missing")
    if row.amount is None or row.amount <= 0:
        reasons.append("Amount invalid")
    if row.product and normalize_text(row.product) not in catalog:
        reasons.append(f"Product not found: {row.product}")
    return reasons


def validate_row(row: ImportRow, catalog: Catalog) -> ValidatedRow:
    reasons = row_problems(row, catalog)
    if reasons:
        return InvalidRow(row=row, reason="; ".join(reasons))
    product = catalog[normalize_text(row.product)]
    return ValidRow(row=row, product_id=product.id, product_name=product.name)


def validate_rows(rows: Sequence[ImportRow], catalog: Catalog) -> Tuple[List[ValidRow], List[InvalidRow]]:
    """Split rows into valid and invalid ones, resolving products by normalized exact name."""
    valid: List[ValidRow] = []
    invalid: List[InvalidRow] = []
    for row in rows:
        result = validate_row(row, catalog)
        if isinstance(result, ValidRow):
            valid.append(result)
        else:
            invalid.append(result)
    return valid, invalid


def unmatched_product_names(rows: Sequence[InvalidRow], catalog: Catalog) -> List[str]:
    """Distinct product names of invalid rows that the catalog does not know."""
    names: Dict[str, str] = {}
    for invalid in rows:
        key = normalize_text(invalid.row.product)
        if key and key not in catalog:
            names.setdefault(key, invalid.row.product)
    return list(names.values())


def missing_products(rows: Sequence[ValidRow], catalog: Catalog) -> List[str]:
    """Distinct product names of ``rows`` absent from ``catalog``."""
    names: Dict[str, str] = {}
    for valid in rows:
        key = normalize_text(valid.row.product)
        if key not in catalog:
            names.setdefault(key, valid.row.product)
    return list(names.values())
