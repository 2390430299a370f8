import decimal
from datetime import datetime
import strawberry


def _parse_datetime(value: str) -> datetime:
    # Accept a trailing "Z" for UTC
    if isinstance(value, str) and value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


DateTime = strawberry.scalar(
    datetime,
    description="ISO-8601 formatted datetime",
    serialize=lambda v: v.isoformat(),
    parse_value=_parse_datetime,
)

# Money travels as a string so no precision is lost in JSON
Numeric = strawberry.scalar(
    decimal.Decimal,
    description="Decimal amount, serialized as a string",
    serialize=lambda v: str(v),
    parse_value=lambda v: decimal.Decimal(str(v)),
)
