import io
import tempfile
import uuid
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pandas as pd
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from app.db.base import Base
from app.db import models  # noqa: F401  (registers the tables on Base.metadata)
from app.db.models.product import Product
from app.schemas.order import OrderCreate
from app.services.risk.evaluator import RiskInput, RiskResult, risk_level_for

HEADERS = ["Order ID", "Customer Name", "Phone", "Product", "Amount", "Payment Method", "Address"]


@pytest_asyncio.fixture
async def engine():
    """Throwaway SQLite database file per test"""
    temp_db = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    temp_db.close()
    engine = create_async_engine(f"sqlite+aiosqlite:///{temp_db.name}", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()
    Path(temp_db.name).unlink(missing_ok=True)


@pytest_asyncio.fixture
async def db(engine):
    session_factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    session = session_factory()
    try:
        yield session
    finally:
        await session.close()


@pytest.fixture
def user_id():
    return uuid.uuid4()


async def add_products(db: AsyncSession, user_id, names: Sequence[str], status: str = "active") -> List[Product]:
    products = [Product(user_id=user_id, name=name, status=status) for name in names]
    db.add_all(products)
    await db.commit()
    for product in products:
        await db.refresh(product)
    return products


def order_input(code: str = "ORD-1", amount: str = "250000", payment_method: str = "COD", **extra) -> OrderCreate:
    values = {
        "order_code": code,
        "customer_name": "Nguyen Van A",
        "phone": "0901000001",
        "product_name": "Widget",
        "amount": Decimal(amount),
        "payment_method": payment_method,
        "address": "12 Le Loi, District 1, Ho Chi Minh City",
    }
    values.update(extra)
    return OrderCreate(**values)


class FixedRiskEvaluator:
    """Risk evaluator double returning a fixed score and recording every call."""

    def __init__(self, score: Optional[int] = 25):
        self.score = score
        self.calls: List[RiskInput] = []

    def __call__(self, data: RiskInput) -> RiskResult:
        self.calls.append(data)
        return RiskResult(score=self.score, level=risk_level_for(self.score), reasons=["fixed"])


def sheet_row(code: str, product: str = "Widget", amount=250000, payment: str = "COD",
              phone: Optional[str] = None, name: str = "Nguyen Van A") -> Dict[str, object]:
    return {
        "Order ID": code,
        "Customer Name": name,
        "Phone": phone or f"09{sum(map(ord, code)):08d}",
        "Product": product,
        "Amount": amount,
        "Payment Method": payment,
        "Address": "Lot 5, Khu Công Nghiệp Tân Bình",
    }


def make_csv(rows: List[Dict[str, object]], headers: Sequence[str] = HEADERS) -> bytes:
    frame = pd.DataFrame(rows, columns=list(headers))
    return frame.to_csv(index=False).encode("utf-8")


def make_xlsx(rows: List[Dict[str, object]], headers: Sequence[str] = HEADERS) -> bytes:
    buffer = io.BytesIO()
    frame = pd.DataFrame(rows, columns=list(headers))
    frame.to_excel(buffer, index=False, engine="openpyxl")
    return buffer.getvalue()
