import logging
import os
from decimal import Decimal
from pathlib import Path
from typing import Optional, Protocol
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.crud import invoice as invoice_crud
from app.db.models.invoice import Invoice
from app.db.models.order import Order

logger = logging.getLogger(__name__)
settings = get_settings()

# Changing any of these makes a rendered invoice stale
MONEY_FIELDS = frozenset({"amount", "discount_amount", "shipping_fee"})


class DocumentStore(Protocol):
    async def exists(self, ref: str) -> bool: ...

    async def save(self, key: str, content: bytes) -> str: ...

    async def read(self, ref: str) -> bytes: ...


class InvoiceRenderer(Protocol):
    def render(self, invoice: Invoice, order: Order) -> bytes: ...


class LocalDocumentStore:
    """Stores rendered documents as files below ``base_dir``; refs are the keys."""

    def __init__(self, base_dir: Optional[str] = None):
        self.base_dir = Path(base_dir or settings.INVOICE_DOCUMENT_DIR)

    def _path(self, ref: str) -> Path:
        path = (self.base_dir / ref).resolve()
        if self.base_dir.resolve() not in path.parents:
            raise ValueError(f"Invalid document reference: {ref}")
        return path

    async def exists(self, ref: str) -> bool:
        try:
            return self._path(ref).is_file()
        except ValueError:
            return False

    async def save(self, key: str, content: bytes) -> str:
        path = self._path(key)
        os.makedirs(path.parent, exist_ok=True)
        path.write_bytes(content)
        return key

    async def read(self, ref: str) -> bytes:
        return self._path(ref).read_bytes()


def _money(value) -> str:
    if value is None:
        return "0"
    return f"{Decimal(value):,.0f}"


class PlainTextInvoiceRenderer:
    def render(self, invoice: Invoice, order: Order) -> bytes:
        amount = Decimal(order.amount or 0)
        discount = Decimal(order.discount_amount or 0)
        shipping = Decimal(order.shipping_fee or 0)
        total = amount - discount + shipping
        address = order.address or ", ".join(
            part for part in (order.address_detail, order.ward, order.district, order.province) if part
        )
        lines = [
            f"INVOICE {invoice.invoice_code}",
            f"Status: {invoice.status}",
            f"Issued: {invoice.issue_date:%Y-%m-%d}" if invoice.issue_date else "Issued: -",
            "",
            f"Order: {order.order_code}",
            f"Customer: {order.customer_name}",
            f"Phone: {order.phone}",
            f"Address: {address or '-'}",
            f"Payment method: {order.payment_method}",
            "",
            f"Product: {order.product_name}",
            f"Amount: {_money(amount)}",
            f"Discount: {_money(discount)}",
            f"Shipping fee: {_money(shipping)}",
            f"Total: {_money(total)}",
        ]
        return ("\n".join(lines) + "\n").encode("utf-8")


class InvoiceDocumentService:
    """Renders invoice documents on demand and caches the stored reference."""

    def __init__(self, store: Optional[DocumentStore] = None, renderer: Optional[InvoiceRenderer] = None):
        self.store = store or LocalDocumentStore()
        self.renderer = renderer or PlainTextInvoiceRenderer()

    @staticmethod
    async def invalidate(db: AsyncSession, order_id: UUID) -> int:
        """Forget cached documents of an order's invoices."""
        cleared = await invoice_crud.clear_document_refs(db, order_id)
        if cleared:
            logger.info(f"Invalidated {cleared} cached invoice document(s) for order {order_id}")
        return cleared

    @staticmethod
    def document_key(invoice: Invoice, order: Order) -> str:
        return f"{order.user_id}/{order.id}/{invoice.invoice_code}.txt"

    async def get_document(self, db: AsyncSession, invoice: Invoice, order: Order) -> str:
        """Return a reference to an up-to-date rendered document.

        A cached ``document_ref`` is only trusted when the store can still find
        it; otherwise the invoice is rendered from the current order snapshot,
        uploaded and the new reference saved on the invoice.
        """
        if invoice.document_ref and await self.store.exists(invoice.document_ref):
            return invoice.document_ref

        content = self.renderer.render(invoice, order)
        ref = await self.store.save(self.document_key(invoice, order), content)
        await invoice_crud.set_document_ref(db, invoice, ref)
        logger.info(f"Rendered invoice document {ref}")
        return ref

    async def read_document(self, ref: str) -> bytes:
        return await self.store.read(ref)
