from datetime import datetime
from typing import Any, Dict, Optional, Sequence
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.invoice import Invoice


async def get_invoice_for_order(db: AsyncSession, order_id: UUID) -> Optional[Invoice]:
    stmt = select(Invoice).where(Invoice.order_id == order_id).execution_options(populate_existing=True)
    result = await db.execute(stmt)
    return result.scalars().first()


async def create_invoice(db: AsyncSession, values: Dict[str, Any]) -> Invoice:
    db_invoice = Invoice(**values)
    db.add(db_invoice)
    await db.commit()
    await db.refresh(db_invoice)
    return db_invoice


async def mark_invoice_paid(db: AsyncSession, db_invoice: Invoice, paid_at: datetime) -> Invoice:
    db_invoice.status = 'Paid'
    db_invoice.paid_at = paid_at
    await db.commit()
    await db.refresh(db_invoice)
    return db_invoice


async def clear_document_refs(db: AsyncSession, order_id: UUID) -> int:
    """Drop cached document references for an order's invoices."""
    stmt = (
        update(Invoice)
        .where(Invoice.order_id == order_id, Invoice.document_ref.is_not(None))
        .values(document_ref=None)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    await db.commit()
    return result.rowcount


async def set_document_ref(db: AsyncSession, db_invoice: Invoice, document_ref: str) -> Invoice:
    db_invoice.document_ref = document_ref
    await db.commit()
    await db.refresh(db_invoice)
    return db_invoice


async def delete_invoices_for_orders(db: AsyncSession, order_ids: Sequence[UUID]) -> int:
    """Delete invoices of the given orders without committing."""
    if not order_ids:
        return 0
    stmt = (
        delete(Invoice)
        .where(Invoice.order_id.in_(list(order_ids)))
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    return result.rowcount
