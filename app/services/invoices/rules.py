import logging
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.crud import invoice as invoice_crud
from app.db.models.invoice import Invoice
from app.db.models.order import Order, utcnow
from app.services.events.event_log import EventLog, EventType
from app.services.orders.state_machine import OrderStatus, has_reached_approved

logger = logging.getLogger(__name__)
settings = get_settings()


class InvoiceStatus:
    PENDING = "Pending"
    PAID = "Paid"
    CANCELLED = "Cancelled"


PAID_STATUSES = frozenset({OrderStatus.PAID, OrderStatus.DELIVERING, OrderStatus.COMPLETED})


def invoice_code_for(order: Order) -> str:
    if order.order_code:
        return f"INV-{order.order_code}"
    return f"INV-{str(order.id)[:8].upper()}"


class InvoiceRuleEngine:
    """Derives the invoice an order should have and makes it so.

    ``apply`` is an idempotent "ensure": running it any number of times on the
    same order snapshot leaves at most one invoice and records at most one
    ``INVOICE_PAID`` event.
    """

    @staticmethod
    def required_state(
        status: str,
        risk_score: Optional[int],
        payment_method: Optional[str],
        low_risk_threshold: Optional[int] = None,
    ) -> Optional[str]:
        """Project an order snapshot onto the invoice state it requires.

        Args:
            status: Current order status
            risk_score: Risk score, ``None`` when unscored
            payment_method: Order payment method (missing means COD)
            low_risk_threshold: Highest score that still counts as low risk

        Returns:
            ``"Paid"``, ``"Pending"`` or ``None`` when no invoice is required
        """
        threshold = settings.LOW_RISK_THRESHOLD if low_risk_threshold is None else low_risk_threshold
        method = payment_method or "COD"

        # Paid statuses win over every other rule, for any payment method
        if status in PAID_STATUSES:
            return InvoiceStatus.PAID
        if method != "COD":
            return None
        if risk_score is not None and risk_score <= threshold:
            if has_reached_approved(status):
                return InvoiceStatus.PENDING
            return None
        if status == OrderStatus.CUSTOMER_CONFIRMED:
            return InvoiceStatus.PENDING
        return None

    @staticmethod
    async def apply(db: AsyncSession, order: Order, source: str = "system") -> Optional[Invoice]:
        """Bring the order's invoice in line with ``required_state``.

        Args:
            db: Database session
            order: Post-transition order snapshot
            source: Event source for a resulting ``INVOICE_PAID`` event

        Returns:
            The order's invoice after the rules ran, or None if it has none
        """
        order_id = order.id
        required = InvoiceRuleEngine.required_state(order.status, order.risk_score, order.payment_method)
        existing = await invoice_crud.get_invoice_for_order(db, order_id)
        if required is None:
            return existing

        # A Cancelled invoice is never reopened, Paid or Pending
        if existing is not None and existing.status == InvoiceStatus.CANCELLED:
            return existing

        if required == InvoiceStatus.PAID:
            if existing is not None and existing.status == InvoiceStatus.PAID:
                return existing
            paid_at = order.paid_at or utcnow()
            if existing is None:
                invoice, changed = await InvoiceRuleEngine._create(db, order, InvoiceStatus.PAID, paid_at)
                if changed:
                    logger.info(f"Created Paid invoice {invoice.invoice_code} for order {order_id}")
            else:
                invoice = await invoice_crud.mark_invoice_paid(db, existing, paid_at)
                changed = True
                logger.info(f"Marked invoice {invoice.invoice_code} Paid for order {order_id}")
            if changed:
                await EventLog.append(
                    db,
                    order_id,
                    EventType.INVOICE_PAID,
                    {"invoice_code": invoice.invoice_code, "amount": invoice.amount},
                    source,
                )
            return invoice

        # Pending rules never touch an existing invoice
        if existing is not None:
            return existing
        invoice, changed = await InvoiceRuleEngine._create(db, order, InvoiceStatus.PENDING, None)
        if changed:
            logger.info(f"Created Pending invoice {invoice.invoice_code} for order {order_id}")
        return invoice

    @staticmethod
    async def _create(db: AsyncSession, order: Order, status: str, paid_at) -> Tuple[Invoice, bool]:
        """Insert the invoice, falling back to the one a concurrent run created.

        Returns:
            The invoice and whether this call changed anything
        """
        order_id = order.id
        values = {
            "user_id": order.user_id,
            "order_id": order_id,
            "invoice_code": invoice_code_for(order),
            "amount": order.amount,
            "status": status,
            "issue_date": utcnow(),
            "paid_at": paid_at,
        }
        try:
            return await invoice_crud.create_invoice(db, values), True
        except IntegrityError:
            # A concurrent run created it first
            await db.rollback()
            await db.refresh(order)
            existing = await invoice_crud.get_invoice_for_order(db, order_id)
            if existing is None:
                raise
            if (
                status == InvoiceStatus.PAID
                and existing.status not in (InvoiceStatus.PAID, InvoiceStatus.CANCELLED)
            ):
                return await invoice_crud.mark_invoice_paid(db, existing, paid_at), True
            return existing, False
