import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic_core import to_jsonable_python
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.order_event import OrderEvent

logger = logging.getLogger(__name__)


class EventType:
    ORDER_CREATED = "ORDER_CREATED"
    ORDER_IMPORTED = "ORDER_IMPORTED"
    ORDER_APPROVED = "ORDER_APPROVED"
    ORDER_REJECTED = "ORDER_REJECTED"
    VERIFICATION_REQUIRED = "VERIFICATION_REQUIRED"
    CONFIRMATION_SENT = "CONFIRMATION_SENT"
    CUSTOMER_CONFIRMED = "CUSTOMER_CONFIRMED"
    CUSTOMER_CANCELLED = "CUSTOMER_CANCELLED"
    CUSTOMER_UNREACHABLE = "CUSTOMER_UNREACHABLE"
    ORDER_PAID = "ORDER_PAID"
    ORDER_SHIPPED = "ORDER_SHIPPED"
    ORDER_COMPLETED = "ORDER_COMPLETED"
    ORDER_UPDATED = "ORDER_UPDATED"
    INVOICE_PAID = "INVOICE_PAID"


def clean_payload(payload: Optional[Dict[str, Any]], source: str) -> Dict[str, Any]:
    """Drop empty values, make the rest JSON-safe and stamp the source."""
    cleaned = {
        key: value
        for key, value in (payload or {}).items()
        if value is not None and value != ""
    }
    cleaned["source"] = source
    return to_jsonable_python(cleaned)


class EventLog:
    """Append-only order timeline."""

    @staticmethod
    async def append(
        db: AsyncSession,
        order_id: UUID,
        event_type: str,
        payload: Optional[Dict[str, Any]] = None,
        source: str = "system",
    ) -> OrderEvent:
        """Record one event for an order and commit it.

        Args:
            db: Database session
            order_id: Order the event belongs to
            event_type: One of the ``EventType`` names
            payload: Event details; ``None`` and empty-string values are dropped
            source: Origin of the change (``manual``, ``import``, ``system``, ...)

        Returns:
            The persisted OrderEvent
        """
        event = OrderEvent(
            order_id=order_id,
            event_type=event_type,
            payload=clean_payload(payload, source),
        )
        db.add(event)
        await db.commit()
        await db.refresh(event)
        logger.debug(f"Logged {event_type} for order {order_id}")
        return event

    @staticmethod
    async def list_for_order(db: AsyncSession, order_id: UUID) -> List[OrderEvent]:
        """Return an order's timeline, oldest first."""
        stmt = (
            select(OrderEvent)
            .where(OrderEvent.order_id == order_id)
            .order_by(OrderEvent.created_at, OrderEvent.id)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())
