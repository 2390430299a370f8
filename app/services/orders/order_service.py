import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.crud import order as order_crud
from app.crud import invoice as invoice_crud
from app.db.models.invoice import Invoice
from app.db.models.order import Order, utcnow
from app.db.models.order_event import OrderEvent
from app.schemas.order import FilterOptions, OrderCreate, OrderUpdate
from app.services.events.event_log import EventLog, EventType
from app.services.exceptions import (
    DuplicateOrderCodeError,
    InvalidTransitionError,
    OrderNotFoundError,
)
from app.services.invoices.documents import MONEY_FIELDS, InvoiceDocumentService
from app.services.invoices.rules import InvoiceRuleEngine
from app.services.orders.state_machine import (
    ACTIONS,
    OrderStatus,
    allowed_sources,
    initial_status,
)
from app.services.risk.evaluator import RiskEvaluator, RiskInput, evaluate_risk

logger = logging.getLogger(__name__)


@dataclass
class TransitionResult:
    order: Order
    applied: bool
    message: Optional[str] = None
    invoice: Optional[Invoice] = None
    event: Optional[OrderEvent] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


def compose_address(values: Dict[str, Any]) -> Optional[str]:
    """Resolve the full address from its parts when none was given."""
    if values.get("address"):
        return values["address"]
    parts = [values.get(key) for key in ("address_detail", "ward", "district", "province")]
    joined = ", ".join(str(part) for part in parts if part)
    return joined or None


def confirmation_flow_for(risk_level: Optional[str]) -> str:
    return "payment_link" if risk_level == "low" else "manual_confirmation"


class OrderService:
    """Order lifecycle operations.

    Every applied transition persists the new status, re-runs the invoice
    rules on the fresh snapshot and records exactly one event. The three steps
    commit separately; no-op calls and ``reconcile_order`` re-run the invoice
    rules so a step interrupted earlier can be completed later.
    """

    @staticmethod
    async def insert_new_order(
        db: AsyncSession,
        user_id: UUID,
        values: Dict[str, Any],
        risk_evaluator: RiskEvaluator = evaluate_risk,
    ) -> Order:
        """Score (COD only), set the initial status and insert one order.

        Args:
            db: Database session
            user_id: Owning user
            values: Column values of the new order
            risk_evaluator: Callable scoring COD orders

        Returns:
            The committed Order
        """
        values = dict(values)
        values["user_id"] = user_id
        values["payment_method"] = values.get("payment_method") or "COD"
        values["address"] = compose_address(values)

        if values["payment_method"] == "COD":
            history = await order_crud.get_statuses_by_phone(db, user_id, values["phone"])
            risk = risk_evaluator(RiskInput(
                payment_method="COD",
                amount=values["amount"],
                phone=values["phone"],
                address=values["address"],
                past_statuses=history,
                product_name=values.get("product_name"),
            ))
            values["risk_score"] = risk.score
            values["risk_level"] = risk.level
        else:
            values["risk_score"] = None
            values["risk_level"] = "none"

        values["status"] = initial_status(values["payment_method"])
        if values["status"] == OrderStatus.PAID:
            values["paid_at"] = utcnow()

        return await order_crud.insert_order(db, values)

    @staticmethod
    async def create_order(
        db: AsyncSession,
        user_id: UUID,
        data: OrderCreate,
        risk_evaluator: RiskEvaluator = evaluate_risk,
        source: str = "manual",
    ) -> Order:
        """Create a single order by hand."""
        existing = await order_crud.get_order_by_code(db, user_id, data.order_code)
        if existing is not None:
            raise DuplicateOrderCodeError(data.order_code)

        order = await OrderService.insert_new_order(db, user_id, data.model_dump(), risk_evaluator)
        await InvoiceRuleEngine.apply(db, order, source)
        await EventLog.append(
            db,
            order.id,
            EventType.ORDER_CREATED,
            {"order_code": order.order_code, "status": order.status, "risk_level": order.risk_level},
            source,
        )
        logger.info(f"Created order {order.order_code} ({order.status}) for user {user_id}")
        return order

    @staticmethod
    async def get_order(db: AsyncSession, user_id: UUID, order_id: UUID) -> Order:
        order = await order_crud.get_order(db, user_id, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    @staticmethod
    async def list_orders(
        db: AsyncSession,
        user_id: UUID,
        status: Optional[str] = None,
        payment_method: Optional[str] = None,
        risk_level: Optional[str] = None,
        search: Optional[str] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Order], int]:
        return await order_crud.list_orders(
            db, user_id, status=status, payment_method=payment_method,
            risk_level=risk_level, search=search, offset=max(offset, 0), limit=max(min(limit, 100), 1),
        )

    @staticmethod
    async def list_filter_options(db: AsyncSession, user_id: UUID) -> FilterOptions:
        statuses = await order_crud.distinct_values(db, user_id, "status")
        methods = await order_crud.distinct_values(db, user_id, "payment_method")
        levels = await order_crud.distinct_values(db, user_id, "risk_level")
        return FilterOptions(
            statuses=[s for s in OrderStatus.ALL if s in statuses],
            # Orders saved without a method are COD
            payment_methods=sorted({method or "COD" for method in methods}),
            risk_levels=sorted({level for level in levels if level}),
        )

    @staticmethod
    async def get_events(db: AsyncSession, user_id: UUID, order_id: UUID) -> List[OrderEvent]:
        await OrderService.get_order(db, user_id, order_id)
        return await EventLog.list_for_order(db, order_id)

    @staticmethod
    async def get_invoice(db: AsyncSession, user_id: UUID, order_id: UUID) -> Optional[Invoice]:
        await OrderService.get_order(db, user_id, order_id)
        return await invoice_crud.get_invoice_for_order(db, order_id)

    @staticmethod
    async def transition(
        db: AsyncSession,
        user_id: UUID,
        order_id: UUID,
        action_name: str,
        reason: Optional[str] = None,
        source: str = "manual",
    ) -> TransitionResult:
        """Apply a named state-machine action to an order.

        The status check and write are one conditional update, so two racing
        calls cannot both apply. A call that changes nothing still re-runs the
        invoice rules.

        Args:
            db: Database session
            user_id: Owning user
            order_id: Order to move
            action_name: Key of ``ACTIONS``
            reason: Free-text reason for actions that record one
            source: Event source

        Returns:
            TransitionResult describing what happened

        Raises:
            OrderNotFoundError: The order does not exist for this user
            InvalidTransitionError: The action is not allowed from the current status
        """
        action = ACTIONS[action_name]
        current = await OrderService.get_order(db, user_id, order_id)
        previous_status = current.status

        values: Dict[str, Any] = {"status": action.target}
        if action.timestamp_field:
            values[action.timestamp_field] = utcnow()
        if action.reason_field and reason:
            values[action.reason_field] = reason

        changed = await order_crud.update_status_if(
            db, user_id, order_id, allowed_sources(action.target), values
        )
        order = await OrderService.get_order(db, user_id, order_id)

        if not changed:
            if order.status != action.target and not action.at_most_once:
                raise InvalidTransitionError(order.status, action.target)
            logger.info(
                f"{action_name} on order {order.order_code} skipped: already '{order.status}'"
            )
            invoice = await InvoiceRuleEngine.apply(db, order, source)
            return TransitionResult(
                order=order,
                applied=False,
                message=f"Order {order.order_code} is already '{order.status}'; nothing to do",
                invoice=invoice,
            )

        # The update above guarantees we moved off a legal source status
        metadata: Dict[str, Any] = {}
        payload: Dict[str, Any] = {"from": previous_status, "to": order.status, "reason": reason}
        if action_name == "approve":
            metadata["confirmation_flow"] = confirmation_flow_for(order.risk_level)
            payload.update(metadata)
            payload["risk_level"] = order.risk_level

        invoice = await InvoiceRuleEngine.apply(db, order, source)
        event = await EventLog.append(db, order.id, action.event_type, payload, source)
        logger.info(f"Order {order.order_code}: {previous_status} -> {order.status}")
        return TransitionResult(order=order, applied=True, invoice=invoice, event=event, metadata=metadata)

    @staticmethod
    async def approve_order(db: AsyncSession, user_id: UUID, order_id: UUID, source: str = "manual") -> TransitionResult:
        return await OrderService.transition(db, user_id, order_id, "approve", source=source)

    @staticmethod
    async def reject_order(
        db: AsyncSession, user_id: UUID, order_id: UUID, reason: Optional[str] = None, source: str = "manual"
    ) -> TransitionResult:
        return await OrderService.transition(db, user_id, order_id, "reject", reason, source)

    @staticmethod
    async def flag_verification(
        db: AsyncSession, user_id: UUID, order_id: UUID, reason: Optional[str] = None, source: str = "manual"
    ) -> TransitionResult:
        return await OrderService.transition(db, user_id, order_id, "flag_verification", reason, source)

    @staticmethod
    async def send_confirmation(db: AsyncSession, user_id: UUID, order_id: UUID, source: str = "manual") -> TransitionResult:
        return await OrderService.transition(db, user_id, order_id, "send_confirmation", source=source)

    @staticmethod
    async def confirm_order(db: AsyncSession, user_id: UUID, order_id: UUID, source: str = "manual") -> TransitionResult:
        return await OrderService.transition(db, user_id, order_id, "confirm", source=source)

    @staticmethod
    async def cancel_order(
        db: AsyncSession, user_id: UUID, order_id: UUID, reason: Optional[str] = None, source: str = "manual"
    ) -> TransitionResult:
        return await OrderService.transition(db, user_id, order_id, "cancel", reason, source)

    @staticmethod
    async def mark_unreachable(db: AsyncSession, user_id: UUID, order_id: UUID, source: str = "manual") -> TransitionResult:
        return await OrderService.transition(db, user_id, order_id, "mark_unreachable", source=source)

    @staticmethod
    async def mark_paid(db: AsyncSession, user_id: UUID, order_id: UUID, source: str = "manual") -> TransitionResult:
        return await OrderService.transition(db, user_id, order_id, "mark_paid", source=source)

    @staticmethod
    async def mark_shipped(db: AsyncSession, user_id: UUID, order_id: UUID, source: str = "manual") -> TransitionResult:
        return await OrderService.transition(db, user_id, order_id, "mark_shipped", source=source)

    @staticmethod
    async def mark_completed(db: AsyncSession, user_id: UUID, order_id: UUID, source: str = "manual") -> TransitionResult:
        return await OrderService.transition(db, user_id, order_id, "mark_completed", source=source)

    @staticmethod
    async def reconcile_order(db: AsyncSession, user_id: UUID, order_id: UUID) -> Optional[Invoice]:
        """Re-run the invoice rules for an order whose earlier run was interrupted."""
        order = await OrderService.get_order(db, user_id, order_id)
        return await InvoiceRuleEngine.apply(db, order, "reconcile")

    @staticmethod
    async def update_order_details(
        db: AsyncSession,
        user_id: UUID,
        order_id: UUID,
        changes: OrderUpdate,
        source: str = "manual",
    ) -> Order:
        """Apply field edits and record them as one ``ORDER_UPDATED`` event.

        Edits to money fields invalidate cached invoice documents.
        """
        order = await OrderService.get_order(db, user_id, order_id)

        diff: Dict[str, Dict[str, Any]] = {}
        values: Dict[str, Any] = {}
        for name, value in changes.model_dump(exclude_unset=True).items():
            current = getattr(order, name)
            if current == value:
                continue
            diff[name] = {"from": current, "to": value}
            values[name] = value

        if not values:
            return order

        if {"address_detail", "ward", "district", "province"} & set(values) and "address" not in values:
            merged = {key: getattr(order, key) for key in ("address_detail", "ward", "district", "province")}
            merged.update(values)
            values["address"] = compose_address(merged)

        order = await order_crud.update_order(db, order, values)
        if MONEY_FIELDS & set(values):
            await InvoiceDocumentService.invalidate(db, order.id)
        await EventLog.append(db, order.id, EventType.ORDER_UPDATED, diff, source)
        logger.info(f"Updated order {order.order_code}: {', '.join(sorted(diff))}")
        return order

    @staticmethod
    async def delete_orders(db: AsyncSession, user_id: UUID, order_ids: Sequence[UUID]) -> int:
        """Delete orders with their invoices. The event timeline is kept."""
        owned = await order_crud.get_owned_order_ids(db, user_id, order_ids)
        if not owned:
            return 0
        try:
            await invoice_crud.delete_invoices_for_orders(db, owned)
            deleted = await order_crud.delete_orders(db, user_id, owned)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(f"Deleted {deleted} order(s) for user {user_id}")
        return deleted
