"""Order status graph and the actions that walk it.

Statuses are stored as their display strings. ``ACTIONS`` maps each service
action onto its target status together with the timestamp/reason columns it
writes and the event it records.
"""
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional


class OrderStatus:
    PENDING_REVIEW = "Pending Review"
    VERIFICATION_REQUIRED = "Verification Required"
    APPROVED = "Order Approved"
    REJECTED = "Order Rejected"
    CONFIRMATION_SENT = "Order Confirmation Sent"
    CUSTOMER_CONFIRMED = "Customer Confirmed"
    CUSTOMER_CANCELLED = "Customer Cancelled"
    CUSTOMER_UNREACHABLE = "Customer Unreachable"
    PAID = "Order Paid"
    DELIVERING = "Delivering"
    COMPLETED = "Completed"

    ALL = (
        PENDING_REVIEW,
        VERIFICATION_REQUIRED,
        APPROVED,
        REJECTED,
        CONFIRMATION_SENT,
        CUSTOMER_CONFIRMED,
        CUSTOMER_CANCELLED,
        CUSTOMER_UNREACHABLE,
        PAID,
        DELIVERING,
        COMPLETED,
    )


TRANSITIONS: Dict[str, FrozenSet[str]] = {
    OrderStatus.PENDING_REVIEW: frozenset({
        OrderStatus.APPROVED,
        OrderStatus.VERIFICATION_REQUIRED,
        OrderStatus.REJECTED,
    }),
    OrderStatus.VERIFICATION_REQUIRED: frozenset({
        OrderStatus.APPROVED,
        OrderStatus.CONFIRMATION_SENT,
        OrderStatus.REJECTED,
        OrderStatus.CUSTOMER_UNREACHABLE,
    }),
    OrderStatus.APPROVED: frozenset({OrderStatus.CONFIRMATION_SENT}),
    OrderStatus.CONFIRMATION_SENT: frozenset({
        OrderStatus.CUSTOMER_CONFIRMED,
        OrderStatus.CUSTOMER_CANCELLED,
        OrderStatus.CUSTOMER_UNREACHABLE,
    }),
    OrderStatus.CUSTOMER_CONFIRMED: frozenset({
        OrderStatus.PAID,
        OrderStatus.CUSTOMER_CANCELLED,
    }),
    OrderStatus.PAID: frozenset({OrderStatus.DELIVERING}),
    OrderStatus.DELIVERING: frozenset({OrderStatus.COMPLETED}),
    OrderStatus.REJECTED: frozenset(),
    OrderStatus.CUSTOMER_CANCELLED: frozenset(),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CUSTOMER_UNREACHABLE: frozenset(),
}

TERMINAL_STATUSES = frozenset(status for status, targets in TRANSITIONS.items() if not targets)


@dataclass(frozen=True)
class Action:
    name: str
    target: str
    event_type: str
    timestamp_field: Optional[str] = None
    reason_field: Optional[str] = None
    # Illegal sources are a silent no-op instead of an error
    at_most_once: bool = False


ACTIONS: Dict[str, Action] = {
    action.name: action
    for action in (
        Action("approve", OrderStatus.APPROVED, "ORDER_APPROVED", "approved_at", at_most_once=True),
        Action("reject", OrderStatus.REJECTED, "ORDER_REJECTED", reason_field="reject_reason", at_most_once=True),
        Action("flag_verification", OrderStatus.VERIFICATION_REQUIRED, "VERIFICATION_REQUIRED",
               reason_field="verification_reason"),
        Action("send_confirmation", OrderStatus.CONFIRMATION_SENT, "CONFIRMATION_SENT", "confirmation_sent_at"),
        Action("confirm", OrderStatus.CUSTOMER_CONFIRMED, "CUSTOMER_CONFIRMED", "customer_confirmed_at"),
        Action("cancel", OrderStatus.CUSTOMER_CANCELLED, "CUSTOMER_CANCELLED", "cancelled_at",
               reason_field="cancel_reason"),
        Action("mark_unreachable", OrderStatus.CUSTOMER_UNREACHABLE, "CUSTOMER_UNREACHABLE"),
        Action("mark_paid", OrderStatus.PAID, "ORDER_PAID", "paid_at"),
        Action("mark_shipped", OrderStatus.DELIVERING, "ORDER_SHIPPED", "shipped_at"),
        Action("mark_completed", OrderStatus.COMPLETED, "ORDER_COMPLETED", "completed_at"),
    )
}


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def allowed_sources(target: str) -> List[str]:
    """Statuses from which ``target`` can be reached in one step."""
    return [status for status in OrderStatus.ALL if target in TRANSITIONS[status]]


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def initial_status(payment_method: str) -> str:
    """COD orders wait for review; prepaid orders start out paid."""
    return OrderStatus.PENDING_REVIEW if payment_method == "COD" else OrderStatus.PAID


def has_reached_approved(status: str) -> bool:
    """True for statuses only reachable through approval that still await payment."""
    return status in (
        OrderStatus.APPROVED,
        OrderStatus.CONFIRMATION_SENT,
        OrderStatus.CUSTOMER_CONFIRMED,
    )
