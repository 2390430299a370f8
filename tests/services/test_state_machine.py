import pytest

from app.services.orders.state_machine import (
    ACTIONS,
    TERMINAL_STATUSES,
    OrderStatus,
    allowed_sources,
    can_transition,
    has_reached_approved,
    initial_status,
    is_terminal,
)


@pytest.mark.parametrize("current,target", [
    (OrderStatus.PENDING_REVIEW, OrderStatus.APPROVED),
    (OrderStatus.PENDING_REVIEW, OrderStatus.VERIFICATION_REQUIRED),
    (OrderStatus.VERIFICATION_REQUIRED, OrderStatus.CONFIRMATION_SENT),
    (OrderStatus.VERIFICATION_REQUIRED, OrderStatus.CUSTOMER_UNREACHABLE),
    (OrderStatus.APPROVED, OrderStatus.CONFIRMATION_SENT),
    (OrderStatus.CONFIRMATION_SENT, OrderStatus.CUSTOMER_CANCELLED),
    (OrderStatus.CUSTOMER_CONFIRMED, OrderStatus.PAID),
    (OrderStatus.PAID, OrderStatus.DELIVERING),
    (OrderStatus.DELIVERING, OrderStatus.COMPLETED),
])
def test_allowed_transitions(current, target):
    assert can_transition(current, target)


@pytest.mark.parametrize("current,target", [
    (OrderStatus.PENDING_REVIEW, OrderStatus.PAID),
    (OrderStatus.APPROVED, OrderStatus.REJECTED),
    (OrderStatus.DELIVERING, OrderStatus.CUSTOMER_CANCELLED),
    (OrderStatus.COMPLETED, OrderStatus.CUSTOMER_CANCELLED),
    (OrderStatus.APPROVED, OrderStatus.APPROVED),
])
def test_forbidden_transitions(current, target):
    assert not can_transition(current, target)


def test_terminal_statuses():
    assert TERMINAL_STATUSES == {
        OrderStatus.REJECTED,
        OrderStatus.CUSTOMER_CANCELLED,
        OrderStatus.COMPLETED,
        OrderStatus.CUSTOMER_UNREACHABLE,
    }
    assert is_terminal(OrderStatus.COMPLETED)
    assert not is_terminal(OrderStatus.DELIVERING)


def test_approve_and_reject_sources():
    """Test that approval and rejection are only reachable from review states"""
    assert set(allowed_sources(OrderStatus.APPROVED)) == {
        OrderStatus.PENDING_REVIEW, OrderStatus.VERIFICATION_REQUIRED,
    }
    assert set(allowed_sources(OrderStatus.REJECTED)) == {
        OrderStatus.PENDING_REVIEW, OrderStatus.VERIFICATION_REQUIRED,
    }
    assert ACTIONS["approve"].at_most_once
    assert not ACTIONS["mark_paid"].at_most_once


def test_initial_status_depends_on_payment_method():
    assert initial_status("COD") == OrderStatus.PENDING_REVIEW
    assert initial_status("MOMO") == OrderStatus.PAID


def test_has_reached_approved():
    assert has_reached_approved(OrderStatus.CONFIRMATION_SENT)
    assert not has_reached_approved(OrderStatus.VERIFICATION_REQUIRED)
    assert not has_reached_approved(OrderStatus.PAID)
