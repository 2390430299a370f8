from decimal import Decimal

import pytest
from pydantic import ValidationError
from sqlalchemy import func, select

from app.crud import invoice as invoice_crud
from app.db.models.invoice import Invoice
from app.db.models.order_event import OrderEvent
from app.schemas.order import OrderUpdate
from app.services.events.event_log import EventLog
from app.services.exceptions import DuplicateOrderCodeError, InvalidTransitionError, OrderNotFoundError
from app.services.invoices.rules import InvoiceStatus
from app.services.orders.order_service import OrderService
from app.services.orders.state_machine import OrderStatus

from conftest import FixedRiskEvaluator, order_input


async def event_types(db, order_id):
    return [event.event_type for event in await EventLog.list_for_order(db, order_id)]


@pytest.mark.asyncio
async def test_create_cod_order_is_scored_and_pending_review(db, user_id):
    evaluator = FixedRiskEvaluator(55)

    order = await OrderService.create_order(db, user_id, order_input("COD-1"), risk_evaluator=evaluator)

    assert order.status == OrderStatus.PENDING_REVIEW
    assert order.risk_score == 55
    assert order.risk_level == "medium"
    assert order.paid_at is None
    assert len(evaluator.calls) == 1
    assert evaluator.calls[0].phone == "0901000001"
    assert await event_types(db, order.id) == ["ORDER_CREATED"]


@pytest.mark.asyncio
@pytest.mark.parametrize("spelling", ["cod", " Cash on delivery ", ""])
async def test_cod_spellings_are_scored_like_cod(db, user_id, spelling):
    evaluator = FixedRiskEvaluator(25)

    order = await OrderService.create_order(
        db, user_id, order_input("COD-2", payment_method=spelling), risk_evaluator=evaluator
    )

    assert order.payment_method == "COD"
    assert order.status == OrderStatus.PENDING_REVIEW
    assert order.risk_score == 25
    assert len(evaluator.calls) == 1
    assert await invoice_crud.get_invoice_for_order(db, order.id) is None


def test_payment_method_spellings_map_to_codes():
    assert order_input(payment_method="Bank Transfer").payment_method == "BANK_TRANSFER"
    assert order_input(payment_method="zalo_pay").payment_method == "ZALO_PAY"
    assert order_input(payment_method="Chuyển khoản").payment_method == "BANK_TRANSFER"


def test_unknown_payment_method_is_rejected():
    with pytest.raises(ValidationError) as exc_info:
        order_input(payment_method="Bitcoin")

    assert "Unknown payment method 'Bitcoin'" in str(exc_info.value)


@pytest.mark.parametrize("amount", ["0", "-5000"])
def test_non_positive_amount_is_rejected(amount):
    with pytest.raises(ValidationError):
        order_input(amount=amount)
    with pytest.raises(ValidationError):
        OrderUpdate(amount=Decimal(amount))


@pytest.mark.asyncio
async def test_create_prepaid_order_is_paid_without_scoring(db, user_id):
    """Test that prepaid orders skip risk and get a Paid invoice"""
    evaluator = FixedRiskEvaluator(90)

    order = await OrderService.create_order(
        db, user_id, order_input("PRE-1", payment_method="BANK_TRANSFER"), risk_evaluator=evaluator
    )
    invoice = await invoice_crud.get_invoice_for_order(db, order.id)

    assert evaluator.calls == []
    assert order.status == OrderStatus.PAID
    assert order.paid_at is not None
    assert order.risk_score is None
    assert order.risk_level == "none"
    assert invoice.status == InvoiceStatus.PAID
    assert invoice.invoice_code == "INV-PRE-1"
    assert await event_types(db, order.id) == ["INVOICE_PAID", "ORDER_CREATED"]


@pytest.mark.asyncio
async def test_create_rejects_duplicate_code(db, user_id):
    await OrderService.create_order(db, user_id, order_input("DUP-1"), risk_evaluator=FixedRiskEvaluator())

    with pytest.raises(DuplicateOrderCodeError):
        await OrderService.create_order(db, user_id, order_input("DUP-1"), risk_evaluator=FixedRiskEvaluator())


@pytest.mark.asyncio
async def test_same_code_allowed_for_another_user(db, user_id):
    import uuid
    other_user = uuid.uuid4()

    await OrderService.create_order(db, user_id, order_input("SHARED"), risk_evaluator=FixedRiskEvaluator())
    order = await OrderService.create_order(db, other_user, order_input("SHARED"), risk_evaluator=FixedRiskEvaluator())

    assert order.user_id == other_user


@pytest.mark.asyncio
async def test_approving_twice_changes_status_once(db, user_id):
    """Test the at-most-once approval guard"""
    order = await OrderService.create_order(db, user_id, order_input("APP-1"), risk_evaluator=FixedRiskEvaluator(25))

    first = await OrderService.approve_order(db, user_id, order.id)
    second = await OrderService.approve_order(db, user_id, order.id)

    assert first.applied is True
    assert first.order.status == OrderStatus.APPROVED
    assert first.order.approved_at is not None
    assert first.metadata["confirmation_flow"] == "payment_link"
    assert second.applied is False
    assert "already" in second.message
    assert (await event_types(db, order.id)).count("ORDER_APPROVED") == 1


@pytest.mark.asyncio
async def test_approval_after_rejection_is_a_no_op(db, user_id):
    order = await OrderService.create_order(db, user_id, order_input("REJ-1"), risk_evaluator=FixedRiskEvaluator())
    rejected = await OrderService.reject_order(db, user_id, order.id, reason="Fake address")

    result = await OrderService.approve_order(db, user_id, order.id)

    assert rejected.order.reject_reason == "Fake address"
    assert result.applied is False
    assert result.order.status == OrderStatus.REJECTED


@pytest.mark.asyncio
async def test_medium_risk_approval_asks_for_manual_confirmation(db, user_id):
    order = await OrderService.create_order(db, user_id, order_input("MED-1"), risk_evaluator=FixedRiskEvaluator(55))

    result = await OrderService.approve_order(db, user_id, order.id)

    assert result.metadata["confirmation_flow"] == "manual_confirmation"
    assert result.invoice is None


@pytest.mark.asyncio
async def test_low_risk_gets_pending_invoice_on_approval(db, user_id):
    """Score 25 reaching Order Approved has a Pending invoice right away"""
    order = await OrderService.create_order(db, user_id, order_input("R25"), risk_evaluator=FixedRiskEvaluator(25))

    result = await OrderService.approve_order(db, user_id, order.id)

    assert result.invoice is not None
    assert result.invoice.status == InvoiceStatus.PENDING
    assert result.invoice.amount == Decimal("250000")


@pytest.mark.asyncio
async def test_medium_risk_waits_for_customer_confirmation(db, user_id):
    """Score 55 gets no invoice until Customer Confirmed"""
    order = await OrderService.create_order(db, user_id, order_input("R55"), risk_evaluator=FixedRiskEvaluator(55))

    await OrderService.approve_order(db, user_id, order.id)
    sent = await OrderService.send_confirmation(db, user_id, order.id)
    assert sent.invoice is None
    assert await invoice_crud.get_invoice_for_order(db, order.id) is None

    confirmed = await OrderService.confirm_order(db, user_id, order.id)

    assert confirmed.order.customer_confirmed_at is not None
    assert confirmed.invoice.status == InvoiceStatus.PENDING


@pytest.mark.asyncio
async def test_full_lifecycle_records_one_event_per_transition(db, user_id):
    order = await OrderService.create_order(db, user_id, order_input("LIFE-1"), risk_evaluator=FixedRiskEvaluator(55))

    await OrderService.flag_verification(db, user_id, order.id, reason="Address unclear")
    await OrderService.approve_order(db, user_id, order.id)
    await OrderService.send_confirmation(db, user_id, order.id)
    await OrderService.confirm_order(db, user_id, order.id)
    await OrderService.mark_paid(db, user_id, order.id)
    await OrderService.mark_shipped(db, user_id, order.id)
    done = await OrderService.mark_completed(db, user_id, order.id)

    assert done.order.status == OrderStatus.COMPLETED
    assert done.order.completed_at is not None
    assert done.order.cancelled_at is None
    assert await event_types(db, order.id) == [
        "ORDER_CREATED",
        "VERIFICATION_REQUIRED",
        "ORDER_APPROVED",
        "CONFIRMATION_SENT",
        "CUSTOMER_CONFIRMED",
        "INVOICE_PAID",
        "ORDER_PAID",
        "ORDER_SHIPPED",
        "ORDER_COMPLETED",
    ]


@pytest.mark.asyncio
async def test_illegal_action_raises(db, user_id):
    order = await OrderService.create_order(db, user_id, order_input("BAD-1"), risk_evaluator=FixedRiskEvaluator())

    with pytest.raises(InvalidTransitionError) as exc_info:
        await OrderService.mark_shipped(db, user_id, order.id)

    assert exc_info.value.current_status == OrderStatus.PENDING_REVIEW
    assert exc_info.value.target_status == OrderStatus.DELIVERING


@pytest.mark.asyncio
async def test_repeating_an_action_is_a_no_op(db, user_id):
    order = await OrderService.create_order(db, user_id, order_input("REP-1"), risk_evaluator=FixedRiskEvaluator())
    await OrderService.approve_order(db, user_id, order.id)
    await OrderService.send_confirmation(db, user_id, order.id)

    again = await OrderService.send_confirmation(db, user_id, order.id)

    assert again.applied is False
    assert (await event_types(db, order.id)).count("CONFIRMATION_SENT") == 1


@pytest.mark.asyncio
async def test_cancelled_order_cannot_complete(db, user_id):
    order = await OrderService.create_order(db, user_id, order_input("CAN-1"), risk_evaluator=FixedRiskEvaluator())
    await OrderService.approve_order(db, user_id, order.id)
    await OrderService.send_confirmation(db, user_id, order.id)
    cancelled = await OrderService.cancel_order(db, user_id, order.id, reason="Changed mind")

    with pytest.raises(InvalidTransitionError):
        await OrderService.mark_completed(db, user_id, order.id)

    assert cancelled.order.cancel_reason == "Changed mind"
    assert cancelled.order.cancelled_at is not None


@pytest.mark.asyncio
async def test_unknown_order_raises_not_found(db, user_id):
    import uuid

    with pytest.raises(OrderNotFoundError):
        await OrderService.approve_order(db, user_id, uuid.uuid4())


@pytest.mark.asyncio
async def test_orders_are_scoped_to_their_owner(db, user_id):
    import uuid
    order = await OrderService.create_order(db, user_id, order_input("OWN-1"), risk_evaluator=FixedRiskEvaluator())

    with pytest.raises(OrderNotFoundError):
        await OrderService.approve_order(db, uuid.uuid4(), order.id)


@pytest.mark.asyncio
async def test_reconcile_creates_missing_invoice(db, user_id):
    """Test that an interrupted rule run can be re-driven"""
    order = await OrderService.create_order(db, user_id, order_input("REC-1"), risk_evaluator=FixedRiskEvaluator(25))
    await OrderService.approve_order(db, user_id, order.id)
    await invoice_crud.delete_invoices_for_orders(db, [order.id])
    await db.commit()

    invoice = await OrderService.reconcile_order(db, user_id, order.id)

    assert invoice.status == InvoiceStatus.PENDING


@pytest.mark.asyncio
async def test_update_details_records_diff(db, user_id):
    order = await OrderService.create_order(db, user_id, order_input("UPD-1"), risk_evaluator=FixedRiskEvaluator())

    updated = await OrderService.update_order_details(
        db, user_id, order.id, OrderUpdate(customer_name="Tran Thi B", amount=Decimal("300000"))
    )
    events = await EventLog.list_for_order(db, order.id)

    assert updated.customer_name == "Tran Thi B"
    assert updated.amount == Decimal("300000")
    assert events[-1].event_type == "ORDER_UPDATED"
    assert events[-1].payload["customer_name"] == {"from": "Nguyen Van A", "to": "Tran Thi B"}
    assert set(events[-1].payload) == {"customer_name", "amount", "source"}


@pytest.mark.asyncio
async def test_update_without_changes_records_nothing(db, user_id):
    order = await OrderService.create_order(db, user_id, order_input("UPD-2"), risk_evaluator=FixedRiskEvaluator())

    await OrderService.update_order_details(db, user_id, order.id, OrderUpdate(customer_name="Nguyen Van A"))

    assert await event_types(db, order.id) == ["ORDER_CREATED"]


@pytest.mark.asyncio
async def test_delete_removes_invoices_and_keeps_events(db, user_id):
    order = await OrderService.create_order(
        db, user_id, order_input("DEL-1", payment_method="MOMO"), risk_evaluator=FixedRiskEvaluator()
    )

    deleted = await OrderService.delete_orders(db, user_id, [order.id])

    invoices = await db.execute(select(func.count()).select_from(Invoice).where(Invoice.order_id == order.id))
    events = await db.execute(select(func.count()).select_from(OrderEvent).where(OrderEvent.order_id == order.id))
    assert deleted == 1
    assert invoices.scalar_one() == 0
    assert events.scalar_one() == 2
    with pytest.raises(OrderNotFoundError):
        await OrderService.get_order(db, user_id, order.id)


@pytest.mark.asyncio
async def test_list_orders_filters_and_paginates(db, user_id):
    for index in range(5):
        await OrderService.create_order(
            db, user_id, order_input(f"LIST-{index}", customer_name=f"Customer {index}"),
            risk_evaluator=FixedRiskEvaluator(25),
        )
    await OrderService.create_order(
        db, user_id, order_input("LIST-MOMO", payment_method="MOMO"), risk_evaluator=FixedRiskEvaluator()
    )

    page, total = await OrderService.list_orders(db, user_id, payment_method="COD", offset=0, limit=2)
    searched, search_total = await OrderService.list_orders(db, user_id, search="customer 3")
    paid, paid_total = await OrderService.list_orders(db, user_id, status=OrderStatus.PAID)

    assert total == 5
    assert len(page) == 2
    assert search_total == 1
    assert searched[0].order_code == "LIST-3"
    assert paid_total == 1
    assert paid[0].order_code == "LIST-MOMO"


@pytest.mark.asyncio
async def test_filter_options(db, user_id):
    await OrderService.create_order(db, user_id, order_input("F-1"), risk_evaluator=FixedRiskEvaluator(25))
    await OrderService.create_order(
        db, user_id, order_input("F-2", payment_method="ZALO_PAY"), risk_evaluator=FixedRiskEvaluator()
    )

    options = await OrderService.list_filter_options(db, user_id)

    assert options.statuses == [OrderStatus.PENDING_REVIEW, OrderStatus.PAID]
    assert options.payment_methods == ["COD", "ZALO_PAY"]
    assert options.risk_levels == ["low", "none"]
