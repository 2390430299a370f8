import pytest
from sqlalchemy import func, select

from app.crud import invoice as invoice_crud
from app.db.models.invoice import Invoice
from app.db.models.order_event import OrderEvent
from app.services.invoices.rules import InvoiceRuleEngine, InvoiceStatus, invoice_code_for
from app.services.orders.order_service import OrderService
from app.services.orders.state_machine import OrderStatus

from conftest import FixedRiskEvaluator, order_input


@pytest.mark.parametrize("status,score,method,expected", [
    (OrderStatus.PAID, None, "MOMO", InvoiceStatus.PAID),
    (OrderStatus.DELIVERING, 55, "COD", InvoiceStatus.PAID),
    (OrderStatus.COMPLETED, 10, None, InvoiceStatus.PAID),
    (OrderStatus.APPROVED, 25, "COD", InvoiceStatus.PENDING),
    (OrderStatus.CONFIRMATION_SENT, 30, "COD", InvoiceStatus.PENDING),
    (OrderStatus.PENDING_REVIEW, 25, "COD", None),
    (OrderStatus.APPROVED, 55, "COD", None),
    (OrderStatus.CONFIRMATION_SENT, 55, "COD", None),
    (OrderStatus.CUSTOMER_CONFIRMED, 55, "COD", InvoiceStatus.PENDING),
    (OrderStatus.CUSTOMER_CONFIRMED, None, "COD", InvoiceStatus.PENDING),
    (OrderStatus.CUSTOMER_CANCELLED, 25, "COD", None),
    (OrderStatus.APPROVED, 25, "BANK_TRANSFER", None),
])
def test_required_state(status, score, method, expected):
    """Test the invoice projection for each rule"""
    assert InvoiceRuleEngine.required_state(status, score, method, low_risk_threshold=30) == expected


async def count(db, model, *conditions):
    result = await db.execute(select(func.count()).select_from(model).where(*conditions))
    return result.scalar_one()


@pytest.mark.asyncio
async def test_apply_twice_creates_one_paid_invoice_and_one_event(db, user_id):
    """Test idempotence of the Paid rule on an unchanged snapshot"""
    order = await OrderService.insert_new_order(
        db, user_id, order_input("PAY-1", payment_method="MOMO").model_dump()
    )

    first = await InvoiceRuleEngine.apply(db, order)
    second = await InvoiceRuleEngine.apply(db, order)

    assert first.id == second.id
    assert second.status == InvoiceStatus.PAID
    assert second.paid_at is not None
    assert await count(db, Invoice, Invoice.order_id == order.id) == 1
    assert await count(
        db, OrderEvent, OrderEvent.order_id == order.id, OrderEvent.event_type == "INVOICE_PAID"
    ) == 1


@pytest.mark.asyncio
async def test_pending_invoice_is_left_alone_by_pending_rules(db, user_id):
    order = await OrderService.create_order(
        db, user_id, order_input("LOW-1"), risk_evaluator=FixedRiskEvaluator(25)
    )
    await OrderService.approve_order(db, user_id, order.id)
    result = await OrderService.send_confirmation(db, user_id, order.id)

    invoice = await InvoiceRuleEngine.apply(db, result.order)

    assert invoice.status == InvoiceStatus.PENDING
    assert await count(db, Invoice, Invoice.order_id == order.id) == 1


@pytest.mark.asyncio
async def test_pending_invoice_becomes_paid(db, user_id):
    """Test the Pending to Paid move when the order is paid"""
    order = await OrderService.create_order(
        db, user_id, order_input("LOW-2"), risk_evaluator=FixedRiskEvaluator(25)
    )
    approved = await OrderService.approve_order(db, user_id, order.id)
    pending_id = approved.invoice.id
    await OrderService.send_confirmation(db, user_id, order.id)
    await OrderService.confirm_order(db, user_id, order.id)

    paid = await OrderService.mark_paid(db, user_id, order.id)

    assert paid.invoice.id == pending_id
    assert paid.invoice.status == InvoiceStatus.PAID
    assert paid.invoice.paid_at is not None


def test_invoice_code_falls_back_to_order_id():
    class Snapshot:
        order_code = ""
        id = "3fa85f64-5717-4562-b3fc-2c963f66afa6"

    assert invoice_code_for(Snapshot()) == "INV-3FA85F64"


@pytest.mark.asyncio
async def test_cancelled_invoice_is_not_reopened(db, user_id):
    """Test that neither Paid nor Pending rules touch a Cancelled invoice"""
    order = await OrderService.insert_new_order(
        db, user_id, order_input("CXL-1", payment_method="MOMO").model_dump()
    )
    invoice = await InvoiceRuleEngine.apply(db, order)
    invoice.status = InvoiceStatus.CANCELLED
    await db.commit()

    result = await InvoiceRuleEngine.apply(db, order)

    assert result.id == invoice.id
    assert result.status == InvoiceStatus.CANCELLED
    assert await count(db, Invoice, Invoice.order_id == order.id) == 1
    assert await count(
        db, OrderEvent, OrderEvent.order_id == order.id, OrderEvent.event_type == "INVOICE_PAID"
    ) == 1


@pytest.mark.asyncio
async def test_invoice_created_concurrently_is_reused(db, user_id, monkeypatch):
    """Test recovery when another run inserted the invoice between lookup and insert"""
    order = await OrderService.insert_new_order(
        db, user_id, order_input("RACE-1", payment_method="MOMO").model_dump()
    )
    winner = await InvoiceRuleEngine.apply(db, order)

    real_lookup = invoice_crud.get_invoice_for_order
    calls = []

    async def stale_lookup(session, order_id):
        calls.append(order_id)
        if len(calls) == 1:
            return None
        return await real_lookup(session, order_id)

    monkeypatch.setattr(invoice_crud, "get_invoice_for_order", stale_lookup)

    result = await InvoiceRuleEngine.apply(db, order)

    assert len(calls) == 2
    assert result.id == winner.id
    assert result.status == InvoiceStatus.PAID
    assert order.order_code == "RACE-1"
    assert await count(db, Invoice, Invoice.order_id == order.id) == 1
    assert await count(
        db, OrderEvent, OrderEvent.order_id == order.id, OrderEvent.event_type == "INVOICE_PAID"
    ) == 1
