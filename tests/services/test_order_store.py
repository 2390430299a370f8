import pytest

from app.services.orders.store import OrderStore


def make_store():
    return OrderStore([
        {"id": "a", "status": "Pending Review", "amount": 100},
        {"id": "b", "status": "Order Approved", "amount": 200},
        {"id": "c", "status": "Completed", "amount": 300},
    ])


def test_load_keeps_order():
    store = make_store()

    assert [row["id"] for row in store.items()] == ["a", "b", "c"]
    assert len(store) == 3
    assert "b" in store
    assert "z" not in store


def test_patch_then_rollback_restores_previous_row():
    store = make_store()

    store.apply_patch("a", {"status": "Order Approved"})
    store.apply_patch("a", {"amount": 150})
    restored = store.rollback("a")

    assert restored == {"id": "a", "status": "Pending Review", "amount": 100}
    assert store.get("a") == restored


def test_reconcile_replaces_optimistic_row():
    store = make_store()
    store.apply_patch("b", {"status": "Order Confirmation Sent"})

    store.reconcile("b", {"id": "b", "status": "Order Confirmation Sent", "amount": 200, "confirmation_sent_at": "now"})

    assert store.get("b")["confirmation_sent_at"] == "now"
    # Nothing left to roll back
    assert store.rollback("b")["status"] == "Order Confirmation Sent"


def test_patch_unknown_order_raises():
    store = make_store()

    with pytest.raises(KeyError):
        store.apply_patch("z", {"status": "Completed"})


def test_remote_change_patches_in_place():
    store = make_store()

    assert store.apply_remote_change({"id": "c", "amount": 350}) is True
    assert store.apply_remote_change({"id": "z", "amount": 1}) is False
    assert [row["id"] for row in store.items()] == ["a", "b", "c"]
    assert store.get("c") == {"id": "c", "status": "Completed", "amount": 350}


def test_returned_rows_are_copies():
    store = make_store()

    row = store.get("a")
    row["status"] = "Changed"

    assert store.get("a")["status"] == "Pending Review"


@pytest.mark.asyncio
async def test_mutate_reconciles_with_server_result():
    store = make_store()

    async def send():
        assert store.get("a")["status"] == "Order Approved"
        return {"id": "a", "status": "Order Approved", "amount": 100, "approved_at": "now"}

    result = await store.mutate("a", {"status": "Order Approved"}, send)

    assert result["approved_at"] == "now"
    assert store.get("a") == result


@pytest.mark.asyncio
async def test_mutate_rolls_back_on_failure():
    store = make_store()

    async def send():
        raise RuntimeError("server said no")

    with pytest.raises(RuntimeError):
        await store.mutate("b", {"status": "Order Confirmation Sent"}, send)

    assert store.get("b")["status"] == "Order Approved"
