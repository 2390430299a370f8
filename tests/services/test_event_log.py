import uuid
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from app.services.events.event_log import EventLog, EventType, clean_payload


def test_clean_payload_drops_empty_values_and_adds_source():
    payload = clean_payload(
        {"reason": None, "note": "", "from": "Pending Review", "amount": Decimal("120000"), "count": 0},
        "import",
    )

    assert payload == {"from": "Pending Review", "amount": "120000", "count": 0, "source": "import"}


def test_clean_payload_serializes_datetimes_and_ids():
    order_id = uuid.UUID("3fa85f64-5717-4562-b3fc-2c963f66afa6")
    moment = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    payload = clean_payload({"order_id": order_id, "at": moment}, "system")

    assert payload["order_id"] == "3fa85f64-5717-4562-b3fc-2c963f66afa6"
    assert payload["at"].startswith("2026-01-02T03:04:05")


def test_clean_payload_accepts_none():
    assert clean_payload(None, "manual") == {"source": "manual"}


@pytest.mark.asyncio
async def test_events_are_listed_in_insertion_order(db):
    order_id = uuid.uuid4()
    other_order = uuid.uuid4()

    await EventLog.append(db, order_id, EventType.ORDER_CREATED, {"order_code": "EV-1"}, "manual")
    await EventLog.append(db, other_order, EventType.ORDER_CREATED, {"order_code": "EV-2"}, "manual")
    await EventLog.append(db, order_id, EventType.ORDER_APPROVED, {"reason": None}, "manual")

    events = await EventLog.list_for_order(db, order_id)

    assert [event.event_type for event in events] == ["ORDER_CREATED", "ORDER_APPROVED"]
    assert events[1].payload == {"source": "manual"}
    assert events[0].id < events[1].id


@pytest.mark.asyncio
async def test_events_need_no_existing_order(db):
    """Events outlive their order, so no foreign key is enforced"""
    event = await EventLog.append(db, uuid.uuid4(), EventType.ORDER_UPDATED, {"phone": {"from": "1", "to": "2"}})

    assert event.id is not None
    assert event.payload["source"] == "system"
