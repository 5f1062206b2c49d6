from __future__ import annotations

import pytest

from lodging.domain.errors import (
    CapacityExceededError,
    HotelFullError,
    IntegrityViolationError,
    RoomFullError,
)
from lodging.domain.models import AssignmentType, RoomType


def test_apply_delta_refuses_before_writing(stack) -> None:
    event = stack.event()
    hotel = stack.hotel(event.event_id, "Atlas", 2)
    clients = [stack.client(event.event_id, f"C{i}") for i in range(3)]
    ids = [c.client_id for c in clients]

    with pytest.raises(HotelFullError):
        with stack.repository.transaction() as conn:
            stack.ledger.apply_delta(conn, hotel.hotel_id, added=ids, full_error=HotelFullError)

    assert stack.repository.list_roster(hotel.hotel_id) == []


def test_apply_delta_counts_removals_first(stack) -> None:
    event = stack.event()
    hotel = stack.hotel(event.event_id, "Atlas", 1)
    first = stack.client(event.event_id, "First")
    second = stack.client(event.event_id, "Second")

    with stack.repository.transaction() as conn:
        stack.ledger.apply_delta(conn, hotel.hotel_id, added=[first.client_id])
    with stack.repository.transaction() as conn:
        entries = stack.ledger.apply_delta(
            conn,
            hotel.hotel_id,
            added=[second.client_id],
            removed=[first.client_id],
            assigned_by="desk-2",
            assignment_type=AssignmentType.BULK,
        )

    assert [e.client_id for e in entries] == [second.client_id]
    assert entries[0].assignment_type == AssignmentType.BULK
    roster = stack.repository.list_roster(hotel.hotel_id)
    assert [(e.client_id, e.assigned_by) for e in roster] == [(second.client_id, "desk-2")]


def test_net_zero_delta_allowed_in_overfull_hotel(stack) -> None:
    event = stack.event()
    hotel = stack.hotel(event.event_id, "Atlas", 2)
    first = stack.client(event.event_id, "First")
    second = stack.client(event.event_id, "Second")
    third = stack.client(event.event_id, "Third")
    with stack.repository.transaction() as conn:
        stack.ledger.apply_delta(conn, hotel.hotel_id, added=[first.client_id, second.client_id])
    stack.inventory.update_hotel(hotel.hotel_id, total_capacity=1)

    with stack.repository.transaction() as conn:
        stack.ledger.apply_delta(
            conn, hotel.hotel_id, added=[third.client_id], removed=[first.client_id]
        )
    roster = stack.repository.list_roster(hotel.hotel_id)
    assert [e.client_id for e in roster] == [second.client_id, third.client_id]

    with pytest.raises(CapacityExceededError):
        with stack.repository.transaction() as conn:
            stack.ledger.apply_delta(conn, hotel.hotel_id, added=[first.client_id])


def test_default_error_is_capacity_exceeded(stack) -> None:
    event = stack.event()
    hotel = stack.hotel(event.event_id, "Closed", 0)
    client = stack.client(event.event_id, "Bob")

    with pytest.raises(CapacityExceededError):
        with stack.repository.transaction() as conn:
            stack.ledger.apply_delta(conn, hotel.hotel_id, added=[client.client_id])
    assert not stack.ledger.can_accommodate(stack.inventory.get_hotel(hotel.hotel_id), 1)


def test_verify_invariant_flags_overfull_hotel(stack) -> None:
    event = stack.event()
    hotel = stack.hotel(event.event_id, "Atlas", 2)
    for name in ("A", "B"):
        client = stack.client(event.event_id, name)
        stack.engine.manual_assign(client.client_id, hotel.hotel_id, event.event_id)
    stack.ledger.verify_invariant([hotel.hotel_id])

    stack.inventory.update_hotel(hotel.hotel_id, total_capacity=1)

    with pytest.raises(IntegrityViolationError):
        stack.ledger.verify_invariant([hotel.hotel_id])


def test_next_free_beds_fills_gaps(stack) -> None:
    event = stack.event()
    hotel = stack.hotel(event.event_id, "Atlas", 10)
    room = stack.inventory.create_logical_room(hotel.hotel_id, RoomType.GROUP_MALE, 3)
    client = stack.client(event.event_id, "Bob")
    stack.engine.manual_assign(
        client.client_id, hotel.hotel_id, event.event_id, room_preference=room.room_id
    )
    room = stack.inventory.get_logical_room(room.room_id)

    with stack.repository.transaction() as conn:
        assert stack.ledger.next_free_beds(conn, room, 2) == [2, 3]
        assert stack.ledger.next_free_beds(conn, room, 1, taken={2}) == [3]
        with pytest.raises(RoomFullError):
            stack.ledger.next_free_beds(conn, room, 3)
    assert stack.ledger.room_available_beds(room) == 2
