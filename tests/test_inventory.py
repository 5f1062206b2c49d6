from __future__ import annotations

import pytest

from lodging.domain.errors import (
    ConfigError,
    CrossScopeMismatchError,
    DuplicateAssignmentError,
    DuplicateResourceError,
    EmptyRoomConfigError,
    EventNotFoundError,
    HotelNotFoundError,
    InsufficientRoomSupplyError,
)
from lodging.domain.models import EventStatus, HotelCategory, InventoryStatus, RoomType


def test_create_hotel_dispatches_counter_refresh(stack) -> None:
    event = stack.event()
    stack.hotel(event.event_id, "Atlas", 10)
    stack.hotel(event.event_id, "Oasis", 5, HotelCategory.VIP)

    refreshed = stack.inventory.get_event(event.event_id)
    assert refreshed.total_hotels == 2
    assert [h.name for h in stack.inventory.list_hotels(event.event_id)] == ["Atlas", "Oasis"]


def test_duplicate_event_and_hotel_names_rejected(stack) -> None:
    event = stack.event()
    stack.hotel(event.event_id, "Atlas", 10)

    with pytest.raises(DuplicateResourceError):
        stack.event()
    with pytest.raises(DuplicateResourceError):
        stack.hotel(event.event_id, "Atlas", 3)


def test_unknown_event_or_hotel(stack) -> None:
    with pytest.raises(EventNotFoundError):
        stack.hotel(999, "Ghost", 1)
    with pytest.raises(HotelNotFoundError):
        stack.inventory.get_hotel(999)


def test_negative_capacity_rejected(stack) -> None:
    event = stack.event()
    with pytest.raises(ConfigError):
        stack.hotel(event.event_id, "Broken", -1)


def test_update_event_patches_only_given_fields(stack) -> None:
    event = stack.event(start_date="2026-05-01", end_date="2026-05-04", max_participants=50)

    updated = stack.inventory.update_event(
        event.event_id, allow_mixed_groups=True, max_participants=80
    )

    assert updated.allow_mixed_groups is True
    assert updated.max_participants == 80
    assert updated.name == "Summit"
    assert updated.start_date == "2026-05-01"
    assert updated.status == EventStatus.PLANNING

    lifted = stack.inventory.update_event(event.event_id, max_participants=0)
    assert lifted.max_participants is None

    with pytest.raises(ConfigError):
        stack.inventory.update_event(event.event_id, end_date="2026-04-01")
    with pytest.raises(EventNotFoundError):
        stack.inventory.update_event(999, name="Ghost")


def test_update_event_name_stays_unique(stack) -> None:
    stack.event()
    other = stack.event(name="Expo")

    with pytest.raises(DuplicateResourceError):
        stack.inventory.update_event(other.event_id, name="Summit")
    assert stack.inventory.get_event(other.event_id).name == "Expo"


def test_set_event_status(stack) -> None:
    event = stack.event()

    active = stack.inventory.set_event_status(event.event_id, EventStatus.ACTIVE)
    assert active.status == EventStatus.ACTIVE
    finished = stack.inventory.set_event_status(event.event_id, "Finished")
    assert finished.status == EventStatus.FINISHED
    with pytest.raises(ConfigError):
        stack.inventory.set_event_status(event.event_id, "Postponed")


def test_create_event_hotel_assignment_computes_totals(stack) -> None:
    event = stack.event()
    hotel = stack.hotel(event.event_id, "Atlas", 20)

    assignment = stack.inventory.create_event_hotel_assignment(
        event.event_id,
        hotel.hotel_id,
        [{"bed_count": 2, "quantity": 5}, {"bed_count": 3, "quantity": 2}],
    )

    assert assignment.total_capacity == 16
    assert assignment.total_assigned == 0
    assert assignment.status == InventoryStatus.ACTIVE


def test_event_hotel_assignment_validation(stack) -> None:
    event = stack.event()
    other = stack.event(name="Other")
    hotel = stack.hotel(event.event_id, "Atlas", 20)

    with pytest.raises(EmptyRoomConfigError):
        stack.inventory.create_event_hotel_assignment(event.event_id, hotel.hotel_id, [])
    with pytest.raises(CrossScopeMismatchError):
        stack.inventory.create_event_hotel_assignment(
            other.event_id, hotel.hotel_id, [{"bed_count": 2, "quantity": 1}]
        )

    stack.inventory.create_event_hotel_assignment(
        event.event_id, hotel.hotel_id, [{"bed_count": 2, "quantity": 1}]
    )
    with pytest.raises(DuplicateAssignmentError):
        stack.inventory.create_event_hotel_assignment(
            event.event_id, hotel.hotel_id, [{"bed_count": 2, "quantity": 1}]
        )


def test_reserve_rooms_is_all_or_nothing(stack) -> None:
    event = stack.event()
    hotel = stack.hotel(event.event_id, "Atlas", 20)
    assignment = stack.inventory.create_event_hotel_assignment(
        event.event_id, hotel.hotel_id, [{"bed_count": 2, "quantity": 3}]
    )

    reserved = stack.inventory.reserve_rooms_of_type(assignment.assignment_id, 2, 2)
    assert reserved.available_rooms[0].assigned_rooms == 2
    assert reserved.total_assigned == 4

    with pytest.raises(InsufficientRoomSupplyError):
        stack.inventory.reserve_rooms_of_type(assignment.assignment_id, 2, 2)
    unchanged = stack.inventory.get_event_hotel_assignment(assignment.assignment_id)
    assert unchanged.available_rooms[0].assigned_rooms == 2

    with pytest.raises(ConfigError):
        stack.inventory.reserve_rooms_of_type(assignment.assignment_id, 4, 1)

    full = stack.inventory.reserve_rooms_of_type(assignment.assignment_id, 2, 1)
    assert full.status == InventoryStatus.FULL

    released = stack.inventory.release_rooms_of_type(assignment.assignment_id, 2, 5)
    assert released.available_rooms[0].assigned_rooms == 0


def test_suspend_and_summarize(stack) -> None:
    event = stack.event()
    first = stack.hotel(event.event_id, "Atlas", 20)
    second = stack.hotel(event.event_id, "Oasis", 20)
    a1 = stack.inventory.create_event_hotel_assignment(
        event.event_id, first.hotel_id, [{"bed_count": 2, "quantity": 2}]
    )
    stack.inventory.create_event_hotel_assignment(
        event.event_id, second.hotel_id, [{"bed_count": 4, "quantity": 1}]
    )
    stack.inventory.reserve_rooms_of_type(a1.assignment_id, 2, 1)

    suspended = stack.inventory.update_event_hotel_assignment(a1.assignment_id, suspended=True)
    assert suspended.status == InventoryStatus.SUSPENDED
    with pytest.raises(ConfigError):
        stack.inventory.reserve_rooms_of_type(a1.assignment_id, 2, 1)

    summary = stack.inventory.summarize_event_hotel_assignments(event.event_id)
    assert summary["total_capacity"] == 8
    assert summary["total_assigned"] == 2
    assert summary["occupancy_rate"] == 25.0


def test_logical_rooms_and_real_numbers(stack) -> None:
    event = stack.event()
    hotel = stack.hotel(event.event_id, "Atlas", 20)
    first = stack.inventory.create_logical_room(hotel.hotel_id, RoomType.GROUP_MALE, 4)
    second = stack.inventory.create_logical_room(hotel.hotel_id, RoomType.VIP, 2)

    assert first.label == "room_1"
    assert second.label == "room_2"
    assert first.max_capacity == 4
    assert [r.room_id for r in stack.inventory.available_rooms_by_type(hotel.hotel_id, RoomType.VIP)] == [
        second.room_id
    ]

    bound = stack.inventory.set_real_room_number(first.room_id, "101")
    assert bound.real_room_number == "101"
    with pytest.raises(DuplicateResourceError):
        stack.inventory.set_real_room_number(second.room_id, "101")


def test_lowering_capacity_below_occupancy_is_allowed(stack) -> None:
    event = stack.event()
    hotel = stack.hotel(event.event_id, "Atlas", 2)
    for name in ("A", "B"):
        client = stack.client(event.event_id, name)
        stack.engine.manual_assign(client.client_id, hotel.hotel_id, event.event_id)

    updated = stack.inventory.update_hotel(hotel.hotel_id, total_capacity=1)

    assert updated.total_capacity == 1
    assert updated.occupancy == 2
