from __future__ import annotations

import pytest

from lodging.domain.errors import EventNotFoundError
from lodging.domain.models import ClientType, Gender, HotelCategory, RoomType


def test_empty_event_has_zero_rates(stack) -> None:
    event = stack.event()
    stack.hotel(event.event_id, "Closed", 0)

    stats = stack.stats.event_stats(event.event_id)

    assert stats["total_clients"] == 0
    assert stats["total_capacity"] == 0
    assert stats["occupancy_rate"] == 0.0
    assert stats["hotels"][0]["occupancy_rate"] == 0.0
    assert stats["rooms"] == {"total": 0, "empty": 0, "full": 0, "occupied": 0}
    assert stats["clients_by_type"] == {t.value: 0 for t in ClientType}


def test_event_stats_breakdowns(stack) -> None:
    event = stack.event()
    atlas = stack.hotel(event.event_id, "Atlas", 4)
    stack.hotel(event.event_id, "Palace", 4, HotelCategory.VIP)
    room = stack.inventory.create_logical_room(atlas.hotel_id, RoomType.GROUP_MALE, 2)
    stack.inventory.create_logical_room(atlas.hotel_id, RoomType.VIP, 1)
    bob = stack.client(event.event_id, "Bob")
    stack.client(event.event_id, "Alice", Gender.FEMALE, ClientType.VIP)
    stack.engine.manual_assign(
        bob.client_id, atlas.hotel_id, event.event_id, room_preference=room.room_id
    )

    stats = stack.stats.event_stats(event.event_id)

    assert stats["assigned_clients"] == 1
    assert stats["unassigned_clients"] == 1
    assert stats["clients_by_gender"] == {"Male": 1, "Female": 1, "Other": 0}
    assert stats["clients_by_status"]["Assigned"] == 1
    assert stats["clients_by_status"]["Pending"] == 1
    assert stats["assignment_by_type"]["VIP"] == {"assigned": 0, "unassigned": 1}
    assert stats["assignment_by_type"]["Standard"] == {"assigned": 1, "unassigned": 0}
    assert stats["hotels_by_category"] == {"VIP": 1, "Standard": 1}
    assert stats["total_capacity"] == 8
    assert stats["occupancy_rate"] == 12.5
    atlas_row = next(h for h in stats["hotels"] if h["name"] == "Atlas")
    assert atlas_row["available"] == 3
    assert atlas_row["occupancy_rate"] == 25.0
    assert stats["rooms"] == {"total": 2, "empty": 1, "full": 0, "occupied": 1}


def test_group_report_rows(stack) -> None:
    event = stack.event()
    first = stack.hotel(event.event_id, "First", 5)
    second = stack.hotel(event.event_id, "Second", 5)
    adam = stack.client(event.event_id, "Adam", Gender.MALE, group_name="Team A")
    eve = stack.client(event.event_id, "Eve", Gender.FEMALE, ClientType.STAFF, group_name="Team A")
    stack.client(event.event_id, "Zed", Gender.MALE, group_name="Team Z")
    stack.client(event.event_id, "Solo")
    stack.engine.manual_assign(adam.client_id, first.hotel_id, event.event_id)
    stack.engine.manual_assign(eve.client_id, second.hotel_id, event.event_id)

    report = stack.stats.group_report(event.event_id)

    assert [row["group_name"] for row in report] == ["Team A", "Team Z"]
    team_a = report[0]
    assert team_a["size"] == 2
    assert team_a["genders"] == ["Male", "Female"]
    assert team_a["is_mixed"] is True
    assert team_a["has_priority"] is True
    assert team_a["assigned"] == 2
    assert team_a["hotel_ids"] == sorted([first.hotel_id, second.hotel_id])
    assert report[1]["unassigned"] == 1


def test_unknown_event(stack) -> None:
    with pytest.raises(EventNotFoundError):
        stack.stats.event_stats(999)
    with pytest.raises(EventNotFoundError):
        stack.stats.group_report(999)
