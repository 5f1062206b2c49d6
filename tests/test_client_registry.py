from __future__ import annotations

import pytest

from lodging.domain.errors import (
    AlreadyAssignedError,
    ClientNotFoundError,
    ConfigError,
    DuplicateResourceError,
    EventNotFoundError,
    NotAssignedError,
)
from lodging.domain.models import ClientStatus, ClientType, Gender


def test_register_client_defaults(stack) -> None:
    event = stack.event()
    client = stack.client(event.event_id, "Alice", Gender.FEMALE, ClientType.VIP)

    assert client.status == ClientStatus.PENDING
    assert client.notes.startswith("[VIP] ")
    assert client.group_size == 1
    assert not client.is_assigned
    assert stack.inventory.get_event(event.event_id).current_participants == 1


def test_phone_unique_per_event(stack) -> None:
    event = stack.event()
    other = stack.event(name="Other")
    kwargs = dict(first_name="Bob", last_name="Test", phone="+1555", gender=Gender.MALE)

    stack.registry.register_client(event.event_id, **kwargs)
    stack.registry.register_client(other.event_id, **kwargs)
    with pytest.raises(DuplicateResourceError):
        stack.registry.register_client(event.event_id, **kwargs)


def test_group_size_limit_and_unknown_event(stack) -> None:
    event = stack.event()
    with pytest.raises(ConfigError):
        stack.registry.register_client(
            event.event_id,
            "Big",
            "Group",
            "+1999",
            Gender.MALE,
            group_name="Crowd",
            group_size=51,
        )
    with pytest.raises(EventNotFoundError):
        stack.registry.register_client(999, "No", "Event", "+1000", Gender.MALE)


def test_list_unassigned_insertion_and_priority_order(stack) -> None:
    event = stack.event()
    bob = stack.client(event.event_id, "Bob")
    team = stack.client(event.event_id, "Tess", Gender.FEMALE, group_name="Team A")
    alice = stack.client(event.event_id, "Alice", Gender.FEMALE, ClientType.VIP)

    plain = stack.registry.list_unassigned(event.event_id)
    ranked = stack.registry.list_unassigned(event.event_id, prioritized=True)

    assert [c.client_id for c in plain] == [bob.client_id, team.client_id, alice.client_id]
    assert [c.client_id for c in ranked] == [alice.client_id, team.client_id, bob.client_id]


def test_group_members_report(stack) -> None:
    event = stack.event()
    stack.client(event.event_id, "Sam", Gender.MALE, group_name="Team A")
    stack.client(event.event_id, "Sue", Gender.FEMALE, ClientType.INFLUENCER, group_name="Team A")
    stack.client(event.event_id, "Solo")

    report = stack.registry.group_members(event.event_id, "Team A")

    assert report.size == 2
    assert report.is_mixed
    assert report.has_priority
    assert report.genders == (Gender.MALE, Gender.FEMALE)
    assert [g.group_name for g in stack.registry.list_groups(event.event_id)] == ["Team A"]


def test_check_in_requires_assignment(stack) -> None:
    event = stack.event()
    hotel = stack.hotel(event.event_id, "Atlas", 5)
    client = stack.client(event.event_id, "Bob")

    with pytest.raises(NotAssignedError):
        stack.registry.mark_arrived(client.client_id)

    stack.engine.manual_assign(client.client_id, hotel.hotel_id, event.event_id)
    with pytest.raises(ConfigError):
        stack.registry.mark_departed(client.client_id)
    assert stack.registry.mark_arrived(client.client_id).status == ClientStatus.ARRIVED
    assert stack.registry.mark_departed(client.client_id).status == ClientStatus.DEPARTED


def test_arrival_records_deposit_and_first_check_in(stack) -> None:
    event = stack.event()
    hotel = stack.hotel(event.event_id, "Atlas", 5)
    client = stack.client(event.event_id, "Bob")
    stack.engine.manual_assign(client.client_id, hotel.hotel_id, event.event_id)

    arrived = stack.registry.mark_arrived(
        client.client_id, deposit_paid=True, deposit_amount=200.0, checked_in_by="desk-3"
    )

    assert arrived.status == ClientStatus.ARRIVED
    assert arrived.deposit_paid is True
    assert arrived.deposit_amount == 200.0
    assert arrived.checked_in_at is not None
    assert arrived.checked_in_by == "desk-3"

    again = stack.registry.mark_arrived(client.client_id, checked_in_by="desk-8")
    assert again.checked_in_at == arrived.checked_in_at
    assert again.checked_in_by == "desk-3"
    assert again.deposit_amount == 200.0

    with pytest.raises(ConfigError):
        stack.registry.mark_arrived(client.client_id, deposit_amount=-5)


def test_record_deposit_keeps_stay_status(stack) -> None:
    event = stack.event()
    client = stack.client(event.event_id, "Bob")

    unpaid = stack.registry.record_deposit(client.client_id, False, 50.0)
    assert unpaid.deposit_amount == 50.0
    assert unpaid.checked_in_at is None

    paid = stack.registry.record_deposit(client.client_id, True, recorded_by="desk-1")
    assert paid.deposit_paid is True
    assert paid.deposit_amount == 50.0
    assert paid.checked_in_by == "desk-1"
    assert paid.status == ClientStatus.PENDING
    with pytest.raises(ClientNotFoundError):
        stack.registry.record_deposit(999, True)


def test_update_client_profile(stack) -> None:
    event = stack.event()
    client = stack.client(event.event_id, "Bob", group_name="Team A")
    taken = stack.client(event.event_id, "Taken")

    updated = stack.registry.update_client(
        client.client_id, last_name="Amrani", client_type=ClientType.VIP, group_size=4
    )
    assert updated.full_name == "Bob Amrani"
    assert updated.notes.startswith("[VIP] ")
    assert updated.group_size == 4

    solo = stack.registry.update_client(client.client_id, group_name="")
    assert solo.group_name is None
    assert solo.group_size == 1

    with pytest.raises(DuplicateResourceError):
        stack.registry.update_client(client.client_id, phone=taken.phone)
    with pytest.raises(ConfigError):
        stack.registry.update_client(client.client_id, group_name="Team B", group_size=99)
    with pytest.raises(ClientNotFoundError):
        stack.registry.update_client(999, first_name="Ghost")


def test_update_client_freezes_gender_and_group_while_assigned(stack) -> None:
    event = stack.event()
    hotel = stack.hotel(event.event_id, "Atlas", 5)
    client = stack.client(event.event_id, "Sam", Gender.MALE, group_name="Team A")
    stack.engine.manual_assign(client.client_id, hotel.hotel_id, event.event_id)

    with pytest.raises(AlreadyAssignedError):
        stack.registry.update_client(client.client_id, gender=Gender.FEMALE)
    with pytest.raises(AlreadyAssignedError):
        stack.registry.update_client(client.client_id, group_name="Team B")

    renamed = stack.registry.update_client(
        client.client_id, gender=Gender.MALE, group_name="Team A", email="sam@example.com"
    )
    assert renamed.email == "sam@example.com"
    assert renamed.assigned_hotel_id == hotel.hotel_id

    stack.engine.unassign_client(client.client_id, event.event_id)
    moved = stack.registry.update_client(client.client_id, gender=Gender.FEMALE)
    assert moved.gender == Gender.FEMALE


def test_delete_client_frees_bed_and_refreshes_counters(stack) -> None:
    event = stack.event()
    hotel = stack.hotel(event.event_id, "Atlas", 1)
    leaving = stack.client(event.event_id, "Leaving")
    waiting = stack.client(event.event_id, "Waiting")
    stack.engine.manual_assign(leaving.client_id, hotel.hotel_id, event.event_id)

    stack.registry.delete_client(leaving.client_id)

    assert stack.inventory.get_hotel(hotel.hotel_id).occupancy == 0
    assert stack.inventory.get_event(event.event_id).current_participants == 1
    result = stack.engine.manual_assign(waiting.client_id, hotel.hotel_id, event.event_id)
    assert result.hotel.occupancy == 1
