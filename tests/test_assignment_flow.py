from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app import create_app
from conftest import build_test_settings


ADMIN_TOKEN = "flow-secret"


@pytest.fixture
def client(tmp_path):
    settings = build_test_settings(
        tmp_path,
        "assignment_flow.db",
        admin_token=ADMIN_TOKEN,
        seed_demo_data=True,
    )
    with TestClient(create_app(settings)) as test_client:
        yield test_client


def _login(client: TestClient, operator: str = "desk-7") -> dict[str, str]:
    response = client.post("/login", json={"admin_token": ADMIN_TOKEN, "operator": operator})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def test_protected_routes_require_login(client: TestClient) -> None:
    assert client.get("/health").json()["status"] == "ok"

    unauthorized = client.get("/events")
    assert unauthorized.status_code == 401
    assert unauthorized.json()["success"] is False
    assert unauthorized.json()["type"] == "HTTP_ERROR"

    rejected = client.post("/login", json={"admin_token": "wrong"})
    assert rejected.status_code == 401

    forged = client.get("/events", headers={"Authorization": "Bearer not-a-session"})
    assert forged.status_code == 401


def test_logout_ends_the_session(client: TestClient) -> None:
    headers = _login(client)
    other = _login(client, operator="desk-9")
    assert client.get("/events", headers=headers).status_code == 200

    logged_out = client.post("/logout", headers=headers)
    assert logged_out.status_code == 200
    assert logged_out.json()["success"] is True
    assert logged_out.json()["message"] == "Operator desk-7 logged out"

    assert client.get("/events", headers=headers).status_code == 401
    assert client.post("/logout", headers=headers).status_code == 401
    assert client.get("/events", headers=other).status_code == 200


def test_swap_response_nests_each_client(client: TestClient) -> None:
    headers = _login(client)
    event_id = client.get("/events", headers=headers).json()[0]["event_id"]
    hotels = client.get(f"/events/{event_id}/hotels", headers=headers).json()
    palace = next(h for h in hotels if h["name"] == "Palace Royal")
    city_inn = next(h for h in hotels if h["name"] == "City Inn")
    first, second = client.get(f"/events/{event_id}/clients", headers=headers).json()[:2]
    for guest, hotel in ((first, palace), (second, city_inn)):
        client.post(
            "/assignments/manual",
            json={"client_id": guest["client_id"], "hotel_id": hotel["hotel_id"], "event_id": event_id},
            headers=headers,
        )

    swapped = client.post(
        "/assignments/swap",
        json={
            "client1_id": first["client_id"],
            "client2_id": second["client_id"],
            "event_id": event_id,
        },
        headers=headers,
    )

    assert swapped.status_code == 200
    body = swapped.json()
    assert body["client1"]["name"] == first["full_name"]
    assert body["client1"]["new_hotel"]["hotel_id"] == city_inn["hotel_id"]
    assert body["client2"]["name"] == second["full_name"]
    assert body["client2"]["new_hotel"]["hotel_id"] == palace["hotel_id"]
    assert body["client1"]["client"]["assigned_by"] == "desk-7"
    assert "client1_hotel" not in body


def test_demo_event_full_assignment_flow(client: TestClient) -> None:
    headers = _login(client)

    events = client.get("/events", headers=headers).json()
    assert [event["name"] for event in events] == ["Demo Summit"]
    event_id = events[0]["event_id"]
    assert events[0]["current_participants"] == 8
    assert events[0]["total_hotels"] == 2

    auto = client.post("/assignments/auto", json={"event_id": event_id}, headers=headers)
    assert auto.status_code == 200
    body = auto.json()
    assert body["success"] is True
    assert body["assigned_count"] == body["total_clients"] == 8
    assert body["errors"] == []
    team_a = next(p for p in body["assignments"] if p["group_name"] == "Team A")
    assert team_a["is_mixed"] is True
    hotels = client.get(f"/events/{event_id}/hotels", headers=headers).json()
    vip_hotel = next(h for h in hotels if h["category"] == "VIP")
    assert team_a["hotel_id"] == vip_hotel["hotel_id"]

    clients = client.get(
        f"/events/{event_id}/clients", params={"status": "Assigned"}, headers=headers
    ).json()
    assert len(clients) == 8
    assert {c["assigned_by"] for c in clients} == {"desk-7"}

    report = client.get(f"/assignments/validate/{event_id}", headers=headers).json()
    assert report["is_valid"] is True
    assert report["stats"]["assigned_clients"] == 8

    stats = client.get(f"/events/{event_id}/stats", headers=headers).json()
    assert stats["stats"]["total_occupancy"] == 8
    assert {row["group_name"] for row in stats["groups"]} == {"Team A", "Team B"}

    cleared = client.post("/assignments/clear", json={"event_id": event_id}, headers=headers)
    assert cleared.json()["cleared_clients"] == 8
    again = client.post("/assignments/clear", json={"event_id": event_id}, headers=headers)
    assert again.json()["cleared_clients"] == 0


def test_manual_move_and_failure_bodies(client: TestClient) -> None:
    headers = _login(client)
    event_id = client.get("/events", headers=headers).json()[0]["event_id"]
    hotels = client.get(f"/events/{event_id}/hotels", headers=headers).json()
    palace = next(h for h in hotels if h["name"] == "Palace Royal")
    city_inn = next(h for h in hotels if h["name"] == "City Inn")
    guest = client.get(f"/events/{event_id}/clients", headers=headers).json()[0]

    assigned = client.post(
        "/assignments/manual",
        json={"client_id": guest["client_id"], "hotel_id": city_inn["hotel_id"], "event_id": event_id},
        headers=headers,
    )
    assert assigned.status_code == 200
    assert assigned.json()["assignment"]["assigned_by"] == "desk-7"
    assert assigned.json()["hotel"]["occupancy"] == 1

    duplicate = client.post(
        "/assignments/manual",
        json={"client_id": guest["client_id"], "hotel_id": palace["hotel_id"], "event_id": event_id},
        headers=headers,
    )
    assert duplicate.status_code == 409
    assert duplicate.json() == {
        "success": False,
        "message": duplicate.json()["message"],
        "type": "ALREADY_ASSIGNED",
    }

    moved = client.post(
        "/assignments/move",
        json={
            "client_id": guest["client_id"],
            "from_hotel_id": city_inn["hotel_id"],
            "to_hotel_id": palace["hotel_id"],
            "event_id": event_id,
        },
        headers=headers,
    )
    assert moved.status_code == 200
    assert moved.json()["to_hotel"]["occupancy"] == 1
    assert moved.json()["from_hotel"]["occupancy"] == 0

    partial = client.post(
        "/assignments/bulk",
        json={"client_ids": [guest["client_id"], 999], "hotel_id": palace["hotel_id"], "event_id": event_id},
        headers=headers,
    )
    assert partial.status_code == 409
    assert partial.json()["type"] == "PARTIAL_ELIGIBILITY"
    assert partial.json()["ineligible_client_ids"] == [guest["client_id"], 999]

    invalid = client.post(
        "/assignments/manual",
        json={"client_id": 0, "hotel_id": palace["hotel_id"], "event_id": event_id},
        headers=headers,
    )
    assert invalid.status_code == 422
    assert invalid.json()["type"] == "VALIDATION_ERROR"

    missing = client.get("/clients/999", headers=headers)
    assert missing.status_code == 404
    assert missing.json()["type"] == "CLIENT_NOT_FOUND"

    unassigned = client.post(
        "/assignments/unassign",
        json={"client_id": guest["client_id"], "event_id": event_id},
        headers=headers,
    )
    assert unassigned.json()["client"]["status"] == "Confirmed"


def test_inventory_endpoints(client: TestClient) -> None:
    headers = _login(client)
    created = client.post(
        "/events",
        json={"name": "Expo", "city": "Fes", "country": "Morocco", "max_participants": 10},
        headers=headers,
    )
    assert created.status_code == 201
    event_id = created.json()["event_id"]

    hotel = client.post(
        f"/events/{event_id}/hotels",
        json={"name": "Riad", "total_capacity": 6},
        headers=headers,
    ).json()
    room = client.post(
        f"/hotels/{hotel['hotel_id']}/rooms",
        json={"room_type": "Group_Female", "bed_count": 3},
        headers=headers,
    ).json()
    assert room["label"] == "room_1"
    bound = client.put(
        f"/rooms/{room['room_id']}/real-number",
        json={"real_room_number": "204"},
        headers=headers,
    )
    assert bound.json()["real_room_number"] == "204"

    quota = client.post(
        "/event-hotel-assignments",
        json={
            "event_id": event_id,
            "hotel_id": hotel["hotel_id"],
            "available_rooms": [{"bed_count": 3, "quantity": 2}],
        },
        headers=headers,
    ).json()
    assert quota["total_capacity"] == 6
    reserved = client.post(
        f"/event-hotel-assignments/{quota['assignment_id']}/reserve",
        json={"bed_count": 3, "rooms": 3},
        headers=headers,
    )
    assert reserved.status_code == 409
    assert reserved.json()["type"] == "INSUFFICIENT_ROOM_SUPPLY"

    empty_quota = client.post(
        "/event-hotel-assignments",
        json={"event_id": event_id, "hotel_id": hotel["hotel_id"], "available_rooms": []},
        headers=headers,
    )
    assert empty_quota.status_code == 400
    assert empty_quota.json()["type"] == "EMPTY_ROOM_CONFIG"

    registered = client.post(
        "/clients",
        json={
            "event_id": event_id,
            "first_name": "Hind",
            "last_name": "Amrani",
            "phone": "+212611111111",
            "gender": "Female",
            "client_type": "VIP",
        },
        headers=headers,
    )
    assert registered.status_code == 201
    assert registered.json()["notes"].startswith("[VIP]")
    summary = client.get(
        f"/events/{event_id}/event-hotel-assignments", headers=headers
    ).json()
    assert summary["stats"]["total_capacity"] == 6


def test_event_and_client_updates(client: TestClient) -> None:
    headers = _login(client)
    event_id = client.get("/events", headers=headers).json()[0]["event_id"]

    patched = client.patch(
        f"/events/{event_id}",
        json={"allow_mixed_groups": True, "max_participants": 40},
        headers=headers,
    )
    assert patched.status_code == 200
    assert patched.json()["allow_mixed_groups"] is True
    assert patched.json()["max_participants"] == 40

    activated = client.put(f"/events/{event_id}/status", json={"status": "Active"}, headers=headers)
    assert activated.json()["status"] == "Active"
    bad_status = client.put(f"/events/{event_id}/status", json={"status": "Paused"}, headers=headers)
    assert bad_status.status_code == 422

    hotels = client.get(f"/events/{event_id}/hotels", headers=headers).json()
    guest = client.get(f"/events/{event_id}/clients", headers=headers).json()[0]
    renamed = client.patch(
        f"/clients/{guest['client_id']}", json={"notes": "late flight"}, headers=headers
    )
    assert renamed.status_code == 200
    assert renamed.json()["notes"].endswith("late flight")

    client.post(
        "/assignments/manual",
        json={"client_id": guest["client_id"], "hotel_id": hotels[0]["hotel_id"], "event_id": event_id},
        headers=headers,
    )
    frozen = client.patch(
        f"/clients/{guest['client_id']}", json={"group_name": "Elsewhere"}, headers=headers
    )
    assert frozen.status_code == 409
    assert frozen.json()["type"] == "ALREADY_ASSIGNED"

    deposit = client.post(
        f"/clients/{guest['client_id']}/deposit",
        json={"deposit_paid": False, "deposit_amount": 150},
        headers=headers,
    )
    assert deposit.json()["deposit_amount"] == 150.0
    assert deposit.json()["checked_in_at"] is None

    arrived = client.post(
        f"/clients/{guest['client_id']}/arrive", json={"deposit_paid": True}, headers=headers
    )
    assert arrived.status_code == 200
    body = arrived.json()
    assert body["status"] == "Arrived"
    assert body["deposit_paid"] is True
    assert body["deposit_amount"] == 150.0
    assert body["checked_in_by"] == "desk-7"
    assert body["checked_in_at"] is not None
