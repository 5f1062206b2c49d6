"""HTTP controller layer for events, hotels, rooms, quotas, clients and stats."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import BaseModel, Field, field_validator

from lodging.controllers.dependencies import (
    bearer_scheme,
    get_auth_service,
    get_client_registry,
    get_inventory_service,
    get_stats_service,
    require_admin,
)
from lodging.controllers.schemas import (
    ClientResponse,
    EventHotelAssignmentResponse,
    EventResponse,
    GroupReportResponse,
    HotelResponse,
    LogicalRoomResponse,
    SuccessResponse,
)
from lodging.domain.models import (
    ClientStatus,
    ClientType,
    EventStatus,
    Gender,
    GroupRelation,
    HotelCategory,
    RoomType,
)
from lodging.services.auth_service import (
    AdminTokenNotConfiguredError,
    AuthService,
    InvalidAdminTokenError,
)
from lodging.services.client_registry import ClientRegistry
from lodging.services.inventory_service import InventoryService
from lodging.services.stats_service import StatsService
from lodging.utils.config import get_settings
from lodging.utils.logger import get_logger


logger = get_logger(__name__)
settings = get_settings()

router = APIRouter(tags=["inventory"])


class LoginRequest(BaseModel):
    admin_token: str = Field(min_length=1)
    operator: str | None = Field(default=None, max_length=100)


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class EventCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    city: str = Field(min_length=1)
    country: str = Field(min_length=1)
    start_date: str | None = None
    end_date: str | None = None
    status: EventStatus = EventStatus.PLANNING
    max_participants: int | None = Field(default=None, gt=0)
    allow_mixed_groups: bool = False


class EventUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    city: str | None = Field(default=None, min_length=1)
    country: str | None = Field(default=None, min_length=1)
    start_date: str | None = None
    end_date: str | None = None
    status: EventStatus | None = None
    max_participants: int | None = Field(default=None, ge=0)
    allow_mixed_groups: bool | None = None


class EventStatusRequest(BaseModel):
    status: EventStatus


class HotelCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    total_capacity: int = Field(ge=0)
    category: HotelCategory = HotelCategory.STANDARD
    city: str | None = None
    allow_mixed_groups: bool = False


class HotelUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    city: str | None = None
    category: HotelCategory | None = None
    total_capacity: int | None = Field(default=None, ge=0)
    allow_mixed_groups: bool | None = None


class LogicalRoomCreateRequest(BaseModel):
    room_type: RoomType = RoomType.STANDARD
    bed_count: int = Field(ge=1, le=settings.max_bed_count)
    max_capacity: int | None = Field(default=None, ge=1)
    label: str | None = Field(default=None, min_length=1)


class RealRoomNumberRequest(BaseModel):
    real_room_number: str = Field(min_length=1, max_length=20)


class RoomTierRequest(BaseModel):
    bed_count: int = Field(ge=1, le=settings.max_bed_count)
    quantity: int = Field(ge=0)
    price_per_night: float = Field(default=0.0, ge=0.0)
    assigned_rooms: int = Field(default=0, ge=0)


class EventHotelAssignmentCreateRequest(BaseModel):
    event_id: int = Field(gt=0)
    hotel_id: int = Field(gt=0)
    available_rooms: list[RoomTierRequest]
    notes: str = ""


class EventHotelAssignmentUpdateRequest(BaseModel):
    available_rooms: list[RoomTierRequest] | None = None
    notes: str | None = None
    suspended: bool | None = None


class RoomReservationRequest(BaseModel):
    bed_count: int = Field(ge=1)
    rooms: int = Field(gt=0)


class EventHotelAssignmentListResponse(BaseModel):
    success: bool = True
    assignments: list[EventHotelAssignmentResponse]
    stats: dict[str, Any]


class ClientCreateRequest(BaseModel):
    event_id: int = Field(gt=0)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    phone: str = Field(min_length=3, max_length=30)
    email: str | None = None
    gender: Gender
    client_type: ClientType = ClientType.STANDARD
    group_name: str | None = None
    group_size: int = Field(default=1, ge=1, le=settings.max_group_size)
    group_relation: GroupRelation | None = None
    status: ClientStatus = ClientStatus.PENDING
    notes: str = Field(default="", max_length=1000)

    @field_validator("group_name")
    @classmethod
    def normalize_group_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class ClientUpdateRequest(BaseModel):
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    phone: str | None = Field(default=None, min_length=3, max_length=30)
    email: str | None = None
    gender: Gender | None = None
    client_type: ClientType | None = None
    group_name: str | None = None
    group_size: int | None = Field(default=None, ge=1, le=settings.max_group_size)
    group_relation: GroupRelation | None = None
    notes: str | None = Field(default=None, max_length=1000)


class ArrivalRequest(BaseModel):
    deposit_paid: bool | None = None
    deposit_amount: float | None = Field(default=None, ge=0.0)


class DepositRequest(BaseModel):
    deposit_paid: bool
    deposit_amount: float | None = Field(default=None, ge=0.0)


def _tiers(items: list[RoomTierRequest]) -> list[dict[str, Any]]:
    return [item.model_dump() for item in items]


@router.get("/health", status_code=status.HTTP_200_OK)
async def health(request: Request) -> dict[str, Any]:
    repository = getattr(request.app.state, "repository", None)
    return {
        "success": True,
        "status": "ok" if repository is not None else "degraded",
        "version": settings.app_version,
    }


@router.post("/login", response_model=LoginResponse, status_code=status.HTTP_200_OK)
async def login(
    payload: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    try:
        bearer = auth_service.login(payload.admin_token, operator=payload.operator)
        return LoginResponse(access_token=bearer)
    except (AdminTokenNotConfiguredError, InvalidAdminTokenError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected login failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to login",
        ) from exc


@router.post("/logout", response_model=SuccessResponse, status_code=status.HTTP_200_OK)
async def logout(
    operator: str = Depends(require_admin),
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> SuccessResponse:
    if credentials is not None:
        auth_service.logout(credentials.credentials)
    return SuccessResponse(message=f"Operator {operator} logged out")


# --- Events and hotels ---


@router.post(
    "/events",
    response_model=EventResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_event(
    payload: EventCreateRequest,
    service: InventoryService = Depends(get_inventory_service),
) -> EventResponse:
    event = service.create_event(**payload.model_dump())
    return EventResponse.model_validate(event)


@router.get("/events", response_model=list[EventResponse], dependencies=[Depends(require_admin)])
async def list_events(
    service: InventoryService = Depends(get_inventory_service),
) -> list[EventResponse]:
    return [EventResponse.model_validate(event) for event in service.list_events()]


@router.get(
    "/events/{event_id}",
    response_model=EventResponse,
    dependencies=[Depends(require_admin)],
)
async def get_event(
    event_id: int,
    service: InventoryService = Depends(get_inventory_service),
) -> EventResponse:
    return EventResponse.model_validate(service.get_event(event_id))


@router.patch(
    "/events/{event_id}",
    response_model=EventResponse,
    dependencies=[Depends(require_admin)],
)
async def update_event(
    event_id: int,
    payload: EventUpdateRequest,
    service: InventoryService = Depends(get_inventory_service),
) -> EventResponse:
    event = service.update_event(event_id, **payload.model_dump())
    return EventResponse.model_validate(event)


@router.put(
    "/events/{event_id}/status",
    response_model=EventResponse,
    dependencies=[Depends(require_admin)],
)
async def set_event_status(
    event_id: int,
    payload: EventStatusRequest,
    service: InventoryService = Depends(get_inventory_service),
) -> EventResponse:
    return EventResponse.model_validate(service.set_event_status(event_id, payload.status))


@router.post(
    "/events/{event_id}/hotels",
    response_model=HotelResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_hotel(
    event_id: int,
    payload: HotelCreateRequest,
    service: InventoryService = Depends(get_inventory_service),
) -> HotelResponse:
    hotel = service.create_hotel(event_id=event_id, **payload.model_dump())
    return HotelResponse.model_validate(hotel)


@router.get(
    "/events/{event_id}/hotels",
    response_model=list[HotelResponse],
    dependencies=[Depends(require_admin)],
)
async def list_hotels(
    event_id: int,
    service: InventoryService = Depends(get_inventory_service),
) -> list[HotelResponse]:
    return [HotelResponse.model_validate(hotel) for hotel in service.list_hotels(event_id)]


@router.patch(
    "/hotels/{hotel_id}",
    response_model=HotelResponse,
    dependencies=[Depends(require_admin)],
)
async def update_hotel(
    hotel_id: int,
    payload: HotelUpdateRequest,
    service: InventoryService = Depends(get_inventory_service),
) -> HotelResponse:
    hotel = service.update_hotel(hotel_id, **payload.model_dump())
    return HotelResponse.model_validate(hotel)


# --- Logical rooms ---


@router.post(
    "/hotels/{hotel_id}/rooms",
    response_model=LogicalRoomResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_logical_room(
    hotel_id: int,
    payload: LogicalRoomCreateRequest,
    service: InventoryService = Depends(get_inventory_service),
) -> LogicalRoomResponse:
    room = service.create_logical_room(hotel_id=hotel_id, **payload.model_dump())
    return LogicalRoomResponse.model_validate(room)


@router.get(
    "/hotels/{hotel_id}/rooms",
    response_model=list[LogicalRoomResponse],
    dependencies=[Depends(require_admin)],
)
async def list_logical_rooms(
    hotel_id: int,
    room_type: Optional[RoomType] = Query(default=None),
    available_only: bool = Query(default=False),
    service: InventoryService = Depends(get_inventory_service),
) -> list[LogicalRoomResponse]:
    if available_only:
        rooms = service.available_rooms_by_type(hotel_id, room_type)
    else:
        rooms = [
            room
            for room in service.list_logical_rooms(hotel_id)
            if room_type is None or room.room_type == room_type
        ]
    return [LogicalRoomResponse.model_validate(room) for room in rooms]


@router.put(
    "/rooms/{room_id}/real-number",
    response_model=LogicalRoomResponse,
    dependencies=[Depends(require_admin)],
)
async def set_real_room_number(
    room_id: int,
    payload: RealRoomNumberRequest,
    service: InventoryService = Depends(get_inventory_service),
) -> LogicalRoomResponse:
    room = service.set_real_room_number(room_id, payload.real_room_number)
    return LogicalRoomResponse.model_validate(room)


# --- Room-type quotas ---


@router.post(
    "/event-hotel-assignments",
    response_model=EventHotelAssignmentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_event_hotel_assignment(
    payload: EventHotelAssignmentCreateRequest,
    service: InventoryService = Depends(get_inventory_service),
) -> EventHotelAssignmentResponse:
    assignment = service.create_event_hotel_assignment(
        event_id=payload.event_id,
        hotel_id=payload.hotel_id,
        available_rooms=_tiers(payload.available_rooms),
        notes=payload.notes,
    )
    return EventHotelAssignmentResponse.model_validate(assignment)


@router.get(
    "/events/{event_id}/event-hotel-assignments",
    response_model=EventHotelAssignmentListResponse,
    dependencies=[Depends(require_admin)],
)
async def list_event_hotel_assignments(
    event_id: int,
    service: InventoryService = Depends(get_inventory_service),
) -> EventHotelAssignmentListResponse:
    return EventHotelAssignmentListResponse(
        assignments=[
            EventHotelAssignmentResponse.model_validate(item)
            for item in service.list_event_hotel_assignments(event_id)
        ],
        stats=service.summarize_event_hotel_assignments(event_id),
    )


@router.patch(
    "/event-hotel-assignments/{assignment_id}",
    response_model=EventHotelAssignmentResponse,
    dependencies=[Depends(require_admin)],
)
async def update_event_hotel_assignment(
    assignment_id: int,
    payload: EventHotelAssignmentUpdateRequest,
    service: InventoryService = Depends(get_inventory_service),
) -> EventHotelAssignmentResponse:
    assignment = service.update_event_hotel_assignment(
        assignment_id,
        available_rooms=(
            _tiers(payload.available_rooms) if payload.available_rooms is not None else None
        ),
        notes=payload.notes,
        suspended=payload.suspended,
    )
    return EventHotelAssignmentResponse.model_validate(assignment)


@router.delete(
    "/event-hotel-assignments/{assignment_id}",
    response_model=SuccessResponse,
    dependencies=[Depends(require_admin)],
)
async def delete_event_hotel_assignment(
    assignment_id: int,
    service: InventoryService = Depends(get_inventory_service),
) -> SuccessResponse:
    service.delete_event_hotel_assignment(assignment_id)
    return SuccessResponse(message=f"Event hotel assignment {assignment_id} deleted")


@router.post(
    "/event-hotel-assignments/{assignment_id}/reserve",
    response_model=EventHotelAssignmentResponse,
    dependencies=[Depends(require_admin)],
)
async def reserve_rooms(
    assignment_id: int,
    payload: RoomReservationRequest,
    service: InventoryService = Depends(get_inventory_service),
) -> EventHotelAssignmentResponse:
    assignment = service.reserve_rooms_of_type(assignment_id, payload.bed_count, payload.rooms)
    return EventHotelAssignmentResponse.model_validate(assignment)


@router.post(
    "/event-hotel-assignments/{assignment_id}/release",
    response_model=EventHotelAssignmentResponse,
    dependencies=[Depends(require_admin)],
)
async def release_rooms(
    assignment_id: int,
    payload: RoomReservationRequest,
    service: InventoryService = Depends(get_inventory_service),
) -> EventHotelAssignmentResponse:
    assignment = service.release_rooms_of_type(assignment_id, payload.bed_count, payload.rooms)
    return EventHotelAssignmentResponse.model_validate(assignment)


# --- Clients ---


@router.post(
    "/clients",
    response_model=ClientResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def register_client(
    payload: ClientCreateRequest,
    registry: ClientRegistry = Depends(get_client_registry),
) -> ClientResponse:
    client = registry.register_client(**payload.model_dump())
    return ClientResponse.model_validate(client)


@router.get(
    "/events/{event_id}/clients",
    response_model=list[ClientResponse],
    dependencies=[Depends(require_admin)],
)
async def list_clients(
    event_id: int,
    assigned: Optional[bool] = Query(default=None),
    hotel_id: Optional[int] = Query(default=None),
    group_name: Optional[str] = Query(default=None),
    client_type: Optional[ClientType] = Query(default=None),
    gender: Optional[Gender] = Query(default=None),
    client_status: Optional[ClientStatus] = Query(default=None, alias="status"),
    registry: ClientRegistry = Depends(get_client_registry),
) -> list[ClientResponse]:
    clients = registry.list_clients(
        event_id,
        assigned=assigned,
        hotel_id=hotel_id,
        group_name=group_name,
        client_type=client_type,
        gender=gender,
        status=client_status,
    )
    return [ClientResponse.model_validate(client) for client in clients]


@router.get(
    "/clients/{client_id}",
    response_model=ClientResponse,
    dependencies=[Depends(require_admin)],
)
async def get_client(
    client_id: int,
    registry: ClientRegistry = Depends(get_client_registry),
) -> ClientResponse:
    return ClientResponse.model_validate(registry.get_client(client_id))


@router.patch(
    "/clients/{client_id}",
    response_model=ClientResponse,
    dependencies=[Depends(require_admin)],
)
async def update_client(
    client_id: int,
    payload: ClientUpdateRequest,
    registry: ClientRegistry = Depends(get_client_registry),
) -> ClientResponse:
    client = registry.update_client(client_id, **payload.model_dump())
    return ClientResponse.model_validate(client)


@router.post("/clients/{client_id}/deposit", response_model=ClientResponse)
async def record_deposit(
    client_id: int,
    payload: DepositRequest,
    operator: str = Depends(require_admin),
    registry: ClientRegistry = Depends(get_client_registry),
) -> ClientResponse:
    client = registry.record_deposit(
        client_id,
        payload.deposit_paid,
        deposit_amount=payload.deposit_amount,
        recorded_by=operator,
    )
    return ClientResponse.model_validate(client)


@router.post("/clients/{client_id}/arrive", response_model=ClientResponse)
async def mark_arrived(
    client_id: int,
    payload: ArrivalRequest | None = None,
    operator: str = Depends(require_admin),
    registry: ClientRegistry = Depends(get_client_registry),
) -> ClientResponse:
    payload = payload or ArrivalRequest()
    client = registry.mark_arrived(
        client_id,
        deposit_paid=payload.deposit_paid,
        deposit_amount=payload.deposit_amount,
        checked_in_by=operator,
    )
    return ClientResponse.model_validate(client)


@router.post(
    "/clients/{client_id}/depart",
    response_model=ClientResponse,
    dependencies=[Depends(require_admin)],
)
async def mark_departed(
    client_id: int,
    registry: ClientRegistry = Depends(get_client_registry),
) -> ClientResponse:
    return ClientResponse.model_validate(registry.mark_departed(client_id))


@router.delete(
    "/clients/{client_id}",
    response_model=SuccessResponse,
    dependencies=[Depends(require_admin)],
)
async def delete_client(
    client_id: int,
    registry: ClientRegistry = Depends(get_client_registry),
) -> SuccessResponse:
    client = registry.delete_client(client_id)
    return SuccessResponse(message=f"Client {client.full_name} deleted")


# --- Groups and stats ---


@router.get(
    "/events/{event_id}/groups",
    response_model=list[GroupReportResponse],
    dependencies=[Depends(require_admin)],
)
async def list_groups(
    event_id: int,
    registry: ClientRegistry = Depends(get_client_registry),
) -> list[GroupReportResponse]:
    return [GroupReportResponse.model_validate(report) for report in registry.list_groups(event_id)]


@router.get("/events/{event_id}/stats", dependencies=[Depends(require_admin)])
async def event_stats(
    event_id: int,
    service: StatsService = Depends(get_stats_service),
) -> dict[str, Any]:
    return {
        "success": True,
        "stats": service.event_stats(event_id),
        "groups": service.group_report(event_id),
    }
