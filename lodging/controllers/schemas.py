"""Response DTOs shared by the controllers.

Each model reads straight from the frozen domain dataclasses
(`from_attributes`), properties included.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from lodging.domain.models import (
    AssignmentType,
    ClientStatus,
    ClientType,
    EventStatus,
    Gender,
    GroupRelation,
    HotelCategory,
    InventoryStatus,
    RoomType,
)


class DomainModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class EventResponse(DomainModel):
    event_id: int
    name: str
    city: str
    country: str
    start_date: Optional[str]
    end_date: Optional[str]
    status: EventStatus
    max_participants: Optional[int]
    allow_mixed_groups: bool
    current_participants: int = Field(ge=0)
    total_hotels: int = Field(ge=0)


class HotelResponse(DomainModel):
    hotel_id: int
    event_id: int
    name: str
    city: Optional[str]
    category: HotelCategory
    total_capacity: int = Field(ge=0)
    allow_mixed_groups: bool
    occupancy: int = Field(ge=0)


class ClientResponse(DomainModel):
    client_id: int
    event_id: int
    first_name: str
    last_name: str
    full_name: str
    phone: str
    email: Optional[str]
    gender: Gender
    client_type: ClientType
    group_name: Optional[str]
    group_size: int
    group_relation: Optional[GroupRelation]
    status: ClientStatus
    notes: str
    assigned_hotel_id: Optional[int]
    logical_room_id: Optional[int]
    real_room_number: Optional[str]
    bed_number: Optional[int]
    assignment_type: Optional[AssignmentType]
    assignment_date: Optional[str]
    assigned_by: Optional[str]
    deposit_paid: bool
    deposit_amount: float
    checked_in_at: Optional[str]
    checked_in_by: Optional[str]


class RosterEntryResponse(DomainModel):
    hotel_id: int
    client_id: int
    assigned_at: str
    assigned_by: str
    assignment_type: AssignmentType


class LogicalRoomResponse(DomainModel):
    room_id: int
    hotel_id: int
    event_id: int
    label: str
    room_type: RoomType
    bed_count: int
    max_capacity: int
    real_room_number: Optional[str]
    assigned_client_ids: list[int]
    current_occupancy: int
    is_fully_occupied: bool


class RoomTierResponse(DomainModel):
    bed_count: int
    quantity: int
    price_per_night: float
    assigned_rooms: int
    available_rooms: int


class EventHotelAssignmentResponse(DomainModel):
    assignment_id: int
    event_id: int
    hotel_id: int
    available_rooms: list[RoomTierResponse]
    total_capacity: int
    total_assigned: int
    available_capacity: int
    occupancy_rate: float
    status: InventoryStatus
    notes: str


class SwappedClientResponse(DomainModel):
    name: str
    new_hotel: HotelResponse
    client: ClientResponse


class GroupReportResponse(DomainModel):
    group_name: str
    size: int
    genders: list[Gender]
    is_mixed: bool
    has_priority: bool
    hotel_ids: list[int]
    members: list[ClientResponse]


class ValidationIssueResponse(DomainModel):
    type: str
    message: str
    hotel_id: Optional[int] = None
    group_name: Optional[str] = None
    client_ids: list[int] = Field(default_factory=list)


class PlacementResponse(DomainModel):
    hotel_id: int
    hotel_name: str
    client_ids: list[int]
    member_count: int
    assignment_type: AssignmentType
    group_name: Optional[str] = None
    is_mixed: bool = False
    logical_room_id: Optional[int] = None


class PlacementErrorResponse(DomainModel):
    error_type: str
    message: str
    client_ids: list[int]
    group_name: Optional[str] = None


class SuccessResponse(BaseModel):
    success: bool = True
    message: str = ""
    data: Optional[Any] = None
