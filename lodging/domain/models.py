"""Domain models for event lodging inventory, clients and assignment results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class ClientType(str, Enum):
    VIP = "VIP"
    INFLUENCER = "Influencer"
    STAFF = "Staff"
    STANDARD = "Standard"


class ClientStatus(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    ASSIGNED = "Assigned"
    ARRIVED = "Arrived"
    DEPARTED = "Departed"


# Statuses that require a hotel pointer; everything else requires none.
ASSIGNED_STATUSES = frozenset(
    {ClientStatus.ASSIGNED, ClientStatus.ARRIVED, ClientStatus.DEPARTED}
)


class GroupRelation(str, Enum):
    FAMILY = "Family"
    COUPLE = "Couple"
    FRIENDS = "Friends"
    COLLEAGUES = "Colleagues"
    OTHER = "Other"


class HotelCategory(str, Enum):
    VIP = "VIP"
    STANDARD = "Standard"


class RoomType(str, Enum):
    VIP = "VIP"
    INFLUENCER = "Influencer"
    STAFF_MALE = "Staff_Male"
    STAFF_FEMALE = "Staff_Female"
    GROUP_MALE = "Group_Male"
    GROUP_FEMALE = "Group_Female"
    MIXED = "Mixed"
    STANDARD = "Standard"


class AssignmentType(str, Enum):
    AUTO = "auto"
    MANUAL = "manual"
    BULK = "bulk"


class InventoryStatus(str, Enum):
    ACTIVE = "Active"
    SUSPENDED = "Suspended"
    FULL = "Full"


class EventStatus(str, Enum):
    PLANNING = "Planning"
    ACTIVE = "Active"
    FINISHED = "Finished"
    CANCELLED = "Cancelled"


@dataclass(frozen=True)
class Event:
    event_id: int
    name: str
    city: str
    country: str
    start_date: str | None
    end_date: str | None
    status: EventStatus
    max_participants: int | None
    allow_mixed_groups: bool
    current_participants: int
    total_hotels: int

    @property
    def is_full(self) -> bool:
        return (
            self.max_participants is not None
            and self.current_participants >= self.max_participants
        )


@dataclass(frozen=True)
class Hotel:
    hotel_id: int
    event_id: int
    name: str
    city: str | None
    category: HotelCategory
    total_capacity: int
    allow_mixed_groups: bool
    occupancy: int

    @property
    def is_vip(self) -> bool:
        return self.category == HotelCategory.VIP

    @property
    def accepts_mixed_groups(self) -> bool:
        return self.is_vip or self.allow_mixed_groups


@dataclass(frozen=True)
class RosterEntry:
    hotel_id: int
    client_id: int
    assigned_at: str
    assigned_by: str
    assignment_type: AssignmentType


@dataclass(frozen=True)
class LogicalRoom:
    room_id: int
    hotel_id: int
    event_id: int
    label: str
    room_type: RoomType
    bed_count: int
    max_capacity: int
    real_room_number: str | None
    assigned_client_ids: tuple[int, ...] = ()

    @property
    def current_occupancy(self) -> int:
        return len(self.assigned_client_ids)

    @property
    def is_fully_occupied(self) -> bool:
        return self.current_occupancy >= self.max_capacity

    @property
    def available_beds(self) -> int:
        return max(0, self.max_capacity - self.current_occupancy)


@dataclass(frozen=True)
class RoomTier:
    bed_count: int
    quantity: int
    price_per_night: float = 0.0
    assigned_rooms: int = 0

    @property
    def available_rooms(self) -> int:
        return self.quantity - self.assigned_rooms


@dataclass(frozen=True)
class InventoryTotals:
    total_capacity: int
    total_assigned: int


@dataclass(frozen=True)
class EventHotelAssignment:
    assignment_id: int
    event_id: int
    hotel_id: int
    available_rooms: tuple[RoomTier, ...]
    total_capacity: int
    total_assigned: int
    suspended: bool
    notes: str

    @property
    def status(self) -> InventoryStatus:
        if self.suspended:
            return InventoryStatus.SUSPENDED
        if self.total_assigned >= self.total_capacity:
            return InventoryStatus.FULL
        return InventoryStatus.ACTIVE

    @property
    def available_capacity(self) -> int:
        return self.total_capacity - self.total_assigned

    @property
    def occupancy_rate(self) -> float:
        if self.total_capacity <= 0:
            return 0.0
        return round(self.total_assigned / self.total_capacity * 100.0, 2)


@dataclass(frozen=True)
class Client:
    client_id: int
    event_id: int
    first_name: str
    last_name: str
    phone: str
    email: str | None
    gender: Gender
    client_type: ClientType
    group_name: str | None
    group_size: int
    group_relation: GroupRelation | None
    status: ClientStatus
    notes: str
    assigned_hotel_id: int | None = None
    logical_room_id: int | None = None
    real_room_number: str | None = None
    bed_number: int | None = None
    assignment_type: AssignmentType | None = None
    assignment_date: str | None = None
    assigned_by: str | None = None
    deposit_paid: bool = False
    deposit_amount: float = 0.0
    checked_in_at: str | None = None
    checked_in_by: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_assigned(self) -> bool:
        return self.assigned_hotel_id is not None

    @property
    def is_priority(self) -> bool:
        return self.client_type in (
            ClientType.VIP,
            ClientType.INFLUENCER,
            ClientType.STAFF,
        )


@dataclass(frozen=True)
class GroupReport:
    event_id: int
    group_name: str
    members: tuple[Client, ...]

    @property
    def genders(self) -> tuple[Gender, ...]:
        seen: list[Gender] = []
        for member in self.members:
            if member.gender not in seen:
                seen.append(member.gender)
        return tuple(seen)

    @property
    def size(self) -> int:
        return len(self.members)

    @property
    def is_mixed(self) -> bool:
        return len(self.genders) > 1

    @property
    def has_priority(self) -> bool:
        return any(member.is_priority for member in self.members)

    @property
    def hotel_ids(self) -> tuple[int, ...]:
        return tuple(
            sorted({m.assigned_hotel_id for m in self.members if m.assigned_hotel_id is not None})
        )


@dataclass(frozen=True)
class Placement:
    hotel_id: int
    hotel_name: str
    client_ids: tuple[int, ...]
    assignment_type: AssignmentType
    group_name: Optional[str] = None
    is_mixed: bool = False
    logical_room_id: Optional[int] = None

    @property
    def member_count(self) -> int:
        return len(self.client_ids)


@dataclass(frozen=True)
class PlacementError:
    error_type: str
    message: str
    client_ids: tuple[int, ...]
    group_name: Optional[str] = None


@dataclass(frozen=True)
class AutoAssignResult:
    assigned_count: int
    total_clients: int
    assignments: list[Placement]
    errors: list[PlacementError]


@dataclass(frozen=True)
class ManualAssignResult:
    client: Client
    hotel: Hotel
    assignment: RosterEntry


@dataclass(frozen=True)
class BulkAssignResult:
    assigned_count: int
    hotel: Hotel
    assignments: list[RosterEntry]
    reserved_rooms: int = 0


@dataclass(frozen=True)
class ValidationIssue:
    type: str
    message: str
    hotel_id: Optional[int] = None
    group_name: Optional[str] = None
    client_ids: tuple[int, ...] = ()


@dataclass(frozen=True)
class MoveResult:
    client: Client
    from_hotel: Hotel
    to_hotel: Hotel
    warnings: list[ValidationIssue] = field(default_factory=list)


@dataclass(frozen=True)
class SwappedClient:
    client: Client
    new_hotel: Hotel

    @property
    def name(self) -> str:
        return self.client.full_name


@dataclass(frozen=True)
class SwapResult:
    client1: SwappedClient
    client2: SwappedClient
    warnings: list[ValidationIssue] = field(default_factory=list)


@dataclass(frozen=True)
class UnassignResult:
    client: Client
    hotel: Hotel


@dataclass(frozen=True)
class ClearResult:
    cleared_clients: int
    cleared_hotels: int


@dataclass(frozen=True)
class ValidationReport:
    is_valid: bool
    errors: list[ValidationIssue]
    warnings: list[ValidationIssue]
    stats: dict[str, Any]
