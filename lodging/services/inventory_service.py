"""Event, hotel, logical room and room-type quota management."""

from __future__ import annotations

import sqlite3
from typing import Any, Iterable, Mapping, Optional

from lodging.domain.constraints import parse_room_tiers, recompute_totals
from lodging.domain.errors import (
    ConfigError,
    CrossScopeMismatchError,
    DuplicateAssignmentError,
    DuplicateResourceError,
    EventHotelAssignmentNotFoundError,
    EventNotFoundError,
    HotelNotFoundError,
    InsufficientRoomSupplyError,
    RoomNotFoundError,
)
from lodging.domain.models import (
    Event,
    EventHotelAssignment,
    EventStatus,
    Hotel,
    HotelCategory,
    LogicalRoom,
    RoomTier,
    RoomType,
)
from lodging.repository.data_repository import DataRepository
from lodging.services.hooks import AssignmentChange, HookDispatcher
from lodging.services.locking import LockRegistry, hotel_key
from lodging.utils.config import Settings, get_settings
from lodging.utils.logger import get_logger, log_fields


logger = get_logger(__name__)


class InventoryService:
    """Owns everything a client can be placed into."""

    def __init__(
        self,
        repository: DataRepository,
        locks: LockRegistry,
        hooks: HookDispatcher,
        settings: Optional[Settings] = None,
    ) -> None:
        self._repository = repository
        self._locks = locks
        self._hooks = hooks
        self._settings = settings or get_settings()

    # --- Events ---

    def create_event(
        self,
        name: str,
        city: str,
        country: str,
        start_date: str | None = None,
        end_date: str | None = None,
        status: EventStatus = EventStatus.PLANNING,
        max_participants: int | None = None,
        allow_mixed_groups: bool = False,
    ) -> Event:
        if not name.strip():
            raise ConfigError("Event name is required")
        if max_participants is not None and max_participants <= 0:
            raise ConfigError("max_participants must be > 0")
        if start_date and end_date and end_date < start_date:
            raise ConfigError("end_date must not be before start_date")
        try:
            with self._repository.transaction() as conn:
                event_id = self._repository.create_event(
                    conn,
                    name=name.strip(),
                    city=city,
                    country=country,
                    start_date=start_date,
                    end_date=end_date,
                    status=status,
                    max_participants=max_participants,
                    allow_mixed_groups=allow_mixed_groups,
                )
        except sqlite3.IntegrityError as exc:
            raise DuplicateResourceError(f"Event '{name}' already exists") from exc
        logger.info("Event created | %s", log_fields(event_id=event_id, name=name))
        return self.get_event(event_id)

    def get_event(self, event_id: int, conn: Optional[sqlite3.Connection] = None) -> Event:
        event = self._repository.get_event(event_id, conn)
        if event is None:
            raise EventNotFoundError(f"Event {event_id} not found")
        return event

    def list_events(self) -> list[Event]:
        return self._repository.list_events()

    def update_event(
        self,
        event_id: int,
        *,
        name: str | None = None,
        city: str | None = None,
        country: str | None = None,
        start_date: str | None = None,
        end_date: str | None = None,
        status: EventStatus | None = None,
        max_participants: int | None = None,
        allow_mixed_groups: bool | None = None,
    ) -> Event:
        """Patch an event; omitted fields keep their value.

        `max_participants=0` lifts the participant cap. Changing
        `allow_mixed_groups` never moves anyone: the next `validate` reports
        what the new policy thinks of existing placements.
        """
        if name is not None and not name.strip():
            raise ConfigError("Event name is required")
        if max_participants is not None and max_participants < 0:
            raise ConfigError("max_participants must be >= 0")
        try:
            with self._repository.transaction() as conn:
                current = self.get_event(event_id, conn)
                new_start = current.start_date if start_date is None else start_date
                new_end = current.end_date if end_date is None else end_date
                if new_start and new_end and new_end < new_start:
                    raise ConfigError("end_date must not be before start_date")
                if max_participants is None:
                    new_cap = current.max_participants
                else:
                    new_cap = max_participants or None
                self._repository.update_event(
                    conn,
                    event_id,
                    name=current.name if name is None else name.strip(),
                    city=current.city if city is None else city,
                    country=current.country if country is None else country,
                    start_date=new_start,
                    end_date=new_end,
                    status=current.status if status is None else status,
                    max_participants=new_cap,
                    allow_mixed_groups=(
                        current.allow_mixed_groups
                        if allow_mixed_groups is None
                        else allow_mixed_groups
                    ),
                )
        except sqlite3.IntegrityError as exc:
            raise DuplicateResourceError(f"Another event is already named '{name}'") from exc

        updated = self.get_event(event_id)
        if updated.max_participants is not None and (
            updated.current_participants > updated.max_participants
        ):
            logger.warning(
                "Event participant cap lowered below registrations | %s",
                log_fields(
                    event_id=event_id,
                    max_participants=updated.max_participants,
                    participants=updated.current_participants,
                ),
            )
        logger.info(
            "Event updated | %s",
            log_fields(
                event_id=event_id,
                status=updated.status.value,
                allow_mixed_groups=updated.allow_mixed_groups,
            ),
        )
        return updated

    def set_event_status(self, event_id: int, status: EventStatus | str) -> Event:
        try:
            new_status = EventStatus(status)
        except ValueError as exc:
            accepted = ", ".join(item.value for item in EventStatus)
            raise ConfigError(f"Invalid event status '{status}'; accepted: {accepted}") from exc
        return self.update_event(event_id, status=new_status)

    # --- Hotels ---

    def create_hotel(
        self,
        event_id: int,
        name: str,
        total_capacity: int,
        category: HotelCategory = HotelCategory.STANDARD,
        city: str | None = None,
        allow_mixed_groups: bool = False,
    ) -> Hotel:
        if total_capacity < 0:
            raise ConfigError("total_capacity must be >= 0")
        if not name.strip():
            raise ConfigError("Hotel name is required")
        try:
            with self._repository.transaction() as conn:
                self.get_event(event_id, conn)
                hotel_id = self._repository.create_hotel(
                    conn,
                    event_id=event_id,
                    name=name.strip(),
                    city=city,
                    category=category,
                    total_capacity=total_capacity,
                    allow_mixed_groups=allow_mixed_groups,
                )
        except sqlite3.IntegrityError as exc:
            raise DuplicateResourceError(
                f"Hotel '{name}' already exists for event {event_id}"
            ) from exc
        logger.info(
            "Hotel created | %s",
            log_fields(
                event_id=event_id,
                hotel_id=hotel_id,
                category=category.value,
                total_capacity=total_capacity,
            ),
        )
        self._hooks.dispatch(
            AssignmentChange(operation="hotel_created", event_id=event_id, hotel_ids=(hotel_id,))
        )
        return self.get_hotel(hotel_id)

    def update_hotel(
        self,
        hotel_id: int,
        *,
        name: str | None = None,
        city: str | None = None,
        category: HotelCategory | None = None,
        total_capacity: int | None = None,
        allow_mixed_groups: bool | None = None,
    ) -> Hotel:
        if total_capacity is not None and total_capacity < 0:
            raise ConfigError("total_capacity must be >= 0")
        with self._locks.hold([hotel_key(hotel_id)]):
            try:
                with self._repository.transaction() as conn:
                    current = self.get_hotel(hotel_id, conn)
                    new_capacity = (
                        current.total_capacity if total_capacity is None else total_capacity
                    )
                    self._repository.update_hotel(
                        conn,
                        hotel_id,
                        name=current.name if name is None else name.strip(),
                        city=current.city if city is None else city,
                        category=current.category if category is None else category,
                        total_capacity=new_capacity,
                        allow_mixed_groups=(
                            current.allow_mixed_groups
                            if allow_mixed_groups is None
                            else allow_mixed_groups
                        ),
                    )
            except sqlite3.IntegrityError as exc:
                raise DuplicateResourceError(f"Hotel name '{name}' is already used") from exc

        if new_capacity < current.occupancy:
            logger.warning(
                "Hotel capacity lowered below occupancy | %s",
                log_fields(
                    hotel_id=hotel_id,
                    total_capacity=new_capacity,
                    occupancy=current.occupancy,
                ),
            )
        logger.info("Hotel updated | %s", log_fields(hotel_id=hotel_id))
        return self.get_hotel(hotel_id)

    def get_hotel(self, hotel_id: int, conn: Optional[sqlite3.Connection] = None) -> Hotel:
        hotel = self._repository.get_hotel(hotel_id, conn)
        if hotel is None:
            raise HotelNotFoundError(f"Hotel {hotel_id} not found")
        return hotel

    def list_hotels(self, event_id: int) -> list[Hotel]:
        self.get_event(event_id)
        return self._repository.list_hotels(event_id)

    # --- Logical rooms ---

    def create_logical_room(
        self,
        hotel_id: int,
        room_type: RoomType,
        bed_count: int,
        max_capacity: int | None = None,
        label: str | None = None,
    ) -> LogicalRoom:
        if not 1 <= bed_count <= self._settings.max_bed_count:
            raise ConfigError(f"bed_count must be between 1 and {self._settings.max_bed_count}")
        capacity = bed_count if max_capacity is None else max_capacity
        if capacity < 1:
            raise ConfigError("max_capacity must be >= 1")

        with self._locks.hold([hotel_key(hotel_id)]):
            try:
                with self._repository.transaction() as conn:
                    hotel = self.get_hotel(hotel_id, conn)
                    existing = self._repository.count_logical_rooms(conn, hotel_id)
                    if existing >= self._settings.max_logical_rooms_per_hotel:
                        raise ConfigError(
                            f"Hotel {hotel_id} already has {existing} logical rooms"
                        )
                    room_id = self._repository.create_logical_room(
                        conn,
                        hotel_id=hotel_id,
                        event_id=hotel.event_id,
                        label=label or f"room_{existing + 1}",
                        room_type=room_type,
                        bed_count=bed_count,
                        max_capacity=capacity,
                    )
            except sqlite3.IntegrityError as exc:
                raise DuplicateResourceError(
                    f"Room label '{label}' already exists in hotel {hotel_id}"
                ) from exc
        logger.info(
            "Logical room created | %s",
            log_fields(
                hotel_id=hotel_id,
                room_id=room_id,
                room_type=room_type.value,
                bed_count=bed_count,
            ),
        )
        return self.get_logical_room(room_id)

    def get_logical_room(
        self,
        room_id: int,
        conn: Optional[sqlite3.Connection] = None,
    ) -> LogicalRoom:
        room = self._repository.get_logical_room(room_id, conn)
        if room is None:
            raise RoomNotFoundError(f"Logical room {room_id} not found")
        return room

    def list_logical_rooms(self, hotel_id: int) -> list[LogicalRoom]:
        self.get_hotel(hotel_id)
        return self._repository.list_logical_rooms(hotel_id)

    def available_rooms_by_type(
        self,
        hotel_id: int,
        room_type: RoomType | None = None,
    ) -> list[LogicalRoom]:
        return [
            room
            for room in self.list_logical_rooms(hotel_id)
            if not room.is_fully_occupied
            and (room_type is None or room.room_type == room_type)
        ]

    def set_real_room_number(self, room_id: int, real_room_number: str) -> LogicalRoom:
        number = real_room_number.strip()
        if not number:
            raise ConfigError("real_room_number must be non-empty")
        room = self.get_logical_room(room_id)
        with self._locks.hold([hotel_key(room.hotel_id)]):
            with self._repository.transaction() as conn:
                bound_to = self._repository.find_room_by_real_number(conn, room.hotel_id, number)
                if bound_to is not None and bound_to != room_id:
                    raise DuplicateResourceError(
                        f"Room number {number} is already bound to room {bound_to}"
                    )
                self._repository.set_real_room_number(conn, room_id, number)
        logger.info(
            "Real room number bound | %s",
            log_fields(hotel_id=room.hotel_id, room_id=room_id, real_room_number=number),
        )
        return self.get_logical_room(room_id)

    # --- Room-type quotas ---

    def create_event_hotel_assignment(
        self,
        event_id: int,
        hotel_id: int,
        available_rooms: Iterable[Mapping[str, Any] | RoomTier],
        notes: str = "",
    ) -> EventHotelAssignment:
        tiers = parse_room_tiers(available_rooms, max_bed_count=self._settings.max_bed_count)
        with self._repository.transaction() as conn:
            self.get_event(event_id, conn)
            hotel = self.get_hotel(hotel_id, conn)
            if hotel.event_id != event_id:
                raise CrossScopeMismatchError(
                    f"Hotel {hotel_id} does not belong to event {event_id}"
                )
            if self._repository.find_event_hotel_assignment(event_id, hotel_id, conn):
                raise DuplicateAssignmentError(
                    f"Hotel {hotel_id} is already assigned to event {event_id}"
                )
            assignment_id = self._repository.create_event_hotel_assignment(
                conn,
                event_id=event_id,
                hotel_id=hotel_id,
                tiers=tiers,
                notes=notes,
            )
        totals = recompute_totals(tiers)
        logger.info(
            "Room-type quota created | %s",
            log_fields(
                assignment_id=assignment_id,
                event_id=event_id,
                hotel_id=hotel_id,
                total_capacity=totals.total_capacity,
            ),
        )
        return self.get_event_hotel_assignment(assignment_id)

    def get_event_hotel_assignment(
        self,
        assignment_id: int,
        conn: Optional[sqlite3.Connection] = None,
    ) -> EventHotelAssignment:
        assignment = self._repository.get_event_hotel_assignment(assignment_id, conn)
        if assignment is None:
            raise EventHotelAssignmentNotFoundError(
                f"Event hotel assignment {assignment_id} not found"
            )
        return assignment

    def find_event_hotel_assignment(
        self,
        event_id: int,
        hotel_id: int,
        conn: Optional[sqlite3.Connection] = None,
    ) -> Optional[EventHotelAssignment]:
        return self._repository.find_event_hotel_assignment(event_id, hotel_id, conn)

    def list_event_hotel_assignments(self, event_id: int) -> list[EventHotelAssignment]:
        self.get_event(event_id)
        return self._repository.list_event_hotel_assignments(event_id)

    def summarize_event_hotel_assignments(self, event_id: int) -> dict[str, Any]:
        assignments = self.list_event_hotel_assignments(event_id)
        total_capacity = sum(item.total_capacity for item in assignments)
        total_assigned = sum(item.total_assigned for item in assignments)
        return {
            "total_hotels": len(assignments),
            "total_capacity": total_capacity,
            "total_assigned": total_assigned,
            "available_capacity": total_capacity - total_assigned,
            "occupancy_rate": (
                round(total_assigned / total_capacity * 100.0, 2) if total_capacity > 0 else 0.0
            ),
        }

    def update_event_hotel_assignment(
        self,
        assignment_id: int,
        *,
        available_rooms: Iterable[Mapping[str, Any] | RoomTier] | None = None,
        notes: str | None = None,
        suspended: bool | None = None,
    ) -> EventHotelAssignment:
        tiers = (
            parse_room_tiers(available_rooms, max_bed_count=self._settings.max_bed_count)
            if available_rooms is not None
            else None
        )
        with self._repository.transaction() as conn:
            current = self.get_event_hotel_assignment(assignment_id, conn)
            if tiers is not None:
                self._repository.replace_room_tiers(conn, assignment_id, tiers)
            self._repository.update_event_hotel_assignment_meta(
                conn,
                assignment_id,
                suspended=current.suspended if suspended is None else suspended,
                notes=current.notes if notes is None else notes,
            )
        logger.info(
            "Room-type quota updated | %s",
            log_fields(assignment_id=assignment_id, suspended=suspended),
        )
        return self.get_event_hotel_assignment(assignment_id)

    def delete_event_hotel_assignment(self, assignment_id: int) -> None:
        with self._repository.transaction() as conn:
            self.get_event_hotel_assignment(assignment_id, conn)
            self._repository.delete_event_hotel_assignment(conn, assignment_id)
        logger.info("Room-type quota deleted | %s", log_fields(assignment_id=assignment_id))

    def reserve_rooms_of_type(
        self,
        assignment_id: int,
        bed_count: int,
        rooms_needed: int,
        conn: Optional[sqlite3.Connection] = None,
    ) -> EventHotelAssignment:
        """Take `rooms_needed` rooms out of one tier, all or nothing.

        With `conn` the reservation joins the caller's transaction, so a
        bulk placement and its quota either both commit or both roll back.
        """
        if rooms_needed <= 0:
            raise ConfigError("rooms_needed must be > 0")
        if conn is None:
            with self._repository.transaction() as owned:
                self._reserve(owned, assignment_id, bed_count, rooms_needed)
        else:
            self._reserve(conn, assignment_id, bed_count, rooms_needed)
        return self.get_event_hotel_assignment(assignment_id, conn)

    def _reserve(
        self,
        conn: sqlite3.Connection,
        assignment_id: int,
        bed_count: int,
        rooms_needed: int,
    ) -> None:
        assignment = self.get_event_hotel_assignment(assignment_id, conn)
        if assignment.suspended:
            raise ConfigError(f"Event hotel assignment {assignment_id} is suspended")
        tier = next(
            (item for item in assignment.available_rooms if item.bed_count == bed_count),
            None,
        )
        if tier is None:
            raise ConfigError(f"No room type with {bed_count} beds on assignment {assignment_id}")
        if rooms_needed > tier.available_rooms:
            raise InsufficientRoomSupplyError(
                f"Only {tier.available_rooms} rooms of {bed_count} beds available, "
                f"{rooms_needed} requested"
            )
        self._repository.update_tier_assigned_rooms(
            conn,
            assignment_id,
            bed_count,
            tier.assigned_rooms + rooms_needed,
        )
        logger.info(
            "Rooms reserved | %s",
            log_fields(
                assignment_id=assignment_id,
                bed_count=bed_count,
                rooms=rooms_needed,
                remaining=tier.available_rooms - rooms_needed,
            ),
        )

    def release_rooms_of_type(
        self,
        assignment_id: int,
        bed_count: int,
        rooms: int,
    ) -> EventHotelAssignment:
        if rooms <= 0:
            raise ConfigError("rooms must be > 0")
        with self._repository.transaction() as conn:
            assignment = self.get_event_hotel_assignment(assignment_id, conn)
            tier = next(
                (item for item in assignment.available_rooms if item.bed_count == bed_count),
                None,
            )
            if tier is None:
                raise ConfigError(
                    f"No room type with {bed_count} beds on assignment {assignment_id}"
                )
            released = min(rooms, tier.assigned_rooms)
            self._repository.update_tier_assigned_rooms(
                conn,
                assignment_id,
                bed_count,
                tier.assigned_rooms - released,
            )
        logger.info(
            "Rooms released | %s",
            log_fields(assignment_id=assignment_id, bed_count=bed_count, rooms=released),
        )
        return self.get_event_hotel_assignment(assignment_id)
