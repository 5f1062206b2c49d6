"""Hotel and logical-room capacity bookkeeping.

Occupancy is never stored: it is the number of roster rows, recounted inside
the caller's transaction right before any insert. `apply_delta` and `exchange`
are the only code paths that write roster rows.
"""

from __future__ import annotations

import sqlite3
from typing import Optional, Sequence

from lodging.domain.errors import (
    CapacityExceededError,
    HotelNotFoundError,
    IntegrityViolationError,
    RoomFullError,
)
from lodging.domain.models import AssignmentType, Hotel, LogicalRoom, RosterEntry
from lodging.repository.data_repository import DataRepository, utc_now_iso
from lodging.utils.logger import get_logger, log_fields


logger = get_logger(__name__)


class CapacityLedger:
    def __init__(self, repository: DataRepository) -> None:
        self._repository = repository

    @staticmethod
    def available_capacity(hotel: Hotel) -> int:
        return hotel.total_capacity - hotel.occupancy

    def can_accommodate(self, hotel: Hotel, count: int) -> bool:
        return self.available_capacity(hotel) >= count

    def apply_delta(
        self,
        conn: sqlite3.Connection,
        hotel_id: int,
        *,
        added: Sequence[int] = (),
        removed: Sequence[int] = (),
        assigned_by: str = "system",
        assignment_type: AssignmentType = AssignmentType.MANUAL,
        full_error: type[CapacityExceededError] = CapacityExceededError,
    ) -> list[RosterEntry]:
        """Remove then add roster rows for one hotel inside `conn`.

        Raises `full_error` before touching anything when the additions would
        push occupancy past `total_capacity`. A delta that does not grow the
        roster is never refused, even in a hotel already over capacity.
        """
        hotel = self._repository.get_hotel(hotel_id, conn)
        if hotel is None:
            raise HotelNotFoundError(f"Hotel {hotel_id} not found")

        if len(added) > len(removed):
            occupancy = self._repository.count_occupancy(conn, hotel_id)
            leaving = len(removed)
            projected = occupancy - leaving + len(added)
            if projected > hotel.total_capacity:
                available = max(0, hotel.total_capacity - occupancy + leaving)
                raise full_error(
                    f"Hotel {hotel.name} has {available} free beds, "
                    f"{len(added)} requested"
                )

        removed_count = self._repository.delete_roster_entries(
            conn,
            hotel_id=hotel_id,
            client_ids=list(removed),
        )
        entries: list[RosterEntry] = []
        if added:
            entries = self._repository.insert_roster_entries(
                conn,
                hotel_id=hotel_id,
                client_ids=list(added),
                assigned_at=utc_now_iso(),
                assigned_by=assigned_by,
                assignment_type=assignment_type,
            )
        logger.debug(
            "Roster delta applied | %s",
            log_fields(hotel_id=hotel_id, added=len(entries), removed=removed_count),
        )
        return entries

    def exchange(
        self,
        conn: sqlite3.Connection,
        first: tuple[int, int],
        second: tuple[int, int],
        *,
        assigned_by: str = "system",
        assignment_type: AssignmentType = AssignmentType.MANUAL,
    ) -> tuple[RosterEntry, RosterEntry]:
        """Trade the roster rows of two `(client_id, hotel_id)` pairs.

        Each hotel keeps its head count, so no capacity check applies. Both
        rows are deleted before either insert because a client may only
        appear once in the roster.
        """
        (first_client, first_hotel), (second_client, second_hotel) = first, second
        for hotel_id in (first_hotel, second_hotel):
            if self._repository.get_hotel(hotel_id, conn) is None:
                raise HotelNotFoundError(f"Hotel {hotel_id} not found")

        self._repository.delete_roster_entries(
            conn, hotel_id=first_hotel, client_ids=[first_client]
        )
        self._repository.delete_roster_entries(
            conn, hotel_id=second_hotel, client_ids=[second_client]
        )
        assigned_at = utc_now_iso()
        (into_second,) = self._repository.insert_roster_entries(
            conn,
            hotel_id=second_hotel,
            client_ids=[first_client],
            assigned_at=assigned_at,
            assigned_by=assigned_by,
            assignment_type=assignment_type,
        )
        (into_first,) = self._repository.insert_roster_entries(
            conn,
            hotel_id=first_hotel,
            client_ids=[second_client],
            assigned_at=assigned_at,
            assigned_by=assigned_by,
            assignment_type=assignment_type,
        )
        logger.debug(
            "Roster rows exchanged | %s",
            log_fields(
                first_client=first_client,
                first_hotel=first_hotel,
                second_client=second_client,
                second_hotel=second_hotel,
            ),
        )
        return into_second, into_first

    def verify_invariant(self, hotel_ids: Sequence[int]) -> None:
        """Re-read committed occupancy of hotels that just received clients."""
        for hotel_id in hotel_ids:
            hotel = self._repository.get_hotel(hotel_id)
            if hotel is not None and hotel.occupancy > hotel.total_capacity:
                logger.error(
                    "Capacity invariant broken after commit | %s",
                    log_fields(
                        hotel_id=hotel_id,
                        occupancy=hotel.occupancy,
                        total_capacity=hotel.total_capacity,
                    ),
                )
                raise IntegrityViolationError(
                    f"Hotel {hotel_id} holds {hotel.occupancy} clients "
                    f"for {hotel.total_capacity} beds"
                )

    @staticmethod
    def room_available_beds(room: LogicalRoom) -> int:
        return room.available_beds

    def next_free_beds(
        self,
        conn: sqlite3.Connection,
        room: LogicalRoom,
        count: int,
        taken: Optional[set[int]] = None,
    ) -> list[int]:
        """Lowest free bed numbers in `room`; `RoomFullError` if there are too few."""
        occupied = self._repository.occupied_beds(conn, room.room_id) | (taken or set())
        free = [bed for bed in range(1, room.max_capacity + 1) if bed not in occupied]
        if len(free) < count:
            raise RoomFullError(
                f"Room {room.label} has {len(free)} free beds, {count} requested"
            )
        return free[:count]
