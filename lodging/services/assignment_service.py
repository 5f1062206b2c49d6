"""Assignment engine: manual, bulk, automatic, move, swap, unassign, clear, validate."""

from __future__ import annotations

import math
import sqlite3
from collections import OrderedDict
from typing import Iterable, Optional, Sequence

from lodging.domain.constraints import (
    AutoAssignConfig,
    is_room_type_compatible,
    room_type_for_batch,
    sort_by_priority,
    validate_auto_assign_config,
)
from lodging.domain.errors import (
    AlreadyAssignedError,
    CapacityExceededError,
    ClientNotFoundError,
    ConfigError,
    CrossScopeMismatchError,
    DestinationFullError,
    HotelFullError,
    InsufficientCapacityError,
    IntegrityViolationError,
    LodgingError,
    NotAssignedError,
    PartialEligibilityError,
    StaleAssignmentError,
)
from lodging.domain.models import (
    AssignmentType,
    AutoAssignResult,
    BulkAssignResult,
    ClearResult,
    Client,
    ClientStatus,
    Event,
    GroupReport,
    Hotel,
    LogicalRoom,
    ManualAssignResult,
    MoveResult,
    Placement,
    PlacementError,
    SwapResult,
    SwappedClient,
    UnassignResult,
    ValidationIssue,
    ValidationReport,
)
from lodging.repository.data_repository import DataRepository
from lodging.services.capacity_ledger import CapacityLedger
from lodging.services.client_registry import ClientRegistry
from lodging.services.hooks import AssignmentChange, HookDispatcher
from lodging.services.inventory_service import InventoryService
from lodging.services.locking import LockKey, LockRegistry, client_key, hotel_key
from lodging.utils.config import Settings, get_settings
from lodging.utils.logger import get_logger, log_fields


logger = get_logger(__name__)

ERROR_MIXED_GROUP_NO_VIP_HOTEL = "MIXED_GROUP_NO_VIP_HOTEL"
ERROR_GROUP_NO_CAPACITY = "GROUP_NO_CAPACITY"
ERROR_NO_CAPACITY = "NO_CAPACITY"

ISSUE_OVERCAPACITY = "OVERCAPACITY"
ISSUE_MIXED_GROUP_NOT_VIP = "MIXED_GROUP_NOT_VIP"
ISSUE_GROUP_SEPARATED = "GROUP_SEPARATED"
ISSUE_UNASSIGNED_CLIENTS = "UNASSIGNED_CLIENTS"
ISSUE_ROOM_TYPE_MISMATCH = "ROOM_TYPE_MISMATCH"


def _check_scope(event_id: int, client: Client | None = None, hotel: Hotel | None = None) -> None:
    if client is not None and client.event_id != event_id:
        raise CrossScopeMismatchError(
            f"Client {client.client_id} does not belong to event {event_id}"
        )
    if hotel is not None and hotel.event_id != event_id:
        raise CrossScopeMismatchError(
            f"Hotel {hotel.hotel_id} does not belong to event {event_id}"
        )


class AssignmentEngine:
    """Places clients into hotels while keeping occupancy within capacity.

    Every mutation runs under the hotel/client locks it touches and inside a
    single `BEGIN IMMEDIATE` transaction. Capacity is recounted inside that
    transaction by the ledger, never trusted from an earlier read.
    """

    def __init__(
        self,
        repository: DataRepository,
        inventory: InventoryService,
        registry: ClientRegistry,
        ledger: CapacityLedger,
        locks: LockRegistry,
        hooks: HookDispatcher,
        settings: Optional[Settings] = None,
    ) -> None:
        self._repository = repository
        self._inventory = inventory
        self._registry = registry
        self._ledger = ledger
        self._locks = locks
        self._hooks = hooks
        self._settings = settings or get_settings()

    def _operator(self, assigned_by: str | None) -> str:
        return assigned_by or self._settings.default_operator

    def _after_commit(
        self,
        operation: str,
        event_id: int,
        hotel_ids: Iterable[int] = (),
        client_ids: Iterable[int] = (),
        filled_hotel_ids: Sequence[int] = (),
    ) -> None:
        self._ledger.verify_invariant(filled_hotel_ids)
        self._hooks.dispatch(
            AssignmentChange(
                operation=operation,
                event_id=event_id,
                hotel_ids=tuple(sorted(set(hotel_ids))),
                client_ids=tuple(client_ids),
            )
        )

    # --- Manual ---

    def manual_assign(
        self,
        client_id: int,
        hotel_id: int,
        event_id: int,
        room_preference: int | None = None,
        assigned_by: str | None = None,
    ) -> ManualAssignResult:
        operator = self._operator(assigned_by)
        with self._locks.hold([hotel_key(hotel_id), client_key(client_id)]):
            with self._repository.transaction() as conn:
                self._inventory.get_event(event_id, conn)
                client = self._registry.get_client(client_id, conn)
                hotel = self._inventory.get_hotel(hotel_id, conn)
                _check_scope(event_id, client=client, hotel=hotel)
                if client.is_assigned:
                    raise AlreadyAssignedError(
                        f"Client {client.full_name} is already assigned to hotel "
                        f"{client.assigned_hotel_id}"
                    )

                room: LogicalRoom | None = None
                bed_number: int | None = None
                if room_preference is not None:
                    room = self._inventory.get_logical_room(room_preference, conn)
                    if room.hotel_id != hotel_id:
                        raise CrossScopeMismatchError(
                            f"Room {room_preference} does not belong to hotel {hotel_id}"
                        )
                    bed_number = self._ledger.next_free_beds(conn, room, 1)[0]

                entries = self._ledger.apply_delta(
                    conn,
                    hotel_id,
                    added=[client_id],
                    assigned_by=operator,
                    assignment_type=AssignmentType.MANUAL,
                    full_error=HotelFullError,
                )
                updated = self._registry.set_assignment(
                    conn,
                    client_id,
                    hotel_id,
                    assigned_by=operator,
                    assignment_type=AssignmentType.MANUAL,
                    logical_room_id=room.room_id if room else None,
                    bed_number=bed_number,
                    real_room_number=room.real_room_number if room else None,
                    assignment_date=entries[0].assigned_at,
                )

        logger.info(
            "Manual assignment committed | %s",
            log_fields(
                event_id=event_id,
                client_id=client_id,
                hotel_id=hotel_id,
                room_id=room_preference,
                bed=bed_number,
                by=operator,
            ),
        )
        self._after_commit(
            "manual_assign",
            event_id,
            hotel_ids=[hotel_id],
            client_ids=[client_id],
            filled_hotel_ids=[hotel_id],
        )
        return ManualAssignResult(
            client=updated,
            hotel=self._inventory.get_hotel(hotel_id),
            assignment=entries[0],
        )

    # --- Bulk ---

    def bulk_assign(
        self,
        client_ids: Sequence[int],
        hotel_id: int,
        event_id: int,
        bed_count: int | None = None,
        assigned_by: str | None = None,
    ) -> BulkAssignResult:
        """Assign every listed client to one hotel, or none of them."""
        if not client_ids:
            raise ConfigError("client_ids must not be empty")
        if bed_count is not None and bed_count < 1:
            raise ConfigError("bed_count must be >= 1")
        operator = self._operator(assigned_by)
        keys: list[LockKey] = [hotel_key(hotel_id)]
        keys.extend(client_key(client_id) for client_id in client_ids)
        reserved_rooms = 0

        with self._locks.hold(keys):
            with self._repository.transaction() as conn:
                self._inventory.get_event(event_id, conn)
                hotel = self._inventory.get_hotel(hotel_id, conn)
                _check_scope(event_id, hotel=hotel)
                clients = self._eligible_batch(conn, client_ids, event_id)

                entries = self._ledger.apply_delta(
                    conn,
                    hotel_id,
                    added=[client.client_id for client in clients],
                    assigned_by=operator,
                    assignment_type=AssignmentType.BULK,
                    full_error=InsufficientCapacityError,
                )
                if bed_count is not None:
                    quota = self._inventory.find_event_hotel_assignment(event_id, hotel_id, conn)
                    if quota is None:
                        raise ConfigError(
                            f"Hotel {hotel_id} has no room-type quota for event {event_id}"
                        )
                    reserved_rooms = math.ceil(len(clients) / bed_count)
                    self._inventory.reserve_rooms_of_type(
                        quota.assignment_id,
                        bed_count,
                        reserved_rooms,
                        conn=conn,
                    )
                for client, entry in zip(clients, entries):
                    self._registry.set_assignment(
                        conn,
                        client.client_id,
                        hotel_id,
                        assigned_by=operator,
                        assignment_type=AssignmentType.BULK,
                        assignment_date=entry.assigned_at,
                    )

        logger.info(
            "Bulk assignment committed | %s",
            log_fields(
                event_id=event_id,
                hotel_id=hotel_id,
                clients=len(entries),
                reserved_rooms=reserved_rooms or None,
                by=operator,
            ),
        )
        self._after_commit(
            "bulk_assign",
            event_id,
            hotel_ids=[hotel_id],
            client_ids=client_ids,
            filled_hotel_ids=[hotel_id],
        )
        return BulkAssignResult(
            assigned_count=len(entries),
            hotel=self._inventory.get_hotel(hotel_id),
            assignments=entries,
            reserved_rooms=reserved_rooms,
        )

    def _eligible_batch(
        self,
        conn: sqlite3.Connection,
        client_ids: Sequence[int],
        event_id: int,
    ) -> list[Client]:
        found = self._repository.get_clients(client_ids, conn)
        ineligible: list[int] = []
        seen: set[int] = set()
        for client_id in client_ids:
            client = found.get(client_id)
            if (
                client is None
                or client_id in seen
                or client.event_id != event_id
                or client.is_assigned
            ):
                ineligible.append(client_id)
            seen.add(client_id)
        if ineligible:
            raise PartialEligibilityError(
                f"{len(ineligible)} of {len(client_ids)} clients cannot be assigned",
                ineligible_client_ids=ineligible,
            )
        return [found[client_id] for client_id in client_ids]

    # --- Automatic ---

    def auto_assign(
        self,
        event_id: int,
        prioritize_vip: bool | None = None,
        respect_groups_integrity: bool | None = None,
        allow_mixed_groups: bool | None = None,
        hotel_order: Sequence[int] | None = None,
        assigned_by: str | None = None,
    ) -> AutoAssignResult:
        """Place every unassigned client of the event, first-fit over hotels.

        Groups go before solos and are placed whole; a group or client that
        cannot be placed becomes an entry in `errors` and the run continues.
        """
        event = self._inventory.get_event(event_id)
        config = AutoAssignConfig(
            prioritize_vip=(
                self._settings.auto_assign_prioritize_vip
                if prioritize_vip is None
                else prioritize_vip
            ),
            respect_groups_integrity=(
                self._settings.auto_assign_respect_groups_integrity
                if respect_groups_integrity is None
                else respect_groups_integrity
            ),
            allow_mixed_groups=(
                event.allow_mixed_groups if allow_mixed_groups is None else allow_mixed_groups
            ),
            hotel_order=tuple(hotel_order) if hotel_order is not None else None,
        )
        validate_auto_assign_config(config)
        operator = self._operator(assigned_by)
        hotel_ids = self._hotel_sequence(event, config.hotel_order)

        clients = self._registry.list_unassigned(event_id)
        if config.prioritize_vip:
            clients = sort_by_priority(clients)

        groups: "OrderedDict[str, list[Client]]" = OrderedDict()
        solos: list[Client] = []
        for client in clients:
            if config.respect_groups_integrity and client.group_name:
                groups.setdefault(client.group_name, []).append(client)
            else:
                solos.append(client)

        placements: list[Placement] = []
        errors: list[PlacementError] = []

        for group_name, members in groups.items():
            report = GroupReport(event_id=event_id, group_name=group_name, members=tuple(members))
            mixed_only = report.is_mixed and not config.allow_mixed_groups
            try:
                placement = self._place_batch(
                    event_id,
                    hotel_ids,
                    members,
                    operator,
                    mixed_only=mixed_only,
                    group_name=group_name,
                    is_mixed=report.is_mixed,
                )
            except IntegrityViolationError:
                raise
            except LodgingError as exc:
                errors.append(self._placement_error(exc.error_type, exc.message, members, group_name))
                continue
            if placement is not None:
                placements.append(placement)
                continue
            if mixed_only:
                error_type = ERROR_MIXED_GROUP_NO_VIP_HOTEL
                message = (
                    f"Mixed group {group_name} ({report.size} members) needs a VIP or "
                    "mixed-friendly hotel with enough free beds"
                )
            else:
                error_type = ERROR_GROUP_NO_CAPACITY
                message = f"No hotel has {report.size} free beds for group {group_name}"
            errors.append(self._placement_error(error_type, message, members, group_name))

        for client in solos:
            try:
                placement = self._place_batch(event_id, hotel_ids, [client], operator)
            except IntegrityViolationError:
                raise
            except LodgingError as exc:
                errors.append(self._placement_error(exc.error_type, exc.message, [client]))
                continue
            if placement is not None:
                placements.append(placement)
            else:
                errors.append(
                    self._placement_error(
                        ERROR_NO_CAPACITY,
                        f"No hotel has a free bed for {client.full_name}",
                        [client],
                    )
                )

        assigned_count = sum(placement.member_count for placement in placements)
        logger.info(
            "Automatic assignment finished | %s",
            log_fields(
                event_id=event_id,
                assigned=assigned_count,
                total=len(clients),
                placements=len(placements),
                errors=len(errors),
            ),
        )
        if placements:
            self._hooks.dispatch(
                AssignmentChange(
                    operation="auto_assign",
                    event_id=event_id,
                    hotel_ids=tuple(sorted({p.hotel_id for p in placements})),
                    client_ids=tuple(cid for p in placements for cid in p.client_ids),
                )
            )
        return AutoAssignResult(
            assigned_count=assigned_count,
            total_clients=len(clients),
            assignments=placements,
            errors=errors,
        )

    @staticmethod
    def _placement_error(
        error_type: str,
        message: str,
        members: Sequence[Client],
        group_name: str | None = None,
    ) -> PlacementError:
        logger.warning(
            "Placement skipped | %s",
            log_fields(type=error_type, group=group_name, clients=len(members)),
        )
        return PlacementError(
            error_type=error_type,
            message=message,
            client_ids=tuple(member.client_id for member in members),
            group_name=group_name,
        )

    def _hotel_sequence(self, event: Event, hotel_order: Optional[tuple[int, ...]]) -> list[int]:
        event_hotels = [hotel.hotel_id for hotel in self._repository.list_hotels(event.event_id)]
        if hotel_order is None:
            return event_hotels
        unknown = [hotel_id for hotel_id in hotel_order if hotel_id not in event_hotels]
        if unknown:
            raise CrossScopeMismatchError(
                f"Hotels {unknown} do not belong to event {event.event_id}"
            )
        return list(hotel_order)

    def _place_batch(
        self,
        event_id: int,
        hotel_ids: Sequence[int],
        members: Sequence[Client],
        operator: str,
        *,
        mixed_only: bool = False,
        group_name: str | None = None,
        is_mixed: bool = False,
    ) -> Placement | None:
        """Commit `members` into the first hotel that fits them all; None if none does."""
        size = len(members)
        member_ids = [member.client_id for member in members]
        for hotel_id in hotel_ids:
            hotel = self._repository.get_hotel(hotel_id)
            if hotel is None:
                continue
            if mixed_only and not hotel.accepts_mixed_groups:
                continue
            if not self._ledger.can_accommodate(hotel, size):
                continue

            keys = [hotel_key(hotel_id)] + [client_key(cid) for cid in member_ids]
            try:
                with self._locks.hold(keys):
                    with self._repository.transaction() as conn:
                        room = self._seat_room(conn, hotel_id, members)
                        placement = self._commit_batch(
                            conn, hotel, members, operator, room, group_name, is_mixed
                        )
            except CapacityExceededError:
                # Filled by a concurrent writer since the pre-read; try the next hotel.
                continue
            self._ledger.verify_invariant([hotel_id])
            return placement
        return None

    def _seat_room(
        self,
        conn: sqlite3.Connection,
        hotel_id: int,
        members: Sequence[Client],
    ) -> LogicalRoom | None:
        wanted = room_type_for_batch(members)
        for room in self._repository.list_logical_rooms(hotel_id, conn):
            if room.room_type == wanted and room.available_beds >= len(members):
                return room
        return None

    def _commit_batch(
        self,
        conn: sqlite3.Connection,
        hotel: Hotel,
        members: Sequence[Client],
        operator: str,
        room: LogicalRoom | None,
        group_name: str | None,
        is_mixed: bool,
    ) -> Placement:
        member_ids = [member.client_id for member in members]
        current = self._repository.get_clients(member_ids, conn)
        still_free = [
            cid for cid in member_ids if cid in current and not current[cid].is_assigned
        ]
        if len(still_free) != len(member_ids):
            raise StaleAssignmentError(
                "Clients changed while the automatic assignment was running"
            )

        beds = self._ledger.next_free_beds(conn, room, len(members)) if room else []
        entries = self._ledger.apply_delta(
            conn,
            hotel.hotel_id,
            added=member_ids,
            assigned_by=operator,
            assignment_type=AssignmentType.AUTO,
            full_error=HotelFullError,
        )
        for index, (client_id, entry) in enumerate(zip(member_ids, entries)):
            self._registry.set_assignment(
                conn,
                client_id,
                hotel.hotel_id,
                assigned_by=operator,
                assignment_type=AssignmentType.AUTO,
                logical_room_id=room.room_id if room else None,
                bed_number=beds[index] if room else None,
                real_room_number=room.real_room_number if room else None,
                assignment_date=entry.assigned_at,
            )
        logger.info(
            "Automatic placement committed | %s",
            log_fields(
                hotel_id=hotel.hotel_id,
                group=group_name,
                clients=len(member_ids),
                room_id=room.room_id if room else None,
                mixed=is_mixed if group_name else None,
            ),
        )
        return Placement(
            hotel_id=hotel.hotel_id,
            hotel_name=hotel.name,
            client_ids=tuple(member_ids),
            assignment_type=AssignmentType.AUTO,
            group_name=group_name,
            is_mixed=is_mixed,
            logical_room_id=room.room_id if room else None,
        )

    # --- Move / swap ---

    def move_client(
        self,
        client_id: int,
        from_hotel_id: int,
        to_hotel_id: int,
        event_id: int,
        assigned_by: str | None = None,
    ) -> MoveResult:
        """Move one client between hotels without re-running group rules.

        Logical room, bed and real room number are cleared on the way out;
        cohesion problems come back as warnings.
        """
        if from_hotel_id == to_hotel_id:
            raise ConfigError("Source and destination hotel are the same")
        operator = self._operator(assigned_by)
        keys = [client_key(client_id), hotel_key(from_hotel_id), hotel_key(to_hotel_id)]

        with self._locks.hold(keys):
            with self._repository.transaction() as conn:
                self._inventory.get_event(event_id, conn)
                client = self._registry.get_client(client_id, conn)
                from_hotel = self._inventory.get_hotel(from_hotel_id, conn)
                to_hotel = self._inventory.get_hotel(to_hotel_id, conn)
                _check_scope(event_id, client=client, hotel=from_hotel)
                _check_scope(event_id, hotel=to_hotel)
                if client.assigned_hotel_id != from_hotel_id:
                    raise NotAssignedError(
                        f"Client {client.full_name} is not assigned to hotel {from_hotel.name}"
                    )

                self._ledger.apply_delta(conn, from_hotel_id, removed=[client_id])
                self._ledger.apply_delta(
                    conn,
                    to_hotel_id,
                    added=[client_id],
                    assigned_by=operator,
                    assignment_type=AssignmentType.MANUAL,
                    full_error=DestinationFullError,
                )
                moved = self._registry.repoint(
                    conn,
                    client_id,
                    to_hotel_id,
                    assigned_by=operator,
                    assignment_type=AssignmentType.MANUAL,
                )

        logger.info(
            "Client moved | %s",
            log_fields(
                event_id=event_id,
                client_id=client_id,
                from_hotel=from_hotel_id,
                to_hotel=to_hotel_id,
                by=operator,
            ),
        )
        self._after_commit(
            "move",
            event_id,
            hotel_ids=[from_hotel_id, to_hotel_id],
            client_ids=[client_id],
            filled_hotel_ids=[to_hotel_id],
        )
        return MoveResult(
            client=moved,
            from_hotel=self._inventory.get_hotel(from_hotel_id),
            to_hotel=self._inventory.get_hotel(to_hotel_id),
            warnings=self._cohesion_warnings(event_id, [moved]),
        )

    def swap_clients(
        self,
        client1_id: int,
        client2_id: int,
        event_id: int,
        assigned_by: str | None = None,
    ) -> SwapResult:
        if client1_id == client2_id:
            raise ConfigError("Cannot swap a client with itself")
        operator = self._operator(assigned_by)
        planned = [
            self._registry.get_client(client1_id),
            self._registry.get_client(client2_id),
        ]
        for client in planned:
            _check_scope(event_id, client=client)
            if not client.is_assigned:
                raise NotAssignedError(f"Client {client.full_name} is not assigned")
        keys = [client_key(client1_id), client_key(client2_id)]
        keys.extend(hotel_key(client.assigned_hotel_id) for client in planned)

        with self._locks.hold(keys):
            with self._repository.transaction() as conn:
                self._inventory.get_event(event_id, conn)
                first = self._registry.get_client(client1_id, conn)
                second = self._registry.get_client(client2_id, conn)
                for before, now in zip(planned, (first, second)):
                    if before.assigned_hotel_id != now.assigned_hotel_id:
                        raise StaleAssignmentError(
                            f"Client {now.client_id} was reassigned concurrently; retry the swap"
                        )
                hotel1 = first.assigned_hotel_id
                hotel2 = second.assigned_hotel_id

                if hotel1 != hotel2:
                    self._ledger.exchange(
                        conn,
                        (client1_id, hotel1),
                        (client2_id, hotel2),
                        assigned_by=operator,
                        assignment_type=AssignmentType.MANUAL,
                    )
                swapped1 = self._registry.repoint(
                    conn,
                    client1_id,
                    hotel2,
                    assigned_by=operator,
                    assignment_type=AssignmentType.MANUAL,
                    logical_room_id=second.logical_room_id,
                    bed_number=second.bed_number,
                    real_room_number=second.real_room_number,
                )
                swapped2 = self._registry.repoint(
                    conn,
                    client2_id,
                    hotel1,
                    assigned_by=operator,
                    assignment_type=AssignmentType.MANUAL,
                    logical_room_id=first.logical_room_id,
                    bed_number=first.bed_number,
                    real_room_number=first.real_room_number,
                )

        logger.info(
            "Clients swapped | %s",
            log_fields(
                event_id=event_id,
                client1=client1_id,
                client2=client2_id,
                hotel1=hotel1,
                hotel2=hotel2,
                by=operator,
            ),
        )
        self._after_commit(
            "swap",
            event_id,
            hotel_ids=[hotel1, hotel2],
            client_ids=[client1_id, client2_id],
        )
        return SwapResult(
            client1=SwappedClient(client=swapped1, new_hotel=self._inventory.get_hotel(hotel2)),
            client2=SwappedClient(client=swapped2, new_hotel=self._inventory.get_hotel(hotel1)),
            warnings=self._cohesion_warnings(event_id, [swapped1, swapped2], check_rooms=True),
        )

    def _cohesion_warnings(
        self,
        event_id: int,
        clients: Sequence[Client],
        check_rooms: bool = False,
    ) -> list[ValidationIssue]:
        event = self._inventory.get_event(event_id)
        warnings: list[ValidationIssue] = []
        seen_groups: set[str] = set()
        for client in clients:
            if check_rooms and client.logical_room_id is not None:
                room = self._repository.get_logical_room(client.logical_room_id)
                if room is not None and not is_room_type_compatible(room.room_type, client):
                    warnings.append(
                        ValidationIssue(
                            type=ISSUE_ROOM_TYPE_MISMATCH,
                            message=(
                                f"{client.full_name} now sits in {room.room_type.value} room "
                                f"{room.label}"
                            ),
                            hotel_id=room.hotel_id,
                            client_ids=(client.client_id,),
                        )
                    )
            if not client.group_name or client.group_name in seen_groups:
                continue
            seen_groups.add(client.group_name)
            report = self._registry.group_members(event_id, client.group_name)
            warnings.extend(self._group_issues(event, report))
        return warnings

    def _group_issues(self, event: Event, report: GroupReport) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        hotel_ids = report.hotel_ids
        if len(hotel_ids) > 1:
            issues.append(
                ValidationIssue(
                    type=ISSUE_GROUP_SEPARATED,
                    message=f"Group {report.group_name} is split across {len(hotel_ids)} hotels",
                    group_name=report.group_name,
                    client_ids=tuple(member.client_id for member in report.members),
                )
            )
        if report.is_mixed and not event.allow_mixed_groups:
            for hotel_id in hotel_ids:
                hotel = self._repository.get_hotel(hotel_id)
                if hotel is not None and not hotel.accepts_mixed_groups:
                    issues.append(
                        ValidationIssue(
                            type=ISSUE_MIXED_GROUP_NOT_VIP,
                            message=(
                                f"Mixed group {report.group_name} has members in "
                                f"non-VIP hotel {hotel.name}"
                            ),
                            hotel_id=hotel_id,
                            group_name=report.group_name,
                        )
                    )
        return issues

    # --- Unassign / clear ---

    def unassign_client(
        self,
        client_id: int,
        event_id: int,
        assigned_by: str | None = None,
    ) -> UnassignResult:
        planned = self._registry.get_client(client_id)
        if planned.event_id != event_id:
            raise ClientNotFoundError(f"Client {client_id} not found in event {event_id}")
        if planned.assigned_hotel_id is None:
            raise NotAssignedError(f"Client {planned.full_name} is not assigned")
        hotel_id = planned.assigned_hotel_id

        with self._locks.hold([client_key(client_id), hotel_key(hotel_id)]):
            with self._repository.transaction() as conn:
                client = self._registry.get_client(client_id, conn)
                if client.assigned_hotel_id != hotel_id:
                    raise StaleAssignmentError(
                        f"Client {client_id} was reassigned concurrently; retry the unassign"
                    )
                self._ledger.apply_delta(conn, hotel_id, removed=[client_id])
                cleared = self._registry.clear_assignment(conn, client_id)

        logger.info(
            "Client unassigned | %s",
            log_fields(
                event_id=event_id,
                client_id=client_id,
                hotel_id=hotel_id,
                by=self._operator(assigned_by),
            ),
        )
        self._after_commit("unassign", event_id, hotel_ids=[hotel_id], client_ids=[client_id])
        return UnassignResult(client=cleared, hotel=self._inventory.get_hotel(hotel_id))

    def clear_all(self, event_id: int, assigned_by: str | None = None) -> ClearResult:
        """Empty every roster of the event and revert its clients to Confirmed."""
        self._inventory.get_event(event_id)
        hotels = self._repository.list_hotels(event_id)
        cleared_hotels = 0
        with self._locks.hold(hotel_key(hotel.hotel_id) for hotel in hotels):
            with self._repository.transaction() as conn:
                for hotel in hotels:
                    roster = self._repository.list_roster(hotel.hotel_id, conn)
                    if not roster:
                        continue
                    self._ledger.apply_delta(
                        conn,
                        hotel.hotel_id,
                        removed=[entry.client_id for entry in roster],
                    )
                    cleared_hotels += 1
                cleared_clients = self._repository.clear_client_assignments_for_event(
                    conn, event_id, ClientStatus.CONFIRMED
                )

        logger.info(
            "Assignments cleared | %s",
            log_fields(
                event_id=event_id,
                clients=cleared_clients,
                hotels=cleared_hotels,
                by=self._operator(assigned_by),
            ),
        )
        self._after_commit(
            "clear_all",
            event_id,
            hotel_ids=[hotel.hotel_id for hotel in hotels],
        )
        return ClearResult(cleared_clients=cleared_clients, cleared_hotels=cleared_hotels)

    # --- Validate ---

    def validate(self, event_id: int) -> ValidationReport:
        event = self._inventory.get_event(event_id)
        hotels = self._repository.list_hotels(event_id)
        clients = self._repository.list_clients(event_id)
        errors: list[ValidationIssue] = []
        warnings: list[ValidationIssue] = []

        for hotel in hotels:
            if hotel.occupancy > hotel.total_capacity:
                errors.append(
                    ValidationIssue(
                        type=ISSUE_OVERCAPACITY,
                        message=(
                            f"Hotel {hotel.name} holds {hotel.occupancy} clients "
                            f"for {hotel.total_capacity} beds"
                        ),
                        hotel_id=hotel.hotel_id,
                    )
                )

        for group_name in self._repository.list_group_names(event_id):
            report = GroupReport(
                event_id=event_id,
                group_name=group_name,
                members=tuple(c for c in clients if c.group_name == group_name),
            )
            warnings.extend(self._group_issues(event, report))

        unassigned = [client for client in clients if not client.is_assigned]
        if unassigned:
            warnings.append(
                ValidationIssue(
                    type=ISSUE_UNASSIGNED_CLIENTS,
                    message=f"{len(unassigned)} clients have no hotel",
                    client_ids=tuple(client.client_id for client in unassigned),
                )
            )

        stats = {
            "total_clients": len(clients),
            "assigned_clients": len(clients) - len(unassigned),
            "unassigned_clients": len(unassigned),
            "total_hotels": len(hotels),
            "total_capacity": sum(hotel.total_capacity for hotel in hotels),
            "total_occupancy": sum(hotel.occupancy for hotel in hotels),
        }
        logger.info(
            "Validation finished | %s",
            log_fields(event_id=event_id, errors=len(errors), warnings=len(warnings)),
        )
        return ValidationReport(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            stats=stats,
        )
