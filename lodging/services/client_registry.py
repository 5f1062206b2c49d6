"""Client registration, lookup and assignment-pointer bookkeeping."""

from __future__ import annotations

import sqlite3
from typing import Optional

from lodging.domain.constraints import sort_by_priority, validate_group_size
from lodging.domain.errors import (
    AlreadyAssignedError,
    ClientNotFoundError,
    ConfigError,
    DuplicateResourceError,
    EventNotFoundError,
    NotAssignedError,
    StaleAssignmentError,
)
from lodging.domain.models import (
    ASSIGNED_STATUSES,
    AssignmentType,
    Client,
    ClientStatus,
    ClientType,
    Gender,
    GroupRelation,
    GroupReport,
)
from lodging.repository.data_repository import DataRepository, utc_now_iso
from lodging.services.capacity_ledger import CapacityLedger
from lodging.services.hooks import AssignmentChange, HookDispatcher
from lodging.services.locking import LockRegistry, client_key, hotel_key
from lodging.utils.config import Settings, get_settings
from lodging.utils.logger import get_logger, log_fields


logger = get_logger(__name__)

VIP_NOTES_PREFIX = "[VIP] "
_REGISTRATION_STATUSES = (ClientStatus.PENDING, ClientStatus.CONFIRMED)


def _check_deposit_amount(deposit_amount: float | None) -> None:
    if deposit_amount is not None and deposit_amount < 0:
        raise ConfigError("deposit_amount must be >= 0")


class ClientRegistry:
    """Source of truth for who is attending and where they sleep."""

    def __init__(
        self,
        repository: DataRepository,
        ledger: CapacityLedger,
        locks: LockRegistry,
        hooks: HookDispatcher,
        settings: Optional[Settings] = None,
    ) -> None:
        self._repository = repository
        self._ledger = ledger
        self._locks = locks
        self._hooks = hooks
        self._settings = settings or get_settings()

    def register_client(
        self,
        event_id: int,
        first_name: str,
        last_name: str,
        phone: str,
        gender: Gender,
        client_type: ClientType = ClientType.STANDARD,
        email: str | None = None,
        group_name: str | None = None,
        group_size: int = 1,
        group_relation: GroupRelation | None = None,
        status: ClientStatus = ClientStatus.PENDING,
        notes: str = "",
    ) -> Client:
        if not first_name.strip() or not last_name.strip():
            raise ConfigError("first_name and last_name are required")
        if not phone.strip():
            raise ConfigError("phone is required")
        if status not in _REGISTRATION_STATUSES:
            raise ConfigError("New clients start as Pending or Confirmed")
        group = group_name.strip() if group_name and group_name.strip() else None
        size = validate_group_size(group, group_size, self._settings.max_group_size)
        if client_type == ClientType.VIP and not notes.startswith(VIP_NOTES_PREFIX):
            notes = f"{VIP_NOTES_PREFIX}{notes}"

        try:
            with self._repository.transaction() as conn:
                event = self._repository.get_event(event_id, conn)
                if event is None:
                    raise EventNotFoundError(f"Event {event_id} not found")
                if self._repository.find_client_by_phone(event_id, phone.strip(), conn):
                    raise DuplicateResourceError(
                        f"Phone {phone} is already registered for event {event_id}"
                    )
                client_id = self._repository.create_client(
                    conn,
                    event_id=event_id,
                    first_name=first_name.strip(),
                    last_name=last_name.strip(),
                    phone=phone.strip(),
                    email=email,
                    gender=gender,
                    client_type=client_type,
                    group_name=group,
                    group_size=size,
                    group_relation=group_relation if group else None,
                    status=status,
                    notes=notes,
                )
        except sqlite3.IntegrityError as exc:
            raise DuplicateResourceError(
                f"Phone {phone} is already registered for event {event_id}"
            ) from exc

        if event.is_full:
            logger.warning(
                "Event participant cap exceeded | %s",
                log_fields(
                    event_id=event_id,
                    max_participants=event.max_participants,
                    participants=event.current_participants + 1,
                ),
            )
        logger.info(
            "Client registered | %s",
            log_fields(
                event_id=event_id,
                client_id=client_id,
                client_type=client_type.value,
                group=group,
            ),
        )
        self._hooks.dispatch(
            AssignmentChange(operation="client_registered", event_id=event_id, client_ids=(client_id,))
        )
        return self.get_client(client_id)

    def update_client(
        self,
        client_id: int,
        *,
        first_name: str | None = None,
        last_name: str | None = None,
        phone: str | None = None,
        email: str | None = None,
        gender: Gender | None = None,
        client_type: ClientType | None = None,
        group_name: str | None = None,
        group_size: int | None = None,
        group_relation: GroupRelation | None = None,
        notes: str | None = None,
    ) -> Client:
        """Patch a client's profile; omitted fields keep their value.

        An empty `group_name` turns the client into a solo traveller. Gender
        and group drive placement, so they are frozen while a hotel is
        assigned: unassign first, then edit.
        """
        if first_name is not None and not first_name.strip():
            raise ConfigError("first_name must not be empty")
        if last_name is not None and not last_name.strip():
            raise ConfigError("last_name must not be empty")
        if phone is not None and not phone.strip():
            raise ConfigError("phone must not be empty")

        with self._locks.hold([client_key(client_id)]):
            try:
                with self._repository.transaction() as conn:
                    current = self.get_client(client_id, conn)
                    if group_name is None:
                        group = current.group_name
                    else:
                        group = group_name.strip() or None
                    new_gender = current.gender if gender is None else gender
                    if current.is_assigned and (
                        new_gender != current.gender or group != current.group_name
                    ):
                        raise AlreadyAssignedError(
                            f"Client {current.full_name} is assigned to hotel "
                            f"{current.assigned_hotel_id}; unassign before changing gender or group"
                        )
                    size = validate_group_size(
                        group,
                        current.group_size if group_size is None else group_size,
                        self._settings.max_group_size,
                    )
                    new_phone = current.phone if phone is None else phone.strip()
                    if new_phone != current.phone:
                        holder = self._repository.find_client_by_phone(
                            current.event_id, new_phone, conn
                        )
                        if holder is not None:
                            raise DuplicateResourceError(
                                f"Phone {new_phone} is already registered for event "
                                f"{current.event_id}"
                            )
                    new_type = current.client_type if client_type is None else client_type
                    new_notes = current.notes if notes is None else notes
                    if new_type == ClientType.VIP and not new_notes.startswith(VIP_NOTES_PREFIX):
                        new_notes = f"{VIP_NOTES_PREFIX}{new_notes}"
                    relation = current.group_relation if group_relation is None else group_relation
                    self._repository.update_client_details(
                        conn,
                        client_id,
                        first_name=current.first_name if first_name is None else first_name.strip(),
                        last_name=current.last_name if last_name is None else last_name.strip(),
                        phone=new_phone,
                        email=current.email if email is None else (email.strip() or None),
                        gender=new_gender,
                        client_type=new_type,
                        group_name=group,
                        group_size=size,
                        group_relation=relation if group else None,
                        notes=new_notes,
                    )
            except sqlite3.IntegrityError as exc:
                raise DuplicateResourceError(
                    f"Phone {phone} is already registered for this event"
                ) from exc

        logger.info(
            "Client updated | %s",
            log_fields(
                event_id=current.event_id,
                client_id=client_id,
                client_type=new_type.value,
                group=group,
            ),
        )
        return self.get_client(client_id)

    def get_client(self, client_id: int, conn: Optional[sqlite3.Connection] = None) -> Client:
        client = self._repository.get_client(client_id, conn)
        if client is None:
            raise ClientNotFoundError(f"Client {client_id} not found")
        return client

    def list_clients(
        self,
        event_id: int,
        *,
        assigned: Optional[bool] = None,
        hotel_id: Optional[int] = None,
        group_name: Optional[str] = None,
        client_type: Optional[ClientType] = None,
        gender: Optional[Gender] = None,
        status: Optional[ClientStatus] = None,
    ) -> list[Client]:
        if self._repository.get_event(event_id) is None:
            raise EventNotFoundError(f"Event {event_id} not found")
        return self._repository.list_clients(
            event_id,
            assigned=assigned,
            hotel_id=hotel_id,
            group_name=group_name,
            client_type=client_type,
            gender=gender,
            status=status,
        )

    def list_unassigned(
        self,
        event_id: int,
        prioritized: bool = False,
        conn: Optional[sqlite3.Connection] = None,
    ) -> list[Client]:
        clients = self._repository.list_clients(event_id, conn, assigned=False)
        return sort_by_priority(clients) if prioritized else clients

    def set_assignment(
        self,
        conn: sqlite3.Connection,
        client_id: int,
        hotel_id: int,
        *,
        assigned_by: str,
        assignment_type: AssignmentType,
        logical_room_id: int | None = None,
        bed_number: int | None = None,
        real_room_number: str | None = None,
        assignment_date: str | None = None,
    ) -> Client:
        """Point a client at a hotel; the roster row is the ledger's job."""
        client = self.get_client(client_id, conn)
        if client.is_assigned:
            raise AlreadyAssignedError(
                f"Client {client.full_name} is already assigned to hotel {client.assigned_hotel_id}"
            )
        status = client.status if client.status in ASSIGNED_STATUSES else ClientStatus.ASSIGNED
        self._repository.update_client_assignment(
            conn,
            client_id,
            hotel_id=hotel_id,
            logical_room_id=logical_room_id,
            real_room_number=real_room_number,
            bed_number=bed_number,
            assignment_type=assignment_type,
            assignment_date=assignment_date or utc_now_iso(),
            assigned_by=assigned_by,
            status=status,
        )
        return self.get_client(client_id, conn)

    def repoint(
        self,
        conn: sqlite3.Connection,
        client_id: int,
        hotel_id: int,
        *,
        assigned_by: str,
        assignment_type: AssignmentType,
        logical_room_id: int | None = None,
        bed_number: int | None = None,
        real_room_number: str | None = None,
    ) -> Client:
        """Move an assigned client's pointer, keeping its stay status."""
        client = self.get_client(client_id, conn)
        if not client.is_assigned:
            raise NotAssignedError(f"Client {client.full_name} is not assigned")
        self._repository.update_client_assignment(
            conn,
            client_id,
            hotel_id=hotel_id,
            logical_room_id=logical_room_id,
            real_room_number=real_room_number,
            bed_number=bed_number,
            assignment_type=assignment_type,
            assignment_date=utc_now_iso(),
            assigned_by=assigned_by,
            status=client.status,
        )
        return self.get_client(client_id, conn)

    def clear_assignment(self, conn: sqlite3.Connection, client_id: int) -> Client:
        client = self.get_client(client_id, conn)
        if not client.is_assigned:
            return client
        self._repository.update_client_assignment(
            conn,
            client_id,
            hotel_id=None,
            logical_room_id=None,
            real_room_number=None,
            bed_number=None,
            assignment_type=None,
            assignment_date=None,
            assigned_by=None,
            status=ClientStatus.CONFIRMED,
        )
        return self.get_client(client_id, conn)

    def group_members(self, event_id: int, group_name: str) -> GroupReport:
        members = self._repository.list_clients(event_id, group_name=group_name)
        return GroupReport(event_id=event_id, group_name=group_name, members=tuple(members))

    def list_groups(self, event_id: int) -> list[GroupReport]:
        if self._repository.get_event(event_id) is None:
            raise EventNotFoundError(f"Event {event_id} not found")
        return [
            self.group_members(event_id, name)
            for name in self._repository.list_group_names(event_id)
        ]

    def mark_arrived(
        self,
        client_id: int,
        deposit_paid: bool | None = None,
        deposit_amount: float | None = None,
        checked_in_by: str | None = None,
    ) -> Client:
        """On-site check-in: status becomes Arrived and the first check-in time is kept."""
        return self._advance_stay(
            client_id,
            ClientStatus.ARRIVED,
            deposit_paid=deposit_paid,
            deposit_amount=deposit_amount,
            checked_in_by=checked_in_by,
        )

    def mark_departed(self, client_id: int) -> Client:
        return self._advance_stay(client_id, ClientStatus.DEPARTED)

    def record_deposit(
        self,
        client_id: int,
        deposit_paid: bool,
        deposit_amount: float | None = None,
        recorded_by: str | None = None,
    ) -> Client:
        """Update the deposit without touching the stay status.

        A paid deposit also stamps the check-in time if none is recorded yet.
        """
        _check_deposit_amount(deposit_amount)
        with self._locks.hold([client_key(client_id)]):
            with self._repository.transaction() as conn:
                client = self.get_client(client_id, conn)
                self._write_on_site(
                    conn,
                    client,
                    deposit_paid=deposit_paid,
                    deposit_amount=deposit_amount,
                    checked_in_by=recorded_by,
                    stamp_check_in=deposit_paid,
                )
        logger.info(
            "Client deposit recorded | %s",
            log_fields(client_id=client_id, paid=deposit_paid, amount=deposit_amount),
        )
        return self.get_client(client_id)

    def _write_on_site(
        self,
        conn: sqlite3.Connection,
        client: Client,
        *,
        deposit_paid: bool | None,
        deposit_amount: float | None,
        checked_in_by: str | None,
        stamp_check_in: bool,
    ) -> None:
        first_check_in = stamp_check_in and client.checked_in_at is None
        self._repository.update_client_on_site(
            conn,
            client.client_id,
            deposit_paid=client.deposit_paid if deposit_paid is None else deposit_paid,
            deposit_amount=client.deposit_amount if deposit_amount is None else deposit_amount,
            checked_in_at=utc_now_iso() if first_check_in else client.checked_in_at,
            checked_in_by=(
                checked_in_by or self._settings.default_operator
                if first_check_in
                else client.checked_in_by
            ),
        )

    def _advance_stay(
        self,
        client_id: int,
        status: ClientStatus,
        deposit_paid: bool | None = None,
        deposit_amount: float | None = None,
        checked_in_by: str | None = None,
    ) -> Client:
        _check_deposit_amount(deposit_amount)
        with self._locks.hold([client_key(client_id)]):
            with self._repository.transaction() as conn:
                client = self.get_client(client_id, conn)
                if not client.is_assigned:
                    raise NotAssignedError(
                        f"Client {client.full_name} has no hotel; assign before check-in"
                    )
                if status == ClientStatus.DEPARTED and client.status != ClientStatus.ARRIVED:
                    raise ConfigError(f"Client {client.full_name} has not arrived yet")
                self._repository.update_client_status(conn, client_id, status)
                if status == ClientStatus.ARRIVED:
                    self._write_on_site(
                        conn,
                        client,
                        deposit_paid=deposit_paid,
                        deposit_amount=deposit_amount,
                        checked_in_by=checked_in_by,
                        stamp_check_in=True,
                    )
        logger.info(
            "Client stay updated | %s",
            log_fields(client_id=client_id, status=status.value),
        )
        return self.get_client(client_id)

    def delete_client(self, client_id: int) -> Client:
        """Remove a client together with its roster row, then refresh counters."""
        snapshot = self.get_client(client_id)
        keys = [client_key(client_id)]
        if snapshot.assigned_hotel_id is not None:
            keys.append(hotel_key(snapshot.assigned_hotel_id))
        with self._locks.hold(keys):
            with self._repository.transaction() as conn:
                client = self.get_client(client_id, conn)
                if client.assigned_hotel_id != snapshot.assigned_hotel_id:
                    raise StaleAssignmentError(
                        f"Client {client_id} was reassigned concurrently; retry the delete"
                    )
                if client.assigned_hotel_id is not None:
                    self._ledger.apply_delta(
                        conn,
                        client.assigned_hotel_id,
                        removed=[client_id],
                    )
                self._repository.delete_client(conn, client_id)

        logger.info(
            "Client deleted | %s",
            log_fields(
                event_id=client.event_id,
                client_id=client_id,
                hotel_id=client.assigned_hotel_id,
            ),
        )
        self._hooks.dispatch(
            AssignmentChange(
                operation="client_deleted",
                event_id=client.event_id,
                hotel_ids=(
                    (client.assigned_hotel_id,) if client.assigned_hotel_id is not None else ()
                ),
                client_ids=(client_id,),
            )
        )
        return client
