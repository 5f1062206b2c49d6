"""Domain-level rules for room tiers, priorities and room-type compatibility."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Sequence

from lodging.domain.errors import ConfigError, EmptyRoomConfigError
from lodging.domain.models import (
    Client,
    ClientType,
    Gender,
    InventoryTotals,
    RoomTier,
    RoomType,
)


PRIORITY_VIP = 1
PRIORITY_INFLUENCER = 2
PRIORITY_STAFF = 3
PRIORITY_GROUP = 4
PRIORITY_SOLO = 5

_TYPE_PRIORITY = {
    ClientType.VIP: PRIORITY_VIP,
    ClientType.INFLUENCER: PRIORITY_INFLUENCER,
    ClientType.STAFF: PRIORITY_STAFF,
}


@dataclass(frozen=True)
class AutoAssignConfig:
    prioritize_vip: bool
    respect_groups_integrity: bool
    allow_mixed_groups: bool
    hotel_order: Optional[tuple[int, ...]] = None


def validate_auto_assign_config(config: AutoAssignConfig) -> None:
    if config.hotel_order is None:
        return
    if len(set(config.hotel_order)) != len(config.hotel_order):
        raise ConfigError("hotel_order must not contain duplicate hotel ids")
    if any(hotel_id <= 0 for hotel_id in config.hotel_order):
        raise ConfigError("hotel_order values must be positive hotel ids")


def priority_rank(client: Client) -> int:
    """VIP(1) < Influencer(2) < Staff(3) < Group(4) < Solo(5)."""
    rank = _TYPE_PRIORITY.get(client.client_type)
    if rank is not None:
        return rank
    if client.group_name:
        return PRIORITY_GROUP
    return PRIORITY_SOLO


def sort_by_priority(clients: Sequence[Client]) -> list[Client]:
    # sorted() is stable, so equal ranks keep their registry order.
    return sorted(clients, key=priority_rank)


def _coerce_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{field_name} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise ConfigError(f"{field_name} must be an integer")


def parse_room_tiers(
    available_rooms: Iterable[Mapping[str, Any] | RoomTier],
    *,
    max_bed_count: int,
) -> tuple[RoomTier, ...]:
    """Normalize raw tier payloads and reject malformed entries."""
    tiers: list[RoomTier] = []
    seen_bed_counts: set[int] = set()
    for raw in available_rooms:
        if isinstance(raw, RoomTier):
            raw = {
                "bed_count": raw.bed_count,
                "quantity": raw.quantity,
                "price_per_night": raw.price_per_night,
                "assigned_rooms": raw.assigned_rooms,
            }
        bed_count = _coerce_int(raw.get("bed_count"), "bed_count")
        quantity = _coerce_int(raw.get("quantity"), "quantity")
        assigned_rooms = _coerce_int(raw.get("assigned_rooms", 0) or 0, "assigned_rooms")
        try:
            price = float(raw.get("price_per_night", 0.0) or 0.0)
        except (TypeError, ValueError) as exc:
            raise ConfigError("price_per_night must be a number") from exc

        if not 1 <= bed_count <= max_bed_count:
            raise ConfigError(f"bed_count must be between 1 and {max_bed_count}")
        if quantity < 0:
            raise ConfigError("quantity must be >= 0")
        if price < 0.0:
            raise ConfigError("price_per_night must be >= 0")
        if not 0 <= assigned_rooms <= quantity:
            raise ConfigError("assigned_rooms must be between 0 and quantity")
        if bed_count in seen_bed_counts:
            raise ConfigError(f"bed_count {bed_count} is declared more than once")
        seen_bed_counts.add(bed_count)
        tiers.append(
            RoomTier(
                bed_count=bed_count,
                quantity=quantity,
                price_per_night=price,
                assigned_rooms=assigned_rooms,
            )
        )

    if not tiers:
        raise EmptyRoomConfigError("At least one room type is required")
    return tuple(tiers)


def recompute_totals(available_rooms: Sequence[RoomTier]) -> InventoryTotals:
    return InventoryTotals(
        total_capacity=sum(tier.quantity * tier.bed_count for tier in available_rooms),
        total_assigned=sum(tier.assigned_rooms * tier.bed_count for tier in available_rooms),
    )


def room_type_for_client(client: Client) -> RoomType:
    if client.client_type == ClientType.VIP:
        return RoomType.VIP
    if client.client_type == ClientType.INFLUENCER:
        return RoomType.INFLUENCER
    if client.gender == Gender.OTHER:
        return RoomType.MIXED
    if client.client_type == ClientType.STAFF:
        return RoomType.STAFF_MALE if client.gender == Gender.MALE else RoomType.STAFF_FEMALE
    return RoomType.GROUP_MALE if client.gender == Gender.MALE else RoomType.GROUP_FEMALE


def room_type_for_batch(clients: Sequence[Client]) -> RoomType:
    """Room type a batch must share; mixed-gender batches need a Mixed room."""
    if not clients:
        raise ConfigError("Cannot derive a room type for an empty batch")
    if len({client.gender for client in clients}) > 1:
        types = {client.client_type for client in clients}
        if types == {ClientType.VIP}:
            return RoomType.VIP
        return RoomType.MIXED
    room_types = {room_type_for_client(client) for client in clients}
    if len(room_types) == 1:
        return room_types.pop()
    # Same gender but several priority types: seat them as a plain group.
    gender = clients[0].gender
    if gender == Gender.MALE:
        return RoomType.GROUP_MALE
    if gender == Gender.FEMALE:
        return RoomType.GROUP_FEMALE
    return RoomType.MIXED


def is_room_type_compatible(room_type: RoomType, client: Client) -> bool:
    if room_type == RoomType.STANDARD:
        return True
    if room_type == RoomType.MIXED:
        return True
    return room_type == room_type_for_client(client)


def validate_group_size(group_name: str | None, group_size: int, max_group_size: int) -> int:
    if not group_name:
        return 1
    if not 1 <= group_size <= max_group_size:
        raise ConfigError(f"group_size must be between 1 and {max_group_size}")
    return group_size
