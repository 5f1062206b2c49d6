"""Read-only occupancy and population statistics for an event."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

import numpy as np
import pandas as pd

from lodging.domain.errors import EventNotFoundError
from lodging.domain.models import (
    ClientStatus,
    ClientType,
    Gender,
    HotelCategory,
)
from lodging.repository.data_repository import DataRepository
from lodging.utils.config import Settings, get_settings
from lodging.utils.logger import get_logger


logger = get_logger(__name__)

_CLIENT_COLUMNS = [
    "client_id",
    "client_type",
    "gender",
    "status",
    "group_name",
    "is_priority",
    "hotel_id",
]
_HOTEL_COLUMNS = ["hotel_id", "name", "category", "total_capacity", "occupancy"]


def _counts(series: pd.Series, enum_type: type[Enum]) -> dict[str, int]:
    """Value counts keyed by every enum member, zero-filled."""
    labels = [member.value for member in enum_type]
    counts = series.value_counts().reindex(labels, fill_value=0)
    return {label: int(count) for label, count in counts.items()}


def _rate(numerator: Any, denominator: Any) -> np.ndarray:
    """Percentage with 0.0 wherever the denominator is zero."""
    numerator = np.asarray(numerator, dtype=float)
    denominator = np.asarray(denominator, dtype=float)
    out = np.zeros_like(numerator, dtype=float)
    np.divide(numerator * 100.0, denominator, out=out, where=denominator > 0)
    return np.round(out, 2)


class StatsService:
    """Builds dashboards from registry and inventory rows; never writes."""

    def __init__(self, repository: DataRepository, settings: Optional[Settings] = None) -> None:
        self._repository = repository
        self._settings = settings or get_settings()

    def _client_frame(self, event_id: int) -> pd.DataFrame:
        clients = self._repository.list_clients(event_id)
        return pd.DataFrame(
            [
                {
                    "client_id": client.client_id,
                    "client_type": client.client_type.value,
                    "gender": client.gender.value,
                    "status": client.status.value,
                    "group_name": client.group_name,
                    "is_priority": client.is_priority,
                    "hotel_id": client.assigned_hotel_id,
                }
                for client in clients
            ],
            columns=_CLIENT_COLUMNS,
        )

    def _hotel_frame(self, event_id: int) -> pd.DataFrame:
        hotels = self._repository.list_hotels(event_id)
        return pd.DataFrame(
            [
                {
                    "hotel_id": hotel.hotel_id,
                    "name": hotel.name,
                    "category": hotel.category.value,
                    "total_capacity": hotel.total_capacity,
                    "occupancy": hotel.occupancy,
                }
                for hotel in hotels
            ],
            columns=_HOTEL_COLUMNS,
        ).astype({"total_capacity": "int64", "occupancy": "int64"})

    def event_stats(self, event_id: int) -> dict[str, Any]:
        if self._repository.get_event(event_id) is None:
            raise EventNotFoundError(f"Event {event_id} not found")

        clients = self._client_frame(event_id)
        hotels = self._hotel_frame(event_id)
        clients["assigned"] = clients["hotel_id"].notna()

        assignment_by_type: dict[str, dict[str, int]] = {}
        for client_type in ClientType:
            subset = clients[clients["client_type"] == client_type.value]
            assigned = int(subset["assigned"].sum())
            assignment_by_type[client_type.value] = {
                "assigned": assigned,
                "unassigned": int(len(subset)) - assigned,
            }

        hotels["available"] = (hotels["total_capacity"] - hotels["occupancy"]).clip(lower=0)
        hotels["occupancy_rate"] = _rate(hotels["occupancy"], hotels["total_capacity"])
        hotel_rows = [
            {
                "hotel_id": int(row.hotel_id),
                "name": str(row.name),
                "category": str(row.category),
                "total_capacity": int(row.total_capacity),
                "occupancy": int(row.occupancy),
                "available": int(row.available),
                "occupancy_rate": float(row.occupancy_rate),
            }
            for row in hotels.itertuples(index=False)
        ]

        total_capacity = int(hotels["total_capacity"].sum())
        total_occupancy = int(hotels["occupancy"].sum())
        assigned_total = int(clients["assigned"].sum())

        return {
            "event_id": event_id,
            "total_clients": int(len(clients)),
            "assigned_clients": assigned_total,
            "unassigned_clients": int(len(clients)) - assigned_total,
            "clients_by_type": _counts(clients["client_type"], ClientType),
            "clients_by_gender": _counts(clients["gender"], Gender),
            "clients_by_status": _counts(clients["status"], ClientStatus),
            "assignment_by_type": assignment_by_type,
            "hotels_by_category": _counts(hotels["category"], HotelCategory),
            "hotels": hotel_rows,
            "total_capacity": total_capacity,
            "total_occupancy": total_occupancy,
            "occupancy_rate": float(_rate(total_occupancy, total_capacity)),
            "rooms": self._room_stats(event_id),
        }

    def _room_stats(self, event_id: int) -> dict[str, int]:
        rooms = self._repository.list_event_logical_rooms(event_id)
        frame = pd.DataFrame(
            [
                {"occupancy": room.current_occupancy, "max_capacity": room.max_capacity}
                for room in rooms
            ],
            columns=["occupancy", "max_capacity"],
        ).astype("int64")
        full = frame["occupancy"] >= frame["max_capacity"]
        empty = frame["occupancy"] == 0
        return {
            "total": int(len(frame)),
            "empty": int(empty.sum()),
            "full": int(full.sum()),
            "occupied": int((~empty & ~full).sum()),
        }

    def group_report(self, event_id: int) -> list[dict[str, Any]]:
        """One row per group: size, genders, mix, priority and spread over hotels."""
        if self._repository.get_event(event_id) is None:
            raise EventNotFoundError(f"Event {event_id} not found")

        clients = self._client_frame(event_id)
        grouped = clients.dropna(subset=["group_name"])
        grouped = grouped[grouped["group_name"] != ""]
        if grouped.empty:
            return []

        report: list[dict[str, Any]] = []
        for group_name, members in grouped.groupby("group_name", sort=False):
            genders = list(dict.fromkeys(members["gender"]))
            assigned = int(members["hotel_id"].notna().sum())
            hotel_ids = sorted(int(value) for value in members["hotel_id"].dropna().unique())
            report.append(
                {
                    "group_name": str(group_name),
                    "size": int(len(members)),
                    "genders": genders,
                    "is_mixed": len(genders) > 1,
                    "has_priority": bool(members["is_priority"].any()),
                    "assigned": assigned,
                    "unassigned": int(len(members)) - assigned,
                    "hotel_ids": hotel_ids,
                }
            )
        logger.debug("Group report built | event_id=%s | groups=%s", event_id, len(report))
        return report
