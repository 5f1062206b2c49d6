"""Environment-driven runtime settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


@dataclass(frozen=True)
class Settings:
    app_name: str
    app_version: str
    log_level: str
    database_path: Path
    database_busy_timeout_seconds: float
    lock_timeout_seconds: float
    admin_token: str | None
    default_operator: str
    seed_demo_data: bool
    auto_assign_prioritize_vip: bool
    auto_assign_respect_groups_integrity: bool
    max_bed_count: int
    max_group_size: int
    max_logical_rooms_per_hotel: int


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build settings once per process; tests derive copies with `replace`."""
    return Settings(
        app_name=os.getenv("LODGING_APP_NAME", "Event Lodging Assignment API"),
        app_version=os.getenv("LODGING_APP_VERSION", "1.0.0"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        database_path=Path(os.getenv("LODGING_DB_PATH", "data/lodging.db")),
        database_busy_timeout_seconds=_env_float("LODGING_DB_BUSY_TIMEOUT_SECONDS", 10.0),
        lock_timeout_seconds=_env_float("LODGING_LOCK_TIMEOUT_SECONDS", 5.0),
        admin_token=os.getenv("ADMIN_TOKEN") or None,
        default_operator=os.getenv("LODGING_DEFAULT_OPERATOR", "system"),
        seed_demo_data=_env_bool("LODGING_SEED_DEMO_DATA", False),
        auto_assign_prioritize_vip=_env_bool("LODGING_AUTO_PRIORITIZE_VIP", True),
        auto_assign_respect_groups_integrity=_env_bool(
            "LODGING_AUTO_RESPECT_GROUPS", True
        ),
        max_bed_count=_env_int("LODGING_MAX_BED_COUNT", 12),
        max_group_size=_env_int("LODGING_MAX_GROUP_SIZE", 50),
        max_logical_rooms_per_hotel=_env_int("LODGING_MAX_ROOMS_PER_HOTEL", 500),
    )
