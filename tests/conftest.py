from __future__ import annotations

import itertools
from dataclasses import dataclass, replace

import pytest

from lodging.domain.models import Client, ClientType, Gender, HotelCategory
from lodging.repository.data_repository import DataRepository
from lodging.services.assignment_service import AssignmentEngine
from lodging.services.capacity_ledger import CapacityLedger
from lodging.services.client_registry import ClientRegistry
from lodging.services.hooks import HookDispatcher, build_default_dispatcher
from lodging.services.inventory_service import InventoryService
from lodging.services.locking import LockRegistry
from lodging.services.stats_service import StatsService
from lodging.utils.config import Settings, get_settings


_phones = itertools.count(1)


@dataclass
class Stack:
    settings: Settings
    repository: DataRepository
    locks: LockRegistry
    hooks: HookDispatcher
    ledger: CapacityLedger
    inventory: InventoryService
    registry: ClientRegistry
    engine: AssignmentEngine
    stats: StatsService

    def event(self, name: str = "Summit", allow_mixed_groups: bool = False, **kwargs):
        return self.inventory.create_event(
            name=name,
            city="Rabat",
            country="Morocco",
            allow_mixed_groups=allow_mixed_groups,
            **kwargs,
        )

    def hotel(
        self,
        event_id: int,
        name: str,
        capacity: int,
        category: HotelCategory = HotelCategory.STANDARD,
        allow_mixed_groups: bool = False,
    ):
        return self.inventory.create_hotel(
            event_id=event_id,
            name=name,
            total_capacity=capacity,
            category=category,
            allow_mixed_groups=allow_mixed_groups,
        )

    def client(
        self,
        event_id: int,
        first_name: str,
        gender: Gender = Gender.MALE,
        client_type: ClientType = ClientType.STANDARD,
        group_name: str | None = None,
    ) -> Client:
        return self.registry.register_client(
            event_id=event_id,
            first_name=first_name,
            last_name="Test",
            phone=f"+2126{next(_phones):08d}",
            gender=gender,
            client_type=client_type,
            group_name=group_name,
            group_size=2 if group_name else 1,
        )


def build_test_settings(tmp_path, filename: str = "lodging.db", **overrides) -> Settings:
    get_settings.cache_clear()
    values = {
        "database_path": tmp_path / filename,
        "lock_timeout_seconds": 5.0,
        "admin_token": None,
    }
    values.update(overrides)
    return replace(get_settings(), **values)


def build_stack(tmp_path, filename: str = "lodging.db", **overrides) -> Stack:
    settings = build_test_settings(tmp_path, filename, **overrides)
    repository = DataRepository(settings)
    repository.initialize_database()
    locks = LockRegistry(settings)
    hooks = build_default_dispatcher(repository)
    ledger = CapacityLedger(repository)
    inventory = InventoryService(repository, locks, hooks, settings)
    registry = ClientRegistry(repository, ledger, locks, hooks, settings)
    engine = AssignmentEngine(
        repository=repository,
        inventory=inventory,
        registry=registry,
        ledger=ledger,
        locks=locks,
        hooks=hooks,
        settings=settings,
    )
    return Stack(
        settings=settings,
        repository=repository,
        locks=locks,
        hooks=hooks,
        ledger=ledger,
        inventory=inventory,
        registry=registry,
        engine=engine,
        stats=StatsService(repository, settings),
    )


@pytest.fixture
def stack(tmp_path) -> Stack:
    return build_stack(tmp_path)
