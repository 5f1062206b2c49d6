#!/usr/bin/env python3
"""Validate local lodging environment readiness."""

from __future__ import annotations

import importlib
import shutil
import sys
import tempfile
from dataclasses import replace
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from lodging.domain.models import Gender
from lodging.repository.data_repository import DataRepository
from lodging.services.assignment_service import AssignmentEngine
from lodging.services.capacity_ledger import CapacityLedger
from lodging.services.client_registry import ClientRegistry
from lodging.services.hooks import build_default_dispatcher
from lodging.services.inventory_service import InventoryService
from lodging.services.locking import LockRegistry
from lodging.utils.config import get_settings

SEPARATOR_LINE = "=" * 44


def _print_result(name: str, success: bool, detail: str = "") -> tuple[bool, str]:
    if success:
        return True, f"[PASS] {name}{detail}"
    return False, f"[FAIL] {name}: {detail}"


def main() -> int:
    results: list[str] = []
    all_passed = True
    temp_dir = tempfile.mkdtemp(prefix="lodging-env-")

    # CHECK 1 - Python version >= 3.10
    if sys.version_info >= (3, 10):
        ok, line = _print_result("Python " + sys.version.split()[0], True)
    else:
        ok, line = _print_result(
            "Python version >= 3.10",
            False,
            f"found {sys.version.split()[0]}",
        )
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 2 - Required packages importable
    package_specs = [
        ("fastapi", "fastapi"),
        ("uvicorn", "uvicorn"),
        ("pydantic", "pydantic"),
        ("numpy", "numpy"),
        ("pandas", "pandas"),
        ("httpx", "httpx"),
        ("pytest", "pytest"),
    ]
    import_errors: list[str] = []
    for module_name, dist_name in package_specs:
        try:
            importlib.import_module(module_name)
            version(dist_name)
        except (ImportError, PackageNotFoundError) as exc:
            import_errors.append(f"{module_name} ({exc})")
    if import_errors:
        ok, line = _print_result(
            "Required packages",
            False,
            "missing/unimportable -> " + "; ".join(import_errors),
        )
    else:
        ok, line = _print_result("Required packages: all importable", True)
    results.append(line)
    all_passed = all_passed and ok

    try:
        validation_settings = replace(
            get_settings(),
            database_path=Path(temp_dir) / "lodging_validation.db",
        )
        repository = DataRepository(validation_settings)

        # CHECK 3 - Database initialization
        try:
            repository.initialize_database()
            ok, line = _print_result("Database initialization", True)
        except RuntimeError as exc:
            ok, line = _print_result("Database initialization", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 4 - Demo seeding
        try:
            seeded = repository.seed_demo_data_if_empty()
            if seeded <= 0:
                raise RuntimeError("no demo clients were seeded")
            ok, line = _print_result("Demo seeding", True, f": {seeded} clients")
        except Exception as exc:  # pragma: no cover - runtime guard
            ok, line = _print_result("Demo seeding", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 5 - Assignment round trip on the demo event
        try:
            locks = LockRegistry(validation_settings)
            hooks = build_default_dispatcher(repository)
            ledger = CapacityLedger(repository)
            inventory = InventoryService(repository, locks, hooks, validation_settings)
            registry = ClientRegistry(repository, ledger, locks, hooks, validation_settings)
            engine = AssignmentEngine(
                repository, inventory, registry, ledger, locks, hooks, validation_settings
            )
            event = inventory.list_events()[0]
            extra = registry.register_client(
                event.event_id, "Check", "Env", "+000000000", Gender.MALE
            )
            auto = engine.auto_assign(event.event_id)
            report = engine.validate(event.event_id)
            cleared = engine.clear_all(event.event_id)
            if not report.is_valid:
                raise RuntimeError("validation reported over-capacity hotels")
            ok, line = _print_result(
                "Assignment engine",
                True,
                f": auto={auto.assigned_count}/{auto.total_clients} "
                f"cleared={cleared.cleared_clients} extra_client={extra.client_id}",
            )
        except Exception as exc:  # pragma: no cover - runtime guard
            ok, line = _print_result("Assignment engine", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

    print(SEPARATOR_LINE)
    print(" Lodging Environment Validation")
    print(SEPARATOR_LINE)
    for line in results:
        print(f" {line}")
    print(SEPARATOR_LINE)
    if all_passed:
        print(" All checks passed. Environment is ready.")
        print(SEPARATOR_LINE)
        return 0
    print(" One or more checks failed.")
    print(SEPARATOR_LINE)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
