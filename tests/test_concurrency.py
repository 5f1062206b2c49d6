from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from lodging.domain.errors import CapacityExceededError, LockTimeoutError
from lodging.services.locking import LockRegistry, client_key, hotel_key


def test_concurrent_manual_assigns_never_overfill(stack) -> None:
    event = stack.event()
    hotel = stack.hotel(event.event_id, "Atlas", 5)
    clients = [stack.client(event.event_id, f"C{i}") for i in range(12)]
    barrier = threading.Barrier(len(clients))

    def attempt(client_id: int) -> bool:
        barrier.wait()
        try:
            stack.engine.manual_assign(client_id, hotel.hotel_id, event.event_id)
        except CapacityExceededError:
            return False
        return True

    with ThreadPoolExecutor(max_workers=len(clients)) as pool:
        outcomes = list(pool.map(attempt, [c.client_id for c in clients]))

    assert outcomes.count(True) == 5
    assert stack.inventory.get_hotel(hotel.hotel_id).occupancy == 5
    assigned = stack.repository.list_clients(event.event_id, assigned=True)
    assert len(assigned) == 5


def test_concurrent_bulk_batches_are_all_or_nothing(stack) -> None:
    event = stack.event()
    hotel = stack.hotel(event.event_id, "Atlas", 6)
    batches = [
        [stack.client(event.event_id, f"B{b}-{i}").client_id for i in range(4)] for b in range(3)
    ]

    def attempt(batch: list[int]) -> int:
        try:
            return stack.engine.bulk_assign(batch, hotel.hotel_id, event.event_id).assigned_count
        except CapacityExceededError:
            return 0

    with ThreadPoolExecutor(max_workers=3) as pool:
        counts = list(pool.map(attempt, batches))

    assert sorted(counts) == [0, 0, 4]
    assert stack.inventory.get_hotel(hotel.hotel_id).occupancy == 4


def test_lock_registry_times_out(stack) -> None:
    locks = LockRegistry(stack.settings)
    held = threading.Event()
    release = threading.Event()

    def holder() -> None:
        with locks.hold([hotel_key(1)]):
            held.set()
            release.wait(5)

    thread = threading.Thread(target=holder)
    thread.start()
    held.wait(5)
    try:
        with pytest.raises(LockTimeoutError):
            with locks.hold([client_key(9), hotel_key(1)], timeout=0.05):
                pass

        # client 9 is acquired before hotel 1 and must be released on timeout.
        def grab_client() -> bool:
            with locks.hold([client_key(9)], timeout=0.5):
                return True

        with ThreadPoolExecutor(max_workers=1) as pool:
            assert pool.submit(grab_client).result()
    finally:
        release.set()
        thread.join()


def test_lock_registry_is_reentrant(stack) -> None:
    locks = LockRegistry(stack.settings)
    with locks.hold([hotel_key(1), client_key(2)]):
        with locks.hold([hotel_key(1)], timeout=0.05):
            pass


def test_lock_registry_forgets_released_keys(stack) -> None:
    locks = LockRegistry(stack.settings)
    for hotel_id in range(50):
        with locks.hold([hotel_key(hotel_id), client_key(hotel_id)]):
            assert len(locks) >= 2
    assert len(locks) == 0

    with locks.hold([hotel_key(1)]):
        with locks.hold([hotel_key(1)]):
            pass
        assert len(locks) == 1
    assert len(locks) == 0


def test_lock_registry_forgets_keys_after_timeout(stack) -> None:
    locks = LockRegistry(stack.settings)
    held = threading.Event()
    release = threading.Event()

    def holder() -> None:
        with locks.hold([hotel_key(1)]):
            held.set()
            release.wait(5)

    thread = threading.Thread(target=holder)
    thread.start()
    held.wait(5)
    try:
        with pytest.raises(LockTimeoutError):
            with locks.hold([client_key(3), hotel_key(1)], timeout=0.05):
                pass
        assert len(locks) == 1
    finally:
        release.set()
        thread.join()
    assert len(locks) == 0
