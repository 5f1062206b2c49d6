"""Post-commit notifications for assignment and registry changes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional

from lodging.repository.data_repository import DataRepository
from lodging.utils.logger import get_logger, log_fields


logger = get_logger(__name__)


@dataclass(frozen=True)
class AssignmentChange:
    """What a committed operation touched."""

    operation: str
    event_id: int
    hotel_ids: tuple[int, ...] = ()
    client_ids: tuple[int, ...] = ()
    details: dict[str, object] = field(default_factory=dict)


Subscriber = Callable[[AssignmentChange], None]


class HookDispatcher:
    """Runs subscribers after a transaction commits.

    A failing subscriber never rolls back the committed change; it is logged
    and the remaining subscribers still run.
    """

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.append(subscriber)

    def dispatch(self, change: AssignmentChange) -> None:
        for subscriber in self._subscribers:
            try:
                subscriber(change)
            except Exception:  # pragma: no cover - defensive fallback
                logger.exception(
                    "Post-commit subscriber failed | %s",
                    log_fields(operation=change.operation, event_id=change.event_id),
                )


def refresh_event_counters(repository: DataRepository) -> Subscriber:
    """Subscriber recomputing Events.current_participants/total_hotels by COUNT."""

    def _refresh(change: AssignmentChange) -> None:
        with repository.transaction() as conn:
            repository.refresh_event_counters(conn, change.event_id)
        logger.debug(
            "Event counters refreshed | %s",
            log_fields(operation=change.operation, event_id=change.event_id),
        )

    return _refresh


def build_default_dispatcher(
    repository: DataRepository,
    extra: Optional[list[Subscriber]] = None,
) -> HookDispatcher:
    dispatcher = HookDispatcher()
    dispatcher.subscribe(refresh_event_counters(repository))
    for subscriber in extra or []:
        dispatcher.subscribe(subscriber)
    return dispatcher
