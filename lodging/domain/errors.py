"""Error taxonomy shared by the registry, inventory and assignment layers.

Every error carries a machine-checkable `error_type` tag and the HTTP status
the controller layer answers with. None of them is retried by the engine.
"""

from __future__ import annotations


class LodgingError(Exception):
    """Base class for all locally detected lodging failures."""

    error_type = "LODGING_ERROR"
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


# --- NotFound ---

class NotFoundError(LodgingError):
    error_type = "NOT_FOUND"
    status_code = 404


class EventNotFoundError(NotFoundError):
    error_type = "EVENT_NOT_FOUND"


class HotelNotFoundError(NotFoundError):
    error_type = "HOTEL_NOT_FOUND"


class ClientNotFoundError(NotFoundError):
    error_type = "CLIENT_NOT_FOUND"


class RoomNotFoundError(NotFoundError):
    error_type = "ROOM_NOT_FOUND"


class EventHotelAssignmentNotFoundError(NotFoundError):
    error_type = "EVENT_HOTEL_ASSIGNMENT_NOT_FOUND"


# --- Scope ---

class CrossScopeMismatchError(LodgingError):
    """Client, hotel or room does not belong to the stated event/hotel."""

    error_type = "CROSS_SCOPE_MISMATCH"


# --- Capacity ---

class CapacityExceededError(LodgingError):
    error_type = "CAPACITY_EXCEEDED"
    status_code = 409


class HotelFullError(CapacityExceededError):
    error_type = "HOTEL_FULL"


class DestinationFullError(CapacityExceededError):
    error_type = "DESTINATION_FULL"


class RoomFullError(CapacityExceededError):
    error_type = "ROOM_FULL"


class InsufficientCapacityError(CapacityExceededError):
    error_type = "INSUFFICIENT_CAPACITY"


class InsufficientRoomSupplyError(CapacityExceededError):
    error_type = "INSUFFICIENT_ROOM_SUPPLY"


# --- State preconditions ---

class AlreadyAssignedError(LodgingError):
    error_type = "ALREADY_ASSIGNED"
    status_code = 409


class NotAssignedError(LodgingError):
    error_type = "NOT_ASSIGNED"
    status_code = 409


class PartialEligibilityError(LodgingError):
    """A bulk batch contains at least one ineligible client."""

    error_type = "PARTIAL_ELIGIBILITY"
    status_code = 409

    def __init__(self, message: str, ineligible_client_ids: list[int]) -> None:
        super().__init__(message)
        self.ineligible_client_ids = ineligible_client_ids


class StaleAssignmentError(LodgingError):
    """The client's assignment changed between lock planning and commit."""

    error_type = "STALE_ASSIGNMENT"
    status_code = 409


# --- Input ---

class ConfigError(LodgingError):
    error_type = "CONFIG_ERROR"


class EmptyRoomConfigError(ConfigError):
    error_type = "EMPTY_ROOM_CONFIG"


class DuplicateResourceError(LodgingError):
    error_type = "DUPLICATE_RESOURCE"
    status_code = 409


class DuplicateAssignmentError(DuplicateResourceError):
    error_type = "DUPLICATE_ASSIGNMENT"


# --- Runtime ---

class LockTimeoutError(LodgingError):
    error_type = "LOCK_TIMEOUT"
    status_code = 503


class IntegrityViolationError(LodgingError):
    """Capacity invariant observed broken after commit; a locking bug."""

    error_type = "INTEGRITY_VIOLATION"
    status_code = 500
