from enum import Enum


class ReservationValidationError(Exception):
    """A booking request failed validation on a single field."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ReservationValidationError):
            return NotImplemented
        return (self.field, self.message) == (other.field, other.message)

    def __hash__(self) -> int:
        return hash((self.field, self.message))


class AllocationFailure(str, Enum):
    NO_TABLE_AVAILABLE = "no_table_available"
    CONFLICT = "conflict"
    STORE_TIMEOUT = "store_timeout"


_FAILURE_MESSAGES = {
    AllocationFailure.NO_TABLE_AVAILABLE: "No tables available. Please try a different date or time.",
    AllocationFailure.CONFLICT: "Another guest just booked this table. Please try again.",
    AllocationFailure.STORE_TIMEOUT: "Reservation store did not respond in time. Please try again.",
}


class AllocationError(Exception):
    """The allocator could not commit a reservation."""

    def __init__(self, reason: AllocationFailure, message: str | None = None) -> None:
        self.reason = reason
        self.message = message or _FAILURE_MESSAGES[reason]
        super().__init__(self.message)


class SlotConflictError(Exception):
    """The table was already taken for the requested date and time slot."""


class StoreTimeoutError(Exception):
    """The backing store did not answer within its deadline."""
