"""Domain models for tables, booking requests and reservations."""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class TableStatus(str, Enum):
    """Floor status of a dining table."""

    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESERVED = "reserved"
    OUT_OF_SERVICE = "out_of_service"


class ReservationStatus(str, Enum):
    """Lifecycle status of a reservation."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

    @property
    def holds_table(self) -> bool:
        """Whether a reservation in this status still occupies its table slot."""
        return self is not ReservationStatus.CANCELLED


class Table(BaseModel):
    """A table in the restaurant's inventory."""

    model_config = ConfigDict(frozen=True)

    id: int
    table_number: int
    capacity: int = Field(..., gt=0)
    status: TableStatus = TableStatus.AVAILABLE


class ValidatedRequest(BaseModel):
    """A booking request that passed validation. Only the validator builds these."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    guest_name: str
    guest_email: str
    guest_phone: str
    reservation_date: date
    reservation_time: str
    party_size: int
    special_requests: str | None = None


class ReservationCandidate(BaseModel):
    """A reservation row about to be inserted for a chosen table."""

    model_config = ConfigDict(frozen=True)

    request: ValidatedRequest
    table_id: int
    status: ReservationStatus = ReservationStatus.PENDING


class Reservation(BaseModel):
    """A persisted reservation."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    table_id: int
    guest_name: str
    guest_email: str
    guest_phone: str
    reservation_date: date
    reservation_time: str
    party_size: int
    special_requests: str | None = None
    status: ReservationStatus = ReservationStatus.PENDING
    created_at: datetime
    table_number: int | None = None  # filled by reads that join the table
