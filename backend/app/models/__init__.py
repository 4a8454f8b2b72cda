"""Data models for the reservation service."""

from backend.app.models.reservation import (
    Reservation,
    ReservationCandidate,
    ReservationStatus,
    Table,
    TableStatus,
    ValidatedRequest,
)

__all__ = [
    "Reservation",
    "ReservationCandidate",
    "ReservationStatus",
    "Table",
    "TableStatus",
    "ValidatedRequest",
]
