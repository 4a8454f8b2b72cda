from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any, Protocol

from asyncpg import exceptions as asyncpg_exc
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.models import (
    Reservation,
    ReservationCandidate,
    ReservationStatus,
    Table,
    TableStatus,
)
from backend.app.services.errors import SlotConflictError, StoreTimeoutError

logger = logging.getLogger(__name__)


class ReservationStore(Protocol):
    """Data access used by the allocator."""

    async def list_tables(self) -> list[Table]: ...

    async def list_reservations(self, reservation_date: date, time_slot: str) -> list[Reservation]: ...

    async def list_user_reservations(self, user_id: str) -> list[Reservation]:
        """Reservations made by one user with their table number, latest first."""
        ...

    async def insert_reservation(self, candidate: ReservationCandidate) -> Reservation:
        """Insert the candidate, raising SlotConflictError if its table is taken."""
        ...


_RESERVATION_FIELDS = (
    "id", "user_id", "table_id", "guest_name", "guest_email", "guest_phone",
    "reservation_date", "reservation_time", "number_of_guests",
    "special_requests", "status", "created_at",
)
_RESERVATION_COLUMNS = ", ".join(_RESERVATION_FIELDS)


def _root_cause(exc: DBAPIError) -> BaseException:
    orig = getattr(exc, "orig", exc)
    return getattr(orig, "__cause__", None) or orig


def _row_to_reservation(row: Any) -> Reservation:
    return Reservation(
        id=str(row["id"]),
        user_id=row["user_id"],
        table_id=row["table_id"],
        guest_name=row["guest_name"],
        guest_email=row["guest_email"],
        guest_phone=row["guest_phone"],
        reservation_date=row["reservation_date"],
        reservation_time=row["reservation_time"],
        party_size=row["number_of_guests"],
        special_requests=row["special_requests"],
        status=ReservationStatus(row["status"]),
        created_at=row["created_at"],
        table_number=row.get("table_number"),
    )


class SqlReservationStore:
    """PostgreSQL-backed store.

    Double booking is prevented by the partial unique index
    ``reservation_table_slot_uniq`` on (table_id, reservation_date,
    reservation_time) for non-cancelled rows; the insert also re-checks the
    table inside the statement so a table taken out of service between
    snapshot and commit is reported as a conflict.
    """

    def __init__(self, session: AsyncSession, *, timeout_seconds: float) -> None:
        self._session = session
        self._timeout = timeout_seconds

    async def _execute(self, query, params: dict[str, Any] | None = None):
        try:
            return await asyncio.wait_for(
                self._session.execute(query, params or {}),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as exc:
            await self._session.rollback()
            raise StoreTimeoutError(f"store did not answer within {self._timeout}s") from exc
        except DBAPIError as exc:
            if isinstance(_root_cause(exc), asyncpg_exc.QueryCanceledError):
                await self._session.rollback()
                raise StoreTimeoutError("statement cancelled by the database") from exc
            raise

    async def list_tables(self) -> list[Table]:
        result = await self._execute(
            text(
                """
                SELECT id, table_number, capacity, status
                FROM dining_table
                ORDER BY table_number
                """
            )
        )
        return [
            Table(
                id=row["id"],
                table_number=row["table_number"],
                capacity=row["capacity"],
                status=TableStatus(row["status"]),
            )
            for row in result.mappings()
        ]

    async def list_reservations(self, reservation_date: date, time_slot: str) -> list[Reservation]:
        result = await self._execute(
            text(
                f"""
                SELECT {_RESERVATION_COLUMNS}
                FROM reservation
                WHERE reservation_date = :reservation_date
                  AND reservation_time = :reservation_time
                """
            ),
            {"reservation_date": reservation_date, "reservation_time": time_slot},
        )
        return [_row_to_reservation(row) for row in result.mappings()]

    async def list_user_reservations(self, user_id: str) -> list[Reservation]:
        columns = ", ".join(f"r.{name}" for name in _RESERVATION_FIELDS)
        result = await self._execute(
            text(
                f"""
                SELECT {columns}, t.table_number
                FROM reservation r
                JOIN dining_table t ON t.id = r.table_id
                WHERE r.user_id = :user_id
                ORDER BY r.reservation_date DESC, r.reservation_time DESC, r.created_at DESC
                """
            ),
            {"user_id": user_id},
        )
        return [_row_to_reservation(row) for row in result.mappings()]

    async def insert_reservation(self, candidate: ReservationCandidate) -> Reservation:
        request = candidate.request
        query = text(
            f"""
            INSERT INTO reservation (
              user_id, table_id, guest_name, guest_email, guest_phone,
              reservation_date, reservation_time, number_of_guests,
              special_requests, status
            )
            SELECT :user_id, t.id, :guest_name, :guest_email, :guest_phone,
                   :reservation_date, :reservation_time, :party,
                   :special_requests, :status
            FROM dining_table t
            WHERE t.id = :table_id
              AND t.status = 'available'
              AND t.capacity >= :party
              AND NOT EXISTS (
                SELECT 1
                FROM reservation r
                WHERE r.table_id = t.id
                  AND r.reservation_date = :reservation_date
                  AND r.reservation_time = :reservation_time
                  AND r.status <> 'cancelled'
              )
            RETURNING {_RESERVATION_COLUMNS}
            """
        )
        params = {
            "user_id": request.user_id,
            "table_id": candidate.table_id,
            "guest_name": request.guest_name,
            "guest_email": request.guest_email,
            "guest_phone": request.guest_phone,
            "reservation_date": request.reservation_date,
            "reservation_time": request.reservation_time,
            "party": request.party_size,
            "special_requests": request.special_requests,
            "status": candidate.status.value,
        }

        try:
            result = await self._execute(query, params)
        except IntegrityError as exc:
            await self._session.rollback()
            if isinstance(_root_cause(exc), asyncpg_exc.UniqueViolationError):
                raise SlotConflictError(f"table {candidate.table_id} already booked") from exc
            raise

        row = result.mappings().one_or_none()
        if row is None:
            await self._session.rollback()
            raise SlotConflictError(f"table {candidate.table_id} no longer qualifies")

        try:
            await asyncio.wait_for(self._session.commit(), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            raise StoreTimeoutError("commit did not finish in time") from exc
        return _row_to_reservation(row)
