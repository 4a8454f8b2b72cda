"""Table allocation for validated booking requests."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import date

from backend.app.models import Reservation, ReservationCandidate, Table, TableStatus, ValidatedRequest
from backend.app.services.errors import (
    AllocationError,
    AllocationFailure,
    SlotConflictError,
    StoreTimeoutError,
)
from backend.app.services.holds import TableHold, hold_key
from backend.app.services.store import ReservationStore

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 2
ALT_LOOKAHEAD = 4


def select_table(
    tables: Iterable[Table],
    reservations: Iterable[Reservation],
    party_size: int,
) -> Table | None:
    """Pick the best-fit table for a party.

    Only available tables with enough seats and no non-cancelled reservation
    in ``reservations`` qualify. The smallest capacity wins, then the lowest
    table number.
    """
    taken = {r.table_id for r in reservations if r.status.holds_table}
    qualifying = [
        t
        for t in tables
        if t.capacity >= party_size and t.status is TableStatus.AVAILABLE and t.id not in taken
    ]
    if not qualifying:
        return None
    return min(qualifying, key=lambda t: (t.capacity, t.table_number))


class TableAllocator:
    """Selects a table for a request and commits the reservation."""

    def __init__(self, store: ReservationStore, hold: TableHold | None = None) -> None:
        self._store = store
        self._hold = hold

    async def allocate(self, request: ValidatedRequest) -> Reservation:
        """Commit a pending reservation for ``request`` on the best-fit table.

        Raises:
            AllocationError: NO_TABLE_AVAILABLE when nothing qualifies, CONFLICT
                when the slot was lost to a concurrent request twice (or nothing
                is left after losing it once), STORE_TIMEOUT when the store
                misses its deadline.
        """
        try:
            return await self._allocate(request)
        except StoreTimeoutError as exc:
            logger.warning(
                "Store timeout while allocating %s %s for user %s: %s",
                request.reservation_date,
                request.reservation_time,
                request.user_id,
                exc,
            )
            raise AllocationError(AllocationFailure.STORE_TIMEOUT) from exc

    async def _allocate(self, request: ValidatedRequest) -> Reservation:
        lost_race = False
        for attempt in range(1, MAX_ATTEMPTS + 1):
            table = await self.preview(
                request.reservation_date, request.reservation_time, request.party_size
            )
            if table is None:
                if lost_race:
                    raise AllocationError(AllocationFailure.CONFLICT)
                logger.info(
                    "No table for party of %d on %s %s",
                    request.party_size,
                    request.reservation_date,
                    request.reservation_time,
                )
                raise AllocationError(AllocationFailure.NO_TABLE_AVAILABLE)

            try:
                reservation = await self._commit(request, table)
            except SlotConflictError as exc:
                lost_race = True
                logger.warning(
                    "Lost table %d on %s %s (attempt %d/%d): %s",
                    table.table_number,
                    request.reservation_date,
                    request.reservation_time,
                    attempt,
                    MAX_ATTEMPTS,
                    exc,
                )
                continue

            if reservation.table_number is None:
                reservation = reservation.model_copy(update={"table_number": table.table_number})
            logger.info(
                "Reserved table %d (capacity %d) for party of %d on %s %s: %s",
                table.table_number,
                table.capacity,
                request.party_size,
                request.reservation_date,
                request.reservation_time,
                reservation.id,
            )
            return reservation

        raise AllocationError(AllocationFailure.CONFLICT)

    async def _commit(self, request: ValidatedRequest, table: Table) -> Reservation:
        key = hold_key(table.id, request.reservation_date, request.reservation_time)
        if self._hold is not None and not await self._hold.acquire(key):
            raise SlotConflictError(f"table {table.id} held by another request")

        try:
            return await self._store.insert_reservation(
                ReservationCandidate(request=request, table_id=table.id)
            )
        except Exception:
            if self._hold is not None:
                await self._hold.release(key)
            raise

    async def preview(self, reservation_date: date, time_slot: str, party_size: int) -> Table | None:
        """Return the table ``allocate`` would pick right now, without committing."""
        tables = await self._store.list_tables()
        reservations = await self._store.list_reservations(reservation_date, time_slot)
        return select_table(tables, reservations, party_size)

    async def find_alternates(
        self,
        reservation_date: date,
        time_slot: str,
        party_size: int,
        time_slots: Sequence[str],
    ) -> list[str]:
        """List up to ALT_LOOKAHEAD later slots on the same date that have a table."""
        tables = await self._store.list_tables()
        later = [slot for slot in time_slots if slot > time_slot]

        alts: list[str] = []
        for slot in later:
            if len(alts) >= ALT_LOOKAHEAD:
                break
            reservations = await self._store.list_reservations(reservation_date, slot)
            if select_table(tables, reservations, party_size) is not None:
                alts.append(slot)
        return alts
