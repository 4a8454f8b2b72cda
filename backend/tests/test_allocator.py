import asyncio

import pytest
from conftest import InMemoryReservationStore, make_reservation

from backend.app.models import ReservationStatus, Table, TableStatus
from backend.app.services.allocator import TableAllocator
from backend.app.services.errors import AllocationError, AllocationFailure
from backend.app.services.holds import hold_key
from backend.app.services.validation import validate


pytestmark = pytest.mark.asyncio


@pytest.fixture
def request_for(raw_request, policy, today):
    def build(party_size: int = 4, user_id: str = "user-1", time: str = "19:00"):
        raw = dict(raw_request, party_size=party_size, time=time)
        return validate(raw, policy, user_id=user_id, today=today)

    return build


async def test_allocates_best_fit_table(store, request_for):
    reservation = await TableAllocator(store).allocate(request_for(4))

    assert reservation.table_id == 2
    assert reservation.status is ReservationStatus.PENDING
    assert reservation.party_size == 4
    assert reservation.guest_email == "jo@x.com"
    assert reservation.table_number == 2
    assert [r.id for r in store.reservations] == [reservation.id]


async def test_no_table_available_when_party_too_large(request_for):
    store = InMemoryReservationStore([Table(id=1, table_number=1, capacity=2)])

    with pytest.raises(AllocationError) as excinfo:
        await TableAllocator(store).allocate(request_for(4))

    assert excinfo.value.reason is AllocationFailure.NO_TABLE_AVAILABLE
    assert store.insert_calls == 0


async def test_booked_and_unavailable_tables_are_skipped(store, tomorrow, request_for):
    store.tables[2] = Table(id=3, table_number=3, capacity=6, status=TableStatus.OUT_OF_SERVICE)
    store.reservations.append(make_reservation(2, tomorrow))

    with pytest.raises(AllocationError) as excinfo:
        await TableAllocator(store).allocate(request_for(4))
    assert excinfo.value.reason is AllocationFailure.NO_TABLE_AVAILABLE


async def test_cancelled_reservation_frees_table(store, tomorrow, request_for):
    store.reservations.append(make_reservation(2, tomorrow, status=ReservationStatus.CANCELLED))

    reservation = await TableAllocator(store).allocate(request_for(4))
    assert reservation.table_id == 2


async def test_other_slots_do_not_block_table(store, tomorrow, request_for):
    store.reservations.append(make_reservation(2, tomorrow, time_slot="20:00"))

    reservation = await TableAllocator(store).allocate(request_for(4, time="19:00"))
    assert reservation.table_id == 2


async def test_repeated_previews_pick_same_table(store, tomorrow):
    allocator = TableAllocator(store)
    picks = [await allocator.preview(tomorrow, "19:00", 3) for _ in range(3)]
    assert {t.id for t in picks} == {2}
    assert store.insert_calls == 0


async def test_lost_race_retries_on_fresh_snapshot(store, tomorrow, hold, request_for):
    store.commit_behind_snapshot(make_reservation(2, tomorrow))

    reservation = await TableAllocator(store, hold).allocate(request_for(4))

    assert reservation.table_id == 3
    assert store.insert_calls == 2
    assert hold.released == [hold_key(2, tomorrow, "19:00")]
    assert hold_key(3, tomorrow, "19:00") in hold.keys


async def test_second_lost_race_reports_conflict(store, tomorrow, hold, request_for):
    hold.keys.add(hold_key(2, tomorrow, "19:00"))

    with pytest.raises(AllocationError) as excinfo:
        await TableAllocator(store, hold).allocate(request_for(4))

    assert excinfo.value.reason is AllocationFailure.CONFLICT
    assert store.insert_calls == 0
    assert store.reservations == []


async def test_concurrent_requests_for_last_table(tomorrow, request_for):
    store = InMemoryReservationStore([Table(id=7, table_number=7, capacity=4)])
    store.sync_snapshots(2)
    allocator = TableAllocator(store)

    results = await asyncio.gather(
        allocator.allocate(request_for(4, user_id="first")),
        allocator.allocate(request_for(4, user_id="second")),
        return_exceptions=True,
    )

    committed = [r for r in results if not isinstance(r, Exception)]
    failed = [r for r in results if isinstance(r, Exception)]
    assert len(committed) == 1
    assert committed[0].table_id == 7
    assert len(failed) == 1
    assert isinstance(failed[0], AllocationError)
    assert failed[0].reason is AllocationFailure.CONFLICT
    assert len(store.reservations) == 1


async def test_concurrent_requests_spread_over_tables(store, request_for):
    store.sync_snapshots(2)
    allocator = TableAllocator(store)

    first, second = await asyncio.gather(
        allocator.allocate(request_for(4, user_id="first")),
        allocator.allocate(request_for(4, user_id="second")),
    )

    assert {first.table_id, second.table_id} == {2, 3}


async def test_store_timeout_is_reported(store, request_for):
    store.fail_with_timeout = True

    with pytest.raises(AllocationError) as excinfo:
        await TableAllocator(store).allocate(request_for(4))
    assert excinfo.value.reason is AllocationFailure.STORE_TIMEOUT


async def test_find_alternates_lists_later_free_slots(tomorrow, policy):
    store = InMemoryReservationStore([Table(id=1, table_number=1, capacity=4)])
    for slot in ("19:00", "19:30", "20:30"):
        store.reservations.append(make_reservation(1, tomorrow, time_slot=slot))

    alternates = await TableAllocator(store).find_alternates(tomorrow, "19:00", 4, policy.time_slots)
    assert alternates == ["20:00", "21:00", "21:30", "22:00"]
