from fastapi import APIRouter, Depends, HTTPException, status

from backend.app.routers.deps import get_policy, get_store
from backend.app.routers.schemas import AvailabilityCheckIn, AvailabilityCheckOut, TimeSlotsOut
from backend.app.services.allocator import TableAllocator
from backend.app.services.errors import ReservationValidationError, StoreTimeoutError
from backend.app.services.policy import BookingPolicy
from backend.app.services.store import ReservationStore
from backend.app.services.validation import validate_slot

router = APIRouter()


@router.get("/availability/slots", response_model=TimeSlotsOut)
async def list_time_slots(policy: BookingPolicy = Depends(get_policy)) -> TimeSlotsOut:
    return TimeSlotsOut(
        time_slots=list(policy.time_slots),
        party_min=policy.party_min,
        party_max=policy.party_max,
    )


@router.post("/availability/check", response_model=AvailabilityCheckOut)
async def check_availability(
    payload: AvailabilityCheckIn,
    policy: BookingPolicy = Depends(get_policy),
    store: ReservationStore = Depends(get_store),
) -> AvailabilityCheckOut:
    """Preview the table a booking would get, without holding or committing it."""
    try:
        reservation_date, time_slot, party_size = validate_slot(payload.model_dump(), policy)
    except ReservationValidationError as exc:
        raise HTTPException(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"field": exc.field, "message": exc.message},
        ) from exc

    allocator = TableAllocator(store)
    try:
        table = await allocator.preview(reservation_date, time_slot, party_size)
        if table is None:
            alternates = await allocator.find_alternates(
                reservation_date, time_slot, party_size, policy.time_slots
            )
            raise HTTPException(
                status.HTTP_409_CONFLICT,
                detail={
                    "message": "No table available",
                    "alternates": alternates,
                },
            )
    except StoreTimeoutError as exc:
        raise HTTPException(status.HTTP_504_GATEWAY_TIMEOUT, detail="Reservation store timeout") from exc

    return AvailabilityCheckOut(
        date=reservation_date,
        time=time_slot,
        party_size=party_size,
        table_number=table.table_number,
        capacity=table.capacity,
    )
