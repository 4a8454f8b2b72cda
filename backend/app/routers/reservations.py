from fastapi import APIRouter, Depends, HTTPException, status

from backend.app.routers.deps import get_allocator, get_policy, get_store, get_user_id
from backend.app.routers.schemas import ReservationIn, ReservationOut
from backend.app.services.allocator import TableAllocator
from backend.app.services.errors import (
    AllocationError,
    AllocationFailure,
    ReservationValidationError,
    StoreTimeoutError,
)
from backend.app.services.policy import BookingPolicy
from backend.app.services.store import ReservationStore
from backend.app.services.validation import validate


router = APIRouter()


@router.post("/reservations", response_model=ReservationOut, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    payload: ReservationIn,
    user_id: str = Depends(get_user_id),
    policy: BookingPolicy = Depends(get_policy),
    allocator: TableAllocator = Depends(get_allocator),
) -> ReservationOut:
    try:
        request = validate(payload.model_dump(), policy, user_id=user_id)
    except ReservationValidationError as exc:
        raise HTTPException(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"field": exc.field, "message": exc.message},
        ) from exc

    try:
        reservation = await allocator.allocate(request)
    except AllocationError as exc:
        if exc.reason is AllocationFailure.STORE_TIMEOUT:
            status_code = status.HTTP_504_GATEWAY_TIMEOUT
        else:
            status_code = status.HTTP_409_CONFLICT
        raise HTTPException(
            status_code,
            detail={"code": exc.reason.value, "message": exc.message},
        ) from exc

    return ReservationOut.model_validate(reservation)


@router.get("/reservations", response_model=list[ReservationOut])
async def list_my_reservations(
    user_id: str = Depends(get_user_id),
    store: ReservationStore = Depends(get_store),
) -> list[ReservationOut]:
    """The caller's own reservations with their table number, latest date first."""
    try:
        reservations = await store.list_user_reservations(user_id)
    except StoreTimeoutError as exc:
        raise HTTPException(status.HTTP_504_GATEWAY_TIMEOUT, detail="Reservation store timeout") from exc
    return [ReservationOut.model_validate(r) for r in reservations]
