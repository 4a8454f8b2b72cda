from fastapi import APIRouter, Depends, HTTPException, status

from backend.app.routers.deps import get_store
from backend.app.routers.schemas import TableOut
from backend.app.services.errors import StoreTimeoutError
from backend.app.services.store import ReservationStore

router = APIRouter()


@router.get("/tables", response_model=list[TableOut])
async def list_tables(store: ReservationStore = Depends(get_store)) -> list[TableOut]:
    """Table inventory ordered by table number."""
    try:
        tables = await store.list_tables()
    except StoreTimeoutError as exc:
        raise HTTPException(status.HTTP_504_GATEWAY_TIMEOUT, detail="Reservation store timeout") from exc
    return [TableOut.model_validate(t) for t in sorted(tables, key=lambda t: t.table_number)]
