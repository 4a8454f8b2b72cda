import datetime as dt

from pydantic import BaseModel, ConfigDict, Field

from backend.app.models import ReservationStatus, TableStatus


class ReservationIn(BaseModel):
    # Loosely typed on purpose: field checks belong to services.validation.
    guest_name: str = ""
    guest_email: str = ""
    guest_phone: str = ""
    date: str = ""  # ISO date, e.g. "2026-11-05"
    time: str = ""  # one of the published slots, e.g. "19:00"
    party_size: int | float | str | None = None
    special_requests: str | None = None


class ReservationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    table_id: int
    guest_name: str
    guest_email: str
    guest_phone: str
    reservation_date: dt.date
    reservation_time: str
    party_size: int
    special_requests: str | None
    status: ReservationStatus
    created_at: dt.datetime
    table_number: int | None = None


class AvailabilityCheckIn(BaseModel):
    date: str = ""
    time: str = ""
    party_size: int | float | str | None = None


class AvailabilityCheckOut(BaseModel):
    date: dt.date
    time: str
    party_size: int
    table_number: int
    capacity: int


class TimeSlotsOut(BaseModel):
    time_slots: list[str]
    party_min: int = Field(ge=1)
    party_max: int


class TableOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    table_number: int
    capacity: int
    status: TableStatus
