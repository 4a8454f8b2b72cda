from dataclasses import dataclass
from datetime import datetime, timedelta

from backend.app.core.config import Settings


def build_time_slots(open_time: str, close_time: str, interval_minutes: int) -> tuple[str, ...]:
    """Return HH:MM marks from open_time to close_time inclusive."""
    if interval_minutes <= 0:
        raise ValueError("interval_minutes must be positive")

    cursor = datetime.strptime(open_time, "%H:%M")
    end = datetime.strptime(close_time, "%H:%M")
    if end < cursor:
        raise ValueError(f"closing time {close_time} precedes opening time {open_time}")

    slots: list[str] = []
    step = timedelta(minutes=interval_minutes)
    while cursor <= end:
        slots.append(cursor.strftime("%H:%M"))
        cursor += step
    return tuple(slots)


def parse_time_slots(raw_slots: list[str]) -> tuple[str, ...]:
    """Check an explicit slot list and return it in time order.

    Slots are compared as strings elsewhere, so only zero-padded 24-hour
    HH:MM marks are accepted.
    """
    for slot in raw_slots:
        try:
            parsed = datetime.strptime(slot, "%H:%M")
        except ValueError:
            raise ValueError(f"time slot {slot!r} is not HH:MM") from None
        if parsed.strftime("%H:%M") != slot:
            raise ValueError(f"time slot {slot!r} must be zero-padded, e.g. {parsed.strftime('%H:%M')!r}")
    if len(set(raw_slots)) != len(raw_slots):
        raise ValueError("time slots must not repeat")
    return tuple(sorted(raw_slots))


@dataclass(frozen=True)
class BookingPolicy:
    """Bookable slots and party bounds, consumed by the validator as plain data."""

    time_slots: tuple[str, ...]
    party_min: int = 1
    party_max: int = 20

    @classmethod
    def from_settings(cls, settings: Settings) -> "BookingPolicy":
        if settings.TIME_SLOTS:
            slots = parse_time_slots(settings.TIME_SLOTS)
        else:
            slots = build_time_slots(
                settings.SERVICE_OPEN,
                settings.SERVICE_CLOSE,
                settings.SLOT_INTERVAL_MINUTES,
            )
        return cls(
            time_slots=slots,
            party_min=settings.PARTY_SIZE_MIN,
            party_max=settings.PARTY_SIZE_MAX,
        )
