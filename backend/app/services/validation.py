"""Booking request validation.

Checks run in a fixed order and the first failing field is reported. Nothing
here performs I/O, so the same input always yields the same verdict.
"""

import logging
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from email_validator import EmailNotValidError, validate_email

from backend.app.models import ValidatedRequest
from backend.app.services.errors import ReservationValidationError
from backend.app.services.policy import BookingPolicy

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 2
MIN_PHONE_DIGITS = 10
MAX_SPECIAL_REQUESTS_LENGTH = 1024
MAX_PARTY_SIZE_DIGITS = 4


def _text(raw: Mapping[str, Any], key: str) -> str:
    value = raw.get(key)
    if value is None:
        return ""
    return str(value).strip()


def _check_name(raw: Mapping[str, Any]) -> str:
    name = _text(raw, "guest_name")
    if len(name) < MIN_NAME_LENGTH:
        raise ReservationValidationError("guest_name", "Name must be at least 2 characters")
    return name


def _check_email(raw: Mapping[str, Any]) -> str:
    email = _text(raw, "guest_email")
    try:
        normalized = validate_email(email, check_deliverability=False).normalized
    except EmailNotValidError:
        raise ReservationValidationError("guest_email", "Invalid email address") from None

    # Single-letter top-level domains are not delegated.
    if len(normalized.rsplit(".", 1)[-1]) < 2:
        raise ReservationValidationError("guest_email", "Invalid email address")
    return normalized


def _check_phone(raw: Mapping[str, Any]) -> str:
    phone = _text(raw, "guest_phone")
    if sum(ch.isdigit() for ch in phone) < MIN_PHONE_DIGITS:
        raise ReservationValidationError("guest_phone", "Phone number must be at least 10 digits")
    return phone


def _check_date(raw: Mapping[str, Any], today: date) -> date:
    value = raw.get("date")
    if isinstance(value, datetime):
        requested = value.date()
    elif isinstance(value, date):
        requested = value
    else:
        text = _text(raw, "date")
        if not text:
            raise ReservationValidationError("date", "Please select a date")
        try:
            requested = date.fromisoformat(text)
        except ValueError:
            raise ReservationValidationError("date", f"Invalid date: {text}") from None

    if requested < today:
        raise ReservationValidationError("date", "Date cannot be in the past")
    return requested


def _check_time(raw: Mapping[str, Any], policy: BookingPolicy) -> str:
    slot = _text(raw, "time")
    if not slot:
        raise ReservationValidationError("time", "Please select a time")
    if slot not in policy.time_slots:
        raise ReservationValidationError("time", f"{slot} is not an available time slot")
    return slot


def _check_party_size(raw: Mapping[str, Any], policy: BookingPolicy) -> int:
    value = raw.get("party_size")
    if isinstance(value, bool):
        value = None
    elif isinstance(value, str):
        digits = value.strip()
        value = int(digits) if digits.isdecimal() and len(digits) <= MAX_PARTY_SIZE_DIGITS else None
    elif isinstance(value, float) and value.is_integer():
        value = int(value)

    if not isinstance(value, int):
        raise ReservationValidationError("party_size", "Party size must be a whole number")
    if value < policy.party_min:
        raise ReservationValidationError(
            "party_size", f"At least {policy.party_min} guest required"
        )
    if value > policy.party_max:
        raise ReservationValidationError("party_size", f"Maximum {policy.party_max} guests")
    return value


def _check_special_requests(raw: Mapping[str, Any]) -> str | None:
    note = _text(raw, "special_requests")
    if len(note) > MAX_SPECIAL_REQUESTS_LENGTH:
        raise ReservationValidationError(
            "special_requests",
            f"Special requests must be at most {MAX_SPECIAL_REQUESTS_LENGTH} characters",
        )
    return note or None


def validate_slot(
    raw: Mapping[str, Any],
    policy: BookingPolicy,
    *,
    today: date | None = None,
) -> tuple[date, str, int]:
    """Validate only the date, time slot and party size of a request."""
    today = today or date.today()
    return (
        _check_date(raw, today),
        _check_time(raw, policy),
        _check_party_size(raw, policy),
    )


def validate(
    raw: Mapping[str, Any],
    policy: BookingPolicy,
    *,
    user_id: str,
    today: date | None = None,
) -> ValidatedRequest:
    """Validate a raw booking request.

    Args:
        raw: Loosely typed request fields (guest_name, guest_email, guest_phone,
            date, time, party_size, special_requests).
        policy: Published time slots and party size bounds.
        user_id: Identifier of the already authenticated requester.
        today: Reference date for the "not in the past" rule.

    Returns:
        An immutable ValidatedRequest.

    Raises:
        ReservationValidationError: naming the first field that failed.
    """
    today = today or date.today()
    try:
        guest_name = _check_name(raw)
        guest_email = _check_email(raw)
        guest_phone = _check_phone(raw)
        reservation_date, reservation_time, party_size = validate_slot(raw, policy, today=today)
        special_requests = _check_special_requests(raw)
    except ReservationValidationError as exc:
        logger.debug("Rejected booking request for user %s: %s", user_id, exc)
        raise

    return ValidatedRequest(
        user_id=user_id,
        guest_name=guest_name,
        guest_email=guest_email,
        guest_phone=guest_phone,
        reservation_date=reservation_date,
        reservation_time=reservation_time,
        party_size=party_size,
        special_requests=special_requests,
    )
