"""
Conversion of backend records (snapshot file or REST API) into domain models.

Record field names follow the salon backend's database columns.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional

import pendulum
from pendulum import DateTime

from ..domain.exceptions import ScheduleDataError
from ..domain.models import (
    ExistingBooking,
    OpenHours,
    Provider,
    SalonHours,
    Service,
    WeeklySchedule,
)


def _require(record: Mapping[str, Any], key: str, kind: str) -> Any:
    value = record.get(key)
    if value is None:
        raise ScheduleDataError(f"{kind} record is missing '{key}': {dict(record)}")
    return value


def parse_datetime(value: Any, timezone: str) -> DateTime:
    """
    Parse an ISO 8601 timestamp into the given timezone.

    Timestamps without an offset are read as local time of that timezone.
    """
    try:
        parsed = pendulum.parse(str(value), tz=timezone)
    except (ValueError, TypeError) as exc:
        raise ScheduleDataError(f"Could not parse datetime: {value}") from exc

    if not isinstance(parsed, DateTime):
        raise ScheduleDataError(f"Expected a datetime, got: {value}")
    return parsed.in_timezone(timezone)


def parse_price(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ScheduleDataError(f"Invalid price: {value}") from exc


def parse_service(record: Mapping[str, Any]) -> Service:
    try:
        duration = int(_require(record, "duration_minutes", "Service"))
    except (TypeError, ValueError) as exc:
        raise ScheduleDataError(f"Invalid service duration: {record.get('duration_minutes')}") from exc

    return Service(
        id=str(_require(record, "id", "Service")),
        name=str(record.get("name", "")),
        duration_minutes=duration,
        category=str(_require(record, "category", "Service")),
        price=parse_price(record.get("price")),
    )


def parse_provider(record: Mapping[str, Any]) -> Provider:
    """
    Build a provider from a master record.

    ``working_hours`` is keyed by weekday name; days without usable hours
    become closed days.
    """
    specialization = record.get("specialization") or []
    if isinstance(specialization, str):
        specialization = [specialization]

    return Provider(
        id=str(_require(record, "id", "Master")),
        name=str(record.get("name", "")),
        salon_id=str(_require(record, "salon_id", "Master")),
        schedule=WeeklySchedule.from_mapping(record.get("working_hours")),
        specializations=frozenset(str(item) for item in specialization),
        is_active=bool(record.get("is_active", True)),
    )


def parse_booking(record: Mapping[str, Any], timezone: str) -> ExistingBooking:
    end_value = record.get("end_ts")

    return ExistingBooking(
        id=str(record["id"]) if record.get("id") is not None else None,
        provider_id=str(_require(record, "master_id", "Booking")),
        start=parse_datetime(_require(record, "start_ts", "Booking"), timezone),
        end=parse_datetime(end_value, timezone) if end_value else None,
        status=str(record.get("status", "CONFIRMED")),
    )


def parse_salon_hours(record: Mapping[str, Any]) -> Optional[SalonHours]:
    """Salon-wide window, or None when the salon does not restrict hours."""
    if not record.get("working_hours_start") and not record.get("working_hours_end"):
        return None

    # A half-specified window is open-ended on the missing side.
    hours = OpenHours.parse(
        record.get("working_hours_start") or "00:00",
        record.get("working_hours_end") or "23:59",
    )
    if not isinstance(hours, OpenHours):
        raise ScheduleDataError(
            f"Invalid salon working hours: {record.get('working_hours_start')}"
            f"-{record.get('working_hours_end')}"
        )
    return hours


def parse_slot_interval(record: Mapping[str, Any]) -> Optional[int]:
    value = record.get("slot_duration_minutes")
    if value in (None, "", 0):
        return None
    try:
        interval = int(value)
    except (TypeError, ValueError) as exc:
        raise ScheduleDataError(f"Invalid slot interval: {value}") from exc
    if interval <= 0:
        raise ScheduleDataError(f"Slot interval must be positive, got {interval}")
    return interval


def index_by_id(records: Any, kind: str) -> Dict[str, Mapping[str, Any]]:
    if not isinstance(records, list):
        raise ScheduleDataError(f"'{kind}' must be a list")
    return {str(_require(record, "id", kind)): record for record in records}
