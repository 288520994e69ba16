"""
Domain models for schedules, bookings and slot candidates.
"""

from dataclasses import dataclass, field
from datetime import date, time
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Any, FrozenSet, List, Mapping, Optional, Tuple, Union

from pendulum import DateTime

from .exceptions import InvalidSearchRequestError, ScheduleDataError
from .proximity_text import (
    PROXIMITY_TEXT_WINDOW_MINUTES,
    describe_day_offset,
    describe_minute_offset,
)

# Bookings stored without an end are assumed to last one hour.
DEFAULT_BOOKING_MINUTES = 60

ACTIVE_BOOKING_STATUSES = frozenset({"CONFIRMED", "PENDING", "IN_PROGRESS"})


def minutes_since_midnight(value: time) -> int:
    """Return the wall-clock minute of the day for a time value."""
    return value.hour * 60 + value.minute


def parse_clock(value: Any) -> Optional[time]:
    """
    Parse an ``HH:mm`` (or ``HH:mm:ss``) string into a time.

    Returns None for blank or malformed input instead of raising, because
    schedule payloads treat unusable values as a day off.
    """
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    if not isinstance(value, str) or not value.strip():
        return None

    parts = value.strip().split(":")
    if len(parts) not in (2, 3):
        return None
    try:
        hour, minute = int(parts[0]), int(parts[1])
    except ValueError:
        return None
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None
    return time(hour=hour, minute=minute)


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable time range with start and end datetime.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another. Touching ranges do not overlap."""
        return self.start < other.end and self.end > other.start

    def __str__(self) -> str:
        return f"{self.start.format('DD.MM.YYYY HH:mm')} - {self.end.format('HH:mm')}"


class Weekday(IntEnum):
    """Weekday index into a WeeklySchedule (0=Monday, 6=Sunday)."""
    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @classmethod
    def of(cls, day: date) -> "Weekday":
        return cls(day.weekday())


@dataclass(frozen=True)
class Closed:
    """A day without working hours."""


CLOSED = Closed()


@dataclass(frozen=True)
class OpenHours:
    """
    A daily wall-clock window ``[start, end)``.

    Invariant: start must be before end.
    """
    start: time
    end: time

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Opening time {self.start} must be before closing time {self.end}")

    @property
    def start_minutes(self) -> int:
        return minutes_since_midnight(self.start)

    @property
    def end_minutes(self) -> int:
        return minutes_since_midnight(self.end)

    def intersect(self, other: Optional["OpenHours"]) -> "DaySchedule":
        """
        Intersect with another window (None means no restriction).

        Returns CLOSED when the windows do not overlap.
        """
        if other is None:
            return self

        start = max(self.start, other.start)
        end = min(self.end, other.end)
        if start >= end:
            return CLOSED
        return OpenHours(start=start, end=end)

    @classmethod
    def parse(cls, start: Any, end: Any) -> "DaySchedule":
        """Build a window from raw values; unusable input yields CLOSED."""
        start_time = parse_clock(start)
        end_time = parse_clock(end)
        if start_time is None or end_time is None or start_time >= end_time:
            return CLOSED
        return cls(start=start_time, end=end_time)

    def __str__(self) -> str:
        return f"{self.start.strftime('%H:%M')}-{self.end.strftime('%H:%M')}"


DaySchedule = Union[Closed, OpenHours]

# Salon-wide operating hours share the shape of a provider's daily window.
SalonHours = OpenHours


@dataclass(frozen=True)
class WeeklySchedule:
    """Seven daily schedules indexed by Weekday."""
    days: Tuple[DaySchedule, ...]

    def __post_init__(self):
        if len(self.days) != len(Weekday):
            raise ValueError(f"A weekly schedule needs {len(Weekday)} days, got {len(self.days)}")

    def for_weekday(self, weekday: Weekday) -> DaySchedule:
        return self.days[weekday]

    def for_date(self, day: date) -> DaySchedule:
        return self.days[Weekday.of(day)]

    @classmethod
    def closed(cls) -> "WeeklySchedule":
        return cls(days=tuple(CLOSED for _ in Weekday))

    @classmethod
    def uniform(cls, hours: OpenHours, weekdays: List[Weekday]) -> "WeeklySchedule":
        """Open with the same hours on the given weekdays, closed otherwise."""
        return cls(days=tuple(hours if day in weekdays else CLOSED for day in Weekday))

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "WeeklySchedule":
        """
        Build a schedule from a weekday-name keyed payload.

        Example payload:
            {"monday": {"start": "09:00", "end": "18:00"}, "sunday": null}

        Missing days, null entries and entries without a usable start or end
        are treated as closed.

        Raises:
            ScheduleDataError: If the payload is not a mapping at all
        """
        if data is None:
            return cls.closed()
        if not isinstance(data, Mapping):
            raise ScheduleDataError(f"Working hours must be a mapping, got {type(data).__name__}")

        normalized = {str(key).strip().lower(): value for key, value in data.items()}
        days: List[DaySchedule] = []

        for weekday in Weekday:
            entry = normalized.get(weekday.name.lower())
            if isinstance(entry, Mapping):
                days.append(OpenHours.parse(entry.get("start"), entry.get("end")))
            else:
                days.append(CLOSED)

        return cls(days=tuple(days))


@dataclass(frozen=True)
class Service:
    """A bookable service. Price is passed through unmodified."""
    id: str
    name: str
    duration_minutes: int
    category: str
    price: Optional[Decimal] = None

    def __post_init__(self):
        if self.duration_minutes <= 0:
            raise ScheduleDataError(
                f"Service {self.id} must have a positive duration, got {self.duration_minutes}"
            )


@dataclass(frozen=True)
class Provider:
    """A salon master with a weekly schedule."""
    id: str
    name: str
    salon_id: str
    schedule: WeeklySchedule
    specializations: FrozenSet[str] = frozenset()
    is_active: bool = True

    def can_perform(self, category: str) -> bool:
        return category in self.specializations


@dataclass(frozen=True)
class ExistingBooking:
    """A booking read from the ledger."""
    provider_id: str
    start: DateTime
    end: Optional[DateTime] = None
    status: str = "CONFIRMED"
    id: Optional[str] = None

    @property
    def effective_end(self) -> DateTime:
        if self.end is not None and self.end > self.start:
            return self.end
        return self.start.add(minutes=DEFAULT_BOOKING_MINUTES)

    @property
    def is_active(self) -> bool:
        return self.status.upper() in ACTIVE_BOOKING_STATUSES

    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start, end=self.effective_end)


@dataclass(frozen=True)
class SlotCandidate:
    """
    A generated provider/service/start combination.

    ``end`` is always ``start + duration_minutes``.
    """
    provider_id: str
    provider_name: str
    service_id: str
    service_name: str
    duration_minutes: int
    start: DateTime
    end: DateTime
    price: Optional[Decimal] = None

    @property
    def id(self) -> str:
        # Deterministic so repeated searches yield the same identity.
        return f"{self.provider_id}-{self.start.to_iso8601_string()}"

    @property
    def date(self) -> date:
        return self.start.date()

    @property
    def start_time(self) -> time:
        return self.start.time()

    @property
    def start_minutes(self) -> int:
        return self.start.hour * 60 + self.start.minute

    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start, end=self.end)

    def conflicts_with(self, booking: ExistingBooking) -> bool:
        """Open-interval overlap with a booking of the same provider."""
        if booking.provider_id != self.provider_id:
            return False
        return self.time_range().overlaps(booking.time_range())


class ProximityLabel(str, Enum):
    """How close a ranked slot is to what the caller asked for."""
    EXACT = "exact"
    CLOSE = "close"
    SAME_DAY = "same-day"
    SAME_WEEK = "same-week"
    ALTERNATIVE = "alternative"


@dataclass
class RankedSlot:
    """
    A candidate with its score and position in a ranked list.

    ``minute_offset`` and ``day_offset`` are only set by proximity ranking and
    describe the distance to the target time/date.
    """
    candidate: SlotCandidate
    score: int
    label: ProximityLabel
    is_preferred: bool = False
    rank: int = 0
    highlighted: bool = False
    minute_offset: Optional[int] = None
    day_offset: Optional[int] = None

    @property
    def id(self) -> str:
        return self.candidate.id

    @property
    def provider_id(self) -> str:
        return self.candidate.provider_id

    @property
    def date(self) -> date:
        return self.candidate.date

    @property
    def start(self) -> DateTime:
        return self.candidate.start

    @property
    def end(self) -> DateTime:
        return self.candidate.end

    def proximity_text(self) -> Optional[str]:
        """Human-readable distance to the target, if one applies."""
        parts: List[str] = []
        if self.day_offset:
            day_text = describe_day_offset(self.day_offset)
            if day_text:
                parts.append(day_text)
        if self.minute_offset is not None and abs(self.minute_offset) <= PROXIMITY_TEXT_WINDOW_MINUTES:
            parts.append(describe_minute_offset(self.minute_offset))
        return ", ".join(parts) or None

    def format_display(self) -> str:
        """
        Format the slot for display.
        Format: ⭐ Mon, DD.MM.YYYY | HH:MM – HH:MM (60 min) · Master (proximity)
        """
        start = self.candidate.start
        end = self.candidate.end

        text = (
            f"{start.format('ddd, DD.MM.YYYY')} | {start.format('HH:mm')} – {end.format('HH:mm')} "
            f"({self.candidate.duration_minutes} min) · {self.candidate.provider_name}"
        )
        if self.highlighted:
            text = f"⭐ {text}"

        proximity = self.proximity_text()
        if proximity:
            text = f"{text} ({proximity})"
        return text


@dataclass(frozen=True)
class ProximityWeighting:
    """Switches for the alternative engine's time and date terms."""
    prefer_same_time: bool = False
    prefer_same_day: bool = False


@dataclass(frozen=True)
class SearchRequest:
    """
    Structured slot search parameters.

    Raises:
        InvalidSearchRequestError: If limit or max_days_ahead is not positive
    """
    salon_id: str
    service_id: str
    provider_id: Optional[str] = None
    preferred_date: Optional[date] = None
    preferred_time: Optional[time] = None
    max_days_ahead: int = 7
    limit: int = 10

    def __post_init__(self):
        if self.max_days_ahead <= 0:
            raise InvalidSearchRequestError(
                f"max_days_ahead must be greater than zero, got {self.max_days_ahead}"
            )
        if self.limit <= 0:
            raise InvalidSearchRequestError(f"limit must be greater than zero, got {self.limit}")


@dataclass
class SlotSearchResult:
    """Ranked slots plus paging information."""
    slots: List[RankedSlot] = field(default_factory=list)
    total_found: int = 0
    searched_days: int = 0
    has_more: bool = False

    @classmethod
    def empty(cls, searched_days: int) -> "SlotSearchResult":
        return cls(slots=[], total_found=0, searched_days=searched_days, has_more=False)
