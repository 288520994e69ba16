"""
Candidate slot generation from weekly schedules.

Pure domain logic without any external dependencies (no API calls, no
database, no I/O). The current time is always supplied by the caller.
"""

from datetime import date
from typing import Iterator, Optional, Sequence, Tuple

import pendulum
from pendulum import DateTime

from .exceptions import InvalidSearchRequestError
from .models import DaySchedule, OpenHours, Provider, SalonHours, Service, SlotCandidate

DEFAULT_SLOT_INTERVAL_MINUTES = 30


class SlotGenerator:
    """
    Generates candidate start times per provider and day.

    Algorithm (for each provider, for each day of the horizon):
    1. Skip days before today
    2. Skip days the provider does not work
    3. Intersect the provider's window with the salon hours
    4. Today only: move the window start to the next interval boundary after now
    5. Step through the window by the slot interval while the service still fits

    All stepping happens on minutes since midnight; wall-clock datetimes are
    only built for emitted candidates.
    """

    def __init__(self, timezone: str = "Europe/Berlin"):
        self.timezone = timezone

    def generate(
        self,
        providers: Sequence[Provider],
        service: Service,
        horizon_start: date,
        max_days_ahead: int,
        salon_hours: Optional[SalonHours],
        slot_interval_minutes: int,
        now: DateTime,
    ) -> Iterator[SlotCandidate]:
        """
        Return a lazy iterator of candidates ordered by provider, date, time.

        Args:
            providers: Providers to generate for, in iteration order
            service: Service whose duration determines each slot's end
            horizon_start: First calendar day of the search
            max_days_ahead: Number of days to search, starting at horizon_start
            salon_hours: Salon-wide operating window, None for no restriction
            slot_interval_minutes: Step between candidate start times
            now: Current time; nothing before it is ever emitted

        Raises:
            InvalidSearchRequestError: If the interval or the horizon is not positive
        """
        if slot_interval_minutes <= 0:
            raise InvalidSearchRequestError(
                f"slot_interval_minutes must be greater than zero, got {slot_interval_minutes}"
            )
        if max_days_ahead <= 0:
            raise InvalidSearchRequestError(
                f"max_days_ahead must be greater than zero, got {max_days_ahead}"
            )

        return self._iter_horizon(
            providers=list(providers),
            service=service,
            first_day=pendulum.date(horizon_start.year, horizon_start.month, horizon_start.day),
            max_days_ahead=max_days_ahead,
            salon_hours=salon_hours,
            slot_interval_minutes=slot_interval_minutes,
            local_now=now.in_timezone(self.timezone),
        )

    def _iter_horizon(
        self,
        providers: Sequence[Provider],
        service: Service,
        first_day: pendulum.Date,
        max_days_ahead: int,
        salon_hours: Optional[SalonHours],
        slot_interval_minutes: int,
        local_now: DateTime,
    ) -> Iterator[SlotCandidate]:
        for provider in providers:
            for offset in range(max_days_ahead):
                yield from self.generate_day(
                    provider=provider,
                    service=service,
                    day=first_day.add(days=offset),
                    salon_hours=salon_hours,
                    slot_interval_minutes=slot_interval_minutes,
                    now=local_now,
                )

    def generate_day(
        self,
        provider: Provider,
        service: Service,
        day: date,
        salon_hours: Optional[SalonHours],
        slot_interval_minutes: int,
        now: DateTime,
    ) -> Iterator[SlotCandidate]:
        """Yield the candidates of a single provider on a single day."""
        now = now.in_timezone(self.timezone)
        bounds = self._bookable_bounds(
            provider=provider,
            day=day,
            salon_hours=salon_hours,
            slot_interval_minutes=slot_interval_minutes,
            now=now,
        )
        if bounds is None:
            return

        minute, window_end = bounds
        while minute + service.duration_minutes <= window_end:
            start = self._at_minute(day, minute)

            # Wall-clock times skipped by a DST jump resolve to a later minute.
            exists = start.hour * 60 + start.minute == minute

            # Rounding guard: never offer a start that already passed.
            if exists and start >= now:
                yield SlotCandidate(
                    provider_id=provider.id,
                    provider_name=provider.name,
                    service_id=service.id,
                    service_name=service.name,
                    duration_minutes=service.duration_minutes,
                    start=start,
                    end=start.add(minutes=service.duration_minutes),
                    price=service.price,
                )

            minute += slot_interval_minutes

    @staticmethod
    def effective_window(
        provider: Provider,
        day: date,
        salon_hours: Optional[SalonHours],
    ) -> DaySchedule:
        """
        Working window of a provider on a day, restricted to the salon hours.

        Returns CLOSED if the provider is off or the windows do not overlap.
        """
        schedule = provider.schedule.for_date(day)
        if not isinstance(schedule, OpenHours):
            return schedule
        return schedule.intersect(salon_hours)

    def _bookable_bounds(
        self,
        provider: Provider,
        day: date,
        salon_hours: Optional[SalonHours],
        slot_interval_minutes: int,
        now: DateTime,
    ) -> Optional[Tuple[int, int]]:
        """
        First start minute and closing minute for a day, or None to skip it.
        """
        today = now.date()
        if day < today:
            return None

        window = self.effective_window(provider, day, salon_hours)
        if not isinstance(window, OpenHours):
            return None

        start = window.start_minutes
        end = window.end_minutes

        if day == today:
            now_minutes = now.hour * 60 + now.minute
            if now_minutes > start:
                # Ceiling to the next interval boundary counted from midnight.
                next_boundary = -(-now_minutes // slot_interval_minutes) * slot_interval_minutes
                start = max(start, next_boundary)
                if start >= end:
                    return None

        return start, end

    def _at_minute(self, day: date, minute: int) -> DateTime:
        hour, minute_of_hour = divmod(minute, 60)
        return pendulum.datetime(
            day.year, day.month, day.day, hour, minute_of_hour, tz=self.timezone
        )
