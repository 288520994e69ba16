"""
Salon data snapshot loaded from a JSON file.

Implements all collaborator protocols, so searches can run against exported
backend data without network access (demos, tests, offline analysis).
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pendulum import DateTime

from ..domain.exceptions import ScheduleDataError
from ..domain.models import ExistingBooking, Provider, SalonHours, Service
from .payloads import (
    index_by_id,
    parse_booking,
    parse_provider,
    parse_salon_hours,
    parse_service,
    parse_slot_interval,
)

logger = logging.getLogger(__name__)


class SnapshotStore:
    """
    In-memory snapshot of salons, services, masters and bookings.

    Expected file layout:
        {
            "salons":   [{"id", "working_hours_start", "working_hours_end", "slot_duration_minutes"}],
            "services": [{"id", "name", "duration_minutes", "category", "price"}],
            "masters":  [{"id", "salon_id", "name", "specialization", "is_active", "working_hours"}],
            "bookings": [{"id", "master_id", "start_ts", "end_ts", "status"}]
        }
    """

    def __init__(self, data: Mapping[str, Any], timezone: str = "Europe/Berlin"):
        """
        Parse a snapshot payload.

        Args:
            data: Decoded snapshot content
            timezone: IANA timezone for timestamps without an offset

        Raises:
            ScheduleDataError: If the payload does not match the expected layout
        """
        if not isinstance(data, Mapping):
            raise ScheduleDataError("Snapshot must contain a mapping at the root level.")

        self.timezone = timezone
        self._salons = index_by_id(data.get("salons", []), "salons")
        self._services: Dict[str, Service] = {
            service_id: parse_service(record)
            for service_id, record in index_by_id(data.get("services", []), "services").items()
        }
        self._providers: Dict[str, Provider] = {
            provider_id: parse_provider(record)
            for provider_id, record in index_by_id(data.get("masters", []), "masters").items()
        }

        bookings = data.get("bookings", [])
        if not isinstance(bookings, list):
            raise ScheduleDataError("'bookings' must be a list")
        self._bookings: List[ExistingBooking] = [
            parse_booking(record, timezone) for record in bookings
        ]

        logger.debug(
            "Loaded snapshot with %d salons, %d services, %d masters, %d bookings",
            len(self._salons), len(self._services), len(self._providers), len(self._bookings),
        )

    @classmethod
    def from_file(cls, path: Path, timezone: str = "Europe/Berlin") -> "SnapshotStore":
        """
        Load a snapshot from a JSON file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ScheduleDataError: If the file is not valid snapshot JSON
        """
        if not path.exists():
            raise FileNotFoundError(f"Snapshot file not found: {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as exc:
            raise ScheduleDataError(f"Invalid JSON in {path}: {exc}") from exc

        return cls(data, timezone=timezone)

    async def get_service(self, service_id: str) -> Optional[Service]:
        return self._services.get(service_id)

    async def list_eligible_providers(self, salon_id: str, service_category: str) -> List[Provider]:
        return [
            provider for provider in self._providers.values()
            if provider.salon_id == salon_id
            and provider.is_active
            and provider.can_perform(service_category)
        ]

    async def get_provider(self, provider_id: str) -> Optional[Provider]:
        return self._providers.get(provider_id)

    async def list_active_bookings(
        self,
        provider_ids: Sequence[str],
        range_start: DateTime,
        range_end: DateTime,
    ) -> List[ExistingBooking]:
        wanted = set(provider_ids)

        return [
            booking for booking in self._bookings
            if booking.provider_id in wanted
            and booking.is_active
            and booking.start < range_end
            and booking.effective_end > range_start
        ]

    async def get_operating_hours(self, salon_id: str) -> Optional[SalonHours]:
        record = self._salons.get(salon_id)
        if record is None:
            return None
        return parse_salon_hours(record)

    async def get_slot_interval(self, salon_id: str) -> Optional[int]:
        record = self._salons.get(salon_id)
        if record is None:
            return None
        return parse_slot_interval(record)
