"""
Collaborator protocols consumed by the slot search services.

Every collaborator is read-only and snapshot-style. Implementations raise
``UpstreamUnavailableError`` when a read fails; ``read_upstream`` converts
any other failure to that error kind so a failed read can never be mistaken
for "no data".
"""

from __future__ import annotations

import logging
from typing import Awaitable, List, Optional, Protocol, Sequence, TypeVar

from pendulum import DateTime

from ..domain.exceptions import SlotEngineError, UpstreamUnavailableError
from ..domain.models import ExistingBooking, Provider, SalonHours, Service

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ServiceCatalog(Protocol):
    """Lookup of bookable services."""

    async def get_service(self, service_id: str) -> Optional[Service]:
        """Return the service, or None if it does not exist."""


class ProviderDirectory(Protocol):
    """Lookup of salon masters."""

    async def list_eligible_providers(self, salon_id: str, service_category: str) -> List[Provider]:
        """Return the providers of a salon specialized in a category."""

    async def get_provider(self, provider_id: str) -> Optional[Provider]:
        """Return the provider, or None if it does not exist."""


class BookingLedger(Protocol):
    """Read access to existing bookings."""

    async def list_active_bookings(
        self,
        provider_ids: Sequence[str],
        range_start: DateTime,
        range_end: DateTime,
    ) -> List[ExistingBooking]:
        """Return active bookings of all given providers overlapping ``[range_start, range_end)``."""


class SalonConfig(Protocol):
    """Per-salon scheduling settings."""

    async def get_operating_hours(self, salon_id: str) -> Optional[SalonHours]:
        """Return the salon-wide operating window, or None for no restriction."""

    async def get_slot_interval(self, salon_id: str) -> Optional[int]:
        """Return the salon's slot step in minutes, or None to use the default."""


async def read_upstream(operation: str, call: Awaitable[T]) -> T:
    """
    Await a collaborator read, surfacing every failure as UpstreamUnavailableError.

    Args:
        operation: Collaborator operation name used in logs and the error
        call: Pending collaborator call

    Raises:
        UpstreamUnavailableError: If the read fails for any reason
    """
    try:
        return await call
    except UpstreamUnavailableError:
        logger.error("Upstream read %s failed", operation)
        raise
    except SlotEngineError:
        raise
    except Exception as exc:
        logger.exception("Upstream read %s failed", operation)
        raise UpstreamUnavailableError(operation, str(exc)) from exc
