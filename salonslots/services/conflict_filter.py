"""
Removal of candidates that collide with existing bookings.
"""

import logging
from typing import Iterable, List, Sequence

from pendulum import DateTime

from ..domain.conflicts import remove_conflicts
from ..domain.models import Provider, SlotCandidate
from .ports import BookingLedger, read_upstream

logger = logging.getLogger(__name__)


class ConflictFilter:
    """
    Filters candidates against the booking ledger.

    Bookings for all providers and the whole horizon are read in exactly one
    ledger call; nothing is fetched per provider or per day.
    """

    def __init__(self, ledger: BookingLedger) -> None:
        self._ledger = ledger

    async def filter(
        self,
        candidates: Iterable[SlotCandidate],
        providers: Sequence[Provider],
        horizon_start: DateTime,
        horizon_end: DateTime,
    ) -> List[SlotCandidate]:
        """
        Drop candidates overlapping an active booking of the same provider.

        Args:
            candidates: Candidates to check, may be a lazy iterator
            providers: Providers the candidates were generated for
            horizon_start: Start of the searched range (inclusive)
            horizon_end: End of the searched range (exclusive)

        Raises:
            UpstreamUnavailableError: If the bookings cannot be read
        """
        provider_ids = [provider.id for provider in providers]
        if not provider_ids:
            return []

        bookings = await read_upstream(
            "BookingLedger.list_active_bookings",
            self._ledger.list_active_bookings(
                provider_ids=provider_ids,
                range_start=horizon_start,
                range_end=horizon_end,
            ),
        )

        available = remove_conflicts(candidates, bookings)

        logger.debug(
            "%d candidates left after checking %d bookings of %d providers",
            len(available), len(bookings), len(provider_ids),
        )
        return available
