"""
Application service for finding and ranking bookable slots.

The service coordinates the collaborator reads (service catalog, provider
directory, salon settings, booking ledger) and delegates the actual work to
the domain: ``SlotGenerator`` produces candidates, ``ConflictFilter`` removes
booked ones in a single batched read, and one of the two ranking engines
orders the rest. Callers pick the ranking mode:

- ``find_available_slots``: preference ranking with limit/has_more
- ``find_nearby_alternatives`` / ``search_alternatives``: proximity ranking
  around a requested date and time that could not be booked
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, time
from time import perf_counter
from typing import List, Optional, Sequence

import pendulum
from pendulum import DateTime

from ..domain.exceptions import InvalidSearchRequestError
from ..domain.models import (
    Provider,
    ProximityWeighting,
    RankedSlot,
    SearchRequest,
    Service,
    SlotCandidate,
    SlotSearchResult,
)
from ..domain.ranking import (
    DEFAULT_HIGHLIGHT_COUNT,
    DEFAULT_HIGHLIGHT_THRESHOLD,
    AlternativeProximityEngine,
    PreferenceRankingEngine,
)
from ..domain.slot_generator import DEFAULT_SLOT_INTERVAL_MINUTES, SlotGenerator
from .conflict_filter import ConflictFilter
from .ports import BookingLedger, ProviderDirectory, SalonConfig, ServiceCatalog, read_upstream
from .provider_resolver import ProviderResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchPolicy:
    """Engine-wide settings applied to every search."""
    timezone: str = "Europe/Berlin"
    default_slot_interval_minutes: int = DEFAULT_SLOT_INTERVAL_MINUTES
    max_days_ahead_ceiling: Optional[int] = None
    limit_ceiling: Optional[int] = None
    max_alternatives: int = 5
    weighting: ProximityWeighting = field(
        default_factory=lambda: ProximityWeighting(prefer_same_time=True)
    )
    highlight_threshold: int = DEFAULT_HIGHLIGHT_THRESHOLD
    highlight_count: int = DEFAULT_HIGHLIGHT_COUNT


@dataclass
class CandidateSet:
    """Conflict-free candidates of one search, before any ranking."""
    candidates: List[SlotCandidate]
    providers: List[Provider]
    service: Optional[Service]
    horizon_start: date
    searched_days: int
    today: date


class SlotSearchService:
    """
    Orchestrates provider resolution, slot generation, conflict filtering
    and ranking.

    The service keeps no state between calls; collaborator data is treated
    as a snapshot valid for one invocation only.
    """

    def __init__(
        self,
        catalog: ServiceCatalog,
        directory: ProviderDirectory,
        ledger: BookingLedger,
        salon_config: SalonConfig,
        policy: Optional[SearchPolicy] = None,
    ) -> None:
        self._catalog = catalog
        self._salon_config = salon_config
        self._policy = policy or SearchPolicy()

        self._resolver = ProviderResolver(catalog=catalog, directory=directory)
        self._conflict_filter = ConflictFilter(ledger=ledger)
        self._generator = SlotGenerator(timezone=self._policy.timezone)
        self._ranking_engine = PreferenceRankingEngine()
        self._alternative_engine = AlternativeProximityEngine(
            highlight_threshold=self._policy.highlight_threshold,
            highlight_count=self._policy.highlight_count,
        )

    @property
    def policy(self) -> SearchPolicy:
        return self._policy

    async def find_available_slots(self, request: SearchRequest, now: DateTime) -> SlotSearchResult:
        """
        Find bookable slots ranked by the request's preferences.

        Unknown services or salons and missing providers produce an empty
        result, not an error.

        Raises:
            InvalidSearchRequestError: If the request exceeds configured ceilings
            UpstreamUnavailableError: If a collaborator read fails
        """
        started = perf_counter()

        candidate_set = await self.collect_candidates(request, now)
        result = self.rank_candidates(candidate_set, request)

        elapsed_ms = (perf_counter() - started) * 1000
        logger.info(
            "Found %d slots in %.1fms (searched %d days, %d providers)",
            result.total_found, elapsed_ms, result.searched_days, len(candidate_set.providers),
        )
        return result

    def rank_candidates(self, candidate_set: CandidateSet, request: SearchRequest) -> SlotSearchResult:
        """Apply preference ranking and the request's limit to collected candidates."""
        if not candidate_set.providers:
            return SlotSearchResult.empty(searched_days=request.max_days_ahead)

        outcome = self._ranking_engine.rank(
            candidate_set.candidates,
            preferred_provider_id=request.provider_id,
            preferred_date=request.preferred_date,
            preferred_time=request.preferred_time,
            limit=request.limit,
            today=candidate_set.today,
        )

        return SlotSearchResult(
            slots=outcome.slots,
            total_found=outcome.total_found,
            searched_days=candidate_set.searched_days,
            has_more=outcome.has_more,
        )

    async def collect_candidates(self, request: SearchRequest, now: DateTime) -> CandidateSet:
        """
        Resolve providers, generate candidates and drop the booked ones.

        Raises:
            InvalidSearchRequestError: If the request exceeds configured ceilings
            UpstreamUnavailableError: If a collaborator read fails
        """
        self._check_ceilings(request)

        local_now = now.in_timezone(self._policy.timezone)
        today = local_now.date()
        horizon_start = request.preferred_date or today

        service = await read_upstream(
            "ServiceCatalog.get_service",
            self._catalog.get_service(request.service_id),
        )
        if service is None:
            logger.warning("Service not found: %s", request.service_id)
            return self._empty_candidates(request, None, horizon_start, today)

        providers = await self._resolver.resolve_for_service(
            request.salon_id, service, request.provider_id
        )
        if not providers:
            logger.warning(
                "No providers found for service %s in salon %s",
                request.service_id, request.salon_id,
            )
            return self._empty_candidates(request, service, horizon_start, today)

        salon_hours = await read_upstream(
            "SalonConfig.get_operating_hours",
            self._salon_config.get_operating_hours(request.salon_id),
        )
        slot_interval = await read_upstream(
            "SalonConfig.get_slot_interval",
            self._salon_config.get_slot_interval(request.salon_id),
        )
        slot_interval = slot_interval or self._policy.default_slot_interval_minutes

        range_start = pendulum.datetime(
            horizon_start.year, horizon_start.month, horizon_start.day, tz=self._policy.timezone
        )
        range_end = range_start.add(days=request.max_days_ahead)

        raw_candidates = self._generator.generate(
            providers=providers,
            service=service,
            horizon_start=horizon_start,
            max_days_ahead=request.max_days_ahead,
            salon_hours=salon_hours,
            slot_interval_minutes=slot_interval,
            now=local_now,
        )
        candidates = await self._conflict_filter.filter(
            raw_candidates,
            providers=providers,
            horizon_start=range_start,
            horizon_end=range_end,
        )

        return CandidateSet(
            candidates=candidates,
            providers=providers,
            service=service,
            horizon_start=horizon_start,
            searched_days=request.max_days_ahead,
            today=today,
        )

    def find_nearby_alternatives(
        self,
        candidates: Sequence[SlotCandidate],
        target_date: date,
        target_time: time,
        max_alternatives: Optional[int] = None,
        weighting: Optional[ProximityWeighting] = None,
    ) -> List[RankedSlot]:
        """
        Rank candidates by proximity to a requested date and time.

        Defaults for ``max_alternatives`` and ``weighting`` come from the
        search policy.

        Raises:
            InvalidSearchRequestError: If max_alternatives is not positive
        """
        if max_alternatives is None:
            max_alternatives = self._policy.max_alternatives
        if max_alternatives <= 0:
            raise InvalidSearchRequestError(
                f"max_alternatives must be greater than zero, got {max_alternatives}"
            )

        if not candidates:
            return []

        return self._alternative_engine.suggest_alternatives(
            candidates,
            target_date=target_date,
            target_time=target_time,
            max_alternatives=max_alternatives,
            weighting=weighting or self._policy.weighting,
        )

    async def search_alternatives(
        self,
        request: SearchRequest,
        now: DateTime,
        max_alternatives: Optional[int] = None,
        weighting: Optional[ProximityWeighting] = None,
    ) -> List[RankedSlot]:
        """
        Collect candidates for a request and rank them around its preferred date and time.

        Raises:
            InvalidSearchRequestError: If the request has no preferred date or time
            UpstreamUnavailableError: If a collaborator read fails
        """
        if request.preferred_date is None or request.preferred_time is None:
            raise InvalidSearchRequestError(
                "Alternatives need both a preferred date and a preferred time"
            )

        candidate_set = await self.collect_candidates(request, now)

        return self.find_nearby_alternatives(
            candidate_set.candidates,
            target_date=request.preferred_date,
            target_time=request.preferred_time,
            max_alternatives=max_alternatives,
            weighting=weighting,
        )

    def _check_ceilings(self, request: SearchRequest) -> None:
        ceiling = self._policy.max_days_ahead_ceiling
        if ceiling is not None and request.max_days_ahead > ceiling:
            raise InvalidSearchRequestError(
                f"max_days_ahead {request.max_days_ahead} exceeds the allowed {ceiling}"
            )

        ceiling = self._policy.limit_ceiling
        if ceiling is not None and request.limit > ceiling:
            raise InvalidSearchRequestError(f"limit {request.limit} exceeds the allowed {ceiling}")

    @staticmethod
    def _empty_candidates(
        request: SearchRequest,
        service: Optional[Service],
        horizon_start: date,
        today: date,
    ) -> CandidateSet:
        return CandidateSet(
            candidates=[],
            providers=[],
            service=service,
            horizon_start=horizon_start,
            searched_days=request.max_days_ahead,
            today=today,
        )
