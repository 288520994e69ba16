"""
Domain layer - Pure slot logic without external dependencies.
"""

from .conflicts import remove_conflicts
from .exceptions import (
    InvalidSearchRequestError,
    ScheduleDataError,
    SlotEngineError,
    UpstreamUnavailableError,
)
from .models import (
    CLOSED,
    Closed,
    ExistingBooking,
    OpenHours,
    Provider,
    ProximityLabel,
    ProximityWeighting,
    RankedSlot,
    SalonHours,
    SearchRequest,
    Service,
    SlotCandidate,
    SlotSearchResult,
    TimeRange,
    Weekday,
    WeeklySchedule,
)
from .ranking import (
    AlternativeProximityEngine,
    ExactPreferencePolicy,
    PreferenceRankingEngine,
    ProximityPolicy,
    RankingOutcome,
    RankingPolicy,
)
from .slot_generator import SlotGenerator

__all__ = [
    "AlternativeProximityEngine",
    "CLOSED",
    "Closed",
    "ExactPreferencePolicy",
    "ExistingBooking",
    "InvalidSearchRequestError",
    "OpenHours",
    "PreferenceRankingEngine",
    "Provider",
    "ProximityLabel",
    "ProximityPolicy",
    "ProximityWeighting",
    "RankedSlot",
    "RankingOutcome",
    "RankingPolicy",
    "SalonHours",
    "ScheduleDataError",
    "SearchRequest",
    "Service",
    "SlotCandidate",
    "SlotEngineError",
    "SlotGenerator",
    "SlotSearchResult",
    "TimeRange",
    "UpstreamUnavailableError",
    "Weekday",
    "WeeklySchedule",
    "remove_conflicts",
]
