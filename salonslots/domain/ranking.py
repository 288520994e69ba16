"""
Scoring and ordering of slot candidates.

Both ranking modes share one pipeline: a ``RankingPolicy`` scores every
candidate, the scored list is sorted by descending score with a fixed
tie-break (date, start time, provider) and ranks are assigned densely from 1.

- ``ExactPreferencePolicy``: 0-100 rule table against the caller's stated
  provider/date/time preferences.
- ``ProximityPolicy``: 1000-base continuous score measuring the distance to a
  target date/time, used to suggest alternatives for an unavailable request.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, time
from typing import FrozenSet, Iterable, List, Optional, Tuple

from .exceptions import InvalidSearchRequestError
from .models import (
    ProximityLabel,
    ProximityWeighting,
    RankedSlot,
    SlotCandidate,
    minutes_since_midnight,
)

logger = logging.getLogger(__name__)

# A preferred time matches slots starting at most this far away.
TIME_MATCH_WINDOW_MINUTES = 60

PROXIMITY_SCORING = {
    "base": 1000,
    # Time term (default weighting)
    "within_one_hour": 500,
    "within_two_hours": 300,
    "within_three_hours": 150,
    "per_minute_penalty": 2,
    # Date term (default weighting)
    "same_day": 200,
    "next_day": 100,
    "same_week": 50,
    "per_day_penalty": 10,
    # prefer_same_time / prefer_same_day weightings
    "exact_match_bonus": 1000,
    "same_time_per_minute_penalty": 5,
    "same_day_per_day_penalty": 100,
}

DEFAULT_HIGHLIGHT_THRESHOLD = 1500
# Single-criterion rankings have no second term, so their scores run lower.
SINGLE_CRITERION_HIGHLIGHT_THRESHOLD = 500
DEFAULT_HIGHLIGHT_COUNT = 3


def day_offset(day: date, reference: date) -> int:
    """Signed number of calendar days from reference to day."""
    return day.toordinal() - reference.toordinal()


def minute_offset(candidate: SlotCandidate, target: time) -> int:
    """Signed wall-clock minutes from the target time to the candidate start."""
    return candidate.start_minutes - minutes_since_midnight(target)


@dataclass(frozen=True)
class SlotScore:
    """Outcome of scoring one candidate."""
    score: int
    label: ProximityLabel
    is_preferred: bool = False
    minute_offset: Optional[int] = None
    day_offset: Optional[int] = None


class RankingPolicy(ABC):
    """Scores candidates; ordering and rank assignment are shared."""

    @abstractmethod
    def score(self, candidate: SlotCandidate) -> SlotScore:
        """Score a single candidate."""

    def rank(self, candidates: Iterable[SlotCandidate]) -> List[RankedSlot]:
        """
        Score and totally order candidates.

        Order: score descending, then date, start time and provider id
        ascending. The result does not depend on the input order.
        """
        scored: List[Tuple[SlotScore, SlotCandidate]] = [
            (self.score(candidate), candidate) for candidate in candidates
        ]
        scored.sort(
            key=lambda item: (
                -item[0].score,
                item[1].date,
                item[1].start_minutes,
                item[1].provider_id,
            )
        )

        return [
            RankedSlot(
                candidate=candidate,
                score=slot_score.score,
                label=slot_score.label,
                is_preferred=slot_score.is_preferred,
                rank=position,
                minute_offset=slot_score.minute_offset,
                day_offset=slot_score.day_offset,
            )
            for position, (slot_score, candidate) in enumerate(scored, start=1)
        ]


@dataclass(frozen=True)
class PreferenceRule:
    """One row of the preference table; matches when all required predicates hold."""
    requires: FrozenSet[str]
    score: int
    label: ProximityLabel
    is_preferred: bool


# First matching rule wins.
PREFERENCE_RULES: Tuple[PreferenceRule, ...] = (
    PreferenceRule(frozenset({"provider", "date", "time"}), 100, ProximityLabel.EXACT, True),
    PreferenceRule(frozenset({"provider", "date"}), 90, ProximityLabel.CLOSE, True),
    PreferenceRule(frozenset({"provider", "time"}), 85, ProximityLabel.CLOSE, True),
    PreferenceRule(frozenset({"provider"}), 75, ProximityLabel.SAME_WEEK, True),
    PreferenceRule(frozenset({"date", "time"}), 70, ProximityLabel.CLOSE, False),
    PreferenceRule(frozenset({"date"}), 60, ProximityLabel.SAME_DAY, False),
    PreferenceRule(frozenset({"time"}), 50, ProximityLabel.SAME_WEEK, False),
)


class ExactPreferencePolicy(RankingPolicy):
    """
    Scores candidates against stated preferences on a 0-100 scale.

    Candidates matching no preference fall back to a recency score of
    ``max(0, 40 - 2 * |days from today|)``.
    """

    def __init__(
        self,
        today: date,
        preferred_provider_id: Optional[str] = None,
        preferred_date: Optional[date] = None,
        preferred_time: Optional[time] = None,
    ):
        self.today = today
        self.preferred_provider_id = preferred_provider_id
        self.preferred_date = preferred_date
        self.preferred_time = preferred_time

    def matches(self, candidate: SlotCandidate) -> FrozenSet[str]:
        """Names of the preference predicates the candidate satisfies."""
        matched = set()

        if self.preferred_provider_id is not None and candidate.provider_id == self.preferred_provider_id:
            matched.add("provider")
        if self.preferred_date is not None and candidate.date == self.preferred_date:
            matched.add("date")
        if (
            self.preferred_time is not None
            and abs(minute_offset(candidate, self.preferred_time)) <= TIME_MATCH_WINDOW_MINUTES
        ):
            matched.add("time")

        return frozenset(matched)

    def score(self, candidate: SlotCandidate) -> SlotScore:
        matched = self.matches(candidate)

        for rule in PREFERENCE_RULES:
            if rule.requires <= matched:
                return SlotScore(score=rule.score, label=rule.label, is_preferred=rule.is_preferred)

        return self._fallback(candidate)

    def _fallback(self, candidate: SlotCandidate) -> SlotScore:
        days = abs(day_offset(candidate.date, self.today))

        if days == 0:
            label = ProximityLabel.SAME_DAY
        elif days <= 3:
            label = ProximityLabel.SAME_WEEK
        else:
            label = ProximityLabel.ALTERNATIVE

        return SlotScore(score=max(0, 40 - 2 * days), label=label)


class ProximityPolicy(RankingPolicy):
    """
    Scores candidates by distance to a target date and/or time.

    Score = 1000 + time term + date term. Terms for a missing target are 0.
    """

    def __init__(
        self,
        target_date: Optional[date] = None,
        target_time: Optional[time] = None,
        weighting: Optional[ProximityWeighting] = None,
    ):
        self.target_date = target_date
        self.target_time = target_time
        self.weighting = weighting or ProximityWeighting()

    def score(self, candidate: SlotCandidate) -> SlotScore:
        minutes = minute_offset(candidate, self.target_time) if self.target_time is not None else None
        days = day_offset(candidate.date, self.target_date) if self.target_date is not None else None

        total = PROXIMITY_SCORING["base"]
        if minutes is not None:
            total += self._time_term(abs(minutes))
        if days is not None:
            total += self._date_term(abs(days))

        return SlotScore(
            score=total,
            label=self._label(minutes, days),
            minute_offset=minutes,
            day_offset=days,
        )

    def _time_term(self, diff: int) -> int:
        if self.weighting.prefer_same_time:
            if diff == 0:
                return PROXIMITY_SCORING["exact_match_bonus"]
            return -PROXIMITY_SCORING["same_time_per_minute_penalty"] * diff

        bonus = 0
        if diff <= 60:
            bonus = PROXIMITY_SCORING["within_one_hour"]
        elif diff <= 120:
            bonus = PROXIMITY_SCORING["within_two_hours"]
        elif diff <= 180:
            bonus = PROXIMITY_SCORING["within_three_hours"]
        return bonus - PROXIMITY_SCORING["per_minute_penalty"] * diff

    def _date_term(self, diff: int) -> int:
        if self.weighting.prefer_same_day:
            if diff == 0:
                return PROXIMITY_SCORING["exact_match_bonus"]
            return -PROXIMITY_SCORING["same_day_per_day_penalty"] * diff

        bonus = 0
        if diff == 0:
            bonus = PROXIMITY_SCORING["same_day"]
        elif diff == 1:
            bonus = PROXIMITY_SCORING["next_day"]
        elif diff <= 7:
            bonus = PROXIMITY_SCORING["same_week"]
        return bonus - PROXIMITY_SCORING["per_day_penalty"] * diff

    @staticmethod
    def _label(minutes: Optional[int], days: Optional[int]) -> ProximityLabel:
        same_day = days is None or days == 0

        if same_day and minutes is not None:
            if minutes == 0:
                return ProximityLabel.EXACT
            if abs(minutes) <= TIME_MATCH_WINDOW_MINUTES:
                return ProximityLabel.CLOSE
        if same_day:
            return ProximityLabel.SAME_DAY
        if abs(days) <= 7:
            return ProximityLabel.SAME_WEEK
        return ProximityLabel.ALTERNATIVE


@dataclass
class RankingOutcome:
    """Top ranked slots plus the pre-limit count."""
    slots: List[RankedSlot]
    total_found: int
    has_more: bool


class PreferenceRankingEngine:
    """Ranks filtered candidates against a caller's stated preferences."""

    def rank(
        self,
        candidates: Iterable[SlotCandidate],
        preferred_provider_id: Optional[str] = None,
        preferred_date: Optional[date] = None,
        preferred_time: Optional[time] = None,
        limit: int = 10,
        *,
        today: date,
    ) -> RankingOutcome:
        """
        Score, order and truncate candidates.

        Args:
            candidates: Conflict-free candidates
            preferred_provider_id: Provider the caller asked for
            preferred_date: Date the caller asked for
            preferred_time: Start time the caller asked for
            limit: Maximum number of slots to return
            today: Reference day for the recency fallback score

        Returns:
            RankingOutcome with ``has_more == total_found > limit``

        Raises:
            InvalidSearchRequestError: If limit is not positive
        """
        if limit <= 0:
            raise InvalidSearchRequestError(f"limit must be greater than zero, got {limit}")

        policy = ExactPreferencePolicy(
            today=today,
            preferred_provider_id=preferred_provider_id,
            preferred_date=preferred_date,
            preferred_time=preferred_time,
        )
        ranked = policy.rank(candidates)

        return RankingOutcome(
            slots=ranked[:limit],
            total_found=len(ranked),
            has_more=len(ranked) > limit,
        )


class AlternativeProximityEngine:
    """
    Suggests nearby substitutes when the requested slot is unavailable.

    The top ``highlight_count`` entries scoring above ``highlight_threshold``
    are flagged for visual emphasis.
    """

    def __init__(
        self,
        highlight_threshold: int = DEFAULT_HIGHLIGHT_THRESHOLD,
        highlight_count: int = DEFAULT_HIGHLIGHT_COUNT,
    ):
        self.highlight_threshold = highlight_threshold
        self.highlight_count = highlight_count

    def suggest_alternatives(
        self,
        candidates: Iterable[SlotCandidate],
        target_date: date,
        target_time: time,
        max_alternatives: int = 5,
        weighting: Optional[ProximityWeighting] = None,
    ) -> List[RankedSlot]:
        """
        Rank candidates by combined date/time proximity and keep the best.

        Without an explicit weighting the plain ProximityWeighting applies,
        neither same-time nor same-day preference. The search service
        passes its configured weighting, which prefers the same time.

        Raises:
            InvalidSearchRequestError: If max_alternatives is not positive
        """
        if max_alternatives <= 0:
            raise InvalidSearchRequestError(
                f"max_alternatives must be greater than zero, got {max_alternatives}"
            )

        policy = ProximityPolicy(
            target_date=target_date,
            target_time=target_time,
            weighting=weighting or ProximityWeighting(),
        )
        ranked = self._highlight(policy.rank(candidates), self.highlight_threshold)

        logger.debug(
            "Ranked %d alternatives around %s %s, returning %d",
            len(ranked), target_date, target_time, min(len(ranked), max_alternatives),
        )
        return ranked[:max_alternatives]

    def rank_by_time_proximity(
        self,
        candidates: Iterable[SlotCandidate],
        target_time: time,
    ) -> List[RankedSlot]:
        """Rank all candidates by distance to a start time only."""
        policy = ProximityPolicy(target_time=target_time)
        return self._highlight(policy.rank(candidates), SINGLE_CRITERION_HIGHLIGHT_THRESHOLD)

    def rank_by_date_proximity(
        self,
        candidates: Iterable[SlotCandidate],
        target_date: date,
    ) -> List[RankedSlot]:
        """Rank all candidates by distance to a date only."""
        policy = ProximityPolicy(target_date=target_date)
        return self._highlight(policy.rank(candidates), SINGLE_CRITERION_HIGHLIGHT_THRESHOLD)

    def _highlight(self, ranked: List[RankedSlot], threshold: int) -> List[RankedSlot]:
        for slot in ranked[:self.highlight_count]:
            slot.highlighted = slot.score > threshold
        return ranked
