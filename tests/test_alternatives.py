"""
Tests for proximity-based alternative suggestions.
"""

import pendulum
import pytest
from datetime import date, time

from salonslots.domain.exceptions import InvalidSearchRequestError
from salonslots.domain.models import ProximityLabel, ProximityWeighting, SlotCandidate
from salonslots.domain.proximity_text import describe_day_offset, describe_minute_offset
from salonslots.domain.ranking import AlternativeProximityEngine, ProximityPolicy

TZ = "Europe/Berlin"
TARGET_DATE = date(2024, 11, 25)  # Monday
TARGET_TIME = time(14, 0)
SAME_TIME = ProximityWeighting(prefer_same_time=True)


def _slot(start: str, provider_id: str = "m-anna") -> SlotCandidate:
    slot_start = pendulum.parse(start, tz=TZ)
    return SlotCandidate(
        provider_id=provider_id,
        provider_name="Anna",
        service_id="svc-haircut",
        service_name="Haircut",
        duration_minutes=60,
        start=slot_start,
        end=slot_start.add(minutes=60),
    )


def _score(start: str, weighting: ProximityWeighting) -> int:
    policy = ProximityPolicy(target_date=TARGET_DATE, target_time=TARGET_TIME, weighting=weighting)
    return policy.score(_slot(start)).score


class TestProximityPolicy:
    """Tests for the 1000-base proximity score."""

    def test_default_weighting(self):
        default = ProximityWeighting()

        assert _score("2024-11-25 13:30", default) == 1000 + (500 - 60) + 200
        assert _score("2024-11-25 16:00", default) == 1000 + (300 - 240) + 200
        assert _score("2024-11-25 11:00", default) == 1000 + (150 - 360) + 200
        assert _score("2024-11-26 14:00", default) == 1000 + 500 + (100 - 10)
        assert _score("2024-11-29 14:00", default) == 1000 + 500 + (50 - 40)

    def test_prefer_same_time_ranks_closer_time_higher(self):
        """With preferSameTime, 13:30 beats 16:00 on the requested day."""
        weighting = ProximityWeighting(prefer_same_time=True)

        earlier = _score("2024-11-25 13:30", weighting)
        later = _score("2024-11-25 16:00", weighting)

        assert earlier == 1000 - 150 + 200
        assert later == 1000 - 600 + 200
        assert earlier > later

    def test_prefer_same_time_rewards_exact_time_on_other_day(self):
        weighting = ProximityWeighting(prefer_same_time=True)

        assert _score("2024-11-26 14:00", weighting) == 1000 + 1000 + 90

    def test_prefer_same_day(self):
        weighting = ProximityWeighting(prefer_same_day=True)

        assert _score("2024-11-25 13:30", weighting) == 1000 + 440 + 1000
        assert _score("2024-11-26 14:00", weighting) == 1000 + 500 - 100

    def test_missing_target_terms_are_zero(self):
        policy = ProximityPolicy(target_time=TARGET_TIME)

        result = policy.score(_slot("2024-12-10 14:00"))

        assert result.score == 1500
        assert result.day_offset is None
        assert result.minute_offset == 0

    @pytest.mark.parametrize(
        "start, label",
        [
            ("2024-11-25 14:00", ProximityLabel.EXACT),
            ("2024-11-25 15:00", ProximityLabel.CLOSE),
            ("2024-11-25 17:30", ProximityLabel.SAME_DAY),
            ("2024-11-28 14:00", ProximityLabel.SAME_WEEK),
            ("2024-12-09 14:00", ProximityLabel.ALTERNATIVE),
        ],
    )
    def test_labels(self, start, label):
        policy = ProximityPolicy(target_date=TARGET_DATE, target_time=TARGET_TIME)

        assert policy.score(_slot(start)).label == label


class TestAlternativeProximityEngine:
    """Tests for AlternativeProximityEngine."""

    def _candidates(self):
        return [
            _slot("2024-11-25 13:30"),
            _slot("2024-11-25 16:00"),
            _slot("2024-11-29 14:00"),
            _slot("2024-11-26 14:00"),
            _slot("2024-11-28 14:00"),
            _slot("2024-11-27 14:00"),
        ]

    def test_same_time_weighting_prefers_other_days(self):
        engine = AlternativeProximityEngine()

        ranked = engine.suggest_alternatives(
            self._candidates(), TARGET_DATE, TARGET_TIME, max_alternatives=10, weighting=SAME_TIME
        )

        assert [slot.start.format("MM-DD HH:mm") for slot in ranked] == [
            "11-26 14:00",
            "11-27 14:00",
            "11-28 14:00",
            "11-29 14:00",
            "11-25 13:30",
            "11-25 16:00",
        ]
        assert [slot.rank for slot in ranked] == [1, 2, 3, 4, 5, 6]

    def test_top_three_above_threshold_highlighted(self):
        engine = AlternativeProximityEngine()

        ranked = engine.suggest_alternatives(
            self._candidates(), TARGET_DATE, TARGET_TIME, max_alternatives=10, weighting=SAME_TIME
        )

        assert [slot.highlighted for slot in ranked] == [True, True, True, False, False, False]

    def test_scores_below_threshold_not_highlighted(self):
        engine = AlternativeProximityEngine()

        ranked = engine.suggest_alternatives(
            [_slot("2024-11-25 13:30"), _slot("2024-11-25 16:00")],
            TARGET_DATE,
            TARGET_TIME,
            weighting=SAME_TIME,
        )

        assert not any(slot.highlighted for slot in ranked)

    def test_truncates_after_ranking(self):
        engine = AlternativeProximityEngine()

        ranked = engine.suggest_alternatives(
            self._candidates(), TARGET_DATE, TARGET_TIME, max_alternatives=2, weighting=SAME_TIME
        )

        assert [slot.start.format("MM-DD HH:mm") for slot in ranked] == ["11-26 14:00", "11-27 14:00"]

    def test_without_weighting_uses_plain_proximity(self):
        """No same-time or same-day preference: the closest time today wins."""
        engine = AlternativeProximityEngine()

        ranked = engine.suggest_alternatives(
            self._candidates(), TARGET_DATE, TARGET_TIME, max_alternatives=10
        )

        assert [(slot.start.format("MM-DD HH:mm"), slot.score) for slot in ranked] == [
            ("11-25 13:30", 1640),
            ("11-26 14:00", 1590),
            ("11-27 14:00", 1530),
            ("11-28 14:00", 1520),
            ("11-29 14:00", 1510),
            ("11-25 16:00", 1260),
        ]

    def test_explicit_weighting(self):
        engine = AlternativeProximityEngine()

        ranked = engine.suggest_alternatives(
            self._candidates(),
            TARGET_DATE,
            TARGET_TIME,
            max_alternatives=1,
            weighting=ProximityWeighting(prefer_same_day=True),
        )

        assert ranked[0].start.format("MM-DD HH:mm") == "11-25 13:30"
        assert ranked[0].label == ProximityLabel.CLOSE

    def test_offsets_and_text(self):
        engine = AlternativeProximityEngine()

        ranked = engine.suggest_alternatives(
            [_slot("2024-11-26 14:00")], TARGET_DATE, TARGET_TIME
        )

        assert ranked[0].day_offset == 1
        assert ranked[0].minute_offset == 0
        assert ranked[0].proximity_text() == "Tomorrow, same time"

    def test_non_positive_max_rejected(self):
        with pytest.raises(InvalidSearchRequestError):
            AlternativeProximityEngine().suggest_alternatives(
                self._candidates(), TARGET_DATE, TARGET_TIME, max_alternatives=0
            )

    def test_rank_by_time_proximity(self):
        engine = AlternativeProximityEngine()

        ranked = engine.rank_by_time_proximity(
            [_slot("2024-11-25 16:00"), _slot("2024-11-27 14:00"), _slot("2024-11-25 13:30")],
            TARGET_TIME,
        )

        assert [slot.start.format("MM-DD HH:mm") for slot in ranked] == [
            "11-27 14:00",
            "11-25 13:30",
            "11-25 16:00",
        ]
        assert all(slot.highlighted for slot in ranked)

    def test_rank_by_date_proximity(self):
        engine = AlternativeProximityEngine()

        ranked = engine.rank_by_date_proximity(
            [_slot("2024-11-27 09:00"), _slot("2024-11-25 18:00"), _slot("2024-11-26 09:00")],
            TARGET_DATE,
        )

        assert [slot.date for slot in ranked] == [
            date(2024, 11, 25),
            date(2024, 11, 26),
            date(2024, 11, 27),
        ]
        assert [slot.score for slot in ranked] == [1200, 1090, 1030]


class TestProximityText:
    """Tests for human-readable offsets."""

    @pytest.mark.parametrize(
        "minutes, text",
        [
            (0, "same time"),
            (-60, "1 hour earlier"),
            (30, "30 minutes later"),
            (90, "1 hour 30 minutes later"),
            (-150, "2 hours 30 minutes earlier"),
            (1, "1 minute later"),
        ],
    )
    def test_minute_offsets(self, minutes, text):
        assert describe_minute_offset(minutes) == text

    @pytest.mark.parametrize(
        "days, text",
        [
            (0, "Today"),
            (1, "Tomorrow"),
            (-1, "Yesterday"),
            (2, "Day after tomorrow"),
            (5, "In 5 days"),
            (8, None),
            (-3, None),
        ],
    )
    def test_day_offsets(self, days, text):
        assert describe_day_offset(days) == text
