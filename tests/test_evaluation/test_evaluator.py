"""
Tests for ``evaluate`` — accuracy and lead-time statistics.

Fixtures use a monthly signal whose onset dates are chosen directly, plus a
hand-built recession map, so every offset can be checked by hand.
"""

from __future__ import annotations

from datetime import date

import pytest

from sahm_engine.config import EvaluationConfig
from sahm_engine.evaluation.evaluator import (
    NO_RECESSION_STARTS,
    NO_SIGNAL_CROSSINGS,
    UNMATCHED_OFFSETS_AS_ZERO,
    evaluate,
    recession_starts_since,
)
from sahm_engine.models.signal import ComputedPoint
from sahm_engine.utils.time_utils import monthly_dates


def _signal(start: date, values: list) -> list[ComputedPoint]:
    return [ComputedPoint(date=d, value=v) for d, v in zip(monthly_dates(start, len(values)), values)]


def _recession(start: date, flags: list[int]) -> dict[date, int]:
    return dict(zip(monthly_dates(start, len(flags)), flags))


# Onset on 2020-03-01.
ONSET_MARCH_2020 = _signal(date(2019, 10, 1), [0.0, 0.1, 0.2, 0.3, 0.4, 0.6, 0.9])


class TestSingleRecession:
    def test_prediction_fifteen_days_after_start(self):
        recession = {date(2020, 1, 1): 0, date(2020, 2, 15): 1, date(2020, 4, 1): 0}
        stats = evaluate(ONSET_MARCH_2020, recession, 0.5, committee_dates=[],
                         config=EvaluationConfig(accuracy_window_days=30))
        assert stats.accuracy == 100
        assert stats.recession_lead_time == -15
        assert stats.n_matched == 1
        assert stats.n_unmatched == 0
        assert stats.signal_starts == (date(2020, 3, 1),)
        assert stats.recession_starts == (date(2020, 2, 15),)

    def test_window_just_covers_offset(self):
        recession = {date(2020, 2, 15): 1, date(2020, 4, 1): 0}
        stats = evaluate(ONSET_MARCH_2020, recession, 0.5, committee_dates=[],
                         config=EvaluationConfig(accuracy_window_days=15))
        assert stats.accuracy == 100
        assert stats.recession_lead_time == -15

    def test_window_too_small(self):
        recession = {date(2020, 2, 15): 1, date(2020, 4, 1): 0}
        stats = evaluate(ONSET_MARCH_2020, recession, 0.5, committee_dates=[],
                         config=EvaluationConfig(accuracy_window_days=14))
        assert stats.accuracy == 0
        assert stats.recession_lead_time == 0
        assert stats.n_unmatched == 1
        assert UNMATCHED_OFFSETS_AS_ZERO in stats.warnings


class TestLookbackGuard:
    def test_old_recessions_excluded(self):
        recession = _recession(date(2019, 1, 1), [0, 1, 1, 0] + [0] * 8 + [0, 1, 1, 1, 0])
        # starts: 2019-02-01 (before cutoff 2019-12-01) and 2020-02-01
        stats = evaluate(ONSET_MARCH_2020, recession, 0.5, committee_dates=[])
        assert stats.recession_starts == (date(2020, 2, 1),)
        assert stats.recession_lead_time == -29

    def test_recession_running_at_cutoff_starts_at_cutoff(self):
        # In recession from 2019-06 through 2020-05; cutoff lands mid-run, so
        # the first retained entry is already 1 and counts as a rising edge.
        recession = _recession(date(2019, 6, 1), [1] * 12 + [0])
        starts = recession_starts_since(recession, date(2019, 12, 1))
        assert starts == [date(2019, 12, 1)]

    def test_lookback_months_configurable(self):
        recession = {date(2019, 10, 1): 1, date(2019, 11, 1): 0}
        three = evaluate(ONSET_MARCH_2020, recession, 0.5, committee_dates=[])
        six = evaluate(ONSET_MARCH_2020, recession, 0.5, committee_dates=[],
                       config=EvaluationConfig(lookback_months=6))
        assert three.n_recession_starts == 0
        assert NO_RECESSION_STARTS in three.warnings
        assert six.n_recession_starts == 1


class TestCommitteeLeadTime:
    def test_only_positive_offsets_count(self):
        points = _signal(date(2007, 10, 1), [0.1, 0.3, 0.6, 0.2, 0.1, 0.7])
        # onsets: 2007-12-01 and 2008-03-01
        committee = [date(2008, 12, 1)]
        cfg = EvaluationConfig(committee_window_days=400)
        stats = evaluate(points, {}, 0.5, committee_dates=committee, config=cfg)
        # offsets: 366 (2008 is a leap year) and 275 → mean 320.5 → 321
        assert stats.committee_lead_time == 321
        assert stats.committee_summary.average_days_lagging is None

    def test_no_leading_offsets_is_none(self):
        points = _signal(date(2009, 1, 1), [0.6])
        stats = evaluate(points, {}, 0.5, committee_dates=[date(2008, 12, 1)])
        assert stats.committee_lead_time is None
        assert stats.committee_summary.average_days_lagging == pytest.approx(-31.0)

    def test_committee_window_separate_from_accuracy_window(self):
        points = _signal(date(2008, 1, 1), [0.6])
        cfg = EvaluationConfig(accuracy_window_days=10, committee_window_days=400)
        stats = evaluate(points, {}, 0.5, committee_dates=[date(2008, 12, 1)], config=cfg)
        assert stats.committee_lead_time == 335

    def test_defaults_to_configured_committee_dates(self):
        points = _signal(date(2020, 3, 1), [0.6])
        stats = evaluate(points, {}, 0.5)
        # 2020-03-01 → 2020-06-08
        assert stats.committee_lead_time == 99


class TestNoCrossings:
    def test_all_below_threshold(self):
        points = _signal(date(2000, 1, 1), [0.1, 0.2, None, 0.3])
        stats = evaluate(points, {date(2000, 2, 1): 1}, 0.5)
        assert stats.accuracy is None
        assert stats.recession_lead_time is None
        assert stats.committee_lead_time is None
        assert stats.n_signal_starts == 0
        assert stats.warnings == (NO_SIGNAL_CROSSINGS,)

    def test_empty_points(self):
        stats = evaluate([], {}, 0.5)
        assert stats.warnings == (NO_SIGNAL_CROSSINGS,)


class TestUnmatchedPolicy:
    RECESSION = {date(2020, 2, 1): 1, date(2020, 5, 1): 0}
    # onsets 2010-01-01 (no recession nearby) and 2020-03-01
    POINTS = (
        _signal(date(2010, 1, 1), [0.6, 0.1])
        + _signal(date(2020, 3, 1), [0.7])
    )

    def test_zero_fallback_by_default(self):
        stats = evaluate(self.POINTS, self.RECESSION, 0.5, committee_dates=[],
                         config=EvaluationConfig(accuracy_window_days=90))
        assert stats.accuracy == 50
        # (0 + -29) / 2 = -14.5 → -14 (half up)
        assert stats.recession_lead_time == -14
        assert stats.n_unmatched == 1
        assert UNMATCHED_OFFSETS_AS_ZERO in stats.warnings

    def test_exclude_unmatched(self):
        cfg = EvaluationConfig(accuracy_window_days=90, exclude_unmatched_from_lead_time=True)
        stats = evaluate(self.POINTS, self.RECESSION, 0.5, committee_dates=[], config=cfg)
        assert stats.accuracy == 50
        assert stats.recession_lead_time == -29
        assert UNMATCHED_OFFSETS_AS_ZERO not in stats.warnings

    def test_open_recession_counted_when_included(self):
        points = _signal(date(2020, 3, 1), [0.7])
        recession = {date(2020, 2, 1): 1, date(2020, 3, 1): 1}
        dropped = evaluate(points, recession, 0.5, committee_dates=[])
        kept = evaluate(points, recession, 0.5, committee_dates=[],
                        config=EvaluationConfig(include_open_recession=True))
        assert dropped.accuracy == 0
        assert kept.accuracy == 100
        assert kept.recession_lead_time == -29


def test_evaluate_does_not_mutate_inputs():
    recession = {date(2020, 2, 15): 1, date(2020, 1, 1): 0, date(2020, 4, 1): 0}
    before = dict(recession)
    points = list(ONSET_MARCH_2020)
    evaluate(points, recession, 0.5, committee_dates=[])
    assert recession == before
    assert points == ONSET_MARCH_2020
