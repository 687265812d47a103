"""Unit tests for the pure helpers behind badges, milestones and submissions.

No database: these exercise BADGE_RULES evaluation, milestone crossing and the
clock-hour duplicate window.
"""

from datetime import datetime, timedelta, timezone

import pytest

from groceryindex.services.report_lifecycle import hour_window, normalize_reported_at
from groceryindex.services.reputation import (
    BADGE_RULES,
    UserStats,
    crossed_milestones,
    evaluate_badge_rules,
)


def stats(reports: int = 0, verified: int = 0, helpful: int = 0) -> UserStats:
    return UserStats(
        report_count=reports,
        verified_report_count=verified,
        helpful_votes_received=helpful,
    )


def names(rules) -> set[str]:
    return {rule.name for rule in rules}


class TestBadgeRules:
    """Unlock conditions for the five fixed badges."""

    def test_rule_order_is_fixed(self):
        assert [r.name for r in BADGE_RULES] == [
            "First Reporter",
            "Trend Setter",
            "Veteran Reporter",
            "Accuracy Star",
            "Community Helper",
        ]

    def test_new_user_earns_nothing(self):
        assert evaluate_badge_rules(stats()) == []

    def test_first_report_unlocks_first_reporter(self):
        assert names(evaluate_badge_rules(stats(reports=1))) == {"First Reporter"}

    def test_forty_nine_reports_is_not_veteran(self):
        earned = names(evaluate_badge_rules(stats(reports=49)))
        assert "Veteran Reporter" not in earned
        assert earned == {"First Reporter", "Trend Setter"}

    def test_fifty_reports_is_veteran(self):
        assert "Veteran Reporter" in names(evaluate_badge_rules(stats(reports=50)))

    @pytest.mark.parametrize("reports,expected", [(9, False), (10, True)])
    def test_trend_setter_boundary(self, reports, expected):
        assert ("Trend Setter" in names(evaluate_badge_rules(stats(reports=reports)))) is expected

    def test_accuracy_star_counts_verified_reports_only(self):
        assert "Accuracy Star" not in names(evaluate_badge_rules(stats(reports=30, verified=9)))
        assert "Accuracy Star" in names(evaluate_badge_rules(stats(reports=30, verified=10)))

    def test_community_helper_needs_twenty_helpful_votes(self):
        assert "Community Helper" not in names(evaluate_badge_rules(stats(helpful=19)))
        assert "Community Helper" in names(evaluate_badge_rules(stats(helpful=20)))

    def test_already_earned_badges_are_skipped(self):
        result = evaluate_badge_rules(stats(reports=10), earned={"First Reporter"})
        assert names(result) == {"Trend Setter"}


class TestMilestones:
    def test_crossing_a_single_milestone(self):
        assert crossed_milestones(95, 110) == [100]

    def test_landing_exactly_on_a_milestone_counts(self):
        assert crossed_milestones(98, 100) == [100]

    def test_crossing_several_at_once(self):
        assert crossed_milestones(90, 600) == [100, 500]

    def test_downward_moves_never_cross(self):
        assert crossed_milestones(101, 99) == []


class TestHourWindow:
    """Duplicate submissions are detected within [hh:00, hh+1:00)."""

    def test_window_brackets_the_clock_hour(self):
        at = datetime(2026, 3, 1, 10, 35, 12, tzinfo=timezone.utc)
        start, end = hour_window(at)
        assert start == datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)
        assert end == datetime(2026, 3, 1, 11, 0, tzinfo=timezone.utc)

    def test_same_hour_timestamps_share_a_window(self):
        a = hour_window(datetime(2026, 3, 1, 10, 5, tzinfo=timezone.utc))
        b = hour_window(datetime(2026, 3, 1, 10, 59, tzinfo=timezone.utc))
        assert a == b

    def test_naive_timestamps_are_treated_as_utc(self):
        assert normalize_reported_at(datetime(2026, 3, 1, 10, 5)).tzinfo == timezone.utc

    def test_offset_timestamps_are_converted_to_utc(self):
        kl = timezone(timedelta(hours=8))
        value = normalize_reported_at(datetime(2026, 3, 1, 18, 5, tzinfo=kl))
        assert value == datetime(2026, 3, 1, 10, 5, tzinfo=timezone.utc)

    def test_missing_timestamp_defaults_to_now(self):
        before = datetime.now(timezone.utc)
        value = normalize_reported_at(None)
        assert before <= value <= datetime.now(timezone.utc)
