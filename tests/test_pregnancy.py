"""Tests for gestational week math and weekly fact lookups."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from services.pregnancy import (
    DEFAULT_ENCOURAGEMENT,
    PLANNING_TIPS,
    SIZE_COMPARISONS,
    body_change_for_week,
    compute_progress,
    milestone_for_week,
    parse_due_date,
    representative_tip,
    size_comparison_for_week,
    trimester_for_week,
)

TODAY = date(2024, 10, 28)


def test_week_twenty_from_due_date() -> None:
    progress = compute_progress(date(2025, 3, 20), TODAY)

    assert progress is not None
    assert progress.gestational_week == 20
    assert progress.weeks_remaining == 20
    assert progress.days_remaining == 143
    assert progress.trimester == 2
    assert progress.size is not None
    assert progress.size.object == "banana"
    assert progress.milestone == "Halfway there!"


def test_due_today_is_week_forty() -> None:
    progress = compute_progress(TODAY, TODAY)

    assert progress is not None
    assert progress.gestational_week == 40
    assert progress.weeks_remaining == 0


def test_recently_past_due_stays_at_week_forty() -> None:
    progress = compute_progress(TODAY - timedelta(days=14), TODAY)

    assert progress is not None
    assert progress.gestational_week == 40
    assert progress.days_remaining == 0


def test_far_past_due_is_out_of_range() -> None:
    assert compute_progress(TODAY - timedelta(days=15), TODAY) is None


def test_not_yet_conceived_is_out_of_range() -> None:
    assert compute_progress(TODAY + timedelta(days=280), TODAY) is None
    earliest = compute_progress(TODAY + timedelta(days=279), TODAY)
    assert earliest is not None
    assert earliest.gestational_week == 1


def test_early_weeks_clamp_size_to_first_entry() -> None:
    progress = compute_progress(TODAY + timedelta(days=37 * 7), TODAY)

    assert progress is not None
    assert progress.gestational_week == 3
    assert progress.size == SIZE_COMPARISONS[4]
    assert progress.encouragement == DEFAULT_ENCOURAGEMENT


@pytest.mark.parametrize(("week", "expected"), [(1, 1), (12, 1), (13, 2), (26, 2), (27, 3), (40, 3)])
def test_trimester_boundaries(week: int, expected: int) -> None:
    assert trimester_for_week(week) == expected


def test_milestone_is_current_or_upcoming() -> None:
    assert milestone_for_week(19) == "Halfway there!"
    assert milestone_for_week(20) == "Halfway there!"
    assert milestone_for_week(41) == "Almost there!"


def test_every_supported_week_has_size_and_body_change() -> None:
    for week in range(1, 41):
        assert size_comparison_for_week(week) is not None
        change = body_change_for_week(week)
        assert change is not None
        assert change.body and change.tip


def test_representative_tip_is_deterministic() -> None:
    assert representative_tip(20) == representative_tip(20)
    tip = representative_tip(20)
    assert tip is not None
    assert tip.week == 20
    assert tip.category == "preparation"


def test_representative_tip_looks_one_week_ahead() -> None:
    tip = representative_tip(15)

    assert tip is not None
    assert tip.week == 16


def test_representative_tip_absent_when_window_is_empty() -> None:
    assert representative_tip(3) is None
    assert all(tip.week != 3 and tip.week != 4 for tip in PLANNING_TIPS)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("2025-03-20", date(2025, 3, 20)),
        ("2025-03-20T00:00:00+00:00", date(2025, 3, 20)),
        (" 2025-03-20 ", date(2025, 3, 20)),
        ("", None),
        (None, None),
        ("not-a-date", None),
        ("2025-13-40", None),
    ],
)
def test_parse_due_date(raw: str | None, expected: date | None) -> None:
    assert parse_due_date(raw) == expected
