"""Tests for bi-weekly period generation and lookup."""
from datetime import date, timedelta

import pytest

from conftest import TODAY
from revshare.errors import NotFoundError, ValidationError
from revshare.models import REVENUE_CALCULATED
from revshare.periods import PeriodRegistry, build_year_periods, period_timing


def test_build_year_periods_shape():
    """24 periods, two per month, split on the 14th."""
    periods = build_year_periods(2026)
    assert len(periods) == 24

    feb1, feb2 = periods[2], periods[3]
    assert (feb1.period_start, feb1.period_end) == ("2026-02-01", "2026-02-14")
    assert (feb2.period_start, feb2.period_end) == ("2026-02-15", "2026-02-28")
    assert feb1.id == "2026-02-P1"
    assert feb2.period_name == "February 2026 - Period 2"


def test_build_year_periods_contiguous():
    """Each period starts the day after the previous one ends."""
    periods = build_year_periods(2024)
    for prev, cur in zip(periods, periods[1:]):
        assert date.fromisoformat(cur.period_start) == date.fromisoformat(prev.period_end) + timedelta(days=1)
    assert periods[0].period_start == "2024-01-01"
    assert periods[-1].period_end == "2024-12-31"
    # Leap year
    assert periods[3].period_end == "2024-02-29"


def test_generate_year_is_idempotent(repo):
    registry = PeriodRegistry(repo)
    first = registry.generate_year(2026, TODAY)
    second = registry.generate_year(2026, TODAY)

    assert first["periodsCreated"] == 24
    assert second["periodsCreated"] == 0
    assert len(registry.list_periods(TODAY, year=2026)) == 24


def test_generate_year_keeps_existing_rows(repo):
    registry = PeriodRegistry(repo)
    registry.generate_year(2026, TODAY)
    registry.mark_status("2026-02-01", "2026-02-14", REVENUE_CALCULATED)

    registry.generate_year(2026, TODAY)
    period = registry.get_period(date(2026, 2, 1), date(2026, 2, 14))
    assert period.revenue_status == REVENUE_CALCULATED


def test_status_flags(repo):
    registry = PeriodRegistry(repo)
    registry.generate_year(2026, TODAY)

    current = registry.get_current(TODAY)
    assert current.period_start == "2026-02-15"
    assert current.is_current

    registry.update_status_flags(date(2026, 3, 1))
    moved = registry.get_current(date(2026, 3, 1))
    assert moved.period_start == "2026-03-01"
    old = registry.get_period(date(2026, 2, 15), date(2026, 2, 28))
    assert not old.is_current
    assert not old.is_future


def test_list_periods_by_category(repo):
    registry = PeriodRegistry(repo)
    registry.generate_year(2026, TODAY)

    past = registry.list_periods(TODAY, category="past")
    current = registry.list_periods(TODAY, category="current")
    future = registry.list_periods(TODAY, category="future")
    assert len(past) == 3
    assert len(current) == 1
    assert len(future) == 20

    with pytest.raises(ValidationError):
        registry.list_periods(TODAY, category="someday")


def test_get_current_without_periods(repo):
    with pytest.raises(NotFoundError):
        PeriodRegistry(repo).get_current(TODAY)


def test_get_by_date(repo):
    registry = PeriodRegistry(repo)
    registry.generate_year(2026, TODAY)
    assert registry.get_by_date(date(2026, 2, 14)).id == "2026-02-P1"
    assert registry.get_by_date(date(2026, 2, 15)).id == "2026-02-P2"
    with pytest.raises(NotFoundError):
        registry.get_by_date(date(2030, 1, 1))


def test_validate_processable(repo):
    registry = PeriodRegistry(repo)
    registry.generate_year(2026, TODAY)

    period = registry.validate_processable(date(2026, 2, 1), date(2026, 2, 14), TODAY)
    assert period.id == "2026-02-P1"

    # Still running
    with pytest.raises(ValidationError):
        registry.validate_processable(date(2026, 2, 15), date(2026, 2, 28), TODAY)
    # Ends today: not ended yet
    with pytest.raises(ValidationError):
        registry.validate_processable(date(2026, 2, 1), date(2026, 2, 14), date(2026, 2, 14))
    # Unknown window
    with pytest.raises(NotFoundError):
        registry.validate_processable(date(2026, 2, 2), date(2026, 2, 9), TODAY)


def test_resolve_processable_skips_calculated(repo):
    registry = PeriodRegistry(repo)
    registry.generate_year(2026, TODAY)

    assert registry.resolve_processable(TODAY).id == "2026-02-P1"
    registry.mark_status("2026-02-01", "2026-02-14", REVENUE_CALCULATED)
    assert registry.resolve_processable(TODAY).id == "2026-01-P2"


def test_resolve_processable_none_left(repo):
    registry = PeriodRegistry(repo)
    registry.generate_year(2026, TODAY)
    with pytest.raises(NotFoundError):
        registry.resolve_processable(date(2026, 1, 10))


def test_period_timing():
    period = build_year_periods(2026)[3]
    timing = period_timing(period, TODAY)
    assert timing["totalDays"] == 14
    assert timing["daysElapsed"] == 6
    assert timing["daysRemaining"] == 8
