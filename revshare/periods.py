from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional

from revshare.errors import NotFoundError, ValidationError
from revshare.models import REVENUE_CALCULATED, REVENUE_PENDING, Period
from revshare.repository import Repository

logger = logging.getLogger(__name__)

PERIOD_CATEGORIES = {"past", "current", "future", "all"}


def build_year_periods(year: int, creator_wallet: str = "", today: Optional[date] = None) -> List[Period]:
    """
    24 contiguous windows for a year, two per month:
    days 1-14 (period 1) and 15-last day of month (period 2).
    Pure; flags are computed against `today` when given.
    """
    periods: List[Period] = []
    for month in range(1, 13):
        last_day = calendar.monthrange(year, month)[1]
        month_name = calendar.month_name[month]
        for number, (first, last) in enumerate(((1, 14), (15, last_day)), start=1):
            start = date(year, month, first)
            end = date(year, month, last)
            periods.append(
                Period(
                    id=f"{year}-{month:02d}-P{number}",
                    period_start=start.isoformat(),
                    period_end=end.isoformat(),
                    period_name=f"{month_name} {year} - Period {number}",
                    year=year,
                    month=month,
                    period_number=number,
                    is_current=bool(today and start <= today <= end),
                    is_future=bool(today and start > today),
                    pumpfun_creator_wallet=creator_wallet,
                    revenue_status=REVENUE_PENDING,
                )
            )
    return periods


def period_category(period: Period, today: date) -> str:
    day = today.isoformat()
    if period.period_end < day:
        return "past"
    if period.period_start > day:
        return "future"
    return "current"


def period_timing(period: Period, today: date) -> Dict[str, Any]:
    start = date.fromisoformat(period.period_start)
    end = date.fromisoformat(period.period_end)
    total_days = (end - start).days + 1
    elapsed = min(max((today - start).days + 1, 0), total_days)
    return {
        "totalDays": total_days,
        "daysElapsed": elapsed,
        "daysRemaining": total_days - elapsed,
        "progressPercentage": round(elapsed / total_days * 100, 2),
    }


@dataclass(frozen=True)
class PeriodRegistry:
    repo: Repository
    creator_wallet: str = ""

    def generate_year(self, year: int, today: date) -> Dict[str, int]:
        if year < 2000 or year > 9999:
            raise ValidationError(f"Invalid year: {year}")
        periods = build_year_periods(year, self.creator_wallet, today)
        inserted = self.repo.insert_periods(periods)
        self.update_status_flags(today)
        logger.info("generated periods for %s: %s new of %s", year, inserted, len(periods))
        return {"year": year, "periodsCreated": inserted, "periodsExisting": len(periods) - inserted}

    def update_status_flags(self, today: date) -> int:
        updated = self.repo.update_status_flags(today.isoformat())
        logger.info("updated status flags on %s periods (today=%s)", updated, today.isoformat())
        return updated

    def get_period(self, period_start: date, period_end: date) -> Period:
        period = self.repo.get_period(period_start.isoformat(), period_end.isoformat())
        if period is None:
            raise NotFoundError(
                f"Period not found: {period_start.isoformat()} to {period_end.isoformat()}"
            )
        return period

    def get_by_date(self, day: date) -> Period:
        period = self.repo.get_period_covering(day.isoformat())
        if period is None:
            raise NotFoundError(f"No period covers {day.isoformat()}")
        return period

    def get_current(self, today: date) -> Period:
        """Flagged current period, else the one covering today, else the most recently ended."""
        period = self.repo.get_flagged_current()
        if period is None:
            period = self.repo.get_period_covering(today.isoformat())
        if period is None:
            period = self.repo.get_latest_ended(today.isoformat())
        if period is None:
            raise NotFoundError("No periods found. Generate periods first.")
        return period

    def get_next(self, today: date) -> Optional[Period]:
        return self.repo.get_next_period(today.isoformat())

    def list_periods(self, today: date, year: Optional[int] = None, category: str = "all") -> List[Period]:
        if category not in PERIOD_CATEGORIES:
            raise ValidationError(f"Invalid category: {category}. Use one of {sorted(PERIOD_CATEGORIES)}")
        periods = self.repo.list_periods(year)
        if category == "all":
            return periods
        return [p for p in periods if period_category(p, today) == category]

    def validate_processable(self, period_start: date, period_end: date, today: date) -> Period:
        period = self.get_period(period_start, period_end)
        if not period_end < today:
            raise ValidationError(
                f"Period has not ended yet: {period.period_name} ends {period.period_end}"
            )
        return period

    def resolve_processable(self, today: date) -> Period:
        period = self.repo.get_latest_ended(today.isoformat(), exclude_status=REVENUE_CALCULATED)
        if period is None:
            raise NotFoundError("No ended period is waiting to be calculated")
        return period

    def mark_status(self, period_start: str, period_end: str, status: str) -> None:
        self.repo.set_revenue_status(period_start, period_end, status)
        logger.info("period %s..%s revenue_status=%s", period_start, period_end, status)


def period_to_dict(period: Period) -> Dict[str, Any]:
    return {
        "id": period.id,
        "periodStart": period.period_start,
        "periodEnd": period.period_end,
        "periodName": period.period_name,
        "year": period.year,
        "month": period.month,
        "periodNumber": period.period_number,
        "isCurrent": period.is_current,
        "isFuture": period.is_future,
        "revenueStatus": period.revenue_status,
        "pumpfunCreatorWallet": period.pumpfun_creator_wallet,
        "pumpfunFeesSol": period.pumpfun_fees_sol,
        "platformRevenueSol": period.platform_revenue_sol,
        "pumpfunPoolSol": period.pumpfun_pool_sol,
        "platformPoolSol": period.platform_pool_sol,
        "referralBonusPoolSol": period.referral_bonus_pool_sol,
        "totalPoolSol": period.total_pool_sol,
    }
