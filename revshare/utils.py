from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from revshare.errors import ValidationError

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def parse_day(value: Optional[str], field: str = "date") -> date:
    """
    Parse a YYYY-MM-DD string. A trailing time component is stripped
    ('2026-01-15T00:00:00Z' -> 2026-01-15).
    """
    if not value or not isinstance(value, str):
        raise ValidationError(f"Missing required field: {field}")
    try:
        return date.fromisoformat(value.strip().split("T")[0])
    except ValueError as e:
        raise ValidationError(f"Invalid date format for {field}: {value!r}. Use YYYY-MM-DD format.") from e


def parse_period_window(period_start: Optional[str], period_end: Optional[str]) -> tuple[date, date]:
    """Validate a (periodStart, periodEnd) pair before any I/O."""
    if not period_start or not period_end:
        raise ValidationError("Missing required fields: periodStart, periodEnd")
    start = parse_day(period_start, "periodStart")
    end = parse_day(period_end, "periodEnd")
    if start >= end:
        raise ValidationError("Period start must be before period end")
    return start, end


def window_bounds(start: date, end: date) -> tuple[str, str]:
    """
    Half-open timestamp bounds for an inclusive day range:
    created_at >= lower AND created_at < upper.
    """
    return start.isoformat(), (end + timedelta(days=1)).isoformat()


def day_of(timestamp: str) -> Optional[date]:
    """Calendar day of an ISO timestamp or date string, None if unparseable."""
    try:
        return datetime.fromisoformat(timestamp.replace("Z", "+00:00")).date()
    except (ValueError, AttributeError):
        try:
            return date.fromisoformat(timestamp[:10])
        except (ValueError, TypeError):
            return None
