"""Date window resolution for metrics queries.

Presets resolve against the server's local calendar day. Workspace
timezones are intentionally not applied here.
"""
import logging
import re
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Optional

from ..errors import ValidationError


logger = logging.getLogger(__name__)


DEFAULT_WINDOW_DAYS = 30

_ISO_DATE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


class DatePreset(str, Enum):
    """Relative date windows accepted by ``date_preset``."""

    TODAY = "today"
    YESTERDAY = "yesterday"
    LAST_7_DAYS = "last_7_days"
    LAST_30_DAYS = "last_30_days"
    LAST_90_DAYS = "last_90_days"


class ComparisonMode(str, Enum):
    """How the comparison window is derived from the primary window."""

    VS_PREVIOUS_PERIOD = "vs_previous_period"
    VS_SAME_PERIOD_LAST_YEAR = "vs_same_period_last_year"


_PRESET_DAYS = {
    DatePreset.LAST_7_DAYS: 7,
    DatePreset.LAST_30_DAYS: 30,
    DatePreset.LAST_90_DAYS: 90,
}


@dataclass(frozen=True)
class DateRange:
    """Inclusive primary window plus optional inclusive comparison window."""

    start: date
    end: date
    comparison_start: Optional[date] = None
    comparison_end: Optional[date] = None

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    @property
    def has_comparison(self) -> bool:
        return self.comparison_start is not None and self.comparison_end is not None


def parse_iso_date(value: str, field: str) -> date:
    """Parse a ``YYYY-MM-DD`` string.

    Raises:
        ValidationError: If the value is not a valid calendar date
    """
    try:
        text = value.strip()
        if not _ISO_DATE.fullmatch(text):
            raise ValueError(f"not YYYY-MM-DD: {text!r}")
        return date.fromisoformat(text)
    except (AttributeError, ValueError) as exc:
        raise ValidationError(
            f"{field} must be a date in YYYY-MM-DD format, got '{value}'",
            error_code="INVALID_DATE",
        ) from exc


def shift_back_one_year(day: date) -> date:
    """Same calendar day one year earlier; Feb 29 becomes Feb 28."""
    try:
        return day.replace(year=day.year - 1)
    except ValueError:
        return day.replace(year=day.year - 1, day=28)


def previous_period(start: date, end: date) -> tuple[date, date]:
    """Window of equal length ending the day before ``start``."""
    length = (end - start).days + 1
    comparison_end = start - timedelta(days=1)
    comparison_start = comparison_end - timedelta(days=length - 1)
    return comparison_start, comparison_end


def _resolve_preset(preset: str, today: date) -> tuple[date, date]:
    try:
        resolved = DatePreset(preset)
    except ValueError:
        logger.warning("Unknown date_preset '%s', using last_30_days", preset)
        resolved = DatePreset.LAST_30_DAYS

    if resolved is DatePreset.TODAY:
        return today, today
    if resolved is DatePreset.YESTERDAY:
        yesterday = today - timedelta(days=1)
        return yesterday, yesterday

    days = _PRESET_DAYS[resolved]
    return today - timedelta(days=days - 1), today


def resolve_window(
    date_preset: Optional[str] = None,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    today: Optional[date] = None,
) -> tuple[date, date]:
    """Resolve the primary inclusive window.

    A preset takes precedence over explicit dates. Missing explicit bounds
    default to the last 30 days ending today.

    Raises:
        ValidationError: On malformed dates or when start is after end
    """
    today = today or date.today()

    if date_preset:
        return _resolve_preset(date_preset, today)

    if date_from:
        start = parse_iso_date(date_from, "date_from")
    else:
        start = today - timedelta(days=DEFAULT_WINDOW_DAYS - 1)

    end = parse_iso_date(date_to, "date_to") if date_to else today

    if start > end:
        raise ValidationError(
            f"date_from ({start.isoformat()}) must not be after date_to ({end.isoformat()})",
            error_code="INVALID_DATE_RANGE",
        )

    return start, end


def resolve_date_range(
    date_preset: Optional[str] = None,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    comparison_mode: Optional[str] = None,
    today: Optional[date] = None,
) -> DateRange:
    """Resolve primary and comparison windows for an overview request.

    Args:
        date_preset: One of DatePreset values (wins over explicit dates)
        date_from: Inclusive start, YYYY-MM-DD
        date_to: Inclusive end, YYYY-MM-DD
        comparison_mode: One of ComparisonMode values, or None
        today: Reference day (defaults to the server's local date)

    Returns:
        DateRange with comparison bounds set only when a mode was given
    """
    start, end = resolve_window(date_preset, date_from, date_to, today)

    if not comparison_mode:
        return DateRange(start=start, end=end)

    try:
        mode = ComparisonMode(comparison_mode)
    except ValueError:
        logger.warning("Unknown comparison_mode '%s', skipping comparison", comparison_mode)
        return DateRange(start=start, end=end)

    try:
        if mode is ComparisonMode.VS_PREVIOUS_PERIOD:
            comparison_start, comparison_end = previous_period(start, end)
        else:
            comparison_start = shift_back_one_year(start)
            comparison_end = shift_back_one_year(end)
    except (OverflowError, ValueError) as exc:
        raise ValidationError(
            f"Comparison window for {start.isoformat()}..{end.isoformat()} "
            f"({mode.value}) is outside the supported calendar",
            error_code="INVALID_DATE_RANGE",
        ) from exc

    return DateRange(
        start=start,
        end=end,
        comparison_start=comparison_start,
        comparison_end=comparison_end,
    )
