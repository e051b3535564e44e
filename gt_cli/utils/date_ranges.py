"""Date parsing helpers."""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional, Tuple

import typer

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


def validate_date(value: Optional[str]) -> Optional[str]:
    """Typer callback that validates YYYY-MM-DD format for date options."""
    if value is None:
        return value
    if not _DATE_RE.match(value):
        raise typer.BadParameter(
            f"Invalid date '{value}'. Expected format: YYYY-MM-DD (e.g. 2026-01-15)"
        )
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise typer.BadParameter(
            f"Invalid date '{value}'. Expected format: YYYY-MM-DD (e.g. 2026-01-15)"
        )
    return value


def parse_date(value: str) -> date:
    """Parse YYYY-MM-DD date string."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def resolve_log_date(value: Optional[str], today: Optional[date] = None) -> str:
    """Resolve a --date option for logging; future dates are refused."""
    now = today or date.today()
    if value is None:
        return now.isoformat()
    if parse_date(value) > now:
        raise typer.BadParameter(f"Cannot log a future date: {value}")
    return value


def parse_month(value: Optional[str], today: Optional[date] = None) -> Tuple[int, int]:
    """Parse YYYY-MM, defaulting to the current month."""
    now = today or date.today()
    if value is None:
        return now.year, now.month
    match = _MONTH_RE.match(value)
    if not match or not 1 <= int(match.group(2)) <= 12:
        raise typer.BadParameter(f"Invalid month '{value}'. Expected format: YYYY-MM")
    return int(match.group(1)), int(match.group(2))
