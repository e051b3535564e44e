"""Runtime state containers for CLI context and the log view."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional

from rich.console import Console


@dataclass
class CLIState:
    """CLI runtime options and loaded configuration."""

    json_output: bool
    plain_output: bool
    verbose: bool
    quiet: bool
    config_path: Path
    config: Dict[str, Any]
    console: Console


@dataclass(frozen=True)
class AppState:
    """Which day the user is looking at, and what today is."""

    day: str
    today: str

    @classmethod
    def for_day(cls, day: Optional[str] = None, today: Optional[date] = None) -> "AppState":
        today_str = (today or date.today()).isoformat()
        return cls(day=day or today_str, today=today_str)
