"""Formatting helpers used by console output."""

from __future__ import annotations

from typing import Any, Dict, Optional

from gt_cli.core.constants import STATUS_LABELS
from gt_cli.core.models import WorkSet
from gt_cli.utils.parsing import format_number


def format_weight(value: Optional[float], unit: str = "kg") -> str:
    if not value:
        return "-"
    return f"{format_number(value)} {unit}"


def format_set(work_set: WorkSet, unit: str = "kg") -> str:
    """Render a set as `60 kg x 8`, with blanks shown as `_`."""
    weight = f"{work_set.weight} {unit}" if work_set.weight else "_"
    reps = work_set.reps or "_"
    return f"{weight} x {reps}"


def format_state(work_set: WorkSet) -> str:
    return "done" if work_set.committed else "draft"


def format_pr(flag: Optional[str]) -> str:
    return {"weight": "PR", "reps": "rep PR"}.get(flag or "", "")


def format_status(status: str) -> str:
    return STATUS_LABELS.get(status, status)


def format_phase(phase: Optional[Dict[str, Any]]) -> str:
    if not phase:
        return "No active phase"
    end = phase.get("end") or "ongoing"
    return (
        f"{phase['name']}: {phase['start']} -> {end} "
        f"({phase['sessions']} sessions, day {phase['days_elapsed']})"
    )
