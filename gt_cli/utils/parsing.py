"""Parsing helpers for free-form set values and input files."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

_NUMBER_RE = re.compile(r"^\s*-?\d+(?:[.,]\d+)?\s*$")


def parse_number(value: Any) -> float:
    """Parse a stored weight/reps text into a number; anything unparseable is 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip()
    if not text or not _NUMBER_RE.match(text):
        return 0.0
    return float(text.replace(",", "."))


def parse_weight(value: Any) -> float:
    """Parse a weight field; negative input is treated as empty."""
    return max(parse_number(value), 0.0)


def parse_reps(value: Any) -> int:
    """Parse a reps field into a whole number of repetitions."""
    return max(int(parse_number(value)), 0)


def format_number(value: float) -> str:
    """Render a number the way it is typed: no trailing `.0`."""
    rounded = round(float(value), 2)
    if rounded == int(rounded):
        return str(int(rounded))
    return f"{rounded:g}"


def parse_rep_range(value: Optional[str]) -> Optional[tuple[int, int]]:
    """Parse a rep range like '5-8' or '8' into (low, high)."""
    if not value:
        return None
    match = re.match(r"^\s*(\d+)\s*(?:-\s*(\d+))?\s*$", str(value))
    if not match:
        return None
    low = int(match.group(1))
    high = int(match.group(2)) if match.group(2) else low
    return (min(low, high), max(low, high))


def load_mapping_file(file_path: Path) -> Dict[str, Any]:
    """Load a JSON or YAML object from disk."""
    text = file_path.read_text()
    try:
        if file_path.suffix.lower() in {".yaml", ".yml"}:
            raw_data = yaml.safe_load(text)
        else:
            try:
                raw_data = json.loads(text)
            except json.JSONDecodeError:
                raw_data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ValueError(f"Failed to parse {file_path}: {exc}") from exc

    if not isinstance(raw_data, dict):
        raise ValueError(f"{file_path} must contain a mapping at the root")
    return raw_data
