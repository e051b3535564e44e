"""Configuration loading."""

from __future__ import annotations

import copy
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

try:  # Python 3.11+
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # Python 3.9-3.10
    import tomli as tomllib  # type: ignore[no-redef]

from gt_cli.core.constants import (
    BASE_UNIT,
    DAY_STREAK_GAP,
    DEBOUNCE_SECONDS,
    FAILED_DISPLAY_SECONDS,
    GITHUB_API_BASE,
    PHASES_PATH,
    PR_EPSILON,
    ROUTINES_PATH,
    SYNCED_DISPLAY_SECONDS,
    WORKOUTS_PATH,
)


class ConfigError(RuntimeError):
    """Raised when config file parsing fails."""


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def expand_path(path_str: str) -> Path:
    """Expand user/env vars and return absolute path."""
    return Path(os.path.expandvars(path_str)).expanduser().resolve()


def default_data_dir() -> Path:
    """Resolve XDG-style data directory with env override."""
    raw = os.getenv("GT_DATA_DIR", "~/.local/share/gt")
    return expand_path(raw)


def default_config_path() -> Path:
    """Get default config file path."""
    raw = os.getenv("GT_CONFIG_FILE", "~/.config/gt/config.toml")
    return expand_path(raw)


def _default_config() -> Dict[str, Any]:
    data_dir = default_data_dir()
    return {
        "store": {
            "directory": str(data_dir),
        },
        "sync": {
            "auto_sync": True,
            "debounce_seconds": DEBOUNCE_SECONDS,
            "synced_display_seconds": SYNCED_DISPLAY_SECONDS,
            "failed_display_seconds": FAILED_DISPLAY_SECONDS,
        },
        "remote": {
            "api_base": GITHUB_API_BASE,
            "workouts_path": WORKOUTS_PATH,
            "routines_path": ROUTINES_PATH,
            "phases_path": PHASES_PATH,
            "rate_limit_delay": 0.0,
            "max_retries": 3,
            "timeout_seconds": 30,
        },
        "analytics": {
            "base_unit": BASE_UNIT,
            "pr_epsilon": PR_EPSILON,
            "day_streak_gap": DAY_STREAK_GAP,
        },
    }


def _read_config(path: Path) -> Dict[str, Any]:
    suffix = path.suffix.lower()
    text = path.read_text()
    try:
        if suffix in {".toml", ""}:
            loaded = tomllib.loads(text)
        else:
            loaded = json.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in config file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in config file {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ConfigError(f"Config file {path} must contain an object/table at the root")
    return loaded


def load_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load configuration from disk, merged with defaults."""
    cfg_path = path or default_config_path()
    cfg = _default_config()

    if cfg_path.exists():
        cfg = _deep_merge(cfg, _read_config(cfg_path))

    return cfg


def resolve_store_dir(config: Dict[str, Any]) -> Path:
    """Resolve the local store directory from env/config."""
    raw = os.getenv("GT_STORE_DIR") or config.get("store", {}).get("directory")
    if not raw:
        raw = str(default_data_dir())
    return expand_path(raw)


def resolve_token(stored: Optional[str]) -> Optional[str]:
    """Environment token overrides the one saved with `gt remote connect`."""
    return os.getenv("GT_GITHUB_TOKEN") or stored or None
