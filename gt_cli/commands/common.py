"""Shared command helpers."""

from __future__ import annotations

import json
from typing import Any, Dict, NoReturn, Optional

import typer

from gt_cli.core.api import GitHubContentsAPI
from gt_cli.core.config import resolve_store_dir, resolve_token
from gt_cli.core.models import Workout, normalize_unit
from gt_cli.core.session import TrackerSession
from gt_cli.core.state import CLIState
from gt_cli.core.store import LocalStore
from gt_cli.core.sync import PushResult, StatusTracker, SyncEngine


def get_state(ctx: typer.Context) -> CLIState:
    """Extract validated CLI state from Typer context."""
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=2)
    return state


def print_json_payload(state: CLIState, payload: Any) -> None:
    """Print JSON payload with plain-mode fallback for piping."""
    if state.plain_output:
        typer.echo(json.dumps(payload, separators=(",", ":")))
        return
    state.console.print_json(data=payload)


def fail(state: CLIState, message: str, code: int = 1) -> NoReturn:
    """Report an error in the active output mode and exit."""
    if state.json_output:
        print_json_payload(state, {"status": "error", "message": message})
    elif state.plain_output:
        typer.echo("status\terror")
        typer.echo(f"message\t{message}")
    else:
        state.console.print(f"Error: {message}")
    raise typer.Exit(code=code)


def open_store(state: CLIState) -> LocalStore:
    return LocalStore(resolve_store_dir(state.config))


def build_remote(config: Dict[str, Any], creds: Optional[Dict[str, Any]]) -> Optional[GitHubContentsAPI]:
    """Blob host client for stored credentials, or None when not connected."""
    if not creds:
        return None
    token = resolve_token(creds.get("token"))
    owner = str(creds.get("owner") or "")
    repo = str(creds.get("repo") or "")
    if not (token and owner and repo):
        return None

    remote_cfg = config.get("remote", {})
    return GitHubContentsAPI(
        token=token,
        owner=owner,
        repo=repo,
        base_url=str(remote_cfg.get("api_base", "https://api.github.com")),
        rate_limit_delay=float(remote_cfg.get("rate_limit_delay", 0.0)),
        max_retries=int(remote_cfg.get("max_retries", 3)),
        timeout_seconds=int(remote_cfg.get("timeout_seconds", 30)),
    )


def build_engine(state: CLIState, store: LocalStore) -> SyncEngine:
    creds = store.credentials()
    remote_cfg = state.config.get("remote", {})
    sync_cfg = state.config.get("sync", {})
    return SyncEngine(
        store=store,
        remote=build_remote(state.config, creds.get("workouts")),
        phases_remote=build_remote(state.config, creds.get("phases")),
        workouts_path=str(remote_cfg.get("workouts_path", "workouts.json")),
        routines_path=str(remote_cfg.get("routines_path", "routines.json")),
        phases_path=str(remote_cfg.get("phases_path", "data.json")),
        debounce_seconds=float(sync_cfg.get("debounce_seconds", 5.0)),
        auto_sync=bool(sync_cfg.get("auto_sync", True)),
        status=StatusTracker(
            synced_seconds=float(sync_cfg.get("synced_display_seconds", 2.0)),
            failed_seconds=float(sync_cfg.get("failed_display_seconds", 3.0)),
        ),
    )


def open_session(state: CLIState, refresh: bool = False) -> TrackerSession:
    """Load the local Record Log and wire up the sync engine.

    With `refresh`, a connected session with auto sync first runs the
    load-merge so edits land on top of the latest remote data. Remote
    problems there only cost freshness; the local log is used as-is.
    """
    store = open_store(state)
    session = TrackerSession(store=store, engine=build_engine(state, store))
    if refresh and session.engine.connected and session.engine.auto_sync:
        result = session.load_remote()
        if result.failure is not None and not state.json_output:
            state.console.print(f"Working offline: {result.message}")
    return session


def analytics_options(state: CLIState) -> Dict[str, Any]:
    cfg = state.config.get("analytics", {})
    return {
        "base_unit": normalize_unit(cfg.get("base_unit")),
        "pr_epsilon": float(cfg.get("pr_epsilon", 0.1)),
        "day_streak_gap": int(cfg.get("day_streak_gap", 3)),
    }


def resolve_exercise(workout: Workout, selector: str) -> int:
    """Turn a 1-based index or a (case-insensitive) name into an exercise index."""
    if selector.isdigit():
        index = int(selector) - 1
        if 0 <= index < len(workout.exercises):
            return index
        raise typer.BadParameter(f"Exercise number must be between 1 and {len(workout.exercises)}")

    wanted = selector.strip().lower()
    matches = [i for i, ex in enumerate(workout.exercises) if ex.name.lower() == wanted]
    if not matches:
        matches = [i for i, ex in enumerate(workout.exercises) if wanted in ex.name.lower()]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        raise typer.BadParameter(f"No exercise matching '{selector}' in the {workout.routine_type} workout")
    raise typer.BadParameter(f"'{selector}' matches more than one exercise")


def push_payload(result: Optional[PushResult]) -> Optional[Dict[str, Any]]:
    if result is None:
        return None
    return {
        "outcome": result.outcome.value,
        "failure": result.failure.value if result.failure else None,
        "message": result.message,
    }


def finish_session(state: CLIState, session: TrackerSession) -> Optional[Dict[str, Any]]:
    """Close the session (flushing any pending push) and describe the sync outcome."""
    session.close()
    payload = push_payload(session.last_push)
    if session.persist_error and not state.json_output:
        state.console.print(f"Warning: changes kept in memory only: {session.persist_error}")
    if payload and payload["failure"] and payload["failure"] != "not_configured" and not state.json_output:
        state.console.print(f"Sync failed ({payload['failure']}); will retry on the next sync")
    return payload
