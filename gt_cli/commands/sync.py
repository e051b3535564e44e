"""Remote sync commands."""

from __future__ import annotations

from contextlib import nullcontext
from typing import Any, Dict, Optional

import typer

from gt_cli.commands.common import fail, finish_session, get_state, open_session, print_json_payload, push_payload
from gt_cli.core.sync import LoadResult, SyncOutcome
from gt_cli.core.state import CLIState
from gt_cli.utils.formatting import format_status

app = typer.Typer(help="Sync with the remote repository")


def _repo_label(creds: Any) -> Optional[str]:
    if not creds:
        return None
    return f"{creds.get('owner')}/{creds.get('repo')}"


def _load_payload(result: LoadResult) -> Dict[str, Any]:
    return {
        "outcome": result.outcome.value,
        "failure": result.failure.value if result.failure else None,
        "message": result.message,
        "routines_replaced": result.routines_replaced,
        "unsynced_dates": list(result.unsynced_dates),
        "workouts": len(result.log.workouts),
        "phases": len(result.log.phases),
        "push": push_payload(result.push),
        "routines_push": push_payload(result.routines_push),
    }


def print_load_result(state: CLIState, result: LoadResult) -> None:
    payload = _load_payload(result)
    if state.json_output:
        print_json_payload(state, payload)
        return
    if state.plain_output:
        for key in ("outcome", "failure", "workouts", "phases"):
            typer.echo(f"{key}\t{payload[key] if payload[key] is not None else '-'}")
        return

    messages = {
        SyncOutcome.MERGED: f"Merged {len(result.unsynced_dates)} unsynced day(s) and pushed",
        SyncOutcome.ADOPTED: "Local data replaced with the remote copy",
        SyncOutcome.NO_REMOTE_DATA: "Remote has no workout data yet",
        SyncOutcome.SKIPPED: "Remote sync is not configured",
        SyncOutcome.FAILED: f"Could not load remote data: {result.message}",
    }
    state.console.print(messages.get(result.outcome, result.outcome.value))
    if result.routines_replaced:
        state.console.print("Routine templates updated from remote")
    if result.push is not None and not result.push.ok:
        state.console.print(f"Push failed ({result.push.failure.value if result.push.failure else '?'})")
    if result.routines_push is not None and not result.routines_push.ok:
        state.console.print("Routine templates are still waiting to be pushed")
    state.console.print(f"{payload['workouts']} workouts, {payload['phases']} phases")


@app.command("now")
def now_command(ctx: typer.Context) -> None:
    """Push local workouts and notes immediately."""
    state = get_state(ctx)
    session = open_session(state)
    if not session.engine.connected:
        fail(state, "Remote sync is not configured. Run `gt remote connect` first.")

    status_ctx = state.console.status("Syncing...") if not state.plain_output else nullcontext()
    with status_ctx:
        result = session.engine.request_sync()
    payload = push_payload(result)

    if state.json_output:
        print_json_payload(state, payload)
    elif state.plain_output:
        typer.echo(f"outcome\t{payload['outcome']}")
        if payload["failure"]:
            typer.echo(f"failure\t{payload['failure']}")
    elif result.ok:
        state.console.print(format_status(session.engine.current_status().value))
    else:
        state.console.print(f"Sync failed ({payload['failure']}): {result.message}")

    if not result.ok:
        raise typer.Exit(code=1)


@app.command("pull")
def pull_command(ctx: typer.Context) -> None:
    """Load remote data, merging any unsynced local days."""
    state = get_state(ctx)
    session = open_session(state)
    if not session.engine.connected and session.engine.phases_remote is None:
        fail(state, "Remote sync is not configured. Run `gt remote connect` first.")

    status_ctx = state.console.status("Loading remote data...") if not state.plain_output else nullcontext()
    try:
        with status_ctx:
            result = session.load_remote()
    finally:
        finish_session(state, session)
    print_load_result(state, result)


@app.command("status")
def status_command(ctx: typer.Context) -> None:
    """Show connection, pending changes and the last successful sync."""
    state = get_state(ctx)
    session = open_session(state)
    engine = session.engine
    last = session.store.last_sync()
    creds = session.store.credentials()
    payload = {
        "connected": engine.connected,
        "repository": _repo_label(creds.get("workouts")),
        "phases_repository": _repo_label(creds.get("phases")),
        "status": engine.current_status().value,
        "pending": engine.dirty,
        "last_sync": last.get("timestamp"),
        "auto_sync": engine.auto_sync,
    }

    if state.json_output:
        print_json_payload(state, payload)
        return
    if state.plain_output:
        for key, value in payload.items():
            typer.echo(f"{key}\t{value if value is not None else '-'}")
        return

    if not engine.connected:
        state.console.print("Not connected (local only)")
    else:
        state.console.print(f"Repository: {payload['repository']}")
    if payload["phases_repository"]:
        state.console.print(f"Phases from: {payload['phases_repository']}")
    state.console.print(f"Status: {format_status(payload['status']) or 'Up to date'}")
    state.console.print(f"Last sync: {payload['last_sync'] or 'never'}")