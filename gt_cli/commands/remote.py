"""Remote repository connection commands."""

from __future__ import annotations

from contextlib import nullcontext
from typing import Optional, Tuple

import typer

from gt_cli.commands.common import fail, finish_session, get_state, open_session, open_store, print_json_payload
from gt_cli.commands.sync import print_load_result
from gt_cli.core.store import LocalStoreError

app = typer.Typer(help="Connect a GitHub repository for sync")


def _split_repository(value: str) -> Tuple[str, str]:
    owner, _, repo = value.strip().strip("/").partition("/")
    if not owner or not repo or "/" in repo:
        raise typer.BadParameter(f"Expected OWNER/REPO, got '{value}'")
    return owner, repo


@app.command("connect")
def connect_command(
    ctx: typer.Context,
    repository: str = typer.Argument(..., help="GitHub repository as OWNER/REPO"),
    token: Optional[str] = typer.Option(
        None,
        help="GitHub token with contents access",
        envvar="GT_GITHUB_TOKEN",
    ),
    phases: bool = typer.Option(False, "--phases", help="Connect the read-only phase data set instead"),
) -> None:
    """Store credentials and run the initial load."""
    state = get_state(ctx)
    owner, repo = _split_repository(repository)
    if not token:
        if state.json_output or state.plain_output:
            fail(state, "A token is required (--token or GT_GITHUB_TOKEN)")
        token = typer.prompt("GitHub token", hide_input=True)

    name = "phases" if phases else "workouts"
    try:
        open_store(state).save_credentials(name, token=token, owner=owner, repo=repo)
    except LocalStoreError as exc:
        fail(state, str(exc))

    session = open_session(state)
    status_ctx = state.console.status("Loading remote data...") if not state.plain_output else nullcontext()
    if phases:
        with status_ctx:
            loaded = session.engine.load_phases()
        if loaded is None:
            fail(state, f"Could not read phases from {owner}/{repo}; credentials kept")
        if state.json_output:
            print_json_payload(
                state,
                {"status": "success", "name": name, "repository": f"{owner}/{repo}", "phases": len(loaded)},
            )
        elif state.plain_output:
            typer.echo("status\tsuccess")
            typer.echo(f"phases\t{len(loaded)}")
        else:
            state.console.print(f"Connected phases to {owner}/{repo} ({len(loaded)} phases)")
        return

    try:
        with status_ctx:
            result = session.load_remote()
    finally:
        finish_session(state, session)
    if not state.json_output and not state.plain_output:
        state.console.print(f"Connected to {owner}/{repo}")
    print_load_result(state, result)


@app.command("disconnect")
def disconnect_command(
    ctx: typer.Context,
    phases: bool = typer.Option(False, "--phases", help="Disconnect the phase data set"),
) -> None:
    """Forget stored credentials; local data is kept."""
    state = get_state(ctx)
    name = "phases" if phases else "workouts"
    try:
        removed = open_store(state).clear_credentials(name)
    except LocalStoreError as exc:
        fail(state, str(exc))

    if state.json_output:
        print_json_payload(state, {"status": "success", "name": name, "removed": removed})
        return
    if state.plain_output:
        typer.echo("status\tsuccess")
        typer.echo(f"removed\t{str(removed).lower()}")
        return
    state.console.print("Disconnected" if removed else "Nothing to disconnect")
