"""Entry point for gt."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from gt_cli import __version__
from gt_cli.commands import log as log_commands
from gt_cli.commands import remote as remote_commands
from gt_cli.commands import routines as routines_commands
from gt_cli.commands import stats as stats_commands
from gt_cli.commands import sync as sync_commands
from gt_cli.core.config import ConfigError, default_config_path, load_config
from gt_cli.core.state import CLIState

app = typer.Typer(
    add_completion=False,
    help="Gym workout logger with GitHub sync",
    invoke_without_command=True,
)


def configure_logging(verbose: bool, quiet: bool, plain: bool) -> None:
    """Route library logging to stderr through rich."""
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.WARNING
    handler = RichHandler(
        console=Console(stderr=True, no_color=plain),
        show_time=False,
        show_path=verbose,
        markup=False,
    )
    logging.basicConfig(level=level, format="%(message)s", handlers=[handler], force=True)
    logging.getLogger("urllib3").setLevel(logging.DEBUG if verbose else logging.WARNING)


@app.callback()
def main_callback(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", help="Output JSON where available"),
    plain_output: bool = typer.Option(
        False,
        "--plain",
        help="Output plain text (no rich formatting/tables)",
    ),
    config: Optional[Path] = typer.Option(None, "--config", help="Path to config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Quiet output"),
    version: bool = typer.Option(False, "--version", help="Show version and exit"),
) -> None:
    """Initialize global CLI state."""
    if version:
        typer.echo(__version__)
        raise typer.Exit(code=0)

    if json_output and plain_output:
        typer.echo("Options --json and --plain are mutually exclusive.")
        raise typer.Exit(code=2)

    configure_logging(verbose=verbose, quiet=quiet, plain=plain_output)

    cfg_path = (config or default_config_path()).expanduser().resolve()
    try:
        cfg = load_config(cfg_path)
    except ConfigError as exc:
        typer.echo(f"Config error: {exc}")
        raise typer.Exit(code=2)

    console = Console(
        quiet=quiet,
        no_color=plain_output,
        log_time=False,
        log_path=False,
    )
    ctx.obj = CLIState(
        json_output=(json_output and not plain_output),
        plain_output=plain_output,
        verbose=verbose,
        quiet=quiet,
        config_path=cfg_path,
        config=cfg,
        console=console,
    )

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(code=0)


# Logging a workout
app.command("show")(log_commands.show_command)
app.command("set")(log_commands.set_command)
app.command("bump")(log_commands.bump_command)
app.command("toggle")(log_commands.toggle_command)
app.command("copy")(log_commands.copy_command)
app.command("note")(log_commands.note_command)
app.command("switch")(log_commands.switch_command)
app.command("finish")(log_commands.finish_command)

app.add_typer(routines_commands.app, name="routines")
app.add_typer(stats_commands.app, name="stats")
app.add_typer(sync_commands.app, name="sync")
app.add_typer(remote_commands.app, name="remote")


def main() -> None:
    """Console script entrypoint."""
    app()


if __name__ == "__main__":
    main()
