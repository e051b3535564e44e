"""Routine template commands."""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import typer
from rich.table import Table

from gt_cli.commands.common import fail, finish_session, get_state, open_session, print_json_payload
from gt_cli.core.models import ExerciseDefinition, RecordLog, RoutineTemplate, routines_to_payload
from gt_cli.core.routines import (
    RoutineError,
    add_exercise,
    edit_exercise,
    load_routines_file,
    move_exercise,
    remove_exercise,
)
from gt_cli.core.state import CLIState
from gt_cli.utils.parsing import format_number

app = typer.Typer(help="Edit routine templates")


def _print_routines(state: CLIState, routines: Dict[str, RoutineTemplate], only: Optional[str] = None) -> None:
    selected = {key: routine for key, routine in routines.items() if only is None or key == only}

    if state.json_output:
        print_json_payload(state, routines_to_payload(selected))
        return

    if state.plain_output:
        typer.echo("routine\tid\tname\twarmup\twork\treps\tunit\tequipment\tstart\tincrement")
        for key, routine in selected.items():
            for ex in routine.exercises:
                typer.echo(
                    "\t".join(
                        [
                            key,
                            str(ex.id),
                            ex.name,
                            str(ex.warmup_sets),
                            str(ex.work_sets),
                            ex.reps,
                            ex.unit,
                            ex.equipment,
                            format_number(ex.start_weight),
                            format_number(ex.increment),
                        ]
                    )
                )
        return

    for key, routine in selected.items():
        table = Table(title=f"{routine.name or key} ({key})")
        table.add_column("ID")
        table.add_column("Exercise")
        table.add_column("Sets")
        table.add_column("Reps")
        table.add_column("Equipment")
        table.add_column("Start")
        table.add_column("Step")
        for ex in routine.exercises:
            table.add_row(
                str(ex.id),
                ex.name,
                f"{ex.warmup_sets}+{ex.work_sets}",
                ex.reps,
                ex.equipment + (f" (bar {format_number(ex.bar_weight)})" if ex.bar_weight else ""),
                f"{format_number(ex.start_weight)} {ex.unit}",
                f"{format_number(ex.increment)} {ex.unit}",
            )
        state.console.print(table)


def _edit(
    ctx: typer.Context,
    routine: str,
    action: Callable[[RecordLog], Any],
    describe: Callable[[Any], str],
) -> None:
    """Apply one template edit, resync today's workout and push the templates."""
    state = get_state(ctx)
    session = open_session(state, refresh=True)
    today = date.today().isoformat()
    try:
        try:
            result = session.edit_routine(routine, today, action)
        except RoutineError as exc:
            fail(state, str(exc))
    finally:
        sync_payload = finish_session(state, session)

    message = describe(result)
    if state.json_output:
        print_json_payload(
            state,
            {
                "status": "success",
                "message": message,
                "result": result.to_dict() if isinstance(result, ExerciseDefinition) else result,
                "routine": session.log.routines[routine].to_dict() if routine in session.log.routines else None,
                "sync": sync_payload,
            },
        )
        return
    if state.plain_output:
        typer.echo("status\tsuccess")
        typer.echo(f"message\t{message}")
        return
    state.console.print(message)
    _print_routines(state, session.log.routines, only=routine)


@app.command("list")
def list_command(
    ctx: typer.Context,
    routine: Optional[str] = typer.Argument(None, help="Only show this routine"),
) -> None:
    """Show routine templates."""
    state = get_state(ctx)
    session = open_session(state)
    if routine is not None and routine not in session.log.routines:
        fail(state, f"Unknown routine: {routine}")
    _print_routines(state, session.log.routines, only=routine)


@app.command("add")
def add_command(
    ctx: typer.Context,
    routine: str = typer.Argument(..., help="Routine key"),
    name: str = typer.Argument(..., help="Exercise name"),
    warmup_sets: int = typer.Option(1, help="Warm-up set count"),
    work_sets: int = typer.Option(2, help="Work set count"),
    reps: str = typer.Option("5-8", help="Target reps, e.g. 5-8"),
    unit: str = typer.Option("kg", help="kg or lb"),
    equipment: str = typer.Option("machine", help="barbell|dumbbell|machine|cable|bodyweight"),
    start_weight: float = typer.Option(0.0, help="Weight used when there is no history"),
    increment: float = typer.Option(2.5, help="Weight step for bump"),
    bar_weight: Optional[float] = typer.Option(None, help="Bar weight (barbell only)"),
    notes: str = typer.Option("", help="Default note"),
) -> None:
    """Append an exercise to a routine."""
    definition = ExerciseDefinition(
        id=0,
        name=name.strip(),
        warmup_sets=warmup_sets,
        work_sets=work_sets,
        reps=reps,
        unit=unit,
        equipment=equipment,
        start_weight=start_weight,
        increment=increment,
        bar_weight=bar_weight,
        notes=notes,
    )
    _edit(
        ctx,
        routine,
        lambda log: add_exercise(log, routine, definition),
        lambda added: f"Added {added.name} to {routine} as #{added.id}",
    )


@app.command("edit")
def edit_command(
    ctx: typer.Context,
    routine: str = typer.Argument(..., help="Routine key"),
    exercise_id: int = typer.Argument(..., help="Exercise id"),
    name: Optional[str] = typer.Option(None, help="Exercise name"),
    warmup_sets: Optional[int] = typer.Option(None, help="Warm-up set count"),
    work_sets: Optional[int] = typer.Option(None, help="Work set count"),
    reps: Optional[str] = typer.Option(None, help="Target reps"),
    unit: Optional[str] = typer.Option(None, help="kg or lb"),
    equipment: Optional[str] = typer.Option(None, help="Equipment class"),
    start_weight: Optional[float] = typer.Option(None, help="Start weight"),
    increment: Optional[float] = typer.Option(None, help="Weight step"),
    bar_weight: Optional[float] = typer.Option(None, help="Bar weight (barbell only)"),
    notes: Optional[str] = typer.Option(None, help="Default note"),
) -> None:
    """Change fields of an exercise definition."""
    changes: Dict[str, Any] = {
        "name": name.strip() if name is not None else None,
        "warmup_sets": warmup_sets,
        "work_sets": work_sets,
        "reps": reps,
        "unit": unit,
        "equipment": equipment,
        "start_weight": start_weight,
        "increment": increment,
        "bar_weight": bar_weight,
        "notes": notes,
    }
    _edit(
        ctx,
        routine,
        lambda log: edit_exercise(log, routine, exercise_id, **changes),
        lambda updated: f"Updated {updated.name} in {routine}",
    )


@app.command("remove")
def remove_command(
    ctx: typer.Context,
    routine: str = typer.Argument(..., help="Routine key"),
    exercise_id: int = typer.Argument(..., help="Exercise id"),
) -> None:
    """Remove an exercise from a routine."""
    _edit(
        ctx,
        routine,
        lambda log: remove_exercise(log, routine, exercise_id),
        lambda removed: f"Removed {removed.name} from {routine}",
    )


@app.command("move")
def move_command(
    ctx: typer.Context,
    routine: str = typer.Argument(..., help="Routine key"),
    exercise_id: int = typer.Argument(..., help="Exercise id"),
    up: bool = typer.Option(False, "--up", help="Move one place earlier"),
    down: bool = typer.Option(False, "--down", help="Move one place later"),
) -> None:
    """Reorder an exercise within a routine."""
    if up == down:
        raise typer.BadParameter("Pass exactly one of --up or --down")
    _edit(
        ctx,
        routine,
        lambda log: move_exercise(log, routine, exercise_id, -1 if up else 1),
        lambda moved: (
            f"Moved exercise {exercise_id} {'up' if up else 'down'} in {routine}"
            if moved
            else f"Exercise {exercise_id} is already at the {'top' if up else 'bottom'} of {routine}"
        ),
    )


@app.command("import")
def import_command(
    ctx: typer.Context,
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="YAML or JSON routine file"),
) -> None:
    """Replace every routine template with the contents of a file."""
    state = get_state(ctx)
    try:
        routines = load_routines_file(path)
    except RoutineError as exc:
        fail(state, str(exc))

    session = open_session(state, refresh=True)
    try:
        session.replace_routines(routines, date.today().isoformat())
    finally:
        sync_payload = finish_session(state, session)

    if state.json_output:
        print_json_payload(
            state,
            {"status": "success", "routines": sorted(routines), "sync": sync_payload},
        )
        return
    if state.plain_output:
        typer.echo("status\tsuccess")
        typer.echo(f"routines\t{','.join(sorted(routines))}")
        return
    state.console.print(f"Imported {len(routines)} routine(s) from {path}")
    _print_routines(state, session.log.routines)
