"""Workout logging commands."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

import typer
from rich.table import Table

from gt_cli.commands.common import (
    analytics_options,
    fail,
    finish_session,
    get_state,
    open_session,
    print_json_payload,
    resolve_exercise,
)
from gt_cli.core.analysis import day_summary, last_exercise_data
from gt_cli.core.commit import (
    CommitError,
    ConfirmationRequired,
    Transition,
    adjust_set,
    copy_previous_weight,
    finish_workout,
    switch_routine,
    toggle_set,
    update_note,
    update_set_field,
)
from gt_cli.core.constants import BASE_UNIT, PR_EPSILON
from gt_cli.core.models import RecordLog, WorkSet, Workout
from gt_cli.core.routines import RoutineError, ensure_workout
from gt_cli.core.state import AppState, CLIState
from gt_cli.utils.date_ranges import resolve_log_date, validate_date
from gt_cli.utils.formatting import format_pr, format_set, format_state
from gt_cli.utils.parsing import format_number, parse_reps, parse_weight

DATE_HELP = "Workout date YYYY-MM-DD (default: today)"


def _app_state(date_value: Optional[str]) -> AppState:
    return AppState.for_day(resolve_log_date(date_value))


def _unit(log: RecordLog, workout: Workout, index: int) -> str:
    definition = log.definition_for(workout.routine_type, workout.exercises[index])
    return definition.unit if definition else BASE_UNIT


def workout_payload(
    log: RecordLog,
    day: str,
    workout: Workout,
    base_unit: str = BASE_UNIT,
    epsilon: float = PR_EPSILON,
) -> Dict[str, Any]:
    exercises: List[Dict[str, Any]] = []
    for index, exercise in enumerate(workout.exercises):
        last = last_exercise_data(log, day, exercise.name)
        row = exercise.to_dict()
        row["unit"] = _unit(log, workout, index)
        row["last"] = last.to_dict() if last else None
        exercises.append(row)
    summary = day_summary(log, day, base_unit=base_unit, epsilon=epsilon)
    return {
        "date": day,
        "routineType": workout.routine_type,
        "committed": workout.committed,
        "logged": day in log.workouts,
        "exercises": exercises,
        "volume": summary["volume"],
        "prs": {row["name"]: row["pr"] for row in summary["exercises"] if row["pr"]},
    }


def _cells(sets: List[WorkSet], unit: str) -> str:
    return "\n".join(f"{'[x]' if s.committed else '[ ]'} {format_set(s, unit)}" for s in sets) or "-"


def _render_workout(state: CLIState, log: RecordLog, day: str, workout: Workout) -> None:
    options = analytics_options(state)
    payload = workout_payload(log, day, workout, base_unit=options["base_unit"], epsilon=options["pr_epsilon"])
    if state.json_output:
        print_json_payload(state, payload)
        return

    if state.plain_output:
        typer.echo(f"date\t{day}")
        typer.echo(f"routine\t{workout.routine_type}")
        typer.echo(f"committed\t{str(workout.committed).lower()}")
        typer.echo("exercise\tkind\tset\tweight\treps\tstate")
        for index, exercise in enumerate(workout.exercises, start=1):
            for kind in ("warmup", "work"):
                for slot, work_set in enumerate(exercise.sets_for(kind), start=1):
                    typer.echo(
                        "\t".join(
                            [str(index), kind, str(slot), work_set.weight, work_set.reps, format_state(work_set)]
                        )
                    )
        typer.echo(f"volume\t{format_number(payload['volume'])}")
        return

    status = "finished" if workout.committed else ("in progress" if payload["logged"] else "preview")
    table = Table(title=f"{workout.routine_type.title()} workout on {day} ({status})")
    table.add_column("#")
    table.add_column("Exercise")
    table.add_column("Warm-up")
    table.add_column("Work sets")
    table.add_column("Last time")
    table.add_column("PR")

    for index, exercise in enumerate(workout.exercises):
        unit = _unit(log, workout, index)
        last = last_exercise_data(log, day, exercise.name)

        table.add_row(
            str(index + 1),
            exercise.name + (f"\n[dim]{exercise.notes}[/dim]" if exercise.notes else ""),
            _cells(exercise.warmup_sets, unit),
            _cells(exercise.work_sets, unit),
            format_set(last, unit) if last else "-",
            format_pr(payload["prs"].get(exercise.name)),
        )

    state.console.print(table)
    state.console.print(f"Volume: {format_number(payload['volume'])} {options['base_unit']}")


def _mutate(
    ctx: typer.Context,
    date_value: Optional[str],
    action: Callable[[RecordLog, str], Transition],
) -> None:
    """Run one transition against the day's workout, then show the result."""
    state = get_state(ctx)
    app_state = _app_state(date_value)
    session = open_session(state, refresh=True)
    sync_payload = None
    try:
        try:
            transition = session.run(lambda log: action(log, app_state.day))
        except (CommitError, RoutineError) as exc:
            fail(state, str(exc))
    finally:
        sync_payload = finish_session(state, session)

    workout = session.log.workouts.get(transition.day) or session.workout(app_state)
    if state.json_output:
        options = analytics_options(state)
        payload = workout_payload(
            session.log, transition.day, workout, base_unit=options["base_unit"], epsilon=options["pr_epsilon"]
        )
        payload["sync"] = sync_payload
        print_json_payload(state, payload)
        return
    _render_workout(state, session.log, transition.day, workout)


def _kind(warmup: bool) -> str:
    return "warmup" if warmup else "work"


def _slot(value: int) -> int:
    if value < 1:
        raise typer.BadParameter("Set number starts at 1")
    return value - 1


def show_command(
    ctx: typer.Context,
    date_value: Optional[str] = typer.Option(None, "--date", help=DATE_HELP, callback=validate_date),
) -> None:
    """Show a day's workout with last-session hints."""
    state = get_state(ctx)
    app_state = _app_state(date_value)
    session = open_session(state)
    try:
        workout = session.workout(app_state)
    except RoutineError as exc:
        fail(state, str(exc))
    _render_workout(state, session.log, app_state.day, workout)


def set_command(
    ctx: typer.Context,
    exercise: str = typer.Argument(..., help="Exercise number or name"),
    slot: int = typer.Argument(..., help="Set number (1-based)"),
    weight: Optional[str] = typer.Option(None, "--weight", "-w", help="Weight"),
    reps: Optional[str] = typer.Option(None, "--reps", "-r", help="Reps"),
    warmup: bool = typer.Option(False, "--warmup", help="Target a warm-up set"),
    date_value: Optional[str] = typer.Option(None, "--date", help=DATE_HELP, callback=validate_date),
) -> None:
    """Type a weight and/or reps into a set (the set stays draft or committed)."""
    if weight is None and reps is None:
        raise typer.BadParameter("Pass --weight and/or --reps")
    set_index = _slot(slot)

    def action(log: RecordLog, day: str) -> Transition:
        index = resolve_exercise(ensure_workout(log, day), exercise)
        transition = Transition(day=day)
        if weight is not None:
            transition = update_set_field(
                log, day, index, _kind(warmup), set_index, "weight", format_number(parse_weight(weight))
            )
        if reps is not None:
            transition = update_set_field(log, day, index, _kind(warmup), set_index, "reps", str(parse_reps(reps)))
        return transition

    _mutate(ctx, date_value, action)


def bump_command(
    ctx: typer.Context,
    exercise: str = typer.Argument(..., help="Exercise number or name"),
    slot: int = typer.Argument(..., help="Set number (1-based)"),
    reps: bool = typer.Option(False, "--reps", help="Step reps instead of weight"),
    down: bool = typer.Option(False, "--down", help="Step down instead of up"),
    warmup: bool = typer.Option(False, "--warmup", help="Target a warm-up set"),
    date_value: Optional[str] = typer.Option(None, "--date", help=DATE_HELP, callback=validate_date),
) -> None:
    """Step a set's weight (by the exercise increment) or reps, committing it."""
    set_index = _slot(slot)

    def action(log: RecordLog, day: str) -> Transition:
        index = resolve_exercise(ensure_workout(log, day), exercise)
        field = "reps" if reps else "weight"
        return adjust_set(log, day, index, _kind(warmup), set_index, field, -1 if down else 1)

    _mutate(ctx, date_value, action)


def toggle_command(
    ctx: typer.Context,
    exercise: str = typer.Argument(..., help="Exercise number or name"),
    slot: int = typer.Argument(..., help="Set number (1-based)"),
    warmup: bool = typer.Option(False, "--warmup", help="Target a warm-up set"),
    date_value: Optional[str] = typer.Option(None, "--date", help=DATE_HELP, callback=validate_date),
) -> None:
    """Mark a set done, or back to draft."""
    set_index = _slot(slot)

    def action(log: RecordLog, day: str) -> Transition:
        index = resolve_exercise(ensure_workout(log, day), exercise)
        return toggle_set(log, day, index, _kind(warmup), set_index)

    _mutate(ctx, date_value, action)


def copy_command(
    ctx: typer.Context,
    exercise: str = typer.Argument(..., help="Exercise number or name"),
    slot: int = typer.Argument(..., help="Set number (1-based)"),
    warmup: bool = typer.Option(False, "--warmup", help="Target a warm-up set"),
    date_value: Optional[str] = typer.Option(None, "--date", help=DATE_HELP, callback=validate_date),
) -> None:
    """Copy the weight from the set above into an empty set."""
    set_index = _slot(slot)

    def action(log: RecordLog, day: str) -> Transition:
        index = resolve_exercise(ensure_workout(log, day), exercise)
        return copy_previous_weight(log, day, index, _kind(warmup), set_index)

    _mutate(ctx, date_value, action)


def note_command(
    ctx: typer.Context,
    exercise: str = typer.Argument(..., help="Exercise number or name"),
    text: str = typer.Argument(..., help="Note text (empty string clears it)"),
    date_value: Optional[str] = typer.Option(None, "--date", help=DATE_HELP, callback=validate_date),
) -> None:
    """Set an exercise note; future workouts start with it."""

    def action(log: RecordLog, day: str) -> Transition:
        index = resolve_exercise(ensure_workout(log, day), exercise)
        return update_note(log, day, index, text.strip())

    _mutate(ctx, date_value, action)


def switch_command(
    ctx: typer.Context,
    routine: str = typer.Argument(..., help="Routine key, e.g. push or pull"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Discard entered sets without asking"),
    date_value: Optional[str] = typer.Option(None, "--date", help=DATE_HELP, callback=validate_date),
) -> None:
    """Replace the day's workout with a fresh one from another routine."""
    state = get_state(ctx)

    def action(log: RecordLog, day: str) -> Transition:
        try:
            return switch_routine(log, day, routine, confirmed=yes)
        except ConfirmationRequired as exc:
            if state.json_output or state.plain_output or not typer.confirm(f"{exc}. Discard them?"):
                raise
            return switch_routine(log, day, routine, confirmed=True)

    _mutate(ctx, date_value, action)


def finish_command(
    ctx: typer.Context,
    date_value: Optional[str] = typer.Option(None, "--date", help=DATE_HELP, callback=validate_date),
) -> None:
    """Finish the workout and sync it right away."""
    _mutate(ctx, date_value, finish_workout)
