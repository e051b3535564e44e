"""Training statistics commands."""

from __future__ import annotations

import calendar
from datetime import date
from typing import Optional

import typer
from rich.table import Table

from gt_cli.commands.common import analytics_options, fail, get_state, open_session, print_json_payload
from gt_cli.core.analysis import (
    all_personal_records,
    build_stats_summary,
    calendar_month,
    day_summary,
    exercise_names,
    exercise_progression,
)
from gt_cli.utils.date_ranges import parse_month, validate_date
from gt_cli.utils.formatting import format_phase, format_pr, format_weight
from gt_cli.utils.parsing import format_number

app = typer.Typer(help="Training statistics")


@app.command("summary")
def summary_command(ctx: typer.Context) -> None:
    """Sessions this year, streaks, current phase and recent workouts."""
    state = get_state(ctx)
    options = analytics_options(state)
    session = open_session(state)
    report = build_stats_summary(session.log, date.today(), gap_days=options["day_streak_gap"])

    if state.json_output:
        print_json_payload(state, report)
        return

    if state.plain_output:
        typer.echo(f"sessions_{report['year']}\t{report['sessions_this_year']}")
        typer.echo(f"weekly_streak\t{report['weekly_streak']}")
        typer.echo(f"day_streak\t{report['day_streak']}")
        phase = report["phase"]
        typer.echo(f"phase\t{phase['name'] if phase else '-'}")
        for row in report["recent"]:
            typer.echo(f"recent\t{row['date']}\t{row['routine_type']}\t{str(row['committed']).lower()}")
        return

    state.console.print(f"Sessions in {report['year']}: {report['sessions_this_year']}")
    state.console.print(f"Weekly streak: {report['weekly_streak']}")
    state.console.print(f"Day streak: {report['day_streak']}")
    state.console.print(format_phase(report["phase"]))
    if report["recent"]:
        state.console.print("Recent workouts:")
        for row in report["recent"]:
            marker = "done" if row["committed"] else "open"
            state.console.print(f"- {row['date']} {row['routine_type']} ({marker})")


@app.command("prs")
def prs_command(ctx: typer.Context) -> None:
    """All-time best set per exercise."""
    state = get_state(ctx)
    options = analytics_options(state)
    session = open_session(state)
    rows = all_personal_records(session.log, base_unit=options["base_unit"], epsilon=options["pr_epsilon"])

    if state.json_output:
        print_json_payload(state, {"base_unit": options["base_unit"], "records": rows})
        return

    if state.plain_output:
        typer.echo("exercise\tweight\treps\tdate\tone_rep_max")
        for row in rows:
            typer.echo(
                f"{row['exercise']}\t{format_number(row['weight'])}\t{row['reps']}\t{row['date']}\t"
                f"{format_number(row['one_rep_max'])}"
            )
        return

    table = Table(title=f"Personal records ({options['base_unit']})")
    table.add_column("Exercise")
    table.add_column("Best set")
    table.add_column("Date")
    table.add_column("Est. 1RM")
    for row in rows:
        table.add_row(
            row["exercise"],
            f"{format_weight(row['weight'], options['base_unit'])} x {row['reps']}",
            row["date"],
            format_weight(row["one_rep_max"], options["base_unit"]),
        )
    state.console.print(table)


@app.command("day")
def day_command(
    ctx: typer.Context,
    date_value: Optional[str] = typer.Option(None, "--date", help="Date YYYY-MM-DD (default: today)", callback=validate_date),
) -> None:
    """Volume, sets and PRs for one day."""
    state = get_state(ctx)
    options = analytics_options(state)
    session = open_session(state)
    day = date_value or date.today().isoformat()
    report = day_summary(session.log, day, base_unit=options["base_unit"], epsilon=options["pr_epsilon"])

    if state.json_output:
        print_json_payload(state, report)
        return

    if report["routine_type"] is None:
        fail(state, f"No workout logged on {day}")

    if state.plain_output:
        typer.echo(f"date\t{day}")
        typer.echo(f"routine\t{report['routine_type']}")
        typer.echo(f"volume\t{format_number(report['volume'])}")
        typer.echo(f"sets\t{report['sets']}")
        typer.echo(f"reps\t{report['reps']}")
        for row in report["exercises"]:
            typer.echo(
                f"exercise\t{row['name']}\t{format_number(row['weight'])}\t{row['reps']}\t{row['pr'] or '-'}"
            )
        return

    state.console.print(f"{report['routine_type'].title()} on {day}")
    state.console.print(
        f"Volume: {format_number(report['volume'])} {options['base_unit']}  "
        f"Sets: {report['sets']}  Reps: {report['reps']}"
    )
    table = Table()
    table.add_column("Exercise")
    table.add_column("Best set")
    table.add_column("Est. 1RM")
    table.add_column("PR")
    for row in report["exercises"]:
        table.add_row(
            row["name"],
            f"{format_weight(row['weight'], options['base_unit'])} x {row['reps']}",
            format_weight(row["one_rep_max"], options["base_unit"]),
            format_pr(row["pr"]),
        )
    state.console.print(table)


@app.command("progress")
def progress_command(
    ctx: typer.Context,
    exercise: str = typer.Argument(..., help="Exercise name"),
) -> None:
    """Best set and estimated 1RM per session for one exercise."""
    state = get_state(ctx)
    options = analytics_options(state)
    session = open_session(state)

    names = {name.lower(): name for name in exercise_names(session.log)}
    name = names.get(exercise.strip().lower())
    if name is None:
        fail(state, f"No history for exercise: {exercise}")
    rows = exercise_progression(session.log, name, base_unit=options["base_unit"])

    if state.json_output:
        print_json_payload(state, {"exercise": name, "base_unit": options["base_unit"], "sessions": rows})
        return

    if state.plain_output:
        typer.echo("date\tweight\treps\tone_rep_max")
        for row in rows:
            typer.echo(
                f"{row['date']}\t{format_number(row['weight'])}\t{row['reps']}\t{format_number(row['one_rep_max'])}"
            )
        return

    table = Table(title=f"{name} progression ({len(rows)} sessions)")
    table.add_column("Date")
    table.add_column("Best set")
    table.add_column("Est. 1RM")
    for row in rows:
        table.add_row(
            row["date"],
            f"{format_weight(row['weight'], options['base_unit'])} x {row['reps']}",
            format_weight(row["one_rep_max"], options["base_unit"]),
        )
    state.console.print(table)


@app.command("calendar")
def calendar_command(
    ctx: typer.Context,
    month: Optional[str] = typer.Option(None, "--month", help="Month YYYY-MM (default: this month)"),
) -> None:
    """Logged days of a month with volume and PR counts."""
    state = get_state(ctx)
    options = analytics_options(state)
    year, month_number = parse_month(month)
    session = open_session(state)
    days = calendar_month(
        session.log, year, month_number, base_unit=options["base_unit"], epsilon=options["pr_epsilon"]
    )

    if state.json_output:
        print_json_payload(state, {"month": f"{year:04d}-{month_number:02d}", "days": days})
        return

    if state.plain_output:
        typer.echo("date\troutine\tcommitted\tvolume\tsets\tprs")
        for day, row in days.items():
            typer.echo(
                f"{day}\t{row['routine_type']}\t{str(row['committed']).lower()}\t"
                f"{format_number(row['volume'])}\t{row['sets']}\t{row['prs']}"
            )
        return

    table = Table(title=f"{calendar.month_name[month_number]} {year} ({len(days)} workouts)")
    table.add_column("Date")
    table.add_column("Routine")
    table.add_column("Volume")
    table.add_column("Sets")
    table.add_column("PRs")
    for day, row in days.items():
        table.add_row(
            day,
            row["routine_type"] + ("" if row["committed"] else " (open)"),
            format_weight(row["volume"], options["base_unit"]),
            str(row["sets"]),
            str(row["prs"]) if row["prs"] else "",
        )
    state.console.print(table)
