"""Records, streaks, phases and day summaries derived from the Record Log."""

from __future__ import annotations

import calendar
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set, Tuple, Union

from gt_cli.core.constants import BASE_UNIT, DAY_STREAK_GAP, KG_PER_LB, PR_EPSILON
from gt_cli.core.models import ExerciseInstance, Phase, RecordLog, WorkSet, Workout

DateLike = Union[str, date]


@dataclass(frozen=True)
class PersonalRecord:
    weight: float
    reps: int
    day: str


def _as_date(value: DateLike) -> date:
    if isinstance(value, date):
        return value
    return datetime.strptime(str(value)[:10], "%Y-%m-%d").date()


def _as_str(value: DateLike) -> str:
    return value.isoformat() if isinstance(value, date) else str(value)[:10]


def week_start(value: DateLike) -> date:
    day = _as_date(value)
    return day - timedelta(days=day.weekday())


def to_base_unit(weight: float, unit: str, base_unit: str = BASE_UNIT) -> float:
    """Convert a weight to the base unit; converted values are rounded to 0.1."""
    if unit == base_unit:
        return float(weight)
    if unit == "lb" and base_unit == "kg":
        return round(weight * KG_PER_LB, 1)
    if unit == "kg" and base_unit == "lb":
        return round(weight / KG_PER_LB, 1)
    raise ValueError(f"Cannot convert {unit} to {base_unit}")


def estimate_one_rep_max(weight: float, reps: int) -> float:
    """Epley estimate: weight * (1 + reps / 30)."""
    if weight <= 0 or reps <= 0:
        return 0.0
    return round(weight * (1 + reps / 30), 1)


def _unit_for(log: RecordLog, workout: Workout, exercise: ExerciseInstance, base_unit: str) -> str:
    definition = log.definition_for(workout.routine_type, exercise)
    return definition.unit if definition else base_unit


def _candidate_sets(
    log: RecordLog,
    workout: Workout,
    exercise: ExerciseInstance,
    base_unit: str,
    sets: Optional[Iterable[WorkSet]] = None,
) -> Iterator[Tuple[float, int]]:
    unit = _unit_for(log, workout, exercise, base_unit)
    for work_set in exercise.work_sets if sets is None else sets:
        if work_set.is_record_candidate:
            yield to_base_unit(work_set.weight_value, unit, base_unit), work_set.reps_value


def _history(
    log: RecordLog,
    exercise_name: str,
    base_unit: str,
    before: Optional[str] = None,
) -> Iterator[Tuple[str, float, int]]:
    """(day, weight, reps) for committed work sets in committed workouts, oldest first."""
    for day, workout in log.committed_workouts():
        if before is not None and day >= before:
            break
        exercise = workout.find_exercise(exercise_name)
        if exercise is None:
            continue
        for weight, reps in _candidate_sets(log, workout, exercise, base_unit):
            yield day, weight, reps


def _same_weight(a: float, b: float, epsilon: float) -> bool:
    return abs(a - b) <= epsilon + 1e-9


def personal_record(
    log: RecordLog,
    exercise_name: str,
    before: Optional[DateLike] = None,
    base_unit: str = BASE_UNIT,
    epsilon: float = PR_EPSILON,
) -> Optional[PersonalRecord]:
    """Heaviest committed work set strictly before `before`, reps at that weight as tiebreaker."""
    best: Optional[PersonalRecord] = None
    cutoff = _as_str(before) if before is not None else None
    for day, weight, reps in _history(log, exercise_name, base_unit, before=cutoff):
        if best is None or weight > best.weight:
            best = PersonalRecord(weight=weight, reps=reps, day=day)
        elif _same_weight(weight, best.weight, epsilon) and reps > best.reps:
            best = PersonalRecord(weight=best.weight, reps=reps, day=day)
    return best


def classify_set_pr(
    weight: float,
    reps: int,
    record: Optional[PersonalRecord],
    epsilon: float = PR_EPSILON,
) -> Optional[str]:
    """'weight', 'reps' or None. Nothing to beat means no flag."""
    if record is None or weight <= 0 or reps <= 0:
        return None
    if weight > record.weight:
        return "weight"
    if _same_weight(weight, record.weight, epsilon) and reps > record.reps:
        return "reps"
    return None


def session_one_rep_max(log: RecordLog, exercise_name: str, day: DateLike, base_unit: str = BASE_UNIT) -> float:
    workout = log.workouts.get(_as_str(day))
    if workout is None:
        return 0.0
    exercise = workout.find_exercise(exercise_name)
    if exercise is None:
        return 0.0
    return max(
        (estimate_one_rep_max(w, r) for w, r in _candidate_sets(log, workout, exercise, base_unit)),
        default=0.0,
    )


def exercise_progression(log: RecordLog, exercise_name: str, base_unit: str = BASE_UNIT) -> List[Dict[str, Any]]:
    """Best set and estimated 1RM per committed session."""
    rows: List[Dict[str, Any]] = []
    for day, workout in log.committed_workouts():
        exercise = workout.find_exercise(exercise_name)
        if exercise is None:
            continue
        sets = list(_candidate_sets(log, workout, exercise, base_unit))
        if not sets:
            continue
        weight, reps = max(sets)
        rows.append(
            {
                "date": day,
                "weight": weight,
                "reps": reps,
                "one_rep_max": max(estimate_one_rep_max(w, r) for w, r in sets),
            }
        )
    return rows


def exercise_names(log: RecordLog) -> List[str]:
    """Every exercise name with committed history, then template-only names."""
    seen: Dict[str, None] = {}
    for _, workout in log.committed_workouts():
        for exercise in workout.exercises:
            seen.setdefault(exercise.name, None)
    for routine in log.routines.values():
        for definition in routine.exercises:
            seen.setdefault(definition.name, None)
    return list(seen)


def all_personal_records(
    log: RecordLog,
    base_unit: str = BASE_UNIT,
    epsilon: float = PR_EPSILON,
) -> List[Dict[str, Any]]:
    rows = []
    for name in exercise_names(log):
        record = personal_record(log, name, base_unit=base_unit, epsilon=epsilon)
        if record is None:
            continue
        rows.append(
            {
                "exercise": name,
                "weight": record.weight,
                "reps": record.reps,
                "date": record.day,
                "one_rep_max": estimate_one_rep_max(record.weight, record.reps),
            }
        )
    return rows


def _trained_workouts(log: RecordLog) -> List[Tuple[str, Workout]]:
    """Committed workouts holding at least one committed work set with values."""
    return [
        (day, workout)
        for day, workout in log.committed_workouts()
        if any(s.is_record_candidate for exercise in workout.exercises for s in exercise.work_sets)
    ]


def weekly_streak(
    log: RecordLog,
    today: DateLike,
    routine_types: Optional[Iterable[str]] = None,
) -> int:
    """Consecutive complete weeks, walking back from the most recent week.

    A week is complete when it holds a committed workout of every routine type
    in the program. The most recent week is exempt from that requirement: the
    current week, or last week when nothing is logged yet this week.
    """
    required: Set[str] = set(routine_types if routine_types is not None else log.routines)
    weeks: Dict[date, Set[str]] = defaultdict(set)
    for day, workout in _trained_workouts(log):
        weeks[week_start(day)].add(workout.routine_type)

    current = week_start(today)
    anchor = current if current in weeks else current - timedelta(days=7)
    if anchor not in weeks or not required:
        return 0

    def complete(start: date) -> bool:
        return start in weeks and required <= weeks[start]

    streak = 1 if complete(anchor) else 0
    cursor = anchor - timedelta(days=7)
    while complete(cursor):
        streak += 1
        cursor -= timedelta(days=7)
    return streak


def day_streak(log: RecordLog, today: DateLike, gap_days: int = DAY_STREAK_GAP) -> int:
    """Committed sessions chained backwards with at most `gap_days` between them."""
    streak = 0
    last = _as_date(today)
    for day, _ in reversed(_trained_workouts(log)):
        current = _as_date(day)
        if current > last:
            continue
        if (last - current).days > gap_days:
            break
        streak += 1
        last = current
    return streak


def sessions_in_year(log: RecordLog, year: int) -> int:
    prefix = f"{year:04d}-"
    return sum(1 for day, _ in log.committed_workouts() if day.startswith(prefix))


def current_phase(log: RecordLog) -> Optional[Phase]:
    open_phases = [phase for phase in log.phases if phase.is_open]
    return open_phases[-1] if open_phases else None


def phase_workouts(log: RecordLog, phase: Phase) -> List[str]:
    """Committed workout dates inside [start, end)."""
    return [day for day, _ in log.committed_workouts() if phase.contains(day)]


def phase_summary(log: RecordLog, phase: Phase, today: DateLike) -> Dict[str, Any]:
    start = _as_date(phase.start)
    end = _as_date(today) if phase.is_open else min(_as_date(phase.end or today), _as_date(today))
    return {
        "id": phase.id,
        "name": phase.name,
        "start": phase.start,
        "end": phase.end,
        "sessions": len(phase_workouts(log, phase)),
        "days_elapsed": max((end - start).days, 0),
        "goals": dict(phase.goals),
    }


def recent_workouts(log: RecordLog, limit: int = 10) -> List[Dict[str, Any]]:
    return [
        {
            "date": day,
            "routine_type": log.workouts[day].routine_type,
            "committed": log.workouts[day].committed,
        }
        for day in log.sorted_dates(reverse=True)[:limit]
    ]


def last_exercise_data(log: RecordLog, day: DateLike, exercise_name: str) -> Optional[WorkSet]:
    """Last work set with a weight from the most recent earlier session of an exercise."""
    cutoff = _as_str(day)
    for previous in log.sorted_dates(reverse=True):
        if previous >= cutoff:
            continue
        exercise = log.workouts[previous].find_exercise(exercise_name)
        if exercise is None:
            continue
        with_weight = [s for s in exercise.work_sets if s.weight.strip()]
        if with_weight:
            return with_weight[-1]
    return None


def day_summary(
    log: RecordLog,
    day: DateLike,
    base_unit: str = BASE_UNIT,
    epsilon: float = PR_EPSILON,
) -> Dict[str, Any]:
    """Volume, set and rep counts, and each exercise's best set with its PR flag."""
    key = _as_str(day)
    workout = log.workouts.get(key)
    summary: Dict[str, Any] = {
        "date": key,
        "routine_type": workout.routine_type if workout else None,
        "committed": workout.committed if workout else False,
        "volume": 0.0,
        "sets": 0,
        "reps": 0,
        "exercises": [],
    }
    if workout is None:
        return summary

    volume = 0.0
    for exercise in workout.exercises:
        unit = _unit_for(log, workout, exercise, base_unit)
        for work_set in exercise.warmup_sets + exercise.work_sets:
            if not (work_set.committed and work_set.has_values):
                continue
            weight = to_base_unit(work_set.weight_value, unit, base_unit)
            volume += weight * work_set.reps_value
            summary["sets"] += 1
            summary["reps"] += work_set.reps_value

        sets = list(_candidate_sets(log, workout, exercise, base_unit))
        if not sets:
            continue
        weight, reps = max(sets)
        record = personal_record(log, exercise.name, before=key, base_unit=base_unit, epsilon=epsilon)
        summary["exercises"].append(
            {
                "name": exercise.name,
                "weight": weight,
                "reps": reps,
                "one_rep_max": max(estimate_one_rep_max(w, r) for w, r in sets),
                "pr": classify_set_pr(weight, reps, record, epsilon=epsilon),
            }
        )

    summary["volume"] = round(volume, 1)
    return summary


def calendar_month(
    log: RecordLog,
    year: int,
    month: int,
    base_unit: str = BASE_UNIT,
    epsilon: float = PR_EPSILON,
) -> Dict[str, Dict[str, Any]]:
    """Per-day summaries for every logged day of a month."""
    days_in_month = calendar.monthrange(year, month)[1]
    first = date(year, month, 1).isoformat()
    last = date(year, month, days_in_month).isoformat()
    result: Dict[str, Dict[str, Any]] = {}
    for day in log.sorted_dates():
        if first <= day <= last:
            summary = day_summary(log, day, base_unit=base_unit, epsilon=epsilon)
            result[day] = {
                "routine_type": summary["routine_type"],
                "committed": summary["committed"],
                "volume": summary["volume"],
                "sets": summary["sets"],
                "prs": sum(1 for row in summary["exercises"] if row["pr"]),
            }
    return result


def build_stats_summary(log: RecordLog, today: DateLike, gap_days: int = DAY_STREAK_GAP) -> Dict[str, Any]:
    """Numbers shown on the stats overview."""
    today_date = _as_date(today)
    phase = current_phase(log)
    return {
        "year": today_date.year,
        "sessions_this_year": sessions_in_year(log, today_date.year),
        "weekly_streak": weekly_streak(log, today_date),
        "day_streak": day_streak(log, today_date, gap_days=gap_days),
        "phase": phase_summary(log, phase, today_date) if phase else None,
        "recent": recent_workouts(log),
    }
