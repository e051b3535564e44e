"""Draft/committed transitions for sets and workouts.

Every function mutates the Record Log it is given and returns a Transition.
The caller persists the log and tells the sync engine; only finishing a
workout asks for an immediate remote push.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from gt_cli.core.constants import DEFAULT_INCREMENT, SET_KINDS
from gt_cli.core.models import ExerciseInstance, RecordLog, SetState, WorkSet, Workout
from gt_cli.core.routines import build_workout, ensure_workout
from gt_cli.utils.parsing import format_number, parse_reps, parse_weight

SET_FIELDS = ("weight", "reps")


class CommitError(RuntimeError):
    """Raised when a transition targets something that does not exist."""


class ConfirmationRequired(CommitError):
    """Raised when a transition would discard entered values without consent."""


@dataclass(frozen=True)
class Transition:
    day: str
    force_sync: bool = False
    description: str = ""


def _locate(
    log: RecordLog,
    day: str,
    exercise_index: int,
    kind: str,
    set_index: int,
) -> Tuple[Workout, ExerciseInstance, WorkSet]:
    if kind not in SET_KINDS:
        raise CommitError(f"Unknown set kind: {kind}")
    workout = ensure_workout(log, day)
    if not 0 <= exercise_index < len(workout.exercises):
        raise CommitError(f"No exercise #{exercise_index + 1} on {day}")
    exercise = workout.exercises[exercise_index]
    sets = exercise.sets_for(kind)
    if not 0 <= set_index < len(sets):
        raise CommitError(f"{exercise.name} has no {kind} set #{set_index + 1}")
    return workout, exercise, sets[set_index]


def _check_field(field: str) -> None:
    if field not in SET_FIELDS:
        raise CommitError(f"Unknown set field: {field}")


def prior_session_set(
    log: RecordLog,
    day: str,
    exercise_name: str,
    kind: str,
    set_index: int,
) -> Optional[WorkSet]:
    """Same slot in the most recent earlier workout that has this exercise."""
    for previous in log.sorted_dates(reverse=True):
        if previous >= day:
            continue
        exercise = log.workouts[previous].find_exercise(exercise_name)
        if exercise is None:
            continue
        sets = exercise.sets_for(kind)
        return sets[set_index] if set_index < len(sets) else None
    return None


def _backfill(target: WorkSet, prior: Optional[WorkSet], fields: Iterable[str]) -> None:
    if prior is None:
        return
    for name in fields:
        if not getattr(target, name).strip() and getattr(prior, name).strip():
            setattr(target, name, getattr(prior, name))


def update_set_field(
    log: RecordLog,
    day: str,
    exercise_index: int,
    kind: str,
    set_index: int,
    field: str,
    value: str,
) -> Transition:
    """Typed edit of weight or reps; the set's state is left alone."""
    _check_field(field)
    _, exercise, work_set = _locate(log, day, exercise_index, kind, set_index)
    setattr(work_set, field, str(value).strip())
    return Transition(day=day, description=f"{exercise.name} {kind} #{set_index + 1} {field}={value}")


def adjust_set(
    log: RecordLog,
    day: str,
    exercise_index: int,
    kind: str,
    set_index: int,
    field: str,
    direction: int = 1,
) -> Transition:
    """Increment/decrement control.

    Weight moves by the exercise's increment, reps by one, never below zero.
    An empty field starts from the previous session's value for the slot
    (or the template's start weight). The set always ends up committed and
    its other field is backfilled from the previous session when empty.
    """
    _check_field(field)
    if direction not in (-1, 1):
        raise CommitError("direction must be -1 or 1")
    workout, exercise, work_set = _locate(log, day, exercise_index, kind, set_index)
    prior = prior_session_set(log, day, exercise.name, kind, set_index)
    definition = log.definition_for(workout.routine_type, exercise)

    current = getattr(work_set, field)
    if field == "weight":
        step = definition.increment if definition else DEFAULT_INCREMENT
        if current.strip():
            base = parse_weight(current)
        elif prior is not None and prior.weight.strip():
            base = parse_weight(prior.weight)
        else:
            base = definition.start_weight if definition else 0.0
        work_set.weight = format_number(max(base + direction * step, 0.0))
        sibling = "reps"
    else:
        if current.strip():
            base_reps = parse_reps(current)
        elif prior is not None:
            base_reps = prior.reps_value
        else:
            base_reps = 0
        work_set.reps = str(max(base_reps + direction, 0))
        sibling = "weight"

    work_set.state = SetState.COMMITTED
    _backfill(work_set, prior, [sibling])
    return Transition(day=day, description=f"{exercise.name} {kind} #{set_index + 1} {work_set.weight}x{work_set.reps}")


def toggle_set(log: RecordLog, day: str, exercise_index: int, kind: str, set_index: int) -> Transition:
    """Flip a set between draft and committed; committing backfills empty fields."""
    _, exercise, work_set = _locate(log, day, exercise_index, kind, set_index)
    if work_set.committed:
        work_set.state = SetState.DRAFT
    else:
        work_set.state = SetState.COMMITTED
        _backfill(work_set, prior_session_set(log, day, exercise.name, kind, set_index), SET_FIELDS)
    return Transition(day=day, description=f"{exercise.name} {kind} #{set_index + 1} {work_set.state.value}")


def copy_previous_weight(log: RecordLog, day: str, exercise_index: int, kind: str, set_index: int) -> Transition:
    """Fill an empty weight from the set above, or the last warm-up for the first work set."""
    _, exercise, work_set = _locate(log, day, exercise_index, kind, set_index)
    if work_set.weight.strip():
        return Transition(day=day)
    sets = exercise.sets_for(kind)
    source: Optional[WorkSet] = None
    if set_index > 0 and sets[set_index - 1].weight.strip():
        source = sets[set_index - 1]
    elif kind == "work" and exercise.warmup_sets and exercise.warmup_sets[-1].weight.strip():
        source = exercise.warmup_sets[-1]
    if source is not None:
        work_set.weight = source.weight
    return Transition(day=day, description=f"{exercise.name} {kind} #{set_index + 1} weight={work_set.weight}")


def update_note(log: RecordLog, day: str, exercise_index: int, note: str) -> Transition:
    """Set the exercise note for this workout and for future workouts."""
    workout = ensure_workout(log, day)
    if not 0 <= exercise_index < len(workout.exercises):
        raise CommitError(f"No exercise #{exercise_index + 1} on {day}")
    exercise = workout.exercises[exercise_index]
    exercise.notes = note
    log.notes[exercise.name] = note
    return Transition(day=day, description=f"note for {exercise.name}")


def finish_workout(log: RecordLog, day: str) -> Transition:
    workout = log.workouts.get(day)
    if workout is None:
        raise CommitError(f"No workout logged on {day}")
    workout.committed = True
    return Transition(day=day, force_sync=True, description=f"finished {workout.routine_type} workout")


def switch_routine(log: RecordLog, day: str, routine_type: str, confirmed: bool = False) -> Transition:
    """Replace the day's workout with a fresh one of another routine type."""
    existing = log.workouts.get(day)
    if existing is not None and existing.routine_type == routine_type:
        return Transition(day=day)
    if existing is not None and existing.has_values and not confirmed:
        raise ConfirmationRequired(
            f"The {existing.routine_type} workout on {day} already has entered sets"
        )
    log.workouts[day] = build_workout(log, routine_type)
    return Transition(day=day, description=f"switched to {routine_type}")
