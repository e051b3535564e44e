"""Routine templates and their propagation into today's workout."""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Dict, List, Optional

from gt_cli.core.constants import EQUIPMENT_CLASSES, WEIGHT_UNITS
from gt_cli.core.models import (
    ExerciseDefinition,
    ExerciseInstance,
    RecordLog,
    RoutineTemplate,
    WorkSet,
    Workout,
    routines_from_payload,
)
from gt_cli.utils.parsing import load_mapping_file, parse_rep_range

logger = logging.getLogger(__name__)


class RoutineError(RuntimeError):
    """Raised for invalid routine template edits."""


def next_routine_type(log: RecordLog, before: Optional[str] = None) -> str:
    """Rotate through the template keys after the most recent workout's type."""
    keys = list(log.routines)
    if not keys:
        raise RoutineError("No routine templates are defined")
    dates = [day for day in log.sorted_dates(reverse=True) if before is None or day < before]
    if not dates:
        return keys[0]
    last_type = log.workouts[dates[0]].routine_type
    if last_type not in keys:
        return keys[0]
    return keys[(keys.index(last_type) + 1) % len(keys)]


def fresh_sets(count: int) -> List[WorkSet]:
    return [WorkSet() for _ in range(max(count, 0))]


def build_exercise(definition: ExerciseDefinition, notes: Dict[str, str]) -> ExerciseInstance:
    return ExerciseInstance(
        id=definition.id,
        name=definition.name,
        warmup_sets=fresh_sets(definition.warmup_sets),
        work_sets=fresh_sets(definition.work_sets),
        notes=notes.get(definition.name) or definition.notes or "",
    )


def build_workout(log: RecordLog, routine_type: str) -> Workout:
    """Instantiate a draft workout from a routine template."""
    routine = log.routines.get(routine_type)
    if routine is None:
        raise RoutineError(f"Unknown routine: {routine_type}")
    return Workout(
        routine_type=routine_type,
        exercises=[build_exercise(definition, log.notes) for definition in routine.exercises],
    )


def get_workout(log: RecordLog, day: str, today: str) -> Workout:
    """Return the workout for `day`.

    Today's workout is created and inserted on first read. Other dates that
    have nothing logged get an uninserted preview so browsing history never
    writes data.
    """
    existing = log.workouts.get(day)
    if existing is not None:
        return existing
    workout = build_workout(log, next_routine_type(log, before=day))
    if day == today:
        log.workouts[day] = workout
    return workout


def ensure_workout(log: RecordLog, day: str) -> Workout:
    """Return the workout for `day`, inserting it if an edit is about to land."""
    if day not in log.workouts:
        log.workouts[day] = build_workout(log, next_routine_type(log, before=day))
    return log.workouts[day]


def _resize(sets: List[WorkSet], count: int) -> List[WorkSet]:
    kept = sets[:count]
    return kept + fresh_sets(count - len(kept))


def resync_exercises(
    exercises: List[ExerciseInstance],
    routine: RoutineTemplate,
    notes: Dict[str, str],
) -> List[ExerciseInstance]:
    """Re-derive exercise instances from a template, keeping entered values.

    Instances are matched to definitions by id first, then by name. Matched
    instances keep their sets (grown with fresh drafts or truncated from the
    end to the template's counts); unmatched definitions get fresh instances.
    The result follows the template's order.
    """
    remaining = list(exercises)
    rebuilt: List[ExerciseInstance] = []
    for definition in routine.exercises:
        match = next((ex for ex in remaining if ex.id == definition.id), None)
        if match is None:
            match = next((ex for ex in remaining if ex.name == definition.name), None)
        if match is None:
            rebuilt.append(build_exercise(definition, notes))
            continue
        remaining.remove(match)
        rebuilt.append(
            ExerciseInstance(
                id=definition.id,
                name=definition.name,
                warmup_sets=_resize(match.warmup_sets, definition.warmup_sets),
                work_sets=_resize(match.work_sets, definition.work_sets),
                notes=match.notes,
            )
        )
    return rebuilt


def propagate_template(log: RecordLog, routine_key: str, today: str) -> bool:
    """Align today's in-progress workout with an edited template.

    Returns True when today's workout was restructured.
    """
    workout = log.workouts.get(today)
    routine = log.routines.get(routine_key)
    if workout is None or routine is None or workout.routine_type != routine_key:
        return False
    workout.exercises = resync_exercises(workout.exercises, routine, log.notes)
    logger.debug("Resynced %s workout on %s with %d exercises", routine_key, today, len(workout.exercises))
    return True


def _routine(log: RecordLog, routine_key: str) -> RoutineTemplate:
    routine = log.routines.get(routine_key)
    if routine is None:
        raise RoutineError(f"Unknown routine: {routine_key}")
    return routine


def _index_of(routine: RoutineTemplate, exercise_id: int) -> int:
    for index, definition in enumerate(routine.exercises):
        if definition.id == exercise_id:
            return index
    raise RoutineError(f"No exercise with id {exercise_id} in {routine.name}")


def _validate(definition: ExerciseDefinition) -> None:
    if not definition.name.strip():
        raise RoutineError("Exercise name must not be empty")
    if definition.unit not in WEIGHT_UNITS:
        raise RoutineError(f"Unsupported unit: {definition.unit}")
    if definition.equipment not in EQUIPMENT_CLASSES:
        raise RoutineError(f"Unsupported equipment: {definition.equipment}")
    if definition.work_sets < 1:
        raise RoutineError("An exercise needs at least one work set")
    if parse_rep_range(definition.reps) is None:
        raise RoutineError(f"Invalid rep range: {definition.reps}")


def add_exercise(log: RecordLog, routine_key: str, definition: ExerciseDefinition) -> ExerciseDefinition:
    """Append a definition; its id is one more than the largest id in the routine."""
    routine = _routine(log, routine_key)
    definition = copy.deepcopy(definition)
    definition.id = max((ex.id for ex in routine.exercises), default=0) + 1
    _validate(definition)
    routine.exercises.append(definition)
    return definition


def edit_exercise(log: RecordLog, routine_key: str, exercise_id: int, **changes: object) -> ExerciseDefinition:
    routine = _routine(log, routine_key)
    index = _index_of(routine, exercise_id)
    current = routine.exercises[index]
    unknown = set(changes) - set(current.__dataclass_fields__) - {"id"}
    if unknown:
        raise RoutineError(f"Unknown exercise fields: {', '.join(sorted(unknown))}")
    values = {key: getattr(current, key) for key in current.__dataclass_fields__}
    values.update({key: value for key, value in changes.items() if value is not None and key != "id"})
    updated = ExerciseDefinition(**values)
    _validate(updated)
    routine.exercises[index] = updated
    return updated


def remove_exercise(log: RecordLog, routine_key: str, exercise_id: int) -> ExerciseDefinition:
    routine = _routine(log, routine_key)
    return routine.exercises.pop(_index_of(routine, exercise_id))


def move_exercise(log: RecordLog, routine_key: str, exercise_id: int, direction: int) -> bool:
    """Swap an exercise with its neighbour; returns False at either end."""
    if direction not in (-1, 1):
        raise RoutineError("direction must be -1 or 1")
    routine = _routine(log, routine_key)
    index = _index_of(routine, exercise_id)
    target = index + direction
    if target < 0 or target >= len(routine.exercises):
        return False
    exercises = routine.exercises
    exercises[index], exercises[target] = exercises[target], exercises[index]
    return True


def load_routines_file(path: Path) -> Dict[str, RoutineTemplate]:
    """Load a full routine template set from YAML or JSON."""
    try:
        raw = load_mapping_file(path)
    except ValueError as exc:
        raise RoutineError(str(exc)) from exc
    routines = routines_from_payload(raw)
    if not routines:
        raise RoutineError(f"{path} does not define any routines")
    for routine in routines.values():
        for definition in routine.exercises:
            _validate(definition)
    return routines
