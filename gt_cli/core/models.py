"""Record Log data model.

The wire format keeps the camelCase keys of the synced JSON payloads
(`routineType`, `warmupSets`, `workSets`, ...). Loading normalizes every set
into an explicit draft/committed tag once, so the rest of the package never
has to guess from legacy data:

- an explicit `committed` flag (or the older `done` flag) wins;
- no flag but a weight or reps value means committed;
- no flag and no values means draft.
"""

from __future__ import annotations

import copy
import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from gt_cli.core.constants import (
    BARBELL_CLASSES,
    BASE_UNIT,
    DEFAULT_BAR_WEIGHT,
    DEFAULT_INCREMENT,
    DEFAULT_ROUTINES,
    WEIGHT_UNITS,
)
from gt_cli.utils.parsing import parse_number, parse_reps, parse_weight

logger = logging.getLogger(__name__)


UNIT_ALIASES = {"kgs": "kg", "kilo": "kg", "kilos": "kg", "lbs": "lb", "pound": "lb", "pounds": "lb"}


def normalize_unit(value: Any, default: str = BASE_UNIT) -> str:
    """Map a stored unit onto "kg" or "lb"; unknown units fall back to `default`."""
    unit = str(value or "").strip().lower()
    unit = UNIT_ALIASES.get(unit, unit)
    if unit in WEIGHT_UNITS:
        return unit
    if unit:
        logger.warning("Unknown weight unit %r, using %s", value, default)
    return default


class SetState(str, enum.Enum):
    DRAFT = "draft"
    COMMITTED = "committed"


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value == int(value):
        return str(int(value))
    return str(value)


@dataclass
class WorkSet:
    """One warm-up or work set. Values are kept as typed text."""

    weight: str = ""
    reps: str = ""
    state: SetState = SetState.DRAFT

    @property
    def committed(self) -> bool:
        return self.state is SetState.COMMITTED

    @property
    def has_values(self) -> bool:
        return bool(self.weight.strip() or self.reps.strip())

    @property
    def weight_value(self) -> float:
        return parse_weight(self.weight)

    @property
    def reps_value(self) -> int:
        return parse_reps(self.reps)

    @property
    def is_record_candidate(self) -> bool:
        return self.committed and self.weight_value > 0 and self.reps_value > 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkSet":
        weight = _text(data.get("weight")).strip()
        reps = _text(data.get("reps")).strip()
        if "committed" in data:
            flag = bool(data["committed"])
        elif "done" in data:
            flag = bool(data["done"])
        else:
            flag = bool(weight or reps)
        return cls(weight=weight, reps=reps, state=SetState.COMMITTED if flag else SetState.DRAFT)

    def to_dict(self) -> Dict[str, Any]:
        return {"weight": self.weight, "reps": self.reps, "committed": self.committed}


def _sets_from(raw: Any) -> List[WorkSet]:
    if not isinstance(raw, list):
        return []
    return [WorkSet.from_dict(item) for item in raw if isinstance(item, dict)]


@dataclass
class ExerciseInstance:
    """An exercise as performed inside one workout."""

    id: int
    name: str
    warmup_sets: List[WorkSet] = field(default_factory=list)
    work_sets: List[WorkSet] = field(default_factory=list)
    notes: str = ""

    def sets_for(self, kind: str) -> List[WorkSet]:
        if kind == "warmup":
            return self.warmup_sets
        if kind == "work":
            return self.work_sets
        raise ValueError(f"Unknown set kind: {kind}")

    @property
    def has_values(self) -> bool:
        return any(s.has_values for s in self.warmup_sets + self.work_sets)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExerciseInstance":
        return cls(
            id=int(parse_number(data.get("id"))),
            name=str(data.get("name") or ""),
            warmup_sets=_sets_from(data.get("warmupSets")),
            work_sets=_sets_from(data.get("workSets")),
            notes=str(data.get("notes") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "warmupSets": [s.to_dict() for s in self.warmup_sets],
            "workSets": [s.to_dict() for s in self.work_sets],
            "notes": self.notes,
        }


@dataclass
class Workout:
    """One calendar day's session."""

    routine_type: str
    exercises: List[ExerciseInstance] = field(default_factory=list)
    committed: bool = False

    @property
    def has_values(self) -> bool:
        return any(ex.has_values for ex in self.exercises)

    def find_exercise(self, name: str) -> Optional[ExerciseInstance]:
        for exercise in self.exercises:
            if exercise.name == name:
                return exercise
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Workout":
        raw_exercises = data.get("exercises")
        exercises = [
            ExerciseInstance.from_dict(item)
            for item in (raw_exercises if isinstance(raw_exercises, list) else [])
            if isinstance(item, dict)
        ]
        if "committed" in data:
            committed = bool(data["committed"])
        else:
            committed = bool(data.get("completed", False))
        return cls(
            routine_type=str(data.get("routineType") or ""),
            exercises=exercises,
            committed=committed,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "routineType": self.routine_type,
            "exercises": [ex.to_dict() for ex in self.exercises],
            "committed": self.committed,
        }


@dataclass
class ExerciseDefinition:
    """One entry of a routine template."""

    id: int
    name: str
    warmup_sets: int = 1
    work_sets: int = 2
    reps: str = "5-8"
    unit: str = BASE_UNIT
    equipment: str = "machine"
    start_weight: float = 0.0
    increment: float = DEFAULT_INCREMENT
    bar_weight: Optional[float] = None
    notes: str = ""

    def __post_init__(self) -> None:
        self.warmup_sets = max(int(self.warmup_sets), 0)
        self.work_sets = max(int(self.work_sets), 0)
        if self.equipment in BARBELL_CLASSES:
            if self.bar_weight is None:
                self.bar_weight = DEFAULT_BAR_WEIGHT
        else:
            self.bar_weight = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExerciseDefinition":
        bar_weight = data.get("barWeight")
        increment = parse_weight(data.get("increment"))
        return cls(
            id=int(parse_number(data.get("id"))),
            name=str(data.get("name") or ""),
            warmup_sets=parse_reps(data.get("warmupSets")),
            work_sets=parse_reps(data.get("workSets")),
            reps=_text(data.get("reps")) or "5-8",
            unit=normalize_unit(data.get("unit")),
            equipment=str(data.get("equipment") or "machine"),
            start_weight=parse_weight(data.get("startWeight")),
            increment=increment or DEFAULT_INCREMENT,
            bar_weight=parse_weight(bar_weight) if bar_weight is not None else None,
            notes=str(data.get("notes") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "warmupSets": self.warmup_sets,
            "workSets": self.work_sets,
            "reps": self.reps,
            "unit": self.unit,
            "equipment": self.equipment,
            "startWeight": self.start_weight,
            "increment": self.increment,
            "notes": self.notes,
        }
        if self.bar_weight is not None:
            payload["barWeight"] = self.bar_weight
        return payload


@dataclass
class RoutineTemplate:
    name: str
    exercises: List[ExerciseDefinition] = field(default_factory=list)

    def find(self, exercise_id: int) -> Optional[ExerciseDefinition]:
        for definition in self.exercises:
            if definition.id == exercise_id:
                return definition
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RoutineTemplate":
        raw = data.get("exercises")
        return cls(
            name=str(data.get("name") or ""),
            exercises=[
                ExerciseDefinition.from_dict(item)
                for item in (raw if isinstance(raw, list) else [])
                if isinstance(item, dict)
            ],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "exercises": [ex.to_dict() for ex in self.exercises]}


@dataclass(frozen=True)
class Phase:
    """A training phase owned by the companion body-tracking data set."""

    id: str
    name: str
    start: str
    end: Optional[str] = None
    goals: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def is_open(self) -> bool:
        return not self.end

    def contains(self, day: str) -> bool:
        return day >= self.start and (self.is_open or day < str(self.end))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Phase":
        goals = data.get("goals")
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            start=str(data.get("start") or "")[:10],
            end=str(data["end"])[:10] if data.get("end") else None,
            goals=dict(goals) if isinstance(goals, dict) else {},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "start": self.start,
            "end": self.end,
            "goals": dict(self.goals),
        }


def workouts_from_payload(raw: Any) -> Dict[str, Workout]:
    """Build the date -> Workout map, skipping malformed entries."""
    if not isinstance(raw, dict):
        return {}
    workouts: Dict[str, Workout] = {}
    for day, item in raw.items():
        if not isinstance(item, dict):
            logger.warning("Skipping malformed workout entry for %s", day)
            continue
        workouts[str(day)] = Workout.from_dict(item)
    return workouts


def workouts_to_payload(workouts: Dict[str, Workout]) -> Dict[str, Any]:
    return {day: workouts[day].to_dict() for day in sorted(workouts)}


def notes_from_payload(raw: Any) -> Dict[str, str]:
    if not isinstance(raw, dict):
        return {}
    return {str(key): str(value) for key, value in raw.items() if value is not None}


def routines_from_payload(raw: Any) -> Dict[str, RoutineTemplate]:
    if not isinstance(raw, dict):
        return {}
    return {
        str(key): RoutineTemplate.from_dict(value)
        for key, value in raw.items()
        if isinstance(value, dict)
    }


def routines_to_payload(routines: Dict[str, RoutineTemplate]) -> Dict[str, Any]:
    return {key: routine.to_dict() for key, routine in routines.items()}


def phases_from_payload(raw: Any) -> List[Phase]:
    if not isinstance(raw, list):
        return []
    phases = [Phase.from_dict(item) for item in raw if isinstance(item, dict)]
    return sorted((p for p in phases if p.start), key=lambda p: p.start)


def default_routines() -> Dict[str, RoutineTemplate]:
    return routines_from_payload(copy.deepcopy(DEFAULT_ROUTINES))


@dataclass
class RecordLog:
    """Workouts by date, the exercise note index, routine templates and phases."""

    workouts: Dict[str, Workout] = field(default_factory=dict)
    notes: Dict[str, str] = field(default_factory=dict)
    routines: Dict[str, RoutineTemplate] = field(default_factory=default_routines)
    phases: List[Phase] = field(default_factory=list)

    def sorted_dates(self, reverse: bool = False) -> List[str]:
        return sorted(self.workouts, reverse=reverse)

    def committed_workouts(self) -> List[tuple[str, Workout]]:
        return [(day, self.workouts[day]) for day in self.sorted_dates() if self.workouts[day].committed]

    def definition_for(self, routine_type: str, exercise: ExerciseInstance) -> Optional[ExerciseDefinition]:
        """Template entry backing an exercise instance, matched by id then name."""
        routine = self.routines.get(routine_type)
        if routine is None:
            return None
        by_id = routine.find(exercise.id)
        if by_id is not None and by_id.name == exercise.name:
            return by_id
        for definition in routine.exercises:
            if definition.name == exercise.name:
                return definition
        return by_id

    def workout_payload(self) -> Dict[str, Any]:
        """Payload pushed to the remote workouts resource."""
        return {"workouts": workouts_to_payload(self.workouts), "notes": dict(sorted(self.notes.items()))}

    def copy(self) -> "RecordLog":
        return copy.deepcopy(self)
