"""Application session: one Record Log threaded through commits and sync."""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional, TypeVar

from gt_cli.core.commit import Transition
from gt_cli.core.models import RecordLog, RoutineTemplate, Workout
from gt_cli.core.routines import get_workout, propagate_template
from gt_cli.core.state import AppState
from gt_cli.core.store import LocalStore, LocalStoreError
from gt_cli.core.sync import LoadResult, PushResult, SyncEngine

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TrackerSession:
    """Applies transitions to the in-memory log, the local store and the sync engine.

    The in-memory log stays authoritative for the session even when the
    store cannot be written; `persist_error` keeps the last failure.
    """

    def __init__(self, store: LocalStore, engine: SyncEngine, log: Optional[RecordLog] = None) -> None:
        self.store = store
        self.engine = engine
        self.log = log if log is not None else store.load_record_log()
        self.persist_error: Optional[str] = None
        self.last_push: Optional[PushResult] = None

    def __enter__(self) -> "TrackerSession":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def workout(self, state: AppState) -> Workout:
        return get_workout(self.log, state.day, state.today)

    def persist(self) -> bool:
        try:
            self.store.save_workouts(self.log)
        except LocalStoreError as exc:
            logger.error("Local save failed, keeping changes in memory: %s", exc)
            self.persist_error = str(exc)
            return False
        self.persist_error = None
        return True

    def apply(self, transition: Transition) -> Transition:
        """Persist after a commit transition and notify the sync engine."""
        self.persist()
        self.engine.mark_dirty()
        if transition.force_sync:
            self.last_push = self.engine.force_push()
        logger.debug("Applied %s on %s", transition.description or "transition", transition.day)
        return transition

    def run(self, action: Callable[[RecordLog], T]) -> T:
        """Run a commit function against the log and apply its transition."""
        result = action(self.log)
        if isinstance(result, Transition):
            self.apply(result)
        return result

    def edit_routine(self, routine_key: str, today: str, action: Callable[[RecordLog], T]) -> T:
        """Apply a template edit, resync today's workout and push the templates."""
        result = action(self.log)
        self._after_routine_change([routine_key], today)
        return result

    def replace_routines(self, routines: Dict[str, RoutineTemplate], today: str) -> None:
        self.log.routines = routines
        self._after_routine_change(list(routines), today)

    def _after_routine_change(self, routine_keys: list[str], today: str) -> None:
        try:
            self.store.save_routines(self.log)
        except LocalStoreError as exc:
            logger.error("Could not save routines locally: %s", exc)
            self.persist_error = str(exc)
        changed = [propagate_template(self.log, key, today) for key in routine_keys]
        if any(changed):
            self.persist()
            self.engine.mark_dirty()
        if self.engine.connected:
            self.last_push = self.engine.push_routines(self.log.routines)

    def load_remote(self) -> LoadResult:
        result = self.engine.load(self.log)
        self.log = result.log
        return result

    def close(self) -> Optional[PushResult]:
        result = self.engine.on_background()
        if result is not None:
            self.last_push = result
        return result
