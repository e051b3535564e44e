"""Keeps the local store and the remote blob host eventually consistent.

Consistency model: last writer wins, with an offline merge by union on
load. On load, any local date that is missing remotely or differs from the
remote copy means local has unsynced edits: local is overlaid onto remote and
the result is pushed back at once. Otherwise the remote payload is adopted.
Routine templates are never merged; a fetched remote template set replaces
the local one.

Pushes always serialize the latest store snapshot, skip the write when the
remote content is already identical, and condition the write on the version
token they just read. A rejected write leaves the dirty flag set so the next
trigger retries with a fresh read.
"""

from __future__ import annotations

import enum
import functools
import json
import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from gt_cli.core.api import APIError, MalformedPayloadError, RemoteBlob, VersionConflictError
from gt_cli.core.constants import (
    DEBOUNCE_SECONDS,
    FAILED_DISPLAY_SECONDS,
    PHASES_PATH,
    ROUTINES_PATH,
    SYNCED_DISPLAY_SECONDS,
    WORKOUTS_PATH,
)
from gt_cli.core.models import (
    Phase,
    RecordLog,
    RoutineTemplate,
    Workout,
    notes_from_payload,
    phases_from_payload,
    routines_from_payload,
    routines_to_payload,
    workouts_from_payload,
)
from gt_cli.core.store import LocalStore, LocalStoreError

logger = logging.getLogger(__name__)


class SyncStatus(str, enum.Enum):
    IDLE = "idle"
    CHECKING = "checking"
    SYNCING = "syncing"
    SYNCED = "synced"
    NO_CHANGES = "no_changes"
    FAILED = "failed"
    PENDING = "pending"


class SyncOutcome(str, enum.Enum):
    SYNCED = "synced"
    NO_CHANGES = "no_changes"
    MERGED = "merged"
    ADOPTED = "adopted"
    NO_REMOTE_DATA = "no_remote_data"
    SKIPPED = "skipped"
    FAILED = "failed"


class FailureKind(str, enum.Enum):
    NETWORK = "network"
    CONFLICT = "conflict"
    MALFORMED = "malformed"
    NOT_CONFIGURED = "not_configured"
    LOCAL_STORE = "local_store"


@dataclass(frozen=True)
class PushResult:
    outcome: SyncOutcome
    failure: Optional[FailureKind] = None
    message: str = ""
    version: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome in (SyncOutcome.SYNCED, SyncOutcome.NO_CHANGES)


@dataclass(frozen=True)
class LoadResult:
    outcome: SyncOutcome
    log: RecordLog
    failure: Optional[FailureKind] = None
    message: str = ""
    push: Optional[PushResult] = None
    routines_push: Optional[PushResult] = None
    routines_replaced: bool = False
    unsynced_dates: List[str] = field(default_factory=list)


def serialize_payload(payload: Any) -> str:
    """Canonical text written to the remote host."""
    return json.dumps(payload, indent=2, ensure_ascii=False)


def _canonical(workout: Workout) -> str:
    return json.dumps(workout.to_dict(), sort_keys=True)


def _failure_kind(exc: APIError) -> FailureKind:
    if isinstance(exc, VersionConflictError):
        return FailureKind.CONFLICT
    if isinstance(exc, MalformedPayloadError):
        return FailureKind.MALFORMED
    return FailureKind.NETWORK


def _commit_message(prefix: str) -> str:
    return f"{prefix} {datetime.now(timezone.utc).isoformat()}"


class StatusTracker:
    """Current sync status; transient statuses clear after their display interval."""

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        synced_seconds: float = SYNCED_DISPLAY_SECONDS,
        failed_seconds: float = FAILED_DISPLAY_SECONDS,
    ) -> None:
        self._clock = clock
        self._display = {
            SyncStatus.SYNCED: synced_seconds,
            SyncStatus.NO_CHANGES: synced_seconds,
            SyncStatus.FAILED: failed_seconds,
        }
        self._status = SyncStatus.IDLE
        self._since = clock()

    def set(self, status: SyncStatus) -> None:
        self._status = status
        self._since = self._clock()

    def current(self, dirty: bool = False) -> SyncStatus:
        status = self._status
        limit = self._display.get(status)
        if limit is not None and self._clock() - self._since >= limit:
            status = SyncStatus.IDLE
        if status is SyncStatus.IDLE and dirty:
            return SyncStatus.PENDING
        return status


class Debouncer:
    """Runs `callback` once no trigger has happened for `delay` seconds.

    One timer at a time: each trigger cancels the previous one. `flush`
    promotes a pending timer to an immediate call.
    """

    def __init__(
        self,
        delay: float,
        callback: Callable[[], Any],
        timer_factory: Callable[..., Any] = threading.Timer,
    ) -> None:
        self.delay = delay
        self.callback = callback
        self._timer_factory = timer_factory
        self._timer: Optional[Any] = None
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def trigger(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            timer = self._timer_factory(self.delay, functools.partial(self._fire, self._generation))
            timer.daemon = True
            self._timer = timer
        timer.start()

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._timer is None:
                return
            self._timer = None
        self.callback()

    def cancel(self) -> bool:
        with self._lock:
            if self._timer is None:
                return False
            self._timer.cancel()
            self._timer = None
            self._generation += 1
            return True

    def flush(self) -> Any:
        if not self.cancel():
            return None
        return self.callback()


class SyncEngine:
    """Load-merge on connect, debounced and forced pushes, status reporting.

    `remote` and `phases_remote` are blob hosts exposing
    `fetch(path) -> RemoteBlob | None` and
    `replace(path, text, version, message) -> str`.
    """

    def __init__(
        self,
        store: LocalStore,
        remote: Optional[Any] = None,
        phases_remote: Optional[Any] = None,
        workouts_path: str = WORKOUTS_PATH,
        routines_path: str = ROUTINES_PATH,
        phases_path: str = PHASES_PATH,
        debounce_seconds: float = DEBOUNCE_SECONDS,
        auto_sync: bool = True,
        timer_factory: Callable[..., Any] = threading.Timer,
        status: Optional[StatusTracker] = None,
    ) -> None:
        self.store = store
        self.remote = remote
        self.phases_remote = phases_remote
        self.workouts_path = workouts_path
        self.routines_path = routines_path
        self.phases_path = phases_path
        self.auto_sync = auto_sync
        self.status = status or StatusTracker()
        self.debouncer = Debouncer(debounce_seconds, self._debounced_push, timer_factory)
        self._lock = threading.Lock()
        self._dirty_generation = 0
        last_sync = store.last_sync()
        self._dirty = bool(last_sync.get("pending"))
        self._routines_dirty = bool(last_sync.get("routines_pending"))
        self.last_result: Optional[PushResult] = None

    @property
    def connected(self) -> bool:
        return self.remote is not None

    @property
    def dirty(self) -> bool:
        return self._dirty

    def current_status(self) -> SyncStatus:
        return self.status.current(dirty=self._dirty)

    def _set_dirty(self) -> None:
        with self._lock:
            self._dirty = True
            self._dirty_generation += 1
        try:
            self.store.set_pending(True)
        except LocalStoreError as exc:
            logger.error("Could not record pending sync: %s", exc)

    def _set_routines_dirty(self, dirty: bool) -> None:
        self._routines_dirty = dirty
        try:
            self.store.set_routines_pending(dirty)
        except LocalStoreError as exc:
            logger.error("Could not record pending routine sync: %s", exc)

    def mark_dirty(self) -> None:
        """Record an unsynced mutation and (re)arm the debounce timer."""
        self._set_dirty()
        if self.connected and self.auto_sync:
            self.debouncer.trigger()

    def _debounced_push(self) -> PushResult:
        return self.push()

    def force_push(self) -> PushResult:
        """Push now, replacing any pending debounce timer."""
        self.debouncer.cancel()
        result = self.push()
        if self._routines_dirty and self.connected:
            self.push_routines()
        return result

    def request_sync(self) -> PushResult:
        return self.force_push()

    def on_background(self) -> Optional[PushResult]:
        """App hidden or process exiting: pending work becomes an immediate push."""
        if not self.connected:
            return None
        if not (self._dirty or self._routines_dirty or self.debouncer.pending):
            return None
        return self.force_push()

    def _write_if_changed(self, path: str, text: str, message: str) -> PushResult:
        current: Optional[RemoteBlob] = self.remote.fetch(path)
        if current is not None and current.text == text:
            return PushResult(outcome=SyncOutcome.NO_CHANGES, version=current.version)
        version = self.remote.replace(path, text, current.version if current else None, message)
        return PushResult(outcome=SyncOutcome.SYNCED, version=version)

    def _fail(self, kind: FailureKind, message: str) -> PushResult:
        self.status.set(SyncStatus.FAILED)
        result = PushResult(outcome=SyncOutcome.FAILED, failure=kind, message=message)
        self.last_result = result
        return result

    def push(self, log: Optional[RecordLog] = None) -> PushResult:
        """Write the workout+note payload to the remote host."""
        if self.remote is None:
            return PushResult(
                outcome=SyncOutcome.SKIPPED,
                failure=FailureKind.NOT_CONFIGURED,
                message="Remote sync is not configured",
            )

        with self._lock:
            generation = self._dirty_generation
        self.status.set(SyncStatus.SYNCING)

        snapshot = log if log is not None else self.store.load_record_log()
        text = serialize_payload(snapshot.workout_payload())
        try:
            result = self._write_if_changed(self.workouts_path, text, _commit_message("Update"))
        except APIError as exc:
            logger.warning("Workout push failed: %s", exc)
            return self._fail(_failure_kind(exc), str(exc))

        cleared = False
        with self._lock:
            if self._dirty_generation == generation:
                self._dirty = False
                cleared = True
        if cleared:
            try:
                self.store.record_sync()
            except LocalStoreError as exc:
                logger.error("Could not record sync time: %s", exc)

        self.status.set(SyncStatus.SYNCED if result.outcome is SyncOutcome.SYNCED else SyncStatus.NO_CHANGES)
        logger.info("Workout push finished: %s", result.outcome.value)
        self.last_result = result
        return result

    def push_routines(self, routines: Optional[Dict[str, RoutineTemplate]] = None) -> PushResult:
        """Write the routine template payload; failures keep it pending."""
        if self.remote is None:
            return PushResult(
                outcome=SyncOutcome.SKIPPED,
                failure=FailureKind.NOT_CONFIGURED,
                message="Remote sync is not configured",
            )
        if routines is None:
            routines = self.store.load_record_log().routines
        self._set_routines_dirty(True)
        text = serialize_payload(routines_to_payload(routines))
        try:
            result = self._write_if_changed(self.routines_path, text, _commit_message("Update routines"))
        except APIError as exc:
            logger.warning("Routine push failed: %s", exc)
            return self._fail(_failure_kind(exc), str(exc))
        self._set_routines_dirty(False)
        return result

    def _fetch_json(self, host: Any, path: str) -> Optional[Any]:
        blob = host.fetch(path)
        if blob is None:
            return None
        try:
            return json.loads(blob.text)
        except ValueError as exc:
            raise MalformedPayloadError(f"{path} is not valid JSON: {exc}") from exc

    def load(self, log: RecordLog) -> LoadResult:
        """Startup/connect load-merge. Never raises for remote problems."""
        phases = self.load_phases()
        if phases is not None:
            log = RecordLog(workouts=log.workouts, notes=log.notes, routines=log.routines, phases=phases)

        if self.remote is None:
            return LoadResult(
                outcome=SyncOutcome.SKIPPED,
                log=log,
                failure=FailureKind.NOT_CONFIGURED,
                message="Remote sync is not configured",
            )

        self.status.set(SyncStatus.CHECKING)
        try:
            remote_data = self._fetch_json(self.remote, self.workouts_path)
            remote_routines = self._fetch_json(self.remote, self.routines_path)
        except APIError as exc:
            logger.warning("Remote load failed, keeping local data: %s", exc)
            self.status.set(SyncStatus.IDLE)
            return LoadResult(outcome=SyncOutcome.FAILED, log=log, failure=_failure_kind(exc), message=str(exc))

        if remote_data is not None and not isinstance(remote_data, dict):
            logger.warning("Remote %s is not an object, keeping local data", self.workouts_path)
            self.status.set(SyncStatus.IDLE)
            return LoadResult(
                outcome=SyncOutcome.FAILED,
                log=log,
                failure=FailureKind.MALFORMED,
                message=f"{self.workouts_path} is not a JSON object",
            )

        routines = log.routines
        routines_replaced = False
        fetched_routines = routines_from_payload(remote_routines)
        if self._routines_dirty:
            logger.info("Local routine edits are unsynced, keeping local templates")
        elif fetched_routines:
            routines = fetched_routines
            routines_replaced = True

        remote_workouts = workouts_from_payload((remote_data or {}).get("workouts"))
        remote_notes = notes_from_payload((remote_data or {}).get("notes"))
        unsynced = [
            day
            for day in sorted(log.workouts)
            if day not in remote_workouts or _canonical(log.workouts[day]) != _canonical(remote_workouts[day])
        ]

        if unsynced:
            merged = RecordLog(
                workouts={**remote_workouts, **log.workouts},
                notes={**remote_notes, **log.notes},
                routines=routines,
                phases=log.phases,
            )
            outcome = SyncOutcome.MERGED
        elif remote_data is None:
            merged = RecordLog(workouts=log.workouts, notes=log.notes, routines=routines, phases=log.phases)
            outcome = SyncOutcome.NO_REMOTE_DATA
        else:
            notes = remote_notes if "notes" in remote_data else log.notes
            merged = RecordLog(workouts=remote_workouts, notes=notes, routines=routines, phases=log.phases)
            outcome = SyncOutcome.ADOPTED

        try:
            self.store.save_workouts(merged)
            if routines_replaced:
                self.store.save_routines(merged)
        except LocalStoreError as exc:
            logger.error("Could not persist loaded data: %s", exc)

        push_result: Optional[PushResult] = None
        if outcome is SyncOutcome.MERGED:
            logger.info("Local has %d unsynced date(s), pushing merged log", len(unsynced))
            self._set_dirty()
            push_result = self.push(merged)
        else:
            self.status.set(SyncStatus.SYNCED)

        routines_push: Optional[PushResult] = None
        if self._routines_dirty:
            routines_push = self.push_routines(merged.routines)

        return LoadResult(
            outcome=outcome,
            log=merged,
            push=push_result,
            routines_push=routines_push,
            routines_replaced=routines_replaced,
            unsynced_dates=unsynced,
        )

    def load_phases(self) -> Optional[List[Phase]]:
        """Fetch phases from the companion data set; None when unavailable."""
        if self.phases_remote is None:
            return None
        try:
            data = self._fetch_json(self.phases_remote, self.phases_path)
        except APIError as exc:
            logger.warning("Could not load phases: %s", exc)
            return None
        if not isinstance(data, dict):
            return None
        phases = phases_from_payload(data.get("phases"))
        try:
            self.store.save_phases(phases)
        except LocalStoreError as exc:
            logger.error("Could not cache phases: %s", exc)
        return phases
