from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import pytest
from typer.testing import CliRunner

from gt_cli.core.api import APIError, RemoteBlob, VersionConflictError
from gt_cli.core.models import ExerciseInstance, SetState, WorkSet, Workout
from gt_cli.core.store import LocalStore
from gt_cli.core.sync import serialize_payload

SetSpec = Tuple[str, str, bool]


class FakeBlobHost:
    """In-memory versioned file store with conditional writes."""

    def __init__(self) -> None:
        self.files: Dict[str, Tuple[str, str]] = {}
        self.writes: List[Tuple[str, str]] = []
        self.fetches: List[str] = []
        self.fail_fetch: Optional[APIError] = None
        self.fail_replace: Optional[APIError] = None
        self.before_replace: Optional[Callable[[], None]] = None
        self._counter = 0

    def _next_version(self) -> str:
        self._counter += 1
        return f"v{self._counter}"

    def put(self, path: str, payload: Any) -> None:
        text = payload if isinstance(payload, str) else serialize_payload(payload)
        self.files[path] = (text, self._next_version())

    def payload(self, path: str) -> Any:
        return json.loads(self.files[path][0])

    def fetch(self, path: str) -> Optional[RemoteBlob]:
        self.fetches.append(path)
        if self.fail_fetch is not None:
            raise self.fail_fetch
        if path not in self.files:
            return None
        text, version = self.files[path]
        return RemoteBlob(text=text, version=version)

    def replace(self, path: str, text: str, version: Optional[str], message: str) -> str:
        if self.before_replace is not None:
            hook, self.before_replace = self.before_replace, None
            hook()
        if self.fail_replace is not None:
            raise self.fail_replace
        current = self.files.get(path)
        if (current[1] if current else None) != version:
            raise VersionConflictError(f"stale version for {path}")
        new_version = self._next_version()
        self.files[path] = (text, new_version)
        self.writes.append((path, text))
        return new_version


class FakeTimer:
    def __init__(self, delay: float, callback: Callable[[], Any]) -> None:
        self.delay = delay
        self.callback = callback
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True


class FakeTimerFactory:
    """Collects timers instead of starting threads; tests fire them by hand."""

    def __init__(self) -> None:
        self.timers: List[FakeTimer] = []

    def __call__(self, delay: float, callback: Callable[[], Any]) -> FakeTimer:
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def live(self) -> List[FakeTimer]:
        return [timer for timer in self.timers if timer.started and not timer.cancelled]

    def fire_all(self) -> None:
        for timer in list(self.timers):
            timer.callback()


def build_workout(
    routine_type: str,
    exercises: Dict[str, Sequence[SetSpec]],
    committed: bool = True,
    warmups: Optional[Dict[str, Sequence[SetSpec]]] = None,
) -> Workout:
    def _sets(specs: Sequence[SetSpec]) -> List[WorkSet]:
        return [
            WorkSet(weight=w, reps=r, state=SetState.COMMITTED if done else SetState.DRAFT)
            for w, r, done in specs
        ]

    return Workout(
        routine_type=routine_type,
        committed=committed,
        exercises=[
            ExerciseInstance(
                id=index,
                name=name,
                warmup_sets=_sets((warmups or {}).get(name, [])),
                work_sets=_sets(sets),
            )
            for index, (name, sets) in enumerate(exercises.items(), start=1)
        ],
    )


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def make_workout() -> Callable[..., Workout]:
    return build_workout


@pytest.fixture()
def store(tmp_path: Path) -> LocalStore:
    return LocalStore(tmp_path / "store")


@pytest.fixture()
def blob_host() -> FakeBlobHost:
    return FakeBlobHost()


@pytest.fixture()
def make_blob_host() -> Callable[[], FakeBlobHost]:
    return FakeBlobHost


@pytest.fixture()
def timers() -> FakeTimerFactory:
    return FakeTimerFactory()


@pytest.fixture()
def cli_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Point the CLI at throwaway data/config locations."""
    data_dir = tmp_path / "data"
    monkeypatch.setenv("GT_DATA_DIR", str(data_dir))
    monkeypatch.setenv("GT_CONFIG_FILE", str(tmp_path / "config.toml"))
    monkeypatch.delenv("GT_STORE_DIR", raising=False)
    monkeypatch.delenv("GT_GITHUB_TOKEN", raising=False)
    return data_dir


@pytest.fixture()
def write_temp_json(tmp_path: Path):
    def _write(name: str, payload: Any) -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(payload, indent=2) + "\n")
        return path

    return _write


@pytest.fixture()
def write_temp_text(tmp_path: Path):
    def _write(name: str, content: str) -> Path:
        path = tmp_path / name
        path.write_text(content.strip() + "\n")
        return path

    return _write
