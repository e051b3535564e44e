from __future__ import annotations

import json
from datetime import date
from typing import Any, Dict, List

import pytest

from gt_cli.__main__ import app


def _invoke(runner, args: List[str], exit_code: int = 0) -> Any:
    result = runner.invoke(app, args)
    assert result.exit_code == exit_code, result.output
    return result


def _json(runner, args: List[str], exit_code: int = 0) -> Dict[str, Any]:
    return json.loads(_invoke(runner, ["--json", *args], exit_code).stdout)


@pytest.fixture()
def connected(monkeypatch, runner, cli_env, blob_host):
    monkeypatch.setattr("gt_cli.commands.common.GitHubContentsAPI", lambda **kwargs: blob_host)
    return blob_host


def test_global_json_plain_conflict(runner) -> None:
    result = runner.invoke(app, ["--json", "--plain", "show"])
    assert result.exit_code == 2
    assert "--json" in result.stdout
    assert "--plain" in result.stdout


def test_show_previews_without_saving(runner, cli_env) -> None:
    payload = _json(runner, ["show"])
    assert payload["date"] == date.today().isoformat()
    assert payload["routineType"] == "push"
    assert payload["exercises"][0]["name"] == "Incline Chest Press"
    assert payload["exercises"][0]["unit"] == "kg"
    assert not (cli_env / "workouts.json").exists()


def test_log_a_workout_end_to_end(runner, cli_env) -> None:
    payload = _json(runner, ["set", "1", "1", "-w", "60", "-r", "8"])
    assert payload["exercises"][0]["workSets"][0] == {"weight": "60", "reps": "8", "committed": False}
    assert payload["sync"] is None

    payload = _json(runner, ["toggle", "incline", "1"])
    assert payload["exercises"][0]["workSets"][0]["committed"] is True

    payload = _json(runner, ["bump", "1", "1"])
    assert payload["exercises"][0]["workSets"][0]["weight"] == "62.5"

    payload = _json(runner, ["finish"])
    assert payload["committed"] is True
    assert payload["sync"]["outcome"] == "skipped"
    assert payload["sync"]["failure"] == "not_configured"

    payload = _json(runner, ["show"])
    assert payload["committed"] is True
    assert (cli_env / "workouts.json").exists()


def test_set_requires_a_value(runner, cli_env) -> None:
    _invoke(runner, ["set", "1", "1"], exit_code=2)


def test_set_rejects_unknown_exercise_and_future_dates(runner, cli_env) -> None:
    _invoke(runner, ["set", "deadlift", "1", "-w", "60"], exit_code=2)
    _invoke(runner, ["set", "1", "1", "-w", "60", "--date", "2999-01-01"], exit_code=2)


def test_set_out_of_range_fails(runner, cli_env) -> None:
    payload = _json(runner, ["set", "1", "9", "-w", "60"], exit_code=1)
    assert payload["status"] == "error"
    assert "no work set #9" in payload["message"]


def test_note_carries_into_future_workouts(runner, cli_env) -> None:
    payload = _json(runner, ["note", "butterfly", "seat 3"])
    assert payload["exercises"][1]["notes"] == "seat 3"


def test_plain_show_output(runner, cli_env) -> None:
    _invoke(runner, ["set", "1", "1", "-w", "60", "-r", "8"])
    result = _invoke(runner, ["--plain", "show"])
    lines = result.stdout.splitlines()
    assert "routine\tpush" in lines
    assert "1\twork\t1\t60\t8\tdraft" in lines


def test_switch_requires_confirmation_for_entered_sets(runner, cli_env) -> None:
    _invoke(runner, ["set", "1", "1", "-w", "60"])

    payload = _json(runner, ["switch", "pull"], exit_code=1)
    assert payload["status"] == "error"

    payload = _json(runner, ["switch", "pull", "--yes"])
    assert payload["routineType"] == "pull"
    assert payload["exercises"][0]["name"] == "Lat Pulldown"


def test_switch_to_unknown_routine_fails(runner, cli_env) -> None:
    payload = _json(runner, ["switch", "legs"], exit_code=1)
    assert "Unknown routine" in payload["message"]


def test_routines_add_list_and_move(runner, cli_env) -> None:
    payload = _json(runner, ["routines", "add", "push", "Dips", "--equipment", "bodyweight", "--work-sets", "3"])
    assert payload["message"] == "Added Dips to push as #8"
    assert payload["result"]["workSets"] == 3

    listed = _json(runner, ["routines", "list", "push"])
    assert list(listed) == ["push"]
    assert listed["push"]["exercises"][-1]["name"] == "Dips"

    payload = _json(runner, ["routines", "move", "push", "1", "--up"])
    assert "already at the top" in payload["message"]

    payload = _json(runner, ["routines", "move", "push", "1", "--down"])
    assert [ex["id"] for ex in payload["routine"]["exercises"][:2]] == [2, 1]


def test_routines_edit_resyncs_todays_workout(runner, cli_env) -> None:
    _invoke(runner, ["set", "1", "1", "-w", "60", "-r", "8"])

    payload = _json(runner, ["routines", "edit", "push", "1", "--work-sets", "1"])
    assert payload["result"]["workSets"] == 1

    shown = _json(runner, ["show"])
    assert shown["exercises"][0]["workSets"] == [{"weight": "60", "reps": "8", "committed": False}]


def test_routines_edit_rejects_invalid_values(runner, cli_env) -> None:
    payload = _json(runner, ["routines", "edit", "push", "1", "--unit", "stone"], exit_code=1)
    assert "Unsupported unit" in payload["message"]
    _invoke(runner, ["routines", "move", "push", "1"], exit_code=2)


def test_routines_import_replaces_templates(runner, cli_env, write_temp_text) -> None:
    path = write_temp_text(
        "program.yaml",
        """
legs:
  name: Legs
  exercises:
    - {id: 1, name: Squat, workSets: 3, equipment: barbell, startWeight: 60}
""",
    )
    payload = _json(runner, ["routines", "import", str(path)])
    assert payload["routines"] == ["legs"]

    shown = _json(runner, ["show"])
    assert shown["routineType"] == "legs"
    assert shown["exercises"][0]["name"] == "Squat"


def test_stats_after_a_finished_workout(runner, cli_env) -> None:
    _invoke(runner, ["set", "1", "1", "-w", "60", "-r", "8"])
    _invoke(runner, ["toggle", "1", "1"])
    _invoke(runner, ["finish"])
    today = date.today().isoformat()

    summary = _json(runner, ["stats", "summary"])
    assert summary["sessions_this_year"] == 1
    assert summary["day_streak"] == 1
    assert summary["weekly_streak"] == 0
    assert summary["recent"][0]["date"] == today

    day = _json(runner, ["stats", "day"])
    assert day["volume"] == 480.0
    assert day["sets"] == 1

    prs = _json(runner, ["stats", "prs"])
    assert prs["records"][0]["exercise"] == "Incline Chest Press"
    assert prs["records"][0]["weight"] == 60.0

    progress = _json(runner, ["stats", "progress", "incline chest press"])
    assert progress["sessions"][0]["one_rep_max"] == 76.0

    month = _json(runner, ["stats", "calendar"])
    assert today in month["days"]


def test_stats_progress_unknown_exercise(runner, cli_env) -> None:
    _json(runner, ["stats", "progress", "Snatch"], exit_code=1)


def test_sync_status_offline(runner, cli_env) -> None:
    status = _json(runner, ["sync", "status"])
    assert status["connected"] is False
    assert status["pending"] is False

    _invoke(runner, ["set", "1", "1", "-w", "60"])
    status = _json(runner, ["sync", "status"])
    assert status["pending"] is True
    assert status["status"] == "pending"

    _json(runner, ["sync", "now"], exit_code=1)


def test_connect_then_edits_push_on_exit(runner, connected) -> None:
    payload = _json(runner, ["remote", "connect", "me/gym", "--token", "abc"])
    assert payload["outcome"] == "no_remote_data"

    payload = _json(runner, ["set", "1", "1", "-w", "60", "-r", "8"])
    assert payload["sync"]["outcome"] == "synced"
    today = date.today().isoformat()
    pushed = connected.payload("workouts.json")["workouts"][today]
    assert pushed["exercises"][0]["workSets"][0]["weight"] == "60"

    status = _json(runner, ["sync", "status"])
    assert status["connected"] is True
    assert status["repository"] == "me/gym"
    assert status["pending"] is False

    payload = _json(runner, ["sync", "now"])
    assert payload["outcome"] == "no_changes"

    payload = _json(runner, ["remote", "disconnect"])
    assert payload["removed"] is True
    assert _json(runner, ["sync", "status"])["connected"] is False


def test_connect_adopts_existing_remote_data(runner, connected, make_workout) -> None:
    workout = make_workout("pull", {"Lat Pulldown": [("50", "10", True)]})
    connected.put("workouts.json", {"workouts": {"2024-01-03": workout.to_dict()}, "notes": {}})

    payload = _json(runner, ["remote", "connect", "me/gym", "--token", "abc"])

    assert payload["outcome"] == "adopted"
    assert payload["workouts"] == 1
    assert connected.writes == []
    assert _json(runner, ["show"])["routineType"] == "push"


def test_connect_requires_token_in_json_mode(runner, cli_env) -> None:
    payload = _json(runner, ["remote", "connect", "me/gym"], exit_code=1)
    assert "token is required" in payload["message"]
    _invoke(runner, ["remote", "connect", "not-a-repo", "--token", "abc"], exit_code=2)
