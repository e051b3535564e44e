from __future__ import annotations

from datetime import date

import pytest

from gt_cli.core.analysis import (
    PersonalRecord,
    all_personal_records,
    build_stats_summary,
    calendar_month,
    classify_set_pr,
    current_phase,
    day_streak,
    day_summary,
    estimate_one_rep_max,
    exercise_names,
    exercise_progression,
    last_exercise_data,
    personal_record,
    phase_summary,
    session_one_rep_max,
    to_base_unit,
    week_start,
    weekly_streak,
)
from gt_cli.core.models import (
    ExerciseDefinition,
    Phase,
    RecordLog,
    RoutineTemplate,
    SetState,
    WorkSet,
    routines_from_payload,
)
from gt_cli.core.routines import build_workout

BENCH = "Incline Chest Press"
DONE = {BENCH: [("60", "8", True)]}


def test_epley_estimate() -> None:
    assert estimate_one_rep_max(100, 5) == 116.7
    assert estimate_one_rep_max(100, 1) == 103.3
    assert estimate_one_rep_max(0, 5) == 0.0
    assert estimate_one_rep_max(80, 0) == 0.0


def test_unit_conversion() -> None:
    assert to_base_unit(100, "lb", "kg") == 45.4
    assert to_base_unit(45.4, "kg", "kg") == 45.4
    assert to_base_unit(20, "kg", "lb") == 44.1
    with pytest.raises(ValueError):
        to_base_unit(1, "stone", "kg")


def test_week_start_is_monday() -> None:
    assert week_start("2024-01-10") == date(2024, 1, 8)


def test_personal_record_never_decreases(make_workout) -> None:
    weights = {"2024-01-01": "100", "2024-01-03": "90", "2024-01-05": "110", "2024-01-07": "80", "2024-01-09": "105"}
    log = RecordLog(workouts={day: make_workout("push", {BENCH: [(w, "5", True)]}) for day, w in weights.items()})

    previous = 0.0
    for day in ["2024-01-02", "2024-01-04", "2024-01-06", "2024-01-08", "2024-01-10"]:
        record = personal_record(log, BENCH, before=day)
        assert record is not None
        assert record.weight >= previous
        previous = record.weight
    assert previous == 110.0


def test_personal_record_is_strictly_before_date(make_workout) -> None:
    log = RecordLog(workouts={"2024-01-01": make_workout("push", {BENCH: [("100", "5", True)]})})
    assert personal_record(log, BENCH, before="2024-01-01") is None
    assert personal_record(log, BENCH, before="2024-01-02") == PersonalRecord(100.0, 5, "2024-01-01")


def test_personal_record_prefers_reps_at_equal_weight(make_workout) -> None:
    log = RecordLog(
        workouts={
            "2024-01-01": make_workout("push", {BENCH: [("100", "5", True), ("100", "7", True), ("95", "10", True)]})
        }
    )
    assert personal_record(log, BENCH) == PersonalRecord(100.0, 7, "2024-01-01")


def test_draft_sets_are_not_records_until_committed(make_workout) -> None:
    log = RecordLog(workouts={"2024-01-01": make_workout("push", {BENCH: [("200", "5", False), ("100", "5", True)]})})
    assert personal_record(log, BENCH).weight == 100.0

    log.workouts["2024-01-01"].exercises[0].work_sets[0].state = SetState.COMMITTED
    assert personal_record(log, BENCH).weight == 200.0


def test_uncommitted_workouts_do_not_feed_records(make_workout) -> None:
    log = RecordLog(workouts={"2024-01-01": make_workout("push", {BENCH: [("100", "5", True)]}, committed=False)})
    assert personal_record(log, BENCH) is None
    log.workouts["2024-01-01"].committed = True
    assert personal_record(log, BENCH) is not None


def test_warmups_never_count_as_records(make_workout) -> None:
    log = RecordLog(
        workouts={
            "2024-01-01": make_workout(
                "push", {BENCH: [("60", "8", True)]}, warmups={BENCH: [("120", "1", True)]}
            )
        }
    )
    assert personal_record(log, BENCH).weight == 60.0


def test_rep_record_uses_the_same_weight_tolerance(make_workout) -> None:
    log = RecordLog(
        workouts={
            "2024-01-01": make_workout("push", {BENCH: [("100", "5", True)]}),
            "2024-01-03": make_workout("push", {BENCH: [("99.95", "8", True)]}),
        }
    )
    assert personal_record(log, BENCH) == PersonalRecord(100.0, 8, "2024-01-03")
    assert personal_record(log, BENCH, epsilon=0.0) == PersonalRecord(100.0, 5, "2024-01-01")


def test_calendar_month_honours_pr_epsilon(make_workout) -> None:
    log = RecordLog(
        workouts={
            "2024-01-01": make_workout("push", {BENCH: [("100", "5", True)]}),
            "2024-01-03": make_workout("push", {BENCH: [("99.95", "8", True)]}),
        }
    )
    assert calendar_month(log, 2024, 1)["2024-01-03"]["prs"] == 1
    assert calendar_month(log, 2024, 1, epsilon=0.0)["2024-01-03"]["prs"] == 0


def test_records_convert_units() -> None:
    routines = {"arms": RoutineTemplate(name="Arms", exercises=[ExerciseDefinition(id=1, name="Curl", unit="lb")])}
    log = RecordLog(routines=routines)
    workout = build_workout(log, "arms")
    workout.committed = True
    workout.exercises[0].work_sets[0].weight = "100"
    workout.exercises[0].work_sets[0].reps = "8"
    workout.exercises[0].work_sets[0].state = SetState.COMMITTED
    log.workouts["2024-01-01"] = workout
    assert personal_record(log, "Curl").weight == 45.4
    assert personal_record(log, "Curl", base_unit="lb").weight == 100.0


def test_unit_aliases_from_synced_routines_still_summarize() -> None:
    curl = {"id": 1, "name": "Curl", "workSets": 1, "unit": "lbs"}
    routines = routines_from_payload({"arms": {"name": "Arms", "exercises": [curl]}})
    log = RecordLog(routines=routines)
    workout = build_workout(log, "arms")
    workout.committed = True
    workout.exercises[0].work_sets[0] = WorkSet(weight="100", reps="8", state=SetState.COMMITTED)
    log.workouts["2024-01-01"] = workout

    summary = day_summary(log, "2024-01-01")

    assert summary["volume"] == 363.2
    assert summary["exercises"][0]["weight"] == 45.4


@pytest.mark.parametrize(
    ("weight", "reps", "record", "expected"),
    [
        (102.5, 3, PersonalRecord(100.0, 5, "d"), "weight"),
        (100.0, 6, PersonalRecord(100.0, 5, "d"), "reps"),
        (99.95, 6, PersonalRecord(100.0, 5, "d"), "reps"),
        (100.0, 5, PersonalRecord(100.0, 5, "d"), None),
        (97.5, 12, PersonalRecord(100.0, 5, "d"), None),
        (60.0, 8, None, None),
    ],
)
def test_classify_set_pr(weight, reps, record, expected) -> None:
    assert classify_set_pr(weight, reps, record) == expected


def test_weekly_streak_exempts_empty_current_week(make_workout) -> None:
    # Week of 2024-01-01 has push and pull, week of 2024-01-08 only push,
    # and the current week (2024-01-15) is empty.
    log = RecordLog(
        workouts={
            "2024-01-01": make_workout("push", DONE),
            "2024-01-03": make_workout("pull", DONE),
            "2024-01-09": make_workout("push", DONE),
        }
    )
    assert weekly_streak(log, "2024-01-17") == 1


def test_weekly_streak_counts_consecutive_complete_weeks(make_workout) -> None:
    log = RecordLog(
        workouts={
            "2024-01-01": make_workout("push", DONE),
            "2024-01-02": make_workout("pull", DONE),
            "2024-01-08": make_workout("push", DONE),
            "2024-01-10": make_workout("pull", DONE),
            "2024-01-15": make_workout("push", DONE),
        }
    )
    assert weekly_streak(log, "2024-01-16") == 2
    assert weekly_streak(log, "2024-01-30") == 0


def test_weekly_streak_ignores_uncommitted_workouts(make_workout) -> None:
    log = RecordLog(
        workouts={
            "2024-01-01": make_workout("push", DONE),
            "2024-01-03": make_workout("pull", DONE, committed=False),
            "2024-01-09": make_workout("push", DONE),
        }
    )
    assert weekly_streak(log, "2024-01-17") == 0


def test_weekly_streak_needs_committed_sets(make_workout) -> None:
    drafts = {BENCH: [("60", "8", False)]}
    log = RecordLog(
        workouts={
            "2024-01-01": make_workout("push", drafts),
            "2024-01-03": make_workout("pull", drafts),
        }
    )
    assert weekly_streak(log, "2024-01-09") == 0
    assert day_streak(log, "2024-01-04") == 0

    log.workouts["2024-01-03"] = make_workout("pull", DONE)
    assert day_streak(log, "2024-01-04") == 1


def test_day_streak_allows_short_gaps(make_workout) -> None:
    log = RecordLog(
        workouts={
            "2024-01-01": make_workout("push", DONE),
            "2024-01-05": make_workout("pull", DONE),
            "2024-01-07": make_workout("push", DONE),
            "2024-01-10": make_workout("pull", DONE),
        }
    )
    assert day_streak(log, "2024-01-11") == 3
    assert day_streak(log, "2024-01-20") == 0
    assert day_streak(log, "2024-01-11", gap_days=4) == 4


def test_phase_aggregation_uses_half_open_range(make_workout) -> None:
    log = RecordLog(
        workouts={
            "2024-01-01": make_workout("push", {}),
            "2024-01-15": make_workout("pull", {}),
            "2024-01-20": make_workout("push", {}, committed=False),
            "2024-02-01": make_workout("pull", {}),
        },
        phases=[
            Phase(id="cut", name="Cut", start="2024-01-01", end="2024-02-01"),
            Phase(id="bulk", name="Bulk", start="2024-02-01", goals={"weight": 80}),
        ],
    )
    assert phase_summary(log, log.phases[0], "2024-03-01")["sessions"] == 2
    assert phase_summary(log, log.phases[0], "2024-03-01")["days_elapsed"] == 31

    phase = current_phase(log)
    assert phase is not None and phase.id == "bulk"
    summary = phase_summary(log, phase, "2024-02-11")
    assert summary["sessions"] == 1
    assert summary["days_elapsed"] == 10
    assert summary["goals"] == {"weight": 80}


def test_day_summary_counts_committed_sets_only(make_workout) -> None:
    log = RecordLog(
        workouts={
            "2024-01-01": make_workout("push", {BENCH: [("55", "8", True)]}),
            "2024-01-03": make_workout(
                "push",
                {BENCH: [("60", "8", True), ("70", "5", False)]},
                committed=False,
                warmups={BENCH: [("40", "10", True)]},
            ),
        }
    )
    summary = day_summary(log, "2024-01-03")
    assert summary["volume"] == 880.0
    assert summary["sets"] == 2
    assert summary["reps"] == 18
    assert summary["committed"] is False
    assert summary["exercises"] == [
        {"name": BENCH, "weight": 60.0, "reps": 8, "one_rep_max": 76.0, "pr": "weight"}
    ]


def test_day_summary_for_empty_day() -> None:
    summary = day_summary(RecordLog(), "2024-01-01")
    assert summary["routine_type"] is None
    assert summary["exercises"] == []


def test_first_ever_set_gets_no_pr_flag(make_workout) -> None:
    log = RecordLog(workouts={"2024-01-01": make_workout("push", {BENCH: [("60", "8", True)]})})
    assert day_summary(log, "2024-01-01")["exercises"][0]["pr"] is None


def test_session_one_rep_max_and_progression(make_workout) -> None:
    log = RecordLog(
        workouts={
            "2024-01-01": make_workout("push", {BENCH: [("100", "5", True), ("90", "10", True)]}),
            "2024-01-03": make_workout("push", {BENCH: [("105", "3", True)]}),
            "2024-01-05": make_workout("push", {BENCH: [("110", "1", True)]}, committed=False),
        }
    )
    assert session_one_rep_max(log, BENCH, "2024-01-01") == 120.0
    assert session_one_rep_max(log, BENCH, "2024-01-05") == 113.7
    assert session_one_rep_max(log, "Missing", "2024-01-01") == 0.0

    rows = exercise_progression(log, BENCH)
    assert [row["date"] for row in rows] == ["2024-01-01", "2024-01-03"]
    assert rows[0] == {"date": "2024-01-01", "weight": 100.0, "reps": 5, "one_rep_max": 120.0}


def test_all_personal_records_and_names(make_workout) -> None:
    log = RecordLog(workouts={"2024-01-01": make_workout("push", {"Dips": [("10", "12", True)]})})
    names = exercise_names(log)
    assert names[0] == "Dips"
    assert BENCH in names
    assert all_personal_records(log) == [
        {"exercise": "Dips", "weight": 10.0, "reps": 12, "date": "2024-01-01", "one_rep_max": 14.0}
    ]


def test_last_exercise_data_skips_empty_sets(make_workout) -> None:
    log = RecordLog(
        workouts={
            "2024-01-01": make_workout("push", {BENCH: [("60", "8", True), ("62.5", "6", True)]}),
            "2024-01-03": make_workout("push", {BENCH: [("", "", False)]}),
        }
    )
    assert last_exercise_data(log, "2024-01-03", BENCH).weight == "62.5"
    assert last_exercise_data(log, "2024-01-05", BENCH).weight == "62.5"
    assert last_exercise_data(log, "2024-01-01", BENCH) is None


def test_calendar_month_and_stats_summary(make_workout) -> None:
    log = RecordLog(
        workouts={
            "2024-01-30": make_workout("push", {BENCH: [("60", "8", True)]}),
            "2024-02-02": make_workout("pull", {"Row": [("50", "10", True)]}),
            "2024-02-05": make_workout("push", {BENCH: [("62.5", "8", True)]}),
        }
    )
    days = calendar_month(log, 2024, 2)
    assert list(days) == ["2024-02-02", "2024-02-05"]
    assert days["2024-02-05"] == {"routine_type": "push", "committed": True, "volume": 500.0, "sets": 1, "prs": 1}

    summary = build_stats_summary(log, "2024-02-06")
    assert summary["sessions_this_year"] == 3
    assert summary["weekly_streak"] == 1
    assert summary["day_streak"] == 3
    assert summary["phase"] is None
    assert summary["recent"][0] == {"date": "2024-02-05", "routine_type": "push", "committed": True}
