from __future__ import annotations

from pathlib import Path

import pytest

from gt_cli.utils.parsing import (
    format_number,
    load_mapping_file,
    parse_number,
    parse_rep_range,
    parse_reps,
    parse_weight,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("60", 60.0), ("62,5", 62.5), (" 7.5 ", 7.5), ("", 0.0), (None, 0.0), ("heavy", 0.0), (12, 12.0)],
)
def test_parse_number(raw, expected) -> None:
    assert parse_number(raw) == expected


def test_weight_and_reps_never_negative() -> None:
    assert parse_weight("-5") == 0.0
    assert parse_reps("-2") == 0
    assert parse_reps("8.9") == 8


def test_format_number_drops_trailing_zero() -> None:
    assert format_number(60.0) == "60"
    assert format_number(62.5) == "62.5"
    assert format_number(0.30000000000000004) == "0.3"


def test_parse_rep_range() -> None:
    assert parse_rep_range("5-8") == (5, 8)
    assert parse_rep_range("8") == (8, 8)
    assert parse_rep_range("12-6") == (6, 12)
    assert parse_rep_range("AMRAP") is None
    assert parse_rep_range(None) is None


def test_load_mapping_file_reads_yaml_and_json(write_temp_text, write_temp_json) -> None:
    yaml_path = write_temp_text("routines.yaml", "push:\n  name: Push\n")
    json_path = write_temp_json("routines.json", {"pull": {"name": "Pull"}})
    assert load_mapping_file(yaml_path) == {"push": {"name": "Push"}}
    assert load_mapping_file(json_path) == {"pull": {"name": "Pull"}}


def test_load_mapping_file_rejects_non_mapping(write_temp_text) -> None:
    with pytest.raises(ValueError, match="mapping"):
        load_mapping_file(write_temp_text("list.yaml", "- a\n- b\n"))


def test_load_mapping_file_wraps_yaml_errors(tmp_path: Path) -> None:
    path = tmp_path / "broken.yml"
    path.write_text("push: [unclosed\n")
    with pytest.raises(ValueError, match="Failed to parse"):
        load_mapping_file(path)
