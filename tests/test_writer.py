import csv
from pathlib import Path

import pytest

from user_export.errors import OutputPathError
from user_export.schema import OUTPUT_COLUMNS, NormalizedRecord
from user_export.writer import (
    ExportFormat,
    records_to_frame,
    render_csv,
    render_txt,
    sort_frame,
    validate_output_path,
    write_export,
)


def _record(account, leader=False, **fields):
    values = {
        "AccountId": account,
        "DisplayName": f"User {account}",
        "Mobile": "",
        "TelephoneNumber": "",
        "Mail": f"{account}@company.com",
        "Description": "",
        "Handle": "",
        "OrgPath": "",
        "IsLeader": leader,
    }
    values.update(fields)
    return NormalizedRecord(**values)


def test_sort_puts_leaders_first_then_account_ascending():
    records = [_record("b", True), _record("a", False), _record("c", True)]
    sorted_frame = sort_frame(records_to_frame(records))
    assert sorted_frame["AccountId"].to_list() == ["b", "c", "a"]


def test_sort_is_stable_for_equal_keys_and_ordinal():
    records = [
        _record("x", Mail="first"),
        _record("B"),
        _record("x", Mail="second"),
        _record("a"),
    ]
    sorted_frame = sort_frame(records_to_frame(records))
    assert sorted_frame["AccountId"].to_list() == ["B", "a", "x", "x"]
    assert sorted_frame["Mail"].to_list()[2:] == ["first", "second"]


def test_frame_has_fixed_column_order():
    frame = records_to_frame([_record("a")])
    assert frame.columns == list(OUTPUT_COLUMNS)


def test_render_csv_uses_semicolon_and_header():
    frame = records_to_frame([_record("a", True, OrgPath="Unit A, Unit B")])
    text = render_csv(frame)

    rows = list(csv.reader(text.splitlines(), delimiter=";"))
    assert rows[0] == list(OUTPUT_COLUMNS)
    assert len(rows) == 2
    row = dict(zip(rows[0], rows[1]))
    assert row["AccountId"] == "a"
    assert row["OrgPath"] == "Unit A, Unit B"
    assert row["IsLeader"] == "true"
    assert row["IsHidden"] == "false"


def test_render_txt_is_aligned_table():
    frame = records_to_frame([_record("a"), _record("longer.account")])
    lines = render_txt(frame).splitlines()

    assert lines[0].split() == list(OUTPUT_COLUMNS)
    assert len(lines) == 3
    assert "longer.account" in lines[2]


def test_write_export_csv_utf8(tmp_path):
    target = tmp_path / "nested" / "dir" / "users.csv"
    written = write_export([_record("b"), _record("á", True, DisplayName="Árvíztűrő")], target)

    assert written == target
    content = target.read_bytes().decode("utf-8")
    lines = content.splitlines()
    assert lines[0].startswith("AccountId;DisplayName;")
    assert lines[1].startswith("á;Árvíztűrő;")
    assert lines[2].startswith("b;")


def test_write_export_txt(tmp_path):
    target = tmp_path / "users.txt"
    write_export([_record("a")], target, ExportFormat.TXT)
    assert "AccountId" in target.read_text(encoding="utf-8").splitlines()[0]


def test_write_export_empty_writes_nothing(tmp_path):
    target = tmp_path / "users.csv"
    assert write_export([], target) is None
    assert not target.exists()

    target.write_text("previous", encoding="utf-8")
    assert write_export([], target) is None
    assert target.read_text(encoding="utf-8") == "previous"


def test_write_export_overwrites_existing_file(tmp_path):
    target = tmp_path / "users.csv"
    target.write_text("old content that is longer than the new one" * 10, encoding="utf-8")
    write_export([_record("a")], target)
    assert "old content" not in target.read_text(encoding="utf-8")


def test_write_export_reports_uncreatable_directory(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    with pytest.raises(OutputPathError):
        write_export([_record("a")], blocker / "users.csv")


@pytest.mark.parametrize("name", ["users.xlsx", "users", "users.csv.bak"])
def test_validate_output_path_rejects_other_extensions(name):
    with pytest.raises(OutputPathError):
        validate_output_path(Path(name))


def test_validate_output_path_accepts_csv_and_txt():
    assert validate_output_path(Path("a.CSV")) == Path("a.CSV")
    assert validate_output_path(Path("a.txt")) == Path("a.txt")


def test_export_format_parse():
    assert ExportFormat.parse(" txt ") is ExportFormat.TXT
    with pytest.raises(ValueError):
        ExportFormat.parse("xml")
