"""
Tests for validate_dataset.py: dataset QA checks and CLI exit codes.

The fixture dataset has two unbalanced years (ontario 2022 and alberta
2024) and nothing else wrong with it.
"""
import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from budget.datasource import FileDataSource, InMemoryDataSource
from budget.departments import parse_department_tree
from budget.sankey import build_sankey
from validate_dataset import (
    LoadedYear,
    check_balance,
    check_child_sums,
    check_expansion,
    iter_jurisdictions,
    main,
    validate_dataset,
)


def _loaded(revenue: dict, spending: dict) -> LoadedYear:
    rev = parse_department_tree(revenue, root_id="revenue", allow_negative=True)
    spend = parse_department_tree(spending)
    return LoadedYear("ontario", "2023", rev, spend, build_sankey(rev, spend))


class TestChecks:
    def test_balanced(self):
        loaded = _loaded({"name": "R", "children": [{"name": "Tax", "amount": 100}]},
                         {"name": "S", "children": [{"name": "Health", "amount": 97}]})
        assert check_balance(loaded) == []

    def test_unbalanced_warns(self):
        loaded = _loaded({"name": "R", "children": [{"name": "Tax", "amount": 100}]},
                         {"name": "S", "children": [{"name": "Health", "amount": 80}]})
        issues = check_balance(loaded)
        assert [i.severity for i in issues] == ["warning"]
        assert "20.0%" in issues[0].detail

    def test_empty_year_warns(self):
        loaded = _loaded({"name": "R"}, {"name": "S"})
        assert check_balance(loaded)[0].severity == "warning"
        assert check_expansion(loaded)[0].severity == "warning"

    def test_child_sum_mismatch_is_info(self):
        loaded = _loaded(
            {"name": "R", "children": [{"name": "Tax", "amount": 100}]},
            {"name": "S", "children": [{"name": "Health", "amount": 100, "children": [
                {"name": "Hospitals", "amount": 60}]}]},
        )
        issues = check_child_sums(loaded)
        assert [i.severity for i in issues] == ["info"]
        assert issues[0].count == 1


class TestValidateDataset:
    def test_fixture_dataset(self, file_source):
        summary = validate_dataset(file_source)
        assert summary["jurisdiction_years"] == [
            "federal 2024", "alberta 2024", "ontario 2023", "ontario 2022",
            "british-columbia/vancouver 2024", "ontario/ottawa 2023", "ontario/toronto 2023",
        ]
        assert summary["summary"]["errors"] == 0
        assert summary["summary"]["warnings"] == 2
        assert summary["exit_code"] == 0

    def test_strict_fails_on_warnings(self, file_source):
        assert validate_dataset(file_source, strict=True)["exit_code"] == 1

    def test_load_error_reported(self, dataset_records):
        dataset_records["provincial/alberta/2024/sankey.json"] = {
            "revenue_data": {"name": "R", "children": [{"name": "Tax", "amount": 1}]},
            "spending_data": {"name": "S", "children": [{"name": "Bad", "amount": -5}]},
        }
        summary = validate_dataset(InMemoryDataSource(dataset_records))
        errors = [i for i in summary["issues"] if i["severity"] == "error"]
        assert [i["check"] for i in errors] == ["load"]
        assert errors[0]["detail"].startswith("alberta 2024: ")
        assert "alberta 2024" not in summary["jurisdiction_years"]
        assert summary["exit_code"] == 1

    def test_iter_jurisdictions(self, memory_source):
        assert iter_jurisdictions(memory_source) == [
            "federal", "alberta", "ontario",
            "british-columbia/vancouver", "ontario/ottawa", "ontario/toronto",
        ]

    def test_dataset_root_reported(self, dataset_dir):
        assert validate_dataset(FileDataSource(dataset_dir))["dataset"] == str(dataset_dir)


class TestMain:
    def test_text_report(self, dataset_dir, capsys):
        assert main(["--data", str(dataset_dir)]) == 0
        out = capsys.readouterr().out
        assert "Budget Dataset Validation Report" in out
        assert "[WARN] balance" in out

    def test_json_output(self, dataset_dir, capsys):
        assert main(["--data", str(dataset_dir), "--json", "--strict"]) == 1
        summary = json.loads(capsys.readouterr().out)
        assert summary["exit_code"] == 1
        assert summary["summary"]["warnings"] == 2

    def test_missing_dataset(self, tmp_path, capsys):
        assert main(["--data", str(tmp_path / "absent")]) == 1
        assert "Dataset not found" in capsys.readouterr().err
