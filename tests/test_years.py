"""Tests for budget/years.py: year discovery and slug resolution."""
import pytest

from budget.datasource import InMemoryDataSource, set_default_source
from budget.years import (
    get_available_years,
    get_available_years_for_jurisdiction,
    get_latest_year_for_jurisdiction,
    resolve_jurisdiction,
    resolve_jurisdiction_path,
)


class TestGetAvailableYears:
    def test_descending(self, memory_source):
        assert get_available_years("provincial/ontario", memory_source) == ["2023", "2022"]

    def test_skips_incomplete_and_non_year_entries(self, memory_source):
        years = get_available_years("provincial/ontario", memory_source)
        assert "2021" not in years
        assert "notes" not in years

    def test_missing_path_is_empty(self, memory_source):
        assert get_available_years("provincial/atlantis", memory_source) == []

    def test_numeric_not_lexicographic(self):
        records = {}
        for year in ("1999", "2000", "2010"):
            records[f"federal/{year}/summary.json"] = {"name": "Canada"}
            records[f"federal/{year}/sankey.json"] = {}
        source = InMemoryDataSource(records)
        assert get_available_years("federal", source) == ["2010", "2000", "1999"]

    def test_rejects_malformed_year_names(self):
        records = {}
        for entry in ("2023", "23", "20234", "2023a", "FY2023"):
            records[f"federal/{entry}/summary.json"] = {}
            records[f"federal/{entry}/sankey.json"] = {}
        source = InMemoryDataSource(records)
        assert get_available_years("federal", source) == ["2023"]

    def test_uses_default_source(self, memory_source):
        set_default_source(memory_source)
        assert get_available_years("provincial/alberta") == ["2024"]


class TestResolveJurisdiction:
    def test_federal(self, memory_source):
        assert resolve_jurisdiction("federal", memory_source) == ("federal", "federal")

    def test_province(self, memory_source):
        assert resolve_jurisdiction("ontario", memory_source) == (
            "provincial/ontario", "provincial")

    def test_municipality_two_segments(self, memory_source):
        assert resolve_jurisdiction("ontario/toronto", memory_source) == (
            "municipal/ontario/toronto", "municipal")

    def test_bare_municipality(self, memory_source):
        assert resolve_jurisdiction_path("vancouver", memory_source) == (
            "municipal/british-columbia/vancouver")

    @pytest.mark.parametrize("slug", [
        "", "unknown", "unknown/unknown", "ontario/unknown",
        "../ontario", "Ontario", "a/b/c", "ontario//toronto",
    ])
    def test_unknown_or_malformed(self, memory_source, slug):
        assert resolve_jurisdiction(slug, memory_source) is None


class TestYearsForJurisdiction:
    def test_province(self, memory_source):
        assert get_available_years_for_jurisdiction("ontario", memory_source) == ["2023", "2022"]

    def test_municipality(self, memory_source):
        assert get_available_years_for_jurisdiction("ontario/toronto", memory_source) == ["2023"]

    def test_unknown_returns_empty_not_error(self, memory_source):
        assert get_available_years_for_jurisdiction("unknown/unknown", memory_source) == []

    def test_strictly_descending_and_unique(self, memory_source):
        for slug in ("federal", "ontario", "alberta", "ontario/ottawa", "vancouver"):
            years = get_available_years_for_jurisdiction(slug, memory_source)
            assert years == sorted(set(years), key=int, reverse=True)

    def test_latest(self, memory_source):
        assert get_latest_year_for_jurisdiction("ontario", memory_source) == "2023"
        assert get_latest_year_for_jurisdiction("unknown", memory_source) is None
