"""
Pytest fixtures for the budget flow tests.

Provides a small published dataset in two forms: an InMemoryDataSource and
the same records written to a temporary directory for FileDataSource, the
API and the validation CLI.

Dataset layout::

    federal/2024                       published
    provincial/ontario/2023            published (the worked example)
    provincial/ontario/2022            published
    provincial/ontario/2021            summary.json only (not published)
    provincial/ontario/notes           not a year
    provincial/alberta/2024            published
    municipal/ontario/toronto/2023     published, name "Toronto"
    municipal/ontario/ottawa/2023      published, name "Ottawa"
    municipal/british-columbia/vancouver/2024  published
"""

import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from budget.datasource import FileDataSource, InMemoryDataSource, set_default_source


def _sankey(revenue: dict, spending: dict) -> dict:
    """Nested sankey.json body from {name: amount | {child: amount}} maps."""
    def tree(name, items):
        children = []
        for child, value in items.items():
            if isinstance(value, dict):
                children.append({"name": child,
                                 "children": [{"name": k, "amount": v}
                                              for k, v in value.items()]})
            else:
                children.append({"name": child, "amount": value})
        return {"name": name, "children": children}

    return {
        "revenue_data": tree("Total Revenue", revenue),
        "spending_data": tree("Total Expenses", spending),
    }


ONTARIO_2023_SANKEY = _sankey(
    {"Taxes": 1900, "Fees": 100},
    {"Health": {"Hospitals": 600, "OHIP": 400}, "Education": 800, "Other": 200},
)

DATASET = {
    "federal/2024/summary.json": {"name": "Canada", "level": "federal"},
    "federal/2024/sankey.json": _sankey(
        {"Income Tax": 300, "GST": 100}, {"Transfers": 250, "Defence": 150}),

    "provincial/ontario/2023/summary.json": {
        "name": "Ontario",
        "source": "https://www.ontario.ca/page/public-accounts-2023-24",
        "sources": [{"label": "Public Accounts", "url": "https://www.ontario.ca/pa"}],
        "financialYear": "2023-24",
        "totalEmployees": 65000,
        "netDebt": 400.5,
        "methodology": "Consolidated statements",
        "scalingNote": "figures in dollars",
    },
    "provincial/ontario/2023/sankey.json": ONTARIO_2023_SANKEY,
    "provincial/ontario/2023/departments/health.json": {
        "name": "Ministry of Health", "spending": 1000, "introText": "Hospitals and OHIP.",
    },
    "provincial/ontario/2023/departments/education.json": {
        "name": "Ministry of Education", "spending": 800,
    },
    "provincial/ontario/2022/summary.json": {"name": "Ontario"},
    "provincial/ontario/2022/sankey.json": _sankey({"Taxes": 1700}, {"Health": 900}),
    "provincial/ontario/2021/summary.json": {"name": "Ontario"},
    "provincial/ontario/notes/readme.json": {"text": "not a year"},

    "provincial/alberta/2024/summary.json": {"name": "Alberta"},
    "provincial/alberta/2024/sankey.json": _sankey({"Royalties": 500}, {"Health": 450}),

    "municipal/ontario/toronto/2023/summary.json": {"name": "Toronto"},
    "municipal/ontario/toronto/2023/sankey.json": _sankey(
        {"Property Tax": 90}, {"Transit": 60, "Police": 30}),
    "municipal/ontario/ottawa/2023/summary.json": {"name": "Ottawa"},
    "municipal/ontario/ottawa/2023/sankey.json": _sankey(
        {"Property Tax": 40}, {"Transit": 40}),
    "municipal/british-columbia/vancouver/2024/summary.json": {"name": "Vancouver"},
    "municipal/british-columbia/vancouver/2024/sankey.json": _sankey(
        {"Property Tax": 50}, {"Parks": 50}),
}


def write_dataset(root: Path, records: dict) -> Path:
    """Write ``path -> record`` as JSON files under *root*."""
    for rel, record in records.items():
        target = root / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(record), encoding="utf-8")
    return root


@pytest.fixture(autouse=True)
def _reset_default_source():
    """Each test starts and ends without a process-wide source."""
    set_default_source(None)
    yield
    set_default_source(None)


@pytest.fixture()
def memory_source():
    return InMemoryDataSource(DATASET)


@pytest.fixture()
def dataset_dir(tmp_path):
    return write_dataset(tmp_path / "data", DATASET)


@pytest.fixture()
def file_source(dataset_dir):
    return FileDataSource(dataset_dir)


@pytest.fixture()
def dataset_records():
    """A shallow copy of DATASET that a test may patch before building a source."""
    return dict(DATASET)
