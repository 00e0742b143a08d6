"""
Budget Dataset Validation Suite

Loads every published (jurisdiction, year) in a dataset directory, builds its
flow graph and drill-down table, and flags anomalies.  Run it after every
data-pipeline publish (or as a standalone QA step); malformed data is meant
to be caught here, not by the API.

Usage:
    python validate_dataset.py                      # Validate ./data
    python validate_dataset.py --data path/to/data  # Custom dataset root
    python validate_dataset.py --strict             # Non-zero exit on warnings
    python validate_dataset.py --json               # Output as JSON

Severities:
    error    record cannot be loaded, or breaks a tree invariant
             (negative expense, duplicate id, cyclic parent references)
    warning  revenue and spending diverge by more than 5%
    info     a parent's amount differs from the sum of its children
"""

import argparse
import json
import logging
import math
import sys
from dataclasses import dataclass
from pathlib import Path

from budget.datasource import DataSource, FileDataSource, join_path
from budget.departments import expand_departments, find_sum_mismatches
from budget.errors import BudgetDataError
from budget.loader import get_jurisdiction_data, load_trees
from budget.models import DepartmentTree, SankeyData
from budget.registry import list_provinces
from budget.sankey import BucketingConfig
from budget.years import FEDERAL_SLUG, get_available_years
from utils.config import AppConfig
from utils.formatting import format_percent
from utils.strings import is_slug
from utils.validation import ValidationIssue, ValidationRegistry, ValidationResult

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path("data")
BALANCE_TOLERANCE = 0.05


@dataclass(frozen=True)
class LoadedYear:
    """Everything the checks need for one published year."""

    slug: str
    year: str
    revenue: DepartmentTree
    spending: DepartmentTree
    sankey: SankeyData

    @property
    def label(self) -> str:
        return f"{self.slug} {self.year}"


# ── Individual checks ────────────────────────────────────────────────────────

def check_balance(loaded: LoadedYear) -> list[ValidationIssue]:
    """Warn when revenue and spending diverge by more than 5%."""
    revenue = loaded.sankey.total_revenue
    spending = loaded.sankey.total_spending
    base = max(revenue, spending)
    if base == 0:
        return [ValidationIssue("balance", "warning",
                                f"{loaded.label}: no positive revenue or spending")]
    gap = abs(revenue - spending) / base
    if gap <= BALANCE_TOLERANCE:
        return []
    return [ValidationIssue(
        "balance", "warning",
        f"{loaded.label}: revenue and spending differ by {format_percent(gap)}",
        sample={"revenue": revenue, "spending": spending},
    )]


def check_child_sums(loaded: LoadedYear) -> list[ValidationIssue]:
    """Note parents whose amount is not the sum of their children."""
    issues = []
    for side, tree in (("revenue", loaded.revenue), ("spending", loaded.spending)):
        mismatches = find_sum_mismatches(tree)
        if mismatches:
            issues.append(ValidationIssue(
                "child_sums", "info",
                f"{loaded.label}: {len(mismatches)} {side} node(s) differ from their children",
                sample=mismatches[0], count=len(mismatches),
            ))
    return issues


def check_expansion(loaded: LoadedYear) -> list[ValidationIssue]:
    """Pre-order table starts at depth 0 and never skips a level."""
    rows = expand_departments(loaded.spending)
    if not rows:
        return [ValidationIssue("expansion", "warning",
                                f"{loaded.label}: expense tree has no departments")]
    previous = -1
    for row in rows:
        if row.depth > previous + 1:
            return [ValidationIssue("expansion", "error",
                                    f"{loaded.label}: depth jumps at {row.id}",
                                    sample=row.depth)]
        previous = row.depth
    return []


def check_links(loaded: LoadedYear) -> list[ValidationIssue]:
    """Every link endpoint is a node and every link value is finite."""
    ids = loaded.sankey.node_ids()
    bad = [link for link in loaded.sankey.links
           if link.source not in ids or link.target not in ids
           or not math.isfinite(link.value) or link.value < 0]
    if not bad:
        return []
    return [ValidationIssue("links", "error",
                            f"{loaded.label}: {len(bad)} dangling or invalid link(s)",
                            sample=bad[0], count=len(bad))]


def build_registry() -> ValidationRegistry:
    registry = ValidationRegistry()
    registry.register("balance", check_balance)
    registry.register("child_sums", check_child_sums)
    registry.register("expansion", check_expansion)
    registry.register("links", check_links)
    return registry


# ── Orchestrator ──────────────────────────────────────────────────────────────

def iter_jurisdictions(source: DataSource) -> list[str]:
    """Slugs of every jurisdiction directory in the dataset."""
    slugs = []
    if source.exists(FEDERAL_SLUG):
        slugs.append(FEDERAL_SLUG)
    slugs.extend(list_provinces(source))
    for province in source.list_entries("municipal"):
        if not is_slug(province):
            continue
        for municipality in source.list_entries(join_path("municipal", province)):
            if is_slug(municipality):
                slugs.append(f"{province}/{municipality}")
    return slugs


def _storage_path(slug: str) -> str:
    if slug == FEDERAL_SLUG:
        return FEDERAL_SLUG
    if "/" in slug:
        return join_path("municipal", slug)
    return join_path("provincial", slug)


def validate_dataset(source: DataSource, strict: bool = False,
                     bucketing: BucketingConfig | None = None) -> dict:
    """Run all checks over every published year and return a summary dict."""
    registry = build_registry()
    result = ValidationResult()
    bucketing = bucketing or BucketingConfig.from_app_config(AppConfig.from_env())
    checked = []

    for slug in iter_jurisdictions(source):
        for year in get_available_years(_storage_path(slug), source):
            label = f"{slug} {year}"
            try:
                data = get_jurisdiction_data(slug, year, source, bucketing)
                revenue, spending = load_trees(slug, year, source)
            except BudgetDataError as exc:
                logger.debug("load failed for %s", label, exc_info=True)
                result.add_issue("load", "error", f"{label}: {exc}")
                result.mark_check_failed("load")
                continue
            result.mark_check_passed("load")
            checked.append(label)
            registry.run_all(LoadedYear(slug, year, revenue, spending, data.sankey),
                             result=result)

    errors = result.error_count()
    warnings = result.warning_count()
    exit_code = 1 if errors or (strict and warnings) else 0
    return {
        "dataset": str(getattr(source, "root", source)),
        "jurisdiction_years": checked,
        **result.to_dict(),
        "exit_code": exit_code,
    }


def print_report(summary: dict) -> None:
    """Print a human-readable validation report."""
    print(f"\n{'='*60}")
    print("  Budget Dataset Validation Report")
    print(f"  Dataset: {summary['dataset']}")
    print(f"{'='*60}\n")

    icons = {"error": "FAIL", "warning": "WARN", "info": "INFO"}
    for issue in summary["issues"]:
        print(f"  [{icons[issue['severity']]:4s}] {issue['check']}: {issue['detail']}")
        if issue.get("sample"):
            print(f"           {issue['sample']}")

    counts = summary["summary"]
    print(f"\n  Summary: {len(summary['jurisdiction_years'])} year(s) loaded, "
          f"{counts['errors']} error(s), {counts['warnings']} warning(s), "
          f"{counts['info']} note(s)\n")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Validate a published budget dataset")
    parser.add_argument("--data", type=Path, default=DEFAULT_DATA_DIR,
                        help="Dataset root directory (default: data)")
    parser.add_argument("--strict", action="store_true",
                        help="Exit non-zero on warnings as well as errors")
    parser.add_argument("--json", action="store_true", dest="output_json",
                        help="Output results as JSON")
    args = parser.parse_args(argv)

    if not args.data.is_dir():
        print(f"ERROR: Dataset not found: {args.data}", file=sys.stderr)
        return 1

    summary = validate_dataset(FileDataSource(args.data), strict=args.strict)
    if args.output_json:
        print(json.dumps(summary, indent=2, default=str))
    else:
        print_report(summary)
    return summary["exit_code"]


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s %(message)s")
    sys.exit(main())
