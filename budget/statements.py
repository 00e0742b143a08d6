"""
Statement-of-operations transform for First Nations annual reports.

An extracted statement is a flat list of line items::

    {"name": "Own source revenue", "major_category": "revenue",
     "parent_category": "Other revenue", "is_total": false,
     "is_subtotal": false, "values": {"actual_2024": 1250000, "budget_2024": ...}}

``statement_to_trees`` turns it into the revenue/spending trees the Sankey
builder consumes.  Line items are grouped under their ``parent_category``,
totals and subtotals are dropped, and the leaves are scaled so they add up to
the statement's own stated totals (which already include adjustments the
line items do not show).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any

from budget.departments import parse_department_tree
from budget.models import DepartmentTree, SankeyData
from budget.sankey import BucketingConfig, build_sankey
from utils.patterns import ACTUAL_KEY
from utils.strings import safe_float

logger = logging.getLogger(__name__)

REVENUE_CATEGORY = "revenue"
EXPENSE_CATEGORY = "expenditures"
SUMMARY_CATEGORY = "summary"

DEFERRED_INFLOW_LABEL = "Deferred Revenue (Net)"
DEFERRED_OUTFLOW_LABEL = "Deferred to Future Years"

# Year assumed when a statement lists no actual fiscal period
DEFAULT_STATEMENT_YEAR = 2024


@dataclass(frozen=True)
class OperationsSummary:
    """Headline figures of a statement of operations."""

    total_revenue: float
    total_expenses: float
    surplus_deficit: float

    def to_dict(self) -> dict:
        return {
            "totalRevenue": self.total_revenue,
            "totalExpenses": self.total_expenses,
            "surplusDeficit": self.surplus_deficit,
        }


def statement_year(statement: dict) -> int | None:
    """Year of the first non-budget fiscal period, if the statement lists one."""
    for period in statement.get("fiscal_periods") or []:
        if isinstance(period, dict) and not period.get("is_budget"):
            year = period.get("year")
            if isinstance(year, int):
                return year
    return None


def get_actual_value(item: dict, year: int | None = None) -> float:
    """Actual amount reported for a line item.

    Uses ``actual_<year>`` when present, otherwise the first ``actual_*``
    value found, otherwise 0.  Budget columns are never used.
    """
    values = item.get("values") or {}
    if year is not None:
        value = values.get(f"actual_{year}")
        if value is not None:
            return safe_float(value)
    for key, value in values.items():
        if ACTUAL_KEY.match(key) and value is not None:
            return safe_float(value)
    return 0.0


def _is_line(item: dict, category: str) -> bool:
    return (item.get("major_category") == category
            and not item.get("is_total") and not item.get("is_subtotal"))


def _is_deferred(item: dict) -> bool:
    return "deferred revenue" in (item.get("name") or "").lower()


def _stated_total(items: list[dict], category: str, year: int | None) -> float | None:
    for item in items:
        if item.get("major_category") == category and item.get("is_total"):
            return get_actual_value(item, year)
    return None


def _group(leaves: list[tuple[str, str | None, float]]) -> list[dict]:
    """Nest ``(name, parent_category, amount)`` leaves one level deep.

    Items sharing a name within the same group are summed.
    """
    top: dict[str, dict] = {}
    for name, category, amount in leaves:
        if category:
            group = top.setdefault(f"group:{category}",
                                   {"name": category, "children": {}})
            siblings = group["children"]
        else:
            siblings = top
        node = siblings.setdefault(name, {"name": name, "amount": 0.0})
        node["amount"] += amount

    nodes = []
    for node in top.values():
        if "children" in node:
            children = sorted(node["children"].values(),
                              key=lambda n: n["amount"], reverse=True)
            nodes.append({"name": node["name"], "children": children})
        else:
            nodes.append(node)

    def total(node: dict) -> float:
        if "children" in node:
            return math.fsum(c["amount"] for c in node["children"])
        return node["amount"]

    return sorted(nodes, key=total, reverse=True)


def _scale(leaves: list[tuple[str, str | None, float]],
           stated: float | None) -> list[tuple[str, str | None, float]]:
    raw_sum = math.fsum(amount for _, _, amount in leaves)
    if stated is None or stated <= 0 or raw_sum <= 0:
        return leaves
    factor = stated / raw_sum
    return [(name, category, amount * factor) for name, category, amount in leaves]


def statement_to_trees(statement: dict,
                       year: int | None = None) -> tuple[DepartmentTree, DepartmentTree]:
    """Build ``(revenue, spending)`` trees from a statement of operations.

    Deferred-revenue lines are netted: a positive net becomes an extra
    revenue source, a negative net becomes a "Deferred to Future Years"
    outflow.  Non-positive line items are dropped.  Leaves are then scaled so
    each side sums to the stated total, or without one to the sum of all of
    that side's lines (negative lines included).  *year* defaults to the
    first actual fiscal period, then to DEFAULT_STATEMENT_YEAR.

    Raises:
        DataValidationError: the resulting trees are malformed.
    """
    items = [i for i in statement.get("line_items") or [] if isinstance(i, dict)]
    if year is None:
        year = statement_year(statement) or DEFAULT_STATEMENT_YEAR

    revenue_lines = [i for i in items if _is_line(i, REVENUE_CATEGORY)]
    expense_lines = [i for i in items if _is_line(i, EXPENSE_CATEGORY)]
    net_deferred = math.fsum(
        get_actual_value(i, year) for i in revenue_lines if _is_deferred(i)
    )

    def leaves_of(lines: list[dict]) -> list[tuple[str, str | None, float]]:
        leaves = []
        for item in lines:
            amount = get_actual_value(item, year)
            name = (item.get("name") or "").strip()
            if amount > 0 and name:
                leaves.append((name, item.get("parent_category") or None, amount))
        return leaves

    revenue_leaves = leaves_of([i for i in revenue_lines if not _is_deferred(i)])
    expense_leaves = leaves_of(expense_lines)
    if net_deferred > 0:
        revenue_leaves.append((DEFERRED_INFLOW_LABEL, None, net_deferred))
    elif net_deferred < 0:
        expense_leaves.append((DEFERRED_OUTFLOW_LABEL, None, -net_deferred))

    stated_revenue = _stated_total(items, REVENUE_CATEGORY, year)
    stated_expenses = _stated_total(items, EXPENSE_CATEGORY, year)
    if stated_revenue is None:
        stated_revenue = math.fsum(get_actual_value(i, year) for i in revenue_lines)
    if stated_expenses is None:
        stated_expenses = math.fsum(get_actual_value(i, year) for i in expense_lines)

    entity = statement.get("entity") or "statement"
    logger.debug("statement %s: %d revenue and %d expense lines (year %s)",
                 entity, len(revenue_leaves), len(expense_leaves), year)

    revenue = parse_department_tree(
        {"name": "Total Revenue",
         "children": _group(_scale(revenue_leaves, stated_revenue))},
        root_id="revenue", path=entity,
    )
    spending = parse_department_tree(
        {"name": "Total Expenses",
         "children": _group(_scale(expense_leaves, stated_expenses))},
        root_id="spending", path=entity,
    )
    return revenue, spending


def statement_to_sankey(statement: dict, year: int | None = None,
                        config: BucketingConfig | None = None) -> SankeyData:
    revenue, spending = statement_to_trees(statement, year)
    return build_sankey(revenue, spending, config)


def extract_operations_summary(statement: dict,
                               year: int | None = None) -> OperationsSummary:
    """Stated total revenue, total expenses and surplus/deficit.

    The surplus comes from an explicit "net revenue" summary line when the
    statement has one, otherwise from the difference of the two totals.
    """
    items = [i for i in statement.get("line_items") or [] if isinstance(i, dict)]
    if year is None:
        year = statement_year(statement) or DEFAULT_STATEMENT_YEAR

    total_revenue = _stated_total(items, REVENUE_CATEGORY, year) or 0.0
    total_expenses = _stated_total(items, EXPENSE_CATEGORY, year) or 0.0
    net_line: dict[str, Any] | None = next(
        (i for i in items
         if i.get("major_category") == SUMMARY_CATEGORY
         and "net revenue" in (i.get("name") or "").lower()),
        None,
    )
    surplus = (get_actual_value(net_line, year) if net_line is not None
               else total_revenue - total_expenses)
    return OperationsSummary(total_revenue, total_expenses, surplus)

