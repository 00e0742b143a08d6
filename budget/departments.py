"""
Department Expansion: parse department trees and flatten them for tables.

Two persisted shapes are accepted and both become a ``DepartmentTree`` arena:

Nested (the ``revenue_data`` / ``spending_data`` blocks of sankey.json)::

    {"name": "Total Expenses", "children": [
        {"name": "Health", "amount": 1000, "children": [...]},
        ...]}

Flat rows with parent references::

    [{"id": "spending", "name": "Total Expenses", "parent": null},
     {"id": "health", "name": "Health", "amount": 1000, "parent": "spending"}]

A node without ``amount`` (or with ``0`` while it has children) rolls up to
the sum of its children.  Missing ids are built from the root-to-node path of
slugified names, e.g. ``spending/health/hospitals``.

Malformed input (negative amounts where not allowed, duplicate ids, cyclic or
dangling parent references) raises DataValidationError; nothing is repaired.
"""

from __future__ import annotations

import math
from typing import Any

from budget.errors import DataValidationError
from budget.models import DepartmentRecord, DepartmentTree, ExpandedDepartment
from utils.strings import slugify
from utils.validation import is_valid_amount

# (id, name, explicit amount or None, parent index or None), pre-order
_Row = tuple[str, str, "float | None", "int | None"]


def _check_amount(raw: Any, allow_negative: bool, node_id: str,
                  path: str | None) -> float | None:
    if raw is None:
        return None
    if not is_valid_amount(raw, allow_negative=True):
        raise DataValidationError(f"non-numeric amount {raw!r} on {node_id!r}", path=path)
    if raw < 0 and not allow_negative:
        raise DataValidationError(f"negative amount {raw!r} on {node_id!r}", path=path)
    return float(raw)


def _check_name(raw: Any, where: str, path: str | None) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise DataValidationError(f"missing name on {where}", path=path)
    return raw.strip()


def _freeze(rows: list[_Row], path: str | None) -> DepartmentTree:
    """Build the immutable arena, rolling amounts up in reverse pre-order."""
    seen: set[str] = set()
    for node_id, *_ in rows:
        if node_id in seen:
            raise DataValidationError(f"duplicate id {node_id!r}", path=path)
        seen.add(node_id)

    children: list[list[int]] = [[] for _ in rows]
    for index, (_, _, _, parent) in enumerate(rows):
        if parent is not None:
            children[parent].append(index)

    amounts = [0.0] * len(rows)
    for index in range(len(rows) - 1, -1, -1):
        explicit = rows[index][2]
        kids = children[index]
        if explicit is None or (explicit == 0 and kids):
            amounts[index] = math.fsum(amounts[k] for k in kids)
        else:
            amounts[index] = explicit

    records = tuple(
        DepartmentRecord(id=node_id, name=name, amount=amounts[i],
                         children=tuple(children[i]), parent=parent)
        for i, (node_id, name, _, parent) in enumerate(rows)
    )
    return DepartmentTree(records=records, root=0)


def _rows_from_nested(raw: dict, root_id: str, allow_negative: bool,
                      path: str | None) -> list[_Row]:
    rows: list[_Row] = []
    visited: set[int] = set()
    # (node, parent index, parent id, sibling position)
    stack: list[tuple[Any, int | None, str | None, int]] = [(raw, None, None, 0)]
    while stack:
        node, parent, parent_id, position = stack.pop()
        if not isinstance(node, dict):
            raise DataValidationError(
                f"tree node under {parent_id!r} is not an object", path=path)
        if id(node) in visited:
            raise DataValidationError(
                f"cyclic or shared node reference under {parent_id!r}", path=path)
        visited.add(id(node))

        name = _check_name(node.get("name"), f"child {position} of {parent_id!r}"
                           if parent_id else "root", path)
        if node.get("id") is not None:
            node_id = str(node["id"])
        elif parent_id is None:
            node_id = root_id
        else:
            node_id = f"{parent_id}/{slugify(name) or f'item-{position}'}"

        amount = _check_amount(node.get("amount"), allow_negative, node_id, path)
        index = len(rows)
        rows.append((node_id, name, amount, parent))

        kids = node.get("children") or []
        if not isinstance(kids, list):
            raise DataValidationError(f"children of {node_id!r} is not a list", path=path)
        for pos in range(len(kids) - 1, -1, -1):
            stack.append((kids[pos], index, node_id, pos))
    return rows


def _rows_from_flat(raw: list, allow_negative: bool, path: str | None) -> list[_Row]:
    by_id: dict[str, dict] = {}
    order: list[str] = []
    for position, row in enumerate(raw):
        if not isinstance(row, dict) or row.get("id") is None:
            raise DataValidationError(f"row {position} has no id", path=path)
        node_id = str(row["id"])
        if node_id in by_id:
            raise DataValidationError(f"duplicate id {node_id!r}", path=path)
        by_id[node_id] = row
        order.append(node_id)

    roots = [i for i in order if by_id[i].get("parent") is None]
    if len(roots) != 1:
        raise DataValidationError(f"expected exactly one root, found {len(roots)}", path=path)

    kids: dict[str, list[str]] = {i: [] for i in order}
    for node_id in order:
        parent = by_id[node_id].get("parent")
        if parent is None:
            continue
        parent = str(parent)
        if parent not in by_id:
            raise DataValidationError(
                f"{node_id!r} references unknown parent {parent!r}", path=path)
        kids[parent].append(node_id)

    rows: list[_Row] = []
    stack: list[tuple[str, int | None]] = [(roots[0], None)]
    while stack:
        node_id, parent = stack.pop()
        row = by_id[node_id]
        name = _check_name(row.get("name"), repr(node_id), path)
        amount = _check_amount(row.get("amount"), allow_negative, node_id, path)
        index = len(rows)
        rows.append((node_id, name, amount, parent))
        for child in reversed(kids[node_id]):
            stack.append((child, index))

    if len(rows) != len(order):
        unreachable = sorted(set(order) - {r[0] for r in rows})
        raise DataValidationError(
            f"cyclic parent references among {unreachable}", path=path)
    return rows


def parse_department_tree(raw: Any, root_id: str = "spending",
                          allow_negative: bool = False,
                          path: str | None = None) -> DepartmentTree:
    """Parse a persisted tree (nested object or flat rows) into an arena.

    Args:
        raw: Decoded JSON, nested dict or list of ``{id, name, amount, parent}``.
        root_id: Id given to a nested root that carries none.
        allow_negative: Accept negative amounts (revenue adjustments).
        path: Record path, used in error messages.

    Raises:
        DataValidationError: the tree breaks a structural invariant.
    """
    if isinstance(raw, dict):
        rows = _rows_from_nested(raw, root_id, allow_negative, path)
    elif isinstance(raw, list):
        rows = _rows_from_flat(raw, allow_negative, path)
    else:
        raise DataValidationError("department tree must be an object or a list", path=path)
    return _freeze(rows, path)


def _share(amount: float, whole: float) -> float:
    return amount / whole if whole else 0.0


def expand_departments(tree: DepartmentTree,
                       include_root: bool = False) -> list[ExpandedDepartment]:
    """Flatten *tree* in pre-order, annotating depth and share of parent.

    By default the root (the jurisdiction total) is omitted so top-level
    departments sit at depth 0 with a share of the grand total.  Shares with
    a zero denominator are 0.0.  Amounts are returned in their stored unit.
    """
    grand_total = tree.total
    offset = 0 if include_root else 1
    expanded: list[ExpandedDepartment] = []
    for index, depth in tree.walk():
        if index == tree.root and not include_root:
            continue
        rec = tree.records[index]
        if rec.parent is None:
            share = _share(rec.amount, grand_total)
            parent_id = None
        else:
            parent = tree.records[rec.parent]
            at_top = rec.parent == tree.root and not include_root
            share = _share(rec.amount, grand_total if at_top else parent.amount)
            parent_id = None if at_top else parent.id
        expanded.append(ExpandedDepartment(
            id=rec.id,
            name=rec.name,
            depth=depth - offset,
            amount=rec.amount,
            share=share,
            parent_id=parent_id,
            has_children=bool(rec.children),
        ))
    return expanded


def find_sum_mismatches(tree: DepartmentTree,
                        rel_tol: float = 1e-6) -> list[tuple[str, float, float]]:
    """Records whose amount differs from the sum of their direct children.

    Returns:
        ``(id, amount, children_sum)`` for each mismatching parent.
    """
    mismatches = []
    for rec in tree.records:
        if not rec.children:
            continue
        children_sum = math.fsum(tree.records[i].amount for i in rec.children)
        if not math.isclose(rec.amount, children_sum, rel_tol=rel_tol, abs_tol=1e-9):
            mismatches.append((rec.id, rec.amount, children_sum))
    return mismatches
