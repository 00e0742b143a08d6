"""
Sankey Graph Builder: department/revenue trees to a bounded node/link graph.

Columns (``stage``):

    0  Revenue aggregate + one node per top-level revenue source
    1  Government hub
    2  one node per top-level department
    3  programs under a department (only with ``include_programs``)

Links run source -> hub (source amount) and hub -> department (department
amount), plus department -> program when programs are shown.

Complexity bound: under any parent, children are ranked by amount; the top
``max_children`` whose share of the parent reaches ``min_share`` stay visible
and the rest fold into one synthetic "Other" node carrying their exact sum.
A fold set of a single child is left visible, so a parent never has more
than ``max_children + 1`` visible children.

Only positive amounts are drawn.  Revenue total and spending total are not
forced to agree: a deficit or surplus is part of the data.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

from budget.errors import DataValidationError
from budget.models import (
    STAGE_DEPARTMENT,
    STAGE_HUB,
    STAGE_PROGRAM,
    STAGE_REVENUE,
    DepartmentRecord,
    DepartmentTree,
    SankeyData,
    SankeyLink,
    SankeyNode,
)

HUB_ID = "government"
HUB_LABEL = "Government"
REVENUE_LABEL = "Revenue"


@dataclass(frozen=True)
class BucketingConfig:
    """Thresholds for folding small children into "Other"."""

    max_children: int = 8
    min_share: float = 0.01
    include_programs: bool = False
    other_label: str = "Other"

    def __post_init__(self) -> None:
        if self.max_children < 1:
            raise ValueError("max_children must be at least 1")
        if not 0.0 <= self.min_share < 1.0:
            raise ValueError("min_share must be in [0, 1)")

    @classmethod
    def from_app_config(cls, cfg, include_programs: bool = False) -> "BucketingConfig":
        return cls(
            max_children=cfg.sankey_max_children,
            min_share=cfg.sankey_min_share,
            include_programs=include_programs,
        )


@dataclass(frozen=True)
class Bucket:
    """Outcome of bucketing one parent's children."""

    kept: tuple[DepartmentRecord, ...]
    folded: tuple[DepartmentRecord, ...]

    @property
    def other_value(self) -> float:
        return math.fsum(r.amount for r in self.folded)


def bucket_children(children: Iterable[DepartmentRecord], parent_total: float,
                    max_children: int = 8, min_share: float = 0.01) -> Bucket:
    """Split *children* into visible records and records folded into "Other".

    Args:
        children: Candidate child records.
        parent_total: Denominator for the share threshold.
        max_children: Most children kept visible (K).
        min_share: Share of *parent_total* a child needs to stay visible.
    """
    ranked = sorted(children, key=lambda r: r.amount, reverse=True)
    kept: list[DepartmentRecord] = []
    folded: list[DepartmentRecord] = []
    for rec in ranked:
        share = rec.amount / parent_total if parent_total else 0.0
        if len(kept) < max_children and share >= min_share:
            kept.append(rec)
        else:
            folded.append(rec)
    if len(folded) == 1:
        kept.append(folded.pop())
    return Bucket(kept=tuple(kept), folded=tuple(folded))


class _GraphBuilder:
    def __init__(self) -> None:
        self.nodes: list[SankeyNode] = []
        self.links: list[SankeyLink] = []
        self._ids: set[str] = set()

    def node(self, node_id: str, label: str, stage: int, value: float,
             synthetic: bool = False) -> None:
        if node_id in self._ids:
            raise DataValidationError(f"duplicate sankey node id {node_id!r}")
        self._ids.add(node_id)
        self.nodes.append(SankeyNode(node_id, label, stage, value, synthetic))

    def link(self, source: str, target: str, value: float) -> None:
        self.links.append(SankeyLink(source, target, value))

    def bucketed(self, parent_id: str, bucket: Bucket, stage: int,
                 other_id: str, other_label: str, inbound: bool) -> None:
        """Add nodes for a bucket and link each to/from *parent_id*."""
        entries = [(r.id, r.name, r.amount, False) for r in bucket.kept]
        if bucket.folded:
            entries.append((other_id, other_label, bucket.other_value, True))
        for node_id, label, value, synthetic in entries:
            self.node(node_id, label, stage, value, synthetic)
            if inbound:
                self.link(node_id, parent_id, value)
            else:
                self.link(parent_id, node_id, value)


def other_id(parent_id: str) -> str:
    """Id of the synthetic "Other" bucket under *parent_id*.

    The colon keeps it apart from generated ids, which are slash-joined slugs.
    """
    return f"{parent_id}:other"


def _positive(records: Iterable[DepartmentRecord]) -> list[DepartmentRecord]:
    return [r for r in records if r.amount > 0]


def build_sankey(revenue: DepartmentTree, spending: DepartmentTree,
                 config: BucketingConfig | None = None) -> SankeyData:
    """Build the summary flow graph for one jurisdiction and year.

    Args:
        revenue: Revenue tree; its top-level children are the sources.
        spending: Expense tree; its top-level children are the departments.
        config: Bucketing thresholds (default: K=8, 1%, no programs).

    Raises:
        DataValidationError: two graph nodes would share an id.
    """
    config = config or BucketingConfig()
    graph = _GraphBuilder()

    sources = _positive(revenue.top_level())
    departments = _positive(spending.top_level())
    total_revenue = math.fsum(r.amount for r in sources)
    total_spending = math.fsum(r.amount for r in departments)

    revenue_id = revenue.root_record.id
    graph.node(revenue_id, REVENUE_LABEL, STAGE_REVENUE, total_revenue)
    graph.node(HUB_ID, HUB_LABEL, STAGE_HUB, max(total_revenue, total_spending))

    source_bucket = bucket_children(sources, total_revenue,
                                    config.max_children, config.min_share)
    # Folded revenue sources are keyed under the revenue aggregate
    graph.bucketed(HUB_ID, source_bucket, STAGE_REVENUE, other_id(revenue_id),
                   other_label=config.other_label, inbound=True)

    department_bucket = bucket_children(departments, total_spending,
                                        config.max_children, config.min_share)
    graph.bucketed(HUB_ID, department_bucket, STAGE_DEPARTMENT, other_id(HUB_ID),
                   other_label=config.other_label, inbound=False)

    if config.include_programs:
        index_by_id = {rec.id: i for i, rec in enumerate(spending.records)}
        for dept in department_bucket.kept:
            programs = _positive(spending.children_of(index_by_id[dept.id]))
            if not programs:
                continue
            program_bucket = bucket_children(programs, dept.amount,
                                             config.max_children, config.min_share)
            graph.bucketed(dept.id, program_bucket, STAGE_PROGRAM, other_id(dept.id),
                           other_label=config.other_label, inbound=False)

    return SankeyData(
        nodes=tuple(graph.nodes),
        links=tuple(graph.links),
        total_revenue=total_revenue,
        total_spending=total_spending,
    )
