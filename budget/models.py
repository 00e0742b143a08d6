"""
Entity types for the budget core.

All entities are frozen dataclasses rebuilt from the persisted dataset on
every request; none is mutated after construction.

The department tree is stored as an arena: ``DepartmentTree.records`` is a
tuple of ``DepartmentRecord`` and each record refers to its children by
index.  Index 0 is always the root.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator


# ── Jurisdictions ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class SourceRef:
    """One citation for a jurisdiction's published figures."""

    label: str
    url: str
    scope: str | None = None

    def to_dict(self) -> dict[str, str]:
        d = {"label": self.label, "url": self.url}
        if self.scope:
            d["scope"] = self.scope
        return d


@dataclass(frozen=True)
class JurisdictionMeta:
    """Metadata read from a year's ``summary.json``."""

    slug: str
    name: str
    level: str                              # federal | provincial | municipal
    year: str
    source: str | None = None               # primary citation URL
    sources: tuple[SourceRef, ...] = ()
    financial_year: str | None = None
    total_employees: float | None = None
    net_debt: float | None = None
    total_debt: float | None = None
    debt_interest: float | None = None
    methodology: str | None = None
    credits: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "slug": self.slug,
            "name": self.name,
            "level": self.level,
            "year": self.year,
            "source": self.source,
            "sources": [s.to_dict() for s in self.sources],
            "financialYear": self.financial_year,
            "totalEmployees": self.total_employees,
            "netDebt": self.net_debt,
            "totalDebt": self.total_debt,
            "debtInterest": self.debt_interest,
            "methodology": self.methodology,
            "credits": self.credits,
            **self.extra,
        }


@dataclass(frozen=True)
class MunicipalityRef:
    slug: str
    name: str


@dataclass(frozen=True)
class ProvinceMunicipalities:
    """Municipalities with published data inside one province."""

    province: str
    name: str
    municipalities: tuple[MunicipalityRef, ...]


# ── Department tree ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class DepartmentRecord:
    """One node of a department/program (or revenue category) tree."""

    id: str
    name: str
    amount: float
    children: tuple[int, ...] = ()
    parent: int | None = None


@dataclass(frozen=True)
class DepartmentTree:
    """Arena of DepartmentRecord addressed by index; records[root] is the root."""

    records: tuple[DepartmentRecord, ...]
    root: int = 0

    @property
    def root_record(self) -> DepartmentRecord:
        return self.records[self.root]

    @property
    def total(self) -> float:
        return self.root_record.amount

    def __len__(self) -> int:
        return len(self.records)

    def children_of(self, index: int) -> list[DepartmentRecord]:
        return [self.records[i] for i in self.records[index].children]

    def top_level(self) -> list[DepartmentRecord]:
        """Direct children of the root (top-level departments or sources)."""
        return self.children_of(self.root)

    def index_of(self, record_id: str) -> int:
        for i, rec in enumerate(self.records):
            if rec.id == record_id:
                return i
        raise KeyError(record_id)

    def walk(self) -> Iterator[tuple[int, int]]:
        """Yield (index, depth) in pre-order, root at depth 0."""
        stack = [(self.root, 0)]
        while stack:
            index, depth = stack.pop()
            yield index, depth
            # Reversed so the first child is visited first
            for child in reversed(self.records[index].children):
                stack.append((child, depth + 1))


@dataclass(frozen=True)
class ExpandedDepartment:
    """Read-only, depth-annotated projection of one DepartmentRecord."""

    id: str
    name: str
    depth: int
    amount: float
    share: float                # of parent amount (of grand total at depth 0)
    parent_id: str | None = None
    has_children: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "depth": self.depth,
            "amount": self.amount,
            "share": self.share,
            "parent_id": self.parent_id,
            "has_children": self.has_children,
        }


# ── Sankey graph ──────────────────────────────────────────────────────────────


STAGE_REVENUE = 0
STAGE_HUB = 1
STAGE_DEPARTMENT = 2
STAGE_PROGRAM = 3


@dataclass(frozen=True)
class SankeyNode:
    id: str
    label: str
    stage: int
    value: float
    synthetic: bool = False     # True for folded "Other" buckets

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "stage": self.stage,
            "value": self.value,
            "synthetic": self.synthetic,
        }


@dataclass(frozen=True)
class SankeyLink:
    source: str
    target: str
    value: float

    def to_dict(self) -> dict[str, Any]:
        return {"source": self.source, "target": self.target, "value": self.value}


@dataclass(frozen=True)
class SankeyData:
    """Renderable node/link graph handed to the chart layer.

    Flow conservation is expected, not enforced: ``imbalances()`` reports
    inflow minus outflow for interior nodes so a deficit or surplus can be
    displayed as-is.
    """

    nodes: tuple[SankeyNode, ...]
    links: tuple[SankeyLink, ...]
    total_revenue: float = 0.0
    total_spending: float = 0.0

    @property
    def surplus(self) -> float:
        """Revenue minus spending; negative for a deficit."""
        return self.total_revenue - self.total_spending

    def node_ids(self) -> set[str]:
        return {n.id for n in self.nodes}

    def node(self, node_id: str) -> SankeyNode:
        for n in self.nodes:
            if n.id == node_id:
                return n
        raise KeyError(node_id)

    def inflow(self, node_id: str) -> float:
        return sum(link.value for link in self.links if link.target == node_id)

    def outflow(self, node_id: str) -> float:
        return sum(link.value for link in self.links if link.source == node_id)

    def imbalances(self) -> dict[str, float]:
        """Inflow minus outflow for every node with both in- and out-links."""
        sources = {link.source for link in self.links}
        targets = {link.target for link in self.links}
        return {
            node_id: self.inflow(node_id) - self.outflow(node_id)
            for node_id in sorted(sources & targets)
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "links": [link.to_dict() for link in self.links],
            "total_revenue": self.total_revenue,
            "total_spending": self.total_spending,
            "surplus": self.surplus,
        }


@dataclass(frozen=True)
class JurisdictionData:
    """Result of a successful (jurisdiction, year) load."""

    jurisdiction: JurisdictionMeta
    sankey: SankeyData

    def to_dict(self) -> dict[str, Any]:
        return {
            "jurisdiction": self.jurisdiction.to_dict(),
            "sankey": self.sankey.to_dict(),
        }
