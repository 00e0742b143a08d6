"""
Pydantic response models for the API.

Field() descriptions and examples feed the OpenAPI docs.  Amounts are in the
dataset's stored unit unless a ``scale`` query parameter converts them to
dollars.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ── Jurisdiction registry models ──────────────────────────────────────────────

class MunicipalityOut(BaseModel):
    """A municipality with published budget data."""
    slug: str = Field(..., description="Municipality slug", examples=["toronto"])
    name: str = Field(..., description="Display name", examples=["Toronto"])


class ProvinceMunicipalitiesOut(BaseModel):
    """Municipalities of one province, sorted by name."""
    province: str = Field(..., description="Province slug", examples=["ontario"])
    name: str = Field(..., description="Province display name", examples=["Ontario"])
    municipalities: list[MunicipalityOut] = Field(default_factory=list)


class YearsOut(BaseModel):
    """Published fiscal years for a jurisdiction, latest first."""
    slug: str = Field(..., description="Jurisdiction slug", examples=["ontario"])
    years: list[str] = Field(default_factory=list, description="Years, descending", examples=[["2024", "2023"]])
    latest: str | None = Field(None, description="Most recent published year", examples=["2024"])


# ── Jurisdiction data models ──────────────────────────────────────────────────

class SourceOut(BaseModel):
    label: str = Field(..., description="Citation label", examples=["Public Accounts of Ontario"])
    url: str = Field(..., description="Citation URL")
    scope: str | None = Field(None, description="What part of the figures this source covers")


class JurisdictionOut(BaseModel):
    """Jurisdiction metadata from summary.json; unknown keys pass through."""
    model_config = ConfigDict(extra="allow")

    slug: str = Field(..., description="Jurisdiction slug", examples=["ontario"])
    name: str = Field(..., description="Display name", examples=["Ontario"])
    level: str = Field(..., description="federal | provincial | municipal", examples=["provincial"])
    year: str = Field(..., description="Fiscal year", examples=["2023"])
    source: str | None = Field(None, description="Primary citation URL")
    sources: list[SourceOut] = Field(default_factory=list)
    financialYear: str | None = Field(None, description="Fiscal year label", examples=["2023-24"])
    totalEmployees: float | None = Field(None, description="Headcount")
    netDebt: float | None = Field(None, description="Net debt in dollars")
    totalDebt: float | None = Field(None, description="Total debt in dollars")
    debtInterest: float | None = Field(None, description="Debt interest in dollars")
    methodology: str | None = Field(None, description="Methodology notes")
    credits: str | None = Field(None, description="Data credits")


class SankeyNodeOut(BaseModel):
    id: str = Field(..., description="Node id", examples=["spending/health"])
    label: str = Field(..., description="Display label", examples=["Health"])
    stage: int = Field(..., ge=0, le=3, description="0 revenue, 1 hub, 2 department, 3 program")
    value: float = Field(..., description="Node amount", examples=[1000.0])
    synthetic: bool = Field(False, description="True for folded \"Other\" buckets")


class SankeyLinkOut(BaseModel):
    source: str = Field(..., description="Source node id", examples=["revenue/taxes"])
    target: str = Field(..., description="Target node id", examples=["government"])
    value: float = Field(..., ge=0, description="Flow amount", examples=[1900.0])


class SankeyOut(BaseModel):
    """Renderable flow graph."""
    nodes: list[SankeyNodeOut]
    links: list[SankeyLinkOut]
    total_revenue: float = Field(..., description="Sum of drawn revenue sources")
    total_spending: float = Field(..., description="Sum of drawn departments")
    surplus: float = Field(..., description="Revenue minus spending; negative for a deficit")


class JurisdictionDataOut(BaseModel):
    jurisdiction: JurisdictionOut
    sankey: SankeyOut


# ── Department models ─────────────────────────────────────────────────────────

class ExpandedDepartmentOut(BaseModel):
    """One row of the pre-order drill-down table."""
    id: str = Field(..., description="Record id", examples=["spending/health"])
    name: str = Field(..., description="Department or program name", examples=["Health"])
    depth: int = Field(..., ge=0, description="0 for top-level departments")
    amount: float = Field(..., description="Amount in dollars")
    amount_display: str = Field(..., description="Formatted amount", examples=["$1.2B"])
    share: float = Field(..., ge=0, description="Share of parent (of grand total at depth 0)", examples=[0.5])
    share_display: str = Field(..., description="Formatted share", examples=["50.0%"])
    parent_id: str | None = Field(None, description="Parent record id; null at depth 0")
    has_children: bool = Field(False, description="Whether the row can be expanded")


class DepartmentListOut(BaseModel):
    slug: str = Field(..., description="Jurisdiction slug", examples=["ontario"])
    year: str = Field(..., description="Fiscal year", examples=["2023"])
    scale: str = Field(..., description="Stored unit: billions | millions | raw", examples=["raw"])
    departments: list[ExpandedDepartmentOut]


class DepartmentDetailOut(BaseModel):
    """Free-form department detail record."""
    model_config = ConfigDict(extra="allow")

    slug: str = Field(..., description="Department slug", examples=["health"])
    name: str | None = Field(None, description="Department name", examples=["Ministry of Health"])


# ── First Nations models ──────────────────────────────────────────────────────

class ClaimOut(BaseModel):
    """A land claim involving a band."""
    id: int = Field(..., description="Claim id", examples=[1042])
    claimant_bcid: str = Field(..., description="Band number of the claimant", examples=["123"])
    claimant_name: str = Field(..., description="Claimant band name")
    claim_name: str = Field(..., description="Claim title")
    province: str = Field("", description="Province of the claim")
    process_stage: str = Field("", description="Current process stage")
    status: str = Field("", description="Claim status", examples=["Settled"])
    description: str = Field("", description="Claim description")
    band_bcids: list[str] = Field(default_factory=list)
    involved_band_names: list[str] = Field(default_factory=list)
    key_dates: dict[str, str] = Field(default_factory=dict)
    first_key_date: str | None = None
    last_key_date: str | None = None
    settlement_amount: float | None = Field(None, description="Settlement amount in dollars")
    settlement_date: str | None = None
    tribunal_award: float | None = None
    tribunal_award_implementation_date: str | None = None
    total_payments: float | None = None


# ── Meta models ───────────────────────────────────────────────────────────────

class HealthOut(BaseModel):
    status: str = Field(..., description="ok | no_dataset", examples=["ok"])
    data_dir: str | None = Field(None, description="Dataset root in use")
    provinces: int | None = Field(None, description="Provinces with published data")


class ErrorResponse(BaseModel):
    """Standard error response body."""
    error: str = Field(..., description="Short error category", examples=["Not found"])
    detail: str | None = Field(None, description="Extended error detail")
    status_code: int = Field(..., ge=400, le=599, description="HTTP status code", examples=[404])


def error_body(error: str, detail: Any, status_code: int) -> dict[str, Any]:
    return ErrorResponse(
        error=error,
        detail=None if detail is None else str(detail),
        status_code=status_code,
    ).model_dump()
