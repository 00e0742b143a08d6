"""
Jurisdiction endpoints.

GET /api/v1/jurisdictions/provinces       → province slugs with published data
GET /api/v1/jurisdictions/municipalities  → municipalities grouped by province
GET /api/v1/jurisdictions/years           → published years for a slug
GET /api/v1/jurisdictions/data            → metadata + summary Sankey graph
GET /api/v1/jurisdictions/departments     → pre-order drill-down table
GET /api/v1/jurisdictions/department      → one department's detail record

Unknown jurisdictions or years raise DataNotFound, which the app maps to 404.
"""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from api.dataset import get_source
from api.models import (
    DepartmentDetailOut,
    DepartmentListOut,
    ErrorResponse,
    JurisdictionDataOut,
    ProvinceMunicipalitiesOut,
    YearsOut,
)
from budget.datasource import DataSource
from budget.loader import (
    get_department_data,
    get_expanded_departments,
    get_jurisdiction_data,
)
from budget.registry import list_municipalities_by_province, list_provinces
from budget.sankey import BucketingConfig
from budget.years import get_available_years_for_jurisdiction
from utils.config import AppConfig
from utils.formatting import (
    AMOUNT_SCALING_FACTORS,
    format_amount,
    format_percent,
    scale_amount,
)

router = APIRouter(prefix="/jurisdictions", tags=["jurisdictions"])

_CACHE_HEADER = {"Cache-Control": "public, max-age=3600"}
_NOT_FOUND = {404: {"model": ErrorResponse, "description": "Jurisdiction or year not found"}}

_SLUG_QUERY = Query(..., description="'federal', '<province>' or '<province>/<municipality>'",
                    examples=["ontario"])
_YEAR_QUERY = Query(..., pattern=r"^\d{4}$", description="Fiscal year", examples=["2023"])


@router.get("/provinces", response_model=list[str], summary="List provinces")
def provinces(source: DataSource = Depends(get_source)) -> JSONResponse:
    """Return province slugs with at least one published year, alphabetically."""
    return JSONResponse(content=list_provinces(source), headers=_CACHE_HEADER)


@router.get(
    "/municipalities",
    response_model=list[ProvinceMunicipalitiesOut],
    summary="List municipalities by province",
)
def municipalities(source: DataSource = Depends(get_source)) -> JSONResponse:
    """Return municipalities grouped by province, sorted by display name."""
    data = [
        {
            "province": group.province,
            "name": group.name,
            "municipalities": [{"slug": m.slug, "name": m.name}
                               for m in group.municipalities],
        }
        for group in list_municipalities_by_province(source)
    ]
    return JSONResponse(content=data, headers=_CACHE_HEADER)


@router.get("/years", response_model=YearsOut, summary="List published years")
def years(slug: str = _SLUG_QUERY,
          source: DataSource = Depends(get_source)) -> JSONResponse:
    """Return published years, latest first; empty for unknown jurisdictions."""
    found = get_available_years_for_jurisdiction(slug, source)
    content = YearsOut(slug=slug, years=found, latest=found[0] if found else None)
    return JSONResponse(content=content.model_dump(), headers=_CACHE_HEADER)


@router.get(
    "/data",
    response_model=JurisdictionDataOut,
    responses=_NOT_FOUND,
    summary="Jurisdiction metadata and flow graph",
)
def jurisdiction_data(
    slug: str = _SLUG_QUERY,
    year: str = _YEAR_QUERY,
    include_programs: bool = Query(False, description="Add stage-3 program nodes"),
    source: DataSource = Depends(get_source),
) -> JSONResponse:
    """Return jurisdiction metadata plus the summary Sankey graph."""
    bucketing = BucketingConfig.from_app_config(AppConfig.from_env(),
                                                include_programs=include_programs)
    data = get_jurisdiction_data(slug, year, source, bucketing)
    return JSONResponse(content=data.to_dict(), headers=_CACHE_HEADER)


@router.get(
    "/departments",
    response_model=DepartmentListOut,
    responses=_NOT_FOUND,
    summary="Drill-down department table",
)
def departments(
    slug: str = _SLUG_QUERY,
    year: str = _YEAR_QUERY,
    scale: str = Query("raw", pattern="^(billions|millions|raw)$",
                       description="Unit the dataset stores amounts in"),
    source: DataSource = Depends(get_source),
) -> JSONResponse:
    """Return the expense tree in pre-order with depth and share of parent.

    Amounts are converted from the stored unit to dollars and also returned
    formatted for display.
    """
    factor = AMOUNT_SCALING_FACTORS[scale]
    rows = []
    for dept in get_expanded_departments(slug, year, source):
        row = dept.to_dict()
        row["amount"] = scale_amount(dept.amount, factor)
        row["amount_display"] = format_amount(dept.amount, factor)
        row["share_display"] = format_percent(dept.share)
        rows.append(row)
    content = {"slug": slug, "year": year, "scale": scale, "departments": rows}
    return JSONResponse(content=content, headers=_CACHE_HEADER)


@router.get(
    "/department",
    response_model=DepartmentDetailOut,
    responses=_NOT_FOUND,
    summary="Department detail",
)
def department(
    slug: str = _SLUG_QUERY,
    year: str = _YEAR_QUERY,
    department: str = Query(..., description="Department slug", examples=["health"]),
    source: DataSource = Depends(get_source),
) -> JSONResponse:
    """Return the detail record for one department."""
    record = get_department_data(slug, department, year, source)
    return JSONResponse(content=record, headers=_CACHE_HEADER)
