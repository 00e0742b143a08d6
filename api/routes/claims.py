"""
First Nations land-claims endpoint.

GET /api/v1/first-nations/{bcid}/claims  → claims involving a band

The upstream claims service is fail-soft: when it is unreachable or errors,
this endpoint still answers 200 with an empty list.
"""

from fastapi import APIRouter, Path
from fastapi.responses import JSONResponse

from api.models import ClaimOut
from budget.claims import get_claims_by_band
from utils.config import AppConfig

router = APIRouter(prefix="/first-nations", tags=["first-nations"])

_CACHE_HEADER = {"Cache-Control": "public, max-age=3600"}


@router.get(
    "/{bcid}/claims",
    response_model=list[ClaimOut],
    summary="Land claims for a band",
)
def band_claims(
    bcid: str = Path(..., pattern=r"^\d{1,6}$", description="Band number", examples=["123"]),
) -> JSONResponse:
    """Return land claims involving the band, oldest first."""
    claims = get_claims_by_band(bcid, config=AppConfig.from_env())
    return JSONResponse(content=[c.to_dict() for c in claims], headers=_CACHE_HEADER)
