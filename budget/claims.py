"""
Land-claims lookup for First Nations bands.

Claims live in an external PostgREST service and are fetched through its
``get_claims_by_band`` RPC.  The lookup is fail-soft: a band page still
renders when the claims service is down, so every failure is logged and
turned into an empty list.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import requests

from utils.config import AppConfig
from utils.http import RetryStrategy, SessionManager

logger = logging.getLogger(__name__)

CLAIMS_RPC = "rpc/get_claims_by_band"


@dataclass(frozen=True)
class Claim:
    """One specific or comprehensive land claim involving a band."""

    id: int
    claimant_bcid: str
    claimant_name: str
    claim_name: str
    province: str = ""
    process_stage: str = ""
    status: str = ""
    description: str = ""
    band_bcids: tuple[str, ...] = ()
    involved_band_names: tuple[str, ...] = ()
    key_dates: dict[str, str] = field(default_factory=dict)
    first_key_date: Optional[str] = None
    last_key_date: Optional[str] = None
    settlement_amount: Optional[float] = None
    settlement_date: Optional[str] = None
    tribunal_award: Optional[float] = None
    tribunal_award_implementation_date: Optional[str] = None
    total_payments: Optional[float] = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Claim":
        return cls(
            id=int(row["id"]),
            claimant_bcid=str(row.get("claimant_bcid") or ""),
            claimant_name=row.get("claimant_name") or "",
            claim_name=row.get("claim_name") or "",
            province=row.get("province") or "",
            process_stage=row.get("process_stage") or "",
            status=row.get("status") or "",
            description=row.get("description") or "",
            band_bcids=tuple(str(b) for b in row.get("band_bcids") or ()),
            involved_band_names=tuple(row.get("involved_band_names") or ()),
            key_dates=dict(row.get("key_dates") or {}),
            first_key_date=row.get("first_key_date"),
            last_key_date=row.get("last_key_date"),
            settlement_amount=row.get("settlement_amount"),
            settlement_date=row.get("settlement_date"),
            tribunal_award=row.get("tribunal_award"),
            tribunal_award_implementation_date=row.get("tribunal_award_implementation_date"),
            total_payments=row.get("total_payments"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "claimant_bcid": self.claimant_bcid,
            "claimant_name": self.claimant_name,
            "claim_name": self.claim_name,
            "province": self.province,
            "process_stage": self.process_stage,
            "status": self.status,
            "description": self.description,
            "band_bcids": list(self.band_bcids),
            "involved_band_names": list(self.involved_band_names),
            "key_dates": dict(self.key_dates),
            "first_key_date": self.first_key_date,
            "last_key_date": self.last_key_date,
            "settlement_amount": self.settlement_amount,
            "settlement_date": self.settlement_date,
            "tribunal_award": self.tribunal_award,
            "tribunal_award_implementation_date": self.tribunal_award_implementation_date,
            "total_payments": self.total_payments,
        }


def _sort_key(claim: Claim) -> tuple[bool, str]:
    # Undated claims sort first, then oldest first
    return (claim.first_key_date is not None, claim.first_key_date or "")


def get_claims_by_band(bcid: str, session: requests.Session | None = None,
                       config: AppConfig | None = None) -> list[Claim]:
    """Fetch the land claims involving band *bcid*, oldest first.

    Args:
        bcid: Band number as published by Crown-Indigenous Relations.
        session: HTTP session to use (default: a retrying pooled session).
        config: Claims endpoint settings (default: from the environment).

    Returns:
        Claims sorted by first key date; ``[]`` when the service answers
        with an error status, cannot be reached, or returns rows that do not
        decode.
    """
    cfg = config or AppConfig.from_env()
    url = f"{cfg.claims_api_url}/{CLAIMS_RPC}"
    headers = {"apikey": cfg.claims_api_key, "Content-Type": "application/json"}

    manager = None
    if session is None:
        manager = SessionManager(RetryStrategy())
        session = manager.session
    try:
        response = session.post(url, json={"p_bcid": bcid}, headers=headers,
                                timeout=cfg.claims_timeout)
        if not response.ok:
            logger.error("Claims API error for band %s: %s %s",
                         bcid, response.status_code, response.reason)
            return []
        rows = response.json() or []
    except requests.RequestException as exc:
        logger.error("Claims API unreachable for band %s: %s", bcid, exc)
        return []
    except ValueError as exc:
        logger.error("Claims API returned invalid JSON for band %s: %s", bcid, exc)
        return []
    finally:
        if manager is not None:
            manager.close()

    claims = []
    for row in rows if isinstance(rows, list) else []:
        try:
            claims.append(Claim.from_row(row))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("skipping malformed claim row for band %s: %s", bcid, exc)
    claims.sort(key=_sort_key)
    logger.info("Fetched %d claims for band %s", len(claims), bcid)
    return claims
