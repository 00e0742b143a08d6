"""
Jurisdiction Registry: enumerate provinces and municipalities.

Both listings are derived from the dataset's directory structure and only
include jurisdictions with at least one published year, so every entry they
return can be rendered.
"""

from __future__ import annotations

import logging

from budget.datasource import DataSource, join_path, resolve_source
from budget.errors import DataNotFound, DataValidationError
from budget.models import MunicipalityRef, ProvinceMunicipalities
from budget.years import SUMMARY_RECORD, get_available_years
from utils.config import KnownValues
from utils.strings import is_slug

logger = logging.getLogger(__name__)


def list_provinces(source: DataSource | None = None) -> list[str]:
    """Province slugs with published provincial data, sorted alphabetically.

    Example:
        list_provinces()  # ["alberta", "british-columbia", "ontario"]
    """
    src = resolve_source(source)
    return sorted(
        entry for entry in src.list_entries("provincial")
        if is_slug(entry) and get_available_years(join_path("provincial", entry), src)
    )


def _municipality_name(src: DataSource, path: str, slug: str, year: str) -> str:
    """Display name from the latest summary.json, falling back to the slug."""
    record_path = join_path(path, year, SUMMARY_RECORD)
    try:
        summary = src.read_record(record_path)
    except (FileNotFoundError, DataValidationError) as exc:
        logger.warning("no display name for %s: %s", path, exc)
        return slug
    if isinstance(summary, dict) and isinstance(summary.get("name"), str) and summary["name"]:
        return summary["name"]
    return slug


def list_municipalities_by_province(
    source: DataSource | None = None,
) -> list[ProvinceMunicipalities]:
    """Municipalities with published data, grouped by province.

    Municipalities are sorted by display name and provinces by their display
    name; provinces without any published municipality are omitted.

    Raises:
        DataNotFound: the dataset root itself is absent (a deployment defect).
    """
    src = resolve_source(source)
    if not src.exists(""):
        raise DataNotFound("dataset root not found")

    result: list[ProvinceMunicipalities] = []
    for province in src.list_entries("municipal"):
        if not is_slug(province):
            continue
        refs = []
        for slug in src.list_entries(join_path("municipal", province)):
            if not is_slug(slug):
                continue
            path = join_path("municipal", province, slug)
            years = get_available_years(path, src)
            if not years:
                continue
            refs.append(MunicipalityRef(slug=slug,
                                        name=_municipality_name(src, path, slug, years[0])))
        if refs:
            refs.sort(key=lambda r: r.name.casefold())
            result.append(ProvinceMunicipalities(
                province=province,
                name=KnownValues.province_name(province),
                municipalities=tuple(refs),
            ))

    result.sort(key=lambda p: p.name.casefold())
    return result
