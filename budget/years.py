"""
Year Resolver: which fiscal years are published for a jurisdiction.

Storage layout::

    federal/<year>/
    provincial/<province>/<year>/
    municipal/<province>/<municipality>/<year>/

A year directory counts as published only when its name is a four-digit year
and it holds both ``summary.json`` and ``sankey.json``; anything else is
skipped.  Lookups for unknown jurisdictions return an empty list rather than
raising: "nothing published yet" is a normal state for a jurisdiction being
onboarded.
"""

from __future__ import annotations

import logging

from budget.datasource import DataSource, join_path, resolve_source
from utils.strings import is_slug, is_year_entry

logger = logging.getLogger(__name__)

FEDERAL_SLUG = "federal"
SUMMARY_RECORD = "summary.json"
SANKEY_RECORD = "sankey.json"
REQUIRED_RECORDS = (SUMMARY_RECORD, SANKEY_RECORD)


def get_available_years(jurisdiction_path: str,
                        source: DataSource | None = None) -> list[str]:
    """Return published years under *jurisdiction_path*, latest first.

    Args:
        jurisdiction_path: Logical path such as ``provincial/ontario``.
        source: Data source (default: the process-wide source).

    Returns:
        Duplicate-free year strings sorted numerically descending; empty when
        the path is absent.
    """
    src = resolve_source(source)
    years: set[str] = set()
    for entry in src.list_entries(jurisdiction_path):
        if not is_year_entry(entry):
            continue
        year_path = join_path(jurisdiction_path, entry)
        missing = [r for r in REQUIRED_RECORDS
                   if not src.exists(join_path(year_path, r))]
        if missing:
            logger.warning("skipping %s: missing %s", year_path, ", ".join(missing))
            continue
        years.add(entry)
    return sorted(years, key=int, reverse=True)


def resolve_jurisdiction(slug: str,
                         source: DataSource | None = None) -> tuple[str, str] | None:
    """Map a slug to ``(storage_path, level)``, or ``None`` if unknown.

    ``"federal"`` maps to the federal tree.  A single segment is a province
    when ``provincial/<slug>`` exists, otherwise the first municipality with
    that slug in any province.  Two segments are ``province/municipality``.
    """
    src = resolve_source(source)
    parts = slug.strip("/").split("/") if slug else []
    if not parts or not all(is_slug(p) for p in parts):
        return None

    if len(parts) == 1:
        (name,) = parts
        if name == FEDERAL_SLUG and src.exists(FEDERAL_SLUG):
            return FEDERAL_SLUG, "federal"
        provincial = join_path("provincial", name)
        if src.exists(provincial):
            return provincial, "provincial"
        for province in src.list_entries("municipal"):
            municipal = join_path("municipal", province, name)
            if is_slug(province) and src.exists(municipal):
                return municipal, "municipal"
        return None

    if len(parts) == 2:
        municipal = join_path("municipal", *parts)
        if src.exists(municipal):
            return municipal, "municipal"
    return None


def resolve_jurisdiction_path(slug: str,
                              source: DataSource | None = None) -> str | None:
    """Storage path for *slug*, or ``None`` when the jurisdiction is unknown."""
    resolved = resolve_jurisdiction(slug, source)
    return resolved[0] if resolved else None


def get_available_years_for_jurisdiction(slug: str,
                                         source: DataSource | None = None) -> list[str]:
    """Published years for a jurisdiction slug, latest first.

    Returns an empty list (never raises) when the slug is unknown or nothing
    has been published for it.
    """
    path = resolve_jurisdiction_path(slug, source)
    if path is None:
        return []
    return get_available_years(path, source)


def get_latest_year_for_jurisdiction(slug: str,
                                     source: DataSource | None = None) -> str | None:
    years = get_available_years_for_jurisdiction(slug, source)
    return years[0] if years else None
