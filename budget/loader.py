"""
Jurisdiction Data Loader: read one (jurisdiction, year) and shape it.

Every operation here validates its inputs the same way: the slug must
resolve and the year must be one of the published years reported by the
Year Resolver, otherwise DataNotFound is raised.  A record that exists but
cannot be decoded or breaks a tree invariant raises DataValidationError.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from budget.datasource import DataSource, join_path, resolve_source
from budget.departments import expand_departments, parse_department_tree
from budget.errors import DataNotFound, DataValidationError
from budget.models import (
    DepartmentTree,
    ExpandedDepartment,
    JurisdictionData,
    JurisdictionMeta,
    SourceRef,
)
from budget.sankey import BucketingConfig, build_sankey
from budget.years import (
    SANKEY_RECORD,
    SUMMARY_RECORD,
    get_available_years,
    resolve_jurisdiction,
)
from utils.config import AppConfig
from utils.strings import is_slug
from utils.validation import is_valid_amount

logger = logging.getLogger(__name__)

DEPARTMENTS_DIR = "departments"
RECORD_SUFFIX = ".json"

# summary.json key -> JurisdictionMeta field
_META_FIELDS = {
    "source": "source",
    "financialYear": "financial_year",
    "methodology": "methodology",
    "credits": "credits",
}
_META_AMOUNTS = {
    "totalEmployees": "total_employees",
    "netDebt": "net_debt",
    "totalDebt": "total_debt",
    "debtInterest": "debt_interest",
}
_META_KNOWN = {"name", "level", "sources", "slug", "year", *_META_FIELDS, *_META_AMOUNTS}


def _year_path(slug: str, year: str, src: DataSource) -> tuple[str, str]:
    """Return ``(year_path, level)`` or raise DataNotFound."""
    resolved = resolve_jurisdiction(slug, src)
    if resolved is None:
        raise DataNotFound(f"unknown jurisdiction {slug!r}", slug=slug, year=year)
    path, level = resolved
    if year not in get_available_years(path, src):
        raise DataNotFound(f"no published data for {slug!r} in {year}",
                           slug=slug, year=year)
    return join_path(path, year), level


def _read(src: DataSource, path: str, slug: str, year: str) -> Any:
    try:
        return src.read_record(path)
    except FileNotFoundError as exc:
        raise DataNotFound(f"record {path} not found", slug=slug, year=year) from exc


def _parse_sources(raw: Any, path: str) -> tuple[SourceRef, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise DataValidationError("sources must be a list", path=path)
    refs = []
    for entry in raw:
        if not isinstance(entry, dict) or not entry.get("url"):
            raise DataValidationError(f"source entry without url: {entry!r}", path=path)
        refs.append(SourceRef(label=str(entry.get("label") or entry["url"]),
                              url=str(entry["url"]), scope=entry.get("scope")))
    return tuple(refs)


def parse_summary(raw: Any, slug: str, level: str, year: str,
                  path: str | None = None) -> JurisdictionMeta:
    """Build JurisdictionMeta from a decoded summary.json.

    Unknown keys are kept in ``extra``; non-numeric figures become ``None``.
    The level always comes from where the record is stored; a differing
    ``level`` key is logged and ignored.
    """
    if not isinstance(raw, dict):
        raise DataValidationError("summary must be an object", path=path)
    name = raw.get("name")
    if not isinstance(name, str) or not name.strip():
        raise DataValidationError("summary has no name", path=path)

    fields: dict[str, Any] = {}
    for key, attr in _META_FIELDS.items():
        value = raw.get(key)
        fields[attr] = str(value) if value is not None else None
    for key, attr in _META_AMOUNTS.items():
        value = raw.get(key)
        fields[attr] = float(value) if is_valid_amount(value, allow_negative=True) else None

    stated_level = raw.get("level")
    if stated_level is not None and stated_level != level:
        logger.warning("%s: summary level %r ignored, stored as %s",
                       path or slug, stated_level, level)

    return JurisdictionMeta(
        slug=slug,
        name=name.strip(),
        level=level,
        year=year,
        sources=_parse_sources(raw.get("sources"), path or slug),
        extra={k: v for k, v in raw.items() if k not in _META_KNOWN},
        **fields,
    )


def parse_sankey_record(raw: Any,
                        path: str | None = None) -> tuple[DepartmentTree, DepartmentTree]:
    """Split a decoded sankey.json into ``(revenue, spending)`` trees.

    Revenue may carry negative adjustments; spending may not.
    """
    if not isinstance(raw, dict):
        raise DataValidationError("sankey record must be an object", path=path)
    for key in ("revenue_data", "spending_data"):
        if raw.get(key) is None:
            raise DataValidationError(f"missing {key}", path=path)
    revenue = parse_department_tree(raw["revenue_data"], root_id="revenue",
                                    allow_negative=True, path=path)
    spending = parse_department_tree(raw["spending_data"], root_id="spending",
                                     allow_negative=False, path=path)
    return revenue, spending


def load_trees(slug: str, year: str,
               source: DataSource | None = None) -> tuple[DepartmentTree, DepartmentTree]:
    src = resolve_source(source)
    year_path, _ = _year_path(slug, year, src)
    record_path = join_path(year_path, SANKEY_RECORD)
    return parse_sankey_record(_read(src, record_path, slug, year), record_path)


def get_jurisdiction_data(slug: str, year: str,
                          source: DataSource | None = None,
                          bucketing: BucketingConfig | None = None) -> JurisdictionData:
    """Metadata plus the summary flow graph for one jurisdiction and year.

    Args:
        slug: ``"federal"``, ``"<province>"`` or ``"<province>/<municipality>"``.
        year: One of the years ``get_available_years_for_jurisdiction`` returns.
        source: Data source (default: the process-wide source).
        bucketing: Sankey thresholds (default: from the environment).

    Raises:
        DataNotFound: jurisdiction or year absent.
        DataValidationError: a record is malformed.
    """
    src = resolve_source(source)
    year_path, level = _year_path(slug, year, src)

    summary_path = join_path(year_path, SUMMARY_RECORD)
    meta = parse_summary(_read(src, summary_path, slug, year), slug, level, year,
                         path=summary_path)

    sankey_path = join_path(year_path, SANKEY_RECORD)
    revenue, spending = parse_sankey_record(_read(src, sankey_path, slug, year),
                                            sankey_path)
    if bucketing is None:
        bucketing = BucketingConfig.from_app_config(AppConfig.from_env())
    sankey = build_sankey(revenue, spending, bucketing)

    logger.info("Loaded %s %s: %d nodes, %d links",
                slug, year, len(sankey.nodes), len(sankey.links))
    return JurisdictionData(jurisdiction=meta, sankey=sankey)


def get_expanded_departments(slug: str, year: str,
                             source: DataSource | None = None) -> list[ExpandedDepartment]:
    """Full expense tree in pre-order for drill-down tables.

    Raises:
        DataNotFound: jurisdiction or year absent.
        DataValidationError: the expense tree is malformed.
    """
    _, spending = load_trees(slug, year, source)
    return expand_departments(spending)


def list_departments(slug: str, year: str,
                     source: DataSource | None = None) -> list[str]:
    """Department slugs that have a detail record; empty when none exist."""
    src = resolve_source(source)
    try:
        year_path, _ = _year_path(slug, year, src)
    except DataNotFound:
        return []
    names = []
    for entry in src.list_entries(join_path(year_path, DEPARTMENTS_DIR)):
        if entry.endswith(RECORD_SUFFIX):
            stem = entry[:-len(RECORD_SUFFIX)]
            if is_slug(stem):
                names.append(stem)
    return names


def get_department_data(slug: str, department: str, year: str,
                        source: DataSource | None = None) -> dict[str, Any]:
    """Detail record for one department, with ``slug`` merged in.

    Raises:
        DataNotFound: jurisdiction, year or department absent.
        DataValidationError: the record is not an object.
    """
    src = resolve_source(source)
    if not is_slug(department):
        raise DataNotFound(f"unknown department {department!r}", slug=slug, year=year)
    year_path, _ = _year_path(slug, year, src)
    path = join_path(year_path, DEPARTMENTS_DIR, department + RECORD_SUFFIX)
    record = _read(src, path, slug, year)
    if not isinstance(record, dict):
        raise DataValidationError("department record must be an object", path=path)
    return {**record, "slug": department}


def get_file_last_modified(path: str,
                           source: DataSource | None = None) -> datetime | None:
    """Modification time of a record as reported by the data source.

    ``None`` when the record is absent or *path* lies outside the dataset.
    """
    try:
        return resolve_source(source).last_modified(path)
    except DataValidationError as exc:
        logger.warning("no modification time for %r: %s", path, exc)
        return None
