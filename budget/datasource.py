"""
Data-source capability for the published budget dataset.

The core never touches the filesystem directly.  It talks to a ``DataSource``
with four operations over slash-separated logical paths relative to the
dataset root::

    exists("provincial/ontario/2023/summary.json")
    list_entries("provincial")            -> ["alberta", "ontario", ...]
    read_record("provincial/ontario/2023/sankey.json")
    last_modified("provincial/ontario/2023/summary.json")

``FileDataSource`` serves a directory of JSON files and memoizes directory
listings in a single-flight TTL cache.  ``InMemoryDataSource`` serves a dict
of path -> record and is what the tests use.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Any, Mapping, Protocol

from budget.errors import DataValidationError
from utils.cache import TTLCache
from utils.config import AppConfig

logger = logging.getLogger(__name__)


def join_path(*parts: str) -> str:
    """Join logical path segments, ignoring empty ones."""
    cleaned = [p.strip("/") for p in parts if p and p.strip("/")]
    return str(PurePosixPath(*cleaned)) if cleaned else ""


class DataSource(Protocol):
    def exists(self, path: str) -> bool: ...

    def list_entries(self, path: str) -> list[str]: ...

    def read_record(self, path: str) -> Any: ...

    def last_modified(self, path: str) -> datetime | None: ...


class FileDataSource:
    """DataSource backed by a directory tree of JSON records."""

    def __init__(self, root: Path, listing_ttl: float = 300.0,
                 listing_cache_size: int = 1024) -> None:
        self.root = Path(root)
        self._listings = TTLCache(maxsize=listing_cache_size,
                                  ttl_seconds=listing_ttl)

    def __repr__(self) -> str:
        return f"FileDataSource({str(self.root)!r})"

    def _resolve(self, path: str) -> Path:
        rel = PurePosixPath(path) if path else PurePosixPath()
        if rel.is_absolute() or ".." in rel.parts:
            raise DataValidationError("path escapes the dataset root", path=path)
        return self.root.joinpath(*rel.parts)

    def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    def list_entries(self, path: str) -> list[str]:
        """Names directly under *path*, sorted; empty when *path* is absent."""
        return list(self._listings.get_or_set(path, lambda: self._scan(path)))

    def _scan(self, path: str) -> tuple[str, ...]:
        target = self._resolve(path)
        logger.debug("listing %s", target)
        if not target.is_dir():
            return ()
        return tuple(sorted(
            entry.name for entry in target.iterdir()
            if not entry.name.startswith(".")
        ))

    def read_record(self, path: str) -> Any:
        """Decode the JSON record at *path*.

        Raises:
            FileNotFoundError: record absent
            DataValidationError: record is not valid JSON
        """
        target = self._resolve(path)
        if not target.is_file():
            raise FileNotFoundError(path)
        try:
            with open(target, "r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as exc:
            raise DataValidationError(f"invalid JSON ({exc.msg})", path=path) from exc

    def last_modified(self, path: str) -> datetime | None:
        target = self._resolve(path)
        try:
            mtime = target.stat().st_mtime
        except OSError:
            return None
        return datetime.fromtimestamp(mtime, tz=timezone.utc)

    def clear_cache(self) -> None:
        self._listings.clear()


class InMemoryDataSource:
    """DataSource over a mapping of logical path -> decoded record.

    Directories are implied by the record paths; ``file_stats`` optionally
    maps a record path to an ISO-8601 modification timestamp.
    """

    def __init__(self, records: Mapping[str, Any],
                 file_stats: Mapping[str, str] | None = None) -> None:
        self._records = {join_path(k): v for k, v in records.items()}
        self._file_stats = dict(file_stats or {})

    def exists(self, path: str) -> bool:
        path = join_path(path)
        if path in self._records:
            return True
        if not path:
            return bool(self._records)
        prefix = path + "/"
        return any(k.startswith(prefix) for k in self._records)

    def list_entries(self, path: str) -> list[str]:
        path = join_path(path)
        prefix = path + "/" if path else ""
        names = {
            k[len(prefix):].split("/", 1)[0]
            for k in self._records
            if k.startswith(prefix) and len(k) > len(prefix)
        }
        return sorted(names)

    def read_record(self, path: str) -> Any:
        path = join_path(path)
        if path not in self._records:
            raise FileNotFoundError(path)
        return self._records[path]

    def last_modified(self, path: str) -> datetime | None:
        stamp = self._file_stats.get(join_path(path))
        return datetime.fromisoformat(stamp) if stamp else None


# ── Process-wide default source ───────────────────────────────────────────────

_default_source: DataSource | None = None
_default_lock = threading.Lock()


def get_default_source() -> DataSource:
    """Return the process-wide FileDataSource, creating it on first use.

    The root comes from ``APP_DATA_DIR`` (see utils.config.AppConfig).
    """
    global _default_source
    if _default_source is None:
        with _default_lock:
            if _default_source is None:
                cfg = AppConfig.from_env()
                _default_source = FileDataSource(
                    cfg.data_dir, listing_ttl=cfg.listing_cache_ttl
                )
    return _default_source


def set_default_source(source: DataSource | None) -> None:
    """Replace (or with ``None`` reset) the process-wide source."""
    global _default_source
    with _default_lock:
        _default_source = source


def resolve_source(source: DataSource | None) -> DataSource:
    return source if source is not None else get_default_source()
