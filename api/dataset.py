"""
Dataset access for the API.

Provides a get_source() dependency that hands each request the process-wide
DataSource.  The dataset root is resolved once from the APP_DATA_DIR
environment variable (default: data); create_app(data_dir=...) overrides it.

Usage in a route::

    from api.dataset import get_source
    from fastapi import Depends

    @router.get("/example")
    def example(source=Depends(get_source)):
        ...
"""

from pathlib import Path

from fastapi import HTTPException

from budget.datasource import (
    DataSource,
    FileDataSource,
    get_default_source,
    set_default_source,
)
from utils.config import AppConfig


def use_data_dir(data_dir: Path) -> DataSource:
    """Point the process-wide source at *data_dir* and return it."""
    cfg = AppConfig.from_env()
    source = FileDataSource(Path(data_dir), listing_ttl=cfg.listing_cache_ttl)
    set_default_source(source)
    return source


def get_data_dir() -> Path | None:
    """Root directory of the active source, or None for a non-file source."""
    source = get_default_source()
    return source.root if isinstance(source, FileDataSource) else None


def get_source() -> DataSource:
    """FastAPI dependency: the process-wide DataSource.

    Raises HTTP 503 with a friendly message when the dataset directory is
    missing, instead of answering every lookup with an empty list.
    """
    source = get_default_source()
    if not source.exists(""):
        raise HTTPException(
            status_code=503,
            detail=(
                f"Dataset not found at '{get_data_dir()}'. "
                "Set APP_DATA_DIR to the published budget data directory."
            ),
        )
    return source
