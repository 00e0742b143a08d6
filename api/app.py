"""
FastAPI application factory.

Usage:
    python -m api.app                    # Dev server on port 8000
    APP_DATA_DIR=/srv/budget-data python -m api.app

OpenAPI docs available at http://localhost:8000/docs after starting.

Structured JSON logging when APP_LOG_FORMAT=json.
CORS middleware with configurable origins via APP_CORS_ORIGINS.
"""

import json
import logging
import time
import uuid
import warnings
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.dataset import get_data_dir, use_data_dir
from api.models import HealthOut, error_body
from api.routes import claims, jurisdictions
from budget.datasource import get_default_source
from budget.errors import DataNotFound, DataValidationError
from budget.registry import list_provinces
from utils.config import AppConfig

# ── Configuration ─────────────────────────────────────────────────────────────
_cfg = AppConfig.from_env()

# ── Structured JSON logging ───────────────────────────────────────────────────


class _JsonFormatter(logging.Formatter):
    """Emit log records as newline-delimited JSON."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Merge extra fields added via logger.info("...", extra={...})
        for key in ("method", "path", "status", "duration_ms", "client_ip",
                    "request_id"):
            if hasattr(record, key):
                data[key] = getattr(record, key)
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data)


_logger = logging.getLogger("budget_flows_api")
_handler = logging.StreamHandler()
if _cfg.log_format == "json":
    _handler.setFormatter(_JsonFormatter())
else:
    _handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    )
logging.basicConfig(handlers=[_handler], level=logging.INFO, force=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Warn on startup when the dataset directory is missing."""
    data_dir = get_data_dir()
    if data_dir is not None and not data_dir.exists():
        warnings.warn(
            f"Dataset not found at {data_dir}. "
            "Set APP_DATA_DIR to the published budget data directory.",
            stacklevel=2,
        )
    yield


def create_app(data_dir: Path | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        data_dir: Override the dataset root (useful for testing).

    Returns:
        Configured FastAPI application instance.
    """
    if data_dir is not None:
        use_data_dir(data_dir)

    app = FastAPI(
        title="Canada Budget Flows API",
        summary="Read-only API over published Canadian government budget data.",
        description=(
            "## Canada Budget Flows API\n\n"
            "Serves federal, provincial and municipal budget data as flow "
            "graphs and drill-down tables, plus First Nations land claims.\n\n"
            "### Key concepts\n"
            "- **Slug**: `federal`, `<province>` or `<province>/<municipality>`.\n"
            "- **Year**: four-digit fiscal year; only published years are served.\n"
            "- **Sankey graph**: revenue sources → Government → departments. "
            f"At most {_cfg.sankey_max_children} children stay visible per parent; "
            f"children under {_cfg.sankey_min_share:.0%} of their parent fold "
            "into an \"Other\" node.\n"
            "- **Amounts** are returned in the dataset's stored unit unless a "
            "`scale` parameter converts them."
        ),
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=[
            {
                "name": "jurisdictions",
                "description": "Jurisdiction registry, published years, flow graphs and departments.",
            },
            {
                "name": "first-nations",
                "description": "Land claims involving First Nations bands.",
            },
            {
                "name": "meta",
                "description": "Health check.",
            },
        ],
    )

    # ── CORS middleware ───────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cfg.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "HEAD", "OPTIONS"],
        allow_headers=["*"],
    )

    # ── Request logging middleware ────────────────────────────────────────────

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log each request and tag the response with a request id."""
        request_id = str(uuid.uuid4())[:8]
        start = time.monotonic()
        client_ip = request.client.host if request.client else "unknown"
        path = request.url.path

        response = await call_next(request)
        duration_ms = (time.monotonic() - start) * 1000
        response.headers["X-Request-ID"] = request_id

        if _cfg.log_format == "json":
            _logger.info(
                "request",
                extra={
                    "method": request.method,
                    "path": path,
                    "status": response.status_code,
                    "duration_ms": round(duration_ms, 1),
                    "client_ip": client_ip,
                    "request_id": request_id,
                },
            )
        else:
            _logger.info(
                "method=%s path=%s status=%d duration_ms=%.1f ip=%s rid=%s",
                request.method, path, response.status_code, duration_ms,
                client_ip, request_id,
            )
        if duration_ms > 500:
            _logger.warning(
                "slow_request method=%s path=%s duration_ms=%.1f",
                request.method, path, duration_ms,
            )
        return response

    # ── Error handling ────────────────────────────────────────────────────────

    @app.exception_handler(DataNotFound)
    async def not_found_handler(request: Request, exc: DataNotFound):
        return JSONResponse(status_code=404, content=error_body("Not found", exc, 404))

    @app.exception_handler(DataValidationError)
    async def data_error_handler(request: Request, exc: DataValidationError):
        """Malformed published data is a pipeline defect, not a client error."""
        _logger.error("invalid data path=%s: %s", request.url.path, exc)
        return JSONResponse(status_code=500, content=error_body("Invalid data", exc, 500))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content=error_body("Invalid request", exc.errors(), 422),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Catch unhandled exceptions and return JSON instead of HTML traceback."""
        _logger.exception("unhandled error path=%s", request.url.path)
        return JSONResponse(
            status_code=500,
            content=error_body("Internal server error", exc, 500),
        )

    # ── Health check ──────────────────────────────────────────────────────────

    @app.get("/health", tags=["meta"], summary="Health check", response_model=HealthOut)
    def health():
        """Return 200 OK if the API is running and the dataset is readable."""
        data_dir = get_data_dir()
        source = get_default_source()
        if not source.exists(""):
            return JSONResponse(
                status_code=503,
                content={"status": "no_dataset",
                         "data_dir": str(data_dir) if data_dir else None},
            )
        return {
            "status": "ok",
            "data_dir": str(data_dir) if data_dir else None,
            "provinces": len(list_provinces(source)),
        }

    # ── Register routers ──────────────────────────────────────────────────────

    prefix = "/api/v1"
    app.include_router(jurisdictions.router, prefix=prefix)
    app.include_router(claims.router,        prefix=prefix)

    return app


# Singleton instance for uvicorn
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.app:app",
        host=_cfg.api_host,
        port=_cfg.api_port,
        reload=True,
        log_level="info",
    )
