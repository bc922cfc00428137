from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import sentry_sdk
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sentry_sdk.integrations.fastapi import FastApiIntegration

from .api.routes import catalog as catalog_routes
from .api.routes import chat as chat_routes
from .api.routes import reservations as reservations_routes
from .db.core import dispose_engine
from .health import health_checker
from .llm_client import close_async_client
from .logging_config import SERVICE_VERSION, configure_structlog, get_logger
from .metrics import PrometheusMiddleware, get_metrics
from .settings import settings
from .storage import DB
from .utils import (
    add_cors,
    add_rate_limiting,
    add_request_id_tracing,
    add_security_headers,
)

# Configure structured logging (must be done before any logging calls)
configure_structlog(json_logs=not settings.DEBUG)

if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.SENTRY_ENVIRONMENT,
        release=settings.SENTRY_RELEASE or f"obsidian-club@{SERVICE_VERSION}",
        integrations=[FastApiIntegration()],
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
    )

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    await DB.ensure_ready()
    logger.info(
        "startup complete",
        llm_configured=bool(settings.LLM_API_KEY),
        models=list(settings.llm_models),
    )
    yield
    await close_async_client()
    await dispose_engine()


app = FastAPI(
    title="Obsidian Social Club API",
    version=SERVICE_VERSION,
    description="Reservations, events, menu and chat assistant for Obsidian Social Club",
    lifespan=lifespan,
)
add_cors(app)
add_security_headers(app)
add_request_id_tracing(app)
add_rate_limiting(app)
app.add_middleware(PrometheusMiddleware)

app.include_router(chat_routes.router)
app.include_router(reservations_routes.router)
app.include_router(catalog_routes.router)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and query strings answer 400 with a single message."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Solicitud inválida")
    return JSONResponse(
        {"error": f"{location}: {message}" if location else message},
        status_code=400,
    )


@app.get("/health")
async def health():
    """Return service health including dependency checks."""
    health_status = await health_checker.check_all()
    status_code = 200 if health_status["status"] == "healthy" else 503
    body = {
        "status": health_status["status"],
        "timestamp": health_status.get("timestamp"),
        # failure messages can carry connection strings
        "checks": _scrub_health_details(health_status.get("checks", {})),
    }
    if settings.DEBUG:
        body["details"] = _scrub_health_details(health_status)
    body["service"] = "obsidian-club"
    body["version"] = SERVICE_VERSION

    return JSONResponse(content=body, status_code=status_code)


@app.get("/metrics")
def metrics():
    """Expose Prometheus metrics."""
    try:
        return get_metrics()
    except Exception:  # pragma: no cover - defensive path
        logger.exception("Metrics export failed")
        raise HTTPException(status_code=503, detail="metrics unavailable")


def _scrub_health_details(payload: dict[str, Any]) -> dict[str, Any]:
    """Remove error text from health payloads before they leave the service."""

    def _scrub(value: Any) -> Any:
        if isinstance(value, dict):
            cleaned: dict[str, Any] = {}
            for key, inner in value.items():
                if key in {"error", "error_type", "traceback"}:
                    continue
                cleaned[key] = _scrub(inner)
            return cleaned
        if isinstance(value, list):
            return [_scrub(item) for item in value]
        return value

    return _scrub(payload)
