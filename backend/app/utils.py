from __future__ import annotations

import asyncio
import ipaddress
import logging
import math
import time
from contextvars import ContextVar
from uuid import uuid4

from fastapi import Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .settings import settings

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")

# POSTs under these prefixes are throttled; everything else passes through.
RATE_LIMITED_PATHS = ("/chat", "/reservations")


def add_cors(app):
    origins = settings.allow_origins
    if not origins:
        return
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["*"],
    )


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        response = await call_next(request)
        headers = {
            "X-Frame-Options": "DENY",
            "X-Content-Type-Options": "nosniff",
            "Referrer-Policy": "no-referrer",
        }
        if request.url.scheme in {"https", "wss"}:
            headers["Strict-Transport-Security"] = "max-age=63072000; includeSubDomains"
        for key, value in headers.items():
            response.headers.setdefault(key, value)
        return response


def add_security_headers(app):
    app.add_middleware(SecurityHeadersMiddleware)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Reuse an incoming X-Request-ID or mint one, and echo it on the response."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        request_id_ctx.set(request_id)
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class RequestIDLogFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        request_id = request_id_ctx.get("")
        record.request_id = request_id if request_id else "-"  # type: ignore[attr-defined]
        return True


def add_request_id_tracing(app):
    app.add_middleware(RequestIDMiddleware)
    logging.getLogger().addFilter(RequestIDLogFilter())


def get_request_id() -> str:
    return request_id_ctx.get("")


class RateLimiter:
    """Per-client token bucket applied to POSTs on the write endpoints."""

    def __init__(self) -> None:
        self._buckets: dict[str, tuple[float, float]] = {}
        self._lock = asyncio.Lock()
        self._last_cleanup = 0.0

    async def dispatch(self, request: Request, call_next):
        limit = settings.RATE_LIMIT_REQUESTS
        window = settings.RATE_LIMIT_WINDOW_SECONDS
        if (
            not settings.RATE_LIMIT_ENABLED
            or limit <= 0
            or window <= 0
            or request.method != "POST"
            or not request.url.path.startswith(RATE_LIMITED_PATHS)
        ):
            return await call_next(request)

        allowed, reset_in = await self._consume(
            self._identifier_for(request), limit, window, time.monotonic()
        )
        if not allowed:
            from .metrics import rate_limit_hits_total

            rate_limit_hits_total.inc()
            retry_after = max(1, math.ceil(reset_in))
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"error": "Demasiadas solicitudes. Intenta de nuevo en un momento."},
                headers={"Retry-After": str(retry_after)},
            )
        return await call_next(request)

    async def _consume(
        self, identifier: str, limit: int, window: int, now: float
    ) -> tuple[bool, float]:
        refill_rate = limit / window
        async with self._lock:
            self._maybe_cleanup(now, window)
            tokens, last = self._buckets.get(identifier, (float(limit), now))
            tokens = min(float(limit), tokens + (now - last) * refill_rate)
            if tokens >= 1:
                self._buckets[identifier] = (tokens - 1, now)
                return True, 0.0
            self._buckets[identifier] = (tokens, now)
            return False, (1 - tokens) / refill_rate

    def reset(self) -> None:
        self._buckets.clear()
        self._last_cleanup = 0.0

    def _maybe_cleanup(self, now: float, window: int) -> None:
        """Drop buckets idle for three windows; runs at most once per window."""
        if now - self._last_cleanup < window:
            return
        stale_cutoff = now - window * 3
        stale = [key for key, (_, last) in self._buckets.items() if last < stale_cutoff]
        for key in stale:
            del self._buckets[key]
        self._last_cleanup = now

    def _identifier_for(self, request: Request) -> str:
        # X-Forwarded-For is only trusted from loopback (the local reverse proxy).
        direct = request.client.host if request.client else None
        forwarded = request.headers.get("x-forwarded-for")
        if direct and forwarded and _is_loopback(direct):
            candidate = forwarded.split(",")[0].strip()
            try:
                ipaddress.ip_address(candidate)
            except ValueError:
                return direct
            return candidate
        return direct or "anonymous"


def _is_loopback(ip: str) -> bool:
    try:
        return ipaddress.ip_address(ip).is_loopback
    except ValueError:
        return False


def add_rate_limiting(app):
    limiter = RateLimiter()
    app.state.rate_limiter = limiter

    @app.middleware("http")
    async def _rate_limit(request: Request, call_next):  # type: ignore[override]
        return await limiter.dispatch(request, call_next)
