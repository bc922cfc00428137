"""Health check module with dependency verification."""

from __future__ import annotations

import time
from typing import Any

from .settings import settings


def _is_configured(value: str | None) -> bool:
    """Return True when a config string is non-empty after trimming."""
    if value is None:
        return False
    return bool(value.strip())


class HealthChecker:
    """Health checker for the store and the chat assistant's dependencies."""

    def __init__(self) -> None:
        self._check_cache: dict[str, tuple[dict[str, Any], float]] = {}
        self._cache_ttl = 30.0

    async def check_all(self) -> dict[str, Any]:
        checks = {
            "database": await self._check_database(),
            "llm": self._check_llm(),
            "sentry": self._check_sentry(),
        }

        # Unconfigured optional dependencies do not degrade the service.
        all_ok = all(check.get("status") in {"ok", "disabled"} for check in checks.values())

        return {
            "status": "healthy" if all_ok else "degraded",
            "timestamp": time.time(),
            "checks": checks,
        }

    async def _check_database(self) -> dict[str, Any]:
        """Count rows in the collections the chat and booking flows read."""
        try:
            from .storage import DB

            return {"status": "ok", **(await DB.counts())}
        except Exception as exc:
            return {
                "status": "error",
                "error": str(exc),
                "error_type": type(exc).__name__,
            }

    def _check_llm(self) -> dict[str, Any]:
        """Configuration only; the upstream API is not called from health checks."""
        cached = self._get_cached_check("llm")
        if cached is not None:
            return cached
        if not _is_configured(settings.LLM_API_KEY):
            result = {"status": "disabled", "reason": "LLM_API_KEY not configured"}
        else:
            result = {
                "status": "ok",
                "models": list(settings.llm_models),
                "attempts_per_model": settings.LLM_ATTEMPTS_PER_MODEL,
            }
        self._cache_check("llm", result)
        return result

    def _check_sentry(self) -> dict[str, Any]:
        cached = self._get_cached_check("sentry")
        if cached is not None:
            return cached
        dsn = settings.SENTRY_DSN
        if not _is_configured(dsn):
            result = {"status": "disabled", "reason": "SENTRY_DSN not configured"}
        elif "@" in dsn and "//" in dsn:
            result = {
                "status": "ok",
                "environment": settings.SENTRY_ENVIRONMENT,
                "release": settings.SENTRY_RELEASE or "unset",
            }
        else:
            result = {"status": "error", "error": "Invalid SENTRY_DSN format"}
        self._cache_check("sentry", result)
        return result

    def _get_cached_check(self, key: str) -> dict[str, Any] | None:
        if key not in self._check_cache:
            return None
        result, timestamp = self._check_cache[key]
        if time.time() - timestamp > self._cache_ttl:
            return None
        return result

    def _cache_check(self, key: str, result: dict[str, Any]) -> None:
        self._check_cache[key] = (result, time.time())

    def clear_cache(self) -> None:
        """Clear cached dependency checks (useful for tests)."""
        self._check_cache.clear()


health_checker = HealthChecker()


__all__ = ["health_checker", "HealthChecker"]
