"""Async client for the OpenAI-compatible chat-completions API (Groq by default)."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx

from .settings import settings

_client: httpx.AsyncClient | None = None
_client_lock = asyncio.Lock()

OVERLOADED_STATUSES = frozenset({429, 500, 502, 503, 504, 529})
_OVERLOADED_HINTS = ("overloaded", "unavailable", "capacity", "rate_limit")
_NOT_FOUND_HINTS = ("model_not_found", "model_decommissioned", "does not exist")


class LLMError(RuntimeError):
    """Any failed completion call."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ModelNotFound(LLMError):
    """The requested model id is unknown or retired upstream."""


class ModelOverloaded(LLMError):
    """Upstream is saturated or temporarily down; worth retrying after a pause."""


class LLMNotConfigured(LLMError):
    pass


def classify_error(status_code: int, body: str) -> type[LLMError]:
    lowered = (body or "").lower()
    if status_code == 404 or any(hint in lowered for hint in _NOT_FOUND_HINTS):
        return ModelNotFound
    if status_code in OVERLOADED_STATUSES or any(hint in lowered for hint in _OVERLOADED_HINTS):
        return ModelOverloaded
    return LLMError


def _headers() -> dict[str, str]:
    if not settings.LLM_API_KEY:
        raise LLMNotConfigured("LLM_API_KEY not configured")
    return {
        "Authorization": f"Bearer {settings.LLM_API_KEY}",
        "Content-Type": "application/json",
    }


async def _get_client() -> httpx.AsyncClient:
    global _client
    if _client is None:
        async with _client_lock:
            if _client is None:
                timeout = httpx.Timeout(
                    settings.LLM_TIMEOUT_SECONDS,
                    connect=settings.LLM_CONNECT_TIMEOUT_SECONDS,
                )
                base_url = settings.LLM_API_BASE.rstrip("/") or "https://api.groq.com/openai/v1"
                _client = httpx.AsyncClient(base_url=base_url, timeout=timeout)
    return _client


async def post_json(
    path: str, payload: dict[str, Any], *, timeout: float | None = None
) -> dict[str, Any]:
    client = await _get_client()
    headers = _headers()
    try:
        response = await client.post(path, json=payload, headers=headers, timeout=timeout)
    except httpx.TimeoutException as exc:
        raise ModelOverloaded(f"Request timed out: {exc}") from exc
    except httpx.HTTPError as exc:
        raise LLMError(f"Request failed: {exc}") from exc
    if response.status_code >= 400:
        body = response.text[:300]
        error_cls = classify_error(response.status_code, body)
        raise error_cls(
            f"LLM error {response.status_code}: {body}", status_code=response.status_code
        )
    try:
        return response.json()
    except ValueError as exc:
        raise LLMError("Invalid JSON from LLM API") from exc


async def chat_completion(
    model: str,
    messages: list[dict[str, str]],
    *,
    temperature: float | None = None,
    max_tokens: int | None = None,
) -> str:
    """Return the first choice's message content ('' when the API sent none)."""
    payload = {
        "model": model,
        "messages": messages,
        "temperature": settings.LLM_TEMPERATURE if temperature is None else temperature,
        "max_tokens": settings.LLM_MAX_TOKENS if max_tokens is None else max_tokens,
    }
    response = await post_json("/chat/completions", payload)
    choices = response.get("choices") or []
    if not choices:
        return ""
    message = choices[0].get("message") or {}
    return (message.get("content") or "").strip()


async def close_async_client() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
