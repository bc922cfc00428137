"""Message assembly and the completion call behind the retry policy."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from .. import llm_client
from ..llm_client import LLMNotConfigured
from ..settings import settings
from .policy import RetryPolicy, attempt_with_policy

logger = logging.getLogger(__name__)

EMPTY_REPLY_FALLBACK = "Lo siento, no pude procesar tu mensaje."
CHAT_ROLES = ("user", "assistant")

CompletionCall = Callable[[str, list[dict[str, str]]], Awaitable[str]]


def policy_from_settings() -> RetryPolicy:
    return RetryPolicy(
        models=settings.llm_models,
        attempts_per_model=settings.LLM_ATTEMPTS_PER_MODEL,
        backoff_seconds=settings.LLM_BACKOFF_SECONDS,
    )


def build_messages(
    system_prompt: str, history: Iterable[Any], message: str
) -> list[dict[str, str]]:
    """System prompt, prior user/assistant turns, then the new user message.

    History entries may be dicts or objects with `role`/`content`; anything
    outside the two chat roles is dropped.
    """
    messages = [{"role": "system", "content": system_prompt}]
    for entry in history:
        role = entry.get("role") if isinstance(entry, dict) else getattr(entry, "role", None)
        content = entry.get("content") if isinstance(entry, dict) else getattr(entry, "content", None)
        if role in CHAT_ROLES and content is not None:
            messages.append({"role": role, "content": str(content)})
    messages.append({"role": "user", "content": message})
    return messages


async def _default_completion(model: str, messages: list[dict[str, str]]) -> str:
    return await llm_client.chat_completion(model, messages)


async def invoke(
    messages: list[dict[str, str]],
    *,
    policy: RetryPolicy | None = None,
    completion: CompletionCall | None = None,
    sleep: Callable[[float], Awaitable[None]] | None = None,
) -> str:
    """Run the completion under the retry policy.

    Raises `LLMNotConfigured` before any attempt when no API key is set and
    the default transport is in use; `LLMExhausted` when every model failed.
    """
    if completion is None:
        if not settings.LLM_API_KEY:
            raise LLMNotConfigured("LLM_API_KEY not configured")
        completion = _default_completion
    policy = policy or policy_from_settings()

    async def _call(model: str) -> str:
        return await completion(model, messages)

    kwargs = {"sleep": sleep} if sleep is not None else {}
    text = await attempt_with_policy(policy, _call, **kwargs)
    if not (text or "").strip():
        logger.info("Model returned empty content; using fallback reply")
        return EMPTY_REPLY_FALLBACK
    return text


__all__ = [
    "CHAT_ROLES",
    "EMPTY_REPLY_FALLBACK",
    "build_messages",
    "invoke",
    "policy_from_settings",
]
