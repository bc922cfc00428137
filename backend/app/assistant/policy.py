"""Model fallback and retry schedule for chat completions.

The policy is plain data; `attempt_with_policy` walks it and knows nothing
about HTTP, so the schedule can be exercised with a fake call and a fake
sleep.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from ..llm_client import LLMError, ModelNotFound, ModelOverloaded
from ..metrics import llm_attempts_total

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    models: tuple[str, ...]
    attempts_per_model: int = 3
    backoff_seconds: float = 1.0

    def __post_init__(self) -> None:
        if not self.models:
            raise ValueError("RetryPolicy needs at least one model")
        if self.attempts_per_model < 1:
            raise ValueError("attempts_per_model must be >= 1")

    def delay_for(self, attempt: int) -> float:
        """Pause after a failed 1-based `attempt`; grows linearly."""
        return self.backoff_seconds * attempt

    def backoff_schedule(self) -> list[float]:
        """Every pause taken when each model is overloaded on every attempt."""
        per_model = [self.delay_for(attempt) for attempt in range(1, self.attempts_per_model)]
        return per_model * len(self.models)


@dataclass(slots=True)
class AttemptRecord:
    model: str
    attempt: int
    outcome: str
    detail: str = ""


class LLMExhausted(Exception):
    """Every model in the policy failed; `attempts` is the full log."""

    def __init__(self, attempts: list[AttemptRecord]) -> None:
        self.attempts = attempts
        tried = list(dict.fromkeys(record.model for record in attempts))
        super().__init__(f"All models failed after {len(attempts)} attempts ({', '.join(tried)})")


async def attempt_with_policy(
    policy: RetryPolicy,
    call: Callable[[str], Awaitable[T]],
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run `call(model)` following `policy` until one attempt succeeds."""
    log: list[AttemptRecord] = []
    for model in policy.models:
        for attempt in range(1, policy.attempts_per_model + 1):
            try:
                result = await call(model)
            except ModelNotFound as exc:
                _record(log, model, attempt, "not_found", exc)
                logger.warning("Model %s not found, moving to next model", model)
                break
            except ModelOverloaded as exc:
                _record(log, model, attempt, "overloaded", exc)
                if attempt < policy.attempts_per_model:
                    delay = policy.delay_for(attempt)
                    logger.info(
                        "Model %s overloaded (attempt %s/%s), retrying in %.1fs",
                        model,
                        attempt,
                        policy.attempts_per_model,
                        delay,
                    )
                    await sleep(delay)
                continue
            except LLMError as exc:
                _record(log, model, attempt, "error", exc)
                logger.warning(
                    "Model %s failed (attempt %s/%s): %s",
                    model,
                    attempt,
                    policy.attempts_per_model,
                    exc,
                )
                continue
            _record(log, model, attempt, "ok")
            return result
    raise LLMExhausted(log)


def _record(
    log: list[AttemptRecord],
    model: str,
    attempt: int,
    outcome: str,
    exc: Exception | None = None,
) -> None:
    log.append(AttemptRecord(model, attempt, outcome, str(exc) if exc else ""))
    llm_attempts_total.labels(model=model, outcome=outcome).inc()


__all__ = ["AttemptRecord", "LLMExhausted", "RetryPolicy", "attempt_with_policy"]
