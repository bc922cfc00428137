"""One server-side chat turn: fresh knowledge snapshot, system prompt, model reply."""

from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from .invoker import CompletionCall, build_messages, invoke
from .knowledge import KnowledgeSnapshot, KnowledgeStore, build_snapshot
from .policy import RetryPolicy
from .prompts import compose_system_prompt

logger = logging.getLogger(__name__)


class ChatAssistant:
    """One chat turn: knowledge snapshot, system prompt, model call.

    Replies come back raw, markers included; the chat client strips and acts
    on them.
    """

    def __init__(
        self,
        store: KnowledgeStore,
        *,
        venue_name: str = "Obsidian Social Club",
        policy: RetryPolicy | None = None,
        completion: CompletionCall | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self.store = store
        self.venue_name = venue_name
        self.policy = policy
        self.completion = completion
        self.sleep = sleep

    async def system_prompt(self, now: dt.datetime | None = None) -> str:
        snapshot = await build_snapshot(self.store, now)
        return self._compose(snapshot)

    def _compose(self, snapshot: KnowledgeSnapshot) -> str:
        return compose_system_prompt(
            snapshot.events_block,
            snapshot.menu_block,
            snapshot.current_date,
            venue_name=self.venue_name,
        )

    async def reply(
        self, message: str, history: Iterable[Any] = (), *, now: dt.datetime | None = None
    ) -> str:
        snapshot = await build_snapshot(self.store, now)
        if snapshot.events_fallback or snapshot.menu_fallback:
            logger.debug(
                "Knowledge fallback in use (events=%s, menu=%s)",
                snapshot.events_fallback,
                snapshot.menu_fallback,
            )
        messages = build_messages(self._compose(snapshot), history, message)
        return await invoke(
            messages, policy=self.policy, completion=self.completion, sleep=self.sleep
        )
