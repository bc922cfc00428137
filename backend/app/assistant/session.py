"""Per-conversation chat state, the part of the flow that runs in the widget.

A `ChatSession` sends one turn at a time, strips markers from each reply,
and books at most one reservation through the `ReservationCommitter`.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import httpx

from ..settings import settings
from .committer import ReservationCommitter
from .markers import extract_markers

logger = logging.getLogger(__name__)

GREETING = (
    "¡Bienvenido a Obsidian Social Club! 🖤 Soy tu asistente virtual. Puedo ayudarte con:\n\n"
    "• Reservaciones de mesa\n"
    "• Información de próximos DJs\n"
    "• Nuestro menú de bebidas\n"
    "• Horarios y ubicación\n\n"
    "¿En qué puedo ayudarte?"
)
RESERVATION_CONFIRMED = (
    "\n\n✅ ¡Tu reservación ha sido registrada exitosamente! Te contactaremos pronto para confirmar."
)
RESERVATION_FAILED = (
    "\n\n⚠️ Hubo un problema al registrar tu reservación. "
    "Por favor usa el formulario de la página o llámanos."
)
TRANSPORT_ERROR_REPLY = (
    "Lo siento, hubo un error. Por favor intenta de nuevo o contáctanos directamente."
)

ChatTransport = Callable[[str, list[dict[str, str]]], Awaitable[str]]


class SessionBusy(RuntimeError):
    """A turn is already in flight for this session."""


@dataclass(slots=True)
class ChatTurn:
    text: str
    event_cards: list[dict[str, Any]] = field(default_factory=list)
    menu_button: bool = False
    reservation_attempted: bool = False
    reservation_saved: bool = False


def http_transport(base_url: str | None = None) -> ChatTransport:
    """Transport that talks to a running API's `POST /chat`."""
    url = f"{(base_url or settings.BOOKING_API_BASE).rstrip('/')}/chat"

    async def _send(message: str, history: list[dict[str, str]]) -> str:
        async with httpx.AsyncClient(timeout=settings.LLM_TIMEOUT_SECONDS * 3) as client:
            response = await client.post(url, json={"message": message, "history": history})
        # 500s still carry a displayable apology in "response"
        data = response.json()
        return data["response"]

    return _send


class ChatSession:
    def __init__(
        self,
        transport: ChatTransport | None = None,
        committer: ReservationCommitter | None = None,
        *,
        greeting: str | None = GREETING,
    ) -> None:
        self.transport = transport or http_transport()
        self.committer = committer or ReservationCommitter()
        self.history: list[dict[str, str]] = []
        if greeting:
            self.history.append({"role": "assistant", "content": greeting})
        self.busy = False
        self.reservation_made = False

    async def handle_reply(self, raw: str) -> ChatTurn:
        """Strip markers from `raw`; commit the first reservation block if any."""
        extracted = extract_markers(raw)
        turn = ChatTurn(
            text=extracted.prose,
            event_cards=extracted.event_cards,
            menu_button=extracted.menu_button,
        )
        payload = extracted.reservation
        if self.reservation_made:
            return turn
        if payload is None:
            if extracted.reservation_rejected:
                # the prose already claims a booking that was never written
                turn.reservation_attempted = True
                turn.text += RESERVATION_FAILED
            return turn
        turn.reservation_attempted = True
        turn.reservation_saved = await self.committer.commit(self, payload)
        turn.text += RESERVATION_CONFIRMED if turn.reservation_saved else RESERVATION_FAILED
        return turn

    async def send(self, message: str) -> ChatTurn:
        text = (message or "").strip()
        if not text:
            raise ValueError("message cannot be blank")
        if self.busy:
            raise SessionBusy("previous message is still being answered")
        self.busy = True
        prior = list(self.history)
        self.history.append({"role": "user", "content": text})
        try:
            try:
                raw = await self.transport(text, prior)
            except Exception:
                logger.exception("Chat transport failed")
                turn = ChatTurn(text=TRANSPORT_ERROR_REPLY)
            else:
                turn = await self.handle_reply(raw)
            self.history.append({"role": "assistant", "content": turn.text})
            return turn
        finally:
            self.busy = False


__all__ = [
    "GREETING",
    "RESERVATION_CONFIRMED",
    "RESERVATION_FAILED",
    "TRANSPORT_ERROR_REPLY",
    "ChatSession",
    "ChatTransport",
    "ChatTurn",
    "SessionBusy",
    "http_transport",
]
