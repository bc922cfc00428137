"""Turn an extracted reservation block into a booking-endpoint write."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

import httpx

from ..settings import settings
from ..validators import phone_digits
from .markers import DEFAULT_TABLE_TYPE, ReservationPayload

if TYPE_CHECKING:
    from .session import ChatSession

logger = logging.getLogger(__name__)

Submitter = Callable[[dict[str, Any]], Awaitable[bool]]


def placeholder_email(phone: str, domain: str | None = None) -> str:
    """Deterministic stand-in address; the chat flow never asks for an email."""
    local = phone_digits(phone) or "cliente"
    return f"{local}@{domain or settings.CHAT_EMAIL_DOMAIN}"


def build_booking_body(payload: ReservationPayload) -> dict[str, Any]:
    return {
        "name": payload.name,
        "email": placeholder_email(payload.phone),
        "phone": payload.phone,
        "date": payload.date,
        "time": settings.CHAT_DEFAULT_TIME,
        "guests": payload.guests,
        "tableType": payload.tableType or DEFAULT_TABLE_TYPE,
        "notes": settings.CHAT_RESERVATION_NOTE,
    }


async def submit_over_http(body: dict[str, Any], *, base_url: str | None = None) -> bool:
    url = f"{(base_url or settings.BOOKING_API_BASE).rstrip('/')}/reservations"
    async with httpx.AsyncClient(timeout=10.0) as client:
        response = await client.post(url, json=body)
    if response.is_success:
        return True
    logger.warning(
        "Booking endpoint rejected chat reservation: %s %s",
        response.status_code,
        response.text[:200],
    )
    return False


class ReservationCommitter:
    """Writes at most one reservation per chat session."""

    def __init__(self, submitter: Submitter | None = None) -> None:
        self.submitter = submitter or submit_over_http

    async def commit(self, session: ChatSession, payload: ReservationPayload) -> bool:
        if session.reservation_made:
            logger.info("Session already booked; ignoring repeated reservation block")
            return False
        body = build_booking_body(payload)
        try:
            ok = bool(await self.submitter(body))
        except Exception:
            logger.exception("Chat reservation submit failed")
            return False
        if ok:
            session.reservation_made = True
        return ok


__all__ = [
    "ReservationCommitter",
    "Submitter",
    "build_booking_body",
    "placeholder_email",
    "submit_over_http",
]
