"""Render the live events and menu into prompt-ready text blocks."""

from __future__ import annotations

import datetime as dt
import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from ..metrics import knowledge_fallbacks_total
from ..settings import settings

logger = logging.getLogger(__name__)

EVENTS_HEADER = "### PRÓXIMOS EVENTOS Y DJs:"
MENU_HEADER = "### MENÚ ACTUAL:"

EVENTS_FALLBACK = (
    "### PRÓXIMOS EVENTOS:\n"
    "Próximamente anunciaremos nuevos eventos. Mantente atento a nuestras redes sociales."
)

MENU_FALLBACK = """### MENÚ DESTACADO:
- Obsidian Noir (vodka, licor de mora, espuma de carbón) - $180
- Midnight Martini (gin, vermouth, aceitunas negras) - $160
- Shadow Kiss (ron, maracuyá, albahaca) - $150

SHOTS:
- Black Diamond (tequila, licor de café, crema) - $90
- Dark Matter (mezcal, chamoy, tamarindo) - $85

BOTELLAS:
- Grey Goose - $2,500
- Don Julio 70 - $3,200
- Moët & Chandon - $4,500"""

_WEEKDAYS = ("lunes", "martes", "miércoles", "jueves", "viernes", "sábado", "domingo")
_MONTHS = (
    "enero",
    "febrero",
    "marzo",
    "abril",
    "mayo",
    "junio",
    "julio",
    "agosto",
    "septiembre",
    "octubre",
    "noviembre",
    "diciembre",
)

EVENT_CARD_FIELDS = (
    "title",
    "dj_name",
    "event_date",
    "genre",
    "image_url",
    "spotify_url",
    "promotion",
)


class KnowledgeStore(Protocol):
    async def upcoming_events(self, today: dt.date, limit: int = 10) -> list[dict[str, Any]]: ...

    async def list_menu_items(
        self, *, category: str | None = None, available_only: bool = False
    ) -> list[dict[str, Any]]: ...

    async def list_categories(self) -> list[dict[str, Any]]: ...


@dataclass(frozen=True, slots=True)
class KnowledgeSnapshot:
    events_block: str
    menu_block: str
    current_date: dt.date

    @property
    def events_fallback(self) -> bool:
        return self.events_block == EVENTS_FALLBACK

    @property
    def menu_fallback(self) -> bool:
        return self.menu_block == MENU_FALLBACK


def venue_today(now: dt.datetime | None = None) -> dt.date:
    """Civil date at the venue for `now` (naive values are taken as UTC)."""
    moment = now or dt.datetime.now(dt.timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=dt.timezone.utc)
    return moment.astimezone(settings.venue_tz).date()


def format_spanish_date(value: dt.date, *, with_year: bool = False) -> str:
    """`date(2026, 2, 7)` -> `"sábado, 7 de febrero"` (`"... de 2026"` with_year)."""
    text = f"{_WEEKDAYS[value.weekday()]}, {value.day} de {_MONTHS[value.month - 1]}"
    return f"{text} de {value.year}" if with_year else text


def format_price(value: Any) -> str:
    amount = float(value or 0)
    if amount.is_integer():
        return f"{amount:,.0f}"
    return f"{amount:,.2f}"


def _as_date(value: Any) -> dt.date:
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    return dt.date.fromisoformat(str(value)[:10])


def event_card_json(event: dict[str, Any]) -> str:
    card = {key: event.get(key) or "" for key in EVENT_CARD_FIELDS}
    card["title"] = event.get("title") or event.get("dj_name") or ""
    card["event_date"] = _as_date(event["event_date"]).isoformat()
    return json.dumps(card, ensure_ascii=False)


def render_event(event: dict[str, Any]) -> str:
    when = _as_date(event["event_date"])
    title = event.get("title") or event.get("dj_name") or ""
    line = (
        f'- EVENTO: "{title}" | DJ: {event.get("dj_name") or ""} '
        f"| Fecha: {format_spanish_date(when)} ({when.isoformat()})"
    )
    if event.get("genre"):
        line += f" | Género: {event['genre']}"
    if event.get("promotion"):
        line += f" | Promoción: {event['promotion']}"
    return f"{line}\n  JSON para EVENT_CARD: {event_card_json(event)}"


def render_events_block(events: list[dict[str, Any]]) -> str:
    if not events:
        return EVENTS_FALLBACK
    return EVENTS_HEADER + "\n" + "\n\n".join(render_event(event) for event in events)


def render_menu_item(item: dict[str, Any]) -> str:
    line = f"- {item['name']}"
    if item.get("description"):
        line += f" ({item['description']})"
    return f"{line} - ${format_price(item.get('price'))}"


def render_menu_block(items: list[dict[str, Any]], categories: list[dict[str, Any]]) -> str:
    if not items:
        return MENU_FALLBACK

    names = {category["id"]: category["name"] for category in categories}
    order = {category["id"]: index for index, category in enumerate(categories)}
    grouped: dict[str, list[dict[str, Any]]] = {}
    for item in items:
        grouped.setdefault(item["category"], []).append(item)

    block = MENU_HEADER
    for category_id in sorted(grouped, key=lambda cid: (order.get(cid, len(order)), cid)):
        heading = names.get(category_id, category_id).upper()
        block += f"\n{heading}:\n"
        rows = sorted(grouped[category_id], key=lambda item: item["name"])
        block += "\n".join(render_menu_item(item) for item in rows) + "\n"
    return block.rstrip()


async def _events_block(store: KnowledgeStore, today: dt.date) -> str:
    try:
        events = await store.upcoming_events(today, limit=settings.KNOWLEDGE_EVENTS_LIMIT)
        block = render_events_block(events)
    except Exception:
        logger.exception("Events lookup failed; serving fallback block")
        block = EVENTS_FALLBACK
    if block == EVENTS_FALLBACK:
        knowledge_fallbacks_total.labels(block="events").inc()
    return block


async def _menu_block(store: KnowledgeStore) -> str:
    try:
        items = await store.list_menu_items(available_only=True)
        categories = await store.list_categories() if items else []
        block = render_menu_block(items, categories)
    except Exception:
        logger.exception("Menu lookup failed; serving fallback block")
        block = MENU_FALLBACK
    if block == MENU_FALLBACK:
        knowledge_fallbacks_total.labels(block="menu").inc()
    return block


async def build_snapshot(store: KnowledgeStore, now: dt.datetime | None = None) -> KnowledgeSnapshot:
    """Fresh events/menu text for one chat turn. Never raises."""
    today = venue_today(now)
    return KnowledgeSnapshot(
        events_block=await _events_block(store, today),
        menu_block=await _menu_block(store),
        current_date=today,
    )


__all__ = [
    "EVENTS_FALLBACK",
    "MENU_FALLBACK",
    "KnowledgeSnapshot",
    "KnowledgeStore",
    "build_snapshot",
    "format_price",
    "format_spanish_date",
    "render_events_block",
    "render_menu_block",
    "venue_today",
]
