"""Bracket-marker protocol between the system prompt and the chat client.

The model cannot call functions, so it smuggles structured data through
delimited blocks in its prose:

    [RESERVACION_DATA] {json} [/RESERVACION_DATA]   at most once per conversation
    [EVENT_CARD] {json} [/EVENT_CARD]               one per event mentioned
    [MENU_BUTTON]                                   bare flag, no payload

The instruction text the prompt composer embeds lives here too, next to the
parser, so the two sides always agree on the spelling.
"""

from __future__ import annotations

import datetime as dt
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..contracts import TableType

logger = logging.getLogger(__name__)

RESERVATION_OPEN = "[RESERVACION_DATA]"
RESERVATION_CLOSE = "[/RESERVACION_DATA]"
EVENT_CARD_OPEN = "[EVENT_CARD]"
EVENT_CARD_CLOSE = "[/EVENT_CARD]"
MENU_BUTTON = "[MENU_BUTTON]"

DEFAULT_TABLE_TYPE = "general"

_RESERVATION_RE = re.compile(
    re.escape(RESERVATION_OPEN) + r"(.*?)" + re.escape(RESERVATION_CLOSE), re.DOTALL
)
_EVENT_CARD_RE = re.compile(
    re.escape(EVENT_CARD_OPEN) + r"(.*?)" + re.escape(EVENT_CARD_CLOSE), re.DOTALL
)
_BLANK_RUNS_RE = re.compile(r"\n[ \t]*\n(?:[ \t]*\n)+")


class ReservationPayload(BaseModel):
    """Reservation block body as the model is told to write it."""

    # models sometimes write the phone as a bare JSON number
    model_config = ConfigDict(coerce_numbers_to_str=True)

    name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    date: str
    guests: int = Field(ge=1)
    tableType: TableType = DEFAULT_TABLE_TYPE

    @field_validator("name", "phone")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()

    @field_validator("date")
    @classmethod
    def _iso_date(cls, value: str) -> str:
        dt.date.fromisoformat(value)
        return value


@dataclass(slots=True)
class ExtractedReply:
    prose: str
    reservations: list[ReservationPayload] = field(default_factory=list)
    event_cards: list[dict[str, Any]] = field(default_factory=list)
    menu_button: bool = False
    # a reservation block was present but none survived parsing
    reservation_rejected: bool = False

    @property
    def reservation(self) -> ReservationPayload | None:
        """First well-formed reservation block; later ones are model misbehaviour."""
        return self.reservations[0] if self.reservations else None


def _parse_object(raw: str, marker: str) -> dict[str, Any] | None:
    try:
        value = json.loads(raw.strip())
    except json.JSONDecodeError as exc:
        logger.warning("Dropping %s block with malformed JSON: %s", marker, exc)
        return None
    if not isinstance(value, dict):
        logger.warning("Dropping %s block: payload is %s, not an object", marker, type(value).__name__)
        return None
    return value


def _tidy(text: str) -> str:
    return _BLANK_RUNS_RE.sub("\n\n", text).strip()


def extract_markers(text: str) -> ExtractedReply:
    """Split a raw assistant reply into prose and marker payloads. Never raises."""
    raw = text or ""

    reservations: list[ReservationPayload] = []
    dropped = 0
    for match in _RESERVATION_RE.finditer(raw):
        body = _parse_object(match.group(1), RESERVATION_OPEN)
        if body is None:
            dropped += 1
            continue
        try:
            reservations.append(ReservationPayload.model_validate(body))
        except ValidationError as exc:
            dropped += 1
            logger.warning(
                "Dropping %s block with invalid fields: %s", RESERVATION_OPEN, exc.errors()
            )

    event_cards: list[dict[str, Any]] = []
    for match in _EVENT_CARD_RE.finditer(raw):
        body = _parse_object(match.group(1), EVENT_CARD_OPEN)
        if body is not None:
            event_cards.append(body)

    menu_button = MENU_BUTTON in raw

    prose = _RESERVATION_RE.sub("", raw)
    prose = _EVENT_CARD_RE.sub("", prose)
    prose = prose.replace(MENU_BUTTON, "")

    return ExtractedReply(
        prose=_tidy(prose),
        reservations=reservations,
        event_cards=event_cards,
        menu_button=menu_button,
        reservation_rejected=dropped > 0 and not reservations,
    )


# ---------------------------------------------------------------------------
# Prompt-side instructions. Spanish, like the rest of the system prompt.
# ---------------------------------------------------------------------------

EVENT_CARD_EXAMPLE = json.dumps(
    {
        "title": "NOCHE OBSCURA",
        "dj_name": "DJ ALMEDA",
        "event_date": "2026-02-07",
        "genre": "Techno",
        "image_url": "https://...",
        "spotify_url": "https://...",
        "promotion": "2x1 en shots",
    },
    ensure_ascii=False,
    separators=(",", ":"),
)

EVENT_CARD_INSTRUCTIONS = f"""## CUANDO PREGUNTEN POR EVENTOS:

Cuando el usuario pregunte por eventos, DJs o qué hay próximamente:
1. Responde con un mensaje breve de introducción
2. COPIA EXACTAMENTE el JSON que te damos arriba para cada evento y ponlo dentro de {EVENT_CARD_OPEN}...{EVENT_CARD_CLOSE}
3. SIEMPRE invítalos a reservar para esa fecha específica

FORMATO (COPIA el JSON exacto de arriba):
{EVENT_CARD_OPEN}<JSON del evento>{EVENT_CARD_CLOSE}

Ejemplo de respuesta:
"¡Estos son nuestros próximos eventos! 🎵

{EVENT_CARD_OPEN}{EVENT_CARD_EXAMPLE}{EVENT_CARD_CLOSE}

¿Te gustaría reservar para alguno? 🖤"

REGLAS IMPORTANTES:
- USA el JSON EXACTO que te damos en la sección de eventos (ya incluye title, dj_name, image_url, etc.)
- El "title" es el NOMBRE DEL EVENTO (ej: "NOCHE OBSCURA"), NO el nombre del DJ
- El "dj_name" es el nombre del DJ que toca (ej: "DJ ALMEDA")
- NO inventes datos, usa SOLO los que te damos arriba
- Un {EVENT_CARD_OPEN} por cada evento
- NUNCA muestres URLs en texto plano"""

MENU_BUTTON_INSTRUCTIONS = f"""## CUANDO PREGUNTEN POR EL MENÚ:

Cuando el usuario pregunte por el menú, bebidas, carta o precios:
1. Responde brevemente mencionando algunas opciones destacadas
2. SIEMPRE incluye el marcador {MENU_BUTTON} para mostrar el botón de descarga
3. Ejemplo de respuesta:
"¡Claro! Tenemos cócteles signature como Obsidian Noir ($180), Midnight Martini ($160), shots especiales y botellas premium. 🍸

{MENU_BUTTON}

¿Te gustaría reservar mesa? 🖤"

IMPORTANTE: Siempre usa {MENU_BUTTON} cuando hables del menú, esto mostrará un botón para descargar el PDF."""

RESERVATION_INSTRUCTIONS = f"""## PROCESO DE RESERVACIÓN (SIMPLIFICADO):

La reservación solo necesita 4 datos:
1. Nombre
2. WhatsApp (teléfono)
3. Número de personas
4. Fecha

Cuando el usuario quiera reservar, pide los datos de forma natural:
"¡Perfecto! Para tu reservación necesito:
- Tu nombre
- Tu WhatsApp
- ¿Cuántas personas serán?
- ¿Para qué fecha?"

Si el usuario preguntó por un evento específico, SUGIERE esa fecha automáticamente:
"¿Te hago la reservación para el [fecha del evento] que viene [DJ]? Solo necesito tu nombre, WhatsApp y cuántas personas serán 🖤"

Cuando tengas TODOS los datos (nombre, teléfono, fecha, personas), confirma y agrega:

{RESERVATION_OPEN}
{{"name":"nombre","phone":"telefono","date":"YYYY-MM-DD","guests":numero,"tableType":"{DEFAULT_TABLE_TYPE}"}}
{RESERVATION_CLOSE}

IMPORTANTE:
- Solo genera el bloque {RESERVATION_OPEN} UNA SOLA VEZ cuando tengas TODOS los datos
- NUNCA generes el bloque más de una vez en la conversación
- La fecha debe estar en formato YYYY-MM-DD
- tableType siempre es "{DEFAULT_TABLE_TYPE}"
- guests debe ser un número
- Si falta algún dato, pídelo de forma natural, no como lista"""


__all__ = [
    "DEFAULT_TABLE_TYPE",
    "EVENT_CARD_CLOSE",
    "EVENT_CARD_INSTRUCTIONS",
    "EVENT_CARD_OPEN",
    "MENU_BUTTON",
    "MENU_BUTTON_INSTRUCTIONS",
    "RESERVATION_CLOSE",
    "RESERVATION_INSTRUCTIONS",
    "RESERVATION_OPEN",
    "ExtractedReply",
    "ReservationPayload",
    "extract_markers",
]
