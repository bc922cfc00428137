from __future__ import annotations

from backend.app.assistant.markers import (
    EVENT_CARD_INSTRUCTIONS,
    MENU_BUTTON,
    RESERVATION_INSTRUCTIONS,
    extract_markers,
)

RESERVATION_REPLY = (
    "¡Listo, Ana! Tu mesa queda apartada 🖤\n\n"
    "[RESERVACION_DATA]\n"
    '{"name":"Ana","phone":"8661234567","date":"2026-02-07","guests":4,"tableType":"general"}\n'
    "[/RESERVACION_DATA]"
)


def test_reservation_block_is_parsed_and_removed():
    extracted = extract_markers(RESERVATION_REPLY)

    assert extracted.prose == "¡Listo, Ana! Tu mesa queda apartada 🖤"
    assert extracted.reservation is not None
    assert extracted.reservation.name == "Ana"
    assert extracted.reservation.phone == "8661234567"
    assert extracted.reservation.date == "2026-02-07"
    assert extracted.reservation.guests == 4
    assert extracted.reservation.tableType == "general"
    assert "RESERVACION_DATA" not in extracted.prose


def test_missing_table_type_defaults_to_general():
    reply = '[RESERVACION_DATA]{"name":"Luis","phone":"866 111 2222","date":"2026-03-01","guests":2}[/RESERVACION_DATA]'

    extracted = extract_markers(reply)

    assert extracted.reservation is not None
    assert extracted.reservation.tableType == "general"
    assert extracted.prose == ""


def test_malformed_reservation_json_is_dropped_but_span_removed():
    reply = "Perfecto.\n[RESERVACION_DATA]{name: Ana, guests: cuatro[/RESERVACION_DATA]\n¿Algo más?"

    extracted = extract_markers(reply)

    assert extracted.reservation is None
    assert extracted.reservations == []
    assert extracted.prose == "Perfecto.\n\n¿Algo más?"
    assert extracted.reservation_rejected is True


def test_reservation_with_invalid_fields_is_dropped():
    reply = (
        '[RESERVACION_DATA]{"name":"Ana","phone":"866","date":"sábado","guests":4}[/RESERVACION_DATA]'
        '[RESERVACION_DATA]{"name":"Ana","phone":"866","date":"2026-02-07","guests":0}[/RESERVACION_DATA]'
    )

    extracted = extract_markers(reply)

    assert extracted.reservation is None


def test_first_wellformed_reservation_wins():
    reply = (
        "[RESERVACION_DATA]not json[/RESERVACION_DATA]"
        '[RESERVACION_DATA]{"name":"A","phone":"1","date":"2026-02-07","guests":2}[/RESERVACION_DATA]'
        '[RESERVACION_DATA]{"name":"B","phone":"2","date":"2026-02-08","guests":3}[/RESERVACION_DATA]'
    )

    extracted = extract_markers(reply)

    assert [payload.name for payload in extracted.reservations] == ["A", "B"]
    assert extracted.reservation.name == "A"


def test_event_cards_and_menu_button():
    reply = (
        "¡Estos son nuestros próximos eventos! 🎵\n\n"
        '[EVENT_CARD]{"title":"NOCHE OBSCURA","dj_name":"DJ ALMEDA","event_date":"2026-02-07"}[/EVENT_CARD]\n\n'
        '[EVENT_CARD]{"title":"DJ KRAUS","dj_name":"DJ KRAUS","event_date":"2026-02-08"}[/EVENT_CARD]\n\n'
        "[EVENT_CARD]{broken[/EVENT_CARD]\n\n"
        f"{MENU_BUTTON}\n\n"
        "¿Te gustaría reservar para alguno? 🖤"
    )

    extracted = extract_markers(reply)

    assert [card["title"] for card in extracted.event_cards] == ["NOCHE OBSCURA", "DJ KRAUS"]
    assert extracted.menu_button is True
    assert extracted.prose == (
        "¡Estos son nuestros próximos eventos! 🎵\n\n¿Te gustaría reservar para alguno? 🖤"
    )


def test_plain_reply_passes_through_untouched():
    extracted = extract_markers("  Abrimos de jueves a sábado, 10 PM a 2 AM.  ")

    assert extracted.prose == "Abrimos de jueves a sábado, 10 PM a 2 AM."
    assert extracted.reservation is None
    assert extracted.event_cards == []
    assert extracted.menu_button is False


def test_unterminated_block_is_left_as_text():
    extracted = extract_markers('Hola [RESERVACION_DATA]{"name":"Ana"}')

    assert extracted.reservation is None
    assert "[RESERVACION_DATA]" in extracted.prose


def test_empty_and_none_input():
    assert extract_markers("").prose == ""
    assert extract_markers(None).prose == ""  # type: ignore[arg-type]


def test_instructions_use_parser_spelling():
    assert "[RESERVACION_DATA]" in RESERVATION_INSTRUCTIONS
    assert "[/RESERVACION_DATA]" in RESERVATION_INSTRUCTIONS
    assert 'tableType siempre es "general"' in RESERVATION_INSTRUCTIONS
    assert "[EVENT_CARD]" in EVENT_CARD_INSTRUCTIONS
    example = EVENT_CARD_INSTRUCTIONS.split("Ejemplo de respuesta:")[1]
    assert extract_markers(example).event_cards[0]["title"] == "NOCHE OBSCURA"


def test_numeric_phone_is_read_as_text():
    reply = '[RESERVACION_DATA]{"name":"Ana","phone":8661234567,"date":"2026-02-07","guests":4}[/RESERVACION_DATA]'

    extracted = extract_markers(reply)

    assert extracted.reservation is not None
    assert extracted.reservation.phone == "8661234567"
    assert extracted.reservation_rejected is False


def test_plain_reply_is_not_flagged_as_rejected():
    extracted = extract_markers("Abrimos jueves a sábado. [MENU_BUTTON]")

    assert extracted.reservation_rejected is False
