#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.app.assistant import ChatAssistant, ChatSession  # noqa: E402
from backend.app.assistant.committer import ReservationCommitter, submit_over_http  # noqa: E402
from backend.app.assistant.session import ChatTurn, http_transport  # noqa: E402
from backend.app.storage import DB  # noqa: E402


def _render(turn: ChatTurn) -> str:
    lines = [turn.text]
    for card in turn.event_cards:
        title = card.get("title") or card.get("dj_name") or "Evento"
        when = card.get("event_date", "")
        lines.append(f"  [evento] {title} · {card.get('dj_name', '')} · {when}")
    if turn.menu_button:
        lines.append("  [menú] /menu")
    return "\n".join(lines)


def _build_session(args: argparse.Namespace) -> ChatSession:
    if args.local:
        assistant = ChatAssistant(DB)

        async def _local(message: str, history: list[dict[str, str]]) -> str:
            return await assistant.reply(message, history)

        transport = _local
    else:
        transport = http_transport(args.api)

    async def _submit(body: dict) -> bool:
        return await submit_over_http(body, base_url=args.api)

    return ChatSession(transport, ReservationCommitter(_submit))


def _print_turn(turn: ChatTurn, as_json: bool) -> None:
    if not as_json:
        print(_render(turn))
        return
    payload = {
        "text": turn.text,
        "event_cards": turn.event_cards,
        "menu_button": turn.menu_button,
        "reservation_saved": turn.reservation_saved,
    }
    print(json.dumps(payload, ensure_ascii=False, indent=2))


async def _run(args: argparse.Namespace) -> None:
    session = _build_session(args)
    if args.message:
        _print_turn(await session.send(args.message), args.json)
        return
    print(session.history[0]["content"])
    while True:
        try:
            message = input("\n> ").strip()
        except EOFError:
            break
        if not message or message.lower() in {"salir", "exit", "quit"}:
            break
        _print_turn(await session.send(message), args.json)


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Console chat with the Obsidian Social Club assistant."
    )
    parser.add_argument("message", nargs="?", help="Send a single message and exit")
    parser.add_argument(
        "--api",
        default=None,
        help="Base URL of a running API (defaults to BOOKING_API_BASE)",
    )
    parser.add_argument(
        "--local",
        action="store_true",
        help="Answer in-process against the local database instead of POST /chat",
    )
    parser.add_argument("--json", action="store_true", help="Emit JSON instead of text")
    args = parser.parse_args()
    asyncio.run(_run(args))


if __name__ == "__main__":
    main()
