from __future__ import annotations

import asyncio
import datetime as dt

from .assistant.knowledge import venue_today
from .storage import DB, DEFAULT_CATEGORIES

MENU = {
    "cocktails": [
        ("Obsidian Noir", "vodka, licor de mora, espuma de carbón", 180, True),
        ("Midnight Martini", "gin, vermouth, aceitunas negras", 160, True),
        ("Shadow Kiss", "ron, maracuyá, albahaca", 150, False),
    ],
    "shots": [
        ("Black Diamond", "tequila, licor de café, crema", 90, False),
        ("Dark Matter", "mezcal, chamoy, tamarindo", 85, False),
    ],
    "bottles": [
        ("Grey Goose", None, 2500, False),
        ("Don Julio 70", None, 3200, True),
        ("Moët & Chandon", None, 4500, False),
    ],
}


def _next_weekday(start: dt.date, weekday: int) -> dt.date:
    return start + dt.timedelta(days=(weekday - start.weekday()) % 7)


async def seed() -> None:
    if await DB.list_events() or await DB.list_menu_items():
        return

    for category in DEFAULT_CATEGORIES:
        await DB.add_category(**category)

    for category, items in MENU.items():
        for name, description, price, featured in items:
            await DB.add_menu_item(
                category=category,
                name=name,
                description=description,
                price=price,
                featured=featured,
            )

    today = venue_today()
    friday = _next_weekday(today, 4)
    saturday = _next_weekday(today, 5)
    await DB.add_event(
        title="NOCHE OBSCURA",
        dj_name="DJ ALMEDA",
        event_date=friday,
        event_time="22:00",
        genre="Techno",
        promotion="2x1 en shots",
        featured=True,
    )
    await DB.add_event(
        dj_name="DJ KRAUS",
        event_date=saturday,
        event_time="22:00",
        genre="House",
    )
    await DB.add_event(
        title="BLACK LABEL",
        dj_name="DJ ALMEDA",
        event_date=saturday + dt.timedelta(days=7),
        genre="Tech House",
        promotion="Botella Grey Goose con 10% de descuento",
    )


if __name__ == "__main__":
    asyncio.run(seed())
