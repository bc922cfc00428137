from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select

from .contracts import ReservationCreate
from .db.core import get_session, init_db
from .db.models import EventRecord, MenuCategoryRecord, MenuItemRecord, ReservationRecord

logger = logging.getLogger(__name__)

# Served when the categories table is empty.
DEFAULT_CATEGORIES: tuple[dict[str, Any], ...] = (
    {"id": "cocktails", "name": "Cócteles", "display_order": 1},
    {"id": "shots", "name": "Shots", "display_order": 2},
    {"id": "bottles", "name": "Botellas", "display_order": 3},
    {"id": "food", "name": "Comida", "display_order": 4},
    {"id": "specials", "name": "Especiales", "display_order": 5},
)


def _reservation_to_dict(record: ReservationRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "name": record.name,
        "email": record.email,
        "phone": record.phone,
        "date": record.date,
        "time": record.time,
        "guests": record.guests,
        "table_type": record.table_type,
        "notes": record.notes,
        "status": record.status,
        "created_at": getattr(record, "created_at", None),
    }


def _price(value: Decimal | float | int | None) -> float:
    if value is None:
        return 0.0
    return float(value)


def _menu_item_to_dict(record: MenuItemRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "category": record.category,
        "name": record.name,
        "description": record.description,
        "price": _price(record.price),
        "image_url": record.image_url,
        "available": bool(record.available),
        "featured": bool(record.featured),
    }


def _category_to_dict(record: MenuCategoryRecord) -> dict[str, Any]:
    return {"id": record.id, "name": record.name, "display_order": record.display_order}


def _event_to_dict(record: EventRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "title": record.title,
        "subtitle": record.subtitle,
        "dj_name": record.dj_name,
        "event_date": record.event_date,
        "event_time": record.event_time,
        "genre": record.genre,
        "image_url": record.image_url,
        "spotify_url": record.spotify_url,
        "promotion": record.promotion,
        "featured": bool(record.featured),
    }


class Database:
    """
    Booking, menu and event collections.

    Rows are returned as plain dicts so route handlers and the chat assistant
    never hold ORM instances outside a session.
    """

    def __init__(self) -> None:
        self._ready = False

    async def ensure_ready(self) -> None:
        if self._ready:
            return
        await init_db()
        self._ready = True

    # -------- reservations --------
    async def create_reservation(self, payload: ReservationCreate) -> dict[str, Any]:
        await self.ensure_ready()
        record = ReservationRecord(
            name=payload.name,
            email=payload.email,
            phone=payload.phone,
            date=payload.date,
            time=payload.time,
            guests=payload.guests,
            table_type=payload.table_type,
            notes=payload.notes,
            status="pending",
        )
        async with get_session() as session:
            session.add(record)
            await session.commit()
            await session.refresh(record)
            logger.debug("Stored reservation %s for %s", record.id, record.date)
            return _reservation_to_dict(record)

    async def get_reservation(self, res_id: str) -> dict[str, Any] | None:
        await self.ensure_ready()
        async with get_session() as session:
            record = await session.get(ReservationRecord, res_id)
            return _reservation_to_dict(record) if record else None

    async def list_reservations(
        self, *, on_date: date | None = None, status: str | None = None
    ) -> list[dict[str, Any]]:
        await self.ensure_ready()
        stmt = select(ReservationRecord).order_by(
            ReservationRecord.date.asc(), ReservationRecord.time.asc()
        )
        if on_date is not None:
            stmt = stmt.where(ReservationRecord.date == on_date)
        if status:
            stmt = stmt.where(ReservationRecord.status == status)
        async with get_session() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [_reservation_to_dict(row) for row in rows]

    async def counts(self) -> dict[str, int]:
        """Row counts per table, for health checks."""
        await self.ensure_ready()
        tables = {
            "reservation_count": ReservationRecord,
            "event_count": EventRecord,
            "menu_item_count": MenuItemRecord,
        }
        counts: dict[str, int] = {}
        async with get_session() as session:
            for key, model in tables.items():
                stmt = select(func.count()).select_from(model)
                counts[key] = (await session.execute(stmt)).scalar_one()
        return counts

    # -------- events --------
    async def list_events(
        self,
        *,
        from_date: date | None = None,
        featured: bool | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        await self.ensure_ready()
        stmt = select(EventRecord).order_by(EventRecord.event_date.asc())
        if from_date is not None:
            stmt = stmt.where(EventRecord.event_date >= from_date)
        if featured is not None:
            stmt = stmt.where(EventRecord.featured.is_(featured))
        if limit:
            stmt = stmt.limit(limit)
        async with get_session() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [_event_to_dict(row) for row in rows]

    async def upcoming_events(self, today: date, limit: int = 10) -> list[dict[str, Any]]:
        return await self.list_events(from_date=today, limit=limit)

    async def add_event(self, **fields: Any) -> dict[str, Any]:
        await self.ensure_ready()
        record = EventRecord(**fields)
        async with get_session() as session:
            session.add(record)
            await session.commit()
            await session.refresh(record)
            return _event_to_dict(record)

    # -------- menu --------
    async def list_categories(self) -> list[dict[str, Any]]:
        await self.ensure_ready()
        stmt = select(MenuCategoryRecord).order_by(
            MenuCategoryRecord.display_order.asc(), MenuCategoryRecord.name.asc()
        )
        async with get_session() as session:
            rows = (await session.execute(stmt)).scalars().all()
        if not rows:
            return [dict(category) for category in DEFAULT_CATEGORIES]
        return [_category_to_dict(row) for row in rows]

    async def list_menu_items(
        self, *, category: str | None = None, available_only: bool = False
    ) -> list[dict[str, Any]]:
        await self.ensure_ready()
        stmt = select(MenuItemRecord).order_by(
            MenuItemRecord.category.asc(), MenuItemRecord.name.asc()
        )
        if category:
            stmt = stmt.where(MenuItemRecord.category == category)
        if available_only:
            stmt = stmt.where(MenuItemRecord.available.is_(True))
        async with get_session() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [_menu_item_to_dict(row) for row in rows]

    async def add_category(self, id: str, name: str, display_order: int = 99) -> dict[str, Any]:
        await self.ensure_ready()
        async with get_session() as session:
            record = await session.get(MenuCategoryRecord, id)
            if record is None:
                record = MenuCategoryRecord(id=id, name=name, display_order=display_order)
                session.add(record)
            else:
                record.name = name
                record.display_order = display_order
            await session.commit()
            return _category_to_dict(record)

    async def add_menu_item(self, **fields: Any) -> dict[str, Any]:
        await self.ensure_ready()
        record = MenuItemRecord(**fields)
        async with get_session() as session:
            session.add(record)
            await session.commit()
            await session.refresh(record)
            return _menu_item_to_dict(record)


DB = Database()
