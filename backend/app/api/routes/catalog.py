from __future__ import annotations

import logging

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from ...assistant.knowledge import venue_today
from ...contracts import Event, MenuCategory, MenuItem
from ...storage import DB

logger = logging.getLogger(__name__)

router = APIRouter(tags=["catalog"])


def _store_error(message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=500)


@router.get("/events")
async def list_events(
    upcoming: bool = Query(False, description="Only events on or after today at the venue"),
    featured: bool = Query(False),
):
    try:
        rows = await DB.list_events(
            from_date=venue_today() if upcoming else None,
            featured=True if featured else None,
        )
    except Exception:
        logger.exception("Event listing failed")
        return _store_error("Error al obtener eventos")
    return {"events": [Event(**row) for row in rows]}


@router.get("/menu")
async def list_menu(
    category: str | None = Query(None),
    available: bool = Query(False, description="Hide items marked unavailable"),
):
    try:
        rows = await DB.list_menu_items(category=category, available_only=available)
    except Exception:
        logger.exception("Menu listing failed")
        return _store_error("Error al obtener el menú")
    return {"items": [MenuItem(**row) for row in rows]}


@router.get("/categories")
async def list_categories():
    try:
        rows = await DB.list_categories()
    except Exception:
        logger.exception("Category listing failed")
        return _store_error("Error al obtener categorías")
    return {"categories": [MenuCategory(**row) for row in rows]}
