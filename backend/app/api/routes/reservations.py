from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ...contracts import Reservation, ReservationCreate, ReservationCreated
from ...logging_config import get_logger
from ...metrics import reservations_total
from ...storage import DB

logger = get_logger(__name__)

router = APIRouter(tags=["reservations"])

REQUIRED_FIELDS = ("name", "email", "phone", "date", "time")


def _error(message: str, status_code: int = 400, **extra: Any) -> JSONResponse:
    return JSONResponse({"error": message, **extra}, status_code=status_code)


def _validation_message(exc: ValidationError) -> str:
    errors = exc.errors()
    if any(err.get("loc", ("",))[0] == "email" for err in errors):
        return "Email inválido"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or "body"
    return f"{field}: {first.get('msg', 'invalid value')}"


@router.post("/reservations", status_code=201, response_model=ReservationCreated)
async def create_reservation(payload: dict[str, Any] = Body(...)):
    missing = [name for name in REQUIRED_FIELDS if not str(payload.get(name) or "").strip()]
    if missing:
        return _error("Faltan campos requeridos", fields=missing)
    try:
        data = ReservationCreate.model_validate(payload)
    except ValidationError as exc:
        return _error(_validation_message(exc))

    try:
        record = await DB.create_reservation(data)
    except Exception:
        logger.exception("reservation_store_failed", date=str(data.date), phone=data.phone)
        return _error("Error al guardar la reservación", status_code=500)

    reservations_total.labels(table_type=data.table_type).inc()
    logger.info(
        "reservation_created",
        reservation_id=record["id"],
        date=str(data.date),
        guests=data.guests,
        table_type=data.table_type,
        phone=data.phone,
    )
    return ReservationCreated(reservation=Reservation(**record))
