from __future__ import annotations

import datetime as dt
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .validators import (
    normalize_display_name,
    normalize_email,
    normalize_note,
    normalize_phone,
    normalize_time,
)

TableType = Literal["general", "vip", "booth"]
ReservationStatus = Literal["pending", "confirmed", "cancelled", "completed"]


# --- Reservations ---
class ReservationCreate(BaseModel):
    """Booking request body; field names match the public booking form."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    email: str
    phone: str
    date: dt.date
    time: str
    guests: int = Field(default=2, ge=1, le=50)
    table_type: TableType = Field(default="general", alias="tableType")
    notes: str | None = None

    @field_validator("name")
    @classmethod
    def _name(cls, value: str) -> str:
        return normalize_display_name(value)

    @field_validator("email")
    @classmethod
    def _email(cls, value: str) -> str:
        return normalize_email(value)

    @field_validator("phone")
    @classmethod
    def _phone(cls, value: str) -> str:
        return normalize_phone(value)

    @field_validator("time")
    @classmethod
    def _time(cls, value: str) -> str:
        return normalize_time(value)

    @field_validator("notes")
    @classmethod
    def _notes(cls, value: str | None) -> str | None:
        return normalize_note(value)


class Reservation(BaseModel):
    id: str
    name: str
    email: str | None = None
    phone: str
    date: dt.date
    time: str
    guests: int
    table_type: TableType = "general"
    notes: str | None = None
    status: ReservationStatus = "pending"
    created_at: dt.datetime | None = None


class ReservationCreated(BaseModel):
    success: bool = True
    message: str = "Reservación creada exitosamente"
    reservation: Reservation


# --- Catalog ---
class MenuCategory(BaseModel):
    id: str
    name: str
    display_order: int = 99


class MenuItem(BaseModel):
    id: str
    category: str
    name: str
    description: str | None = None
    price: float = Field(ge=0)
    image_url: str | None = None
    available: bool = True
    featured: bool = False


class Event(BaseModel):
    id: str
    title: str | None = None
    subtitle: str | None = None
    dj_name: str
    event_date: dt.date
    event_time: str | None = None
    genre: str | None = None
    image_url: str | None = None
    spotify_url: str | None = None
    promotion: str | None = None
    featured: bool = False


# --- Chat ---
class ChatMessage(BaseModel):
    role: str
    content: str


class ChatRequest(BaseModel):
    message: str = Field(min_length=1, max_length=2000)
    history: list[ChatMessage] = Field(default_factory=list, max_length=100)


class ChatResponse(BaseModel):
    response: str
