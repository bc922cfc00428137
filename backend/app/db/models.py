from __future__ import annotations

import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    false,
    func,
    text,
    true,
)

from .core import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class ReservationRecord(Base):
    __tablename__ = "reservations"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(120), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(32), nullable=False)
    date = Column(Date, nullable=False, index=True)
    time = Column(String(5), nullable=False)
    guests = Column(Integer, nullable=False, default=2)
    table_type = Column(
        String(16), nullable=False, default="general", server_default=text("'general'")
    )
    notes = Column(Text, nullable=True)
    status = Column(
        String(16), nullable=False, default="pending", server_default=text("'pending'")
    )
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint("guests > 0", name="ck_reservation_guests"),
        CheckConstraint(
            "table_type IN ('general', 'vip', 'booth')", name="ck_reservation_table_type"
        ),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'completed')",
            name="ck_reservation_status",
        ),
    )


class MenuCategoryRecord(Base):
    __tablename__ = "menu_categories"

    id = Column(String(64), primary_key=True)
    name = Column(String(120), nullable=False)
    display_order = Column(Integer, nullable=False, default=99, server_default=text("99"))


class MenuItemRecord(Base):
    __tablename__ = "menu_items"

    id = Column(String(36), primary_key=True, default=_uuid)
    category = Column(String(64), ForeignKey("menu_categories.id"), nullable=False, index=True)
    name = Column(String(120), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    image_url = Column(String(512), nullable=True)
    available = Column(Boolean, nullable=False, default=True, server_default=true())
    featured = Column(Boolean, nullable=False, default=False, server_default=false())
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (CheckConstraint("price >= 0", name="ck_menu_item_price"),)


class EventRecord(Base):
    __tablename__ = "events"

    id = Column(String(36), primary_key=True, default=_uuid)
    title = Column(String(160), nullable=True)
    subtitle = Column(String(160), nullable=True)
    dj_name = Column(String(120), nullable=False)
    event_date = Column(Date, nullable=False, index=True)
    event_time = Column(String(5), nullable=True)
    genre = Column(String(80), nullable=True)
    image_url = Column(String(512), nullable=True)
    spotify_url = Column(String(512), nullable=True)
    promotion = Column(String(255), nullable=True)
    featured = Column(Boolean, nullable=False, default=False, server_default=false())
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
