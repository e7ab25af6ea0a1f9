from __future__ import annotations

import uuid

from sqlalchemy import JSON, CheckConstraint, Column, DateTime, Integer, String, Text, Uuid
from sqlalchemy.sql import func

from models.base import Base


# available/full are derived from occupancy; maintenance/blocked are manual holds.
HELD_ROOM_STATUSES = frozenset({"maintenance", "blocked"})


class Room(Base):
    __tablename__ = "rooms"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    room_number = Column(Text, nullable=False, unique=True)
    capacity = Column(Integer, nullable=False, default=3)
    floor_number = Column(Integer, nullable=True)
    room_type = Column(String(20), nullable=False, default="standard")
    status = Column(String(20), nullable=False, default="available")
    amenities = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("capacity >= 1", name="ck_rooms_capacity"),
        CheckConstraint("room_type in ('standard', 'deluxe', 'premium')", name="ck_rooms_room_type"),
        CheckConstraint(
            "status in ('available', 'occupied', 'full', 'maintenance', 'blocked')",
            name="ck_rooms_status",
        ),
    )
