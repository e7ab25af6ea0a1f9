from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator


RoomType = Literal["standard", "deluxe", "premium"]
RoomStatus = Literal["available", "occupied", "full", "maintenance", "blocked"]


class RoomBase(BaseModel):
    room_number: str = Field(min_length=1, max_length=40)
    capacity: int = Field(default=3, ge=1, le=50)
    floor_number: int | None = Field(default=None, ge=0)
    room_type: RoomType = "standard"
    status: RoomStatus = "available"
    amenities: list[str] | None = None

    @field_validator("room_number")
    @classmethod
    def _strip_room_number(cls, v: str) -> str:
        return v.strip()


class RoomCreate(RoomBase):
    pass


class RoomUpdate(BaseModel):
    room_number: str | None = Field(default=None, max_length=40)
    capacity: int | None = Field(default=None, ge=1, le=50)
    floor_number: int | None = Field(default=None, ge=0)
    room_type: RoomType | None = None
    status: RoomStatus | None = None
    amenities: list[str] | None = None


class RoomOccupant(BaseModel):
    id: uuid.UUID
    name: str
    student_id: str

    class Config:
        from_attributes = True


class RoomOut(RoomBase):
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class RoomWithOccupancyOut(RoomOut):
    occupancy: int = 0
    available_slots: int = 0
    over_capacity: bool = False
    students: list[RoomOccupant] = Field(default_factory=list)


class AllotRequest(BaseModel):
    student_id: uuid.UUID


class AllotmentResult(BaseModel):
    ok: bool = True
    student_id: uuid.UUID
    room_number: str
    previous_room_number: str | None = None
    occupancy: int
    capacity: int
    over_capacity: bool
    room_status: str


class ReconcileResult(BaseModel):
    ok: bool = True
    rooms_checked: int = 0
    rooms_changed: int = 0
