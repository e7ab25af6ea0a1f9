from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class ImportRequest(BaseModel):
    format: Literal["csv", "json"]
    content: str = Field(min_length=1)


class ImportResult(BaseModel):
    ok: bool = True
    table: str
    inserted: int = 0
    rooms_reconciled: int = 0


class DiagnosticsOut(BaseModel):
    students_count: int = 0
    departments_count: int = 0
    colleges_count: int = 0
    rooms_count: int = 0
    fees_count: int = 0
    overdue_fees_count: int = 0
    students_without_email_count: int = 0
    over_capacity_rooms_count: int = 0
    timestamp: datetime


class DepartmentShare(BaseModel):
    department: str
    students: int
    percentage: float


class DashboardStatsOut(BaseModel):
    total_students: int = 0
    fees_collected: float = 0.0
    pending_dues: float = 0.0
    total_capacity: int = 0
    assigned_students: int = 0
    occupancy_rate: float = 0.0
    departments: list[DepartmentShare] = Field(default_factory=list)
    room_status_counts: dict[str, int] = Field(default_factory=dict)
