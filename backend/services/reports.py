from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from models.college import College
from models.department import Department
from models.fee import Fee
from models.room import Room
from models.student import Student
from schemas.data import DashboardStatsOut, DepartmentShare, DiagnosticsOut
from services.occupancy import occupancy_by_room


def _count(db: Session, stmt) -> int:
    return int(db.execute(stmt).scalar_one() or 0)


def fee_totals(db: Session) -> tuple[float, float]:
    """``(billed, collected)`` across every fee row."""

    billed, collected = db.execute(
        select(func.coalesce(func.sum(Fee.amount), 0), func.coalesce(func.sum(Fee.paid_amount), 0))
    ).one()
    return float(billed or 0), float(collected or 0)


def over_capacity_rooms(db: Session) -> list[Room]:
    counts = occupancy_by_room(db)
    rooms = db.execute(select(Room)).scalars().all()
    return [r for r in rooms if counts.get(r.room_number, 0) > int(r.capacity)]


def dashboard_stats(db: Session) -> DashboardStatsOut:
    active = Student.status == "active"
    total_students = _count(db, select(func.count(Student.id)).where(active))

    billed, collected = fee_totals(db)

    total_capacity = _count(db, select(func.coalesce(func.sum(Room.capacity), 0)))
    assigned = _count(db, select(func.count(Student.id)).where(Student.room_number.is_not(None)))
    occupancy_rate = round(assigned * 100.0 / total_capacity, 1) if total_capacity else 0.0

    rows = db.execute(
        select(func.coalesce(Department.name, "Unassigned"), func.count(Student.id))
        .select_from(Student)
        .outerjoin(Department, Department.id == Student.department_id)
        .where(active)
        .group_by(Department.name)
        .order_by(func.count(Student.id).desc())
    ).all()
    departments = [
        DepartmentShare(
            department=str(name),
            students=int(n),
            percentage=round(int(n) * 100.0 / total_students, 1) if total_students else 0.0,
        )
        for name, n in rows
    ]

    status_rows = db.execute(select(Room.status, func.count(Room.id)).group_by(Room.status)).all()

    return DashboardStatsOut(
        total_students=total_students,
        fees_collected=collected,
        pending_dues=max(0.0, billed - collected),
        total_capacity=total_capacity,
        assigned_students=assigned,
        occupancy_rate=occupancy_rate,
        departments=departments,
        room_status_counts={str(s): int(n) for s, n in status_rows},
    )


def diagnostics(db: Session, *, today: date | None = None) -> DiagnosticsOut:
    today = today or date.today()
    overdue = _count(
        db,
        select(func.count(Fee.id)).where(
            (Fee.status == "overdue") | ((Fee.paid_amount < Fee.amount) & (Fee.due_date < today))
        ),
    )
    return DiagnosticsOut(
        students_count=_count(db, select(func.count(Student.id))),
        departments_count=_count(db, select(func.count(Department.id))),
        colleges_count=_count(db, select(func.count(College.id))),
        rooms_count=_count(db, select(func.count(Room.id))),
        fees_count=_count(db, select(func.count(Fee.id))),
        overdue_fees_count=overdue,
        students_without_email_count=_count(db, select(func.count(Student.id)).where(Student.email.is_(None))),
        over_capacity_rooms_count=len(over_capacity_rooms(db)),
        timestamp=datetime.now(timezone.utc),
    )
