from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from fastapi.responses import HTMLResponse, PlainTextResponse
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.config import settings
from core.database import get_db
from models.college import College
from models.department import Department
from models.room import Room
from models.student import Student
from schemas.department import DepartmentOut
from schemas.student import StudentCreate, StudentDetailOut, StudentOut, StudentUpdate
from services.exports import export_filename, render_invoice_html, render_invoice_text
from services.fees import fee_balance, fee_to_out, summarize_student_fees
from services.occupancy import reconcile_rooms, unassign_student


logger = logging.getLogger(__name__)


router = APIRouter()


# Fields a student must always carry; PATCH may change them but not clear them.
_REQUIRED_FIELDS = ("student_id", "name", "gender", "phone", "parent_name", "year", "department_id", "college", "status")


def _get_student(db: Session, student_id: uuid.UUID) -> Student:
    student = db.get(Student, student_id)
    if student is None:
        raise HTTPException(status_code=404, detail="STUDENT_NOT_FOUND")
    return student


def _student_out(student: Student) -> StudentOut:
    out = StudentOut.model_validate(student, from_attributes=True)
    out.department_name = student.department.name if student.department is not None else None
    out.fee_status = summarize_student_fees(list(student.fees))
    return out


def _ensure_references(db: Session, data: dict) -> None:
    room_number = data.get("room_number")
    if room_number and db.execute(select(Room.id).where(Room.room_number == room_number)).first() is None:
        raise HTTPException(status_code=404, detail="ROOM_NOT_FOUND")

    department_id = data.get("department_id")
    if department_id is not None and db.get(Department, department_id) is None:
        raise HTTPException(status_code=404, detail="DEPARTMENT_NOT_FOUND")

    college = data.get("college")
    if college and db.execute(select(College.id).where(College.name == college)).first() is None:
        raise HTTPException(status_code=404, detail="COLLEGE_NOT_FOUND")


def _ensure_unique_student_id(db: Session, *, student_id: str, exclude_id: uuid.UUID | None) -> None:
    q = select(Student.id).where(Student.student_id == student_id)
    if exclude_id is not None:
        q = q.where(Student.id != exclude_id)
    if db.execute(q.limit(1)).first() is not None:
        raise HTTPException(status_code=409, detail="STUDENT_ID_ALREADY_EXISTS")


def _commit(db: Session, *, rooms: list[str | None] | None = None) -> None:
    try:
        reconcile_rooms(db, rooms or [])
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="STUDENT_CONFLICT")


@router.get("/", response_model=list[StudentOut])
def list_students(
    search: str | None = Query(default=None),
    year: int | None = Query(default=None, ge=1, le=4),
    department_id: uuid.UUID | None = Query(default=None),
    status: str = Query(default="active"),
    db: Session = Depends(get_db),
) -> list[StudentOut]:
    q = select(Student)
    if status != "all":
        q = q.where(Student.status == status)
    if year is not None:
        q = q.where(Student.year == year)
    if department_id is not None:
        q = q.where(Student.department_id == department_id)
    if search and search.strip():
        needle = f"%{search.strip().lower()}%"
        q = q.where(
            or_(
                func.lower(Student.name).like(needle),
                func.lower(Student.student_id).like(needle),
                func.lower(func.coalesce(Student.room_number, "")).like(needle),
            )
        )
    q = q.order_by(Student.created_at.desc(), Student.student_id.asc())
    students = db.execute(q).unique().scalars().all()
    return [_student_out(s) for s in students]


@router.get("/unassigned", response_model=list[StudentOut])
def list_unassigned_students(db: Session = Depends(get_db)) -> list[StudentOut]:
    q = (
        select(Student)
        .where(Student.room_number.is_(None))
        .where(Student.status == "active")
        .order_by(Student.name.asc())
    )
    return [_student_out(s) for s in db.execute(q).unique().scalars().all()]


@router.get("/{student_id}", response_model=StudentDetailOut)
def get_student(student_id: uuid.UUID, db: Session = Depends(get_db)) -> StudentDetailOut:
    student = _get_student(db, student_id)
    base = _student_out(student)
    fees = list(student.fees)
    today = date.today()

    total_amount = round(sum(float(f.amount or 0) for f in fees), 2)
    total_paid = round(sum(float(f.paid_amount or 0) for f in fees), 2)
    return StudentDetailOut(
        **base.model_dump(),
        department=DepartmentOut.model_validate(student.department) if student.department is not None else None,
        fees=[fee_to_out(f, today=today) for f in fees],
        total_amount=total_amount,
        total_paid=total_paid,
        balance=round(sum(fee_balance(f) for f in fees), 2),
    )


@router.post("/", response_model=StudentOut)
def create_student(payload: StudentCreate, db: Session = Depends(get_db)) -> StudentOut:
    data = payload.model_dump()
    if data.get("admission_date") is None:
        data.pop("admission_date", None)

    _ensure_unique_student_id(db, student_id=data["student_id"], exclude_id=None)
    _ensure_references(db, data)

    student = Student(**data)
    db.add(student)
    _commit(db, rooms=[student.room_number])
    db.refresh(student)
    logger.info("Created student %s (room=%s)", student.student_id, student.room_number)
    return _student_out(student)


@router.patch("/{student_id}", response_model=StudentOut)
def update_student(student_id: uuid.UUID, payload: StudentUpdate, db: Session = Depends(get_db)) -> StudentOut:
    student = _get_student(db, student_id)
    updates = payload.model_dump(exclude_unset=True)

    for field in _REQUIRED_FIELDS:
        if field in updates and updates[field] is None:
            raise HTTPException(status_code=400, detail=f"{field.upper()}_REQUIRED")
    if "admission_date" in updates and updates["admission_date"] is None:
        updates.pop("admission_date")

    if "student_id" in updates:
        _ensure_unique_student_id(db, student_id=updates["student_id"], exclude_id=student.id)
    _ensure_references(db, updates)

    previous_room = student.room_number
    for k, v in updates.items():
        setattr(student, k, v)

    _commit(db, rooms=[previous_room, student.room_number] if "room_number" in updates else None)
    db.refresh(student)
    return _student_out(student)


@router.delete("/{student_id}")
def delete_student(student_id: uuid.UUID, db: Session = Depends(get_db)) -> dict:
    student = _get_student(db, student_id)
    previous_room = student.room_number
    db.delete(student)
    # Frees the slot in the same transaction as the delete.
    _commit(db, rooms=[previous_room])
    return {"ok": True}


@router.post("/{student_id}/unassign", response_model=StudentOut)
def unassign_student_room(student_id: uuid.UUID, db: Session = Depends(get_db)) -> StudentOut:
    student = _get_student(db, student_id)
    unassign_student(db, student)
    _commit(db)
    db.refresh(student)
    return _student_out(student)


@router.get("/{student_id}/invoice")
def student_invoice(
    student_id: uuid.UUID,
    format: Literal["txt", "html"] = Query(default="txt"),
    db: Session = Depends(get_db),
) -> Response:
    student = _get_student(db, student_id)
    filename = export_filename(f"invoice_{student.student_id}", format)
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}

    if format == "html":
        body = render_invoice_html(student, institution=settings.institution_name)
        return HTMLResponse(content=body, headers=headers)
    body = render_invoice_text(student, institution=settings.institution_name)
    return PlainTextResponse(content=body, headers=headers)
