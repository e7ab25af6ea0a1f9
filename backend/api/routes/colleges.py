from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.database import get_db
from models.college import College
from models.student import Student
from schemas.department import CollegeCreate, CollegeOut, CollegeUpdate


router = APIRouter()


def _get_college(db: Session, college_id: uuid.UUID) -> College:
    college = db.get(College, college_id)
    if college is None:
        raise HTTPException(status_code=404, detail="COLLEGE_NOT_FOUND")
    return college


def _ensure_unique(db: Session, *, name: str | None, code: str | None, exclude_id: uuid.UUID | None) -> None:
    clauses = []
    if name:
        clauses.append(func.lower(College.name) == name.lower())
    if code:
        clauses.append(func.lower(College.code) == code.lower())
    if not clauses:
        return
    q = select(College.id).where(or_(*clauses))
    if exclude_id is not None:
        q = q.where(College.id != exclude_id)
    if db.execute(q.limit(1)).first() is not None:
        raise HTTPException(status_code=409, detail="COLLEGE_ALREADY_EXISTS")


def _commit(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="COLLEGE_ALREADY_EXISTS")


@router.get("/", response_model=list[CollegeOut])
def list_colleges(db: Session = Depends(get_db)) -> list[CollegeOut]:
    return db.execute(select(College).order_by(College.name.asc())).scalars().all()


@router.post("/", response_model=CollegeOut)
def create_college(payload: CollegeCreate, db: Session = Depends(get_db)) -> CollegeOut:
    name = payload.name.strip()
    code = payload.code.strip()
    if not name or not code:
        raise HTTPException(status_code=400, detail="INVALID_COLLEGE")
    _ensure_unique(db, name=name, code=code, exclude_id=None)

    college = College(name=name, code=code)
    db.add(college)
    _commit(db)
    db.refresh(college)
    return college


@router.patch("/{college_id}", response_model=CollegeOut)
def update_college(college_id: uuid.UUID, payload: CollegeUpdate, db: Session = Depends(get_db)) -> CollegeOut:
    college = _get_college(db, college_id)
    data = payload.model_dump(exclude_unset=True)

    cleaned: dict[str, str] = {}
    for k, v in data.items():
        v = (v or "").strip()
        if not v:
            raise HTTPException(status_code=400, detail=f"INVALID_{k.upper()}")
        cleaned[k] = v
    _ensure_unique(db, name=cleaned.get("name"), code=cleaned.get("code"), exclude_id=college.id)

    # A rename reaches students.college through the FK (ON UPDATE CASCADE).
    for k, v in cleaned.items():
        setattr(college, k, v)

    _commit(db)
    db.refresh(college)
    return college


@router.delete("/{college_id}")
def delete_college(college_id: uuid.UUID, db: Session = Depends(get_db)) -> dict:
    college = _get_college(db, college_id)
    affected = db.execute(select(func.count(Student.id)).where(Student.college == college.name)).scalar_one()
    db.delete(college)
    db.commit()
    return {"ok": True, "students_affected": int(affected)}
