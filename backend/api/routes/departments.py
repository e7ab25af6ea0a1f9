from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.database import get_db
from models.department import Department
from models.student import Student
from schemas.department import DepartmentCreate, DepartmentOut, DepartmentUpdate


router = APIRouter()


def _get_department(db: Session, department_id: uuid.UUID) -> Department:
    dept = db.get(Department, department_id)
    if dept is None:
        raise HTTPException(status_code=404, detail="DEPARTMENT_NOT_FOUND")
    return dept


def _commit(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="DEPARTMENT_CODE_ALREADY_EXISTS")


@router.get("/", response_model=list[DepartmentOut])
def list_departments(db: Session = Depends(get_db)) -> list[DepartmentOut]:
    return db.execute(select(Department).order_by(Department.name.asc())).scalars().all()


@router.post("/", response_model=DepartmentOut)
def create_department(payload: DepartmentCreate, db: Session = Depends(get_db)) -> DepartmentOut:
    code = payload.code.strip()
    if not code or not payload.name.strip():
        raise HTTPException(status_code=400, detail="INVALID_DEPARTMENT")
    if db.execute(select(Department.id).where(func.lower(Department.code) == code.lower())).first() is not None:
        raise HTTPException(status_code=409, detail="DEPARTMENT_CODE_ALREADY_EXISTS")

    dept = Department(code=code, name=payload.name.strip())
    db.add(dept)
    _commit(db)
    db.refresh(dept)
    return dept


@router.patch("/{department_id}", response_model=DepartmentOut)
def update_department(
    department_id: uuid.UUID,
    payload: DepartmentUpdate,
    db: Session = Depends(get_db),
) -> DepartmentOut:
    dept = _get_department(db, department_id)
    data = payload.model_dump(exclude_unset=True)

    for k, v in data.items():
        v = (v or "").strip()
        if not v:
            raise HTTPException(status_code=400, detail=f"INVALID_{k.upper()}")
        setattr(dept, k, v)

    _commit(db)
    db.refresh(dept)
    return dept


@router.delete("/{department_id}")
def delete_department(department_id: uuid.UUID, db: Session = Depends(get_db)) -> dict:
    dept = _get_department(db, department_id)
    affected = db.execute(select(func.count(Student.id)).where(Student.department_id == dept.id)).scalar_one()
    # students.department_id is nulled by the FK.
    db.delete(dept)
    db.commit()
    return {"ok": True, "students_affected": int(affected)}
