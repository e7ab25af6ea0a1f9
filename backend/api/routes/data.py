from __future__ import annotations

import csv
import json
import logging
from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.database import get_db
from models.college import College
from models.department import Department
from models.fee import Fee
from models.room import Room
from models.student import Student
from schemas.data import DiagnosticsOut, ImportRequest, ImportResult
from schemas.department import CollegeCreate, DepartmentCreate
from schemas.fee import FeeCreate
from schemas.room import RoomCreate
from schemas.student import StudentCreate
from services.exports import export_filename, parse_csv, parse_json_rows, row_to_dict, rows_to_csv, table_columns
from services.fees import refresh_fee_status
from services.occupancy import reconcile_rooms
from services.reports import diagnostics


logger = logging.getLogger(__name__)


router = APIRouter()


# Export/import order: referenced tables first.
TABLES: dict[str, tuple[Any, type[BaseModel]]] = {
    "departments": (Department, DepartmentCreate),
    "colleges": (College, CollegeCreate),
    "rooms": (Room, RoomCreate),
    "students": (Student, StudentCreate),
    "fees": (Fee, FeeCreate),
}


def _resolve_table(table: str) -> tuple[Any, type[BaseModel]]:
    entry = TABLES.get(table)
    if entry is None:
        raise HTTPException(status_code=404, detail="UNKNOWN_TABLE")
    return entry


def _table_rows(db: Session, model) -> list[dict[str, Any]]:
    return [row_to_dict(r) for r in db.execute(select(model).order_by(model.created_at.asc())).unique().scalars().all()]


def _download_headers(filename: str) -> dict[str, str]:
    return {"Content-Disposition": f'attachment; filename="{filename}"'}


def _error_list(exc: ValidationError) -> list[dict[str, Any]]:
    return [{"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()]


def _prepare_row(table: str, raw: dict[str, Any]) -> dict[str, Any]:
    # Empty cells fall back to schema defaults.
    row = {k: v for k, v in raw.items() if v is not None}
    if table == "rooms" and isinstance(row.get("amenities"), str):
        text = row["amenities"].strip()
        row["amenities"] = json.loads(text) if text.startswith("[") else [a.strip() for a in text.split(",") if a.strip()]
    return row


def _missing_reference(db: Session, table: str, data: dict[str, Any]) -> str | None:
    if table == "students":
        room_number = data.get("room_number")
        if room_number and db.execute(select(Room.id).where(Room.room_number == room_number)).first() is None:
            return "ROOM_NOT_FOUND"
        if db.get(Department, data["department_id"]) is None:
            return "DEPARTMENT_NOT_FOUND"
        if db.execute(select(College.id).where(College.name == data["college"])).first() is None:
            return "COLLEGE_NOT_FOUND"
    if table == "fees" and db.get(Student, data["student_id"]) is None:
        return "STUDENT_NOT_FOUND"
    return None


def _build_instance(table: str, model, data: dict[str, Any], raw: dict[str, Any], today: date):
    if table == "students" and data.get("admission_date") is None:
        data.pop("admission_date", None)
    obj = model(**data)
    if table == "fees":
        raw_paid_on = raw.get("payment_date")
        if raw_paid_on:
            obj.payment_date = date.fromisoformat(str(raw_paid_on)[:10])
        elif float(obj.paid_amount or 0) > 0:
            obj.payment_date = today
        refresh_fee_status(obj, today=today)
    return obj


@router.get("/export/{table}")
def export_table(table: str, db: Session = Depends(get_db)) -> Response:
    model, _ = _resolve_table(table)
    csv_text = rows_to_csv(_table_rows(db, model), table_columns(model))
    return Response(
        content=csv_text,
        media_type="text/csv; charset=utf-8",
        headers=_download_headers(export_filename(f"{table}_export", "csv")),
    )


@router.get("/backup")
def backup(db: Session = Depends(get_db)) -> JSONResponse:
    document = {name: _table_rows(db, model) for name, (model, _) in TABLES.items()}
    return JSONResponse(content=document, headers=_download_headers(export_filename("hostel_backup", "json")))


@router.post("/import/{table}", response_model=ImportResult)
def import_table(table: str, payload: ImportRequest, db: Session = Depends(get_db)) -> ImportResult:
    model, schema = _resolve_table(table)

    try:
        if payload.format == "csv":
            raw_rows = parse_csv(payload.content)
        else:
            raw_rows = parse_json_rows(payload.content, table)
    except (ValueError, csv.Error) as exc:
        raise HTTPException(status_code=422, detail={"code": "INVALID_IMPORT_FILE", "errors": [str(exc)]})

    if not raw_rows:
        raise HTTPException(status_code=422, detail={"code": "EMPTY_IMPORT", "errors": []})

    today = date.today()
    objects = []
    errors: list[dict[str, Any]] = []
    for index, raw in enumerate(raw_rows):
        try:
            data = schema.model_validate(_prepare_row(table, raw)).model_dump()
        except ValidationError as exc:
            errors.append({"row": index, "errors": _error_list(exc)})
            continue
        except ValueError as exc:
            errors.append({"row": index, "errors": [{"loc": [], "msg": str(exc)}]})
            continue

        missing = _missing_reference(db, table, data)
        if missing is not None:
            errors.append({"row": index, "errors": [{"loc": [], "msg": missing}]})
            continue

        try:
            obj = _build_instance(table, model, data, raw, today)
        except ValueError as exc:
            errors.append({"row": index, "errors": [{"loc": ["payment_date"], "msg": str(exc)}]})
            continue
        objects.append(obj)

    if errors:
        logger.warning("Import into %s rejected: %d invalid rows of %d", table, len(errors), len(raw_rows))
        raise HTTPException(status_code=422, detail={"code": "INVALID_IMPORT_ROWS", "errors": errors})

    db.add_all(objects)

    touched: list[str] = []
    if table == "rooms":
        touched = [o.room_number for o in objects]
    elif table == "students":
        touched = [o.room_number for o in objects if o.room_number]
    try:
        reconcile_rooms(db, touched)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning("Import into %s failed on commit: %s", table, exc.orig)
        raise HTTPException(status_code=409, detail={"code": "IMPORT_CONFLICT", "errors": [str(exc.orig)]})

    logger.info("Imported %d rows into %s", len(objects), table)
    return ImportResult(ok=True, table=table, inserted=len(objects), rooms_reconciled=len(set(touched)))


@router.get("/diagnostics", response_model=DiagnosticsOut)
def get_diagnostics(db: Session = Depends(get_db)) -> DiagnosticsOut:
    return diagnostics(db)
