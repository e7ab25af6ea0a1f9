from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.database import get_db
from models.room import Room
from models.student import Student
from schemas.room import (
    AllotmentResult,
    AllotRequest,
    ReconcileResult,
    RoomCreate,
    RoomOccupant,
    RoomOut,
    RoomUpdate,
    RoomWithOccupancyOut,
)
from services.occupancy import (
    AllotmentError,
    allot_student,
    count_occupants,
    reconcile_all_rooms,
    reconcile_room,
    selectable_rooms,
)


logger = logging.getLogger(__name__)


router = APIRouter()


def _ensure_unique_room_number(db: Session, *, room_number: str, exclude_room_id: uuid.UUID | None) -> None:
    q = select(Room.id).where(Room.room_number == room_number)
    if exclude_room_id is not None:
        q = q.where(Room.id != exclude_room_id)
    if db.execute(q.limit(1)).first() is not None:
        raise HTTPException(status_code=409, detail="ROOM_NUMBER_ALREADY_EXISTS")


def _get_room(db: Session, room_id: uuid.UUID) -> Room:
    room = db.get(Room, room_id)
    if room is None:
        raise HTTPException(status_code=404, detail="ROOM_NOT_FOUND")
    return room


def _with_occupancy(room: Room, occupants: list[Student]) -> RoomWithOccupancyOut:
    occ = len(occupants)
    out = RoomWithOccupancyOut.model_validate(room, from_attributes=True)
    out.occupancy = occ
    out.available_slots = max(0, int(room.capacity) - occ)
    out.over_capacity = occ > int(room.capacity)
    out.students = [RoomOccupant.model_validate(s, from_attributes=True) for s in occupants]
    return out


def _commit_room(db: Session, room: Room) -> Room:
    try:
        # A renamed room carries its students along (FK ON UPDATE CASCADE).
        reconcile_room(db, room.room_number)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="ROOM_NUMBER_ALREADY_EXISTS")
    db.refresh(room)
    return room


def _apply_room_updates(db: Session, room: Room, updates: dict) -> None:
    if "room_number" in updates:
        room_number = str(updates["room_number"] or "").strip()
        if not room_number:
            raise HTTPException(status_code=400, detail="INVALID_ROOM_NUMBER")
        _ensure_unique_room_number(db, room_number=room_number, exclude_room_id=room.id)
        updates["room_number"] = room_number

    for field in ("capacity", "room_type", "status"):
        if field in updates and updates[field] is None:
            raise HTTPException(status_code=400, detail=f"INVALID_{field.upper()}")

    if "capacity" in updates and room.room_number:
        occ = count_occupants(db, room.room_number)
        if occ > int(updates["capacity"]):
            logger.warning(
                "Room %s capacity lowered to %d below current occupancy %d",
                room.room_number,
                int(updates["capacity"]),
                occ,
            )

    for k, v in updates.items():
        setattr(room, k, v)


@router.get("/", response_model=list[RoomWithOccupancyOut])
def list_rooms(db: Session = Depends(get_db)) -> list[RoomWithOccupancyOut]:
    rooms = db.execute(select(Room).order_by(Room.room_number.asc())).scalars().all()
    students = (
        db.execute(select(Student).where(Student.room_number.is_not(None)).order_by(Student.name.asc()))
        .scalars()
        .all()
    )
    by_room: dict[str, list[Student]] = {}
    for s in students:
        by_room.setdefault(s.room_number, []).append(s)
    return [_with_occupancy(r, by_room.get(r.room_number, [])) for r in rooms]


@router.get("/available", response_model=list[RoomWithOccupancyOut])
def list_available_rooms(
    student_id: uuid.UUID | None = Query(default=None),
    db: Session = Depends(get_db),
) -> list[RoomWithOccupancyOut]:
    keep = None
    if student_id is not None:
        student = db.get(Student, student_id)
        if student is None:
            raise HTTPException(status_code=404, detail="STUDENT_NOT_FOUND")
        keep = student.room_number

    out: list[RoomWithOccupancyOut] = []
    for room, occ in selectable_rooms(db, keep_room_number=keep):
        item = RoomWithOccupancyOut.model_validate(room, from_attributes=True)
        item.occupancy = occ
        item.available_slots = max(0, int(room.capacity) - occ)
        item.over_capacity = occ > int(room.capacity)
        out.append(item)
    return out


@router.post("/reconcile", response_model=ReconcileResult)
def reconcile_rooms_endpoint(db: Session = Depends(get_db)) -> ReconcileResult:
    checked, changed = reconcile_all_rooms(db)
    db.commit()
    if changed:
        logger.info("Room reconciliation sweep updated %d of %d rooms", changed, checked)
    return ReconcileResult(ok=True, rooms_checked=checked, rooms_changed=changed)


@router.get("/{room_id}", response_model=RoomWithOccupancyOut)
def get_room(room_id: uuid.UUID, db: Session = Depends(get_db)) -> RoomWithOccupancyOut:
    room = _get_room(db, room_id)
    occupants = (
        db.execute(select(Student).where(Student.room_number == room.room_number).order_by(Student.name.asc()))
        .scalars()
        .all()
    )
    return _with_occupancy(room, list(occupants))


@router.post("/", response_model=RoomOut)
def create_room(payload: RoomCreate, db: Session = Depends(get_db)) -> RoomOut:
    data = payload.model_dump()
    if not data["room_number"]:
        raise HTTPException(status_code=400, detail="INVALID_ROOM_NUMBER")

    _ensure_unique_room_number(db, room_number=data["room_number"], exclude_room_id=None)

    room = Room(**data)
    db.add(room)
    return _commit_room(db, room)


@router.put("/{room_id}", response_model=RoomOut)
def put_room(room_id: uuid.UUID, payload: RoomCreate, db: Session = Depends(get_db)) -> RoomOut:
    room = _get_room(db, room_id)
    _apply_room_updates(db, room, payload.model_dump())
    return _commit_room(db, room)


@router.patch("/{room_id}", response_model=RoomOut)
def update_room(room_id: uuid.UUID, payload: RoomUpdate, db: Session = Depends(get_db)) -> RoomOut:
    room = _get_room(db, room_id)
    _apply_room_updates(db, room, payload.model_dump(exclude_unset=True))
    return _commit_room(db, room)


@router.delete("/{room_id}")
def delete_room(room_id: uuid.UUID, db: Session = Depends(get_db)) -> dict:
    room = _get_room(db, room_id)
    room_number = room.room_number
    unassigned = count_occupants(db, room_number)
    # students.room_number is nulled by the FK (ON DELETE SET NULL), in this transaction.
    db.delete(room)
    db.commit()
    if unassigned:
        logger.info("Deleted room %s; %d students unassigned", room_number, unassigned)
    return {"ok": True, "students_unassigned": unassigned}


@router.post("/{room_number}/allot", response_model=AllotmentResult)
def allot_room(room_number: str, payload: AllotRequest, db: Session = Depends(get_db)) -> AllotmentResult:
    try:
        allotment = allot_student(db, student_id=payload.student_id, room_number=room_number.strip())
    except AllotmentError as exc:
        db.rollback()
        raise HTTPException(status_code=404, detail=exc.code)

    db.commit()
    room = allotment.room
    return AllotmentResult(
        ok=True,
        student_id=allotment.student.id,
        room_number=room.room_number,
        previous_room_number=allotment.previous_room_number,
        occupancy=allotment.occupancy,
        capacity=int(room.capacity),
        over_capacity=allotment.over_capacity,
        room_status=room.status,
    )
