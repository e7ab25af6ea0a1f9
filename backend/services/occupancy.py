from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from models.room import HELD_ROOM_STATUSES, Room
from models.student import Student


logger = logging.getLogger(__name__)


class AllotmentError(Exception):
    """Raised when an allotment references a student or room that does not exist."""

    def __init__(self, code: str) -> None:
        super().__init__(code)
        self.code = code


@dataclass(frozen=True)
class Allotment:
    student: Student
    room: Room
    previous_room_number: str | None
    occupancy: int

    @property
    def over_capacity(self) -> bool:
        return self.occupancy > int(self.room.capacity)


def derive_room_status(*, current_status: str, occupancy: int, capacity: int) -> str:
    """Status a room should carry for the given occupancy.

    Manual holds (maintenance/blocked) are kept as-is; every other room is
    ``full`` once occupancy reaches capacity and ``available`` below it.
    """

    if current_status in HELD_ROOM_STATUSES:
        return current_status
    return "full" if occupancy >= int(capacity) else "available"


def count_occupants(db: Session, room_number: str) -> int:
    q = select(func.count(Student.id)).where(Student.room_number == room_number)
    return int(db.execute(q).scalar_one())


def occupancy_by_room(db: Session) -> dict[str, int]:
    rows = db.execute(
        select(Student.room_number, func.count(Student.id))
        .where(Student.room_number.is_not(None))
        .group_by(Student.room_number)
    ).all()
    return {str(rn): int(n) for rn, n in rows}


def reconcile_room(db: Session, room_number: str | None) -> bool:
    """Recompute and stage ``Room.status`` for one room.

    Runs inside the caller's transaction; the caller commits. Returns True when
    the stored status changed. A room that no longer exists is skipped.
    """

    if not room_number:
        return False

    # Pending student writes must be visible to the count.
    db.flush()

    room = db.execute(select(Room).where(Room.room_number == room_number)).scalars().first()
    if room is None:
        return False

    occupancy = count_occupants(db, room_number)
    new_status = derive_room_status(current_status=room.status, occupancy=occupancy, capacity=room.capacity)
    if new_status == room.status:
        return False

    logger.debug(
        "Room %s status %s -> %s (occupancy=%d capacity=%d)",
        room_number,
        room.status,
        new_status,
        occupancy,
        room.capacity,
    )
    room.status = new_status
    return True


def reconcile_rooms(db: Session, room_numbers: Iterable[str | None]) -> int:
    changed = 0
    seen: set[str] = set()
    for rn in room_numbers:
        if not rn or rn in seen:
            continue
        seen.add(rn)
        if reconcile_room(db, rn):
            changed += 1
    return changed


def reconcile_all_rooms(db: Session) -> tuple[int, int]:
    """Reconcile every room. Returns ``(checked, changed)``."""

    db.flush()
    counts = occupancy_by_room(db)
    rooms = db.execute(select(Room).order_by(Room.room_number.asc())).scalars().all()

    changed = 0
    for room in rooms:
        new_status = derive_room_status(
            current_status=room.status,
            occupancy=counts.get(room.room_number, 0),
            capacity=room.capacity,
        )
        if new_status != room.status:
            room.status = new_status
            changed += 1
    return len(rooms), changed


def allot_student(db: Session, *, student_id, room_number: str) -> Allotment:
    """Assign a student to a room and reconcile both affected rooms.

    Capacity is NOT re-checked here: the caller picks the room from the
    capacity-filtered list, so two allotments racing for the last slot can
    both land. The result reports ``over_capacity`` when that happens.
    Nothing is committed; the caller owns the transaction.
    """

    student = db.get(Student, student_id)
    if student is None:
        raise AllotmentError("STUDENT_NOT_FOUND")

    room = db.execute(select(Room).where(Room.room_number == room_number)).scalars().first()
    if room is None:
        raise AllotmentError("ROOM_NOT_FOUND")

    previous = student.room_number
    student.room_number = room.room_number
    reconcile_rooms(db, [previous, room.room_number])

    occupancy = count_occupants(db, room.room_number)
    allotment = Allotment(student=student, room=room, previous_room_number=previous, occupancy=occupancy)
    if allotment.over_capacity:
        logger.warning(
            "Room %s is over capacity after allotting student %s (occupancy=%d capacity=%d)",
            room.room_number,
            student.student_id,
            occupancy,
            room.capacity,
        )
    return allotment


def unassign_student(db: Session, student: Student) -> str | None:
    previous = student.room_number
    if previous is None:
        return None
    student.room_number = None
    reconcile_room(db, previous)
    return previous


def selectable_rooms(db: Session, *, keep_room_number: str | None = None) -> list[tuple[Room, int]]:
    """Rooms a student may be placed in: free slots left and not on hold.

    ``keep_room_number`` (the student's current room) is always included.
    """

    counts = occupancy_by_room(db)
    rooms = db.execute(select(Room).order_by(Room.room_number.asc())).scalars().all()
    out: list[tuple[Room, int]] = []
    for room in rooms:
        occ = counts.get(room.room_number, 0)
        if room.room_number == keep_room_number:
            out.append((room, occ))
            continue
        if room.status in HELD_ROOM_STATUSES:
            continue
        if occ < int(room.capacity):
            out.append((room, occ))
    return out
