from __future__ import annotations

import uuid
from datetime import date

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from models.base import Base


class Student(Base):
    __tablename__ = "students"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id = Column(Text, nullable=False, unique=True)
    name = Column(Text, nullable=False)
    gender = Column(String(20), nullable=True)
    phone = Column(Text, nullable=True)
    email = Column(Text, nullable=True)
    parent_name = Column(Text, nullable=True)
    parent_phone = Column(Text, nullable=True)
    address = Column(Text, nullable=True)
    department_id = Column(
        Uuid,
        ForeignKey("departments.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    college = Column(
        Text,
        ForeignKey("colleges.name", ondelete="SET NULL", onupdate="CASCADE"),
        nullable=True,
        index=True,
    )
    year = Column(Integer, nullable=False)
    room_number = Column(
        Text,
        ForeignKey("rooms.room_number", ondelete="SET NULL", onupdate="CASCADE"),
        nullable=True,
        index=True,
    )
    admission_date = Column(Date, nullable=False, default=date.today)
    status = Column(String(20), nullable=False, default="active")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    department = relationship("Department", lazy="joined")
    fees = relationship(
        "Fee",
        back_populates="student",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="Fee.due_date",
    )

    __table_args__ = (
        CheckConstraint("year between 1 and 4", name="ck_students_year"),
        CheckConstraint("status in ('active', 'inactive')", name="ck_students_status"),
    )
