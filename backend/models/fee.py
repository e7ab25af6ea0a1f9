from __future__ import annotations

import uuid

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from models.base import Base


class Fee(Base):
    __tablename__ = "fees"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id = Column(
        Uuid,
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    academic_year = Column(Text, nullable=False)
    fee_year = Column(Text, nullable=False)
    amount = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    paid_amount = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    status = Column(String(20), nullable=False, default="pending")
    due_date = Column(Date, nullable=True)
    payment_date = Column(Date, nullable=True)
    payment_method = Column(String(20), nullable=True)
    transaction_id = Column(Text, nullable=True)
    remarks = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    student = relationship("Student", back_populates="fees")

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_fees_amount"),
        CheckConstraint("paid_amount >= 0", name="ck_fees_paid_amount"),
        CheckConstraint("status in ('pending', 'partial', 'paid', 'overdue')", name="ck_fees_status"),
    )
