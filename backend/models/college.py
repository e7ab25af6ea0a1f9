from __future__ import annotations

import uuid

from sqlalchemy import Column, DateTime, Text, Uuid
from sqlalchemy.sql import func

from models.base import Base


class College(Base):
    __tablename__ = "colleges"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    # Students reference colleges by name (FK with ON UPDATE CASCADE).
    name = Column(Text, nullable=False, unique=True)
    code = Column(Text, nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
