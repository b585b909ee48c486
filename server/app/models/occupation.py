from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from app.core.db import Base

PSOC_LEVELS = ("major_group", "sub_major_group", "minor_group", "unit_group", "unit_sub_group")


class Occupation(Base):
    """One PSOC entry at any level of the classification."""

    __tablename__ = "psoc_occupations"

    code = Column(String(10), primary_key=True)
    title = Column(String(200), nullable=False, index=True)
    level = Column(String(20), nullable=False)
    parent_code = Column(String(10), ForeignKey("psoc_occupations.code"), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    parent = relationship("Occupation", remote_side=[code], lazy="joined")
