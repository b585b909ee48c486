from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.db import Base


class User(Base):
    """Login identity plus its geographic profile.

    ``city_municipality_code``, ``province_code`` and ``region_code`` are a
    projection of ``barangay_code`` written by the geographic resolver; they
    are never set from request input.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    mobile_number = Column(String(20), nullable=True)
    hashed_password = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=True, index=True)
    barangay_code = Column(String(10), ForeignKey("psgc_barangays.code"), nullable=True, index=True)
    city_municipality_code = Column(String(10), nullable=True, index=True)
    province_code = Column(String(10), nullable=True, index=True)
    region_code = Column(String(10), nullable=True, index=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    role = relationship("Role", back_populates="users", lazy="joined")

    @property
    def role_name(self) -> str | None:
        return self.role.name if self.role else None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
