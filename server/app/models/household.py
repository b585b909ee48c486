from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from app.core.db import Base

HOUSEHOLD_TYPE_VALUES = ("nuclear", "single_parent", "extended", "childless", "one_person", "non_family", "other")
TENURE_STATUS_VALUES = (
    "owned",
    "owned_with_mortgage",
    "rented",
    "occupied_for_free",
    "occupied_without_consent",
    "others",
)
HOUSEHOLD_UNIT_VALUES = (
    "single_house",
    "duplex",
    "apartment",
    "townhouse",
    "condominium",
    "boarding_house",
    "institutional",
    "makeshift",
    "others",
)


class Household(Base):
    __tablename__ = "households"

    id = Column(Integer, primary_key=True)
    # Hierarchical code: <barangay>-<subdivision>-<street>-<sequence>
    code = Column(String(50), nullable=False, unique=True, index=True)
    name = Column(String(200), nullable=True)
    house_number = Column(String(50), nullable=True)
    street_name = Column(String(200), nullable=True)
    subdivision = Column(String(100), nullable=True)
    zip_code = Column(String(10), nullable=True)
    barangay_code = Column(String(10), ForeignKey("psgc_barangays.code"), nullable=False, index=True)
    city_municipality_code = Column(String(10), nullable=True, index=True)
    province_code = Column(String(10), nullable=True, index=True)
    region_code = Column(String(10), nullable=True, index=True)
    household_type = Column(String(30), nullable=True)
    tenure_status = Column(String(40), nullable=True)
    tenure_others_specify = Column(String(200), nullable=True)
    household_unit = Column(String(30), nullable=True)
    monthly_income = Column(Numeric(12, 2), nullable=True)
    income_class = Column(String(30), nullable=True)
    household_head_id = Column(
        Integer,
        ForeignKey("residents.id", ondelete="SET NULL", use_alter=True, name="fk_households_head"),
        nullable=True,
    )
    member_count = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    deleted_at = Column(DateTime, nullable=True)
    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    head = relationship("Resident", foreign_keys=[household_head_id], post_update=True)
    residents = relationship("Resident", back_populates="household", foreign_keys="Resident.household_id")

    @property
    def active_residents(self) -> list:
        return [resident for resident in self.residents if resident.deleted_at is None]

    @property
    def head_name(self) -> str | None:
        if self.head is None:
            return None
        return self.head.full_name
