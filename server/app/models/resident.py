from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Boolean, Column, Date, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from app.core.db import Base

SEX_VALUES = ("male", "female")
CIVIL_STATUS_VALUES = ("single", "married", "divorced", "separated", "widowed", "others")
CITIZENSHIP_VALUES = ("filipino", "dual_citizen", "foreigner")
EDUCATION_LEVEL_VALUES = ("elementary", "high_school", "college", "post_graduate", "vocational")
EDUCATION_STATUS_VALUES = ("currently_studying", "not_studying", "graduated", "dropped_out")
EMPLOYMENT_STATUS_VALUES = (
    "employed",
    "unemployed",
    "underemployed",
    "self_employed",
    "student",
    "retired",
    "homemaker",
    "unable_to_work",
    "looking_for_work",
    "not_in_labor_force",
)
BLOOD_TYPE_VALUES = ("A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-", "unknown")
RELIGION_VALUES = (
    "roman_catholic",
    "islam",
    "iglesia_ni_cristo",
    "christian",
    "aglipayan_church",
    "seventh_day_adventist",
    "bible_baptist_church",
    "jehovahs_witnesses",
    "church_of_jesus_christ_latter_day_saints",
    "united_church_of_christ_philippines",
    "others",
)
ETHNICITY_VALUES = (
    "tagalog", "cebuano", "ilocano", "bisaya", "hiligaynon", "bikolano", "waray", "kapampangan",
    "pangasinense", "maranao", "maguindanao", "tausug", "yakan", "samal", "badjao", "aeta", "agta",
    "ati", "batak", "bukidnon", "gaddang", "higaonon", "ibaloi", "ifugao", "igorot", "ilongot",
    "isneg", "ivatan", "kalinga", "kankanaey", "mangyan", "mansaka", "palawan", "subanen", "tboli",
    "teduray", "tumandok", "chinese", "others", "not_reported",
)
RELATIONSHIP_TO_HEAD_VALUES = (
    "head", "spouse", "child", "parent", "sibling", "grandparent", "grandchild", "in_law",
    "other_relative", "non_relative", "boarder", "domestic_helper",
)


def age_at(birthdate: date, today: date) -> int:
    years = today.year - birthdate.year
    if (today.month, today.day) < (birthdate.month, birthdate.day):
        years -= 1
    return years


ResidentSex = Enum(*SEX_VALUES, name="sex_enum")
ResidentCivilStatus = Enum(*CIVIL_STATUS_VALUES, name="civil_status_enum")


class Resident(Base):
    """A person registered in a barangay.

    The four geographic code columns always mirror the owning household when
    ``household_id`` is set; otherwise they come from the resident's own
    barangay. Both paths go through ``app.services.geography``.
    """

    __tablename__ = "residents"

    id = Column(Integer, primary_key=True)
    first_name = Column(String(100), nullable=False)
    middle_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=False, index=True)
    extension_name = Column(String(20), nullable=True)
    birthdate = Column(Date, nullable=False)
    birth_place_code = Column(String(10), nullable=True)
    sex = Column(ResidentSex, nullable=False)
    civil_status = Column(ResidentCivilStatus, nullable=False, default="single")
    civil_status_others_specify = Column(String(200), nullable=True)
    citizenship = Column(String(20), nullable=False, default="filipino")

    email = Column(String(255), nullable=True)
    mobile_number = Column(String(20), nullable=True)
    telephone_number = Column(String(20), nullable=True)

    education_attainment = Column(String(30), nullable=True)
    education_status = Column(String(30), nullable=True)
    is_graduate = Column(Boolean, default=False, nullable=False)
    employment_status = Column(String(30), nullable=True)
    occupation_code = Column(String(10), ForeignKey("psoc_occupations.code"), nullable=True)

    height = Column(Numeric(5, 2), nullable=True)
    weight = Column(Numeric(5, 2), nullable=True)
    complexion = Column(String(50), nullable=True)
    blood_type = Column(String(5), nullable=True)
    religion = Column(String(60), nullable=True)
    religion_others_specify = Column(String(200), nullable=True)
    ethnicity = Column(String(30), nullable=True)

    mother_maiden_first = Column(String(100), nullable=True)
    mother_maiden_middle = Column(String(100), nullable=True)
    mother_maiden_last = Column(String(100), nullable=True)

    philsys_card_number_hash = Column(String(64), nullable=True)
    philsys_last4 = Column(String(4), nullable=True, index=True)

    is_voter = Column(Boolean, default=False, nullable=False)
    is_resident_voter = Column(Boolean, default=False, nullable=False)
    last_voted_date = Column(Date, nullable=True)

    # Derived from birthdate / employment / education on every write.
    is_labor_force = Column(Boolean, default=False, nullable=False)
    is_employed = Column(Boolean, default=False, nullable=False)
    is_unemployed = Column(Boolean, default=False, nullable=False)
    is_senior_citizen = Column(Boolean, default=False, nullable=False)
    is_out_of_school_children = Column(Boolean, default=False, nullable=False)
    is_out_of_school_youth = Column(Boolean, default=False, nullable=False)
    # Declared by the registrar.
    is_overseas_filipino_worker = Column(Boolean, default=False, nullable=False)
    is_person_with_disability = Column(Boolean, default=False, nullable=False)
    is_registered_senior_citizen = Column(Boolean, default=False, nullable=False)
    is_solo_parent = Column(Boolean, default=False, nullable=False)
    is_indigenous_people = Column(Boolean, default=False, nullable=False)
    is_migrant = Column(Boolean, default=False, nullable=False)

    household_id = Column(Integer, ForeignKey("households.id", ondelete="SET NULL"), nullable=True, index=True)
    relationship_to_head = Column(String(30), nullable=True)
    barangay_code = Column(String(10), ForeignKey("psgc_barangays.code"), nullable=False, index=True)
    city_municipality_code = Column(String(10), nullable=True, index=True)
    province_code = Column(String(10), nullable=True, index=True)
    region_code = Column(String(10), nullable=True, index=True)

    is_active = Column(Boolean, default=True, nullable=False)
    deleted_at = Column(DateTime, nullable=True)
    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    household = relationship("Household", back_populates="residents", foreign_keys=[household_id])
    occupation = relationship("Occupation")
    migration_info = relationship(
        "ResidentMigrationInfo",
        uselist=False,
        back_populates="resident",
        cascade="all, delete-orphan",
    )
    audit_entries = relationship(
        "ResidentAudit",
        back_populates="resident",
        cascade="all, delete-orphan",
        order_by="ResidentAudit.changed_at.desc()",
    )

    @property
    def full_name(self) -> str:
        parts = [self.first_name, self.middle_name, self.last_name, self.extension_name]
        return " ".join(part.strip() for part in parts if part and part.strip())

    def age_on(self, on: date | None = None) -> int:
        return age_at(self.birthdate, on or date.today())


class ResidentMigrationInfo(Base):
    __tablename__ = "resident_migration_info"

    id = Column(Integer, primary_key=True)
    resident_id = Column(Integer, ForeignKey("residents.id", ondelete="CASCADE"), nullable=False, unique=True)
    previous_barangay_code = Column(String(10), nullable=True)
    previous_city_municipality_code = Column(String(10), nullable=True)
    previous_province_code = Column(String(10), nullable=True)
    previous_region_code = Column(String(10), nullable=True)
    date_of_transfer = Column(Date, nullable=True)
    reason_for_leaving = Column(String(500), nullable=True)
    reason_for_transferring = Column(String(500), nullable=True)
    length_of_stay_previous_months = Column(Integer, nullable=True)
    duration_of_stay_current_months = Column(Integer, nullable=True)
    is_intending_to_return = Column(Boolean, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    resident = relationship("Resident", back_populates="migration_info")


class ResidentAudit(Base):
    __tablename__ = "resident_audit"

    id = Column(Integer, primary_key=True)
    resident_id = Column(Integer, ForeignKey("residents.id", ondelete="CASCADE"), nullable=False, index=True)
    field = Column(String(100), nullable=False)
    old_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)
    changed_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    changed_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    resident = relationship("Resident", back_populates="audit_entries")
    actor = relationship("User")
