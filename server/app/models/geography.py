from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from app.core.db import Base


class Region(Base):
    __tablename__ = "psgc_regions"

    code = Column(String(10), primary_key=True)
    name = Column(String(200), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    provinces = relationship("Province", back_populates="region")


class Province(Base):
    __tablename__ = "psgc_provinces"

    code = Column(String(10), primary_key=True)
    name = Column(String(200), nullable=False)
    # Nullable so orphaned rows from partial imports can still be loaded and flagged.
    region_code = Column(String(10), ForeignKey("psgc_regions.code"), nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    region = relationship("Region", back_populates="provinces")
    cities = relationship("CityMunicipality", back_populates="province")


class CityMunicipality(Base):
    __tablename__ = "psgc_cities_municipalities"
    __table_args__ = (
        CheckConstraint("is_independent = false OR province_code IS NULL", name="independence_rule"),
    )

    code = Column(String(10), primary_key=True)
    name = Column(String(200), nullable=False)
    province_code = Column(String(10), ForeignKey("psgc_provinces.code"), nullable=True, index=True)
    # Independent cities sit directly under a region.
    region_code = Column(String(10), ForeignKey("psgc_regions.code"), nullable=True, index=True)
    type = Column(String(50), nullable=False, default="municipality")
    is_independent = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    province = relationship("Province", back_populates="cities")
    region = relationship("Region")
    barangays = relationship("Barangay", back_populates="city")


class Barangay(Base):
    __tablename__ = "psgc_barangays"

    code = Column(String(10), primary_key=True)
    name = Column(String(200), nullable=False)
    city_municipality_code = Column(
        String(10), ForeignKey("psgc_cities_municipalities.code"), nullable=True, index=True
    )
    urban_rural_status = Column(String(20), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    city = relationship("CityMunicipality", back_populates="barangays")
