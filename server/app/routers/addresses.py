from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.auth.deps import get_current_user
from app.core.db import get_db
from app.models.geography import Barangay, CityMunicipality, Province, Region
from app.models.user import User
from app.schemas.common import Envelope
from app.services.geography import PLACE_LEVELS, describe_hierarchy, search_places

router = APIRouter(prefix="/addresses", tags=["addresses"])
psgc_router = APIRouter(prefix="/psgc", tags=["addresses"])

MAX_LISTING = 2000


@router.get("/regions", response_model=Envelope[list[dict]])
def list_regions(
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
) -> Envelope[list[dict]]:
    regions = db.query(Region).order_by(Region.name.asc()).all()
    return Envelope[list[dict]](
        data=[{"code": region.code, "name": region.name} for region in regions],
        message="Regions retrieved successfully",
    )


@router.get("/provinces", response_model=Envelope[list[dict]])
def list_provinces(
    region_code: str | None = Query(default=None, max_length=10),
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
) -> Envelope[list[dict]]:
    query = db.query(Province).filter(Province.is_active.is_(True))
    if region_code:
        query = query.filter(Province.region_code == region_code)
    provinces = query.order_by(Province.name.asc()).all()
    return Envelope[list[dict]](
        data=[
            {"code": province.code, "name": province.name, "region_code": province.region_code}
            for province in provinces
        ],
        message="Provinces retrieved successfully",
    )


@router.get("/cities", response_model=Envelope[list[dict]])
def list_cities(
    province_code: str | None = Query(default=None, max_length=10),
    region_code: str | None = Query(default=None, max_length=10),
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
) -> Envelope[list[dict]]:
    query = db.query(CityMunicipality)
    if province_code:
        query = query.filter(CityMunicipality.province_code == province_code)
    if region_code:
        # Independent cities have no province; match them on their own region.
        query = query.outerjoin(Province, CityMunicipality.province_code == Province.code).filter(
            or_(Province.region_code == region_code, CityMunicipality.region_code == region_code)
        )
    cities = query.order_by(CityMunicipality.name.asc()).limit(MAX_LISTING).all()
    return Envelope[list[dict]](
        data=[
            {
                "code": city.code,
                "name": city.name,
                "type": city.type,
                "is_independent": city.is_independent,
                "province_code": city.province_code,
                "region_code": city.region_code,
            }
            for city in cities
        ],
        message="Cities retrieved successfully",
    )


@router.get("/barangays", response_model=Envelope[list[dict]])
def list_barangays(
    city_code: str | None = Query(default=None, max_length=10),
    search: str | None = Query(default=None, max_length=100),
    limit: int = Query(default=100, ge=1, le=MAX_LISTING),
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
) -> Envelope[list[dict]]:
    if not city_code and not (search and len(search.strip()) >= 2):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": "Invalid input data",
                "details": [{"field": "city_code", "message": "Provide city_code or a search term of 2+ characters"}],
            },
        )
    query = db.query(Barangay)
    if city_code:
        query = query.filter(Barangay.city_municipality_code == city_code)
    if search:
        query = query.filter(func.lower(Barangay.name).like(f"%{search.strip().lower()}%"))
    barangays = query.order_by(Barangay.name.asc()).limit(limit).all()
    return Envelope[list[dict]](
        data=[
            {
                "code": barangay.code,
                "name": barangay.name,
                "city_municipality_code": barangay.city_municipality_code,
                "urban_rural_status": barangay.urban_rural_status,
            }
            for barangay in barangays
        ],
        message="Barangays retrieved successfully",
    )


@router.get("/barangays/{code}", response_model=Envelope[dict])
def get_barangay(
    code: str,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
) -> Envelope[dict]:
    hierarchy = describe_hierarchy(db, code)
    if hierarchy is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Barangay not found")
    return Envelope[dict](data=hierarchy, message="Barangay retrieved successfully")


@psgc_router.get("/search", response_model=Envelope[list[dict]])
def search_psgc(
    q: str | None = Query(default=None, max_length=100),
    levels: str | None = Query(default=None, description="Comma separated: region,province,city,barangay"),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
) -> Envelope[list[dict]]:
    wanted = PLACE_LEVELS
    if levels:
        wanted = tuple(level.strip() for level in levels.split(",") if level.strip())
        unknown = [level for level in wanted if level not in PLACE_LEVELS]
        if unknown:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "message": "Invalid input data",
                    "details": [{"field": "levels", "message": f"Unknown levels: {', '.join(unknown)}"}],
                },
            )
    results = search_places(db, q, wanted, limit=limit)
    return Envelope[list[dict]](data=results, message=f"{len(results)} places found")
