"""Geographic code resolution over the PSGC reference tables.

A barangay belongs to exactly one city/municipality, which belongs to one
province, which belongs to one region. Independent cities skip the province
and belong to a region directly. Records scoped to a barangay carry the
three ancestor codes as denormalized columns; this module is what computes
them. A broken chain resolves to null ancestors instead of guessed values.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Iterable

from fastapi import HTTPException, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, aliased

from app.models.geography import Barangay, CityMunicipality, Province, Region

logger = logging.getLogger(__name__)

GEOGRAPHIC_CODE_FIELDS = ("barangay_code", "city_municipality_code", "province_code", "region_code")
PLACE_LEVELS = ("region", "province", "city", "barangay")

ABBREVIATIONS = {
    "qc": ["quezon city"],
    "ncr": ["national capital region", "metro manila"],
    "mm": ["metro manila", "manila"],
    "mla": ["manila"],
    "bgc": ["taguig"],
    "cav": ["cavite"],
}


@dataclass(frozen=True)
class GeographicCodes:
    barangay_code: str | None
    city_municipality_code: str | None
    province_code: str | None
    region_code: str | None

    @property
    def is_complete(self) -> bool:
        return bool(self.city_municipality_code and self.region_code)

    def as_dict(self) -> dict[str, str | None]:
        return asdict(self)


def _city_ancestors(
    is_independent: bool,
    province_code: str | None,
    province_region: str | None,
    city_region: str | None,
) -> tuple[str | None, str] | None:
    """Province and region above a city, or ``None`` when a required link is missing."""

    if province_code:
        return (province_code, province_region) if province_region else None
    # Only independent cities may skip the province level.
    if is_independent and city_region:
        return (None, city_region)
    return None


def resolve_barangay(db: Session, barangay_code: str | None) -> GeographicCodes | None:
    """Walk barangay -> city -> province -> region.

    Independent cities have no province and hang directly off a region.
    Returns ``None`` for an unknown barangay. For a known barangay whose chain
    is incomplete, all three derived codes are ``None``.
    """

    if not barangay_code:
        return None
    province_region = aliased(Region)
    city_region = aliased(Region)
    row = (
        db.query(
            Barangay.code,
            CityMunicipality.code,
            CityMunicipality.is_independent,
            Province.code,
            province_region.code,
            city_region.code,
        )
        .select_from(Barangay)
        .outerjoin(CityMunicipality, Barangay.city_municipality_code == CityMunicipality.code)
        .outerjoin(Province, CityMunicipality.province_code == Province.code)
        .outerjoin(province_region, Province.region_code == province_region.code)
        .outerjoin(city_region, CityMunicipality.region_code == city_region.code)
        .filter(Barangay.code == barangay_code)
        .first()
    )
    if row is None:
        return None
    code, city_code, is_independent, province_code, region_via_province, region_via_city = row
    ancestors = None
    if city_code:
        ancestors = _city_ancestors(is_independent, province_code, region_via_province, region_via_city)
    if ancestors is None:
        logger.warning(
            "broken geographic chain",
            extra={"barangay_code": code, "city": city_code, "province": province_code},
        )
        return GeographicCodes(code, None, None, None)
    return GeographicCodes(code, city_code, *ancestors)


def resolve_city(db: Session, city_code: str | None) -> GeographicCodes | None:
    if not city_code:
        return None
    province_region = aliased(Region)
    city_region = aliased(Region)
    row = (
        db.query(
            CityMunicipality.code,
            CityMunicipality.is_independent,
            Province.code,
            province_region.code,
            city_region.code,
        )
        .select_from(CityMunicipality)
        .outerjoin(Province, CityMunicipality.province_code == Province.code)
        .outerjoin(province_region, Province.region_code == province_region.code)
        .outerjoin(city_region, CityMunicipality.region_code == city_region.code)
        .filter(CityMunicipality.code == city_code)
        .first()
    )
    if row is None:
        return None
    code, is_independent, province_code, region_via_province, region_via_city = row
    ancestors = _city_ancestors(is_independent, province_code, region_via_province, region_via_city)
    if ancestors is None:
        return GeographicCodes(None, code, None, None)
    return GeographicCodes(None, code, *ancestors)


def require_barangay(db: Session, barangay_code: str) -> GeographicCodes:
    codes = resolve_barangay(db, barangay_code)
    if codes is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": "Invalid input data",
                "details": [{"field": "barangay_code", "message": f"Unknown barangay code {barangay_code}"}],
            },
        )
    return codes


def apply_geographic_codes(target: Any, codes: GeographicCodes | None) -> None:
    """Write the four codes onto ``target``; ``None`` clears the ancestors."""

    if codes is None:
        for field in GEOGRAPHIC_CODE_FIELDS[1:]:
            setattr(target, field, None)
        return
    for field, value in codes.as_dict().items():
        if field == "barangay_code" and value is None:
            continue
        setattr(target, field, value)


def codes_of(record: Any) -> GeographicCodes:
    return GeographicCodes(*(getattr(record, field, None) for field in GEOGRAPHIC_CODE_FIELDS))


def _region_of(city: CityMunicipality | None) -> Region | None:
    if city is None:
        return None
    if city.province is not None:
        return city.province.region
    return city.region


def describe_hierarchy(db: Session, barangay_code: str | None) -> dict | None:
    if not barangay_code:
        return None
    barangay = db.get(Barangay, barangay_code)
    if barangay is None:
        return None
    city = barangay.city
    province = city.province if city else None
    region = _region_of(city)
    names = [item.name for item in (barangay, city, province, region) if item is not None]
    return {
        "barangay": {"code": barangay.code, "name": barangay.name},
        "city_municipality": {"code": city.code, "name": city.name, "type": city.type} if city else None,
        "province": {"code": province.code, "name": province.name} if province else None,
        "region": {"code": region.code, "name": region.name} if region else None,
        "full_address": ", ".join(names),
    }


def resolve_place(db: Session, code: str | None) -> dict | None:
    """Describe a place code at the most specific level it matches."""

    if not code:
        return None
    barangay = db.get(Barangay, code)
    if barangay is not None:
        city = barangay.city
        province = city.province if city else None
        label = ", ".join(item.name for item in (barangay, city, province) if item is not None)
        return {"code": code, "name": label, "level": "barangay"}
    city = db.get(CityMunicipality, code)
    if city is not None:
        label = ", ".join(item.name for item in (city, city.province) if item is not None)
        return {"code": code, "name": label, "level": "city_municipality", "type": city.type}
    province = db.get(Province, code)
    if province is not None:
        return {"code": code, "name": province.name, "level": "province"}
    region = db.get(Region, code)
    if region is not None:
        return {"code": code, "name": region.name, "level": "region"}
    logger.info("unresolved place code", extra={"code": code})
    return None


def search_variations(raw: str) -> list[str]:
    query = raw.strip().lower()
    variations = [query]
    words = [word for word in query.split() if len(word) >= 2]
    if len(words) > 1:
        variations.extend(words)
        variations.append(" ".join(reversed(words)))
    for abbreviation, expansions in ABBREVIATIONS.items():
        if abbreviation in words or query == abbreviation:
            variations.extend(expansions)
    for suffix in ("city", "municipality"):
        if suffix in words:
            stripped = " ".join(word for word in words if word != suffix)
            if stripped:
                variations.extend([stripped, f"{suffix} of {stripped}"])
    seen: list[str] = []
    for variation in variations:
        if len(variation) >= 2 and variation not in seen:
            seen.append(variation)
    return seen


def _name_filter(column, variations: Iterable[str]):
    return or_(*[func.lower(column).like(f"%{variation}%") for variation in variations])


def search_places(db: Session, q: str | None, levels: Iterable[str], limit: int = 20) -> list[dict]:
    if not q or len(q.strip()) < 2:
        return []
    variations = search_variations(q)
    wanted = set(levels)
    results: list[dict] = []

    if "region" in wanted:
        for region in db.query(Region).filter(_name_filter(Region.name, variations)).limit(limit):
            results.append(
                {"code": region.code, "name": region.name, "level": "region", "full_address": region.name}
            )

    if "province" in wanted:
        for province in db.query(Province).filter(_name_filter(Province.name, variations)).limit(limit):
            region = province.region
            results.append(
                {
                    "code": province.code,
                    "name": province.name,
                    "level": "province",
                    "region_code": province.region_code,
                    "full_address": ", ".join(item.name for item in (province, region) if item is not None),
                }
            )

    if "city" in wanted:
        for city in db.query(CityMunicipality).filter(_name_filter(CityMunicipality.name, variations)).limit(limit):
            province = city.province
            region = _region_of(city)
            results.append(
                {
                    "code": city.code,
                    "name": city.name,
                    "level": "city",
                    "type": city.type,
                    "province_code": city.province_code,
                    "full_address": ", ".join(item.name for item in (city, province, region) if item is not None),
                }
            )

    if "barangay" in wanted:
        for barangay in db.query(Barangay).filter(_name_filter(Barangay.name, variations)).limit(limit):
            hierarchy = describe_hierarchy(db, barangay.code) or {}
            results.append(
                {
                    "code": barangay.code,
                    "name": barangay.name,
                    "level": "barangay",
                    "city_municipality_code": barangay.city_municipality_code,
                    "full_address": hierarchy.get("full_address", barangay.name),
                }
            )

    lowered = q.strip().lower()
    results.sort(key=lambda item: (not item["name"].lower().startswith(lowered), PLACE_LEVELS.index(item["level"]), item["name"]))
    return results[:limit]
