"""Load reference data: role catalog, PSGC geography and PSOC occupations.

Usage::

    python -m app.scripts.seed_reference --psgc-dir data/psgc --psoc-file data/psoc.csv

The PSGC directory holds ``regions.csv``, ``provinces.csv``, ``cities.csv``
and ``barangays.csv``. Rows are upserted by code, so the command can be re-run
after a PSGC release. Run ``GET /admin/consistency?repair=true`` afterwards to
refresh cached ancestor codes.
"""

from __future__ import annotations

import argparse
import csv
import logging
from pathlib import Path
from typing import Callable, Iterator

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.db import SessionLocal
from app.core.logging import configure_logging
from app.models.geography import Barangay, CityMunicipality, Province, Region
from app.models.occupation import PSOC_LEVELS, Occupation
from app.models.user import User
from app.services.access import SUPER_ADMIN
from app.services.user_accounts import create_user, seed_roles

logger = logging.getLogger(__name__)


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "y", "t"}


def _read_rows(path: Path) -> Iterator[dict[str, str]]:
    with path.open(newline="", encoding="utf-8-sig") as handle:
        for row in csv.DictReader(handle):
            yield {key.strip().lower(): value for key, value in row.items() if key}


def _region(row: dict[str, str]) -> Region:
    return Region(code=row["code"].strip(), name=row["name"].strip())


def _province(row: dict[str, str]) -> Province:
    return Province(
        code=row["code"].strip(),
        name=row["name"].strip(),
        region_code=_blank_to_none(row.get("region_code")),
        is_active=not row.get("is_active") or _truthy(row.get("is_active")),
    )


def _city(row: dict[str, str]) -> CityMunicipality:
    return CityMunicipality(
        code=row["code"].strip(),
        name=row["name"].strip(),
        province_code=_blank_to_none(row.get("province_code")),
        region_code=_blank_to_none(row.get("region_code")),
        type=_blank_to_none(row.get("type")) or "municipality",
        is_independent=_truthy(row.get("is_independent")),
    )


def _barangay(row: dict[str, str]) -> Barangay:
    return Barangay(
        code=row["code"].strip(),
        name=row["name"].strip(),
        city_municipality_code=_blank_to_none(row.get("city_municipality_code") or row.get("city_code")),
        urban_rural_status=_blank_to_none(row.get("urban_rural_status")),
    )


def _occupation(row: dict[str, str]) -> Occupation:
    level = row["level"].strip()
    if level not in PSOC_LEVELS:
        raise ValueError(f"Unknown PSOC level {level!r} for code {row['code']}")
    return Occupation(
        code=row["code"].strip(),
        title=row["title"].strip(),
        level=level,
        parent_code=_blank_to_none(row.get("parent_code")),
    )


def load_csv(db: Session, path: Path, build: Callable[[dict[str, str]], object]) -> int:
    count = 0
    for row in _read_rows(path):
        db.merge(build(row))
        count += 1
    db.flush()
    logger.info("loaded reference rows", extra={"file": str(path), "rows": count})
    return count


def load_psgc(db: Session, directory: Path) -> dict[str, int]:
    """Load the four PSGC levels parents first so foreign keys resolve."""

    counts: dict[str, int] = {}
    for filename, build in (
        ("regions.csv", _region),
        ("provinces.csv", _province),
        ("cities.csv", _city),
        ("barangays.csv", _barangay),
    ):
        path = directory / filename
        if not path.exists():
            logger.warning("PSGC file missing, skipped", extra={"file": str(path)})
            continue
        counts[filename] = load_csv(db, path, build)
    return counts


def load_psoc(db: Session, path: Path) -> int:
    # Parents before children regardless of file order.
    order = {level: index for index, level in enumerate(PSOC_LEVELS)}
    rows = sorted(_read_rows(path), key=lambda row: order.get(row["level"].strip(), len(order)))
    for row in rows:
        db.merge(_occupation(row))
    db.flush()
    logger.info("loaded PSOC rows", extra={"file": str(path), "rows": len(rows)})
    return len(rows)


def ensure_super_admin(db: Session, email: str | None, password: str | None) -> User | None:
    if not email or not password:
        return None
    existing = db.query(User).filter(User.email == email.lower()).first()
    if existing:
        return existing
    return create_user(
        db,
        email=email,
        password=password,
        first_name="Super",
        last_name="Admin",
        role_name=SUPER_ADMIN,
    )


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed roles and PSGC/PSOC reference data.")
    parser.add_argument("--psgc-dir", type=Path, help="Directory holding regions/provinces/cities/barangays CSVs")
    parser.add_argument("--psoc-file", type=Path, help="CSV with code,title,level,parent_code columns")
    parser.add_argument(
        "--skip-super-admin",
        action="store_true",
        help="Do not create the super admin from SUPER_ADMIN_EMAIL / SUPER_ADMIN_PASSWORD",
    )
    return parser.parse_args()


def main() -> None:
    configure_logging()
    args = parse_args()
    db = SessionLocal()
    try:
        seed_roles(db)
        if args.psgc_dir:
            if not args.psgc_dir.is_dir():
                raise SystemExit(f"PSGC directory not found: {args.psgc_dir}")
            load_psgc(db, args.psgc_dir)
        if args.psoc_file:
            if not args.psoc_file.exists():
                raise SystemExit(f"PSOC file not found: {args.psoc_file}")
            load_psoc(db, args.psoc_file)
        if not args.skip_super_admin:
            ensure_super_admin(db, settings.SUPER_ADMIN_EMAIL, settings.SUPER_ADMIN_PASSWORD)
        db.commit()
    finally:
        db.close()


if __name__ == "__main__":
    main()
