"""Detect and repair stale denormalized geographic codes.

Users, households and residents cache the ancestors of their barangay. The
cache is written on every API write, but reference data can be reloaded under
it; this check recomputes the expected codes and reports (or rewrites) rows
that drifted. Residents attached to a household are checked against the
household's barangay.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from app.core.db import SessionLocal, bind_row_security
from app.models.household import Household
from app.models.resident import Resident
from app.models.user import User
from app.services.geography import GeographicCodes, apply_geographic_codes, codes_of, resolve_barangay

logger = logging.getLogger(__name__)


@dataclass
class StaleRecord:
    table: str
    id: int
    expected: dict
    actual: dict


@dataclass
class ConsistencyReport:
    checked: dict[str, int] = field(default_factory=dict)
    stale: list[StaleRecord] = field(default_factory=list)
    repaired: int = 0

    @property
    def is_consistent(self) -> bool:
        return not self.stale

    def as_dict(self) -> dict:
        return {
            "checked": self.checked,
            "stale_count": len(self.stale),
            "repaired": self.repaired,
            "stale": [
                {"table": item.table, "id": item.id, "expected": item.expected, "actual": item.actual}
                for item in self.stale
            ],
        }


class _ResolutionCache:
    def __init__(self, db: Session) -> None:
        self._db = db
        self._codes: dict[str, GeographicCodes | None] = {}

    def expected(self, barangay_code: str) -> GeographicCodes:
        if barangay_code not in self._codes:
            self._codes[barangay_code] = resolve_barangay(self._db, barangay_code)
        codes = self._codes[barangay_code]
        if codes is None:
            # Unknown barangay: nothing can be derived.
            return GeographicCodes(barangay_code, None, None, None)
        return codes


def _check(report: ConsistencyReport, table: str, record, expected: GeographicCodes, repair: bool) -> None:
    actual = codes_of(record)
    if actual == expected:
        return
    report.stale.append(StaleRecord(table=table, id=record.id, expected=expected.as_dict(), actual=actual.as_dict()))
    if repair:
        apply_geographic_codes(record, expected)
        report.repaired += 1


def check_consistency(db: Session, *, repair: bool = False) -> ConsistencyReport:
    report = ConsistencyReport()
    cache = _ResolutionCache(db)

    users = db.query(User).filter(User.barangay_code.isnot(None)).all()
    for user in users:
        _check(report, "users", user, cache.expected(user.barangay_code), repair)
    report.checked["users"] = len(users)

    households = db.query(Household).all()
    for household in households:
        _check(report, "households", household, cache.expected(household.barangay_code), repair)
    report.checked["households"] = len(households)

    residents = db.query(Resident).all()
    for resident in residents:
        # Members follow their household's barangay, not their own.
        owner = resident.household.barangay_code if resident.household is not None else resident.barangay_code
        _check(report, "residents", resident, cache.expected(owner), repair)
    report.checked["residents"] = len(residents)

    if repair and report.repaired:
        db.commit()
    if report.stale:
        logger.warning(
            "stale geographic codes found",
            extra={"stale": len(report.stale), "repaired": report.repaired},
        )
    else:
        logger.info("geographic codes consistent", extra={"checked": report.checked})
    return report


def run_scheduled_check(repair: bool = False) -> None:
    """Entry point for the background scheduler; owns its session."""

    db = SessionLocal()
    try:
        bind_row_security(db, bypass=True)
        check_consistency(db, repair=repair)
    finally:
        db.close()
