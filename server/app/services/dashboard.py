from __future__ import annotations

from datetime import date

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from app.models.household import Household
from app.models.resident import Resident, age_at
from app.models.user import User
from app.services.access import apply_scope, get_access_level, user_scope

AGE_BRACKETS: tuple[tuple[str, int, int | None], ...] = (
    ("0-14", 0, 14),
    ("15-24", 15, 24),
    ("25-59", 25, 59),
    ("60+", 60, None),
)

_FLAG_COLUMNS = {
    "senior_citizens": Resident.is_senior_citizen,
    "persons_with_disability": Resident.is_person_with_disability,
    "labor_force": Resident.is_labor_force,
    "employed": Resident.is_employed,
    "unemployed": Resident.is_unemployed,
    "overseas_filipino_workers": Resident.is_overseas_filipino_worker,
    "solo_parents": Resident.is_solo_parent,
    "migrants": Resident.is_migrant,
    "out_of_school_children": Resident.is_out_of_school_children,
    "out_of_school_youth": Resident.is_out_of_school_youth,
}


def _bracket(age: int) -> str:
    for label, low, high in AGE_BRACKETS:
        if age >= low and (high is None or age <= high):
            return label
    return AGE_BRACKETS[0][0]


def dashboard_stats(db: Session, user: User, today: date | None = None) -> dict:
    today = today or date.today()
    residents = apply_scope(db.query(Resident), Resident, user).filter(Resident.deleted_at.is_(None))

    flag_row = residents.with_entities(
        func.count(Resident.id),
        *[func.sum(case((column.is_(True), 1), else_=0)) for column in _FLAG_COLUMNS.values()],
    ).one()
    total_residents = flag_row[0] or 0
    flags = {name: int(value or 0) for name, value in zip(_FLAG_COLUMNS, flag_row[1:])}

    by_sex = {"male": 0, "female": 0}
    for sex, count in residents.with_entities(Resident.sex, func.count(Resident.id)).group_by(Resident.sex):
        by_sex[sex] = count

    age_brackets = {label: 0 for label, _, _ in AGE_BRACKETS}
    for (birthdate,) in residents.with_entities(Resident.birthdate):
        age_brackets[_bracket(age_at(birthdate, today))] += 1

    total_households = (
        apply_scope(db.query(func.count(Household.id)), Household, user)
        .filter(Household.deleted_at.is_(None))
        .scalar()
        or 0
    )

    scope = user_scope(user)
    return {
        "scope": {
            "level": get_access_level(user.role_name).value,
            "column": scope.column if scope else None,
            "code": scope.value if scope else None,
        },
        "total_residents": total_residents,
        "total_households": total_households,
        "by_sex": by_sex,
        "age_brackets": age_brackets,
        **flags,
    }
