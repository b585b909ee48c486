"""Geographic access-level authorization.

A user's role maps to one of five access tiers. Every tier except
``national`` restricts geography-scoped tables to the rows whose code column
for that tier equals the user's own (denormalized) code. This module is the
only place that mapping lives: the API query paths call :func:`apply_scope`
and :func:`ensure_in_scope`, and the database row-level-security policies are
generated from the same table by :func:`row_security_statements`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import false
from sqlalchemy.orm import Query


class AccessLevel(str, Enum):
    BARANGAY = "barangay"
    CITY = "city"
    PROVINCE = "province"
    REGION = "region"
    NATIONAL = "national"


SUPER_ADMIN = "super_admin"
REGION_ADMIN = "region_admin"
PROVINCE_ADMIN = "province_admin"
CITY_ADMIN = "city_admin"
BARANGAY_ADMIN = "barangay_admin"
BARANGAY_STAFF = "barangay_staff"
RESIDENT = "resident"

ROLE_ACCESS_LEVELS: dict[str, AccessLevel] = {
    SUPER_ADMIN: AccessLevel.NATIONAL,
    REGION_ADMIN: AccessLevel.REGION,
    PROVINCE_ADMIN: AccessLevel.PROVINCE,
    CITY_ADMIN: AccessLevel.CITY,
    BARANGAY_ADMIN: AccessLevel.BARANGAY,
    BARANGAY_STAFF: AccessLevel.BARANGAY,
    RESIDENT: AccessLevel.BARANGAY,
}

# Unrecognized roles are treated as the narrowest tier.
DEFAULT_ACCESS_LEVEL = AccessLevel.BARANGAY

SCOPE_COLUMNS: dict[AccessLevel, str] = {
    AccessLevel.BARANGAY: "barangay_code",
    AccessLevel.CITY: "city_municipality_code",
    AccessLevel.PROVINCE: "province_code",
    AccessLevel.REGION: "region_code",
}

ROLE_DESCRIPTIONS = {
    SUPER_ADMIN: "National access to every barangay",
    REGION_ADMIN: "Administers all barangays of one region",
    PROVINCE_ADMIN: "Administers all barangays of one province",
    CITY_ADMIN: "Administers all barangays of one city or municipality",
    BARANGAY_ADMIN: "Administers one barangay",
    BARANGAY_STAFF: "Encodes records for one barangay",
    RESIDENT: "Self-registered resident account",
}


@dataclass(frozen=True)
class ScopeFilter:
    """Single-column equality filter. ``value`` of ``None`` matches nothing."""

    column: str
    value: str | None

    @property
    def matches_nothing(self) -> bool:
        return not self.value


def get_access_level(role_name: str | None) -> AccessLevel:
    if not role_name:
        return DEFAULT_ACCESS_LEVEL
    return ROLE_ACCESS_LEVELS.get(role_name, DEFAULT_ACCESS_LEVEL)


def scope_filter(level: AccessLevel, user: Any) -> ScopeFilter | None:
    if level is AccessLevel.NATIONAL:
        return None
    column = SCOPE_COLUMNS[level]
    return ScopeFilter(column=column, value=getattr(user, column, None))


def user_scope(user: Any) -> ScopeFilter | None:
    return scope_filter(get_access_level(getattr(user, "role_name", None)), user)


def apply_scope(query: Query, model: Any, user: Any) -> Query:
    scope = user_scope(user)
    if scope is None:
        return query
    if scope.matches_nothing:
        return query.filter(false())
    return query.filter(getattr(model, scope.column) == scope.value)


def is_in_scope(user: Any, record: Any) -> bool:
    """Return whether ``record`` (anything exposing the code columns) is visible to ``user``."""

    scope = user_scope(user)
    if scope is None:
        return True
    if scope.matches_nothing:
        return False
    return getattr(record, scope.column, None) == scope.value


def ensure_in_scope(user: Any, record: Any) -> None:
    if not is_in_scope(user, record):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Target location is outside your geographic access scope",
        )


def can_manage_level(actor: Any, target_role_name: str | None) -> bool:
    """An actor may only hand out roles whose tier is not wider than its own."""

    order = [
        AccessLevel.BARANGAY,
        AccessLevel.CITY,
        AccessLevel.PROVINCE,
        AccessLevel.REGION,
        AccessLevel.NATIONAL,
    ]
    actor_level = get_access_level(getattr(actor, "role_name", None))
    return order.index(get_access_level(target_role_name)) <= order.index(actor_level)


def _quote_list(values: list[str]) -> str:
    return ", ".join("'" + value.replace("'", "''") + "'" for value in values)


def row_security_predicate(
    table: str,
    current_user_setting: str = "app.current_user_id",
    bypass_setting: str = "app.row_security_bypass",
) -> str:
    clauses: list[str] = []
    for level in AccessLevel:
        roles = sorted(name for name, mapped in ROLE_ACCESS_LEVELS.items() if mapped is level)
        if not roles:
            continue
        if level is AccessLevel.NATIONAL:
            clauses.append(f"r.name IN ({_quote_list(roles)})")
            continue
        column = SCOPE_COLUMNS[level]
        clauses.append(f"(r.name IN ({_quote_list(roles)}) AND {table}.{column} = u.{column})")

    default_column = SCOPE_COLUMNS[DEFAULT_ACCESS_LEVEL]
    clauses.append(
        f"((r.name IS NULL OR r.name NOT IN ({_quote_list(sorted(ROLE_ACCESS_LEVELS))})) "
        f"AND {table}.{default_column} = u.{default_column})"
    )
    joined = "\n        OR ".join(clauses)
    return (
        f"current_setting('{bypass_setting}', true) = 'on'\n"
        "OR EXISTS (\n"
        "    SELECT 1 FROM users u LEFT JOIN roles r ON r.id = u.role_id\n"
        f"    WHERE u.id = NULLIF(current_setting('{current_user_setting}', true), '')::integer\n"
        "      AND u.is_active\n"
        f"      AND (\n        {joined}\n      )\n"
        ")"
    )


def row_security_statements(table: str) -> list[str]:
    """Postgres DDL enforcing the same scope rules at the database level."""

    policy = f"{table}_geographic_scope"
    predicate = row_security_predicate(table)
    return [
        f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY",
        # FORCE applies the policy to the owning role as well.
        f"ALTER TABLE {table} FORCE ROW LEVEL SECURITY",
        f"DROP POLICY IF EXISTS {policy} ON {table}",
        f"CREATE POLICY {policy} ON {table} FOR ALL USING ({predicate}) WITH CHECK ({predicate})",
    ]


GEOGRAPHY_SCOPED_TABLES = ("households", "residents")
