from __future__ import annotations

from types import SimpleNamespace

import pytest
from fastapi import HTTPException

from app.core.db import apply_row_security_context, bind_row_security
from app.services.access import (
    AccessLevel,
    can_manage_level,
    ensure_in_scope,
    get_access_level,
    is_in_scope,
    row_security_predicate,
    row_security_statements,
    scope_filter,
    user_scope,
)


def _user(role_name, **codes):
    values = {"barangay_code": None, "city_municipality_code": None, "province_code": None, "region_code": None}
    values.update(codes)
    return SimpleNamespace(role_name=role_name, **values)


def _record(barangay="042114014", city="042114000", province="042100000", region="040000000"):
    return SimpleNamespace(
        barangay_code=barangay,
        city_municipality_code=city,
        province_code=province,
        region_code=region,
    )


@pytest.mark.parametrize(
    ("role_name", "level"),
    [
        ("super_admin", AccessLevel.NATIONAL),
        ("region_admin", AccessLevel.REGION),
        ("province_admin", AccessLevel.PROVINCE),
        ("city_admin", AccessLevel.CITY),
        ("barangay_admin", AccessLevel.BARANGAY),
        ("barangay_staff", AccessLevel.BARANGAY),
        ("resident", AccessLevel.BARANGAY),
        ("unknown_role", AccessLevel.BARANGAY),
        (None, AccessLevel.BARANGAY),
    ],
)
def test_role_maps_to_access_level(role_name, level):
    assert get_access_level(role_name) is level


def test_national_scope_has_no_filter():
    assert scope_filter(AccessLevel.NATIONAL, _user("super_admin")) is None
    assert is_in_scope(_user("super_admin"), _record(city=None, province=None, region=None))


def test_city_scope_uses_city_code():
    user = _user("city_admin", barangay_code="042114014", city_municipality_code="042114000")
    scope = user_scope(user)
    assert scope.column == "city_municipality_code"
    assert scope.value == "042114000"
    assert is_in_scope(user, _record(barangay="042114015"))
    assert not is_in_scope(user, _record(barangay="137404001", city="137404000"))


def test_region_scope_ignores_lower_levels():
    user = _user("region_admin", region_code="040000000")
    assert is_in_scope(user, _record(barangay="043400001", city="043400000", province="043400000"))
    assert not is_in_scope(user, _record(region="130000000"))


def test_missing_user_code_matches_nothing():
    user = _user("province_admin", barangay_code="099999001")
    assert user_scope(user).matches_nothing
    assert not is_in_scope(user, _record())
    # A record with the same missing code is still out of reach.
    assert not is_in_scope(user, _record(province=None))


def test_ensure_in_scope_raises_forbidden():
    user = _user("barangay_staff", barangay_code="042114014")
    ensure_in_scope(user, _record())
    with pytest.raises(HTTPException) as exc_info:
        ensure_in_scope(user, _record(barangay="042114015"))
    assert exc_info.value.status_code == 403


def test_can_manage_level_blocks_wider_roles():
    barangay_admin = _user("barangay_admin")
    assert can_manage_level(barangay_admin, "barangay_staff")
    assert can_manage_level(barangay_admin, "resident")
    assert not can_manage_level(barangay_admin, "city_admin")
    assert can_manage_level(_user("super_admin"), "region_admin")


def test_row_security_predicate_covers_each_tier():
    predicate = row_security_predicate("residents")
    assert "residents.barangay_code = u.barangay_code" in predicate
    assert "residents.city_municipality_code = u.city_municipality_code" in predicate
    assert "residents.province_code = u.province_code" in predicate
    assert "residents.region_code = u.region_code" in predicate
    assert "r.name IN ('super_admin')" in predicate
    assert "current_setting('app.current_user_id', true)" in predicate
    assert predicate.startswith("current_setting('app.row_security_bypass', true) = 'on'\nOR EXISTS (")


def test_row_security_statements_enable_policy():
    statements = row_security_statements("households")
    assert statements[0] == "ALTER TABLE households ENABLE ROW LEVEL SECURITY"
    assert statements[1] == "ALTER TABLE households FORCE ROW LEVEL SECURITY"
    assert statements[-1].startswith("CREATE POLICY households_geographic_scope ON households FOR ALL USING (")


class _RecordingConnection:
    def __init__(self, dialect_name):
        self.dialect = SimpleNamespace(name=dialect_name)
        self.executed = []

    def execute(self, statement, params=None):
        self.executed.append((str(statement), params))


def test_row_security_context_is_published_on_postgres(db_session):
    bind_row_security(db_session, user_id=7)
    connection = _RecordingConnection("postgresql")
    apply_row_security_context(db_session, None, connection)
    assert len(connection.executed) == 1
    statement, params = connection.executed[0]
    assert "set_config('app.current_user_id', :user_id, true)" in statement
    assert params == {"user_id": "7", "bypass": "off"}

    bind_row_security(db_session, bypass=True)
    apply_row_security_context(db_session, None, connection)
    assert connection.executed[-1][1] == {"user_id": "", "bypass": "on"}


def test_row_security_context_skips_other_databases_and_anonymous_sessions(db_session):
    sqlite = _RecordingConnection("sqlite")
    bind_row_security(db_session, user_id=7)
    apply_row_security_context(db_session, None, sqlite)
    assert sqlite.executed == []

    anonymous = _RecordingConnection("postgresql")
    bind_row_security(db_session)
    apply_row_security_context(db_session, None, anonymous)
    assert anonymous.executed == []
