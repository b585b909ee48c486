from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ["CONSISTENCY_CHECK_ENABLED"] = "false"

from collections.abc import Generator  # noqa: E402
from datetime import date  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.auth.deps import get_current_user  # noqa: E402
from app.core.db import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models.geography import Barangay, CityMunicipality, Province, Region  # noqa: E402
from app.models.household import Household  # noqa: E402
from app.models.resident import Resident  # noqa: E402
from app.models.role import Role  # noqa: E402
from app.models.user import User  # noqa: E402
from app.services.geography import apply_geographic_codes, resolve_barangay  # noqa: E402
from app.services.households import generate_household_code, refresh_member_count  # noqa: E402
from app.services.residents import compute_sectoral_flags  # noqa: E402

SQLALCHEMY_TEST_URL = "sqlite+pysqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_TEST_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)

# Barangays 042114014 and 042114015 share a city; 137404001 is in another region;
# 133901001 lies in an independent city with no province; 099999001 points at a
# city that was never loaded.
PSGC = {
    "region": "040000000",
    "province": "042100000",
    "city": "042114000",
    "barangay": "042114014",
    "sibling_barangay": "042114015",
    "other_region": "130000000",
    "other_province": "137400000",
    "other_city": "137404000",
    "other_barangay": "137404001",
    "independent_city": "133900000",
    "independent_barangay": "133901001",
    "orphan_barangay": "099999001",
}


def override_get_db() -> Generator[Session, None, None]:
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def setup_database() -> Generator[None, None, None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    session = TestingSessionLocal()
    try:
        yield session
        session.commit()
    finally:
        session.close()


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    app.dependency_overrides.clear()
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def authorize(client: TestClient):
    def _apply(user: User):
        app.dependency_overrides[get_current_user] = lambda: user

    yield _apply
    app.dependency_overrides.pop(get_current_user, None)


@pytest.fixture()
def psgc(db_session: Session) -> dict[str, str]:
    db_session.add_all(
        [
            Region(code=PSGC["region"], name="Region IV-A (CALABARZON)"),
            Region(code=PSGC["other_region"], name="National Capital Region"),
            Province(code=PSGC["province"], name="Cavite", region_code=PSGC["region"]),
            Province(code=PSGC["other_province"], name="NCR Second District", region_code=PSGC["other_region"]),
            CityMunicipality(
                code=PSGC["city"],
                name="Dasmariñas",
                province_code=PSGC["province"],
                type="city",
            ),
            CityMunicipality(
                code=PSGC["other_city"],
                name="Quezon City",
                province_code=PSGC["other_province"],
                type="city",
            ),
            Barangay(code=PSGC["barangay"], name="Salitran I", city_municipality_code=PSGC["city"]),
            Barangay(code=PSGC["sibling_barangay"], name="Salitran II", city_municipality_code=PSGC["city"]),
            CityMunicipality(
                code=PSGC["independent_city"],
                name="City of Manila",
                region_code=PSGC["other_region"],
                type="city",
                is_independent=True,
            ),
            Barangay(code=PSGC["other_barangay"], name="Bagong Pag-asa", city_municipality_code=PSGC["other_city"]),
            Barangay(code=PSGC["independent_barangay"], name="Barangay 1", city_municipality_code=PSGC["independent_city"]),
            Barangay(code=PSGC["orphan_barangay"], name="Orphaned", city_municipality_code="099999000"),
        ]
    )
    db_session.commit()
    return dict(PSGC)


def _ensure_role(session: Session, name: str) -> Role:
    role = session.query(Role).filter_by(name=name).first()
    if role is None:
        role = Role(name=name)
        session.add(role)
        session.commit()
        session.refresh(role)
    return role


@pytest.fixture()
def make_user(db_session: Session, psgc: dict[str, str]):
    def _make(role_name: str, barangay_code: str | None = None, email: str | None = None) -> User:
        role = _ensure_role(db_session, role_name)
        user = User(
            email=email or f"{role_name}.{barangay_code or 'national'}@example.com",
            first_name="Test",
            last_name=role_name.replace("_", " ").title().replace(" ", ""),
            hashed_password="hash",
            is_active=True,
        )
        user.role = role
        if barangay_code:
            user.barangay_code = barangay_code
            apply_geographic_codes(user, resolve_barangay(db_session, barangay_code))
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture()
def super_admin(make_user) -> User:
    return make_user("super_admin")


@pytest.fixture()
def barangay_admin(make_user, psgc) -> User:
    return make_user("barangay_admin", psgc["barangay"])


@pytest.fixture()
def barangay_staff(make_user, psgc) -> User:
    return make_user("barangay_staff", psgc["barangay"])


@pytest.fixture()
def city_admin(make_user, psgc) -> User:
    return make_user("city_admin", psgc["barangay"])


@pytest.fixture()
def other_barangay_admin(make_user, psgc) -> User:
    return make_user("barangay_admin", psgc["other_barangay"])


@pytest.fixture()
def make_household(db_session: Session, psgc: dict[str, str]):
    def _make(barangay_code: str | None = None, **values) -> Household:
        barangay_code = barangay_code or psgc["barangay"]
        household = Household(code=generate_household_code(db_session, barangay_code), **values)
        household.barangay_code = barangay_code
        apply_geographic_codes(household, resolve_barangay(db_session, barangay_code))
        db_session.add(household)
        db_session.commit()
        db_session.refresh(household)
        return household

    return _make


@pytest.fixture()
def make_resident(db_session: Session, psgc: dict[str, str]):
    def _make(
        first_name: str = "Juan",
        last_name: str = "Dela Cruz",
        barangay_code: str | None = None,
        household: Household | None = None,
        **values,
    ) -> Resident:
        values.setdefault("birthdate", date(1990, 5, 17))
        values.setdefault("sex", "male")
        resident = Resident(first_name=first_name, last_name=last_name, **values)
        if household is not None:
            resident.barangay_code = household.barangay_code
            resident.city_municipality_code = household.city_municipality_code
            resident.province_code = household.province_code
            resident.region_code = household.region_code
            resident.household = household
        else:
            resident.barangay_code = barangay_code or psgc["barangay"]
            apply_geographic_codes(resident, resolve_barangay(db_session, resident.barangay_code))
        compute_sectoral_flags(resident)
        db_session.add(resident)
        db_session.flush()
        refresh_member_count(db_session, household)
        db_session.commit()
        db_session.refresh(resident)
        return resident

    return _make
