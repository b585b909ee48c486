from __future__ import annotations

from app.models.geography import CityMunicipality
from app.models.resident import Resident
from app.services.consistency import check_consistency


def test_consistent_registry_reports_nothing(db_session, barangay_admin, make_household, make_resident):
    household = make_household()
    make_resident(household=household)
    make_resident("Ana", "Lim")
    report = check_consistency(db_session)
    assert report.is_consistent
    assert report.checked == {"users": 1, "households": 1, "residents": 2}


def test_reference_change_is_detected_and_repaired(db_session, make_household, make_resident, psgc):
    household = make_household()
    member = make_resident(household=household)
    loner = make_resident("Ana", "Lim")

    # A PSGC reload moves the city to another province.
    city = db_session.get(CityMunicipality, psgc["city"])
    city.province_code = psgc["other_province"]
    db_session.commit()

    report = check_consistency(db_session)
    assert not report.is_consistent
    stale = {(item.table, item.id) for item in report.stale}
    assert stale == {("households", household.id), ("residents", member.id), ("residents", loner.id)}
    assert report.repaired == 0

    repaired = check_consistency(db_session, repair=True)
    assert repaired.repaired == 3
    db_session.expire_all()
    assert db_session.get(Resident, member.id).province_code == psgc["other_province"]
    assert db_session.get(Resident, loner.id).region_code == psgc["other_region"]
    assert check_consistency(db_session).is_consistent


def test_consistency_endpoint_is_super_admin_only(
    client, authorize, super_admin, barangay_admin, make_resident, db_session
):
    resident = make_resident()
    resident.region_code = "999999999"
    db_session.commit()

    authorize(barangay_admin)
    assert client.get("/admin/consistency").status_code == 403

    authorize(super_admin)
    response = client.get("/admin/consistency")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["stale_count"] == 1
    assert data["stale"][0]["actual"]["region_code"] == "999999999"

    fixed = client.get("/admin/consistency?repair=true").json()["data"]
    assert fixed["repaired"] == 1
    assert client.get("/admin/consistency").json()["message"] == "Geographic codes are consistent"


def test_row_security_endpoint(client, authorize, super_admin):
    authorize(super_admin)
    data = client.get("/admin/row-security").json()["data"]
    assert data["role_access_levels"]["city_admin"] == "city"
    assert set(data["statements"]) == {"households", "residents"}
