from __future__ import annotations

from datetime import date, timedelta

from app.models.occupation import Occupation
from app.models.resident import Resident, ResidentAudit


def _years_ago(years: int) -> str:
    return date(date.today().year - years, 1, 1).isoformat()


def test_list_residents_requires_auth(client):
    response = client.get("/residents")
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "UNAUTHORIZED"


def test_resident_accounts_cannot_read_registry(client, authorize, make_user, psgc):
    authorize(make_user("resident", psgc["barangay"]))
    response = client.get("/residents")
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FORBIDDEN"


def test_create_resident_accepts_camel_case_and_derives_codes(client, authorize, barangay_staff, db_session, psgc):
    authorize(barangay_staff)
    payload = {
        "firstName": "Maria",
        "middleName": "Santos",
        "lastName": "Reyes",
        "birthdate": "1988-03-14",
        "sex": "female",
        "civilStatus": "married",
        "mobileNumber": "0917 123 4567",
        "philsysCardNumber": "1234-5678-9012",
        "barangayCode": psgc["barangay"],
        # Ancestor codes from the client are ignored.
        "regionCode": "130000000",
    }
    response = client.post("/residents", json=payload)
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["message"] == "Resident created successfully"
    data = body["data"]
    assert data["full_name"] == "Maria Santos Reyes"
    assert data["mobile_number"] == "09171234567"
    assert data["barangay_code"] == psgc["barangay"]
    assert data["city_municipality_code"] == psgc["city"]
    assert data["province_code"] == psgc["province"]
    assert data["region_code"] == psgc["region"]
    assert data["philsys_last4"] == "9012"
    assert "philsys_card_number_hash" not in data
    assert data["address"]["full_address"].startswith("Salitran I")
    assert data["audit_log"]
    audited = {
        entry.field for entry in db_session.query(ResidentAudit).filter(ResidentAudit.resident_id == data["id"])
    }
    assert {"first_name", "barangay_code", "region_code"} <= audited


def test_create_resident_unknown_barangay_is_validation_error(client, authorize, barangay_staff):
    authorize(barangay_staff)
    response = client.post(
        "/residents",
        json={
            "firstName": "Pedro",
            "lastName": "Penduko",
            "birthdate": "1990-01-01",
            "sex": "male",
            "barangayCode": "000000000",
        },
    )
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["details"][0]["field"] == "barangay_code"


def test_create_resident_outside_scope_is_forbidden(client, authorize, barangay_staff, psgc):
    authorize(barangay_staff)
    response = client.post(
        "/residents",
        json={
            "firstName": "Pedro",
            "lastName": "Penduko",
            "birthdate": "1990-01-01",
            "sex": "male",
            "barangayCode": psgc["sibling_barangay"],
        },
    )
    assert response.status_code == 403


def test_create_resident_in_orphaned_barangay_keeps_null_ancestors(client, authorize, super_admin, psgc):
    authorize(super_admin)
    response = client.post(
        "/residents",
        json={
            "firstName": "Lito",
            "lastName": "Lapid",
            "birthdate": "1970-07-07",
            "sex": "male",
            "barangayCode": psgc["orphan_barangay"],
        },
    )
    assert response.status_code == 201, response.text
    data = response.json()["data"]
    assert data["barangay_code"] == psgc["orphan_barangay"]
    assert data["city_municipality_code"] is None
    assert data["province_code"] is None
    assert data["region_code"] is None


def test_create_resident_validates_birthdate_bounds(client, authorize, barangay_staff, psgc):
    authorize(barangay_staff)
    base = {"firstName": "Ana", "lastName": "Cruz", "sex": "female", "barangayCode": psgc["barangay"]}

    future = client.post("/residents", json={**base, "birthdate": (date.today() + timedelta(days=1)).isoformat()})
    assert future.status_code == 400
    assert future.json()["error"]["details"][0]["field"] == "birthdate"

    ancient = client.post("/residents", json={**base, "birthdate": "1899-12-31"})
    assert ancient.status_code == 400

    earliest = client.post("/residents", json={**base, "birthdate": "1900-01-01"})
    assert earliest.status_code == 201, earliest.text


def test_create_resident_rejects_bad_enumerations(client, authorize, barangay_staff, db_session, psgc):
    authorize(barangay_staff)
    base = {
        "firstName": "Ana",
        "lastName": "Cruz",
        "birthdate": "1990-01-01",
        "sex": "female",
        "barangayCode": psgc["barangay"],
    }
    before = db_session.query(Resident).count()
    rejected = client.post("/residents", json={**base, "sex": "other"})
    assert rejected.status_code == 400
    assert rejected.json()["error"]["details"][0]["field"] == "sex"
    assert db_session.query(Resident).count() == before
    assert client.post("/residents", json={**base, "civilStatus": "complicated"}).status_code == 400
    assert client.post("/residents", json={**base, "mobileNumber": "12345"}).status_code == 400
    assert client.post("/residents", json={**base, "philsysCardNumber": "1234"}).status_code == 400
    assert client.post("/residents", json={**base, "firstName": "R2D2"}).status_code == 400


def test_create_resident_computes_sectoral_flags(client, authorize, barangay_staff, psgc):
    authorize(barangay_staff)
    base = {"lastName": "Garcia", "sex": "male", "barangayCode": psgc["barangay"]}

    worker = client.post(
        "/residents",
        json={**base, "firstName": "Jose", "birthdate": _years_ago(30), "employmentStatus": "employed"},
    ).json()["data"]
    assert worker["is_labor_force"] and worker["is_employed"]
    assert not worker["is_senior_citizen"]

    senior = client.post(
        "/residents",
        json={**base, "firstName": "Lolo", "birthdate": _years_ago(65), "employmentStatus": "retired"},
    ).json()["data"]
    assert senior["is_senior_citizen"]
    assert not senior["is_labor_force"]

    child = client.post(
        "/residents",
        json={**base, "firstName": "Totoy", "birthdate": _years_ago(10), "educationStatus": "dropped_out"},
    ).json()["data"]
    assert child["is_out_of_school_children"]
    assert not child["is_out_of_school_youth"]

    youth = client.post(
        "/residents",
        json={**base, "firstName": "Kuya", "birthdate": _years_ago(19), "educationStatus": "not_studying"},
    ).json()["data"]
    assert youth["is_out_of_school_youth"]


def test_list_residents_is_scoped_to_barangay(client, authorize, barangay_staff, make_resident, psgc):
    make_resident("Juan", "Dela Cruz")
    make_resident("Ramon", "Bautista", barangay_code=psgc["sibling_barangay"])
    make_resident("Gloria", "Tan", barangay_code=psgc["other_barangay"])

    authorize(barangay_staff)
    response = client.get("/residents")
    assert response.status_code == 200
    body = response.json()
    assert body["pagination"]["total"] == 1
    assert body["data"][0]["last_name"] == "Dela Cruz"


def test_city_admin_sees_every_barangay_in_city(client, authorize, city_admin, make_resident, psgc):
    make_resident("Juan", "Dela Cruz")
    make_resident("Ramon", "Bautista", barangay_code=psgc["sibling_barangay"])
    make_resident("Gloria", "Tan", barangay_code=psgc["other_barangay"])

    authorize(city_admin)
    body = client.get("/residents?limit=1").json()
    assert body["pagination"] == {
        "page": 1,
        "limit": 1,
        "total": 2,
        "total_pages": 2,
        "has_next": True,
        "has_prev": False,
    }
    assert body["data"][0]["last_name"] == "Bautista"


def test_independent_city_admin_works_in_own_city(client, authorize, make_user, make_resident, psgc):
    admin = make_user("city_admin", psgc["independent_barangay"])
    assert admin.city_municipality_code == psgc["independent_city"]
    assert admin.province_code is None
    assert admin.region_code == psgc["other_region"]
    make_resident("Gloria", "Tan", barangay_code=psgc["other_barangay"])

    authorize(admin)
    response = client.post(
        "/residents",
        json={
            "firstName": "Andres",
            "lastName": "Bonifacio",
            "birthdate": "1963-11-30",
            "sex": "male",
            "barangayCode": psgc["independent_barangay"],
        },
    )
    assert response.status_code == 201, response.text
    data = response.json()["data"]
    assert data["city_municipality_code"] == psgc["independent_city"]
    assert data["province_code"] is None
    assert data["region_code"] == psgc["other_region"]

    listing = client.get("/residents").json()
    assert [item["id"] for item in listing["data"]] == [data["id"]]


def test_out_of_scope_resident_is_not_found(client, authorize, barangay_staff, make_resident, psgc):
    outsider = make_resident("Gloria", "Tan", barangay_code=psgc["other_barangay"])
    authorize(barangay_staff)
    response = client.get(f"/residents/{outsider.id}")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_list_residents_filters(client, authorize, barangay_staff, make_resident):
    make_resident("Juan", "Dela Cruz", sex="male")
    make_resident("Ana", "Dela Cruz", sex="female", mobile_number="09181234567")
    authorize(barangay_staff)

    assert client.get("/residents?sex=female").json()["pagination"]["total"] == 1
    assert client.get("/residents?search=dela").json()["pagination"]["total"] == 2
    assert client.get("/residents?search=0918").json()["pagination"]["total"] == 1

    invalid = client.get("/residents?sex=unknown")
    assert invalid.status_code == 400
    assert invalid.json()["error"]["details"][0]["field"] == "sex"


def test_update_resident_moves_barangay_and_audits(
    client, authorize, city_admin, make_resident, db_session, psgc
):
    resident = make_resident("Juan", "Dela Cruz")
    authorize(city_admin)
    response = client.put(
        f"/residents/{resident.id}",
        json={"barangayCode": psgc["sibling_barangay"], "employmentStatus": "self_employed"},
    )
    assert response.status_code == 200, response.text
    data = response.json()["data"]
    assert data["barangay_code"] == psgc["sibling_barangay"]
    assert data["city_municipality_code"] == psgc["city"]
    assert data["is_employed"] is True

    fields = {
        entry.field
        for entry in db_session.query(ResidentAudit).filter(ResidentAudit.resident_id == resident.id)
    }
    assert {"barangay_code", "employment_status"} <= fields


def test_update_resident_rejects_null_required_fields(client, authorize, barangay_staff, make_resident):
    resident = make_resident()
    authorize(barangay_staff)
    assert client.put(f"/residents/{resident.id}", json={"firstName": None}).status_code == 400
    assert client.put(f"/residents/{resident.id}", json={"birthdate": None}).status_code == 400
    assert client.patch(f"/residents/{resident.id}", json={"middleName": "Protacio"}).status_code == 200


def test_update_resident_cannot_leave_scope(client, authorize, barangay_staff, make_resident, psgc):
    resident = make_resident()
    authorize(barangay_staff)
    response = client.put(f"/residents/{resident.id}", json={"barangayCode": psgc["other_barangay"]})
    assert response.status_code == 403


def test_resident_joins_household_and_takes_its_codes(
    client, authorize, barangay_staff, make_household, db_session, psgc
):
    household = make_household()
    authorize(barangay_staff)
    response = client.post(
        "/residents",
        json={
            "firstName": "Nena",
            "lastName": "Santos",
            "birthdate": "1995-02-02",
            "sex": "female",
            "householdId": household.id,
        },
    )
    assert response.status_code == 201, response.text
    data = response.json()["data"]
    assert data["household"]["code"] == household.code
    assert data["barangay_code"] == psgc["barangay"]
    db_session.refresh(household)
    assert household.member_count == 1

    mismatch = client.post(
        "/residents",
        json={
            "firstName": "Nilo",
            "lastName": "Santos",
            "birthdate": "1995-02-02",
            "sex": "male",
            "householdId": household.id,
            "barangayCode": psgc["sibling_barangay"],
        },
    )
    assert mismatch.status_code == 400


def test_delete_is_soft_and_restorable(client, authorize, barangay_admin, make_resident, db_session):
    resident = make_resident()
    kept = make_resident("Ana", "Lim")
    authorize(barangay_admin)
    assert client.get("/residents").json()["pagination"]["total"] == 2

    response = client.delete(f"/residents/{resident.id}")
    assert response.status_code == 200
    assert response.json()["data"] == {"id": resident.id}
    assert client.get(f"/residents/{resident.id}").status_code == 404
    listing = client.get("/residents").json()
    assert listing["pagination"]["total"] == 1
    assert [item["id"] for item in listing["data"]] == [kept.id]

    db_session.expire_all()
    stored = db_session.get(Resident, resident.id)
    assert stored is not None
    assert stored.deleted_at is not None
    assert stored.is_active is False

    restored = client.post(f"/residents/{resident.id}/restore")
    assert restored.status_code == 200
    assert restored.json()["data"]["is_active"] is True


def test_staff_cannot_delete(client, authorize, barangay_staff, make_resident):
    resident = make_resident()
    authorize(barangay_staff)
    assert client.delete(f"/residents/{resident.id}").status_code == 403


def test_resident_detail_includes_occupation_hierarchy(client, authorize, barangay_staff, db_session, psgc):
    db_session.add_all(
        [
            Occupation(code="2", title="Professionals", level="major_group"),
            Occupation(code="23", title="Teaching Professionals", level="sub_major_group", parent_code="2"),
        ]
    )
    db_session.commit()
    authorize(barangay_staff)
    payload = {
        "firstName": "Teresa",
        "lastName": "Magbanua",
        "birthdate": "1985-10-13",
        "sex": "female",
        "barangayCode": psgc["barangay"],
        "occupationCode": "23",
    }
    response = client.post("/residents", json=payload)
    assert response.status_code == 201, response.text
    assert response.json()["data"]["occupation"]["hierarchy"] == "Teaching Professionals › Professionals"

    unknown = client.post("/residents", json={**payload, "occupationCode": "9999"})
    assert unknown.status_code == 400


def test_minimal_create_stores_ancestor_codes(client, authorize, barangay_staff, db_session, psgc):
    authorize(barangay_staff)
    response = client.post(
        "/residents",
        json={
            "firstName": "Juan",
            "lastName": "Dela Cruz",
            "birthdate": "1990-01-01",
            "sex": "male",
            "barangayCode": "042114014",
        },
    )
    assert response.status_code == 201, response.text
    stored = db_session.get(Resident, response.json()["data"]["id"])
    assert (stored.city_municipality_code, stored.province_code, stored.region_code) == (
        psgc["city"],
        psgc["province"],
        psgc["region"],
    )
