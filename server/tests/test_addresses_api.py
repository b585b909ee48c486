from __future__ import annotations


def test_address_lookups_require_auth(client, psgc):
    assert client.get("/addresses/regions").status_code == 401
    assert client.get("/psgc/search?q=quezon").status_code == 401


def test_cascading_address_lookups(client, authorize, barangay_staff, psgc):
    authorize(barangay_staff)

    regions = client.get("/addresses/regions").json()["data"]
    assert [region["code"] for region in regions] == [psgc["other_region"], psgc["region"]]

    provinces = client.get(f"/addresses/provinces?region_code={psgc['region']}").json()["data"]
    assert provinces == [{"code": psgc["province"], "name": "Cavite", "region_code": psgc["region"]}]

    cities = client.get(f"/addresses/cities?province_code={psgc['other_province']}").json()["data"]
    assert cities[0]["name"] == "Quezon City"
    assert cities[0]["is_independent"] is False

    ncr = client.get(f"/addresses/cities?region_code={psgc['other_region']}").json()["data"]
    assert [city["name"] for city in ncr] == ["City of Manila", "Quezon City"]
    assert ncr[0]["is_independent"] is True
    assert ncr[0]["province_code"] is None
    assert ncr[0]["region_code"] == psgc["other_region"]

    barangays = client.get(f"/addresses/barangays?city_code={psgc['city']}").json()["data"]
    assert [item["name"] for item in barangays] == ["Salitran I", "Salitran II"]


def test_barangay_listing_needs_city_or_search(client, authorize, barangay_staff, psgc):
    authorize(barangay_staff)
    assert client.get("/addresses/barangays").status_code == 400
    response = client.get("/addresses/barangays?search=pag-asa")
    assert response.status_code == 200
    assert [item["code"] for item in response.json()["data"]] == [psgc["other_barangay"]]


def test_barangay_detail_returns_hierarchy(client, authorize, barangay_staff, psgc):
    authorize(barangay_staff)
    data = client.get(f"/addresses/barangays/{psgc['barangay']}").json()["data"]
    assert data["province"] == {"code": psgc["province"], "name": "Cavite"}
    assert data["region"]["code"] == psgc["region"]
    assert client.get("/addresses/barangays/000000000").status_code == 404


def test_psgc_search_levels(client, authorize, barangay_staff, psgc):
    authorize(barangay_staff)
    response = client.get("/psgc/search?q=quezon&levels=city")
    assert response.status_code == 200
    results = response.json()["data"]
    assert results[0]["code"] == psgc["other_city"]
    assert results[0]["level"] == "city"

    assert client.get("/psgc/search?q=cavite&levels=province,barangay").json()["data"][0]["level"] == "province"
    assert client.get("/psgc/search?q=x").json()["data"] == []
    assert client.get("/psgc/search?q=quezon&levels=street").status_code == 400
