from __future__ import annotations

import pytest

from app.models.geography import Barangay, CityMunicipality, Province
from app.models.occupation import Occupation
from app.models.role import Role
from app.scripts.seed_reference import ensure_super_admin, load_psgc, load_psoc
from app.services.access import ROLE_ACCESS_LEVELS
from app.services.geography import resolve_barangay
from app.services.user_accounts import seed_roles


@pytest.fixture()
def psgc_dir(tmp_path):
    (tmp_path / "regions.csv").write_text(
        "code,name\n010000000,Region I (Ilocos Region)\n130000000,National Capital Region\n", encoding="utf-8"
    )
    (tmp_path / "provinces.csv").write_text(
        "code,name,region_code\n012800000,Ilocos Norte,010000000\n", encoding="utf-8"
    )
    (tmp_path / "cities.csv").write_text(
        "code,name,province_code,type,is_independent,region_code\n"
        "012805000,City of Batac,012800000,city,no,\n"
        "012812000,Pagudpud,012800000,,,\n"
        "133900000,City of Manila,,city,yes,130000000\n",
        encoding="utf-8",
    )
    (tmp_path / "barangays.csv").write_text(
        "Code,Name,City_Code,Urban_Rural_Status\n"
        "012805001,Aglipay,012805000,rural\n"
        "133901001,Barangay 1,133900000,urban\n",
        encoding="utf-8",
    )
    return tmp_path


def test_load_psgc_builds_resolvable_chain(db_session, psgc_dir):
    counts = load_psgc(db_session, psgc_dir)
    db_session.commit()
    assert counts == {"regions.csv": 2, "provinces.csv": 1, "cities.csv": 3, "barangays.csv": 2}
    assert db_session.get(CityMunicipality, "012812000").type == "municipality"
    assert db_session.get(Barangay, "012805001").urban_rural_status == "rural"
    codes = resolve_barangay(db_session, "012805001")
    assert codes.region_code == "010000000"

    manila = resolve_barangay(db_session, "133901001")
    assert manila.city_municipality_code == "133900000"
    assert manila.province_code is None
    assert manila.region_code == "130000000"


def test_load_psgc_upserts(db_session, psgc_dir):
    load_psgc(db_session, psgc_dir)
    (psgc_dir / "provinces.csv").write_text(
        "code,name,region_code,is_active\n012800000,Ilocos Norte (renamed),010000000,false\n", encoding="utf-8"
    )
    load_psgc(db_session, psgc_dir)
    db_session.commit()
    province = db_session.get(Province, "012800000")
    assert province.name == "Ilocos Norte (renamed)"
    assert province.is_active is False
    assert db_session.query(Province).count() == 1


def test_load_psoc_orders_parents_first(db_session, tmp_path):
    path = tmp_path / "psoc.csv"
    path.write_text(
        "code,title,level,parent_code\n"
        "2330,Secondary Education Teachers,unit_group,233\n"
        "2,Professionals,major_group,\n"
        "233,Secondary Education Teachers,minor_group,23\n"
        "23,Teaching Professionals,sub_major_group,2\n",
        encoding="utf-8",
    )
    assert load_psoc(db_session, path) == 4
    db_session.commit()
    assert db_session.get(Occupation, "2330").parent.parent.code == "23"


def test_load_psoc_rejects_unknown_level(db_session, tmp_path):
    path = tmp_path / "psoc.csv"
    path.write_text("code,title,level,parent_code\n9,Armed Forces,division,\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_psoc(db_session, path)


def test_seed_roles_and_super_admin(db_session):
    seed_roles(db_session)
    seed_roles(db_session)
    assert db_session.query(Role).count() == len(ROLE_ACCESS_LEVELS)

    admin = ensure_super_admin(db_session, "Root@Example.com", "Barangay#2024Pass")
    db_session.commit()
    assert admin.role_name == "super_admin"
    assert admin.barangay_code is None
    assert ensure_super_admin(db_session, "root@example.com", "whatever").id == admin.id
    assert ensure_super_admin(db_session, None, None) is None
