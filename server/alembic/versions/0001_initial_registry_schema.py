"""initial registry schema

Revision ID: 0001_initial_registry_schema
Revises:
Create Date: 2026-10-16
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial_registry_schema"
down_revision = None
branch_labels = None
depends_on = None

GEO_COLUMNS = ("city_municipality_code", "province_code", "region_code")


def _geo_columns() -> list[sa.Column]:
    return [sa.Column(name, sa.String(length=10), nullable=True) for name in GEO_COLUMNS]


def _geo_indexes(table: str) -> None:
    for name in ("barangay_code",) + GEO_COLUMNS:
        op.create_index(f"ix_{table}_{name}", table, [name])


def upgrade() -> None:
    op.create_table(
        "psgc_regions",
        sa.Column("code", sa.String(length=10), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_table(
        "psgc_provinces",
        sa.Column("code", sa.String(length=10), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("region_code", sa.String(length=10), sa.ForeignKey("psgc_regions.code"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_psgc_provinces_region_code", "psgc_provinces", ["region_code"])
    op.create_table(
        "psgc_cities_municipalities",
        sa.Column("code", sa.String(length=10), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("province_code", sa.String(length=10), sa.ForeignKey("psgc_provinces.code"), nullable=True),
        sa.Column("region_code", sa.String(length=10), sa.ForeignKey("psgc_regions.code"), nullable=True),
        sa.Column("type", sa.String(length=50), nullable=False, server_default="municipality"),
        sa.Column("is_independent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("is_independent = false OR province_code IS NULL", name="independence_rule"),
    )
    op.create_index("ix_psgc_cities_municipalities_province_code", "psgc_cities_municipalities", ["province_code"])
    op.create_index("ix_psgc_cities_municipalities_region_code", "psgc_cities_municipalities", ["region_code"])
    op.create_table(
        "psgc_barangays",
        sa.Column("code", sa.String(length=10), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column(
            "city_municipality_code",
            sa.String(length=10),
            sa.ForeignKey("psgc_cities_municipalities.code"),
            nullable=True,
        ),
        sa.Column("urban_rural_status", sa.String(length=20), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_psgc_barangays_city_municipality_code", "psgc_barangays", ["city_municipality_code"])

    op.create_table(
        "psoc_occupations",
        sa.Column("code", sa.String(length=10), primary_key=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("level", sa.String(length=20), nullable=False),
        sa.Column("parent_code", sa.String(length=10), sa.ForeignKey("psoc_occupations.code"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_psoc_occupations_title", "psoc_occupations", ["title"])
    op.create_index("ix_psoc_occupations_parent_code", "psoc_occupations", ["parent_code"])

    op.create_table(
        "roles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_roles_name", "roles", ["name"], unique=True)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("mobile_number", sa.String(length=20), nullable=True),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id"), nullable=True),
        sa.Column("barangay_code", sa.String(length=10), sa.ForeignKey("psgc_barangays.code"), nullable=True),
        *_geo_columns(),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role_id", "users", ["role_id"])
    _geo_indexes("users")

    op.create_table(
        "households",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=True),
        sa.Column("house_number", sa.String(length=50), nullable=True),
        sa.Column("street_name", sa.String(length=200), nullable=True),
        sa.Column("subdivision", sa.String(length=100), nullable=True),
        sa.Column("zip_code", sa.String(length=10), nullable=True),
        sa.Column("barangay_code", sa.String(length=10), sa.ForeignKey("psgc_barangays.code"), nullable=False),
        *_geo_columns(),
        sa.Column("household_type", sa.String(length=30), nullable=True),
        sa.Column("tenure_status", sa.String(length=40), nullable=True),
        sa.Column("tenure_others_specify", sa.String(length=200), nullable=True),
        sa.Column("household_unit", sa.String(length=30), nullable=True),
        sa.Column("monthly_income", sa.Numeric(12, 2), nullable=True),
        sa.Column("income_class", sa.String(length=30), nullable=True),
        sa.Column("household_head_id", sa.Integer(), nullable=True),
        sa.Column("member_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("created_by_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("updated_by_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_households_code", "households", ["code"], unique=True)
    _geo_indexes("households")

    op.create_table(
        "residents",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("middle_name", sa.String(length=100), nullable=True),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("extension_name", sa.String(length=20), nullable=True),
        sa.Column("birthdate", sa.Date(), nullable=False),
        sa.Column("birth_place_code", sa.String(length=10), nullable=True),
        sa.Column("sex", sa.Enum("male", "female", name="sex_enum"), nullable=False),
        sa.Column(
            "civil_status",
            sa.Enum("single", "married", "divorced", "separated", "widowed", "others", name="civil_status_enum"),
            nullable=False,
            server_default="single",
        ),
        sa.Column("civil_status_others_specify", sa.String(length=200), nullable=True),
        sa.Column("citizenship", sa.String(length=20), nullable=False, server_default="filipino"),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("mobile_number", sa.String(length=20), nullable=True),
        sa.Column("telephone_number", sa.String(length=20), nullable=True),
        sa.Column("education_attainment", sa.String(length=30), nullable=True),
        sa.Column("education_status", sa.String(length=30), nullable=True),
        sa.Column("is_graduate", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("employment_status", sa.String(length=30), nullable=True),
        sa.Column("occupation_code", sa.String(length=10), sa.ForeignKey("psoc_occupations.code"), nullable=True),
        sa.Column("height", sa.Numeric(5, 2), nullable=True),
        sa.Column("weight", sa.Numeric(5, 2), nullable=True),
        sa.Column("complexion", sa.String(length=50), nullable=True),
        sa.Column("blood_type", sa.String(length=5), nullable=True),
        sa.Column("religion", sa.String(length=60), nullable=True),
        sa.Column("religion_others_specify", sa.String(length=200), nullable=True),
        sa.Column("ethnicity", sa.String(length=30), nullable=True),
        sa.Column("mother_maiden_first", sa.String(length=100), nullable=True),
        sa.Column("mother_maiden_middle", sa.String(length=100), nullable=True),
        sa.Column("mother_maiden_last", sa.String(length=100), nullable=True),
        sa.Column("philsys_card_number_hash", sa.String(length=64), nullable=True),
        sa.Column("philsys_last4", sa.String(length=4), nullable=True),
        *[
            sa.Column(flag, sa.Boolean(), nullable=False, server_default=sa.false())
            for flag in (
                "is_voter",
                "is_resident_voter",
                "is_labor_force",
                "is_employed",
                "is_unemployed",
                "is_senior_citizen",
                "is_out_of_school_children",
                "is_out_of_school_youth",
                "is_overseas_filipino_worker",
                "is_person_with_disability",
                "is_registered_senior_citizen",
                "is_solo_parent",
                "is_indigenous_people",
                "is_migrant",
            )
        ],
        sa.Column("last_voted_date", sa.Date(), nullable=True),
        sa.Column("household_id", sa.Integer(), sa.ForeignKey("households.id", ondelete="SET NULL"), nullable=True),
        sa.Column("relationship_to_head", sa.String(length=30), nullable=True),
        sa.Column("barangay_code", sa.String(length=10), sa.ForeignKey("psgc_barangays.code"), nullable=False),
        *_geo_columns(),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("created_by_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("updated_by_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_residents_last_name", "residents", ["last_name"])
    op.create_index("ix_residents_philsys_last4", "residents", ["philsys_last4"])
    op.create_index("ix_residents_household_id", "residents", ["household_id"])
    _geo_indexes("residents")

    op.create_foreign_key(
        "fk_households_head",
        "households",
        "residents",
        ["household_head_id"],
        ["id"],
        ondelete="SET NULL",
    )

    op.create_table(
        "resident_migration_info",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "resident_id",
            sa.Integer(),
            sa.ForeignKey("residents.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("previous_barangay_code", sa.String(length=10), nullable=True),
        sa.Column("previous_city_municipality_code", sa.String(length=10), nullable=True),
        sa.Column("previous_province_code", sa.String(length=10), nullable=True),
        sa.Column("previous_region_code", sa.String(length=10), nullable=True),
        sa.Column("date_of_transfer", sa.Date(), nullable=True),
        sa.Column("reason_for_leaving", sa.String(length=500), nullable=True),
        sa.Column("reason_for_transferring", sa.String(length=500), nullable=True),
        sa.Column("length_of_stay_previous_months", sa.Integer(), nullable=True),
        sa.Column("duration_of_stay_current_months", sa.Integer(), nullable=True),
        sa.Column("is_intending_to_return", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "resident_audit",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("resident_id", sa.Integer(), sa.ForeignKey("residents.id", ondelete="CASCADE"), nullable=False),
        sa.Column("field", sa.String(length=100), nullable=False),
        sa.Column("old_value", sa.Text(), nullable=True),
        sa.Column("new_value", sa.Text(), nullable=True),
        sa.Column("changed_by_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("changed_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_resident_audit_resident_id", "resident_audit", ["resident_id"])
    op.create_index("ix_resident_audit_changed_at", "resident_audit", ["changed_at"])


def downgrade() -> None:
    op.drop_table("resident_audit")
    op.drop_table("resident_migration_info")
    op.drop_constraint("fk_households_head", "households", type_="foreignkey")
    op.drop_table("residents")
    op.drop_table("households")
    op.drop_table("users")
    op.drop_table("roles")
    op.drop_table("psoc_occupations")
    op.drop_table("psgc_barangays")
    op.drop_table("psgc_cities_municipalities")
    op.drop_table("psgc_provinces")
    op.drop_table("psgc_regions")
    sa.Enum(name="civil_status_enum").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="sex_enum").drop(op.get_bind(), checkfirst=True)
