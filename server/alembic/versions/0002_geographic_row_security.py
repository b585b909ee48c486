"""geographic row-level security on households and residents

Revision ID: 0002_geographic_row_security
Revises: 0001_initial_registry_schema
Create Date: 2026-10-16
"""

from alembic import op

from app.services.access import GEOGRAPHY_SCOPED_TABLES, row_security_statements


# revision identifiers, used by Alembic.
revision = "0002_geographic_row_security"
down_revision = "0001_initial_registry_schema"
branch_labels = None
depends_on = None


def upgrade() -> None:
    if op.get_bind().dialect.name != "postgresql":
        return
    for table in GEOGRAPHY_SCOPED_TABLES:
        for statement in row_security_statements(table):
            op.execute(statement)


def downgrade() -> None:
    if op.get_bind().dialect.name != "postgresql":
        return
    for table in GEOGRAPHY_SCOPED_TABLES:
        op.execute(f"DROP POLICY IF EXISTS {table}_geographic_scope ON {table}")
        op.execute(f"ALTER TABLE {table} NO FORCE ROW LEVEL SECURITY")
        op.execute(f"ALTER TABLE {table} DISABLE ROW LEVEL SECURITY")
