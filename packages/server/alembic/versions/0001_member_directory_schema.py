"""Member directory schema with row-level visibility policies.

Revision ID: 0001_member_directory
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "0001_member_directory"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Request context published by app.core.database.set_row_context. Missing
# settings fall back to the most restrictive value.
_IS_ADMIN = "coalesce(current_setting('app.is_admin', true), 'false') = 'true'"
_CURRENT_USER = "nullif(current_setting('app.current_user_id', true), '')::uuid"
_LEVEL = "coalesce(nullif(current_setting('app.disclosure_level', true), '')::int, 1)"
_CURRENT_EMAIL = "nullif(current_setting('app.current_email', true), '')"
# An unclaimed row is reachable only by the account its claim_email names
_CLAIMABLE = f"(user_id IS NULL AND lower(claim_email) = lower({_CURRENT_EMAIL}))"


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    # users (identity service, NOT RLS-scoped)
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.Text(), nullable=False, unique=True),
        sa.Column("password_hash", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("idx_users_email", "users", ["email"], unique=True)

    # branches
    op.create_table(
        "branches",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("region", sa.Text(), nullable=False),
        sa.Column("city", sa.Text(), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("member_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("public", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("idx_branches_region", "branches", ["region"])
    op.create_index("idx_branches_public", "branches", ["public"])

    # members
    op.create_table(
        "members",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=True, unique=True),
        sa.Column("branch_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("branches.id"), nullable=True),
        sa.Column("role", sa.Text(), nullable=False, server_default="member"),
        sa.Column("display_name", sa.Text(), nullable=False),
        sa.Column("company_name", sa.Text(), nullable=True),
        sa.Column("industry_1", sa.Text(), nullable=True),
        sa.Column("industry_2", sa.Text(), nullable=True),
        sa.Column("want_to_introduce", sa.Text(), nullable=True),
        sa.Column("can_introduce", sa.Text(), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("visible", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("general_public", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("public_level", sa.Integer(), nullable=False, server_default="2"),
        sa.Column("payment_status", sa.Text(), nullable=False, server_default="inactive"),
        sa.Column("last_updated_by", sa.Text(), nullable=False, server_default="self"),
        sa.Column("claim_email", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("public_level BETWEEN 1 AND 3", name="ck_members_public_level"),
        sa.CheckConstraint("role IN ('member', 'admin')", name="ck_members_role"),
        sa.CheckConstraint("payment_status IN ('active', 'inactive')", name="ck_members_payment_status"),
        sa.CheckConstraint("last_updated_by IN ('self', 'admin')", name="ck_members_last_updated_by"),
    )
    op.create_index("idx_members_user", "members", ["user_id"], unique=True)
    op.create_index("idx_members_branch", "members", ["branch_id"])
    op.create_index("idx_members_directory", "members", ["visible", "public_level"])
    op.create_index("idx_members_updated_at", "members", ["updated_at"])
    op.create_index("idx_members_claim_email", "members", [sa.text("lower(claim_email)")])

    # -----------------------------------------------------------------------
    # Row Level Security (RLS) policies
    # -----------------------------------------------------------------------

    op.execute("ALTER TABLE members ENABLE ROW LEVEL SECURITY")
    op.execute(f"""
        CREATE POLICY members_read ON members FOR SELECT
        USING (
            {_IS_ADMIN}
            OR user_id = {_CURRENT_USER}
            OR (
                visible
                AND public_level <= {_LEVEL}
                AND ({_LEVEL} >= 2 OR general_public)
            )
            OR {_CLAIMABLE}
        )
    """)
    op.execute(f"""
        CREATE POLICY members_update_self ON members FOR UPDATE
        USING (user_id = {_CURRENT_USER} OR {_CLAIMABLE})
        WITH CHECK (user_id = {_CURRENT_USER})
    """)
    op.execute(f"""
        CREATE POLICY members_update_admin ON members FOR UPDATE
        USING ({_IS_ADMIN})
        WITH CHECK ({_IS_ADMIN})
    """)
    op.execute(f"""
        CREATE POLICY members_insert_admin ON members FOR INSERT
        WITH CHECK ({_IS_ADMIN})
    """)
    op.execute("ALTER TABLE members FORCE ROW LEVEL SECURITY")

    # Self-service writes may not touch admin-only columns.
    op.execute(f"""
        CREATE FUNCTION members_guard_admin_columns() RETURNS TRIGGER AS $$
        BEGIN
            IF NOT ({_IS_ADMIN}) AND (
                NEW.payment_status IS DISTINCT FROM OLD.payment_status
                OR NEW.public_level IS DISTINCT FROM OLD.public_level
                OR NEW.role IS DISTINCT FROM OLD.role
                OR NEW.last_updated_by = 'admin'
            ) THEN
                RAISE EXCEPTION 'admin-only member columns cannot be changed by the member';
            END IF;
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql
    """)
    op.execute("""
        CREATE TRIGGER members_admin_columns
        BEFORE UPDATE ON members
        FOR EACH ROW EXECUTE FUNCTION members_guard_admin_columns()
    """)

    op.execute("ALTER TABLE branches ENABLE ROW LEVEL SECURITY")
    op.execute(f"""
        CREATE POLICY branches_read ON branches FOR SELECT
        USING (public OR {_IS_ADMIN})
    """)
    op.execute(f"""
        CREATE POLICY branches_write_admin ON branches FOR ALL
        USING ({_IS_ADMIN})
        WITH CHECK ({_IS_ADMIN})
    """)
    op.execute("ALTER TABLE branches FORCE ROW LEVEL SECURITY")


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    op.execute("DROP POLICY IF EXISTS branches_write_admin ON branches")
    op.execute("DROP POLICY IF EXISTS branches_read ON branches")
    op.execute("ALTER TABLE branches DISABLE ROW LEVEL SECURITY")

    op.execute("DROP TRIGGER IF EXISTS members_admin_columns ON members")
    op.execute("DROP FUNCTION IF EXISTS members_guard_admin_columns()")
    op.execute("DROP POLICY IF EXISTS members_insert_admin ON members")
    op.execute("DROP POLICY IF EXISTS members_update_admin ON members")
    op.execute("DROP POLICY IF EXISTS members_update_self ON members")
    op.execute("DROP POLICY IF EXISTS members_read ON members")
    op.execute("ALTER TABLE members DISABLE ROW LEVEL SECURITY")

    op.drop_table("members")
    op.drop_table("branches")
    op.drop_table("users")
