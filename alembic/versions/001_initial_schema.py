"""Initial policy lifecycle schema.

Revision ID: 001
Revises:
Create Date: 2025-07-02

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

TABLES = ["insurance_packages", "quotations", "orders", "claims"]


def _id_column() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        nullable=False,
        server_default=sa.text("gen_random_uuid()"),
    )


def _timestamp_columns() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    ]


def upgrade() -> None:
    """Create the lifecycle tables."""
    # Create insurance_packages table
    op.create_table(
        "insurance_packages",
        _id_column(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=False),
        sa.Column(
            "vat_rate_percent", sa.Numeric(5, 2), nullable=False, server_default="0"
        ),
        sa.Column(
            "discount_rate_percent",
            sa.Numeric(5, 2),
            nullable=False,
            server_default="0",
        ),
        sa.Column("partner_code", sa.String(2), nullable=True),
        sa.Column("insurance_company_code", sa.String(2), nullable=True),
        sa.Column("channel", sa.String(1), nullable=False, server_default="C"),
        sa.Column("unit_size", sa.Numeric(14, 2), nullable=True),
        sa.Column("rate_per_unit", sa.Numeric(14, 2), nullable=True),
        *_timestamp_columns(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_insurance_packages")),
        sa.CheckConstraint(
            "channel IN ('B', 'C')", name=op.f("ck_insurance_packages_channel")
        ),
        sa.CheckConstraint(
            "vat_rate_percent BETWEEN 0 AND 100",
            name=op.f("ck_insurance_packages_vat_rate"),
        ),
        sa.CheckConstraint(
            "discount_rate_percent BETWEEN 0 AND 100",
            name=op.f("ck_insurance_packages_discount_rate"),
        ),
    )

    # Create quotations table
    op.create_table(
        "quotations",
        _id_column(),
        sa.Column("package_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("reference_code", sa.String(32), nullable=False),
        sa.Column("property_name", sa.String(255), nullable=False),
        sa.Column("property_type", sa.String(32), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(20), nullable=False),
        sa.Column("address", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("coverage_amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("premium_amount", sa.Numeric(14, 2), nullable=False),
        sa.Column(
            "document_paths",
            postgresql.ARRAY(sa.Text()),
            nullable=False,
            server_default="{}",
        ),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        *_timestamp_columns(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_quotations")),
        sa.ForeignKeyConstraint(
            ["package_id"],
            ["insurance_packages.id"],
            name=op.f("fk_quotations_package_id_insurance_packages"),
        ),
        sa.UniqueConstraint("reference_code", name=op.f("uq_quotations_reference_code")),
        sa.CheckConstraint(
            "status IN ('pending', 'ordered')", name=op.f("ck_quotations_status")
        ),
        sa.CheckConstraint(
            "coverage_amount > 0", name=op.f("ck_quotations_coverage_positive")
        ),
    )
    op.create_index(
        op.f("ix_quotations_owner_id"), "quotations", ["owner_id"], unique=False
    )

    # Create orders table
    op.create_table(
        "orders",
        _id_column(),
        sa.Column("reference_code", sa.String(32), nullable=False),
        sa.Column("quotation_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("package_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=False),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(20), nullable=False),
        sa.Column("address", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("property_type", sa.String(32), nullable=False),
        sa.Column(
            "document_paths",
            postgresql.ARRAY(sa.Text()),
            nullable=False,
            server_default="{}",
        ),
        sa.Column("coverage_amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("base_premium", sa.Numeric(14, 2), nullable=False),
        sa.Column("discount_amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("vat_amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("net_amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("final_premium", sa.Numeric(14, 2), nullable=False),
        sa.Column("gateway_token", sa.String(128), nullable=True),
        sa.Column("gateway_status", sa.String(64), nullable=True),
        sa.Column("gateway_response", sa.Text(), nullable=True),
        sa.Column("gateway_name", sa.String(64), nullable=True),
        sa.Column("policy_number", sa.String(19), nullable=True),
        sa.Column("policy_start_date", sa.Date(), nullable=True),
        sa.Column("policy_end_date", sa.Date(), nullable=True),
        sa.Column(
            "used_coverage", sa.Numeric(14, 2), nullable=False, server_default="0"
        ),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        *_timestamp_columns(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_orders")),
        sa.ForeignKeyConstraint(
            ["quotation_id"],
            ["quotations.id"],
            name=op.f("fk_orders_quotation_id_quotations"),
        ),
        sa.ForeignKeyConstraint(
            ["package_id"],
            ["insurance_packages.id"],
            name=op.f("fk_orders_package_id_insurance_packages"),
        ),
        sa.UniqueConstraint("reference_code", name=op.f("uq_orders_reference_code")),
        sa.UniqueConstraint("quotation_id", name=op.f("uq_orders_quotation_id")),
        sa.UniqueConstraint("gateway_token", name=op.f("uq_orders_gateway_token")),
        sa.UniqueConstraint("policy_number", name=op.f("uq_orders_policy_number")),
        sa.CheckConstraint(
            "status IN ('pending', 'completed', 'rejected')",
            name=op.f("ck_orders_status"),
        ),
        sa.CheckConstraint(
            "used_coverage >= 0", name=op.f("ck_orders_used_coverage_non_negative")
        ),
        sa.CheckConstraint(
            "(policy_number IS NULL) = (policy_start_date IS NULL)",
            name=op.f("ck_orders_policy_dates"),
        ),
    )
    op.create_index(op.f("ix_orders_owner_id"), "orders", ["owner_id"], unique=False)

    # Create claims table
    op.create_table(
        "claims",
        _id_column(),
        sa.Column("policy_number", sa.String(19), nullable=False),
        sa.Column("reference_code", sa.String(32), nullable=False),
        sa.Column("incident_date", sa.Date(), nullable=False),
        sa.Column("incident_time", sa.Time(), nullable=False),
        sa.Column("incident_location", sa.String(500), nullable=False),
        sa.Column("incident_description", sa.Text(), nullable=False),
        sa.Column("authorities_notified", sa.Boolean(), nullable=False),
        sa.Column("police_report_filed", sa.Boolean(), nullable=False),
        sa.Column("damage_type", sa.String(255), nullable=False),
        sa.Column("damage_description", sa.Text(), nullable=False),
        sa.Column("claimed_amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("is_habitable", sa.Boolean(), nullable=False),
        sa.Column("emergency_measures_taken", sa.Boolean(), nullable=False),
        sa.Column("measures_description", sa.Text(), nullable=True),
        sa.Column("terms_accepted", sa.Boolean(), nullable=False),
        sa.Column(
            "claim_form_paths",
            postgresql.ARRAY(sa.Text()),
            nullable=False,
            server_default="{}",
        ),
        sa.Column(
            "damage_photo_paths",
            postgresql.ARRAY(sa.Text()),
            nullable=False,
            server_default="{}",
        ),
        sa.Column(
            "supporting_document_paths",
            postgresql.ARRAY(sa.Text()),
            nullable=False,
            server_default="{}",
        ),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column(
            "status_reason", sa.String(255), nullable=False, server_default="N/A"
        ),
        *_timestamp_columns(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_claims")),
        sa.ForeignKeyConstraint(
            ["policy_number"],
            ["orders.policy_number"],
            name=op.f("fk_claims_policy_number_orders"),
        ),
        sa.UniqueConstraint("reference_code", name=op.f("uq_claims_reference_code")),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name=op.f("ck_claims_status"),
        ),
        sa.CheckConstraint(
            "claimed_amount > 0", name=op.f("ck_claims_claimed_amount_positive")
        ),
    )
    op.create_index(
        op.f("ix_claims_policy_number"), "claims", ["policy_number"], unique=False
    )

    # Create update timestamp triggers
    op.execute(
        """
        CREATE OR REPLACE FUNCTION update_updated_at_column()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = CURRENT_TIMESTAMP;
            RETURN NEW;
        END;
        $$ language 'plpgsql';
        """
    )

    for table in TABLES:
        op.execute(
            f"""
            CREATE TRIGGER update_{table}_updated_at
            BEFORE UPDATE ON {table}
            FOR EACH ROW
            EXECUTE FUNCTION update_updated_at_column();
            """
        )


def downgrade() -> None:
    """Drop all tables and functions."""
    for table in TABLES:
        op.execute(f"DROP TRIGGER IF EXISTS update_{table}_updated_at ON {table};")

    op.execute("DROP FUNCTION IF EXISTS update_updated_at_column();")

    # Drop tables (in reverse order due to foreign keys)
    for table in reversed(TABLES):
        op.drop_table(table)
