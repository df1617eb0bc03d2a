"""create venues zones tables customers reservations

Revision ID: 3f1b2c4d5e6a
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

from __future__ import annotations

from typing import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql


revision: str = "3f1b2c4d5e6a"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


# Row changes published on mesabot_{entity} for the bot's change feed.
NOTIFY_FUNCTION = """
CREATE OR REPLACE FUNCTION mesabot_notify_change() RETURNS trigger AS $$
BEGIN
    PERFORM pg_notify(
        'mesabot_' || TG_ARGV[0],
        json_build_object(
            'event', TG_OP,
            'old', CASE WHEN TG_OP = 'INSERT' THEN NULL ELSE row_to_json(OLD) END,
            'new', CASE WHEN TG_OP = 'DELETE' THEN NULL ELSE row_to_json(NEW) END
        )::text
    );
    RETURN NULL;
END;
$$ LANGUAGE plpgsql;
"""

NOTIFY_TABLES = {
    "venues": "venue",
    "zones": "zone",
    "tables": "table",
    "reservations": "reservation",
}


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            nullable=False,
        ),
    ]


def _venue_fk() -> sa.Column:
    return sa.Column(
        "venue_id",
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey("venues.id"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "venues",
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("venue_type", sa.String(length=64), server_default=sa.text("'restaurante'"), nullable=False),
        sa.Column(
            "auto_accept_reservations",
            sa.Boolean(),
            server_default=sa.text("false"),
            nullable=False,
        ),
        sa.Column(
            "bot_active",
            sa.Boolean(),
            server_default=sa.text("true"),
            nullable=False,
        ),
        sa.Column(
            "settings",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        *_base_columns(),
    )
    op.create_index(op.f("ix_venues_slug"), "venues", ["slug"], unique=True)
    op.create_table(
        "zones",
        _venue_fk(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("priority", sa.Integer(), server_default=sa.text("0"), nullable=False),
        *_base_columns(),
        sa.UniqueConstraint("venue_id", "name", name="uq_zones_venue_id_name"),
    )
    op.create_index("ix_zones_venue_id", "zones", ["venue_id"], unique=False)
    op.create_table(
        "tables",
        _venue_fk(),
        sa.Column(
            "zone_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("zones.id"),
            nullable=True,
        ),
        sa.Column("table_number", sa.String(length=32), nullable=True),
        sa.Column("capacity", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("is_occupied", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        *_base_columns(),
    )
    op.create_index("ix_tables_venue_id", "tables", ["venue_id"], unique=False)
    op.create_index("ix_tables_zone_id", "tables", ["zone_id"], unique=False)
    op.create_table(
        "customers",
        _venue_fk(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=64), nullable=False),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=True),
        *_base_columns(),
        sa.UniqueConstraint("venue_id", "phone", name="uq_customers_venue_id_phone"),
    )
    op.create_table(
        "reservations",
        _venue_fk(),
        sa.Column(
            "customer_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("customers.id"),
            nullable=False,
        ),
        sa.Column(
            "zone_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("zones.id"),
            nullable=True,
        ),
        sa.Column(
            "table_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("tables.id"),
            nullable=True,
        ),
        sa.Column("party_size", sa.Integer(), nullable=False),
        sa.Column("display_code", sa.String(length=16), nullable=False),
        sa.Column("status", sa.String(length=16), server_default=sa.text("'PENDING'"), nullable=False),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("seated_at", sa.DateTime(timezone=True), nullable=True),
        *_base_columns(),
    )
    op.create_index("ix_reservations_venue_id_status", "reservations", ["venue_id", "status"], unique=False)
    op.create_index(
        "ix_reservations_venue_id_display_code",
        "reservations",
        ["venue_id", "display_code"],
        unique=False,
    )
    op.create_index("ix_reservations_customer_id", "reservations", ["customer_id"], unique=False)

    op.execute(NOTIFY_FUNCTION)
    for table, entity in NOTIFY_TABLES.items():
        op.execute(
            f"CREATE TRIGGER {table}_notify_change "
            f"AFTER INSERT OR UPDATE OR DELETE ON {table} "
            f"FOR EACH ROW EXECUTE FUNCTION mesabot_notify_change('{entity}')"
        )


def downgrade() -> None:
    for table in NOTIFY_TABLES:
        op.execute(f"DROP TRIGGER IF EXISTS {table}_notify_change ON {table}")
    op.execute("DROP FUNCTION IF EXISTS mesabot_notify_change()")

    op.drop_index("ix_reservations_customer_id", table_name="reservations")
    op.drop_index("ix_reservations_venue_id_display_code", table_name="reservations")
    op.drop_index("ix_reservations_venue_id_status", table_name="reservations")
    op.drop_table("reservations")
    op.drop_table("customers")
    op.drop_index("ix_tables_zone_id", table_name="tables")
    op.drop_index("ix_tables_venue_id", table_name="tables")
    op.drop_table("tables")
    op.drop_index("ix_zones_venue_id", table_name="zones")
    op.drop_table("zones")
    op.drop_index(op.f("ix_venues_slug"), table_name="venues")
    op.drop_table("venues")
