"""Initial schema — visits, visit_events, visit_notes, visit_emails.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from __future__ import annotations

from typing import Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, tuple[str, ...], None] = None
depends_on: Union[str, tuple[str, ...], None] = None


def upgrade() -> None:
    # ── Aggregate root ─────────────────────────────────────────────────

    op.create_table(
        "visits",
        sa.Column("customer_id", postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("site_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("technician_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("state", sa.String(20), nullable=False, comment="VisitState enum value"),
        sa.Column("priority", sa.String(10), nullable=False, comment="VisitPriority enum value"),
        sa.Column("purpose", sa.String(200)),
        sa.Column("scheduled_start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("scheduled_end_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("notes_planned", sa.String(2000)),
        sa.Column("check_in_at", sa.DateTime(timezone=True)),
        sa.Column("check_out_at", sa.DateTime(timezone=True)),
        sa.Column("version", sa.Integer(), nullable=False, comment="Optimistic row version"),
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("scheduled_end_at > scheduled_start_at", name="ck_visits_schedule_order"),
    )
    op.create_index("idx_visits_technician_start", "visits", ["technician_id", "scheduled_start_at"])
    op.create_index("idx_visits_state", "visits", ["state"])

    # ── Child tables (FK → visits) ─────────────────────────────────────

    op.create_table(
        "visit_events",
        sa.Column("visit_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("visits.id"), nullable=False, index=True),
        sa.Column("type", sa.String(50), nullable=False, comment="VisitScheduled, VisitStarted, ..."),
        sa.Column("actor_id", postgresql.UUID(as_uuid=True), comment="Who performed the action"),
        sa.Column("geo_lat", sa.Float()),
        sa.Column("geo_lng", sa.Float()),
        sa.Column("payload", sa.Text(), comment="Free text, e.g. work summary"),
        sa.Column("sequence", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "visit_notes",
        sa.Column("visit_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("visits.id"), nullable=False, index=True),
        sa.Column("author_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("visibility", sa.String(20), nullable=False, comment="INTERNAL or CUSTOMER"),
        sa.Column("body", sa.String(4000), nullable=False),
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "visit_emails",
        sa.Column("visit_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("visits.id"), nullable=False, index=True),
        sa.Column("to_email", sa.String(320), nullable=False),
        sa.Column("subject", sa.String(300)),
        sa.Column("status", sa.String(30), nullable=False, comment="PENDING, SENT or ERROR"),
        sa.Column("error_message", sa.String(1000)),
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    # Drop in reverse dependency order
    op.drop_table("visit_emails")
    op.drop_table("visit_notes")
    op.drop_table("visit_events")
    op.drop_index("idx_visits_state", table_name="visits")
    op.drop_index("idx_visits_technician_start", table_name="visits")
    op.drop_table("visits")
