"""initial schema: users, equipment, loans, reservations, alerts, ledgers, reports, jobs

Revision ID: 0001
Revises:
Create Date: 2026-10-17

alerts carries the partial unique index uq_alerts_open_source_type on
(source_id, alert_type) WHERE is_resolved = false: at most one open alert per
source and type.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _ts(name: str, nullable: bool = False) -> sa.Column:
    if nullable:
        return sa.Column(name, sa.DateTime(timezone=True), nullable=True)
    return sa.Column(
        name, sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("display_name", sa.String(255), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("role", sa.String(32), server_default=sa.text("'user'"), nullable=False),
        _ts("created_at"),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "equipment",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(128), nullable=True),
        sa.Column("status", sa.String(32), server_default=sa.text("'available'"), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        _ts("created_at"),
        _ts("updated_at"),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "loans",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("equipment_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(32), server_default=sa.text("'pending'"), nullable=False),
        _ts("borrow_time", nullable=True),
        _ts("expected_return_time", nullable=True),
        _ts("actual_return_time", nullable=True),
        _ts("overdue_marked_at", nullable=True),
        _ts("created_at"),
        _ts("updated_at"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["equipment_id"], ["equipment.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_loans_user_id", "loans", ["user_id"])
    op.create_index("ix_loans_equipment_id", "loans", ["equipment_id"])
    op.create_index(
        "ix_loans_status_expected_return", "loans", ["status", "expected_return_time"]
    )

    op.create_table(
        "reservations",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("equipment_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(32), server_default=sa.text("'pending'"), nullable=False),
        _ts("start_time", nullable=True),
        _ts("end_time", nullable=True),
        sa.Column("is_no_show", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        _ts("no_show_marked_at", nullable=True),
        _ts("expired_at", nullable=True),
        _ts("created_at"),
        _ts("updated_at"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["equipment_id"], ["equipment.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_reservations_user_id", "reservations", ["user_id"])
    op.create_index("ix_reservations_equipment_id", "reservations", ["equipment_id"])
    op.create_index("ix_reservations_status_start", "reservations", ["status", "start_time"])

    op.create_table(
        "alerts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("alert_type", sa.String(64), nullable=False),
        sa.Column("priority", sa.String(16), nullable=False),
        sa.Column("title", sa.Text(), server_default=sa.text("''"), nullable=False),
        sa.Column("description", sa.Text(), server_default=sa.text("''"), nullable=False),
        sa.Column("source_id", sa.String(64), nullable=False),
        sa.Column("source_type", sa.String(32), nullable=False),
        sa.Column("source_data", postgresql.JSONB(), nullable=True),
        sa.Column("quick_actions", postgresql.JSONB(), nullable=True),
        sa.Column("is_resolved", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        _ts("resolved_at", nullable=True),
        sa.Column("resolved_by", sa.String(255), nullable=True),
        sa.Column("resolved_action", sa.String(64), nullable=True),
        _ts("created_at"),
        _ts("updated_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "uq_alerts_open_source_type",
        "alerts",
        ["source_id", "alert_type"],
        unique=True,
        postgresql_where=sa.text("is_resolved = false"),
    )
    op.create_index("ix_alerts_is_resolved_priority", "alerts", ["is_resolved", "priority"])

    op.create_table(
        "no_show_events",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        _ts("occurred_at"),
        _ts("created_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_no_show_events_user_occurred", "no_show_events", ["user_id", "occurred_at"]
    )

    op.create_table(
        "reliability_records",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("user_name", sa.String(255), server_default=sa.text("''"), nullable=False),
        sa.Column("user_email", sa.String(255), server_default=sa.text("''"), nullable=False),
        sa.Column("total_loans", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("on_time_returns", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("late_returns", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("on_time_return_rate", sa.Float(), server_default=sa.text("1"), nullable=False),
        sa.Column("total_reservations", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("no_shows", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("no_show_rate", sa.Float(), server_default=sa.text("0"), nullable=False),
        sa.Column("reliability_score", sa.Integer(), nullable=False),
        sa.Column("classification", sa.String(16), nullable=False),
        sa.Column("is_flagged", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("recent_no_shows", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column(
            "is_repeat_offender", sa.Boolean(), server_default=sa.text("false"), nullable=False
        ),
        _ts("last_calculated_at"),
        _ts("updated_at"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
    )

    op.create_table(
        "reports",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("report_type", sa.String(64), nullable=False),
        sa.Column("period", sa.String(16), nullable=False),
        sa.Column("data", postgresql.JSONB(), nullable=True),
        sa.Column("status", sa.String(32), server_default=sa.text("'completed'"), nullable=False),
        sa.Column("download_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        _ts("generated_at"),
        _ts("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("report_type", "period", name="uq_reports_type_period"),
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("notification_type", sa.String(64), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("data", postgresql.JSONB(), nullable=True),
        sa.Column("priority", sa.String(16), server_default=sa.text("'medium'"), nullable=False),
        sa.Column("is_read", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("action_url", sa.Text(), nullable=True),
        _ts("created_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_notifications_user_type_created",
        "notifications",
        ["user_id", "notification_type", "created_at"],
    )

    op.create_table(
        "activity_log",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("actor", sa.String(64), server_default=sa.text("'system'"), nullable=False),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("target_type", sa.String(32), nullable=False),
        sa.Column("target_id", sa.String(64), nullable=False),
        sa.Column("details", postgresql.JSONB(), nullable=True),
        _ts("created_at"),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "job_runs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("job_type", sa.String(64), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        _ts("started_at"),
        _ts("finished_at", nullable=True),
        sa.Column("records_processed", sa.Integer(), nullable=True),
        sa.Column("error_count", sa.Integer(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("result", postgresql.JSONB(), nullable=True),
        sa.Column("idempotency_key", sa.String(255), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_job_runs_type_idempotency_key", "job_runs", ["job_type", "idempotency_key"]
    )


def downgrade() -> None:
    op.drop_table("job_runs", if_exists=True)
    op.drop_table("activity_log", if_exists=True)
    op.drop_table("notifications", if_exists=True)
    op.drop_table("reports", if_exists=True)
    op.drop_table("reliability_records", if_exists=True)
    op.drop_table("no_show_events", if_exists=True)
    op.drop_table("alerts", if_exists=True)
    op.drop_table("reservations", if_exists=True)
    op.drop_table("loans", if_exists=True)
    op.drop_table("equipment", if_exists=True)
    op.drop_table("users", if_exists=True)
