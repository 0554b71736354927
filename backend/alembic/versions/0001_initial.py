"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00

"""
from alembic import op
import sqlalchemy as sa


revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

APPOINTMENT_STATUSES = ("pending", "confirmed", "completed", "cancelled", "no-show")
PAYMENT_STATUSES = ("pending", "paid", "refunded", "failed")
EMPLOYMENT_TYPES = ("salaried", "independent")
MODIFICATION_ACTIONS = (
    "created",
    "updated",
    "status_changed",
    "payment_received",
    "cancelled",
    "completed",
    "rescheduled",
)


def upgrade():
    op.create_table(
        "providers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Text(), nullable=False, unique=True),
        sa.Column("display_name", sa.Text(), nullable=False),
        sa.Column("email", sa.Text()),
        sa.Column("phone", sa.Text()),
        sa.Column(
            "employment_type",
            sa.Enum(*EMPLOYMENT_TYPES, name="employment_type"),
            nullable=False,
            server_default=sa.text("'salaried'"),
        ),
        sa.Column("is_active", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.Text(), server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.Text(), server_default=sa.text("CURRENT_TIMESTAMP")),
    )

    op.create_table(
        "services",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("duration_min", sa.Integer(), nullable=False),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("is_active", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("description", sa.Text()),
        sa.Column("category", sa.Text()),
        sa.Column("offers_consultation", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("consultation_duration_min", sa.Integer()),
    )

    op.create_table(
        "provider_services",
        sa.Column("provider_id", sa.Integer(), sa.ForeignKey("providers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("service_id", sa.Integer(), sa.ForeignKey("services.id", ondelete="CASCADE"), nullable=False),
        sa.Column("is_active", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("notes", sa.Text()),
        sa.UniqueConstraint("provider_id", "service_id"),
    )

    op.create_table(
        "availability_rules",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("provider_id", sa.Integer(), sa.ForeignKey("providers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("service_id", sa.Integer(), sa.ForeignKey("services.id", ondelete="CASCADE")),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.Text(), nullable=False),
        sa.Column("end_time", sa.Text(), nullable=False),
        sa.Column("is_available", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("start_date", sa.Text()),
        sa.Column("end_date", sa.Text()),
        sa.Column("created_at", sa.Text(), server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.Text(), server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index(
        "ix_availability_rules_provider_day", "availability_rules", ["provider_id", "day_of_week"]
    )

    op.create_table(
        "blocked_intervals",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("provider_id", sa.Integer(), sa.ForeignKey("providers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("service_id", sa.Integer(), sa.ForeignKey("services.id", ondelete="CASCADE")),
        sa.Column("date", sa.Text(), nullable=False),
        sa.Column("start_time", sa.Text(), nullable=False),
        sa.Column("end_time", sa.Text()),
        sa.Column("reason", sa.Text()),
        sa.Column("created_by", sa.Text()),
        sa.Column("created_at", sa.Text(), server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.Text(), server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index(
        "ix_blocked_intervals_provider_date", "blocked_intervals", ["provider_id", "date"]
    )

    op.create_table(
        "appointments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("provider_id", sa.Integer(), sa.ForeignKey("providers.id"), nullable=False),
        sa.Column("service_id", sa.Integer(), sa.ForeignKey("services.id"), nullable=False),
        sa.Column("client_name", sa.Text(), nullable=False),
        sa.Column("client_email", sa.Text()),
        sa.Column("client_phone", sa.Text()),
        sa.Column("date", sa.Text(), nullable=False),
        sa.Column("time", sa.Text(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("is_consultation", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "status",
            sa.Enum(*APPOINTMENT_STATUSES, name="appointment_status"),
            nullable=False,
            server_default=sa.text("'pending'"),
        ),
        sa.Column("notes", sa.Text()),
        sa.Column("cancel_reason", sa.Text()),
        sa.Column("requires_deposit", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("deposit_amount", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("deposit_paid", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("payment_intent_id", sa.Text()),
        sa.Column(
            "payment_status",
            sa.Enum(*PAYMENT_STATUSES, name="payment_status"),
            nullable=False,
            server_default=sa.text("'pending'"),
        ),
        sa.Column("payment_discrepancy", sa.Text()),
        sa.Column("final_payment_amount", sa.Float()),
        sa.Column("final_payment_method", sa.Text()),
        sa.Column("final_payment_received_at", sa.Text()),
        sa.Column("final_payment_received_by", sa.Text()),
        sa.Column("final_payment_received_by_name", sa.Text()),
        sa.Column("payment_notes", sa.Text()),
        sa.Column("created_by_user_id", sa.Text()),
        sa.Column("created_by_name", sa.Text()),
        sa.Column("created_by_role", sa.Text()),
        sa.Column("completed_by", sa.Text()),
        sa.Column("completed_by_name", sa.Text()),
        sa.Column("completed_by_role", sa.Text()),
        sa.Column("no_show_by", sa.Text()),
        sa.Column("no_show_by_name", sa.Text()),
        sa.Column("created_at", sa.Text(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.Text(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("cancelled_at", sa.Text()),
        sa.Column("completed_at", sa.Text()),
        sa.Column("no_show_at", sa.Text()),
    )
    op.create_index("ix_appointments_provider_date", "appointments", ["provider_id", "date"])
    op.create_index(
        "uq_appointments_active_start",
        "appointments",
        ["provider_id", "date", "time"],
        unique=True,
        sqlite_where=sa.text("status != 'cancelled'"),
        postgresql_where=sa.text("status != 'cancelled'"),
    )

    op.create_table(
        "appointment_line_items",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column(
            "appointment_id",
            sa.Integer(),
            sa.ForeignKey("appointments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("service_id", sa.Integer(), sa.ForeignKey("services.id", ondelete="SET NULL")),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("added_at", sa.Text(), nullable=False),
        sa.Column("added_by", sa.Text()),
    )
    op.create_index(
        "ix_appointment_line_items_appointment_id", "appointment_line_items", ["appointment_id"]
    )

    op.create_table(
        "appointment_modifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "appointment_id",
            sa.Integer(),
            sa.ForeignKey("appointments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.Column("timestamp", sa.Text(), nullable=False),
        sa.Column("actor_id", sa.Text(), nullable=False),
        sa.Column("actor_name", sa.Text(), nullable=False),
        sa.Column("actor_role", sa.Text(), nullable=False),
        sa.Column(
            "action",
            sa.Enum(*MODIFICATION_ACTIONS, name="modification_action"),
            nullable=False,
        ),
        sa.Column("field", sa.Text()),
        sa.Column("old_value", sa.Text()),
        sa.Column("new_value", sa.Text()),
        sa.Column("description", sa.Text(), nullable=False),
        sa.UniqueConstraint("appointment_id", "seq"),
    )
    op.create_index(
        "ix_appointment_modifications_appointment_id",
        "appointment_modifications",
        ["appointment_id"],
    )


def downgrade():
    op.drop_table("appointment_modifications")
    op.drop_table("appointment_line_items")
    op.drop_table("appointments")
    op.drop_table("blocked_intervals")
    op.drop_table("availability_rules")
    op.drop_table("provider_services")
    op.drop_table("services")
    op.drop_table("providers")
