"""create_exchange_tables

Revision ID: 3f9c2a7b1d44
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9c2a7b1d44'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "properties",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("status", sa.String(50), nullable=False, server_default="active"),
        *_timestamps(),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("role", sa.String(50), nullable=False, server_default="owner"),
        sa.Column(
            "property_id",
            sa.UUID(),
            sa.ForeignKey("properties.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_property_id", "users", ["property_id"])

    op.create_table(
        "weeks",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("owner_id", sa.UUID(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "property_id",
            sa.UUID(),
            sa.ForeignKey("properties.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("accommodation_type", sa.String(100), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default="available"),
        sa.Column("valid_until", sa.Date(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("end_date > start_date", name="ck_weeks_dates"),
    )
    op.create_index("ix_weeks_owner_id", "weeks", ["owner_id"])
    op.create_index("ix_weeks_property_id", "weeks", ["property_id"])
    op.create_index("ix_weeks_status", "weeks", ["status"])
    op.create_index("ix_weeks_property_dates", "weeks", ["property_id", "start_date", "end_date"])

    op.create_table(
        "night_credits",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("owner_id", sa.UUID(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "original_week_id",
            sa.UUID(),
            sa.ForeignKey("weeks.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("total_nights", sa.Integer(), nullable=False),
        sa.Column("remaining_nights", sa.Integer(), nullable=False),
        sa.Column("expiry_date", sa.DateTime(), nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default="active"),
        *_timestamps(),
        sa.CheckConstraint(
            "remaining_nights >= 0 AND remaining_nights <= total_nights",
            name="ck_night_credits_balance",
        ),
    )
    op.create_index("ix_night_credits_owner_id", "night_credits", ["owner_id"])
    op.create_index("ix_night_credits_status", "night_credits", ["status"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column(
            "property_id",
            sa.UUID(),
            sa.ForeignKey("properties.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("owner_id", sa.UUID(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("room_type", sa.String(100), nullable=True),
        sa.Column("check_in", sa.Date(), nullable=False),
        sa.Column("check_out", sa.Date(), nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default="pending"),
        sa.Column("origin", sa.String(50), nullable=False, server_default="marketplace"),
        sa.Column("guest_token", sa.String(128), nullable=True),
        sa.Column("pms_booking_id", sa.String(255), nullable=True),
        sa.Column("pms_provider", sa.String(50), nullable=True),
        sa.Column("payment_reference", sa.String(255), nullable=True),
        sa.Column("idempotency_key", sa.String(255), nullable=True),
        sa.Column(
            "night_credit_id",
            sa.UUID(),
            sa.ForeignKey("night_credits.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
        sa.CheckConstraint("check_out > check_in", name="ck_bookings_dates"),
        # Final arbiter for concurrent redemptions carrying the same key
        sa.UniqueConstraint("idempotency_key", name="bookings_idempotency_key_key"),
    )
    op.create_index("ix_bookings_property_id", "bookings", ["property_id"])
    op.create_index("ix_bookings_owner_id", "bookings", ["owner_id"])
    op.create_index("ix_bookings_status", "bookings", ["status"])
    op.create_index("ix_bookings_night_credit_id", "bookings", ["night_credit_id"])
    op.create_index("ix_bookings_property_dates", "bookings", ["property_id", "check_in", "check_out"])

    op.create_table(
        "swap_requests",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("requester_id", sa.UUID(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "property_id",
            sa.UUID(),
            sa.ForeignKey("properties.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("requester_source_type", sa.String(50), nullable=False),
        sa.Column("requester_source_id", sa.UUID(), nullable=False),
        sa.Column("responder_source_type", sa.String(50), nullable=True),
        sa.Column("responder_source_id", sa.UUID(), nullable=True),
        sa.Column("responder_id", sa.UUID(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("accommodation_type", sa.String(100), nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default="pending"),
        sa.Column("staff_approval_status", sa.String(50), nullable=False, server_default="pending_review"),
        sa.Column("responder_acceptance", sa.String(50), nullable=False, server_default="pending"),
        sa.Column("payment_status", sa.String(50), nullable=False, server_default="pending"),
        sa.Column("swap_fee", sa.Numeric(10, 2), nullable=True),
        sa.Column("payment_intent_id", sa.String(255), nullable=True),
        sa.Column("paid_at", sa.DateTime(), nullable=True),
        sa.Column(
            "reviewed_by_staff_id",
            sa.UUID(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("staff_review_date", sa.DateTime(), nullable=True),
        sa.Column("staff_notes", sa.Text(), nullable=True),
        sa.Column("responder_acceptance_date", sa.DateTime(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_swap_requests_requester_id", "swap_requests", ["requester_id"])
    op.create_index("ix_swap_requests_property_id", "swap_requests", ["property_id"])
    op.create_index("ix_swap_requests_requester_source_id", "swap_requests", ["requester_source_id"])
    op.create_index("ix_swap_requests_responder_source_id", "swap_requests", ["responder_source_id"])
    op.create_index("ix_swap_requests_responder_id", "swap_requests", ["responder_id"])
    op.create_index("ix_swap_requests_status", "swap_requests", ["status"])
    op.create_index("ix_swap_requests_payment_intent_id", "swap_requests", ["payment_intent_id"])

    op.create_table(
        "night_credit_requests",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("owner_id", sa.UUID(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "credit_id",
            sa.UUID(),
            sa.ForeignKey("night_credits.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "property_id",
            sa.UUID(),
            sa.ForeignKey("properties.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("check_in", sa.Date(), nullable=False),
        sa.Column("check_out", sa.Date(), nullable=False),
        sa.Column("nights_requested", sa.Integer(), nullable=False),
        sa.Column("room_type", sa.String(100), nullable=True),
        sa.Column("status", sa.String(50), nullable=False, server_default="pending"),
        sa.Column("additional_nights", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("additional_price", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("additional_commission", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("payment_intent_id", sa.String(255), nullable=True),
        sa.Column("payment_status", sa.String(50), nullable=False, server_default="not_required"),
        sa.Column("booking_id", sa.UUID(), sa.ForeignKey("bookings.id", ondelete="SET NULL"), nullable=True),
        sa.Column(
            "reviewed_by_staff_id",
            sa.UUID(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("review_date", sa.DateTime(), nullable=True),
        sa.Column("staff_notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_night_credit_requests_owner_id", "night_credit_requests", ["owner_id"])
    op.create_index("ix_night_credit_requests_credit_id", "night_credit_requests", ["credit_id"])
    op.create_index("ix_night_credit_requests_property_id", "night_credit_requests", ["property_id"])
    op.create_index("ix_night_credit_requests_status", "night_credit_requests", ["status"])
    op.create_index(
        "ix_night_credit_requests_payment_intent_id", "night_credit_requests", ["payment_intent_id"]
    )


def downgrade() -> None:
    op.drop_table("night_credit_requests")
    op.drop_table("swap_requests")
    op.drop_table("bookings")
    op.drop_table("night_credits")
    op.drop_table("weeks")
    op.drop_table("users")
    op.drop_table("properties")
