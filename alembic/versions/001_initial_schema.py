"""Initial database schema.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-18

Creates all initial tables for KrushiLink:
- Users (farmers, drivers, admins)
- Equipment offerings
- Bookings and payment reminders
- Notifications
- Reviews
- Audit logs
"""

from typing import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all database tables."""

    # ==================== USERS ====================
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("phone", sa.String(20), unique=True, index=True),
        sa.Column("email", sa.String(255), unique=True, index=True),
        sa.Column("name", sa.String(150)),
        sa.Column("role", sa.String(20), index=True),
        sa.Column("village", sa.String(100)),
        sa.Column("district", sa.String(100)),
        sa.Column("state", sa.String(100)),
        sa.Column("language", sa.String(5), server_default="en"),
        sa.Column("profile_image", sa.Text),
        sa.Column("is_profile_complete", sa.Boolean, server_default=sa.false()),
        sa.Column("is_verified", sa.Boolean, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean, server_default=sa.true()),
        sa.Column("is_suspended", sa.Boolean, server_default=sa.false()),
        # Driver
        sa.Column("tractor_type", sa.String(100)),
        sa.Column("tractor_image", sa.Text),
        sa.Column("license_image", sa.Text),
        sa.Column("latitude", sa.Float),
        sa.Column("longitude", sa.Float),
        sa.Column("rating", sa.Numeric(3, 2), server_default="0"),
        sa.Column("total_ratings", sa.Integer, server_default="0"),
        # Farmer
        sa.Column("farm_size", sa.Numeric(10, 2)),
        sa.Column("farm_latitude", sa.Float),
        sa.Column("farm_longitude", sa.Float),
        sa.Column("preferred_payment_method", sa.String(10)),
        sa.Column("push_token", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_users_driver_location", "users", ["role", "latitude", "longitude"])

    # ==================== EQUIPMENT ====================
    op.create_table(
        "equipment",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("driver_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("price_per_acre", sa.Numeric(10, 2), nullable=False),
        sa.Column("price_per_hour", sa.Numeric(10, 2)),
        sa.Column("is_active", sa.Boolean, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ==================== BOOKINGS ====================
    op.create_table(
        "bookings",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("farmer_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("driver_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("equipment_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("equipment.id"), nullable=False),
        sa.Column("service_type", sa.String(100), nullable=False),
        sa.Column("latitude", sa.Float, nullable=False),
        sa.Column("longitude", sa.Float, nullable=False),
        sa.Column("address", sa.Text, nullable=False),
        sa.Column("notes", sa.Text),
        sa.Column("acreage", sa.Numeric(10, 2), nullable=False),
        sa.Column("price_per_acre", sa.Numeric(10, 2), nullable=False),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="requested", index=True),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column("payment_method", sa.String(10), nullable=False),
        sa.Column("payment_status", sa.String(10), nullable=False, server_default="pending", index=True),
        sa.Column("payment_due_date", sa.DateTime(timezone=True)),
        sa.Column("payment_reference", sa.String(100)),
        sa.Column("payment_date", sa.DateTime(timezone=True)),
        sa.Column("reminder_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_reminder_sent", sa.DateTime(timezone=True)),
        sa.Column("requested_time", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("scheduled_time", sa.DateTime(timezone=True)),
        sa.Column("completed_time", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("reminder_count >= 0", name="ck_bookings_reminder_count"),
        sa.CheckConstraint("version >= 1", name="ck_bookings_version"),
    )
    op.create_index(
        "ix_bookings_due_reminders", "bookings", ["status", "payment_status", "payment_due_date"]
    )

    op.create_table(
        "payment_reminders",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("booking_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("bookings.id", ondelete="CASCADE"), unique=True, nullable=False),
        sa.Column("farmer_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("driver_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(10), server_default="sent"),
        sa.Column("reminder_count", sa.Integer, server_default="0"),
        sa.Column("last_reminder_sent", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ==================== NOTIFICATIONS ====================
    op.create_table(
        "notifications",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("body", sa.Text, nullable=False),
        sa.Column("category", sa.String(30), nullable=False),
        sa.Column("related_id", postgresql.UUID(as_uuid=True)),
        sa.Column("is_read", sa.Boolean, server_default=sa.false()),
        sa.Column("read_at", sa.DateTime(timezone=True)),
        sa.Column("push_sent", sa.Boolean, server_default=sa.false()),
        sa.Column("email_sent", sa.Boolean, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
    )

    # ==================== REVIEWS ====================
    op.create_table(
        "reviews",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("booking_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("bookings.id"), nullable=False, index=True),
        sa.Column("from_user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("to_user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("rating", sa.Integer, nullable=False),
        sa.Column("comment", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("booking_id", "from_user_id", name="uq_reviews_booking_author"),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating"),
    )

    # ==================== ADMIN ====================
    op.create_table(
        "audit_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), index=True),
        sa.Column("action", sa.String(100), nullable=False, index=True),
        sa.Column("resource_type", sa.String(50), nullable=False, index=True),
        sa.Column("resource_id", postgresql.UUID(as_uuid=True), index=True),
        sa.Column("old_values", postgresql.JSONB),
        sa.Column("new_values", postgresql.JSONB),
        sa.Column("ip_address", sa.String(45)),
        sa.Column("user_agent", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
    )


def downgrade() -> None:
    """Drop all database tables in reverse order."""
    op.drop_table("audit_logs")
    op.drop_table("reviews")
    op.drop_table("notifications")
    op.drop_table("payment_reminders")
    op.drop_index("ix_bookings_due_reminders", table_name="bookings")
    op.drop_table("bookings")
    op.drop_table("equipment")
    op.drop_index("ix_users_driver_location", table_name="users")
    op.drop_table("users")
