# backend/alembic/versions/001_marketplace_core.py
"""Marketplace core schema

Revision ID: 001_marketplace_core
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision: str = "001_marketplace_core"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

LIVE_RESERVATION_STATUSES = "('pending', 'confirmed', 'active')"


def _ulid(name: str = "id", *args: object, **kwargs: object) -> sa.Column:
    return sa.Column(name, sa.String(length=26), *args, **kwargs)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
    )


def _updated_at() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True)


def upgrade() -> None:
    """Create users, cars, reservations, negotiations, hiring, reviews and notifications."""
    bind = op.get_bind()
    is_postgres = bind is not None and bind.dialect.name == "postgresql"

    print("Creating users table...")
    op.create_table(
        "users",
        _ulid(primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="customer"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("notification_settings", sa.JSON(), nullable=False, server_default="{}"),
        sa.Column("rating_average", sa.Numeric(3, 2), nullable=False, server_default="0"),
        sa.Column("rating_count", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
        _updated_at(),
        sa.CheckConstraint("role IN ('admin', 'owner', 'customer', 'driver')", name="ck_users_role"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])

    print("Creating cars and car_documents tables...")
    op.create_table(
        "cars",
        _ulid(primary_key=True),
        _ulid("owner_id", sa.ForeignKey("users.id"), nullable=False),
        sa.Column("make", sa.String(length=60), nullable=False),
        sa.Column("model", sa.String(length=60), nullable=False),
        sa.Column("year", sa.Integer(), nullable=True),
        sa.Column("license_plate", sa.String(length=20), nullable=False, unique=True),
        sa.Column("city", sa.String(length=80), nullable=True),
        sa.Column("timezone", sa.String(length=64), nullable=False, server_default="UTC"),
        sa.Column("for_rent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("for_sale", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("sale_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("hourly_rate", sa.Numeric(10, 2), nullable=True),
        sa.Column("daily_rate", sa.Numeric(10, 2), nullable=True),
        sa.Column(
            "availability_status", sa.String(length=20), nullable=False, server_default="available"
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("rating_average", sa.Numeric(3, 2), nullable=False, server_default="0"),
        sa.Column("rating_count", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
        _updated_at(),
        sa.CheckConstraint(
            "availability_status IN ('available', 'rented', 'maintenance', 'sold')",
            name="ck_cars_availability_status",
        ),
        sa.CheckConstraint(
            "hourly_rate IS NULL OR hourly_rate > 0", name="check_hourly_rate_positive"
        ),
        sa.CheckConstraint("daily_rate IS NULL OR daily_rate > 0", name="check_daily_rate_positive"),
    )
    op.create_index("ix_cars_owner_id", "cars", ["owner_id"])
    op.create_index("ix_cars_availability_status", "cars", ["availability_status"])

    op.create_table(
        "car_documents",
        _ulid(primary_key=True),
        _ulid("car_id", sa.ForeignKey("cars.id", ondelete="CASCADE"), nullable=False),
        sa.Column("doc_type", sa.String(length=20), nullable=False),
        sa.Column("document_number", sa.String(length=64), nullable=True),
        sa.Column("document_url", sa.Text(), nullable=True),
        sa.Column("issue_date", sa.Date(), nullable=True),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        sa.Column(
            "verification_status", sa.String(length=20), nullable=False, server_default="pending"
        ),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        _ulid("verified_by_id", sa.ForeignKey("users.id"), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("reminders_sent", sa.JSON(), nullable=False, server_default="[]"),
        _created_at(),
        sa.CheckConstraint(
            "doc_type IN ('rc', 'insurance', 'pollution', 'permit')",
            name="ck_car_documents_doc_type",
        ),
        sa.CheckConstraint(
            "verification_status IN ('pending', 'verified', 'rejected', 'expired')",
            name="ck_car_documents_verification_status",
        ),
    )
    op.create_index("ix_car_documents_car_id", "car_documents", ["car_id"])
    op.create_index("ix_car_documents_expiry_date", "car_documents", ["expiry_date"])

    print("Creating negotiation tables...")
    op.create_table(
        "rate_negotiations",
        _ulid(primary_key=True),
        _ulid("car_id", sa.ForeignKey("cars.id"), nullable=False),
        _ulid("customer_id", sa.ForeignKey("users.id"), nullable=False),
        _ulid("owner_id", sa.ForeignKey("users.id"), nullable=False),
        sa.Column("rate_type", sa.String(length=10), nullable=False),
        sa.Column("original_rate", sa.Numeric(10, 2), nullable=False),
        sa.Column("proposed_rate", sa.Numeric(10, 2), nullable=False),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        _ulid("last_offer_by_id", sa.ForeignKey("users.id"), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        _ulid("reservation_id", nullable=True, unique=True),
        _created_at(),
        _updated_at(),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN ('pending', 'countered', 'accepted', 'rejected', 'expired')",
            name="ck_rate_negotiations_status",
        ),
        sa.CheckConstraint(
            "rate_type IN ('hourly', 'daily')", name="ck_rate_negotiations_rate_type"
        ),
        sa.CheckConstraint("proposed_rate > 0", name="check_proposed_rate_positive"),
    )
    for column in ("car_id", "customer_id", "owner_id", "status"):
        op.create_index(f"ix_rate_negotiations_{column}", "rate_negotiations", [column])

    for table, extra in (
        (
            "negotiation_counter_offers",
            [
                sa.Column("round", sa.Integer(), nullable=False),
                _ulid("proposed_by_id", sa.ForeignKey("users.id"), nullable=False),
                sa.Column("rate", sa.Numeric(10, 2), nullable=False),
                sa.Column("message", sa.Text(), nullable=True),
            ],
        ),
        (
            "negotiation_messages",
            [
                _ulid("sender_id", sa.ForeignKey("users.id"), nullable=False),
                sa.Column("content", sa.Text(), nullable=False),
            ],
        ),
    ):
        op.create_table(
            table,
            _ulid(primary_key=True),
            _ulid(
                "negotiation_id",
                sa.ForeignKey("rate_negotiations.id", ondelete="CASCADE"),
                nullable=False,
            ),
            *extra,
            _created_at(),
        )
        op.create_index(f"ix_{table}_negotiation_id", table, ["negotiation_id"])

    print("Creating reservations tables...")
    op.create_table(
        "reservations",
        _ulid(primary_key=True),
        sa.Column("kind", sa.String(length=20), nullable=False, server_default="booking"),
        _ulid("car_id", sa.ForeignKey("cars.id"), nullable=False),
        _ulid("customer_id", sa.ForeignKey("users.id"), nullable=False),
        _ulid("owner_id", sa.ForeignKey("users.id"), nullable=False),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("rate_type", sa.String(length=10), nullable=True),
        sa.Column("rate", sa.Numeric(10, 2), nullable=True),
        sa.Column("total_hours", sa.Numeric(10, 2), nullable=True),
        sa.Column("total_days", sa.Integer(), nullable=True),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("original_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("is_negotiated", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ulid("negotiation_id", sa.ForeignKey("rate_negotiations.id"), nullable=True),
        sa.Column("time_slots", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column("additional_services", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column("deposit_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("deposit_paid", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("customer_note", sa.Text(), nullable=True),
        sa.Column("owner_note", sa.Text(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        _ulid("cancelled_by_id", sa.ForeignKey("users.id"), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("refund_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("rescheduled_from_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rescheduled_from_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reschedule_reason", sa.Text(), nullable=True),
        sa.Column("feedback", sa.JSON(), nullable=True),
        _created_at(),
        _updated_at(),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'active', 'completed', 'cancelled', 'rejected')",
            name="ck_reservations_status",
        ),
        sa.CheckConstraint("kind IN ('booking', 'test_drive')", name="ck_reservations_kind"),
        sa.CheckConstraint("start_at <= end_at", name="check_window_order"),
        sa.CheckConstraint("total_amount >= 0", name="check_amount_non_negative"),
    )
    for column in ("car_id", "customer_id", "owner_id", "status", "start_at", "end_at"):
        op.create_index(f"ix_reservations_{column}", "reservations", [column])
    op.create_index(
        "ix_reservations_car_window", "reservations", ["car_id", "start_at", "end_at"]
    )

    if is_postgres:
        # Closed windows: touching endpoints count as overlap, matching the service check
        op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
        op.execute(
            f"""
            ALTER TABLE reservations
              ADD CONSTRAINT reservations_no_overlap_per_car
              EXCLUDE USING gist (
                car_id WITH =,
                tstzrange(start_at, end_at, '[]') WITH &&
              )
              WHERE (status IN {LIVE_RESERVATION_STATUSES})
            """
        )

    op.create_table(
        "reservation_status_events",
        _ulid(primary_key=True),
        _ulid(
            "reservation_id",
            sa.ForeignKey("reservations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        _ulid("actor_id", sa.ForeignKey("users.id"), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_index(
        "ix_reservation_status_events_reservation_id",
        "reservation_status_events",
        ["reservation_id"],
    )

    print("Creating hiring tables...")
    op.create_table(
        "jobs",
        _ulid(primary_key=True),
        _ulid("owner_id", sa.ForeignKey("users.id"), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("city", sa.String(length=80), nullable=True),
        sa.Column("salary_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("salary_period", sa.String(length=20), nullable=True),
        sa.Column("car_model", sa.String(length=120), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="open"),
        _ulid("hired_driver_id", sa.ForeignKey("users.id"), nullable=True),
        _created_at(),
        _updated_at(),
        sa.CheckConstraint("status IN ('open', 'closed', 'filled')", name="ck_jobs_status"),
    )
    op.create_index("ix_jobs_owner_id", "jobs", ["owner_id"])
    op.create_index("ix_jobs_status", "jobs", ["status"])

    op.create_table(
        "job_applications",
        _ulid(primary_key=True),
        _ulid("job_id", sa.ForeignKey("jobs.id"), nullable=False),
        _ulid("driver_id", sa.ForeignKey("users.id"), nullable=False),
        sa.Column("cover_letter", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="pending"),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("interview_scheduled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("interview_duration_minutes", sa.Integer(), nullable=True),
        sa.Column("interview_location_type", sa.String(length=20), nullable=True),
        sa.Column("interview_location", sa.Text(), nullable=True),
        sa.Column("interview_notes", sa.Text(), nullable=True),
        sa.Column("interview_status", sa.String(length=20), nullable=True),
        sa.Column("interview_feedback_rating", sa.Integer(), nullable=True),
        sa.Column("interview_feedback_comments", sa.Text(), nullable=True),
        _ulid("interview_conducted_by_id", sa.ForeignKey("users.id"), nullable=True),
        sa.Column("interview_conducted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "contract_status", sa.String(length=20), nullable=False, server_default="not_created"
        ),
        sa.Column("contract_terms", sa.JSON(), nullable=True),
        sa.Column("contract_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("contract_expires_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _updated_at(),
        sa.UniqueConstraint("job_id", "driver_id", name="uq_job_applications_job_driver"),
        sa.CheckConstraint(
            "status IN ('pending', 'shortlisted', 'interview_scheduled', 'interview_completed', "
            "'accepted', 'rejected', 'withdrawn')",
            name="ck_job_applications_status",
        ),
        sa.CheckConstraint(
            "contract_status IN ('not_created', 'pending_driver', 'pending_owner', 'signed')",
            name="ck_job_applications_contract_status",
        ),
        sa.CheckConstraint(
            "interview_feedback_rating IS NULL OR "
            "(interview_feedback_rating >= 1 AND interview_feedback_rating <= 5)",
            name="check_interview_rating_range",
        ),
    )
    for column in ("job_id", "driver_id", "status"):
        op.create_index(f"ix_job_applications_{column}", "job_applications", [column])

    op.create_table(
        "contract_signatures",
        _ulid(primary_key=True),
        _ulid(
            "application_id",
            sa.ForeignKey("job_applications.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("party", sa.String(length=10), nullable=False),
        _ulid("signer_id", sa.ForeignKey("users.id"), nullable=False),
        sa.Column("signed", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "signed_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column("signature_url", sa.Text(), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.UniqueConstraint("application_id", "party", name="uq_contract_signatures_party"),
        sa.CheckConstraint("party IN ('driver', 'owner')", name="ck_contract_signatures_party"),
    )
    op.create_index(
        "ix_contract_signatures_application_id", "contract_signatures", ["application_id"]
    )

    op.create_table(
        "application_messages",
        _ulid(primary_key=True),
        _ulid(
            "application_id",
            sa.ForeignKey("job_applications.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _ulid("sender_id", sa.ForeignKey("users.id"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        _created_at(),
    )
    op.create_index(
        "ix_application_messages_application_id", "application_messages", ["application_id"]
    )

    print("Creating products and reviews tables...")
    op.create_table(
        "products",
        _ulid(primary_key=True),
        _ulid("vendor_id", sa.ForeignKey("users.id"), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("rating_average", sa.Numeric(3, 2), nullable=False, server_default="0"),
        sa.Column("rating_count", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
    )
    op.create_index("ix_products_vendor_id", "products", ["vendor_id"])

    op.create_table(
        "reviews",
        _ulid(primary_key=True),
        _ulid("author_id", sa.ForeignKey("users.id"), nullable=False),
        sa.Column("target_type", sa.String(length=20), nullable=False),
        _ulid("target_id", nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        _created_at(),
        sa.UniqueConstraint(
            "author_id", "target_type", "target_id", name="uq_reviews_author_target"
        ),
        sa.CheckConstraint("rating >= 1 AND rating <= 5", name="check_rating_range"),
        sa.CheckConstraint(
            "target_type IN ('driver', 'car', 'product')", name="ck_reviews_target_type"
        ),
    )
    op.create_index("ix_reviews_author_id", "reviews", ["author_id"])
    op.create_index("ix_reviews_target_id", "reviews", ["target_id"])

    print("Creating notifications and event_outbox tables...")
    op.create_table(
        "notifications",
        _ulid(primary_key=True),
        _ulid("recipient_id", sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.String(length=60), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("link", sa.String(length=500), nullable=True),
        _ulid("source_event_id", nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index("ix_notifications_recipient_id", "notifications", ["recipient_id"])
    op.create_index(
        "ix_notifications_recipient_unread", "notifications", ["recipient_id", "is_read"]
    )
    op.create_index(
        "uq_notifications_event_recipient",
        "notifications",
        ["source_event_id", "recipient_id"],
        unique=True,
    )

    payload_type = JSONB(astext_type=sa.Text()) if is_postgres else sa.JSON()
    op.create_table(
        "event_outbox",
        _ulid(primary_key=True),
        sa.Column("event_type", sa.String(length=100), nullable=False),
        sa.Column("aggregate_id", sa.String(length=64), nullable=False),
        sa.Column("idempotency_key", sa.String(length=255), nullable=False),
        sa.Column("payload", payload_type, nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="PENDING"),
        sa.Column("attempt_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("next_attempt_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_error", sa.Text(), nullable=True),
        _created_at(),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.UniqueConstraint("idempotency_key", name="uq_event_outbox_idempotency_key"),
    )
    for column in ("event_type", "aggregate_id", "status", "next_attempt_at"):
        op.create_index(f"ix_event_outbox_{column}", "event_outbox", [column])

    print("Marketplace core schema created")


def downgrade() -> None:
    """Drop every marketplace table in reverse dependency order."""
    bind = op.get_bind()
    if bind is not None and bind.dialect.name == "postgresql":
        op.execute(
            "ALTER TABLE reservations DROP CONSTRAINT IF EXISTS reservations_no_overlap_per_car"
        )
    for table in (
        "event_outbox",
        "notifications",
        "reviews",
        "products",
        "application_messages",
        "contract_signatures",
        "job_applications",
        "jobs",
        "reservation_status_events",
        "reservations",
        "negotiation_messages",
        "negotiation_counter_offers",
        "rate_negotiations",
        "car_documents",
        "cars",
        "users",
    ):
        op.drop_table(table)
