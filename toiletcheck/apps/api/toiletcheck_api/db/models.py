"""SQLAlchemy ORM Models for ToiletCheck."""

import uuid
from datetime import date, datetime, timezone
from typing import Any, Optional

from sqlalchemy import (
    BIGINT,
    BOOLEAN,
    DATE,
    FLOAT,
    INTEGER,
    JSON,
    TEXT,
    TIMESTAMP,
    ForeignKey,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# BIGINT identity on Postgres; SQLite only autoincrements INTEGER PRIMARY KEY
BigIntPK = BIGINT().with_variant(INTEGER(), "sqlite")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _uuid() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class TimestampMixin:
    """created_at / updated_at columns."""

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )


# ============================================================================
# Facility hierarchy: Organization -> Building -> Location
# ============================================================================


class Organization(TimestampMixin, Base):
    """Tenant organization owning buildings and locations."""

    __tablename__ = "organizations"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(TEXT, nullable=False)
    short_code: Mapped[str] = mapped_column(TEXT, nullable=False)
    address: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    email: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    logo_url: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    type: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    is_active: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=True)
    created_by: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)

    # Billing linkage (written by the payment webhook)
    current_plan_id: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    subscription_id: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)

    __table_args__ = (
        Index("idx_organizations_short_code", "short_code"),
        Index("idx_organizations_created_by", "created_by"),
    )


class Building(TimestampMixin, Base):
    """Building within an organization."""

    __tablename__ = "buildings"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_uuid)
    organization_id: Mapped[str] = mapped_column(
        TEXT, ForeignKey("organizations.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(TEXT, nullable=False)
    short_code: Mapped[str] = mapped_column(TEXT, nullable=False)
    address: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    total_floors: Mapped[Optional[int]] = mapped_column(INTEGER, nullable=True)
    type: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    is_active: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=True)
    created_by: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)

    __table_args__ = (Index("idx_buildings_organization", "organization_id"),)


class Location(TimestampMixin, Base):
    """Inspectable location (a restroom), addressed by its QR code."""

    __tablename__ = "locations"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_uuid)
    organization_id: Mapped[Optional[str]] = mapped_column(
        TEXT, ForeignKey("organizations.id"), nullable=True
    )
    building_id: Mapped[Optional[str]] = mapped_column(
        TEXT, ForeignKey("buildings.id"), nullable=True
    )
    name: Mapped[str] = mapped_column(TEXT, nullable=False)
    code: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    qr_code: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True, unique=True)
    floor: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    section: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    area: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    coordinates: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    photo_url: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    type: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    is_active: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=True)
    created_by: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)

    building: Mapped[Optional["Building"]] = relationship(lazy="joined")
    organization: Mapped[Optional["Organization"]] = relationship()

    __table_args__ = (
        Index("idx_locations_building", "building_id"),
        Index("idx_locations_organization", "organization_id"),
    )


# ============================================================================
# Inspections
# ============================================================================


class InspectionTemplate(TimestampMixin, Base):
    """JSON-configured checklist definition."""

    __tablename__ = "inspection_templates"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(TEXT, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    fields: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    estimated_time: Mapped[Optional[int]] = mapped_column(INTEGER, nullable=True)
    is_default: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=True)
    created_by: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)


class InspectionRecord(TimestampMixin, Base):
    """Inspection submitted by one inspector for one location.

    `responses` is a free-form JSON blob stored exactly as submitted.
    """

    __tablename__ = "inspection_records"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(TEXT, ForeignKey("users.id"), nullable=False)
    location_id: Mapped[str] = mapped_column(
        TEXT, ForeignKey("locations.id"), nullable=False
    )
    organization_id: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    template_id: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)

    inspection_date: Mapped[date] = mapped_column(DATE, nullable=False)
    inspection_time: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    overall_status: Mapped[str] = mapped_column(TEXT, nullable=False, default="satisfactory")
    responses: Mapped[Any] = mapped_column(JSON, nullable=False)
    photo_urls: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    notes: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    duration_seconds: Mapped[Optional[int]] = mapped_column(INTEGER, nullable=True)
    submitted_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    # Supervisor verification
    verified_by: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    verified_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )
    verification_notes: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)

    location: Mapped["Location"] = relationship(lazy="joined")
    user: Mapped["User"] = relationship(lazy="joined")

    __table_args__ = (
        Index("idx_inspections_user_date", "user_id", "inspection_date"),
        Index("idx_inspections_location", "location_id"),
        Index("idx_inspections_date", "inspection_date"),
    )


# ============================================================================
# Users and roles
# ============================================================================


class User(TimestampMixin, Base):
    """Application user. The id matches the Supabase auth user id."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_uuid)
    email: Mapped[str] = mapped_column(TEXT, nullable=False, unique=True)
    full_name: Mapped[str] = mapped_column(TEXT, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    occupation_id: Mapped[Optional[str]] = mapped_column(
        TEXT, ForeignKey("user_occupations.id"), nullable=True
    )
    organization_id: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    profile_photo_url: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    is_active: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=True)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    occupation: Mapped[Optional["UserOccupation"]] = relationship()

    __table_args__ = (Index("idx_users_organization", "organization_id"),)


class UserOccupation(Base):
    """Job title lookup for user profiles."""

    __tablename__ = "user_occupations"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(TEXT, nullable=False, unique=True)
    display_name: Mapped[str] = mapped_column(TEXT, nullable=False)
    is_active: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=True)


class Role(Base):
    """Role carrying the integer level used for authorization."""

    __tablename__ = "roles"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(TEXT, nullable=False, unique=True)
    display_name: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    level: Mapped[int] = mapped_column(INTEGER, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=True)


class UserRole(Base):
    """Role assignment; one role per user."""

    __tablename__ = "user_roles"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(TEXT, ForeignKey("users.id"), nullable=False)
    role_id: Mapped[str] = mapped_column(TEXT, ForeignKey("roles.id"), nullable=False)
    assigned_by: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    assigned_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )

    role: Mapped["Role"] = relationship(lazy="joined")

    __table_args__ = (UniqueConstraint("user_id", name="uq_user_roles_user"),)


class AuditLog(Base):
    """Administrative action trail."""

    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    action: Mapped[str] = mapped_column(TEXT, nullable=False)
    resource_type: Mapped[str] = mapped_column(TEXT, nullable=False)
    resource_id: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    details: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    success: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=True)
    error_message: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (
        Index("idx_audit_logs_user", "user_id"),
        Index("idx_audit_logs_action", "action"),
        Index("idx_audit_logs_created_at", "created_at"),
    )


# ============================================================================
# Billing: plans, subscriptions, payments
# ============================================================================


class Plan(Base):
    """Subscription plan. Gateway amount is price / 100000 (see billing.subscriptions)."""

    __tablename__ = "plans"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True)  # free | starter | pro | enterprise
    name: Mapped[str] = mapped_column(TEXT, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    price_monthly: Mapped[int] = mapped_column(BIGINT, nullable=False, default=0)
    price_yearly: Mapped[int] = mapped_column(BIGINT, nullable=False, default=0)

    # -1 means unlimited
    max_locations: Mapped[int] = mapped_column(INTEGER, nullable=False, default=-1)
    max_users: Mapped[int] = mapped_column(INTEGER, nullable=False, default=-1)
    max_inspections_per_month: Mapped[int] = mapped_column(INTEGER, nullable=False, default=-1)

    features: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    is_active: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=True)
    sort_order: Mapped[int] = mapped_column(INTEGER, nullable=False, default=0)


class Subscription(TimestampMixin, Base):
    """Organization subscription to a plan."""

    __tablename__ = "subscriptions"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True)  # sub_<16>
    organization_id: Mapped[str] = mapped_column(TEXT, nullable=False)
    plan_id: Mapped[str] = mapped_column(TEXT, ForeignKey("plans.id"), nullable=False)
    status: Mapped[str] = mapped_column(TEXT, nullable=False, default="pending")
    # pending | active | expired | cancelled
    billing_cycle: Mapped[str] = mapped_column(TEXT, nullable=False, default="monthly")
    current_period_start: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )
    current_period_end: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )
    cancel_at_period_end: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=False)

    plan: Mapped["Plan"] = relationship(lazy="joined")

    __table_args__ = (Index("idx_subscriptions_organization", "organization_id"),)


class Payment(TimestampMixin, Base):
    """Payment attempt for a subscription, keyed by gateway order id."""

    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True)  # pay_<16>
    subscription_id: Mapped[str] = mapped_column(
        TEXT, ForeignKey("subscriptions.id"), nullable=False
    )
    organization_id: Mapped[str] = mapped_column(TEXT, nullable=False)
    order_id: Mapped[str] = mapped_column(TEXT, nullable=False, unique=True)
    amount: Mapped[float] = mapped_column(FLOAT, nullable=False)
    status: Mapped[str] = mapped_column(TEXT, nullable=False, default="pending")

    # Gateway-assigned fields (from notification callbacks)
    transaction_id: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    payment_type: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    transaction_time: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    settlement_time: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    midtrans_response: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)

    subscription: Mapped["Subscription"] = relationship(lazy="joined")

    __table_args__ = (
        Index("idx_payments_organization_created", "organization_id", "created_at"),
    )


class WebhookDedupEvent(Base):
    """Webhook dedup gate table.

    At most one business-processing per (provider, dedup_key) pair:
      INSERT ON CONFLICT (provider, dedup_key) DO NOTHING RETURNING id
        → row returned  : first/re-processing handler → continue
        → no row        : duplicate → 200 immediately (zero side effects)
    """

    __tablename__ = "webhook_dedup_events"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    provider: Mapped[str] = mapped_column(TEXT, nullable=False)
    dedup_key: Mapped[str] = mapped_column(TEXT, nullable=False)
    first_seen_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )
    last_seen_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )
    status: Mapped[str] = mapped_column(TEXT, nullable=False, default="processing")
    # processing | done | failed

    # SHA-256 hex of request body (never the raw payload)
    request_hash: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)

    __table_args__ = (
        UniqueConstraint("provider", "dedup_key", name="uq_webhook_dedup_events"),
        Index("idx_webhook_dedup_status", "status"),
    )
