"""SQLAlchemy ORM models for tenants, memberships, locations, and notifications.

Ownership and cascade rules are declared on the relationships rather than
left to storage-level ON DELETE behavior, so deleting a Company or a User
removes the same rows on every backend.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    JSON, ForeignKey, Index, Numeric, String, Text, UniqueConstraint, Uuid, text
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from companyhub.db.base import Base, utcnow
from companyhub.db.enums import DEFAULT_NOTIFICATION_STATUS


# =============================================================================
# Tenant & Identity
# =============================================================================

class Company(Base):
    """
    A tenant in the multi-tenant system.

    All domain entities belong to a company
    and must be scoped by company_id in all queries.
    """
    __tablename__ = "companies"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    website: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, onupdate=utcnow, nullable=False
    )

    # Relationships (company deletion cascades everything it owns)
    memberships: Mapped[list["Membership"]] = relationship(
        back_populates="company",
        cascade="all, delete-orphan"
    )
    locations: Mapped[list["Location"]] = relationship(
        back_populates="company",
        cascade="all, delete-orphan"
    )
    notification_preferences: Mapped[list["NotificationPreference"]] = relationship(
        back_populates="company",
        cascade="all, delete-orphan"
    )
    notifications: Mapped[list["Notification"]] = relationship(
        back_populates="company",
        cascade="all, delete-orphan"
    )
    surveys: Mapped[list["Survey"]] = relationship(
        back_populates="company",
        cascade="all, delete-orphan"
    )
    announcements: Mapped[list["Announcement"]] = relationship(
        back_populates="company",
        cascade="all, delete-orphan"
    )
    goals: Mapped[list["Goal"]] = relationship(
        back_populates="company",
        cascade="all, delete-orphan"
    )


class User(Base):
    """
    Application user.

    Identity fields are immutable after creation. Account deletion cascades
    memberships, location assignments, preferences, and notifications.
    """
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    token_version: Mapped[int] = mapped_column(default=1, nullable=False)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, onupdate=utcnow, nullable=False
    )

    # Relationships
    memberships: Mapped[list["Membership"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan"
    )
    location_assignments: Mapped[list["LocationAssignment"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan"
    )
    notification_preferences: Mapped[list["NotificationPreference"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan"
    )
    notifications: Mapped[list["Notification"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan"
    )


class Membership(Base):
    """
    Links a user to a company with a role.

    A user may belong to many companies, with a different role in each.
    Constraint: at most one ACTIVE membership per (user, company).
    """
    __tablename__ = "memberships"
    __table_args__ = (
        Index("idx_memberships_company_role", "company_id", "role"),
        Index(
            "uq_memberships_active_user_company",
            "user_id",
            "company_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False
    )
    company_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False
    )
    role: Mapped[str] = mapped_column(String(50), nullable=False)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    joined_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, onupdate=utcnow, nullable=False
    )

    # Relationships
    user: Mapped["User"] = relationship(back_populates="memberships")
    company: Mapped["Company"] = relationship(back_populates="memberships")


# =============================================================================
# Locations
# =============================================================================

class Location(Base):
    """
    A physical site belonging to exactly one company.

    Deleting a location directly is refused while users are assigned
    (see location_service.delete_location); company deletion removes
    locations together with their assignments.
    """
    __tablename__ = "locations"
    __table_args__ = (
        Index("idx_locations_company_active", "company_id", "is_active"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    company_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Address
    street_address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Contact
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)

    # Geo (optional)
    latitude: Mapped[Decimal | None] = mapped_column(Numeric(10, 8), nullable=True)
    longitude: Mapped[Decimal | None] = mapped_column(Numeric(11, 8), nullable=True)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, onupdate=utcnow, nullable=False
    )

    # Relationships
    company: Mapped["Company"] = relationship(back_populates="locations")
    assignments: Mapped[list["LocationAssignment"]] = relationship(
        back_populates="location",
        cascade="all, delete-orphan"
    )

    @property
    def full_address(self) -> str:
        parts = [
            self.street_address,
            self.city,
            self.state,
            self.postal_code,
            self.country,
        ]
        return ", ".join(p for p in parts if p)

    @property
    def coordinates(self) -> dict[str, float] | None:
        if self.latitude is not None and self.longitude is not None:
            return {"lat": float(self.latitude), "lng": float(self.longitude)}
        return None


class LocationAssignment(Base):
    """
    Assigns a user to a location.

    Constraints:
    - UNIQUE(user_id, location_id)
    - at most one is_primary row per user, across ALL companies
    """
    __tablename__ = "location_assignments"
    __table_args__ = (
        UniqueConstraint("user_id", "location_id", name="uq_location_assignments_user_location"),
        Index(
            "uq_location_assignments_user_primary",
            "user_id",
            unique=True,
            postgresql_where=text("is_primary"),
            sqlite_where=text("is_primary"),
        ),
        Index("idx_location_assignments_location", "location_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False
    )
    location_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("locations.id", ondelete="CASCADE"),
        nullable=False
    )
    is_primary: Mapped[bool] = mapped_column(default=False, nullable=False)
    assigned_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    # Relationships
    user: Mapped["User"] = relationship(back_populates="location_assignments")
    location: Mapped["Location"] = relationship(back_populates="assignments")


# =============================================================================
# Notifications
# =============================================================================

class NotificationPreference(Base):
    """
    Per-user, per-company, per-type channel toggles.

    Missing row = channel defaults (resolved in notification_preference_service).
    """
    __tablename__ = "notification_preferences"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "company_id", "notification_type",
            name="uq_notification_preferences_user_company_type",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False
    )
    company_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False
    )
    notification_type: Mapped[str] = mapped_column(String(50), nullable=False)

    email_enabled: Mapped[bool] = mapped_column(nullable=False)
    in_app_enabled: Mapped[bool] = mapped_column(nullable=False)
    push_enabled: Mapped[bool] = mapped_column(nullable=False)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, onupdate=utcnow, nullable=False
    )

    # Relationships
    user: Mapped["User"] = relationship(back_populates="notification_preferences")
    company: Mapped["Company"] = relationship(back_populates="notification_preferences")


class Notification(Base):
    """
    In-app notification for a user within a company.

    Status only moves through notification_service transitions.
    No dedupe: every dispatch creates a new row.
    """
    __tablename__ = "notifications"
    __table_args__ = (
        Index("idx_notif_user_status", "user_id", "status", "created_at"),
        Index("idx_notif_company_user", "company_id", "user_id", "created_at"),
        Index("idx_notif_retention", "status", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    company_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    # Notification type (enum)
    type: Mapped[str] = mapped_column(String(50), nullable=False)

    # Content
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    data: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)

    # Lifecycle
    status: Mapped[str] = mapped_column(
        String(20), default=DEFAULT_NOTIFICATION_STATUS.value, nullable=False
    )
    read_at: Mapped[datetime | None] = mapped_column(nullable=True)
    dismissed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    # Relationships
    user: Mapped["User"] = relationship(back_populates="notifications")
    company: Mapped["Company"] = relationship(back_populates="notifications")


# =============================================================================
# Collaborator entities (dispatch sources)
# =============================================================================

class Survey(Base):
    """Company survey; activating one triggers a survey_available dispatch."""
    __tablename__ = "surveys"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    company_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    company: Mapped["Company"] = relationship(back_populates="surveys")


class Announcement(Base):
    """Company announcement."""
    __tablename__ = "announcements"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    company_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    company: Mapped["Company"] = relationship(back_populates="announcements")


class Goal(Base):
    """Company goal."""
    __tablename__ = "goals"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    company_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    company: Mapped["Company"] = relationship(back_populates="goals")
