"""Location service - location CRUD and user assignment with a single primary location."""

import logging
from uuid import UUID

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from companyhub.core.errors import (
    AlreadyAssignedError,
    InvariantViolationError,
    LocationHasUsersError,
    LocationNotFoundError,
    NotAssignedError,
    NotCompanyMemberError,
)
from companyhub.core.structured_logging import build_log_context
from companyhub.db.base import utcnow
from companyhub.db.models import Location, LocationAssignment, User
from companyhub.schemas.location import LocationCreate, LocationUpdate
from companyhub.services import membership_service


logger = logging.getLogger(__name__)


# =============================================================================
# Location CRUD
# =============================================================================


def get_location(db: Session, company_id: UUID, location_id: UUID) -> Location | None:
    """Get a location scoped to its company."""
    return (
        db.query(Location)
        .filter(
            Location.id == location_id,
            Location.company_id == company_id,
        )
        .first()
    )


def get_location_or_404(db: Session, company_id: UUID, location_id: UUID) -> Location:
    location = get_location(db, company_id, location_id)
    if not location:
        raise LocationNotFoundError("Location not found")
    return location


def list_locations(
    db: Session,
    company_id: UUID,
    active_only: bool = False,
) -> list[Location]:
    query = db.query(Location).filter(Location.company_id == company_id)
    if active_only:
        query = query.filter(Location.is_active.is_(True))
    return query.order_by(Location.name).all()


def create_location(db: Session, company_id: UUID, data: LocationCreate) -> Location:
    location = Location(company_id=company_id, **data.model_dump())
    db.add(location)
    db.flush()
    logger.info(
        "Created location %s in company %s",
        location.id,
        company_id,
        extra=build_log_context(company_id=company_id),
    )
    return location


def update_location(db: Session, location: Location, data: LocationUpdate) -> Location:
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(location, field, value)
    db.flush()
    return location


def delete_location(db: Session, location: Location) -> None:
    """
    Delete a location.

    Refused while any user is assigned; assignments are never cascaded
    away by a direct location delete.
    """
    assigned = count_assignments(db, location.id)
    if assigned > 0:
        raise LocationHasUsersError(
            "Cannot delete location with assigned users. Please reassign users first."
        )
    db.delete(location)
    db.flush()
    logger.info(
        "Deleted location %s",
        location.id,
        extra=build_log_context(company_id=location.company_id),
    )


# =============================================================================
# Assignments
# =============================================================================


def get_assignment(db: Session, user_id: UUID, location_id: UUID) -> LocationAssignment | None:
    return (
        db.query(LocationAssignment)
        .filter(
            LocationAssignment.user_id == user_id,
            LocationAssignment.location_id == location_id,
        )
        .first()
    )


def count_assignments(db: Session, location_id: UUID) -> int:
    return (
        db.query(LocationAssignment)
        .filter(LocationAssignment.location_id == location_id)
        .count()
    )


def list_assignments(db: Session, location_id: UUID) -> list[tuple[LocationAssignment, User]]:
    """Assignments of a location with their users, primary ones first."""
    return (
        db.query(LocationAssignment, User)
        .join(User, User.id == LocationAssignment.user_id)
        .filter(LocationAssignment.location_id == location_id)
        .order_by(LocationAssignment.is_primary.desc(), User.display_name)
        .all()
    )


def _lock_user_assignments(db: Session, user_id: UUID) -> None:
    """Row-lock every assignment of the user for the rest of the transaction."""
    (
        db.query(LocationAssignment.id)
        .filter(LocationAssignment.user_id == user_id)
        .with_for_update()
        .all()
    )


def _clear_primary(db: Session, user_id: UUID, keep_location_id: UUID | None = None) -> None:
    """Unset is_primary on the user's assignments (optionally sparing one location)."""
    stmt = update(LocationAssignment).where(
        LocationAssignment.user_id == user_id,
        LocationAssignment.is_primary.is_(True),
    )
    if keep_location_id is not None:
        stmt = stmt.where(LocationAssignment.location_id != keep_location_id)
    db.execute(stmt.values(is_primary=False))


def assign(
    db: Session,
    user_id: UUID,
    location: Location,
    is_primary: bool = False,
) -> LocationAssignment:
    """
    Assign a user to a location.

    The user must be an active member of the location's company. When
    is_primary is set, every other primary flag of the user is cleared in
    the same transaction before the insert.
    """
    if not membership_service.is_member(db, user_id, location.company_id):
        raise NotCompanyMemberError(
            "User does not belong to this company",
            errors={"user_ids": [f"{user_id} is not a member of this company"]},
        )

    if get_assignment(db, user_id, location.id):
        raise AlreadyAssignedError("User is already assigned to this location")

    if is_primary:
        _lock_user_assignments(db, user_id)
        _clear_primary(db, user_id)

    assignment = LocationAssignment(
        user_id=user_id,
        location_id=location.id,
        is_primary=is_primary,
        assigned_at=utcnow(),
    )
    try:
        db.add(assignment)
        db.flush()
    except IntegrityError:
        db.rollback()
        raise InvariantViolationError(
            "Assignment conflicts with an existing assignment or primary location"
        )

    logger.info(
        "Assigned user %s to location %s (primary=%s)",
        user_id,
        location.id,
        is_primary,
        extra=build_log_context(user_id=user_id, company_id=location.company_id),
    )
    return assignment


def unassign(db: Session, user_id: UUID, location: Location) -> None:
    """Detach a user from a location. A removed primary is not re-elected."""
    assignment = get_assignment(db, user_id, location.id)
    if not assignment:
        raise NotAssignedError("User is not assigned to this location")

    db.delete(assignment)
    db.flush()

    logger.info(
        "Unassigned user %s from location %s",
        user_id,
        location.id,
        extra=build_log_context(user_id=user_id, company_id=location.company_id),
    )


def set_primary(db: Session, user_id: UUID, location: Location) -> LocationAssignment:
    """
    Make this location the user's single primary location.

    Clear-then-set runs in one transaction with the user's rows locked;
    the partial unique index on (user_id) WHERE is_primary rejects any
    interleaving that would leave two primaries.
    """
    assignment = get_assignment(db, user_id, location.id)
    if not assignment:
        raise NotAssignedError("User is not assigned to this location")

    _lock_user_assignments(db, user_id)
    _clear_primary(db, user_id, keep_location_id=location.id)
    assignment.is_primary = True
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise InvariantViolationError("Another primary location was set concurrently")

    logger.info(
        "Set location %s as primary for user %s",
        location.id,
        user_id,
        extra=build_log_context(user_id=user_id, company_id=location.company_id),
    )
    return assignment


def get_primary(db: Session, user_id: UUID) -> Location | None:
    """The user's primary location across all companies, or None."""
    return (
        db.query(Location)
        .join(LocationAssignment, LocationAssignment.location_id == Location.id)
        .filter(
            LocationAssignment.user_id == user_id,
            LocationAssignment.is_primary.is_(True),
        )
        .first()
    )


# =============================================================================
# Statistics
# =============================================================================


def get_location_statistics(db: Session, company_id: UUID) -> dict:
    total = db.query(Location).filter(Location.company_id == company_id).count()
    active = (
        db.query(Location)
        .filter(Location.company_id == company_id, Location.is_active.is_(True))
        .count()
    )
    with_users = (
        db.query(func.count(func.distinct(LocationAssignment.location_id)))
        .join(Location, Location.id == LocationAssignment.location_id)
        .filter(Location.company_id == company_id)
        .scalar()
    ) or 0
    total_assigned = (
        db.query(func.count(LocationAssignment.id))
        .join(Location, Location.id == LocationAssignment.location_id)
        .filter(Location.company_id == company_id)
        .scalar()
    ) or 0

    return {
        "total_locations": total,
        "active_locations": active,
        "inactive_locations": total - active,
        "locations_with_users": with_users,
        "locations_without_users": total - with_users,
        "total_users_assigned": total_assigned,
        "average_users_per_location": round(total_assigned / total, 2) if total else 0,
    }
