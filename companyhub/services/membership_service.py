"""Membership service - company membership lookups and role mutations."""

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from companyhub.core.errors import AlreadyMemberError, NotAMemberError, ValidationFailedError
from companyhub.core.structured_logging import build_log_context
from companyhub.db.base import utcnow
from companyhub.db.enums import Role
from companyhub.db.models import Company, Membership, User


logger = logging.getLogger(__name__)


def _validate_role(role: Role | str) -> Role:
    if isinstance(role, Role):
        return role
    if not Role.has_value(role):
        allowed = ", ".join(r.value for r in Role)
        raise ValidationFailedError(
            f"Unknown role '{role}'",
            errors={"role": [f"Must be one of: {allowed}"]},
        )
    return Role(role)


def get_membership(db: Session, user_id: UUID, company_id: UUID) -> Membership | None:
    """Get the active membership for a (user, company) pair (first match)."""
    return (
        db.query(Membership)
        .filter(
            Membership.user_id == user_id,
            Membership.company_id == company_id,
            Membership.is_active.is_(True),
        )
        .first()
    )


def get_role(db: Session, user_id: UUID, company_id: UUID) -> Role | None:
    """Role of the user's active membership in the company, or None."""
    membership = get_membership(db, user_id, company_id)
    if not membership or not Role.has_value(membership.role):
        return None
    return Role(membership.role)


def is_member(db: Session, user_id: UUID, company_id: UUID) -> bool:
    return get_membership(db, user_id, company_id) is not None


def add_member(
    db: Session,
    user_id: UUID,
    company_id: UUID,
    role: Role | str,
) -> Membership:
    """
    Add a user to a company.

    Raises AlreadyMemberError if an active membership exists. The partial
    unique index catches the concurrent check-then-insert race.
    """
    role = _validate_role(role)

    if is_member(db, user_id, company_id):
        raise AlreadyMemberError("User is already a member of this company")

    membership = Membership(
        user_id=user_id,
        company_id=company_id,
        role=role.value,
        is_active=True,
        joined_at=utcnow(),
    )
    try:
        db.add(membership)
        db.flush()
    except IntegrityError:
        db.rollback()
        raise AlreadyMemberError("User is already a member of this company")

    logger.info(
        "Added user %s to company %s as %s",
        user_id,
        company_id,
        role.value,
        extra=build_log_context(user_id=user_id, company_id=company_id),
    )
    return membership


def remove_member(db: Session, user_id: UUID, company_id: UUID) -> None:
    """Hard-delete the user's membership row(s) for the company."""
    deleted = (
        db.query(Membership)
        .filter(
            Membership.user_id == user_id,
            Membership.company_id == company_id,
        )
        .delete(synchronize_session="evaluate")
    )
    if not deleted:
        raise NotAMemberError("User is not a member of this company")

    logger.info(
        "Removed user %s from company %s",
        user_id,
        company_id,
        extra=build_log_context(user_id=user_id, company_id=company_id),
    )


def update_role(
    db: Session,
    user_id: UUID,
    company_id: UUID,
    role: Role | str,
) -> Membership:
    """Change a member's role in place (joined_at is preserved)."""
    role = _validate_role(role)

    membership = get_membership(db, user_id, company_id)
    if not membership:
        raise NotAMemberError("User is not a member of this company")

    old_role = membership.role
    membership.role = role.value
    db.flush()

    logger.info(
        "Changed role of user %s in company %s from %s to %s",
        user_id,
        company_id,
        old_role,
        role.value,
        extra=build_log_context(user_id=user_id, company_id=company_id),
    )
    return membership


def list_members(db: Session, company_id: UUID) -> list[Membership]:
    """Active memberships of a company, oldest first."""
    return (
        db.query(Membership)
        .filter(
            Membership.company_id == company_id,
            Membership.is_active.is_(True),
        )
        .order_by(Membership.joined_at)
        .all()
    )


def list_by_role(db: Session, company_id: UUID, role: Role | str) -> list[User]:
    """Active members of a company holding exactly this role."""
    role = _validate_role(role)
    return (
        db.query(User)
        .join(Membership, Membership.user_id == User.id)
        .filter(
            Membership.company_id == company_id,
            Membership.role == role.value,
            Membership.is_active.is_(True),
        )
        .order_by(User.display_name)
        .all()
    )


def list_companies_for_user(db: Session, user_id: UUID) -> list[tuple[Company, Membership]]:
    """Companies the user actively belongs to, with the membership row."""
    return (
        db.query(Company, Membership)
        .join(Membership, Membership.company_id == Company.id)
        .filter(
            Membership.user_id == user_id,
            Membership.is_active.is_(True),
        )
        .order_by(Company.name)
        .all()
    )
