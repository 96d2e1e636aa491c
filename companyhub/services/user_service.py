"""User service - account creation and deletion."""

import logging
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from companyhub.core.errors import AlreadyExistsError, UserNotFoundError
from companyhub.db.models import User


logger = logging.getLogger(__name__)


def get_user(db: Session, user_id: UUID) -> User | None:
    return db.query(User).filter(User.id == user_id).first()


def get_user_or_404(db: Session, user_id: UUID) -> User:
    user = get_user(db, user_id)
    if not user:
        raise UserNotFoundError("User not found")
    return user


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(func.lower(User.email) == email.lower().strip()).first()


def create_user(db: Session, email: str, display_name: str) -> User:
    email = email.lower().strip()
    if get_user_by_email(db, email):
        raise AlreadyExistsError(f"User with email {email} already exists")

    user = User(email=email, display_name=display_name.strip())
    try:
        db.add(user)
        db.flush()
    except IntegrityError:
        db.rollback()
        raise AlreadyExistsError(f"User with email {email} already exists")

    logger.info("Created user %s", user.id)
    return user


def delete_user(db: Session, user: User) -> None:
    """Delete an account; memberships, assignments, preferences, and notifications cascade."""
    user_id = user.id
    db.delete(user)
    db.flush()
    logger.info("Deleted user %s", user_id)
