"""Company service - tenant creation and cascading deletion."""

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from companyhub.core.errors import AlreadyExistsError, CompanyNotFoundError, ValidationFailedError
from companyhub.db.models import Company


logger = logging.getLogger(__name__)


def normalize_slug(slug: str) -> str:
    """Lowercase, alphanumeric with hyphens/underscores."""
    slug = slug.lower().strip()
    if not slug or not slug.replace("-", "").replace("_", "").isalnum():
        raise ValidationFailedError(
            "Invalid slug",
            errors={"slug": ["Slug must be alphanumeric with optional hyphens/underscores"]},
        )
    return slug


def get_company(db: Session, company_id: UUID) -> Company | None:
    return db.query(Company).filter(Company.id == company_id).first()


def get_company_or_404(db: Session, company_id: UUID) -> Company:
    company = get_company(db, company_id)
    if not company:
        raise CompanyNotFoundError("Company not found")
    return company


def create_company(
    db: Session,
    name: str,
    slug: str,
    description: str | None = None,
    website: str | None = None,
    address: str | None = None,
    phone: str | None = None,
    email: str | None = None,
) -> Company:
    slug = normalize_slug(slug)
    if db.query(Company).filter(Company.slug == slug).first():
        raise AlreadyExistsError(f"Company with slug '{slug}' already exists")

    company = Company(
        name=name.strip(),
        slug=slug,
        description=description,
        website=website,
        address=address,
        phone=phone,
        email=email,
    )
    try:
        db.add(company)
        db.flush()
    except IntegrityError:
        db.rollback()
        raise AlreadyExistsError(f"Company with slug '{slug}' already exists")

    logger.info("Created company %s (%s)", company.id, slug)
    return company


def delete_company(db: Session, company: Company) -> None:
    """
    Delete a company and everything it owns.

    Memberships, locations (with their assignments), preferences,
    notifications, surveys, announcements, and goals go through the ORM
    cascade declared on Company, so the location deletion guard does not
    apply here.
    """
    company_id = company.id
    db.delete(company)
    db.flush()
    logger.info("Deleted company %s", company_id)
