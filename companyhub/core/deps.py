"""FastAPI dependencies for authentication, authorization, and database access."""

from typing import Generator
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session

from companyhub.core.policies import CompanyAction, require_action
from companyhub.core.security import decode_session_token
from companyhub.db.session import SessionLocal
from companyhub.schemas.auth import CompanyContext, TokenPayload


# Cookie and header names
COOKIE_NAME = "companyhub_session"
CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Get authenticated user from session cookie.

    Validates:
    - Session cookie exists
    - JWT is valid and not expired
    - User exists and is active
    - Token version matches (for revocation support)

    Raises:
        HTTPException 401: Authentication failed
    """
    # Import here to avoid circular imports
    from companyhub.db.models import User

    token = request.cookies.get(COOKIE_NAME)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        payload = TokenPayload.model_validate(decode_session_token(token))
    except (jwt.InvalidTokenError, ValidationError):
        raise HTTPException(status_code=401, detail="Invalid session")

    user = db.query(User).filter(User.id == payload.sub).first()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    if not user.is_active:
        raise HTTPException(status_code=401, detail="Account disabled")

    # Token version check (revocation support)
    if user.token_version != payload.token_version:
        raise HTTPException(status_code=401, detail="Session revoked")

    return user


def get_company_context(
    company_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
) -> CompanyContext:
    """
    Get the acting user's context within the company in the path.

    This is the PRIMARY auth dependency for company-scoped endpoints.
    The returned CompanyContext is passed explicitly to policy checks.

    Raises:
        HTTPException 401: Not authenticated
        HTTPException 403: Not a member of the company
        CompanyNotFoundError: Company does not exist (rendered as 404)
    """
    from companyhub.services import company_service, membership_service

    user = get_current_user(request, db)

    company_service.get_company_or_404(db, company_id)

    role = membership_service.get_role(db, user.id, company_id)
    if role is None:
        raise HTTPException(status_code=403, detail="You are not a member of this company")

    return CompanyContext(
        user_id=user.id,
        company_id=company_id,
        role=role,
        email=user.email,
        display_name=user.display_name,
    )


def require_action_dep(action: CompanyAction):
    """
    Dependency factory for policy-based authorization.

    Usage:
        @router.post("/x", dependencies=[Depends(require_action_dep(CompanyAction.MANAGE_USERS))])
    """
    def dependency(
        company_id: UUID,
        request: Request,
        db: Session = Depends(get_db),
    ):
        context = get_company_context(company_id, request, db)
        require_action(context.role, action)
        return context
    return dependency


def require_csrf_header(request: Request) -> None:
    """
    Verify CSRF header on mutations.

    Apply to state-changing endpoints (POST, PUT, PATCH, DELETE).

    Raises:
        HTTPException 403: Missing or invalid CSRF header
    """
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise HTTPException(
            status_code=403,
            detail=f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'"
        )
