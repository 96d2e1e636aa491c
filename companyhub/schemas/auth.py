"""Authentication and request-context Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel

from companyhub.db.enums import Role


class TokenPayload(BaseModel):
    """Decoded JWT payload structure."""
    sub: UUID  # user_id
    token_version: int


class CompanyContext(BaseModel):
    """
    Acting user within one company.

    Built per request from the session cookie and the company in the path,
    and passed explicitly to every authorization check.
    """
    user_id: UUID
    company_id: UUID
    role: Role
    email: str
    display_name: str
