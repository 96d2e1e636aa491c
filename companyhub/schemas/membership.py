"""Company membership Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from companyhub.core.policies import CompanyAction
from companyhub.db.enums import DEFAULT_MEMBER_ROLE, Role


class MemberCreate(BaseModel):
    """Request schema for adding a user to a company."""

    user_id: UUID
    role: Role = DEFAULT_MEMBER_ROLE


class MemberRoleUpdate(BaseModel):
    role: Role


class MemberRead(BaseModel):
    user_id: UUID
    email: str
    display_name: str
    role: Role
    is_active: bool
    joined_at: datetime


class CompanyMembershipRead(BaseModel):
    """A company as seen by one of its members."""

    company_id: UUID
    name: str
    slug: str
    role: Role
    joined_at: datetime


class CompanyPermissionsRead(BaseModel):
    company_id: UUID
    role: Role
    actions: list[CompanyAction]
