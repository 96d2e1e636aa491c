"""
Companies Router - membership management and permission introspection.

Role changes and membership removal are admin-only (manage_users).
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from companyhub.core.deps import (
    get_company_context,
    get_current_user,
    get_db,
    require_action_dep,
    require_csrf_header,
)
from companyhub.core.policies import CompanyAction, allowed_actions
from companyhub.db.enums import Role
from companyhub.db.models import Membership, User
from companyhub.schemas.auth import CompanyContext
from companyhub.schemas.membership import (
    CompanyMembershipRead,
    CompanyPermissionsRead,
    MemberCreate,
    MemberRead,
    MemberRoleUpdate,
)
from companyhub.services import membership_service, user_service


router = APIRouter(prefix="/companies", tags=["companies"])


def _member_read(membership: Membership, user: User) -> MemberRead:
    return MemberRead(
        user_id=user.id,
        email=user.email,
        display_name=user.display_name,
        role=Role(membership.role),
        is_active=membership.is_active,
        joined_at=membership.joined_at,
    )


@router.get("", response_model=list[CompanyMembershipRead])
def list_my_companies(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Companies the current user belongs to, with their role in each."""
    rows = membership_service.list_companies_for_user(db, user.id)
    return [
        CompanyMembershipRead(
            company_id=company.id,
            name=company.name,
            slug=company.slug,
            role=Role(membership.role),
            joined_at=membership.joined_at,
        )
        for company, membership in rows
    ]


@router.get("/{company_id}/me", response_model=CompanyPermissionsRead)
def get_my_permissions(context: CompanyContext = Depends(get_company_context)):
    """Role and allowed actions of the current user in this company."""
    return CompanyPermissionsRead(
        company_id=context.company_id,
        role=context.role,
        actions=allowed_actions(context.role),
    )


@router.get("/{company_id}/members", response_model=list[MemberRead])
def list_members(
    role: Role | None = Query(None),
    context: CompanyContext = Depends(get_company_context),
    db: Session = Depends(get_db),
):
    """Active members, optionally filtered by exact role."""
    if role is not None:
        users = membership_service.list_by_role(db, context.company_id, role)
        return [
            _member_read(membership_service.get_membership(db, u.id, context.company_id), u)
            for u in users
        ]
    memberships = membership_service.list_members(db, context.company_id)
    return [_member_read(m, m.user) for m in memberships]


@router.post(
    "/{company_id}/members",
    response_model=MemberRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def add_member(
    data: MemberCreate,
    context: CompanyContext = Depends(require_action_dep(CompanyAction.MANAGE_USERS)),
    db: Session = Depends(get_db),
):
    user = user_service.get_user_or_404(db, data.user_id)
    membership = membership_service.add_member(db, user.id, context.company_id, data.role)
    db.commit()
    db.refresh(membership)
    return _member_read(membership, user)


@router.patch(
    "/{company_id}/members/{user_id}",
    response_model=MemberRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_member_role(
    user_id: UUID,
    data: MemberRoleUpdate,
    context: CompanyContext = Depends(require_action_dep(CompanyAction.MANAGE_USERS)),
    db: Session = Depends(get_db),
):
    membership = membership_service.update_role(db, user_id, context.company_id, data.role)
    db.commit()
    db.refresh(membership)
    return _member_read(membership, membership.user)


@router.delete(
    "/{company_id}/members/{user_id}",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def remove_member(
    user_id: UUID,
    context: CompanyContext = Depends(require_action_dep(CompanyAction.MANAGE_USERS)),
    db: Session = Depends(get_db),
):
    membership_service.remove_member(db, user_id, context.company_id)
    db.commit()
