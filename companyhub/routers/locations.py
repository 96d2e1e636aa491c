"""
Locations Router - /companies/{company_id}/locations endpoints.

Any member can read; admins/managers manage locations and assignments;
only admins delete. Members may set their own primary location.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from companyhub.core.deps import (
    get_company_context,
    get_db,
    require_action_dep,
    require_csrf_header,
)
from companyhub.core.errors import NotAMemberError, NotCompanyMemberError
from companyhub.core.policies import CompanyAction, require_action
from companyhub.db.models import Location
from companyhub.schemas.auth import CompanyContext
from companyhub.schemas.location import (
    AssignUsersRequest,
    LocationAssigneeRead,
    LocationCreate,
    LocationDetail,
    LocationRead,
    LocationStatistics,
    LocationUpdate,
    SetPrimaryRequest,
    UnassignUsersRequest,
)
from companyhub.services import (
    location_service,
    membership_service,
    notification_service,
    user_service,
)


router = APIRouter(prefix="/companies/{company_id}/locations", tags=["locations"])


def _location_detail(db: Session, location: Location) -> LocationDetail:
    users = [
        LocationAssigneeRead(
            user_id=user.id,
            display_name=user.display_name,
            email=user.email,
            is_primary=assignment.is_primary,
            assigned_at=assignment.assigned_at,
        )
        for assignment, user in location_service.list_assignments(db, location.id)
    ]
    return LocationDetail(
        **LocationRead.model_validate(location).model_dump(),
        users=users,
    )


@router.get("", response_model=list[LocationRead])
def list_locations(
    active_only: bool = Query(False),
    context: CompanyContext = Depends(get_company_context),
    db: Session = Depends(get_db),
):
    return location_service.list_locations(db, context.company_id, active_only=active_only)


@router.get("/statistics", response_model=LocationStatistics)
def get_statistics(
    context: CompanyContext = Depends(get_company_context),
    db: Session = Depends(get_db),
):
    return location_service.get_location_statistics(db, context.company_id)


@router.post(
    "",
    response_model=LocationRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_location(
    data: LocationCreate,
    context: CompanyContext = Depends(require_action_dep(CompanyAction.MANAGE_LOCATIONS)),
    db: Session = Depends(get_db),
):
    location = location_service.create_location(db, context.company_id, data)
    db.commit()
    db.refresh(location)
    return location


@router.get("/{location_id}", response_model=LocationDetail)
def get_location(
    location_id: UUID,
    context: CompanyContext = Depends(get_company_context),
    db: Session = Depends(get_db),
):
    location = location_service.get_location_or_404(db, context.company_id, location_id)
    return _location_detail(db, location)


@router.patch(
    "/{location_id}",
    response_model=LocationRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_location(
    location_id: UUID,
    data: LocationUpdate,
    context: CompanyContext = Depends(require_action_dep(CompanyAction.MANAGE_LOCATIONS)),
    db: Session = Depends(get_db),
):
    location = location_service.get_location_or_404(db, context.company_id, location_id)
    location_service.update_location(db, location, data)
    db.commit()
    db.refresh(location)
    return location


@router.delete(
    "/{location_id}",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def delete_location(
    location_id: UUID,
    context: CompanyContext = Depends(require_action_dep(CompanyAction.DELETE_LOCATION)),
    db: Session = Depends(get_db),
):
    location = location_service.get_location_or_404(db, context.company_id, location_id)
    location_service.delete_location(db, location)
    db.commit()


@router.post(
    "/{location_id}/assignments",
    response_model=LocationDetail,
    dependencies=[Depends(require_csrf_header)],
)
def assign_users(
    location_id: UUID,
    data: AssignUsersRequest,
    context: CompanyContext = Depends(require_action_dep(CompanyAction.MANAGE_LOCATIONS)),
    db: Session = Depends(get_db),
):
    """Assign users (all must be company members), then notify each of them."""
    location = location_service.get_location_or_404(db, context.company_id, location_id)

    invalid = [
        str(user_id)
        for user_id in data.user_ids
        if not membership_service.is_member(db, user_id, context.company_id)
    ]
    if invalid:
        raise NotCompanyMemberError(
            "Some users do not belong to this company",
            errors={"user_ids": invalid},
        )

    users = [user_service.get_user_or_404(db, user_id) for user_id in data.user_ids]
    for user in users:
        location_service.assign(db, user.id, location, is_primary=data.set_primary)
    for user in users:
        notification_service.dispatch_location_assignment(db, user, location)

    db.commit()
    return _location_detail(db, location)


@router.delete(
    "/{location_id}/assignments",
    response_model=LocationDetail,
    dependencies=[Depends(require_csrf_header)],
)
def unassign_users(
    location_id: UUID,
    data: UnassignUsersRequest,
    context: CompanyContext = Depends(require_action_dep(CompanyAction.MANAGE_LOCATIONS)),
    db: Session = Depends(get_db),
):
    location = location_service.get_location_or_404(db, context.company_id, location_id)
    for user_id in data.user_ids:
        location_service.unassign(db, user_id, location)
    db.commit()
    return _location_detail(db, location)


@router.post(
    "/{location_id}/primary",
    response_model=LocationDetail,
    dependencies=[Depends(require_csrf_header)],
)
def set_primary_location(
    location_id: UUID,
    data: SetPrimaryRequest,
    context: CompanyContext = Depends(get_company_context),
    db: Session = Depends(get_db),
):
    """Members set their own primary location; managers may set anyone's."""
    location = location_service.get_location_or_404(db, context.company_id, location_id)

    target_user_id = data.user_id or context.user_id
    if target_user_id != context.user_id:
        require_action(context.role, CompanyAction.MANAGE_LOCATIONS)
        if not membership_service.is_member(db, target_user_id, context.company_id):
            raise NotAMemberError("User not found or not in company")

    location_service.set_primary(db, target_user_id, location)
    db.commit()
    return _location_detail(db, location)
