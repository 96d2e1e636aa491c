"""Centralized RBAC policy for company-scoped actions.

Every action lists its eligible roles explicitly; there is no role
hierarchy, so granting manager an action never implies it for anyone else.
"""

from enum import Enum

from companyhub.core.errors import UnauthorizedError
from companyhub.db.enums import Role


class CompanyAction(str, Enum):
    """Actions gated by a member's role within a company."""

    CREATE_ANNOUNCEMENT = "create_announcement"
    EDIT_ANNOUNCEMENT = "edit_announcement"
    DELETE_ANNOUNCEMENT = "delete_announcement"
    MANAGE_USERS = "manage_users"
    VIEW_ANALYTICS = "view_analytics"
    MANAGE_COMPANY_SETTINGS = "manage_company_settings"
    CREATE_SURVEY = "create_survey"
    MANAGE_SURVEYS = "manage_surveys"
    VIEW_SURVEY_RESULTS = "view_survey_results"
    MANAGE_LOCATIONS = "manage_locations"  # create/update location, assign/unassign users
    DELETE_LOCATION = "delete_location"


_ADMIN_ONLY = frozenset({Role.ADMIN})
_ADMIN_OR_MANAGER = frozenset({Role.ADMIN, Role.MANAGER})


ROLE_POLICY: dict[CompanyAction, frozenset[Role]] = {
    CompanyAction.CREATE_ANNOUNCEMENT: _ADMIN_OR_MANAGER,
    CompanyAction.EDIT_ANNOUNCEMENT: _ADMIN_OR_MANAGER,
    CompanyAction.DELETE_ANNOUNCEMENT: _ADMIN_ONLY,
    CompanyAction.MANAGE_USERS: _ADMIN_ONLY,
    CompanyAction.VIEW_ANALYTICS: _ADMIN_OR_MANAGER,
    CompanyAction.MANAGE_COMPANY_SETTINGS: _ADMIN_ONLY,
    CompanyAction.CREATE_SURVEY: _ADMIN_OR_MANAGER,
    CompanyAction.MANAGE_SURVEYS: _ADMIN_OR_MANAGER,
    CompanyAction.VIEW_SURVEY_RESULTS: _ADMIN_OR_MANAGER,
    CompanyAction.MANAGE_LOCATIONS: _ADMIN_OR_MANAGER,
    CompanyAction.DELETE_LOCATION: _ADMIN_ONLY,
}


def _coerce_role(role: Role | str | None) -> Role | None:
    if role is None or isinstance(role, Role):
        return role
    return Role(role) if Role.has_value(role) else None


def _coerce_action(action: CompanyAction | str) -> CompanyAction | None:
    if isinstance(action, CompanyAction):
        return action
    try:
        return CompanyAction(action)
    except ValueError:
        return None


def can_perform(role: Role | str | None, action: CompanyAction | str) -> bool:
    """
    Decide whether a role may perform an action.

    Pure and total: a missing role (non-member), an unknown role, or an
    unknown action all deny.
    """
    resolved_role = _coerce_role(role)
    resolved_action = _coerce_action(action)
    if resolved_role is None or resolved_action is None:
        return False
    return resolved_role in ROLE_POLICY[resolved_action]


def allowed_actions(role: Role | str | None) -> list[CompanyAction]:
    """All actions the role may perform, in declaration order."""
    return [action for action in CompanyAction if can_perform(role, action)]


def require_action(role: Role | str | None, action: CompanyAction | str) -> None:
    """Raise UnauthorizedError unless the role may perform the action."""
    if not can_perform(role, action):
        label = action.value if isinstance(action, CompanyAction) else action
        raise UnauthorizedError(f"Insufficient permissions for '{label}'")
