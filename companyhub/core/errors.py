"""Domain errors raised by the service layer.

Each error carries the HTTP status the API renders it with; the mapping is
applied by a single exception handler registered in ``companyhub.main``.
"""


class CompanyHubError(Exception):
    """Base exception for service errors."""

    status_code: int = 400

    def __init__(self, message: str = "", errors: dict[str, list[str]] | None = None):
        super().__init__(message)
        self.message = message or self.__class__.__doc__ or ""
        self.errors = errors or {}


class UnauthorizedError(CompanyHubError):
    """Role policy denies the action."""

    status_code = 403


class NotFoundError(CompanyHubError):
    """Entity, membership, or assignment is absent."""

    status_code = 404


class AlreadyExistsError(CompanyHubError):
    """Duplicate membership or assignment."""

    status_code = 409


class InvariantViolationError(CompanyHubError):
    """Operation would break a uniqueness or state invariant."""

    status_code = 409


class ValidationFailedError(CompanyHubError):
    """Malformed input, with field-level detail."""

    status_code = 422


# =============================================================================
# Membership
# =============================================================================


class AlreadyMemberError(AlreadyExistsError):
    """User already has an active membership in the company."""

    pass


class NotAMemberError(NotFoundError):
    """User has no membership in the company."""

    pass


# =============================================================================
# Locations
# =============================================================================


class NotCompanyMemberError(ValidationFailedError):
    """User is not an active member of the location's company."""

    pass


class AlreadyAssignedError(AlreadyExistsError):
    """User is already assigned to the location."""

    pass


class NotAssignedError(NotFoundError):
    """User is not assigned to the location."""

    pass


class LocationHasUsersError(InvariantViolationError):
    """Location still has assigned users."""

    pass


# =============================================================================
# Lookups
# =============================================================================


class CompanyNotFoundError(NotFoundError):
    """Company not found."""

    pass


class UserNotFoundError(NotFoundError):
    """User not found."""

    pass


class LocationNotFoundError(NotFoundError):
    """Location not found."""

    pass


class NotificationNotFoundError(NotFoundError):
    """Notification not found."""

    pass


# =============================================================================
# Notifications
# =============================================================================


class InvalidStatusTransitionError(InvariantViolationError):
    """Notification status transition is not allowed."""

    pass
