# refurb/errors.py
"""Domain errors raised by the tracker core and rendered by the app's exception handler."""
from fastapi import status


class TrackerError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Request failed"

    def __init__(self, detail: str | None = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class NotFound(TrackerError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Not found"


class PermissionDenied(TrackerError):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "Forbidden"


class AccountNotApproved(PermissionDenied):
    detail = "Account is awaiting administrator approval"


class UserNotFound(TrackerError):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "User not found"


class InvalidCredentials(TrackerError):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Invalid credentials"


class SessionExpired(TrackerError):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Session is no longer valid, please log in again"


class ValidationError(TrackerError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    detail = "Invalid input"


class InvalidTransition(ValidationError):
    status_code = status.HTTP_409_CONFLICT
    detail = "Status change not allowed"


class EmailInUse(TrackerError):
    status_code = status.HTTP_409_CONFLICT
    detail = "Email address is already in use"


class SelfDeletion(TrackerError):
    detail = "You cannot delete your own account"


class RemoteFailure(TrackerError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    detail = "Storage operation failed"
