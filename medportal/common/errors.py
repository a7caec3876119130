# medportal/common/errors.py
"""
Typed failures raised by the access layer.

Services raise these instead of returning None or HTTP responses; the FastAPI
app renders them through a single exception handler (see main.py).
"""

from typing import Optional

from fastapi import status

from medportal.common.utils.global_messages import GlobalMessages


class PortalError(Exception):
    """Base class for every failure the access layer reports."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Request failed."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthError(PortalError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = GlobalMessages.INVALID_CREDENTIALS


class RoleMismatch(PortalError):
    """Credentials were valid but the account belongs to another portal."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, actual_role: Optional[str], message: Optional[str] = None):
        from medportal.auth.permissions import get_role_display_name

        self.actual_role = actual_role
        super().__init__(
            message or GlobalMessages.ROLE_MISMATCH.format(role=get_role_display_name(actual_role))
        )


class DuplicateIdentity(PortalError):
    # The provider does not say which field collided, so neither do we.
    status_code = status.HTTP_409_CONFLICT
    default_message = GlobalMessages.ACCOUNT_ALREADY_EXISTS


class ValidationError(PortalError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Invalid data."

    def __init__(self, message: Optional[str] = None, field: Optional[str] = None):
        self.field = field
        if message is None and field is not None:
            message = GlobalMessages.REQUIRED_FIELD.format(field=field)
        super().__init__(message)


class NotFound(PortalError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Record not found."


class Unauthorized(PortalError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = GlobalMessages.UNAUTHORIZED


class InvalidTransition(PortalError):
    status_code = status.HTTP_409_CONFLICT
    default_message = GlobalMessages.APPOINTMENT_NOT_SCHEDULED

    def __init__(
        self,
        current: Optional[str] = None,
        target: Optional[str] = None,
        message: Optional[str] = None,
    ):
        self.current = current
        self.target = target
        if message is None and current is not None and target is not None:
            message = GlobalMessages.INVALID_TRANSITION.format(current=current, target=target)
        super().__init__(message)


class StoreError(PortalError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = GlobalMessages.STORE_UNAVAILABLE


class PartialWriteFailure(PortalError):
    """One copy of a dual-written record was saved and the other was not."""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = GlobalMessages.PARTIAL_WRITE

    def __init__(self, written: tuple, failed: tuple, message: Optional[str] = None):
        self.written = written
        self.failed = failed
        super().__init__(message)


class CompletionError(PortalError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = GlobalMessages.ASSISTANT_BAD_RESPONSE
