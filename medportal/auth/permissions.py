# medportal/auth/permissions.py
"""
Role-based access control: role permissions and record ownership checks.
"""

import logging
from typing import Optional

from medportal.common.errors import Unauthorized
from medportal.common.utils.global_messages import GlobalMessages
from medportal.models.models import UserRole

logger = logging.getLogger(__name__)


ROLE_PERMISSIONS = {
    UserRole.ADMIN: {
        "create_users",
        "read_all_users",
        "update_users",
        "manage_user_activation",
        "manage_appointments",
    },
    UserRole.DOCTOR: {
        "read_patient_records",
        "update_patient_records",
        "manage_own_schedule",
        "view_own_appointments",
        "create_prescriptions",
        "update_appointment_status",
    },
    UserRole.PATIENT: {
        "read_own_records",
        "update_own_profile",
        "book_appointments",
        "cancel_own_appointments",
        "view_own_appointments",
        "access_ai_assistant",
    },
}

LOGIN_ROUTES = {
    UserRole.PATIENT: "/auth/patient",
    UserRole.DOCTOR: "/auth/doctor",
    UserRole.ADMIN: "/auth/admin",
}

ROLE_DISPLAY_NAMES = {
    UserRole.PATIENT: "Patient",
    UserRole.DOCTOR: "Doctor",
    UserRole.ADMIN: "Administrator",
}


def parse_role(value) -> Optional[UserRole]:
    """Stored roles are plain strings; anything unknown maps to None."""
    if isinstance(value, UserRole):
        return value
    try:
        return UserRole(str(value).strip().lower())
    except ValueError:
        return None


def get_login_route(role) -> str:
    return LOGIN_ROUTES.get(parse_role(role), "/")


def get_role_display_name(role) -> str:
    return ROLE_DISPLAY_NAMES.get(parse_role(role), "User")


def has_permission(role, permission: str) -> bool:
    return permission in ROLE_PERMISSIONS.get(parse_role(role), set())


def require_permission(ctx, permission: str) -> None:
    """Raise Unauthorized unless the session's role grants `permission`."""
    if not has_permission(ctx.role, permission):
        logger.warning("Denied %s to user %s (%s)", permission, ctx.user_id, ctx.role)
        raise Unauthorized(GlobalMessages.PERMISSION_DENIED.format(permission=permission))


def deny(ctx, action: str, record_id: Optional[str] = None) -> Unauthorized:
    """Log a refused mutation and build the error to raise."""
    logger.warning("Denied %s on %s to user %s (%s)", action, record_id, ctx.user_id, ctx.role)
    return Unauthorized()


def ensure_self_or_admin(ctx, user_id: str) -> None:
    if ctx.role != UserRole.ADMIN and ctx.user_id != user_id:
        raise deny(ctx, "user access", user_id)


def ensure_can_read_patient(ctx, patient_id: str) -> None:
    """Patients see their own records; doctors and admins see any patient's."""
    if ctx.role in (UserRole.DOCTOR, UserRole.ADMIN):
        return
    if ctx.user_id != patient_id:
        raise deny(ctx, "read patient records", patient_id)


def ensure_can_write_patient(ctx, patient_id: str) -> None:
    """Patients edit their own records; doctors edit any patient's."""
    if ctx.role == UserRole.DOCTOR:
        return
    if ctx.role == UserRole.PATIENT and ctx.user_id == patient_id:
        return
    raise deny(ctx, "update patient records", patient_id)
