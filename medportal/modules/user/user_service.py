# medportal/modules/user/user_service.py
"""
User records under `users/{userId}`.

Users are never hard-deleted, only deactivated. Listing always fetches the
whole collection and filters by role in memory: the store cannot query.
"""

import logging
from typing import Any, Dict, List, Optional

from medportal.auth.identity_provider import IdentityProvider
from medportal.auth.permissions import deny, ensure_self_or_admin, parse_role, require_permission
from medportal.common.database.document_store import DocumentStore
from medportal.common.errors import NotFound, Unauthorized, ValidationError
from medportal.common.utils.global_functions import collection_to_list, load_document, now_iso
from medportal.common.utils.global_messages import GlobalMessages
from medportal.models.models import USERS, UserRole

from .schemas import User

logger = logging.getLogger(__name__)

# Only an admin may touch these through update_user
PROTECTED_FIELDS = {"id", "role", "isActive", "createdAt"}


def _user_path(user_id: str) -> str:
    if not user_id or "/" in user_id:
        raise ValidationError("Invalid user id.")
    return f"{USERS}/{user_id}"


async def create_user(
    store: DocumentStore,
    identity_provider: IdentityProvider,
    role: UserRole,
    email: str,
    password: str,
    profile: Optional[Dict[str, Any]] = None,
    ctx=None,
) -> User:
    """
    Provision credentials, then write the user record.

    Patients may self-register (no session needed); doctor and admin
    accounts are created by an admin. The two writes are not atomic: if the
    record write fails the credentials stay provisioned.
    """
    role = parse_role(role)
    if role is None:
        raise ValidationError("Unknown role.", field="role")
    if role != UserRole.PATIENT:
        if ctx is None:
            logger.warning("Anonymous attempt to create a %s account", role.value)
            raise Unauthorized()
        require_permission(ctx, "create_users")

    identity = await identity_provider.provision(email, password)

    record = {key: value for key, value in (profile or {}).items() if value is not None}
    for field in PROTECTED_FIELDS | {"email"}:
        record.pop(field, None)
    record.update({
        "role": role.value,
        "email": identity.email,
        "isActive": True,
        "createdAt": now_iso(),
    })
    await store.write_path(_user_path(identity.uid), record)

    logger.info("Created %s user %s", role.value, identity.uid)
    return User.model_validate({**record, "id": identity.uid})


async def create_doctor(store, identity_provider, ctx, email: str, password: str, profile=None) -> User:
    return await create_user(store, identity_provider, UserRole.DOCTOR, email, password, profile, ctx=ctx)


async def create_admin(store, identity_provider, ctx, email: str, password: str, profile=None) -> User:
    return await create_user(store, identity_provider, UserRole.ADMIN, email, password, profile, ctx=ctx)


async def get_user(store: DocumentStore, user_id: str) -> User:
    data = await store.read_path(_user_path(user_id))
    if not isinstance(data, dict) or "role" not in data:
        raise NotFound(GlobalMessages.USER_NOT_FOUND)
    return load_document(User, user_id, data)


async def get_user_for(store: DocumentStore, ctx, user_id: str) -> User:
    """Point read with the caller's visibility rules applied."""
    user = await get_user(store, user_id)
    if ctx.user_id == user_id or ctx.role in (UserRole.ADMIN, UserRole.DOCTOR):
        return user
    if ctx.role == UserRole.PATIENT and user.role == UserRole.DOCTOR:
        return user
    raise deny(ctx, "read user", user_id)


async def update_user(store: DocumentStore, ctx, user_id: str, fields: Dict[str, Any]) -> User:
    """
    Merge-patch the user record: only the named fields change, every other
    field on the record survives.
    """
    ensure_self_or_admin(ctx, user_id)
    if not ctx.is_admin and PROTECTED_FIELDS & set(fields):
        raise deny(ctx, "change protected user fields", user_id)
    # Profile values are stored as given; only the fields the portal relies on are checked
    if "role" in fields and parse_role(fields["role"]) is None:
        raise ValidationError("Unknown role.", field="role")
    if "isActive" in fields and not isinstance(fields["isActive"], bool):
        raise ValidationError("isActive must be true or false.", field="isActive")

    await get_user(store, user_id)
    fields = {key: (value.value if isinstance(value, UserRole) else value) for key, value in fields.items()}
    fields.pop("id", None)
    if fields:
        await store.merge_path(_user_path(user_id), fields)
    return await get_user(store, user_id)


async def list_users(store: DocumentStore, role: Optional[UserRole] = None) -> List[User]:
    """Fetch every user and keep those with `role` (all when None)."""
    wanted = parse_role(role) if role is not None else None
    if role is not None and wanted is None:
        return []

    def matches(data: Dict[str, Any]) -> bool:
        # Legacy medical-history writes can leave a bare document with no role
        stored = parse_role(data.get("role"))
        return stored is not None and (wanted is None or stored == wanted)

    return collection_to_list(await store.read_path(USERS), User, where=matches)


async def list_users_for(store: DocumentStore, ctx, role: Optional[UserRole] = None) -> List[User]:
    """Admins and doctors list anyone; patients may only list doctors."""
    if ctx.role == UserRole.PATIENT and parse_role(role) != UserRole.DOCTOR:
        raise deny(ctx, "list users")
    return await list_users(store, role)


async def _set_active(store: DocumentStore, ctx, user_id: str, active: bool) -> User:
    require_permission(ctx, "manage_user_activation")
    await get_user(store, user_id)
    # Existing sessions of the user are left alone
    await store.merge_path(_user_path(user_id), {"isActive": active})
    logger.info("User %s %s by %s", user_id, "activated" if active else "deactivated", ctx.user_id)
    return await get_user(store, user_id)


async def deactivate_user(store: DocumentStore, ctx, user_id: str) -> User:
    return await _set_active(store, ctx, user_id, False)


async def activate_user(store: DocumentStore, ctx, user_id: str) -> User:
    return await _set_active(store, ctx, user_id, True)
