# medportal/modules/user/user_controller.py

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from medportal.auth.auth_controller import user_to_response
from medportal.auth.dependencies import get_current_session, get_identity_provider, get_store, require_permission
from medportal.auth.identity_provider import IdentityProvider
from medportal.auth.schemas import SessionContext
from medportal.common.database.document_store import DocumentStore
from medportal.models.models import UserRole
from medportal.modules.user import user_service, schemas

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=schemas.UserListResponse)
async def list_users(
    role: Optional[UserRole] = Query(None, description="Filter by role: patient, doctor, admin"),
    store: DocumentStore = Depends(get_store),
    ctx: SessionContext = Depends(get_current_session),
):
    """List users, optionally filtered by role. Patients may only list doctors."""
    users = await user_service.list_users_for(store, ctx, role)
    return schemas.UserListResponse(users=[user_to_response(u) for u in users], total=len(users))


@router.post("", response_model=schemas.UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: schemas.CreateUserRequest,
    role: UserRole = Query(UserRole.DOCTOR, description="Role of the new account"),
    store: DocumentStore = Depends(get_store),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
    ctx: SessionContext = Depends(require_permission("create_users")),
):
    """Create a doctor (default) or admin account. Admin only."""
    profile = payload.model_dump(by_alias=True, exclude={"email", "password"}, exclude_none=True)
    user = await user_service.create_user(
        store, identity_provider, role, payload.email, payload.password, profile, ctx=ctx
    )
    return user_to_response(user)


@router.get("/me", response_model=schemas.UserResponse)
async def get_my_profile(
    store: DocumentStore = Depends(get_store),
    ctx: SessionContext = Depends(get_current_session),
):
    """Retrieve the profile for the currently authenticated user."""
    return user_to_response(await user_service.get_user(store, ctx.user_id))


@router.get("/{user_id}", response_model=schemas.UserResponse)
async def get_user(
    user_id: str,
    store: DocumentStore = Depends(get_store),
    ctx: SessionContext = Depends(get_current_session),
):
    return user_to_response(await user_service.get_user_for(store, ctx, user_id))


@router.patch("/{user_id}", response_model=schemas.UserResponse)
async def update_user(
    user_id: str,
    payload: schemas.UpdateUserRequest,
    store: DocumentStore = Depends(get_store),
    ctx: SessionContext = Depends(get_current_session),
):
    """
    Update a user profile.

    Only the provided fields are updated; every other field is left as is.
    """
    fields = payload.model_dump(by_alias=True, exclude_unset=True, mode="json")
    user = await user_service.update_user(store, ctx, user_id, fields)
    return user_to_response(user)


@router.post("/{user_id}/deactivate", response_model=schemas.UserActionResponse)
async def deactivate_user(
    user_id: str,
    store: DocumentStore = Depends(get_store),
    ctx: SessionContext = Depends(get_current_session),
):
    user = await user_service.deactivate_user(store, ctx, user_id)
    return schemas.UserActionResponse(success=True, message="User deactivated", user=user_to_response(user))


@router.post("/{user_id}/activate", response_model=schemas.UserActionResponse)
async def activate_user(
    user_id: str,
    store: DocumentStore = Depends(get_store),
    ctx: SessionContext = Depends(get_current_session),
):
    user = await user_service.activate_user(store, ctx, user_id)
    return schemas.UserActionResponse(success=True, message="User activated", user=user_to_response(user))
