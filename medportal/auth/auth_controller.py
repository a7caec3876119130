# medportal/auth/auth_controller.py

from fastapi import APIRouter, Depends, status

from medportal.auth import auth_service, schemas
from medportal.auth.dependencies import get_current_session, get_identity_provider, get_store
from medportal.auth.identity_provider import IdentityProvider
from medportal.auth.permissions import get_login_route, get_role_display_name
from medportal.common.database.document_store import DocumentStore
from medportal.modules.user import user_service
from medportal.modules.user.schemas import User, UserResponse

router = APIRouter(prefix="/auth", tags=["auth"])


def user_to_response(user: User) -> UserResponse:
    """Convert a stored User to the public response (no embedded history)."""
    return UserResponse.model_validate(user.model_dump(exclude={"medical_history"}))


@router.post("/signup", response_model=schemas.SignupResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    signup_data: schemas.SignupRequest,
    store: DocumentStore = Depends(get_store),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
):
    """
    Register a new patient account and sign it in.

    - **email**: User's email address
    - **password**: Password (minimum 6 characters)
    - remaining fields are the patient's profile
    """
    session = auth_service.RoleSession(store, identity_provider)
    profile = signup_data.model_dump(by_alias=True, exclude={"email", "password"}, exclude_none=True)
    context = await session.signup(signup_data.email, signup_data.password, profile)
    user = await user_service.get_user(store, context.user_id)

    return schemas.SignupResponse(
        access_token=auth_service.issue_token(context),
        user=user_to_response(user),
    )


@router.post("/login", response_model=schemas.LoginResponse)
async def login(
    credentials: schemas.LoginRequest,
    store: DocumentStore = Depends(get_store),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
):
    """
    Authenticate a user and return an access token.

    - **email**: User's email address
    - **password**: User's password
    - **expected_role**: the portal (patient, doctor, admin) being logged into
    """
    user, access_token = await auth_service.login_user(
        store,
        identity_provider,
        email=credentials.email,
        password=credentials.password,
        expected_role=credentials.expected_role,
    )

    return schemas.LoginResponse(
        access_token=access_token,
        role=user.role,
        user=user_to_response(user),
    )


@router.get("/me", response_model=schemas.SessionResponse)
async def me(ctx: schemas.SessionContext = Depends(get_current_session)):
    """Return the session the bearer token resolves to."""
    return schemas.SessionResponse(
        user_id=ctx.user_id,
        role=ctx.role,
        email=ctx.email,
        login_route=get_login_route(ctx.role),
        role_display_name=get_role_display_name(ctx.role),
    )
