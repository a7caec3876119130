# medportal/auth/schemas.py

from typing import Annotated, Optional
from pydantic import BaseModel, EmailStr, Field

from medportal.common.utils.global_messages import GlobalMessages
from medportal.models.models import UserRole
from medportal.modules.user.schemas import UserProfileFields, UserResponse


class SessionContext(BaseModel):
    """Who is calling and in which role. Passed explicitly to every service."""
    user_id: str
    role: UserRole
    email: Optional[str] = None

    class Config:
        frozen = True

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class LoginRequest(BaseModel):
    email: EmailStr
    password: str
    expected_role: Optional[UserRole] = Field(
        None, description="Portal being logged into; the stored role must match"
    )


class SignupRequest(UserProfileFields):
    email: EmailStr
    password: Annotated[str, Field(min_length=6)]


class LoginResponse(BaseModel):
    message: str = GlobalMessages.LOGIN_SUCCESS
    access_token: str
    token_type: str = "bearer"
    role: UserRole
    user: UserResponse


class SignupResponse(BaseModel):
    message: str = GlobalMessages.ACCOUNT_CREATED
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class SessionResponse(BaseModel):
    user_id: str
    role: UserRole
    email: Optional[str] = None
    login_route: str
    role_display_name: str
