# medportal/modules/user/schemas.py

from typing import Any, List, Optional
from pydantic import EmailStr

from medportal.common.schemas import PortalDocument
from medportal.models.models import UserRole


class UserProfileFields(PortalDocument):
    """Profile fields a caller may supply; role-specific ones are optional."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[str] = None
    # Doctor specific
    specialization: Optional[str] = None
    license_number: Optional[str] = None
    # Patient specific
    address: Optional[str] = None
    emergency_contact: Optional[str] = None


class StoredUser(PortalDocument):
    """
    A user record as read back from the tree. Profile values are not
    type-checked on write, so they are read back as whatever was stored.
    """
    id: str
    role: UserRole
    email: Any = None
    is_active: bool = True
    created_at: Any = None
    first_name: Any = None
    last_name: Any = None
    phone: Any = None
    date_of_birth: Any = None
    specialization: Any = None
    license_number: Any = None
    address: Any = None
    emergency_contact: Any = None


class User(StoredUser):
    # Legacy embedded medical history, see modules/history
    medical_history: Any = None

    @property
    def full_name(self) -> str:
        return " ".join(str(part) for part in (self.first_name, self.last_name) if part)


class UserResponse(StoredUser):
    pass


class UpdateUserRequest(UserProfileFields):
    """Merge-patch body: only the fields sent are written."""
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None


class CreateUserRequest(UserProfileFields):
    email: EmailStr
    password: str


class UserListResponse(PortalDocument):
    users: List[UserResponse]
    total: int


class UserActionResponse(PortalDocument):
    success: bool
    message: str
    user: Optional[UserResponse] = None
