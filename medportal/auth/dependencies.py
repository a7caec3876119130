# medportal/auth/dependencies.py

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from medportal.auth import auth_service
from medportal.auth.identity_provider import IdentityProvider
from medportal.auth.permissions import has_permission
from medportal.auth.schemas import SessionContext
from medportal.common.database.database import get_db_session
from medportal.common.database.document_store import DocumentStore
from medportal.common.errors import AuthError
from medportal.common.utils.global_messages import GlobalMessages

bearer_scheme = HTTPBearer()


async def get_store(db: AsyncSession = Depends(get_db_session)) -> DocumentStore:
    return DocumentStore(db)


async def get_identity_provider(db: AsyncSession = Depends(get_db_session)) -> IdentityProvider:
    return IdentityProvider(db)


async def get_current_session(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    store: DocumentStore = Depends(get_store),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
) -> SessionContext:
    """
    Dependency to rebuild the caller's session from the JWT in the Authorization header.
    """
    try:
        return await auth_service.restore_session(store, identity_provider, credentials.credentials)
    except AuthError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


def require_permission(permission: str):
    """Dependency factory gating a route on a role permission."""

    async def checker(ctx: SessionContext = Depends(get_current_session)) -> SessionContext:
        if not has_permission(ctx.role, permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=GlobalMessages.PERMISSION_DENIED.format(permission=permission),
            )
        return ctx

    return checker
