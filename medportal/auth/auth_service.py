# medportal/auth/auth_service.py

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional

import jwt
from jwt.exceptions import DecodeError, ExpiredSignatureError, InvalidTokenError

from medportal.auth.identity_provider import Identity, IdentityProvider
from medportal.auth.permissions import parse_role
from medportal.auth.schemas import SessionContext
from medportal.common.config import settings
from medportal.common.database.document_store import DocumentStore
from medportal.common.errors import AuthError, NotFound, RoleMismatch
from medportal.common.utils.global_messages import GlobalMessages
from medportal.models.models import USERS, UserRole
from medportal.modules.user import user_service
from medportal.modules.user.schemas import User

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


async def get_user_role(store: DocumentStore, uid: str) -> Optional[UserRole]:
    """Stored role of `uid`, or None when there is no user record."""
    return parse_role(await store.read_path(f"{USERS}/{uid}/role"))


class RoleSession:
    """
    Binds the provider's current identity to the role stored for it.

    `current_session()` only ever reports a settled state: while a login or
    a role lookup is in flight it waits, so callers never observe an identity
    whose role is not known yet, nor a session for the wrong portal.
    """

    def __init__(self, store: DocumentStore, identity_provider: IdentityProvider):
        self.store = store
        self.identity_provider = identity_provider
        self.state = SessionState.ANONYMOUS
        self._context: Optional[SessionContext] = None
        self._settled = asyncio.Event()
        self._settled.set()
        self._login_in_progress = False
        self._unsubscribe = None

    async def start(self) -> None:
        """Follow the provider's identity changes from now on."""
        if self._unsubscribe is None:
            self._unsubscribe = self.identity_provider.on_identity_change(self._on_identity_change)
        await self._on_identity_change(self.identity_provider.current_identity)

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def get_user_role(self, uid: str) -> Optional[UserRole]:
        return await get_user_role(self.store, uid)

    async def _on_identity_change(self, identity: Optional[Identity]) -> None:
        self._settled.clear()
        try:
            await self._resolve(identity)
        finally:
            if not self._login_in_progress:
                self._settled.set()

    async def _resolve(self, identity: Optional[Identity]) -> None:
        if identity is None:
            self._clear()
            return
        self.state = SessionState.AUTHENTICATING
        role = await self.get_user_role(identity.uid)
        if role is None:
            self._clear()
            return
        self._context = SessionContext(user_id=identity.uid, role=role, email=identity.email)
        self.state = SessionState.AUTHENTICATED

    def _clear(self) -> None:
        self._context = None
        self.state = SessionState.ANONYMOUS

    async def current_session(self) -> Optional[SessionContext]:
        """The settled session, or None when nobody is logged in."""
        await self._settled.wait()
        return self._context

    async def login(
        self,
        email: str,
        password: str,
        expected_role: Optional[UserRole] = None,
    ) -> SessionContext:
        """
        Authenticate and resolve the role.

        When `expected_role` is given and the stored role differs, the
        identity is signed out again before RoleMismatch is raised.
        """
        expected = parse_role(expected_role) if expected_role is not None else None
        self._login_in_progress = True
        self._settled.clear()
        self.state = SessionState.AUTHENTICATING
        try:
            identity = await self.identity_provider.authenticate(email, password)
            if self._unsubscribe is None:
                await self._resolve(identity)

            context = self._context
            if context is None:
                if expected is not None:
                    raise RoleMismatch(None)
                raise NotFound(GlobalMessages.NO_PROFILE)
            if expected is not None and context.role != expected:
                logger.warning(
                    "Role mismatch for %s: expected %s, stored %s",
                    identity.uid, expected.value, context.role.value,
                )
                raise RoleMismatch(context.role.value)

            logger.info("User %s logged in as %s", identity.uid, context.role.value)
            return context
        except (Exception, asyncio.CancelledError):
            # Never leave an authenticated session behind a failed login
            if self.identity_provider.current_identity is not None:
                await self.identity_provider.deauthenticate()
            self._clear()
            raise
        finally:
            self._login_in_progress = False
            self._settled.set()

    async def logout(self) -> None:
        await self.identity_provider.deauthenticate()
        self._clear()

    async def signup(self, email: str, password: str, profile: Optional[Dict[str, Any]] = None) -> SessionContext:
        """Patient self-registration, signed in straight away."""
        await user_service.create_user(
            self.store, self.identity_provider, UserRole.PATIENT, email, password, profile
        )
        return await self.login(email, password, UserRole.PATIENT)


# ============================================================================
# TOKENS
# ============================================================================

def create_access_token(data: dict, expires_delta: timedelta = None) -> str:
    """Create a JWT token including an expiration date."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta if expires_delta else timedelta(minutes=15))
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return encoded_jwt


def issue_token(context: SessionContext) -> str:
    return create_access_token(
        data={"sub": context.user_id, "role": context.role.value},
        expires_delta=timedelta(minutes=settings.JWT_EXPIRATION_MINUTES),
    )


def decode_token(token: str) -> Dict[str, Any]:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except (DecodeError, ExpiredSignatureError, InvalidTokenError) as e:
        raise AuthError(GlobalMessages.TOKEN_INVALID) from e
    if not payload.get("sub"):
        raise AuthError(GlobalMessages.TOKEN_INVALID)
    return payload


async def restore_session(
    store: DocumentStore,
    identity_provider: IdentityProvider,
    token: str,
) -> SessionContext:
    """
    Rebuild the session for a token. The role is looked up again rather than
    trusted from the token, so a changed role takes effect immediately.
    """
    payload = decode_token(token)
    identity = await identity_provider.lookup(payload["sub"])
    if identity is None:
        raise AuthError(GlobalMessages.TOKEN_INVALID)
    role = await get_user_role(store, identity.uid)
    if role is None:
        raise AuthError(GlobalMessages.TOKEN_INVALID)
    return SessionContext(user_id=identity.uid, role=role, email=identity.email)


async def login_user(
    store: DocumentStore,
    identity_provider: IdentityProvider,
    email: str,
    password: str,
    expected_role: Optional[UserRole] = None,
) -> tuple:
    """Log in through a fresh RoleSession and return (user, token)."""
    session = RoleSession(store, identity_provider)
    context = await session.login(email, password, expected_role)
    user: User = await user_service.get_user(store, context.user_id)
    return user, issue_token(context)
