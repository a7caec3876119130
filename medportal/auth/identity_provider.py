# medportal/auth/identity_provider.py
"""
Email/password identity provider.

Holds the credentials table (shared by every client) and one client's
current identity, and tells subscribers whenever that identity changes.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional

from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from medportal.common.errors import AuthError, DuplicateIdentity, StoreError
from medportal.models.models import Credential

logger = logging.getLogger(__name__)

# Initialize the password context (bcrypt)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


@dataclass(frozen=True)
class Identity:
    uid: str
    email: str


IdentityListener = Callable[[Optional[Identity]], Awaitable[None]]


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify that the provided password matches the hashed password."""
    return pwd_context.verify(plain_password, hashed_password)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class IdentityProvider:
    """Authenticates credentials and tracks the current identity."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.current_identity: Optional[Identity] = None
        self._listeners: List[IdentityListener] = []

    def on_identity_change(self, callback: IdentityListener) -> Callable[[], None]:
        """Subscribe to identity changes. Returns an unsubscribe function."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    async def _set_identity(self, identity: Optional[Identity]) -> None:
        self.current_identity = identity
        for listener in list(self._listeners):
            await listener(identity)

    async def _find(self, email: str) -> Optional[Credential]:
        try:
            result = await self.session.execute(
                select(Credential).where(Credential.email == normalize_email(email))
            )
        except SQLAlchemyError as e:
            raise StoreError() from e
        return result.scalars().first()

    async def provision(self, email: str, password: str) -> Identity:
        """Register new credentials. Does not sign the new identity in."""
        if await self._find(email) is not None:
            raise DuplicateIdentity()

        credential = Credential(email=normalize_email(email), password_hash=hash_password(password))
        self.session.add(credential)
        try:
            await self.session.commit()
        except IntegrityError as e:
            # Lost a race with another signup for the same email
            await self.session.rollback()
            raise DuplicateIdentity() from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise StoreError() from e

        logger.info("Provisioned identity %s", credential.id)
        return Identity(uid=credential.id, email=credential.email)

    async def authenticate(self, email: str, password: str) -> Identity:
        """Check credentials and make them the current identity."""
        credential = await self._find(email)
        if credential is None or not verify_password(password, credential.password_hash):
            raise AuthError()

        credential.last_login = datetime.now(timezone.utc)
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise StoreError() from e

        identity = Identity(uid=credential.id, email=credential.email)
        await self._set_identity(identity)
        return identity

    async def deauthenticate(self) -> None:
        await self._set_identity(None)

    async def lookup(self, uid: str) -> Optional[Identity]:
        """Resolve a uid issued earlier (used when restoring a token session)."""
        try:
            credential = await self.session.get(Credential, uid)
        except SQLAlchemyError as e:
            raise StoreError() from e
        if credential is None:
            return None
        return Identity(uid=credential.id, email=credential.email)
