"""
Unit tests for the email/password identity provider.
"""

import pytest

from medportal.auth.identity_provider import hash_password, verify_password
from medportal.common.errors import AuthError, DuplicateIdentity


# ── Tests: password hashing ──────────────────────────────────────────

def test_hash_and_verify_password():
    hashed = hash_password("hunter22")
    assert hashed != "hunter22"
    assert verify_password("hunter22", hashed)
    assert not verify_password("hunter23", hashed)


# ── Tests: provision ─────────────────────────────────────────────────

async def test_provision_returns_identity_without_signing_in(identity_provider):
    identity = await identity_provider.provision("Ada@Example.com", "secret123")

    assert identity.uid
    assert identity.email == "ada@example.com"
    assert identity_provider.current_identity is None


async def test_provision_duplicate_email_fails(identity_provider):
    await identity_provider.provision("ada@example.com", "secret123")

    with pytest.raises(DuplicateIdentity) as e:
        await identity_provider.provision("ADA@example.com", "other-pass")
    assert "email" not in e.value.message.lower()


# ── Tests: authenticate / deauthenticate ─────────────────────────────

async def test_authenticate_sets_current_identity_and_notifies(identity_provider):
    seen = []

    async def listener(identity):
        seen.append(identity)

    identity_provider.on_identity_change(listener)
    provisioned = await identity_provider.provision("ada@example.com", "secret123")

    identity = await identity_provider.authenticate("ada@example.com", "secret123")

    assert identity == provisioned
    assert identity_provider.current_identity == identity
    assert seen == [identity]


async def test_wrong_password_and_unknown_email_fail_alike(identity_provider):
    await identity_provider.provision("ada@example.com", "secret123")

    with pytest.raises(AuthError) as wrong_password:
        await identity_provider.authenticate("ada@example.com", "nope")
    with pytest.raises(AuthError) as unknown_email:
        await identity_provider.authenticate("bob@example.com", "secret123")

    assert wrong_password.value.message == unknown_email.value.message
    assert identity_provider.current_identity is None


async def test_deauthenticate_clears_and_notifies(identity_provider):
    seen = []

    async def listener(identity):
        seen.append(identity)

    await identity_provider.provision("ada@example.com", "secret123")
    await identity_provider.authenticate("ada@example.com", "secret123")
    unsubscribe = identity_provider.on_identity_change(listener)

    await identity_provider.deauthenticate()
    unsubscribe()
    await identity_provider.authenticate("ada@example.com", "secret123")

    assert seen == [None]


async def test_lookup(identity_provider):
    identity = await identity_provider.provision("ada@example.com", "secret123")

    assert await identity_provider.lookup(identity.uid) == identity
    assert await identity_provider.lookup("missing") is None
