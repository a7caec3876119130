"""
Unit tests for the role session: login gating by portal, teardown on
failure, and token-based session restore.
"""

import pytest

from medportal.auth import auth_service
from medportal.auth.auth_service import RoleSession, SessionState
from medportal.common.errors import AuthError, NotFound, RoleMismatch
from medportal.models.models import UserRole

from conftest import PASSWORD


# ── Tests: login ─────────────────────────────────────────────────────

async def test_login_resolves_role(store, identity_provider, make_user):
    patient, _ = await make_user(UserRole.PATIENT, email="pat@test.com")
    session = RoleSession(store, identity_provider)

    ctx = await session.login("pat@test.com", PASSWORD, UserRole.PATIENT)

    assert ctx.user_id == patient.id
    assert ctx.role == UserRole.PATIENT
    assert session.state == SessionState.AUTHENTICATED
    assert await session.current_session() == ctx


async def test_role_mismatch_tears_session_down(store, identity_provider, make_user):
    await make_user(UserRole.PATIENT, email="pat@test.com")
    session = RoleSession(store, identity_provider)
    await session.start()

    with pytest.raises(RoleMismatch) as e:
        await session.login("pat@test.com", PASSWORD, UserRole.DOCTOR)

    assert e.value.actual_role == "patient"
    assert "Patients" in e.value.message
    assert await session.current_session() is None
    assert identity_provider.current_identity is None
    assert session.state == SessionState.ANONYMOUS


async def test_role_mismatch_without_subscription(store, identity_provider, make_user):
    await make_user(UserRole.DOCTOR, email="doc@test.com")
    session = RoleSession(store, identity_provider)

    with pytest.raises(RoleMismatch):
        await session.login("doc@test.com", PASSWORD, "admin")

    assert await session.current_session() is None
    assert identity_provider.current_identity is None


async def test_bad_password_leaves_no_session(store, identity_provider, make_user):
    await make_user(UserRole.PATIENT, email="pat@test.com")
    session = RoleSession(store, identity_provider)
    await session.start()

    with pytest.raises(AuthError):
        await session.login("pat@test.com", "wrong-password")

    assert await session.current_session() is None


async def test_login_without_user_record(store, identity_provider):
    await identity_provider.provision("ghost@test.com", PASSWORD)
    session = RoleSession(store, identity_provider)

    with pytest.raises(NotFound):
        await session.login("ghost@test.com", PASSWORD)
    assert identity_provider.current_identity is None

    with pytest.raises(RoleMismatch) as e:
        await session.login("ghost@test.com", PASSWORD, UserRole.PATIENT)
    assert e.value.actual_role is None


async def test_deactivated_user_can_still_log_in(store, identity_provider, make_user):
    from conftest import ROOT_ADMIN
    from medportal.modules.user import user_service

    patient, _ = await make_user(UserRole.PATIENT, email="pat@test.com")
    await user_service.deactivate_user(store, ROOT_ADMIN, patient.id)

    ctx = await RoleSession(store, identity_provider).login("pat@test.com", PASSWORD)
    assert ctx.user_id == patient.id


# ── Tests: identity changes and logout ───────────────────────────────

async def test_session_follows_provider_changes(store, identity_provider, make_user):
    doctor, _ = await make_user(UserRole.DOCTOR, email="doc@test.com")
    session = RoleSession(store, identity_provider)
    await session.start()
    assert await session.current_session() is None

    await identity_provider.authenticate("doc@test.com", PASSWORD)
    ctx = await session.current_session()
    assert ctx.user_id == doctor.id
    assert ctx.role == UserRole.DOCTOR

    await session.logout()
    assert await session.current_session() is None
    session.close()


async def test_signup_creates_patient_and_signs_in(store, identity_provider):
    session = RoleSession(store, identity_provider)

    ctx = await session.signup("new@test.com", PASSWORD, {"firstName": "New"})

    assert ctx.role == UserRole.PATIENT
    assert await session.get_user_role(ctx.user_id) == UserRole.PATIENT
    assert await session.current_session() == ctx


# ── Tests: tokens ────────────────────────────────────────────────────

async def test_token_restores_session_with_fresh_role(store, identity_provider, make_user):
    _, ctx = await make_user(UserRole.PATIENT, email="pat@test.com")
    token = auth_service.issue_token(ctx)

    restored = await auth_service.restore_session(store, identity_provider, token)
    assert restored == ctx

    await store.write_path(f"users/{ctx.user_id}/role", "doctor")
    restored = await auth_service.restore_session(store, identity_provider, token)
    assert restored.role == UserRole.DOCTOR


async def test_garbage_token_is_rejected(store, identity_provider):
    with pytest.raises(AuthError):
        await auth_service.restore_session(store, identity_provider, "not-a-token")


async def test_login_user_returns_profile_and_token(store, identity_provider, make_user):
    patient, _ = await make_user(UserRole.PATIENT, email="pat@test.com", firstName="Ada")

    user, token = await auth_service.login_user(store, identity_provider, "pat@test.com", PASSWORD)

    assert user.first_name == "Ada"
    assert auth_service.decode_token(token)["sub"] == patient.id
