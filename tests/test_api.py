"""
End-to-end tests through the FastAPI app with an in-memory database.
"""

import httpx
import pytest

from medportal.auth.identity_provider import IdentityProvider
from medportal.common.database.database import get_db_session
from medportal.common.database.document_store import DocumentStore
from medportal.common.llm import LLMService
from medportal.main import app
from medportal.modules.assistant.assistant_controller import get_llm_service
from medportal.modules.user import user_service

from conftest import PASSWORD, ROOT_ADMIN


# ── Helpers / Fakes ──────────────────────────────────────────────────

@pytest.fixture
async def client(session_factory):
    async def override_db_session():
        async with session_factory() as session:
            yield session

    def override_llm_service():
        return LLMService(
            api_key="test-key",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={
                "candidates": [{"content": {"parts": [{"text": "Please see a doctor."}]}}],
            })),
        )

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_llm_service] = override_llm_service
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
async def doctor_account(session_factory):
    async with session_factory() as session:
        doctor = await user_service.create_doctor(
            DocumentStore(session), IdentityProvider(session), ROOT_ADMIN,
            "doc@test.com", PASSWORD, {"firstName": "Amara", "lastName": "Okafor"},
        )
    return doctor


async def login(client, email, expected_role=None):
    response = await client.post("/auth/login", json={
        "email": email, "password": PASSWORD, "expected_role": expected_role,
    })
    assert response.status_code == 200, response.text
    body = response.json()
    return body["user"]["id"], {"Authorization": f"Bearer {body['access_token']}"}


async def signup(client, email="pat@test.com"):
    response = await client.post("/auth/signup", json={
        "email": email, "password": PASSWORD, "firstName": "Tunde", "lastName": "Bello",
    })
    assert response.status_code == 201, response.text
    body = response.json()
    return body["user"]["id"], {"Authorization": f"Bearer {body['access_token']}"}


# ── Tests: auth ──────────────────────────────────────────────────────

async def test_root(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["name"] == "MedPortal API"


async def test_signup_then_me(client):
    user_id, headers = await signup(client)

    response = await client.get("/auth/me", headers=headers)

    assert response.status_code == 200
    body = response.json()
    assert body["user_id"] == user_id
    assert body["role"] == "patient"
    assert body["login_route"] == "/auth/patient"


async def test_duplicate_signup_is_conflict(client):
    await signup(client)

    response = await client.post("/auth/signup", json={"email": "pat@test.com", "password": PASSWORD})

    assert response.status_code == 409


async def test_login_to_wrong_portal_is_forbidden(client):
    await signup(client)

    response = await client.post("/auth/login", json={
        "email": "pat@test.com", "password": PASSWORD, "expected_role": "doctor",
    })

    assert response.status_code == 403
    assert "Patient" in response.json()["detail"]


async def test_bad_credentials_and_missing_token(client):
    await signup(client)

    response = await client.post("/auth/login", json={"email": "pat@test.com", "password": "nope"})
    assert response.status_code == 401

    response = await client.get("/users/me")
    assert response.status_code in (401, 403)

    response = await client.get("/users/me", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401


# ── Tests: visit flow ────────────────────────────────────────────────

async def test_booking_completion_and_prescription(client, doctor_account):
    patient_id, patient = await signup(client)
    doctor_id, doctor = await login(client, "doc@test.com", "doctor")

    response = await client.get("/users", params={"role": "doctor"}, headers=patient)
    assert [u["id"] for u in response.json()["users"]] == [doctor_id]

    response = await client.post("/appointments", headers=patient, json={
        "doctorId": doctor_id, "date": "2025-03-10", "time": "09:30",
    })
    assert response.status_code == 201, response.text
    appointment_id = response.json()["appointment"]["id"]

    response = await client.patch(f"/appointments/{appointment_id}", headers=patient, json={"status": "completed"})
    assert response.status_code == 403

    response = await client.patch(f"/appointments/{appointment_id}", headers=doctor, json={
        "status": "completed", "feedback": {"diagnosis": "flu"},
    })
    assert response.status_code == 200, response.text

    response = await client.get("/appointments", headers=patient)
    appointments = response.json()["appointments"]
    assert appointments[0]["status"] == "completed"
    assert appointments[0]["feedback"]["diagnosis"] == "flu"

    response = await client.patch(f"/appointments/{appointment_id}", headers=doctor, json={"status": "scheduled"})
    assert response.status_code == 409

    response = await client.post("/prescriptions", headers=doctor, json={
        "patientId": patient_id, "medicationName": "Oseltamivir", "frequency": "2x daily",
    })
    assert response.status_code == 422

    response = await client.post("/prescriptions", headers=doctor, json={
        "patientId": patient_id, "medicationName": "Oseltamivir", "dosage": "75mg", "frequency": "2x daily",
    })
    assert response.status_code == 201, response.text
    assert response.json()["prescription"]["doctorName"] == "Dr. Amara Okafor"

    response = await client.get(f"/prescriptions/patient/{patient_id}", headers=patient)
    assert response.json()["total"] == 1

    response = await client.post("/prescriptions", headers=patient, json={
        "patientId": patient_id, "medicationName": "x", "dosage": "y", "frequency": "z",
    })
    assert response.status_code == 403


async def test_medical_history_routes(client, doctor_account):
    patient_id, patient = await signup(client)
    _, doctor = await login(client, "doc@test.com")

    response = await client.get(f"/history/{patient_id}", headers=patient)
    assert response.status_code == 200
    assert response.json()["conditions"] == []
    assert response.json()["labResults"] == []

    response = await client.post(f"/history/{patient_id}/conditions", headers=doctor, json={
        "name": "Asthma", "diagnosedDate": "2020-01-01",
    })
    assert response.status_code == 201, response.text
    item = response.json()["item"]
    assert item["diagnosedDate"] == "2020-01-01"

    response = await client.get("/history/search", params={"condition": "asth"}, headers=doctor)
    assert [h["patientId"] for h in response.json()["histories"]] == [patient_id]

    response = await client.get("/history", headers=patient)
    assert response.status_code == 403

    response = await client.delete(f"/history/{patient_id}/conditions/{item['id']}", headers=patient)
    assert response.status_code == 200

    response = await client.delete(f"/history/{patient_id}/conditions/{item['id']}", headers=patient)
    assert response.status_code == 404

    response = await client.put(f"/history/{patient_id}/lifestyle", headers=patient, json={
        "lifestylePlans": {"exercisePlan": {"weeklyTarget": 3}},
    })
    assert response.json()["lifestylePlans"]["exercisePlan"]["weeklyTarget"] == 3


async def test_admin_manages_users(client, session_factory):
    async with session_factory() as session:
        await user_service.create_admin(
            DocumentStore(session), IdentityProvider(session), ROOT_ADMIN, "admin@test.com", PASSWORD
        )
    patient_id, patient = await signup(client)
    _, admin = await login(client, "admin@test.com", "admin")

    response = await client.post("/users", headers=admin, json={
        "email": "newdoc@test.com", "password": PASSWORD, "specialization": "Dermatology",
    })
    assert response.status_code == 201, response.text
    assert response.json()["role"] == "doctor"

    response = await client.post("/users", headers=patient, json={"email": "x@test.com", "password": PASSWORD})
    assert response.status_code == 403

    response = await client.post(f"/users/{patient_id}/deactivate", headers=admin)
    assert response.json()["user"]["isActive"] is False

    response = await client.patch(f"/users/{patient_id}", headers=patient, json={"phone": "0803"})
    assert response.status_code == 200
    assert response.json()["firstName"] == "Tunde"
    assert response.json()["isActive"] is False


async def test_assistant_chat(client, doctor_account):
    _, patient = await signup(client)
    _, doctor = await login(client, "doc@test.com")

    response = await client.post("/assistant/chat", headers=patient, json={"message": "I have a cough"})
    assert response.status_code == 200
    assert response.json()["response"] == "Please see a doctor."

    response = await client.post("/assistant/chat", headers=doctor, json={"message": "Hello"})
    assert response.status_code == 403
