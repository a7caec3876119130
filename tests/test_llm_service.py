"""
Unit tests for the text-completion client and the patient assistant.
"""

import json

import httpx
import pytest

from medportal.auth.schemas import SessionContext
from medportal.common.errors import CompletionError, Unauthorized, ValidationError
from medportal.common.llm import LLMService
from medportal.models.models import UserRole
from medportal.modules.assistant import assistant_service


PATIENT = SessionContext(user_id="p1", role=UserRole.PATIENT)
DOCTOR = SessionContext(user_id="d1", role=UserRole.DOCTOR)


# ── Helpers / Fakes ──────────────────────────────────────────────────

def gemini_reply(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def make_service(handler, api_key="test-key"):
    return LLMService(
        api_key=api_key,
        model="gemini-test",
        base_url="https://llm.test/v1beta",
        transport=httpx.MockTransport(handler),
    )


# ── Tests: LLMService ────────────────────────────────────────────────

async def test_complete_sends_generation_and_safety_settings():
    captured = {}

    def handler(request):
        captured["url"] = request.url
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json=gemini_reply("Drink water."))

    text = await make_service(handler).complete("Hello")

    assert text == "Drink water."
    assert captured["url"].path == "/v1beta/models/gemini-test:generateContent"
    assert captured["url"].params["key"] == "test-key"
    body = captured["body"]
    assert body["contents"] == [{"parts": [{"text": "Hello"}]}]
    assert body["generationConfig"] == {
        "temperature": 0.7,
        "topK": 40,
        "topP": 0.95,
        "maxOutputTokens": 1024,
    }
    assert {s["category"] for s in body["safetySettings"]} == {
        "HARM_CATEGORY_HARASSMENT",
        "HARM_CATEGORY_HATE_SPEECH",
        "HARM_CATEGORY_SEXUALLY_EXPLICIT",
        "HARM_CATEGORY_DANGEROUS_CONTENT",
    }
    assert {s["threshold"] for s in body["safetySettings"]} == {"BLOCK_MEDIUM_AND_ABOVE"}


async def test_chat_wraps_message_in_health_prompt():
    prompts = []

    def handler(request):
        prompts.append(json.loads(request.content)["contents"][0]["parts"][0]["text"])
        return httpx.Response(200, json=gemini_reply("ok"))

    await make_service(handler).chat("I have a headache")

    assert "User message: I have a headache" in prompts[0]
    assert "consult healthcare professionals" in prompts[0]


async def test_missing_api_key():
    def handler(request):
        raise AssertionError("no request expected")

    with pytest.raises(CompletionError):
        await make_service(handler, api_key="").complete("Hello")


async def test_api_error_status():
    def handler(request):
        return httpx.Response(400, json={"error": {"message": "API key not valid"}})

    with pytest.raises(CompletionError) as e:
        await make_service(handler).complete("Hello")
    assert "API key not valid" in e.value.message


async def test_malformed_response():
    def handler(request):
        return httpx.Response(200, json={"candidates": []})

    with pytest.raises(CompletionError):
        await make_service(handler).complete("Hello")


async def test_transport_failure():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(CompletionError):
        await make_service(handler).complete("Hello")


# ── Tests: ask_assistant ─────────────────────────────────────────────

async def test_patient_asks_assistant():
    service = make_service(lambda request: httpx.Response(200, json=gemini_reply("Rest well.")))

    reply = await assistant_service.ask_assistant(PATIENT, "  I feel tired  ", service)

    assert reply.response == "Rest well."
    assert reply.timestamp


async def test_assistant_is_for_patients():
    service = make_service(lambda request: httpx.Response(200, json=gemini_reply("x")))

    with pytest.raises(Unauthorized):
        await assistant_service.ask_assistant(DOCTOR, "Hello", service)
    with pytest.raises(ValidationError):
        await assistant_service.ask_assistant(PATIENT, "   ", service)
