# medportal/common/llm/llm_service.py
"""
LLM Service for calling the Gemini text-completion endpoint.

The portal treats the model as an opaque `complete(prompt) -> text` service;
nothing else in the access layer depends on it.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from medportal.common.config import settings
from medportal.common.errors import CompletionError
from medportal.common.utils.global_messages import GlobalMessages

logger = logging.getLogger(__name__)


SYSTEM_PROMPTS = {
    "health": """You are a helpful AI health assistant. Provide preliminary health guidance and information. Always remind users to consult healthcare professionals for medical decisions. Be empathetic, informative, and safety-conscious.

User message: {message}

Please respond with helpful, accurate health information while emphasizing the importance of professional medical consultation for serious concerns.""",
}

HARM_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)

SAFETY_SETTINGS = [
    {"category": category, "threshold": "BLOCK_MEDIUM_AND_ABOVE"}
    for category in HARM_CATEGORIES
]


class LLMService:
    """Service for interacting with the Gemini generateContent API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            api_key: Gemini API key. Defaults to settings.GEMINI_API_KEY
            model: Model name. Defaults to settings.GEMINI_MODEL
            base_url: API root. Defaults to settings.GEMINI_BASE_URL
            timeout: Request timeout in seconds
            transport: Optional httpx transport, used by tests
        """
        self.api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
        self.model = model or settings.GEMINI_MODEL
        self.base_url = (base_url or settings.GEMINI_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.LLM_TIMEOUT_SECONDS
        self.transport = transport

    @property
    def endpoint_url(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def generate(
        self,
        prompt: str,
        safety_settings: Optional[List[Dict[str, str]]] = None,
        max_tokens: int = 1024,
        temperature: float = 0.7,
        top_k: int = 40,
        top_p: float = 0.95,
    ) -> Dict[str, Any]:
        """
        Send one prompt and return the decoded JSON body.

        Raises CompletionError when no key is configured, the request fails,
        or the API answers with an error status.
        """
        if not self.api_key:
            raise CompletionError(GlobalMessages.ASSISTANT_NOT_CONFIGURED)

        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": temperature,
                "topK": top_k,
                "topP": top_p,
                "maxOutputTokens": max_tokens,
            },
            "safetySettings": SAFETY_SETTINGS if safety_settings is None else safety_settings,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    self.endpoint_url,
                    params={"key": self.api_key},
                    json=payload,
                )
        except httpx.HTTPError as e:
            logger.error("Gemini request failed: %s", e)
            raise CompletionError() from e

        if response.is_error:
            try:
                detail = response.json().get("error", {}).get("message")
            except ValueError:
                detail = None
            logger.error("Gemini returned %s: %s", response.status_code, detail)
            raise CompletionError(f"API Error: {detail or 'Failed to get response from Gemini API'}")

        try:
            return response.json()
        except ValueError as e:
            raise CompletionError() from e

    async def complete(self, prompt: str, safety_settings: Optional[List[Dict[str, str]]] = None) -> str:
        """Text of the first candidate, or CompletionError when there is none."""
        data = await self.generate(prompt, safety_settings=safety_settings)
        try:
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            logger.error("Unexpected Gemini response shape: %s", data)
            raise CompletionError() from e

    async def chat(self, user_message: str, context: str = "health") -> str:
        """Wrap the message in a system prompt and complete it."""
        template = SYSTEM_PROMPTS.get(context, SYSTEM_PROMPTS["health"])
        return await self.complete(template.format(message=user_message))


# Convenience function for simple generation
async def generate_response(user_message: str, context: str = "health", **kwargs) -> str:
    service = LLMService(**kwargs)
    return await service.chat(user_message, context=context)
