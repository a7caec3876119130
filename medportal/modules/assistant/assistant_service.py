# medportal/modules/assistant/assistant_service.py
"""Service layer for the patient health assistant."""

import logging
from typing import Optional

from medportal.auth.permissions import require_permission
from medportal.common.errors import ValidationError
from medportal.common.llm import LLMService
from medportal.common.utils.global_functions import blank, now_iso

from .schemas import ChatResponse

logger = logging.getLogger(__name__)


async def ask_assistant(ctx, message: str, llm: Optional[LLMService] = None) -> ChatResponse:
    """Send a patient's question to the model. Patients only."""
    require_permission(ctx, "access_ai_assistant")
    if blank(message):
        raise ValidationError(field="message")

    llm = llm or LLMService()
    logger.info("Assistant question from %s", ctx.user_id)
    text = await llm.chat(message.strip())
    return ChatResponse(response=text, timestamp=now_iso())
