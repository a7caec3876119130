# medportal/modules/assistant/assistant_controller.py
"""Assistant controller with API routes."""

from fastapi import APIRouter, Depends

from medportal.auth.dependencies import require_permission
from medportal.auth.schemas import SessionContext
from medportal.common.llm import LLMService

from . import assistant_service as service
from .schemas import ChatRequest, ChatResponse

router = APIRouter(prefix="/assistant", tags=["Assistant"])


def get_llm_service() -> LLMService:
    return LLMService()


@router.post("/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    llm: LLMService = Depends(get_llm_service),
    ctx: SessionContext = Depends(require_permission("access_ai_assistant")),
):
    """Ask the health assistant a question."""
    return await service.ask_assistant(ctx, request.message, llm)
