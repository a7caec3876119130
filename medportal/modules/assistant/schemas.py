# medportal/modules/assistant/schemas.py
"""Assistant module Pydantic schemas."""

from medportal.common.schemas import PortalDocument


class ChatRequest(PortalDocument):
    message: str


class ChatResponse(PortalDocument):
    response: str
    timestamp: str
