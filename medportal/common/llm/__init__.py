# medportal/common/llm/__init__.py
"""LLM module for the patient health assistant."""

from .llm_service import LLMService, generate_response

__all__ = ["LLMService", "generate_response"]
