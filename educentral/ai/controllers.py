"""
AI Tutor Controllers

Chat with the programming tutor, list the chat models available to the
configured key and report whether the tutor can reach OpenAI.
"""

from typing import Any, Dict, List

from fastapi import APIRouter
from openai import OpenAIError
from pydantic import Field

from educentral.ai import openai_service
from educentral.common.error_handling import AIServiceError, ValidationError
from educentral.common.logger import app_logger
from educentral.config import get_settings
from educentral.realtime.manager import now_iso
from educentral.storage.schemas import SchemaBase

logger = app_logger.getChild("ai.controllers")

router = APIRouter(prefix="/ai-tutor")


class ChatTurn(SchemaBase):
    sender: str = "user"
    content: str = ""


class ChatRequest(SchemaBase):
    message: str = ""
    conversation_history: List[ChatTurn] = Field(default_factory=list)


@router.post("/chat")
async def chat(request: ChatRequest) -> Dict[str, Any]:
    """
    Reply to a student's message.

    Raises:
        ValidationError: If the message is empty
        AIServiceError: If the key is missing or rejected, the quota is
            exhausted, or the provider fails
    """
    if not request.message.strip():
        raise ValidationError("Message is required")

    history = [turn.model_dump() for turn in request.conversation_history]
    reply = await openai_service.tutor_reply(request.message, history)
    return {
        "response": reply,
        "model": get_settings().OPENAI_MODEL,
        "timestamp": now_iso(),
    }


@router.get("/models")
async def list_models() -> Dict[str, Any]:
    return {"models": await openai_service.list_chat_models()}


@router.get("/health")
async def health() -> Dict[str, Any]:
    """Tutor readiness. Always answers 200, problems are reported in the body."""
    settings = get_settings()
    if not settings.OPENAI_API_KEY:
        return {
            "status": "error",
            "message": "OpenAI API key not configured",
            "configured": False,
        }

    try:
        test_response = await openai_service.ping()
    except (OpenAIError, AIServiceError) as e:
        logger.error(f"AI tutor health check failed: {e}")
        return {
            "status": "error",
            "message": "OpenAI API connection failed",
            "configured": True,
            "error": str(e),
        }

    return {
        "status": "healthy",
        "message": "AI Tutor is ready",
        "configured": True,
        "model": settings.OPENAI_MODEL,
        "testResponse": test_response,
    }
