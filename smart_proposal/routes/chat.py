from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from smart_proposal.logging_config import get_logger
from smart_proposal.services import chat as chat_service
from smart_proposal.services.analytics import increment_counter

router = APIRouter(prefix="/api/chat", tags=["chat"])
logger = get_logger("routes.chat")


class ChatRequest(BaseModel):
    messages: Any = None
    model: Optional[str] = "glm-4.5-flash"
    thinking: Optional[Dict[str, Any]] = None


def _error(status_code: int, error: str, details: str = "") -> JSONResponse:
    return JSONResponse({"error": error, "details": details}, status_code=status_code)


@router.post("")
async def chat(body: ChatRequest):
    if not isinstance(body.messages, list):
        return _error(400, "Invalid messages format")
    increment_counter("chat_requests")
    try:
        return await chat_service.chat(body.messages, body.model or "glm-4.5-flash", body.thinking)
    except chat_service.ChatUpstreamError as exc:
        logger.error("Chat upstream error %s: %s", exc.status_code, exc.details)
        return _error(exc.status_code, exc.error, exc.details)
    except chat_service.ChatFormatError as exc:
        return _error(500, str(exc))


@router.post("/glm-response")
async def glm_response(body: ChatRequest):
    if not isinstance(body.messages, list):
        return _error(400, "Invalid messages format")
    increment_counter("chat_requests")
    try:
        return await chat_service.glm_response(body.messages, body.model, body.thinking)
    except chat_service.ChatUpstreamError as exc:
        logger.error("GLM upstream error %s: %s", exc.status_code, exc.details)
        return _error(exc.status_code, exc.error, exc.details)
    except chat_service.ChatFormatError as exc:
        return _error(500, str(exc))
