from __future__ import annotations

import io
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from smart_proposal.logging_config import get_logger
from smart_proposal.services import pollinations

router = APIRouter(prefix="/api/pollinations", tags=["pollinations"])
logger = get_logger("routes.pollinations")


class ChatProxyRequest(BaseModel):
    messages: List[Dict[str, Any]] = []
    model: Optional[str] = "openai"
    temperature: Optional[float] = 0.7
    response_format: Optional[Dict[str, Any]] = None
    webpage_context: Optional[List[Any]] = None


class ImageRequest(BaseModel):
    prompt: Optional[str] = None
    model: Optional[str] = "turbo"
    width: int = 512
    height: int = 512


class AudioRequest(BaseModel):
    text: Optional[str] = None
    voice: Optional[str] = "nova"


def _failure(message: str, status_code: int = 500) -> JSONResponse:
    return JSONResponse(
        {"error": message, "status": "error", "timestamp": datetime.now(timezone.utc).isoformat()},
        status_code=status_code,
    )


@router.post("")
async def chat_proxy(body: ChatProxyRequest):
    try:
        content = await pollinations.chat_completion(
            body.messages,
            model=body.model or "openai",
            temperature=body.temperature or 0.7,
            response_format=body.response_format,
            webpage_context=body.webpage_context,
        )
    except pollinations.PollinationsError as exc:
        logger.error("Pollinations chat failed: %s", exc)
        return _failure(str(exc))
    return {"content": content, "status": "success"}


@router.post("/image")
async def image(body: ImageRequest):
    if not body.prompt:
        return JSONResponse({"error": "Prompt is required"}, status_code=400)
    model = body.model or "turbo"
    if model not in pollinations.IMAGE_MODELS:
        return JSONResponse({"error": 'Invalid model. Use "turbo" or "flux"'}, status_code=400)

    image_url = pollinations.build_image_url(body.prompt, model, body.width, body.height)
    await pollinations.check_image(image_url)
    return {
        "success": True,
        "imageUrl": image_url,
        "prompt": body.prompt,
        "model": model,
        "width": body.width,
        "height": body.height,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.post("/audio")
async def audio(body: AudioRequest):
    if not body.text:
        return _failure("No text provided for speech synthesis", status_code=400)
    try:
        data = await pollinations.text_to_speech(body.text, body.voice or "nova")
    except pollinations.PollinationsError as exc:
        logger.error("Pollinations TTS failed: %s", exc)
        return _failure(str(exc))
    return StreamingResponse(
        io.BytesIO(data),
        media_type="audio/mpeg",
        headers={"Cache-Control": "public, max-age=86400"},
    )


@router.get("/models")
async def models():
    return await pollinations.get_all_models()
