from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from smart_proposal.logging_config import get_logger
from smart_proposal.services import pollinations, presentations

router = APIRouter(prefix="/api/presentations", tags=["presentations"])
logger = get_logger("routes.presentations")


class OutlineRequest(BaseModel):
    topic: Optional[str] = None
    numSlides: Any = 5
    language: Any = "English"
    pageStyle: Any = "professional"
    model: Optional[str] = None


class SlidesRequest(BaseModel):
    outline: Any = None
    pageStyle: Optional[str] = None
    model: Optional[str] = None
    topic: Optional[str] = None


@router.post("/generate-outline")
async def generate_outline(body: OutlineRequest):
    if not body.topic or not body.topic.strip():
        return JSONResponse({"error": "Topic is required."}, status_code=400)
    try:
        outline = await presentations.generate_outline(
            body.topic, body.numSlides, body.language, body.pageStyle, body.model
        )
    except presentations.OutlineError as exc:
        return JSONResponse({"error": str(exc)}, status_code=500)
    except pollinations.PollinationsError as exc:
        logger.error("Outline generation failed: %s", exc)
        return JSONResponse({"error": "Failed to generate outline.", "details": str(exc)}, status_code=500)
    return outline


@router.post("/generate-slides")
async def generate_slides(body: SlidesRequest):
    if not presentations.is_valid_outline(body.outline):
        return JSONResponse({"error": "Invalid or missing outline."}, status_code=400)
    return await presentations.generate_slides(body.outline, body.pageStyle, body.model, body.topic or "")
