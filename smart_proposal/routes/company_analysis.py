from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from smart_proposal.logging_config import get_logger
from smart_proposal.services.company_analysis import CompanyAnalysisEngine
from smart_proposal.services.glm import GLMApiClient

router = APIRouter(prefix="/api/company-analysis", tags=["company-analysis"])
logger = get_logger("routes.company_analysis")


class AnalysisRequest(BaseModel):
    companyName: Optional[str] = None
    personName: Optional[str] = None
    jobDescription: Optional[str] = None
    companyWebsite: Optional[str] = None
    additionalContext: Optional[str] = None


@router.post("")
async def analyze_company(body: AnalysisRequest):
    progress: List[Dict[str, Any]] = []
    engine = CompanyAnalysisEngine(progress_callback=progress.append)
    form = body.model_dump(exclude_none=True)
    try:
        analysis = await engine.analyze_company(form)
    except ValueError as exc:
        return JSONResponse(
            jsonable_encoder({"error": str(exc), "details": "", "progress": progress}), status_code=400
        )
    return {"analysis": analysis, "progress": progress}


@router.get("/stats")
async def analysis_stats():
    return CompanyAnalysisEngine().get_analysis_stats()


@router.get("/status")
async def analysis_status():
    client = GLMApiClient()
    return {"connection": await client.test_connection(), "usage": client.get_usage_stats()}
