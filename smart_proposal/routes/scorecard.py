from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter
from pydantic import BaseModel

from smart_proposal.services import scorecard

router = APIRouter(prefix="/api/scorecard", tags=["scorecard"])


class ScoreRequest(BaseModel):
    answers: Dict[str, Any] = {}


@router.get("/questions")
async def questions():
    return {"questions": scorecard.QUESTIONS}


@router.post("/score")
async def score(body: ScoreRequest):
    result = scorecard.calculate_score(body.answers)
    return {
        **result,
        "category": scorecard.get_score_category(result["scorePercent"]),
        "recommendations": scorecard.get_recommendations(result["scorePercent"]),
    }
