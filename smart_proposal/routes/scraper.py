from __future__ import annotations

from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from smart_proposal.services import scraper

router = APIRouter(prefix="/api/scraper", tags=["scraper"])


class ScrapeRequest(BaseModel):
    url: Optional[str] = None
    analyze: bool = True


@router.post("")
async def scrape(body: ScrapeRequest):
    try:
        return await scraper.scrape(body.url, analyze=body.analyze)
    except scraper.ScrapeError as exc:
        return JSONResponse(exc.to_dict(), status_code=exc.status_code)
