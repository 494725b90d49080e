from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

import httpx
from duckduckgo_search import DDGS

from smart_proposal import config
from smart_proposal.logging_config import get_logger
from smart_proposal.services.http import async_client

logger = get_logger("search")


def ddg_sources(query: str, max_results: int = 10) -> List[Dict[str, str]]:
    try:
        with DDGS() as ddgs:
            results = ddgs.text(query, max_results=max_results) or []
            cleaned = []
            for result in results:
                href = result.get("href", "")
                if not href or "pdf" in href.lower():
                    continue
                cleaned.append(
                    {
                        "title": result.get("title", ""),
                        "link": href,
                        "snippet": result.get("body", "")[:280],
                    }
                )
            return cleaned
    except Exception as exc:
        logger.warning("DuckDuckGo search failed for %r: %s", query, exc)
        return []


def ddg_news(query: str, max_results: int = 10) -> List[Dict[str, str]]:
    try:
        with DDGS() as ddgs:
            results = ddgs.news(query, max_results=max_results) or []
            return [
                {
                    "title": result.get("title", ""),
                    "link": result.get("url", ""),
                    "snippet": result.get("body", "")[:280],
                    "date": result.get("date", ""),
                    "source": result.get("source", ""),
                }
                for result in results
            ]
    except Exception as exc:
        logger.warning("DuckDuckGo news search failed for %r: %s", query, exc)
        return []


async def serper(endpoint: str, query: str, num: Optional[int] = None) -> Optional[Dict[str, Any]]:
    body: Dict[str, Any] = {"q": query}
    if num:
        body["num"] = num
    headers = {"X-API-KEY": config.SERPER_API_KEY, "Content-Type": "application/json"}
    try:
        async with async_client(timeout=config.SCRAPER_TIMEOUT) as client:
            response = await client.post(f"{config.SERPER_BASE_URL}/{endpoint}", json=body, headers=headers)
        response.raise_for_status()
        return response.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("Serper %s request failed for %r: %s", endpoint, query, exc)
        return None


async def web_search(query: str, num: Optional[int] = None) -> Dict[str, Any]:
    """Serper-shaped result: ``organic``, ``knowledgeGraph``, ``relatedSearches``."""
    if not config.SERPER_API_KEY:
        organic = await asyncio.to_thread(ddg_sources, query, num or 10)
        return {"organic": organic, "knowledgeGraph": None, "relatedSearches": []}
    data = await serper("search", query, num) or {}
    return {
        "organic": data.get("organic") or [],
        "knowledgeGraph": data.get("knowledgeGraph"),
        "relatedSearches": data.get("relatedSearches") or [],
    }


async def news_search(query: str, num: Optional[int] = None) -> List[Dict[str, Any]]:
    if not config.SERPER_API_KEY:
        return await asyncio.to_thread(ddg_news, query, num or 10)
    data = await serper("news", query, num) or {}
    return data.get("news") or []
