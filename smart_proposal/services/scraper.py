"""Fetch a web page and pull out the metadata the sales tools work from."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote, urlparse

import httpx
from bs4 import BeautifulSoup

from smart_proposal import config
from smart_proposal.logging_config import get_logger
from smart_proposal.services import pollinations
from smart_proposal.services.analytics import increment_counter
from smart_proposal.services.http import async_client

logger = get_logger("scraper")

CORS_PROXIES = [
    "https://corsproxy.io/?",
    "https://api.allorigins.win/raw?url=",
]

SCRAPER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,image/apng,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Cache-Control": "max-age=0",
    "Referer": "https://www.google.com/",
}

MAX_LINKS = 25
MAX_IMAGES = 15

ANALYSIS_SECTIONS = [
    "Company Name & Brand Identity",
    "Products/Services Offered (with detailed descriptions)",
    "Target Audience/Market",
    "Company Mission/Values/About",
    "Team Members & Structure (if available)",
    "Technologies Used (analyze the website tech stack)",
    "Content Strategy Analysis",
    "Marketing Approach",
    "Unique Value Propositions",
    "Competitive Positioning",
    "Contact Information & Locations",
    "Social Media Presence",
    "Blog/Content Topics (general themes if present)",
    "SEO Analysis (keywords focus, meta descriptions)",
    "Customer Testimonials/Case Studies",
]


class ScrapeError(Exception):
    def __init__(self, status_code: int, error: str, details: Optional[str] = None):
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.error}
        if self.details:
            body["details"] = self.details
        return body


def validate_url(url: Optional[str]) -> str:
    if not url:
        raise ScrapeError(400, "URL is required")
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ScrapeError(400, "Invalid URL format")
    return url


async def fetch_html(url: str) -> Tuple[str, bool]:
    """Return ``(html, proxy_used)``; 401/403 answers are retried through the proxies."""
    try:
        async with async_client(timeout=config.SCRAPER_TIMEOUT) as client:
            response = await client.get(url, headers=SCRAPER_HEADERS)
            if response.status_code < 400:
                return response.text, False

            if response.status_code in (401, 403):
                logger.info("Got %s for %s, trying CORS proxies", response.status_code, url)
                for proxy in CORS_PROXIES:
                    proxy_url = f"{proxy}{quote(url, safe='')}"
                    try:
                        proxied = await client.get(proxy_url, headers={"User-Agent": SCRAPER_HEADERS["User-Agent"]})
                    except httpx.TimeoutException:
                        raise
                    except httpx.HTTPError as exc:
                        logger.warning("Proxy error with %s: %s", proxy, exc)
                        continue
                    if proxied.status_code < 400:
                        return proxied.text, True
    except httpx.TimeoutException as exc:
        raise ScrapeError(408, "Website fetch timed out after 30 seconds") from exc
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise ScrapeError(500, "Failed to scrape website", str(exc)) from exc

    if response.status_code == 403:
        details = (
            "The website is blocking access. We tried using proxies but couldn't bypass the restriction. "
            "Try a different URL or check if the site allows scraping."
        )
    else:
        details = f"HTTP status code {response.status_code}"
    raise ScrapeError(
        response.status_code,
        f"Failed to fetch website: {response.status_code} {response.reason_phrase}",
        details,
    )


def extract_metadata(html: str) -> Dict[str, Any]:
    soup = BeautifulSoup(html, "html.parser")

    title_tag = soup.find("title")
    title = title_tag.get_text(strip=True) if title_tag and title_tag.get_text(strip=True) else "No title found"
    meta_description = soup.find("meta", attrs={"name": "description"})
    description = (meta_description.get("content") or "").strip() if meta_description else ""

    links: List[Dict[str, str]] = []
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        text = anchor.get_text(" ", strip=True)
        if not href or not text or href.startswith(("#", "mailto:", "tel:")):
            continue
        links.append({"href": href, "text": text})
        if len(links) >= MAX_LINKS:
            break

    images: List[Dict[str, str]] = []
    seen = set()
    for image in soup.find_all("img"):
        src = (image.get("src") or "").strip()
        if not src or src.startswith("data:") or src in seen:
            continue
        seen.add(src)
        images.append({"src": src, "alt": image.get("alt") or ""})
        if len(images) >= MAX_IMAGES:
            break

    return {
        "title": title,
        "description": description or "No description found",
        "links": links,
        "images": images,
    }


def page_text(html: str, limit: Optional[int] = None) -> str:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    text = " ".join(segment.strip() for segment in soup.stripped_strings)
    return text[:limit] if limit else text


def normalize_analysis(analysis: Any) -> Dict[str, str]:
    if not isinstance(analysis, dict):
        return {}
    normalized = {}
    for key, value in analysis.items():
        if isinstance(value, str):
            normalized[key] = value
        elif isinstance(value, (dict, list)):
            normalized[key] = json.dumps(value, indent=2, ensure_ascii=False)
        else:
            normalized[key] = str(value) if value else "No information available"
    return normalized


def analysis_prompt(url: str, title: str, description: str) -> str:
    sections = "\n".join(f"{index}. {section}" for index, section in enumerate(ANALYSIS_SECTIONS, start=1))
    return (
        f"Analyze this website HTML from {url}:\n\n"
        f"Title: {title}\n"
        f"Description: {description}\n\n"
        "Provide a comprehensive business intelligence analysis of this company or organization "
        "with the following structure:\n"
        f"{sections}\n\n"
        "Format the response as a JSON object with these categories as keys. For each section, provide "
        "detailed insights rather than just extracted text. If information for a specific category is not "
        "available, include a note explaining this rather than leaving it blank."
    )


async def analyze_page(url: str, title: str, description: str) -> Optional[Dict[str, str]]:
    try:
        parsed = await pollinations.chat_json(
            [{"role": "user", "content": analysis_prompt(url, title, description)}],
            model="searchgpt",
            temperature=0.3,
        )
    except pollinations.PollinationsError as exc:
        logger.warning("Website analysis failed for %s: %s", url, exc)
        return None
    return normalize_analysis(parsed) or None


async def scrape(url: Optional[str], analyze: bool = True) -> Dict[str, Any]:
    url = validate_url(url)
    html, proxy_used = await fetch_html(url)
    metadata = extract_metadata(html)
    analysis = None
    if analyze and html:
        analysis = await analyze_page(url, metadata["title"], metadata["description"])
    increment_counter("scrapes")
    return {
        "url": url,
        **metadata,
        "analysis": analysis,
        "scrapedAt": datetime.now(timezone.utc).isoformat(),
        "proxyUsed": proxy_used,
    }
