"""Custom agents: a system prompt plus chunked knowledge sources, kept in ``agents.json``."""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx

from smart_proposal import config
from smart_proposal.logging_config import get_logger
from smart_proposal.services import pollinations
from smart_proposal.services.analytics import increment_counter
from smart_proposal.services.files import extract_text, save_upload
from smart_proposal.services.http import async_client
from smart_proposal.services.scraper import page_text

logger = get_logger("agents")

AGENTS_FILENAME = "agents.json"
CHUNK_SIZE = 1000
CHUNK_OVERLAP = 100
AGENT_STATUSES = ("Training", "Active", "Inactive")

DEFAULT_SETTINGS = {
    "createCards": False,
    "linkedPipelineId": None,
    "initialMessages": [],
    "suggestedReplies": [],
    "primaryColor": "#6b7280",
}


def agents_file() -> Path:
    return config.data_dir() / AGENTS_FILENAME


def read_agents() -> List[Dict[str, Any]]:
    path = agents_file()
    if not path.exists():
        logger.info("agents.json not found. Returning empty array.")
        return []
    try:
        agents = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.error("Error reading agents file: %s", exc)
        return []
    return agents if isinstance(agents, list) else []


def write_agents(agents: List[Dict[str, Any]]) -> None:
    agents_file().write_text(json.dumps(agents, indent=2, ensure_ascii=False), encoding="utf-8")


def chunk_text(text: str, chunk_size: int = CHUNK_SIZE, overlap: int = CHUNK_OVERLAP) -> List[str]:
    """Split ``text`` into windows of ``chunk_size`` characters that share ``overlap`` characters."""
    if not text:
        return []
    step = max(1, chunk_size - overlap)
    chunks = []
    start = 0
    while start < len(text):
        end = min(start + chunk_size, len(text))
        chunks.append(text[start:end])
        if end == len(text):
            break
        start += step
    return chunks


def get_agent(agent_id: str) -> Optional[Dict[str, Any]]:
    return next((agent for agent in read_agents() if agent.get("id") == agent_id), None)


def parse_settings(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return dict(DEFAULT_SETTINGS)
    try:
        settings = json.loads(raw)
    except ValueError as exc:
        logger.warning("Failed to parse settings JSON, using default: %s", exc)
        return dict(DEFAULT_SETTINGS)
    return settings if isinstance(settings, dict) else dict(DEFAULT_SETTINGS)


async def process_file(upload) -> Dict[str, Any]:
    path, data = await save_upload(upload)
    source: Dict[str, Any] = {"type": "file", "name": upload.filename, "status": "ready", "path": str(path)}
    text = extract_text(upload.filename or "", upload.content_type or "", data)
    if text:
        source["chunks"] = chunk_text(text)
    return source


async def fetch_url_source(source: Dict[str, Any]) -> Dict[str, Any]:
    try:
        async with async_client(timeout=config.SCRAPER_TIMEOUT) as client:
            response = await client.get(source["name"])
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.error("Error fetching URL %s: %s", source["name"], exc)
        return {**source, "status": "error"}
    if response.status_code >= 400:
        logger.error("Failed to fetch URL: %s (status: %s)", source["name"], response.status_code)
        return {**source, "status": "error"}

    content_type = response.headers.get("content-type", "")
    if "text/html" in content_type:
        text = page_text(response.text)
    elif "text/plain" in content_type:
        text = response.text
    else:
        logger.warning("Unsupported content-type for URL: %s (%s)", source["name"], content_type)
        return {**source, "status": "error"}
    return {**source, "chunks": chunk_text(text), "status": "ready"}


async def process_other_sources(raw: Optional[str]) -> List[Dict[str, Any]]:
    if not raw:
        return []
    try:
        sources = json.loads(raw)
    except ValueError as exc:
        logger.warning("Failed to parse otherKnowledgeSources JSON: %s", exc)
        return []
    if not isinstance(sources, list):
        return []

    processed = []
    for source in sources:
        if not isinstance(source, dict) or not source.get("type") or not source.get("name"):
            continue
        if source["type"] == "url":
            processed.append(await fetch_url_source(source))
        elif source["type"] == "text" and source.get("content"):
            processed.append({**source, "chunks": chunk_text(source["content"])})
        else:
            processed.append(source)
    return processed


async def create_agent(
    name: str,
    system_prompt: str,
    status: Optional[str] = None,
    settings_raw: Optional[str] = None,
    knowledge_files: Optional[list] = None,
    other_sources_raw: Optional[str] = None,
) -> Dict[str, Any]:
    knowledge_sources = []
    for upload in knowledge_files or []:
        if upload is not None and getattr(upload, "filename", None):
            knowledge_sources.append(await process_file(upload))
    knowledge_sources.extend(await process_other_sources(other_sources_raw))

    now = datetime.now(timezone.utc).isoformat()
    agent = {
        "id": f"agent_{uuid.uuid4().hex[:8]}",
        "userId": "user_placeholder_new",
        "name": name,
        "systemPrompt": system_prompt,
        "knowledgeSources": knowledge_sources,
        "settings": parse_settings(settings_raw),
        "status": status if status in AGENT_STATUSES else "Training",
        "createdAt": now,
        "updatedAt": now,
    }
    agents = read_agents()
    agents.append(agent)
    write_agents(agents)
    increment_counter("agents_created")
    logger.info("Created agent %s with %s knowledge sources", agent["id"], len(knowledge_sources))
    return agent


def update_agent(agent_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    agents = read_agents()
    for index, agent in enumerate(agents):
        if agent.get("id") != agent_id:
            continue
        updated = {
            **agent,
            "name": changes.get("name") if changes.get("name") is not None else agent.get("name"),
            "systemPrompt": changes["systemPrompt"] if changes.get("systemPrompt") is not None else agent.get("systemPrompt"),
            "knowledgeSources": (
                changes["knowledgeSources"] if changes.get("knowledgeSources") is not None else agent.get("knowledgeSources", [])
            ),
            "settings": {**(agent.get("settings") or {}), **(changes.get("settings") or {})},
            "status": changes["status"] if changes.get("status") is not None else agent.get("status"),
            "updatedAt": datetime.now(timezone.utc).isoformat(),
        }
        agents[index] = updated
        write_agents(agents)
        return updated
    return None


def delete_agent(agent_id: str) -> bool:
    agents = read_agents()
    remaining = [agent for agent in agents if agent.get("id") != agent_id]
    if len(remaining) == len(agents):
        return False
    write_agents(remaining)
    return True


def knowledge_context(agent: Dict[str, Any]) -> str:
    context = ""
    for source in agent.get("knowledgeSources") or []:
        chunks = source.get("chunks") if isinstance(source, dict) else None
        if isinstance(chunks, list) and chunks:
            context += "\n---\n".join(chunks) + "\n---\n"
    return context


async def run_agent(agent: Dict[str, Any], query: str) -> str:
    messages = [
        {"role": "system", "content": f"{agent.get('systemPrompt', '')}\n\nKnowledge Context:\n{knowledge_context(agent)}"},
        {"role": "user", "content": query},
    ]
    return await pollinations.chat_completion(messages, model="openai")
