"""Chat completions against Z.ai with a short chain of alternate models."""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Tuple

import httpx

from smart_proposal import config
from smart_proposal.logging_config import get_logger
from smart_proposal.services.http import async_client

logger = get_logger("chat")

DEFAULT_REPLY = "Sorry, I couldn't get a response."

TOOLS_SYSTEM_PROMPT = (
    "You are an intelligent AI assistant with access to powerful tools including:\n"
    "- Website Intelligence Scanner: Analyze websites for business insights\n"
    "- Executive Persona Creator: Generate detailed executive profiles\n"
    "- Image Generator: Create custom images and graphics\n"
    "- Voice Synthesis: Generate professional voiceovers\n"
    "- AI Readiness Assessment: Evaluate AI implementation readiness\n\n"
    "When creating code, wrap it in proper markdown code blocks. For HTML/CSS/JS that should be "
    "interactive, use the artifact format.\n\n"
    "Be helpful, concise, and professional. When users ask about analyzing websites, creating personas, "
    "or other tasks that match your tools, guide them to use the appropriate tool by suggesting they "
    'type "/" to access the tool menu.'
)

REASONING_RE = re.compile(r"\$([\s\S]*?)\$")


class ChatUpstreamError(Exception):
    def __init__(self, status_code: int, error: str, details: str = ""):
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.details = details


class ChatFormatError(Exception):
    pass


def extract_reasoning(message: Dict[str, Any]) -> Tuple[str, Optional[str]]:
    """Split a completion message into ``(content, reasoning)``."""
    content = message.get("content") or DEFAULT_REPLY
    if message.get("reasoning"):
        return content, message["reasoning"]
    if message.get("reasoning_content"):
        return content, message["reasoning_content"]
    raw = message.get("content") or ""
    match = REASONING_RE.search(raw)
    if match and match.group(1).strip():
        return REASONING_RE.sub("", raw, count=1).strip(), match.group(1).strip()
    return content, None


def format_messages(messages: List[Any]) -> List[Dict[str, Any]]:
    formatted = []
    for message in messages:
        if isinstance(message, dict):
            formatted.append({"role": message.get("role"), "content": message.get("content")})
    return formatted


def model_chain(model: str) -> List[str]:
    chain = [model]
    for alternate in config.ZAI_FALLBACK_MODELS[:2]:
        if alternate not in chain:
            chain.append(alternate)
    return chain


async def _post(payload: Dict[str, Any]) -> httpx.Response:
    headers = {
        "Authorization": f"Bearer {config.ZAI_API_KEY}",
        "Content-Type": "application/json",
        "Accept-Language": "en-US,en;q=0.9",
    }
    async with async_client(timeout=config.ZAI_TIMEOUT) as client:
        return await client.post(config.ZAI_API_URL, json=payload, headers=headers)


async def request_completion(payload: Dict[str, Any]) -> Tuple[Dict[str, Any], str]:
    """POST ``payload``, walking the model chain on timeouts, transport errors and 5xx.

    A 4xx stops the chain at once. Returns ``(data, model_used)``.
    """
    last_error: Optional[ChatUpstreamError] = None
    for model in model_chain(payload["model"]):
        attempt = {**payload, "model": model}
        try:
            response = await _post(attempt)
        except httpx.TimeoutException as exc:
            logger.warning("Z.ai request timed out for model %s: %s", model, exc)
            last_error = ChatUpstreamError(504, "AI API request timed out", str(exc))
            continue
        except httpx.HTTPError as exc:
            logger.warning("Z.ai transport error for model %s: %s", model, exc)
            last_error = ChatUpstreamError(502, "AI API request failed", str(exc))
            continue

        if response.status_code >= 500:
            logger.warning("Z.ai returned %s for model %s", response.status_code, model)
            last_error = ChatUpstreamError(
                response.status_code, f"AI API failed: {response.reason_phrase}", response.text
            )
            continue
        if response.status_code >= 400:
            logger.error("Z.ai rejected request: %s %s", response.status_code, response.text[:200])
            raise ChatUpstreamError(response.status_code, f"AI API failed: {response.reason_phrase}", response.text)
        try:
            return response.json(), model
        except ValueError as exc:
            raise ChatFormatError("Invalid response format from AI API") from exc

    raise last_error or ChatUpstreamError(500, "AI API failed")


async def chat(messages: List[Any], model: str = "glm-4.5-flash", thinking: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    payload = {
        "model": model or config.ZAI_MODEL,
        "messages": [{"role": "system", "content": TOOLS_SYSTEM_PROMPT}, *format_messages(messages)],
        "thinking": thinking or {"type": "enabled"},
        "temperature": 0.7,
        "max_tokens": 2000,
    }
    data, used_model = await request_completion(payload)
    choices = data.get("choices") if isinstance(data, dict) else None
    if not choices or not isinstance(choices[0], dict) or not isinstance(choices[0].get("message"), dict):
        raise ChatFormatError("Invalid response format from AI API")
    content, reasoning = extract_reasoning(choices[0]["message"])
    return {
        "choices": [{"message": {"content": content, "reasoning": reasoning, "role": "assistant"}}],
        "model": used_model,
    }


async def glm_response(messages: List[Any], model: Optional[str] = None, thinking: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    enabled = (thinking or {}).get("type") == "enabled"
    payload = {
        "model": model or config.ZAI_MODEL,
        "messages": format_messages(messages),
        "thinking": {"type": "enabled" if enabled else "disabled"},
    }
    data, _ = await request_completion(payload)
    choices = data.get("choices") if isinstance(data, dict) else None
    if not choices or not isinstance(choices[0], dict) or not isinstance(choices[0].get("message"), dict):
        raise ChatFormatError("Invalid response format from Z.ai API")
    message = choices[0]["message"]
    content, reasoning = extract_reasoning(message)
    return {
        **data,
        "choices": [{**choices[0], "message": {**message, "content": content, "reasoning": reasoning}}],
    }
