"""Pollinations.AI text, image and speech endpoints."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional
from urllib.parse import quote, urlencode

import httpx

from smart_proposal import config
from smart_proposal.logging_config import get_logger
from smart_proposal.services.http import async_client
from smart_proposal.utils.json_text import FENCED_JSON_RE, clean_json_string, extract_json

logger = get_logger("pollinations")

IMAGE_MODELS = ("turbo", "flux")


class PollinationsError(RuntimeError):
    pass


def chat_url() -> str:
    return f"{config.POLLINATIONS_TEXT_URL}/openai"


def build_chat_payload(
    messages: List[Dict[str, Any]],
    model: str = "openai",
    temperature: float = 0.7,
    response_format: Optional[Dict[str, Any]] = None,
    webpage_context: Optional[List[Any]] = None,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "messages": messages,
        "temperature": temperature or 0.7,
        "response_format": response_format or {"type": "text"},
        "model": model or "openai",
    }
    if model == "searchgpt" and isinstance(webpage_context, list):
        payload["webpage_context"] = webpage_context
    return payload


def content_from_response(data: Any, model: str) -> str:
    if isinstance(data, dict):
        choices = data.get("choices") or []
        if choices and isinstance(choices[0], dict):
            content = (choices[0].get("message") or {}).get("content")
            if content:
                return content
        if model == "searchgpt":
            content = data.get("answer") or data.get("content")
            if content:
                return content
            raise PollinationsError("Could not extract content from Pollinations SearchGPT API response")
    raise PollinationsError("Unexpected response structure from Pollinations API")


def process_json_content(content: str) -> str:
    """Return ``content`` as a parseable JSON document string."""
    try:
        cleaned = clean_json_string(content)
        json.loads(cleaned)
        return cleaned
    except ValueError:
        logger.warning("Pollinations returned invalid JSON despite json_object format, extracting")

    match = FENCED_JSON_RE.search(content)
    start, end = content.find("{"), content.rfind("}")
    if match and match.group(1):
        candidate = match.group(1)
    elif start != -1 and end > start:
        candidate = content[start : end + 1]
    else:
        return json.dumps({"error": "Could not parse LLM response as JSON", "originalContent": content[:100] + "..."})
    try:
        cleaned = clean_json_string(candidate)
        json.loads(cleaned)
        return cleaned
    except ValueError:
        return json.dumps({"error": "Failed to extract valid JSON", "originalContent": content[:100] + "..."})


async def chat_completion(
    messages: List[Dict[str, Any]],
    model: str = "openai",
    temperature: float = 0.7,
    response_format: Optional[Dict[str, Any]] = None,
    webpage_context: Optional[List[Any]] = None,
) -> str:
    payload = build_chat_payload(messages, model, temperature, response_format, webpage_context)
    try:
        async with async_client(timeout=config.POLLINATIONS_TIMEOUT) as client:
            response = await client.post(chat_url(), json=payload)
    except httpx.HTTPError as exc:
        raise PollinationsError(f"Pollinations API request failed: {exc}") from exc
    if response.status_code >= 400:
        raise PollinationsError(
            f"Pollinations API responded with status: {response.status_code}, body: {response.text[:200]}..."
        )
    try:
        data = response.json()
    except ValueError as exc:
        raise PollinationsError("Invalid JSON response from Pollinations API") from exc

    content = content_from_response(data, model)
    if payload["response_format"].get("type") == "json_object":
        return process_json_content(content)
    return content


async def chat_json(messages: List[Dict[str, Any]], model: str = "openai", **kwargs) -> Any:
    """Ask for a JSON object and parse it, raising when nothing usable comes back."""
    content = await chat_completion(messages, model=model, response_format={"type": "json_object"}, **kwargs)
    parsed = extract_json(content)
    if parsed is None:
        raise PollinationsError("Could not parse JSON from Pollinations response")
    if isinstance(parsed, dict) and set(parsed) == {"error", "originalContent"}:
        raise PollinationsError(parsed["error"])
    return parsed


def build_image_url(prompt: str, model: str = "turbo", width: int = 512, height: int = 512) -> str:
    params = urlencode({"width": width, "height": height, "noCache": "true", "model": model})
    return f"{config.POLLINATIONS_IMAGE_URL}/prompt/{quote(prompt, safe='')}?{params}"


async def check_image(url: str) -> bool:
    try:
        async with async_client(timeout=config.POLLINATIONS_TIMEOUT) as client:
            response = await client.head(url)
    except httpx.HTTPError as exc:
        logger.warning("Image URL test failed: %s", exc)
        return False
    if response.status_code >= 400:
        logger.warning("Image URL test failed with status: %s", response.status_code)
        return False
    return True


async def text_to_speech(text: str, voice: str = "nova") -> bytes:
    if not text:
        raise PollinationsError("No text provided for speech synthesis")
    payload = {
        "model": "tts-1",
        "input": text,
        "voice": voice or "nova",
        "response_format": "mp3",
        "output_modality": "audio",
    }
    try:
        async with async_client(timeout=config.POLLINATIONS_TIMEOUT) as client:
            response = await client.post(f"{config.POLLINATIONS_TEXT_URL}/openai-tts", json=payload)
    except httpx.HTTPError as exc:
        raise PollinationsError(f"Pollinations TTS API request failed: {exc}") from exc
    if response.status_code >= 400:
        raise PollinationsError(
            f"Pollinations TTS API error: {response.status_code}, details: {response.text[:200]}..."
        )
    content_type = response.headers.get("content-type", "")
    if "audio/" not in content_type:
        logger.error("Received non-audio response: %s", response.text[:500])
        raise PollinationsError(f"Unexpected content type: {content_type or 'unknown'}")
    return response.content


async def get_all_models() -> Dict[str, List[Dict[str, str]]]:
    try:
        async with async_client(timeout=config.POLLINATIONS_TIMEOUT) as client:
            image_response = await client.get(f"{config.POLLINATIONS_IMAGE_URL}/models")
            image_response.raise_for_status()
            text_response = await client.get(f"{config.POLLINATIONS_TEXT_URL}/models")
            text_response.raise_for_status()
        image_models = image_response.json()
        text_data = text_response.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("Error fetching Pollinations.AI models: %s", exc)
        return {"imageModels": [], "textModels": [], "audioVoices": []}

    text_models: List[Dict[str, str]] = []
    audio_voices: List[Dict[str, str]] = []
    if isinstance(text_data, list):
        for model in text_data:
            model_id = model.get("name") if isinstance(model, dict) else model
            text_models.append({"id": str(model_id)})
    elif isinstance(text_data, dict):
        text_models = [{"id": key} for key in text_data if key != "openai-audio"]
        voices = (text_data.get("openai-audio") or {}).get("voices")
        if isinstance(voices, list):
            audio_voices = [{"id": voice} for voice in voices]
    return {
        "imageModels": [{"id": str(model)} for model in image_models] if isinstance(image_models, list) else [],
        "textModels": text_models,
        "audioVoices": audio_voices,
    }


async def generate_text(
    prompt: str,
    model: Optional[str] = None,
    seed: Optional[int] = None,
    system: Optional[str] = None,
    json_mode: bool = False,
) -> str:
    params: Dict[str, Any] = {}
    if model:
        params["model"] = model
    if seed:
        params["seed"] = seed
    if system:
        params["system"] = system
    if json_mode:
        params["json"] = "true"
    url = f"{config.POLLINATIONS_TEXT_URL}/{quote(prompt, safe='')}"
    try:
        async with async_client(timeout=config.POLLINATIONS_TIMEOUT) as client:
            response = await client.get(url, params=params)
    except httpx.HTTPError as exc:
        raise PollinationsError(f"Failed to generate text: {exc}") from exc
    if response.status_code >= 400:
        raise PollinationsError(f"Failed to generate text: {response.reason_phrase}")
    return response.text


def generate_image_url(
    prompt: str,
    model: Optional[str] = None,
    width: Optional[int] = None,
    height: Optional[int] = None,
    seed: Optional[int] = None,
    nologo: bool = False,
    enhance: bool = False,
) -> str:
    params: Dict[str, Any] = {}
    if model:
        params["model"] = model
    if width:
        params["width"] = width
    if height:
        params["height"] = height
    if seed:
        params["seed"] = seed
    if nologo:
        params["nologo"] = "true"
    if enhance:
        params["enhance"] = "true"
    return f"{config.POLLINATIONS_IMAGE_URL}/prompt/{quote(prompt, safe='')}?{urlencode(params)}"


def get_audio_url(text: str, voice: str = "alloy") -> str:
    params = urlencode({"model": "openai-audio", "voice": voice})
    return f"{config.POLLINATIONS_TEXT_URL}/{quote(text, safe='')}?{params}"
