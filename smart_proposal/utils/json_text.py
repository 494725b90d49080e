from __future__ import annotations

import json
import re
from typing import Any, Optional

FENCED_JSON_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")


def extract_json_object(raw: str) -> Optional[Any]:
    """Parse the outermost ``{...}`` in ``raw``; ``None`` when there is none."""
    raw = (raw or "").strip()
    start, end = raw.find("{"), raw.rfind("}")
    if start == -1 or end <= start:
        return None
    try:
        return json.loads(raw[start : end + 1])
    except ValueError:
        return None


def extract_json_array(raw: str) -> Optional[Any]:
    raw = (raw or "").strip()
    start, end = raw.find("["), raw.rfind("]")
    if start == -1 or end <= start:
        return None
    try:
        return json.loads(raw[start : end + 1])
    except ValueError:
        return None


def extract_json(raw: str) -> Optional[Any]:
    """Fenced ```json block first, then the raw text, then the first object."""
    raw = raw or ""
    match = FENCED_JSON_RE.search(raw)
    candidates = [match.group(1)] if match else []
    candidates.append(raw.strip())
    for candidate in candidates:
        try:
            return json.loads(candidate)
        except ValueError:
            continue
    return extract_json_object(raw)


def clean_json_string(value: str) -> str:
    """Repair the usual damage in model-written JSON objects."""
    cleaned = (value or "").strip()
    cleaned = re.sub(r"```json|```", "", cleaned).strip()
    cleaned = re.sub(r"[\x00-\x1f\x7f-\x9f]", "", cleaned)
    cleaned = re.sub(r",\s*}", "}", cleaned)
    cleaned = re.sub(r",\s*]", "]", cleaned)
    # bare or single-quoted keys
    cleaned = re.sub(r"([{,]\s*)'?([A-Za-z0-9_]+)'?\s*:", r'\1"\2":', cleaned)
    cleaned = re.sub(r":\s*'", ': "', cleaned)
    cleaned = re.sub(r"'\s*([,}\]])", r'"\1', cleaned)
    if not cleaned.startswith("{"):
        cleaned = "{" + cleaned
    if not cleaned.endswith("}"):
        cleaned = cleaned + "}"
    return cleaned
