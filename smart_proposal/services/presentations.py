from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from smart_proposal.logging_config import get_logger
from smart_proposal.services import pollinations
from smart_proposal.utils.json_text import extract_json, extract_json_array

logger = get_logger("presentations")

LAYOUT_OPTIONS = ["standard", "image_left", "image_right", "cycle", "staircase"]


class OutlineError(ValueError):
    pass


def is_valid_outline(outline: Any) -> bool:
    return isinstance(outline, list) and all(
        isinstance(slide, dict)
        and isinstance(slide.get("title"), str)
        and isinstance(slide.get("points"), list)
        and all(isinstance(point, str) for point in slide["points"])
        for slide in outline
    )


def outline_prompt(topic: str, num_slides: Any, language: Any, page_style: Any) -> str:
    return f"""You are an expert presentation creator. Generate a presentation outline based on the following:
- Topic: {topic}
- Number of slides: {num_slides}
- Language: {language}
- Page style: {page_style}

Instructions:
- Create exactly {num_slides} slides (or as close as makes sense for the topic).
- For each slide, provide a title and 2-5 bullet points.
- Output ONLY a valid JSON array of objects, where each object is a slide: {{ "title": "Slide Title", "points": ["Bullet point 1", "Bullet point 2"] }}
- Do not include any explanation, markdown, or text outside the JSON array.

Example output:
[
  {{ "title": "Introduction to Quantum Computing", "points": ["Definition of quantum computing", "Brief history", "Why it matters"] }},
  {{ "title": "Key Concepts", "points": ["Qubits", "Superposition", "Entanglement"] }}
]
"""


async def generate_outline(
    topic: str, num_slides: Any = 5, language: Any = "English", page_style: Any = "professional", model: Optional[str] = None
) -> List[Dict[str, Any]]:
    raw = await pollinations.generate_text(outline_prompt(topic, num_slides, language, page_style), model=model or "openai")
    try:
        outline = json.loads(raw)
    except ValueError:
        outline = extract_json_array(raw)
        if outline is None:
            raise OutlineError("Failed to parse AI response as JSON.")
    if not is_valid_outline(outline):
        raise OutlineError("AI response JSON structure invalid.")
    return outline


def slides_prompt(outline: List[Dict[str, Any]], page_style: Optional[str]) -> str:
    outlines = "\n".join(
        f'Slide {index}: Title: "{slide["title"]}", Points: [{", ".join(chr(34) + p + chr(34) for p in slide["points"])}]'
        for index, slide in enumerate(outline, start=1)
    )
    style = f'Use a "{page_style}" style/tone.' if page_style else ""
    layouts = ", ".join(LAYOUT_OPTIONS)
    return f"""You are an expert presentation writer. Generate content for a presentation based on the following outlines:
{outlines}

For EACH slide, you MUST:
1. Generate a compelling title.
2. Generate detailed, presentation-friendly textContent expanding on the provided points. {style}
3. Analyze the generated content and choose the MOST appropriate layoutType from this list: [{layouts}]. Use 'cycle' or 'staircase' for lists/processes, 'image_left'/'image_right' if an image would be prominent, otherwise 'standard'.
4. If layoutType is 'cycle' or 'staircase', extract the key steps/items into a structured array called 'items'. If not applicable, omit the 'items' key.
5. Respond with ONLY a valid JSON object containing a single key "slides". The value of "slides" must be an array of JSON objects, where each object represents a slide and has the keys: "title" (string), "textContent" (string), "layoutType" (string from the allowed list), and optionally "items" (array of strings).

Example structure:
{{
  "slides": [
    {{ "title": "...", "textContent": "...", "layoutType": "standard" }},
    {{ "title": "...", "textContent": "...", "layoutType": "cycle", "items": ["...", "..."] }}
  ]
}}
"""


def image_prompt(slide: Dict[str, Any], topic: str, page_style: str) -> str:
    text = str(slide.get("textContent") or "")
    brief = text[:150] + "..." if len(text) > 150 else text
    layout = slide.get("layoutType")
    if layout in ("image_left", "image_right"):
        hint = "illustrative, suitable as a background or side visual"
    elif layout in ("cycle", "staircase"):
        hint = "diagram, process, or flow illustration"
    else:
        hint = "content-focused, visually appealing"
    return (
        f'Generate a visually appealing image for a {page_style} presentation slide titled "{slide.get("title")}". '
        f'The slide content discusses: "{brief}". The overall presentation topic is "{topic}". '
        f"Style should be {hint}. Image should be suitable as a primary visual or background for the slide content."
    )


async def generate_slides(
    outline: List[Dict[str, Any]], page_style: Optional[str] = None, model: Optional[str] = None, topic: str = ""
) -> List[Dict[str, Any]]:
    if not is_valid_outline(outline):
        raise OutlineError("Invalid or missing outline.")

    slides: List[Dict[str, Any]] = []
    try:
        raw = await pollinations.generate_text(slides_prompt(outline, page_style), model=model or "openai", json_mode=True)
        parsed = extract_json(raw)
        if not isinstance(parsed, dict) or not isinstance(parsed.get("slides"), list):
            raise pollinations.PollinationsError("Invalid JSON structure received from LLM.")
        slides = [slide for slide in parsed["slides"] if isinstance(slide, dict)]
    except pollinations.PollinationsError as exc:
        logger.warning("Slide generation failed, building basic slides: %s", exc)
    if not slides:
        slides = [
            {"title": slide["title"], "textContent": "\n".join(slide["points"]), "layoutType": "standard"}
            for slide in outline
        ]

    results = []
    for slide in slides:
        image_url = pollinations.generate_image_url(
            image_prompt(slide, topic or "", page_style or "professional"),
            model="turbo",
            width=1024,
            height=768,
            nologo=True,
        )
        result = {
            "title": slide.get("title", ""),
            "textContent": slide.get("textContent", ""),
            "imageUrl": image_url,
            "layoutType": slide.get("layoutType") or "standard",
        }
        if slide.get("items"):
            result["items"] = slide["items"]
        results.append(result)
    return results
