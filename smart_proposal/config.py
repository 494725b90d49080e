from __future__ import annotations

import os
from pathlib import Path


ROOT_DIR = Path(__file__).resolve().parents[1]

APP_URL = os.getenv("SMART_PROPOSAL_APP_URL") or os.getenv("NEXT_PUBLIC_APP_URL") or "http://localhost:3003"
LOG_LEVEL = os.getenv("SMART_PROPOSAL_LOG_LEVEL", "INFO")

ZAI_API_URL = os.getenv("ZAI_API_URL", "https://api.z.ai/api/paas/v4/chat/completions")
ZAI_API_KEY = os.getenv("ZAI_API_KEY", "")
ZAI_MODEL = os.getenv("ZAI_MODEL", "glm-4.5-flash")
ZAI_FALLBACK_MODELS = [
    model.strip() for model in os.getenv("ZAI_FALLBACK_MODELS", "glm-4.5-air,glm-4.5").split(",") if model.strip()
][:2]
ZAI_TIMEOUT = float(os.getenv("ZAI_TIMEOUT", "30"))

SERPER_API_KEY = os.getenv("SERPER_API_KEY", "")
SERPER_BASE_URL = os.getenv("SERPER_BASE_URL", "https://google.serper.dev")

POLLINATIONS_TEXT_URL = os.getenv("POLLINATIONS_TEXT_URL", "https://text.pollinations.ai")
POLLINATIONS_IMAGE_URL = os.getenv("POLLINATIONS_IMAGE_URL", "https://image.pollinations.ai")
POLLINATIONS_TIMEOUT = float(os.getenv("POLLINATIONS_TIMEOUT", "120"))

SCRAPER_TIMEOUT = float(os.getenv("SCRAPER_TIMEOUT", "30"))


def data_dir() -> Path:
    # read on every call; the env var may change at runtime
    path = Path(os.getenv("SMART_PROPOSAL_DATA_DIR", str(ROOT_DIR / "data")))
    path.mkdir(parents=True, exist_ok=True)
    return path
