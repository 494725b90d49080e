from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import HTMLResponse

from smart_proposal.services.analytics import all_counters

router = APIRouter(prefix="/admin", tags=["admin"])

COUNTER_LABELS = {
    "proposals_generated": "Proposals generated",
    "analyses": "Company analyses",
    "fallback_analyses": "Fallback analyses",
    "chat_requests": "Chat requests",
    "agents_created": "Agents created",
    "scrapes": "Websites scraped",
}

ADMIN_TEMPLATE = """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1.0" />
    <title>Stats · Smart Proposal Studio</title>
    <style>
        body { font-family:'Inter',system-ui,sans-serif; background:#0f0f0f; color:#fff; margin:0; }
        .page { max-width:900px; margin:0 auto; padding:40px 20px; }
        .grid { display:grid; grid-template-columns:repeat(auto-fit,minmax(200px,1fr)); gap:18px; }
        .card { background:#141414; padding:24px; border-radius:20px; border:1px solid rgba(255,255,255,0.08); }
        .card span { display:block; color:rgba(255,255,255,0.6); margin-bottom:6px; }
    </style>
</head>
<body>
    <div class="page">
        <h1>Usage</h1>
        <div class="grid">{{ cards }}</div>
    </div>
</body>
</html>
"""


@router.get("/", response_class=HTMLResponse)
async def admin_page() -> HTMLResponse:
    counters = all_counters()
    cards = "".join(
        f'<div class="card"><span>{label}</span><strong>{counters.get(key, 0)}</strong></div>'
        for key, label in COUNTER_LABELS.items()
    )
    return HTMLResponse(ADMIN_TEMPLATE.replace("{{ cards }}", cards))
