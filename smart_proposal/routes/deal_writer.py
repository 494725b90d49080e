from __future__ import annotations

import html
import io
from typing import Optional

from fastapi import APIRouter
from fastapi.responses import HTMLResponse, JSONResponse, StreamingResponse
from pydantic import BaseModel

from smart_proposal.logging_config import get_logger
from smart_proposal.services import deal_writer
from smart_proposal.services.exports import EXPORTERS, MEDIA_TYPES

router = APIRouter(tags=["deal-writer"])
logger = get_logger("routes.deal_writer")


class DealRequest(BaseModel):
    companyUrl: Optional[str] = None
    executiveName: Optional[str] = None
    companyName: Optional[str] = None
    offeringDetails: Optional[str] = None
    proposalGoal: Optional[str] = None
    format: Optional[str] = "email"


PROPOSAL_TEMPLATE = """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1.0" />
    <title>Proposal for {{ company }}</title>
    <style>
        body { font-family:'Inter',system-ui,sans-serif; background:#0f0f0f; color:#fff; margin:0; }
        .page { max-width:900px; margin:0 auto; padding:40px 20px 80px; }
        section { background:#131313; border:1px solid rgba(255,255,255,0.08); border-radius:24px; padding:26px; margin-bottom:24px; }
        .meta { color:rgba(255,255,255,0.6); margin-bottom:6px; }
        pre { white-space:pre-wrap; font-family:inherit; line-height:1.6; }
        a.link { color:#2563eb; text-decoration:none; margin-right:12px; }
    </style>
</head>
<body>
    <div class="page">
        <h1>Proposal for {{ company }}</h1>
        <p class="meta">Prepared for {{ executive }} · {{ timestamp }}</p>
        <section>
            <pre>{{ proposal }}</pre>
        </section>
        <section>
            <h2>Website intelligence</h2>
            <ul>{{ insights }}</ul>
        </section>
        <p>
            <a class="link" href="/api/proposal/{{ id }}/download?format=json">JSON</a>
            <a class="link" href="/api/proposal/{{ id }}/download?format=docx">DOCX</a>
            <a class="link" href="/api/proposal/{{ id }}/download?format=xlsx">XLSX</a>
        </p>
    </div>
</body>
</html>
"""


def render_proposal_page(record: dict) -> str:
    inputs = record.get("input") or {}
    analysis = (record.get("websiteAnalysis") or {}).get("analysis") or {}
    insights = "".join(
        f"<li><strong>{html.escape(str(key))}:</strong> {html.escape(str(value))}</li>" for key, value in analysis.items()
    )
    return (
        PROPOSAL_TEMPLATE.replace("{{ company }}", html.escape(str(inputs.get("companyName", ""))))
        .replace("{{ executive }}", html.escape(str(inputs.get("executiveName", ""))))
        .replace("{{ timestamp }}", html.escape(str(record.get("timestamp", ""))))
        .replace("{{ proposal }}", html.escape(str(record.get("proposal", ""))))
        .replace("{{ insights }}", insights or "<li>No website insights recorded.</li>")
        .replace("{{ id }}", html.escape(str(record.get("id", ""))))
    )


@router.post("/api/contextual-deal-writer")
async def contextual_deal_writer(body: DealRequest):
    payload = body.model_dump()
    if deal_writer.missing_fields(payload):
        return JSONResponse(
            {
                "error": "Required fields missing",
                "details": "Please provide companyUrl, executiveName, companyName, offeringDetails, and proposalGoal",
            },
            status_code=400,
        )
    try:
        return await deal_writer.write_deal(payload)
    except Exception as exc:
        logger.exception("Contextual deal writer failed")
        return JSONResponse({"error": "Contextual deal writer failed", "details": str(exc)}, status_code=500)


@router.get("/api/proposal/{proposal_id}")
async def get_proposal(proposal_id: str):
    try:
        return deal_writer.get_proposal(proposal_id)
    except deal_writer.ProposalStoreError as exc:
        return JSONResponse({"error": exc.error}, status_code=exc.status_code)


@router.get("/api/proposal/{proposal_id}/download")
async def download_proposal(proposal_id: str, format: str = "json"):
    exporter = EXPORTERS.get(format)
    if exporter is None:
        return JSONResponse({"error": f"Unsupported format: {format}"}, status_code=400)
    try:
        record = deal_writer.get_proposal(proposal_id)
    except deal_writer.ProposalStoreError as exc:
        return JSONResponse({"error": exc.error}, status_code=exc.status_code)
    return StreamingResponse(
        io.BytesIO(exporter(record)),
        media_type=MEDIA_TYPES[format],
        headers={"Content-Disposition": f'attachment; filename="proposal_{proposal_id}.{format}"'},
    )


@router.get("/proposal/{proposal_id}", response_class=HTMLResponse)
async def proposal_page(proposal_id: str) -> HTMLResponse:
    try:
        record = deal_writer.get_proposal(proposal_id)
    except deal_writer.ProposalStoreError as exc:
        return HTMLResponse(html.escape(exc.error), status_code=exc.status_code)
    return HTMLResponse(render_proposal_page(record))
