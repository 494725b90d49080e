from __future__ import annotations

import io
import json
from typing import Any, Dict, List

from docx import Document
from openpyxl import Workbook

MEDIA_TYPES = {
    "json": "application/json",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


def _cell(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return json.dumps(value, ensure_ascii=False)


def _list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def proposal_to_json(record: Dict[str, Any]) -> bytes:
    return json.dumps(record, ensure_ascii=False, indent=2).encode("utf-8")


def proposal_to_docx(record: Dict[str, Any]) -> bytes:
    inputs = record.get("input") or {}
    profile = record.get("executiveProfile") or {}
    analysis = (record.get("websiteAnalysis") or {}).get("analysis") or {}

    doc = Document()
    doc.add_heading(f"Proposal for {inputs.get('companyName', '')}", level=1)
    doc.add_paragraph(f"Date: {record.get('timestamp')}")
    doc.add_paragraph(f"Executive: {inputs.get('executiveName', '')}")
    doc.add_paragraph(f"Goal: {inputs.get('proposalGoal', '')}")

    for line in str(record.get("proposal") or "").splitlines():
        stripped = line.strip()
        if stripped.startswith("#"):
            level = min(len(stripped) - len(stripped.lstrip("#")), 3)
            doc.add_heading(stripped.lstrip("#").strip(), level=level)
        elif stripped.startswith(("- ", "* ")):
            doc.add_paragraph(stripped[2:], style="List Bullet")
        elif stripped:
            doc.add_paragraph(stripped)

    if analysis:
        doc.add_heading("Website intelligence", level=2)
        for key, value in analysis.items():
            doc.add_paragraph(f"{key}: {value}")
    tips = _list(profile.get("communicationTips"))
    if tips:
        doc.add_heading("Communication tips", level=2)
        for tip in tips:
            doc.add_paragraph(str(tip), style="List Bullet")

    buffer = io.BytesIO()
    doc.save(buffer)
    buffer.seek(0)
    return buffer.read()


def proposal_to_xlsx(record: Dict[str, Any]) -> bytes:
    inputs = record.get("input") or {}
    profile = record.get("executiveProfile") or {}
    analysis = (record.get("websiteAnalysis") or {}).get("analysis") or {}

    wb = Workbook()
    ws = wb.active
    ws.title = "Proposal"
    ws.append(["Field", "Value"])
    ws.append(["ID", record.get("id")])
    ws.append(["Date", record.get("timestamp")])
    for key, value in inputs.items():
        ws.append([key, _cell(value)])
    ws.append(["Proposal", record.get("proposal")])

    sheet = wb.create_sheet("Website analysis")
    sheet.append(["Section", "Insight"])
    for key, value in analysis.items():
        sheet.append([key, _cell(value)])

    sheet = wb.create_sheet("Executive profile")
    disc = profile.get("discProfile")
    sheet.append(["Field", "Value"])
    sheet.append(["Summary", _cell(profile.get("profileSummary"))])
    sheet.append(["Style", _cell(profile.get("inferredStyle"))])
    sheet.append(["DISC", _cell(disc.get("primaryType") if isinstance(disc, dict) else disc)])
    sheet.append(["Tips", "; ".join(str(tip) for tip in _list(profile.get("communicationTips")))])

    buffer = io.BytesIO()
    wb.save(buffer)
    buffer.seek(0)
    return buffer.read()


EXPORTERS = {
    "json": proposal_to_json,
    "docx": proposal_to_docx,
    "xlsx": proposal_to_xlsx,
}
