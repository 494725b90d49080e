from __future__ import annotations

import io
import uuid
from pathlib import Path
from typing import Tuple

from docx import Document
from pdfminer.high_level import extract_text as pdf_extract_text

from smart_proposal import config
from smart_proposal.logging_config import get_logger

logger = get_logger("files")

TEXT_SUFFIXES = (".txt", ".md", ".markdown", ".csv")


def uploads_dir() -> Path:
    path = config.data_dir() / "uploads"
    path.mkdir(parents=True, exist_ok=True)
    return path


async def save_upload(upload) -> Tuple[Path, bytes]:
    data = await upload.read()
    filename = Path(upload.filename or "upload").name
    target = uploads_dir() / f"{uuid.uuid4()}-{filename}"
    target.write_bytes(data)
    return target, data


def extract_text(filename: str, content_type: str, data: bytes) -> str:
    """Plain text of an uploaded knowledge file, or "" when the format is unsupported."""
    if not data:
        return ""
    filename = (filename or "").lower()
    content_type = (content_type or "").lower()
    if filename.endswith(".pdf") or "pdf" in content_type:
        return extract_pdf(data)
    if filename.endswith(".docx") or "wordprocessingml" in content_type:
        return extract_docx(data)
    if filename.endswith(TEXT_SUFFIXES) or content_type.startswith("text/"):
        return data.decode("utf-8", errors="ignore")
    return ""


def extract_pdf(data: bytes) -> str:
    try:
        return pdf_extract_text(io.BytesIO(data)).strip()
    except Exception as exc:
        logger.warning("PDF text extraction failed: %s", exc)
        return ""


def extract_docx(data: bytes) -> str:
    try:
        document = Document(io.BytesIO(data))
        return "\n".join(p.text for p in document.paragraphs if p.text).strip()
    except Exception as exc:
        logger.warning("DOCX text extraction failed: %s", exc)
        return ""
