from __future__ import annotations

from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from smart_proposal.logging_config import get_logger
from smart_proposal.services import scraper, tools

router = APIRouter(prefix="/api/tools", tags=["tools"])
logger = get_logger("routes.tools")


class PersonaRequest(BaseModel):
    name: Optional[str] = None
    title: Optional[str] = None
    company: Optional[str] = None


class ICPRequest(BaseModel):
    customers: Optional[str] = None


class ScannerRequest(BaseModel):
    url: Optional[str] = None


class DetectRequest(BaseModel):
    message: Optional[str] = None


@router.get("")
async def list_tools():
    return {"tools": tools.AVAILABLE_TOOLS}


@router.post("/detect")
async def detect_tool(body: DetectRequest):
    message = body.message or ""
    tool = tools.detect_tool_request(message)
    if tool is None:
        return {"tool": None, "parameters": {}, "ready": False}
    parameters = tools.extract_parameters(message, tool)
    return {"tool": tool, "parameters": parameters, "ready": tools.has_all_required_parameters(parameters, tool)}


@router.post("/executive-persona")
async def executive_persona(body: PersonaRequest):
    if not body.name or not body.title or not body.company:
        return JSONResponse({"error": "Name, title, and company are required"}, status_code=400)
    return await tools.executive_persona(body.name, body.title, body.company)


@router.post("/icp-builder")
async def icp_builder(body: ICPRequest):
    if not body.customers:
        return JSONResponse({"error": "Customer data is required"}, status_code=400)
    customer_list = tools.parse_customers(body.customers)
    if not customer_list:
        return JSONResponse({"error": "At least one customer example is required"}, status_code=400)
    return await tools.build_icp(customer_list)


@router.post("/website-scanner")
async def website_scanner(body: ScannerRequest):
    if not body.url or not body.url.strip():
        return JSONResponse({"error": "URL is required"}, status_code=400)
    try:
        return await tools.website_scanner(body.url)
    except scraper.ScrapeError as exc:
        logger.warning("Website scanner failed for %s: %s", body.url, exc.error)
        return JSONResponse({"error": "Failed to analyze website", "details": exc.error}, status_code=exc.status_code)
