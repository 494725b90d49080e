from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, File, Form, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from smart_proposal.logging_config import get_logger
from smart_proposal.services import agents as agent_service
from smart_proposal.services import pollinations

router = APIRouter(prefix="/api/agent-studio", tags=["agent-studio"])
logger = get_logger("routes.agent_studio")


class AgentUpdate(BaseModel):
    name: Optional[str] = None
    systemPrompt: Optional[str] = None
    knowledgeSources: Optional[List[Dict[str, Any]]] = None
    settings: Optional[Dict[str, Any]] = None
    status: Optional[str] = None


class RunRequest(BaseModel):
    query: Any = None


def _not_found() -> JSONResponse:
    return JSONResponse({"error": "Agent not found", "details": ""}, status_code=404)


@router.get("")
async def list_agents():
    return agent_service.read_agents()


@router.post("")
async def create_agent(
    name: str = Form(""),
    systemPrompt: str = Form(""),
    status: Optional[str] = Form(None),
    settings: Optional[str] = Form(None),
    otherKnowledgeSources: Optional[str] = Form(None),
    knowledgeFiles: Optional[List[UploadFile]] = File(None),
):
    if not name.strip() or not systemPrompt.strip():
        return JSONResponse(
            {"error": "Missing required fields: name and systemPrompt", "details": ""}, status_code=400
        )
    agent = await agent_service.create_agent(
        name=name.strip(),
        system_prompt=systemPrompt,
        status=status,
        settings_raw=settings,
        knowledge_files=knowledgeFiles,
        other_sources_raw=otherKnowledgeSources,
    )
    return JSONResponse(agent, status_code=201)


@router.get("/{agent_id}")
async def get_agent(agent_id: str):
    agent = agent_service.get_agent(agent_id)
    if agent is None:
        return _not_found()
    return agent


@router.put("/{agent_id}")
async def update_agent(agent_id: str, body: AgentUpdate):
    agent = agent_service.update_agent(agent_id, body.model_dump(exclude_none=True))
    if agent is None:
        return _not_found()
    return agent


@router.delete("/{agent_id}")
async def delete_agent(agent_id: str):
    if not agent_service.delete_agent(agent_id):
        return _not_found()
    return {"message": "Agent deleted successfully"}


@router.post("/{agent_id}/run")
async def run_agent(agent_id: str, body: RunRequest):
    if not isinstance(body.query, str) or not body.query.strip():
        return JSONResponse({"error": "Missing or invalid query", "details": ""}, status_code=400)
    agent = agent_service.get_agent(agent_id)
    if agent is None:
        return _not_found()
    try:
        response = await agent_service.run_agent(agent, body.query)
    except pollinations.PollinationsError as exc:
        logger.error("Agent %s run failed: %s", agent_id, exc)
        return JSONResponse({"error": "Error running agent", "details": str(exc)}, status_code=500)
    return {"response": response}
