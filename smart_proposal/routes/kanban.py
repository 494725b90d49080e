from __future__ import annotations

from dataclasses import asdict
from typing import List, Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from smart_proposal.logging_config import get_logger
from smart_proposal.services import pollinations
from smart_proposal.services.kanban import Pipeline, board

router = APIRouter(prefix="/api/kanban", tags=["kanban"])
logger = get_logger("routes.kanban")


class PipelineRequest(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    type: str = "tasks"
    stages: List[str] = []


class ActivePipelineRequest(BaseModel):
    pipelineId: Optional[str] = None


class DragRequest(BaseModel):
    activeId: Optional[str] = None
    overId: Optional[str] = None


class GoalRequest(BaseModel):
    goal: Optional[str] = None


@router.get("")
async def get_board():
    return board.snapshot()


@router.post("/pipelines")
async def add_pipeline(body: PipelineRequest):
    if not body.id or not body.name or not body.stages:
        return JSONResponse({"error": "Pipeline id, name and stages are required", "details": ""}, status_code=400)
    try:
        pipeline = board.add_pipeline(Pipeline(body.id, body.name, body.type, list(body.stages)))
    except ValueError as exc:
        return JSONResponse({"error": str(exc), "details": ""}, status_code=400)
    return asdict(pipeline)


@router.put("/active")
async def set_active(body: ActivePipelineRequest):
    try:
        board.set_active_pipeline(body.pipelineId or "")
    except KeyError:
        return JSONResponse({"error": "Pipeline not found", "details": body.pipelineId}, status_code=404)
    return board.snapshot()


@router.post("/drag-over")
async def drag_over(body: DragRequest):
    moved = board.drag_over(body.activeId or "", body.overId)
    return {"moved": moved, **board.snapshot()}


@router.post("/drag-end")
async def drag_end(body: DragRequest):
    moved = board.drag_end(body.activeId or "", body.overId)
    return {"moved": moved, **board.snapshot()}


@router.post("/generate-tasks")
async def generate_tasks(body: GoalRequest):
    try:
        tasks = await board.generate_tasks(body.goal or "")
    except ValueError as exc:
        return JSONResponse({"error": str(exc), "details": ""}, status_code=400)
    except pollinations.PollinationsError as exc:
        logger.error("Task generation failed: %s", exc)
        return JSONResponse({"error": "Failed to generate tasks", "details": str(exc)}, status_code=500)
    return {"tasks": [asdict(task) for task in tasks], **board.snapshot()}


@router.post("/reset")
async def reset_board():
    board.reset()
    return board.snapshot()
