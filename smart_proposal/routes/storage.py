from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from smart_proposal.services.storage import (
    crm_storage,
    job_storage,
    proposal_storage,
    storage_utils,
    user_preferences,
)

router = APIRouter(prefix="/api/storage", tags=["storage"])

COLLECTIONS = {
    "jobs": job_storage,
    "proposals": proposal_storage,
    "crm": crm_storage,
}


class NoteRequest(BaseModel):
    content: Optional[str] = None
    type: str = "general"


class StatusRequest(BaseModel):
    status: Optional[str] = None


class PreferenceRequest(BaseModel):
    value: Any = None


def _error(status_code: int, error: str, details: str = "") -> JSONResponse:
    return JSONResponse({"error": error, "details": details}, status_code=status_code)


@router.get("/stats")
async def storage_stats():
    return {"available": storage_utils.is_storage_available(), "bytes": storage_utils.get_storage_stats()}


@router.get("/export")
async def export_data():
    return storage_utils.export_all_data()


@router.post("/import")
async def import_data(data: Dict[str, Any] = Body(...)):
    return {"imported": storage_utils.import_all_data(data)}


@router.delete("/all")
async def clear_data():
    storage_utils.clear_all_data()
    return {"cleared": True}


@router.get("/preferences")
async def get_preferences():
    return user_preferences.get_preferences()


@router.put("/preferences/{key}")
async def set_preference(key: str, body: PreferenceRequest):
    user_preferences.set_preference(key, body.value)
    return user_preferences.get_preferences()


@router.delete("/preferences/{key}")
async def remove_preference(key: str):
    user_preferences.remove_preference(key)
    return user_preferences.get_preferences()


@router.post("/jobs/{job_id}/notes")
async def add_job_note(job_id: str, body: NoteRequest):
    if not body.content or not body.content.strip():
        return _error(400, "Note content is required")
    job = job_storage.add_note(job_id, body.content, body.type)
    if job is None:
        return _error(404, "Job not found")
    return job


@router.put("/jobs/{job_id}/status")
async def update_job_status(job_id: str, body: StatusRequest):
    if body.status not in job_storage.STATUSES:
        return _error(400, "Invalid job status", ", ".join(job_storage.STATUSES))
    job = job_storage.update_status(job_id, body.status)
    if job is None:
        return _error(404, "Job not found")
    return job


@router.delete("/preferences")
async def clear_preferences():
    user_preferences.clear_all_preferences()
    return user_preferences.get_preferences()


@router.get("/{collection}")
async def list_records(
    collection: str,
    status: Optional[str] = None,
    company: Optional[str] = None,
    stage: Optional[str] = None,
    jobId: Optional[str] = None,
):
    manager = COLLECTIONS.get(collection)
    if manager is None:
        return _error(404, "Unknown collection", collection)
    if status and collection == "jobs":
        return job_storage.get_by_status(status)
    if stage and collection == "crm":
        return crm_storage.get_by_stage(stage)
    if jobId and collection == "proposals":
        return proposal_storage.get_by_job_id(jobId)
    if company and collection in ("jobs", "crm"):
        return manager.get_by_company(company)
    return manager.get_all()


@router.post("/{collection}")
async def create_record(collection: str, data: Dict[str, Any] = Body(...)):
    manager = COLLECTIONS.get(collection)
    if manager is None:
        return _error(404, "Unknown collection", collection)
    return JSONResponse(jsonable_encoder(manager.create(data)), status_code=201)


@router.get("/{collection}/{record_id}")
async def get_record(collection: str, record_id: str):
    manager = COLLECTIONS.get(collection)
    if manager is None:
        return _error(404, "Unknown collection", collection)
    record = manager.get_by_id(record_id)
    if record is None:
        return _error(404, "Record not found", record_id)
    return record


@router.put("/{collection}/{record_id}")
async def update_record(collection: str, record_id: str, data: Dict[str, Any] = Body(...)):
    manager = COLLECTIONS.get(collection)
    if manager is None:
        return _error(404, "Unknown collection", collection)
    record = manager.update(record_id, data)
    if record is None:
        return _error(404, "Record not found", record_id)
    return record


@router.delete("/{collection}/{record_id}")
async def delete_record(collection: str, record_id: str):
    manager = COLLECTIONS.get(collection)
    if manager is None:
        return _error(404, "Unknown collection", collection)
    if not manager.delete(record_id):
        return _error(404, "Record not found", record_id)
    return {"deleted": True}
