"""Key-value backed record stores.

Each collection is a single JSON array kept under a ``smart_proposal_*`` key
in the ``kv_store`` table. Reads parse the whole array, writes replace it,
so concurrent writers race and the last write wins.
"""

from __future__ import annotations

import json
import random
import string
import time
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from smart_proposal.database import connection
from smart_proposal.logging_config import get_logger

logger = get_logger("storage")

STORAGE_KEYS = {
    "JOBS": "smart_proposal_jobs",
    "PROPOSALS": "smart_proposal_proposals",
    "ANALYTICS": "smart_proposal_analytics",
    "CRM_RECORDS": "smart_proposal_crm",
    "COMPANY_ANALYSES": "smart_proposal_analyses",
    "RECOMMENDATIONS": "smart_proposal_recommendations",
    "TOOL_CONFIGURATIONS": "smart_proposal_tool_configs",
    "BLOG_POSTS": "smart_proposal_blog_posts",
    "WIDGETS": "smart_proposal_widgets",
    "USER_PREFERENCES": "smart_proposal_preferences",
}

MAX_ANALYTICS_EVENTS = 10_000

_BASE36 = string.digits + string.ascii_lowercase


def random_suffix(length: int = 9) -> str:
    return "".join(random.choice(_BASE36) for _ in range(length))


def timestamp_id(prefix: str = "") -> str:
    stamp = f"{int(time.time() * 1000)}-{random_suffix()}"
    return f"{prefix}-{stamp}" if prefix else stamp


def json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def parse_datetime(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return as_utc(datetime.fromisoformat(value))
        except ValueError:
            return value
    return value


def _read_key(key: str) -> Any:
    raw = connection.kv_get(key)
    if raw is None:
        return None
    return json.loads(raw)


def _write_key(key: str, value: Any) -> None:
    connection.kv_set(key, json.dumps(value, default=json_default, ensure_ascii=False))


class BaseStorageManager:
    """CRUD over one JSON array of records with ``id``/``createdAt``/``updatedAt``."""

    date_fields = ("createdAt", "updatedAt")

    def __init__(self, storage_key: str):
        self.storage_key = storage_key

    def generate_id(self) -> str:
        return timestamp_id()

    def _get_storage_data(self) -> List[Dict[str, Any]]:
        try:
            data = _read_key(self.storage_key)
        except (ValueError, TypeError) as exc:
            logger.error("Error reading storage key %s: %s", self.storage_key, exc)
            return []
        if not isinstance(data, list):
            return []
        items = []
        for item in data:
            if not isinstance(item, dict):
                continue
            for field in self.date_fields:
                if field in item:
                    item[field] = parse_datetime(item[field])
            items.append(item)
        return items

    def _set_storage_data(self, items: List[Dict[str, Any]]) -> None:
        _write_key(self.storage_key, items)

    def get_all(self) -> List[Dict[str, Any]]:
        return self._get_storage_data()

    def get_by_id(self, item_id: str) -> Optional[Dict[str, Any]]:
        return next((item for item in self._get_storage_data() if item.get("id") == item_id), None)

    def create(self, item_data: Dict[str, Any]) -> Dict[str, Any]:
        now = datetime.now(timezone.utc)
        data = {key: value for key, value in item_data.items() if key not in ("id", "createdAt", "updatedAt")}
        item = {**data, "id": self.generate_id(), "createdAt": now, "updatedAt": now}
        items = self._get_storage_data()
        items.append(item)
        self._set_storage_data(items)
        return item

    def update(self, item_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        items = self._get_storage_data()
        for index, item in enumerate(items):
            if item.get("id") == item_id:
                changes = {key: value for key, value in updates.items() if key not in ("id", "createdAt")}
                updated = {**item, **changes, "updatedAt": datetime.now(timezone.utc)}
                items[index] = updated
                self._set_storage_data(items)
                return updated
        return None

    def delete(self, item_id: str) -> bool:
        items = self._get_storage_data()
        remaining = [item for item in items if item.get("id") != item_id]
        if len(remaining) == len(items):
            return False
        self._set_storage_data(remaining)
        return True

    def clear(self) -> None:
        connection.kv_delete(self.storage_key)

    def search(self, query: Callable[[Dict[str, Any]], bool]) -> List[Dict[str, Any]]:
        return [item for item in self._get_storage_data() if query(item)]


class JobStorageManager(BaseStorageManager):
    STATUSES = ("draft", "sent", "viewed", "responded", "rejected", "hired", "archived")
    NOTE_TYPES = ("general", "follow_up", "meeting", "decision")

    def __init__(self):
        super().__init__(STORAGE_KEYS["JOBS"])

    def get_by_status(self, status: str) -> List[Dict[str, Any]]:
        return self.search(lambda job: job.get("status") == status)

    def get_by_company(self, company_name: str) -> List[Dict[str, Any]]:
        needle = company_name.lower()
        return self.search(lambda job: needle in str(job.get("companyName", "")).lower())

    def get_recent_jobs(self, days: int = 30) -> List[Dict[str, Any]]:
        cutoff = datetime.now(timezone.utc) - timedelta(days=days)
        recent = self.search(lambda job: isinstance(job.get("createdAt"), datetime) and job["createdAt"] >= cutoff)
        return sorted(recent, key=lambda job: job["createdAt"], reverse=True)

    def update_status(self, job_id: str, status: str) -> Optional[Dict[str, Any]]:
        return self.update(job_id, {"status": status})

    def add_note(self, job_id: str, note: str, note_type: str = "general") -> Optional[Dict[str, Any]]:
        job = self.get_by_id(job_id)
        if not job:
            return None
        new_note = {
            "id": f"note-{int(time.time() * 1000)}",
            "content": note,
            "createdAt": datetime.now(timezone.utc),
            "type": note_type,
        }
        return self.update(job_id, {"notes": [*job.get("notes", []), new_note]})


class ProposalStorageManager(BaseStorageManager):
    def __init__(self):
        super().__init__(STORAGE_KEYS["PROPOSALS"])

    def get_by_job_id(self, job_id: str) -> List[Dict[str, Any]]:
        return self.search(lambda proposal: (proposal.get("metadata") or {}).get("jobId") == job_id)

    def get_active_proposals(self) -> List[Dict[str, Any]]:
        return self.search(lambda proposal: bool(proposal.get("isActive")))

    def get_by_url(self, url: str) -> Optional[Dict[str, Any]]:
        matches = self.search(lambda proposal: proposal.get("url") == url)
        return matches[0] if matches else None

    def deactivate_proposal(self, proposal_id: str) -> Optional[Dict[str, Any]]:
        return self.update(proposal_id, {"isActive": False})

    def update_analytics(self, proposal_id: str, analytics: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        proposal = self.get_by_id(proposal_id)
        if not proposal:
            return None
        return self.update(proposal_id, {"analytics": {**(proposal.get("analytics") or {}), **analytics}})


class CRMStorageManager(BaseStorageManager):
    def __init__(self):
        super().__init__(STORAGE_KEYS["CRM_RECORDS"])

    def get_by_stage(self, stage: str) -> List[Dict[str, Any]]:
        return self.search(lambda record: record.get("stage") == stage)

    def get_by_company(self, company_name: str) -> List[Dict[str, Any]]:
        needle = company_name.lower()
        return self.search(lambda record: needle in str(record.get("companyName", "")).lower())


class AnalyticsStorageManager:
    def __init__(self):
        self.storage_key = STORAGE_KEYS["ANALYTICS"]

    def _get_storage_data(self) -> List[Dict[str, Any]]:
        try:
            data = _read_key(self.storage_key) or []
        except (ValueError, TypeError) as exc:
            logger.error("Error reading analytics events: %s", exc)
            return []
        return [{**event, "timestamp": parse_datetime(event.get("timestamp"))} for event in data if isinstance(event, dict)]

    def _set_storage_data(self, events: List[Dict[str, Any]]) -> None:
        _write_key(self.storage_key, events[-MAX_ANALYTICS_EVENTS:])

    def track_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
        analytics_event = {**event, "id": timestamp_id("event"), "timestamp": datetime.now(timezone.utc)}
        events = self._get_storage_data()
        events.append(analytics_event)
        self._set_storage_data(events)
        return analytics_event

    def get_events_by_proposal(self, proposal_id: str) -> List[Dict[str, Any]]:
        return [event for event in self._get_storage_data() if event.get("proposalId") == proposal_id]

    def get_events_by_type(self, event_type: str) -> List[Dict[str, Any]]:
        return [event for event in self._get_storage_data() if event.get("eventType") == event_type]

    def get_events_in_range(self, start: datetime, end: datetime) -> List[Dict[str, Any]]:
        start, end = as_utc(start), as_utc(end)
        return [
            event
            for event in self._get_storage_data()
            if isinstance(event["timestamp"], datetime) and start <= event["timestamp"] <= end
        ]

    def clear_old_events(self, days_to_keep: int = 90) -> None:
        cutoff = datetime.now(timezone.utc) - timedelta(days=days_to_keep)
        events = [
            event
            for event in self._get_storage_data()
            if isinstance(event["timestamp"], datetime) and event["timestamp"] >= cutoff
        ]
        self._set_storage_data(events)


class CompanyAnalysisStorageManager:
    def __init__(self):
        self.storage_key = STORAGE_KEYS["COMPANY_ANALYSES"]

    def _get_storage_data(self) -> List[Dict[str, Any]]:
        try:
            data = _read_key(self.storage_key) or []
        except (ValueError, TypeError) as exc:
            logger.error("Error reading company analyses: %s", exc)
            return []
        return [
            {**analysis, "analysisTimestamp": parse_datetime(analysis.get("analysisTimestamp"))}
            for analysis in data
            if isinstance(analysis, dict)
        ]

    def _set_storage_data(self, analyses: List[Dict[str, Any]]) -> None:
        _write_key(self.storage_key, analyses)

    def save(self, analysis: Dict[str, Any]) -> Dict[str, Any]:
        saved = {**analysis, "id": timestamp_id("analysis")}
        analyses = self._get_storage_data()
        analyses.append(saved)
        self._set_storage_data(analyses)
        return saved

    def get_by_company(self, company_name: str) -> List[Dict[str, Any]]:
        needle = company_name.lower()
        return [
            analysis
            for analysis in self._get_storage_data()
            if needle in str((analysis.get("companyProfile") or {}).get("name", "")).lower()
        ]

    def get_recent(self, limit: int = 10) -> List[Dict[str, Any]]:
        analyses = [a for a in self._get_storage_data() if isinstance(a["analysisTimestamp"], datetime)]
        analyses.sort(key=lambda analysis: analysis["analysisTimestamp"], reverse=True)
        return analyses[:limit]

    def delete(self, analysis_id: str) -> bool:
        analyses = self._get_storage_data()
        remaining = [analysis for analysis in analyses if analysis.get("id") != analysis_id]
        if len(remaining) == len(analyses):
            return False
        self._set_storage_data(remaining)
        return True


class UserPreferencesManager:
    def __init__(self):
        self.storage_key = STORAGE_KEYS["USER_PREFERENCES"]

    def get_preferences(self) -> Dict[str, Any]:
        try:
            data = _read_key(self.storage_key)
        except (ValueError, TypeError) as exc:
            logger.error("Error reading user preferences: %s", exc)
            return {}
        return data if isinstance(data, dict) else {}

    def set_preference(self, key: str, value: Any) -> None:
        preferences = self.get_preferences()
        preferences[key] = value
        _write_key(self.storage_key, preferences)

    def get_preference(self, key: str, default: Any = None) -> Any:
        return self.get_preferences().get(key, default)

    def remove_preference(self, key: str) -> None:
        preferences = self.get_preferences()
        preferences.pop(key, None)
        _write_key(self.storage_key, preferences)

    def clear_all_preferences(self) -> None:
        connection.kv_delete(self.storage_key)


class StorageUtils:
    def export_all_data(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for key in STORAGE_KEYS.values():
            try:
                value = _read_key(key)
            except ValueError as exc:
                logger.error("Error exporting data for key %s: %s", key, exc)
                continue
            if value is not None:
                data[key] = value
        return data

    def import_all_data(self, data: Dict[str, Any]) -> List[str]:
        imported = []
        for key, value in data.items():
            if key not in STORAGE_KEYS.values():
                logger.warning("Skipping import of unknown storage key %s", key)
                continue
            _write_key(key, value)
            imported.append(key)
        return imported

    def clear_all_data(self) -> None:
        for key in STORAGE_KEYS.values():
            connection.kv_delete(key)

    def get_storage_stats(self) -> Dict[str, int]:
        stats = {}
        for key in STORAGE_KEYS.values():
            raw = connection.kv_get(key)
            stats[key] = len(raw.encode("utf-8")) if raw else 0
        return stats

    def is_storage_available(self) -> bool:
        test_key = "__storage_test__"
        try:
            connection.kv_set(test_key, test_key)
            connection.kv_delete(test_key)
        except connection.sqlite3.Error as exc:
            logger.error("Storage unavailable: %s", exc)
            return False
        return True


job_storage = JobStorageManager()
proposal_storage = ProposalStorageManager()
crm_storage = CRMStorageManager()
analytics_storage = AnalyticsStorageManager()
company_analysis_storage = CompanyAnalysisStorageManager()
user_preferences = UserPreferencesManager()
storage_utils = StorageUtils()
