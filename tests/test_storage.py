"""
Record stores over the SQLite key-value table.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

from smart_proposal.database import connection
from smart_proposal.services import storage
from smart_proposal.services.storage import (
    STORAGE_KEYS,
    AnalyticsStorageManager,
    CompanyAnalysisStorageManager,
    JobStorageManager,
    ProposalStorageManager,
    StorageUtils,
    UserPreferencesManager,
    timestamp_id,
)


class TestBaseStorage:
    def test_create_assigns_id_and_timestamps(self):
        jobs = JobStorageManager()
        job = jobs.create({"title": "Landing page", "companyName": "Acme", "status": "draft"})

        assert re.fullmatch(r"\d+-[0-9a-z]{9}", job["id"])
        assert isinstance(job["createdAt"], datetime)
        assert job["createdAt"] == job["updatedAt"]

        stored = jobs.get_by_id(job["id"])
        assert stored["title"] == "Landing page"
        assert isinstance(stored["createdAt"], datetime)

    def test_update_merges_and_refreshes_updated_at(self):
        jobs = JobStorageManager()
        job = jobs.create({"title": "A", "status": "draft"})

        updated = jobs.update(job["id"], {"status": "sent"})

        assert updated["title"] == "A"
        assert updated["status"] == "sent"
        assert updated["updatedAt"] >= job["updatedAt"]
        assert jobs.update("missing", {"status": "sent"}) is None

    def test_delete_and_clear(self):
        jobs = JobStorageManager()
        first = jobs.create({"title": "one"})
        jobs.create({"title": "two"})

        assert jobs.delete(first["id"]) is True
        assert jobs.delete(first["id"]) is False
        assert [job["title"] for job in jobs.get_all()] == ["two"]

        jobs.clear()
        assert jobs.get_all() == []

    def test_timestamps_read_back_as_utc(self):
        connection.kv_set(
            STORAGE_KEYS["JOBS"],
            '[{"id": "1", "title": "old", "createdAt": "2024-05-01T09:30:00", "updatedAt": "2024-05-01T11:30:00+02:00"}]',
        )

        job = JobStorageManager().get_by_id("1")

        assert job["createdAt"] == datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)
        assert job["updatedAt"] == job["createdAt"]
        assert JobStorageManager().create({"title": "new"})["createdAt"].tzinfo is not None

    def test_corrupt_data_reads_as_empty(self):
        connection.kv_set(STORAGE_KEYS["JOBS"], "{not json")
        assert JobStorageManager().get_all() == []


class TestJobStorage:
    def test_filters(self):
        jobs = JobStorageManager()
        jobs.create({"title": "a", "companyName": "Acme Corp", "status": "draft"})
        jobs.create({"title": "b", "companyName": "Globex", "status": "sent"})

        assert [job["title"] for job in jobs.get_by_status("draft")] == ["a"]
        assert [job["title"] for job in jobs.get_by_company("acme")] == ["a"]

    def test_recent_jobs_newest_first(self):
        jobs = JobStorageManager()
        old = jobs.create({"title": "old"})
        jobs.create({"title": "new"})
        jobs.update(old["id"], {})
        # push the first job outside the window
        data = jobs.get_all()
        for item in data:
            if item["title"] == "old":
                item["createdAt"] = datetime.now(timezone.utc) - timedelta(days=45)
        jobs._set_storage_data(data)

        assert [job["title"] for job in jobs.get_recent_jobs(30)] == ["new"]

    def test_add_note(self):
        jobs = JobStorageManager()
        job = jobs.create({"title": "a"})

        updated = jobs.add_note(job["id"], "Call back Monday", "follow_up")

        assert len(updated["notes"]) == 1
        note = updated["notes"][0]
        assert note["content"] == "Call back Monday"
        assert note["type"] == "follow_up"
        assert note["id"].startswith("note-")
        assert jobs.add_note("missing", "x") is None


class TestProposalStorage:
    def test_deactivate_and_analytics(self):
        proposals = ProposalStorageManager()
        proposal = proposals.create({"url": "abc", "isActive": True, "analytics": {"views": 1}})

        assert proposals.get_by_url("abc")["id"] == proposal["id"]
        assert len(proposals.get_active_proposals()) == 1

        proposals.deactivate_proposal(proposal["id"])
        assert proposals.get_active_proposals() == []

        updated = proposals.update_analytics(proposal["id"], {"clicks": 2})
        assert updated["analytics"] == {"views": 1, "clicks": 2}


class TestAnalyticsStorage:
    def test_track_and_query(self):
        analytics = AnalyticsStorageManager()
        event = analytics.track_event({"proposalId": "p1", "eventType": "view"})
        analytics.track_event({"proposalId": "p2", "eventType": "click"})

        assert event["id"].startswith("event-")
        assert [e["eventType"] for e in analytics.get_events_by_proposal("p1")] == ["view"]
        assert len(analytics.get_events_by_type("click")) == 1

        now = datetime.now(timezone.utc)
        assert len(analytics.get_events_in_range(now - timedelta(minutes=5), now + timedelta(minutes=5))) == 2
        naive = now.replace(tzinfo=None)
        assert len(analytics.get_events_in_range(naive - timedelta(minutes=5), naive + timedelta(minutes=5))) == 2

    def test_clear_old_events(self):
        analytics = AnalyticsStorageManager()
        analytics.track_event({"eventType": "view"})
        events = analytics._get_storage_data()
        events[0]["timestamp"] = datetime.now(timezone.utc) - timedelta(days=120)
        analytics._set_storage_data(events)
        analytics.track_event({"eventType": "click"})

        analytics.clear_old_events(90)

        assert [e["eventType"] for e in analytics._get_storage_data()] == ["click"]

    def test_keeps_only_newest_events(self, monkeypatch):
        monkeypatch.setattr(storage, "MAX_ANALYTICS_EVENTS", 3)
        analytics = AnalyticsStorageManager()

        for index in range(5):
            analytics.track_event({"eventType": f"view-{index}"})

        assert [e["eventType"] for e in analytics._get_storage_data()] == ["view-2", "view-3", "view-4"]

    def test_default_cap(self):
        assert storage.MAX_ANALYTICS_EVENTS == 10_000


class TestCompanyAnalysisStorage:
    def test_save_and_recent(self):
        store = CompanyAnalysisStorageManager()
        older = store.save(
            {"companyProfile": {"name": "Acme Inc"}, "analysisTimestamp": datetime.now(timezone.utc) - timedelta(hours=2)}
        )
        newer = store.save({"companyProfile": {"name": "Globex"}, "analysisTimestamp": datetime.now(timezone.utc)})

        assert older["id"].startswith("analysis-")
        assert [a["id"] for a in store.get_recent(5)] == [newer["id"], older["id"]]
        assert [a["id"] for a in store.get_by_company("acme")] == [older["id"]]
        assert store.delete(older["id"]) is True
        assert store.delete(older["id"]) is False


class TestPreferencesAndUtils:
    def test_preferences(self):
        prefs = UserPreferencesManager()
        prefs.set_preference("theme", "dark")

        assert prefs.get_preference("theme") == "dark"
        assert prefs.get_preference("missing", "x") == "x"

        prefs.remove_preference("theme")
        assert prefs.get_preferences() == {}

    def test_export_import_stats(self):
        utils = StorageUtils()
        JobStorageManager().create({"title": "a"})

        exported = utils.export_all_data()
        assert STORAGE_KEYS["JOBS"] in exported

        utils.clear_all_data()
        assert JobStorageManager().get_all() == []

        assert utils.import_all_data({**exported, "unknown": []}) == [STORAGE_KEYS["JOBS"]]
        assert len(JobStorageManager().get_all()) == 1
        assert utils.get_storage_stats()[STORAGE_KEYS["JOBS"]] > 0
        assert utils.is_storage_available() is True

    def test_timestamp_id_prefix(self):
        assert re.fullmatch(r"event-\d+-[0-9a-z]{9}", timestamp_id("event"))


class TestStorageRoutes:
    def test_crud_over_http(self, client):
        created = client.post("/api/storage/jobs", json={"title": "Site", "status": "draft"})
        assert created.status_code == 201
        job_id = created.json()["id"]

        assert client.get(f"/api/storage/jobs/{job_id}").json()["title"] == "Site"
        assert len(client.get("/api/storage/jobs", params={"status": "draft"}).json()) == 1

        note = client.post(f"/api/storage/jobs/{job_id}/notes", json={"content": "hello"})
        assert note.json()["notes"][0]["content"] == "hello"

        assert client.put(f"/api/storage/jobs/{job_id}/status", json={"status": "bogus"}).status_code == 400
        assert client.put(f"/api/storage/jobs/{job_id}/status", json={"status": "sent"}).json()["status"] == "sent"

        assert client.delete(f"/api/storage/jobs/{job_id}").json() == {"deleted": True}
        assert client.get(f"/api/storage/jobs/{job_id}").status_code == 404
        assert client.get("/api/storage/unknown").status_code == 404

    def test_collection_filters_and_preferences(self, client):
        client.post("/api/storage/crm", json={"companyName": "Acme", "stage": "qualified"})
        client.post("/api/storage/crm", json={"companyName": "Globex", "stage": "lead"})
        client.post("/api/storage/proposals", json={"metadata": {"jobId": "job-1"}})

        assert [r["companyName"] for r in client.get("/api/storage/crm", params={"stage": "lead"}).json()] == ["Globex"]
        assert len(client.get("/api/storage/proposals", params={"jobId": "job-1"}).json()) == 1
        assert client.get("/api/storage/proposals", params={"jobId": "job-2"}).json() == []

        assert client.put("/api/storage/preferences/theme", json={"value": "dark"}).json() == {"theme": "dark"}
        assert client.delete("/api/storage/preferences").json() == {}
