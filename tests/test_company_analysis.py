"""
Company analysis: keyword heuristics, risk scoring, caching and the GLM fallback.
"""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from conftest import completion
from smart_proposal.services.analytics import get_counter
from smart_proposal.services.company_analysis import (
    CompanyAnalysisEngine,
    calculate_risk,
    extract_job_insights,
    generate_tool_recommendations,
)
from smart_proposal.services.glm import GLMApiClient, create_fallback_analysis, is_fallback
from smart_proposal.services.storage import company_analysis_storage

FORM = {
    "companyName": "Acme Robotics",
    "personName": "Dana Lee",
    "jobDescription": "We need a simple landing page built. Flexible timeline.",
}


class TestHeuristics:
    def test_complexity_and_urgency(self):
        assert extract_job_insights("Enterprise platform needed ASAP") == {
            "projectComplexity": "high",
            "urgency": "high",
        }
        assert extract_job_insights("A simple page, when ready") == {"projectComplexity": "low", "urgency": "low"}
        assert extract_job_insights("Redesign of the shop") == {"projectComplexity": "medium", "urgency": "medium"}

    def test_tool_recommendations(self):
        tools = generate_tool_recommendations("Brand identity refresh")
        assert [tool["toolId"] for tool in tools] == ["brand_foundation", "image_generator"]
        assert generate_tool_recommendations("Plumbing work") == []

    def test_risk_thresholds(self):
        # urgent + budget = 0.4, advanced = 0.1 -> 0.5 medium
        risk = calculate_risk({}, "urgent work on a tight budget, advanced")
        assert risk["riskLevel"] == "medium"
        assert risk["confidenceScore"] == 0.5
        assert "Tight timeline pressure" in risk["riskFactors"]
        assert "Budget constraints indicated" in risk["riskFactors"]

        # urgent + complex = 0.3 exactly -> low
        assert calculate_risk({}, "urgent and complex")["riskLevel"] == "low"

        high = calculate_risk({}, "urgent asap cheap budget rush")
        assert high["riskLevel"] == "high"
        assert high["confidenceScore"] == 0.1

    def test_risk_deduplicates_and_clamps(self):
        risk = calculate_risk(
            {"riskAssessment": {"riskFactors": ["Complex project requirements"]}},
            "complex advanced enterprise work, flexible professional quality long term",
        )
        assert risk["riskFactors"] == ["Complex project requirements"]
        assert risk["confidenceScore"] == 1.0
        assert risk["riskLevel"] == "low"


class TestGLMClient:
    def test_fallback_on_api_error(self, mock_http):
        mock_http(lambda request: httpx.Response(500, json={"error": {"message": "boom"}}))

        analysis = asyncio.run(GLMApiClient().analyze_company(FORM))

        assert is_fallback(analysis)
        assert analysis["opportunityInsights"]["decisionMakers"] == ["Dana Lee"]
        assert analysis["opportunityInsights"]["painPoints"] == ["Analysis unavailable - API error"]
        assert analysis["riskAssessment"]["confidenceScore"] == 0.3

    def test_parses_embedded_json(self, mock_http):
        body = {"companyProfile": {"name": "Acme Robotics", "industry": "Robotics"}}
        seen = {}

        def handler(request):
            seen["auth"] = request.headers["Authorization"]
            seen["payload"] = json.loads(request.content)
            return httpx.Response(200, json=completion("Here you go:\n" + json.dumps(body) + "\nThanks"))

        mock_http(handler)
        analysis = asyncio.run(GLMApiClient().analyze_company(FORM))

        assert analysis["companyProfile"]["industry"] == "Robotics"
        assert analysis["analysisId"].startswith("analysis-")
        assert seen["auth"] == "Bearer test-zai-key"
        assert seen["payload"]["max_tokens"] == 4000

    def test_fallback_on_unexpected_body(self, mock_http):
        mock_http(lambda request: httpx.Response(200, json=["unexpected"]))
        assert is_fallback(asyncio.run(GLMApiClient().analyze_company(FORM)))

        mock_http(lambda request: httpx.Response(200, json={"choices": ["text"]}))
        assert is_fallback(asyncio.run(CompanyAnalysisEngine().analyze_company(FORM)))

        mock_http(lambda request: httpx.Response(200, text="<html>gateway</html>"))
        assert is_fallback(asyncio.run(GLMApiClient().analyze_company(FORM)))

        result = asyncio.run(GLMApiClient().test_connection())
        assert result == {"success": False, "message": "Invalid JSON response from Z.ai API"}

    def test_connection_status(self, mock_http):
        mock_http(lambda request: httpx.Response(200, json=completion("Connection test successful")))
        result = asyncio.run(GLMApiClient().test_connection())
        assert result["success"] is True
        assert "latency" in result


class TestEngine:
    def test_missing_fields_report_error_progress(self):
        progress = []
        engine = CompanyAnalysisEngine(progress_callback=progress.append)

        with pytest.raises(ValueError):
            asyncio.run(engine.analyze_company({"companyName": "Acme"}))

        assert progress[0]["stage"] == "initializing"
        assert progress[-1]["stage"] == "error"
        assert progress[-1]["progress"] == 0

    def test_full_run_saves_enhanced_analysis(self, mock_http):
        body = {
            "companyProfile": {"name": "Acme Robotics", "industry": "Robotics"},
            "opportunityInsights": {"budgetRange": "$5k"},
            "recommendedTools": [],
        }
        mock_http(lambda request: httpx.Response(200, json=completion(json.dumps(body))))
        progress = []

        analysis = asyncio.run(CompanyAnalysisEngine(progress_callback=progress.append).analyze_company(FORM))

        assert [update["progress"] for update in progress] == [0, 20, 40, 80, 90, 100]
        assert analysis["opportunityInsights"]["projectComplexity"] == "low"
        assert analysis["opportunityInsights"]["urgency"] == "low"
        assert analysis["opportunityInsights"]["budgetRange"] == "$5k"
        assert [tool["toolId"] for tool in analysis["recommendedTools"]] == ["website_scanner"]
        assert len(company_analysis_storage.get_recent(10)) == 1
        assert get_counter("analyses") == 1

    def test_oddly_shaped_model_fields(self, mock_http):
        body = {
            "companyProfile": {"name": "Acme Robotics"},
            "opportunityInsights": ["remote"],
            "recommendedTools": "none",
            "riskAssessment": "low",
        }
        mock_http(lambda request: httpx.Response(200, json=completion(json.dumps(body))))

        analysis = asyncio.run(CompanyAnalysisEngine().analyze_company(FORM))

        assert not is_fallback(analysis)
        assert analysis["opportunityInsights"]["projectComplexity"] == "low"
        assert [tool["toolId"] for tool in analysis["recommendedTools"]] == ["website_scanner"]
        assert analysis["riskAssessment"]["riskLevel"] == "low"

    def test_recent_analysis_is_reused(self):
        company_analysis_storage.save(
            {"analysisId": "analysis-1", "companyProfile": {"name": "Acme Robotics"}, "analysisTimestamp": datetime.now(timezone.utc)}
        )
        progress = []

        analysis = asyncio.run(CompanyAnalysisEngine(progress_callback=progress.append).analyze_company(FORM))

        assert analysis["analysisId"] == "analysis-1"
        assert progress[-1]["message"] == "Using recent analysis from cache"

    def test_stale_or_fallback_analysis_is_not_reused(self):
        company_analysis_storage.save(
            {
                "analysisId": "analysis-old",
                "companyProfile": {"name": "Acme Robotics"},
                "analysisTimestamp": datetime.now(timezone.utc) - timedelta(hours=25),
            }
        )
        company_analysis_storage.save(create_fallback_analysis(FORM))

        analysis = asyncio.run(CompanyAnalysisEngine().analyze_company(FORM))

        assert is_fallback(analysis)
        assert get_counter("fallback_analyses") == 1


class TestRoutes:
    def test_post_returns_analysis_and_progress(self, client):
        response = client.post("/api/company-analysis", json=FORM)
        assert response.status_code == 200
        body = response.json()
        assert body["analysis"]["companyProfile"]["name"] == "Acme Robotics"
        assert body["progress"][-1]["stage"] == "complete"

    def test_post_missing_fields(self, client):
        response = client.post("/api/company-analysis", json={"companyName": "Acme"})
        assert response.status_code == 400
        assert "Missing required fields" in response.json()["error"]
