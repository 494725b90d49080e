"""
Chat tools: detection, parameter extraction, persona research, ICP builder, website scanner.
"""

from __future__ import annotations

import asyncio
import json
import threading

import httpx

from conftest import completion
from smart_proposal import config
from smart_proposal.services import search, tools


def _serper(request):
    query = json.loads(request.content)["q"]
    if request.url.path == "/news":
        return httpx.Response(200, json={"news": [{"title": "Acme raises", "link": "https://news/1", "date": "1 day ago"}]})
    if "company business about" in query:
        return httpx.Response(
            200,
            json={"organic": [{"title": "Acme", "snippet": "A technology company building robots"}]},
        )
    return httpx.Response(
        200,
        json={
            "organic": [{"title": "Jane Doe", "snippet": "Jane Doe leads Acme."}],
            "knowledgeGraph": {"description": "CEO of Acme"},
            "relatedSearches": [{"query": "jane doe acme"}],
        },
    )


class TestDetection:
    def test_detect_tool_request(self):
        assert tools.detect_tool_request("Please SCAN WEBSITE for me")["name"] == "Website Intelligence Scanner"
        assert tools.detect_tool_request("build icp from these")["name"] == "ICP Builder"
        assert tools.detect_tool_request("hello there") is None

    def test_extract_parameters(self):
        persona = tools.detect_tool_request("executive persona")
        params = tools.extract_parameters("executive persona name: Jane Doe, title: CEO, company: Acme", persona)

        assert params == {"name": "Jane Doe", "title": "CEO", "company": "Acme"}
        assert tools.has_all_required_parameters(params, persona) is True
        assert tools.has_all_required_parameters({"name": "Jane"}, persona) is False

    def test_url_parameter(self):
        scanner = tools.AVAILABLE_TOOLS[0]
        assert tools.extract_parameters("scan website https://acme.io/about please", scanner) == {
            "url": "https://acme.io/about"
        }

    def test_tool_result_shape(self):
        result = tools.create_tool_result("ICP Builder", {"a": 1}, "summary")
        assert result["shareUrl"] == f"/shared/tool-result/{result['id']}"
        assert result["url"] is None
        assert result["parameters"] is None


class TestExecutivePersona:
    def test_persona_from_search(self, mock_http):
        mock_http(_serper)

        result = asyncio.run(tools.executive_persona("Jane Doe", "CEO", "Acme"))

        persona = result["content"]
        assert result["toolName"] == "Executive Persona"
        assert persona["persona"]["background"] == "Jane Doe leads Acme."
        assert persona["persona"]["has_knowledge_graph"] is True
        assert persona["persona"]["recent_news"] == [{"title": "Acme raises", "snippet": "https://news/1", "date": "1 day ago"}]
        assert persona["persona"]["related_searches"] == ["jane doe acme"]
        assert persona["company_info"]["industry"] == "Technology"
        assert persona["research_metadata"]["data_source"] == "serper_api"
        assert "News Coverage: 1 recent articles found" in result["summary"]

    def test_persona_without_results(self):
        persona = tools.build_persona("Jane Doe", "CEO", "Acme", {})

        assert persona["persona"]["background"].startswith("Jane Doe serves as CEO at Acme.")
        assert persona["company_info"]["description"] == "Acme - Professional services organization"
        assert persona["company_info"]["industry"] == "Business Services"

    def test_duckduckgo_without_serper_key(self, monkeypatch):
        monkeypatch.setattr(config, "SERPER_API_KEY", "")
        monkeypatch.setattr(search, "ddg_sources", lambda query, max_results=10: [{"title": "t", "link": "l", "snippet": "s"}])
        monkeypatch.setattr(search, "ddg_news", lambda query, max_results=10: [])

        research = asyncio.run(tools.executive_research("Jane Doe", "Acme"))
        persona = tools.build_persona("Jane Doe", "CEO", "Acme", research)

        assert research["organic"] == [{"title": "t", "link": "l", "snippet": "s"}]
        assert research["knowledgeGraph"] is None
        assert persona["research_metadata"]["data_source"] == "duckduckgo"

    def test_duckduckgo_runs_off_the_event_loop(self, monkeypatch):
        monkeypatch.setattr(config, "SERPER_API_KEY", "")
        threads = []

        def sources(query, max_results=10):
            threads.append(threading.get_ident())
            return [{"title": query, "link": "l", "snippet": str(max_results)}]

        def news(query, max_results=10):
            threads.append(threading.get_ident())
            return [{"title": "n"}]

        monkeypatch.setattr(search, "ddg_sources", sources)
        monkeypatch.setattr(search, "ddg_news", news)

        result = asyncio.run(search.web_search("acme", 3))

        assert result["organic"] == [{"title": "acme", "link": "l", "snippet": "3"}]
        assert asyncio.run(search.news_search("acme")) == [{"title": "n"}]
        assert len(threads) == 2
        assert threading.get_ident() not in threads


class TestICP:
    def test_parse_customers(self):
        assert tools.parse_customers("Jane - Acme\n\n  John - Globex  \n") == ["Jane - Acme", "John - Globex"]

    def test_fallback_profile_when_offline(self):
        icp = asyncio.run(tools.build_icp(["Jane - Acme"]))

        assert icp == tools.FALLBACK_ICP
        icp["summary"] = "changed"
        assert tools.FALLBACK_ICP["summary"] != "changed"

    def test_generated_profile(self, mock_http):
        seen = {}

        def handler(request):
            seen["payload"] = json.loads(request.content)
            return httpx.Response(200, json=completion(json.dumps({"summary": "Fintech scale-ups"})))

        mock_http(handler)
        icp = asyncio.run(tools.build_icp(["Jane - Acme", "John - Globex"]))

        assert icp == {"summary": "Fintech scale-ups"}
        assert seen["payload"]["messages"][0]["content"] == tools.ICP_SYSTEM_PROMPT
        assert "2. John - Globex" in seen["payload"]["messages"][1]["content"]


class TestRoutes:
    def test_list_and_detect(self, client):
        assert len(client.get("/api/tools").json()["tools"]) == 3

        detected = client.post("/api/tools/detect", json={"message": "analyze website https://acme.io"}).json()
        assert detected["tool"]["apiEndpoint"] == "/api/tools/website-scanner"
        assert detected["parameters"] == {"url": "https://acme.io"}
        assert detected["ready"] is True

        assert client.post("/api/tools/detect", json={"message": "hi"}).json() == {
            "tool": None,
            "parameters": {},
            "ready": False,
        }

    def test_validation(self, client):
        assert client.post("/api/tools/executive-persona", json={"name": "Jane"}).status_code == 400
        assert client.post("/api/tools/icp-builder", json={}).json() == {"error": "Customer data is required"}
        assert client.post("/api/tools/icp-builder", json={"customers": "  \n "}).json() == {
            "error": "At least one customer example is required"
        }
        assert client.post("/api/tools/website-scanner", json={"url": " "}).status_code == 400

    def test_website_scanner(self, client, mock_http):
        def handler(request):
            if request.url.host == "acme.io":
                return httpx.Response(200, text="<html><head><title>Acme</title></head><body></body></html>")
            return httpx.Response(200, json=completion(json.dumps({"Target Audience/Market": "Warehouses"})))

        mock_http(handler)
        body = client.post("/api/tools/website-scanner", json={"url": "acme.io"}).json()

        assert body["url"] == "https://acme.io"
        assert body["parameters"] == {"url": "acme.io"}
        assert "Title: Acme" in body["summary"]
        assert "Target Audience/Market: Warehouses" in body["summary"]

    def test_website_scanner_failure(self, client):
        response = client.post("/api/tools/website-scanner", json={"url": "acme.io"})
        assert response.status_code == 500
        assert response.json()["error"] == "Failed to analyze website"
