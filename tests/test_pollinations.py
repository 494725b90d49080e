"""
Pollinations.AI client, JSON repair helpers and the proxy routes.
"""

from __future__ import annotations

import asyncio
import json
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from conftest import completion
from smart_proposal.services import pollinations
from smart_proposal.utils.json_text import clean_json_string, extract_json, extract_json_array


class TestJsonRepair:
    def test_clean_json_string(self):
        assert json.loads(clean_json_string("```json\n{name: 'Acme', tags: [\"a\"],}\n```")) == {
            "name": "Acme",
            "tags": ["a"],
        }
        assert json.loads(clean_json_string('"a": 1')) == {"a": 1}

    def test_extract_json(self):
        assert extract_json('Sure!\n```json\n{"a": 1}\n```') == {"a": 1}
        assert extract_json('prefix {"a": {"b": 2}} suffix') == {"a": {"b": 2}}
        assert extract_json("nothing here") is None
        assert extract_json_array('Outline: [{"title": "x"}] done') == [{"title": "x"}]

    def test_process_json_content(self):
        assert json.loads(pollinations.process_json_content('{"ok": true}')) == {"ok": True}
        assert json.loads(pollinations.process_json_content('Here:\n```json\n{"ok": 1}\n```')) == {"ok": 1}

        failed = json.loads(pollinations.process_json_content("no json at all"))
        assert failed["error"] == "Could not parse LLM response as JSON"
        assert failed["originalContent"].endswith("...")


class TestChatCompletion:
    def test_payload_defaults(self, mock_http):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["payload"] = json.loads(request.content)
            return httpx.Response(200, json=completion("hello"))

        mock_http(handler)
        assert asyncio.run(pollinations.chat_completion([{"role": "user", "content": "hi"}])) == "hello"

        assert seen["url"].endswith("/openai")
        assert seen["payload"]["response_format"] == {"type": "text"}
        assert seen["payload"]["model"] == "openai"
        assert "webpage_context" not in seen["payload"]

    def test_searchgpt_answer_field_and_context(self, mock_http):
        seen = {}

        def handler(request):
            seen["payload"] = json.loads(request.content)
            return httpx.Response(200, json={"answer": "found it"})

        mock_http(handler)
        content = asyncio.run(
            pollinations.chat_completion([], model="searchgpt", webpage_context=["https://acme.io"])
        )

        assert content == "found it"
        assert seen["payload"]["webpage_context"] == ["https://acme.io"]

    def test_errors(self, mock_http):
        mock_http(lambda request: httpx.Response(502, text="bad gateway"))
        with pytest.raises(pollinations.PollinationsError, match="status: 502"):
            asyncio.run(pollinations.chat_completion([]))

        mock_http(lambda request: httpx.Response(200, json={"choices": []}))
        with pytest.raises(pollinations.PollinationsError, match="Unexpected response structure"):
            asyncio.run(pollinations.chat_completion([]))

    def test_chat_json_rejects_unparseable(self, mock_http):
        mock_http(lambda request: httpx.Response(200, json=completion("no json")))
        with pytest.raises(pollinations.PollinationsError):
            asyncio.run(pollinations.chat_json([]))


class TestUrls:
    def test_image_url(self):
        url = urlparse(pollinations.build_image_url("a red fox", "flux", 640, 480))
        assert url.path == "/prompt/a%20red%20fox"
        assert parse_qs(url.query) == {"width": ["640"], "height": ["480"], "noCache": ["true"], "model": ["flux"]}

    def test_generate_image_url_options(self):
        url = urlparse(pollinations.generate_image_url("slide", model="turbo", width=1024, height=768, nologo=True))
        assert parse_qs(url.query) == {"model": ["turbo"], "width": ["1024"], "height": ["768"], "nologo": ["true"]}

    def test_audio_url(self):
        url = urlparse(pollinations.get_audio_url("hi there"))
        assert url.path == "/hi%20there"
        assert parse_qs(url.query) == {"model": ["openai-audio"], "voice": ["alloy"]}


class TestModels:
    def test_models_listing(self, mock_http):
        def handler(request):
            if request.url.host == "image.pollinations.ai":
                return httpx.Response(200, json=["flux", "turbo"])
            return httpx.Response(200, json={"openai": {}, "mistral": {}, "openai-audio": {"voices": ["nova"]}})

        mock_http(handler)
        models = asyncio.run(pollinations.get_all_models())

        assert models["imageModels"] == [{"id": "flux"}, {"id": "turbo"}]
        assert models["textModels"] == [{"id": "openai"}, {"id": "mistral"}]
        assert models["audioVoices"] == [{"id": "nova"}]

    def test_models_offline(self):
        assert asyncio.run(pollinations.get_all_models()) == {"imageModels": [], "textModels": [], "audioVoices": []}


class TestRoutes:
    def test_chat_proxy(self, client, mock_http):
        assert client.post("/api/pollinations", json={"messages": []}).json()["status"] == "error"

        mock_http(lambda request: httpx.Response(200, json=completion("pong")))
        assert client.post("/api/pollinations", json={"messages": []}).json() == {"content": "pong", "status": "success"}

    def test_image_validation(self, client):
        assert client.post("/api/pollinations/image", json={}).json() == {"error": "Prompt is required"}
        invalid = client.post("/api/pollinations/image", json={"prompt": "fox", "model": "dalle"})
        assert invalid.status_code == 400
        assert invalid.json() == {"error": 'Invalid model. Use "turbo" or "flux"'}

    def test_image_url_even_when_check_fails(self, client):
        body = client.post("/api/pollinations/image", json={"prompt": "fox"}).json()
        assert body["success"] is True
        assert body["model"] == "turbo"
        assert body["imageUrl"].startswith(pollinations.build_image_url("fox").split("?")[0])

    def test_audio(self, client, mock_http):
        assert client.post("/api/pollinations/audio", json={"text": ""}).status_code == 400

        mock_http(lambda request: httpx.Response(200, content=b"ID3audio", headers={"content-type": "audio/mpeg"}))
        response = client.post("/api/pollinations/audio", json={"text": "Hello"})
        assert response.status_code == 200
        assert response.content == b"ID3audio"
        assert response.headers["content-type"] == "audio/mpeg"
        assert "max-age=86400" in response.headers["cache-control"]

        mock_http(lambda request: httpx.Response(200, text="<html>", headers={"content-type": "text/html"}))
        failed = client.post("/api/pollinations/audio", json={"text": "Hello"})
        assert failed.status_code == 500
        assert "Unexpected content type" in failed.json()["error"]
