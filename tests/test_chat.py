"""
Chat completions: reasoning extraction and the alternate-model chain.
"""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from conftest import completion
from smart_proposal import config
from smart_proposal.services import chat
from smart_proposal.services.analytics import get_counter

MESSAGES = [{"role": "user", "content": "Hello", "id": "m1"}]


@pytest.fixture(autouse=True)
def fallback_models(monkeypatch):
    monkeypatch.setattr(config, "ZAI_FALLBACK_MODELS", ["glm-4.5-air", "glm-4.5"])


class TestReasoning:
    def test_dedicated_fields(self):
        assert chat.extract_reasoning({"content": "Hi", "reasoning": "because"}) == ("Hi", "because")
        assert chat.extract_reasoning({"content": "Hi", "reasoning_content": "thought"}) == ("Hi", "thought")

    def test_dollar_delimited_reasoning(self):
        content, reasoning = chat.extract_reasoning({"content": "$first think$ The answer is 4."})
        assert content == "The answer is 4."
        assert reasoning == "first think"

    def test_plain_and_empty(self):
        assert chat.extract_reasoning({"content": "Plain"}) == ("Plain", None)
        assert chat.extract_reasoning({"content": ""}) == (chat.DEFAULT_REPLY, None)


class TestModelChain:
    def test_chain_skips_duplicates(self):
        assert chat.model_chain("glm-4.5-flash") == ["glm-4.5-flash", "glm-4.5-air", "glm-4.5"]
        assert chat.model_chain("glm-4.5-air") == ["glm-4.5-air", "glm-4.5"]

    def test_falls_through_on_server_errors_and_timeouts(self, mock_http):
        tried = []

        def handler(request):
            model = json.loads(request.content)["model"]
            tried.append(model)
            if model == "glm-4.5-flash":
                return httpx.Response(503, text="busy")
            if model == "glm-4.5-air":
                raise httpx.ReadTimeout("slow", request=request)
            return httpx.Response(200, json=completion("From the last model"))

        mock_http(handler)
        result = asyncio.run(chat.chat(MESSAGES))

        assert tried == ["glm-4.5-flash", "glm-4.5-air", "glm-4.5"]
        assert result["model"] == "glm-4.5"
        assert result["choices"][0]["message"]["content"] == "From the last model"

    def test_client_error_stops_the_chain(self, mock_http):
        tried = []

        def handler(request):
            tried.append(json.loads(request.content)["model"])
            return httpx.Response(401, json={"error": "bad key"})

        mock_http(handler)
        with pytest.raises(chat.ChatUpstreamError) as info:
            asyncio.run(chat.chat(MESSAGES))

        assert info.value.status_code == 401
        assert tried == ["glm-4.5-flash"]

    def test_every_model_timing_out(self, mock_http):
        def handler(request):
            raise httpx.ConnectTimeout("down", request=request)

        mock_http(handler)
        with pytest.raises(chat.ChatUpstreamError) as info:
            asyncio.run(chat.chat(MESSAGES))
        assert info.value.status_code == 504


class TestPayload:
    def test_system_prompt_and_message_shape(self, mock_http):
        seen = {}

        def handler(request):
            seen["payload"] = json.loads(request.content)
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(200, json=completion("ok"))

        mock_http(handler)
        asyncio.run(chat.chat(MESSAGES))

        payload = seen["payload"]
        assert payload["messages"][0] == {"role": "system", "content": chat.TOOLS_SYSTEM_PROMPT}
        assert payload["messages"][1] == {"role": "user", "content": "Hello"}
        assert payload["thinking"] == {"type": "enabled"}
        assert payload["max_tokens"] == 2000
        assert seen["auth"] == "Bearer test-zai-key"

    def test_glm_response_passes_thinking_through(self, mock_http):
        seen = {}

        def handler(request):
            seen["payload"] = json.loads(request.content)
            return httpx.Response(200, json={**completion("Hi", reasoning_content="hmm"), "id": "resp-1"})

        mock_http(handler)
        result = asyncio.run(chat.glm_response(MESSAGES, thinking={"type": "disabled"}))

        assert seen["payload"]["thinking"] == {"type": "disabled"}
        assert seen["payload"]["model"] == config.ZAI_MODEL
        assert result["id"] == "resp-1"
        assert result["choices"][0]["message"]["reasoning"] == "hmm"


class TestRoutes:
    def test_invalid_messages(self, client):
        response = client.post("/api/chat", json={"messages": "hello"})
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid messages format"

    def test_chat_route(self, client, mock_http):
        mock_http(lambda request: httpx.Response(200, json=completion("$plan$ Sure.")))

        response = client.post("/api/chat", json={"messages": MESSAGES})

        assert response.status_code == 200
        message = response.json()["choices"][0]["message"]
        assert message == {"content": "Sure.", "reasoning": "plan", "role": "assistant"}
        assert get_counter("chat_requests") == 1

    def test_upstream_error_status_is_forwarded(self, client, mock_http):
        mock_http(lambda request: httpx.Response(429, text="slow down"))

        response = client.post("/api/chat/glm-response", json={"messages": MESSAGES})

        assert response.status_code == 429
        assert response.json()["details"] == "slow down"

    def test_malformed_upstream_body(self, client, mock_http):
        mock_http(lambda request: httpx.Response(200, json={"unexpected": True}))
        response = client.post("/api/chat", json={"messages": MESSAGES})
        assert response.status_code == 500
