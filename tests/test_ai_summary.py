"""
AI document summaries: availability, summarize, diff and upstream
failures. The provider and the document host are replaced with fakes.
"""

from unittest.mock import MagicMock

import openai
import pytest

from aiproval.ai.gateway import LLMGateway, LLMProvider
from aiproval.core.exceptions import UpstreamError
from aiproval.integrations.document_gateway import DocumentGateway
from aiproval.services import ai_summary_service


class FakeProvider(LLMProvider):
    def __init__(self, content="A summary", error=None):
        self.content = content
        self.error = error
        self.calls = []

    def chat(self, messages, model, **kwargs):
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return {"content": self.content, "prompt_tokens": 10, "completion_tokens": 5, "model": model}


@pytest.fixture()
def provider(monkeypatch):
    fake = FakeProvider()
    monkeypatch.setattr(ai_summary_service, "get_gateway",
                        lambda: LLMGateway(fake, "gpt-4o-mini"))
    return fake


@pytest.fixture()
def documents(monkeypatch):
    fetch = MagicMock(side_effect=lambda url, **kw: f"text of {url}")
    monkeypatch.setattr(ai_summary_service.document_gateway, "fetch_text", fetch)
    return fetch


class TestAvailability:
    def test_status_unconfigured(self, client, member_headers):
        res = client.get("/api/v1/ai/status", headers=member_headers)
        assert res.status_code == 200
        assert res.get_json()["data"]["available"] is False

    def test_summarize_unconfigured(self, client, member_headers):
        res = client.post("/api/v1/ai/summarize",
                          json={"document_url": "https://docs.example.com/brief.txt"},
                          headers=member_headers)
        assert res.status_code == 503
        body = res.get_json()
        assert body["error"] == "AI summarization is not configured"
        assert body["details"]["available"] is False

    def test_status_configured(self, client, member_headers, provider):
        data = client.get("/api/v1/ai/status", headers=member_headers).get_json()["data"]
        assert data == {"available": True, "model": "gpt-4o-mini"}

    def test_requires_auth(self, client):
        assert client.get("/api/v1/ai/status").status_code == 401


class TestSummarize:
    def test_summary(self, client, member_headers, provider, documents):
        res = client.post("/api/v1/ai/summarize",
                          json={"document_url": "https://docs.example.com/brief.txt"},
                          headers=member_headers)
        assert res.status_code == 200
        data = res.get_json()["data"]
        assert data["summary"] == "A summary"
        assert data["source_url"] == "https://docs.example.com/brief.txt"
        assert provider.calls[0][1]["content"] == "text of https://docs.example.com/brief.txt"

    def test_invalid_url(self, client, member_headers, provider):
        res = client.post("/api/v1/ai/summarize", json={"document_url": "ftp://docs/brief"},
                          headers=member_headers)
        assert res.status_code == 400
        assert res.get_json()["error"] == "Document URL must be an http(s) URL"

    def test_missing_url(self, client, member_headers, provider):
        res = client.post("/api/v1/ai/summarize", json={}, headers=member_headers)
        assert res.status_code == 400
        assert res.get_json()["error"] == "Document URL is required"

    def test_document_host_failure(self, client, member_headers, provider, monkeypatch):
        monkeypatch.setattr(ai_summary_service.document_gateway, "fetch_text",
                            MagicMock(side_effect=UpstreamError("document", "Could not fetch document")))
        res = client.post("/api/v1/ai/summarize",
                          json={"document_url": "https://docs.example.com/brief.txt"},
                          headers=member_headers)
        assert res.status_code == 502
        assert res.get_json()["error"] == "Could not fetch document"

    def test_provider_failure(self, client, member_headers, documents, monkeypatch):
        failing = FakeProvider(error=openai.OpenAIError("rate limited"))
        monkeypatch.setattr(ai_summary_service, "get_gateway",
                            lambda: LLMGateway(failing, "gpt-4o-mini"))
        res = client.post("/api/v1/ai/summarize",
                          json={"document_url": "https://docs.example.com/brief.txt"},
                          headers=member_headers)
        assert res.status_code == 502
        assert res.get_json()["error"] == "AI provider request failed"


class TestDiff:
    def test_diff(self, client, member_headers, provider, documents):
        res = client.post("/api/v1/ai/diff", json={
            "previous_url": "https://docs.example.com/v1.txt",
            "current_url": "https://docs.example.com/v2.txt",
        }, headers=member_headers)
        assert res.status_code == 200
        data = res.get_json()["data"]
        assert data["diff"] == "A summary"
        assert documents.call_count == 2
        prompt = provider.calls[0][1]["content"]
        assert "PREVIOUS VERSION:\ntext of https://docs.example.com/v1.txt" in prompt
        assert "CURRENT VERSION:\ntext of https://docs.example.com/v2.txt" in prompt

    def test_diff_needs_both(self, client, member_headers, provider):
        res = client.post("/api/v1/ai/diff",
                          json={"previous_url": "https://docs.example.com/v1.txt"},
                          headers=member_headers)
        assert res.status_code == 400


class TestDocumentGateway:
    def test_truncates(self):
        session = MagicMock()
        session.get.return_value = MagicMock(ok=True, status_code=200, text="x" * 50)
        text = DocumentGateway(session=session).fetch_text("https://d.example.com/a", timeout=3,
                                                           max_chars=10)
        assert text == "x" * 10
        session.get.assert_called_once_with("https://d.example.com/a", timeout=3)

    def test_http_error(self):
        session = MagicMock()
        session.get.return_value = MagicMock(ok=False, status_code=404)
        with pytest.raises(UpstreamError, match="HTTP 404"):
            DocumentGateway(session=session).fetch_text("https://d.example.com/a", timeout=3,
                                                        max_chars=10)
