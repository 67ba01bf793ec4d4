"""Tests for the Ollama small-talk client."""

from __future__ import annotations

import json

import pytest

from agent.small_talk import OllamaSmallTalkClient, small_talk_messages
from shared.models import ChatTurn


class _Response:
    def __init__(self, payload: object) -> None:
        self._payload = payload

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def read(self) -> bytes:
        return json.dumps(self._payload).encode("utf-8")


def test_chat_posts_non_streaming_request(monkeypatch: pytest.MonkeyPatch) -> None:
    captured = {}

    def _fake_urlopen(request, timeout):
        captured["url"] = request.full_url
        captured["method"] = request.get_method()
        captured["body"] = json.loads(request.data.decode("utf-8"))
        captured["timeout"] = timeout
        return _Response({"message": {"role": "assistant", "content": " Chào bạn! "}})

    monkeypatch.setattr("agent.small_talk.urlopen", _fake_urlopen)
    client = OllamaSmallTalkClient(url="http://ollama.local/api/chat", model="llama3.1", timeout_s=5)

    reply = client.chat([{"role": "user", "content": "hi"}])

    assert reply == "Chào bạn!"
    assert captured["url"] == "http://ollama.local/api/chat"
    assert captured["method"] == "POST"
    assert captured["body"] == {
        "model": "llama3.1",
        "messages": [{"role": "user", "content": "hi"}],
        "stream": False,
    }
    assert captured["timeout"] == 5


def test_chat_with_unexpected_payload_returns_placeholder(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("agent.small_talk.urlopen", lambda request, timeout: _Response({"done": True}))

    reply = OllamaSmallTalkClient(url="http://ollama.local/api/chat", model="m").chat([])

    assert reply
    assert "Xin lỗi" in reply


def test_small_talk_messages_start_with_system_prompt() -> None:
    messages = small_talk_messages("Bạn là ai?", [ChatTurn(role="assistant", content="Chào!")])

    assert [message["role"] for message in messages] == ["system", "assistant", "user"]
    assert "không được đưa ra bất kỳ con số nào" in messages[0]["content"]
