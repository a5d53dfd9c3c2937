from __future__ import annotations

import json

import pytest

from playlist_forge.llm import ollama


def test_endpoint_pool_rotates_round_robin() -> None:
    pool = ollama.EndpointPool(["http://a/", "http://b", " ", "http://c"])

    assert len(pool) == 3
    assert pool.rotation() == ["http://a", "http://b", "http://c"]
    assert pool.rotation() == ["http://b", "http://c", "http://a"]
    assert pool.next_endpoint() == "http://c"
    assert pool.next_endpoint() == "http://a"


def test_endpoint_pool_requires_an_endpoint() -> None:
    with pytest.raises(ValueError, match="at least one endpoint"):
        ollama.EndpointPool(["", "  "])


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ('{"a": 1}', {"a": 1}),
        ('```json\n{"a": 1}\n```', {"a": 1}),
        ('Sure! Here it is: {"a": [1, 2,]} hope that helps', {"a": [1, 2]}),
        ("[1, 2]", None),
        ("", None),
        ("no braces here", None),
    ],
)
def test_parse_json_object(text: str, expected: dict | None) -> None:
    assert ollama.parse_json_object(text) == expected


class _FakeResponse:
    def __init__(self, body: dict | list) -> None:
        self._body = json.dumps(body).encode("utf-8")

    def read(self) -> bytes:
        return self._body

    def __enter__(self) -> _FakeResponse:
        return self

    def __exit__(self, *exc_info) -> None:
        return None


def test_request_ollama_posts_json_mode_payload(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict = {}

    def _fake_urlopen(req, timeout):
        captured["url"] = req.full_url
        captured["payload"] = json.loads(req.data.decode("utf-8"))
        captured["timeout"] = timeout
        return _FakeResponse({"response": '{"ok": true}'})

    monkeypatch.setattr(ollama.request, "urlopen", _fake_urlopen)

    text = ollama.request_ollama(
        endpoint="http://localhost:11434/",
        model="m",
        prompt="p",
        timeout_seconds=5,
        images=["aGk="],
    )

    assert text == '{"ok": true}'
    assert captured["url"] == "http://localhost:11434/api/generate"
    assert captured["payload"]["format"] == "json"
    assert captured["payload"]["images"] == ["aGk="]
    assert captured["payload"]["stream"] is False
    assert captured["timeout"] == 5


def test_request_ollama_rejects_missing_response(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(ollama.request, "urlopen", lambda req, timeout: _FakeResponse({"error": "model not found"}))

    with pytest.raises(ValueError, match="missing"):
        ollama.request_ollama(endpoint="http://x", model="m", prompt="p", timeout_seconds=1)


def test_request_ollama_rejects_non_object_body(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(ollama.request, "urlopen", lambda req, timeout: _FakeResponse(["not", "an", "object"]))

    with pytest.raises(ValueError, match="list body"):
        ollama.request_ollama(endpoint="http://x", model="m", prompt="p", timeout_seconds=1)
