from __future__ import annotations

import json
import re
import threading
from typing import Any, Sequence
from urllib import request

DEFAULT_MODEL = "qwen2.5:7b-instruct-q4_K_M"
DEFAULT_VISION_MODEL = "qwen2.5vl:7b"
DEFAULT_ENDPOINT = "http://localhost:11434"
DEFAULT_TIMEOUT_SECONDS = 45

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)
_TRAILING_COMMA_PATTERN = re.compile(r",\s*([}\]])")


class EndpointPool:
    """Round-robin rotation over model endpoints, safe under concurrent builds."""

    def __init__(self, endpoints: Sequence[str]) -> None:
        cleaned = [endpoint.strip().rstrip("/") for endpoint in endpoints if endpoint and endpoint.strip()]
        if not cleaned:
            raise ValueError("EndpointPool requires at least one endpoint.")
        self._endpoints = tuple(cleaned)
        self._next_index = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._endpoints)

    def next_endpoint(self) -> str:
        return self.rotation()[0]

    def rotation(self) -> list[str]:
        """Advance the counter once and return every endpoint starting at the new slot."""

        with self._lock:
            start = self._next_index
            self._next_index = (self._next_index + 1) % len(self._endpoints)
        return [self._endpoints[(start + offset) % len(self._endpoints)] for offset in range(len(self._endpoints))]


def request_ollama(
    *,
    endpoint: str,
    model: str,
    prompt: str,
    timeout_seconds: int,
    images: list[str] | None = None,
    temperature: float = 0.1,
) -> str:
    """Call Ollama's generate API in JSON mode and return the raw response text."""

    payload: dict[str, Any] = {
        "model": model,
        "prompt": prompt,
        "stream": False,
        "format": "json",
        "options": {"temperature": temperature},
    }
    if images:
        payload["images"] = images

    req = request.Request(
        f"{endpoint.rstrip('/')}/api/generate",
        data=json.dumps(payload).encode("utf-8"),
        method="POST",
        headers={"Content-Type": "application/json"},
    )

    with request.urlopen(req, timeout=timeout_seconds) as response:
        body = json.loads(response.read().decode("utf-8"))

    if not isinstance(body, dict):
        raise ValueError(f"Ollama returned a {type(body).__name__} body instead of a JSON object.")
    content = body.get("response")
    if not isinstance(content, str):
        raise ValueError("Ollama response missing JSON text in 'response' field.")
    return content


def parse_json_object(text: str) -> dict[str, Any] | None:
    """Extract a JSON object from model output that may carry fences or prose."""

    if not text or not text.strip():
        return None

    candidates = [text.strip()]
    fenced = _FENCE_PATTERN.search(text)
    if fenced:
        candidates.append(fenced.group(1).strip())
    start = text.find("{")
    end = text.rfind("}")
    if 0 <= start < end:
        candidates.append(text[start : end + 1])

    for candidate in candidates:
        for attempt in (candidate, _TRAILING_COMMA_PATTERN.sub(r"\1", candidate)):
            try:
                parsed = json.loads(attempt)
            except json.JSONDecodeError:
                continue
            if isinstance(parsed, dict):
                return parsed
    return None
