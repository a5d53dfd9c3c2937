from __future__ import annotations

import json
import logging
import subprocess
from typing import Any, Callable, Protocol
from urllib.parse import quote_plus

from playlist_forge.models import CandidateItem, CatalogOutcome, SequenceRef

logger = logging.getLogger(__name__)

PLAYLIST_SEARCH_URL = "https://www.youtube.com/results?search_query={query}&sp=EgIQAw%3D%3D"
PLAYLIST_URL = "https://www.youtube.com/playlist?list={sequence_id}"


class CatalogClient(Protocol):
    """External catalog boundary; every call returns an outcome instead of raising."""

    def search_items(self, query: str) -> CatalogOutcome: ...

    def search_sequences(self, query: str) -> CatalogOutcome: ...

    def fetch_sequence_items(self, sequence_id: str) -> CatalogOutcome: ...


def call_catalog(fetch: Callable[[str], CatalogOutcome], query: str) -> CatalogOutcome:
    """Invoke one catalog operation, turning any raised error into a failed outcome."""

    try:
        return fetch(query)
    except Exception as exc:
        logger.warning("Catalog call for %r raised %s: %s", query, type(exc).__name__, exc)
        return CatalogOutcome.failed(f"{type(exc).__name__}: {exc}")


class YtDlpCatalog:
    """Catalog search backed by the yt-dlp executable in flat-playlist mode."""

    def __init__(self, binary: str = "yt-dlp", timeout_seconds: int = 30, max_results: int = 20) -> None:
        self.binary = binary
        self.timeout_seconds = timeout_seconds
        self.max_results = max_results

    def search_items(self, query: str) -> CatalogOutcome:
        target = f"ytsearch{self.max_results}:{query}"
        try:
            payload = _run_ytdlp(self.binary, target, timeout_seconds=self.timeout_seconds)
        except RuntimeError as exc:
            logger.warning("Item search failed for %r: %s", query, exc)
            return CatalogOutcome.failed(str(exc))
        return CatalogOutcome.of_items(_to_candidate_items(payload.get("entries") or []))

    def search_sequences(self, query: str) -> CatalogOutcome:
        target = PLAYLIST_SEARCH_URL.format(query=quote_plus(query))
        try:
            payload = _run_ytdlp(
                self.binary,
                target,
                timeout_seconds=self.timeout_seconds,
                playlist_end=self.max_results,
            )
        except RuntimeError as exc:
            logger.warning("Sequence search failed for %r: %s", query, exc)
            return CatalogOutcome.failed(str(exc))
        return CatalogOutcome.of_sequences(_to_sequence_refs(payload.get("entries") or []))

    def fetch_sequence_items(self, sequence_id: str) -> CatalogOutcome:
        target = PLAYLIST_URL.format(sequence_id=sequence_id)
        try:
            payload = _run_ytdlp(self.binary, target, timeout_seconds=self.timeout_seconds)
        except RuntimeError as exc:
            logger.warning("Fetching sequence %s failed: %s", sequence_id, exc)
            return CatalogOutcome.failed(str(exc))
        return CatalogOutcome.of_items(_to_candidate_items(payload.get("entries") or []))


def _run_ytdlp(
    binary: str,
    target: str,
    *,
    timeout_seconds: int,
    playlist_end: int | None = None,
) -> dict[str, Any]:
    command = [
        binary,
        "--flat-playlist",
        "--dump-single-json",
        "--no-warnings",
        "--skip-download",
    ]
    if playlist_end is not None:
        command.extend(["--playlist-end", str(playlist_end)])
    command.append(target)

    try:
        completed = subprocess.run(
            command,
            check=True,
            capture_output=True,
            text=True,
            timeout=timeout_seconds,
        )
    except FileNotFoundError as exc:
        raise RuntimeError(
            f"{binary} executable was not found. Install yt-dlp so it is available on PATH."
        ) from exc
    except subprocess.TimeoutExpired as exc:
        raise RuntimeError(f"{binary} timed out after {timeout_seconds}s for {target}") from exc
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or "").strip()
        details = f" stderr: {stderr[:300]}" if stderr else ""
        raise RuntimeError(f"{binary} failed for {target}.{details}") from exc

    try:
        payload = json.loads(completed.stdout)
    except json.JSONDecodeError as exc:
        raise RuntimeError(f"{binary} returned invalid JSON output.") from exc

    if not isinstance(payload, dict):
        raise RuntimeError(f"{binary} returned an unexpected payload type: {type(payload).__name__}")
    return payload


def _to_candidate_items(entries: list[dict[str, Any]]) -> list[CandidateItem]:
    items: list[CandidateItem] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        item_id = entry.get("id")
        title = entry.get("title")
        if not item_id or not title:
            continue
        items.append(
            CandidateItem(
                item_id=str(item_id),
                title=str(title),
                description=str(entry.get("description") or ""),
                duration_seconds=_to_int(entry.get("duration")),
                view_count=_to_int(entry.get("view_count")),
                author_name=str(entry.get("channel") or entry.get("uploader") or "Unknown"),
            )
        )
    return items


def _to_sequence_refs(entries: list[dict[str, Any]]) -> list[SequenceRef]:
    refs: list[SequenceRef] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        sequence_id = entry.get("id")
        url = str(entry.get("url") or "")
        is_sequence = entry.get("ie_key") == "YoutubeTab" or "list=" in url
        if not sequence_id or not is_sequence:
            continue
        refs.append(
            SequenceRef(
                sequence_id=str(sequence_id),
                title=str(entry.get("title") or ""),
                owner_name=str(entry.get("channel") or entry.get("uploader") or "Unknown"),
            )
        )
    return refs


def _to_int(raw_value: Any) -> int:
    if raw_value in (None, "N/A", ""):
        return 0
    try:
        return int(float(raw_value))
    except (TypeError, ValueError):
        return 0
