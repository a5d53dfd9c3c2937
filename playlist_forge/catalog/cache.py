from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, Callable

from playlist_forge.catalog.ytdlp_client import CatalogClient
from playlist_forge.models import CandidateItem, CatalogOutcome, SequenceRef

logger = logging.getLogger(__name__)


def cache_key(operation: str, query: str) -> str:
    """64-bit BLAKE2b digest of the normalized (operation, query) pair."""

    normalized = _normalize(operation, query)
    digest = hashlib.blake2b(json.dumps(normalized).encode("utf-8"), digest_size=8)
    return digest.hexdigest()


class CachedCatalog:
    """Disk-backed wrapper that stores successful catalog outcomes as JSON files."""

    def __init__(self, inner: CatalogClient, cache_dir: str | Path) -> None:
        self.inner = inner
        self.cache_dir = Path(cache_dir).expanduser() / "catalog"

    def search_items(self, query: str) -> CatalogOutcome:
        return self._cached("search_items", query, self.inner.search_items)

    def search_sequences(self, query: str) -> CatalogOutcome:
        return self._cached("search_sequences", query, self.inner.search_sequences)

    def fetch_sequence_items(self, sequence_id: str) -> CatalogOutcome:
        return self._cached("fetch_sequence_items", sequence_id, self.inner.fetch_sequence_items)

    def _cached(self, operation: str, query: str, fetch: Callable[[str], CatalogOutcome]) -> CatalogOutcome:
        path = self.cache_dir / f"{cache_key(operation, query)}.json"
        cached = self._read(path, operation, query)
        if cached is not None:
            logger.debug("Catalog cache hit for %s %r", operation, query)
            return cached

        outcome = fetch(query)
        if outcome.ok:
            self._write(path, operation, query, outcome)
        return outcome

    def _read(self, path: Path, operation: str, query: str) -> CatalogOutcome | None:
        if not path.exists():
            return None

        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
            if payload.get("key") != list(_normalize(operation, query)):
                logger.debug("Catalog cache key collision at %s; treating as miss.", path)
                return None
            return CatalogOutcome(
                status="ok",
                items=tuple(CandidateItem(**_with_tuple_flags(row)) for row in payload.get("items", [])),
                sequences=tuple(SequenceRef(**row) for row in payload.get("sequences", [])),
            )
        except (OSError, ValueError, TypeError, AttributeError) as exc:
            logger.warning("Failed to load cached catalog payload at %s (%s); refetching.", path, exc)
            return None

    def _write(self, path: Path, operation: str, query: str, outcome: CatalogOutcome) -> None:
        payload = {
            "key": list(_normalize(operation, query)),
            "items": [asdict(item) for item in outcome.items],
            "sequences": [asdict(ref) for ref in outcome.sequences],
        }
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError as exc:
            logger.warning("Could not write catalog cache %s (%s)", path, exc)


def _normalize(operation: str, query: str) -> tuple[str, str]:
    # Sequence ids are case-sensitive; free-text queries are not.
    if operation == "fetch_sequence_items":
        return operation, query.strip()
    return operation, " ".join(query.lower().split())


def _with_tuple_flags(row: dict[str, Any]) -> dict[str, Any]:
    row = dict(row)
    row["density_flags"] = tuple(row.get("density_flags") or ())
    return row
