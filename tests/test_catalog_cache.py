from __future__ import annotations

import json
from pathlib import Path

from playlist_forge.catalog.cache import CachedCatalog, cache_key
from playlist_forge.models import CandidateItem, CatalogOutcome, SequenceRef


class _CountingCatalog:
    def __init__(self, outcome: CatalogOutcome) -> None:
        self.outcome = outcome
        self.calls = 0

    def search_items(self, query: str) -> CatalogOutcome:
        self.calls += 1
        return self.outcome

    def search_sequences(self, query: str) -> CatalogOutcome:
        self.calls += 1
        return self.outcome

    def fetch_sequence_items(self, sequence_id: str) -> CatalogOutcome:
        self.calls += 1
        return self.outcome


ITEMS = CatalogOutcome.of_items(
    [CandidateItem(item_id="a", title="Arrays", duration_seconds=700, density_flags=("density:detailed",))]
)


def test_cache_key_is_short_and_normalized() -> None:
    key = cache_key("search_items", "Arrays  Tutorial")

    assert len(key) == 16
    assert key == cache_key("search_items", " arrays tutorial ")
    assert key != cache_key("search_sequences", "arrays tutorial")


def test_sequence_ids_keep_their_case() -> None:
    assert cache_key("fetch_sequence_items", "PLabc") != cache_key("fetch_sequence_items", "plabc")


def test_successful_outcomes_are_served_from_disk(tmp_path: Path) -> None:
    inner = _CountingCatalog(ITEMS)
    cached = CachedCatalog(inner, tmp_path)

    first = cached.search_items("arrays tutorial")
    second = CachedCatalog(inner, tmp_path).search_items("Arrays Tutorial")

    assert inner.calls == 1
    assert first == second == ITEMS
    assert (tmp_path / "catalog" / f"{cache_key('search_items', 'arrays tutorial')}.json").exists()


def test_sequences_round_trip_through_cache(tmp_path: Path) -> None:
    outcome = CatalogOutcome.of_sequences([SequenceRef("PL1", "DS Course", "Chan")])
    inner = _CountingCatalog(outcome)
    cached = CachedCatalog(inner, tmp_path)

    cached.search_sequences("ds")

    assert cached.search_sequences("ds") == outcome
    assert inner.calls == 1


def test_failed_and_empty_outcomes_are_not_cached(tmp_path: Path) -> None:
    inner = _CountingCatalog(CatalogOutcome.failed("timeout"))
    cached = CachedCatalog(inner, tmp_path)

    cached.search_items("arrays")
    cached.search_items("arrays")
    inner.outcome = CatalogOutcome(status="empty")
    cached.search_items("arrays")
    cached.search_items("arrays")

    assert inner.calls == 4


def test_digest_collision_is_treated_as_miss(tmp_path: Path) -> None:
    path = tmp_path / "catalog" / f"{cache_key('search_items', 'arrays')}.json"
    path.parent.mkdir(parents=True)
    path.write_text(json.dumps({"key": ["search_items", "something else"], "items": [], "sequences": []}), encoding="utf-8")
    inner = _CountingCatalog(ITEMS)

    outcome = CachedCatalog(inner, tmp_path).search_items("arrays")

    assert outcome == ITEMS
    assert inner.calls == 1
    assert json.loads(path.read_text(encoding="utf-8"))["key"] == ["search_items", "arrays"]


def test_corrupt_cache_file_is_refetched(tmp_path: Path) -> None:
    path = tmp_path / "catalog" / f"{cache_key('search_items', 'arrays')}.json"
    path.parent.mkdir(parents=True)
    path.write_text("{broken", encoding="utf-8")
    inner = _CountingCatalog(ITEMS)

    assert CachedCatalog(inner, tmp_path).search_items("arrays") == ITEMS
    assert inner.calls == 1
