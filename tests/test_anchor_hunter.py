from __future__ import annotations

from playlist_forge.config import AnchorSettings
from playlist_forge.engine.anchor_hunter import find_promising_authors, hunt_for_anchor, score_coverage
from playlist_forge.models import AnchorItem, CandidateItem, CatalogOutcome, SequenceRef

TOPICS = ["Arrays", "Linked Lists", "Binary Trees"]


class _SequenceCatalog:
    def __init__(
        self,
        sequences: list[SequenceRef],
        titles_by_sequence: dict[str, list[str]],
        tutorial_items: list[CandidateItem] | None = None,
    ) -> None:
        self.sequences = sequences
        self.titles_by_sequence = titles_by_sequence
        self.tutorial_items = tutorial_items or []
        self.fetched: list[str] = []
        self.item_queries: list[str] = []

    def search_items(self, query: str) -> CatalogOutcome:
        self.item_queries.append(query)
        return CatalogOutcome.of_items(self.tutorial_items)

    def search_sequences(self, query: str) -> CatalogOutcome:
        return CatalogOutcome.of_sequences(self.sequences)

    def fetch_sequence_items(self, sequence_id: str) -> CatalogOutcome:
        self.fetched.append(sequence_id)
        titles = self.titles_by_sequence.get(sequence_id, [])
        return CatalogOutcome.of_items(
            [CandidateItem(item_id=f"{sequence_id}-{idx}", title=title, duration_seconds=900) for idx, title in enumerate(titles)]
        )


def _anchor_items(*titles: str) -> list[AnchorItem]:
    return [AnchorItem(item_id=str(idx), title=title, duration_seconds=600, position=idx) for idx, title in enumerate(titles)]


def test_coverage_is_zero_for_empty_topic_list() -> None:
    assert score_coverage([], _anchor_items("Arrays Explained")).coverage == 0


def test_coverage_grows_monotonically_as_items_are_added() -> None:
    titles = ["Cooking Pasta", "Arrays Explained", "Linked Lists Tutorial", "Binary Trees Deep Dive"]

    scores = [score_coverage(TOPICS, _anchor_items(*titles[: count + 1])).coverage for count in range(len(titles))]

    assert scores == [0, 33, 67, 100]
    assert all(0 <= score <= 100 for score in scores)


def test_coverage_reports_matched_and_unmatched_topics_in_order() -> None:
    coverage = score_coverage(TOPICS, _anchor_items("Binary Trees Deep Dive", "Arrays Explained"))

    assert coverage.matched_topics == ["Arrays", "Binary Trees"]
    assert coverage.unmatched_topics == ["Linked Lists"]


def test_hunt_skips_thin_sequences_and_exits_early_on_full_coverage() -> None:
    catalog = _SequenceCatalog(
        sequences=[
            SequenceRef("thin", "Shorts", "Chan A"),
            SequenceRef("partial", "Some DS", "Chan B"),
            SequenceRef("full", "Complete DS", "Chan C"),
            SequenceRef("later", "Never Looked At", "Chan D"),
        ],
        titles_by_sequence={
            "thin": ["Arrays Explained", "Linked Lists Tutorial"],
            "partial": ["Arrays Explained", "Cooking Pasta", "Gardening Basics"],
            "full": ["Arrays Explained", "Linked Lists Tutorial", "Binary Trees Deep Dive"],
            "later": ["Arrays Explained", "Linked Lists Tutorial", "Binary Trees Deep Dive"],
        },
    )

    result = hunt_for_anchor("Data Structures", TOPICS, "", catalog=catalog, settings=AnchorSettings())

    assert result.found is True
    assert result.anchor is not None
    assert result.anchor.sequence_id == "full"
    assert result.anchor.coverage_score == 100
    assert [item.position for item in result.anchor.items] == [0, 1, 2]
    assert catalog.fetched == ["thin", "partial", "full"]
    assert result.searches_performed == 4


def test_first_sequence_wins_ties_in_discovery_order() -> None:
    titles = ["Arrays Explained", "Linked Lists Tutorial", "Watercolor Painting"]
    catalog = _SequenceCatalog(
        sequences=[SequenceRef("first", "DS One", "Chan A"), SequenceRef("second", "DS Two", "Chan B")],
        titles_by_sequence={"first": titles, "second": titles},
    )

    result = hunt_for_anchor("Data Structures", TOPICS, "", catalog=catalog, settings=AnchorSettings())

    assert result.found is True
    assert result.anchor is not None
    assert result.anchor.sequence_id == "first"
    assert result.anchor.coverage_score == 67
    assert result.anchor.unmatched_topics == ("Binary Trees",)
    assert catalog.fetched == ["first", "second"]


def test_low_coverage_returns_owner_hints() -> None:
    weak = ["Arrays Explained", "Cooking Pasta", "Gardening Basics"]
    catalog = _SequenceCatalog(
        sequences=[
            SequenceRef("a", "One", "Chan A"),
            SequenceRef("b", "Two", "Chan A"),
            SequenceRef("c", "Three", "Chan B"),
            SequenceRef("d", "Four", "Chan C"),
            SequenceRef("e", "Five", "Chan D"),
        ],
        titles_by_sequence={key: weak for key in "abcde"},
    )

    result = hunt_for_anchor("Data Structures", TOPICS, "", catalog=catalog, settings=AnchorSettings())

    assert result.found is False
    assert result.anchor is None
    assert result.fallback_authors == ["Chan A", "Chan B", "Chan C"]


def test_no_sequences_collects_tutorial_authors() -> None:
    tutorial_items = [
        CandidateItem(item_id=str(idx), title=f"Lesson {idx}", author_name=f"Author {idx % 7}") for idx in range(12)
    ]
    catalog = _SequenceCatalog(sequences=[], titles_by_sequence={}, tutorial_items=tutorial_items)

    result = hunt_for_anchor("Data Structures", TOPICS, "in Hindi", catalog=catalog, settings=AnchorSettings())

    assert result.found is False
    assert result.fallback_authors == ["Author 0", "Author 1", "Author 2", "Author 3", "Author 4"]
    assert catalog.item_queries == ["Data Structures tutorial in Hindi"]
    assert result.searches_performed == 2


def test_find_promising_authors_skips_unknown_and_duplicates() -> None:
    items = [
        CandidateItem(item_id="1", title="x", author_name="Unknown"),
        CandidateItem(item_id="2", title="x", author_name="Chan"),
        CandidateItem(item_id="3", title="x", author_name="Chan"),
    ]

    assert find_promising_authors(items) == ["Chan"]


class _BrokenSequenceCatalog(_SequenceCatalog):
    def __init__(self, *args, broken_sequence: str | None = None, search_raises: bool = False, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.broken_sequence = broken_sequence
        self.search_raises = search_raises

    def search_sequences(self, query: str) -> CatalogOutcome:
        if self.search_raises:
            raise TimeoutError("sequence search timed out")
        return super().search_sequences(query)

    def fetch_sequence_items(self, sequence_id: str) -> CatalogOutcome:
        if sequence_id == self.broken_sequence:
            self.fetched.append(sequence_id)
            raise ConnectionError("connection reset")
        return super().fetch_sequence_items(sequence_id)


def test_raising_sequence_search_is_treated_as_no_sequences() -> None:
    tutorial_items = [CandidateItem(item_id="1", title="Lesson", author_name="Helpful Chan")]
    catalog = _BrokenSequenceCatalog(
        sequences=[], titles_by_sequence={}, tutorial_items=tutorial_items, search_raises=True
    )

    result = hunt_for_anchor("Data Structures", TOPICS, "", catalog=catalog, settings=AnchorSettings())

    assert result.found is False
    assert result.fallback_authors == ["Helpful Chan"]


def test_raising_sequence_fetch_skips_only_that_sequence() -> None:
    full = ["Arrays Explained", "Linked Lists Tutorial", "Binary Trees Deep Dive"]
    catalog = _BrokenSequenceCatalog(
        sequences=[SequenceRef("broken", "DS One", "Chan A"), SequenceRef("good", "DS Two", "Chan B")],
        titles_by_sequence={"broken": full, "good": full},
        broken_sequence="broken",
    )

    result = hunt_for_anchor("Data Structures", TOPICS, "", catalog=catalog, settings=AnchorSettings())

    assert result.found is True
    assert result.anchor is not None
    assert result.anchor.sequence_id == "good"
    assert catalog.fetched == ["broken", "good"]
