from __future__ import annotations

from playlist_forge.models import CandidateItem
from playlist_forge.scoring.density import rank_by_density, score_item


def test_code_link_and_long_duration_accumulate() -> None:
    item = CandidateItem(
        item_id="a",
        title="Merge sort walkthrough",
        description="Source: https://github.com/acme/sorting",
        duration_seconds=1000,
    )

    details = score_item(item)

    assert details.score == 80
    assert details.flags == ["density:code_link", "density:deep_dive"]


def test_notebook_host_also_counts_as_academic_signal() -> None:
    item = CandidateItem(
        item_id="b",
        title="Heap sort",
        description="Notebook: https://colab.research.google.com/drive/x",
        duration_seconds=700,
    )

    details = score_item(item)

    assert details.score == 85
    assert details.flags == ["density:notebook_link", "density:academic", "density:detailed"]


def test_clickbait_penalty_is_applied_once() -> None:
    item = CandidateItem(item_id="c", title="You won't believe this sorting trick", description="you won't believe it")

    details = score_item(item)

    assert details.score == -100
    assert details.flags == ["penalty:clickbait"]


def test_high_views_with_short_description_is_penalized() -> None:
    item = CandidateItem(item_id="d", title="Sorting", description="short", view_count=600_000)

    assert score_item(item).score == -40


def test_shouting_title_is_penalized() -> None:
    item = CandidateItem(item_id="e", title="LEARN SORTING NOW")

    details = score_item(item)

    assert details.score == -20
    assert details.flags == ["penalty:aggressive_title"]


def test_rank_by_density_is_stable_and_idempotent() -> None:
    items = [
        CandidateItem(item_id="flat-1", title="Lesson one"),
        CandidateItem(item_id="deep", title="Lesson two", duration_seconds=1200),
        CandidateItem(item_id="flat-2", title="Lesson three"),
    ]

    ranked = rank_by_density(items)

    assert [item.item_id for item in ranked] == ["deep", "flat-1", "flat-2"]
    assert ranked[0].density_score == 30
    assert rank_by_density(ranked) == ranked
    assert items[1].density_score is None


def test_explicit_empty_weights_score_zero_but_keep_flags() -> None:
    item = CandidateItem(
        item_id="a",
        title="Merge sort walkthrough",
        description="Source: https://github.com/acme/sorting",
        duration_seconds=1000,
    )

    details = score_item(item, weights={})

    assert details.score == 0
    assert details.flags == ["density:code_link", "density:deep_dive"]
