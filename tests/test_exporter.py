from __future__ import annotations

import csv
import io
import json

from playlist_forge.export.exporter import (
    export_playlist_outputs,
    generate_summary,
    load_playlist_result,
    to_csv,
    to_markdown,
    to_minimal_json,
    to_watch_url,
    to_watch_urls,
)
from playlist_forge.models import AnchorSummary, PlaylistEntry, PlaylistResult, UserPreferences


def _sample_result() -> PlaylistResult:
    return PlaylistResult(
        subject_title="Data Structures",
        entries=[
            PlaylistEntry(
                position=0,
                item_id="abc",
                title='Arrays, "the basics"',
                channel_name="Anchor Channel",
                duration_seconds=900,
                duration_display="15:00",
                topic_matched="Arrays",
                source="anchor",
            ),
            PlaylistEntry(
                position=1,
                item_id="def",
                title="Linked Lists | deep dive",
                channel_name="Gap Chan",
                duration_seconds=1230,
                duration_display="20:30",
                topic_matched="Linked Lists",
                source="gap_fill",
            ),
        ],
        generated_at="2026-01-01T00:00:00+00:00",
        anchor=AnchorSummary(owner_name="Anchor Channel", sequence_title="DS Course", coverage_score=67),
        preferences=UserPreferences(),
        gaps_failed=["Graphs"],
    )


def test_watch_url_caps_at_fifty_ids() -> None:
    ids = [f"id{idx}" for idx in range(60)]

    url = to_watch_url(ids)

    assert url.startswith("https://www.youtube.com/watch_videos?video_ids=id0,id1,")
    assert url.endswith(",id49")
    assert to_watch_url([]) == ""


def test_watch_urls_chunk_long_playlists() -> None:
    ids = [f"id{idx}" for idx in range(60)]

    urls = to_watch_urls(ids)

    assert len(urls) == 2
    assert urls[1] == "https://www.youtube.com/watch_videos?video_ids=" + ",".join(ids[50:])


def test_csv_is_one_indexed_and_quotes_fields() -> None:
    rows = list(csv.DictReader(io.StringIO(to_csv(_sample_result()))))

    assert [row["Position"] for row in rows] == ["1", "2"]
    assert rows[0]["Title"] == 'Arrays, "the basics"'
    assert rows[0]["Video URL"] == "https://www.youtube.com/watch?v=abc"
    assert rows[1]["Source"] == "gap_fill"


def test_minimal_json_uses_human_positions() -> None:
    payload = json.loads(to_minimal_json(_sample_result()))

    assert payload["title"] == "Data Structures"
    assert [video["position"] for video in payload["videos"]] == [1, 2]
    assert payload["watch_url"].endswith("video_ids=abc,def")


def test_markdown_contains_anchor_and_escaped_table() -> None:
    markdown = to_markdown(_sample_result())

    assert markdown.startswith("# Data Structures")
    assert '> Anchor: "DS Course" by Anchor Channel (67% coverage)' in markdown
    assert "Linked Lists \\| deep dive" in markdown
    assert "**Unresolved topics:** Graphs" in markdown


def test_summary_includes_source_breakdown() -> None:
    summary = generate_summary(_sample_result())

    assert "2 videos (36 min total)" in summary
    assert "Sources: anchor: 1, gap_fill: 1" in summary
    assert "Mode: from_scratch" in summary


def test_export_outputs_and_load_roundtrip(tmp_path) -> None:
    exported = export_playlist_outputs(_sample_result(), tmp_path, basename="final")

    assert exported["json"].exists()
    assert exported["csv"].exists()
    assert exported["markdown"].exists()

    payload = json.loads(exported["json"].read_text(encoding="utf-8"))
    assert payload["total_items"] == 2
    assert payload["total_duration_minutes"] == 36

    loaded = load_playlist_result(exported["json"])
    assert loaded == _sample_result()
