from __future__ import annotations

import csv
import io
import json
from collections import Counter
from dataclasses import asdict
from pathlib import Path
from typing import Any

from playlist_forge.models import AnchorSummary, PlaylistEntry, PlaylistResult, UserPreferences

WATCH_VIDEOS_URL = "https://www.youtube.com/watch_videos?video_ids="
VIDEO_URL = "https://www.youtube.com/watch?v="
MAX_IDS_PER_URL = 50

CSV_FIELDS = ["Position", "Title", "Video URL", "Duration", "Channel", "Topic", "Source"]


def to_watch_url(item_ids: list[str]) -> str:
    """Temporary playlist URL for at most the first 50 ids; empty input gives ""."""

    if not item_ids:
        return ""
    return WATCH_VIDEOS_URL + ",".join(item_ids[:MAX_IDS_PER_URL])


def to_watch_urls(item_ids: list[str], chunk_size: int = MAX_IDS_PER_URL) -> list[str]:
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive.")
    return [to_watch_url(item_ids[start : start + chunk_size]) for start in range(0, len(item_ids), chunk_size)]


def video_url(item_id: str) -> str:
    return f"{VIDEO_URL}{item_id}"


def result_to_payload(result: PlaylistResult) -> dict[str, Any]:
    return {
        "subject_title": result.subject_title,
        "total_items": result.total_items,
        "total_duration_seconds": result.total_duration_seconds,
        "total_duration_minutes": result.total_duration_minutes,
        "watch_url": to_watch_url([entry.item_id for entry in result.entries]),
        "generated_at": result.generated_at,
        "anchor": asdict(result.anchor) if result.anchor is not None else None,
        "preferences": asdict(result.preferences) if result.preferences is not None else None,
        "gaps_failed": list(result.gaps_failed),
        "entries": [asdict(entry) for entry in result.entries],
    }


def to_json(result: PlaylistResult) -> str:
    return json.dumps(result_to_payload(result), indent=2, ensure_ascii=False)


def to_minimal_json(result: PlaylistResult) -> str:
    """Sharing-oriented JSON with 1-indexed positions and direct video links."""

    minimal = {
        "title": result.subject_title,
        "total_items": result.total_items,
        "watch_url": to_watch_url([entry.item_id for entry in result.entries]),
        "videos": [
            {
                "position": entry.position + 1,
                "title": entry.title,
                "url": video_url(entry.item_id),
                "duration": entry.duration_display,
                "topic": entry.topic_matched,
            }
            for entry in result.entries
        ],
    }
    return json.dumps(minimal, indent=2, ensure_ascii=False)


def to_csv(result: PlaylistResult) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=CSV_FIELDS, lineterminator="\n")
    writer.writeheader()
    for entry in result.entries:
        writer.writerow(
            {
                "Position": entry.position + 1,
                "Title": entry.title,
                "Video URL": video_url(entry.item_id),
                "Duration": entry.duration_display,
                "Channel": entry.channel_name,
                "Topic": entry.topic_matched,
                "Source": entry.source,
            }
        )
    return buffer.getvalue()


def to_markdown(result: PlaylistResult) -> str:
    lines = [
        f"# {result.subject_title}",
        "",
        f"**{result.total_items} videos** | **{result.total_duration_minutes} min total**",
        "",
    ]
    if result.anchor is not None:
        lines.append(
            f'> Anchor: "{result.anchor.sequence_title}" by {result.anchor.owner_name} '
            f"({result.anchor.coverage_score}% coverage)"
        )
        lines.append("")

    watch_url = to_watch_url([entry.item_id for entry in result.entries])
    if watch_url:
        lines.append(f"**[Open Playlist]({watch_url})**")
        lines.append("")

    lines.append("| # | Title | Duration | Topic | Source |")
    lines.append("|---|-------|----------|-------|--------|")
    for entry in result.entries:
        title = _escape_markdown_cell(entry.title)
        topic = _escape_markdown_cell(entry.topic_matched)
        lines.append(
            f"| {entry.position + 1} | [{title}]({video_url(entry.item_id)}) | "
            f"{entry.duration_display} | {topic} | {entry.source} |"
        )

    if result.gaps_failed:
        lines.append("")
        lines.append("**Unresolved topics:** " + ", ".join(result.gaps_failed))

    lines.append("")
    lines.append(f"*Generated at {result.generated_at}*")
    return "\n".join(lines)


def generate_summary(result: PlaylistResult) -> str:
    lines = [
        f"Playlist: {result.subject_title}",
        f"{result.total_items} videos ({result.total_duration_minutes} min total)",
    ]
    if result.preferences is not None:
        lines.append(f"Mode: {result.preferences.learning_mode}")
        lines.append(f"Language: {result.preferences.language}")
    if result.anchor is not None:
        lines.append(f'Anchor: "{result.anchor.sequence_title}" ({result.anchor.coverage_score}% coverage)')

    sources = Counter(entry.source for entry in result.entries)
    lines.append("Sources: " + ", ".join(f"{source}: {count}" for source, count in sources.items()))
    if result.gaps_failed:
        lines.append(f"Unresolved: {len(result.gaps_failed)}")
    watch_url = to_watch_url([entry.item_id for entry in result.entries])
    if watch_url:
        lines.append(watch_url)
    return "\n".join(lines)


def export_playlist_outputs(
    result: PlaylistResult,
    output_dir: str | Path,
    *,
    basename: str = "playlist",
) -> dict[str, Path]:
    """Write the JSON contract plus CSV and Markdown views of a playlist."""

    resolved_output_dir = Path(output_dir)
    resolved_output_dir.mkdir(parents=True, exist_ok=True)

    json_path = resolved_output_dir / f"{basename}.json"
    csv_path = resolved_output_dir / f"{basename}.csv"
    markdown_path = resolved_output_dir / f"{basename}.md"

    json_path.write_text(to_json(result), encoding="utf-8")
    csv_path.write_text(to_csv(result), encoding="utf-8", newline="")
    markdown_path.write_text(to_markdown(result), encoding="utf-8")

    return {
        "json": json_path,
        "csv": csv_path,
        "markdown": markdown_path,
    }


def load_playlist_result(path: str | Path) -> PlaylistResult:
    """Load a playlist from the exporter JSON contract."""

    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError("Playlist contract must be a JSON object.")

    raw_entries = payload.get("entries")
    if not isinstance(raw_entries, list):
        raise ValueError("Playlist contract must contain an 'entries' array.")

    entries: list[PlaylistEntry] = []
    for idx, row in enumerate(raw_entries, start=1):
        if not isinstance(row, dict):
            raise ValueError(f"Playlist entry {idx} must be an object.")
        entries.append(
            PlaylistEntry(
                position=int(row["position"]),
                item_id=str(row["item_id"]),
                title=str(row["title"]),
                channel_name=str(row.get("channel_name", "Unknown")),
                duration_seconds=int(row["duration_seconds"]),
                duration_display=str(row["duration_display"]),
                topic_matched=str(row["topic_matched"]),
                source=row["source"],
            )
        )

    raw_anchor = payload.get("anchor")
    raw_preferences = payload.get("preferences")
    return PlaylistResult(
        subject_title=str(payload["subject_title"]),
        entries=entries,
        generated_at=str(payload.get("generated_at", "")),
        anchor=AnchorSummary(**raw_anchor) if isinstance(raw_anchor, dict) else None,
        preferences=UserPreferences(**raw_preferences) if isinstance(raw_preferences, dict) else None,
        gaps_failed=[str(topic) for topic in payload.get("gaps_failed", [])],
    )


def _escape_markdown_cell(text: str) -> str:
    return text.replace("|", "\\|")
