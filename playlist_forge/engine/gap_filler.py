from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Sequence

from playlist_forge.catalog.ytdlp_client import CatalogClient
from playlist_forge.config import Settings
from playlist_forge.engine.resolver import Reranker, resolve_topic
from playlist_forge.models import (
    AnchorSequence,
    PlaylistEntry,
    SearchConstraints,
    TopicMapping,
    format_duration,
)
from playlist_forge.scoring.fuzzy_match import DEFAULT_MATCH_THRESHOLD, match_topic

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class GapFillResult:
    entries: list[PlaylistEntry]
    gaps_found: int = 0
    gaps_filled: int = 0
    gaps_failed: list[str] = field(default_factory=list)


def map_topics_to_anchor(
    topics: Sequence[str],
    anchor: AnchorSequence | None,
    threshold: float = DEFAULT_MATCH_THRESHOLD,
) -> list[TopicMapping]:
    """Pair every topic position with its closest anchor item; unmatched topics are gaps."""

    anchor_items = anchor.items if anchor is not None else ()
    mappings: list[TopicMapping] = []
    for position, topic in enumerate(topics):
        match = match_topic(topic, anchor_items, threshold=threshold)
        if match is None:
            mappings.append(TopicMapping(topic=topic, position=position, is_gap=True))
        else:
            mappings.append(
                TopicMapping(
                    topic=topic,
                    position=position,
                    is_gap=False,
                    matched_anchor_item=match.item,
                    match_score=match.score,
                )
            )
    return mappings


def resequence(entries: list[PlaylistEntry]) -> list[PlaylistEntry]:
    """Sort by position and renumber contiguously from zero."""

    ordered = sorted(entries, key=lambda entry: entry.position)
    return [replace(entry, position=index) for index, entry in enumerate(ordered)]


def fill_gaps(
    anchor: AnchorSequence | None,
    topics: Sequence[str],
    subject: str,
    constraints: SearchConstraints,
    *,
    catalog: CatalogClient,
    reranker: Reranker | None,
    settings: Settings,
) -> GapFillResult:
    mappings = map_topics_to_anchor(topics, anchor, threshold=settings.matching.threshold)
    gaps = [mapping for mapping in mappings if mapping.is_gap]
    logger.info("Gap analysis: %d/%d topics need resolution", len(gaps), len(mappings))

    resolved: dict[int, PlaylistEntry | None] = {}
    if gaps:
        workers = max(1, min(settings.pipeline.workers, len(gaps)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                mapping.position: executor.submit(
                    resolve_topic,
                    mapping.topic,
                    subject,
                    constraints,
                    mapping.position,
                    catalog=catalog,
                    reranker=reranker,
                    settings=settings,
                )
                for mapping in gaps
            }
            for position, future in futures.items():
                try:
                    resolved[position] = future.result()
                except Exception:
                    logger.exception("Resolving topic at position %d failed", position)
                    resolved[position] = None

    owner_name = anchor.owner_name if anchor is not None else "Unknown"
    merged: list[PlaylistEntry] = []
    gaps_failed: list[str] = []
    for mapping in mappings:
        anchor_item = mapping.matched_anchor_item
        if anchor_item is not None:
            merged.append(
                PlaylistEntry(
                    position=mapping.position,
                    item_id=anchor_item.item_id,
                    title=anchor_item.title,
                    channel_name=owner_name,
                    duration_seconds=anchor_item.duration_seconds,
                    duration_display=format_duration(anchor_item.duration_seconds),
                    topic_matched=mapping.topic,
                    source="anchor",
                )
            )
            continue

        entry = resolved.get(mapping.position)
        if entry is None:
            gaps_failed.append(mapping.topic)
            continue
        merged.append(entry)

    entries = resequence(merged)
    if gaps_failed:
        logger.warning("Could not resolve %d topic(s): %s", len(gaps_failed), ", ".join(gaps_failed))

    return GapFillResult(
        entries=entries,
        gaps_found=len(gaps),
        gaps_filled=len(gaps) - len(gaps_failed),
        gaps_failed=gaps_failed,
    )


def build_from_scratch(
    topics: Sequence[str],
    subject: str,
    constraints: SearchConstraints,
    *,
    catalog: CatalogClient,
    reranker: Reranker | None,
    settings: Settings,
) -> GapFillResult:
    """Resolve every topic as a gap; used when no anchor sequence qualifies."""

    return fill_gaps(
        None,
        topics,
        subject,
        constraints,
        catalog=catalog,
        reranker=reranker,
        settings=settings,
    )
