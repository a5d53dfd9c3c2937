from __future__ import annotations

import logging

from playlist_forge.catalog.ytdlp_client import CatalogClient, call_catalog
from playlist_forge.config import OneShotSettings
from playlist_forge.models import CandidateItem, PlaylistEntry, SearchConstraints, format_duration
from playlist_forge.scoring.density import rank_by_density

logger = logging.getLogger(__name__)

ONE_SHOT_QUERY_TEMPLATES = (
    "{subject} one shot full course",
    "{subject} complete revision in one video",
    "{subject} full course marathon",
)


def build_one_shot_queries(subject: str, language_suffix: str) -> list[str]:
    return [f"{template.format(subject=subject)} {language_suffix}".strip() for template in ONE_SHOT_QUERY_TEMPLATES]


def search_one_shot(
    subject: str,
    constraints: SearchConstraints,
    *,
    catalog: CatalogClient,
    settings: OneShotSettings,
) -> list[PlaylistEntry]:
    """Find marathon videos that cover a whole subject in one sitting."""

    candidates: list[CandidateItem] = []
    seen_ids: set[str] = set()
    for query in build_one_shot_queries(subject, constraints.language_suffix):
        outcome = call_catalog(catalog.search_items, query)
        if outcome.status == "failed":
            logger.warning("One-shot query %r failed: %s", query, outcome.reason)
            continue
        for item in outcome.items[: settings.results_per_query]:
            if item.item_id in seen_ids:
                continue
            seen_ids.add(item.item_id)
            candidates.append(item)

    logger.info("One-shot search collected %d unique candidates for %r", len(candidates), subject)

    long_items = [item for item in candidates if item.duration_seconds >= settings.min_duration_seconds]
    if not long_items:
        logger.warning(
            "No one-shot videos >= %ss; relaxing to %ss",
            settings.min_duration_seconds,
            settings.relaxed_min_duration_seconds,
        )
        long_items = [item for item in candidates if item.duration_seconds >= settings.relaxed_min_duration_seconds]
    if not long_items:
        logger.error("No suitable one-shot videos found for %r", subject)
        return []

    ranked = rank_by_density(long_items)
    return [
        PlaylistEntry(
            position=index,
            item_id=item.item_id,
            title=item.title,
            channel_name=item.author_name,
            duration_seconds=item.duration_seconds,
            duration_display=format_duration(item.duration_seconds),
            topic_matched=subject,
            source="one_shot",
        )
        for index, item in enumerate(ranked[: settings.max_results])
    ]
