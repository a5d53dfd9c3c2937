from __future__ import annotations

import logging
from typing import Callable

from playlist_forge.catalog.ytdlp_client import CatalogClient, call_catalog
from playlist_forge.config import Settings
from playlist_forge.models import (
    CandidateItem,
    EntrySource,
    PlaylistEntry,
    RerankContext,
    RerankOutcome,
    SearchConstraints,
    format_duration,
)
from playlist_forge.scoring.density import rank_by_density
from playlist_forge.search.query_intelligence import analyze_query

logger = logging.getLogger(__name__)

Reranker = Callable[[list[CandidateItem], RerankContext], RerankOutcome]


def build_topic_query(subject: str, topic: str, language_suffix: str) -> str:
    _, smart_query = analyze_query(f"{subject} {topic}")
    return _join(smart_query.primary, language_suffix)


def resolve_topic(
    topic: str,
    subject: str,
    constraints: SearchConstraints,
    position: int,
    *,
    catalog: CatalogClient,
    reranker: Reranker | None,
    settings: Settings,
    source: EntrySource = "gap_fill",
) -> PlaylistEntry | None:
    """Find the single best item for one topic, or None when nothing suitable exists."""

    resolver_settings = settings.resolver
    query = build_topic_query(subject, topic, constraints.language_suffix)
    outcome = call_catalog(catalog.search_items, query)

    if not outcome.ok:
        simple_query = _join(topic, constraints.language_suffix)
        logger.info("No results for %r (%s); retrying with %r", query, outcome.status, simple_query)
        outcome = call_catalog(catalog.search_items, simple_query)
        if not outcome.ok:
            logger.info("No candidates for topic %r", topic)
            return None

    pool = list(outcome.items[: resolver_settings.search_pool_size])
    window = constraints.duration
    in_window = [item for item in pool if window.min_seconds <= item.duration_seconds <= window.max_seconds]
    if not in_window:
        in_window = [item for item in pool if item.duration_seconds >= resolver_settings.relaxed_min_seconds]
        logger.debug(
            "Duration window %s-%ss empty for %r; relaxed to >= %ss (%d left)",
            window.min_seconds,
            window.max_seconds,
            topic,
            resolver_settings.relaxed_min_seconds,
            len(in_window),
        )
    if not in_window:
        logger.info("No candidates within duration limits for topic %r", topic)
        return None

    ranked = rank_by_density(in_window)
    best = ranked[0]

    if reranker is not None and resolver_settings.use_reranker and len(ranked) >= resolver_settings.min_rerank_pool:
        submitted = ranked[: resolver_settings.rerank_top_n]
        context = RerankContext(topic=topic, experience_level=constraints.experience_level)
        rerank = _call_reranker(reranker, submitted, context)
        winner = next((item for item in submitted if item.item_id == rerank.winner_id), None)
        if winner is not None:
            best = winner
        elif not rerank.fallback_used:
            logger.warning("Reranker returned unknown id %r for topic %r; keeping density pick", rerank.winner_id, topic)

    return PlaylistEntry(
        position=position,
        item_id=best.item_id,
        title=best.title,
        channel_name=best.author_name,
        duration_seconds=best.duration_seconds,
        duration_display=format_duration(best.duration_seconds),
        topic_matched=topic,
        source=source,
    )


def _call_reranker(
    reranker: Reranker,
    candidates: list[CandidateItem],
    context: RerankContext,
) -> RerankOutcome:
    try:
        return reranker(candidates, context)
    except Exception as exc:
        logger.warning("Reranker raised for topic %r; keeping density pick (%s)", context.topic, exc)
        return RerankOutcome(winner_id=None, fallback_used=True)


def _join(*parts: str) -> str:
    return " ".join(part.strip() for part in parts if part and part.strip())
