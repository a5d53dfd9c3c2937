from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import partial
from pathlib import Path
from typing import Any, Sequence

from playlist_forge.catalog.cache import CachedCatalog
from playlist_forge.catalog.ytdlp_client import CatalogClient, YtDlpCatalog
from playlist_forge.config import Settings
from playlist_forge.engine.anchor_hunter import hunt_for_anchor
from playlist_forge.engine.gap_filler import build_from_scratch, fill_gaps
from playlist_forge.engine.one_shot import search_one_shot
from playlist_forge.engine.resolver import Reranker
from playlist_forge.extract.syllabus import extract_syllabus_from_image, extract_syllabus_from_text
from playlist_forge.llm.ollama import EndpointPool
from playlist_forge.models import (
    AnchorSummary,
    PlaylistEntry,
    PlaylistResult,
    SearchConstraints,
    SyllabusData,
    UserPreferences,
)
from playlist_forge.preferences import resolve_preferences, validate_preferences
from playlist_forge.scoring.llm_rerank import rerank_candidates

logger = logging.getLogger(__name__)


class PlaylistBuildError(RuntimeError):
    """Raised when a build produces no playlist entries at all."""


def create_catalog(settings: Settings) -> CatalogClient:
    catalog: CatalogClient = YtDlpCatalog(
        binary=settings.catalog.binary,
        timeout_seconds=settings.catalog.timeout_seconds,
        max_results=settings.catalog.max_results,
    )
    if settings.catalog.cache_enabled:
        catalog = CachedCatalog(catalog, settings.pipeline.cache_dir)
    return catalog


def create_reranker(settings: Settings, pool: EndpointPool) -> Reranker | None:
    if not settings.resolver.use_reranker:
        return None
    return partial(
        rerank_candidates,
        pool=pool,
        model=settings.llm.model,
        timeout_seconds=settings.llm.timeout_seconds,
    )


def build_from_topics(
    subject: str,
    topics: Sequence[str],
    constraints: SearchConstraints,
    *,
    catalog: CatalogClient,
    reranker: Reranker | None,
    settings: Settings,
    preferences: UserPreferences | None = None,
    skip_anchor_search: bool = False,
) -> PlaylistResult:
    """Anchor hunt, then gap fill against the anchor or build every topic from scratch."""

    anchor_summary: AnchorSummary | None = None
    anchor = None
    if skip_anchor_search:
        logger.info("Anchor search skipped for %r", subject)
    else:
        hunt = hunt_for_anchor(
            subject,
            topics,
            constraints.language_suffix,
            catalog=catalog,
            settings=settings.anchor,
            match_threshold=settings.matching.threshold,
        )
        logger.info("Anchor hunt finished after %d catalog calls", hunt.searches_performed)
        if hunt.found and hunt.anchor is not None:
            anchor = hunt.anchor
        elif hunt.fallback_authors:
            logger.info("No anchor; candidate authors: %s", ", ".join(hunt.fallback_authors))

    if anchor is not None:
        gap_result = fill_gaps(
            anchor,
            topics,
            subject,
            constraints,
            catalog=catalog,
            reranker=reranker,
            settings=settings,
        )
        anchor_summary = AnchorSummary(
            owner_name=anchor.owner_name,
            sequence_title=anchor.title,
            coverage_score=anchor.coverage_score,
        )
    else:
        logger.info("Building %r from scratch (%d topics)", subject, len(topics))
        gap_result = build_from_scratch(
            topics,
            subject,
            constraints,
            catalog=catalog,
            reranker=reranker,
            settings=settings,
        )
        if not gap_result.entries:
            raise PlaylistBuildError(f"No videos could be resolved for any topic of {subject!r}.")

    return PlaylistResult(
        subject_title=subject,
        entries=gap_result.entries,
        generated_at=_utc_now(),
        anchor=anchor_summary,
        preferences=preferences,
        gaps_failed=list(gap_result.gaps_failed),
    )


def build_one_shot(
    subject: str,
    topics: Sequence[str],
    constraints: SearchConstraints,
    *,
    catalog: CatalogClient,
    settings: Settings,
) -> list[PlaylistEntry]:
    logger.info("One-shot mode for %r (%d syllabus topics folded into marathon search)", subject, len(topics))
    return search_one_shot(subject, constraints, catalog=catalog, settings=settings.one_shot)


def build_playlist(
    syllabus: SyllabusData,
    preferences: UserPreferences | dict[str, Any] | None,
    *,
    catalog: CatalogClient,
    reranker: Reranker | None,
    settings: Settings,
    skip_anchor_search: bool = False,
    skip_reranker: bool = False,
) -> PlaylistResult:
    prefs = validate_preferences(preferences)
    constraints = resolve_preferences(prefs)
    logger.info(
        "Building playlist for %r: %d topics, mode=%s",
        syllabus.title,
        len(syllabus.table_of_contents),
        constraints.mode_label,
    )

    if prefs.learning_mode == "one_shot":
        entries = build_one_shot(
            syllabus.title,
            syllabus.table_of_contents,
            constraints,
            catalog=catalog,
            settings=settings,
        )
        if not entries:
            raise PlaylistBuildError(f"No one-shot videos found for {syllabus.title!r}.")
        result = PlaylistResult(
            subject_title=syllabus.title,
            entries=entries,
            generated_at=_utc_now(),
            preferences=prefs,
        )
    else:
        result = build_from_topics(
            syllabus.title,
            syllabus.table_of_contents,
            constraints,
            catalog=catalog,
            reranker=None if skip_reranker else reranker,
            settings=settings,
            preferences=prefs,
            skip_anchor_search=skip_anchor_search,
        )

    logger.info(
        "Playlist ready: %d videos, %d min, %d unresolved",
        result.total_items,
        result.total_duration_minutes,
        len(result.gaps_failed),
    )
    return result


def build_playlist_from_text(
    syllabus_text: str,
    preferences: UserPreferences | dict[str, Any] | None,
    *,
    catalog: CatalogClient,
    reranker: Reranker | None,
    pool: EndpointPool,
    settings: Settings,
    skip_anchor_search: bool = False,
    skip_reranker: bool = False,
) -> PlaylistResult:
    prefs = validate_preferences(preferences)
    syllabus = extract_syllabus_from_text(
        syllabus_text,
        prefs.learning_mode,
        pool=pool,
        model=settings.llm.model,
        timeout_seconds=settings.llm.timeout_seconds,
    )
    return build_playlist(
        syllabus,
        prefs,
        catalog=catalog,
        reranker=reranker,
        settings=settings,
        skip_anchor_search=skip_anchor_search,
        skip_reranker=skip_reranker,
    )


def build_playlist_from_image(
    image_path: str | Path,
    preferences: UserPreferences | dict[str, Any] | None,
    *,
    catalog: CatalogClient,
    reranker: Reranker | None,
    pool: EndpointPool,
    settings: Settings,
    skip_anchor_search: bool = False,
    skip_reranker: bool = False,
) -> PlaylistResult:
    prefs = validate_preferences(preferences)
    syllabus = extract_syllabus_from_image(
        image_path,
        prefs.learning_mode,
        pool=pool,
        model=settings.llm.vision_model,
        timeout_seconds=settings.llm.timeout_seconds,
    )
    return build_playlist(
        syllabus,
        prefs,
        catalog=catalog,
        reranker=reranker,
        settings=settings,
        skip_anchor_search=skip_anchor_search,
        skip_reranker=skip_reranker,
    )


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")
