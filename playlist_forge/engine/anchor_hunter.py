from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from playlist_forge.catalog.ytdlp_client import CatalogClient, call_catalog
from playlist_forge.config import AnchorSettings
from playlist_forge.models import AnchorItem, AnchorSequence, CandidateItem, SequenceRef
from playlist_forge.scoring.fuzzy_match import DEFAULT_MATCH_THRESHOLD, Titled, match_topic

logger = logging.getLogger(__name__)

AUTHOR_SCAN_LIMIT = 10
MAX_PROMISING_AUTHORS = 5


@dataclass(slots=True)
class CoverageScore:
    coverage: int
    matched_topics: list[str]
    unmatched_topics: list[str]


@dataclass(slots=True)
class AnchorHuntResult:
    found: bool
    anchor: AnchorSequence | None = None
    fallback_authors: list[str] = field(default_factory=list)
    searches_performed: int = 0


def score_coverage(
    topics: Sequence[str],
    items: Sequence[Titled],
    threshold: float = DEFAULT_MATCH_THRESHOLD,
) -> CoverageScore:
    """Percentage of topics that fuzzily match at least one item title."""

    matched: list[str] = []
    unmatched: list[str] = []
    for topic in topics:
        if match_topic(topic, items, threshold=threshold) is not None:
            matched.append(topic)
        else:
            unmatched.append(topic)

    coverage = round(len(matched) / len(topics) * 100) if topics else 0
    return CoverageScore(coverage=coverage, matched_topics=matched, unmatched_topics=unmatched)


def find_promising_authors(items: Sequence[CandidateItem], limit: int = MAX_PROMISING_AUTHORS) -> list[str]:
    authors: list[str] = []
    for item in items[:AUTHOR_SCAN_LIMIT]:
        if item.author_name and item.author_name != "Unknown" and item.author_name not in authors:
            authors.append(item.author_name)
        if len(authors) >= limit:
            break
    return authors


def hunt_for_anchor(
    subject: str,
    topics: Sequence[str],
    language_suffix: str,
    *,
    catalog: CatalogClient,
    settings: AnchorSettings,
    match_threshold: float = DEFAULT_MATCH_THRESHOLD,
) -> AnchorHuntResult:
    """Search curated sequences for the subject and keep the best-covering one.

    Candidates are evaluated one at a time in discovery order. The search stops
    early once a sequence reaches `early_exit_coverage`, and the best sequence
    is accepted only at `min_coverage` or above.
    """

    query = " ".join(part for part in (subject, "full course playlist", language_suffix) if part)
    searches = 1
    outcome = call_catalog(catalog.search_sequences, query)

    if not outcome.ok:
        logger.info("No sequences found for %r (%s); collecting author hints", subject, outcome.status)
        tutorial_query = " ".join(part for part in (subject, "tutorial", language_suffix) if part)
        searches += 1
        items_outcome = call_catalog(catalog.search_items, tutorial_query)
        authors = find_promising_authors(items_outcome.items) if items_outcome.ok else []
        return AnchorHuntResult(found=False, fallback_authors=authors, searches_performed=searches)

    best: AnchorSequence | None = None
    for ref in outcome.sequences[: settings.max_sequences]:
        searches += 1
        candidate = _evaluate_sequence(ref, topics, catalog=catalog, settings=settings, threshold=match_threshold)
        if candidate is None:
            continue
        logger.debug("Sequence %r by %s covers %d%%", ref.title, ref.owner_name, candidate.coverage_score)
        if best is None or candidate.coverage_score > best.coverage_score:
            best = candidate
        if best.coverage_score >= settings.early_exit_coverage:
            logger.info("Early exit: %r reaches %d%% coverage", best.title, best.coverage_score)
            break

    if best is not None and best.coverage_score >= settings.min_coverage:
        logger.info(
            "Anchor found: %r by %s (%d%% coverage, %d gaps)",
            best.title,
            best.owner_name,
            best.coverage_score,
            len(best.unmatched_topics),
        )
        return AnchorHuntResult(found=True, anchor=best, searches_performed=searches)

    hints: list[str] = []
    for ref in outcome.sequences:
        if ref.owner_name not in hints:
            hints.append(ref.owner_name)
        if len(hints) >= settings.fallback_hint_count:
            break
    logger.info(
        "No sequence reached %d%% coverage (best %s)",
        settings.min_coverage,
        best.coverage_score if best is not None else "n/a",
    )
    return AnchorHuntResult(found=False, fallback_authors=hints, searches_performed=searches)


def _evaluate_sequence(
    ref: SequenceRef,
    topics: Sequence[str],
    *,
    catalog: CatalogClient,
    settings: AnchorSettings,
    threshold: float,
) -> AnchorSequence | None:
    fetched = call_catalog(catalog.fetch_sequence_items, ref.sequence_id)
    if not fetched.ok:
        logger.debug("Sequence %s returned no items (%s)", ref.sequence_id, fetched.status)
        return None
    if len(fetched.items) < settings.min_sequence_items:
        logger.debug("Skipping thin sequence %s (%d items)", ref.sequence_id, len(fetched.items))
        return None

    items = tuple(
        AnchorItem(item_id=item.item_id, title=item.title, duration_seconds=item.duration_seconds, position=index)
        for index, item in enumerate(fetched.items)
    )
    coverage = score_coverage(topics, items, threshold=threshold)
    return AnchorSequence(
        sequence_id=ref.sequence_id,
        title=ref.title,
        owner_name=ref.owner_name,
        items=items,
        coverage_score=coverage.coverage,
        matched_topics=tuple(coverage.matched_topics),
        unmatched_topics=tuple(coverage.unmatched_topics),
    )
