from __future__ import annotations

import logging
from http.client import HTTPException
from pathlib import Path
from typing import Any
from urllib.error import HTTPError, URLError

from playlist_forge.llm import ollama
from playlist_forge.models import CandidateItem, RerankContext, RerankOutcome, format_duration

logger = logging.getLogger(__name__)

MAX_RERANK_CANDIDATES = 5
DESCRIPTION_PREVIEW_CHARS = 200
PROMPT_TEMPLATE_PATH = Path(__file__).resolve().parent.parent / "prompts" / "rerank_prompt.txt"


def rerank_candidates(
    candidates: list[CandidateItem],
    context: RerankContext,
    *,
    pool: ollama.EndpointPool,
    model: str = ollama.DEFAULT_MODEL,
    timeout_seconds: int = ollama.DEFAULT_TIMEOUT_SECONDS,
) -> RerankOutcome:
    """Ask a local model to pick the densest candidate; one attempt, strict JSON validation."""

    if not candidates:
        return RerankOutcome(winner_id=None, fallback_used=True)

    try:
        prompt = _format_prompt(candidates, context)
        response_text = ollama.request_ollama(
            endpoint=pool.next_endpoint(),
            model=model,
            prompt=prompt,
            timeout_seconds=timeout_seconds,
        )
        parsed = ollama.parse_json_object(response_text)
        if parsed is None:
            raise ValueError("Reranker output is not a JSON object.")
        winner_id, reasoning = _validate_rerank_schema(parsed)
    except (ValueError, HTTPError, URLError, HTTPException, TimeoutError, OSError, KeyError, TypeError) as exc:
        logger.warning("Reranker unavailable for topic %r; keeping density order (%s)", context.topic, exc)
        return RerankOutcome(winner_id=None, fallback_used=True)

    return RerankOutcome(winner_id=winner_id, fallback_used=False, reasoning=reasoning)


def prepare_for_rerank(candidates: list[CandidateItem]) -> str:
    """Format the top candidates as numbered blocks for the rerank prompt."""

    blocks: list[str] = []
    for idx, item in enumerate(candidates[:MAX_RERANK_CANDIDATES], start=1):
        preview = item.description[:DESCRIPTION_PREVIEW_CHARS].replace("\n", " ")
        flags = ", ".join(item.density_flags) or "None"
        blocks.append(
            f"[{idx}] ID: {item.item_id}\n"
            f"Title: {item.title}\n"
            f"Channel: {item.author_name}\n"
            f"Duration: {format_duration(item.duration_seconds)}\n"
            f"Description: {preview}...\n"
            f"Density Flags: {flags}"
        )
    return "\n\n".join(blocks)


def _format_prompt(candidates: list[CandidateItem], context: RerankContext) -> str:
    template = PROMPT_TEMPLATE_PATH.read_text(encoding="utf-8").strip()
    return template.format(
        role=context.role,
        topic=context.topic,
        experience_level=context.experience_level,
        candidates=prepare_for_rerank(candidates),
    )


def _validate_rerank_schema(payload: dict[str, Any]) -> tuple[str, str | None]:
    winner_id = payload["winnerId"]
    if not isinstance(winner_id, str) or not winner_id.strip():
        raise ValueError("winnerId must be a non-empty string.")

    reasoning = payload.get("reasoning")
    if reasoning is not None and not isinstance(reasoning, str):
        raise ValueError("reasoning must be a string when present.")

    return winner_id.strip(), (reasoning.strip() if reasoning else None)

