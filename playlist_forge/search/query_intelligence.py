"""Deterministic query understanding for catalog searches.

Turns a free-form "subject + topic" string into a cleaned subject list, an
intent and a content type, then into a search query with a content-appropriate
suffix. No model calls are involved.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

logger = logging.getLogger(__name__)

Intent = Literal["learn_skill", "understand_concept", "explore_topic", "build_project", "solve_problem"]
ContentType = Literal["tutorial", "explanation", "documentary", "lecture", "demonstration", "overview"]

STOP_WORDS = frozenset(
    {
        "a", "an", "the", "of", "in", "on", "at", "to", "for", "with",
        "by", "from", "up", "about", "into", "through", "during", "before",
        "after", "above", "below", "between", "under", "over",
        "and", "but", "or", "nor", "so", "yet",
        "i", "me", "my", "we", "us", "our", "you", "your", "he", "she",
        "it", "they", "them", "their", "this", "that", "these", "those",
        "is", "are", "was", "were", "be", "been", "being", "have", "had",
        "has", "do", "does", "did", "will", "would", "could", "should",
        "may", "might", "shall", "can", "need", "must",
        "very", "really", "just", "also", "like", "want", "please",
        "help", "know", "get", "got", "let", "thing", "stuff", "something",
        "how", "what", "why", "when", "where", "which", "who",
    }
)

PURE_INTENT_WORDS = frozenset(
    {"learn", "understand", "explain", "build", "create", "teach", "fix", "solve", "debug", "start", "make"}
)

# Insertion order matters: the first intent reaching the top hit count wins.
INTENT_SIGNALS: dict[str, tuple[str, ...]] = {
    "learn_skill": ("learn", "tutorial", "course", "teach", "training", "master", "practice", "beginner", "start"),
    "understand_concept": ("understand", "explain", "concept", "theory", "meaning", "definition", "what", "why"),
    "explore_topic": (
        "history", "evolution", "story", "journey", "culture", "civilization", "era", "age", "period",
        "ancient", "modern",
    ),
    "build_project": ("build", "create", "make", "develop", "implement", "code", "program", "design", "project", "app"),
    "solve_problem": ("fix", "solve", "debug", "error", "issue", "problem", "troubleshoot", "broken", "crash"),
}

TIMEFRAME_SIGNALS: dict[str, tuple[str, ...]] = {
    "ancient": ("ancient", "prehistoric", "classical", "antiquity", "bc", "bce", "old", "medieval", "middle ages"),
    "modern": ("modern", "contemporary", "current", "today", "2024", "2025", "2026", "latest", "new", "recent"),
    "historical": ("history", "historical", "century", "era", "age", "period", "dynasty", "empire", "kingdom"),
}

ACTION_WORDS = frozenset(
    {
        "trade", "build", "create", "design", "fight", "conquer", "discover",
        "invent", "cook", "paint", "compose", "write", "calculate", "analyze",
        "compare", "migrate", "evolve", "grow", "shrink", "collapse", "rise",
        "fall", "spread", "connect", "separate", "merge", "split",
    }
)

CONTENT_SUFFIXES: dict[str, str] = {
    "tutorial": "tutorial guide",
    "explanation": "explained overview",
    "documentary": "documentary",
    "lecture": "lecture course",
    "demonstration": "project walkthrough",
    "overview": "introduction overview",
}

MODIFIER_SUFFIXES: dict[str, str] = {
    "detailed": "full course deep dive",
    "practical": "hands-on project build",
    "short": "explained quickly",
}


@dataclass(frozen=True, slots=True)
class ExtractedMeaning:
    subjects: tuple[str, ...]
    action: str | None
    timeframe: str | None
    intent: Intent
    cleaned_query: str
    content_type: ContentType


@dataclass(frozen=True, slots=True)
class SmartQuery:
    primary: str
    fallback: str
    subjects: tuple[str, ...]


def extract_meaning(raw_query: str) -> ExtractedMeaning:
    normalized = raw_query.lower().strip()
    words = [word for word in normalized.split() if len(word) > 1]

    intent: Intent = "understand_concept"
    best_hits = 0
    for intent_key, signals in INTENT_SIGNALS.items():
        hits = sum(1 for signal in signals if signal in normalized)
        if hits > best_hits:
            best_hits = hits
            intent = intent_key  # type: ignore[assignment]

    timeframe = next(
        (name for name, signals in TIMEFRAME_SIGNALS.items() if any(signal in normalized for signal in signals)),
        None,
    )
    action = next((word for word in words if word in ACTION_WORDS), None)

    subjects = tuple(
        dict.fromkeys(word for word in words if word not in STOP_WORDS and word not in PURE_INTENT_WORDS)
    )

    return ExtractedMeaning(
        subjects=subjects,
        action=action,
        timeframe=timeframe,
        intent=intent,
        cleaned_query=" ".join(subjects),
        content_type=_derive_content_type(intent, timeframe),
    )


def build_smart_query(meaning: ExtractedMeaning, modifier: str | None = None) -> SmartQuery:
    suffix = MODIFIER_SUFFIXES.get(modifier or "", CONTENT_SUFFIXES[meaning.content_type])
    return SmartQuery(
        primary=f"{meaning.cleaned_query} {suffix}".strip(),
        fallback=" ".join(meaning.subjects[:3]),
        subjects=meaning.subjects,
    )


def analyze_query(raw_query: str, modifier: str | None = None) -> tuple[ExtractedMeaning, SmartQuery]:
    meaning = extract_meaning(raw_query)
    smart_query = build_smart_query(meaning, modifier)
    logger.debug(
        "Query analysis raw=%r subjects=%s intent=%s content_type=%s primary=%r",
        raw_query,
        list(meaning.subjects),
        meaning.intent,
        meaning.content_type,
        smart_query.primary,
    )
    return meaning, smart_query


def _derive_content_type(intent: Intent, timeframe: str | None) -> ContentType:
    if timeframe in {"ancient", "historical"}:
        return "documentary"
    if intent in {"learn_skill", "solve_problem"}:
        return "tutorial"
    if intent == "build_project":
        return "demonstration"
    if intent == "explore_topic":
        return "documentary" if timeframe else "overview"
    return "explanation"
