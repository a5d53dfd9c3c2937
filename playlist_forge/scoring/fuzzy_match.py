from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Protocol, Sequence, TypeVar

from rapidfuzz import fuzz, utils

DEFAULT_MATCH_THRESHOLD = 0.4
TIE_EPSILON = 1e-9


class Titled(Protocol):
    @property
    def title(self) -> str: ...


T = TypeVar("T", bound=Titled)


@dataclass(frozen=True, slots=True)
class TopicMatch(Generic[T]):
    """Best title match for a topic; `score` is a distance where lower is better."""

    item: T
    score: float


def title_distance(query: str, title: str) -> float:
    """Token-aware distance in [0, 1] between a topic and a title."""

    similarity = fuzz.token_set_ratio(query, title, processor=utils.default_process)
    return round(1.0 - (similarity / 100.0), 6)


def match_topic(
    query: str,
    candidates: Sequence[T],
    threshold: float = DEFAULT_MATCH_THRESHOLD,
) -> TopicMatch[T] | None:
    """Return the closest titled candidate below `threshold`, or None.

    Near-equal distances keep the earliest candidate so results never depend
    on anything but input order.
    """

    best: TopicMatch[T] | None = None
    for candidate in candidates:
        distance = title_distance(query, candidate.title)
        if distance >= threshold:
            continue
        if best is None or distance < best.score - TIE_EPSILON:
            best = TopicMatch(item=candidate, score=distance)
    return best
