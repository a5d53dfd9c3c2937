from __future__ import annotations

from dataclasses import dataclass, replace

from playlist_forge.models import CandidateItem

DEFAULT_WEIGHTS = {
    "code_link": 50,
    "notebook_link": 50,
    "documentation": 25,
    "academic": 20,
    "technical": 15,
    "deep_dive": 30,
    "detailed": 15,
    "clickbait": -100,
    "high_views_low_info": -40,
    "aggressive_title": -20,
}

DEEP_DIVE_SECONDS = 900
DETAILED_SECONDS = 600
HIGH_VIEW_THRESHOLD = 500_000
SHORT_DESCRIPTION_CHARS = 100
CAPS_RATIO_THRESHOLD = 0.5
CAPS_MIN_TITLE_LENGTH = 10

CODE_HOSTS = ("github.com", "github.io", "gitlab.com", "bitbucket.org")
NOTEBOOK_HOSTS = ("colab.research.google.com", "kaggle.com/code", "jupyter")
DOCUMENTATION_KEYWORDS = ("documentation", "docs", "api reference", "readme", "implementation")
ACADEMIC_KEYWORDS = ("paper", "research", "arxiv", "whitepaper", "thesis", "algorithm")
TECHNICAL_KEYWORDS = ("source code", "repository", "npm", "pip install", "docker")
CLICKBAIT_PHRASES = (
    "mind-blowing",
    "you won't believe",
    "insane",
    "crazy",
    "!! ",
    "\U0001f525\U0001f525\U0001f525",
    "secrets revealed",
    "changed my life",
    "in just 5 minutes",
    "watch this before",
    "nobody tells you",
)


@dataclass(slots=True)
class DensityDetails:
    """Explainable output for information-density scoring."""

    score: int
    flags: list[str]


def score_item(item: CandidateItem, weights: dict[str, int] | None = None) -> DensityDetails:
    """Score a candidate's technical depth from lexical and structural signals."""

    active = weights if weights is not None else DEFAULT_WEIGHTS
    description = item.description.lower()
    title = item.title.lower()
    both = (title, description)

    score = 0
    flags: list[str] = []

    def _apply(signal: str) -> None:
        nonlocal score
        score += active.get(signal, 0)
        flags.append(f"density:{signal}" if active.get(signal, 0) >= 0 else f"penalty:{signal}")

    if _contains_any((description,), CODE_HOSTS):
        _apply("code_link")
    if _contains_any((description,), NOTEBOOK_HOSTS):
        _apply("notebook_link")
    if _contains_any(both, DOCUMENTATION_KEYWORDS):
        _apply("documentation")
    if _contains_any(both, ACADEMIC_KEYWORDS):
        _apply("academic")
    if _contains_any((description,), TECHNICAL_KEYWORDS):
        _apply("technical")

    if item.duration_seconds > DEEP_DIVE_SECONDS:
        _apply("deep_dive")
    elif item.duration_seconds > DETAILED_SECONDS:
        _apply("detailed")

    if _contains_any(both, CLICKBAIT_PHRASES):
        _apply("clickbait")

    if item.view_count > HIGH_VIEW_THRESHOLD and len(item.description) < SHORT_DESCRIPTION_CHARS:
        _apply("high_views_low_info")

    if len(item.title) > CAPS_MIN_TITLE_LENGTH and _caps_ratio(item.title) > CAPS_RATIO_THRESHOLD:
        _apply("aggressive_title")

    return DensityDetails(score=score, flags=flags)


def rank_by_density(items: list[CandidateItem], weights: dict[str, int] | None = None) -> list[CandidateItem]:
    """Rescore items and sort by density descending; ties keep input order."""

    rescored = []
    for item in items:
        details = score_item(item, weights=weights)
        rescored.append(replace(item, density_score=details.score, density_flags=tuple(details.flags)))
    return sorted(rescored, key=lambda candidate: -(candidate.density_score or 0))


def _contains_any(haystacks: tuple[str, ...], needles: tuple[str, ...]) -> bool:
    return any(needle in haystack for needle in needles for haystack in haystacks)


def _caps_ratio(title: str) -> float:
    if not title:
        return 0.0
    return sum(1 for char in title if "A" <= char <= "Z") / len(title)
