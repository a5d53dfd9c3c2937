from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

EntrySource = Literal["anchor", "gap_fill", "one_shot"]
CatalogStatus = Literal["ok", "empty", "failed"]


@dataclass(frozen=True, slots=True)
class CandidateItem:
    """One discoverable external video, converted eagerly at the catalog boundary."""

    item_id: str
    title: str
    description: str = ""
    duration_seconds: int = 0
    view_count: int = 0
    author_name: str = "Unknown"
    density_score: int | None = None
    density_flags: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class SequenceRef:
    """A discovered external sequence whose items have not been fetched yet."""

    sequence_id: str
    title: str
    owner_name: str = "Unknown"


@dataclass(frozen=True, slots=True)
class AnchorItem:
    item_id: str
    title: str
    duration_seconds: int
    position: int


@dataclass(frozen=True, slots=True)
class AnchorSequence:
    """A scored coverage candidate; `items` keep their original sequence positions."""

    sequence_id: str
    title: str
    owner_name: str
    items: tuple[AnchorItem, ...]
    coverage_score: int
    matched_topics: tuple[str, ...]
    unmatched_topics: tuple[str, ...]


@dataclass(slots=True)
class TopicMapping:
    topic: str
    position: int
    is_gap: bool
    matched_anchor_item: AnchorItem | None = None
    match_score: float | None = None


@dataclass(frozen=True, slots=True)
class PlaylistEntry:
    """Final output unit; `position` is contiguous 0..N-1 after the merge step."""

    position: int
    item_id: str
    title: str
    channel_name: str
    duration_seconds: int
    duration_display: str
    topic_matched: str
    source: EntrySource


@dataclass(frozen=True, slots=True)
class AnchorSummary:
    owner_name: str
    sequence_title: str
    coverage_score: int


@dataclass(frozen=True, slots=True)
class UserPreferences:
    student_level: str = "undergrad"
    language: str = "english"
    learning_mode: str = "from_scratch"


@dataclass(frozen=True, slots=True)
class DurationWindow:
    min_seconds: int
    max_seconds: int
    target_per_topic: str = ""


@dataclass(frozen=True, slots=True)
class SearchConstraints:
    """Concrete search parameters derived from user preferences."""

    language_suffix: str
    experience_level: str
    duration: DurationWindow
    mode_label: str = ""


@dataclass(slots=True)
class PlaylistResult:
    subject_title: str
    entries: list[PlaylistEntry]
    generated_at: str
    anchor: AnchorSummary | None = None
    preferences: UserPreferences | None = None
    gaps_failed: list[str] = field(default_factory=list)

    @property
    def total_items(self) -> int:
        return len(self.entries)

    @property
    def total_duration_seconds(self) -> int:
        return sum(entry.duration_seconds for entry in self.entries)

    @property
    def total_duration_minutes(self) -> int:
        return round(self.total_duration_seconds / 60)


@dataclass(slots=True)
class SyllabusModule:
    module_title: str
    topics: list[str]


@dataclass(slots=True)
class SyllabusData:
    """Structured table of contents produced by the extraction step."""

    title: str
    table_of_contents: list[str]
    description: str = ""
    fundamental_concept: str | None = None
    modules: list[SyllabusModule] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class CatalogOutcome:
    """Result of one catalog call: ok with payload, empty, or failed with a reason."""

    status: CatalogStatus
    items: tuple[CandidateItem, ...] = ()
    sequences: tuple[SequenceRef, ...] = ()
    reason: str | None = None

    @classmethod
    def of_items(cls, items: list[CandidateItem] | tuple[CandidateItem, ...]) -> CatalogOutcome:
        if not items:
            return cls(status="empty")
        return cls(status="ok", items=tuple(items))

    @classmethod
    def of_sequences(cls, sequences: list[SequenceRef] | tuple[SequenceRef, ...]) -> CatalogOutcome:
        if not sequences:
            return cls(status="empty")
        return cls(status="ok", sequences=tuple(sequences))

    @classmethod
    def failed(cls, reason: str) -> CatalogOutcome:
        return cls(status="failed", reason=reason)

    @property
    def ok(self) -> bool:
        return self.status == "ok"


@dataclass(frozen=True, slots=True)
class RerankContext:
    topic: str
    experience_level: str
    role: str = "Student"


@dataclass(frozen=True, slots=True)
class RerankOutcome:
    winner_id: str | None
    fallback_used: bool
    reasoning: str | None = None


def format_duration(seconds: int | float) -> str:
    """Render seconds as M:SS, or H:MM:SS for an hour or more."""

    total = max(0, int(seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"
