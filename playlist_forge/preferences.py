from __future__ import annotations

from typing import Any

from playlist_forge.models import DurationWindow, SearchConstraints, UserPreferences

STUDENT_LEVELS: tuple[str, ...] = ("high_school", "undergrad", "post_grad")
LANGUAGES: tuple[str, ...] = ("english", "hindi")
LEARNING_MODES: tuple[str, ...] = ("from_scratch", "revision", "one_shot")

DURATION_WINDOWS: dict[str, DurationWindow] = {
    "from_scratch": DurationWindow(min_seconds=600, max_seconds=2700, target_per_topic="15-45 min"),
    "revision": DurationWindow(min_seconds=180, max_seconds=900, target_per_topic="5-15 min"),
    "one_shot": DurationWindow(min_seconds=2700, max_seconds=10800, target_per_topic="45-90 min total"),
}

LANGUAGE_SUFFIXES: dict[str, str] = {
    "english": "",
    "hindi": "in Hindi",
}

EXPERIENCE_LEVELS: dict[str, str] = {
    "high_school": "beginner",
    "undergrad": "intermediate",
    "post_grad": "advanced",
}

MODE_LABELS: dict[str, str] = {
    "from_scratch": "From Scratch (first principles)",
    "revision": "Revision (quick recap)",
    "one_shot": "One-Shot (exam mode)",
}


def default_preferences() -> UserPreferences:
    return UserPreferences(student_level="undergrad", language="english", learning_mode="from_scratch")


def validate_preferences(raw: UserPreferences | dict[str, Any] | None) -> UserPreferences:
    """Coerce partial or invalid preferences onto the supported enumerations."""

    if raw is None:
        return default_preferences()

    if isinstance(raw, UserPreferences):
        values = {
            "student_level": raw.student_level,
            "language": raw.language,
            "learning_mode": raw.learning_mode,
        }
    else:
        values = dict(raw)

    defaults = default_preferences()
    student_level = values.get("student_level")
    language = values.get("language")
    learning_mode = values.get("learning_mode")

    return UserPreferences(
        student_level=student_level if student_level in STUDENT_LEVELS else defaults.student_level,
        language=language if language in LANGUAGES else defaults.language,
        learning_mode=learning_mode if learning_mode in LEARNING_MODES else defaults.learning_mode,
    )


def resolve_preferences(preferences: UserPreferences) -> SearchConstraints:
    """Map validated preferences to the constraints consumed by the engine."""

    prefs = validate_preferences(preferences)
    return SearchConstraints(
        language_suffix=LANGUAGE_SUFFIXES[prefs.language],
        experience_level=EXPERIENCE_LEVELS[prefs.student_level],
        duration=DURATION_WINDOWS[prefs.learning_mode],
        mode_label=MODE_LABELS[prefs.learning_mode],
    )

