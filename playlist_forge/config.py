from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

DEFAULT_CONFIG_PATH = Path("configs/default.yaml")
ENV_PREFIX = "PLAYLIST_FORGE_"


class PipelineSettings(BaseModel):
    output_dir: Path = Path("data/outputs")
    cache_dir: Path = Path("data/cache")
    workers: int = 4


class MatchingSettings(BaseModel):
    threshold: float = 0.4


class AnchorSettings(BaseModel):
    min_coverage: int = 50
    early_exit_coverage: int = 80
    max_sequences: int = 5
    min_sequence_items: int = 3
    fallback_hint_count: int = 3


class ResolverSettings(BaseModel):
    search_pool_size: int = 15
    relaxed_min_seconds: int = 60
    rerank_top_n: int = 5
    min_rerank_pool: int = 3
    use_reranker: bool = True


class OneShotSettings(BaseModel):
    min_duration_seconds: int = 2700
    relaxed_min_duration_seconds: int = 1200
    results_per_query: int = 10
    max_results: int = 5


class CatalogSettings(BaseModel):
    binary: str = "yt-dlp"
    timeout_seconds: int = 30
    max_results: int = 20
    cache_enabled: bool = True


class LLMSettings(BaseModel):
    provider: str = "ollama"
    model: str = "qwen2.5:7b-instruct-q4_K_M"
    vision_model: str = "qwen2.5vl:7b"
    endpoints: list[str] = Field(default_factory=lambda: ["http://localhost:11434"])
    timeout_seconds: int = 45


class LoggingSettings(BaseModel):
    level: str = "INFO"
    file: Path | None = None


class Settings(BaseModel):
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    matching: MatchingSettings = Field(default_factory=MatchingSettings)
    anchor: AnchorSettings = Field(default_factory=AnchorSettings)
    resolver: ResolverSettings = Field(default_factory=ResolverSettings)
    one_shot: OneShotSettings = Field(default_factory=OneShotSettings)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load typed settings from YAML with environment-variable overrides.

    A missing config file yields the built-in defaults so the engine can run
    from any working directory.
    """

    resolved_path = Path(
        config_path
        or os.getenv(f"{ENV_PREFIX}CONFIG")
        or DEFAULT_CONFIG_PATH
    )
    raw_config: dict[str, Any] = {}
    if resolved_path.exists():
        raw_config = yaml.safe_load(resolved_path.read_text(encoding="utf-8")) or {}
    data = Settings.model_validate(raw_config).model_dump(mode="python")

    for key, raw_value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue

        suffix = key[len(ENV_PREFIX) :]
        if suffix == "CONFIG":
            continue

        path = [part.lower() for part in suffix.split("__")]
        _apply_override(data, path, raw_value)

    return Settings.model_validate(data)


def _apply_override(data: dict[str, Any], path: list[str], raw_value: str) -> None:
    current: Any = data
    for segment in path[:-1]:
        if not isinstance(current, dict) or segment not in current:
            return
        current = current[segment]

    if not isinstance(current, dict):
        return

    final_key = path[-1]
    if final_key not in current:
        return

    current[final_key] = _coerce_value(raw_value, current[final_key])


def _coerce_value(raw_value: str, existing_value: Any) -> Any:
    if isinstance(existing_value, bool):
        return raw_value.lower() in {"1", "true", "yes", "on"}
    if isinstance(existing_value, int) and not isinstance(existing_value, bool):
        return int(raw_value)
    if isinstance(existing_value, float):
        return float(raw_value)
    if isinstance(existing_value, list | dict):
        return json.loads(raw_value)
    if isinstance(existing_value, Path):
        return Path(raw_value)
    return raw_value
