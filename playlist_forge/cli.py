from __future__ import annotations

import json
import logging
from pathlib import Path
from time import perf_counter
from typing import Callable, TypeVar

import typer

from playlist_forge.config import Settings, load_settings
from playlist_forge.engine.playlist_builder import build_playlist, create_catalog, create_reranker
from playlist_forge.export.exporter import export_playlist_outputs, generate_summary, load_playlist_result
from playlist_forge.extract.syllabus import (
    extract_syllabus_from_image,
    extract_syllabus_from_text,
    parse_syllabus_payload,
    syllabus_to_payload,
)
from playlist_forge.llm.ollama import EndpointPool
from playlist_forge.logging_config import configure_logging
from playlist_forge.models import SyllabusData, UserPreferences
from playlist_forge.preferences import LEARNING_MODES, validate_preferences

app = typer.Typer(help="Turn a syllabus into an ordered video playlist.")
config_app = typer.Typer(help="Configuration commands.")

app.add_typer(config_app, name="config")

logger = logging.getLogger(__name__)

T = TypeVar("T")

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".webp", ".gif", ".bmp"}


def _run_with_progress(step_index: int, total_steps: int, label: str, work: Callable[[], T]) -> T:
    typer.echo(f"[{step_index}/{total_steps}] {label}...", err=True)
    started_at = perf_counter()
    try:
        result = work()
    except Exception:
        elapsed = perf_counter() - started_at
        typer.echo(f"[{step_index}/{total_steps}] {label} failed after {elapsed:.1f}s", err=True)
        raise
    elapsed = perf_counter() - started_at
    typer.echo(f"[{step_index}/{total_steps}] {label} done in {elapsed:.1f}s", err=True)
    return result


def _bootstrap(config_path: Path) -> Settings:
    settings = load_settings(config_path)
    configure_logging(settings.logging)
    logger.debug("Loaded runtime settings from %s", config_path)
    return settings


def _load_syllabus(
    syllabus_path: Path,
    learning_mode: str,
    settings: Settings,
    pool: EndpointPool,
) -> SyllabusData:
    if not syllabus_path.exists():
        raise ValueError(f"Syllabus file not found: {syllabus_path}")

    suffix = syllabus_path.suffix.lower()
    if suffix == ".json":
        payload = json.loads(syllabus_path.read_text(encoding="utf-8"))
        if not isinstance(payload, dict):
            raise ValueError("Syllabus JSON must be an object.")
        return parse_syllabus_payload(payload)
    if suffix in IMAGE_SUFFIXES:
        return extract_syllabus_from_image(
            syllabus_path,
            learning_mode,
            pool=pool,
            model=settings.llm.vision_model,
            timeout_seconds=settings.llm.timeout_seconds,
        )
    return extract_syllabus_from_text(
        syllabus_path.read_text(encoding="utf-8"),
        learning_mode,
        pool=pool,
        model=settings.llm.model,
        timeout_seconds=settings.llm.timeout_seconds,
    )


@config_app.command("show")
def show_config(
    config_path: Path = typer.Option(
        Path("configs/default.yaml"),
        "--config",
        "-c",
        envvar="PLAYLIST_FORGE_CONFIG",
        help="Path to YAML configuration file.",
    )
) -> None:
    """Print resolved runtime configuration."""

    settings = _bootstrap(config_path)
    typer.echo(json.dumps(settings.model_dump(mode="json"), indent=2))


@app.command("extract")
def extract(
    syllabus_path: Path = typer.Argument(..., help="Syllabus text file or screenshot."),
    mode: str = typer.Option("from_scratch", help=f"Ordering strategy: {', '.join(LEARNING_MODES)}."),
    output_path: Path | None = typer.Option(None, "--output", "-o", help="Write the syllabus JSON here."),
    config_path: Path = typer.Option(
        Path("configs/default.yaml"),
        "--config",
        "-c",
        envvar="PLAYLIST_FORGE_CONFIG",
        help="Path to YAML configuration file.",
    ),
) -> None:
    """Extract a structured table of contents from a syllabus."""

    settings = _bootstrap(config_path)
    pool = EndpointPool(settings.llm.endpoints)
    learning_mode = validate_preferences({"learning_mode": mode}).learning_mode

    try:
        syllabus = _run_with_progress(
            1,
            1,
            "Extract syllabus",
            lambda: _load_syllabus(syllabus_path, learning_mode, settings, pool),
        )
    except (RuntimeError, ValueError) as exc:
        logger.error("Extraction failed: %s", exc)
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    rendered = json.dumps(syllabus_to_payload(syllabus), indent=2, ensure_ascii=False)
    if output_path is not None:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(rendered, encoding="utf-8")
        typer.echo(json.dumps({"syllabus": str(output_path)}, indent=2))
    else:
        typer.echo(rendered)


@app.command("build")
def build(
    syllabus_path: Path = typer.Argument(..., help="Syllabus text file, screenshot, or extracted syllabus JSON."),
    level: str = typer.Option("undergrad", help="Student level: high_school, undergrad, post_grad."),
    language: str = typer.Option("english", help="Video language: english, hindi."),
    mode: str = typer.Option("from_scratch", help=f"Learning mode: {', '.join(LEARNING_MODES)}."),
    skip_anchor: bool = typer.Option(False, help="Skip anchor search and resolve every topic independently."),
    skip_reranker: bool = typer.Option(False, help="Disable the local LLM reranker for this build."),
    output_dir: Path | None = typer.Option(None, "--output-dir", "-o", help="Directory for JSON/CSV/Markdown outputs."),
    basename: str = typer.Option("playlist", help="Base filename for exported artifacts."),
    config_path: Path = typer.Option(
        Path("configs/default.yaml"),
        "--config",
        "-c",
        envvar="PLAYLIST_FORGE_CONFIG",
        help="Path to YAML configuration file.",
    ),
) -> None:
    """Run extraction, anchor hunt, gap filling and export for one syllabus."""

    settings = _bootstrap(config_path)
    preferences = validate_preferences(
        UserPreferences(student_level=level, language=language, learning_mode=mode)
    )
    pool = EndpointPool(settings.llm.endpoints)
    catalog = create_catalog(settings)
    reranker = create_reranker(settings, pool)
    total_steps = 3

    try:
        syllabus = _run_with_progress(
            1,
            total_steps,
            "Load syllabus",
            lambda: _load_syllabus(syllabus_path, preferences.learning_mode, settings, pool),
        )
        result = _run_with_progress(
            2,
            total_steps,
            "Build playlist",
            lambda: build_playlist(
                syllabus,
                preferences,
                catalog=catalog,
                reranker=reranker,
                settings=settings,
                skip_anchor_search=skip_anchor,
                skip_reranker=skip_reranker,
            ),
        )
        exported = _run_with_progress(
            3,
            total_steps,
            "Export outputs",
            lambda: export_playlist_outputs(
                result,
                output_dir or settings.pipeline.output_dir,
                basename=basename,
            ),
        )
    except (RuntimeError, ValueError) as exc:
        logger.error("Playlist build failed: %s", exc)
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    typer.echo(generate_summary(result), err=True)
    typer.echo(
        json.dumps(
            {
                "status": "ok",
                "subject": result.subject_title,
                "total_items": result.total_items,
                "total_duration_minutes": result.total_duration_minutes,
                "gaps_failed": result.gaps_failed,
                "outputs": {key: str(path) for key, path in exported.items()},
            },
            indent=2,
        )
    )


@app.command("export")
def export(
    result_path: Path = typer.Argument(..., help="Path to a playlist JSON contract."),
    output_dir: Path = typer.Option(Path("data/outputs"), "--output-dir", "-o", help="Directory for JSON/CSV/Markdown outputs."),
    basename: str = typer.Option("playlist", help="Base filename for exported artifacts."),
) -> None:
    """Re-export a saved playlist to JSON, CSV and Markdown."""

    try:
        result = load_playlist_result(result_path)
    except (OSError, ValueError, KeyError, TypeError) as exc:
        typer.echo(f"Error: could not load playlist from {result_path}: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    exported = export_playlist_outputs(result, output_dir, basename=basename)
    typer.echo(json.dumps({key: str(path) for key, path in exported.items()}, indent=2))


if __name__ == "__main__":
    app()
