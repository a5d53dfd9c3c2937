from __future__ import annotations

import base64
import logging
from http.client import HTTPException
from pathlib import Path
from typing import Any
from urllib.error import HTTPError, URLError

from playlist_forge.llm import ollama
from playlist_forge.models import SyllabusData, SyllabusModule

logger = logging.getLogger(__name__)

PROMPT_TEMPLATE_PATH = Path(__file__).resolve().parent.parent / "prompts" / "extract_prompt.txt"
EXTRACTION_TEMPERATURE = 0.2

MODE_INSTRUCTIONS: dict[str, str] = {
    "from_scratch": (
        "FIRST PRINCIPLES ORDERING:\n"
        "- Identify the single most fundamental concept that everything else builds on.\n"
        "- Place it as the first item in tableOfContents and set \"fundamentalConcept\" to it.\n"
        "- Order the remaining topics so each one builds on the previous."
    ),
    "revision": (
        "REVISION ORDERING:\n"
        "- Order topics from most likely to be tested to least.\n"
        "- Group related topics together.\n"
        "- Skip overly basic topics a student would already know."
    ),
    "one_shot": (
        "ONE-SHOT ORDERING:\n"
        "- The tableOfContents should have at most 3-5 broad items.\n"
        "- Each item represents a major section, not an individual topic."
    ),
}


class SyllabusExtractionError(RuntimeError):
    """Raised when no endpoint produced a usable table of contents."""


def build_extraction_prompt(learning_mode: str) -> str:
    template = PROMPT_TEMPLATE_PATH.read_text(encoding="utf-8").strip()
    instructions = MODE_INSTRUCTIONS.get(learning_mode, MODE_INSTRUCTIONS["from_scratch"])
    return template.format(mode_instructions=instructions)


def extract_syllabus_from_text(
    syllabus_text: str,
    learning_mode: str = "from_scratch",
    *,
    pool: ollama.EndpointPool,
    model: str = ollama.DEFAULT_MODEL,
    timeout_seconds: int = ollama.DEFAULT_TIMEOUT_SECONDS,
) -> SyllabusData:
    if not syllabus_text.strip():
        raise SyllabusExtractionError("Syllabus text is empty.")

    prompt = f"{build_extraction_prompt(learning_mode)}\n\nSYLLABUS TEXT:\n{syllabus_text}"
    return _extract_with_failover(prompt, pool=pool, model=model, timeout_seconds=timeout_seconds)


def extract_syllabus_from_image(
    image_path: str | Path,
    learning_mode: str = "from_scratch",
    *,
    pool: ollama.EndpointPool,
    model: str = ollama.DEFAULT_VISION_MODEL,
    timeout_seconds: int = ollama.DEFAULT_TIMEOUT_SECONDS,
) -> SyllabusData:
    """Extract a table of contents from a syllabus screenshot with a vision model."""

    path = Path(image_path).expanduser()
    try:
        encoded = base64.b64encode(path.read_bytes()).decode("ascii")
    except OSError as exc:
        raise SyllabusExtractionError(f"Could not read syllabus image {path}: {exc}") from exc

    prompt = build_extraction_prompt(learning_mode)
    return _extract_with_failover(
        prompt,
        pool=pool,
        model=model,
        timeout_seconds=timeout_seconds,
        images=[encoded],
    )


def parse_syllabus_payload(payload: dict[str, Any]) -> SyllabusData:
    """Validate the extraction JSON contract and convert it to `SyllabusData`."""

    toc = payload.get("tableOfContents")
    if not isinstance(toc, list) or not toc:
        raise ValueError("tableOfContents must be a non-empty list.")
    topics = [str(topic).strip() for topic in toc if isinstance(topic, str) and topic.strip()]
    if len(topics) != len(toc):
        raise ValueError("tableOfContents must contain only non-empty strings.")

    modules: list[SyllabusModule] = []
    for raw_module in payload.get("modules") or []:
        if not isinstance(raw_module, dict):
            continue
        module_topics = [str(topic) for topic in raw_module.get("topics") or [] if isinstance(topic, str)]
        modules.append(SyllabusModule(module_title=str(raw_module.get("moduleTitle") or ""), topics=module_topics))

    fundamental = payload.get("fundamentalConcept")
    return SyllabusData(
        title=str(payload.get("title") or "Untitled Syllabus").strip(),
        table_of_contents=topics,
        description=str(payload.get("description") or ""),
        fundamental_concept=str(fundamental) if fundamental else None,
        modules=modules,
    )


def syllabus_to_payload(syllabus: SyllabusData) -> dict[str, Any]:
    return {
        "title": syllabus.title,
        "description": syllabus.description,
        "fundamentalConcept": syllabus.fundamental_concept,
        "tableOfContents": list(syllabus.table_of_contents),
        "modules": [
            {"moduleTitle": module.module_title, "topics": list(module.topics)} for module in syllabus.modules
        ],
    }


def _extract_with_failover(
    prompt: str,
    *,
    pool: ollama.EndpointPool,
    model: str,
    timeout_seconds: int,
    images: list[str] | None = None,
) -> SyllabusData:
    errors: list[str] = []
    for endpoint in pool.rotation():
        try:
            response_text = ollama.request_ollama(
                endpoint=endpoint,
                model=model,
                prompt=prompt,
                timeout_seconds=timeout_seconds,
                images=images,
                temperature=EXTRACTION_TEMPERATURE,
            )
            parsed = ollama.parse_json_object(response_text)
            if parsed is None:
                raise ValueError("model output is not a JSON object")
            syllabus = parse_syllabus_payload(parsed)
        except (ValueError, HTTPError, URLError, HTTPException, TimeoutError, OSError) as exc:
            logger.warning("Syllabus extraction via %s failed: %s", endpoint, exc)
            errors.append(f"{endpoint}: {exc}")
            continue

        logger.info("Extracted %d topics from %r", len(syllabus.table_of_contents), syllabus.title)
        if syllabus.fundamental_concept:
            logger.info("Fundamental concept: %r", syllabus.fundamental_concept)
        return syllabus

    raise SyllabusExtractionError("Syllabus extraction failed on every endpoint: " + "; ".join(errors))
