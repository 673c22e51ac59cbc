from __future__ import annotations

from pathlib import Path
from typing import Any

from PIL import Image, UnidentifiedImageError

from flagrunner.cache.store import ArtifactCache, TransformKind, derived_path
from flagrunner.errors import TransformationError
from flagrunner.extraction.types import TransformResult
from flagrunner.llm.client import AICapability
from flagrunner.utils.files import guess_mimetype

EXTRACT_TEXT_INSTRUCTION = (
    "Return whole text found on the image. Be precise and pull all the text you can. "
    "Return the text only without any comments."
)


def extract_image_text(
    path: Path,
    output_dir: Path,
    client: AICapability,
    cache: ArtifactCache,
) -> TransformResult:
    """Return the text visible on an image, cached under ``extracted_text/``."""

    cache_path = derived_path(path, TransformKind.EXTRACTED_TEXT, output_dir)
    return _describe(path, TransformKind.EXTRACTED_TEXT, cache_path, EXTRACT_TEXT_INSTRUCTION, client, cache)


def analyze_image(
    path: Path,
    instruction: str,
    client: AICapability,
    cache: ArtifactCache,
) -> TransformResult:
    """Describe an image following ``instruction``, cached next to it under ``analysis/``."""

    cache_path = derived_path(path, TransformKind.ANALYSIS, path.parent)
    return _describe(path, TransformKind.ANALYSIS, cache_path, instruction, client, cache)


def _describe(
    path: Path,
    kind: TransformKind,
    cache_path: Path,
    instruction: str,
    client: AICapability,
    cache: ArtifactCache,
) -> TransformResult:
    if cache.exists(cache_path):
        return TransformResult(text=cache.get(cache_path), kind=kind, cached=True, cache_path=cache_path)
    image, mime, metadata = _load_image(path)
    description = client.describe_image(image, mime, instruction).strip()
    cache.put(cache_path, description)
    return TransformResult(text=description, kind=kind, cache_path=cache_path, metadata=metadata)


def _load_image(path: Path) -> tuple[bytes, str, dict[str, Any]]:
    try:
        with Image.open(path) as image:
            metadata: dict[str, Any] = {
                "width": image.size[0],
                "height": image.size[1],
                "format": image.format,
            }
            mime = Image.MIME.get(image.format or "") or guess_mimetype(path, fallback="image/png")
    except (UnidentifiedImageError, OSError) as error:
        raise TransformationError(f"Unreadable image {path.name}: {error}") from error
    return path.read_bytes(), mime, metadata


__all__ = ["EXTRACT_TEXT_INSTRUCTION", "analyze_image", "extract_image_text"]
