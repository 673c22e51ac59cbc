from __future__ import annotations

from pathlib import Path

from flagrunner.cache.store import ArtifactCache, FileSystemCache
from flagrunner.extraction.audio import transcribe_audio
from flagrunner.extraction.image import extract_image_text
from flagrunner.extraction.text import extract_text
from flagrunner.extraction.types import TransformResult
from flagrunner.ingest.segregator import classify_extension
from flagrunner.llm.client import AICapability
from flagrunner.models import Classification
from flagrunner.utils.audit import AuditTrail


class ContentTransformer:
    """Turn text, image and audio files into plain text, memoizing AI output."""

    def __init__(
        self,
        client: AICapability,
        cache: ArtifactCache | None = None,
        audit: AuditTrail | None = None,
    ) -> None:
        self.client = client
        self.cache = cache if cache is not None else FileSystemCache()
        self.audit = audit

    def transform(self, path: Path, extension: str | None, output_dir: Path) -> str:
        """Return the text for ``path``; an empty string when no transformation applies."""

        return self.transform_file(path, extension, output_dir).text

    def transform_file(self, path: Path, extension: str | None, output_dir: Path) -> TransformResult:
        category = classify_extension(extension if extension is not None else path.suffix)
        if category is Classification.TEXT:
            result = extract_text(path)
        elif category is Classification.IMAGE:
            result = extract_image_text(path, output_dir, self.client, self.cache)
        elif category is Classification.AUDIO:
            result = transcribe_audio(path, output_dir, self.client, self.cache)
        else:
            return TransformResult(text="")
        self._record(path, category, result)
        return result

    def _record(self, path: Path, category: Classification, result: TransformResult) -> None:
        if self.audit is None:
            return
        event = "transform.cache_hit" if result.cached else "transform.completed"
        self.audit.record(
            "info",
            event,
            path=str(path),
            category=category.value,
            cache_path=str(result.cache_path) if result.cache_path else None,
        )


__all__ = ["ContentTransformer"]
