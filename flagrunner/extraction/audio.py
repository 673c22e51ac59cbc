from __future__ import annotations

from pathlib import Path

from flagrunner.cache.store import ArtifactCache, TransformKind, derived_path
from flagrunner.extraction.types import TransformResult
from flagrunner.llm.client import AICapability


def transcribe_audio(
    path: Path,
    output_dir: Path,
    client: AICapability,
    cache: ArtifactCache,
) -> TransformResult:
    """Return the transcript of an audio file, cached under ``transcripts/``."""

    cache_path = derived_path(path, TransformKind.TRANSCRIPTS, output_dir)
    if cache.exists(cache_path):
        return TransformResult(
            text=cache.get(cache_path),
            kind=TransformKind.TRANSCRIPTS,
            cached=True,
            cache_path=cache_path,
        )
    audio = path.read_bytes()
    transcript = client.transcribe(audio, path.name)
    cache.put(cache_path, transcript)
    return TransformResult(
        text=transcript,
        kind=TransformKind.TRANSCRIPTS,
        cache_path=cache_path,
        metadata={"size": len(audio)},
    )


__all__ = ["transcribe_audio"]
