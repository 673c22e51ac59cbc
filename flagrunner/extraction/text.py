from __future__ import annotations

from pathlib import Path

from flagrunner.extraction.types import TransformResult


def extract_text(path: Path) -> TransformResult:
    """Read a text file as-is."""

    content = path.read_text(encoding="utf-8", errors="ignore")
    return TransformResult(text=content, metadata={"length": len(content)})


__all__ = ["extract_text"]
