from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from flagrunner.cache.store import TransformKind


@dataclass(slots=True)
class TransformResult:
    """Plain-text rendition of one file and where it came from."""

    text: str
    kind: TransformKind | None = None
    cached: bool = False
    cache_path: Path | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


__all__ = ["TransformResult"]
