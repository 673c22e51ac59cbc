from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Protocol


class TransformKind(str, Enum):
    """Derived-text families; values double as on-disk directory names."""

    EXTRACTED_TEXT = "extracted_text"
    TRANSCRIPTS = "transcripts"
    ANALYSIS = "analysis"


def derived_path(source: Path, kind: TransformKind, cache_dir: Path) -> Path:
    """Return ``<cache_dir>/<kind>/<basename>.txt`` for a source artifact."""

    return cache_dir / kind.value / f"{source.name}.txt"


class ArtifactCache(Protocol):
    """Path-addressed store for derived text."""

    def exists(self, path: Path) -> bool: ...

    def get(self, path: Path) -> str: ...

    def put(self, path: Path, text: str) -> None: ...


class FileSystemCache:
    """Derived text stored as UTF-8 files at the derived path itself."""

    def exists(self, path: Path) -> bool:
        return path.is_file()

    def get(self, path: Path) -> str:
        return path.read_text(encoding="utf-8")

    def put(self, path: Path, text: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")


class MemoryCache:
    """In-process cache keyed by derived path; nothing touches the disk."""

    def __init__(self) -> None:
        self._entries: dict[Path, str] = {}

    def exists(self, path: Path) -> bool:
        return path in self._entries

    def get(self, path: Path) -> str:
        try:
            return self._entries[path]
        except KeyError:
            raise FileNotFoundError(path) from None

    def put(self, path: Path, text: str) -> None:
        self._entries[path] = text

    def __len__(self) -> int:
        return len(self._entries)


__all__ = [
    "ArtifactCache",
    "FileSystemCache",
    "MemoryCache",
    "TransformKind",
    "derived_path",
]
