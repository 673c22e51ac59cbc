from __future__ import annotations

import mimetypes
from datetime import UTC, datetime
from pathlib import Path
from uuid import uuid4

import filetype


def timestamped_stem(prefix: str) -> str:
    """Return a safe stem combining prefix, timestamp and a random suffix."""

    now = datetime.now(tz=UTC).strftime("%Y%m%dT%H%M%S")
    return f"{prefix}-{now}-{uuid4().hex[:8]}"


def list_files(directory: Path) -> list[Path]:
    """Return every file below ``directory``, sorted for stable processing order."""

    return sorted(path for path in directory.rglob("*") if path.is_file())


def guess_mimetype(path: Path, fallback: str = "application/octet-stream") -> str:
    """Guess a mime type from file content first, then from the extension."""

    kind = filetype.guess(path)
    if kind is not None:
        return kind.mime
    guess, _ = mimetypes.guess_type(path)
    return guess or fallback


__all__ = ["guess_mimetype", "list_files", "timestamped_stem"]
