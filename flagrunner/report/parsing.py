"""Pure parsers for grading replies and model answers."""

from __future__ import annotations

import re
from collections.abc import Iterable

FLAG_NOT_FOUND = "Flag not found"

_FLAG_RE = re.compile(r"\{\{FLG:(.*?)\}\}")
_MARKED_ANSWER_RE = re.compile(r"^(?:\*\*Answer:\*\*|\*Answer:\*)\s*(.+)", re.MULTILINE)
_QUESTION_ID_RE = re.compile(r"^(\d+)=")
_DERIVED_SUFFIXES = (".png.txt", ".mp3.txt", ".m4a.txt")


def extract_flag(message: str | None) -> str:
    """Return the first ``{{FLG:...}}`` token body, or ``FLAG_NOT_FOUND``."""

    if not message:
        return FLAG_NOT_FOUND
    match = _FLAG_RE.search(message)
    return match.group(1) if match else FLAG_NOT_FOUND


def sanitize_file_names(names: Iterable[str]) -> list[str]:
    """Map derived-text names back to their sources, dropping duplicates and sorting.

    ``scan.png.txt`` becomes ``scan.png``; other names are kept.
    """

    sanitized: set[str] = set()
    for name in names:
        for suffix in _DERIVED_SUFFIXES:
            if name.endswith(suffix):
                name = name[: -len(".txt")]
                break
        sanitized.add(name)
    return sorted(sanitized)


def parse_marked_answer(reply: str) -> str | None:
    """Pull the value out of a ``**Answer:** value`` reply."""

    match = _MARKED_ANSWER_RE.search(reply.strip())
    if match is None:
        return None
    answer = match.group(1).strip()
    return answer or None


def parse_question_id(line: str) -> str | None:
    """Return ``01`` for a line such as ``01=What is shown?``."""

    match = _QUESTION_ID_RE.match(line.strip())
    return match.group(1) if match else None


__all__ = [
    "FLAG_NOT_FOUND",
    "extract_flag",
    "parse_marked_answer",
    "parse_question_id",
    "sanitize_file_names",
]
