from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class ArtifactKind(str, Enum):
    """Lifecycle stage of a file handled by the pipeline."""

    RAW_ARCHIVE = "raw-archive"
    RAW_FILE = "raw-file"
    EXTRACTED_FILE = "extracted-file"
    DERIVED_TEXT = "derived-text"


class Classification(str, Enum):
    """Closed set of categories assigned from a file extension."""

    TEXT = "text"
    IMAGE = "image"
    AUDIO = "audio"
    UNWANTED = "unwanted"


@dataclass(slots=True, frozen=True)
class Artifact:
    """A file on persistent storage; never modified in place."""

    path: Path
    kind: ArtifactKind

    def to_dict(self) -> dict[str, str]:
        return {"path": str(self.path), "kind": self.kind.value}


__all__ = ["Artifact", "ArtifactKind", "Classification"]
