from __future__ import annotations

from pathlib import Path

from flagrunner.config import Settings, settings
from flagrunner.ingest.archive import download_and_extract
from flagrunner.utils.audit import AuditTrail


def has_contents(directory: Path) -> bool:
    """Return True when ``directory`` can be listed and holds at least one entry."""

    try:
        return any(True for _ in directory.iterdir())
    except OSError:
        return False


def ensure_files_exist(
    directory: Path,
    url: str,
    force: bool = False,
    config: Settings = settings,
    audit: AuditTrail | None = None,
) -> bool:
    """Fetch and unpack ``url`` into ``directory`` unless it is already populated.

    Returns True when a download happened. There is no locking, so two callers
    racing on an empty directory may both download.
    """

    if not force and has_contents(directory):
        if audit is not None:
            audit.record("info", "cache.hit", directory=str(directory))
        return False
    if audit is not None:
        audit.record("info", "cache.miss", directory=str(directory), forced=force, url=url)
    download_and_extract(url, directory, config=config, audit=audit)
    return True


__all__ = ["ensure_files_exist", "has_contents"]
