from __future__ import annotations

import zlib
from pathlib import Path
from zipfile import BadZipFile, ZipFile

from flagrunner.config import Settings, settings
from flagrunner.errors import ExtractionError
from flagrunner.ingest.fetcher import fetched_archive
from flagrunner.utils.audit import AuditTrail


def extract_archive(archive: Path, target: Path) -> list[Path]:
    """Unpack every entry of a zip archive into ``target``, overwriting same-named files."""

    if not archive.exists():
        raise ExtractionError(str(archive), "temporary archive not found")
    try:
        bundle = ZipFile(archive)
    except (BadZipFile, OSError) as error:
        raise ExtractionError(str(archive), str(error)) from error

    target.mkdir(parents=True, exist_ok=True)
    extracted: list[Path] = []
    with bundle:
        try:
            for info in bundle.infolist():
                destination = Path(bundle.extract(info, target))
                if not info.is_dir():
                    extracted.append(destination)
        except (BadZipFile, OSError, zlib.error) as error:
            raise ExtractionError(str(archive), str(error)) from error
    return extracted


def download_and_extract(
    url: str,
    target: Path,
    config: Settings = settings,
    audit: AuditTrail | None = None,
) -> list[Path]:
    """Download a zip archive and unpack it; the temporary download never outlives the call."""

    with fetched_archive(url, config) as archive:
        if audit is not None:
            audit.record("info", "fetch.downloaded", url=url, size=archive.stat().st_size)
        extracted = extract_archive(archive, target)
    if audit is not None:
        audit.record("info", "extract.completed", target=str(target), files=len(extracted))
    return extracted


__all__ = ["download_and_extract", "extract_archive"]
