from __future__ import annotations

import shutil
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from flagrunner.models import Classification
from flagrunner.utils.audit import AuditTrail

EXTENSION_CATEGORIES: dict[str, Classification] = {
    ".txt": Classification.TEXT,
    ".png": Classification.IMAGE,
    ".mp3": Classification.AUDIO,
    ".m4a": Classification.AUDIO,
}

CATEGORY_FOLDERS: dict[Classification, str] = {
    Classification.TEXT: "text",
    Classification.IMAGE: "images",
    Classification.AUDIO: "audio",
}


@dataclass(slots=True)
class SegregationReport:
    """Outcome of one segregation pass over a base directory."""

    moved: dict[str, list[Path]] = field(default_factory=dict)
    removed: list[Path] = field(default_factory=list)
    failed: list[Path] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "moved": {folder: [str(path) for path in paths] for folder, paths in self.moved.items()},
            "removed": [str(path) for path in self.removed],
            "failed": [str(path) for path in self.failed],
        }


def classify_extension(extension: str) -> Classification:
    return EXTENSION_CATEGORIES.get(extension.lower(), Classification.UNWANTED)


def classify(path: Path) -> Classification:
    return classify_extension(path.suffix)


def target_folder(base: Path, extension: str) -> Path | None:
    """Return the category folder for ``extension`` or None when it is unmapped."""

    category = classify_extension(extension)
    if category is Classification.UNWANTED:
        return None
    return base / CATEGORY_FOLDERS[category]


def _remove(entry: Path, report: SegregationReport, audit: AuditTrail | None) -> None:
    try:
        if entry.is_dir():
            shutil.rmtree(entry)
        else:
            entry.unlink()
    except OSError as error:
        report.failed.append(entry)
        if audit is not None:
            audit.record("warning", "segregate.remove_failed", path=str(entry), error=str(error))
        return
    report.removed.append(entry)


def remove_unwanted_entries(
    base: Path,
    unwanted_dirs: Iterable[str] = (),
    unwanted_files: Iterable[str] = (),
    report: SegregationReport | None = None,
    audit: AuditTrail | None = None,
) -> SegregationReport:
    """Delete top-level directories and files whose lowercased names are listed.

    An entry that cannot be deleted is recorded as failed; the rest still go.
    """

    report = report if report is not None else SegregationReport()
    dir_names = {name.lower() for name in unwanted_dirs}
    file_names = {name.lower() for name in unwanted_files}
    for entry in sorted(base.iterdir()):
        name = entry.name.lower()
        if (entry.is_dir() and name in dir_names) or (entry.is_file() and name in file_names):
            _remove(entry, report, audit)
    return report


def _move_to_folder(path: Path, folder: Path) -> Path:
    folder.mkdir(parents=True, exist_ok=True)
    destination = folder / path.name
    path.replace(destination)
    return destination


def segregate_files(
    base: Path,
    unwanted_dirs: Iterable[str] = (),
    unwanted_files: Iterable[str] = (),
    audit: AuditTrail | None = None,
) -> SegregationReport:
    """Sort the top-level files of ``base`` into typed folders.

    Unwanted entries go first. Files with an unmapped extension are deleted.
    A failed move or deletion is recorded and leaves the file where it was.
    """

    report = remove_unwanted_entries(base, unwanted_dirs, unwanted_files, audit=audit)
    for entry in sorted(base.iterdir()):
        if not entry.is_file() or entry in report.failed:
            continue
        folder = target_folder(base, entry.suffix)
        if folder is None:
            _remove(entry, report, audit)
            continue
        try:
            destination = _move_to_folder(entry, folder)
        except OSError as error:
            report.failed.append(entry)
            if audit is not None:
                audit.record(
                    "warning",
                    "segregate.move_failed",
                    path=str(entry),
                    target=str(folder),
                    error=str(error),
                )
            continue
        report.moved.setdefault(folder.name, []).append(destination)

    if audit is not None:
        audit.record(
            "info",
            "segregate.completed",
            base=str(base),
            moved=sum(len(paths) for paths in report.moved.values()),
            removed=len(report.removed),
            failed=len(report.failed),
        )
    return report


__all__ = [
    "CATEGORY_FOLDERS",
    "EXTENSION_CATEGORIES",
    "SegregationReport",
    "classify",
    "classify_extension",
    "remove_unwanted_entries",
    "segregate_files",
    "target_folder",
]
