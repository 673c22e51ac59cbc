from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any
from urllib.parse import urlparse

from flagrunner.cache.store import ArtifactCache, FileSystemCache, TransformKind
from flagrunner.config import Settings, settings
from flagrunner.errors import FetchError, PipelineError
from flagrunner.extraction.audio import transcribe_audio
from flagrunner.extraction.image import analyze_image
from flagrunner.extraction.transformer import ContentTransformer
from flagrunner.html.content import (
    extract_media_links,
    html_to_markdown,
    inject_descriptions,
    localize_links,
)
from flagrunner.ingest.fetcher import download_file, fetch_text_cached
from flagrunner.ingest.guard import ensure_files_exist
from flagrunner.ingest.segregator import SegregationReport, segregate_files
from flagrunner.llm.client import AICapability, OpenAIClient
from flagrunner.models import Artifact, ArtifactKind
from flagrunner.report.client import ReportResult, submit_answer
from flagrunner.utils.audit import AuditTrail
from flagrunner.utils.files import list_files

_DERIVED_DIRS = {kind.value for kind in TransformKind}


@dataclass(slots=True)
class TransformBatch:
    """Texts produced for a directory, keyed by path relative to it."""

    contents: dict[str, str] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)
    artifacts: list[Artifact] = field(default_factory=list)


@dataclass(slots=True)
class PipelineRun:
    directory: Path
    fetched: bool
    segregation: SegregationReport | None
    batch: TransformBatch

    def to_dict(self) -> dict[str, Any]:
        return {
            "directory": str(self.directory),
            "fetched": self.fetched,
            "segregation": self.segregation.to_dict() if self.segregation else None,
            "contents": self.batch.contents,
            "failures": self.batch.failures,
            "artifacts": [artifact.to_dict() for artifact in self.batch.artifacts],
        }


@dataclass(slots=True)
class PageResult:
    markdown_path: Path
    markdown: str
    descriptions: dict[str, str] = field(default_factory=dict)
    transcripts: dict[str, str] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "markdown_path": str(self.markdown_path),
            "markdown": self.markdown,
            "descriptions": self.descriptions,
            "transcripts": self.transcripts,
            "failures": self.failures,
        }


class PipelineService:
    """Coordinate fetching, segregation, transformation and reporting for a task directory."""

    def __init__(
        self,
        config: Settings = settings,
        client: AICapability | None = None,
        cache: ArtifactCache | None = None,
    ) -> None:
        self.config = config
        self.client = client if client is not None else OpenAIClient(config)
        self.cache = cache if cache is not None else FileSystemCache()

    def _audit(self, audit: AuditTrail | None) -> AuditTrail:
        return audit if audit is not None else AuditTrail(self.config.log_dir)

    def ensure_files(
        self,
        url: str,
        directory: Path,
        force: bool = False,
        audit: AuditTrail | None = None,
    ) -> bool:
        return ensure_files_exist(directory, url, force=force, config=self.config, audit=self._audit(audit))

    def segregate(
        self,
        directory: Path,
        unwanted_dirs: Iterable[str] = (),
        unwanted_files: Iterable[str] = (),
        audit: AuditTrail | None = None,
    ) -> SegregationReport:
        return segregate_files(directory, unwanted_dirs, unwanted_files, audit=self._audit(audit))

    def transform_directory(self, directory: Path, audit: AuditTrail | None = None) -> TransformBatch:
        """Transform every file below ``directory`` one after another.

        Cached derived text is not fed back in. A failing file is recorded and skipped.
        """

        audit = self._audit(audit)
        transformer = ContentTransformer(self.client, self.cache, audit=audit)
        batch = TransformBatch()
        for path in list_files(directory):
            relative = path.relative_to(directory)
            if _DERIVED_DIRS.intersection(relative.parts[:-1]):
                continue
            key = relative.as_posix()
            try:
                result = transformer.transform_file(path, path.suffix, directory)
            except (PipelineError, OSError) as error:
                batch.failures[key] = str(error)
                audit.record("warning", "transform.failed", path=str(path), error=str(error))
                continue
            if not result.text.strip():
                continue
            batch.contents[key] = result.text
            batch.artifacts.append(Artifact(path=path, kind=ArtifactKind.EXTRACTED_FILE))
            if result.cache_path is not None:
                batch.artifacts.append(Artifact(path=result.cache_path, kind=ArtifactKind.DERIVED_TEXT))
        return batch

    def run(
        self,
        url: str,
        directory: Path,
        force: bool = False,
        unwanted_dirs: Iterable[str] = (),
        unwanted_files: Iterable[str] = (),
        segregate: bool = True,
    ) -> PipelineRun:
        """Guarded fetch, segregation and transformation of one task directory."""

        audit = AuditTrail(self.config.log_dir)
        audit.record("info", "pipeline.started", url=url, directory=str(directory), force=force)
        try:
            fetched = self.ensure_files(url, directory, force=force, audit=audit)
            report = (
                self.segregate(directory, unwanted_dirs, unwanted_files, audit=audit)
                if segregate
                else None
            )
        except (PipelineError, OSError) as error:
            audit.record("error", "pipeline.failed", error=str(error))
            raise
        batch = self.transform_directory(directory, audit=audit)
        audit.record(
            "info",
            "pipeline.completed",
            directory=str(directory),
            transformed=len(batch.contents),
            failed=len(batch.failures),
        )
        return PipelineRun(directory=directory, fetched=fetched, segregation=report, batch=batch)

    def analyze_images(
        self,
        paths: Iterable[Path],
        instruction: str,
        audit: AuditTrail | None = None,
    ) -> tuple[dict[str, str], dict[str, str]]:
        """Describe each image with ``instruction``; returns descriptions and failures."""

        audit = self._audit(audit)
        descriptions: dict[str, str] = {}
        failures: dict[str, str] = {}
        for path in paths:
            try:
                descriptions[str(path)] = analyze_image(path, instruction, self.client, self.cache).text
            except (PipelineError, OSError) as error:
                failures[str(path)] = str(error)
                audit.record("warning", "analysis.failed", path=str(path), error=str(error))
        return descriptions, failures

    def process_page(
        self,
        url: str,
        directory: Path,
        instruction: str,
        path_prefix: str | None = None,
        refresh: bool = False,
    ) -> PageResult:
        """Fetch an HTML page, pull its media locally and annotate it with AI output.

        The page source is kept in ``page.html`` and reused unless ``refresh`` is set.
        """

        audit = AuditTrail(self.config.log_dir)
        html = fetch_text_cached(url, directory / "page.html", self.config, self.cache, force=refresh)
        audit.record("info", "page.fetched", url=url, size=len(html))
        markdown = html_to_markdown(html, url, path_prefix)
        links = extract_media_links(html, url, path_prefix)

        failures: dict[str, str] = {}
        file_map: dict[str, str] = {}
        images = self._download_all(links.images, directory / "images", file_map, failures, audit)
        audio = self._download_all(links.audio, directory / "audio", file_map, failures, audit)
        markdown = localize_links(markdown, file_map)

        descriptions, analysis_failures = self.analyze_images(images, instruction, audit=audit)
        failures.update(analysis_failures)
        transcripts: dict[str, str] = {}
        for path in audio:
            try:
                transcripts[str(path)] = transcribe_audio(path, directory, self.client, self.cache).text
            except (PipelineError, OSError) as error:
                failures[str(path)] = str(error)
                audit.record("warning", "transcription.failed", path=str(path), error=str(error))

        markdown = inject_descriptions(markdown, descriptions)
        markdown = inject_descriptions(markdown, transcripts, label="Transcript")
        markdown_path = directory / "page.md"
        markdown_path.parent.mkdir(parents=True, exist_ok=True)
        markdown_path.write_text(markdown, encoding="utf-8")
        audit.record("info", "page.completed", path=str(markdown_path), failed=len(failures))
        return PageResult(
            markdown_path=markdown_path,
            markdown=markdown,
            descriptions=descriptions,
            transcripts=transcripts,
            failures=failures,
        )

    def _download_all(
        self,
        links: Iterable[str],
        directory: Path,
        file_map: dict[str, str],
        failures: dict[str, str],
        audit: AuditTrail,
    ) -> list[Path]:
        local: list[Path] = []
        for link in links:
            existing = directory / PurePosixPath(urlparse(link).path).name
            try:
                path = existing if existing.is_file() else download_file(link, directory, self.config)
            except FetchError as error:
                failures[link] = str(error)
                audit.record("warning", "page.download_failed", url=link, error=str(error))
                continue
            file_map[link] = str(path)
            local.append(path)
        return local

    def generate_image(self, prompt: str, size: str = "1024x1024") -> str:
        audit = AuditTrail(self.config.log_dir)
        url = self.client.generate_image(prompt, size=size)
        audit.record("info", "image.generated", size=size, url=url)
        return url

    def report(self, task: str, answer: Any) -> ReportResult:
        return submit_answer(task, answer, config=self.config, audit=AuditTrail(self.config.log_dir))


__all__ = ["PageResult", "PipelineRun", "PipelineService", "TransformBatch"]
