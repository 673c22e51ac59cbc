from __future__ import annotations


class PipelineError(Exception):
    """Base class for every failure raised by the pipeline."""


class FetchError(PipelineError):
    """A remote resource could not be retrieved."""

    def __init__(self, url: str, reason: str, status: int | None = None) -> None:
        self.url = url
        self.reason = reason
        self.status = status
        suffix = f" Status: {status}" if status is not None else ""
        super().__init__(f"Failed to fetch {url}: {reason}.{suffix}")


class ExtractionError(PipelineError):
    """An archive was missing or could not be unpacked."""

    def __init__(self, archive: str, reason: str) -> None:
        self.archive = archive
        self.reason = reason
        super().__init__(f"Failed to extract {archive}: {reason}")


class TransformationError(PipelineError):
    """The external AI capability failed to produce text."""

    def __init__(self, reason: str, status: int | None = None) -> None:
        self.reason = reason
        self.status = status
        super().__init__(reason)


class ReportError(PipelineError):
    """The grading endpoint rejected a submission."""

    def __init__(self, reason: str, status: int | None = None, body: str | None = None) -> None:
        self.reason = reason
        self.status = status
        self.body = body
        details = f" Status: {status}" if status is not None else ""
        if body:
            details += f", Response: {body}"
        super().__init__(f"{reason}.{details}")


__all__ = [
    "ExtractionError",
    "FetchError",
    "PipelineError",
    "ReportError",
    "TransformationError",
]
