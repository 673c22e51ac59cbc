from __future__ import annotations

from pathlib import Path
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from flagrunner import __version__
from flagrunner.config import resolve_task_directory
from flagrunner.errors import (
    ExtractionError,
    FetchError,
    PipelineError,
    ReportError,
    TransformationError,
)
from flagrunner.ingest.archive import download_and_extract
from flagrunner.pipeline.service import PipelineService

app = FastAPI(title="flagrunner", version=__version__)

_ERROR_MESSAGES: dict[type[PipelineError], tuple[int, str]] = {
    FetchError: (500, "Failed to download or extract file"),
    ExtractionError: (500, "Failed to download or extract file"),
    TransformationError: (500, "Failed to process files."),
    ReportError: (502, "Failed to send report"),
}


def get_pipeline_service() -> PipelineService:
    return PipelineService()


class RunRequest(BaseModel):
    url: str
    directory: str
    force: bool = False
    segregate: bool = True
    unwanted_dirs: list[str] = Field(default_factory=list)
    unwanted_files: list[str] = Field(default_factory=list)


class ExtractRequest(BaseModel):
    url: str
    directory: str


class PageRequest(BaseModel):
    url: str
    directory: str
    instruction: str
    path_prefix: str | None = None
    refresh: bool = False


class ReportRequest(BaseModel):
    task: str
    answer: Any


class ExtractResponse(BaseModel):
    message: str
    extracted_path: str
    files: list[str]


class FlagResponse(BaseModel):
    task: str
    message: str
    flag: str


class InvalidTaskDirectory(ValueError):
    """A requested task directory falls outside the data directory."""


def _task_directory(relative: str, service: PipelineService) -> Path:
    try:
        return resolve_task_directory(relative, service.config)
    except ValueError as exc:
        raise InvalidTaskDirectory(str(exc)) from exc


@app.exception_handler(InvalidTaskDirectory)
async def _invalid_directory_handler(request: Request, exc: InvalidTaskDirectory) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "Invalid task directory", "detail": str(exc)})


@app.exception_handler(PipelineError)
async def _pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
    status_code, message = _ERROR_MESSAGES.get(type(exc), (500, "Failed to process the request."))
    return JSONResponse(status_code=status_code, content={"error": message, "detail": str(exc)})


@app.exception_handler(Exception)
async def _unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": "Failed to process the request."})


@app.get("/health")
def health(service: PipelineService = Depends(get_pipeline_service)) -> dict[str, Any]:
    return {
        "status": "ok",
        "version": __version__,
        "data_dir": str(service.config.data_dir),
        "network_fetch": service.config.enable_network_fetch,
    }


@app.post("/archives/extract", response_model=ExtractResponse)
def extract_archive(
    payload: ExtractRequest,
    service: PipelineService = Depends(get_pipeline_service),
) -> ExtractResponse:
    directory = _task_directory(payload.directory, service)
    files = download_and_extract(payload.url, directory, config=service.config)
    return ExtractResponse(
        message="File downloaded and extracted successfully",
        extracted_path=str(directory),
        files=[str(path) for path in files],
    )


@app.post("/pipeline/run")
def run_pipeline(
    payload: RunRequest,
    service: PipelineService = Depends(get_pipeline_service),
) -> dict[str, Any]:
    directory = _task_directory(payload.directory, service)
    result = service.run(
        payload.url,
        directory,
        force=payload.force,
        unwanted_dirs=payload.unwanted_dirs,
        unwanted_files=payload.unwanted_files,
        segregate=payload.segregate,
    )
    return result.to_dict()


@app.post("/pages/extract")
def extract_page(
    payload: PageRequest,
    service: PipelineService = Depends(get_pipeline_service),
) -> dict[str, Any]:
    directory = _task_directory(payload.directory, service)
    result = service.process_page(
        payload.url,
        directory,
        payload.instruction,
        path_prefix=payload.path_prefix,
        refresh=payload.refresh,
    )
    return result.to_dict()


@app.post("/report", response_model=FlagResponse)
def report(
    payload: ReportRequest,
    service: PipelineService = Depends(get_pipeline_service),
) -> FlagResponse:
    result = service.report(payload.task, payload.answer)
    return FlagResponse(**result.to_dict())


__all__ = ["app"]
