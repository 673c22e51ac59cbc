from __future__ import annotations

import io
import json
import sys
from collections.abc import Iterator
from pathlib import Path
from typing import Any
from zipfile import ZipFile

import pytest
from fastapi.testclient import TestClient
from PIL import Image

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from flagrunner.api.main import app, get_pipeline_service  # noqa: E402
from flagrunner.config import Settings  # noqa: E402
from flagrunner.errors import TransformationError  # noqa: E402
from flagrunner.pipeline.service import PipelineService  # noqa: E402


class FakeResponse:
    def __init__(
        self,
        status_code: int = 200,
        body: bytes = b"",
        json_body: Any = None,
    ) -> None:
        self.status_code = status_code
        self.content = body if json_body is None else json.dumps(json_body).encode("utf-8")
        self._json = json_body
        self.closed = False

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    @property
    def text(self) -> str:
        return self.content.decode("utf-8")

    def iter_content(self, chunk_size: int = 1) -> Iterator[bytes]:
        for start in range(0, len(self.content), chunk_size):
            yield self.content[start : start + chunk_size]

    def json(self) -> Any:
        if self._json is None:
            raise ValueError("no JSON body")
        return self._json

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> FakeResponse:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class FakeServer:
    """Stands in for requests.get/requests.post with canned responses."""

    def __init__(self) -> None:
        self.routes: dict[str, FakeResponse | Exception] = {}
        self.gets: list[str] = []
        self.posts: list[tuple[str, Any]] = []
        self.post_response = FakeResponse(json_body={"code": 0, "message": "OK {{FLG:TEST}}"})

    def add(self, url: str, status: int = 200, body: bytes = b"", json_body: Any = None) -> None:
        self.routes[url] = FakeResponse(status, body, json_body)

    def set_post(self, status: int = 200, body: bytes = b"", json_body: Any = None) -> None:
        self.post_response = FakeResponse(status, body, json_body)

    def fail(self, url: str, error: Exception) -> None:
        self.routes[url] = error

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.gets.append(url)
        response = self.routes.get(url)
        if response is None:
            return FakeResponse(404, b"not found")
        if isinstance(response, Exception):
            raise response
        return response

    def post(self, url: str, json: Any = None, **kwargs: Any) -> FakeResponse:
        self.posts.append((url, json))
        return self.post_response


class FakeCapability:
    """Records calls instead of talking to an AI API."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.reply = "described text"
        self.transcript = "transcribed speech"
        self.failing: set[str] = set()

    def complete(
        self,
        user_message: Any,
        system_message: str | None = None,
        temperature: float | None = None,
        model: str | None = None,
    ) -> str:
        self.calls.append(("complete", user_message))
        return self.reply

    def describe_image(self, image: bytes, mime: str, instruction: str) -> str:
        self.calls.append(("describe_image", mime))
        if "describe_image" in self.failing:
            raise TransformationError("Failed to analyze image content", status=500)
        return self.reply

    def transcribe(self, audio: bytes, filename: str) -> str:
        self.calls.append(("transcribe", filename))
        if "transcribe" in self.failing:
            raise TransformationError("Failed to transcribe audio", status=500)
        return self.transcript

    def generate_image(self, prompt: str, size: str = "1024x1024") -> str:
        self.calls.append(("generate_image", prompt))
        return f"https://images.test/{size}.png"


def make_zip(entries: dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with ZipFile(buffer, "w") as bundle:
        for name, data in entries.items():
            bundle.writestr(name, data)
    return buffer.getvalue()


def make_png(color: tuple[int, int, int] = (255, 0, 0)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (16, 8), color=color).save(buffer, "PNG")
    return buffer.getvalue()


@pytest.fixture()
def temp_settings(tmp_path: Path) -> Settings:
    return Settings(
        data_dir=tmp_path / "data",
        log_dir=tmp_path / "logs",
        temp_dir=tmp_path / "tmp",
        enable_network_fetch=True,
        openai_api_key=None,
        task_api_key="task-key-0000-1234",
        report_url="https://grader.test/report",
    )


@pytest.fixture()
def http(monkeypatch: pytest.MonkeyPatch) -> FakeServer:
    server = FakeServer()
    monkeypatch.setattr("flagrunner.ingest.fetcher.requests.get", server.get)
    monkeypatch.setattr("flagrunner.report.client.requests.post", server.post)
    return server


@pytest.fixture()
def capability() -> FakeCapability:
    return FakeCapability()


@pytest.fixture()
def pipeline_service(temp_settings: Settings, capability: FakeCapability) -> PipelineService:
    return PipelineService(config=temp_settings, client=capability)


@pytest.fixture()
def client(pipeline_service: PipelineService, http: FakeServer) -> Iterator[TestClient]:
    app.dependency_overrides[get_pipeline_service] = lambda: pipeline_service

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture()
def zip_factory() -> Any:
    return make_zip


@pytest.fixture()
def png_factory() -> Any:
    return make_png
