from __future__ import annotations

from fastapi.testclient import TestClient

from flagrunner.pipeline.service import PipelineService


def test_health_endpoint(client: TestClient, pipeline_service: PipelineService) -> None:
    response = client.get("/health")
    payload = response.json()
    assert response.status_code == 200
    assert payload["status"] == "ok"
    assert payload["data_dir"] == str(pipeline_service.config.data_dir)


def test_pipeline_run_endpoint(client: TestClient, http, zip_factory, pipeline_service: PipelineService) -> None:
    http.add("https://c.test/a.zip", body=zip_factory({"note.txt": b"hello", "skip.bin": b"x"}))

    response = client.post(
        "/pipeline/run",
        json={"url": "https://c.test/a.zip", "directory": "S03E01/files"},
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["fetched"] is True
    assert payload["contents"] == {"text/note.txt": "hello"}
    expected = pipeline_service.config.data_dir.resolve() / "S03E01" / "files"
    assert payload["directory"] == str(expected)


def test_archive_extract_endpoint(client: TestClient, http, zip_factory) -> None:
    http.add("https://c.test/b.zip", body=zip_factory({"x.txt": b"x"}))

    response = client.post("/archives/extract", json={"url": "https://c.test/b.zip", "directory": "raw"})

    assert response.status_code == 200
    assert response.json()["message"] == "File downloaded and extracted successfully"
    assert response.json()["files"][0].endswith("x.txt")


def test_fetch_failure_is_json_error(client: TestClient) -> None:
    response = client.post(
        "/pipeline/run",
        json={"url": "https://c.test/missing.zip", "directory": "task"},
    )

    assert response.status_code == 500
    payload = response.json()
    assert payload["error"] == "Failed to download or extract file"
    assert "404" in payload["detail"]


def test_directory_outside_data_dir_is_rejected(client: TestClient) -> None:
    response = client.post(
        "/archives/extract",
        json={"url": "https://c.test/a.zip", "directory": "../../etc"},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid task directory"
    assert response.json()["detail"]


def test_report_endpoint_returns_flag(client: TestClient, http) -> None:
    response = client.post("/report", json={"task": "database", "answer": [4278, 9294]})

    assert response.status_code == 200
    assert response.json()["flag"] == "TEST"
    assert http.posts[0][1]["answer"] == [4278, 9294]


def test_report_rejection_is_bad_gateway(client: TestClient, http) -> None:
    http.set_post(500, b"upstream broke")

    response = client.post("/report", json={"task": "database", "answer": []})

    assert response.status_code == 502
    assert response.json()["error"] == "Failed to send report"


def test_page_endpoint(client: TestClient, http) -> None:
    http.add("https://c.test/page.html", body=b"<h1>Title</h1><p>Body</p>")

    response = client.post(
        "/pages/extract",
        json={"url": "https://c.test/page.html", "directory": "S02E05", "instruction": "Describe."},
    )

    assert response.status_code == 200
    assert response.json()["markdown"] == "# Title\nBody"
