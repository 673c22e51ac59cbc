from __future__ import annotations

import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from urllib.parse import urlparse

import requests

from flagrunner.cache.store import ArtifactCache, FileSystemCache
from flagrunner.config import Settings, settings
from flagrunner.errors import FetchError

_CHUNK_SIZE = 65536


def _get(url: str, config: Settings, stream: bool = False) -> requests.Response:
    if not config.enable_network_fetch:
        raise FetchError(url, "network fetching disabled by configuration")
    try:
        response = requests.get(url, timeout=config.request_timeout, stream=stream)
    except requests.RequestException as error:
        raise FetchError(url, str(error)) from error
    if not response.ok:
        status = response.status_code
        response.close()
        raise FetchError(url, "remote responded with an error", status=status)
    return response


def _write_body(response: requests.Response, destination: Path) -> int:
    written = 0
    with destination.open("wb") as handle:
        for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
            if chunk:
                handle.write(chunk)
                written += len(chunk)
    return written


def download_to_temp(url: str, config: Settings = settings) -> Path:
    """Stream a remote resource into a fresh temporary file and return its path.

    The caller owns the file. On failure nothing is left behind.
    """

    response = _get(url, config, stream=True)
    if config.temp_dir is not None:
        config.temp_dir.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        prefix="downloaded-file-",
        suffix=".zip",
        dir=config.temp_dir,
        delete=False,
    ) as handle:
        path = Path(handle.name)
    try:
        with response:
            written = _write_body(response, path)
        if written == 0:
            raise FetchError(url, "response body is empty", status=response.status_code)
    except requests.RequestException as error:
        path.unlink(missing_ok=True)
        raise FetchError(url, str(error)) from error
    except Exception:
        path.unlink(missing_ok=True)
        raise
    return path


@contextmanager
def fetched_archive(url: str, config: Settings = settings) -> Iterator[Path]:
    """Download ``url`` to a temporary file that is removed on every exit path."""

    path = download_to_temp(url, config)
    try:
        yield path
    finally:
        path.unlink(missing_ok=True)


def download_file(url: str, directory: Path, config: Settings = settings) -> Path:
    """Save a remote file under its URL basename inside ``directory``."""

    response = _get(url, config)
    body = response.content
    if not body:
        raise FetchError(url, "response body is empty", status=response.status_code)
    name = Path(urlparse(url).path).name or "download.bin"
    directory.mkdir(parents=True, exist_ok=True)
    destination = directory / name
    destination.write_bytes(body)
    return destination


def fetch_text(url: str, config: Settings = settings) -> str:
    """Return the body of a remote page as text."""

    response = _get(url, config)
    return response.text


def fetch_text_cached(
    url: str,
    path: Path,
    config: Settings = settings,
    cache: ArtifactCache | None = None,
    force: bool = False,
) -> str:
    """Return the text stored at ``path``, fetching and storing it first when absent."""

    cache = cache if cache is not None else FileSystemCache()
    if not force and cache.exists(path):
        return cache.get(path)
    text = fetch_text(url, config).strip()
    cache.put(path, text)
    return text


__all__ = [
    "download_file",
    "download_to_temp",
    "fetch_text",
    "fetch_text_cached",
    "fetched_archive",
]
