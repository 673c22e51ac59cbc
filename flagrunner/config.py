from __future__ import annotations

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pipeline configuration loaded from environment variables or .env files."""

    model_config = SettingsConfigDict(env_file=(".env", ".env.local"), env_prefix="FLAGRUNNER_")

    data_dir: Path = Path("./task-data")
    log_dir: Path = Path("./audit-logs")
    temp_dir: Path | None = None
    enable_network_fetch: bool = True
    request_timeout: float = 30.0
    openai_api_key: str | None = None
    openai_base_url: str | None = None
    chat_model: str = "gpt-4o-mini"
    vision_model: str = "gpt-4o"
    transcription_model: str = "whisper-1"
    image_model: str = "dall-e-3"
    system_message: str = "You are a helpful assistant."
    temperature: float = 1.0
    task_api_key: str | None = None
    report_url: str | None = None

    @field_validator("data_dir", "log_dir", mode="after")
    @classmethod
    def ensure_directory(cls, value: Path) -> Path:
        value.mkdir(parents=True, exist_ok=True)
        return value

    @field_validator("temperature")
    @classmethod
    def validate_temperature(cls, value: float) -> float:
        if not 0.0 <= value <= 2.0:
            msg = "temperature must be between 0 and 2"
            raise ValueError(msg)
        return value

    @field_validator("request_timeout")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        if value <= 0:
            msg = "request_timeout must be positive"
            raise ValueError(msg)
        return value


settings = Settings()


def resolve_task_directory(relative: str | Path, config: Settings = settings) -> Path:
    """Return a task directory under ``data_dir``, refusing paths that escape it."""

    candidate = Path(relative)
    if candidate.is_absolute():
        msg = f"Task directory must be relative to the data directory: {relative}"
        raise ValueError(msg)
    base = config.data_dir.resolve()
    resolved = (base / candidate).resolve()
    if resolved != base and base not in resolved.parents:
        msg = f"Task directory escapes the data directory: {relative}"
        raise ValueError(msg)
    return resolved


__all__ = ["Settings", "resolve_task_directory", "settings"]
