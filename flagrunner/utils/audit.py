from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from flagrunner.utils.files import timestamped_stem

_SECRET_KEYS = {"apikey", "api_key", "authorization", "openai_api_key", "task_api_key"}
_OPENAI_KEY_RE = re.compile(r"\bsk-[A-Za-z0-9_-]{8,}")
_BEARER_RE = re.compile(r"(Bearer\s+)[^\s\"']+", re.IGNORECASE)


def _mask(value: str) -> str:
    if len(value) <= 4:
        return "***"
    return f"***{value[-4:]}"


def _redact(value: str) -> str:
    partially = _OPENAI_KEY_RE.sub(lambda match: _mask(match.group()), value)
    return _BEARER_RE.sub(lambda match: f"{match.group(1)}***", partially)


def redact_details(details: dict[str, Any]) -> dict[str, Any]:
    """Recursively redact API keys and bearer tokens."""

    redacted: dict[str, Any] = {}
    for key, value in details.items():
        if key.lower() in _SECRET_KEYS and isinstance(value, str):
            redacted[key] = _mask(value)
        elif isinstance(value, str):
            redacted[key] = _redact(value)
        elif isinstance(value, dict):
            redacted[key] = redact_details(value)
        elif isinstance(value, list):
            redacted[key] = [
                redact_details(item) if isinstance(item, dict) else item
                for item in value
            ]
        else:
            redacted[key] = value
    return redacted


@dataclass(slots=True)
class AuditEvent:
    level: str
    event: str
    details: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    def to_dict(self) -> dict[str, Any]:
        payload = {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level,
            "event": self.event,
            "details": redact_details(self.details),
        }
        return payload


class AuditTrail:
    """Collect pipeline events and persist them to JSONL."""

    def __init__(self, log_dir: Path, prefix: str = "pipeline") -> None:
        log_dir.mkdir(parents=True, exist_ok=True)
        stem = timestamped_stem(prefix)
        self.path = log_dir / f"{stem}.jsonl"
        self._events: list[AuditEvent] = []

    def record(self, level: str, event: str, **details: Any) -> AuditEvent:
        audit_event = AuditEvent(level=level, event=event, details=details)
        self._events.append(audit_event)
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(audit_event.to_dict(), ensure_ascii=False, default=str) + "\n")
        return audit_event

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    def named(self, event: str) -> list[AuditEvent]:
        return [item for item in self._events if item.event == event]


__all__ = ["AuditEvent", "AuditTrail", "redact_details"]
