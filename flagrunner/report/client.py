from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import requests

from flagrunner.config import Settings, settings
from flagrunner.errors import ReportError
from flagrunner.report.parsing import extract_flag
from flagrunner.utils.audit import AuditTrail


@dataclass(slots=True)
class ReportResult:
    task: str
    message: str
    flag: str

    def to_dict(self) -> dict[str, str]:
        return {"task": self.task, "message": self.message, "flag": self.flag}


def submit_answer(
    task: str,
    answer: Any,
    config: Settings = settings,
    audit: AuditTrail | None = None,
) -> ReportResult:
    """POST ``{task, apikey, answer}`` to the grading endpoint and pull the flag out."""

    if not config.report_url:
        raise ReportError("Grading endpoint not configured")
    payload = {"task": task, "apikey": config.task_api_key or "", "answer": answer}
    if audit is not None:
        audit.record("info", "report.submitted", url=config.report_url, payload=payload)
    try:
        response = requests.post(config.report_url, json=payload, timeout=config.request_timeout)
    except requests.RequestException as error:
        raise ReportError(f"Failed to send report: {error}") from error
    if not response.ok:
        raise ReportError("Failed to send report", status=response.status_code, body=response.text)

    try:
        body = response.json()
    except ValueError as error:
        raise ReportError("Grading endpoint returned invalid JSON", status=response.status_code, body=response.text) from error
    message = body.get("message") if isinstance(body, dict) else None
    message = message if isinstance(message, str) else ""
    result = ReportResult(task=task, message=message, flag=extract_flag(message))
    if audit is not None:
        audit.record("info", "report.completed", task=task, flag=result.flag)
    return result


__all__ = ["ReportResult", "submit_answer"]
