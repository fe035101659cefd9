"""In-memory job runner used instead of a real queue backend."""

from __future__ import annotations

from typing import Any, Mapping


class RecordingJobQueue:
    def __init__(self, *, accept: bool = True, error: Exception | None = None) -> None:
        self.accept = accept
        self.error = error
        self.jobs: list[tuple[str, str, dict[str, Any]]] = []

    def push(self, queue_name: str, job_handler: str, payload: Mapping[str, Any]) -> bool:
        if self.error is not None:
            raise self.error
        if self.accept:
            self.jobs.append((queue_name, job_handler, dict(payload)))
        return self.accept
