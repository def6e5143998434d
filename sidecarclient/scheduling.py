"""Scheduling, reading and deleting jobs through the sidecar."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class Job:
    """A scheduled job; every field except name and data is optional."""

    name: str = ""
    schedule: str = ""
    repeats: int = 0
    due_time: str = ""
    ttl: str = ""
    data: Any = None


class SchedulingMixin:
    """Job scheduling calls.

    The host class provides ``self._api`` with ``schedule_job_alpha1``,
    ``get_job_alpha1`` and ``delete_job_alpha1``, each taking a request dict;
    ``get_job_alpha1`` returns a dict holding a ``job`` dict.
    """

    _api: Any

    def schedule_job_alpha1(self, job: Job) -> None:
        """Schedule a job; unset optional fields are left out of the request."""
        request: dict[str, Any] = {"name": job.name, "data": job.data}
        if job.schedule:
            request["schedule"] = job.schedule
        if job.repeats:
            request["repeats"] = job.repeats
        if job.due_time:
            request["due_time"] = job.due_time
        if job.ttl:
            request["ttl"] = job.ttl
        self._api.schedule_job_alpha1({"job": request})

    def get_job_alpha1(self, name: str) -> Job:
        """Return the scheduled job with the given name."""
        response = self._api.get_job_alpha1({"name": name})
        logger.debug("get job response: %r", response)
        raw = (response or {}).get("job") or {}
        return Job(
            name=raw.get("name", ""),
            schedule=raw.get("schedule", ""),
            repeats=raw.get("repeats", 0),
            due_time=raw.get("due_time", ""),
            ttl=raw.get("ttl", ""),
            data=raw.get("data"),
        )

    def delete_job_alpha1(self, name: str) -> None:
        """Delete the scheduled job with the given name."""
        self._api.delete_job_alpha1({"name": name})