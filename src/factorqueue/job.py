# SPDX-License-Identifier: MIT
# SPDX-FileCopyrightText: 2024 Jason Lynch <jason@aexoden.com>
"""Factoring jobs and their observable state."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from factorqueue.constants import RUNNING_PERCENTAGE_CEILING
from factorqueue.protocol import Complete, FactorFound, ProgressUpdate, ValueCreated

if TYPE_CHECKING:
    from factorqueue.channel import WorkerChannel
    from factorqueue.protocol import WorkerEvent


class JobStatus(Enum):
    """Lifecycle of a job. Transitions only move forward."""

    NOT_STARTED = "not_started"
    STARTED = "started"
    DONE = "done"


class JobSnapshot(BaseModel):
    """Immutable view of a job's observable state."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(description="Unique job identifier")
    status: JobStatus = Field(description="Current lifecycle status")
    percentage_done: float = Field(description="Estimated progress in the range [0, 100]")
    value: str = Field(description="The generated integer in base 10, or empty before generation")
    factors: tuple[tuple[str, str], ...] = Field(description="Factor pairs (base, exponent) in discovery order")
    length: int = Field(description="Byte length of the generated integer")
    error: str | None = Field(default=None, description="Failure description for jobs that did not factor")


class Job:
    """A single generate-and-factor job, bound to its own worker channel.

    Jobs are mutated only by the scheduler's coordinator thread.
    """

    id: int
    status: JobStatus
    percentage_done: float
    value: str
    factors: list[tuple[str, str]]
    length: int
    error: str | None
    worker: WorkerChannel

    def __init__(self, job_id: int, length: int, worker: WorkerChannel) -> None:
        self.id = job_id
        self.status = JobStatus.NOT_STARTED
        self.percentage_done = 0.0
        self.value = ""
        self.factors = []
        self.length = length
        self.error = None
        self.worker = worker

    def __repr__(self) -> str:
        return f"Job(id={self.id}, status={self.status.name}, percentage_done={self.percentage_done})"

    @property
    def done(self) -> bool:
        return self.status == JobStatus.DONE

    def start(self) -> None:
        if self.status != JobStatus.NOT_STARTED:
            msg = f"job {self.id} cannot start from status {self.status.name}"
            raise RuntimeError(msg)

        self.status = JobStatus.STARTED

    def apply(self, event: WorkerEvent) -> bool:
        """Apply an event from this job's worker.

        Returns:
            bool: True if the job's state changed.
        """
        if event.job_id != self.id or self.status != JobStatus.STARTED:
            return False

        if isinstance(event, ValueCreated):
            if self.value:
                return False

            self.value = event.value
        elif isinstance(event, FactorFound):
            self.factors.append((event.base, event.exponent))
        elif isinstance(event, ProgressUpdate):
            self.percentage_done = min(event.percentage, RUNNING_PERCENTAGE_CEILING)
        elif isinstance(event, Complete):
            self.status = JobStatus.DONE
            self.percentage_done = 100.0
            self.error = event.error

        return True

    def snapshot(self) -> JobSnapshot:
        return JobSnapshot(
            id=self.id,
            status=self.status,
            percentage_done=self.percentage_done,
            value=self.value,
            factors=tuple(self.factors),
            length=self.length,
            error=self.error,
        )
