# SPDX-License-Identifier: MIT
# SPDX-FileCopyrightText: 2024 Jason Lynch <jason@aexoden.com>
"""Bounded job queue that feeds one worker at a time."""

from __future__ import annotations

import functools
import queue
import threading

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

    from factorqueue.channel import WorkerChannel
    from factorqueue.config import Config
    from factorqueue.protocol import WorkerEvent

from loguru import logger

from factorqueue.channel import create_channel
from factorqueue.job import Job, JobSnapshot, JobStatus
from factorqueue.protocol import Complete, GenerateAndFactor
from factorqueue.util import log_factor_result


@dataclass(frozen=True)
class Replenish:
    """Top up the queue by one job if it is below capacity."""


@dataclass(frozen=True)
class Deliver:
    """Apply an event received on the channel of the given job."""

    job_id: int
    event: WorkerEvent


@dataclass(frozen=True)
class Shutdown:
    """Tear down every worker and stop the coordinator."""


Command = Replenish | Deliver | Shutdown


class JobScheduler:
    """Maintains a capped queue of factoring jobs and runs them one at a time.

    All job state is owned by a single coordinator thread. The replenishment timer and the worker channels only post
    commands to the coordinator's inbox, so updates to a job are applied in the order its worker produced them.
    Admission is event-driven: after every command, the oldest job that has not started is admitted if no job is
    active.

    The replenish, admit_next and handle_event methods perform the coordinator's work directly. Once the scheduler
    has been started they must only be called from the coordinator thread.
    """

    def __init__(self, config: Config, channel_factory: Callable[[], WorkerChannel] | None = None) -> None:
        self._config = config
        self._channel_factory = channel_factory or functools.partial(create_channel, config)

        self._jobs: list[Job] = []
        self._handlers: dict[int, Callable[[WorkerEvent], None]] = {}
        self._active: Job | None = None
        self._next_job_id = 0
        self._completed_count = 0

        self._view: tuple[JobSnapshot, ...] = ()
        self._listeners: list[Callable[[JobSnapshot], None]] = []

        self._inbox: queue.Queue[Command] = queue.Queue()
        self._stop_event = threading.Event()
        self._coordinator: threading.Thread | None = None
        self._timer: threading.Thread | None = None
        self._stopped = False

    #
    # Read-only View
    #

    @property
    def jobs(self) -> tuple[JobSnapshot, ...]:
        """Snapshots of the queued and active jobs, oldest first."""
        return self._view

    @property
    def active_job_id(self) -> int | None:
        active = self._active
        return active.id if active is not None else None

    @property
    def completed_count(self) -> int:
        return self._completed_count

    @property
    def running(self) -> bool:
        return self._coordinator is not None and not self._stopped

    def add_listener(self, callback: Callable[[JobSnapshot], None]) -> None:
        """Register a callback invoked with the new snapshot of every job that changes."""
        self._listeners = [*self._listeners, callback]

    def remove_listener(self, callback: Callable[[JobSnapshot], None]) -> None:
        self._listeners = [listener for listener in self._listeners if listener is not callback]

    #
    # Lifecycle
    #

    def start(self) -> None:
        """Fill the queue and start the coordinator and the replenishment timer."""
        if self._coordinator is not None or self._stopped:
            msg = "scheduler has already been started"
            raise RuntimeError(msg)

        logger.info("Starting scheduler with capacity for {} jobs", self._config.max_jobs)

        while self.replenish() is not None:
            pass

        self._coordinator = threading.Thread(target=self._coordinate, name="scheduler-coordinator", daemon=True)
        self._timer = threading.Thread(target=self._replenish_periodically, name="scheduler-timer", daemon=True)

        self._coordinator.start()
        self._timer.start()

        self._inbox.put(Replenish())

    def stop(self) -> None:
        """Stop the timer and tear down every job's worker, whatever its status."""
        if self._stopped:
            return

        self._stopped = True
        self._stop_event.set()

        if self._timer is not None:
            self._timer.join()

        if self._coordinator is None:
            self._shutdown()
            return

        self._inbox.put(Shutdown())
        self._coordinator.join()

    def _replenish_periodically(self) -> None:
        while not self._stop_event.wait(self._config.replenish_interval):
            self._inbox.put(Replenish())

    def _coordinate(self) -> None:
        while True:
            command = self._inbox.get()

            if isinstance(command, Shutdown):
                self._shutdown()
                return

            try:
                if isinstance(command, Replenish):
                    self.replenish()
                else:
                    self.handle_event(command.job_id, command.event)

                self.admit_next()
            except Exception:
                logger.exception("Scheduler failed to process {}", command)

    def _shutdown(self) -> None:
        for job in self._jobs:
            if job.status == JobStatus.STARTED:
                logger.info("Abandoning job {} at {:.2f}%", job.id, job.percentage_done)

            self._detach(job)
            self._teardown(job)

        self._jobs.clear()
        self._active = None
        self._view = ()

        logger.info("Scheduler stopped after completing {} jobs", self._completed_count)

    #
    # Coordinator Operations
    #

    def replenish(self) -> Job | None:
        """Append a new job with a fresh worker if the queue is below capacity.

        Returns:
            Job | None: The new job, or None if the queue is full.
        """
        if len(self._jobs) >= self._config.max_jobs:
            return None

        job = Job(self._next_job_id, self._config.value_length, self._channel_factory())
        self._next_job_id += 1
        self._jobs.append(job)

        logger.debug("Queued job {} ({} of {})", job.id, len(self._jobs), self._config.max_jobs)

        self._publish(job)
        return job

    def admit_next(self) -> Job | None:
        """Start the oldest job that has not started, unless a job is already active.

        Returns:
            Job | None: The admitted job, or None if nothing was admitted.
        """
        if self._active is not None:
            return None

        job = next((job for job in self._jobs if job.status == JobStatus.NOT_STARTED), None)

        if job is None:
            return None

        job.start()
        self._active = job

        handler = functools.partial(self._post_event, job.id)
        self._handlers[job.id] = handler
        job.worker.add_listener(handler)

        logger.info("Admitting job {} ({} bytes)", job.id, job.length)

        try:
            job.worker.send(GenerateAndFactor(job_id=job.id, length=job.length))
        except (OSError, RuntimeError) as e:
            logger.error("Failed to start worker for job {}: {}", job.id, e)
            self._finish(job, Complete(job_id=job.id, error=f"worker failed to start: {e}"))
            return job

        self._publish(job)
        return job

    def handle_event(self, job_id: int, event: WorkerEvent) -> None:
        """Apply an event delivered on the channel of the given job. Stale or misaddressed events are ignored."""
        job = next((job for job in self._jobs if job.id == job_id), None)

        if job is None or event.job_id != job_id:
            logger.debug("Ignoring {} for job {} delivered to job {}", event.kind, event.job_id, job_id)
            return

        if isinstance(event, Complete):
            self._finish(job, event)
        elif job.apply(event):
            self._publish(job)

    def _post_event(self, job_id: int, event: WorkerEvent) -> None:
        if event.job_id != job_id:
            return

        self._inbox.put(Deliver(job_id, event))

    def _finish(self, job: Job, event: Complete) -> None:
        if not job.apply(event):
            return

        self._detach(job)
        self._teardown(job)

        self._jobs.remove(job)

        if self._active is job:
            self._active = None

        self._completed_count += 1

        if job.error is not None:
            logger.warning("Job {} failed: {}", job.id, job.error)
        else:
            log_factor_result(job.id, job.value, job.factors)

        self._publish(job)

    def _detach(self, job: Job) -> None:
        handler = self._handlers.pop(job.id, None)

        if handler is not None:
            job.worker.remove_listener(handler)

    def _teardown(self, job: Job) -> None:
        try:
            job.worker.terminate()
        except Exception:
            logger.exception("An error occurred whilst terminating the worker for job {}", job.id)

    def _publish(self, job: Job) -> None:
        self._view = tuple(queued.snapshot() for queued in self._jobs)

        snapshot = job.snapshot()

        for listener in self._listeners:
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Job listener failed for job {}", job.id)
