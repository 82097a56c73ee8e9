# SPDX-License-Identifier: MIT
# SPDX-FileCopyrightText: 2024 Jason Lynch <jason@aexoden.com>
"""Scheduler side of the message channel to an isolated computation unit."""

from __future__ import annotations

import multiprocessing
import threading

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable
    from multiprocessing.context import BaseContext

    from factorqueue.config import Config

from loguru import logger

from factorqueue.protocol import Complete, GenerateAndFactor, WorkerEvent, decode_event, encode_message
from factorqueue.worker import WorkerTerminated, handle_request, run_worker

UNEXPECTED_EXIT_ERROR = "worker exited unexpectedly"


class WorkerChannel(ABC):
    """Ordered, asynchronous channel to exactly one computation unit.

    The channel accepts a single request. Events produced for it are delivered to every attached listener, in the
    order the worker produced them, on a thread owned by the channel.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: list[Callable[[WorkerEvent], None]] = []
        self._request: GenerateAndFactor | None = None
        self._completed = False
        self._terminated = False

    @property
    def started(self) -> bool:
        return self._request is not None

    @property
    def terminated(self) -> bool:
        return self._terminated

    def add_listener(self, handler: Callable[[WorkerEvent], None]) -> None:
        with self._lock:
            self._listeners.append(handler)

    def remove_listener(self, handler: Callable[[WorkerEvent], None]) -> None:
        with self._lock:
            if handler in self._listeners:
                self._listeners.remove(handler)

    def send(self, request: GenerateAndFactor) -> None:
        """Send the request, starting the computation unit."""
        if self._terminated:
            msg = "cannot send on a terminated worker channel"
            raise RuntimeError(msg)

        if self._request is not None:
            msg = f"worker channel already serving job {self._request.job_id}"
            raise RuntimeError(msg)

        self._request = request
        self._start(request)

    def terminate(self) -> None:
        """Tear down the computation unit. Any further output is discarded."""
        if self._terminated:
            return

        self._terminated = True
        self._stop()

    def _dispatch(self, event: WorkerEvent) -> None:
        if self._terminated:
            return

        if isinstance(event, Complete):
            self._completed = True

        with self._lock:
            listeners = list(self._listeners)

        for listener in listeners:
            listener(event)

    def _dispatch_unexpected_exit(self) -> None:
        if self._terminated or self._completed or self._request is None:
            return

        logger.warning("Worker for job {} exited without completing", self._request.job_id)
        self._dispatch(Complete(job_id=self._request.job_id, error=UNEXPECTED_EXIT_ERROR))

    @abstractmethod
    def _start(self, request: GenerateAndFactor) -> None: ...

    @abstractmethod
    def _stop(self) -> None: ...


class ProcessWorkerChannel(WorkerChannel):
    """Channel to a dedicated worker process, connected by a pipe."""

    def __init__(self, context: BaseContext | None = None, teardown_timeout: float = 1.0) -> None:
        super().__init__()
        self._context = context or multiprocessing.get_context("spawn")
        self._teardown_timeout = teardown_timeout
        self._connection, self._child_connection = self._context.Pipe()
        self._process = self._context.Process(target=run_worker, args=(self._child_connection,), daemon=True)
        self._reader: threading.Thread | None = None

    def _start(self, request: GenerateAndFactor) -> None:
        self._process.start()

        # The parent's copy of the child end must be closed so the reader sees EOF when the process exits.
        self._child_connection.close()

        self._reader = threading.Thread(target=self._read, name=f"worker-reader-{request.job_id}", daemon=True)
        self._reader.start()

        self._connection.send_bytes(encode_message(request))

    def _read(self) -> None:
        try:
            while True:
                try:
                    data = self._connection.recv_bytes()
                except (EOFError, OSError):
                    break

                self._dispatch(decode_event(data))
        finally:
            self._connection.close()

        self._dispatch_unexpected_exit()

    def _stop(self) -> None:
        if self._reader is None:
            self._connection.close()
            self._child_connection.close()
            return

        if self._process.is_alive():
            self._process.terminate()

        self._process.join(self._teardown_timeout)

        if self._process.is_alive():
            logger.warning("Worker process {} did not exit after termination; killing it", self._process.pid)
            self._process.kill()
            self._process.join(self._teardown_timeout)


class ThreadWorkerChannel(WorkerChannel):
    """Channel to a worker running in a daemon thread of this process.

    Threads cannot be interrupted, so termination takes effect at the worker's next yield point: its next emission
    or cooperative sleep raises WorkerTerminated, which unwinds the computation. Until then the thread may keep
    dividing for up to one progress interval, and anything it produces is discarded.
    """

    def __init__(self) -> None:
        super().__init__()
        self._wake = threading.Event()
        self._thread: threading.Thread | None = None

    def _start(self, request: GenerateAndFactor) -> None:
        self._thread = threading.Thread(target=self._run, args=(request,), name=f"worker-{request.job_id}", daemon=True)
        self._thread.start()

    def _run(self, request: GenerateAndFactor) -> None:
        try:
            handle_request(request, self._emit, sleep=self._sleep)
        except WorkerTerminated:
            logger.debug("Worker for job {} terminated", request.job_id)
        finally:
            self._dispatch_unexpected_exit()

    def _emit(self, event: WorkerEvent) -> None:
        if self._terminated:
            raise WorkerTerminated

        self._dispatch(event)

    def _sleep(self, duration: float) -> None:
        if self._wake.wait(duration) or self._terminated:
            raise WorkerTerminated

    def _stop(self) -> None:
        self._wake.set()


def create_channel(config: Config) -> WorkerChannel:
    """Create an idle worker channel of the configured kind.

    Returns:
        WorkerChannel: The new channel.
    """
    if config.worker_mode == "thread":
        return ThreadWorkerChannel()

    return ProcessWorkerChannel(multiprocessing.get_context(config.start_method), config.teardown_timeout)
