# SPDX-License-Identifier: MIT
# SPDX-FileCopyrightText: 2024 Jason Lynch <jason@aexoden.com>
"""The computation side of a worker channel."""

from __future__ import annotations

import signal
import time

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable
    from multiprocessing.connection import Connection

from loguru import logger

from factorqueue.factor import factor_trial_division
from factorqueue.number import create_random_big_int
from factorqueue.protocol import (
    Complete,
    FactorFound,
    GenerateAndFactor,
    ProgressUpdate,
    ValueCreated,
    WorkerEvent,
    decode_request,
    encode_message,
)
from factorqueue.util import format_number


class WorkerTerminated(Exception):  # noqa: N818
    """Raised inside a worker when its channel has been torn down."""


class EventSink:
    """Adapts engine callbacks into protocol events for a single job."""

    def __init__(self, job_id: int, emit: Callable[[WorkerEvent], None]) -> None:
        self._job_id = job_id
        self._emit = emit

    def on_factor_pair(self, base: int, exponent: int) -> None:
        self._emit(FactorFound(job_id=self._job_id, base=str(base), exponent=str(exponent)))

    def on_progress(self, percentage: float) -> None:
        self._emit(ProgressUpdate(job_id=self._job_id, percentage=percentage))


def handle_request(
    request: GenerateAndFactor,
    emit: Callable[[WorkerEvent], None],
    *,
    sleep: Callable[[float], object] = time.sleep,
) -> None:
    """Generate a random integer, factor it and emit the resulting events.

    Exactly one Complete event is emitted unless the channel is torn down first. Failures in the computation are
    reported through the error field of that event rather than raised.
    """
    try:
        value = create_random_big_int(request.length)
    except (OSError, NotImplementedError) as e:
        logger.error("Job {}: unable to obtain entropy: {}", request.job_id, e)
        emit(Complete(job_id=request.job_id, error=f"entropy source failure: {e}"))
        return

    emit(ValueCreated(job_id=request.job_id, value=str(value)))

    try:
        start_time = time.perf_counter_ns()
        factor_trial_division(value, EventSink(request.job_id, emit), sleep=sleep)
        execution_time = (time.perf_counter_ns() - start_time) / 1_000_000_000.0

        logger.debug("Job {}: factored {} in {:.3f}s", request.job_id, format_number(value), execution_time)
    except WorkerTerminated:
        raise
    except Exception as e:
        logger.exception("Job {}: factorization failed", request.job_id)
        emit(Complete(job_id=request.job_id, error=str(e) or type(e).__name__))
    else:
        emit(Complete(job_id=request.job_id))


def run_worker(connection: Connection) -> None:
    """Serve requests arriving on a connection until the other end closes it."""
    # Interrupts are handled by the scheduler, which terminates its workers.
    signal.signal(signal.SIGINT, signal.SIG_IGN)

    def emit(event: WorkerEvent) -> None:
        connection.send_bytes(encode_message(event))

    while True:
        try:
            data = connection.recv_bytes()
        except EOFError:
            return

        handle_request(decode_request(data), emit)
