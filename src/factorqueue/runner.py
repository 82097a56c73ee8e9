# SPDX-License-Identifier: MIT
# SPDX-FileCopyrightText: 2024 Jason Lynch <jason@aexoden.com>
"""Runs a job scheduler until a time limit or an interrupt."""

from __future__ import annotations

import signal
import sys
import threading
import time

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types import FrameType

    from factorqueue.scheduler import JobScheduler

from loguru import logger


class ExitStatus(Enum):
    """Exit status codes for the runner."""

    SUCCESS = 0
    INTERRUPTED = 2


class QueueRunner:
    """Drives a scheduler from the main thread."""

    def __init__(self, scheduler: JobScheduler, duration: float = 0.0, poll_interval: float = 0.5) -> None:
        """Initialize the runner. A duration of zero runs until interrupted."""
        self._scheduler = scheduler
        self._duration = duration
        self._poll_interval = poll_interval
        self._interrupt_level: int = 0
        self._interrupted = threading.Event()
        self._start_time = time.monotonic()

    #
    # Signal Handlers
    #

    def _handle_sigint(self, _signum: int, _frame: FrameType | None) -> None:
        self._interrupt_level += 1

        if self._interrupt_level == 1:
            logger.critical("Interrupt received. Stopping workers")
            self._interrupted.set()
        else:
            logger.critical("Second interrupt received. Terminating immediately")
            sys.exit(2)

    def _is_time_limit_exceeded(self) -> bool:
        """Check if the configured duration has elapsed.

        Returns:
            bool: True if a duration is set and it has elapsed, False otherwise.
        """
        if self._duration <= 0:
            return False

        elapsed = time.monotonic() - self._start_time

        if elapsed >= self._duration:
            logger.info("Run duration of {:.1f}s reached", self._duration)
            return True

        return False

    #
    # Public Methods
    #

    def interrupt(self) -> None:
        """Request a graceful stop, as a first interrupt would."""
        self._interrupted.set()

    def run(self) -> ExitStatus:
        """Start the scheduler and wait for the time limit or an interrupt.

        Returns:
            ExitStatus: INTERRUPTED if stopped by an interrupt, SUCCESS otherwise.
        """
        previous_handler = None

        if threading.current_thread() is threading.main_thread():
            previous_handler = signal.signal(signal.SIGINT, self._handle_sigint)

        self._start_time = time.monotonic()
        self._scheduler.start()

        try:
            while not self._interrupted.wait(self._poll_interval):
                if self._is_time_limit_exceeded():
                    break
        finally:
            self._scheduler.stop()

            if previous_handler is not None:
                signal.signal(signal.SIGINT, previous_handler)

        if self._interrupted.is_set():
            return ExitStatus.INTERRUPTED

        return ExitStatus.SUCCESS
