# SPDX-License-Identifier: MIT
# SPDX-FileCopyrightText: 2024 Jason Lynch <jason@aexoden.com>
"""Shared pytest fixtures for factorqueue tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from loguru import logger

from factorqueue.channel import WorkerChannel
from factorqueue.config import Config

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from factorqueue.protocol import GenerateAndFactor, WorkerEvent


class FakeChannel(WorkerChannel):
    """Channel whose worker is driven by the test through deliver()."""

    def __init__(self, *, fail_terminate: bool = False) -> None:
        super().__init__()
        self.requests: list[GenerateAndFactor] = []
        self.stop_count = 0
        self._fail_terminate = fail_terminate

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def deliver(self, event: WorkerEvent) -> None:
        self._dispatch(event)

    def terminate(self) -> None:
        if self._fail_terminate:
            msg = "worker refused to die"
            raise OSError(msg)

        super().terminate()

    def _start(self, request: GenerateAndFactor) -> None:
        self.requests.append(request)

    def _stop(self) -> None:
        self.stop_count += 1


@pytest.fixture
def channels() -> list[FakeChannel]:
    """Channels created by the fake channel factory, in creation order."""
    return []


@pytest.fixture
def channel_factory(channels: list[FakeChannel]) -> Callable[[], FakeChannel]:
    """Factory creating fake channels and recording them in the channels fixture."""

    def create() -> FakeChannel:
        channel = FakeChannel()
        channels.append(channel)
        return channel

    return create


@pytest.fixture
def config() -> Config:
    return Config(max_jobs=5, value_length=4, replenish_interval=0.01, worker_mode="thread")


@pytest.fixture
def log_messages() -> Iterator[list[str]]:
    """Capture loguru messages emitted during a test."""
    messages: list[str] = []
    handler_id = logger.add(messages.append, format="{level} | {message}", level="DEBUG")

    yield messages

    logger.remove(handler_id)
