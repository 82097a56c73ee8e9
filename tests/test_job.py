# SPDX-License-Identifier: MIT
# SPDX-FileCopyrightText: 2024 Jason Lynch <jason@aexoden.com>
"""Tests for job state transitions."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from factorqueue.job import Job, JobStatus
from factorqueue.protocol import Complete, FactorFound, ProgressUpdate, ValueCreated

if TYPE_CHECKING:
    from collections.abc import Callable

    from factorqueue.channel import WorkerChannel


@pytest.fixture
def job(channel_factory: Callable[[], WorkerChannel]) -> Job:
    job = Job(3, 9, channel_factory())
    job.start()
    return job


def test_new_job(channel_factory: Callable[[], WorkerChannel]) -> None:
    """Test a new job is idle and empty."""
    job = Job(0, 9, channel_factory())

    assert job.status == JobStatus.NOT_STARTED
    assert job.percentage_done == 0.0
    assert job.value == ""
    assert job.factors == []
    assert job.error is None


def test_events_ignored_before_start(channel_factory: Callable[[], WorkerChannel]) -> None:
    """Test a job that has not started ignores events."""
    job = Job(0, 9, channel_factory())

    assert not job.apply(ValueCreated(job_id=0, value="12"))
    assert job.value == ""


def test_start_only_once(job: Job) -> None:
    """Test the state machine only moves forward."""
    with pytest.raises(RuntimeError, match="cannot start"):
        job.start()


def test_value_first_write_wins(job: Job) -> None:
    """Test a duplicate value delivery does not overwrite the original value."""
    assert job.apply(ValueCreated(job_id=3, value="12"))
    assert not job.apply(ValueCreated(job_id=3, value="99"))
    assert job.value == "12"


def test_factors_append_in_order(job: Job) -> None:
    """Test factor pairs are appended in delivery order."""
    job.apply(FactorFound(job_id=3, base="2", exponent="2"))
    job.apply(FactorFound(job_id=3, base="3", exponent="1"))

    assert job.factors == [("2", "2"), ("3", "1")]


def test_progress_below_hundred_while_started(job: Job) -> None:
    """Test progress overwrites the percentage but only reaches 100 once done."""
    job.apply(ProgressUpdate(job_id=3, percentage=12.5))
    assert job.percentage_done == 12.5

    job.apply(ProgressUpdate(job_id=3, percentage=100.0))
    assert job.status == JobStatus.STARTED
    assert job.percentage_done < 100


def test_complete(job: Job) -> None:
    """Test completion marks the job done at 100%."""
    job.apply(ProgressUpdate(job_id=3, percentage=40.0))
    job.apply(Complete(job_id=3))

    assert job.done
    assert job.percentage_done == 100.0
    assert job.error is None
    assert not job.apply(FactorFound(job_id=3, base="5", exponent="1"))
    assert job.factors == []


def test_complete_with_error(job: Job) -> None:
    """Test a failed computation still completes the job, recording the error."""
    job.apply(Complete(job_id=3, error="entropy source failure"))

    assert job.done
    assert job.percentage_done == 100.0
    assert job.error == "entropy source failure"


def test_misaddressed_event(job: Job) -> None:
    """Test events addressed to another job are ignored."""
    assert not job.apply(FactorFound(job_id=4, base="2", exponent="1"))
    assert job.factors == []


def test_snapshot(job: Job) -> None:
    """Test snapshots copy the observable state and do not track later changes."""
    job.apply(ValueCreated(job_id=3, value="12"))
    job.apply(FactorFound(job_id=3, base="2", exponent="2"))

    snapshot = job.snapshot()
    job.apply(FactorFound(job_id=3, base="3", exponent="1"))

    assert snapshot.id == 3
    assert snapshot.status == JobStatus.STARTED
    assert snapshot.value == "12"
    assert snapshot.factors == (("2", "2"),)
    assert snapshot.length == 9
