# SPDX-License-Identifier: MIT
# SPDX-FileCopyrightText: 2024 Jason Lynch <jason@aexoden.com>
"""Trial division factorization engine."""

from __future__ import annotations

import time

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Callable

from factorqueue.constants import PERCENTAGE_DIVISOR, PERCENTAGE_MULTIPLIER, PROGRESS_INTERVAL, YIELD_DURATION
from factorqueue.number import generate_candidates, isqrt


class FactorSink(Protocol):
    """Receiver for the output of a trial division run."""

    def on_factor_pair(self, base: int, exponent: int) -> None: ...

    def on_progress(self, percentage: float) -> None: ...


def calculate_percentage(candidate: int, limit: int) -> float:
    """Calculate how far through the search horizon a candidate is.

    Returns:
        float: The candidate as a percentage of the limit.
    """
    return float(candidate * PERCENTAGE_MULTIPLIER // limit) / PERCENTAGE_DIVISOR


def factor_trial_division(
    n: int,
    sink: FactorSink,
    *,
    sleep: Callable[[float], object] = time.sleep,
    progress_interval: int = PROGRESS_INTERVAL,
    yield_duration: float = YIELD_DURATION,
) -> None:
    """Factor n completely by trial division, streaming factor pairs and progress to the sink.

    The square root bound is computed once from n and never shrinks, so progress is always measured against the
    original search horizon. Every progress_interval candidates the engine reports progress and sleeps briefly to
    yield its thread. Zero and one have no factors and produce no events.
    """
    if n < 0:
        msg = f"cannot factor negative number {n}"
        raise ValueError(msg)

    limit = isqrt(n)
    remaining = n

    for examined, candidate in enumerate(generate_candidates()):
        if candidate > remaining or candidate > limit:
            if remaining > 1:
                sink.on_factor_pair(remaining, 1)

            return

        if examined % progress_interval == 0:
            sink.on_progress(calculate_percentage(candidate, limit))
            sleep(yield_duration)

        exponent = 0

        while remaining % candidate == 0:
            remaining //= candidate
            exponent += 1

        if exponent > 0:
            sink.on_factor_pair(candidate, exponent)
            sink.on_progress(calculate_percentage(candidate, limit))
