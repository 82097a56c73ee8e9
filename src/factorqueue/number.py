# SPDX-License-Identifier: MIT
# SPDX-FileCopyrightText: 2024 Jason Lynch <jason@aexoden.com>
"""Random number generation, integer square roots and trial division candidates."""

from __future__ import annotations

import itertools
import math
import secrets

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

from factorqueue.constants import SEED_PRIMES, WHEEL_MODULUS, WHEEL_START


def create_random_big_int(length: int) -> int:
    """Create a random unsigned integer from the given number of random bytes.

    The bytes are read from the operating system's cryptographic entropy source and interpreted as a big-endian
    integer. Failure to obtain entropy raises OSError (or NotImplementedError where no source exists).

    Returns:
        int: An integer in the range [0, 256 ** length).
    """
    if length < 1:
        msg = f"length must be at least 1, got {length}"
        raise ValueError(msg)

    return int.from_bytes(secrets.token_bytes(length), "big")


def isqrt(n: int) -> int:
    """Compute the integer square root of n using Newton's method.

    Returns:
        int: The largest integer whose square does not exceed n.
    """
    if n < 0:
        msg = f"square root of negative number {n}"
        raise ValueError(msg)

    if n < 2:  # noqa: PLR2004
        return n

    # Newton's method descends monotonically onto the root from any starting point above it.
    current = 1 << ((n.bit_length() + 1) // 2)

    while True:
        following = (n // current + current) >> 1

        if following in {current, current + 1}:
            return current

        current = following


def generate_wheel_gaps(modulus: int = WHEEL_MODULUS, start: int = WHEEL_START) -> list[int]:
    """Generate the gaps between consecutive integers coprime to the modulus.

    The table covers exactly one turn of the wheel beginning at start, so accumulating it cyclically onto start visits
    every larger integer coprime to the modulus.

    Returns:
        list[int]: The gaps, which sum to the modulus.
    """
    residues = [i for i in range(start, start + modulus + 1) if math.gcd(i, modulus) == 1]

    return [b - a for a, b in itertools.pairwise(residues)]


WHEEL_GAPS: list[int] = generate_wheel_gaps()


def generate_candidates() -> Iterator[int]:
    """Generate trial division candidates: the seed primes, then every integer above them coprime to the wheel.

    The sequence is infinite; the caller decides when to stop.
    """
    yield from SEED_PRIMES[:-1]

    last_seed = SEED_PRIMES[-1]

    yield from itertools.accumulate(itertools.chain((last_seed, WHEEL_START - last_seed), itertools.cycle(WHEEL_GAPS)))
