# SPDX-License-Identifier: MIT
# SPDX-FileCopyrightText: 2024 Jason Lynch <jason@aexoden.com>
"""Tests for random integers, integer square roots and candidate generation."""

from __future__ import annotations

import itertools
import math
import random

import gmpy2
import pytest

from factorqueue import number
from factorqueue.constants import WHEEL_MODULUS
from factorqueue.number import WHEEL_GAPS, create_random_big_int, generate_candidates, isqrt


def test_isqrt_small() -> None:
    """Test the integer square root on every small input, including 0 and 1."""
    for n in range(10_000):
        root = isqrt(n)
        assert root * root <= n < (root + 1) * (root + 1)


def test_isqrt_perfect_squares() -> None:
    """Test the integer square root is exact on perfect squares and just below them."""
    for root in range(2, 1000):
        assert isqrt(root * root) == root
        assert isqrt(root * root - 1) == root - 1


def test_isqrt_large() -> None:
    """Test the integer square root against gmpy2 on large inputs and near perfect squares."""
    rng = random.Random(1234)

    for bits in (64, 127, 128, 521, 2048):
        for _ in range(20):
            n = rng.getrandbits(bits)
            assert isqrt(n) == int(gmpy2.isqrt(n))

        root = rng.getrandbits(bits)
        for n in (root * root - 1, root * root, root * root + 1, (root + 1) * (root + 1) - 1):
            assert isqrt(n) == int(gmpy2.isqrt(n))


def test_isqrt_negative() -> None:
    """Test that negative inputs are rejected."""
    with pytest.raises(ValueError, match="negative"):
        isqrt(-1)


def test_wheel_gaps() -> None:
    """Test the wheel gap table covers one turn of the wheel."""
    assert len(WHEEL_GAPS) == 48
    assert sum(WHEEL_GAPS) == WHEEL_MODULUS
    assert WHEEL_GAPS[:8] == [2, 4, 2, 4, 6, 2, 6, 4]


def test_candidates_seed_primes() -> None:
    """Test the candidate sequence starts with the seed primes and the first wheel spokes."""
    assert list(itertools.islice(generate_candidates(), 12)) == [2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37]


def test_candidates_complete() -> None:
    """Test every integer above 7 coprime to 210 appears exactly once, in increasing order."""
    limit = 10 * WHEEL_MODULUS + 11
    candidates = list(itertools.takewhile(lambda c: c <= limit, generate_candidates()))
    expected = [2, 3, 5, 7] + [i for i in range(8, limit + 1) if math.gcd(i, WHEEL_MODULUS) == 1]

    assert candidates == expected


def test_candidates_restartable() -> None:
    """Test each call produces a fresh sequence."""
    first = generate_candidates()
    next(first)
    next(first)

    assert next(generate_candidates()) == 2


def test_random_big_int_range() -> None:
    """Test generated integers fit in the requested number of bytes."""
    for length in (1, 2, 9, 64):
        for _ in range(20):
            assert 0 <= create_random_big_int(length) < 256**length


def test_random_big_int_big_endian(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test random bytes are interpreted most significant byte first."""
    monkeypatch.setattr(number.secrets, "token_bytes", lambda length: bytes(range(1, length + 1)))

    assert create_random_big_int(3) == 0x010203


def test_random_big_int_invalid_length() -> None:
    """Test a length below one is rejected."""
    with pytest.raises(ValueError, match="at least 1"):
        create_random_big_int(0)
