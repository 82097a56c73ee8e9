# SPDX-License-Identifier: MIT
# SPDX-FileCopyrightText: 2024 Jason Lynch <jason@aexoden.com>
"""Constants shared by the engine, the worker and the scheduler."""

# Primes below the wheel's first spoke. They are emitted before the wheel starts.
SEED_PRIMES: tuple[int, ...] = (2, 3, 5, 7)

# Product of the seed primes. Every candidate after the seeds is coprime to it.
WHEEL_MODULUS = 2 * 3 * 5 * 7

# Number of candidates examined between progress updates and cooperative yields.
PROGRESS_INTERVAL = 100_000

# Seconds the engine sleeps at each yield point.
YIELD_DURATION = 0.01

# Fixed-point scale used when computing percentages (two meaningful decimal digits).
PERCENTAGE_MULTIPLIER = 10**18
PERCENTAGE_DIVISOR = 10**16

# Running jobs never report 100% until they are done.
RUNNING_PERCENTAGE_CEILING = 99.99

# First integer above the seed primes that is coprime to the wheel modulus.
WHEEL_START = 11
