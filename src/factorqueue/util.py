# SPDX-License-Identifier: MIT
# SPDX-FileCopyrightText: 2024 Jason Lynch <jason@aexoden.com>
"""Utility functions for factorqueue."""

from __future__ import annotations

import math
import sys

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

from loguru import logger


def format_number(n: int | str, max_width: int = 32) -> str:
    """Format a number for display, truncating if necessary.

    Returns:
        str: Formatted number string.
    """
    str_n = str(n)
    digits = len(str_n)

    if digits > max_width:
        to_keep = max_width - 3 - 3 - len(str(digits))
        left = math.ceil(to_keep / 2)
        right = to_keep - left

        return f"{str_n[:left]}...{str_n[-right:]} <{digits}>"

    return f"{str_n}"


def format_factorization(factors: Iterable[tuple[str, str]], max_width: int = 32) -> str:
    """Format factor pairs as a product of powers, ordered by base.

    Returns:
        str: Formatted factorization, or a placeholder if there are no factors yet.
    """
    terms = [
        format_number(base, max_width) if exponent == "1" else f"{format_number(base, max_width)}^{exponent}"
        for base, exponent in sorted(factors, key=lambda pair: int(pair[0]))
    ]

    return " * ".join(terms) if terms else "No factors yet"


def log_factor_result(job_id: int, n: str, factors: Iterable[tuple[str, str]]) -> None:
    """Log the result of a factorization."""
    logger.info("Job {}: {} = {}", job_id, format_number(n), format_factorization(factors))


def setup_logger(level: str = "INFO") -> None:
    """Set up the logger for the application."""
    logger.remove()

    logger_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <magenta>{elapsed}</magenta> | "
        "<level>{level: <8}</level> | <level>{message}</level>"
    )

    logger.add(sys.stdout, format=logger_format, level=level)
