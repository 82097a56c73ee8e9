# SPDX-License-Identifier: MIT
# SPDX-FileCopyrightText: 2024 Jason Lynch <jason@aexoden.com>
"""Configuration for the factoring job queue."""

from __future__ import annotations

import sys

from pathlib import Path
from typing import Literal

from loguru import logger
from pydantic import BaseModel, Field, ValidationError


class Config(BaseModel):
    """Configuration for the factoring job queue."""

    max_jobs: int = Field(default=20, ge=1, description="Maximum number of jobs held in the queue")
    value_length: int = Field(default=9, ge=1, description="Number of random bytes in each generated integer")
    replenish_interval: float = Field(default=0.1, gt=0, description="Seconds between queue replenishment ticks")
    worker_mode: Literal["process", "thread"] = Field(default="process", description="Kind of computation unit")
    start_method: Literal["spawn", "forkserver", "fork"] = Field(
        default="spawn", description="Multiprocessing start method for process workers"
    )
    teardown_timeout: float = Field(default=1.0, ge=0, description="Seconds to wait for a terminated worker to exit")


def read_config(path: Path) -> Config:
    """Read configuration from a JSON file.

    Returns:
        Config: The configuration object.
    """
    try:
        with path.open("r", encoding="utf-8") as f:
            config = Config.model_validate_json(f.read())
    except ValidationError as e:
        logger.error(f"Error while processing configuration file: {e}")
        sys.exit(1)

    return config
