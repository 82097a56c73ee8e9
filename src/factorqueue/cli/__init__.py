# SPDX-License-Identifier: MIT
# SPDX-FileCopyrightText: 2024 Jason Lynch <jason@aexoden.com>

import sys

from pathlib import Path

from loguru import logger
from tap import Tap

from factorqueue.config import Config, read_config
from factorqueue.job import JobSnapshot, JobStatus
from factorqueue.runner import ExitStatus, QueueRunner
from factorqueue.scheduler import JobScheduler
from factorqueue.util import format_number, setup_logger


class Arguments(Tap):
    """Utility for generating random integers and factoring them by trial division"""

    config_path: Path | None = None  # Path to the JSON-formatted configuration file
    length: int | None = None  # Number of random bytes in each generated integer (overrides the configuration)
    max_jobs: int | None = None  # Maximum number of queued jobs (overrides the configuration)
    duration: float = 0.0  # Seconds to run before stopping (0 to run until interrupted)
    log_level: str = "INFO"  # Minimum level of log messages to display


def load_config(args: Arguments) -> Config:
    if args.config_path is None:
        config = Config()
    else:
        try:
            config = read_config(args.config_path)
        except FileNotFoundError:
            logger.error("Configuration file not found")
            sys.exit(1)

    overrides: dict[str, int] = {}

    if args.length is not None:
        overrides["value_length"] = args.length

    if args.max_jobs is not None:
        overrides["max_jobs"] = args.max_jobs

    return Config.model_validate(config.model_dump() | overrides) if overrides else config


def main() -> None:
    args = Arguments().parse_args()

    setup_logger(args.log_level)

    config = load_config(args)
    scheduler = JobScheduler(config)

    failed_jobs: list[JobSnapshot] = []

    def record_failure(job: JobSnapshot) -> None:
        if job.status == JobStatus.DONE and job.error is not None:
            failed_jobs.append(job)

    scheduler.add_listener(record_failure)

    logger.info("Factoring {}-byte integers with up to {} jobs queued", config.value_length, config.max_jobs)

    status = QueueRunner(scheduler, args.duration).run()

    completed = scheduler.completed_count

    if len(failed_jobs) > 0:
        logger.warning(
            "{} jobs failed: {}",
            len(failed_jobs),
            ", ".join(f"{job.id} ({format_number(job.value) if job.value else 'no value'})" for job in failed_jobs),
        )

    logger.info("Completed {} jobs and there were {} failures", completed, len(failed_jobs))

    if status == ExitStatus.INTERRUPTED:
        sys.exit(ExitStatus.INTERRUPTED.value)
