"""
Perform queued jobs.

    python -m classroom.worker --limit 50
"""

import argparse
import asyncio

import structlog
from sqlmodel.ext.asyncio.session import AsyncSession

from classroom.config import configure_logging
from classroom.db.database import engine
from classroom.services.jobs import run_queued_jobs

logger = structlog.get_logger()


async def main(limit: int | None = None, poll_interval: float | None = None) -> None:
    while True:
        async with AsyncSession(engine, expire_on_commit=False) as session:
            summary = await run_queued_jobs(session, limit=limit)
        logger.info("Worker pass finished", **summary)
        if not poll_interval:
            return
        await asyncio.sleep(poll_interval)


def non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"expected a non-negative integer, got {value}")
    return number


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run queued classroom jobs")
    parser.add_argument("--limit", type=non_negative_int, default=None, help="Maximum jobs per pass")
    parser.add_argument(
        "--poll",
        type=float,
        default=None,
        help="Keep running, polling every N seconds",
    )
    return parser.parse_args(argv)


if __name__ == "__main__":
    configure_logging()
    args = parse_args()
    asyncio.run(main(limit=args.limit, poll_interval=args.poll))
