"""
Background housekeeping.

Runs the stale-impression sweep on a fixed interval for the lifetime of the
server process.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from campaign_hub.core.logging_config import get_logger

from .impressions import expire_stale_impressions

logger = get_logger(__name__)


async def sweep_once(session_maker: async_sessionmaker[AsyncSession]) -> int:
    async with session_maker() as session:
        return await expire_stale_impressions(session)


async def run_impression_sweeper(
    session_maker: async_sessionmaker[AsyncSession],
    interval_seconds: float,
    sweep: Optional[Callable[[async_sessionmaker[AsyncSession]], Awaitable[int]]] = None,
) -> None:
    """
    Expire stale reservations every ``interval_seconds`` until cancelled.

    A failed sweep, whether a database error or a dropped connection, is
    logged and retried on the next tick.
    """
    sweep = sweep or sweep_once
    logger.info(f"Impression sweeper started (every {interval_seconds}s)")
    try:
        while True:
            try:
                await sweep(session_maker)
            except Exception as e:
                logger.error(f"Impression sweep failed: {e}", exc_info=True)
            await asyncio.sleep(interval_seconds)
    except asyncio.CancelledError:
        logger.info("Impression sweeper stopped")
        raise


def start_impression_sweeper(
    session_maker: async_sessionmaker[AsyncSession], interval_seconds: float
) -> Optional[asyncio.Task]:
    """Schedule the sweeper; an interval of 0 or less disables it."""
    if interval_seconds <= 0:
        logger.info("Impression sweeper disabled")
        return None
    return asyncio.create_task(run_impression_sweeper(session_maker, interval_seconds), name="impression-sweeper")


async def stop_impression_sweeper(task: Optional[asyncio.Task]) -> None:
    if task is None:
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
