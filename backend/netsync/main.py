"""
netsync - process entry point.
Creates the tables, then runs the inventory / SNMP sync cycle on an interval.
"""
import asyncio
import logging
from datetime import datetime, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from netsync.config import settings
from netsync.database import init_db

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler(timezone="UTC")


async def scheduled_sync():
    """One full nodes -> interfaces -> vlans cycle."""
    from netsync.services.reconciliation import run_sync_cycle

    result = await run_sync_cycle()
    if result.errors:
        logger.warning(f"Sync cycle finished with errors: {result.errors}")
    else:
        logger.info("Sync cycle finished")


async def main():
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    await init_db()

    # max_instances=1: a slow cycle is never overlapped by the next one
    scheduler.add_job(
        scheduled_sync,
        "interval",
        seconds=settings.SYNC_INTERVAL_SECONDS,
        id="inventory_sync",
        max_instances=1,
        next_run_time=datetime.now(timezone.utc),
    )
    scheduler.start()
    logger.info(f"Sync scheduled every {settings.SYNC_INTERVAL_SECONDS}s")

    try:
        await asyncio.Event().wait()
    finally:
        scheduler.shutdown()
        logger.info(f"{settings.APP_NAME} shutting down")


def run():
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        pass


if __name__ == "__main__":
    run()
