"""
Daemon mode: run the sync cycle on a fixed interval.

Uses APScheduler; a failed cycle is logged and the next interval still runs.
"""
import asyncio
import time
from datetime import datetime
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from order_sync.services.run_log import SyncRunResult
from order_sync.services.sync_service import OrderSyncService
from order_sync.utils.logger import log

SYNC_JOB_ID = "shopify_order_sync"


async def run_cycle(service: OrderSyncService, since: Optional[str] = None) -> Optional[SyncRunResult]:
    """Run one cycle; errors are logged, never raised"""
    start = time.time()
    try:
        result = await service.run_once(since=since)
    except Exception as e:
        log.bind(error=str(e), seconds=round(time.time() - start, 1)).error(f"Sync pass failed: {e}")
        return None

    log.bind(seconds=round(time.time() - start, 1)).info("Sync pass finished")
    return result


def build_scheduler(
    service: OrderSyncService,
    interval_minutes: int,
    since: Optional[str] = None
) -> AsyncIOScheduler:
    """Scheduler with the sync job registered; first run fires immediately"""
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        run_cycle,
        trigger=IntervalTrigger(minutes=interval_minutes),
        args=[service, since],
        id=SYNC_JOB_ID,
        name='Shopify Tagged Order Import',
        next_run_time=datetime.now(),
        replace_existing=True,
        max_instances=1,
        coalesce=True
    )
    return scheduler


async def run_daemon(
    service: OrderSyncService,
    interval_minutes: int,
    since: Optional[str] = None,
    stop_event: Optional[asyncio.Event] = None
):
    """Start the scheduler and block until stop_event is set (or forever)"""
    scheduler = build_scheduler(service, interval_minutes, since)
    scheduler.start()
    log.bind(interval_minutes=interval_minutes).info("Starting Shopify sync daemon")

    stop_event = stop_event or asyncio.Event()
    try:
        await stop_event.wait()
    finally:
        scheduler.shutdown(wait=False)
        log.info("Shopify sync daemon stopped")
