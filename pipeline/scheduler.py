import logging
import asyncio
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from core.config import Settings, settings as default_settings
from core.exceptions import SyncException
from pipeline.orchestrator import execute_sync, is_sync_running

logger = logging.getLogger(__name__)


class SyncScheduler:
    def __init__(self, config: Settings = default_settings):
        self.config = config
        self.scheduler = AsyncIOScheduler()
        self.cancel_event: Optional[asyncio.Event] = None

    async def run_sync_job(self):
        """Job to run one sync; failures are logged, never raised into the scheduler"""
        if is_sync_running():
            logger.warning("Scheduler: previous sync still running, skipping this tick")
            return

        logger.info("Scheduler: Starting sync job")
        self.cancel_event = asyncio.Event()
        try:
            summary = await execute_sync(self.config, cancel_event=self.cancel_event)
            logger.info(f"Scheduler: sync run {summary.run_id} {summary.status.value}")
        except SyncException as e:
            logger.error(f"Scheduler: sync job failed - {e.message}", extra={"error_context": e.to_dict()})
        except Exception as e:
            logger.error(f"Scheduler: sync job failed - {e}")
        finally:
            self.cancel_event = None

    def start(self):
        """Start the scheduler"""
        self.scheduler.add_job(
            self.run_sync_job,
            trigger=IntervalTrigger(minutes=self.config.SYNC_INTERVAL_MINUTES),
            id="karbon_sync_job",
            replace_existing=True,
            coalesce=True,
            max_instances=1
        )
        self.scheduler.start()
        logger.info(f"Sync Scheduler started (every {self.config.SYNC_INTERVAL_MINUTES} minutes)")

    def stop(self):
        if self.cancel_event is not None:
            self.cancel_event.set()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info("Sync Scheduler stopped")
