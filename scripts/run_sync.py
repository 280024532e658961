"""
Script to run one Karbon → practice database sync ("run now")

Exit codes:
    0: the run was recorded (completed or completed_with_errors)
    1: fatal configuration error, or the run could not be recorded at all
"""

import asyncio
import signal
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.config import settings
from core.exceptions import ConfigurationError, LoadError
from core.logging import setup_logging
from pipeline.orchestrator import execute_sync

logger = logging.getLogger(__name__)


async def run_sync() -> int:
    """Run one sync; SIGINT/SIGTERM cancel cooperatively between pages"""
    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def request_cancel(signame: str):
        logger.warning(f"Received {signame}, finishing the current page and stopping")
        cancel_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, request_cancel, sig.name)
        except NotImplementedError:
            # no signal handlers on this platform's event loop
            pass

    try:
        summary = await execute_sync(settings, cancel_event=cancel_event)
    except ConfigurationError as e:
        logger.error(f"Sync not started: {e.message}", extra={"error_context": e.to_dict()})
        return 1
    except LoadError as e:
        logger.error(f"Sync run could not be recorded: {e.message}", extra={"error_context": e.to_dict()})
        return 1

    if summary.failed_entities:
        logger.warning(f"Entity types with errors: {', '.join(summary.failed_entities)}")
    logger.info(f"Sync run {summary.run_id} finished: {summary.status.value}")
    return 0


if __name__ == "__main__":
    setup_logging()
    sys.exit(asyncio.run(run_sync()))
