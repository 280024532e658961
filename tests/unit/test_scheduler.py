import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from pipeline.scheduler import SyncScheduler
from core.exceptions import ConfigurationError


@pytest.mark.asyncio
async def test_scheduler_initialization(sync_settings):
    scheduler = SyncScheduler(sync_settings)
    assert scheduler.scheduler is not None
    assert scheduler.cancel_event is None


@pytest.mark.asyncio
async def test_scheduler_job_execution(sync_settings):
    summary = MagicMock(run_id=1)
    with patch("pipeline.scheduler.execute_sync", new=AsyncMock(return_value=summary)) as mock_sync:
        scheduler = SyncScheduler(sync_settings)
        await scheduler.run_sync_job()

        mock_sync.assert_awaited_once()
        assert mock_sync.call_args.args[0] is sync_settings
        assert scheduler.cancel_event is None


@pytest.mark.asyncio
async def test_scheduler_job_swallows_failures(sync_settings):
    failing = AsyncMock(side_effect=ConfigurationError("Missing sync configuration: KARBON_ACCESS_KEY"))
    with patch("pipeline.scheduler.execute_sync", new=failing):
        scheduler = SyncScheduler(sync_settings)
        await scheduler.run_sync_job()

    failing.assert_awaited_once()


@pytest.mark.asyncio
async def test_scheduler_skips_when_sync_running(sync_settings):
    with patch("pipeline.scheduler.is_sync_running", return_value=True), \
            patch("pipeline.scheduler.execute_sync", new=AsyncMock()) as mock_sync:
        await SyncScheduler(sync_settings).run_sync_job()

    mock_sync.assert_not_awaited()


@pytest.mark.asyncio
async def test_scheduler_start_registers_interval_job(sync_settings):
    scheduler = SyncScheduler(sync_settings)
    scheduler.start()
    try:
        job = scheduler.scheduler.get_job("karbon_sync_job")
        assert job is not None
        assert job.max_instances == 1
        assert job.trigger.interval.total_seconds() == sync_settings.SYNC_INTERVAL_MINUTES * 60
    finally:
        scheduler.stop()
