import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest
from apscheduler.triggers.interval import IntervalTrigger

from py_load_eic.models import RefreshOutcome
from py_load_eic.refresh import EicRefreshService
from py_load_eic.scheduler import MAX_OVERLAPPING_TICKS, REFRESH_JOB_ID, RefreshScheduler

pytestmark = pytest.mark.unit


@pytest.fixture
def mock_service():
    service = AsyncMock(spec=EicRefreshService)
    service.refresh.return_value = RefreshOutcome(
        success=True, message="Data refreshed successfully", records_processed=3
    )
    return service


@pytest.mark.asyncio
async def test_start_registers_interval_job_and_initial_run(mock_service):
    """Tests the 15 minute job registration plus exactly one startup run."""
    mock_scheduler = MagicMock()
    scheduler = RefreshScheduler(mock_service, interval_minutes=15, scheduler=mock_scheduler)

    scheduler.start()
    await scheduler.initial_run

    mock_scheduler.add_job.assert_called_once()
    kwargs = mock_scheduler.add_job.call_args.kwargs
    assert kwargs["id"] == REFRESH_JOB_ID
    assert isinstance(kwargs["trigger"], IntervalTrigger)
    assert kwargs["trigger"].interval.total_seconds() == 15 * 60
    # Overlapping ticks must reach the service's guard instead of being dropped.
    assert kwargs["max_instances"] == MAX_OVERLAPPING_TICKS > 1
    assert kwargs["coalesce"] is False
    mock_scheduler.start.assert_called_once()
    mock_service.refresh.assert_awaited_once()


@pytest.mark.asyncio
async def test_run_refresh_logs_failure_and_returns_outcome(mock_service, caplog):
    mock_service.refresh.return_value = RefreshOutcome(
        success=False, message="Refresh already in progress"
    )
    scheduler = RefreshScheduler(mock_service)

    with caplog.at_level(logging.ERROR):
        outcome = await scheduler.run_refresh("scheduled")

    assert outcome.success is False
    assert "Refresh already in progress" in caplog.text


@pytest.mark.asyncio
async def test_run_refresh_swallows_exceptions(mock_service, caplog):
    """A tick that raises is logged so the clock keeps running."""
    mock_service.refresh.side_effect = RuntimeError("boom")
    scheduler = RefreshScheduler(mock_service)

    with caplog.at_level(logging.ERROR):
        assert await scheduler.run_refresh("scheduled") is None

    assert "boom" in caplog.text


@pytest.mark.asyncio
async def test_shutdown_cancels_pending_initial_run(mock_service):
    started = asyncio.Event()

    async def never_finishes():
        started.set()
        await asyncio.Event().wait()

    mock_service.refresh.side_effect = never_finishes
    mock_scheduler = MagicMock()
    mock_scheduler.running = True
    scheduler = RefreshScheduler(mock_service, scheduler=mock_scheduler)

    scheduler.start()
    await started.wait()
    await scheduler.shutdown()

    assert scheduler.initial_run.cancelled()
    mock_scheduler.shutdown.assert_called_once_with(wait=False)


@pytest.mark.asyncio
async def test_start_with_real_apscheduler(mock_service):
    scheduler = RefreshScheduler(mock_service, interval_minutes=15)

    scheduler.start()
    try:
        job = scheduler.scheduler.get_job(REFRESH_JOB_ID)
        assert job is not None
        assert job.max_instances == MAX_OVERLAPPING_TICKS
        await scheduler.initial_run
    finally:
        await scheduler.shutdown()

    mock_service.refresh.assert_awaited_once()
