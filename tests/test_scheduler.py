import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from sheets_dashboard.errors import FetchError
from sheets_dashboard.services.scheduler import RefreshScheduler, SchedulerState
from sheets_dashboard.services.store import AggregationStore

STAMP = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)

SHEET = [
    ["Fecha", "Tipo", "Categoría", "Importe", "Estado de pago", "Descripción"],
    ["01/03/2024", "Ingreso", "Mentoria", "100", "Pagado"],
    ["02/03/2024", "Gasto", "Software", "40", "Pendiente"],
]


def _scheduler(repository: AsyncMock, store: AggregationStore | None = None) -> RefreshScheduler:
    return RefreshScheduler(
        repository=repository,
        store=store or AggregationStore(),
        interval=0.01,
        clock=lambda: STAMP,
    )


def test_interval_must_be_positive() -> None:
    with pytest.raises(ValueError):
        RefreshScheduler(repository=AsyncMock(), store=AggregationStore(), interval=0)


@pytest.mark.anyio
async def test_refresh_success_updates_store_and_status() -> None:
    repository = AsyncMock()
    repository.fetch_all.return_value = SHEET
    scheduler = _scheduler(repository)

    assert await scheduler.refresh() is True

    state = scheduler.store.get_state()
    assert len(state.transactions) == 2
    assert state.metrics.balance == 60
    assert state.status.connected is True
    assert state.status.last_update == STAMP
    assert state.status.error is None
    assert scheduler.state is SchedulerState.IDLE


@pytest.mark.anyio
async def test_refresh_failure_keeps_previous_transactions() -> None:
    repository = AsyncMock()
    repository.fetch_all.side_effect = [SHEET, FetchError("Sheets API returned 403: denied")]
    scheduler = _scheduler(repository)

    await scheduler.refresh()
    await scheduler.refresh()

    state = scheduler.store.get_state()
    assert len(state.transactions) == 2
    assert state.status.connected is False
    assert state.status.error == "Sheets API returned 403: denied"
    assert state.status.last_update == STAMP
    assert scheduler.state is SchedulerState.IDLE


@pytest.mark.anyio
async def test_successful_refresh_clears_error() -> None:
    repository = AsyncMock()
    repository.fetch_all.side_effect = [FetchError("offline"), SHEET]
    scheduler = _scheduler(repository)

    await scheduler.refresh()
    assert scheduler.store.status.error == "offline"

    await scheduler.refresh()
    assert scheduler.store.status.error is None
    assert scheduler.store.status.connected is True


@pytest.mark.anyio
async def test_overlapping_refresh_is_skipped() -> None:
    gate = asyncio.Event()

    async def slow_fetch() -> list[list[str]]:
        await gate.wait()
        return SHEET

    repository = AsyncMock()
    repository.fetch_all.side_effect = slow_fetch
    scheduler = _scheduler(repository)

    first = asyncio.create_task(scheduler.refresh())
    await asyncio.sleep(0)
    assert scheduler.fetching

    assert await scheduler.refresh() is False
    assert scheduler.tick() is None

    gate.set()
    assert await first is True
    assert repository.fetch_all.await_count == 1


@pytest.mark.anyio
async def test_result_after_stop_is_discarded() -> None:
    gate = asyncio.Event()

    async def slow_fetch() -> list[list[str]]:
        await gate.wait()
        return SHEET

    repository = AsyncMock()
    repository.fetch_all.side_effect = slow_fetch
    scheduler = _scheduler(repository)

    task = scheduler.tick()
    assert task is not None
    await asyncio.sleep(0)

    scheduler.stop()
    gate.set()

    assert await task is False
    assert scheduler.store.transactions == ()
    assert scheduler.store.status.connected is False


@pytest.mark.anyio
async def test_error_after_stop_is_discarded() -> None:
    gate = asyncio.Event()

    async def failing_fetch() -> list[list[str]]:
        await gate.wait()
        raise FetchError("late")

    repository = AsyncMock()
    repository.fetch_all.side_effect = failing_fetch
    scheduler = _scheduler(repository)

    task = scheduler.tick()
    await asyncio.sleep(0)
    scheduler.stop()
    gate.set()

    assert await task is False
    assert scheduler.store.status.error is None


@pytest.mark.anyio
async def test_start_polls_and_aclose_stops() -> None:
    repository = AsyncMock()
    repository.fetch_all.return_value = SHEET
    scheduler = _scheduler(repository)

    scheduler.start()
    assert scheduler.running
    await asyncio.sleep(0.05)
    await scheduler.aclose()

    calls = repository.fetch_all.await_count
    assert calls >= 1
    assert not scheduler.running
    assert scheduler.store.metrics.transaction_count == 2

    await asyncio.sleep(0.03)
    assert repository.fetch_all.await_count == calls


@pytest.mark.anyio
async def test_tick_after_stop_does_nothing() -> None:
    repository = AsyncMock()
    scheduler = _scheduler(repository)

    scheduler.stop()

    assert scheduler.tick() is None
    assert await scheduler.refresh() is False
    repository.fetch_all.assert_not_awaited()
