import asyncio
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from sheets_dashboard.domain.transactions import transform_sheet
from sheets_dashboard.errors import SheetsError
from sheets_dashboard.logger import get_logger
from sheets_dashboard.models import Transaction
from sheets_dashboard.services.repository import TransactionRepository
from sheets_dashboard.services.store import AggregationStore

logger = get_logger(__name__)

DEFAULT_INTERVAL_SECONDS = 5.0


class SchedulerState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RefreshScheduler:
    """
    Polls the spreadsheet and feeds the aggregation store.

    Ticks fire every ``interval`` seconds regardless of how long a fetch
    takes; a tick or manual refresh that arrives while a fetch is in flight
    is dropped. After ``stop()`` no further result reaches the store.
    """

    def __init__(
        self,
        repository: TransactionRepository,
        store: AggregationStore,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        transform: Callable[[Sequence[Sequence[Any]]], list[Transaction]] = transform_sheet,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.repository = repository
        self.store = store
        self.interval = interval
        self.transform = transform
        self.clock = clock
        self.state = SchedulerState.IDLE
        self._stopped = False
        self._timer: asyncio.Task[None] | None = None
        self._inflight: asyncio.Task[bool] | None = None

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def fetching(self) -> bool:
        return self.state is SchedulerState.FETCHING

    def start(self) -> None:
        if self.running:
            return
        self._stopped = False
        self._timer = asyncio.create_task(self._run(), name="sheets-refresh-timer")
        logger.info("[REFRESH] Polling every %.1f s.", self.interval)

    def stop(self) -> None:
        self._stopped = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
            logger.info("[REFRESH] Polling stopped.")

    async def aclose(self) -> None:
        self.stop()
        inflight = self._inflight
        if inflight is not None and not inflight.done():
            await asyncio.gather(inflight, return_exceptions=True)

    async def _run(self) -> None:
        while True:
            self.tick()
            await asyncio.sleep(self.interval)

    def tick(self) -> asyncio.Task[bool] | None:
        """Start a background refresh unless one is already running."""
        if self._stopped:
            return None
        if self.fetching or (self._inflight is not None and not self._inflight.done()):
            logger.debug("[REFRESH] Tick skipped, fetch already in flight.")
            return None
        task = asyncio.create_task(self.refresh(), name="sheets-refresh")
        task.add_done_callback(self._log_task_failure)
        self._inflight = task
        return task

    @staticmethod
    def _log_task_failure(task: asyncio.Task[bool]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("[REFRESH] Refresh task crashed: %r", exc)

    async def refresh(self) -> bool:
        """
        Run one fetch cycle. Returns False when it was skipped because a
        fetch was already in flight or the scheduler has been stopped.
        """
        if self._stopped or self.fetching:
            return False

        self.state = SchedulerState.FETCHING
        try:
            try:
                values = await self.repository.fetch_all()
            except SheetsError as exc:
                if self._stopped:
                    return False
                logger.warning("[REFRESH] Fetch failed: %s", exc.message)
                self.store.update_connection_status(connected=False, error=exc.message)
                return True

            if self._stopped:
                logger.debug("[REFRESH] Discarding result received after stop.")
                return False

            transactions = self.transform(values)
            self.store.replace_transactions(transactions)
            self.store.update_connection_status(
                connected=True,
                last_update=self.clock(),
                error=None,
            )
            logger.debug("[REFRESH] Loaded %s transactions.", len(transactions))
            return True
        finally:
            self.state = SchedulerState.IDLE
