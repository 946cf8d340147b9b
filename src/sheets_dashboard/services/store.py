import threading
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from sheets_dashboard.domain.categories import CATEGORY_COLORS, category_color
from sheets_dashboard.logger import get_logger
from sheets_dashboard.models import (
    CategoryDistribution,
    ConnectionStatus,
    FinancialMetrics,
    Transaction,
    TransactionKind,
)

logger = get_logger(__name__)

_UNSET: Any = object()


def compute_metrics(transactions: Sequence[Transaction]) -> FinancialMetrics:
    total_income = sum(t.amount for t in transactions if t.kind is TransactionKind.INCOME)
    total_expense = sum(t.amount for t in transactions if t.kind is TransactionKind.EXPENSE)
    # Unpaid amounts count regardless of kind.
    pending = sum(t.amount for t in transactions if not t.paid)
    return FinancialMetrics(
        balance=total_income - total_expense,
        total_income=total_income,
        total_expense=total_expense,
        pending=pending,
        transaction_count=len(transactions),
    )


def compute_category_distribution(
    transactions: Iterable[Transaction],
) -> list[CategoryDistribution]:
    totals: dict[str, float] = {}
    for transaction in transactions:
        totals[transaction.category] = totals.get(transaction.category, 0.0) + abs(transaction.amount)

    grand_total = sum(totals.values())
    fallback_colors: list[str] = []
    distribution: list[CategoryDistribution] = []
    for category, amount in totals.items():
        color = category_color(category, fallback_colors)
        if category not in CATEGORY_COLORS:
            fallback_colors.append(color)
        distribution.append(
            CategoryDistribution(
                category=category,
                total=amount,
                percentage=(amount / grand_total) * 100 if grand_total > 0 else 0.0,
                color=color,
            )
        )
    distribution.sort(key=lambda item: item.total, reverse=True)
    return distribution


@dataclass(frozen=True)
class StoreState:
    transactions: tuple[Transaction, ...] = ()
    metrics: FinancialMetrics = field(default_factory=FinancialMetrics)
    distribution: tuple[CategoryDistribution, ...] = ()
    status: ConnectionStatus = field(default_factory=ConnectionStatus)


StoreListener = Callable[[StoreState], None]


class AggregationStore:
    """
    Current transaction list plus everything derived from it.

    State is an immutable ``StoreState`` snapshot; every change publishes a
    new snapshot in one assignment, so readers always see a transaction
    list together with the metrics computed from it.
    """

    def __init__(self) -> None:
        self._state = StoreState()
        self._lock = threading.Lock()
        self._listeners: list[StoreListener] = []

    def get_state(self) -> StoreState:
        return self._state

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        return self._state.transactions

    @property
    def metrics(self) -> FinancialMetrics:
        return self._state.metrics

    @property
    def distribution(self) -> tuple[CategoryDistribution, ...]:
        return self._state.distribution

    @property
    def status(self) -> ConnectionStatus:
        return self._state.status

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, state: StoreState) -> None:
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("[STORE] Listener %r failed.", listener)

    def replace_transactions(self, transactions: Iterable[Transaction]) -> StoreState:
        snapshot = tuple(transactions)
        metrics = compute_metrics(snapshot)
        distribution = tuple(compute_category_distribution(snapshot))
        with self._lock:
            state = replace(
                self._state,
                transactions=snapshot,
                metrics=metrics,
                distribution=distribution,
            )
            self._state = state
        self._notify(state)
        logger.debug(
            "[STORE] %s transactions, balance=%.2f, %s categories",
            metrics.transaction_count,
            metrics.balance,
            len(distribution),
        )
        return state

    def update_connection_status(
        self,
        *,
        connected: bool = _UNSET,
        last_update: datetime | None = _UNSET,
        error: str | None = _UNSET,
    ) -> ConnectionStatus:
        changes = {
            name: value
            for name, value in (
                ("connected", connected),
                ("last_update", last_update),
                ("error", error),
            )
            if value is not _UNSET
        }
        with self._lock:
            status = self._state.status.model_copy(update=changes)
            state = replace(self._state, status=status)
            self._state = state
        self._notify(state)
        return status
