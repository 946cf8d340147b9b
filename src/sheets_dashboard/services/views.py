"""Per-view computations over the current transaction list."""

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Literal

from sheets_dashboard.models import CategoryDistribution, Transaction, TransactionKind
from sheets_dashboard.services.store import compute_category_distribution

SortField = Literal["date", "amount", "category"]
SortDirection = Literal["asc", "desc"]
PaidFilter = Literal["all", "paid", "pending"]

PAGE_SIZE = 10

SPANISH_MONTHS = (
    "enero",
    "febrero",
    "marzo",
    "abril",
    "mayo",
    "junio",
    "julio",
    "agosto",
    "septiembre",
    "octubre",
    "noviembre",
    "diciembre",
)


def month_key(value: date) -> str:
    return value.strftime("%Y-%m")


def month_label(key: str) -> str:
    year, month = key.split("-")
    return f"{SPANISH_MONTHS[int(month) - 1]} {year}"


def filter_by_month(
    transactions: Sequence[Transaction],
    month: str | None,
) -> list[Transaction]:
    if not month:
        return list(transactions)
    return [t for t in transactions if month_key(t.date) == month]


@dataclass(frozen=True)
class MonthOption:
    key: str
    label: str


def available_months(transactions: Sequence[Transaction]) -> list[MonthOption]:
    keys = sorted({month_key(t.date) for t in transactions}, reverse=True)
    return [MonthOption(key=key, label=month_label(key)) for key in keys]


@dataclass(frozen=True)
class EvolutionPoint:
    date: date
    label: str
    income: float
    expense: float

    @property
    def balance(self) -> float:
        return self.income - self.expense


def evolution_series(
    transactions: Sequence[Transaction],
    month: str | None = None,
) -> list[EvolutionPoint]:
    totals: dict[date, list[float]] = {}
    for transaction in filter_by_month(transactions, month):
        bucket = totals.setdefault(transaction.date, [0.0, 0.0])
        if transaction.kind is TransactionKind.INCOME:
            bucket[0] += transaction.amount
        else:
            bucket[1] += transaction.amount

    return [
        EvolutionPoint(
            date=day,
            label=day.strftime("%d/%m/%Y"),
            income=income,
            expense=expense,
        )
        for day, (income, expense) in sorted(totals.items())
    ]


def category_breakdown(
    transactions: Sequence[Transaction],
    month: str | None = None,
) -> list[CategoryDistribution]:
    return compute_category_distribution(filter_by_month(transactions, month))


def _leader(totals: dict[str, float]) -> tuple[str, float] | None:
    leader: tuple[str, float] | None = None
    best = -math.inf
    for key, value in totals.items():
        # Strict comparison: the first key seen keeps the lead on ties.
        if value > best:
            best = value
            leader = (key, value)
    return leader


def best_month(transactions: Sequence[Transaction]) -> tuple[str, float] | None:
    """Month (``YYYY-MM``) with the highest income minus expense."""
    profits: dict[str, float] = {}
    for t in transactions:
        signed = t.amount if t.kind is TransactionKind.INCOME else -t.amount
        key = month_key(t.date)
        profits[key] = profits.get(key, 0.0) + signed
    return _leader(profits)


def best_category(transactions: Sequence[Transaction]) -> tuple[str, float] | None:
    """Category with the largest income total."""
    incomes: dict[str, float] = {}
    for t in transactions:
        if t.kind is TransactionKind.INCOME:
            incomes[t.category] = incomes.get(t.category, 0.0) + t.amount
    return _leader(incomes)


def _totals(transactions: Sequence[Transaction]) -> tuple[float, float]:
    income = sum(t.amount for t in transactions if t.kind is TransactionKind.INCOME)
    expense = sum(t.amount for t in transactions if t.kind is TransactionKind.EXPENSE)
    return income, expense


def return_on_spend(transactions: Sequence[Transaction]) -> float | None:
    income, expense = _totals(transactions)
    if expense <= 0:
        return None
    return (income - expense) / expense


@dataclass(frozen=True)
class Insights:
    best_month: str | None
    best_month_label: str | None
    best_month_profit: float | None
    best_category: str | None
    best_category_income: float | None
    roi: float | None


def build_insights(transactions: Sequence[Transaction]) -> Insights | None:
    if not transactions:
        return None
    month = best_month(transactions)
    category = best_category(transactions)
    return Insights(
        best_month=month[0] if month else None,
        best_month_label=month_label(month[0]) if month else None,
        best_month_profit=month[1] if month else None,
        best_category=category[0] if category else None,
        best_category_income=category[1] if category else None,
        roi=return_on_spend(transactions),
    )


@dataclass(frozen=True)
class ScenarioProjection:
    base_profit: float
    projected_income: float
    projected_expense: float

    @property
    def projected_profit(self) -> float:
        return self.projected_income - self.projected_expense


def project_scenario(
    transactions: Sequence[Transaction],
    income_growth_pct: float = 0.0,
    expense_adjustment_pct: float = 0.0,
) -> ScenarioProjection:
    income, expense = _totals(transactions)
    return ScenarioProjection(
        base_profit=income - expense,
        projected_income=income * (1 + income_growth_pct / 100),
        projected_expense=expense * (1 + expense_adjustment_pct / 100),
    )


@dataclass(frozen=True)
class TableQuery:
    month: str | None = None
    search: str = ""
    kind: TransactionKind | None = None
    paid: PaidFilter = "all"
    sort: SortField = "date"
    direction: SortDirection = "desc"
    page: int = 1


@dataclass(frozen=True)
class TablePage:
    items: list[Transaction] = field(default_factory=list)
    page: int = 1
    total_pages: int = 0
    total: int = 0


def toggle_sort(
    current_field: SortField,
    current_direction: SortDirection,
    clicked: SortField,
) -> tuple[SortField, SortDirection]:
    if clicked == current_field:
        return clicked, "asc" if current_direction == "desc" else "desc"
    return clicked, "desc"


def _matches_search(transaction: Transaction, needle: str) -> bool:
    if needle in transaction.category.casefold():
        return True
    return bool(transaction.note) and needle in transaction.note.casefold()


def _sort_key(sort: SortField):
    if sort == "amount":
        return lambda t: t.amount
    if sort == "category":
        return lambda t: t.category
    return lambda t: t.date


def filter_and_sort(
    transactions: Sequence[Transaction],
    query: TableQuery,
) -> list[Transaction]:
    result = filter_by_month(transactions, query.month)

    needle = query.search.strip().casefold()
    if needle:
        result = [t for t in result if _matches_search(t, needle)]
    if query.kind is not None:
        result = [t for t in result if t.kind is query.kind]
    if query.paid == "paid":
        result = [t for t in result if t.paid]
    elif query.paid == "pending":
        result = [t for t in result if not t.paid]

    # sorted() is stable in both directions.
    return sorted(result, key=_sort_key(query.sort), reverse=query.direction == "desc")


def query_table(
    transactions: Sequence[Transaction],
    query: TableQuery,
    page_size: int = PAGE_SIZE,
) -> TablePage:
    rows = filter_and_sort(transactions, query)
    total_pages = math.ceil(len(rows) / page_size)
    page = max(query.page, 1)
    start = (page - 1) * page_size
    return TablePage(
        items=rows[start:start + page_size],
        page=page,
        total_pages=total_pages,
        total=len(rows),
    )
