from __future__ import annotations

import math
from collections.abc import Sequence
from typing import Any

from sheets_dashboard.domain.categories import normalize_category
from sheets_dashboard.domain.parsers import (
    coerce_amount,
    format_amount,
    format_sheet_date,
    paid_label,
    parse_date_or_today,
    parse_paid_status,
)
from sheets_dashboard.logger import get_logger
from sheets_dashboard.models import NewTransaction, Transaction, TransactionKind

logger = get_logger(__name__)

MIN_ROW_CELLS = 5

_KIND_ALIASES = {
    "ingreso": TransactionKind.INCOME,
    "income": TransactionKind.INCOME,
    "gasto": TransactionKind.EXPENSE,
    "expense": TransactionKind.EXPENSE,
}


def parse_kind(raw: str | None) -> TransactionKind:
    return _KIND_ALIASES.get((raw or "").strip().casefold(), TransactionKind.UNKNOWN)


def _cell(row: Sequence[Any], index: int) -> str:
    if index >= len(row):
        return ""
    value = row[index]
    return "" if value is None else str(value)


def build_transaction(row: Sequence[Any], index: int) -> Transaction | None:
    """Build one record from a data row, or None when its amount is unusable."""
    amount = coerce_amount(_cell(row, 3))
    if amount is None or not math.isfinite(amount):
        return None

    note = _cell(row, 5).strip()
    return Transaction(
        id=f"transaction-{index}",
        date=parse_date_or_today(_cell(row, 0)),
        kind=parse_kind(_cell(row, 1)),
        category=normalize_category(_cell(row, 2)),
        amount=abs(amount),
        paid=parse_paid_status(_cell(row, 4)),
        note=note or None,
    )


def transform_rows(rows: Sequence[Sequence[Any]]) -> list[Transaction]:
    """
    Convert data rows (header already removed) into transactions.

    Rows shorter than five cells are skipped. Ids follow the position among
    the remaining rows, counted before rows with a bad amount are dropped, so
    a dropped row leaves a gap in the numbering.
    """
    complete_rows = [row for row in rows if len(row) >= MIN_ROW_CELLS]
    transactions: list[Transaction] = []
    dropped = 0
    for index, row in enumerate(complete_rows):
        transaction = build_transaction(row, index)
        if transaction is None:
            dropped += 1
            continue
        transactions.append(transaction)

    short_rows = len(rows) - len(complete_rows)
    if short_rows or dropped:
        logger.debug(
            "[ROWS] Skipped %s short rows and %s rows with invalid amounts.",
            short_rows,
            dropped,
        )
    return transactions


def transform_sheet(values: Sequence[Sequence[Any]]) -> list[Transaction]:
    if not values:
        return []
    return transform_rows(values[1:])


def build_append_row(transaction: NewTransaction) -> list[str]:
    return [
        format_sheet_date(transaction.date),
        transaction.kind.value,
        normalize_category(transaction.category),
        format_amount(transaction.amount),
        paid_label(transaction.paid),
        transaction.note or "",
    ]


def build_transaction_payload(transaction: Transaction) -> dict[str, Any]:
    payload = transaction.model_dump(mode="json")
    payload["date_formatted"] = format_sheet_date(transaction.date)
    payload["paid_label"] = paid_label(transaction.paid)
    return payload
