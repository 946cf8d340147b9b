from datetime import date

import pytest

from sheets_dashboard.domain.categories import (
    CANONICAL_AGENTS,
    CATEGORY_COLORS,
    PALETTE,
    UNCATEGORIZED,
    category_color,
    normalize_category,
)
from sheets_dashboard.domain.transactions import (
    build_append_row,
    build_transaction_payload,
    parse_kind,
    transform_rows,
    transform_sheet,
)
from sheets_dashboard.models import NewTransaction, TransactionKind

HEADER = ["Fecha", "Tipo", "Categoría", "Importe", "Estado de pago", "Descripción"]


def test_transform_builds_typed_records() -> None:
    rows = [["15/03/2024", "Gasto", "Software", "1.234,56", "Pagado", "Licencia anual"]]

    [tx] = transform_rows(rows)

    assert tx.id == "transaction-0"
    assert tx.date == date(2024, 3, 15)
    assert tx.kind is TransactionKind.EXPENSE
    assert tx.category == "Software"
    assert tx.amount == 1234.56
    assert tx.paid is True
    assert tx.note == "Licencia anual"


def test_transform_sheet_skips_header() -> None:
    values = [HEADER, ["01/01/2024", "Ingreso", "Mentoria", "500", "Pendiente"]]

    [tx] = transform_sheet(values)

    assert tx.kind is TransactionKind.INCOME
    assert tx.paid is False
    assert tx.note is None


def test_transform_sheet_empty() -> None:
    assert transform_sheet([]) == []
    assert transform_sheet([HEADER]) == []


def test_short_rows_are_dropped() -> None:
    rows = [
        ["01/01/2024", "Gasto", "Software", "10"],
        ["02/01/2024", "Gasto", "Software", "20", "Pagado"],
    ]

    result = transform_rows(rows)

    assert [t.amount for t in result] == [20.0]
    # Numbering counts only rows with enough cells.
    assert result[0].id == "transaction-0"


def test_unparsable_and_non_finite_amounts_are_dropped() -> None:
    rows = [
        ["01/01/2024", "Gasto", "Software", "abc", "Pagado"],
        ["02/01/2024", "Gasto", "Software", "Infinity", "Pagado"],
        ["03/01/2024", "Gasto", "Software", "30", "Pagado"],
    ]

    result = transform_rows(rows)

    assert len(result) == 1
    # Ids are assigned before the amount filter, leaving gaps.
    assert result[0].id == "transaction-2"


def test_empty_amount_is_kept_as_zero() -> None:
    [tx] = transform_rows([["01/01/2024", "Gasto", "Software", "", "Pagado"]])
    assert tx.amount == 0.0


def test_negative_amount_stored_as_magnitude() -> None:
    [tx] = transform_rows([["01/01/2024", "Gasto", "Software", "-40", "Pagado"]])
    assert tx.amount == 40.0


def test_malformed_fields_get_defaults_instead_of_rejection() -> None:
    [tx] = transform_rows([["someday", "Transferencia", "  ", "10", "?"]])

    assert tx.date == date.today()
    assert tx.kind is TransactionKind.UNKNOWN
    assert tx.category == UNCATEGORIZED
    assert tx.paid is False


def test_every_complete_row_with_amount_yields_one_transaction() -> None:
    rows = [
        ["01/01/2024", "Ingreso", "Publicidad", str(n), "Pagado", f"nota {n}"]
        for n in range(25)
    ]
    result = transform_rows(rows)
    assert len(result) == 25
    assert len({t.id for t in result}) == 25


@pytest.mark.parametrize("alias", ["Agente", "Agente IA", " agente ia ", "AGENTE"])
def test_legacy_categories_are_normalized(alias: str) -> None:
    assert normalize_category(alias) == CANONICAL_AGENTS
    [tx] = transform_rows([["01/01/2024", "Gasto", alias, "10", "Pagado"]])
    assert tx.category == CANONICAL_AGENTS


def test_normalize_category_keeps_custom_labels() -> None:
    assert normalize_category(" Viajes ") == "Viajes"
    assert normalize_category(CANONICAL_AGENTS) == CANONICAL_AGENTS


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Ingreso", TransactionKind.INCOME),
        ("gasto", TransactionKind.EXPENSE),
        ("Income", TransactionKind.INCOME),
        ("expense", TransactionKind.EXPENSE),
        ("", TransactionKind.UNKNOWN),
    ],
)
def test_parse_kind(raw: str, expected: TransactionKind) -> None:
    assert parse_kind(raw) is expected


def test_build_append_row_field_order() -> None:
    row = build_append_row(
        NewTransaction(
            date=date(2024, 3, 15),
            kind=TransactionKind.EXPENSE,
            category="Software",
            amount=100,
            paid=True,
        )
    )
    assert row == ["15/03/2024", "Gasto", "Software", "100", "Pagado", ""]


def test_appended_row_reads_back_as_same_transaction() -> None:
    new = NewTransaction(
        date=date(2024, 3, 15),
        kind=TransactionKind.EXPENSE,
        category="Software",
        amount=100,
        paid=True,
        note="Hosting",
    )

    [tx] = transform_sheet([HEADER, build_append_row(new)])

    assert (tx.date, tx.kind, tx.category, tx.amount, tx.paid, tx.note) == (
        new.date,
        new.kind,
        new.category,
        new.amount,
        new.paid,
        new.note,
    )


def test_transaction_payload_is_json_ready() -> None:
    [tx] = transform_rows([["15/03/2024", "Gasto", "Software", "10", "Pendiente"]])
    payload = build_transaction_payload(tx)
    assert payload["date"] == "2024-03-15"
    assert payload["date_formatted"] == "15/03/2024"
    assert payload["kind"] == "Gasto"
    assert payload["paid_label"] == "Pendiente"


def test_category_color_known_categories() -> None:
    assert category_color("Software") == CATEGORY_COLORS["Software"]
    assert category_color("Agente") == category_color(CANONICAL_AGENTS)


def test_category_color_unknown_avoids_reserved_colors() -> None:
    reserved = set(CATEGORY_COLORS.values())
    assigned: list[str] = []
    for name in ("Viajes", "Comida", "Cursos"):
        color = category_color(name, assigned)
        assert color not in reserved
        assert color not in assigned
        assigned.append(color)


def test_category_color_cycles_palette_when_exhausted() -> None:
    assigned = ["#E11D48", "#7828C8", "#FBBF24"]
    assert category_color("Otra", assigned) == PALETTE[3]
    assert category_color("Otra", assigned) == category_color("Distinta", assigned)
