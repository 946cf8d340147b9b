import os
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from sheets_dashboard.api.dependencies import get_store
from sheets_dashboard.core import settings
from sheets_dashboard.domain.categories import CANONICAL_CATEGORIES
from sheets_dashboard.domain.parsers import format_sheet_date
from sheets_dashboard.domain.transactions import parse_kind
from sheets_dashboard.models import TransactionKind
from sheets_dashboard.services import views
from sheets_dashboard.services.store import AggregationStore

router = APIRouter()

templates_dir = os.path.abspath(
    os.path.join(os.path.dirname(__file__), "..", "..", "web", "templates")
)
templates = Jinja2Templates(directory=templates_dir)


def format_currency(amount: float) -> str:
    """es-AR style, no decimals: 1234.5 -> '$ 1.235'."""
    rounded = round(amount)
    digits = f"{abs(rounded):,}".replace(",", ".")
    sign = "-" if rounded < 0 else ""
    return f"{sign}$ {digits}"


def format_percentage(value: float, decimals: int = 1) -> str:
    return f"{value:.{decimals}f}%"


templates.env.filters["currency"] = format_currency
templates.env.filters["percentage"] = format_percentage
templates.env.filters["sheet_date"] = format_sheet_date


SORT_FIELDS: tuple[views.SortField, ...] = ("date", "amount", "category")


def build_sort_links(
    base_query: dict[str, str],
    sort: views.SortField,
    direction: views.SortDirection,
) -> dict[str, dict[str, str]]:
    """Query params for each sortable header; clicking restarts at page 1."""
    links: dict[str, dict[str, str]] = {}
    for field in SORT_FIELDS:
        next_sort, next_direction = views.toggle_sort(sort, direction, field)
        links[field] = {**base_query, "sort": next_sort, "direction": next_direction}
    return links


@router.get("/", response_class=HTMLResponse)
async def index(
    request: Request,
    store: Annotated[AggregationStore, Depends(get_store)],
    month: str | None = None,
    search: str = "",
    kind: str = "all",
    paid: views.PaidFilter = "all",
    sort: views.SortField = "date",
    direction: views.SortDirection = "desc",
    page: int = 1,
) -> HTMLResponse:
    state = store.get_state()
    transactions = state.transactions
    filtered = views.filter_by_month(transactions, month)

    kind_filter: TransactionKind | None = None
    if kind.lower() != "all":
        kind_filter = parse_kind(kind)

    table = views.query_table(
        transactions,
        views.TableQuery(
            month=month,
            search=search,
            kind=kind_filter,
            paid=paid,
            sort=sort,
            direction=direction,
            page=max(page, 1),
        ),
    )

    filters = {"month": month or "", "search": search, "kind": kind, "paid": paid}
    base_query = {key: value for key, value in filters.items() if value and value != "all"}
    page_query = {**base_query, "sort": sort, "direction": direction}

    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "metrics": state.metrics,
            "status": state.status,
            "months": views.available_months(transactions),
            "selected_month": month,
            "search": search,
            "kind": kind,
            "paid": paid,
            "sort": sort,
            "direction": direction,
            "page_query": page_query,
            "sort_links": build_sort_links(base_query, sort, direction),
            "categories": views.category_breakdown(transactions, month),
            "category_suggestions": CANONICAL_CATEGORIES,
            "evolution": views.evolution_series(transactions, month),
            "insights": views.build_insights(filtered),
            "table": table,
            "refresh_interval_ms": int(settings.get_refresh_interval_seconds() * 1000),
        },
    )
