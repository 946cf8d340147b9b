from dataclasses import asdict
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query

from sheets_dashboard.api.dependencies import get_scheduler, get_store
from sheets_dashboard.api.schemas import RefreshResponse
from sheets_dashboard.domain.transactions import build_transaction_payload, parse_kind
from sheets_dashboard.models import ConnectionStatus, TransactionKind
from sheets_dashboard.services import views
from sheets_dashboard.services.scheduler import RefreshScheduler
from sheets_dashboard.services.store import AggregationStore

router = APIRouter(prefix="/api")

MonthParam = Annotated[str | None, Query(pattern=r"^\d{4}-\d{2}$")]


@router.get("/dashboard")
async def get_dashboard(
    store: Annotated[AggregationStore, Depends(get_store)],
) -> dict[str, Any]:
    state = store.get_state()
    return {
        "metrics": state.metrics.model_dump(),
        "categories": [item.model_dump() for item in state.distribution],
        "status": state.status.model_dump(mode="json"),
    }


@router.get("/status", response_model=ConnectionStatus)
async def get_status(
    store: Annotated[AggregationStore, Depends(get_store)],
) -> ConnectionStatus:
    return store.status


@router.post("/refresh", response_model=RefreshResponse)
async def refresh_now(
    scheduler: Annotated[RefreshScheduler, Depends(get_scheduler)],
) -> RefreshResponse:
    refreshed = await scheduler.refresh()
    return RefreshResponse(status="refreshed" if refreshed else "busy")


@router.get("/months")
async def get_months(
    store: Annotated[AggregationStore, Depends(get_store)],
) -> list[dict[str, str]]:
    return [asdict(option) for option in views.available_months(store.transactions)]


@router.get("/evolution")
async def get_evolution(
    store: Annotated[AggregationStore, Depends(get_store)],
    month: MonthParam = None,
) -> list[dict[str, Any]]:
    return [
        {
            "date": point.date.isoformat(),
            "label": point.label,
            "income": point.income,
            "expense": point.expense,
            "balance": point.balance,
        }
        for point in views.evolution_series(store.transactions, month)
    ]


@router.get("/categories")
async def get_categories(
    store: Annotated[AggregationStore, Depends(get_store)],
    month: MonthParam = None,
) -> list[dict[str, Any]]:
    if not month:
        return [item.model_dump() for item in store.distribution]
    return [item.model_dump() for item in views.category_breakdown(store.transactions, month)]


@router.get("/insights")
async def get_insights(
    store: Annotated[AggregationStore, Depends(get_store)],
    month: MonthParam = None,
) -> dict[str, Any] | None:
    insights = views.build_insights(views.filter_by_month(store.transactions, month))
    return asdict(insights) if insights else None


@router.get("/transactions")
async def get_transactions(
    store: Annotated[AggregationStore, Depends(get_store)],
    month: MonthParam = None,
    search: str = "",
    kind: str | None = None,
    paid: views.PaidFilter = "all",
    sort: views.SortField = "date",
    direction: views.SortDirection = "desc",
    page: Annotated[int, Query(ge=1)] = 1,
) -> dict[str, Any]:
    kind_filter: TransactionKind | None = None
    if kind and kind.lower() != "all":
        kind_filter = parse_kind(kind)

    result = views.query_table(
        store.transactions,
        views.TableQuery(
            month=month,
            search=search,
            kind=kind_filter,
            paid=paid,
            sort=sort,
            direction=direction,
            page=page,
        ),
    )
    return {
        "transactions": [build_transaction_payload(t) for t in result.items],
        "pagination": {
            "page": result.page,
            "total_pages": result.total_pages,
            "total": result.total,
            "page_size": views.PAGE_SIZE,
        },
    }


@router.get("/scenario")
async def get_scenario(
    store: Annotated[AggregationStore, Depends(get_store)],
    income_growth: Annotated[float, Query(ge=0, le=100)] = 0.0,
    expense_adjustment: Annotated[float, Query(ge=-50, le=50)] = 0.0,
) -> dict[str, float]:
    projection = views.project_scenario(store.transactions, income_growth, expense_adjustment)
    return {
        "base_profit": projection.base_profit,
        "projected_income": projection.projected_income,
        "projected_expense": projection.projected_expense,
        "projected_profit": projection.projected_profit,
    }
