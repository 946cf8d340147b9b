import math
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends
from fastapi.responses import JSONResponse

from sheets_dashboard.api.dependencies import get_repository, get_scheduler_optional
from sheets_dashboard.api.schemas import AppendRequest, AppendResponse
from sheets_dashboard.domain.parsers import coerce_amount, parse_date, parse_paid_status
from sheets_dashboard.domain.transactions import build_append_row, parse_kind
from sheets_dashboard.errors import ConfigurationError, DateParseError, SheetsError
from sheets_dashboard.logger import get_logger
from sheets_dashboard.models import NewTransaction, TransactionKind
from sheets_dashboard.services.repository import TransactionRepository
from sheets_dashboard.services.scheduler import RefreshScheduler

logger = get_logger(__name__)

router = APIRouter(prefix="/sheets")


class InvalidRequest(ValueError):
    pass


def _error_response(exc: SheetsError) -> JSONResponse:
    status_code = 500 if isinstance(exc, ConfigurationError) else 502
    return JSONResponse({"error": exc.message}, status_code=status_code)


def to_new_transaction(req: AppendRequest) -> NewTransaction:
    if not req.fecha or not req.tipo or not req.categoria or req.importe is None:
        raise InvalidRequest("Missing required fields: fecha, tipo, categoria, importe")

    try:
        when = parse_date(req.fecha)
    except DateParseError as exc:
        raise InvalidRequest(exc.message) from exc

    kind = parse_kind(req.tipo)
    if kind is TransactionKind.UNKNOWN:
        raise InvalidRequest(f"Unknown transaction type: {req.tipo!r}")

    amount = coerce_amount(req.importe)
    if amount is None or not math.isfinite(amount) or amount < 0:
        raise InvalidRequest(f"Invalid amount: {req.importe!r}")

    return NewTransaction(
        date=when,
        kind=kind,
        category=req.categoria,
        amount=amount,
        paid=parse_paid_status(req.estadoPago),
        note=req.descripcionAdicional or None,
    )


@router.get("/read")
async def read_sheet(
    repository: Annotated[TransactionRepository, Depends(get_repository)],
) -> JSONResponse:
    try:
        values = await repository.fetch_all()
    except SheetsError as exc:
        logger.error("[SHEETS] Read failed: %s", exc.message)
        return _error_response(exc)
    return JSONResponse({"values": values})


@router.post("/append", response_model=AppendResponse)
async def append_row(
    req: AppendRequest,
    background_tasks: BackgroundTasks,
    repository: Annotated[TransactionRepository, Depends(get_repository)],
    scheduler: Annotated[RefreshScheduler | None, Depends(get_scheduler_optional)],
) -> AppendResponse | JSONResponse:
    try:
        transaction = to_new_transaction(req)
    except InvalidRequest as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)

    try:
        updated_range = await repository.append(build_append_row(transaction))
    except SheetsError as exc:
        logger.error("[SHEETS] Append failed: %s", exc.message)
        return _error_response(exc)

    if scheduler is not None:
        background_tasks.add_task(scheduler.refresh)
    return AppendResponse(success=True, updatedRange=updated_range)
