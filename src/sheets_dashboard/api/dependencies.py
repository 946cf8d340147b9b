from fastapi import HTTPException, Request

from sheets_dashboard.services.repository import TransactionRepository
from sheets_dashboard.services.scheduler import RefreshScheduler
from sheets_dashboard.services.store import AggregationStore


def get_store(request: Request) -> AggregationStore:
    store = getattr(request.app.state, "store", None)
    if not store:
        raise HTTPException(status_code=500, detail="Store not initialized")
    return store


def get_repository(request: Request) -> TransactionRepository:
    repository = getattr(request.app.state, "repository", None)
    if not repository:
        raise HTTPException(status_code=500, detail="Sheets repository not initialized")
    return repository


def get_scheduler(request: Request) -> RefreshScheduler:
    scheduler = getattr(request.app.state, "scheduler", None)
    if not scheduler:
        raise HTTPException(status_code=500, detail="Scheduler not initialized")
    return scheduler


def get_scheduler_optional(request: Request) -> RefreshScheduler | None:
    return getattr(request.app.state, "scheduler", None)
