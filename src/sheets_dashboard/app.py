from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from sheets_dashboard.api.routes import dashboard, pages, sheets
from sheets_dashboard.core import settings
from sheets_dashboard.core.configuration import describe_config_problems, load_sheets_config
from sheets_dashboard.integration.sheets import SheetsClient
from sheets_dashboard.logger import get_logger, setup_logging
from sheets_dashboard.services.repository import TransactionRepository
from sheets_dashboard.services.scheduler import RefreshScheduler
from sheets_dashboard.services.store import AggregationStore

logger = get_logger(__name__)


def create_app() -> FastAPI:
    setup_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Initializing services...")
        settings.log_environment()

        config = load_sheets_config()
        for problem in describe_config_problems(config):
            logger.warning("[CONFIG] %s", problem)

        client = SheetsClient(config)
        repository = TransactionRepository(client)
        store = AggregationStore()
        scheduler = RefreshScheduler(
            repository,
            store,
            interval=settings.get_refresh_interval_seconds(),
        )

        app.state.sheets = client
        app.state.repository = repository
        app.state.store = store
        app.state.scheduler = scheduler

        scheduler.start()
        logger.info("Services initialized.")
        yield
        logger.info("Service shutting down.")
        await scheduler.aclose()
        await client.aclose()

    app = FastAPI(title="Sheets Dashboard", lifespan=lifespan)

    app.include_router(sheets.router)
    app.include_router(dashboard.router)
    app.include_router(pages.router)

    return app


app = create_app()
