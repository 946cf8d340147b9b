from collections.abc import Sequence

from sheets_dashboard.integration.sheets import SheetsClient
from sheets_dashboard.logger import get_logger

logger = get_logger(__name__)


class TransactionRepository:
    """
    Reads and appends raw spreadsheet rows through the Sheets client.

    Holds no state of its own. ``ConfigurationError`` is raised before any
    network call when the spreadsheet id or credentials are missing;
    ``FetchError``/``AppendError`` report boundary failures. There is no retry.
    """

    def __init__(self, client: SheetsClient) -> None:
        self.client = client

    async def fetch_all(self) -> list[list[str]]:
        """Return the whole cell matrix, header row included."""
        self.client.config.require()
        return await self.client.get_values()

    async def append(self, row: Sequence[str]) -> str | None:
        self.client.config.require()
        logger.info("[SHEETS] Appending row: %s", ", ".join(row[:5]))
        return await self.client.append_values([list(row)])
