import asyncio
from typing import Any
from urllib.parse import quote

import httpx
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2 import service_account

from sheets_dashboard.core.configuration import (
    ApiKeyAuth,
    ServiceAccountAuth,
    SheetsAuth,
    SheetsConfig,
)
from sheets_dashboard.errors import AppendError, ConfigurationError, FetchError, SheetsError
from sheets_dashboard.logger import get_logger

logger = get_logger(__name__)

SHEETS_SCOPES = ("https://www.googleapis.com/auth/spreadsheets",)
TOKEN_URI = "https://oauth2.googleapis.com/token"


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return f"{response.status_code}: {error['message']}"
        if isinstance(error, str) and error:
            return f"{response.status_code}: {error}"
    return f"{response.status_code}: {response.reason_phrase or 'request failed'}"


class ServiceAccountTokens:
    """Caches an OAuth access token minted from service-account credentials."""

    def __init__(self, auth: ServiceAccountAuth) -> None:
        try:
            self._credentials = service_account.Credentials.from_service_account_info(
                {
                    "type": "service_account",
                    "client_email": auth.email,
                    "private_key": auth.private_key,
                    "token_uri": TOKEN_URI,
                },
                scopes=list(SHEETS_SCOPES),
            )
        except ValueError as exc:
            raise ConfigurationError(f"Invalid service account credentials: {exc}") from exc
        self._lock = asyncio.Lock()

    async def token(self) -> str:
        if self._credentials.valid:
            return self._credentials.token

        async with self._lock:
            if not self._credentials.valid:
                # google-auth refreshes synchronously.
                await asyncio.to_thread(self._credentials.refresh, GoogleAuthRequest())
                logger.debug("[SHEETS] Service account token refreshed.")
        return self._credentials.token


class SheetsClient:
    def __init__(
        self,
        config: SheetsConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        self._client = client
        self._client_lock = asyncio.Lock()
        self._tokens: ServiceAccountTokens | None = None

    def refresh(self, config: SheetsConfig) -> None:
        self.config = config
        self._tokens = None

    async def aclose(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _get_client(self) -> httpx.AsyncClient:
        client = self._client
        if client is not None and not client.is_closed:
            return client

        async with self._client_lock:
            client = self._client
            if client is None or client.is_closed:
                client = httpx.AsyncClient(timeout=self.config.timeout)
                self._client = client
            return client

    async def _authorize(self, auth: SheetsAuth) -> tuple[dict[str, str], dict[str, str]]:
        headers = {"Accept": "application/json"}
        params: dict[str, str] = {}
        if isinstance(auth, ApiKeyAuth):
            params["key"] = auth.api_key
            return headers, params

        if self._tokens is None:
            self._tokens = ServiceAccountTokens(auth)
        token = await self._tokens.token()
        headers["Authorization"] = f"Bearer {token}"
        return headers, params

    def _values_url(self, spreadsheet_id: str, cell_range: str, suffix: str = "") -> str:
        return (
            f"{self.config.api_url}/{quote(spreadsheet_id, safe='')}"
            f"/values/{quote(cell_range, safe='!:')}{suffix}"
        )

    async def _send(
        self,
        method: str,
        url: str,
        auth: SheetsAuth,
        error_cls: type[SheetsError],
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
    ) -> dict[str, Any]:
        try:
            headers, auth_params = await self._authorize(auth)
        except GoogleAuthError as exc:
            logger.error("[SHEETS] Authentication failed: %s", exc)
            raise error_cls(f"Authentication failed: {exc}") from exc

        client = await self._get_client()
        try:
            response = await client.request(
                method,
                url,
                headers=headers,
                params={**(params or {}), **auth_params},
                json=json,
            )
        except httpx.HTTPError as exc:
            logger.error("[SHEETS] %s %s failed: %s", method, url, exc)
            raise error_cls(f"Spreadsheet request failed: {exc}") from exc

        if response.is_error:
            message = _error_message(response)
            logger.error("[SHEETS] %s %s returned %s", method, url, message)
            raise error_cls(f"Spreadsheet request failed ({message})")

        try:
            data = response.json()
        except ValueError as exc:
            raise error_cls("Spreadsheet returned an invalid JSON body") from exc
        return data if isinstance(data, dict) else {}

    async def get_values(self, cell_range: str | None = None) -> list[list[str]]:
        spreadsheet_id, auth = self.config.require()
        target = cell_range or self.config.read_range
        data = await self._send(
            "GET",
            self._values_url(spreadsheet_id, target),
            auth,
            FetchError,
        )
        values = data.get("values") or []
        logger.debug("[SHEETS] Read %s rows from %s", len(values), target)
        return [[str(cell) for cell in row] for row in values]

    async def append_values(
        self,
        rows: list[list[str]],
        cell_range: str | None = None,
    ) -> str | None:
        spreadsheet_id, auth = self.config.require()
        target = cell_range or self.config.append_range
        data = await self._send(
            "POST",
            self._values_url(spreadsheet_id, target, ":append"),
            auth,
            AppendError,
            params={
                "valueInputOption": "USER_ENTERED",
                "insertDataOption": "INSERT_ROWS",
            },
            json={"values": rows},
        )
        updated_range = (data.get("updates") or {}).get("updatedRange")
        logger.info("[SHEETS] Appended %s row(s) to %s", len(rows), updated_range or target)
        return updated_range
