import json
import os
from dataclasses import dataclass

from sheets_dashboard.core import settings
from sheets_dashboard.errors import ConfigurationError
from sheets_dashboard.logger import get_logger

logger = get_logger(__name__)

DEFAULT_SHEET_NAME = "Hoja 1"
DEFAULT_DATA_RANGE = "A:F"
APPEND_RANGE = "A:F"


@dataclass(frozen=True)
class ServiceAccountAuth:
    """Signed service-account credentials; allows reads and appends."""

    email: str
    private_key: str

    def __repr__(self) -> str:
        return f"ServiceAccountAuth(email={self.email!r}, private_key='***')"


@dataclass(frozen=True)
class ApiKeyAuth:
    """Plain API key; Google only honours it for public reads."""

    api_key: str

    def __repr__(self) -> str:
        return "ApiKeyAuth(api_key='***')"


SheetsAuth = ServiceAccountAuth | ApiKeyAuth


@dataclass(frozen=True)
class SheetsConfig:
    spreadsheet_id: str | None
    sheet_name: str = DEFAULT_SHEET_NAME
    data_range: str = DEFAULT_DATA_RANGE
    auth: SheetsAuth | None = None
    api_url: str = settings.DEFAULT_SHEETS_API_URL
    timeout: float = settings.DEFAULT_SHEETS_TIMEOUT

    @property
    def read_range(self) -> str:
        return f"{self.sheet_name}!{self.data_range}"

    @property
    def append_range(self) -> str:
        return f"{self.sheet_name}!{APPEND_RANGE}"

    def missing_settings(self) -> list[str]:
        missing: list[str] = []
        if not self.spreadsheet_id:
            missing.append("SPREADSHEET_ID")
        if self.auth is None:
            missing.append(
                "GOOGLE_SERVICE_ACCOUNT_EMAIL/GOOGLE_PRIVATE_KEY or GOOGLE_API_KEY"
            )
        return missing

    def require(self) -> tuple[str, SheetsAuth]:
        """Return the spreadsheet id and auth, or raise ConfigurationError."""
        missing = self.missing_settings()
        if missing or self.spreadsheet_id is None or self.auth is None:
            raise ConfigurationError(
                f"Sheets configuration incomplete, missing: {', '.join(missing)}"
            )
        return self.spreadsheet_id, self.auth


def sanitize_private_key(raw: str | None) -> str | None:
    if not raw:
        return None

    value = raw.strip()
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        try:
            decoded = json.loads(value)
        except json.JSONDecodeError:
            decoded = None
        if isinstance(decoded, str):
            return decoded.strip() or None

    value = value.strip("\"'").strip()
    value = value.replace("\\n", "\n").strip()
    return value or None


def resolve_auth(
    email: str | None,
    private_key: str | None,
    api_key: str | None,
) -> SheetsAuth | None:
    key = sanitize_private_key(private_key)
    if email and key:
        return ServiceAccountAuth(email=email.strip(), private_key=key)
    if api_key and api_key.strip():
        return ApiKeyAuth(api_key=api_key.strip())
    return None


def load_sheets_config() -> SheetsConfig:
    auth = resolve_auth(
        os.getenv("GOOGLE_SERVICE_ACCOUNT_EMAIL"),
        os.getenv("GOOGLE_PRIVATE_KEY"),
        os.getenv("GOOGLE_API_KEY"),
    )
    config = SheetsConfig(
        spreadsheet_id=(os.getenv("SPREADSHEET_ID") or "").strip() or None,
        sheet_name=os.getenv("SHEET_NAME") or DEFAULT_SHEET_NAME,
        data_range=os.getenv("DATA_RANGE") or DEFAULT_DATA_RANGE,
        auth=auth,
        api_url=(os.getenv("SHEETS_API_URL") or settings.DEFAULT_SHEETS_API_URL).rstrip("/"),
        timeout=settings.get_env_float(
            "SHEETS_TIMEOUT",
            settings.DEFAULT_SHEETS_TIMEOUT,
            min_value=1.0,
        ),
    )
    mode = type(auth).__name__ if auth else "none"
    logger.info(
        "[CONFIG] Sheets config loaded: range=%s, auth=%s",
        config.read_range,
        mode,
    )
    return config


def describe_config_problems(config: SheetsConfig) -> list[str]:
    problems = [f"{name} is not set" for name in config.missing_settings()]
    auth = config.auth
    if isinstance(auth, ServiceAccountAuth):
        if "BEGIN PRIVATE KEY" not in auth.private_key or "END PRIVATE KEY" not in auth.private_key:
            problems.append("GOOGLE_PRIVATE_KEY lacks the BEGIN/END PRIVATE KEY markers")
    elif isinstance(auth, ApiKeyAuth):
        problems.append("GOOGLE_API_KEY mode is read-only; appends will be rejected by Google")
    return problems
