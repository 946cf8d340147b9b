"""Decoders for the textual cells stored in the spreadsheet.

The sheet is maintained by hand with Spanish locale settings, so dates come
as ``DD/MM/YYYY``, amounts use ``.`` for thousands and ``,`` for decimals,
and the payment column holds free text such as ``Pagado`` or ``Sí``.
"""

import re
import unicodedata
from datetime import date, datetime

from sheets_dashboard.errors import DateParseError

_DMY_PATTERN = re.compile(r"^\s*(\d{1,2})/(\d{1,2})/(\d{4})\s*$")

# Leading float literal, like a lenient float parser: "100 €" -> 100.
_NUMBER_PREFIX = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_INFINITY_PREFIX = re.compile(r"^\s*([+-]?)Infinity")

_PAID_VALUES = frozenset({"pagado", "true", "verdadero", "1", "si", "yes"})

PAID_LABEL = "Pagado"
PENDING_LABEL = "Pendiente"


def parse_date(raw: str | None) -> date:
    """Parse ``DD/MM/YYYY`` first, then ISO 8601; raise DateParseError otherwise."""
    if raw is None:
        raise DateParseError(raw)

    match = _DMY_PATTERN.match(raw)
    if match:
        day, month, year = (int(part) for part in match.groups())
        try:
            return date(year, month, day)
        except ValueError:
            pass

    value = raw.strip()
    if not value:
        raise DateParseError(raw)
    try:
        return date.fromisoformat(value)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError as exc:
        raise DateParseError(raw) from exc


def parse_date_or_today(raw: str | None) -> date:
    try:
        return parse_date(raw)
    except DateParseError:
        return date.today()


def _normalize_number_text(raw: str) -> str:
    return raw.replace(".", "").replace(",", ".", 1)


def coerce_amount(raw: str | float | int | None) -> float | None:
    """Parse an amount cell; ``None`` means text with no numeric content."""
    if raw is None:
        return 0.0
    if isinstance(raw, (int, float)):
        return float(raw)

    text = raw.strip()
    if not text:
        return 0.0

    cleaned = _normalize_number_text(text)
    match = _NUMBER_PREFIX.match(cleaned)
    if match:
        return float(match.group(1))
    infinity = _INFINITY_PREFIX.match(cleaned)
    if infinity:
        return float(f"{infinity.group(1)}inf")
    return None


def parse_amount(raw: str | float | int | None) -> float:
    """Parse a localized amount; empty or unparsable input yields ``0``."""
    value = coerce_amount(raw)
    return 0.0 if value is None else value


def _fold(value: str) -> str:
    decomposed = unicodedata.normalize("NFKD", value.strip().casefold())
    return "".join(char for char in decomposed if not unicodedata.combining(char))


def parse_paid_status(raw: str | bool | None) -> bool:
    if isinstance(raw, bool):
        return raw
    if not raw:
        return False
    return _fold(str(raw)) in _PAID_VALUES


def format_sheet_date(value: date) -> str:
    return value.strftime("%d/%m/%Y")


def format_amount(value: float) -> str:
    if value.is_integer():
        return str(int(value))
    return repr(value)


def paid_label(paid: bool) -> str:
    return PAID_LABEL if paid else PENDING_LABEL
