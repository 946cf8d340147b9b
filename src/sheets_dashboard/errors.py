class SheetsError(Exception):
    """Base class for every error raised by the dashboard pipeline."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(SheetsError):
    """Required spreadsheet settings are missing or unusable."""


class FetchError(SheetsError):
    """Reading rows from the spreadsheet failed."""


class AppendError(SheetsError):
    """Appending a row to the spreadsheet failed."""


class ParseError(SheetsError):
    """A single cell could not be decoded."""


class DateParseError(ParseError):
    def __init__(self, raw: str | None) -> None:
        super().__init__(f"Unrecognised date: {raw!r}")
        self.raw = raw
