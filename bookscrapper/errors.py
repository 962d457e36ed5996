from typing import Optional


class ScrapperError(Exception):
    """Base class of every error raised by the scrapper core."""


class ScrapperConfigError(ScrapperError):
    """Raised while building the registry, before anything is fetched."""


class FetchError(ScrapperError):
    reason = "FETCH_ERROR"

    def __init__(self, url: str, message: str = "", status_code: Optional[int] = None):
        self.url = url
        self.status_code = status_code
        super().__init__(message or f"{self.reason} for {url}")


class TerminalFetchError(FetchError):
    """Remote resource is gone (404, 410) or refuses us permanently."""

    reason = "NOT_FOUND"


class TransientFetchError(FetchError):
    """Network failure, timeout or 5xx. Left for an explicit retry."""

    reason = "TRANSIENT_NETWORK_ERROR"


class ParseError(FetchError):
    """Body arrived but is not something we can build a document from."""

    reason = "PARSE_ERROR"


class ExtractionError(ScrapperError):
    """Matcher could not pull the required fields out of a page."""
