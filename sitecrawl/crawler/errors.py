"""
Error taxonomy for the crawl engine.

Per-link failures are ``FetchError`` subclasses and end up on
``PageResult.error``. Only ``SeedFetchError`` is fatal for a run.
"""

from typing import Optional


class InvalidURLError(ValueError):
    """A link could not be parsed or resolved into an absolute URL."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"invalid URL {url!r}: {reason}")
        self.url = url
        self.reason = reason


class FetchError(Exception):
    """A single fetch attempt failed."""

    kind = "fetch-error"
    prefix = "fetch failed"

    def __init__(self, url: str, cause: str):
        super().__init__(f"{self.prefix}: {cause}")
        self.url = url
        self.cause = cause


class RequestError(FetchError):
    """Transport failure before a response was obtained (DNS, connect, TLS, timeout)."""

    kind = "request-error"
    prefix = "request failed"


class BadStatusError(FetchError):
    """The server answered outside the 2xx range."""

    kind = "bad-status"
    prefix = "bad status"

    def __init__(self, url: str, status: int, reason: Optional[str] = None):
        super().__init__(url, f"{status} {reason}".strip() if reason else str(status))
        self.status = status


class ParseError(FetchError):
    """The response body could not be turned into a document."""

    kind = "parse-error"
    prefix = "parse html"


class CrawlCancelledError(FetchError):
    """The fetch was aborted because the run was cancelled or ran out of time."""

    kind = "cancelled"
    prefix = "cancelled"


class SeedFetchError(Exception):
    """The seed page could not be fetched; the crawl cannot start."""

    def __init__(self, url: str, cause: Exception):
        super().__init__(f"error fetching seed {url}: {cause}")
        self.url = url
        self.cause = cause
