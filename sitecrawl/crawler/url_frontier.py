"""
Link set construction and the job source shared by crawl workers.

Links found on the seed page are resolved against the seed URL,
deduplicated in discovery order and restricted to the seed's origin
before they become crawl jobs.
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterable, List, Optional
from urllib.parse import SplitResult, urljoin, urlsplit, urlunsplit

from .errors import InvalidURLError


ALLOWED_SCHEMES = frozenset(('http', 'https'))

logger = logging.getLogger(__name__)


def _has_control_chars(value: str) -> bool:
    return any(ord(ch) < 0x20 or ord(ch) == 0x7f for ch in value)


def _split(url: str) -> SplitResult:
    """Parse a URL reference, raising InvalidURLError for malformed input."""
    if _has_control_chars(url):
        raise InvalidURLError(url, "contains control characters")
    try:
        parts = urlsplit(url)
        # Accessing .port validates it
        parts.port
    except ValueError as e:
        raise InvalidURLError(url, str(e)) from e
    return parts


class LinkResolver:
    """Resolves link references against a base URL parsed once per crawl."""

    def __init__(self, base: str):
        parts = _split(base)
        if not parts.scheme or not parts.netloc:
            raise InvalidURLError(base, "base URL must be absolute")
        self.base = urlunsplit(parts)

    def resolve(self, candidate: str) -> str:
        """
        Resolve a possibly-relative reference into its absolute form.

        Dot segments are collapsed, query and fragment are kept.

        Raises:
            InvalidURLError: if the candidate cannot be parsed
        """
        _split(candidate.strip())
        resolved = _split(urljoin(self.base, candidate.strip()))
        if not resolved.scheme:
            raise InvalidURLError(candidate, "could not be made absolute")
        return urlunsplit(resolved)


def resolve_url(base: str, candidate: str) -> str:
    """Resolve ``candidate`` against ``base``; see ``LinkResolver.resolve``."""
    return LinkResolver(base).resolve(candidate)


def dedupe_links(links: Iterable[str]) -> List[str]:
    """Keep the first occurrence of each link, preserving input order."""
    seen = set()
    unique = []
    for link in links:
        if link in seen:
            continue
        seen.add(link)
        unique.append(link)
    return unique


def is_in_scope(url: str, seed_host: str) -> bool:
    """
    Check whether ``url`` is an http(s) URL on ``seed_host`` or one of its subdomains.

    Host comparison is case-insensitive. Unparseable URLs are out of scope.
    """
    try:
        parts = _split(url)
    except InvalidURLError:
        return False

    if parts.scheme not in ALLOWED_SCHEMES:
        return False

    host = (parts.hostname or '').lower()
    seed_host = seed_host.lower()
    if not host or not seed_host:
        return False

    return host == seed_host or host.endswith('.' + seed_host)


def filter_in_scope(links: Iterable[str], seed_host: str) -> List[str]:
    """Drop links outside the seed's origin, preserving order."""
    return [link for link in links if is_in_scope(link, seed_host)]


def build_link_set(base: str, hrefs: Iterable[str], seed_host: str) -> List[str]:
    """
    Turn raw ``href`` values from a page into the crawlable link set.

    Args:
        base: URL the hrefs were found on
        hrefs: raw attribute values in document order
        seed_host: host that defines the crawl origin

    Returns:
        Absolute, unique, in-scope URLs in first-discovery order
    """
    resolver = LinkResolver(base)

    resolved = []
    for href in hrefs:
        try:
            resolved.append(resolver.resolve(href))
        except InvalidURLError as e:
            logger.debug(f"Skipping unparseable link: {e}")

    unique = dedupe_links(resolved)
    in_scope = filter_in_scope(unique, seed_host)
    logger.debug(
        f"Link set for {base}: {len(resolved)} resolved, {len(unique)} unique, "
        f"{len(in_scope)} in scope"
    )
    return in_scope


@dataclass(frozen=True)
class CrawlJob:
    """A single URL scheduled for one fetch attempt."""
    url: str
    index: int


class URLFrontier:
    """
    Fixed job source for one crawl run.

    ``claim`` pops without awaiting, so on a single event loop every job is
    handed to exactly one worker.
    """

    def __init__(self, links: Iterable[str]):
        self._pending: Deque[CrawlJob] = deque(
            CrawlJob(url=url, index=i) for i, url in enumerate(links)
        )
        self.total = len(self._pending)
        self.claimed = 0
        self.abandoned = 0

    def claim(self) -> Optional[CrawlJob]:
        """Take the next unclaimed job, or None when the source is exhausted."""
        if not self._pending:
            return None
        job = self._pending.popleft()
        self.claimed += 1
        logger.debug(f"Claimed job {job.index}: {job.url}")
        return job

    def abandon(self) -> int:
        """Drop every unclaimed job. Returns how many were dropped."""
        dropped = len(self._pending)
        self._pending.clear()
        self.abandoned += dropped
        return dropped

    @property
    def remaining(self) -> int:
        return len(self._pending)

    def is_empty(self) -> bool:
        return not self._pending

    def get_stats(self):
        """Get frontier statistics."""
        return {
            'total_jobs': self.total,
            'claimed': self.claimed,
            'remaining': self.remaining,
            'abandoned': self.abandoned,
        }
