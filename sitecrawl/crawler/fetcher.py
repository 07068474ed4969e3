"""
Web page fetcher: one GET per call over a shared aiohttp session.
"""

import asyncio
import aiohttp
import logging
from typing import Optional, Dict
from aiohttp import ClientSession, ClientTimeout, ClientError

from .errors import BadStatusError, FetchError, RequestError
from .parser import ContentParser, HTMLDocument
from ..utils.config import HTTPConfig


DEFAULT_USER_AGENT = "LemmeScrapeIt/0.1"
DEFAULT_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


class WebFetcher:
    """
    Fetches pages and hands their bodies to the HTML parser.

    Every failure is raised as a ``FetchError`` subclass carrying the URL.
    Cancelling the calling task aborts the pending request.
    """

    def __init__(self, http_config: Optional[HTTPConfig] = None,
                 user_agent: str = DEFAULT_USER_AGENT, accept: str = DEFAULT_ACCEPT,
                 parser: Optional[ContentParser] = None):
        self.http_config = http_config or HTTPConfig()
        self.user_agent = user_agent
        self.accept = accept
        self.parser = parser or ContentParser()

        self.logger = logging.getLogger(__name__)
        self.session: Optional[ClientSession] = None

        # Statistics
        self.stats = {
            'total_requests': 0,
            'successful_requests': 0,
            'failed_requests': 0,
            'total_bytes_downloaded': 0
        }

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def start(self):
        """Initialize the fetcher session."""
        if self.session is None:
            cfg = self.http_config
            timeout = ClientTimeout(total=cfg.request_timeout, sock_connect=cfg.connect_timeout)
            headers = {'User-Agent': self.user_agent, 'Accept': self.accept}

            self.session = aiohttp.ClientSession(
                timeout=timeout,
                headers=headers,
                connector=aiohttp.TCPConnector(
                    limit=cfg.max_connections,
                    limit_per_host=cfg.max_connections_per_host,
                    keepalive_timeout=cfg.keepalive_timeout,
                    ttl_dns_cache=cfg.dns_cache_ttl,
                    use_dns_cache=True
                )
            )
            self.logger.info("WebFetcher session started")

    async def close(self):
        """Close the fetcher session."""
        if self.session:
            await self.session.close()
            self.session = None
            self.logger.info("WebFetcher session closed")

    async def fetch(self, url: str, timeout: Optional[float] = None) -> HTMLDocument:
        """
        Fetch and parse a single URL.

        Args:
            url: The URL to fetch
            timeout: Total time allowed for this request, in seconds.
                The session-wide request timeout applies when omitted.

        Returns:
            HTMLDocument for the response body

        Raises:
            RequestError: transport failure or timeout
            BadStatusError: response status outside 200-299
            ParseError: body could not be parsed
        """
        if self.session is None:
            raise RuntimeError("WebFetcher session is not started")

        request_kwargs = {}
        if timeout is not None:
            request_kwargs['timeout'] = ClientTimeout(
                total=timeout, sock_connect=self.http_config.connect_timeout
            )

        self.stats['total_requests'] += 1
        try:
            async with self.session.get(url, **request_kwargs) as response:
                if not 200 <= response.status <= 299:
                    raise BadStatusError(url, response.status, response.reason)
                body = await self._read_body(url, response)
                encoding = response.charset

        except FetchError as e:
            self.stats['failed_requests'] += 1
            self.logger.debug(f"Failed fetching {url}: {e}")
            raise

        except asyncio.TimeoutError as e:
            self.stats['failed_requests'] += 1
            self.logger.debug(f"Timeout fetching {url}")
            raise RequestError(url, "timeout") from e

        except ClientError as e:
            self.stats['failed_requests'] += 1
            self.logger.debug(f"Client error fetching {url}: {e}")
            raise RequestError(url, str(e) or type(e).__name__) from e

        try:
            document = self.parser.parse(url, body, encoding)
        except Exception:
            self.stats['failed_requests'] += 1
            raise

        self.stats['successful_requests'] += 1
        self.stats['total_bytes_downloaded'] += len(body)
        self.logger.debug(f"Fetched {url}: {response.status} ({len(body)} bytes)")
        return document

    async def _read_body(self, url: str, response: aiohttp.ClientResponse) -> bytes:
        """Read the response body, refusing anything over the configured size."""
        max_size = self.http_config.max_body_size
        content_length = response.headers.get('content-length')
        if content_length and content_length.isdigit() and int(content_length) > max_size:
            raise RequestError(url, f"content too large ({content_length} bytes)")

        chunks = []
        received = 0
        async for chunk in response.content.iter_chunked(8192):
            received += len(chunk)
            if received > max_size:
                raise RequestError(url, f"content exceeded {max_size} bytes")
            chunks.append(chunk)
        return b''.join(chunks)

    def get_stats(self) -> Dict[str, int]:
        """Get fetcher statistics."""
        return self.stats.copy()
