"""
End-to-end crawl of a seed page and the same-origin links it points to.
"""

import asyncio
import logging
import time
from typing import Callable, Optional
from urllib.parse import urlsplit

from .aggregator import CrawlReport, ResultAggregator
from .errors import FetchError, SeedFetchError
from .fetcher import WebFetcher
from .scheduler import CrawlScheduler, PageFetcher, PageResult, RunContext, fetch_within
from .url_frontier import ALLOWED_SCHEMES, URLFrontier, build_link_set
from ..utils.config import Config


class SiteCrawler:
    """
    Fetches a seed page, then every in-scope link found on it.

    Only a failed seed fetch aborts the crawl. Failures on individual links
    are reported in the results.
    """

    def __init__(self, config: Config, fetcher: Optional[PageFetcher] = None):
        self.config = config
        self.logger = logging.getLogger(__name__)

        self._owns_fetcher = fetcher is None
        self.fetcher = fetcher or WebFetcher(
            http_config=config.http,
            user_agent=config.crawler.user_agent,
            accept=config.crawler.accept,
        )
        self.scheduler = CrawlScheduler(
            self.fetcher,
            max_concurrency=config.crawler.max_concurrency,
            job_timeout=config.crawler.job_timeout,
        )
        self._ctx: Optional[RunContext] = None

    async def __aenter__(self):
        if self._owns_fetcher:
            await self.fetcher.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        if self._owns_fetcher:
            await self.fetcher.close()

    def cancel(self, reason: str = "cancelled by user"):
        """Cancel the crawl in progress, if any."""
        if self._ctx is not None:
            self.logger.info(f"Cancelling crawl: {reason}")
            self._ctx.cancel(reason)

    async def crawl(self, seed_url: Optional[str] = None,
                    on_result: Optional[Callable[[PageResult], None]] = None) -> CrawlReport:
        """
        Crawl the seed page and its same-origin links.

        Args:
            seed_url: Page to start from; defaults to the configured seed
            on_result: Called for each page result as it arrives

        Returns:
            CrawlReport with the seed title, the link set and per-page results

        Raises:
            SeedFetchError: if the seed page cannot be fetched
        """
        seed_url = seed_url or self.config.crawler.seed_url
        start_time = time.monotonic()

        seed_host = self._seed_host(seed_url)

        with RunContext(self.config.crawler.run_timeout) as ctx:
            self._ctx = ctx
            try:
                return await self._crawl(seed_url, seed_host, ctx, start_time, on_result)
            finally:
                self._ctx = None

    async def _crawl(self, seed_url: str, seed_host: str, ctx: RunContext,
                     start_time: float, on_result) -> CrawlReport:
        self.logger.info(f"Fetching seed page: {seed_url}")
        try:
            seed_doc = await fetch_within(
                self.fetcher, seed_url, ctx,
                ctx.job_timeout(self.config.http.request_timeout),
            )
        except FetchError as e:
            self.logger.error(f"Seed fetch failed for {seed_url}: {e}")
            raise SeedFetchError(seed_url, e) from e

        seed_title = seed_doc.find_title()
        links = build_link_set(seed_url, seed_doc.find_links(), seed_host)
        self.logger.info(f"Seed title: {seed_title!r}; {len(links)} in-scope links")

        frontier = URLFrontier(links)
        sink: asyncio.Queue = asyncio.Queue()
        aggregator = ResultAggregator(on_result)

        scheduler_task = asyncio.ensure_future(self.scheduler.run(frontier, ctx, sink))
        try:
            await aggregator.drain(sink)
        except BaseException as e:
            # Stop the workers before propagating; the scheduler must not outlive the crawl
            self.logger.error(f"Result handling failed, stopping workers: {e!r}")
            ctx.cancel("result handling failed")
            await asyncio.gather(scheduler_task, return_exceptions=True)
            raise
        await scheduler_task

        report = CrawlReport(
            seed_url=seed_url,
            seed_title=seed_title,
            links=links,
            results=aggregator.results,
            ok=aggregator.ok,
            failed=aggregator.failed,
            elapsed=time.monotonic() - start_time,
            cancelled=ctx.expired,
        )
        self.logger.info(
            f"Crawl finished: {report.summary()} in {report.elapsed:.2f}s "
            f"(peak concurrency {self.scheduler.peak_in_flight}, "
            f"abandoned {frontier.abandoned})"
        )
        if hasattr(self.fetcher, "get_stats"):
            self.logger.debug(f"Fetcher stats: {self.fetcher.get_stats()}")
        self.logger.debug(f"Scheduler stats: {self.scheduler.get_stats()}")
        return report

    def _seed_host(self, seed_url: Optional[str]) -> str:
        """Host that defines the crawl origin; rejects seeds that cannot be crawled."""
        if not seed_url:
            raise SeedFetchError("", ValueError("no seed URL given"))
        try:
            parts = urlsplit(seed_url)
            host = parts.hostname
        except ValueError as e:
            raise SeedFetchError(seed_url, e) from e
        if parts.scheme not in ALLOWED_SCHEMES or not host:
            raise SeedFetchError(seed_url, ValueError("seed must be an absolute http(s) URL"))
        return host.lower()
