"""
Crawl scheduler: a bounded pool of workers fetching a fixed job list.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Set

from .errors import CrawlCancelledError, FetchError, RequestError
from .parser import HTMLDocument
from .url_frontier import CrawlJob, URLFrontier
from ..utils.logger import get_crawler_logger


# Put on the result sink once every worker has finished
RESULTS_CLOSED = object()


class PageFetcher(Protocol):
    async def fetch(self, url: str, timeout: Optional[float] = None) -> HTMLDocument:
        ...


class RunContext:
    """
    Deadline and cancellation signal shared by everything in a crawl run.

    Child contexts are cancelled together with their parent. A child that
    expires on its own leaves the parent and its siblings untouched.
    """

    def __init__(self, timeout: Optional[float] = None,
                 parent: Optional['RunContext'] = None):
        self._loop = asyncio.get_running_loop()
        self._event = asyncio.Event()
        self._children: Set['RunContext'] = set()
        self._parent = parent
        self.reason: Optional[str] = None

        deadline = self._loop.time() + timeout if timeout is not None else None
        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
        self.deadline = deadline

        self._timer: Optional[asyncio.TimerHandle] = None
        if deadline is not None:
            self._timer = self._loop.call_at(deadline, self.cancel, "deadline exceeded")

        if parent is not None:
            parent._children.add(self)
            if parent.cancelled:
                self.cancel(parent.reason)

    def __enter__(self) -> 'RunContext':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def expired(self) -> bool:
        """True once cancelled or past the deadline, even before the timer has fired."""
        return self.cancelled or self.remaining() == 0.0

    def cancel(self, reason: Optional[str] = "cancelled"):
        """Cancel this context and every context derived from it."""
        if self._event.is_set():
            return
        self.reason = reason
        self._event.set()
        if self._timer is not None:
            self._timer.cancel()
        for child in list(self._children):
            child.cancel(reason)

    def close(self):
        """Stop the deadline timer and detach from the parent."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._parent is not None:
            self._parent._children.discard(self)

    async def wait(self):
        """Block until the context is cancelled."""
        await self._event.wait()

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when there is none."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - self._loop.time())

    def job_timeout(self, per_job: float) -> float:
        """A job's timeout: its own duration capped by the time left in this context."""
        remaining = self.remaining()
        return per_job if remaining is None else min(per_job, remaining)

    def child(self, timeout: Optional[float] = None) -> 'RunContext':
        return RunContext(timeout, parent=self)


@dataclass(frozen=True)
class PageResult:
    """Outcome of fetching one URL: a title, or the error that prevented it."""
    url: str
    title: str = ""
    error: Optional[FetchError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def fetch_within(fetcher: PageFetcher, url: str, ctx: RunContext,
                       timeout: float) -> HTMLDocument:
    """
    Fetch ``url`` under a child of ``ctx`` limited to ``timeout`` seconds.

    The request is aborted as soon as either the child expires or ``ctx``
    is cancelled.

    Raises:
        FetchError: from the fetcher itself
        RequestError: the job's own timeout expired
        CrawlCancelledError: ``ctx`` was cancelled while the fetch was pending
    """
    with ctx.child(timeout) as job_ctx:
        fetch_task = asyncio.ensure_future(fetcher.fetch(url, job_ctx.remaining()))
        cancel_task = asyncio.ensure_future(job_ctx.wait())
        try:
            await asyncio.wait({fetch_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancel_task.cancel()
            if not fetch_task.done():
                fetch_task.cancel()
            await asyncio.wait({fetch_task, cancel_task})

        if fetch_task.cancelled():
            if ctx.expired:
                raise CrawlCancelledError(url, ctx.reason or "deadline exceeded")
            raise RequestError(url, "timeout")
        return fetch_task.result()


class CrawlScheduler:
    """
    Runs exactly one fetch per job with at most ``max_concurrency`` in flight.

    Each started job puts one ``PageResult`` on the sink, whatever happens
    to it. When the run context is cancelled, jobs nobody has claimed yet
    are dropped without a result.
    """

    def __init__(self, fetcher: PageFetcher, max_concurrency: int = 8,
                 job_timeout: float = 3.0):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.fetcher = fetcher
        self.max_concurrency = max_concurrency
        self.job_timeout = job_timeout
        self.logger = logging.getLogger(__name__)

        self.in_flight = 0
        self.peak_in_flight = 0
        self.started = 0
        self.completed = 0

    async def run(self, frontier: URLFrontier, ctx: RunContext, sink: asyncio.Queue):
        """
        Drain ``frontier`` into ``sink`` and close the sink when done.

        Returns only after every worker has finished.
        """
        self.logger.info(
            f"Starting {self.max_concurrency} workers for {frontier.total} jobs"
        )
        workers = [
            asyncio.create_task(self._worker(f"worker-{i}", frontier, ctx, sink))
            for i in range(self.max_concurrency)
        ]
        try:
            await asyncio.gather(*workers)
        finally:
            for worker in workers:
                if not worker.done():
                    worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

            dropped = frontier.abandon()
            if dropped:
                self.logger.warning(
                    f"Run cancelled ({ctx.reason or 'deadline exceeded'}); "
                    f"abandoned {dropped} unclaimed jobs"
                )
            sink.put_nowait(RESULTS_CLOSED)

        self.logger.info(f"All workers finished: {self.completed}/{frontier.total} jobs completed")

    async def _worker(self, worker_id: str, frontier: URLFrontier, ctx: RunContext,
                      sink: asyncio.Queue):
        log = get_crawler_logger(__name__, worker=worker_id)
        log.debug("Worker started")

        while not ctx.expired:
            job = frontier.claim()
            if job is None:
                break
            result = await self._process_job(job, ctx, log)
            sink.put_nowait(result)
            self.completed += 1

        log.debug("Worker finished")

    async def _process_job(self, job: CrawlJob, ctx: RunContext, log) -> PageResult:
        """Fetch one job and turn its outcome into a PageResult."""
        self.started += 1
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            document = await fetch_within(
                self.fetcher, job.url, ctx, ctx.job_timeout(self.job_timeout)
            )
            title = document.find_title()

        except FetchError as e:
            log.warning(f"Failed to fetch {job.url}: {e}")
            return PageResult(url=job.url, error=e)

        except Exception as e:
            log.error(f"Unexpected error processing {job.url}: {e}", exc_info=True)
            return PageResult(url=job.url, error=RequestError(job.url, f"unexpected error: {e}"))

        finally:
            self.in_flight -= 1

        log.debug(f"Fetched {job.url}: {title!r}")
        return PageResult(url=job.url, title=title)

    def get_stats(self):
        """Get scheduler statistics."""
        return {
            'max_concurrency': self.max_concurrency,
            'started': self.started,
            'completed': self.completed,
            'in_flight': self.in_flight,
            'peak_in_flight': self.peak_in_flight,
        }

