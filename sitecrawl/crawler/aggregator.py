"""
Collects page results from the scheduler and reports on them.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .scheduler import PageResult, RESULTS_CLOSED


def format_result(result: PageResult) -> str:
    """One report line for a page: its title, or the error that stopped it."""
    if result.ok:
        return f"{result.url} - {result.title}"
    return f"ERROR {result.url}: {result.error}"


def format_summary(ok: int, failed: int) -> str:
    return f"Fetched {ok} OK, {failed} errors"


class ResultAggregator:
    """
    Drains the result sink, counting successes and failures.

    Results are kept in arrival order, which varies from run to run.
    """

    def __init__(self, on_result: Optional[Callable[[PageResult], None]] = None):
        self.on_result = on_result
        self.results: List[PageResult] = []
        self.ok = 0
        self.failed = 0
        self.logger = logging.getLogger(__name__)

    def add(self, result: PageResult):
        self.results.append(result)
        if result.ok:
            self.ok += 1
        else:
            self.failed += 1
        if self.on_result is not None:
            self.on_result(result)

    async def drain(self, sink: asyncio.Queue) -> List[PageResult]:
        """Consume results until the scheduler closes the sink."""
        while True:
            item = await sink.get()
            if item is RESULTS_CLOSED:
                break
            self.add(item)
        self.logger.debug(f"Result sink closed after {len(self.results)} results")
        return self.results

    def summary(self) -> str:
        return format_summary(self.ok, self.failed)


@dataclass
class CrawlReport:
    """Everything a finished crawl run produced."""
    seed_url: str
    seed_title: str
    links: List[str]
    results: List[PageResult] = field(default_factory=list)
    ok: int = 0
    failed: int = 0
    elapsed: float = 0.0
    cancelled: bool = False

    @property
    def total(self) -> int:
        return self.ok + self.failed

    def summary(self) -> str:
        return format_summary(self.ok, self.failed)

    def lines(self) -> List[str]:
        """The report as printed by the command line."""
        output = [f"Title: {self.seed_title}", f"Links ({len(self.links)}):"]
        output.extend(f"  {link}" for link in self.links)
        output.extend(format_result(result) for result in self.results)
        output.append(self.summary())
        output.append(f"Running time: {self.elapsed:.3f}s")
        return output
