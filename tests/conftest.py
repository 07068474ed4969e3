"""Shared test fixtures and fakes."""

import asyncio
from typing import Dict, List, Optional, Sequence

import pytest

from sitecrawl.utils.config import Config, CrawlerConfig


SEED_URL = "https://example.com/"


class FakeDocument:
    """Stands in for HTMLDocument."""

    def __init__(self, title: str = "", links: Sequence[str] = ()):
        self.title = title
        self.links = list(links)

    def find_title(self) -> str:
        return self.title

    def find_links(self) -> List[str]:
        return list(self.links)


class FakeFetcher:
    """
    Instrumented fetcher: records every call and how many run at once.

    Pages not registered in ``pages`` get a generated title.
    """

    def __init__(self, default_delay: float = 0.0):
        self.pages: Dict[str, FakeDocument] = {}
        self.errors: Dict[str, Exception] = {}
        self.delays: Dict[str, float] = {}
        self.default_delay = default_delay

        self.in_flight = 0
        self.peak_in_flight = 0
        self.started: List[str] = []
        self.completed: List[str] = []
        self.cancelled: List[str] = []
        self.timeouts: List[Optional[float]] = []

    async def fetch(self, url: str, timeout: Optional[float] = None):
        self.started.append(url)
        self.timeouts.append(timeout)
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(url, self.default_delay))
            if url in self.errors:
                raise self.errors[url]
            self.completed.append(url)
            return self.pages.get(url) or FakeDocument(title=f"Title of {url}")
        except asyncio.CancelledError:
            self.cancelled.append(url)
            raise
        finally:
            self.in_flight -= 1


def drain_nowait(queue: asyncio.Queue) -> list:
    """Everything currently on a queue, in order."""
    items = []
    while not queue.empty():
        items.append(queue.get_nowait())
    return items


@pytest.fixture
def fake_fetcher():
    return FakeFetcher()


@pytest.fixture
def config():
    return Config(crawler=CrawlerConfig(
        seed_url=SEED_URL,
        max_concurrency=4,
        run_timeout=5.0,
        job_timeout=1.0,
    ))
