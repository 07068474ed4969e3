"""
Site crawler core components.
"""

from .errors import (
    InvalidURLError, FetchError, RequestError, BadStatusError, ParseError,
    CrawlCancelledError, SeedFetchError
)
from .url_frontier import (
    LinkResolver, resolve_url, dedupe_links, is_in_scope, filter_in_scope,
    build_link_set, CrawlJob, URLFrontier
)
from .parser import ContentParser, HTMLDocument
from .fetcher import WebFetcher
from .scheduler import RunContext, PageResult, CrawlScheduler, fetch_within
from .aggregator import ResultAggregator, CrawlReport, format_result
from .site_crawler import SiteCrawler

__all__ = [
    'InvalidURLError', 'FetchError', 'RequestError', 'BadStatusError', 'ParseError',
    'CrawlCancelledError', 'SeedFetchError',
    'LinkResolver', 'resolve_url', 'dedupe_links', 'is_in_scope', 'filter_in_scope',
    'build_link_set', 'CrawlJob', 'URLFrontier',
    'ContentParser', 'HTMLDocument',
    'WebFetcher',
    'RunContext', 'PageResult', 'CrawlScheduler', 'fetch_within',
    'ResultAggregator', 'CrawlReport', 'format_result',
    'SiteCrawler'
]
