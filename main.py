#!/usr/bin/env python3
"""
Main entry point for the site crawler.
"""

import asyncio
import argparse
import logging
import signal
import sys
from typing import Optional

from sitecrawl import __version__
from sitecrawl.crawler import SeedFetchError, SiteCrawler
from sitecrawl.utils.config import DEFAULT_SEED_URL, Config, load_config, validate_config
from sitecrawl.utils.logger import log_system_info, setup_logging


class CrawlerApp:
    """Main application class for the site crawler."""

    def __init__(self):
        self.crawler: Optional[SiteCrawler] = None
        self.logger = logging.getLogger(__name__)

    def setup_signal_handlers(self):
        """Cancel the running crawl on SIGINT/SIGTERM; the report is still printed."""
        loop = asyncio.get_running_loop()

        def signal_handler(signum):
            self.logger.info(f"Received signal {signum}, cancelling crawl...")
            if self.crawler:
                self.crawler.cancel(f"signal {signum}")

        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, signal_handler, signum)
            except NotImplementedError:
                # Not available on Windows event loops
                self.logger.debug(f"Cannot install handler for signal {signum}")

    async def run(self, config: Config, seed_url: str) -> int:
        """Run one crawl and print its report."""
        self.setup_signal_handlers()

        self.logger.info("=== SITE CRAWLER STARTING ===")
        self.logger.info(f"Seed URL: {seed_url}")
        self.logger.info(f"Max concurrency: {config.crawler.max_concurrency}")
        self.logger.info(f"Run timeout: {config.crawler.run_timeout}s, "
                         f"job timeout: {config.crawler.job_timeout}s")

        try:
            async with SiteCrawler(config) as crawler:
                self.crawler = crawler
                report = await crawler.crawl(seed_url)
        except SeedFetchError as e:
            print(f"Error fetching: {e.cause}")
            return 1
        finally:
            self.crawler = None
            self.logger.info("=== SITE CRAWLER FINISHED ===")

        for line in report.lines():
            print(line)
        return 0


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Fetch a page and every same-origin page it links to",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py https://example.com/                  # Crawl with defaults
  python main.py https://example.com/ --max-concurrency 4
  python main.py --config crawler.yaml                 # Seed and settings from a file
        """
    )

    parser.add_argument(
        'seed_url',
        nargs='?',
        help=f'Page to start from (default: crawler.seed_url from the config, '
             f'then {DEFAULT_SEED_URL})'
    )

    parser.add_argument(
        '--config',
        help='Path to a YAML configuration file'
    )

    parser.add_argument(
        '--max-concurrency',
        type=int,
        help='Maximum number of pages fetched at the same time'
    )

    parser.add_argument(
        '--run-timeout',
        type=float,
        help='Time limit for the whole crawl, in seconds'
    )

    parser.add_argument(
        '--job-timeout',
        type=float,
        help='Time limit for each linked page, in seconds'
    )

    parser.add_argument(
        '--user-agent',
        help='User-Agent header to send'
    )

    parser.add_argument(
        '--log-level',
        help='Log level (DEBUG, INFO, WARNING, ...)'
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'Site Crawler {__version__}'
    )

    args = parser.parse_args(argv)

    try:
        config = load_config(args.config).with_overrides(
            max_concurrency=args.max_concurrency,
            run_timeout=args.run_timeout,
            job_timeout=args.job_timeout,
            user_agent=args.user_agent,
        )
        if args.log_level:
            config.logging.level = args.log_level
            validate_config(config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    setup_logging(config.logging)
    log_system_info()

    seed_url = args.seed_url or config.crawler.seed_url or DEFAULT_SEED_URL

    app = CrawlerApp()
    try:
        return asyncio.run(app.run(config, seed_url))
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 1


if __name__ == '__main__':
    sys.exit(main())
