"""Tests for the command line entry point."""

import pytest

import main as cli
from sitecrawl.crawler.aggregator import CrawlReport
from sitecrawl.crawler.errors import RequestError, SeedFetchError
from sitecrawl.crawler.scheduler import PageResult


class StubCrawler:
    """Replaces SiteCrawler so no network is touched."""

    seen_configs = []
    seed_error = None

    def __init__(self, config):
        self.config = config
        StubCrawler.seen_configs.append(config)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None

    def cancel(self, reason="cancelled"):
        pass

    async def crawl(self, seed_url):
        if StubCrawler.seed_error is not None:
            raise StubCrawler.seed_error
        return CrawlReport(
            seed_url=seed_url,
            seed_title="T",
            links=["https://example.com/a"],
            results=[PageResult(url="https://example.com/a", title="A")],
            ok=1,
            failed=0,
            elapsed=0.25,
        )


@pytest.fixture
def stub_crawler(monkeypatch):
    StubCrawler.seen_configs = []
    StubCrawler.seed_error = None
    monkeypatch.setattr(cli, "SiteCrawler", StubCrawler)
    monkeypatch.setattr(cli, "setup_logging", lambda config: None)
    return StubCrawler


@pytest.mark.unit
class TestMain:
    """CLI behaviour."""

    def test_prints_report(self, stub_crawler, capsys):
        assert cli.main(["https://example.com/", "--max-concurrency", "3"]) == 0

        out = capsys.readouterr().out.splitlines()
        assert out == [
            "Title: T",
            "Links (1):",
            "  https://example.com/a",
            "https://example.com/a - A",
            "Fetched 1 OK, 0 errors",
            "Running time: 0.250s",
        ]
        assert stub_crawler.seen_configs[0].crawler.max_concurrency == 3

    def test_seed_failure_exit_status(self, stub_crawler, capsys):
        stub_crawler.seed_error = SeedFetchError(
            "https://example.com/", RequestError("https://example.com/", "no such host")
        )

        assert cli.main(["https://example.com/"]) == 1
        assert "Error fetching: request failed: no such host" in capsys.readouterr().out

    def test_missing_config_file(self, stub_crawler, tmp_path, capsys):
        assert cli.main(["--config", str(tmp_path / "nope.yaml")]) == 1
        assert "not found" in capsys.readouterr().out

    def test_invalid_override(self, stub_crawler, capsys):
        assert cli.main(["https://example.com/", "--job-timeout", "0"]) == 1

    def test_invalid_log_level(self, stub_crawler, capsys):
        assert cli.main(["https://example.com/", "--log-level", "LOUD"]) == 1

    def test_malformed_config_file(self, stub_crawler, tmp_path, capsys):
        path = tmp_path / "bad.yaml"
        path.write_text("crawler: [unclosed\n")

        assert cli.main(["--config", str(path)]) == 1
        assert "Invalid YAML" in capsys.readouterr().out
        assert stub_crawler.seen_configs == []

    def test_wrongly_typed_config_value(self, stub_crawler, tmp_path, capsys):
        path = tmp_path / "bad.yaml"
        path.write_text("crawler:\n  max_concurrency: eight\n")

        assert cli.main(["--config", str(path)]) == 1
        assert "crawler.max_concurrency" in capsys.readouterr().out
