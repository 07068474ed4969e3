"""Tests for configuration loading and validation."""

import pytest

from sitecrawl.utils.config import (
    Config,
    ConfigManager,
    CrawlerConfig,
    HTTPConfig,
    load_config,
    validate_config,
)


@pytest.mark.unit
class TestDefaults:
    """Built-in configuration."""

    def test_defaults(self):
        config = load_config()

        assert config.crawler.max_concurrency == 8
        assert config.crawler.run_timeout == 45.0
        assert config.crawler.job_timeout == 3.0
        assert config.crawler.user_agent == "LemmeScrapeIt/0.1"
        assert config.http.max_connections == 128
        assert config.http.max_connections_per_host == 32
        assert config.http.request_timeout == 15.0
        assert config.http.connect_timeout == 60.0
        assert config.logging.level == "INFO"
        assert config.logging.file is None


@pytest.mark.unit
class TestLoadConfig:
    """Reading YAML files."""

    def test_load_partial_file(self, tmp_path):
        path = tmp_path / "crawler.yaml"
        path.write_text(
            "crawler:\n"
            "  seed_url: https://example.com/\n"
            "  max_concurrency: 4\n"
            "http:\n"
            "  request_timeout: 5\n"
            "logging:\n"
            "  level: debug\n"
        )

        config = load_config(str(path))

        assert config.crawler.seed_url == "https://example.com/"
        assert config.crawler.max_concurrency == 4
        assert config.crawler.job_timeout == 3.0
        assert config.http.request_timeout == 5
        assert config.http.max_connections == 128
        assert config.logging.level == "debug"

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert load_config(str(path)) == Config()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "nope.yaml"))

    def test_unknown_key_rejected(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("crawler:\n  max_depth: 3\n")

        with pytest.raises(ValueError, match="max_depth"):
            load_config(str(path))

    def test_unknown_section_rejected(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("storage:\n  path: crawl.db\n")

        with pytest.raises(ValueError, match="storage"):
            load_config(str(path))

    def test_section_must_be_mapping(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("crawler: 3\n")

        with pytest.raises(ValueError):
            load_config(str(path))

    def test_invalid_value_rejected(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("crawler:\n  max_concurrency: 0\n")

        with pytest.raises(ValueError, match="max_concurrency"):
            load_config(str(path))

    def test_manager_requires_load(self):
        with pytest.raises(ValueError):
            ConfigManager().config

    def test_malformed_yaml_rejected(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("crawler: [unclosed\n")

        with pytest.raises(ValueError, match="Invalid YAML"):
            load_config(str(path))

    @pytest.mark.parametrize("body, key", [
        ("crawler:\n  max_concurrency: eight\n", "crawler.max_concurrency"),
        ("crawler:\n  max_concurrency: 2.5\n", "crawler.max_concurrency"),
        ("crawler:\n  run_timeout: true\n", "crawler.run_timeout"),
        ("http:\n  request_timeout: soon\n", "http.request_timeout"),
        ("crawler:\n  seed_url: 42\n", "crawler.seed_url"),
        ("logging:\n  json: 'yes'\n", "logging.json"),
    ])
    def test_wrongly_typed_value_rejected(self, tmp_path, body, key):
        path = tmp_path / "bad.yaml"
        path.write_text(body)

        with pytest.raises(ValueError, match=key):
            load_config(str(path))

    def test_int_accepted_for_float_setting(self, tmp_path):
        path = tmp_path / "crawler.yaml"
        path.write_text("crawler:\n  run_timeout: 30\n  seed_url: null\n")

        config = load_config(str(path))

        assert config.crawler.run_timeout == 30
        assert config.crawler.seed_url is None


@pytest.mark.unit
class TestValidation:
    """Value checks."""

    @pytest.mark.parametrize("crawler", [
        CrawlerConfig(max_concurrency=0),
        CrawlerConfig(run_timeout=0),
        CrawlerConfig(job_timeout=-1),
    ])
    def test_bad_crawler_values(self, crawler):
        with pytest.raises(ValueError):
            validate_config(Config(crawler=crawler))

    @pytest.mark.parametrize("http", [
        HTTPConfig(request_timeout=0),
        HTTPConfig(max_connections=0),
        HTTPConfig(max_connections_per_host=0),
    ])
    def test_bad_http_values(self, http):
        with pytest.raises(ValueError):
            validate_config(Config(http=http))

    def test_bad_log_level(self):
        config = Config()
        config.logging.level = "LOUD"

        with pytest.raises(ValueError, match="LOUD"):
            validate_config(config)


@pytest.mark.unit
class TestOverrides:
    """Command line overrides."""

    def test_overrides_replace_values(self):
        base = Config()
        config = base.with_overrides(max_concurrency=2, job_timeout=None)

        assert config.crawler.max_concurrency == 2
        assert config.crawler.job_timeout == 3.0
        assert base.crawler.max_concurrency == 8

    def test_unknown_override(self):
        with pytest.raises(ValueError):
            Config().with_overrides(max_depth=3)

    def test_invalid_override(self):
        with pytest.raises(ValueError):
            Config().with_overrides(max_concurrency=0)
