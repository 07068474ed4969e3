"""
Configuration management for the site crawler.
"""

import yaml
import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Union, get_args, get_origin


DEFAULT_SEED_URL = "https://quotes.toscrape.com/"


@dataclass
class CrawlerConfig:
    """Configuration for crawler behavior."""
    seed_url: Optional[str] = None
    max_concurrency: int = 8
    run_timeout: float = 45.0
    job_timeout: float = 3.0
    user_agent: str = "LemmeScrapeIt/0.1"
    accept: str = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


@dataclass
class HTTPConfig:
    """Configuration for the HTTP transport."""
    request_timeout: float = 15.0
    connect_timeout: float = 60.0
    max_connections: int = 128
    max_connections_per_host: int = 32
    keepalive_timeout: float = 90.0
    dns_cache_ttl: int = 300
    max_body_size: int = 10 * 1024 * 1024


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"
    file: Optional[str] = None
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    json: bool = False


@dataclass
class Config:
    """Main configuration class."""
    crawler: CrawlerConfig = field(default_factory=CrawlerConfig)
    http: HTTPConfig = field(default_factory=HTTPConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def with_overrides(self, **overrides: Any) -> 'Config':
        """
        Return a copy with crawler settings replaced.

        ``None`` values are ignored, so unset command line options keep the
        configured value.
        """
        crawler_fields = {f.name for f in fields(CrawlerConfig)}
        crawler_overrides = {}
        for key, value in overrides.items():
            if value is None:
                continue
            if key not in crawler_fields:
                raise ValueError(f"Unknown crawler setting: {key}")
            crawler_overrides[key] = value

        config = replace(self, crawler=replace(self.crawler, **crawler_overrides))
        validate_config(config)
        return config


def _build_section(section_cls, data: Optional[Dict[str, Any]], name: str):
    if data is None:
        return section_cls()
    if not isinstance(data, dict):
        raise ValueError(f"Configuration section '{name}' must be a mapping")
    known = {f.name for f in fields(section_cls)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown keys in '{name}' section: {', '.join(sorted(unknown))}")
    for f in fields(section_cls):
        if f.name in data:
            _check_type(f"{name}.{f.name}", data[f.name], f.type)
    return section_cls(**data)


def _check_type(key: str, value: Any, expected):
    allowed = get_args(expected) if get_origin(expected) is Union else (expected,)
    if value is None and type(None) in allowed:
        return
    # bool is an int subclass but never a valid number here
    if isinstance(value, bool) and bool not in allowed:
        raise ValueError(f"'{key}' must be of type {_type_name(expected)}, got {value!r}")
    if float in allowed and isinstance(value, int):
        return
    if not isinstance(value, tuple(t for t in allowed if t is not type(None))):
        raise ValueError(f"'{key}' must be of type {_type_name(expected)}, got {value!r}")


def _type_name(expected) -> str:
    if get_origin(expected) is Union:
        return ' or '.join(t.__name__ for t in get_args(expected) if t is not type(None))
    return expected.__name__


def validate_config(config: Config):
    """Validate configuration values."""
    crawler = config.crawler
    if crawler.max_concurrency < 1:
        raise ValueError("max_concurrency must be at least 1")

    if crawler.run_timeout <= 0:
        raise ValueError("run_timeout must be positive")

    if crawler.job_timeout <= 0:
        raise ValueError("job_timeout must be positive")

    http = config.http
    for name in ('request_timeout', 'connect_timeout', 'keepalive_timeout'):
        if getattr(http, name) <= 0:
            raise ValueError(f"{name} must be positive")

    for name in ('max_connections', 'max_connections_per_host', 'max_body_size'):
        if getattr(http, name) < 1:
            raise ValueError(f"{name} must be at least 1")

    if not isinstance(logging.getLevelName(config.logging.level.upper()), int):
        raise ValueError(f"Unknown log level: {config.logging.level}")


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = Path(config_path) if config_path else None
        self._config: Optional[Config] = None

    def load_config(self) -> Config:
        """Load configuration from YAML file, or defaults when no file is set."""
        if self.config_path is None:
            self._config = Config()
            validate_config(self._config)
            return self._config

        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        try:
            with open(self.config_path, 'r') as file:
                config_data = yaml.safe_load(file) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {self.config_path}: {e}") from e

        if not isinstance(config_data, dict):
            raise ValueError(f"Configuration file must contain a mapping: {self.config_path}")

        unknown = set(config_data) - {'crawler', 'http', 'logging'}
        if unknown:
            raise ValueError(f"Unknown configuration sections: {', '.join(sorted(unknown))}")

        self._config = Config(
            crawler=_build_section(CrawlerConfig, config_data.get('crawler'), 'crawler'),
            http=_build_section(HTTPConfig, config_data.get('http'), 'http'),
            logging=_build_section(LoggingConfig, config_data.get('logging'), 'logging'),
        )

        validate_config(self._config)
        logging.getLogger(__name__).debug(f"Configuration loaded from {self.config_path}")
        return self._config

    @property
    def config(self) -> Config:
        """Get the loaded configuration."""
        if not self._config:
            raise ValueError("Configuration not loaded. Call load_config() first.")
        return self._config


def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration from file, or defaults when no path is given."""
    return ConfigManager(config_path).load_config()
