"""
Configuration management for the crawler.

The configuration file is YAML::

    search:
      depth: 2
      same_host: true
      contains_tags: [img]
    record:
      tags: [img]
      attr: src
"""

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from ..errors import ConfigError


DEFAULT_CONFIG_PATH = 'crawl.yml'
LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


@dataclass
class SearchConfig:
    """Constraints on which links are followed."""
    depth: int = 0
    same_host: bool = False
    contains_tags: List[str] = field(default_factory=list)


@dataclass
class RecordConfig:
    """What to record from each page and where to write it."""
    tags: List[str] = field(default_factory=list)
    attr: str = ''
    output: Optional[str] = None


@dataclass
class FetcherConfig:
    """Configuration for the HTTP fetcher."""
    user_agent: str = 'Mozilla/5.0'
    request_timeout: float = 30
    max_concurrent_requests: int = 10
    verify_tls: bool = True


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = 'INFO'
    file: Optional[str] = None
    format: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    json: bool = False


@dataclass
class MonitoringConfig:
    """Configuration for monitoring."""
    metrics_enabled: bool = False
    prometheus_port: int = 8000


@dataclass
class Config:
    """Main configuration class."""
    search: SearchConfig = field(default_factory=SearchConfig)
    record: RecordConfig = field(default_factory=RecordConfig)
    fetcher: FetcherConfig = field(default_factory=FetcherConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)


@dataclass(frozen=True)
class SearchConstraints:
    """Read-only constraints shared by every page task of a crawl."""
    max_depth: int = 0
    same_host: bool = False
    contains_tags: Tuple[str, ...] = ()
    record_tags: Tuple[str, ...] = ()
    record_attr: str = ''

    @classmethod
    def from_config(cls, config: Config) -> 'SearchConstraints':
        return cls(
            max_depth=config.search.depth,
            same_host=config.search.same_host,
            contains_tags=tuple(config.search.contains_tags),
            record_tags=tuple(config.record.tags),
            record_attr=config.record.attr
        )


SECTIONS = {
    'search': SearchConfig,
    'record': RecordConfig,
    'fetcher': FetcherConfig,
    'logging': LoggingConfig,
    'monitoring': MonitoringConfig,
}


def _build_section(name: str, section_cls, data: Any):
    if data is None:
        return section_cls()
    if not isinstance(data, dict):
        raise ConfigError(f"Section '{name}' must be a mapping")

    known = {f.name for f in fields(section_cls)}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"Unknown keys in section '{name}': {', '.join(sorted(map(str, unknown)))}")

    return section_cls(**data)


def parse_config(data: Optional[Dict[str, Any]]) -> Config:
    """Build and validate a Config from an already-parsed mapping."""
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError("Configuration root must be a mapping")

    unknown = set(data) - set(SECTIONS)
    if unknown:
        raise ConfigError(f"Unknown configuration sections: {', '.join(sorted(map(str, unknown)))}")

    config = Config(**{
        name: _build_section(name, section_cls, data.get(name))
        for name, section_cls in SECTIONS.items()
    })
    validate_config(config)
    return config


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_str_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


def validate_config(config: Config):
    """Validate configuration values."""
    search = config.search
    if search.contains_tags is None:
        search.contains_tags = []
    elif isinstance(search.contains_tags, str):
        search.contains_tags = [search.contains_tags]
    if not _is_int(search.depth) or search.depth < 0:
        raise ConfigError("search.depth must be a non-negative integer")
    if not isinstance(search.same_host, bool):
        raise ConfigError("search.same_host must be true or false")
    if not _is_str_list(search.contains_tags):
        raise ConfigError("search.contains_tags must be a list of tag names")

    record = config.record
    if record.tags is None:
        record.tags = []
    elif isinstance(record.tags, str):
        record.tags = [record.tags]
    if not _is_str_list(record.tags):
        raise ConfigError("record.tags must be a list of tag names")
    if record.attr is None:
        record.attr = ''
    if not isinstance(record.attr, str):
        raise ConfigError("record.attr must be a string")
    if record.output is not None and not isinstance(record.output, str):
        raise ConfigError("record.output must be a file path")

    fetcher = config.fetcher
    if not isinstance(fetcher.request_timeout, (int, float)) or fetcher.request_timeout <= 0:
        raise ConfigError("fetcher.request_timeout must be positive")
    if not _is_int(fetcher.max_concurrent_requests) or fetcher.max_concurrent_requests < 1:
        raise ConfigError("fetcher.max_concurrent_requests must be at least 1")
    if not isinstance(fetcher.verify_tls, bool):
        raise ConfigError("fetcher.verify_tls must be true or false")

    if str(config.logging.level).upper() not in LOG_LEVELS:
        raise ConfigError(f"logging.level must be one of {', '.join(LOG_LEVELS)}")

    if not _is_int(config.monitoring.prometheus_port) or not 0 < config.monitoring.prometheus_port < 65536:
        raise ConfigError("monitoring.prometheus_port must be a valid port")

    logging.getLogger(__name__).debug("Configuration validation passed")


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_path: str = DEFAULT_CONFIG_PATH):
        self.config_path = Path(config_path)
        self._config: Optional[Config] = None

    def load_config(self) -> Config:
        """Load configuration from YAML file."""
        if not self.config_path.exists():
            raise ConfigError(f"Configuration file not found: {self.config_path}")

        try:
            with open(self.config_path, 'r', encoding='utf-8') as file:
                config_data = yaml.safe_load(file)
        except OSError as e:
            raise ConfigError(f"yaml file read error: {e}")
        except yaml.YAMLError as e:
            raise ConfigError(f"yaml option error: {e}")

        try:
            self._config = parse_config(config_data)
        except TypeError as e:
            raise ConfigError(f"yaml option error: {e}")
        return self._config

    @property
    def config(self) -> Config:
        """Get the loaded configuration."""
        if not self._config:
            raise ConfigError("Configuration not loaded. Call load_config() first.")
        return self._config


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> Config:
    """Load configuration from file."""
    return ConfigManager(config_path).load_config()
