"""Configuration loading from an optional YAML file, env vars, and CLI args."""

import logging
import os
from dataclasses import dataclass, fields

import yaml

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(ValueError):
    pass


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class Config:
    file_regex_pattern: str | None = None   # comma-separated
    file_glob_pattern: str | None = None    # comma-separated
    idle_timeout_seconds: float = 3600.0
    batch_size: int = 1024
    buffer_size: int = 8192
    lines_per_second: int = 2000
    watch_interval_seconds: float = 5.0
    read_interval_seconds: float = 1.0
    invalid_cache_ttl_seconds: float = 3600.0
    invalid_cache_max_size: int = 1024
    use_fs_events: bool = False
    log_level: str = "INFO"


# Legacy camelCase YAML keys; durations there are milliseconds
_CAMEL_KEYS = {
    "fileRegexPattern": ("file_regex_pattern", None),
    "fileGlobPattern": ("file_glob_pattern", None),
    "idleTimeout": ("idle_timeout_seconds", 1000),
    "batchSize": ("batch_size", None),
    "bufferSize": ("buffer_size", None),
    "linesPerSecond": ("lines_per_second", None),
    "watchInterval": ("watch_interval_seconds", 1000),
    "readInterval": ("read_interval_seconds", 1000),
}

_ENV_KEYS = {
    "LOGTAIL_REGEX_PATTERN": "file_regex_pattern",
    "LOGTAIL_GLOB_PATTERN": "file_glob_pattern",
    "LOGTAIL_IDLE_TIMEOUT": "idle_timeout_seconds",
    "LOGTAIL_BATCH_SIZE": "batch_size",
    "LOGTAIL_BUFFER_SIZE": "buffer_size",
    "LOGTAIL_LINES_PER_SECOND": "lines_per_second",
    "LOGTAIL_WATCH_INTERVAL": "watch_interval_seconds",
    "LOGTAIL_READ_INTERVAL": "read_interval_seconds",
    "LOGTAIL_USE_FS_EVENTS": "use_fs_events",
    "LOG_LEVEL": "log_level",
}

_FIELD_TYPES = {f.name: f.type for f in fields(Config)}
_FIELD_DEFAULTS = {f.name: f.default for f in fields(Config)}


def _coerce(name: str, value):
    kind = _FIELD_TYPES[name]
    if value is None and _FIELD_DEFAULTS[name] is not None:
        raise ConfigError(f"{name}: a value is required")
    try:
        if kind is int:
            return int(value)
        if kind is float:
            return float(value)
        if kind is bool:
            return _parse_bool(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name}: invalid value {value!r}") from e
    if value is None:
        return None
    return str(value)


def load_yaml_config(path: str | None) -> dict:
    """Load settings from a YAML file. Returns empty dict if no path."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError as e:
        raise ConfigError(f"Config file {path} not found") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Config file {path} is not valid YAML: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    logger.info("Loaded YAML config from %s", path)
    return data


def _from_yaml(yaml_data: dict) -> dict:
    kwargs = {}
    for key, value in yaml_data.items():
        if key in _CAMEL_KEYS:
            name, ms = _CAMEL_KEYS[key]
            value = _coerce(name, value)
            if ms and value is not None:
                value = value / ms
            kwargs[name] = value
        elif key in _FIELD_TYPES:
            kwargs[key] = _coerce(key, value)
        else:
            logger.warning("Ignoring unknown config key: %s", key)
    return kwargs


def load_config(yaml_data: dict | None = None, overrides: dict | None = None) -> Config:
    """Build Config from defaults <- YAML data <- env vars <- ``overrides`` (highest priority)."""
    kwargs = _from_yaml(yaml_data or {})

    for env_key, name in _ENV_KEYS.items():
        raw = os.environ.get(env_key)
        if raw is not None and raw != "":
            kwargs[name] = _coerce(name, raw)

    for name, value in (overrides or {}).items():
        if value is not None:
            kwargs[name] = _coerce(name, value)

    if "log_level" in kwargs:
        kwargs["log_level"] = kwargs["log_level"].upper()

    config = Config(**kwargs)
    validate_config(config)
    return config


def validate_config(config: Config):
    """Raise ConfigError if ``config`` cannot drive a watch manager."""
    if not config.file_regex_pattern and not config.file_glob_pattern:
        raise ConfigError("must specify file_regex_pattern or file_glob_pattern")

    for name in ("idle_timeout_seconds", "batch_size", "buffer_size", "lines_per_second",
                 "watch_interval_seconds", "read_interval_seconds",
                 "invalid_cache_ttl_seconds", "invalid_cache_max_size"):
        if getattr(config, name) <= 0:
            raise ConfigError(f"{name} must be positive")

    if config.log_level not in LOG_LEVELS:
        raise ConfigError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
