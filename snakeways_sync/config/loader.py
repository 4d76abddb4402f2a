"""
Configuration management and loading.

Handles application settings from a YAML file and environment variables.
"""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from snakeways_sync.storage.db import DEFAULT_DB_PATH
from snakeways_sync.storage.models import ResourceType

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Environment variable suffix per resource type
_ENV_RESOURCE_NAMES = {
    ResourceType.USER: "USERS",
    ResourceType.WAN: "WAN",
    ResourceType.LAN: "LAN",
    ResourceType.INTERFACE: "INTERFACE",
    ResourceType.WAN_USAGE: "WAN_USAGE",
    ResourceType.LAN_USAGE: "LAN_USAGE",
}


@dataclass(frozen=True)
class UpstreamConfig:
    """Connection settings for the Snake Ways appliance."""
    base_url: str = "http://localhost:3001"
    api_key: Optional[str] = None
    timeout: float = 3.0
    verify_ssl: bool = False  # The appliance ships a self-signed certificate

    def __post_init__(self):
        """Validate connection values."""
        if not self.base_url or not self.base_url.strip():
            raise ValueError("base_url is required and cannot be empty")
        if self.timeout <= 0:
            raise ValueError("timeout must be > 0")


@dataclass(frozen=True)
class PollingConfig:
    """Polling schedule for one resource type, in seconds."""
    interval: float
    startup_delay: float = 0.0

    def __post_init__(self):
        """Validate schedule values."""
        if self.interval <= 0:
            raise ValueError("interval must be > 0")
        if self.startup_delay < 0:
            raise ValueError("startup_delay must be >= 0")


# LAN waits for interfaces, usage waits for the WANs and LANs it references
DEFAULT_POLLING: Dict[ResourceType, PollingConfig] = {
    ResourceType.USER: PollingConfig(interval=100),
    ResourceType.WAN: PollingConfig(interval=100),
    ResourceType.INTERFACE: PollingConfig(interval=120),
    ResourceType.LAN: PollingConfig(interval=100, startup_delay=5),
    ResourceType.WAN_USAGE: PollingConfig(interval=60, startup_delay=5),
    ResourceType.LAN_USAGE: PollingConfig(interval=3600, startup_delay=10),
}


@dataclass(frozen=True)
class AppConfig:
    """Complete application configuration."""
    upstream: UpstreamConfig = field(default_factory=UpstreamConfig)
    db_path: str = DEFAULT_DB_PATH
    log_level: str = "INFO"
    polling: Mapping[ResourceType, PollingConfig] = field(
        default_factory=lambda: dict(DEFAULT_POLLING)
    )

    def __post_init__(self):
        """Validate log level and polling coverage."""
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of: {list(LOG_LEVELS)}")
        missing = set(ResourceType) - set(self.polling.keys())
        if missing:
            raise ValueError(f"Missing polling configuration for: {sorted(r.value for r in missing)}")

    def polling_for(self, resource_type: ResourceType) -> PollingConfig:
        """Get the polling schedule for a resource type."""
        return self.polling[resource_type]


def parse_resource_type(value: str) -> ResourceType:
    """Parse a resource type name such as ``wan_usage``.

    Raises:
        ValueError: If the name is not a known resource type
    """
    try:
        return ResourceType(value.strip().lower().replace("-", "_"))
    except ValueError:
        valid = [resource.value for resource in ResourceType]
        raise ValueError(f"Unknown resource type '{value}', must be one of: {valid}")


def load_config(path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Load and validate configuration.

    Values come from defaults, then the YAML file (if given), then
    environment variables. Strict validation ensures no silent
    misconfiguration of the upstream connection or polling schedule.

    Args:
        path: Optional path to YAML configuration file
        environ: Environment mapping, defaults to ``os.environ``

    Returns:
        Validated AppConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config = AppConfig()
    if path is not None:
        config = _load_file(path)
    return _apply_environment(config, os.environ if environ is None else environ)


def _load_file(path: str) -> AppConfig:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration file must contain a mapping")

    allowed_top_keys = {'upstream', 'database', 'logging', 'polling'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    upstream_data = _section(raw_config, 'upstream', {'base_url', 'api_key', 'timeout', 'verify_ssl'})
    defaults = UpstreamConfig()
    upstream = UpstreamConfig(
        base_url=_typed(upstream_data, 'base_url', str, defaults.base_url, 'upstream'),
        api_key=_typed(upstream_data, 'api_key', str, defaults.api_key, 'upstream'),
        timeout=float(_typed(upstream_data, 'timeout', (int, float), defaults.timeout, 'upstream')),
        verify_ssl=_typed(upstream_data, 'verify_ssl', bool, defaults.verify_ssl, 'upstream'),
    )

    database_data = _section(raw_config, 'database', {'path'})
    logging_data = _section(raw_config, 'logging', {'level'})

    polling_data = _section(raw_config, 'polling', {resource.value for resource in ResourceType})
    polling = dict(DEFAULT_POLLING)
    for name, schedule in polling_data.items():
        resource = ResourceType(name)
        polling[resource] = _parse_polling(schedule, polling[resource], f"polling.{name}")

    return AppConfig(
        upstream=upstream,
        db_path=_typed(database_data, 'path', str, DEFAULT_DB_PATH, 'database'),
        log_level=_typed(logging_data, 'level', str, "INFO", 'logging').upper(),
        polling=polling,
    )


def _section(raw_config: Dict, name: str, allowed_keys: set) -> Dict:
    """Return a validated sub-mapping of the configuration."""
    data = raw_config.get(name) or {}
    if not isinstance(data, dict):
        raise ValueError(f"'{name}' must be a dictionary")
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown {name} keys: {unknown_keys}")
    return data


def _typed(data: Dict, key: str, expected, default: Any, path: str) -> Any:
    if key not in data or data[key] is None:
        return default
    value = data[key]
    # bool is an int subclass, don't let `true` pass as a number
    if isinstance(value, bool) and expected is not bool:
        raise ValueError(f"'{key}' in {path} has invalid type bool")
    if not isinstance(value, expected):
        raise ValueError(f"'{key}' in {path} has invalid type {type(value).__name__}")
    return value


def _parse_polling(data: Any, default: PollingConfig, path: str) -> PollingConfig:
    """Parse and validate one polling schedule.

    Args:
        data: Schedule mapping with optional interval and startup_delay
        default: Schedule used for missing keys
        path: Path for error messages

    Returns:
        Validated PollingConfig

    Raises:
        ValueError: If the schedule is invalid
    """
    if not isinstance(data, dict):
        raise ValueError(f"'{path}' must be a dictionary")

    allowed_keys = {'interval', 'startup_delay'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in {path}: {unknown_keys}")

    interval = _typed(data, 'interval', (int, float), default.interval, path)
    startup_delay = _typed(data, 'startup_delay', (int, float), default.startup_delay, path)
    try:
        return PollingConfig(interval=float(interval), startup_delay=float(startup_delay))
    except ValueError as e:
        raise ValueError(f"Invalid {path}: {e}")


def _apply_environment(config: AppConfig, environ: Mapping[str, str]) -> AppConfig:
    upstream = config.upstream
    if environ.get("SNAKE_WAYS_BASE_URL"):
        upstream = replace(upstream, base_url=environ["SNAKE_WAYS_BASE_URL"])
    if environ.get("SNAKE_WAYS_API_KEY"):
        upstream = replace(upstream, api_key=environ["SNAKE_WAYS_API_KEY"])
    if environ.get("SNAKE_WAYS_TIMEOUT"):
        upstream = replace(upstream, timeout=_env_number(environ, "SNAKE_WAYS_TIMEOUT"))

    polling = dict(config.polling)
    for resource, env_name in _ENV_RESOURCE_NAMES.items():
        key = f"SNAKE_WAYS_{env_name}_POLLING_INTERVAL"
        if environ.get(key):
            polling[resource] = replace(polling[resource], interval=_env_number(environ, key))

    return replace(
        config,
        upstream=upstream,
        db_path=environ.get("SNAKE_WAYS_DB_PATH") or config.db_path,
        log_level=(environ.get("SNAKE_WAYS_LOG_LEVEL") or config.log_level).upper(),
        polling=polling,
    )


def _env_number(environ: Mapping[str, str], key: str) -> float:
    try:
        return float(environ[key])
    except ValueError:
        raise ValueError(f"Environment variable {key} must be a number, got '{environ[key]}'")
