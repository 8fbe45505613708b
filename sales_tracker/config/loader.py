"""
Configuration management and loading.

Handles application settings read from a YAML file.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..sdk.insights import DEFAULT_MODEL
from ..storage.db import DEFAULT_DB_PATH
from ..sync.mirror import DEFAULT_TIMEOUT

CONFIG_ENV_VAR = "SALES_TRACKER_CONFIG"

LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class StorageConfig:
    """Where the local records live."""
    path: str = DEFAULT_DB_PATH


@dataclass(frozen=True)
class MirrorConfig:
    """External spreadsheet mirror. No endpoint disables mirroring."""
    endpoint: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT

    def __post_init__(self):
        """Validate timeout is positive."""
        if self.timeout <= 0:
            raise ValueError("mirror timeout must be > 0")


@dataclass(frozen=True)
class AIConfig:
    """AI collaborator settings."""
    model: str = DEFAULT_MODEL


@dataclass(frozen=True)
class AppConfig:
    """Complete application configuration."""
    storage: StorageConfig = field(default_factory=StorageConfig)
    mirror: MirrorConfig = field(default_factory=MirrorConfig)
    ai: AIConfig = field(default_factory=AIConfig)
    log_level: str = "WARNING"


def resolve_config_path(path: Optional[str] = None) -> Optional[str]:
    """Explicit path first, then the ``SALES_TRACKER_CONFIG`` env var."""
    return path or os.environ.get(CONFIG_ENV_VAR) or None


def load_app_config(path: Optional[str] = None) -> AppConfig:
    """Load and validate application configuration from a YAML file.

    Args:
        path: Path to YAML configuration file; None returns the defaults

    Returns:
        Validated AppConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    if path is None:
        return AppConfig()

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        return AppConfig()
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a dictionary")

    allowed_top_keys = {'storage', 'mirror', 'ai', 'logging'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    storage_data = _section(raw_config, 'storage', {'path'})
    storage = StorageConfig()
    if 'path' in storage_data:
        if not isinstance(storage_data['path'], str) or not storage_data['path'].strip():
            raise ValueError("'storage.path' must be a non-empty string")
        storage = StorageConfig(path=storage_data['path'])

    mirror_data = _section(raw_config, 'mirror', {'endpoint', 'timeout'})
    endpoint = mirror_data.get('endpoint')
    if endpoint is not None and not isinstance(endpoint, str):
        raise ValueError("'mirror.endpoint' must be a string")
    timeout = mirror_data.get('timeout', DEFAULT_TIMEOUT)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
        raise ValueError("'mirror.timeout' must be a number")
    mirror = MirrorConfig(endpoint=endpoint or None, timeout=float(timeout))

    ai_data = _section(raw_config, 'ai', {'model'})
    model = ai_data.get('model', DEFAULT_MODEL)
    if not isinstance(model, str) or not model.strip():
        raise ValueError("'ai.model' must be a non-empty string")

    logging_data = _section(raw_config, 'logging', {'level'})
    level = logging_data.get('level', 'WARNING')
    if not isinstance(level, str) or level.upper() not in LOG_LEVELS:
        raise ValueError(f"'logging.level' must be one of: {sorted(LOG_LEVELS)}")

    return AppConfig(
        storage=storage,
        mirror=mirror,
        ai=AIConfig(model=model),
        log_level=level.upper(),
    )


def _section(raw_config: Dict[str, Any], name: str, allowed_keys: set) -> Dict[str, Any]:
    """Fetch an optional section and reject keys it does not know.

    Args:
        raw_config: Parsed YAML document
        name: Section name
        allowed_keys: Keys accepted in the section

    Returns:
        Section contents, empty if absent

    Raises:
        ValueError: If the section is not a dictionary or has unknown keys
    """
    data = raw_config.get(name)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"'{name}' must be a dictionary")

    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown {name} keys: {unknown_keys}")
    return data
