"""
Configuration Module - Load and manage memstore configuration.

This module provides support for loading configuration from:
- YAML configuration file (<data_dir>/config.yml)
- Environment variables
- The API key file written by `mem set-key`
- Programmatic configuration

Configuration precedence (highest to lowest):
1. Programmatic configuration (keyword overrides, CLI flags)
2. Environment variables
3. Configuration file
4. API key file
5. Default values
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from .errors import ConfigError, ValidationError


logger = logging.getLogger(__name__)


DATA_DIR_ENV_VAR = "MEM_DATA_DIR"
DEFAULT_DATA_DIR_NAME = ".mem"
CONFIG_FILE_NAME = "config.yml"
API_KEY_FILE_NAME = "openai_api_key.txt"
DEFAULT_STORE_FILE = "store.jsonl"

# Override keyword -> (section, key) in the nested configuration
_OVERRIDE_KEYS = {
    "provider": ("embedding", "provider"),
    "model": ("embedding", "model"),
    "dimensions": ("embedding", "dimensions"),
    "api_key": ("embedding", "api_key"),
    "api_base": ("embedding", "api_base"),
    "timeout": ("embedding", "timeout"),
    "max_retries": ("embedding", "max_retries"),
    "retry_delay": ("embedding", "retry_delay"),
    "store_file": ("store", "file"),
    "lock_timeout": ("store", "lock_timeout"),
    "default_count": ("query", "default_count"),
}


def resolve_data_dir(data_dir: Optional[Union[str, Path]] = None) -> Path:
    """
    Resolve the data directory.

    Uses the explicit argument, then the MEM_DATA_DIR environment variable,
    then ``~/.mem``.
    """
    if data_dir:
        return Path(data_dir).expanduser()
    env_dir = os.environ.get(DATA_DIR_ENV_VAR)
    if env_dir:
        return Path(env_dir).expanduser()
    return Path.home() / DEFAULT_DATA_DIR_NAME


@dataclass
class MemConfig:
    """
    Complete configuration for memstore.

    Example YAML configuration:
        ```yaml
        embedding:
          provider: "openai"
          model: "text-embedding-3-small"
          timeout: 10
          max_retries: 3

        store:
          file: "store.jsonl"
          lock_timeout: 10

        query:
          default_count: 10
        ```
    """

    data_dir: Path = field(default_factory=lambda: Path.home() / DEFAULT_DATA_DIR_NAME)

    # Embedding provider
    provider: str = "openai"
    model: str = ""
    dimensions: Optional[int] = None
    api_key: Optional[str] = None
    api_base: Optional[str] = None
    timeout: float = 10.0

    # Retry configuration
    max_retries: int = 3
    retry_delay: float = 1.0

    # Store
    store_file: str = DEFAULT_STORE_FILE
    lock_timeout: float = 10.0

    # Query
    default_count: int = 10

    def __post_init__(self):
        self.data_dir = Path(self.data_dir).expanduser()
        if self.timeout <= 0:
            raise ConfigError(f"timeout must be positive, got {self.timeout}")
        if self.max_retries < 1:
            raise ConfigError(f"max_retries must be at least 1, got {self.max_retries}")
        if self.retry_delay < 0:
            raise ConfigError(f"retry_delay must not be negative, got {self.retry_delay}")
        if self.lock_timeout <= 0:
            raise ConfigError(f"lock_timeout must be positive, got {self.lock_timeout}")
        if self.default_count <= 0:
            raise ConfigError(f"default_count must be positive, got {self.default_count}")

    @property
    def store_path(self) -> Path:
        """Path to the store file."""
        return self.data_dir / self.store_file

    @classmethod
    def from_dict(cls, data: dict, data_dir: Optional[Path] = None) -> "MemConfig":
        """Create configuration from dictionary."""
        embedding = data.get("embedding") or {}
        store = data.get("store") or {}
        query = data.get("query") or {}
        for name, section in (("embedding", embedding), ("store", store), ("query", query)):
            if not isinstance(section, dict):
                raise ConfigError(f"Config section '{name}' must be a mapping")

        def get(section: dict, key: str, default: Any) -> Any:
            value = section.get(key)
            return default if value is None else value

        try:
            dimensions = embedding.get("dimensions")
            return cls(
                data_dir=data_dir or resolve_data_dir(),
                provider=str(get(embedding, "provider", "openai")).lower(),
                model=get(embedding, "model", ""),
                dimensions=int(dimensions) if dimensions is not None else None,
                api_key=embedding.get("api_key"),
                api_base=embedding.get("api_base"),
                timeout=float(get(embedding, "timeout", 10.0)),
                max_retries=int(get(embedding, "max_retries", 3)),
                retry_delay=float(get(embedding, "retry_delay", 1.0)),
                store_file=str(get(store, "file", DEFAULT_STORE_FILE)),
                lock_timeout=float(get(store, "lock_timeout", 10.0)),
                default_count=int(get(query, "default_count", 10)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration value: {e}") from e

    def to_dict(self) -> dict:
        """Convert configuration to dictionary."""
        return {
            "embedding": {
                "provider": self.provider,
                "model": self.model,
                "dimensions": self.dimensions,
                "api_key": "***" if self.api_key else None,  # Redact API key
                "api_base": self.api_base,
                "timeout": self.timeout,
                "max_retries": self.max_retries,
                "retry_delay": self.retry_delay,
            },
            "store": {
                "file": self.store_file,
                "lock_timeout": self.lock_timeout,
            },
            "query": {
                "default_count": self.default_count,
            },
        }


def load_yaml_file(file_path: Path) -> dict:
    """
    Load a YAML configuration file.

    Args:
        file_path: Path to the YAML file.

    Returns:
        Dictionary with configuration data.

    Raises:
        ConfigError: If the file cannot be read or is not a mapping.
    """
    try:
        with open(file_path, 'r') as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Error loading config file {file_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {file_path} must contain a mapping")
    return data


def load_config_from_env() -> dict:
    """
    Load configuration from environment variables.

    Supported environment variables:
    - MEM_PROVIDER: Embedding provider name
    - MEM_MODEL: Embedding model name
    - MEM_TIMEOUT: Request timeout in seconds
    - MEM_MAX_RETRIES: Attempts per embedding request
    - OPENAI_API_KEY: OpenAI API key
    - OPENAI_BASE_URL: OpenAI-compatible API base URL

    Returns:
        Dictionary with configuration from environment.
    """
    config = {"embedding": {}}

    if os.environ.get("MEM_PROVIDER"):
        config["embedding"]["provider"] = os.environ["MEM_PROVIDER"]

    if os.environ.get("MEM_MODEL"):
        config["embedding"]["model"] = os.environ["MEM_MODEL"]

    if os.environ.get("OPENAI_API_KEY"):
        config["embedding"]["api_key"] = os.environ["OPENAI_API_KEY"]

    if os.environ.get("OPENAI_BASE_URL"):
        config["embedding"]["api_base"] = os.environ["OPENAI_BASE_URL"]

    if os.environ.get("MEM_TIMEOUT"):
        try:
            config["embedding"]["timeout"] = float(os.environ["MEM_TIMEOUT"])
        except ValueError:
            logger.warning(f"Ignoring invalid MEM_TIMEOUT: {os.environ['MEM_TIMEOUT']!r}")

    if os.environ.get("MEM_MAX_RETRIES"):
        try:
            config["embedding"]["max_retries"] = int(os.environ["MEM_MAX_RETRIES"])
        except ValueError:
            logger.warning(f"Ignoring invalid MEM_MAX_RETRIES: {os.environ['MEM_MAX_RETRIES']!r}")

    return config


def read_api_key(data_dir: Optional[Union[str, Path]] = None) -> Optional[str]:
    """Read the stored OpenAI API key, or None if it has not been set."""
    key_path = resolve_data_dir(data_dir) / API_KEY_FILE_NAME
    try:
        api_key = key_path.read_text().strip()
    except FileNotFoundError:
        return None
    except OSError as e:
        raise ConfigError(f"Failed to read API key file {key_path}: {e}") from e
    return api_key or None


def store_api_key(api_key: str, data_dir: Optional[Union[str, Path]] = None) -> Path:
    """
    Store the OpenAI API key in the data directory.

    The key file is readable by the owner only.

    Returns:
        Path to the key file.
    """
    api_key = api_key.strip()
    if not api_key:
        raise ValidationError("API key must not be empty")

    data_dir = resolve_data_dir(data_dir)
    key_path = data_dir / API_KEY_FILE_NAME
    try:
        data_dir.mkdir(parents=True, exist_ok=True)
        fd = os.open(str(key_path), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            f.write(api_key)
    except OSError as e:
        raise ConfigError(
            f"Failed to write API key file. Make sure you have write permissions to {key_path}: {e}"
        ) from e

    logger.info(f"Stored API key in {key_path}")
    return key_path


def load_config(
    config_path: Optional[str] = None,
    data_dir: Optional[Union[str, Path]] = None,
    **overrides: Any,
) -> MemConfig:
    """
    Load configuration from all sources.

    Args:
        config_path: Optional explicit path to config file.
        data_dir: Optional data directory (else MEM_DATA_DIR or ~/.mem).
        **overrides: Configuration overrides; None values are ignored.

    Returns:
        Merged MemConfig.
    """
    data_dir = resolve_data_dir(data_dir)
    merged_config: dict = {}

    api_key = read_api_key(data_dir)
    if api_key:
        merged_config = {"embedding": {"api_key": api_key}}

    if config_path:
        file_path = Path(config_path).expanduser()
        if not file_path.exists():
            raise ConfigError(f"Config file not found: {file_path}")
    else:
        file_path = data_dir / CONFIG_FILE_NAME

    if file_path.exists():
        logger.debug(f"Loading config file: {file_path}")
        merged_config = _deep_merge(merged_config, load_yaml_file(file_path))

    merged_config = _deep_merge(merged_config, load_config_from_env())

    if overrides:
        override_config: dict = {}
        for key, value in overrides.items():
            if value is None:
                continue
            if key not in _OVERRIDE_KEYS:
                raise ConfigError(f"Unknown configuration option: {key}")
            section, name = _OVERRIDE_KEYS[key]
            override_config.setdefault(section, {})[name] = value
        merged_config = _deep_merge(merged_config, override_config)

    return MemConfig.from_dict(merged_config, data_dir=data_dir)


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary.
        override: Dictionary with override values.

    Returns:
        Merged dictionary.
    """
    result = base.copy()

    for key, value in override.items():
        if (
            key in result
            and isinstance(result[key], dict)
            and isinstance(value, dict)
        ):
            result[key] = _deep_merge(result[key], value)
        elif value is not None:
            result[key] = value

    return result
