"""
Configuration loader — reads the engine config YAML into ``EngineConfig``.

Lookup order for the file:
    explicit path  >  CLICKPKG_CONFIG env var  >  /etc/clickpkg/config.yml

A missing file is not an error: the engine runs on defaults. The root
directory can be overridden last via ``root_dir`` (CLI ``--root``) or
the CLICKPKG_ROOT env var.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

from clickpkg.core.models.layout import EngineConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path("/etc/clickpkg/config.yml")
CONFIG_ENV = "CLICKPKG_CONFIG"
ROOT_ENV = "CLICKPKG_ROOT"


class ConfigError(Exception):
    """Raised when the engine configuration is invalid."""


def find_config_file(path: Path | None = None) -> Path | None:
    """Resolve which config file to read, or None for built-in defaults.

    An explicitly requested file must exist; the env-var and system
    default locations are optional.
    """
    if path is not None:
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")
        return path

    env_path = os.environ.get(CONFIG_ENV)
    if env_path:
        candidate = Path(env_path)
        if not candidate.is_file():
            raise ConfigError(f"{CONFIG_ENV} points to a missing file: {candidate}")
        return candidate

    if DEFAULT_CONFIG_FILE.is_file():
        return DEFAULT_CONFIG_FILE
    return None


def load_config(path: Path | None = None, root_dir: Path | None = None) -> EngineConfig:
    """Load and validate the engine configuration.

    Args:
        path: Explicit config file. If None, uses the lookup order above.
        root_dir: Overrides ``root_dir`` from file and environment.

    Returns:
        Validated EngineConfig.

    Raises:
        ConfigError: If the file is unreadable or invalid.
    """
    config_file = find_config_file(path)
    data: dict = {}

    if config_file is not None:
        logger.debug("Loading engine config from %s", config_file)
        try:
            raw = config_file.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot read {config_file}: {e}") from e

        try:
            loaded = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_file}: {e}") from e

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError(
                f"Expected a YAML mapping in {config_file}, got {type(loaded).__name__}"
            )
        # The YAML may wrap everything under an "engine" key or be flat
        data = loaded.get("engine", loaded) if "engine" in loaded else loaded

    env_root = os.environ.get(ROOT_ENV)
    if root_dir is not None:
        data = {**data, "root_dir": str(root_dir)}
    elif env_root:
        data = {**data, "root_dir": env_root}

    try:
        config = EngineConfig.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid engine configuration: {e}") from e

    logger.info("Engine root is %s", config.root_dir)
    return config
