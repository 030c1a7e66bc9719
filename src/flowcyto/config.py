"""
Configuration management for flowcyto.

Loads clustering defaults from environment variables (typically from a .env
file). Uses python-dotenv to load .env automatically.

Usage:
    from flowcyto.config import config

    # Default step budget of the Gaussian mixture estimator
    budget = config.max_steps

    # Reload after changing the environment
    cfg = ClusteringConfig.from_env()
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from .exceptions import ConfigurationError

# Look for .env in project root (parent of src/)
env_path = Path(__file__).parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)

INITIALIZATION_MODES = ("kmeans", "random")
BACKEND_NAMES = ("sklearn", "native")
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET")


def _int_from_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e


@dataclass
class ClusteringConfig:
    """Default settings shared by the clustering operations."""

    max_steps: int = 10000
    initialization: str = "kmeans"
    backend: str = "sklearn"
    log_level: str = "WARNING"

    def __post_init__(self):
        """Validate values."""
        if self.max_steps < 0:
            raise ConfigurationError(
                f"max_steps must be >= 0, got {self.max_steps}"
            )
        if self.initialization not in INITIALIZATION_MODES:
            raise ConfigurationError(
                f"initialization must be one of {INITIALIZATION_MODES}, "
                f"got {self.initialization!r}"
            )
        if self.backend not in BACKEND_NAMES:
            raise ConfigurationError(
                f"backend must be one of {BACKEND_NAMES}, got {self.backend!r}"
            )
        if self.log_level not in LOG_LEVELS:
            raise ConfigurationError(
                f"log_level must be one of {LOG_LEVELS}, got {self.log_level!r}"
            )

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "ClusteringConfig":
        """
        Build a configuration from environment variables.

        Args:
            env: Mapping to read from. Defaults to ``os.environ``.

        Returns:
            ClusteringConfig

        Raises:
            ConfigurationError: If a variable holds an invalid value
        """
        if env is None:
            env = os.environ
        return cls(
            max_steps=_int_from_env(env, "FLOWCYTO_MAX_STEPS", 10000),
            initialization=env.get("FLOWCYTO_INITIALIZATION", "kmeans").lower(),
            backend=env.get("FLOWCYTO_BACKEND", "sklearn").lower(),
            log_level=env.get("FLOWCYTO_LOG_LEVEL", "WARNING").upper(),
        )


# Global config instance
config = ClusteringConfig.from_env()
