"""
Tests for configuration and logging setup.
"""

import logging

import pytest

from flowcyto.config import ClusteringConfig
from flowcyto.exceptions import ConfigurationError
from flowcyto.utils.logging_config import get_logger, setup_logging


def test_config_defaults():
    cfg = ClusteringConfig.from_env({})
    assert cfg.max_steps == 10000
    assert cfg.initialization == "kmeans"
    assert cfg.backend == "sklearn"
    assert cfg.log_level == "WARNING"


def test_config_from_env():
    cfg = ClusteringConfig.from_env(
        {
            "FLOWCYTO_MAX_STEPS": "50",
            "FLOWCYTO_INITIALIZATION": "RANDOM",
            "FLOWCYTO_BACKEND": "native",
            "FLOWCYTO_LOG_LEVEL": "debug",
        }
    )
    assert cfg.max_steps == 50
    assert cfg.initialization == "random"
    assert cfg.backend == "native"
    assert cfg.log_level == "DEBUG"


@pytest.mark.parametrize(
    "env",
    [
        {"FLOWCYTO_MAX_STEPS": "many"},
        {"FLOWCYTO_MAX_STEPS": "-1"},
        {"FLOWCYTO_INITIALIZATION": "spectral"},
        {"FLOWCYTO_BACKEND": "gpu"},
        {"FLOWCYTO_LOG_LEVEL": "verbose"},
    ],
)
def test_config_invalid(env):
    with pytest.raises(ConfigurationError):
        ClusteringConfig.from_env(env)


def test_get_logger_namespace():
    assert get_logger("flowcyto.clustering").name == "flowcyto.clustering"
    assert get_logger("scripts.run").name == "flowcyto.scripts.run"


def test_setup_logging_idempotent():
    root = setup_logging("info")
    n_handlers = len(root.handlers)
    root = setup_logging(logging.DEBUG)

    assert root.level == logging.DEBUG
    assert len(root.handlers) == n_handlers
