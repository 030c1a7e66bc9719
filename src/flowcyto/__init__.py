"""
flowcyto - Clustering for flow-cytometry experiments

This package provides:
- An experiment container with a repository-style read/write interface
- A from-scratch Gaussian mixture estimator with label-stability convergence
- K-means and agglomerative clustering through pluggable backends
"""

__version__ = "0.1.0"

from .exceptions import ConfigurationError, ShapeError
from .experiment import ExperimentStore, FlowCytometryExperiment

# Explicitly import subpackages to ensure they're discoverable
from . import clustering
from . import utils

__all__ = [
    "ConfigurationError",
    "ShapeError",
    "ExperimentStore",
    "FlowCytometryExperiment",
    "clustering",
    "utils",
]
