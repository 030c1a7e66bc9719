"""
Host container for flow-cytometry experiments.

``ExperimentStore`` is the repository interface the clustering operations
talk to: they read the feature matrix, embeddings and channel annotations
through it, and write label vectors and result records back through it.
``FlowCytometryExperiment`` is the in-memory implementation, laid out as

    X     (n_cells, n_channels) primary feature matrix
    obs   per-cell annotation table (pandas DataFrame, n_cells rows)
    var   per-channel annotation table (pandas DataFrame, n_channels rows)
    obsm  named embeddings, each (n_cells, n_dims)
    uns   unstructured results keyed by name
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Sequence

import numpy as np
import pandas as pd

from .exceptions import ShapeError
from .utils.logging_config import get_logger

logger = get_logger(__name__)


class ExperimentStore(ABC):
    """
    Abstract repository over an experiment's matrices and annotations.

    Clustering code depends only on this interface, so any container that
    can serve these reads and accept these writes can be clustered.
    """

    @property
    @abstractmethod
    def n_observations(self) -> int:
        """Number of observations (cells)."""

    # ========== READ OPERATIONS ==========

    @abstractmethod
    def get_matrix(self) -> np.ndarray:
        """Return the primary (n_observations, n_channels) feature matrix."""

    @abstractmethod
    def get_embedding(self, key: str) -> np.ndarray:
        """
        Return the embedding stored under *key*.

        Raises:
            KeyError: If no embedding is stored under *key*
        """

    @abstractmethod
    def get_channel_annotation(self, column: str) -> pd.Series:
        """
        Return a column of the per-channel annotation table.

        Raises:
            KeyError: If the column does not exist
        """

    # ========== WRITE OPERATIONS ==========

    @abstractmethod
    def set_observation_labels(self, key: str, labels: np.ndarray) -> None:
        """Store a per-observation label vector, replacing any previous one."""

    @abstractmethod
    def set_result(self, key: str, record: Dict[str, Any]) -> None:
        """Store an unstructured result record, replacing any previous one."""


class FlowCytometryExperiment(ExperimentStore):
    """
    In-memory flow-cytometry experiment.

    Usage:
        fct = FlowCytometryExperiment(
            X,
            var=pd.DataFrame({"channel": ["FSC-A", "SSC-A"]}),
        )
        fct.obsm["umap"] = embedding
    """

    def __init__(
        self,
        X: np.ndarray,
        obs: Optional[pd.DataFrame] = None,
        var: Optional[pd.DataFrame] = None,
        obsm: Optional[Dict[str, np.ndarray]] = None,
        uns: Optional[Dict[str, Any]] = None,
        channels: Optional[Sequence[str]] = None,
    ):
        """
        Initialize the experiment.

        Args:
            X: Feature matrix of shape (n_cells, n_channels)
            obs: Per-cell annotations; defaults to an empty table with n_cells rows
            var: Per-channel annotations; defaults to a table with a
                ``channel`` column
            obsm: Named embeddings
            uns: Unstructured results
            channels: Channel names used when *var* is not given

        Raises:
            ShapeError: If X is not 2-D or the tables do not match its shape
        """
        X = np.asarray(X, dtype=np.float64)
        if X.ndim != 2:
            raise ShapeError(f"X must be 2-D, got shape {X.shape}")
        n_cells, n_channels = X.shape

        if obs is None:
            obs = pd.DataFrame(index=pd.RangeIndex(n_cells))
        if var is None:
            if channels is None:
                channels = [f"channel_{i}" for i in range(n_channels)]
            var = pd.DataFrame({"channel": list(channels)})
        if len(obs) != n_cells:
            raise ShapeError(f"obs has {len(obs)} rows, expected {n_cells}")
        if len(var) != n_channels:
            raise ShapeError(f"var has {len(var)} rows, expected {n_channels}")

        self.X = X
        self.obs = obs
        self.var = var
        self.obsm = dict(obsm) if obsm else {}
        self.uns = dict(uns) if uns else {}

    def __repr__(self) -> str:
        n, d = self.X.shape
        return (
            f"FlowCytometryExperiment(n_cells={n}, n_channels={d}, "
            f"obs={list(self.obs.columns)}, obsm={list(self.obsm)}, "
            f"uns={list(self.uns)})"
        )

    @property
    def n_observations(self) -> int:
        return self.X.shape[0]

    def get_matrix(self) -> np.ndarray:
        return self.X

    def get_embedding(self, key: str) -> np.ndarray:
        if key not in self.obsm:
            raise KeyError(f"No embedding '{key}' in obsm (available: {list(self.obsm)})")
        return np.asarray(self.obsm[key])

    def get_channel_annotation(self, column: str) -> pd.Series:
        if column not in self.var.columns:
            raise KeyError(
                f"No column '{column}' in var (available: {list(self.var.columns)})"
            )
        return self.var[column]

    def set_observation_labels(self, key: str, labels: np.ndarray) -> None:
        labels = np.asarray(labels)
        if labels.shape != (self.n_observations,):
            raise ShapeError(
                f"labels must have shape ({self.n_observations},), got {labels.shape}"
            )
        self.obs[key] = labels
        logger.debug("Stored labels under obs['%s']", key)

    def set_result(self, key: str, record: Dict[str, Any]) -> None:
        self.uns[key] = record
        logger.debug("Stored result record under uns['%s']", key)
