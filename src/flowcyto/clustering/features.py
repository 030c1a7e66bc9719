"""
Feature matrix selection.

Every clustering operation clusters either the full feature matrix, a named
embedding (optionally truncated to its leading components), or the subset of
channels flagged by a boolean column of the per-channel table.
"""

from __future__ import annotations

from typing import Optional

import numpy as np
import pandas as pd

from ..exceptions import ConfigurationError, ShapeError
from ..experiment import ExperimentStore
from ..utils.logging_config import get_logger

logger = get_logger(__name__)


def resolve_feature_matrix(
    experiment: ExperimentStore,
    key_obsm: Optional[str] = None,
    n_components: Optional[int] = None,
    key_used_channels: Optional[str] = None,
) -> np.ndarray:
    """
    Select the matrix to cluster from *experiment*.

    Args:
        experiment: Container to read from (never modified)
        key_obsm: Embedding to use instead of the feature matrix
        n_components: Number of leading embedding columns to keep
        key_used_channels: Boolean column of the per-channel table marking
            the channels to use

    Returns:
        Array of shape (n_observations, n_features)

    Raises:
        ConfigurationError: If both key_obsm and key_used_channels are given
        TypeError: If the key_used_channels column is not boolean
        ShapeError: If the embedding does not have one row per observation,
            or n_components exceeds its width
        KeyError: If the embedding or channel column does not exist
    """
    if key_obsm is not None and key_used_channels is not None:
        raise ConfigurationError(
            "key_obsm and key_used_channels cannot be specified at the same time."
        )

    if key_obsm is not None:
        X = experiment.get_embedding(key_obsm)
        if X.ndim != 2 or X.shape[0] != experiment.n_observations:
            raise ShapeError(
                f"Embedding '{key_obsm}' must have shape "
                f"({experiment.n_observations}, n_dims), got {X.shape}"
            )
        if n_components is not None:
            if not 1 <= n_components <= X.shape[1]:
                raise ShapeError(
                    f"n_components must be in [1, {X.shape[1]}] for embedding "
                    f"'{key_obsm}', got {n_components}"
                )
            X = X[:, :n_components]
        return X

    if n_components is not None:
        logger.debug("n_components=%s ignored without key_obsm", n_components)

    if key_used_channels is not None:
        channels = experiment.get_channel_annotation(key_used_channels)
        if not pd.api.types.is_bool_dtype(channels):
            raise TypeError(
                "key_used_channels should be a column in var of Bool entries "
                "specifying which channels to use for clustering."
            )
        mask = np.asarray(channels, dtype=bool)
        return experiment.get_matrix()[:, mask]

    return experiment.get_matrix()
