"""
Pytest configuration and shared fixtures.

This file is automatically discovered by pytest and provides fixtures
available to all test modules.
"""

import numpy as np
import pandas as pd
import pytest

from flowcyto.experiment import FlowCytometryExperiment

BLOB_CENTERS = np.array(
    [
        [0.0, 0.0, 0.0],
        [30.0, 30.0, 0.0],
        [0.0, 30.0, 30.0],
    ]
)


def make_blobs(n_per_blob: int = 40, spread: float = 0.5, seed: int = 0):
    """
    Three well-separated isotropic Gaussian blobs in 3-D.

    Returns:
        Tuple of (X, true_labels) with X of shape (3 * n_per_blob, 3)
    """
    rng = np.random.default_rng(seed)
    X = np.vstack(
        [c + rng.standard_normal((n_per_blob, 3)) * spread for c in BLOB_CENTERS]
    )
    y = np.repeat(np.arange(len(BLOB_CENTERS)), n_per_blob)
    return X, y


@pytest.fixture
def blob_centers():
    """True centers of the blobs fixture."""
    return BLOB_CENTERS.copy()


@pytest.fixture
def blobs():
    """Well-separated blobs and their ground-truth labels."""
    return make_blobs()


@pytest.fixture
def experiment(blobs):
    """
    Experiment built on the blobs, with a 4th noise channel.

    - ``var["use"]``: boolean mask selecting the three blob channels
    - ``var["gain"]``: numeric (non-boolean) channel annotation
    - ``obsm["pca"]``: a 3-column embedding (blob channels reversed)
    """
    X, _ = blobs
    rng = np.random.default_rng(1)
    noise = rng.standard_normal((X.shape[0], 1))
    full = np.hstack([X[:, :1], noise, X[:, 1:]])
    var = pd.DataFrame(
        {
            "channel": ["FSC-A", "NOISE", "SSC-A", "FL1-A"],
            "use": [True, False, True, True],
            "gain": [1.0, 0.5, 1.0, 2.0],
        }
    )
    fct = FlowCytometryExperiment(full, var=var)
    fct.obsm["pca"] = X[:, ::-1].copy()
    return fct
