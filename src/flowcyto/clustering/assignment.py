"""Nearest-center label assignment."""

from __future__ import annotations

import numpy as np

from ..exceptions import ShapeError


def squared_distances(X: np.ndarray, centers: np.ndarray) -> np.ndarray:
    """
    Squared Euclidean distance from every row of *X* to every center.

    Args:
        X: (n, d) data points
        centers: (k, d) centers

    Returns:
        (n, k) array of squared distances

    Raises:
        ShapeError: If X and centers have a different number of features
    """
    X = np.asarray(X, dtype=np.float64)
    centers = np.asarray(centers, dtype=np.float64)
    if X.ndim != 2 or centers.ndim != 2 or X.shape[1] != centers.shape[1]:
        raise ShapeError(
            f"X {X.shape} and centers {centers.shape} must be 2-D with the "
            f"same number of features"
        )
    diffs = X[:, None, :] - centers[None, :, :]  # (n, k, d)
    return np.einsum("nkd,nkd->nk", diffs, diffs)


def nearest_center_labels(X: np.ndarray, centers: np.ndarray) -> np.ndarray:
    """Label each row of *X* with the index of its closest center (ties go to the lowest index)."""
    return np.argmin(squared_distances(X, centers), axis=1).astype(np.int64)
