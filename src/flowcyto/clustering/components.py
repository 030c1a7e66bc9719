"""
Mixture component state.

A component is a (center, covariance, weight) triple. When re-estimation
finds no observation carrying its label the component becomes STALE and
keeps its last center and covariance.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import numpy as np


class ComponentState(str, Enum):
    ACTIVE = "active"
    STALE = "stale"


@dataclass
class MixtureComponent:
    """One hypothesised sub-population."""

    center: np.ndarray
    covariance: np.ndarray
    weight: float
    state: ComponentState = ComponentState.ACTIVE

    @property
    def is_stale(self) -> bool:
        return self.state is ComponentState.STALE


def sample_covariance(X: np.ndarray) -> np.ndarray:
    """
    Unbiased sample covariance of the rows of *X* as a (d, d) matrix.

    Fewer than two rows give a matrix of NaN; callers treat that as a
    degenerate component.
    """
    d = X.shape[1]
    if X.shape[0] < 2:
        return np.full((d, d), np.nan)
    return np.atleast_2d(np.cov(X, rowvar=False, ddof=1))


def estimate_components(
    X: np.ndarray,
    labels: np.ndarray,
    n_clusters: int,
    previous: list[MixtureComponent],
) -> list[MixtureComponent]:
    """
    Re-estimate every component from the observations carrying its label.

    Args:
        X: (n, d) feature matrix
        labels: (n,) current labels in [0, n_clusters)
        n_clusters: Number of components
        previous: Components from the previous step; an empty component
            keeps the previous center and covariance and is marked STALE.

    Returns:
        List of n_clusters components
    """
    n = X.shape[0]
    components = []
    for j in range(n_clusters):
        members = labels == j
        count = int(members.sum())
        weight = count / n
        if count > 0:
            Xj = X[members]
            components.append(
                MixtureComponent(
                    center=Xj.mean(axis=0),
                    covariance=sample_covariance(Xj),
                    weight=weight,
                )
            )
        else:
            components.append(
                MixtureComponent(
                    center=previous[j].center,
                    covariance=previous[j].covariance,
                    weight=0.0,
                    state=ComponentState.STALE,
                )
            )
    return components
