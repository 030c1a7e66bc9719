"""
Clustering of flow-cytometry experiments.

The Gaussian mixture estimator is implemented here with numpy; k-means and
agglomerative clustering go through a pluggable backend (scikit-learn or a
native numpy implementation).
"""

from .assignment import nearest_center_labels, squared_distances
from .backends import (
    ClusteringBackend,
    HierarchicalFit,
    NativeBackend,
    PartitionFit,
    SklearnBackend,
    get_backend,
)
from .components import ComponentState, MixtureComponent, sample_covariance
from .delegated import agglomerative, kmeans, kmeans_tuning
from .features import resolve_feature_matrix
from .mixture import MixtureResult, fit_gaussian_mixture, gaussian_mixture
from .scoring import (
    ComponentScorer,
    MahalanobisScorer,
    SquaredDeviationScorer,
    get_scorer,
)

__all__ = [
    # Feature selection
    "resolve_feature_matrix",
    # Assignment & scoring
    "nearest_center_labels",
    "squared_distances",
    "ComponentScorer",
    "SquaredDeviationScorer",
    "MahalanobisScorer",
    "get_scorer",
    # Gaussian mixture
    "ComponentState",
    "MixtureComponent",
    "MixtureResult",
    "sample_covariance",
    "fit_gaussian_mixture",
    "gaussian_mixture",
    # Delegated methods
    "ClusteringBackend",
    "SklearnBackend",
    "NativeBackend",
    "PartitionFit",
    "HierarchicalFit",
    "get_backend",
    "kmeans",
    "kmeans_tuning",
    "agglomerative",
]
