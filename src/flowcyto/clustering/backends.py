"""
Partition and hierarchical clustering backends.

``ClusteringBackend`` is the seam between flowcyto's container-facing
operations and the code that actually clusters a matrix:

- ``SklearnBackend`` forwards hyperparameters unchanged to
  ``sklearn.cluster.KMeans`` / ``sklearn.cluster.AgglomerativeClustering``.
  Errors raised by scikit-learn propagate unchanged.
- ``NativeBackend`` re-implements both methods with numpy (k-means++ seeded
  Lloyd iterations, and Lance-Williams agglomeration) for the euclidean
  metric.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

import numpy as np

from .assignment import nearest_center_labels, squared_distances
from ..config import config, BACKEND_NAMES
from ..exceptions import ConfigurationError
from ..utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class PartitionFit:
    """Result of a partition (k-means) fit."""

    labels: np.ndarray
    cluster_centers: np.ndarray
    inertia: float
    n_iter: int = 0
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass
class HierarchicalFit:
    """Result of an agglomerative fit."""

    labels: np.ndarray
    n_clusters: int
    n_leaves: int
    n_connected_components: int
    children: np.ndarray
    distances: Optional[np.ndarray] = None
    params: Dict[str, Any] = field(default_factory=dict)


class ClusteringBackend(ABC):
    """
    Abstract base class for clustering backends.

    Implementations accept scikit-learn style hyperparameters as keyword
    arguments so callers can switch backends without changing call sites.
    """

    name: str = "base"

    @abstractmethod
    def partition(self, X: np.ndarray, **params) -> PartitionFit:
        """Fit k-means on *X*."""

    @abstractmethod
    def hierarchical(self, X: np.ndarray, **params) -> HierarchicalFit:
        """Fit agglomerative clustering on *X*."""


class SklearnBackend(ClusteringBackend):
    """Call-through to scikit-learn."""

    name = "sklearn"

    def partition(self, X: np.ndarray, **params) -> PartitionFit:
        from sklearn.cluster import KMeans

        model = KMeans(**params)
        model.fit(X)
        return PartitionFit(
            labels=np.asarray(model.labels_, dtype=np.int64),
            cluster_centers=model.cluster_centers_,
            inertia=float(model.inertia_),
            n_iter=int(model.n_iter_),
            params=model.get_params(),
        )

    def hierarchical(self, X: np.ndarray, **params) -> HierarchicalFit:
        from sklearn.cluster import AgglomerativeClustering

        model = AgglomerativeClustering(**params)
        model.fit(X)
        return HierarchicalFit(
            labels=np.asarray(model.labels_, dtype=np.int64),
            n_clusters=int(model.n_clusters_),
            n_leaves=int(model.n_leaves_),
            n_connected_components=int(model.n_connected_components_),
            children=model.children_,
            distances=getattr(model, "distances_", None),
            params=model.get_params(),
        )


# ------------------------------------------------------------------
# Native numpy implementation
# ------------------------------------------------------------------


def _kmeanspp_init(X: np.ndarray, K: int, rng: np.random.Generator) -> np.ndarray:
    """Return (K, d) initial centers chosen by the k-means++ rule."""
    n, d = X.shape
    centers = np.empty((K, d), dtype=np.float64)
    centers[0] = X[int(rng.integers(0, n))]

    for k in range(1, K):
        min_sq = squared_distances(X, centers[:k]).min(axis=1)  # (n,)
        total = min_sq.sum()
        if total == 0.0:
            centers[k] = X[int(rng.integers(0, n))]
        else:
            centers[k] = X[int(rng.choice(n, p=min_sq / total))]
    return centers


def _lloyd(
    X: np.ndarray, centers: np.ndarray, max_iter: int, tol: float
) -> tuple[np.ndarray, np.ndarray, float, int]:
    """Run Lloyd iterations from *centers*; empty clusters keep their center."""
    # Same tolerance scaling as scikit-learn: relative to the mean feature variance
    threshold = tol * float(np.mean(np.var(X, axis=0)))
    centers = centers.copy()
    labels = nearest_center_labels(X, centers)
    n_iter = 0
    for _ in range(max_iter):
        n_iter += 1
        new_centers = centers.copy()
        for j in range(centers.shape[0]):
            members = labels == j
            if members.any():
                new_centers[j] = X[members].mean(axis=0)
        shift = float(np.sum((new_centers - centers) ** 2))
        centers = new_centers
        labels = nearest_center_labels(X, centers)
        if shift <= threshold:
            break
    inertia = float(np.sum((X - centers[labels]) ** 2))
    return labels, centers, inertia, n_iter


_LINKAGES = ("ward", "complete", "average", "single")


def _lance_williams(
    linkage: str,
    d_ki: np.ndarray,
    d_kj: np.ndarray,
    d_ij: float,
    n_i: int,
    n_j: int,
    n_k: np.ndarray,
) -> np.ndarray:
    if linkage == "single":
        return np.minimum(d_ki, d_kj)
    if linkage == "complete":
        return np.maximum(d_ki, d_kj)
    if linkage == "average":
        return (n_i * d_ki + n_j * d_kj) / (n_i + n_j)
    # ward
    total = n_i + n_j + n_k
    sq = ((n_i + n_k) * d_ki**2 + (n_j + n_k) * d_kj**2 - n_k * d_ij**2) / total
    return np.sqrt(np.maximum(sq, 0.0))


class NativeBackend(ClusteringBackend):
    """Pure numpy k-means and agglomerative clustering (euclidean only)."""

    name = "native"

    def partition(
        self,
        X: np.ndarray,
        n_clusters: int = 8,
        *,
        init: Union[str, np.ndarray] = "k-means++",
        n_init: Union[int, str] = "auto",
        max_iter: int = 300,
        tol: float = 1e-4,
        verbose: int = 0,
        random_state: Optional[int] = None,
        copy_x: bool = True,
        algorithm: str = "lloyd",
    ) -> PartitionFit:
        """
        K-means with k-means++ or random seeding and ``n_init`` restarts.

        The restart with the lowest inertia is kept. ``verbose`` and
        ``copy_x`` are accepted for signature compatibility; the input is
        never modified.

        Raises:
            ConfigurationError: On unsupported ``algorithm`` / ``init`` values
                or if n_clusters is not in [1, n_samples]
        """
        X = np.asarray(X, dtype=np.float64)
        n = X.shape[0]
        if not 1 <= n_clusters <= n:
            raise ConfigurationError(
                f"n_clusters must be in [1, {n}], got {n_clusters}"
            )
        if algorithm != "lloyd":
            raise ConfigurationError(
                f"NativeBackend only supports algorithm='lloyd', got {algorithm!r}"
            )

        explicit = not isinstance(init, str)
        if explicit:
            init = np.asarray(init, dtype=np.float64)
            if init.shape != (n_clusters, X.shape[1]):
                raise ConfigurationError(
                    f"init centers must have shape {(n_clusters, X.shape[1])}, "
                    f"got {init.shape}"
                )
        elif init not in ("k-means++", "random"):
            raise ConfigurationError(
                f"init must be 'k-means++', 'random' or an array, got {init!r}"
            )
        if n_init == "auto":
            n_init = 1 if explicit or init == "k-means++" else 10
        if explicit:
            n_init = 1

        rng = np.random.default_rng(random_state)
        best: Optional[tuple] = None
        for run in range(n_init):
            if explicit:
                centers = init
            elif init == "k-means++":
                centers = _kmeanspp_init(X, n_clusters, rng)
            else:
                centers = X[rng.choice(n, size=n_clusters, replace=False)]
            fit = _lloyd(X, centers, max_iter, tol)
            if verbose:
                logger.info("k-means run %d: inertia=%.6g after %d iterations", run, fit[2], fit[3])
            if best is None or fit[2] < best[2]:
                best = fit

        labels, centers, inertia, n_iter = best
        return PartitionFit(
            labels=labels,
            cluster_centers=centers,
            inertia=inertia,
            n_iter=n_iter,
            params={
                "n_clusters": n_clusters,
                "init": init,
                "n_init": n_init,
                "max_iter": max_iter,
                "tol": tol,
                "verbose": verbose,
                "random_state": random_state,
                "copy_x": copy_x,
                "algorithm": algorithm,
            },
        )

    def hierarchical(
        self,
        X: np.ndarray,
        n_clusters: Optional[int] = 2,
        *,
        metric: str = "euclidean",
        memory=None,
        connectivity=None,
        compute_full_tree: Union[str, bool] = "auto",
        linkage: str = "ward",
        distance_threshold: Optional[float] = None,
        compute_distances: bool = False,
    ) -> HierarchicalFit:
        """
        Agglomerative clustering by Lance-Williams distance updates.

        The full merge tree is always built (``compute_full_tree`` and
        ``memory`` have no effect) and then cut either at ``n_clusters``
        clusters or below ``distance_threshold``. Labels are numbered in
        order of first appearance.

        Raises:
            ConfigurationError: On unsupported metric, linkage or connectivity,
                or unless exactly one of n_clusters / distance_threshold is set
        """
        X = np.asarray(X, dtype=np.float64)
        n = X.shape[0]
        if metric != "euclidean":
            raise ConfigurationError(
                f"NativeBackend only supports metric='euclidean', got {metric!r}"
            )
        if linkage not in _LINKAGES:
            raise ConfigurationError(
                f"linkage must be one of {_LINKAGES}, got {linkage!r}"
            )
        if connectivity is not None:
            raise ConfigurationError("NativeBackend does not support connectivity constraints")
        if (n_clusters is None) == (distance_threshold is None):
            raise ConfigurationError(
                "Exactly one of n_clusters and distance_threshold has to be set"
            )
        if n_clusters is not None and not 1 <= n_clusters <= n:
            raise ConfigurationError(
                f"n_clusters must be in [1, {n}], got {n_clusters}"
            )

        D = np.sqrt(squared_distances(X, X))
        np.fill_diagonal(D, np.inf)
        active = np.ones(n, dtype=bool)
        sizes = np.ones(n, dtype=np.int64)
        node_of_slot = np.arange(n)
        children = np.zeros((n - 1, 2), dtype=np.int64)
        distances = np.zeros(n - 1, dtype=np.float64)
        slot_pairs = []

        for step in range(n - 1):
            flat = int(np.argmin(D))
            i, j = divmod(flat, n)
            if i > j:
                i, j = j, i
            d_ij = float(D[i, j])
            children[step] = (node_of_slot[i], node_of_slot[j])
            distances[step] = d_ij
            slot_pairs.append((i, j))

            merged = _lance_williams(
                linkage, D[i], D[j], d_ij, int(sizes[i]), int(sizes[j]), sizes
            )
            active[j] = False
            merged[~active] = np.inf
            merged[i] = np.inf
            D[i, :] = merged
            D[:, i] = merged
            D[j, :] = np.inf
            D[:, j] = np.inf
            sizes[i] += sizes[j]
            node_of_slot[i] = n + step

        if distance_threshold is not None:
            n_merges = int(np.sum(distances < distance_threshold))
        else:
            n_merges = n - n_clusters

        parent = np.arange(n)

        def find(a: int) -> int:
            while parent[a] != a:
                parent[a] = parent[parent[a]]
                a = parent[a]
            return a

        for i, j in slot_pairs[:n_merges]:
            parent[find(j)] = find(i)

        roots = np.array([find(a) for a in range(n)])
        _, first_seen = np.unique(roots, return_index=True)
        order = roots[np.sort(first_seen)]
        relabel = {root: label for label, root in enumerate(order)}
        labels = np.array([relabel[r] for r in roots], dtype=np.int64)

        return HierarchicalFit(
            labels=labels,
            n_clusters=len(order),
            n_leaves=n,
            n_connected_components=1,
            children=children,
            distances=distances if (compute_distances or distance_threshold is not None) else None,
            params={
                "n_clusters": n_clusters,
                "metric": metric,
                "memory": memory,
                "connectivity": connectivity,
                "compute_full_tree": compute_full_tree,
                "linkage": linkage,
                "distance_threshold": distance_threshold,
                "compute_distances": compute_distances,
            },
        )


_BACKENDS = {
    SklearnBackend.name: SklearnBackend,
    NativeBackend.name: NativeBackend,
}


def get_backend(backend: Union[None, str, ClusteringBackend] = None) -> ClusteringBackend:
    """
    Resolve a backend instance.

    Args:
        backend: A ``ClusteringBackend`` instance, a backend name
            ('sklearn', 'native'), or None for the configured default

    Returns:
        ClusteringBackend

    Raises:
        ConfigurationError: If the backend name is unknown
    """
    if isinstance(backend, ClusteringBackend):
        return backend
    name = (backend or config.backend).lower()
    if name not in _BACKENDS:
        raise ConfigurationError(
            f"Unknown backend {name!r}; expected one of {BACKEND_NAMES}"
        )
    return _BACKENDS[name]()
