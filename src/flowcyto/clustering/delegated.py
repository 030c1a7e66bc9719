"""
K-means and agglomerative clustering of experiments.

These operations resolve the feature matrix, hand the hyperparameters to a
``ClusteringBackend`` unchanged, and copy the labels and fitted attributes
back into the experiment.
"""

from __future__ import annotations

from typing import Optional, Sequence, Union

import numpy as np

from .backends import ClusteringBackend, HierarchicalFit, PartitionFit, get_backend
from .features import resolve_feature_matrix
from ..experiment import ExperimentStore
from ..utils.logging_config import get_logger

logger = get_logger(__name__)


def kmeans_tuning(
    experiment: ExperimentStore,
    n_clusters: Sequence[int],
    n_init: Union[int, str] = 10,
    max_iter: int = 300,
    tol: float = 0.0001,
    verbose: int = 0,
    random_state: Optional[int] = None,
    copy_x: bool = True,
    algorithm: str = "lloyd",
    init: str = "k-means++",
    key_obsm: Optional[str] = None,
    n_components: Optional[int] = None,
    key_used_channels: Optional[str] = None,
    backend: Union[None, str, ClusteringBackend] = None,
) -> np.ndarray:
    """
    Run k-means for several cluster counts and report the inertia of each.

    A plot of cluster count against inertia helps choosing the number of
    clusters with the elbow heuristic. The experiment is not modified.

    Args:
        experiment: Experiment to cluster
        n_clusters: Cluster counts to evaluate
        n_init, max_iter, tol, verbose, random_state, copy_x, algorithm, init:
            Forwarded to the k-means backend
        key_obsm: Embedding to cluster instead of the feature matrix
        n_components: Leading embedding columns to use
        key_used_channels: Boolean var column selecting channels
        backend: Backend instance or name

    Returns:
        Array of inertia values, one per entry of *n_clusters*
    """
    X = resolve_feature_matrix(
        experiment,
        key_obsm=key_obsm,
        n_components=n_components,
        key_used_channels=key_used_channels,
    )
    backend = get_backend(backend)

    inertia = np.zeros(len(n_clusters))
    for i, clusters in enumerate(n_clusters):
        fit = backend.partition(
            X,
            n_clusters=clusters,
            n_init=n_init,
            max_iter=max_iter,
            tol=tol,
            verbose=verbose,
            random_state=random_state,
            copy_x=copy_x,
            algorithm=algorithm,
            init=init,
        )
        inertia[i] = fit.inertia
        logger.debug("k=%d inertia=%.6g", clusters, fit.inertia)
    return inertia


def kmeans(
    experiment: ExperimentStore,
    n_clusters: int = 2,
    n_init: Union[int, str] = 10,
    max_iter: int = 300,
    tol: float = 0.0001,
    verbose: int = 0,
    random_state: Optional[int] = None,
    copy_x: bool = True,
    algorithm: str = "lloyd",
    init: str = "k-means++",
    key_added: str = "kmeans",
    key_obsm: Optional[str] = None,
    n_components: Optional[int] = None,
    key_used_channels: Optional[str] = None,
    backend: Union[None, str, ClusteringBackend] = None,
) -> PartitionFit:
    """
    Cluster an experiment with k-means.

    Labels go to the per-observation table under *key_added*; the record
    ``{"params", "cluster_centers", "inertia"}`` goes to the results store
    under the same key. Use ``kmeans_tuning`` to help choosing n_clusters.

    Returns:
        The backend's PartitionFit
    """
    X = resolve_feature_matrix(
        experiment,
        key_obsm=key_obsm,
        n_components=n_components,
        key_used_channels=key_used_channels,
    )
    fit = get_backend(backend).partition(
        X,
        n_clusters=n_clusters,
        n_init=n_init,
        max_iter=max_iter,
        tol=tol,
        verbose=verbose,
        random_state=random_state,
        copy_x=copy_x,
        algorithm=algorithm,
        init=init,
    )
    experiment.set_observation_labels(key_added, fit.labels)
    experiment.set_result(
        key_added,
        {
            "params": dict(fit.params),
            "cluster_centers": fit.cluster_centers,
            "inertia": fit.inertia,
        },
    )
    logger.info("k-means with %d clusters stored under '%s'", n_clusters, key_added)
    return fit


def agglomerative(
    experiment: ExperimentStore,
    n_clusters: Optional[int] = 2,
    metric: str = "euclidean",
    memory=None,
    connectivity=None,
    compute_full_tree: Union[str, bool] = "auto",
    linkage: str = "ward",
    distance_threshold: Optional[float] = None,
    key_added: str = "agglomerative",
    key_obsm: Optional[str] = None,
    n_components: Optional[int] = None,
    key_used_channels: Optional[str] = None,
    backend: Union[None, str, ClusteringBackend] = None,
) -> HierarchicalFit:
    """
    Cluster an experiment with agglomerative clustering.

    Args:
        experiment: Experiment to cluster
        n_clusters: Number of clusters; must be None when distance_threshold is set
        metric: Metric used to compute the linkage
        memory: Cache for the tree computation (scikit-learn backend)
        connectivity: Connectivity matrix (scikit-learn backend)
        compute_full_tree: Stop early the construction of the tree at n_clusters
        linkage: 'ward', 'complete', 'average' or 'single'
        distance_threshold: Linkage distance above which clusters are not merged
        key_added: Key for the labels and the result record
        key_obsm: Embedding to cluster instead of the feature matrix
        n_components: Leading embedding columns to use
        key_used_channels: Boolean var column selecting channels
        backend: Backend instance or name

    Returns:
        The backend's HierarchicalFit. The results store receives
        ``{"params", "n_clusters", "n_leaves", "n_connected_components", "children"}``.
    """
    X = resolve_feature_matrix(
        experiment,
        key_obsm=key_obsm,
        n_components=n_components,
        key_used_channels=key_used_channels,
    )
    fit = get_backend(backend).hierarchical(
        X,
        n_clusters=n_clusters,
        metric=metric,
        memory=memory,
        connectivity=connectivity,
        compute_full_tree=compute_full_tree,
        linkage=linkage,
        distance_threshold=distance_threshold,
    )
    experiment.set_observation_labels(key_added, fit.labels)
    experiment.set_result(
        key_added,
        {
            "params": dict(fit.params),
            "n_clusters": fit.n_clusters,
            "n_leaves": fit.n_leaves,
            "n_connected_components": fit.n_connected_components,
            "children": fit.children,
        },
    )
    logger.info("Agglomerative clustering (%s) stored under '%s'", linkage, key_added)
    return fit
