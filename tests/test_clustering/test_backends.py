"""
Tests for the partition / hierarchical clustering backends.
"""

import numpy as np
import pytest
from sklearn.metrics import adjusted_rand_score

from flowcyto.clustering.backends import (
    ClusteringBackend,
    HierarchicalFit,
    NativeBackend,
    PartitionFit,
    SklearnBackend,
    get_backend,
)
from flowcyto.exceptions import ConfigurationError


def test_get_backend():
    assert isinstance(get_backend("sklearn"), SklearnBackend)
    assert isinstance(get_backend("NATIVE"), NativeBackend)
    backend = NativeBackend()
    assert get_backend(backend) is backend
    assert isinstance(get_backend(), ClusteringBackend)
    with pytest.raises(ConfigurationError, match="Unknown backend"):
        get_backend("gpu")


# ------------------------------------------------------------------
# Partition
# ------------------------------------------------------------------


@pytest.mark.parametrize("backend", [SklearnBackend(), NativeBackend()], ids=["sklearn", "native"])
def test_partition_recovers_blobs(blobs, backend):
    X, y = blobs

    fit = backend.partition(X, n_clusters=3, n_init=5, random_state=0)

    assert isinstance(fit, PartitionFit)
    assert fit.labels.shape == (X.shape[0],)
    assert fit.cluster_centers.shape == (3, 3)
    assert fit.inertia > 0
    assert fit.params["n_clusters"] == 3
    assert adjusted_rand_score(y, fit.labels) == pytest.approx(1.0)


def test_native_and_sklearn_agree(blobs):
    X, _ = blobs
    native = NativeBackend().partition(X, n_clusters=3, random_state=1)
    reference = SklearnBackend().partition(X, n_clusters=3, n_init=10, random_state=1)

    assert adjusted_rand_score(native.labels, reference.labels) == pytest.approx(1.0)
    assert native.inertia == pytest.approx(reference.inertia, rel=1e-6)


def test_native_partition_explicit_init(blobs, blob_centers):
    X, y = blobs
    fit = NativeBackend().partition(X, n_clusters=3, init=blob_centers)

    np.testing.assert_array_equal(fit.labels, y)
    assert fit.params["n_init"] == 1
    expected = np.stack([X[y == k].mean(axis=0) for k in range(3)])
    np.testing.assert_allclose(fit.cluster_centers, expected)


def test_native_partition_random_init(blobs):
    X, y = blobs
    fit = NativeBackend().partition(X, n_clusters=3, init="random", n_init=30, random_state=2)
    assert fit.params["n_init"] == 30
    assert adjusted_rand_score(y, fit.labels) == pytest.approx(1.0)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"n_clusters": 0},
        {"n_clusters": 500},
        {"n_clusters": 2, "algorithm": "elkan"},
        {"n_clusters": 2, "init": "spectral"},
        {"n_clusters": 2, "init": np.zeros((3, 3))},
    ],
)
def test_native_partition_invalid(blobs, kwargs):
    X, _ = blobs
    with pytest.raises(ConfigurationError):
        NativeBackend().partition(X, **kwargs)


def test_sklearn_errors_propagate(blobs):
    """Errors raised by scikit-learn are not wrapped."""
    X, _ = blobs
    with pytest.raises(ValueError):
        SklearnBackend().partition(X, n_clusters=500)


# ------------------------------------------------------------------
# Hierarchical
# ------------------------------------------------------------------


@pytest.mark.parametrize("linkage", ["ward", "complete", "average", "single"])
@pytest.mark.parametrize("backend", [SklearnBackend(), NativeBackend()], ids=["sklearn", "native"])
def test_hierarchical_recovers_blobs(blobs, backend, linkage):
    X, y = blobs

    fit = backend.hierarchical(X, n_clusters=3, linkage=linkage)

    assert isinstance(fit, HierarchicalFit)
    assert fit.n_clusters == 3
    assert fit.n_leaves == X.shape[0]
    assert fit.n_connected_components == 1
    assert fit.children.shape[1] == 2
    assert adjusted_rand_score(y, fit.labels) == pytest.approx(1.0)


def test_native_hierarchical_tree():
    """Merge order and node ids follow the scikit-learn convention."""
    X = np.array([[0.0], [1.0], [10.0], [12.0]])

    fit = NativeBackend().hierarchical(X, n_clusters=1, linkage="single", compute_distances=True)

    np.testing.assert_array_equal(fit.children, [[0, 1], [2, 3], [4, 5]])
    np.testing.assert_allclose(fit.distances, [1.0, 2.0, 9.0])
    np.testing.assert_array_equal(fit.labels, [0, 0, 0, 0])


def test_native_hierarchical_distance_threshold():
    X = np.array([[0.0], [1.0], [10.0], [12.0]])

    fit = NativeBackend().hierarchical(
        X, n_clusters=None, distance_threshold=5.0, linkage="complete"
    )

    assert fit.n_clusters == 2
    np.testing.assert_array_equal(fit.labels, [0, 0, 1, 1])
    assert fit.distances is not None


@pytest.mark.parametrize(
    "kwargs",
    [
        {"metric": "manhattan"},
        {"linkage": "centroid"},
        {"connectivity": np.eye(4)},
        {"n_clusters": None},
        {"n_clusters": 2, "distance_threshold": 1.0},
        {"n_clusters": 9},
    ],
)
def test_native_hierarchical_invalid(kwargs):
    X = np.array([[0.0], [1.0], [10.0], [12.0]])
    with pytest.raises(ConfigurationError):
        NativeBackend().hierarchical(X, **kwargs)


def test_native_partition_auto_n_init(blobs):
    """n_init='auto' means one run for k-means++ and ten for random seeding."""
    X, _ = blobs
    backend = NativeBackend()
    assert backend.partition(X, n_clusters=2, random_state=0).params["n_init"] == 1
    assert backend.partition(X, n_clusters=2, init="random", random_state=0).params["n_init"] == 10
