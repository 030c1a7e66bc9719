"""
Gaussian mixture clustering with label-stability convergence.

The estimator alternates three steps until no observation changes component
or the step budget runs out:

1. score every observation against every component (see ``scoring``);
2. label each observation with its highest-scoring component;
3. re-estimate each component's weight, center and covariance from the
   observations now carrying its label.

Initial components come from nearest-center assignment against k seed
centers, chosen by a k-means pass, uniformly at random inside the data's
bounding box, or supplied explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import numpy as np

from .assignment import nearest_center_labels
from .backends import ClusteringBackend, get_backend
from .components import ComponentState, MixtureComponent, estimate_components
from .features import resolve_feature_matrix
from .scoring import ComponentScorer, get_scorer
from ..config import config, INITIALIZATION_MODES
from ..exceptions import ConfigurationError, ShapeError
from ..experiment import ExperimentStore
from ..utils.logging_config import get_logger

logger = get_logger(__name__)

Initialization = Union[str, np.ndarray]


@dataclass
class MixtureResult:
    """Result of a Gaussian mixture fit."""

    labels: np.ndarray
    components: List[MixtureComponent]
    scores: np.ndarray
    n_steps: int
    converged: bool
    initialization: Initialization
    initial_centers: np.ndarray
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def n_clusters(self) -> int:
        return len(self.components)

    @property
    def weights(self) -> np.ndarray:
        return np.array([c.weight for c in self.components])

    @property
    def centers(self) -> np.ndarray:
        return np.stack([c.center for c in self.components])

    @property
    def covariances(self) -> np.ndarray:
        return np.stack([c.covariance for c in self.components])

    @property
    def stale_components(self) -> List[int]:
        return [j for j, c in enumerate(self.components) if c.is_stale]


def _validate_initialization(
    initialization: Initialization, n_clusters: int, n_features: int
) -> Initialization:
    if isinstance(initialization, str):
        if initialization not in INITIALIZATION_MODES:
            raise ConfigurationError(
                "initialization must be 'kmeans', 'random' or a matrix "
                "specifying the centers of the gaussians."
            )
        return initialization
    centers = np.asarray(initialization, dtype=np.float64)
    if centers.shape != (n_clusters, n_features):
        raise ShapeError(
            "If initialization is a matrix of given initial positions, the "
            f"dimensions must be the same size as (n_clusters, variables) = "
            f"{(n_clusters, n_features)}, got {centers.shape}."
        )
    return centers


def initial_centers(
    X: np.ndarray,
    n_clusters: int,
    initialization: Initialization,
    random_state: Optional[int] = None,
    backend: Union[None, str, ClusteringBackend] = None,
) -> np.ndarray:
    """
    Compute the (n_clusters, d) seed centers.

    Args:
        X: (n, d) feature matrix
        n_clusters: Number of components
        initialization: 'kmeans', 'random' or an explicit (n_clusters, d) array
        random_state: Seed for the random and kmeans modes
        backend: Partition backend used by the kmeans mode

    Returns:
        Array of shape (n_clusters, d)
    """
    initialization = _validate_initialization(initialization, n_clusters, X.shape[1])
    if not isinstance(initialization, str):
        return initialization.copy()
    if initialization == "kmeans":
        fit = get_backend(backend).partition(
            X, n_clusters=n_clusters, random_state=random_state
        )
        return np.asarray(fit.cluster_centers, dtype=np.float64)
    # random: uniform inside each feature's observed [min, max]
    rng = np.random.default_rng(random_state)
    lo = X.min(axis=0)
    hi = X.max(axis=0)
    return lo + rng.random((n_clusters, X.shape[1])) * (hi - lo)


def fit_gaussian_mixture(
    X: np.ndarray,
    n_clusters: int,
    initialization: Optional[Initialization] = None,
    max_steps: Optional[int] = None,
    *,
    scorer: Union[None, str, ComponentScorer] = None,
    random_state: Optional[int] = None,
    backend: Union[None, str, ClusteringBackend] = None,
) -> MixtureResult:
    """
    Fit a k-component Gaussian mixture and return hard labels.

    The input matrix is never modified. Apart from the 'random' and 'kmeans'
    seeding, the fit is deterministic.

    Args:
        X: (n, d) feature matrix
        n_clusters: Number of components (k >= 1)
        initialization: 'kmeans', 'random' or an explicit (k, d) center
            matrix. Defaults to the configured initialization.
        max_steps: Step budget. Defaults to the configured budget. With a
            budget of 0 the seed (nearest-center) labels are returned.
        scorer: Component scorer (instance or registered name). Defaults to
            the squared-deviation scorer.
        random_state: Seed for the 'random' and 'kmeans' initializations
        backend: Partition backend for the 'kmeans' initialization

    Returns:
        MixtureResult

    Raises:
        ConfigurationError: On an unknown initialization mode, n_clusters < 1
            or a negative step budget
        ShapeError: If explicit centers do not have shape (k, d)
    """
    if initialization is None:
        initialization = config.initialization
    if max_steps is None:
        max_steps = config.max_steps
    X = np.asarray(X, dtype=np.float64)
    if X.ndim != 2:
        raise ShapeError(f"X must be 2-D, got shape {X.shape}")
    if n_clusters < 1:
        raise ConfigurationError(f"n_clusters must be >= 1, got {n_clusters}")
    if max_steps < 0:
        raise ConfigurationError(f"max_steps must be >= 0, got {max_steps}")
    initialization = _validate_initialization(initialization, n_clusters, X.shape[1])
    scorer = get_scorer(scorer)

    n = X.shape[0]
    mode = initialization if isinstance(initialization, str) else "explicit"

    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        centers = initial_centers(X, n_clusters, initialization, random_state, backend)
        labels = nearest_center_labels(X, centers)
        seeds = [
            MixtureComponent(
                center=c, covariance=np.full((X.shape[1],) * 2, np.nan), weight=0.0
            )
            for c in centers
        ]
        components = estimate_components(X, labels, n_clusters, previous=seeds)
        logger.info(
            "Fitting %d-component mixture on %d x %d matrix (initialization=%s, max_steps=%d)",
            n_clusters, n, X.shape[1], mode, max_steps,
        )

        scores = np.zeros((n, n_clusters))
        candidate = labels.copy()
        steps = 0
        converged = False
        while steps < max_steps:
            scores = scorer.score(X, components)
            # rows no component can score keep their label
            unscored = np.isneginf(scores).all(axis=1)
            if unscored.any():
                logger.warning(
                    "Step %d: %d observations have no finite score; labels kept",
                    steps + 1, int(unscored.sum()),
                )
            candidate = np.where(
                unscored, labels, np.argmax(scores, axis=1)
            ).astype(np.int64)
            components = estimate_components(X, candidate, n_clusters, previous=components)
            steps += 1
            if np.array_equal(candidate, labels):
                converged = True
                break
            logger.debug(
                "Step %d: %d labels changed", steps, int(np.sum(candidate != labels))
            )
            labels = candidate

    stale = [j for j, c in enumerate(components) if c.state is ComponentState.STALE]
    if stale:
        logger.info("Components %s have no observations", stale)
    if converged:
        logger.info("Labels stable after %d steps", steps)
    elif max_steps > 0:
        logger.warning(
            "Step budget of %d exhausted before labels stabilised", max_steps
        )

    return MixtureResult(
        labels=candidate,
        components=components,
        scores=scores,
        n_steps=steps,
        converged=converged,
        initialization=initialization,
        initial_centers=centers,
        metadata={"scorer": scorer.name},
    )


def gaussian_mixture(
    experiment: ExperimentStore,
    n_clusters: int,
    initialization: Optional[Initialization] = None,
    maximum_steps: Optional[int] = None,
    key_added: str = "gaussian_mixture",
    key_obsm: Optional[str] = None,
    n_components: Optional[int] = None,
    key_used_channels: Optional[str] = None,
    *,
    scorer: Union[None, str, ComponentScorer] = None,
    random_state: Optional[int] = None,
    backend: Union[None, str, ClusteringBackend] = None,
) -> MixtureResult:
    """
    Cluster an experiment with a Gaussian mixture.

    Labels are written to the per-observation table under *key_added* and a
    record to the results store under the same key:

    - ``n_clusters``, ``max_steps``, ``steps_before_convergence``
    - ``initialization``: the mode used, or the explicit center matrix
    - ``scores``: final (n, k) score matrix
    - ``weights``: final mixing weights
    - ``centers``, ``covariances``, ``component_states``, ``converged``

    Nothing is written if validation fails.

    Args:
        experiment: Experiment to cluster
        n_clusters: Number of components
        initialization: 'kmeans', 'random' or a (n_clusters, d) center matrix
        maximum_steps: Step budget
        key_added: Key for the labels and the result record
        key_obsm: Embedding to cluster instead of the feature matrix
        n_components: Leading embedding columns to use
        key_used_channels: Boolean var column selecting channels
        scorer: Component scorer
        random_state: Seed for randomised initialization
        backend: Partition backend for the 'kmeans' initialization

    Returns:
        MixtureResult (also stored in the experiment as described above)
    """
    X = resolve_feature_matrix(
        experiment,
        key_obsm=key_obsm,
        n_components=n_components,
        key_used_channels=key_used_channels,
    )
    result = fit_gaussian_mixture(
        X,
        n_clusters,
        initialization,
        maximum_steps,
        scorer=scorer,
        random_state=random_state,
        backend=backend,
    )

    experiment.set_observation_labels(key_added, result.labels)
    experiment.set_result(
        key_added,
        {
            "n_clusters": n_clusters,
            "max_steps": maximum_steps if maximum_steps is not None else config.max_steps,
            "steps_before_convergence": result.n_steps,
            "initialization": result.initialization,
            "scores": result.scores,
            "weights": result.weights,
            "centers": result.centers,
            "covariances": result.covariances,
            "component_states": [c.state.value for c in result.components],
            "converged": result.converged,
        },
    )
    return result
