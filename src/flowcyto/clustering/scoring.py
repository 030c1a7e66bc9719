"""
Component scoring strategies for the Gaussian mixture estimator.

A scorer maps the feature matrix and the current components to an (n, k)
matrix of unnormalised log-scores; the estimator labels each observation
with the component of highest score. Two strategies are provided:

- ``SquaredDeviationScorer`` (default) weights the elementwise squared
  deviation ``m = (x - c) ** 2`` through the inverse covariance:
  ``-0.5 * m @ inv(S) @ m - 0.5 * log|det S| + log w``.
- ``MahalanobisScorer`` uses the raw deviation ``x - c`` in the same
  quadratic form, i.e. the log-density of a multivariate normal up to a
  constant.

Components that are stale, have zero weight, or whose covariance is
singular or non-finite score ``-inf`` for every observation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Sequence, Tuple

import numpy as np

from .components import MixtureComponent
from ..exceptions import ConfigurationError
from ..utils.logging_config import get_logger

logger = get_logger(__name__)


def _invert_covariance(covariance: np.ndarray) -> Optional[Tuple[np.ndarray, float]]:
    """Return ``(inverse, log|det|)`` or None if the covariance is unusable."""
    if not np.all(np.isfinite(covariance)):
        return None
    try:
        inverse = np.linalg.inv(covariance)
    except np.linalg.LinAlgError:
        return None
    _, logdet = np.linalg.slogdet(covariance)
    if not np.isfinite(logdet) or not np.all(np.isfinite(inverse)):
        return None
    return inverse, float(logdet)


class ComponentScorer(ABC):
    """Base class for per-observation, per-component scoring."""

    name: str = "base"

    @abstractmethod
    def deviation(self, X: np.ndarray, center: np.ndarray) -> np.ndarray:
        """Return the (n, d) deviation fed into the quadratic form."""

    def score(
        self, X: np.ndarray, components: Sequence[MixtureComponent]
    ) -> np.ndarray:
        """
        Score every observation against every component.

        Args:
            X: (n, d) feature matrix
            components: k mixture components

        Returns:
            (n, k) score matrix; higher means more likely
        """
        n = X.shape[0]
        scores = np.full((n, len(components)), -np.inf)
        for j, component in enumerate(components):
            if component.is_stale or component.weight <= 0:
                continue
            inverted = _invert_covariance(component.covariance)
            if inverted is None:
                logger.warning(
                    "Component %d has a singular or non-finite covariance; scored -inf", j
                )
                continue
            inverse, logdet = inverted
            m = self.deviation(X, component.center)
            quad = np.einsum("nd,de,ne->n", m, inverse, m)
            scores[:, j] = -quad / 2 - logdet / 2 + np.log(component.weight)
        return scores


class SquaredDeviationScorer(ComponentScorer):
    name = "squared_deviation"

    def deviation(self, X: np.ndarray, center: np.ndarray) -> np.ndarray:
        return (X - center) ** 2


class MahalanobisScorer(ComponentScorer):
    name = "mahalanobis"

    def deviation(self, X: np.ndarray, center: np.ndarray) -> np.ndarray:
        return X - center


SCORERS = {
    SquaredDeviationScorer.name: SquaredDeviationScorer,
    MahalanobisScorer.name: MahalanobisScorer,
}


def get_scorer(scorer=None) -> ComponentScorer:
    """
    Resolve a scorer instance.

    Args:
        scorer: None (default squared-deviation scorer), a registered name,
            or a ``ComponentScorer`` instance

    Returns:
        ComponentScorer

    Raises:
        ConfigurationError: If *scorer* is an unknown name
    """
    if scorer is None:
        return SquaredDeviationScorer()
    if isinstance(scorer, ComponentScorer):
        return scorer
    if scorer in SCORERS:
        return SCORERS[scorer]()
    raise ConfigurationError(
        f"Unknown scorer {scorer!r}; expected one of {sorted(SCORERS)}"
    )
