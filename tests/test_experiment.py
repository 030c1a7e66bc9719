"""
Tests for the experiment container.
"""

import numpy as np
import pandas as pd
import pytest

from flowcyto.exceptions import ShapeError
from flowcyto.experiment import ExperimentStore, FlowCytometryExperiment


def test_defaults():
    """obs/var are created with matching sizes when not given."""
    fct = FlowCytometryExperiment(np.zeros((5, 3)))

    assert isinstance(fct, ExperimentStore)
    assert fct.n_observations == 5
    assert len(fct.obs) == 5
    assert list(fct.var["channel"]) == ["channel_0", "channel_1", "channel_2"]
    assert fct.obsm == {}
    assert fct.uns == {}


def test_channel_names():
    fct = FlowCytometryExperiment(np.zeros((2, 2)), channels=["FSC-A", "SSC-A"])
    assert list(fct.var["channel"]) == ["FSC-A", "SSC-A"]


def test_shape_validation():
    """Mismatched tables or non-2-D matrices are rejected."""
    with pytest.raises(ShapeError):
        FlowCytometryExperiment(np.zeros(5))
    with pytest.raises(ShapeError):
        FlowCytometryExperiment(np.zeros((5, 2)), var=pd.DataFrame({"c": [1, 2, 3]}))
    with pytest.raises(ShapeError):
        FlowCytometryExperiment(np.zeros((5, 2)), obs=pd.DataFrame({"c": [1, 2]}))


def test_reads(experiment):
    assert experiment.get_matrix().shape == (120, 4)
    assert experiment.get_embedding("pca").shape == (120, 3)
    assert experiment.get_channel_annotation("use").dtype == bool


def test_missing_keys(experiment):
    with pytest.raises(KeyError, match="umap"):
        experiment.get_embedding("umap")
    with pytest.raises(KeyError, match="missing"):
        experiment.get_channel_annotation("missing")


def test_writes_overwrite(experiment):
    """Writing under an existing key replaces the previous value."""
    experiment.set_observation_labels("clusters", np.zeros(120, dtype=int))
    experiment.set_observation_labels("clusters", np.ones(120, dtype=int))
    experiment.set_result("clusters", {"a": 1})
    experiment.set_result("clusters", {"b": 2})

    assert (experiment.obs["clusters"] == 1).all()
    assert experiment.uns["clusters"] == {"b": 2}


def test_label_length_checked(experiment):
    with pytest.raises(ShapeError):
        experiment.set_observation_labels("clusters", np.zeros(3, dtype=int))
    assert "clusters" not in experiment.obs.columns
