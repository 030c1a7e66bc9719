"""
Test suite for flowcyto.

This package contains all tests organized by component:
- test_clustering/: Tests for feature selection, scoring, the Gaussian
  mixture estimator and the delegated backends
- test_experiment.py, test_config.py: container and configuration tests
"""
