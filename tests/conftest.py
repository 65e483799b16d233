"""
pytest configuration and shared fixtures.
"""

import pytest
import numpy as np


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def paired_clusters(rng):
    """Paired differences in 12 clusters of unequal size with a cluster effect."""
    sizes = np.array([1, 2, 3, 4, 2, 3, 1, 4, 3, 2, 3, 2])
    cluster = np.repeat(np.arange(sizes.size), sizes)
    effect = rng.normal(0.4, 1.0, sizes.size)
    d = effect[cluster] + rng.normal(0.0, 0.5, cluster.size)
    return d, cluster


@pytest.fixture
def cluster_level_groups(rng):
    """Two arms randomized by cluster: 10 clusters, 2-4 members each."""
    sizes = np.array([2, 3, 4, 2, 3, 3, 4, 2, 3, 2])
    cluster = np.repeat(np.arange(sizes.size), sizes)
    arm = np.array(["ctl", "trt"] * 5)[cluster]
    effect = rng.normal(0.0, 1.0, sizes.size)
    x = effect[cluster] + rng.normal(0.0, 0.7, cluster.size) + 0.8 * (arm == "trt")
    return x, cluster, arm


@pytest.fixture
def individual_level_groups(rng):
    """Both arms inside most of 8 clusters."""
    sizes = np.array([4, 5, 3, 6, 4, 5, 3, 4])
    cluster = np.repeat(np.arange(sizes.size), sizes)
    arm = np.where(rng.random(cluster.size) < 0.5, "a", "b")
    arm[np.searchsorted(cluster, np.arange(sizes.size))] = "a"
    arm[np.searchsorted(cluster, np.arange(sizes.size)) + 1] = "b"
    effect = rng.normal(0.0, 1.0, sizes.size)
    x = effect[cluster] + rng.normal(0.0, 1.0, cluster.size) + 0.5 * (arm == "b")
    return x, cluster, arm
