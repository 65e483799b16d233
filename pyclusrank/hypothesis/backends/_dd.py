"""
Dutta-Datta (DD) clustered rank-sum test.

Dutta & Datta (2016), Biometrics 72:432-440. Built for designs where
the number of members of each group inside a cluster is informative.
Every observation of group k in cluster i gets weight

    omega_ij = 1 / (m_k * n_ik)

with m_k the number of clusters containing group k and n_ik the group-k
count of cluster i. theta is the weighted probability that a group-0
observation exceeds a group-1 observation (ties count one half), and the
reported statistic maps theta onto the rank-sum scale:

    W = N0 * N1 * theta + N0 (N0 + 1) / 2

which is the classical Wilcoxon W when every cluster has one member.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
import numpy as np
from numpy.typing import NDArray

from pyclusrank.hypothesis._common import TreatmentLevel
from pyclusrank.hypothesis._ranks import weighted_mid_cdf
from pyclusrank.hypothesis.backends._moments import (
    RankMoments,
    cluster_randomization_covariance,
    cluster_robust_covariance,
    cluster_sums,
)

if TYPE_CHECKING:
    from pyclusrank.hypothesis.design import ClusteredWilcoxDesign


def _group_weights(
    labels: NDArray[np.intp],
    cluster: NDArray[np.intp],
    n_clusters: int,
) -> NDArray[np.floating[Any]]:
    """omega_ij = 1 / (m_k n_ik) for the two groups coded 0 and 1."""
    omega = np.empty(labels.shape[0], dtype=np.float64)
    for k in (0, 1):
        member = labels == k
        n_ik = np.bincount(cluster[member], minlength=n_clusters)
        m_k = int(np.count_nonzero(n_ik))
        omega[member] = 1.0 / (m_k * n_ik[cluster[member]])
    return omega


def _theta(
    x: NDArray[np.floating[Any]],
    labels: NDArray[np.intp],
    cluster: NDArray[np.intp],
    n_clusters: int,
) -> float:
    omega = _group_weights(labels, cluster, n_clusters)
    first = labels == 0
    f1 = weighted_mid_cdf(x[first], x[~first], omega[~first])
    return float(np.sum(omega[first] * f1))


def rank_sum_dd(design: ClusteredWilcoxDesign) -> tuple[RankMoments, list[str]]:
    """
    DD clustered rank-sum statistic and null moments.

    The null variance of theta comes from its projection
    sum_ij u_ij (F(x_ij) - Fbar), u = +omega for group 0 and -omega for
    group 1, F the pooled mid-distribution function. Clusters are the
    independent units: with cluster-level treatment the projection is a
    contrast of cluster means of F under random assignment of clusters,
    otherwise Var(theta) is the empirical variance of the per-cluster
    projection totals.
    """
    warnings_list: list[str] = []
    m = design.n_clusters
    cluster = design.cluster
    group = design.group
    first = group == 0
    x_adj = design.x - design.mu * first

    n0 = int(np.sum(first))
    n1 = int(first.shape[0] - n0)
    n = n0 + n1

    omega = _group_weights(group, cluster, m)
    f_pooled = (
        n0 / n * weighted_mid_cdf(x_adj, x_adj[first], omega[first])
        + n1 / n * weighted_mid_cdf(x_adj, x_adj[~first], omega[~first])
    )
    v = 1.0 / design.cluster_sizes[cluster].astype(np.float64)
    centred = f_pooled - np.sum(v * f_pooled) / m

    if design.treatment is TreatmentLevel.CLUSTER:
        counts = np.bincount(design.cluster_group, minlength=2)
        contrast = np.array([1.0, -1.0]) / counts
        cov_matrix = cluster_randomization_covariance(
            cluster_sums(v * centred, cluster, m), counts
        )
        var_theta = float(contrast @ cov_matrix @ contrast)
    else:
        u = np.where(first, omega, -omega)
        var_theta = cluster_robust_covariance(cluster_sums(u * centred, cluster, m))

    theta = _theta(x_adj, group, cluster, m)
    scale = float(n0 * n1)
    statistic = scale * theta + n0 * (n0 + 1) / 2.0
    expectation = n0 * (n + 1) / 2.0
    variance = scale ** 2 * var_theta

    if design.treatment is TreatmentLevel.CLUSTER:
        unit = "cluster"
        observed = design.cluster_group

        def to_obs(labels):
            return np.asarray(labels)[:, cluster]
    else:
        unit = "within_cluster"
        observed = group

        def to_obs(labels):
            return np.asarray(labels)

    def permutation_statistic(labels):
        obs_labels = to_obs(labels)
        out = np.empty(obs_labels.shape[0])
        for b, row in enumerate(obs_labels):
            out[b] = scale * (_theta(x_adj, row, cluster, m) - 0.5)
        return out

    return RankMoments(
        statistic=float(statistic),
        expectation=float(expectation),
        variance=float(variance),
        unit=unit,
        observed=observed,
        permutation_statistic=permutation_statistic,
        extras={"theta": theta},
    ), warnings_list
