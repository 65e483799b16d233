"""
Datta-Satten (DS) clustered Wilcoxon tests.

Ranks are pairwise comparison counts in which every cluster carries total
weight one (each member weighs 1/n_i), i.e. ranks against the
cluster-weighted empirical distribution function. The statistic uses the
same 1/n_i weights, so the test stays valid when cluster size is
informative of the outcome.

Signed-rank: Datta & Satten (2008), Biometrics 64:501-507.
Rank-sum: Datta & Satten (2005), JASA 100:908-915. With more than two
groups the per-group weighted rank sums are combined into a Wald
chi-square statistic with K - 1 degrees of freedom.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
import numpy as np
from numpy.typing import NDArray
from scipy import linalg as sp_linalg

from pyclusrank.hypothesis._common import TreatmentLevel
from pyclusrank.hypothesis._ranks import signed_rank_parts, weighted_midrank
from pyclusrank.hypothesis.backends._moments import (
    RankMoments,
    cluster_randomization_covariance,
    cluster_robust_covariance,
    cluster_sums,
)

if TYPE_CHECKING:
    from pyclusrank.hypothesis.design import ClusteredWilcoxDesign


def _cluster_weights(design: ClusteredWilcoxDesign) -> NDArray[np.floating[Any]]:
    """1 / n_i for every observation."""
    return 1.0 / design.cluster_sizes[design.cluster].astype(np.float64)


def signed_rank_ds(design: ClusteredWilcoxDesign) -> tuple[RankMoments, list[str]]:
    """
    DS clustered signed-rank statistic and null moments.

    S+ = sum_i v_i sum_{j: d_ij > 0} R~_ij, with R~ the cluster-weighted
    ranks of |d|. R~ depends only on |d|, so under cluster sign flips
    Var(S+) = sum_i A_i^2 / 4 with A_i = v_i sum_j sign(d_ij) R~_ij.
    """
    warnings_list: list[str] = []
    d = design.x - design.mu
    m = design.n_clusters
    cluster = design.cluster
    v = _cluster_weights(design)

    ranks = weighted_midrank(np.abs(d), v)
    pos_parts, neg_parts = signed_rank_parts(d, v * ranks)
    pos = cluster_sums(pos_parts, cluster, m)
    neg = cluster_sums(neg_parts, cluster, m)

    statistic = float(np.sum(pos))
    expectation = float(np.sum(pos + neg) / 2.0)
    variance = float(np.sum((pos - neg) ** 2) / 4.0)

    half = (pos - neg) / 2.0

    def permutation_statistic(signs):
        return np.asarray(signs, dtype=np.float64) @ half

    return RankMoments(
        statistic=statistic,
        expectation=expectation,
        variance=variance,
        unit="sign_flip",
        observed=np.ones(m, dtype=np.int8),
        permutation_statistic=permutation_statistic,
    ), warnings_list


def _cluster_scores(
    labels: NDArray[np.intp],
    n_groups: int,
    ve: NDArray[np.floating[Any]],
    v: NDArray[np.floating[Any]],
    cluster: NDArray[np.intp],
    n_clusters: int,
) -> NDArray[np.floating[Any]]:
    """
    Cluster contributions U_ik = v_i sum_j (1[k] - p_k) e_ij to the
    centred group rank sums, p_k = sum_i v_i n_ik / m. Rows sum to W - E.
    """
    onehot = (labels[:, None] == np.arange(n_groups)).astype(np.float64)
    p = (v @ onehot) / n_clusters
    scores = np.zeros((n_clusters, n_groups))
    np.add.at(scores, cluster, ve[:, None] * (onehot - p))
    return scores


def _wald(diff: NDArray, cov_matrix: NDArray) -> float:
    return float(diff @ sp_linalg.pinv(cov_matrix) @ diff)


def rank_sum_ds(design: ClusteredWilcoxDesign) -> tuple[RankMoments, list[str]]:
    """
    DS clustered rank-sum statistic and null moments.

    W_k = sum_i v_i sum_{j in group k} R~_ij with expectation
    p_k * sum_i v_i sum_j R~_ij, p_k = sum_i v_i n_ik / m. Two groups give
    a Z test on group 0; more groups give d' C^+ d with K - 1 df.

    C is built from cluster-level quantities only. With cluster-level
    treatment it is the randomization covariance of the cluster totals
    a_i = v_i sum_j e_ij; otherwise it is the empirical covariance of the
    cluster contributions U_i. Both are non-negative definite.
    """
    warnings_list: list[str] = []
    m = design.n_clusters
    k = design.n_groups
    cluster = design.cluster
    group = design.group
    v = _cluster_weights(design)
    x_adj = design.x - design.mu * (group == 0)

    ranks = weighted_midrank(x_adj, v)
    vr = v * ranks
    total = float(np.sum(vr))
    ve = v * (ranks - total / m)

    w = np.bincount(group, weights=vr, minlength=k)
    e = np.bincount(group, weights=v, minlength=k) / m * total

    if design.treatment is TreatmentLevel.CLUSTER:
        unit = "cluster"
        observed = design.cluster_group
        totals = cluster_sums(ve, cluster, m)
        cov_matrix = cluster_randomization_covariance(
            totals, np.bincount(observed, minlength=k)
        )
        inv = sp_linalg.pinv(cov_matrix)

        def to_obs(labels):
            return np.asarray(labels)[:, cluster]

        def multi_group_statistic(labels):
            onehot = (np.asarray(labels)[:, :, None] == np.arange(k)).astype(np.float64)
            diffs = np.einsum('bik,i->bk', onehot, totals)
            return np.einsum('bk,kl,bl->b', diffs, inv, diffs)
    else:
        unit = "within_cluster"
        observed = group
        cov_matrix = cluster_robust_covariance(
            _cluster_scores(group, k, ve, v, cluster, m)
        )

        def to_obs(labels):
            return np.asarray(labels)

        def multi_group_statistic(labels):
            rows = np.asarray(labels)
            out = np.empty(rows.shape[0])
            for b, row in enumerate(rows):
                scores = _cluster_scores(row, k, ve, v, cluster, m)
                out[b] = _wald(scores.sum(axis=0), cluster_robust_covariance(scores))
            return out

    if k == 2:
        def permutation_statistic(labels):
            ind = (to_obs(labels) == 0).astype(np.float64)
            return ind @ vr - (ind @ v) / m * total

        return RankMoments(
            statistic=float(w[0]),
            expectation=float(e[0]),
            variance=float(cov_matrix[0, 0]),
            unit=unit,
            observed=observed,
            permutation_statistic=permutation_statistic,
        ), warnings_list

    return RankMoments(
        statistic=w,
        expectation=e,
        variance=cov_matrix,
        unit=unit,
        observed=observed,
        permutation_statistic=multi_group_statistic,
        df=k - 1,
    ), warnings_list


def wald_statistic(moments: RankMoments) -> float:
    """Chi-square statistic of a multi-group RankMoments."""
    return _wald(
        np.asarray(moments.statistic) - np.asarray(moments.expectation),
        np.asarray(moments.variance),
    )
