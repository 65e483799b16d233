"""
Rosner-Glynn-Lee (RGL) clustered Wilcoxon tests.

Signed-rank (Rosner, Glynn & Lee 2006, Biometrics 62:185-192):
ordinary signed ranks of |x - mu| over the whole sample. Clusters are
weighted by 1 / (1 + (g_i - 1) rho), rho the intraclass correlation of
signed ranks, so that large clusters of correlated members do not count
as many independent observations. With balanced clusters the weights
are constant and the variance is the exact cluster sign-flip variance.

Rank-sum (Rosner, Glynn & Lee 2003, Biometrics 59:1089-1098; 2006,
Biometrics 62:1251-1259): rank sum of the first group, treatment at
cluster or individual level, optionally stratified when treatment is
cluster-level. Moments are computed per stratum and summed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
import numpy as np

from pyclusrank.hypothesis._common import TreatmentLevel
from pyclusrank.hypothesis._ranks import midrank, signed_rank_parts
from pyclusrank.hypothesis.backends._moments import (
    RankMoments,
    cluster_sums,
    exchangeable_variance,
    within_cluster_moments,
)

if TYPE_CHECKING:
    from pyclusrank.hypothesis.design import ClusteredWilcoxDesign


def signed_rank_rgl(design: ClusteredWilcoxDesign) -> tuple[RankMoments, list[str]]:
    """
    RGL clustered signed-rank statistic and null moments.

    The reported statistic is on the weighted scale, sum_i w_i P_i, and its
    expectation sum_i w_i (P_i + Q_i) / 2 depends on the data unless the
    weights are constant. The unweighted T+ and its closed-form
    expectation N (N + 1) / 4 are kept in extras.
    """
    warnings_list: list[str] = []
    d = design.x - design.mu
    m = design.n_clusters
    cluster = design.cluster
    sizes = design.cluster_sizes.astype(np.float64)

    ranks = midrank(np.abs(d))
    signed = np.sign(d) * ranks

    s2, cov = within_cluster_moments(
        signed, cluster, m, np.ones_like(signed), ddof=0
    )
    rho = cov / s2 if s2 > 0 else 0.0
    rho = float(np.clip(rho, 0.0, 1.0))
    w = 1.0 / (1.0 + (sizes - 1.0) * rho)

    pos_parts, neg_parts = signed_rank_parts(d, ranks)
    pos = cluster_sums(pos_parts, cluster, m)
    neg = cluster_sums(neg_parts, cluster, m)

    statistic = float(np.sum(w * pos))
    expectation = float(np.sum(w * (pos + neg)) / 2.0)
    variance = float(np.sum(w ** 2 * sizes * (s2 + (sizes - 1.0) * cov)) / 4.0)

    half = w * (pos - neg) / 2.0

    def permutation_statistic(signs):
        return np.asarray(signs, dtype=np.float64) @ half

    return RankMoments(
        statistic=statistic,
        expectation=expectation,
        variance=variance,
        unit="sign_flip",
        observed=np.ones(m, dtype=np.int8),
        permutation_statistic=permutation_statistic,
        extras={
            "rho": rho,
            "t_plus": float(np.sum(pos)),
            "t_plus_expectation": d.shape[0] * (d.shape[0] + 1) / 4.0,
        },
    ), warnings_list


def rank_sum_rgl(design: ClusteredWilcoxDesign) -> tuple[RankMoments, list[str]]:
    """
    RGL clustered rank-sum statistic and null moments.

    Ranks are taken within strata. For stratum s,
    W_s = sum of first-group ranks, E_s = N1s (Ns + 1) / 2, and the
    variance comes from the contrast c = 1[first] - N1s / Ns.
    """
    warnings_list: list[str] = []
    m = design.n_clusters
    cluster = design.cluster
    stratum = design.stratum
    first = design.group == 0
    x_adj = design.x - design.mu * first

    ranks = np.empty_like(x_adj)
    n_s = np.bincount(stratum, minlength=design.n_strata)
    for s in range(design.n_strata):
        idx = stratum == s
        ranks[idx] = midrank(x_adj[idx])
    centred = ranks - (n_s[stratum] + 1.0) / 2.0

    statistic = float(np.sum(ranks[first]))
    expectation = float(np.sum(((n_s[stratum] + 1.0) / 2.0)[first]))

    variance = 0.0
    rhos = []
    for s in range(design.n_strata):
        idx = stratum == s
        if n_s[s] < 2:
            continue
        e = centred[idx]
        s2, cov = within_cluster_moments(
            e, cluster[idx], m, np.ones_like(e), ddof=1
        )
        rhos.append(cov / s2 if s2 > 0 else 0.0)
        c = first[idx] - np.mean(first[idx])
        variance += exchangeable_variance(c, cluster[idx], m, s2, cov)

    if design.treatment is TreatmentLevel.CLUSTER:
        contribution = cluster_sums(centred, cluster, m)
        unit = "cluster"
        observed = design.cluster_group

        def permutation_statistic(labels):
            return (np.asarray(labels) == 0).astype(np.float64) @ contribution
    else:
        unit = "within_cluster"
        observed = design.group

        def permutation_statistic(labels):
            return (np.asarray(labels) == 0).astype(np.float64) @ centred

    return RankMoments(
        statistic=statistic,
        expectation=expectation,
        variance=float(variance),
        unit=unit,
        observed=observed,
        permutation_statistic=permutation_statistic,
        extras={"rho": rhos[0] if len(rhos) == 1 else rhos},
    ), warnings_list
