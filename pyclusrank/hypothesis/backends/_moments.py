"""
Moment machinery shared by the RGL, DS and DD engines.

Every engine reduces its centred rank statistic to a linear form
sum_ij u_ij * e_ij, where e_ij are centred (possibly weighted) ranks and
u_ij are contrast coefficients. Three null covariances are available:

exchangeable_variance
    RGL. Exchangeable within-cluster correlation, clusters independent:
    Var = sum_i [(s2 - cov) * sum_j u_ij^2 + cov * (sum_j u_ij)^2].
cluster_randomization_covariance
    DS and DD with cluster-level treatment. Whole clusters are the
    randomized units; only their totals enter.
cluster_robust_covariance
    DS and DD with individual-level treatment. Empirical covariance of
    the per-cluster contributions, clusters as the independent units.

With one member per cluster the first two collapse to the classical
permutation variance. All but the first are non-negative definite for
any data.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable
import numpy as np
from numpy.typing import NDArray
from scipy import stats as sp_stats


@dataclass(frozen=True)
class RankMoments:
    """
    Output of a moment engine.

    statistic, expectation and variance describe the rank statistic
    under H0 (vector/matrix for the multi-group DS test). The last three
    fields tell the permutation engine how to relabel the data:

    unit : str
        Exchangeability unit, "sign_flip", "cluster" or "within_cluster".
    observed : ndarray
        The observed relabelling (cluster signs, cluster group codes or
        observation group codes).
    permutation_statistic : callable
        Maps a (k, len(observed)) batch of relabellings to k statistics:
        centred rank statistic for one-df tests, chi-square otherwise.
    """
    statistic: float | NDArray[np.floating[Any]]
    expectation: float | NDArray[np.floating[Any]]
    variance: float | NDArray[np.floating[Any]]
    unit: str
    observed: NDArray
    permutation_statistic: Callable[[NDArray], NDArray[np.floating[Any]]]
    df: int | None = None
    extras: dict[str, Any] = field(default_factory=dict)


def cluster_sums(
    values: NDArray[np.floating[Any]],
    cluster: NDArray[np.intp],
    n_clusters: int,
) -> NDArray[np.floating[Any]]:
    """Sum of `values` within each cluster."""
    return np.bincount(cluster, weights=values, minlength=n_clusters)


def within_cluster_moments(
    e: NDArray[np.floating[Any]],
    cluster: NDArray[np.intp],
    n_clusters: int,
    weights: NDArray[np.floating[Any]],
    ddof: int,
) -> tuple[float, float]:
    """
    Rank variance and within-cluster pair covariance.

    Args:
        e: Centred ranks (centred at 0 for signed ranks)
        cluster: Cluster code of each observation
        n_clusters: Number of cluster codes
        weights: Observation weights, constant within a cluster
        ddof: 1 when e was centred at its sample mean, else 0

    Returns:
        (s2, cov). cov is 0 when no cluster has two members.
    """
    denom = float(np.sum(weights)) - ddof
    s2 = float(np.sum(weights * e ** 2) / denom) if denom > 0 else 0.0

    sizes = np.bincount(cluster, minlength=n_clusters).astype(np.float64)
    present = sizes > 0
    w_clus = np.zeros(n_clusters)
    w_clus[present] = (
        np.bincount(cluster, weights=weights, minlength=n_clusters)[present]
        / sizes[present]
    )
    s = cluster_sums(e, cluster, n_clusters)
    q = cluster_sums(e ** 2, cluster, n_clusters)

    pairs = float(np.sum(w_clus * sizes * (sizes - 1)))
    if pairs <= 0:
        return s2, 0.0
    cov = float(np.sum(w_clus * (s ** 2 - q)) / pairs)
    return s2, cov


def exchangeable_variance(
    coef: NDArray[np.floating[Any]],
    cluster: NDArray[np.intp],
    n_clusters: int,
    s2: float,
    cov: float,
) -> float | NDArray[np.floating[Any]]:
    """
    Variance of sum(coef * e) under the exchangeable cluster model.

    coef of shape (n,) gives a scalar; shape (n, K) gives the K x K
    covariance matrix of the K contrasts.
    """
    if coef.ndim == 1:
        u = cluster_sums(coef, cluster, n_clusters)
        return float((s2 - cov) * np.dot(coef, coef) + cov * np.dot(u, u))

    u = np.zeros((n_clusters, coef.shape[1]))
    np.add.at(u, cluster, coef)
    return (s2 - cov) * (coef.T @ coef) + cov * (u.T @ u)


def cluster_randomization_covariance(
    totals: NDArray[np.floating[Any]],
    counts: NDArray,
) -> NDArray[np.floating[Any]]:
    """
    Covariance of the per-group sums of cluster totals a_i when whole
    clusters are assigned at random to groups of sizes m_k:

        C_kl = S / (m - 1) * (m_k delta_kl - m_k m_l / m),
        S = sum_i (a_i - abar)^2
    """
    m = totals.shape[0]
    dev = totals - totals.mean()
    counts = np.asarray(counts, dtype=np.float64)
    spread = float(np.dot(dev, dev)) / (m - 1.0)
    return spread * (np.diag(counts) - np.outer(counts, counts) / m)


def cluster_robust_covariance(
    scores: NDArray[np.floating[Any]],
) -> float | NDArray[np.floating[Any]]:
    """
    m / (m - 1) * sum_i (U_i - Ubar)(U_i - Ubar)' over cluster scores U_i.

    scores of shape (m,) gives a scalar; shape (m, K) gives a K x K matrix.
    """
    m = scores.shape[0]
    dev = scores - scores.mean(axis=0)
    if dev.ndim == 1:
        return float(m / (m - 1.0) * np.dot(dev, dev))
    return m / (m - 1.0) * (dev.T @ dev)


def normal_p_value(z: float, alternative: str) -> float:
    """p-value of a standard normal statistic."""
    if alternative == "two.sided":
        p_value = 2.0 * sp_stats.norm.sf(abs(z))
    elif alternative == "less":
        p_value = sp_stats.norm.cdf(z)
    elif alternative == "greater":
        p_value = sp_stats.norm.sf(z)
    else:
        raise ValueError(f"Unknown alternative: {alternative!r}")
    return float(min(p_value, 1.0))


def chisq_p_value(statistic: float, df: int) -> float:
    """Upper-tail chi-square p-value."""
    return float(sp_stats.chi2.sf(statistic, df))
