"""
Rank transforms shared by every clustered Wilcoxon method.

midrank() is the ordinary tie-averaged rank. weighted_midrank() is its
generalisation where each observation carries a weight: the rank of v is
1/2 plus the total weight of observations below v plus half the weight
tied with v (itself included). With unit weights the two agree exactly.
"""

from __future__ import annotations

from typing import Any
import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy import stats as sp_stats

from pyclusrank.core.exceptions import ValidationError


def midrank(x: ArrayLike, mu: float = 0.0) -> NDArray[np.floating[Any]]:
    """
    Mid-ranks of x - mu.

    Tied values receive the average of the ranks they would occupy.
    The ranks always sum to n(n+1)/2.

    Raises:
        ValidationError: If x is empty
    """
    arr = np.asarray(x, dtype=np.float64).ravel()
    if arr.size == 0:
        raise ValidationError("x: cannot rank an empty sample")
    return sp_stats.rankdata(arr - mu, method='average')


def weighted_mid_cdf(
    points: ArrayLike,
    values: ArrayLike,
    weights: ArrayLike,
) -> NDArray[np.floating[Any]]:
    """
    Weighted mid-distribution function of `values` evaluated at `points`.

    F(t) = sum_b w_b * psi(t, v_b), psi = 1 if v_b < t, 1/2 if v_b == t.
    """
    t = np.asarray(points, dtype=np.float64).ravel()
    v = np.asarray(values, dtype=np.float64).ravel()
    w = np.asarray(weights, dtype=np.float64).ravel()
    if w.shape != v.shape:
        raise ValidationError(
            f"weights: length {w.size} does not match values length {v.size}"
        )

    order = np.argsort(v, kind='stable')
    v_sorted = v[order]
    cum = np.concatenate([[0.0], np.cumsum(w[order])])
    below = cum[np.searchsorted(v_sorted, t, side='left')]
    upto = cum[np.searchsorted(v_sorted, t, side='right')]
    return below + 0.5 * (upto - below)


def weighted_midrank(
    values: ArrayLike,
    weights: ArrayLike,
) -> NDArray[np.floating[Any]]:
    """
    Weighted mid-ranks: 1/2 + weighted_mid_cdf(values, values, weights).

    Raises:
        ValidationError: If values is empty or weights do not align
    """
    v = np.asarray(values, dtype=np.float64).ravel()
    if v.size == 0:
        raise ValidationError("values: cannot rank an empty sample")
    return 0.5 + weighted_mid_cdf(v, v, weights)


def signed_rank_parts(
    d: ArrayLike,
    ranks: ArrayLike,
) -> tuple[NDArray[np.floating[Any]], NDArray[np.floating[Any]]]:
    """
    Split ranks of |d| into their positive and negative parts.

    Returns:
        (pos, neg) with pos = ranks where d > 0 else 0, neg likewise for d < 0.
    """
    d_arr = np.asarray(d, dtype=np.float64).ravel()
    r_arr = np.asarray(ranks, dtype=np.float64).ravel()
    if d_arr.shape != r_arr.shape:
        raise ValidationError(
            f"ranks: length {r_arr.size} does not match d length {d_arr.size}"
        )
    return np.where(d_arr > 0, r_arr, 0.0), np.where(d_arr < 0, r_arr, 0.0)
