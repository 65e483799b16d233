"""
Solver dispatch for the clustered permutation engine.

Provides permutation_test(), used by clus_wilcox_test() and usable on
its own with any batch statistic.
"""

from __future__ import annotations

from typing import Callable, Literal

import numpy as np
from numpy.typing import ArrayLike

from pyclusrank.core.exceptions import ValidationError
from pyclusrank.montecarlo.design import ClusterPermutationDesign
from pyclusrank.montecarlo.solution import PermutationSolution
from pyclusrank.montecarlo.backends.cpu import CPUClusterPermutationBackend


def _get_backend(backend: str = 'cpu'):
    """Select backend for the permutation engine."""
    if backend in ('cpu', 'auto'):
        return CPUClusterPermutationBackend()
    raise ValidationError(
        f"Unknown backend: {backend!r}. Use 'cpu'."
    )


def permutation_test(
    statistic: Callable | ClusterPermutationDesign,
    observed: ArrayLike | None = None,
    *,
    unit: Literal["sign_flip", "cluster", "within_cluster"] = "sign_flip",
    B: int = 2000,
    alternative: Literal["two.sided", "less", "greater"] = "two.sided",
    blocks: ArrayLike | None = None,
    seed: int | np.random.Generator | None = None,
    n_jobs: int = 1,
    max_permutations: int = 2 ** 20,
    backend: str = 'cpu',
) -> PermutationSolution:
    """
    Permutation test over clustered relabellings.

    Parameters
    ----------
    statistic : callable or ClusterPermutationDesign
        Batch statistic: maps labels of shape (k, n_units) to k values.
    observed : array-like
        Observed labelling: +1/-1 cluster signs for "sign_flip", group
        codes per cluster for "cluster", group codes per observation
        for "within_cluster".
    unit : str
        Exchangeability unit.
    B : int
        Number of Monte Carlo relabellings. 0 enumerates every
        relabelling (not available for "within_cluster").
    alternative : str
        "two.sided" (default), "less", or "greater".
    blocks : array-like or None
        Labels move only inside a block: strata of clusters for
        "cluster", cluster ids for "within_cluster".
    seed : int, Generator or None
        Random source for Monte Carlo draws.
    n_jobs : int
        Worker threads. The result is the same for any value.
    max_permutations : int
        Largest exact enumeration accepted.
    backend : str
        'cpu' (default).

    Returns
    -------
    PermutationSolution
    """
    if isinstance(statistic, ClusterPermutationDesign):
        design = statistic
    else:
        if observed is None:
            raise ValidationError("observed: the observed labelling is required")
        design = ClusterPermutationDesign.for_permutation_test(
            statistic, observed,
            unit=unit,
            B=B,
            alternative=alternative,
            blocks=blocks,
            seed=seed,
            n_jobs=n_jobs,
            max_permutations=max_permutations,
        )

    be = _get_backend(backend)
    result = be.solve(design)
    return PermutationSolution(_result=result, _design=design)
