"""
Solver dispatch for the clustered Wilcoxon tests.

Provides clus_wilcox_test(), the clustered counterpart of wilcox_test().
"""

from __future__ import annotations

from typing import Literal

import numpy as np
from numpy.typing import ArrayLike

from pyclusrank.core.exceptions import ValidationError
from pyclusrank.hypothesis.design import ClusteredWilcoxDesign
from pyclusrank.hypothesis.solution import ClusWilcoxSolution
from pyclusrank.hypothesis.backends.cpu import CPUClusWilcoxBackend


def _get_backend(backend: str = 'cpu'):
    """Select backend for the clustered Wilcoxon tests."""
    if backend in ('cpu', 'auto'):
        return CPUClusWilcoxBackend()
    raise ValidationError(
        f"Unknown backend: {backend!r}. Use 'cpu'."
    )


def clus_wilcox_test(
    x: ArrayLike | ClusteredWilcoxDesign,
    y: ArrayLike | None = None,
    *,
    cluster: ArrayLike | None = None,
    group: ArrayLike | None = None,
    stratum: ArrayLike | None = None,
    alternative: Literal["two.sided", "less", "greater"] = "two.sided",
    mu: float = 0.0,
    paired: bool = False,
    exact: bool = False,
    B: int = 2000,
    method: Literal["rgl", "ds", "dd"] = "rgl",
    seed: int | np.random.Generator | None = None,
    n_jobs: int = 1,
    max_permutations: int = 2 ** 20,
    backend: str = 'cpu',
) -> ClusWilcoxSolution:
    """
    Wilcoxon signed-rank or rank-sum test for clustered data.

    Parameters
    ----------
    x : array-like or ClusteredWilcoxDesign
        Sample values; paired differences when paired=True.
    y : array-like or None
        Optional second sample. When given, the signed-rank test is run
        on x - y.
    cluster : array-like
        Cluster id of each observation. Required.
    group : array-like or None
        Treatment id of each observation. Required for the rank-sum
        test; two groups, or two or more for method="ds".
    stratum : array-like or None
        Stratum id. Used by the RGL rank-sum test when treatment is
        assigned at the cluster level; ignored with a warning otherwise.
    alternative : str
        "two.sided" (default), "less", or "greater".
    mu : float
        Location shift under H0: the centre of the differences for the
        signed-rank test, the shift of the first group (in sorted label
        order) for the rank-sum test. Default 0.
    paired : bool
        If True, perform the clustered signed-rank test.
    exact : bool
        If True, compute a permutation p-value: exact enumeration when
        B = 0, B Monte Carlo relabellings otherwise.
    B : int
        Number of Monte Carlo relabellings. Default 2000.
    method : str
        "rgl" (Rosner-Glynn-Lee, default), "ds" (Datta-Satten) or
        "dd" (Dutta-Datta, rank-sum only).
    seed : int, Generator or None
        Random source for Monte Carlo relabellings.
    n_jobs : int
        Worker threads for the permutation engine. Results do not depend
        on it.
    max_permutations : int
        Largest exact enumeration accepted.
    backend : str
        'cpu' (default).

    Returns
    -------
    ClusWilcoxSolution
        Test result with rank statistic, its null moments, the
        standardized statistic and p-value.
    """
    if isinstance(x, ClusteredWilcoxDesign):
        design = x
    else:
        design = ClusteredWilcoxDesign.for_clus_wilcox_test(
            x, y,
            cluster=cluster,
            group=group,
            stratum=stratum,
            alternative=alternative,
            mu=mu,
            paired=paired,
            exact=exact,
            B=B,
            method=method,
            seed=seed,
            n_jobs=n_jobs,
            max_permutations=max_permutations,
        )

    be = _get_backend(backend)
    result = be.solve(design)
    return ClusWilcoxSolution(_result=result, _design=design)
