"""
pyclusrank permutation engine.

Exact enumeration and Monte Carlo null distributions for statistics of
clustered data: cluster sign flips, cluster-level relabelling within
strata, and individual-level relabelling within clusters.

Usage:
    from pyclusrank.montecarlo import permutation_test

    result = permutation_test(stat, signs, unit="sign_flip", B=0)
    result = permutation_test(stat, labels, unit="cluster", B=9999, seed=1)
"""

from pyclusrank.montecarlo.design import ClusterPermutationDesign
from pyclusrank.montecarlo.solution import PermutationSolution
from pyclusrank.montecarlo.solvers import permutation_test

__all__ = [
    "ClusterPermutationDesign",
    "PermutationSolution",
    "permutation_test",
]
