"""
pyclusrank: Wilcoxon rank tests for clustered data.

Signed-rank and rank-sum tests in which observations inside a cluster
are correlated and the cluster is the independent unit, with
large-sample and permutation p-values.

Submodules:
    hypothesis: clus_wilcox_test() and the RGL, DS and DD moment engines
    montecarlo: Clustered permutation engine (exact and Monte Carlo)
"""

__version__ = "0.1.0"

from pyclusrank import hypothesis
from pyclusrank import montecarlo
from pyclusrank.hypothesis import clus_wilcox_test
from pyclusrank.montecarlo import permutation_test

__all__ = [
    "__version__",
    "hypothesis",
    "montecarlo",
    "clus_wilcox_test",
    "permutation_test",
]
