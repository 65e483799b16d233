"""
Clustered Wilcoxon tests.

Public API:
    clus_wilcox_test(x, cluster=..., group=...)   - clustered rank sum test
    clus_wilcox_test(x, cluster=..., paired=True) - clustered signed rank test

Methods: "rgl" (Rosner-Glynn-Lee), "ds" (Datta-Satten),
"dd" (Dutta-Datta, rank sum only).
"""

from pyclusrank.hypothesis.solvers import clus_wilcox_test
from pyclusrank.hypothesis.design import ClusteredWilcoxDesign
from pyclusrank.hypothesis._common import ClusWilcoxParams, MethodTag
from pyclusrank.hypothesis._ranks import midrank, weighted_midrank
from pyclusrank.hypothesis.solution import ClusWilcoxSolution

__all__ = [
    "clus_wilcox_test",
    "ClusteredWilcoxDesign",
    "ClusWilcoxParams",
    "ClusWilcoxSolution",
    "MethodTag",
    "midrank",
    "weighted_midrank",
]
