"""
Common data structures for the clustered permutation engine.

PermutationParams is the parameter payload wrapped by Result[P] and
exposed through PermutationSolution.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray


VALID_UNITS = ("sign_flip", "cluster", "within_cluster")

# Relabellings evaluated per call of the statistic; also the unit of
# work handed to a worker thread and of seed spawning.
BLOCK_SIZE = 1024


@dataclass(frozen=True)
class PermutationParams:
    """
    Parameter payload for clustered permutation test results.

    - observed_stat: statistic of the observed labelling
    - perm_stats: statistics of every relabelling, in block order
    - count: relabellings at least as extreme as the observed one
    - p_value: count / n_permutations for exact enumeration,
      (count + 1) / (n_permutations + 1) for Monte Carlo
    """
    observed_stat: float
    perm_stats: NDArray[np.floating[Any]]      # shape (n_permutations,)
    p_value: float
    count: int
    n_permutations: int
    mode: str                                   # "exact" | "monte_carlo"
    alternative: str                            # "two.sided" | "less" | "greater"
    unit: str                                   # one of VALID_UNITS
