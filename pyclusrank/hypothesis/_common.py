"""
Common types for the clustered Wilcoxon tests.

Defines the closed set of method tags, the treatment levels, and
ClusWilcoxParams (the immutable test record every backend returns).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any
import numpy as np
from numpy.typing import NDArray

from pyclusrank.core.exceptions import UnsupportedDesignError, ValidationError


VALID_ALTERNATIVES = ("two.sided", "less", "greater")
VALID_METHODS = ("rgl", "ds", "dd")

# Exact enumeration becomes impractical beyond this many clusters.
EXACT_CLUSTER_WARNING = 50


class MethodTag(Enum):
    """Statistical routine selected for a test call: (method, test family)."""
    SIGNED_RANK_RGL = ("rgl", "signed_rank")
    SIGNED_RANK_DS = ("ds", "signed_rank")
    RANK_SUM_RGL = ("rgl", "rank_sum")
    RANK_SUM_DS = ("ds", "rank_sum")
    RANK_SUM_DD = ("dd", "rank_sum")

    @property
    def method(self) -> str:
        return self.value[0]

    @property
    def family(self) -> str:
        return self.value[1]

    @property
    def is_signed_rank(self) -> bool:
        return self.value[1] == "signed_rank"

    @property
    def label(self) -> str:
        """Human-readable method name."""
        base = (
            "Clustered Wilcoxon signed rank test"
            if self.is_signed_rank
            else "Clustered Wilcoxon rank sum test"
        )
        return f"{base} using {_AUTHORS[self.value[0]]} method"


_AUTHORS = {
    "rgl": "Rosner-Glynn-Lee",
    "ds": "Datta-Satten",
    "dd": "Dutta-Datta",
}


def resolve_method_tag(paired: bool, method: str) -> MethodTag:
    """
    Resolve (paired, method) to a MethodTag.

    Raises:
        ValidationError: If method is not one of VALID_METHODS
        UnsupportedDesignError: If the combination is not defined
    """
    if method not in VALID_METHODS:
        raise ValidationError(
            f"method must be one of {VALID_METHODS}, got {method!r}"
        )
    family = "signed_rank" if paired else "rank_sum"
    for tag in MethodTag:
        if tag.value == (method, family):
            return tag
    raise UnsupportedDesignError(
        f"method={method!r} is not available for the clustered signed rank "
        f"test; use 'rgl' or 'ds'",
        argument="method",
    )


class TreatmentLevel(Enum):
    """Level at which group membership is assigned in a rank-sum design."""
    CLUSTER = "cluster"
    INDIVIDUAL = "individual"


@dataclass(frozen=True)
class ClusWilcoxParams:
    """
    Parameter payload for the clustered Wilcoxon tests.

    Attributes
    ----------
    rank_statistic : float or ndarray
        Rank statistic (sum of positive signed ranks, or rank sum of the
        first group). Per-group rank sums for a multi-group DS test.
    expectation : float or ndarray
        Null expectation of the rank statistic.
    variance : float, ndarray or None
        Null variance of the rank statistic (covariance matrix for a
        multi-group DS test). None when a permutation p-value was used.
    statistic : float
        Standardized statistic: Z, or X-squared for a multi-group DS test.
    statistic_name : str
        "Z" or "X-squared".
    p_value : float
        p-value of the test.
    alternative : str
        "two.sided", "less", or "greater".
    mu : float
        Location shift under H0.
    method : str
        Human-readable method name.
    method_tag : str
        Name of the MethodTag that produced this result.
    balance : bool
        True iff all clusters have the same number of members.
    ngroup : int or None
        Number of treatment groups (None for signed-rank tests).
    df : int or None
        Degrees of freedom (multi-group DS test only).
    nobs : int
        Number of observations used.
    nclus : int
        Number of clusters used.
    treatment : str or None
        "cluster" or "individual" for rank-sum tests.
    permutation : str or None
        "exact" or "monte_carlo" when a permutation p-value was computed.
    n_permutations : int or None
        Size of the permutation null distribution.
    extras : dict or None
        Method-specific diagnostics (e.g. rank intraclass correlation).
    """
    rank_statistic: float | NDArray[np.floating[Any]]
    expectation: float | NDArray[np.floating[Any]]
    variance: float | NDArray[np.floating[Any]] | None
    statistic: float
    statistic_name: str
    p_value: float
    alternative: str
    mu: float
    method: str
    method_tag: str
    balance: bool
    ngroup: int | None
    df: int | None
    nobs: int
    nclus: int
    treatment: str | None = None
    permutation: str | None = None
    n_permutations: int | None = None
    extras: dict[str, Any] | None = None
