"""
Design class for the clustered permutation engine.

ClusterPermutationDesign holds the observed labelling, the batch
statistic and the resampling options, validated once. B = 0 requests
exact enumeration of every admissible relabelling.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pyclusrank.core.exceptions import ValidationError
from pyclusrank.core.validation import check_consistent_length, encode_labels
from pyclusrank.montecarlo._common import VALID_UNITS


@dataclass(frozen=True)
class ClusterPermutationDesign:
    """
    Frozen design for clustered permutation testing.

    Attributes:
        statistic: fn(labels) -> stats, labels of shape (k, n_units).
        observed: Observed labelling, shape (n_units,). Signs (+1/-1)
            for "sign_flip", integer group codes otherwise.
        unit: "sign_flip", "cluster" or "within_cluster".
        blocks: Dense block code per unit. Labels are only exchanged
            inside a block (strata for "cluster", clusters for
            "within_cluster"). Unused for "sign_flip".
        B: Number of Monte Carlo relabellings, 0 for exact enumeration.
        alternative: "two.sided", "less", or "greater".
        seed: Random seed or Generator.
        n_jobs: Worker threads evaluating blocks of relabellings.
        max_permutations: Largest enumeration accepted when B = 0.
    """
    statistic: Callable[[NDArray], NDArray[np.floating[Any]]]
    observed: NDArray
    unit: str
    blocks: NDArray[np.intp]
    B: int
    alternative: str
    seed: int | np.random.Generator | None
    n_jobs: int
    max_permutations: int

    @property
    def exact(self) -> bool:
        return self.B == 0

    @property
    def n_units(self) -> int:
        return int(self.observed.shape[0])

    @classmethod
    def for_permutation_test(
        cls,
        statistic: Callable,
        observed: ArrayLike,
        *,
        unit: str,
        B: int = 2000,
        alternative: str = "two.sided",
        blocks: ArrayLike | None = None,
        seed: int | np.random.Generator | None = None,
        n_jobs: int = 1,
        max_permutations: int = 2 ** 20,
    ) -> ClusterPermutationDesign:
        """
        Create a clustered permutation design with validation.

        Args:
            statistic: Batch statistic, fn(labels) -> array of length k.
            observed: Observed labelling.
            unit: Exchangeability unit.
            B: Monte Carlo relabellings; 0 enumerates exactly.
            alternative: "two.sided", "less", or "greater".
            blocks: Block of each unit (None: a single block).
            seed: Random seed or Generator.
            n_jobs: Worker threads. Does not change the result.
            max_permutations: Exact enumeration size limit.

        Returns:
            Validated ClusterPermutationDesign.
        """
        if not callable(statistic):
            raise ValidationError("statistic: must be callable")

        if unit not in VALID_UNITS:
            raise ValidationError(
                f"unit must be one of {VALID_UNITS}, got {unit!r}"
            )

        obs = np.asarray(observed)
        if obs.ndim != 1 or obs.shape[0] < 1:
            raise ValidationError(
                "observed: must be a non-empty 1-dimensional labelling"
            )
        if unit == "sign_flip":
            if not np.all(np.isin(obs, (-1, 1))):
                raise ValidationError(
                    "observed: sign_flip labellings must hold only -1 and +1"
                )
            obs = obs.astype(np.int8)
        else:
            obs = obs.astype(np.intp)

        if blocks is None:
            block_codes = np.zeros(obs.shape[0], dtype=np.intp)
        else:
            block_arr = np.asarray(blocks)
            check_consistent_length(obs, block_arr, names=("observed", "blocks"))
            block_codes, _ = encode_labels(block_arr, "blocks")

        if isinstance(B, bool) or not isinstance(B, (int, np.integer)) or B < 0:
            raise ValidationError(f"B must be a non-negative integer, got {B!r}")
        if unit == "within_cluster" and B == 0:
            raise ValidationError(
                "B: exact enumeration is not available for within_cluster "
                "relabelling; use B > 0"
            )

        if alternative not in ("two.sided", "less", "greater"):
            raise ValidationError(
                f"alternative must be 'two.sided', 'less', or 'greater', "
                f"got {alternative!r}"
            )

        if isinstance(n_jobs, bool) or not isinstance(n_jobs, (int, np.integer)) or n_jobs < 1:
            raise ValidationError(f"n_jobs must be a positive integer, got {n_jobs!r}")
        if max_permutations < 1:
            raise ValidationError(
                f"max_permutations must be >= 1, got {max_permutations}"
            )

        return cls(
            statistic=statistic,
            observed=obs,
            unit=unit,
            blocks=block_codes,
            B=int(B),
            alternative=alternative,
            seed=seed,
            n_jobs=int(n_jobs),
            max_permutations=int(max_permutations),
        )
