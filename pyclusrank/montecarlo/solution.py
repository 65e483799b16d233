"""
Solution class for the clustered permutation engine.

Wraps Result[PermutationParams] with convenient accessors and a
plain-text summary.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray

from pyclusrank.core.result import Result
from pyclusrank.montecarlo._common import PermutationParams


@dataclass
class PermutationSolution:
    """
    User-facing clustered permutation test results.

    Provides observed statistic, null distribution, and p-value.
    """
    _result: Result[PermutationParams]
    _design: 'ClusterPermutationDesign'

    # --- Core fields ---

    @property
    def observed_stat(self) -> float:
        """Statistic of the observed labelling."""
        return self._result.params.observed_stat

    @property
    def perm_stats(self) -> NDArray[np.floating[Any]]:
        """Null distribution, shape (n_permutations,)."""
        return self._result.params.perm_stats

    @property
    def p_value(self) -> float:
        return self._result.params.p_value

    @property
    def count(self) -> int:
        """Relabellings at least as extreme as the observed one."""
        return self._result.params.count

    @property
    def n_permutations(self) -> int:
        return self._result.params.n_permutations

    @property
    def mode(self) -> str:
        """'exact' or 'monte_carlo'."""
        return self._result.params.mode

    @property
    def alternative(self) -> str:
        return self._result.params.alternative

    @property
    def unit(self) -> str:
        return self._result.params.unit

    # --- Metadata ---

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    # --- Display ---

    def summary(self) -> str:
        """Permutation test summary."""
        kind = "exact enumeration" if self.mode == "exact" else "Monte Carlo"
        lines = [
            "\nCLUSTERED PERMUTATION TEST",
            "",
            f"Relabelling: {self.unit} ({kind})",
            f"Number of permutations: {self.n_permutations}",
            f"Observed statistic: {self.observed_stat:.6g}",
            f"p-value ({self.alternative}): {self.p_value:.4g}",
            "",
        ]
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"PermutationSolution(mode={self.mode!r}, "
            f"n_permutations={self.n_permutations}, "
            f"observed={self.observed_stat:.4g}, "
            f"p_value={self.p_value:.4g})"
        )
