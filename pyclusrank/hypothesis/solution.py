"""
Clustered Wilcoxon test solution type.

ClusWilcoxSolution wraps Result[ClusWilcoxParams] and formats it in the
htest layout.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TYPE_CHECKING
import numpy as np
from numpy.typing import NDArray

from pyclusrank.core.result import Result
from pyclusrank.hypothesis._common import ClusWilcoxParams

if TYPE_CHECKING:
    from pyclusrank.hypothesis.design import ClusteredWilcoxDesign


@dataclass
class ClusWilcoxSolution:
    """
    User-facing clustered Wilcoxon test results.

    All ClusWilcoxParams fields are available as properties; summary()
    gives the printed report.
    """
    _result: Result[ClusWilcoxParams]
    _design: 'ClusteredWilcoxDesign | None'

    # --- Test fields ---

    @property
    def rank_statistic(self) -> float | NDArray[np.floating[Any]]:
        """Rank statistic (per-group sums for a multi-group DS test)."""
        return self._result.params.rank_statistic

    @property
    def expectation(self) -> float | NDArray[np.floating[Any]]:
        return self._result.params.expectation

    @property
    def variance(self) -> float | NDArray[np.floating[Any]] | None:
        """Null variance, or None when the p-value came from permutations."""
        return self._result.params.variance

    @property
    def statistic(self) -> float:
        """Z, or X-squared for a multi-group DS test."""
        return self._result.params.statistic

    @property
    def statistic_name(self) -> str:
        return self._result.params.statistic_name

    @property
    def p_value(self) -> float:
        return self._result.params.p_value

    @property
    def alternative(self) -> str:
        return self._result.params.alternative

    @property
    def mu(self) -> float:
        return self._result.params.mu

    @property
    def method(self) -> str:
        """Human-readable method name."""
        return self._result.params.method

    @property
    def method_tag(self) -> str:
        return self._result.params.method_tag

    @property
    def balance(self) -> bool:
        return self._result.params.balance

    @property
    def ngroup(self) -> int | None:
        return self._result.params.ngroup

    @property
    def df(self) -> int | None:
        return self._result.params.df

    @property
    def nobs(self) -> int:
        return self._result.params.nobs

    @property
    def nclus(self) -> int:
        return self._result.params.nclus

    @property
    def treatment(self) -> str | None:
        return self._result.params.treatment

    @property
    def permutation(self) -> str | None:
        return self._result.params.permutation

    @property
    def n_permutations(self) -> int | None:
        return self._result.params.n_permutations

    @property
    def extras(self) -> dict[str, Any] | None:
        return self._result.params.extras

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

    # --- Formatting ---

    def summary(self) -> str:
        """
        Format in the htest layout.

        Produces output like:
            Clustered Wilcoxon rank sum test using Rosner-Glynn-Lee method

        number of observations: 24;  number of clusters: 8
        W = 171, Z = 1.7358, p-value = 0.08259
        alternative hypothesis: true difference in locations is not equal to 0
        """
        p = self._result.params
        lines = [f"\t{p.method}", ""]

        counts = f"number of observations: {p.nobs};  number of clusters: {p.nclus}"
        if p.ngroup is not None:
            counts += f";  number of groups: {p.ngroup}"
        lines.append(counts)

        parts = []
        if p.df is None:
            name = "T" if p.method_tag.startswith("SIGNED_RANK") else "W"
            parts.append(f"{name} = {float(p.rank_statistic):.5g}")
        parts.append(f"{p.statistic_name} = {p.statistic:.5g}")
        if p.df is not None:
            parts.append(f"df = {p.df}")
        parts.append(f"p-value = {_format_pvalue(p.p_value)}")
        lines.append(", ".join(parts))

        if p.df is not None:
            lines.append(
                "alternative hypothesis: the groups do not share one location"
            )
        else:
            target = (
                "location shift" if p.method_tag.startswith("SIGNED_RANK")
                else "difference in locations"
            )
            relation = {
                "two.sided": "is not equal to",
                "less": "is less than",
                "greater": "is greater than",
            }[p.alternative]
            lines.append(
                f"alternative hypothesis: true {target} {relation} {p.mu:g}"
            )

        if p.permutation is not None:
            kind = "exact" if p.permutation == "exact" else "Monte Carlo"
            lines.append(
                f"p-value from {kind} permutation distribution "
                f"({p.n_permutations} relabellings)"
            )

        lines.append("")
        return "\n".join(lines)

    def __repr__(self) -> str:
        p = self._result.params
        return (
            f"ClusWilcoxSolution(method={p.method!r}, "
            f"{p.statistic_name}={p.statistic:.4g}, "
            f"p_value={p.p_value:.4g})"
        )


def _format_pvalue(p: float) -> str:
    """Format p-value like R does."""
    if p < 2.2e-16:
        return "< 2.2e-16"
    if p < 0.001:
        return f"{p:.4e}"
    return f"{p:.4g}"
