"""
CPU backend for the clustered Wilcoxon tests.

Dispatches to the moment engine of design.method_tag, then takes the
large-sample path (normal or chi-square reference) or the permutation
path through the montecarlo engine.
"""

from __future__ import annotations

import numpy as np

from pyclusrank.core.exceptions import DegenerateDistributionError
from pyclusrank.core.result import Result
from pyclusrank.core.compute.timing import Timer
from pyclusrank.hypothesis._common import ClusWilcoxParams, MethodTag
from pyclusrank.hypothesis.backends._moments import (
    RankMoments,
    chisq_p_value,
    normal_p_value,
)
from pyclusrank.hypothesis.design import ClusteredWilcoxDesign


def _moments(design: ClusteredWilcoxDesign) -> tuple[RankMoments, list[str]]:
    tag = design.method_tag
    if tag is MethodTag.SIGNED_RANK_RGL:
        from pyclusrank.hypothesis.backends._rgl import signed_rank_rgl
        return signed_rank_rgl(design)
    elif tag is MethodTag.SIGNED_RANK_DS:
        from pyclusrank.hypothesis.backends._ds import signed_rank_ds
        return signed_rank_ds(design)
    elif tag is MethodTag.RANK_SUM_RGL:
        from pyclusrank.hypothesis.backends._rgl import rank_sum_rgl
        return rank_sum_rgl(design)
    elif tag is MethodTag.RANK_SUM_DS:
        from pyclusrank.hypothesis.backends._ds import rank_sum_ds
        return rank_sum_ds(design)
    elif tag is MethodTag.RANK_SUM_DD:
        from pyclusrank.hypothesis.backends._dd import rank_sum_dd
        return rank_sum_dd(design)
    raise ValueError(f"Unknown method_tag: {tag!r}")


class CPUClusWilcoxBackend:
    """CPU reference backend for the clustered Wilcoxon tests."""

    @property
    def name(self) -> str:
        return 'cpu_cluswilcox'

    def solve(self, design: ClusteredWilcoxDesign) -> Result[ClusWilcoxParams]:
        """Compute moments, standardize, and attach a p-value."""
        timer = Timer()
        timer.start()

        tag = design.method_tag
        if design.n_clusters < 2:
            raise DegenerateDistributionError(
                f"cluster: at least 2 clusters are needed, got {design.n_clusters}",
                argument="cluster",
            )

        with timer.section('moments'):
            moments, warnings_list = _moments(design)

        with timer.section('standardize'):
            if moments.df is None:
                variance = float(moments.variance)
                if not variance > 0.0:
                    raise DegenerateDistributionError(
                        f"x: null variance of the rank statistic is "
                        f"{variance:.6g}; the test is not defined",
                        argument="x",
                        variance=variance,
                    )
                statistic = (
                    float(moments.statistic) - float(moments.expectation)
                ) / np.sqrt(variance)
                statistic_name = "Z"
            else:
                from pyclusrank.hypothesis.backends._ds import wald_statistic
                diag = np.diag(np.asarray(moments.variance))
                if not np.any(diag > 0.0):
                    raise DegenerateDistributionError(
                        "x: null covariance of the group rank sums is "
                        "zero; the test is not defined",
                        argument="x",
                        variance=float(np.max(diag)),
                    )
                statistic = wald_statistic(moments)
                statistic_name = "X-squared"

        permutation = None
        n_permutations = None
        perm_info = None
        if design.exact:
            from pyclusrank.montecarlo.solvers import permutation_test

            if moments.unit == "cluster":
                blocks = design.cluster_stratum
            elif moments.unit == "within_cluster":
                blocks = design.cluster
            else:
                blocks = None

            with timer.section('permutation'):
                perm = permutation_test(
                    moments.permutation_statistic,
                    moments.observed,
                    unit=moments.unit,
                    B=design.B,
                    alternative="greater" if moments.df is not None else design.alternative,
                    blocks=blocks,
                    seed=design.seed,
                    n_jobs=design.n_jobs,
                    max_permutations=design.max_permutations,
                )
            p_value = perm.p_value
            permutation = perm.mode
            n_permutations = perm.n_permutations
            perm_info = perm.info
            warnings_list.extend(perm.warnings)
        else:
            with timer.section('p_value'):
                if moments.df is None:
                    p_value = normal_p_value(statistic, design.alternative)
                else:
                    p_value = chisq_p_value(statistic, moments.df)

        timer.stop()

        params = ClusWilcoxParams(
            rank_statistic=moments.statistic,
            expectation=moments.expectation,
            variance=None if permutation is not None else moments.variance,
            statistic=float(statistic),
            statistic_name=statistic_name,
            p_value=float(p_value),
            alternative=design.alternative,
            mu=design.mu,
            method=tag.label,
            method_tag=tag.name,
            balance=design.balance,
            ngroup=design.n_groups,
            df=moments.df,
            nobs=design.n_observations,
            nclus=design.n_clusters,
            treatment=design.treatment.value if design.treatment is not None else None,
            permutation=permutation,
            n_permutations=n_permutations,
            extras=dict(moments.extras) if moments.extras else None,
        )

        info = {
            'method_tag': tag.name,
            'treatment': params.treatment,
            'n_clusters': design.n_clusters,
            'n_strata': design.n_strata,
            'n_groups': design.n_groups,
            'unit': moments.unit,
        }
        if perm_info is not None:
            info['permutation'] = perm_info

        return Result(
            params=params,
            info=info,
            timing=timer.result(),
            backend_name=self.name,
            warnings=tuple(design.notes) + tuple(warnings_list),
        )
