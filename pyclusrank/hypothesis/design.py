"""
ClusteredWilcoxDesign: validated inputs for the clustered Wilcoxon tests.

The factory classmethod cleans the data (complete cases only), codes the
cluster/group/stratum labels densely, resolves the method tag, and applies
every option rule once. Immutable after construction; the backend never
looks at raw user input.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
import warnings

import numpy as np
from numpy.typing import NDArray, ArrayLike

from pyclusrank.core.exceptions import (
    ConfigurationConflictWarning,
    DegenerateDistributionError,
    UnsupportedDesignError,
    ValidationError,
)
from pyclusrank.core.validation import (
    check_1d,
    check_array,
    check_consistent_length,
    check_finite_scalar,
    encode_labels,
    missing_labels,
)
from pyclusrank.hypothesis._common import (
    EXACT_CLUSTER_WARNING,
    VALID_ALTERNATIVES,
    MethodTag,
    TreatmentLevel,
    resolve_method_tag,
)


def _validate_alternative(alternative: str) -> str:
    """Validate and return alternative hypothesis string."""
    if alternative not in VALID_ALTERNATIVES:
        raise ValidationError(
            f"alternative must be one of {VALID_ALTERNATIVES}, got {alternative!r}"
        )
    return alternative


def _validate_count(value: Any, name: str, minimum: int) -> int:
    """Validate an integer option with a lower bound."""
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise ValidationError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise ValidationError(f"{name} must be >= {minimum}, got {value}")
    return int(value)


def _labels_1d(labels: ArrayLike, name: str) -> NDArray:
    arr = np.asarray(labels)
    if arr.ndim == 0:
        raise ValidationError(f"{name}: expected a vector of labels, got a scalar")
    check_1d(arr, name)
    return arr


def _conflict(message: str, collected: list[str]) -> None:
    """Emit a ConfigurationConflictWarning and remember it for the result."""
    warnings.warn(message, ConfigurationConflictWarning, stacklevel=4)
    collected.append(message)


@dataclass(frozen=True)
class ClusteredWilcoxDesign:
    """
    Design for the clustered Wilcoxon signed-rank and rank-sum tests.

    Do not construct directly; use for_clus_wilcox_test().

    Label arrays hold dense integer codes. Group code 0 is the first
    label in sorted order and is the group whose rank sum is reported.
    """
    method_tag: MethodTag

    x: NDArray[np.floating[Any]]
    cluster: NDArray[np.intp]
    group: NDArray[np.intp] | None
    stratum: NDArray[np.intp]

    n_clusters: int
    n_groups: int | None
    n_strata: int
    cluster_sizes: NDArray[np.intp]
    treatment: TreatmentLevel | None

    alternative: str = "two.sided"
    mu: float = 0.0
    exact: bool = False
    B: int = 2000
    seed: int | np.random.Generator | None = None
    n_jobs: int = 1
    max_permutations: int = 2 ** 20

    group_levels: NDArray | None = None
    notes: tuple[str, ...] = ()

    @property
    def n_observations(self) -> int:
        return int(self.x.shape[0])

    @property
    def balance(self) -> bool:
        """True iff every cluster has the same number of members."""
        return bool(np.all(self.cluster_sizes == self.cluster_sizes[0]))

    @property
    def paired(self) -> bool:
        return self.method_tag.is_signed_rank

    @property
    def cluster_group(self) -> NDArray[np.intp] | None:
        """Group code of each cluster (cluster-level treatment only)."""
        if self.treatment is not TreatmentLevel.CLUSTER:
            return None
        codes = np.empty(self.n_clusters, dtype=np.intp)
        codes[self.cluster] = self.group
        return codes

    @property
    def cluster_stratum(self) -> NDArray[np.intp]:
        """Stratum code of each cluster."""
        codes = np.empty(self.n_clusters, dtype=np.intp)
        codes[self.cluster] = self.stratum
        return codes

    @classmethod
    def for_clus_wilcox_test(
        cls,
        x: ArrayLike,
        y: ArrayLike | None = None,
        *,
        cluster: ArrayLike | None = None,
        group: ArrayLike | None = None,
        stratum: ArrayLike | None = None,
        alternative: str = "two.sided",
        mu: float = 0.0,
        paired: bool = False,
        exact: bool = False,
        B: int = 2000,
        method: str = "rgl",
        seed: int | np.random.Generator | None = None,
        n_jobs: int = 1,
        max_permutations: int = 2 ** 20,
    ) -> ClusteredWilcoxDesign:
        """
        Build design for clus_wilcox_test().

        Parameters
        ----------
        x : array-like
            Sample values. Differences for a paired test.
        y : array-like or None
            Optional second sample; the test becomes a signed-rank test
            on x - y.
        cluster : array-like
            Cluster id of every observation. Required.
        group : array-like or None
            Treatment id. Required for the rank-sum test.
        stratum : array-like or None
            Stratum id. Used only by the RGL rank-sum test with
            cluster-level treatment.
        alternative, mu, paired, exact, B, method, seed, n_jobs,
        max_permutations :
            See clus_wilcox_test().
        """
        notes: list[str] = []

        alternative = _validate_alternative(alternative)
        mu = check_finite_scalar(mu, "mu")
        B = _validate_count(B, "B", 0)
        n_jobs = _validate_count(n_jobs, "n_jobs", 1)
        max_permutations = _validate_count(max_permutations, "max_permutations", 1)

        x_arr = check_array(x, "x").ravel()

        if y is not None:
            y_arr = check_array(y, "y").ravel()
            if y_arr.shape[0] != x_arr.shape[0]:
                raise ValidationError(
                    f"y: must have the same length as x for the clustered "
                    f"signed rank test, got len(x)={x_arr.shape[0]}, "
                    f"len(y)={y_arr.shape[0]}"
                )
            paired = True
            x_arr = x_arr - y_arr

        tag = resolve_method_tag(bool(paired), method)

        if cluster is None:
            raise ValidationError("cluster: cluster ids are required")
        cluster_raw = _labels_1d(cluster, "cluster")

        if group is None and not paired:
            raise ValidationError(
                "group: group ids are required for the clustered rank sum test"
            )
        group_raw = None
        if group is not None:
            if paired:
                _conflict(
                    "group: ignored for the clustered signed rank test", notes
                )
            else:
                group_raw = _labels_1d(group, "group")

        if stratum is None:
            stratum_raw = np.zeros(x_arr.shape[0], dtype=np.intp)
        else:
            stratum_raw = _labels_1d(stratum, "stratum")

        arrays = [x_arr, cluster_raw, stratum_raw]
        names = ["x", "cluster", "stratum"]
        if group_raw is not None:
            arrays.append(group_raw)
            names.append("group")
        check_consistent_length(*arrays, names=tuple(names))

        # Complete cases with finite x
        ok = np.isfinite(x_arr) & ~missing_labels(cluster_raw) & ~missing_labels(stratum_raw)
        if group_raw is not None:
            ok &= ~missing_labels(group_raw)

        if tag.is_signed_rank:
            nonzero = (x_arr - mu) != 0.0
            n_zero = int(np.sum(ok & ~nonzero))
            if n_zero > 0:
                notes.append(
                    f"x: {n_zero} zero difference(s) in x - mu dropped"
                )
            if np.any(ok) and not np.any(ok & nonzero):
                raise DegenerateDistributionError(
                    "x: all differences x - mu are zero", argument="x"
                )
            ok &= nonzero

        if not np.any(ok):
            raise ValidationError("x: not enough (finite) observations")

        x_arr = x_arr[ok]
        cluster_codes, _ = encode_labels(cluster_raw[ok], "cluster")
        stratum_codes, _ = encode_labels(stratum_raw[ok], "stratum")
        n_clusters = int(cluster_codes.max()) + 1
        cluster_sizes = np.bincount(cluster_codes, minlength=n_clusters)
        n_strata = int(stratum_codes.max()) + 1

        group_codes = None
        group_levels = None
        n_groups = None
        treatment = None

        if tag.is_signed_rank:
            if n_strata > 1:
                _conflict(
                    "stratum: ignored for the clustered signed rank test", notes
                )
            stratum_codes = np.zeros_like(cluster_codes)
            n_strata = 1
        else:
            group_codes, group_levels = encode_labels(group_raw[ok], "group")
            n_groups = int(group_levels.shape[0])
            if n_groups < 2:
                raise UnsupportedDesignError(
                    f"group: the rank sum test needs at least 2 groups, "
                    f"got {n_groups}",
                    argument="group",
                )
            if n_groups > 2 and tag is MethodTag.RANK_SUM_RGL:
                raise UnsupportedDesignError(
                    f"group: the RGL method cannot handle more than 2 groups "
                    f"(got {n_groups}); consider the DS method",
                    argument="group",
                )
            if n_groups > 2 and tag is MethodTag.RANK_SUM_DD:
                raise UnsupportedDesignError(
                    f"group: the DD method compares exactly 2 groups, "
                    f"got {n_groups}",
                    argument="group",
                )

            groups_per_cluster = np.array([
                np.unique(group_codes[cluster_codes == c]).size
                for c in range(n_clusters)
            ])
            treatment = (
                TreatmentLevel.CLUSTER
                if np.all(groups_per_cluster == 1)
                else TreatmentLevel.INDIVIDUAL
            )

            if n_strata > 1:
                if tag is not MethodTag.RANK_SUM_RGL:
                    _conflict(
                        f"stratum: ignored for the clustered rank sum test, "
                        f"{tag.method!r} method",
                        notes,
                    )
                    stratum_codes = np.zeros_like(cluster_codes)
                    n_strata = 1
                elif treatment is TreatmentLevel.INDIVIDUAL:
                    _conflict(
                        "stratum: ignored when treatment is assigned at the "
                        "individual level",
                        notes,
                    )
                    stratum_codes = np.zeros_like(cluster_codes)
                    n_strata = 1
                else:
                    strata_per_cluster = np.array([
                        np.unique(stratum_codes[cluster_codes == c]).size
                        for c in range(n_clusters)
                    ])
                    if np.any(strata_per_cluster > 1):
                        raise ValidationError(
                            "stratum: every cluster must belong to exactly "
                            "one stratum"
                        )

            if n_groups > 2 and alternative != "two.sided":
                _conflict(
                    f"alternative: {alternative!r} is not defined for more "
                    f"than 2 groups; a two-sided test is performed",
                    notes,
                )
                alternative = "two.sided"
            if n_groups > 2 and mu != 0.0:
                _conflict(
                    "mu: a location shift is not defined for more than "
                    "2 groups; mu = 0 is used",
                    notes,
                )
                mu = 0.0

        if exact and B == 0:
            if tag is MethodTag.RANK_SUM_DS:
                _conflict(
                    "exact: exact permutation test is not available for the "
                    "'ds' method; the large-sample test is performed",
                    notes,
                )
                exact = False
            elif tag in (MethodTag.SIGNED_RANK_DS, MethodTag.RANK_SUM_DD):
                raise UnsupportedDesignError(
                    f"exact: exact permutation test is not available for the "
                    f"{tag.method!r} method; use B > 0",
                    argument="exact",
                )
            elif (tag is MethodTag.RANK_SUM_RGL
                  and treatment is TreatmentLevel.INDIVIDUAL):
                raise UnsupportedDesignError(
                    "exact: exact permutation test requires treatment "
                    "assigned at the cluster level; use B > 0",
                    argument="exact",
                )
            elif n_clusters > EXACT_CLUSTER_WARNING:
                warnings.warn(
                    f"exact: enumerating the permutation distribution of "
                    f"{n_clusters} clusters is not recommended beyond "
                    f"{EXACT_CLUSTER_WARNING} clusters",
                    RuntimeWarning,
                    stacklevel=3,
                )

        return cls(
            method_tag=tag,
            x=x_arr,
            cluster=cluster_codes,
            group=group_codes,
            stratum=stratum_codes,
            n_clusters=n_clusters,
            n_groups=n_groups,
            n_strata=n_strata,
            cluster_sizes=cluster_sizes,
            treatment=treatment,
            alternative=alternative,
            mu=mu,
            exact=bool(exact),
            B=B,
            seed=seed,
            n_jobs=n_jobs,
            max_permutations=max_permutations,
            group_levels=group_levels,
            notes=tuple(notes),
        )

    def __repr__(self) -> str:
        return (
            f"ClusteredWilcoxDesign(method_tag={self.method_tag.name}, "
            f"n={self.n_observations}, clusters={self.n_clusters})"
        )
