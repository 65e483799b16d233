"""
CPU backend for the clustered permutation engine.

CPUClusterPermutationBackend: exact enumeration (sign flips and
within-block cluster relabellings) and Monte Carlo resampling. Work is
split into blocks of BLOCK_SIZE relabellings; blocks may be evaluated on
a thread pool. Each Monte Carlo block draws from its own child of one
SeedSequence, so the null distribution does not depend on n_jobs.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from itertools import combinations
from typing import Any

import numpy as np
from numpy.typing import NDArray
from scipy.special import comb

from pyclusrank.core.exceptions import UnsupportedDesignError, ValidationError
from pyclusrank.core.result import Result
from pyclusrank.core.compute.timing import Timer
from pyclusrank.montecarlo._common import BLOCK_SIZE, PermutationParams
from pyclusrank.montecarlo.design import ClusterPermutationDesign


def _seed_sequence(seed) -> np.random.SeedSequence:
    """Root SeedSequence of a Monte Carlo run."""
    if isinstance(seed, np.random.SeedSequence):
        return seed
    if isinstance(seed, np.random.Generator):
        return np.random.SeedSequence(
            int(seed.integers(np.iinfo(np.int64).max))
        )
    return np.random.SeedSequence(seed)


def _block_arrangements(labels: NDArray[np.intp]) -> NDArray[np.intp]:
    """Every distinct arrangement of a multiset of labels, one per row."""
    levels, counts = np.unique(labels, return_counts=True)
    n = labels.shape[0]
    rows: list[NDArray[np.intp]] = []

    def fill(free: tuple[int, ...], row: NDArray[np.intp], k: int) -> None:
        if k == len(levels) - 1:
            done = row.copy()
            done[list(free)] = levels[k]
            rows.append(done)
            return
        for chosen in combinations(free, int(counts[k])):
            nxt = row.copy()
            nxt[list(chosen)] = levels[k]
            taken = set(chosen)
            fill(tuple(p for p in free if p not in taken), nxt, k + 1)

    fill(tuple(range(n)), np.empty(n, dtype=np.intp), 0)
    return np.array(rows, dtype=np.intp)


def _multinomial(labels: NDArray[np.intp]) -> int:
    """Number of distinct arrangements of a multiset of labels."""
    _, counts = np.unique(labels, return_counts=True)
    total = 1
    remaining = int(labels.shape[0])
    for c in counts:
        total *= int(comb(remaining, int(c), exact=True))
        remaining -= int(c)
    return total


class CPUClusterPermutationBackend:
    """
    CPU backend for clustered permutation testing.

    Exact p-value: count / K over all K relabellings (the observed one
    included). Monte Carlo p-value uses the Phipson-Smyth correction:
    (count + 1) / (B + 1).
    """

    @property
    def name(self) -> str:
        return 'cpu_cluster_permutation'

    def solve(self, design: ClusterPermutationDesign) -> Result[PermutationParams]:
        """Run the permutation test and return Result[PermutationParams]."""
        timer = Timer()
        timer.start()

        statistic = design.statistic
        alternative = design.alternative
        warnings_list: list[str] = []

        with timer.section('observed_stat'):
            observed = float(
                np.asarray(statistic(design.observed[None, :]), dtype=np.float64)[0]
            )

        entropy = None
        if design.exact:
            with timer.section('enumeration_setup'):
                n_perm, make_block = self._exact_blocks(design)
            mode = "exact"
        else:
            root = _seed_sequence(design.seed)
            entropy = root.entropy
            n_perm = design.B
            children = root.spawn(-(-n_perm // BLOCK_SIZE))
            make_block = self._monte_carlo_blocks(design, children)
            mode = "monte_carlo"

        n_blocks = -(-n_perm // BLOCK_SIZE)

        def run(j: int) -> NDArray[np.floating[Any]]:
            start = j * BLOCK_SIZE
            size = min(BLOCK_SIZE, n_perm - start)
            with timer.section('relabel'):
                labels = make_block(j, start, size)
            with timer.section('statistic'):
                stats = np.asarray(statistic(labels), dtype=np.float64).ravel()
            if stats.shape[0] != size:
                raise ValidationError(
                    f"statistic: returned {stats.shape[0]} values for a "
                    f"batch of {size} relabellings"
                )
            return stats

        with timer.section('permutation_replicates'):
            if design.n_jobs == 1 or n_blocks == 1:
                parts = [run(j) for j in range(n_blocks)]
            else:
                with ThreadPoolExecutor(max_workers=design.n_jobs) as pool:
                    parts = list(pool.map(run, range(n_blocks)))
            perm_stats = np.concatenate(parts)

        with timer.section('p_value'):
            tol = 1e-8 * max(1.0, abs(observed))
            if alternative == "two.sided":
                count = np.sum(np.abs(perm_stats) >= abs(observed) - tol)
            elif alternative == "greater":
                count = np.sum(perm_stats >= observed - tol)
            elif alternative == "less":
                count = np.sum(perm_stats <= observed + tol)
            else:
                raise ValueError(f"Unknown alternative: {alternative!r}")
            count = int(count)

            if design.exact:
                p_value = float(count) / float(n_perm)
            else:
                p_value = float(count + 1) / float(n_perm + 1)

        if not np.all(np.isfinite(perm_stats)):
            warnings_list.append(
                "statistic: non-finite values in the permutation distribution"
            )

        timer.stop()

        params = PermutationParams(
            observed_stat=observed,
            perm_stats=perm_stats,
            p_value=p_value,
            count=count,
            n_permutations=n_perm,
            mode=mode,
            alternative=alternative,
            unit=design.unit,
        )

        return Result(
            params=params,
            info={
                'unit': design.unit,
                'mode': mode,
                'n_units': design.n_units,
                'n_blocks': n_blocks,
                'n_jobs': design.n_jobs,
                'seed_entropy': entropy,
            },
            timing=timer.result(),
            backend_name=self.name,
            warnings=tuple(warnings_list),
        )

    def _exact_blocks(self, design: ClusterPermutationDesign):
        """Enumeration size and a decoder from index range to labellings."""
        m = design.n_units
        limit = design.max_permutations

        if design.unit == "sign_flip":
            if m >= 63 or 2 ** m > limit:
                raise UnsupportedDesignError(
                    f"B: exact enumeration needs 2^{m} sign flips, more than "
                    f"max_permutations={limit}; use B > 0",
                    argument="B",
                )
            shifts = np.arange(m, dtype=np.int64)

            def make_block(j, start, size):
                idx = np.arange(start, start + size, dtype=np.int64)
                bits = (idx[:, None] >> shifts) & 1
                return (1 - 2 * bits).astype(np.int8)

            return 2 ** m, make_block

        blocks = design.blocks
        positions = [
            np.flatnonzero(blocks == b) for b in range(int(blocks.max()) + 1)
        ]
        n_perm = 1
        for pos in positions:
            n_perm *= _multinomial(design.observed[pos])
            if n_perm > limit:
                raise UnsupportedDesignError(
                    f"B: exact enumeration needs more than "
                    f"max_permutations={limit} relabellings; use B > 0",
                    argument="B",
                )
        arrangements = [_block_arrangements(design.observed[pos]) for pos in positions]
        shape = tuple(a.shape[0] for a in arrangements)

        def make_block(j, start, size):
            idx = np.arange(start, start + size, dtype=np.int64)
            which = np.unravel_index(idx, shape)
            labels = np.empty((size, m), dtype=np.intp)
            for pos, arr, w in zip(positions, arrangements, which):
                labels[:, pos] = arr[w]
            return labels

        return n_perm, make_block

    def _monte_carlo_blocks(self, design: ClusterPermutationDesign, children):
        """Decoder drawing block j from its own child seed."""
        m = design.n_units
        observed = design.observed

        if design.unit == "sign_flip":
            def make_block(j, start, size):
                rng = np.random.default_rng(children[j])
                bits = rng.integers(0, 2, size=(size, m))
                return (1 - 2 * bits).astype(np.int8)

            return make_block

        blocks = design.blocks
        base = np.argsort(blocks, kind='stable')

        def make_block(j, start, size):
            rng = np.random.default_rng(children[j])
            keys = rng.random((size, m))
            order = np.lexsort((keys, np.broadcast_to(blocks, keys.shape)), axis=-1)
            labels = np.empty((size, m), dtype=observed.dtype)
            labels[:, base] = observed[order]
            return labels

        return make_block
