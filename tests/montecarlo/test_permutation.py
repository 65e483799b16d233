"""
Tests for the clustered permutation engine.

Exact enumerations are checked against hand-counted null
distributions; Monte Carlo runs are checked for label conservation,
reproducibility and p-value conventions.
"""

import numpy as np
import pytest

from pyclusrank.core.exceptions import UnsupportedDesignError, ValidationError
from pyclusrank.montecarlo import ClusterPermutationDesign, permutation_test


WEIGHTS = np.array([1.0, 2.0, 3.0])


def weighted_signs(signs):
    """Batch statistic: signs @ (1, 2, 3)."""
    return np.asarray(signs, dtype=np.float64) @ WEIGHTS


def first_group_total(values):
    def stat(labels):
        return (np.asarray(labels) == 0).astype(np.float64) @ values
    return stat


# ---------------------------------------------------------------------------
# Exact enumeration
# ---------------------------------------------------------------------------

class TestExactSignFlip:

    @pytest.mark.parametrize(
        "alternative, expected",
        [("two.sided", 2 / 8), ("greater", 1 / 8), ("less", 8 / 8)],
    )
    def test_hand_counted(self, alternative, expected):
        # Null values: +-1 +-2 +-3 = {6, 4, 2, 0, 0, -2, -4, -6}
        result = permutation_test(
            weighted_signs, [1, 1, 1], unit="sign_flip", B=0,
            alternative=alternative,
        )
        assert result.observed_stat == pytest.approx(6.0)
        assert result.n_permutations == 8
        assert result.mode == "exact"
        assert result.p_value == pytest.approx(expected)

    def test_first_relabelling_is_observed(self):
        result = permutation_test(weighted_signs, [1, 1, 1], unit="sign_flip", B=0)
        assert result.perm_stats[0] == pytest.approx(6.0)
        assert sorted(result.perm_stats) == [-6.0, -4.0, -2.0, 0.0, 0.0, 2.0, 4.0, 6.0]

    def test_mixed_observed_signs(self):
        result = permutation_test(weighted_signs, [1, -1, 1], unit="sign_flip", B=0)
        assert result.observed_stat == pytest.approx(2.0)
        # |t| >= 2: six of eight
        assert result.p_value == pytest.approx(6 / 8)

    def test_too_many(self):
        stat = lambda s: np.zeros(np.asarray(s).shape[0])
        with pytest.raises(UnsupportedDesignError) as excinfo:
            permutation_test(stat, np.ones(30), unit="sign_flip", B=0)
        assert excinfo.value.argument == "B"

    def test_no_seed_entropy(self):
        result = permutation_test(weighted_signs, [1, 1, 1], unit="sign_flip", B=0)
        assert result.info["seed_entropy"] is None


class TestExactCluster:

    def test_single_block(self):
        values = np.array([-6.0, -2.0, 2.0, 6.0])
        result = permutation_test(
            first_group_total(values), [0, 0, 1, 1], unit="cluster", B=0,
        )
        # Sums over pairs: -8, -4, 0, 0, 4, 8
        assert result.n_permutations == 6
        assert result.observed_stat == pytest.approx(-8.0)
        assert result.p_value == pytest.approx(2 / 6)

    def test_blocks_multiply(self):
        stat = lambda labels: np.zeros(np.asarray(labels).shape[0])
        result = permutation_test(
            stat, [0, 0, 1, 1, 0, 1], unit="cluster", B=0,
            blocks=[0, 0, 0, 0, 1, 1],
        )
        assert result.n_permutations == 6 * 2

    def test_arrangements_distinct_and_within_block(self):
        seen = []

        def stat(labels):
            seen.extend(map(tuple, np.asarray(labels)))
            return np.zeros(np.asarray(labels).shape[0])

        permutation_test(
            stat, [0, 1, 2, 0, 1], unit="cluster", B=0, blocks=[0, 0, 0, 1, 1],
        )
        # observed_stat call plus 3! * 2 relabellings
        relabellings = seen[1:]
        assert len(relabellings) == 12
        assert len(set(relabellings)) == 12
        for row in relabellings:
            assert sorted(row[:3]) == [0, 1, 2]
            assert sorted(row[3:]) == [0, 1]

    def test_too_many(self):
        stat = lambda labels: np.zeros(np.asarray(labels).shape[0])
        with pytest.raises(UnsupportedDesignError):
            permutation_test(
                stat, [0] * 20 + [1] * 20, unit="cluster", B=0, max_permutations=10_000,
            )


# ---------------------------------------------------------------------------
# Monte Carlo
# ---------------------------------------------------------------------------

class TestMonteCarlo:

    def test_phipson_smyth(self):
        result = permutation_test(weighted_signs, [1, 1, 1], unit="sign_flip", B=999, seed=1)
        assert result.mode == "monte_carlo"
        assert result.n_permutations == 999
        assert result.p_value == pytest.approx((result.count + 1) / 1000)

    def test_close_to_exact(self):
        rng = np.random.default_rng(0)
        w = rng.uniform(0.5, 2.0, 10)
        stat = lambda s: np.asarray(s, dtype=np.float64) @ w
        observed = np.where(rng.random(10) < 0.8, 1, -1)
        exact = permutation_test(stat, observed, unit="sign_flip", B=0)
        mc = permutation_test(stat, observed, unit="sign_flip", B=5000, seed=4)
        assert abs(mc.p_value - exact.p_value) < 0.03

    def test_labels_stay_in_blocks(self):
        observed = np.array([0, 1, 1, 0, 0, 1, 0])
        blocks = np.array([0, 0, 0, 1, 1, 1, 1])

        def stat(labels):
            labels = np.asarray(labels)
            for row in labels:
                assert np.sum(row[:3] == 0) == 1
                assert np.sum(row[3:] == 0) == 3
            return np.zeros(labels.shape[0])

        result = permutation_test(
            stat, observed, unit="within_cluster", B=1500, blocks=blocks, seed=2,
        )
        assert result.p_value == pytest.approx(1.0)

    def test_relabellings_vary(self):
        seen = []

        def stat(labels):
            seen.extend(map(tuple, np.asarray(labels)))
            return np.zeros(np.asarray(labels).shape[0])

        permutation_test(stat, [0, 0, 0, 1, 1, 1], unit="cluster", B=200, seed=3)
        assert len(set(seen)) > 10

    def test_seed_reproducible(self):
        r1 = permutation_test(weighted_signs, [1, -1, 1], unit="sign_flip", B=3000, seed=9)
        r2 = permutation_test(weighted_signs, [1, -1, 1], unit="sign_flip", B=3000, seed=9)
        np.testing.assert_array_equal(r1.perm_stats, r2.perm_stats)
        assert r1.info["seed_entropy"] == 9

    def test_n_jobs_invariant(self):
        values = np.arange(8.0)
        stat = first_group_total(values)
        observed = [0, 1] * 4
        r1 = permutation_test(stat, observed, unit="cluster", B=5000, seed=5)
        r4 = permutation_test(stat, observed, unit="cluster", B=5000, seed=5, n_jobs=4)
        np.testing.assert_array_equal(r1.perm_stats, r4.perm_stats)
        assert r1.p_value == r4.p_value
        assert r1.info["n_blocks"] == 5

    def test_generator_seed(self):
        r1 = permutation_test(
            weighted_signs, [1, 1, 1], unit="sign_flip", B=100,
            seed=np.random.default_rng(12),
        )
        r2 = permutation_test(
            weighted_signs, [1, 1, 1], unit="sign_flip", B=100,
            seed=np.random.default_rng(12),
        )
        np.testing.assert_array_equal(r1.perm_stats, r2.perm_stats)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class TestValidation:

    def test_unknown_unit(self):
        with pytest.raises(ValidationError, match="unit"):
            permutation_test(weighted_signs, [1, 1, 1], unit="bootstrap")

    def test_bad_signs(self):
        with pytest.raises(ValidationError, match="sign_flip"):
            permutation_test(weighted_signs, [1, 0, 1], unit="sign_flip")

    def test_within_cluster_needs_monte_carlo(self):
        with pytest.raises(ValidationError, match="within_cluster"):
            permutation_test(weighted_signs, [0, 1, 0], unit="within_cluster", B=0)

    def test_statistic_length_checked(self):
        with pytest.raises(ValidationError, match="statistic"):
            permutation_test(lambda labels: np.zeros(1), [0, 1, 0, 1], unit="cluster", B=10)

    def test_not_callable(self):
        with pytest.raises(ValidationError, match="callable"):
            permutation_test(3.0, [1, 1], unit="sign_flip")

    def test_observed_required(self):
        with pytest.raises(ValidationError, match="observed"):
            permutation_test(weighted_signs)

    def test_design_passthrough(self):
        design = ClusterPermutationDesign.for_permutation_test(
            weighted_signs, [1, 1, 1], unit="sign_flip", B=0,
        )
        result = permutation_test(design)
        assert result.n_permutations == 8
        assert "CLUSTERED PERMUTATION TEST" in result.summary()


class TestMetadata:

    def test_timing_sections(self):
        result = permutation_test(weighted_signs, [1, 1, 1], unit="sign_flip", B=2000, seed=1)
        assert {'observed_stat', 'relabel', 'statistic', 'p_value'} <= set(result.timing)
        assert result.backend_name == "cpu_cluster_permutation"
        assert result.info["n_blocks"] == 2
        assert result.unit == "sign_flip"
