"""
Tests for the pyclusrank exception hierarchy.

Validates:
    - Inheritance chain (all exceptions catchable via PyClusRankError)
    - Diagnostic attributes on UnsupportedDesignError and
      DegenerateDistributionError
    - ConfigurationConflictWarning is a warning category, not an error
"""

import warnings

import pytest

from pyclusrank.core.exceptions import (
    ConfigurationConflictWarning,
    DegenerateDistributionError,
    DimensionError,
    NumericalError,
    PyClusRankError,
    UnsupportedDesignError,
    ValidationError,
)


# ═══════════════════════════════════════════════════════════════════════
# Inheritance hierarchy
# ═══════════════════════════════════════════════════════════════════════


class TestInheritance:
    """Every exception is catchable via PyClusRankError."""

    def test_validation_error_is_pyclusrank_error(self):
        with pytest.raises(PyClusRankError):
            raise ValidationError("bad input")

    def test_dimension_error_is_validation_error(self):
        with pytest.raises(ValidationError):
            raise DimensionError("wrong length")

    def test_unsupported_design_is_validation_error(self):
        with pytest.raises(ValidationError):
            raise UnsupportedDesignError("no such design", argument="method")

    def test_degenerate_is_numerical_error(self):
        with pytest.raises(NumericalError):
            raise DegenerateDistributionError("zero variance")

    def test_degenerate_is_not_validation_error(self):
        err = DegenerateDistributionError("zero variance")
        assert not isinstance(err, ValidationError)

    def test_conflict_is_user_warning(self):
        assert issubclass(ConfigurationConflictWarning, UserWarning)
        assert not issubclass(ConfigurationConflictWarning, PyClusRankError)


# ═══════════════════════════════════════════════════════════════════════
# Diagnostic attributes
# ═══════════════════════════════════════════════════════════════════════


class TestAttributes:

    def test_unsupported_design_argument(self):
        err = UnsupportedDesignError("exact not available", argument="exact")
        assert err.argument == "exact"
        assert "exact not available" in str(err)

    def test_unsupported_design_default_argument(self):
        assert UnsupportedDesignError("x").argument is None

    def test_degenerate_attributes(self):
        err = DegenerateDistributionError(
            "x: variance is zero", argument="x", variance=0.0
        )
        assert err.argument == "x"
        assert err.variance == 0.0
        assert str(err) == "x: variance is zero"

    def test_degenerate_defaults(self):
        err = DegenerateDistributionError("degenerate")
        assert err.argument is None
        assert err.variance is None


class TestWarningCategory:

    def test_can_be_filtered(self):
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("ignore", ConfigurationConflictWarning)
            warnings.warn("stratum ignored", ConfigurationConflictWarning)
        assert caught == []

    def test_can_be_escalated(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error", ConfigurationConflictWarning)
            with pytest.raises(ConfigurationConflictWarning):
                warnings.warn("stratum ignored", ConfigurationConflictWarning)
