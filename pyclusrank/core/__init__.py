"""
Core infrastructure for pyclusrank.

Shared abstractions used by the hypothesis and montecarlo packages.

Key components:
    result: Generic Result[P] envelope
    exceptions: Exception hierarchy and warning categories
    validation: Input validators and label coding
    compute: Timer
"""

from pyclusrank.core.result import Result
from pyclusrank.core.exceptions import (
    PyClusRankError,
    ValidationError,
    DimensionError,
    UnsupportedDesignError,
    NumericalError,
    DegenerateDistributionError,
    ConfigurationConflictWarning,
)

__all__ = [
    # Result
    "Result",
    # Exceptions
    "PyClusRankError",
    "ValidationError",
    "DimensionError",
    "UnsupportedDesignError",
    "NumericalError",
    "DegenerateDistributionError",
    "ConfigurationConflictWarning",
]
