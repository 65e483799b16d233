"""
Exception hierarchy for pyclusrank.

All exceptions inherit from PyClusRankError to allow catching any
library-specific error. Non-fatal conditions use warning categories
defined here so callers can filter them with the warnings module.

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages name the offending argument
    - Never catch and re-raise with less information
"""


class PyClusRankError(Exception):
    """Base exception for all pyclusrank errors."""
    pass


class ValidationError(PyClusRankError):
    """
    Input validation failed.

    Raised when user-provided inputs are empty, malformed, or out of range.
    """
    pass


class DimensionError(ValidationError):
    """
    Array lengths are inconsistent.

    Raised when x, cluster, group and stratum are not aligned.
    """
    pass


class UnsupportedDesignError(ValidationError):
    """
    The requested method/mode combination is not statistically defined.

    Examples: RGL rank-sum with more than two groups, exact enumeration
    for the DS or DD methods, the DD method for a signed-rank test.

    Attributes:
        argument: Name of the argument that made the design unsupported
    """

    def __init__(self, message: str, argument: str | None = None):
        super().__init__(message)
        self.argument = argument


class NumericalError(PyClusRankError):
    """
    Numerical computation failed.

    Base class for errors arising from the data rather than the call.
    """
    pass


class DegenerateDistributionError(NumericalError):
    """
    The null distribution of the rank statistic is degenerate.

    Raised when the estimated variance is zero or negative, or when the
    data hold fewer than two clusters.

    Attributes:
        argument: Name of the argument whose values caused the degeneracy
        variance: The offending variance estimate, if one was computed
    """

    def __init__(
        self,
        message: str,
        argument: str | None = None,
        variance: float | None = None,
    ):
        super().__init__(message)
        self.argument = argument
        self.variance = variance


class ConfigurationConflictWarning(UserWarning):
    """
    Contradictory options were supplied and one of them was ignored.

    Emitted (not raised) for recoverable mismatches such as a stratum
    supplied to a method that cannot use it, or an exact test requested
    for the DS rank-sum method, which then runs the large-sample test.
    """
    pass
