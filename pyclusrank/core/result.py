"""
Generic result container for pyclusrank computations.

Backends return a Result whose `params` is the domain payload
(ClusWilcoxParams, PermutationParams). Timing, metadata and the
non-fatal warnings collected along the way travel with it; the
Solution classes read from it and never modify it.
"""

from dataclasses import dataclass, field
from typing import TypeVar, Generic, Any

P = TypeVar('P')  # Parameter payload type


@dataclass(frozen=True)
class Result(Generic[P]):
    """
    Immutable result envelope.

    Attributes:
        params: Domain payload
        info: Method tag, treatment level, counts, seed entropy
        timing: Timer.result() of the call, or None if not measured
        backend_name: Identifier of the producing backend
        warnings: Messages of the non-fatal conditions met, in order

    Examples:
        >>> Result(
        ...     params=PermutationParams(...),
        ...     info={'unit': 'sign_flip', 'mode': 'exact'},
        ...     timing={'total_seconds': 0.01},
        ...     backend_name='cpu_cluster_permutation'
        ... )
    """
    params: P
    info: dict[str, Any]
    timing: dict[str, float] | None
    backend_name: str
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        # Backends collect warnings in lists; store them as a tuple.
        messages = tuple(self.warnings)
        if not all(isinstance(m, str) for m in messages):
            raise TypeError("Result.warnings must hold strings")
        object.__setattr__(self, 'warnings', messages)

    def has_warning(self, substring: str) -> bool:
        """True if any warning message contains `substring`."""
        return any(substring in message for message in self.warnings)
