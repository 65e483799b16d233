"""Backends for the clustered permutation engine."""

from pyclusrank.montecarlo.backends.cpu import CPUClusterPermutationBackend

__all__ = ["CPUClusterPermutationBackend"]
