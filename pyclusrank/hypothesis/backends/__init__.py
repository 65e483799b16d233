"""Backends for the clustered Wilcoxon tests."""

from pyclusrank.hypothesis.backends.cpu import CPUClusWilcoxBackend

__all__ = ["CPUClusWilcoxBackend"]
