"""Shared compute utilities."""

from pyclusrank.core.compute.timing import Timer

__all__ = ["Timer"]
