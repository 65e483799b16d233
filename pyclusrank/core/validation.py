"""
Input validation utilities for pyclusrank.

These validators follow the "fail fast, fail loud" principle. They raise
immediately with clear error messages rather than silently correcting
or making assumptions about user intent.

Design principles:
    - No silent type coercion (except np.asarray on array-likes)
    - Clear, actionable error messages with actual values
    - Each function validates ONE thing
    - Parameter names included in all error messages
"""

import numbers

import numpy as np
from numpy.typing import ArrayLike, NDArray
from typing import Any

from pyclusrank.core.exceptions import ValidationError, DimensionError


def check_array(
    array: ArrayLike,
    name: str,
) -> NDArray[np.floating[Any]]:
    """
    Validate and convert input to a float64 array.

    Args:
        array: Input to validate
        name: Parameter name for error messages

    Returns:
        numpy.ndarray with float64 dtype

    Raises:
        ValidationError: If input cannot be converted to a numeric array
    """
    try:
        result = np.asarray(array)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"{name}: cannot convert to array: {e}") from e

    if result.dtype == object:
        raise ValidationError(
            f"{name}: converted to object dtype, indicating mixed types or non-numeric data"
        )

    if not np.issubdtype(result.dtype, np.number):
        raise ValidationError(
            f"{name}: non-numeric dtype {result.dtype}, expected numeric data"
        )

    return result.astype(np.float64)


def check_1d(array: NDArray, name: str) -> None:
    """
    Verify array is 1-dimensional.

    Raises:
        DimensionError: If array is not 1D
    """
    if array.ndim != 1:
        raise DimensionError(
            f"{name}: expected 1D array, got {array.ndim}D with shape {array.shape}"
        )


def check_consistent_length(
    *arrays: NDArray,
    names: tuple[str, ...]
) -> None:
    """
    Verify all arrays have the same length.

    Raises:
        ValueError: If number of names doesn't match number of arrays
        DimensionError: If arrays have inconsistent lengths
    """
    if len(arrays) != len(names):
        raise ValueError(
            f"Number of arrays ({len(arrays)}) must match number of names ({len(names)})"
        )

    if len(arrays) < 2:
        return

    lengths = [arr.shape[0] for arr in arrays]
    if len(set(lengths)) > 1:
        details = ", ".join(f"{name}={length}" for name, length in zip(names, lengths))
        raise DimensionError(f"Inconsistent lengths: {details}")


def check_finite_scalar(value: Any, name: str) -> float:
    """
    Verify value is a single finite number and return it as float.

    Raises:
        ValidationError: If value is multi-valued, non-numeric or non-finite
    """
    arr = np.asarray(value)
    if arr.size != 1:
        raise ValidationError(
            f"{name}: must be a single number, got {arr.size} values"
        )
    scalar = arr.reshape(()).item()
    if isinstance(scalar, bool) or not isinstance(scalar, numbers.Real):
        raise ValidationError(f"{name}: must be a real number, got {scalar!r}")
    if not np.isfinite(scalar):
        raise ValidationError(f"{name}: must be finite, got {scalar}")
    return float(scalar)


def missing_labels(labels: NDArray) -> NDArray[np.bool_]:
    """
    Boolean mask of missing entries in a label vector.

    Missing means NaN for floating labels and None or NaN for object labels.
    """
    if np.issubdtype(labels.dtype, np.floating):
        return np.isnan(labels)
    if labels.dtype == object:
        return np.array(
            [v is None or (isinstance(v, float) and np.isnan(v)) for v in labels],
            dtype=bool,
        )
    return np.zeros(labels.shape[0], dtype=bool)


def encode_labels(labels: NDArray, name: str) -> tuple[NDArray[np.intp], NDArray]:
    """
    Map arbitrary labels to dense integer codes 0..k-1 in sorted label order.

    Args:
        labels: 1D array of hashable, non-missing labels
        name: Parameter name for error messages

    Returns:
        (codes, levels) where levels[codes] reproduces labels

    Raises:
        ValidationError: If labels cannot be ordered
    """
    try:
        levels, codes = np.unique(labels, return_inverse=True)
    except TypeError as e:
        raise ValidationError(
            f"{name}: labels must be mutually comparable: {e}"
        ) from e
    return codes.astype(np.intp).ravel(), levels
