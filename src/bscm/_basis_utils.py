"""Utility functions for basis function evaluation."""

import numpy as np
from numpy import typing as npt

from ._exceptions import OutOfDomainError


def _normalize_points_1D(
    pts: npt.ArrayLike, dtype: npt.DTypeLike
) -> npt.NDArray[np.float32 | np.float64]:
    """Normalize points to a 1D array of the spline's floating dtype.

    Zero-dimensional arrays (scalars) are converted to 1D arrays with a single
    element. Multi-dimensional arrays are flattened to 1D; callers recover the
    original layout with `_compute_final_output_shape_1D`.

    Args:
        pts (npt.ArrayLike): Scalar, list, or array of evaluation points.
        dtype (npt.DTypeLike): Floating dtype of the knot vector.

    Returns:
        npt.NDArray[np.float32 | np.float64]: A contiguous 1D array with the
        requested dtype.
    """
    pts = np.ascontiguousarray(np.asarray(pts, dtype=dtype))

    if pts.ndim == 0:
        pts = pts.reshape(1)
    elif pts.ndim > 1:
        pts = pts.ravel()

    return pts


def _compute_final_output_shape_1D(input_shape: tuple[int, ...], n_basis: int) -> tuple[int, ...]:
    """Compute the output shape of a tabulation over `n_basis` basis functions.

    Args:
        input_shape (tuple[int, ...]): The shape of the input points (before normalization).
        n_basis (int): The number of tabulated basis functions.

    Returns:
        tuple[int, ...]: ``(n_basis,)`` for scalar input, ``(*input_shape, n_basis)`` otherwise.
    """
    if len(input_shape) == 0:
        return (n_basis,)
    else:
        return (*input_shape, n_basis)


def _validate_index(name: str, value: int, start: int, stop: int) -> int:
    """Check that an integer argument lies in the half-open range ``[start, stop)``.

    Args:
        name (str): Argument name, used in the error message.
        value (int): Value to check.
        start (int): First valid value.
        stop (int): One past the last valid value.

    Returns:
        int: The value converted to a Python int.

    Raises:
        TypeError: If `value` is not an integer.
        OutOfDomainError: If `value` is outside ``[start, stop)``.
    """
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise TypeError(f"{name} must be an integer, got {type(value).__name__}")
    if not start <= value < stop:
        raise OutOfDomainError(f"{name} must be between {start} and {stop - 1}, got {value}")
    return int(value)


def _make_read_only(arr: npt.NDArray[np.generic]) -> npt.NDArray[np.generic]:
    """Flag an array as non-writeable and return it."""
    arr.setflags(write=False)
    return arr
