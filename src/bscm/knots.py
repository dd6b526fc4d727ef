"""Knot vector generation utilities for collocation splines.

A collocation spline of order ``M`` with ``N`` collocation points needs
``N + 2M - 1`` knots: ``N + 1`` of them bound the physical domain and the
remaining ``M - 1`` on each side pad the basis near the boundaries.
"""

from typing import Any, cast

import numpy as np
import numpy.typing as npt

from ._exceptions import InvalidConfigurationError
from ._spline_knots import _check_num_knots, _check_order


def _validate_knot_input(num_collocation_points: int, order: int) -> int:
    """Validate the knot-generation parameters and return the number of knots.

    Args:
        num_collocation_points (int): Number of collocation points. Must be positive.
        order (int): Spline order. Must be odd and between 3 and 15.

    Returns:
        int: Number of knots, ``num_collocation_points + 2*order - 1``.

    Raises:
        InvalidConfigurationError: If any parameter is invalid or the resulting
            knot count exceeds the engine limit.
    """
    order = _check_order(order)
    if num_collocation_points < 1:
        raise InvalidConfigurationError("num_collocation_points must be at least 1")
    num_knots = num_collocation_points + 2 * order - 1
    _check_num_knots(num_knots, order)
    return num_knots


def _resolve_domain(
    domain: tuple[float, float] | None,
    dtype: npt.DTypeLike | None,
) -> tuple[np.floating[Any], np.floating[Any], np.dtype[np.floating[Any]]]:
    """Resolve the interval ends and the floating dtype of a knot vector.

    Args:
        domain (tuple[float, float] | None): Interval as (start, end).
            Defaults to (0.0, 1.0).
        dtype (npt.DTypeLike | None): Requested dtype. If None, it is inferred
            from numpy floating ends or defaults to float64.

    Returns:
        tuple[np.floating[Any], np.floating[Any], np.dtype[np.floating[Any]]]:
            (start, end, dtype).

    Raises:
        InvalidConfigurationError: If the dtype is not float32/float64 or the
            interval is empty.
    """
    start, end = (0.0, 1.0) if domain is None else domain

    if dtype is None:
        dtype = np.result_type(start, end) if isinstance(start, np.floating) else np.float64
    dtype_obj = np.dtype(dtype)
    if dtype_obj not in (np.dtype(np.float32), np.dtype(np.float64)):
        raise InvalidConfigurationError("dtype must be float32 or float64")
    dtype_obj = cast(np.dtype[np.floating[Any]], dtype_obj)

    start_value = dtype_obj.type(start)
    end_value = dtype_obj.type(end)
    if not start_value < end_value:
        raise InvalidConfigurationError("domain[0] must be less than domain[1]")

    return start_value, end_value, dtype_obj


def create_uniform_collocation_knot_vector(
    num_collocation_points: int,
    order: int,
    domain: tuple[float, float] | None = None,
    dtype: npt.DTypeLike | None = None,
) -> npt.NDArray[np.float32 | np.float64]:
    """Create equispaced knots whose first and last knots are the domain ends.

    The physical domain is then the sub-interval spanned by the knots
    ``order - 1`` through ``-order``.

    Args:
        num_collocation_points (int): Number of collocation points. Must be positive.
        order (int): Spline order. Must be odd and between 3 and 15.
        domain (tuple[float, float] | None): Full knot span as (start, end).
            Defaults to (0.0, 1.0).
        dtype (npt.DTypeLike | None): Data type of the knot vector (float32 or
            float64). Defaults to float64.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Knot vector with
        ``num_collocation_points + 2*order - 1`` entries.

    Raises:
        InvalidConfigurationError: If any parameter is invalid.

    Example:
        >>> create_uniform_collocation_knot_vector(3, 3, domain=(0.0, 7.0))
        array([0., 1., 2., 3., 4., 5., 6., 7.])
    """
    num_knots = _validate_knot_input(num_collocation_points, order)
    start, end, dtype_obj = _resolve_domain(domain, dtype)
    return np.linspace(start, end, num_knots, dtype=dtype_obj)


def create_padded_collocation_knot_vector(
    num_collocation_points: int,
    order: int,
    physical_domain: tuple[float, float] | None = None,
    dtype: npt.DTypeLike | None = None,
) -> npt.NDArray[np.float32 | np.float64]:
    """Create equispaced knots whose physical domain is exactly `physical_domain`.

    The physical domain is split into ``num_collocation_points`` equal spans
    and ``order - 1`` knots with the same spacing are added outside each end.

    Args:
        num_collocation_points (int): Number of collocation points. Must be positive.
        order (int): Spline order. Must be odd and between 3 and 15.
        physical_domain (tuple[float, float] | None): Physical domain as
            (x_min, x_max). Defaults to (0.0, 1.0).
        dtype (npt.DTypeLike | None): Data type of the knot vector (float32 or
            float64). Defaults to float64.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Knot vector with
        ``num_collocation_points + 2*order - 1`` entries.

    Raises:
        InvalidConfigurationError: If any parameter is invalid.

    Example:
        >>> create_padded_collocation_knot_vector(3, 3, physical_domain=(2.0, 5.0))
        array([0., 1., 2., 3., 4., 5., 6., 7.])
    """
    num_knots = _validate_knot_input(num_collocation_points, order)
    start, end, dtype_obj = _resolve_domain(physical_domain, dtype)

    spacing = (end - start) / dtype_obj.type(num_collocation_points)
    offsets = np.arange(num_knots, dtype=dtype_obj) - dtype_obj.type(order - 1)
    knots = start + spacing * offsets

    # Pin the physical ends to avoid round-off drift.
    knots[order - 1] = start
    knots[num_knots - order] = end
    return knots.astype(dtype_obj, copy=False)


__all__ = [
    "create_padded_collocation_knot_vector",
    "create_uniform_collocation_knot_vector",
]
