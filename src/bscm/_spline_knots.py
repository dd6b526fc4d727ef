"""Knot vector validation and queries for collocation splines.

This module holds the engine limits, the input checks shared by the engine
and the knot helpers, and the numba kernels that compute collocation points
and test whether points lie in the knot span or in the physical domain.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Final, TypeVar

import numba as nb
import numpy as np
import numpy.typing as npt

from ._exceptions import InvalidConfigurationError

F = TypeVar("F", bound=Callable[..., Any])

if TYPE_CHECKING:
    # During type-checking, make the decorator a no-op that preserves types.
    def nb_jit(*args: object, **kwargs: object) -> Callable[[F], F]:
        def decorator(func: F) -> F:
            return func

        return decorator
else:
    # At runtime, use the real Numba decorator.
    nb_jit = nb.jit  # type: ignore[attr-defined]


MIN_ORDER: Final[int] = 3
MAX_ORDER: Final[int] = 15
MAX_NUM_KNOTS: Final[int] = 100


def _check_order(order: int) -> int:
    """Validate the spline order.

    The order must be odd so that the boundary-constraint matrix has an even
    number of rows, half of them applied at each physical boundary.

    Args:
        order (int): Spline order (polynomial degree plus one).

    Returns:
        int: The order as a Python int.

    Raises:
        TypeError: If `order` is not an integer.
        InvalidConfigurationError: If `order` is even or outside
            ``[MIN_ORDER, MAX_ORDER]``.
    """
    if isinstance(order, bool) or not isinstance(order, (int, np.integer)):
        raise TypeError(f"order must be an integer, got {type(order).__name__}")
    if order % 2 != 1:
        raise InvalidConfigurationError(f"order must be odd, got {order}")
    if not MIN_ORDER <= order <= MAX_ORDER:
        raise InvalidConfigurationError(
            f"order must be between {MIN_ORDER} and {MAX_ORDER}, got {order}"
        )
    return int(order)


def _check_num_knots(num_knots: int, order: int) -> None:
    """Validate the number of knots for the given order.

    Raises:
        InvalidConfigurationError: If the count is outside ``[2*order, MAX_NUM_KNOTS]``.
    """
    if num_knots < 2 * order:
        raise InvalidConfigurationError(
            f"knots must have at least 2*order={2 * order} elements, got {num_knots}"
        )
    if num_knots > MAX_NUM_KNOTS:
        raise InvalidConfigurationError(
            f"knots must have at most {MAX_NUM_KNOTS} elements, got {num_knots}"
        )


def _check_collocation_knots(
    knots: npt.ArrayLike, order: int
) -> npt.NDArray[np.float32 | np.float64]:
    """Validate and normalize a knot vector for a collocation spline.

    Integer knots are converted to float64; float32 and float64 knots keep
    their dtype. The padding knots outside the physical domain may repeat,
    but the knots inside ``[knots[order-1], knots[-order]]`` must be
    strictly increasing.

    Args:
        knots (npt.ArrayLike): Knot vector (1D numpy array or Python sequence).
        order (int): Already validated spline order.

    Returns:
        npt.NDArray[np.float32 | np.float64]: A private, contiguous copy of the knots.

    Raises:
        TypeError: If `knots` is not a numpy array or Python sequence.
        InvalidConfigurationError: If the knots have the wrong dimension, dtype,
            size, contain non-finite values, decrease anywhere, or fail to be
            strictly increasing in the physical domain.
    """
    if isinstance(knots, (list, tuple)):
        knots = np.array(knots)
    elif not isinstance(knots, np.ndarray):
        raise TypeError("knots must be a 1D numpy array or Python sequence")

    if np.issubdtype(knots.dtype, np.integer):
        knots = knots.astype(np.float64)

    if knots.dtype not in (np.float32, np.float64):
        raise InvalidConfigurationError("knots type must be float (32 or 64 bits)")

    if knots.ndim != 1:
        raise InvalidConfigurationError("knots must be a 1D array")

    _check_num_knots(knots.size, order)

    if not np.all(np.isfinite(knots)):
        raise InvalidConfigurationError("knots must be finite")

    knots = np.ascontiguousarray(knots).copy()

    if not np.all(np.diff(knots) >= 0):
        raise InvalidConfigurationError("knots must be non-decreasing")

    if not _is_strictly_increasing_impl(knots, order - 1, knots.size - order):
        raise InvalidConfigurationError(
            "knots must be strictly increasing within the physical domain "
            f"[knots[{order - 1}], knots[{knots.size - order}]]"
        )

    return knots


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _is_strictly_increasing_impl(
    knots: npt.NDArray[np.float32 | np.float64],
    first: int,
    last: int,
) -> bool:
    """Check that ``knots[first] < knots[first+1] < ... < knots[last]``.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    for i in range(first, last):
        if not knots[i] < knots[i + 1]:
            return False
    return True


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _get_collocation_points_impl(
    knots: npt.NDArray[np.float32 | np.float64],
    order: int,
) -> npt.NDArray[np.float32 | np.float64]:
    """Compute the collocation points: one midpoint per physical knot span.

    Args:
        knots (npt.NDArray[np.float32 | np.float64]): Validated knot vector.
        order (int): Spline order.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Array of ``knots.size - 2*order + 1``
            collocation points, in knot order.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    first = order - 1
    last = knots.size - order
    half = knots.dtype.type(0.5)
    return half * (knots[first:last] + knots[first + 1 : last + 1])


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _is_in_interval_impl(
    pts: npt.NDArray[np.float32 | np.float64],
    start: float,
    end: float,
    tol: float,
) -> npt.NDArray[np.bool_]:
    """Check if points lie in the closed interval ``[start, end]`` (up to absolute tolerance).

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    return np.logical_and(  # type: ignore[no-any-return]
        (start < pts) | np.isclose(start, pts, rtol=0.0, atol=tol),
        (pts < end) | np.isclose(pts, end, rtol=0.0, atol=tol),
    )


def _is_in_knot_span(
    knots: npt.NDArray[np.float32 | np.float64],
    pts: npt.NDArray[np.float32 | np.float64],
    tol: float,
) -> npt.NDArray[np.bool_]:
    """Check if points lie between the first and last knots."""
    return _is_in_interval_impl(pts, knots[0], knots[-1], tol)  # type: ignore[no-any-return]


def _is_in_physical_domain(
    knots: npt.NDArray[np.float32 | np.float64],
    order: int,
    pts: npt.NDArray[np.float32 | np.float64],
    tol: float,
) -> npt.NDArray[np.bool_]:
    """Check if points lie between ``knots[order-1]`` and ``knots[-order]``."""
    return _is_in_interval_impl(  # type: ignore[no-any-return]
        pts, knots[order - 1], knots[knots.size - order], tol
    )


def _warmup_numba_functions() -> None:
    """Precompile numba functions with float64 signatures for faster first call."""
    knots_dummy = np.arange(6, dtype=np.float64)
    _is_strictly_increasing_impl(knots_dummy, 2, 3)
    _get_collocation_points_impl(knots_dummy, 3)
    _is_in_interval_impl(np.array([2.5], dtype=np.float64), 2.0, 3.0, 1e-15)


# Precompile numba functions on module import (skip during type checking)
if not TYPE_CHECKING:
    _warmup_numba_functions()


__all__ = [
    "MAX_NUM_KNOTS",
    "MAX_ORDER",
    "MIN_ORDER",
    "_check_collocation_knots",
    "_check_num_knots",
    "_check_order",
    "_get_collocation_points_impl",
    "_is_in_interval_impl",
    "_is_in_knot_span",
    "_is_in_physical_domain",
    "_is_strictly_increasing_impl",
]
