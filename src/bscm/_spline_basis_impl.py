"""Core B-spline basis and derivative evaluation kernels.

The kernels evaluate the Cox-de Boor recursion bottom-up: a table row holds
every basis function of one order level at a point, and each level is
blended from the one below it. See Umar et al., J. Comput. Phys. 93 (1991),
Equations (1)-(7).

Zero-width knot spans contribute nothing to a blend (the usual 0/0 := 0
convention), so repeated padding knots are allowed.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

import numba as nb
import numpy as np
import numpy.typing as npt

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


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _compute_Cox_de_Boor_weights_impl(
    knots: npt.NDArray[np.float32 | np.float64],
    k: int,
    i: int,
    x: float,
    tol: float,
) -> tuple[float, float]:
    """Fractional positions of `x` inside the two sub-supports of ``B(k, i)``.

    ``B(k, i, x) = w_left * B(k-1, i, x) + w_right * B(k-1, i+1, x)`` with
    ``w_left = (x - t[i]) / (t[k+i-1] - t[i])`` and
    ``w_right = (t[k+i] - x) / (t[k+i] - t[i+1])``.

    Args:
        knots (npt.NDArray[np.float32 | np.float64]): Knot vector.
        k (int): Order level, at least 2.
        i (int): Basis index, ``0 <= i < knots.size - k``.
        x (float): Evaluation point.
        tol (float): Knot spans shorter than this get a zero weight.

    Returns:
        tuple[float, float]: ``(w_left, w_right)``.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    zero = knots.dtype.type(0.0)

    left_diff = knots[k + i - 1] - knots[i]
    w_left = zero if left_diff < tol else (x - knots[i]) / left_diff

    right_diff = knots[k + i] - knots[i + 1]
    w_right = zero if right_diff < tol else (knots[k + i] - x) / right_diff

    return w_left, w_right


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _fill_step_functions_impl(
    knots: npt.NDArray[np.float32 | np.float64],
    x: float,
    out_row: npt.NDArray[np.float32 | np.float64],
) -> None:
    """Write the order-1 basis functions at `x` into `out_row`.

    ``B(1, i, x)`` is 1 on ``knots[i] <= x < knots[i+1]`` and 0 elsewhere.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    zero = knots.dtype.type(0.0)
    one = knots.dtype.type(1.0)
    for i in range(knots.size - 1):
        out_row[i] = one if (knots[i] <= x and x < knots[i + 1]) else zero


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _compute_basis_levels_impl(
    knots: npt.NDArray[np.float32 | np.float64],
    order: int,
    x: float,
    tol: float,
    out_levels: npt.NDArray[np.float32 | np.float64],
) -> None:
    """Evaluate every basis function of every level ``1..order`` at `x`.

    After the call ``out_levels[k-1, i] = B(k, i, x)`` for ``k = 1..order`` and
    ``i = 0..knots.size-k-1``. The remaining entries of each row are zero.

    Args:
        knots (npt.NDArray[np.float32 | np.float64]): Knot vector.
        order (int): Highest order level to evaluate.
        x (float): Evaluation point.
        tol (float): Tolerance for zero-width knot spans.
        out_levels (npt.NDArray[np.float32 | np.float64]): Output table of shape
            ``(order, knots.size - 1)`` and the knots' dtype.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    out_levels.fill(knots.dtype.type(0.0))
    _fill_step_functions_impl(knots, x, out_levels[0, :])

    for k in range(2, order + 1):
        lower = out_levels[k - 2, :]
        current = out_levels[k - 1, :]
        for i in range(knots.size - k):
            w_left, w_right = _compute_Cox_de_Boor_weights_impl(knots, k, i, x, tol)
            current[i] = w_left * lower[i] + w_right * lower[i + 1]


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _compute_basis_derivative_levels_impl(  # noqa: PLR0913
    knots: npt.NDArray[np.float32 | np.float64],
    deriv: int,
    order: int,
    x: float,
    tol: float,
    out_levels: npt.NDArray[np.float32 | np.float64],
) -> None:
    """Evaluate the `deriv`-th derivative of the basis functions at `x`.

    Levels ``1..deriv+1`` follow the normalized recursion ``C``::

        C(1, i, x) = B(1, i, x)
        C(k, i, x) = (k-1) * (C(k-1, i, x) / (t[k+i-1] - t[i])
                              - C(k-1, i+1, x) / (t[k+i] - t[i+1]))

    and ``D_B(deriv, deriv+1, i, x) = C(deriv+1, i, x)``. Levels above
    ``deriv+1`` blend the level below with the Cox-de Boor weights, scaled
    by ``(k-1) / (k-deriv-1)``.

    After the call ``out_levels[k-1, i] = D_B(deriv, k, i, x)`` for
    ``k = deriv+1..order``; rows below `deriv` hold the intermediate ``C``
    values.

    Args:
        knots (npt.NDArray[np.float32 | np.float64]): Knot vector.
        deriv (int): Derivative order, ``0 <= deriv < order``.
        order (int): Highest order level to evaluate.
        x (float): Evaluation point.
        tol (float): Tolerance for zero-width knot spans.
        out_levels (npt.NDArray[np.float32 | np.float64]): Output table of shape
            ``(order, knots.size - 1)`` and the knots' dtype.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    zero = knots.dtype.type(0.0)

    out_levels.fill(zero)
    _fill_step_functions_impl(knots, x, out_levels[0, :])

    for k in range(2, deriv + 2):
        lower = out_levels[k - 2, :]
        current = out_levels[k - 1, :]
        for i in range(knots.size - k):
            left_diff = knots[k + i - 1] - knots[i]
            left = zero if left_diff < tol else lower[i] / left_diff
            right_diff = knots[k + i] - knots[i + 1]
            right = zero if right_diff < tol else lower[i + 1] / right_diff
            current[i] = (k - 1) * (left - right)

    for k in range(deriv + 2, order + 1):
        scale = (k - 1) / (k - deriv - 1)
        lower = out_levels[k - 2, :]
        current = out_levels[k - 1, :]
        for i in range(knots.size - k):
            w_left, w_right = _compute_Cox_de_Boor_weights_impl(knots, k, i, x, tol)
            current[i] = scale * (w_left * lower[i] + w_right * lower[i + 1])


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _tabulate_basis_derivative_impl(  # noqa: PLR0913
    knots: npt.NDArray[np.float32 | np.float64],
    deriv: int,
    order: int,
    pts: npt.NDArray[np.float32 | np.float64],
    tol: float,
    work: npt.NDArray[np.float32 | np.float64],
    out: npt.NDArray[np.float32 | np.float64],
) -> None:
    """Tabulate ``D_B(deriv, order, i, x)`` for all `i` at many points.

    Results are written directly to the output array (C-style). With
    ``deriv == 0`` this tabulates the basis functions themselves.

    Args:
        knots (npt.NDArray[np.float32 | np.float64]): Knot vector.
        deriv (int): Derivative order, ``0 <= deriv < order``.
        order (int): Order level of the tabulated basis functions.
        pts (npt.NDArray[np.float32 | np.float64]): 1D array of evaluation points.
        tol (float): Tolerance for zero-width knot spans.
        work (npt.NDArray[np.float32 | np.float64]): Scratch table of shape
            ``(order, knots.size - 1)``.
        out (npt.NDArray[np.float32 | np.float64]): Output array of shape
            ``(pts.size, knots.size - order)``.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    num_basis = knots.size - order
    for pt_id in range(pts.size):
        if deriv == 0:
            _compute_basis_levels_impl(knots, order, pts[pt_id], tol, work)
        else:
            _compute_basis_derivative_levels_impl(knots, deriv, order, pts[pt_id], tol, work)
        out[pt_id, :] = work[order - 1, :num_basis]


def _warmup_numba_functions() -> None:
    """Precompile numba functions with float64 signatures for faster first call.

    This function triggers compilation of the numba-decorated functions
    with float64 arrays, ensuring they are cached and ready for use.
    """
    knots_dummy = np.arange(8, dtype=np.float64)
    pts_dummy = np.array([2.5, 3.5], dtype=np.float64)
    tol_dummy = 1e-15
    order_dummy = 3
    work_dummy = np.empty((order_dummy, knots_dummy.size - 1), dtype=np.float64)
    out_dummy = np.empty((pts_dummy.size, knots_dummy.size - order_dummy), dtype=np.float64)

    _tabulate_basis_derivative_impl(
        knots_dummy, 0, order_dummy, pts_dummy, tol_dummy, work_dummy, out_dummy
    )
    _tabulate_basis_derivative_impl(
        knots_dummy, 1, order_dummy, pts_dummy, tol_dummy, work_dummy, out_dummy
    )
    _compute_Cox_de_Boor_weights_impl(knots_dummy, order_dummy, 0, 2.5, tol_dummy)


# Precompile numba functions on module import (skip during type checking)
if not TYPE_CHECKING:
    _warmup_numba_functions()


__all__ = [
    "_compute_Cox_de_Boor_weights_impl",
    "_compute_basis_derivative_levels_impl",
    "_compute_basis_levels_impl",
    "_fill_step_functions_impl",
    "_tabulate_basis_derivative_impl",
]
