"""Boundary-constraint matrices for collocation splines.

A boundary-constraint matrix ``K`` has ``order - 1`` rows and ``order``
columns. Row ``r`` lists integer coefficients over the derivative orders
``0..order-1``; the corresponding linear combination of derivatives is forced
to vanish. The first ``(order - 1) / 2`` rows apply at the left physical
boundary and the remaining rows at the right one.
"""

from collections.abc import Sequence

import numpy as np
import numpy.typing as npt

from ._exceptions import InvalidConfigurationError
from ._spline_knots import _check_order


def validate_boundary_constraint_matrix(
    order: int, constraints: npt.ArrayLike
) -> npt.NDArray[np.int_]:
    """Validate a boundary-constraint matrix and convert it to integers.

    Floating-point entries are accepted as long as they are integral.

    Args:
        order (int): Spline order. Must be odd and between 3 and 15.
        constraints (npt.ArrayLike): Matrix of shape ``(order - 1, order)``.

    Returns:
        npt.NDArray[np.int_]: A new integer array with the constraint coefficients.

    Raises:
        InvalidConfigurationError: If the order is invalid, the matrix does not
            have shape ``(order - 1, order)``, or its entries are not integers.

    Example:
        >>> validate_boundary_constraint_matrix(3, [[1, 0, 0], [0, 1, 0]])
        array([[1, 0, 0],
               [0, 1, 0]])
    """
    order = _check_order(order)

    try:
        K = np.array(constraints)
    except ValueError as err:
        raise InvalidConfigurationError(
            f"constraints cannot be converted to an array: {err}"
        ) from err

    expected_shape = (order - 1, order)
    if K.shape != expected_shape:
        raise InvalidConfigurationError(
            f"constraints must have shape {expected_shape} for order {order}, got {K.shape}"
        )

    if np.issubdtype(K.dtype, np.bool_):
        raise InvalidConfigurationError("constraints must contain integers, got booleans")

    if np.issubdtype(K.dtype, np.floating):
        if not np.all(np.isfinite(K)) or not np.all(K == np.round(K)):
            raise InvalidConfigurationError("constraints must contain integral values")
    elif not np.issubdtype(K.dtype, np.integer):
        raise InvalidConfigurationError(f"constraints must contain integers, got dtype {K.dtype}")

    return K.astype(np.int_)


def _make_constraint_row(order: int, condition: int | Sequence[int], side: str) -> list[int]:
    """Turn one boundary condition into a row of ``order`` coefficients.

    Args:
        order (int): Spline order.
        condition (int | Sequence[int]): Either the derivative order that
            must vanish, or the full list of ``order`` coefficients.
        side (str): "left" or "right", used in error messages.

    Returns:
        list[int]: The coefficient row.

    Raises:
        InvalidConfigurationError: If the derivative order is out of range or
            the coefficient row has the wrong length.
    """
    if isinstance(condition, (int, np.integer)) and not isinstance(condition, bool):
        if not 0 <= condition < order:
            raise InvalidConfigurationError(
                f"{side} boundary derivative order must be between 0 and {order - 1}, "
                f"got {condition}"
            )
        row = [0] * order
        row[int(condition)] = 1
        return row

    row = [int(c) for c in condition]
    if len(row) != order:
        raise InvalidConfigurationError(
            f"{side} boundary coefficient rows must have {order} entries, got {len(row)}"
        )
    return row


def create_boundary_constraint_matrix(
    order: int,
    left: Sequence[int | Sequence[int]],
    right: Sequence[int | Sequence[int]],
) -> npt.NDArray[np.int_]:
    """Create a boundary-constraint matrix from per-boundary conditions.

    Each side takes exactly ``(order - 1) / 2`` conditions. A condition is
    either an integer ``p`` (the ``p``-th derivative vanishes at that
    boundary) or a sequence of ``order`` integer coefficients (that linear
    combination of derivatives vanishes).

    Args:
        order (int): Spline order. Must be odd and between 3 and 15.
        left (Sequence[int | Sequence[int]]): Conditions at the left boundary.
        right (Sequence[int | Sequence[int]]): Conditions at the right boundary.

    Returns:
        npt.NDArray[np.int_]: Constraint matrix of shape ``(order - 1, order)``.

    Raises:
        InvalidConfigurationError: If the order is invalid, a side has the
            wrong number of conditions, or a condition is malformed.

    Example:
        >>> create_boundary_constraint_matrix(3, left=[0], right=[1])
        array([[1, 0, 0],
               [0, 1, 0]])
    """
    order = _check_order(order)
    num_per_side = (order - 1) // 2

    rows: list[list[int]] = []
    for side, conditions in (("left", left), ("right", right)):
        if len(conditions) != num_per_side:
            raise InvalidConfigurationError(
                f"{side} boundary needs exactly {num_per_side} conditions for order {order}, "
                f"got {len(conditions)}"
            )
        rows.extend(_make_constraint_row(order, condition, side) for condition in conditions)

    return np.array(rows, dtype=np.int_)


__all__ = [
    "create_boundary_constraint_matrix",
    "validate_boundary_constraint_matrix",
]
