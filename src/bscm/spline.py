"""Collocation-spline engine of the Basis Spline Collocation Method (BSCM).

See A.S. Umar, J. Wu, M.R. Strayer and C. Bottcher, "Basis Spline Collocation
Method for the Lattice Solution of Boundary Value Problems", J. Comput. Phys.
93, 426-448 (1991). Indices here are zero-based, unlike the paper.
"""

from __future__ import annotations

import logging

import numpy as np
import numpy.typing as npt
import scipy.linalg

from ._basis_cache import _BasisCache
from ._basis_utils import (
    _compute_final_output_shape_1D,
    _make_read_only,
    _normalize_points_1D,
    _validate_index,
)
from ._exceptions import OutOfDomainError, SingularSystemError
from ._spline_basis_impl import (
    _compute_basis_derivative_levels_impl,
    _compute_basis_levels_impl,
    _compute_Cox_de_Boor_weights_impl,
    _tabulate_basis_derivative_impl,
)
from ._spline_knots import (
    _check_collocation_knots,
    _check_order,
    _get_collocation_points_impl,
    _is_in_knot_span,
    _is_in_physical_domain,
)
from .constraints import validate_boundary_constraint_matrix
from .tolerance import get_max_condition_number, get_strict_tolerance

logger = logging.getLogger(__name__)


def _invert_augmented_matrix(
    matrix: npt.NDArray[np.float32 | np.float64],
) -> npt.NDArray[np.float32 | np.float64]:
    """Invert the augmented collocation matrix through an LU factorization.

    Boundary rows hold derivatives that scale with inverse powers of the knot
    spacing, so the conditioning is measured on the row-equilibrated matrix
    (each row divided by its largest absolute entry). All-zero rows are left
    as they are and make the matrix singular.

    Args:
        matrix (npt.NDArray[np.float32 | np.float64]): Square augmented matrix.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Its inverse.

    Raises:
        SingularSystemError: If the matrix is singular or the condition number
            of its row-equilibrated form exceeds the threshold for its dtype.
    """
    max_cond = get_max_condition_number(matrix.dtype)
    row_scale = np.max(np.abs(matrix), axis=1, keepdims=True)
    row_scale[row_scale == 0] = 1
    cond = float(np.linalg.cond(matrix / row_scale))
    logger.debug("Row-equilibrated augmented matrix condition number: %.3e", cond)

    if not np.isfinite(cond) or cond > max_cond:
        logger.error(
            "Augmented matrix is singular (condition number %.3e > %.3e)", cond, max_cond
        )
        raise SingularSystemError(
            "The collocation system with these boundary constraints is singular "
            f"(condition number {cond:.3e} exceeds {max_cond:.3e})"
        )

    lu, piv = scipy.linalg.lu_factor(matrix)
    if np.any(np.diag(lu) == 0):
        logger.error("Augmented matrix LU factorization has a zero pivot")
        raise SingularSystemError(
            "The collocation system with these boundary constraints is singular (zero pivot)"
        )

    identity = np.eye(matrix.shape[0], dtype=matrix.dtype)
    return scipy.linalg.lu_solve((lu, piv), identity).astype(matrix.dtype, copy=False)


class CollocationSpline:
    """Basis-spline collocation engine for a fixed order, knot vector and constraints.

    Everything is computed eagerly at construction: the collocation points,
    the basis values at those points (memoized per order level), the
    boundary-constraint rows, the augmented system and its inverse. After
    construction the object is immutable; `operator_matrix` and the
    evaluation methods only combine stored data with fresh derivative
    evaluations.

    Attributes:
        _order (int): Spline order ``M`` (odd, between 3 and 15).
        _knots (npt.NDArray[np.float32 | np.float64]): Knot vector.
        _tol (float): Tolerance used for zero-width knot spans and domain checks.
        _constraints (npt.NDArray[np.int_]): Boundary-constraint matrix ``K``.
        _collocation_points (npt.NDArray[np.float32 | np.float64]): Collocation points.
        _cache (_BasisCache): Memoized ``B(k, i, alpha)`` values.
        _basis_matrix (npt.NDArray[np.float32 | np.float64]): Matrix ``B``.
        _boundary_matrix (npt.NDArray[np.float32 | np.float64]): Matrix ``beta``.
        _augmented_matrix (npt.NDArray[np.float32 | np.float64]): Matrix ``B_tilde``.
        _inverse_augmented_matrix (npt.NDArray[np.float32 | np.float64]): Matrix ``C_tilde``.
    """

    _order: int
    _knots: npt.NDArray[np.float32 | np.float64]
    _tol: float
    _constraints: npt.NDArray[np.int_]
    _collocation_points: npt.NDArray[np.float32 | np.float64]
    _cache: _BasisCache
    _basis_matrix: npt.NDArray[np.float32 | np.float64]
    _boundary_matrix: npt.NDArray[np.float32 | np.float64]
    _augmented_matrix: npt.NDArray[np.float32 | np.float64]
    _inverse_augmented_matrix: npt.NDArray[np.float32 | np.float64]

    def __init__(
        self,
        order: int,
        knots: npt.ArrayLike,
        constraints: npt.ArrayLike,
    ) -> None:
        """Construct the collocation spline and its augmented system.

        Args:
            order (int): Spline order ``M``. Must be odd and between 3 and 15.
            knots (npt.ArrayLike): Knot vector with between ``2*order`` and 100
                entries, non-decreasing, and strictly increasing between
                ``knots[order-1]`` and ``knots[-order]`` (the physical domain).
            constraints (npt.ArrayLike): Integer boundary-constraint matrix of
                shape ``(order - 1, order)``. Row ``r`` holds coefficients over
                derivative orders ``0..order-1`` whose combination must vanish;
                the first half of the rows apply at the left physical boundary
                and the second half at the right one.

        Raises:
            TypeError: If `order` is not an integer or `knots` is not an array or sequence.
            InvalidConfigurationError: If the order, knots, or constraints are invalid.
            SingularSystemError: If the augmented system cannot be inverted.
        """
        self._order = _check_order(order)
        self._knots = _make_read_only(_check_collocation_knots(knots, self._order))
        self._tol = CollocationSpline._create_tolerance(self._knots.dtype)
        self._constraints = _make_read_only(
            validate_boundary_constraint_matrix(self._order, constraints)
        )

        self._collocation_points = _make_read_only(
            _get_collocation_points_impl(self._knots, self._order)
        )

        logger.debug(
            "Building collocation spline: order=%d, num_knots=%d, num_collocation_points=%d",
            self._order,
            self.num_knots,
            self.num_collocation_points,
        )

        self._cache = _BasisCache(
            self._order, self.num_knots, self.num_collocation_points, self.dtype
        )
        self._basis_matrix = _make_read_only(self._assemble_basis_matrix())
        self._boundary_matrix = _make_read_only(self._assemble_boundary_matrix())
        self._augmented_matrix = _make_read_only(
            np.vstack((self._basis_matrix, self._boundary_matrix))
        )
        self._inverse_augmented_matrix = _make_read_only(
            _invert_augmented_matrix(self._augmented_matrix)
        )
        self._cache.freeze()

    @staticmethod
    def _create_tolerance(dtype: npt.DTypeLike) -> float:
        """Create tolerance value based on data type.

        Right now, strict tolerance is used.
        """
        return float(get_strict_tolerance(dtype))

    @property
    def order(self) -> int:
        """Spline order ``M`` (polynomial degree plus one)."""
        return self._order

    @property
    def degree(self) -> int:
        """Polynomial degree ``M - 1`` of the basis functions."""
        return self._order - 1

    @property
    def knots(self) -> npt.NDArray[np.float32 | np.float64]:
        """Read-only knot vector."""
        return self._knots

    @property
    def num_knots(self) -> int:
        """Number of knots, ``N + 2M - 1``."""
        return int(self._knots.size)

    @property
    def dtype(self) -> np.dtype[np.float32 | np.float64]:
        """Floating dtype of the knots and of every computed matrix."""
        return self._knots.dtype

    @property
    def tolerance(self) -> float:
        """Tolerance used for zero-width knot spans and domain checks."""
        return self._tol

    @property
    def domain(self) -> tuple[float, float]:
        """Full knot span ``(knots[0], knots[-1])``."""
        return float(self._knots[0]), float(self._knots[-1])

    @property
    def physical_domain(self) -> tuple[float, float]:
        """Physical boundaries ``(x_min, x_max) = (knots[M-1], knots[-M])``."""
        return float(self._knots[self._order - 1]), float(self._knots[self.num_knots - self._order])

    @property
    def collocation_points(self) -> npt.NDArray[np.float32 | np.float64]:
        """Read-only collocation points, one midpoint per physical knot span."""
        return self._collocation_points

    @property
    def num_collocation_points(self) -> int:
        """Number ``N`` of collocation points."""
        return int(self._collocation_points.size)

    @property
    def num_basis(self) -> int:
        """Number ``N + M - 1`` of order-``M`` basis functions."""
        return self.num_knots - self._order

    @property
    def constraint_matrix(self) -> npt.NDArray[np.int_]:
        """Read-only boundary-constraint matrix ``K`` of shape ``(M - 1, M)``."""
        return self._constraints

    @property
    def basis_matrix(self) -> npt.NDArray[np.float32 | np.float64]:
        """Read-only matrix ``B[alpha, i] = B(M, i, x_alpha)`` of shape ``(N, N + M - 1)``."""
        return self._basis_matrix

    @property
    def boundary_matrix(self) -> npt.NDArray[np.float32 | np.float64]:
        """Read-only boundary rows ``beta`` of shape ``(M - 1, N + M - 1)``."""
        return self._boundary_matrix

    @property
    def augmented_matrix(self) -> npt.NDArray[np.float32 | np.float64]:
        """Read-only square matrix ``B_tilde``: `basis_matrix` stacked over `boundary_matrix`."""
        return self._augmented_matrix

    @property
    def inverse_augmented_matrix(self) -> npt.NDArray[np.float32 | np.float64]:
        """Read-only inverse ``C_tilde`` of `augmented_matrix`."""
        return self._inverse_augmented_matrix

    def _validate_point(self, x: float) -> np.floating:
        """Convert `x` to the knots' dtype and check it lies in the knot span.

        Raises:
            OutOfDomainError: If `x` is outside ``[knots[0], knots[-1]]``.
        """
        x_value = self.dtype.type(x)
        if not _is_in_knot_span(self._knots, np.array([x_value]), self._tol)[0]:
            raise OutOfDomainError(f"x={x} is outside the knot span {self.domain}")
        return x_value

    def _eval_basis_unchecked(self, k: int, i: int, x: np.floating) -> float:
        levels = np.empty((k, self.num_knots - 1), dtype=self.dtype)
        _compute_basis_levels_impl(self._knots, k, x, self._tol, levels)
        return float(levels[k - 1, i])

    def eval_basis(self, k: int, i: int, x: float) -> float:
        """Evaluate the basis function ``B(k, i)`` at an arbitrary point.

        ``B(k, i, x)`` vanishes outside ``[knots[i], knots[i+k]]``. Order level 1
        is the right-open step function on ``[knots[i], knots[i+1])``; higher
        levels follow the Cox-de Boor recursion (Umar, Eqs. (1)-(3)). This
        evaluation is not memoized.

        Args:
            k (int): Order level, between 1 and `order`.
            i (int): Basis index, between 0 and ``num_knots - k - 1``.
            x (float): Evaluation point inside the knot span.

        Returns:
            float: The value ``B(k, i, x)``.

        Raises:
            OutOfDomainError: If `k` or `i` are out of range, or `x` is outside
                the knot span.
        """
        k = _validate_index("k", k, 1, self._order + 1)
        i = _validate_index("i", i, 0, self.num_knots - k)
        x_value = self._validate_point(x)

        if x_value < self._knots[i] or x_value > self._knots[i + k]:
            return 0.0

        return self._eval_basis_unchecked(k, i, x_value)

    def eval_basis_at_collocation(self, k: int, i: int, alpha: int) -> float:
        """Evaluate ``B(k, i)`` at the `alpha`-th collocation point, with memoization.

        Args:
            k (int): Order level, between 1 and `order`.
            i (int): Basis index, between 0 and ``num_knots - k - 1``.
            alpha (int): Collocation point index, between 0 and ``N - 1``.

        Returns:
            float: The value ``B(k, i, collocation_points[alpha])``.

        Raises:
            OutOfDomainError: If any index is out of range.
        """
        k = _validate_index("k", k, 1, self._order + 1)
        i = _validate_index("i", i, 0, self.num_knots - k)
        alpha = _validate_index("alpha", alpha, 0, self.num_collocation_points)
        return self._eval_basis_cached(k, i, alpha)

    def _eval_basis_cached(self, k: int, i: int, alpha: int) -> float:
        value = self._cache.lookup(k, i, alpha)
        if value is not None:
            return value

        x = self._collocation_points[alpha]
        if k == 1:
            value = self._eval_basis_unchecked(1, i, x)
        else:
            w_left, w_right = _compute_Cox_de_Boor_weights_impl(self._knots, k, i, x, self._tol)
            value = float(
                w_left * self._eval_basis_cached(k - 1, i, alpha)
                + w_right * self._eval_basis_cached(k - 1, i + 1, alpha)
            )

        return self._cache.store(k, i, alpha, value)

    def eval_basis_derivative(self, p: int, k: int, i: int, x: float) -> float:
        """Evaluate the `p`-th derivative of ``B(k, i)`` at an arbitrary point.

        For ``k == p + 1`` the derivative is obtained from the normalized
        recursion of Umar's Eqs. (5)-(7); for larger `k` it follows Eq. (4),
        blending the derivatives of the two order ``k - 1`` functions with the
        Cox-de Boor weights scaled by ``(k - 1) / (k - p - 1)``. At knots the
        right-hand derivative is returned.

        Args:
            p (int): Derivative order, between 0 and ``order - 1``.
            k (int): Order level, between ``p + 1`` and `order`.
            i (int): Basis index, between 0 and ``num_knots - k - 1``.
            x (float): Evaluation point inside the knot span.

        Returns:
            float: The value of the derivative.

        Raises:
            OutOfDomainError: If `p`, `k` or `i` are out of range, or `x` is
                outside the knot span.
        """
        p = _validate_index("p", p, 0, self._order)
        k = _validate_index("k", k, p + 1, self._order + 1)
        i = _validate_index("i", i, 0, self.num_knots - k)
        x_value = self._validate_point(x)

        levels = np.empty((k, self.num_knots - 1), dtype=self.dtype)
        _compute_basis_derivative_levels_impl(self._knots, p, k, x_value, self._tol, levels)
        return float(levels[k - 1, i])

    def _tabulate(
        self, p: int, k: int, pts: npt.ArrayLike, check_physical: bool = False
    ) -> npt.NDArray[np.float32 | np.float64]:
        """Tabulate ``D_B(p, k, i, x)`` for every `i` at the given points.

        Returns:
            npt.NDArray[np.float32 | np.float64]: Array of shape
            ``(*pts.shape, num_knots - k)``.

        Raises:
            OutOfDomainError: If any point is outside the knot span (or the
                physical domain when `check_physical` is True).
        """
        input_shape = np.shape(pts)
        pts = _normalize_points_1D(pts, self.dtype)

        if check_physical:
            inside = _is_in_physical_domain(self._knots, self._order, pts, self._tol)
            if not np.all(inside):
                raise OutOfDomainError(
                    f"One or more values in pts are outside the physical domain "
                    f"{self.physical_domain}"
                )
        elif not np.all(_is_in_knot_span(self._knots, pts, self._tol)):
            raise OutOfDomainError(
                f"One or more values in pts are outside the knot span {self.domain}"
            )

        n_basis = self.num_knots - k
        work = np.empty((k, self.num_knots - 1), dtype=self.dtype)
        out = np.empty((pts.size, n_basis), dtype=self.dtype)
        _tabulate_basis_derivative_impl(self._knots, p, k, pts, self._tol, work, out)
        return out.reshape(_compute_final_output_shape_1D(input_shape, n_basis))

    def tabulate_basis(self, k: int, pts: npt.ArrayLike) -> npt.NDArray[np.float32 | np.float64]:
        """Evaluate all basis functions of order level `k` at the given points.

        Args:
            k (int): Order level, between 1 and `order`.
            pts (npt.ArrayLike): Evaluation points inside the knot span. Can be
                a scalar, list, or numpy array.

        Returns:
            npt.NDArray[np.float32 | np.float64]: Array of shape
            ``(*pts.shape, num_knots - k)`` whose last axis runs over the basis
            index `i`.

        Raises:
            OutOfDomainError: If `k` is out of range or any point is outside the knot span.

        Example:
            >>> spline = CollocationSpline(3, range(8), [[1, 0, 0], [0, 1, 0]])
            >>> spline.tabulate_basis(3, 2.5)
            array([0.125, 0.75 , 0.125, 0.   , 0.   ])
        """
        k = _validate_index("k", k, 1, self._order + 1)
        return self._tabulate(0, k, pts)

    def tabulate_basis_derivative(
        self, p: int, pts: npt.ArrayLike, k: int | None = None
    ) -> npt.NDArray[np.float32 | np.float64]:
        """Evaluate the `p`-th derivative of all order-`k` basis functions at points.

        Args:
            p (int): Derivative order, between 0 and ``order - 1``.
            pts (npt.ArrayLike): Evaluation points inside the knot span.
            k (int | None): Order level, between ``p + 1`` and `order`.
                Defaults to `order`.

        Returns:
            npt.NDArray[np.float32 | np.float64]: Array of shape
            ``(*pts.shape, num_knots - k)``.

        Raises:
            OutOfDomainError: If `p` or `k` is out of range or any point is
                outside the knot span.
        """
        p = _validate_index("p", p, 0, self._order)
        k = self._order if k is None else _validate_index("k", k, p + 1, self._order + 1)
        return self._tabulate(p, k, pts)

    def _derivatives_at(self, x: float) -> npt.NDArray[np.float32 | np.float64]:
        """Matrix ``D[p, i] = D_B(p, M, i, x)`` for ``p = 0..M-1``."""
        derivs = np.empty((self._order, self.num_basis), dtype=self.dtype)
        for p in range(self._order):
            derivs[p, :] = self._tabulate(p, self._order, x)
        return derivs

    def _assemble_basis_matrix(self) -> npt.NDArray[np.float32 | np.float64]:
        """Assemble ``B[alpha, i] = B(M, i, x_alpha)`` through the memoized evaluator."""
        B = np.zeros((self.num_collocation_points, self.num_basis), dtype=self.dtype)
        for alpha in range(B.shape[0]):
            for i in range(B.shape[1]):
                B[alpha, i] = self._eval_basis_cached(self._order, i, alpha)
        return B

    def _assemble_boundary_matrix(self) -> npt.NDArray[np.float32 | np.float64]:
        """Assemble ``beta[r, i] = sum_p K[r, p] * D_B(p, M, i, x_r)`` (Umar, Eq. (18)).

        ``x_r`` is the left physical boundary for the first half of the rows
        and the right one for the second half.
        """
        x_min, x_max = self.physical_domain
        num_left = self._order // 2

        beta = np.zeros((self._order - 1, self.num_basis), dtype=self.dtype)
        beta[:num_left] = self._constraints[:num_left] @ self._derivatives_at(x_min)
        beta[num_left:] = self._constraints[num_left:] @ self._derivatives_at(x_max)
        return beta

    def operator_matrix(self, derivative_order: int) -> npt.NDArray[np.float32 | np.float64]:
        """Collocation-space matrix of the `derivative_order`-th differentiation operator.

        Computes ``O[a, b] = sum_i C_tilde[i, b] * D_B(derivative_order, M, i, x_a)``
        (Umar, Eq. (28)). Applying ``O`` to function values sampled at the
        collocation points approximates the derivative of their spline
        interpolant, with the boundary constraints folded in.

        Args:
            derivative_order (int): Order of the derivative, between 0 and ``order - 1``.

        Returns:
            npt.NDArray[np.float32 | np.float64]: Matrix of shape ``(N, N)``.

        Raises:
            OutOfDomainError: If `derivative_order` is out of range.
        """
        derivative_order = _validate_index("derivative_order", derivative_order, 0, self._order)
        derivs = self._tabulate(derivative_order, self._order, self._collocation_points)
        N = self.num_collocation_points
        return derivs @ self._inverse_augmented_matrix[:, :N]

    def _validate_values(self, values: npt.ArrayLike) -> npt.NDArray[np.float32 | np.float64]:
        values = np.asarray(values, dtype=self.dtype)
        if values.shape != (self.num_collocation_points,):
            raise OutOfDomainError(
                f"values must have shape ({self.num_collocation_points},), got {values.shape}"
            )
        return values

    def interpolation_coefficients(
        self, values: npt.ArrayLike
    ) -> npt.NDArray[np.float32 | np.float64]:
        """Spline coefficients of the constrained interpolant of collocation values.

        The returned coefficients ``c`` satisfy ``basis_matrix @ c == values``
        and ``boundary_matrix @ c == 0``.

        Args:
            values (npt.ArrayLike): Function values at the collocation points,
                of shape ``(N,)``.

        Returns:
            npt.NDArray[np.float32 | np.float64]: Coefficients of shape ``(N + M - 1,)``.

        Raises:
            OutOfDomainError: If `values` has the wrong shape.
        """
        values = self._validate_values(values)
        N = self.num_collocation_points
        return self._inverse_augmented_matrix[:, :N] @ values

    def evaluate_interpolant(
        self, values: npt.ArrayLike, pts: npt.ArrayLike, derivative_order: int = 0
    ) -> npt.NDArray[np.float32 | np.float64]:
        """Evaluate the constrained interpolant of collocation values (or a derivative).

        Args:
            values (npt.ArrayLike): Function values at the collocation points,
                of shape ``(N,)``.
            pts (npt.ArrayLike): Points inside the physical domain.
            derivative_order (int): Derivative to evaluate, between 0 and
                ``order - 1``. Defaults to 0.

        Returns:
            npt.NDArray[np.float32 | np.float64]: Values with the shape of `pts`.

        Raises:
            OutOfDomainError: If `values` has the wrong shape, `derivative_order`
                is out of range, or a point lies outside the physical domain.
        """
        derivative_order = _validate_index("derivative_order", derivative_order, 0, self._order)
        coefficients = self.interpolation_coefficients(values)
        derivs = self._tabulate(derivative_order, self._order, pts, check_physical=True)
        return derivs @ coefficients


__all__ = ["CollocationSpline"]
