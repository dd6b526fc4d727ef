"""Tests for CollocationSpline construction, assembly and operator matrices."""

from __future__ import annotations

import logging

import numpy as np
import numpy.testing as nptest
import pytest

from bscm import (
    BSCMError,
    CollocationSpline,
    InvalidConfigurationError,
    OutOfDomainError,
    SingularSystemError,
    create_padded_collocation_knot_vector,
)
from bscm.tolerance import get_conservative_tolerance, get_default_tolerance

# Second derivative operator of the order-3 heat-rod configuration, worked out by hand.
HEAT_ROD_LAPLACIAN = (
    np.array(
        [
            [-520.0, 224.0, -32.0],
            [224.0, -328.0, 160.0],
            [-32.0, 160.0, -136.0],
        ]
    )
    / 99.0
)


class TestCollocationSplineInit:
    """Test CollocationSpline initialization."""

    def test_valid_initialization(self, heat_rod_spline: CollocationSpline) -> None:
        """Test valid initialization and the derived sizes."""
        spline = heat_rod_spline
        assert spline.order == 3  # noqa: PLR2004
        assert spline.degree == 2  # noqa: PLR2004
        assert spline.num_knots == 8  # noqa: PLR2004
        assert spline.num_collocation_points == 3  # noqa: PLR2004
        assert spline.num_basis == 5  # noqa: PLR2004
        assert spline.domain == (0.0, 7.0)
        assert spline.physical_domain == (2.0, 5.0)
        nptest.assert_array_equal(spline.knots, np.arange(8.0))

    def test_collocation_points_are_span_midpoints(
        self, heat_rod_spline: CollocationSpline
    ) -> None:
        """Collocation points sit midway between consecutive physical knots."""
        nptest.assert_allclose(heat_rod_spline.collocation_points, [2.5, 3.5, 4.5])

    def test_integer_knots_conversion(self) -> None:
        """Integer knots are converted to float64."""
        spline = CollocationSpline(3, list(range(8)), [[1, 0, 0], [0, 1, 0]])
        assert spline.dtype == np.float64
        assert spline.basis_matrix.dtype == np.float64

    def test_numpy_inputs(self) -> None:
        """Numpy arrays are accepted for order, knots and constraints."""
        spline = CollocationSpline(
            np.int64(3), np.arange(8.0), np.array([[1, 0, 0], [0, 1, 0]], dtype=np.int32)
        )
        assert spline.constraint_matrix.dtype == np.int_

    def test_float32_knots(self) -> None:
        """float32 knots keep their dtype through the whole assembly."""
        spline = CollocationSpline(3, np.arange(8, dtype=np.float32), [[1, 0, 0], [0, 1, 0]])
        assert spline.dtype == np.float32
        assert spline.inverse_augmented_matrix.dtype == np.float32
        tol = get_conservative_tolerance(np.float32)
        nptest.assert_allclose(
            spline.operator_matrix(2), HEAT_ROD_LAPLACIAN, rtol=0, atol=tol * 1e2
        )

    def test_input_knots_are_copied(self) -> None:
        """Mutating the caller's knot array does not affect the spline."""
        knots = np.arange(8.0)
        spline = CollocationSpline(3, knots, [[1, 0, 0], [0, 1, 0]])
        knots[3] = 100.0
        assert spline.knots[3] == 3.0  # noqa: PLR2004

    def test_exposed_arrays_are_read_only(self, heat_rod_spline: CollocationSpline) -> None:
        """Every exposed array rejects writes."""
        spline = heat_rod_spline
        for arr in (
            spline.knots,
            spline.collocation_points,
            spline.constraint_matrix,
            spline.basis_matrix,
            spline.boundary_matrix,
            spline.augmented_matrix,
            spline.inverse_augmented_matrix,
        ):
            with pytest.raises(ValueError, match="read-only"):
                arr[0] = 0

    @pytest.mark.parametrize("order", [2, 4, 6, 14])
    def test_even_order_error(self, order: int) -> None:
        """Even orders are rejected."""
        with pytest.raises(InvalidConfigurationError, match="order must be odd"):
            CollocationSpline(order, np.arange(40.0), np.zeros((order - 1, order), dtype=int))

    @pytest.mark.parametrize("order", [1, 17, -3])
    def test_order_out_of_range_error(self, order: int) -> None:
        """Orders outside [3, 15] are rejected."""
        with pytest.raises(InvalidConfigurationError, match="order must be between"):
            CollocationSpline(order, np.arange(40.0), [[1]])

    def test_non_integer_order_error(self) -> None:
        """The order must be an integer."""
        with pytest.raises(TypeError, match="order must be an integer"):
            CollocationSpline(3.0, np.arange(8.0), [[1, 0, 0], [0, 1, 0]])  # type: ignore[arg-type]

    def test_insufficient_knots_error(self) -> None:
        """Fewer than 2*order knots are rejected."""
        with pytest.raises(InvalidConfigurationError, match="at least 2\\*order"):
            CollocationSpline(3, np.arange(5.0), [[1, 0, 0], [0, 1, 0]])

    def test_too_many_knots_error(self) -> None:
        """More than 100 knots are rejected."""
        with pytest.raises(InvalidConfigurationError, match="at most 100"):
            CollocationSpline(3, np.arange(101.0), [[1, 0, 0], [0, 1, 0]])

    def test_maximum_knots_accepted(self) -> None:
        """Exactly 100 knots are accepted."""
        spline = CollocationSpline(3, np.arange(100.0), [[1, 0, 0], [1, 0, 0]])
        assert spline.num_collocation_points == 95  # noqa: PLR2004

    def test_repeated_physical_knot_error(self) -> None:
        """Knots must be strictly increasing in the physical domain."""
        knots = [0.0, 1.0, 2.0, 3.0, 3.0, 5.0, 6.0, 7.0]
        with pytest.raises(InvalidConfigurationError, match="strictly increasing"):
            CollocationSpline(3, knots, [[1, 0, 0], [0, 1, 0]])

    def test_decreasing_knots_error(self) -> None:
        """Knots must be non-decreasing everywhere, padding included."""
        knots = [1.0, 0.0, 2.0, 3.0, 4.0, 5.0, 6.0, 7.0]
        with pytest.raises(InvalidConfigurationError, match="non-decreasing"):
            CollocationSpline(3, knots, [[1, 0, 0], [0, 1, 0]])

    def test_non_finite_knots_error(self) -> None:
        """NaN or infinite knots are rejected."""
        knots = [0.0, 1.0, 2.0, 3.0, 4.0, 5.0, 6.0, np.inf]
        with pytest.raises(InvalidConfigurationError, match="finite"):
            CollocationSpline(3, knots, [[1, 0, 0], [0, 1, 0]])

    def test_multidimensional_knots_error(self) -> None:
        """Knots must be 1D."""
        with pytest.raises(InvalidConfigurationError, match="1D"):
            CollocationSpline(3, np.arange(16.0).reshape(2, 8), [[1, 0, 0], [0, 1, 0]])

    def test_invalid_knot_type_error(self) -> None:
        """Knots that are neither arrays nor sequences raise TypeError."""
        with pytest.raises(TypeError, match="knots must be a 1D numpy array"):
            CollocationSpline(3, "01234567", [[1, 0, 0], [0, 1, 0]])  # type: ignore[arg-type]

    def test_non_float_knots_error(self) -> None:
        """Knots that cannot be read as floats are rejected."""
        with pytest.raises(InvalidConfigurationError, match="knots type must be float"):
            CollocationSpline(3, ["a"] * 8, [[1, 0, 0], [0, 1, 0]])

    @pytest.mark.parametrize(
        "constraints",
        [
            [[1, 0, 0]],
            [[1, 0], [0, 1]],
            [[1, 0, 0, 0], [0, 1, 0, 0]],
            [[0.5, 0, 0], [0, 1, 0]],
        ],
    )
    def test_invalid_constraints_error(self, constraints: list[list[float]]) -> None:
        """Constraint matrices of the wrong shape or with fractions are rejected."""
        with pytest.raises(InvalidConfigurationError, match="constraints"):
            CollocationSpline(3, np.arange(8.0), constraints)

    def test_errors_share_base_class(self) -> None:
        """Configuration errors are both BSCMError and ValueError."""
        with pytest.raises(BSCMError):
            CollocationSpline(4, np.arange(8.0), [[1, 0, 0, 0]] * 3)
        with pytest.raises(ValueError):
            CollocationSpline(4, np.arange(8.0), [[1, 0, 0, 0]] * 3)


class TestAssembly:
    """Test the assembled basis, boundary and augmented matrices."""

    def test_heat_rod_basis_matrix(self, heat_rod_spline: CollocationSpline) -> None:
        """Uniform quadratic values at the span midpoints."""
        expected = [
            [0.125, 0.75, 0.125, 0.0, 0.0],
            [0.0, 0.125, 0.75, 0.125, 0.0],
            [0.0, 0.0, 0.125, 0.75, 0.125],
        ]
        nptest.assert_allclose(heat_rod_spline.basis_matrix, expected, atol=1e-15)

    def test_heat_rod_boundary_matrix(self, heat_rod_spline: CollocationSpline) -> None:
        """Value row at the left boundary, slope row at the right one."""
        expected = [
            [0.5, 0.5, 0.0, 0.0, 0.0],
            [0.0, 0.0, 0.0, -1.0, 1.0],
        ]
        nptest.assert_allclose(heat_rod_spline.boundary_matrix, expected, atol=1e-14)

    @pytest.mark.parametrize("fixture_name", ["heat_rod_spline", "clamped_spline"])
    def test_shapes(self, fixture_name: str, request: pytest.FixtureRequest) -> None:
        """Matrix shapes follow N = num_knots - 2*order + 1."""
        spline: CollocationSpline = request.getfixturevalue(fixture_name)
        M = spline.order
        N = spline.num_knots - 2 * M + 1
        assert spline.collocation_points.shape == (N,)
        assert spline.constraint_matrix.shape == (M - 1, M)
        assert spline.basis_matrix.shape == (N, N + M - 1)
        assert spline.boundary_matrix.shape == (M - 1, N + M - 1)
        assert spline.augmented_matrix.shape == (N + M - 1, N + M - 1)
        assert spline.inverse_augmented_matrix.shape == (N + M - 1, N + M - 1)

    @pytest.mark.parametrize("fixture_name", ["heat_rod_spline", "clamped_spline"])
    def test_augmented_matrix_stacks_rows(
        self, fixture_name: str, request: pytest.FixtureRequest
    ) -> None:
        """B_tilde is the basis matrix stacked over the boundary matrix."""
        spline: CollocationSpline = request.getfixturevalue(fixture_name)
        N = spline.num_collocation_points
        nptest.assert_array_equal(spline.augmented_matrix[:N], spline.basis_matrix)
        nptest.assert_array_equal(spline.augmented_matrix[N:], spline.boundary_matrix)

    @pytest.mark.parametrize("fixture_name", ["heat_rod_spline", "clamped_spline"])
    def test_inverse_property(self, fixture_name: str, request: pytest.FixtureRequest) -> None:
        """C_tilde @ B_tilde is the identity."""
        spline: CollocationSpline = request.getfixturevalue(fixture_name)
        identity = np.eye(spline.num_basis)
        tol = get_conservative_tolerance(spline.dtype)
        nptest.assert_allclose(
            spline.inverse_augmented_matrix @ spline.augmented_matrix, identity, atol=tol
        )
        nptest.assert_allclose(
            spline.augmented_matrix @ spline.inverse_augmented_matrix, identity, atol=tol
        )

    def test_boundary_rows_split_by_side(self) -> None:
        """For order 5 the first two rows use x_min and the last two x_max."""
        knots = np.arange(1.0, 15.0)
        clamped = [[1, 0, 0, 0, 0], [0, 1, 0, 0, 0], [1, 0, 0, 0, 0], [0, 1, 0, 0, 0]]
        spline = CollocationSpline(5, knots, clamped)
        x_min, x_max = spline.physical_domain
        rows = spline.boundary_matrix
        nptest.assert_allclose(rows[0], spline.tabulate_basis_derivative(0, x_min))
        nptest.assert_allclose(rows[1], spline.tabulate_basis_derivative(1, x_min))
        nptest.assert_allclose(rows[2], spline.tabulate_basis_derivative(0, x_max))
        nptest.assert_allclose(rows[3], spline.tabulate_basis_derivative(1, x_max))

    def test_combined_constraint_row(self) -> None:
        """A row with several coefficients combines derivative orders linearly."""
        robin = [[1, 1, 0], [0, 1, 0]]
        spline = CollocationSpline(3, np.arange(8.0), robin)
        x_min, _ = spline.physical_domain
        expected = spline.tabulate_basis_derivative(0, x_min) + spline.tabulate_basis_derivative(
            1, x_min
        )
        nptest.assert_allclose(spline.boundary_matrix[0], expected)


class TestSingularSystem:
    """Test detection of unsolvable boundary configurations."""

    @pytest.mark.parametrize("scale", [1.0, 1.0 / 99.0, 1e3])
    def test_detection_independent_of_knot_scale(self, scale: float) -> None:
        """A well-posed high-order system is accepted whatever the length unit."""
        order = 13
        num_per_side = (order - 1) // 2
        constraints = np.vstack([np.eye(num_per_side, order, dtype=int)] * 2)
        spline = CollocationSpline(order, np.arange(100.0) * scale, constraints)
        assert spline.num_collocation_points == 100 - 2 * order + 1
        assert np.all(np.isfinite(spline.inverse_augmented_matrix))

    def test_zero_constraints(self) -> None:
        """All-zero constraint rows leave the system singular."""
        with pytest.raises(SingularSystemError, match="singular"):
            CollocationSpline(3, np.arange(8.0), [[0, 0, 0], [0, 0, 0]])

    def test_clamped_last_knot(self) -> None:
        """Constraints at a last knot of full multiplicity give an empty row."""
        knots = [0.0, 0.0, 0.0, 1.0, 2.0, 3.0, 3.0, 3.0]
        with pytest.raises(SingularSystemError):
            CollocationSpline(3, knots, [[1, 0, 0], [1, 0, 0]])

    def test_is_linalg_error(self) -> None:
        """SingularSystemError can be caught as numpy's LinAlgError."""
        with pytest.raises(np.linalg.LinAlgError):
            CollocationSpline(3, np.arange(8.0), [[0, 0, 0], [0, 0, 0]])


class TestOperatorMatrix:
    """Test differentiation operator matrices."""

    def test_heat_rod_laplacian(self, heat_rod_spline: CollocationSpline) -> None:
        """The second derivative operator matches the hand-computed matrix."""
        op = heat_rod_spline.operator_matrix(2)
        assert op.shape == (3, 3)
        nptest.assert_allclose(op, HEAT_ROD_LAPLACIAN, rtol=1e-12, atol=1e-12)

    def test_heat_rod_laplacian_is_dissipative(self, heat_rod_spline: CollocationSpline) -> None:
        """With these constraints the Laplacian is symmetric negative definite."""
        op = heat_rod_spline.operator_matrix(2)
        nptest.assert_allclose(op, op.T, atol=1e-12)
        assert np.all(np.linalg.eigvalsh(op) < 0)

    def test_zeroth_order_is_identity(self, clamped_spline: CollocationSpline) -> None:
        """The zeroth derivative operator reproduces the collocation values."""
        op = clamped_spline.operator_matrix(0)
        tol = get_conservative_tolerance(clamped_spline.dtype)
        nptest.assert_allclose(op, np.eye(clamped_spline.num_collocation_points), atol=tol)

    def test_exact_on_quadratic(self, heat_rod_spline: CollocationSpline) -> None:
        """f(x) = (x - 2)(8 - x) meets both constraints; its derivatives are exact."""
        x = heat_rod_spline.collocation_points
        f = (x - 2.0) * (8.0 - x)
        nptest.assert_allclose(heat_rod_spline.operator_matrix(1) @ f, 10.0 - 2.0 * x, atol=1e-11)
        nptest.assert_allclose(heat_rod_spline.operator_matrix(2) @ f, -2.0, atol=1e-11)

    def test_exact_on_quartic(self, clamped_spline: CollocationSpline) -> None:
        """f(x) = (x - a)^2 (x - b)^2 is a clamped quartic; derivatives are exact."""
        a, b = clamped_spline.physical_domain
        x = clamped_spline.collocation_points
        f = (x - a) ** 2 * (x - b) ** 2
        df = 2 * (x - a) * (x - b) ** 2 + 2 * (x - a) ** 2 * (x - b)
        d2f = 2 * (x - b) ** 2 + 8 * (x - a) * (x - b) + 2 * (x - a) ** 2
        d4f = np.full_like(x, 24.0)
        tol = get_default_tolerance(clamped_spline.dtype)
        op = clamped_spline.operator_matrix(1)
        nptest.assert_allclose(op @ f, df, rtol=1e3 * tol, atol=1e-8)
        op = clamped_spline.operator_matrix(2)
        nptest.assert_allclose(op @ f, d2f, rtol=1e3 * tol, atol=1e-8)
        op = clamped_spline.operator_matrix(4)
        nptest.assert_allclose(op @ f, d4f, rtol=1e3 * tol, atol=1e-7)

    def test_converges_on_smooth_function(self) -> None:
        """The first derivative operator converges as the grid is refined."""
        errors = []
        for num_points in (10, 20, 40):
            knots = create_padded_collocation_knot_vector(num_points, 5, physical_domain=(0.0, 1.0))
            constraints = [[1, 0, 0, 0, 0], [0, 1, 0, 0, 0], [1, 0, 0, 0, 0], [0, 1, 0, 0, 0]]
            spline = CollocationSpline(5, knots, constraints)
            x = spline.collocation_points
            derivative = spline.operator_matrix(1) @ np.sin(np.pi * x) ** 2
            errors.append(np.max(np.abs(derivative - np.pi * np.sin(2.0 * np.pi * x))))
        assert errors[1] < errors[0]
        assert errors[2] < errors[1]
        assert errors[2] < 1e-2  # noqa: PLR2004

    @pytest.mark.parametrize("derivative_order", [-1, 3, 4])
    def test_invalid_derivative_order(
        self, heat_rod_spline: CollocationSpline, derivative_order: int
    ) -> None:
        """The derivative order must be below the spline order."""
        with pytest.raises(OutOfDomainError, match="derivative_order"):
            heat_rod_spline.operator_matrix(derivative_order)


class TestInterpolant:
    """Test the constrained interpolant of collocation values."""

    def test_coefficients_solve_augmented_system(self, clamped_spline: CollocationSpline) -> None:
        """Coefficients reproduce the values and satisfy the constraints."""
        values = np.array([0.3, -1.0, 2.0, 0.5, 1.5])
        coefficients = clamped_spline.interpolation_coefficients(values)
        assert coefficients.shape == (clamped_spline.num_basis,)
        nptest.assert_allclose(clamped_spline.basis_matrix @ coefficients, values, atol=1e-10)
        nptest.assert_allclose(clamped_spline.boundary_matrix @ coefficients, 0.0, atol=1e-10)

    def test_reproduces_quadratic(self, heat_rod_spline: CollocationSpline) -> None:
        """An admissible quadratic is reproduced over the whole physical domain."""
        x = heat_rod_spline.collocation_points
        values = (x - 2.0) * (8.0 - x)
        pts = np.linspace(2.0, 5.0, 13)
        nptest.assert_allclose(
            heat_rod_spline.evaluate_interpolant(values, pts), (pts - 2.0) * (8.0 - pts), atol=1e-11
        )
        nptest.assert_allclose(
            heat_rod_spline.evaluate_interpolant(values, pts, derivative_order=1),
            10.0 - 2.0 * pts,
            atol=1e-11,
        )

    def test_keeps_point_shape(self, heat_rod_spline: CollocationSpline) -> None:
        """The output has the shape of the evaluation points."""
        values = [1.0, 0.0, 0.5]
        pts = [[2.1, 3.0], [4.0, 4.9]]
        assert heat_rod_spline.evaluate_interpolant(values, pts).shape == (2, 2)
        assert heat_rod_spline.evaluate_interpolant(values, 3.0).shape == ()

    def test_wrong_number_of_values(self, heat_rod_spline: CollocationSpline) -> None:
        """Values must match the collocation points."""
        with pytest.raises(OutOfDomainError, match="values must have shape"):
            heat_rod_spline.interpolation_coefficients([1.0, 2.0])
        with pytest.raises(BSCMError):
            heat_rod_spline.evaluate_interpolant([1.0, 0.0, 0.5, 2.0], 3.0)

    def test_point_outside_physical_domain(self, heat_rod_spline: CollocationSpline) -> None:
        """The interpolant is only evaluated inside the physical domain."""
        with pytest.raises(OutOfDomainError, match="physical domain"):
            heat_rod_spline.evaluate_interpolant([1.0, 0.0, 0.5], [1.5, 3.0])


class TestLogging:
    """Test the diagnostics emitted while building the augmented system."""

    def test_condition_number_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        """Construction logs the augmented-matrix condition number at DEBUG."""
        with caplog.at_level(logging.DEBUG, logger="bscm.spline"):
            CollocationSpline(3, np.arange(8.0), [[1, 0, 0], [0, 1, 0]])
        assert "condition number" in caplog.text

    def test_singular_system_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        """A singular system is reported at ERROR before raising."""
        with caplog.at_level(logging.ERROR, logger="bscm.spline"):
            with pytest.raises(SingularSystemError):
                CollocationSpline(3, np.arange(8.0), [[0, 0, 0], [0, 0, 0]])
        assert any(record.levelno == logging.ERROR for record in caplog.records)
