"""Heat-diffusion propagation on a collocation grid.

For ``du/dt = D * d2u/dx2`` the collocation values evolve as
``u(t + dt) = expm(D * dt * O2) @ u(t)``, where ``O2`` is the second
derivative operator matrix of a `CollocationSpline`.
"""

from __future__ import annotations

import logging

import numpy as np
import numpy.typing as npt
import scipy.linalg

from ._exceptions import InvalidConfigurationError
from .spline import CollocationSpline

logger = logging.getLogger(__name__)


def create_propagation_matrix(
    spline: CollocationSpline, diffusivity: float, time_step: float = 1.0
) -> npt.NDArray[np.float32 | np.float64]:
    """Create the one-step propagator ``expm(diffusivity * time_step * O2)``.

    Args:
        spline (CollocationSpline): Collocation spline providing the second
            derivative operator (its order is at least 3).
        diffusivity (float): Diffusion coefficient. Must be finite and non-negative.
        time_step (float): Time step. Must be finite and non-negative. Defaults to 1.0.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Propagation matrix of shape ``(N, N)``.

    Raises:
        InvalidConfigurationError: If `diffusivity` or `time_step` is negative or
            not finite.
    """
    if not np.isfinite(diffusivity) or diffusivity < 0:
        raise InvalidConfigurationError(
            f"diffusivity must be finite and non-negative, got {diffusivity}"
        )
    if not np.isfinite(time_step) or time_step < 0:
        raise InvalidConfigurationError(
            f"time_step must be finite and non-negative, got {time_step}"
        )

    laplacian = spline.operator_matrix(2)
    logger.debug(
        "Building propagation matrix: N=%d, diffusivity=%g, time_step=%g",
        laplacian.shape[0],
        diffusivity,
        time_step,
    )
    return scipy.linalg.expm(diffusivity * time_step * laplacian)


def propagate(
    propagator: npt.ArrayLike, initial_values: npt.ArrayLike, num_steps: int
) -> npt.NDArray[np.float32 | np.float64]:
    """Apply a propagation matrix repeatedly to an initial state.

    Args:
        propagator (npt.ArrayLike): Square matrix of shape ``(N, N)``.
        initial_values (npt.ArrayLike): Initial state of shape ``(N,)``.
        num_steps (int): Number of steps. Must be non-negative.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Array of shape ``(num_steps + 1, N)``
        whose first row is the initial state and row ``t`` the state after
        ``t`` steps.

    Raises:
        InvalidConfigurationError: If the shapes do not match or `num_steps` is
            negative.
    """
    A = np.asarray(propagator)
    if not np.issubdtype(A.dtype, np.floating):
        A = A.astype(np.float64)
    u = np.asarray(initial_values, dtype=A.dtype)

    if A.ndim != 2 or A.shape[0] != A.shape[1]:  # noqa: PLR2004
        raise InvalidConfigurationError(
            f"propagator must be a square matrix, got shape {A.shape}"
        )
    if u.shape != (A.shape[0],):
        raise InvalidConfigurationError(
            f"initial_values must have shape ({A.shape[0]},), got {u.shape}"
        )
    if num_steps < 0:
        raise InvalidConfigurationError(f"num_steps must be non-negative, got {num_steps}")

    states = np.empty((num_steps + 1, u.size), dtype=A.dtype)
    states[0] = u
    for t in range(1, num_steps + 1):
        states[t] = A @ states[t - 1]
    return states


__all__ = ["create_propagation_matrix", "propagate"]
