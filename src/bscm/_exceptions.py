"""Exceptions raised by the collocation-spline engine."""

import numpy as np


class BSCMError(Exception):
    """Base exception for all collocation-spline errors."""

    pass


class InvalidConfigurationError(BSCMError, ValueError):
    """Raised when the order, knots, or boundary constraints are malformed.

    The engine cannot recover from these: callers are expected to validate
    their parameters (or catch this error and re-prompt) before construction.
    """

    pass


class OutOfDomainError(BSCMError, ValueError):
    """Raised when a query index, order, or coordinate is out of range."""

    pass


class SingularSystemError(BSCMError, np.linalg.LinAlgError):
    """Raised when the augmented collocation system cannot be inverted.

    This happens when the boundary constraints are linearly dependent with
    the collocation rows (an unsolvable boundary configuration), or when the
    system is too ill-conditioned for its inverse to be meaningful.
    """

    pass


__all__ = [
    "BSCMError",
    "InvalidConfigurationError",
    "OutOfDomainError",
    "SingularSystemError",
]
