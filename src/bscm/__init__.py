"""Public API surface for bscm, the Basis Spline Collocation Method.

Defines package metadata and exported interfaces.
"""

from typing import Final

# Private API imports (accessible but not in __all__)
# Users can access private functions via: bscm._spline_basis_impl._function_name, etc.
from . import (
    _basis_utils,  # noqa: F401
    _spline_basis_impl,  # noqa: F401
)

# Public API imports
from ._exceptions import (
    BSCMError,
    InvalidConfigurationError,
    OutOfDomainError,
    SingularSystemError,
)
from ._spline_knots import MAX_NUM_KNOTS, MAX_ORDER, MIN_ORDER
from .constraints import (
    create_boundary_constraint_matrix,
    validate_boundary_constraint_matrix,
)
from .diffusion import create_propagation_matrix, propagate
from .knots import (
    create_padded_collocation_knot_vector,
    create_uniform_collocation_knot_vector,
)
from .spline import CollocationSpline
from .tolerance import (
    get_conservative_tolerance,
    get_default_tolerance,
    get_machine_epsilon,
    get_max_condition_number,
    get_strict_tolerance,
)

# Package metadata
__version__: Final[str] = "0.1.0"
__license__: Final[str] = "MIT"

# Public interface: only functions/classes that don't start with _
__all__ = [
    "MAX_NUM_KNOTS",
    "MAX_ORDER",
    "MIN_ORDER",
    "BSCMError",
    "CollocationSpline",
    "InvalidConfigurationError",
    "OutOfDomainError",
    "SingularSystemError",
    "__license__",
    "__version__",
    "create_boundary_constraint_matrix",
    "create_padded_collocation_knot_vector",
    "create_propagation_matrix",
    "create_uniform_collocation_knot_vector",
    "get_conservative_tolerance",
    "get_default_tolerance",
    "get_machine_epsilon",
    "get_max_condition_number",
    "get_strict_tolerance",
    "propagate",
    "validate_boundary_constraint_matrix",
]
