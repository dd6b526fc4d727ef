"""Pytest configuration to make `src` importable without installing the package.

Also provides the collocation splines shared by several test modules.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


def _ensure_src_on_sys_path() -> None:
    """Prepend the repository `src` directory to `sys.path` if missing."""
    repo_root: Path = Path(__file__).resolve().parents[1]
    src_path: Path = repo_root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


_ensure_src_on_sys_path()

from bscm import CollocationSpline  # noqa: E402

# Order 3 on knots 0..7: physical domain [2, 5], collocation points 2.5, 3.5, 4.5.
# Zero value at the left boundary and zero slope at the right one.
HEAT_ROD_ORDER = 3
HEAT_ROD_KNOTS = [0.0, 1.0, 2.0, 3.0, 4.0, 5.0, 6.0, 7.0]
HEAT_ROD_CONSTRAINTS = [[1, 0, 0], [0, 1, 0]]

# Order 5 on knots 1..14: physical domain [5, 10]. Zero value and slope at both ends.
CLAMPED_ORDER = 5
CLAMPED_KNOTS = [float(x) for x in range(1, 15)]
CLAMPED_CONSTRAINTS = [
    [1, 0, 0, 0, 0],
    [0, 1, 0, 0, 0],
    [1, 0, 0, 0, 0],
    [0, 1, 0, 0, 0],
]


@pytest.fixture
def heat_rod_spline() -> CollocationSpline:
    """Order-3 spline on knots 0..7 with mixed boundary constraints."""
    return CollocationSpline(HEAT_ROD_ORDER, HEAT_ROD_KNOTS, HEAT_ROD_CONSTRAINTS)


@pytest.fixture
def clamped_spline() -> CollocationSpline:
    """Order-5 spline on knots 1..14 with clamped boundary constraints."""
    return CollocationSpline(CLAMPED_ORDER, CLAMPED_KNOTS, CLAMPED_CONSTRAINTS)
