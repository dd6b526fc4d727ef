"""Memoization table for basis functions evaluated at collocation points."""

from __future__ import annotations

import numpy as np
import numpy.typing as npt


class _BasisCache:
    """Pre-sized table of ``B(k, i, x_alpha)`` values.

    Level ``k`` (``1..order``) holds ``num_knots - k`` basis indices for each of
    the ``num_points`` collocation points, so every valid ``(k, i, alpha)`` key
    has a slot from the start. Whether a slot has been computed is tracked by
    a separate boolean mask; a NaN value is a legitimate (if unfortunate)
    result, not an "unset" marker.

    Once the owning spline has finished its construction the cache is frozen:
    its arrays become read-only and further stores are rejected. Only a
    complete cache can be frozen. `shape` and `frozen` are diagnostics for
    inspecting a cache; the spline itself only uses `lookup`, `store` and
    `freeze`.
    """

    _values: list[npt.NDArray[np.float32 | np.float64]]
    _computed: list[npt.NDArray[np.bool_]]
    _frozen: bool

    def __init__(
        self, order: int, num_knots: int, num_points: int, dtype: npt.DTypeLike
    ) -> None:
        """Allocate empty tables for levels ``1..order``.

        Args:
            order (int): Highest order level.
            num_knots (int): Number of knots of the spline.
            num_points (int): Number of collocation points.
            dtype (npt.DTypeLike): Floating dtype of the stored values.
        """
        self._values = [
            np.zeros((num_knots - k, num_points), dtype=dtype) for k in range(1, order + 1)
        ]
        self._computed = [
            np.zeros((num_knots - k, num_points), dtype=np.bool_) for k in range(1, order + 1)
        ]
        self._frozen = False

    def lookup(self, k: int, i: int, alpha: int) -> float | None:
        """Return the stored value for ``(k, i, alpha)``, or None if unset."""
        if not self._computed[k - 1][i, alpha]:
            return None
        return float(self._values[k - 1][i, alpha])

    def store(self, k: int, i: int, alpha: int, value: float) -> float:
        """Store `value` for ``(k, i, alpha)`` and return it.

        Raises:
            RuntimeError: If the cache has been frozen.
        """
        if self._frozen:
            raise RuntimeError("basis cache is frozen")
        self._values[k - 1][i, alpha] = value
        self._computed[k - 1][i, alpha] = True
        return value

    def shape(self, k: int) -> tuple[int, int]:
        """Number of ``(i, alpha)`` slots at level `k`."""
        return self._values[k - 1].shape  # type: ignore[return-value]

    @property
    def is_complete(self) -> bool:
        """Whether every slot of every level has been computed."""
        return all(bool(np.all(mask)) for mask in self._computed)

    @property
    def frozen(self) -> bool:
        """Whether the cache rejects further stores."""
        return self._frozen

    def freeze(self) -> None:
        """Make the tables read-only.

        Raises:
            RuntimeError: If some slot has not been computed.
        """
        if not self.is_complete:
            raise RuntimeError("cannot freeze an incomplete basis cache")
        for values, mask in zip(self._values, self._computed, strict=True):
            values.setflags(write=False)
            mask.setflags(write=False)
        self._frozen = True
