"""config.py

Solver configuration.

A configuration is *valid* when the matrix order exceeds 1 and the iteration
budget is positive. Invalid configurations are not rejected: the solver built
from one is inert (order 0) and every operation on it becomes a no-op.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np


_SUPPORTED_DTYPES = (np.dtype(np.float32), np.dtype(np.float64))


@dataclass(frozen=True)
class SolverConfig:
    order: int
    max_iterations: int
    dtype: np.dtype = np.dtype(np.float64)
    check_symmetry: bool = False
    symmetry_tol: Optional[float] = None

    def __post_init__(self) -> None:
        dtype = np.dtype(self.dtype)
        if dtype not in _SUPPORTED_DTYPES:
            raise ValueError(f"unsupported dtype {dtype}; expected float32 or float64")
        object.__setattr__(self, "dtype", dtype)
        if self.symmetry_tol is not None and self.symmetry_tol < 0:
            raise ValueError("symmetry_tol must be non-negative")

    @property
    def is_valid(self) -> bool:
        return self.order > 1 and self.max_iterations > 0

    @property
    def rotation_capacity(self) -> int:
        """Upper bound on the Givens rotations a solve can record: K*(N-1)."""
        if not self.is_valid:
            return 0
        return self.max_iterations * (self.order - 1)

    def resolved_symmetry_tol(self) -> float:
        """Relative asymmetry tolerance, defaulting to 100 ulp of the dtype."""
        if self.symmetry_tol is not None:
            return float(self.symmetry_tol)
        return 100.0 * float(np.finfo(self.dtype).eps)

