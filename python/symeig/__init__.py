"""
symeig: symmetric eigensolver.

This package computes the eigenvalues and eigenvectors of real symmetric
matrices with Householder tridiagonalization followed by the implicit
Wilkinson-shift QR algorithm, using NumPy arrays as storage only.
"""

from .config import SolverConfig
from .householder import tridiagonalize
from .permutation import SortOrder
from .solver import (
    NO_CONVERGENCE,
    AsymmetricMatrixError,
    EigenvectorMatrixType,
    NotConvergedError,
    SolverState,
    SolveResult,
    SolveStatus,
    SymmetricEigensolver,
    eigh,
)

__all__ = [
    "NO_CONVERGENCE",
    "AsymmetricMatrixError",
    "EigenvectorMatrixType",
    "NotConvergedError",
    "SolveResult",
    "SolveStatus",
    "SolverConfig",
    "SolverState",
    "SortOrder",
    "SymmetricEigensolver",
    "eigh",
    "tridiagonalize",
]

__version__ = "0.1.0"
