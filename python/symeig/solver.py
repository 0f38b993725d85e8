"""solver.py

SymmetricEigensolver: eigenvalues and eigenvectors of a real symmetric N x N
matrix A, i.e. orthogonal Q and diagonal D with Q^T A Q = D.

Pipeline
--------
1) Householder tridiagonalization (householder.reduce_inplace), reflections
   kept in the lower triangle of the working matrix.
2) Implicit Wilkinson-shift QR on the tridiagonal band
   (qr_iteration.iterate_to_convergence), rotations kept in a GivensLog.
3) Optional eigenvalue ordering (permutation.compute_permutation).
4) Eigenvectors on demand (accumulate), either the full matrix or a single
   column.

For random matrices with entries in [0, 1] the error E = Q^T A Q - D is
about u*|A| (Frobenius norms, u the unit roundoff of the dtype), and the
number of QR steps grows roughly like 2N.

Every buffer is allocated in the constructor and reused by each solve. All
public methods, the queries included, use those buffers as scratch and hold
the instance lock while they run.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Tuple

import numpy as np

from .accumulate import accumulate_eigenvector, accumulate_eigenvectors
from .config import SolverConfig
from .householder import reduce_inplace
from .permutation import (
    UNSORTED,
    SortOrder,
    compute_permutation,
    is_sorted,
    normalize_order,
    permute_columns,
    permute_values,
)
from .qr_iteration import GivensLog, iterate_to_convergence


logger = logging.getLogger(__name__)


# Integer reported for a solve that ran out of iterations.
NO_CONVERGENCE = 0xFFFFFFFF


class SolveStatus(IntEnum):
    INERT = 0
    CONVERGED = 1
    NOT_CONVERGED = 2


class SolverState(IntEnum):
    """Lifecycle of a solver instance.

    TRIDIAGONALIZED is only held inside solve, between the reduction and the
    QR iteration, so it is never observed from outside the instance lock.
    """

    INERT = 0
    UNSOLVED = 1
    TRIDIAGONALIZED = 2
    CONVERGED = 3
    NOT_CONVERGED = 4


class EigenvectorMatrixType(IntEnum):
    NOT_COMPUTED = -1
    REFLECTION = 0
    ROTATION = 1


@dataclass(frozen=True)
class SolveResult:
    status: SolveStatus
    iterations: int

    @property
    def converged(self) -> bool:
        return self.status == SolveStatus.CONVERGED

    def as_legacy(self) -> int:
        """Iteration count, NO_CONVERGENCE, or 0 for an inert solver."""
        if self.status == SolveStatus.NOT_CONVERGED:
            return NO_CONVERGENCE
        if self.status == SolveStatus.INERT:
            return 0
        return self.iterations


class AsymmetricMatrixError(ValueError):
    pass


class NotConvergedError(RuntimeError):
    def __init__(self, result: SolveResult, max_iterations: int) -> None:
        super().__init__(f"symmetric QR did not converge within {max_iterations} iterations")
        self.result = result


class SymmetricEigensolver:
    def __init__(
        self,
        order: int,
        max_iterations: int,
        *,
        dtype: np.dtype = np.float64,
        check_symmetry: bool = False,
        symmetry_tol: Optional[float] = None,
    ) -> None:
        config = SolverConfig(
            order=int(order),
            max_iterations=int(max_iterations),
            dtype=np.dtype(dtype),
            check_symmetry=check_symmetry,
            symmetry_tol=symmetry_tol,
        )
        self._config = config
        self._dtype = config.dtype
        self._lock = threading.RLock()
        self._matrix_type = EigenvectorMatrixType.NOT_COMPUTED
        self._reflections = 0
        self._last_result: Optional[SolveResult] = None

        if not config.is_valid:
            logger.warning(
                "inert eigensolver: order=%d max_iterations=%d (need order > 1 and max_iterations > 0)",
                config.order,
                config.max_iterations,
            )
            self._order = 0
            self._max_iterations = 0
            self._state = SolverState.INERT
            return

        n = config.order
        self._order = n
        self._max_iterations = config.max_iterations
        self._state = SolverState.UNSOLVED

        self._matrix = np.zeros((n, n), dtype=self._dtype)
        self._diagonal = np.zeros((n,), dtype=self._dtype)
        self._superdiagonal = np.zeros((n - 1,), dtype=self._dtype)
        self._givens = GivensLog(config.rotation_capacity, self._dtype)
        self._permutation = np.full((n,), UNSORTED, dtype=np.intp)
        self._visited = np.zeros((n,), dtype=np.int8)
        self._p = np.zeros((n,), dtype=self._dtype)
        self._v = np.zeros((n,), dtype=self._dtype)
        self._w = np.zeros((n,), dtype=self._dtype)

    @classmethod
    def from_config(cls, config: SolverConfig) -> "SymmetricEigensolver":
        return cls(
            config.order,
            config.max_iterations,
            dtype=config.dtype,
            check_symmetry=config.check_symmetry,
            symmetry_tol=config.symmetry_tol,
        )

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def order(self) -> int:
        """N, or 0 for an inert solver."""
        return self._order

    @property
    def max_iterations(self) -> int:
        return self._max_iterations

    @property
    def dtype(self) -> np.dtype:
        return self._dtype

    @property
    def config(self) -> SolverConfig:
        return self._config

    @property
    def state(self) -> SolverState:
        return self._state

    @property
    def lock(self) -> threading.RLock:
        """Instance lock; hold it to make a solve and the queries that follow atomic."""
        return self._lock

    @property
    def last_result(self) -> Optional[SolveResult]:
        return self._last_result

    @property
    def rotation_count(self) -> int:
        """Givens rotations recorded by the last solve."""
        if self._order == 0:
            return 0
        return len(self._givens)

    @property
    def eigenvector_matrix_type(self) -> EigenvectorMatrixType:
        """ROTATION or REFLECTION after get_eigenvectors, NOT_COMPUTED otherwise."""
        return self._matrix_type

    # -------------------------------------------------------------------------
    # Solve
    # -------------------------------------------------------------------------

    def solve(self, matrix: np.ndarray, sort: int = SortOrder.NONE) -> SolveResult:
        """Decompose the symmetric matrix given as N*N row-major values.

        sort is SortOrder.DESCENDING (-1), NONE (0) or ASCENDING (+1). Only
        the upper triangle of the input is used by the reduction; symmetry is
        checked only when the solver was built with check_symmetry=True.
        """
        with self._lock:
            if self._order == 0:
                self._matrix_type = EigenvectorMatrixType.NOT_COMPUTED
                result = SolveResult(SolveStatus.INERT, 0)
                self._last_result = result
                return result

            n = self._order
            A = np.asarray(matrix)
            if A.size != n * n:
                raise ValueError(f"matrix must have {n * n} elements (got {A.size})")
            A = A.reshape(n, n)
            if self._config.check_symmetry:
                self._check_symmetric(A)

            order = normalize_order(sort)
            self._matrix_type = EigenvectorMatrixType.NOT_COMPUTED
            self._matrix[:, :] = A
            self._permutation[0] = UNSORTED
            self._givens.clear()

            self._reflections = reduce_inplace(
                self._matrix, self._diagonal, self._superdiagonal, self._v, self._p, self._w
            )
            self._state = SolverState.TRIDIAGONALIZED

            converged, iterations = iterate_to_convergence(
                self._diagonal, self._superdiagonal, self._max_iterations, self._givens
            )
            if converged:
                compute_permutation(self._diagonal, order, self._permutation)
                self._state = SolverState.CONVERGED
                result = SolveResult(SolveStatus.CONVERGED, iterations)
                logger.debug(
                    "converged: n=%d iterations=%d rotations=%d", n, iterations, len(self._givens)
                )
            else:
                self._state = SolverState.NOT_CONVERGED
                result = SolveResult(SolveStatus.NOT_CONVERGED, iterations)
                logger.warning("no convergence after %d QR iterations (n=%d)", iterations, n)

            self._last_result = result
            return result

    def _check_symmetric(self, A: np.ndarray) -> None:
        scale = max(1.0, float(np.max(np.abs(A))))
        asym = float(np.max(np.abs(A - A.T)))
        tol = self._config.resolved_symmetry_tol() * scale
        if asym > tol:
            raise AsymmetricMatrixError(f"matrix is not symmetric: max|A - A^T| = {asym:.3e} > {tol:.3e}")

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def _output(self, out: Optional[np.ndarray], shape: Tuple[int, ...]) -> np.ndarray:
        if out is None:
            return np.empty(shape, dtype=self._dtype)
        if not isinstance(out, np.ndarray):
            raise ValueError("out must be a numpy array")
        if out.size != int(np.prod(shape)):
            raise ValueError(f"out must have {int(np.prod(shape))} elements (got {out.size})")
        if out.dtype != self._dtype:
            raise ValueError(f"out must have dtype {self._dtype} (got {out.dtype})")
        if out.shape == shape:
            return out
        view = out.reshape(shape)
        if not np.shares_memory(view, out):
            raise ValueError("out must be reshapeable without copying")
        return view

    def get_eigenvalue(self, c: int) -> np.generic:
        """Eigenvalue in position c of the requested ordering.

        An inert solver returns the largest finite value of its dtype.
        """
        with self._lock:
            if self._order == 0:
                return self._dtype.type(np.finfo(self._dtype).max)
            if is_sorted(self._permutation):
                return self._diagonal[self._permutation[c]]
            return self._diagonal[c]

    def get_eigenvalues(self, out: Optional[np.ndarray] = None) -> Optional[np.ndarray]:
        with self._lock:
            if self._order == 0:
                return None
            target = self._output(out, (self._order,))
            permute_values(self._diagonal, self._permutation, target)
            return target

    def get_eigenvectors(self, out: Optional[np.ndarray] = None) -> Optional[np.ndarray]:
        """Return Q (N x N); column i is the eigenvector of eigenvalue i.

        out may be a flat N*N buffer or an N x N array; it is filled as the
        row-major Q. Also records eigenvector_matrix_type.
        """
        with self._lock:
            self._matrix_type = EigenvectorMatrixType.NOT_COMPUTED
            if self._order == 0:
                return None
            n = self._order
            Q = self._output(out, (n, n))
            accumulate_eigenvectors(self._matrix, self._givens, Q, self._v, self._w, self._p)

            # Each reflection and each transposition flips det(Q); rotations keep it.
            flips = self._reflections
            if is_sorted(self._permutation):
                flips += permute_columns(Q, self._permutation, self._visited, self._p)
            if flips % 2 == 0:
                self._matrix_type = EigenvectorMatrixType.ROTATION
            else:
                self._matrix_type = EigenvectorMatrixType.REFLECTION
            return Q

    def get_eigenvector(self, c: int, out: Optional[np.ndarray] = None) -> Optional[np.ndarray]:
        """Column c of Q, computed without forming the full matrix.

        Returns None when c is out of range or the solver is inert.
        """
        with self._lock:
            n = self._order
            if not 0 <= c < n:
                return None
            x = self._output(out, (n,))
            basis = int(self._permutation[c]) if is_sorted(self._permutation) else c
            result = accumulate_eigenvector(self._matrix, self._givens, basis, x, self._p)
            if result is not x:
                x[:] = result
            return x


def eigh(
    A: np.ndarray,
    *,
    sort: int = SortOrder.ASCENDING,
    max_iterations: Optional[int] = None,
    dtype: np.dtype = np.float64,
) -> Tuple[np.ndarray, np.ndarray]:
    """One-shot decomposition: return (eigenvalues, eigenvectors) of A.

    Raises NotConvergedError when the QR iteration exhausts its budget
    (default 30*N).
    """
    A = np.asarray(A)
    if A.ndim != 2 or A.shape[0] != A.shape[1]:
        raise ValueError("A must be a square 2D array")
    n = A.shape[0]
    if n < 2:
        # Nothing to reduce; the solver itself is inert below order 2.
        return np.array(A.reshape(n), dtype=dtype), np.eye(n, dtype=dtype)
    if max_iterations is None:
        max_iterations = 30 * n
    solver = SymmetricEigensolver(n, max_iterations, dtype=dtype)
    result = solver.solve(A, sort)
    if not result.converged:
        raise NotConvergedError(result, max_iterations)
    return solver.get_eigenvalues(), solver.get_eigenvectors()
