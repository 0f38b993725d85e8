"""accuracy.py

Error metrics and accuracy sweeps for SymmetricEigensolver.

Metrics (Frobenius norms)
-------------------------
* rel_err   = |Q^T A Q - D| / |A|      (expected to be about u, the unit roundoff)
* ortho_err = |Q^T Q - I|
* eig_err   = max_i |lambda_i - lambda_i(ref)| / max(1, |A|), against
              numpy.linalg.eigvalsh computed in float64

run_accuracy_sweep returns one row per (n, trial) as a pandas DataFrame with
the columns in SWEEP_COLUMNS; summarize_sweep averages them per n.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

import numpy as np
import pandas as pd

from .config import SolverConfig
from .permutation import SortOrder
from .solver import SymmetricEigensolver


logger = logging.getLogger(__name__)


SWEEP_COLUMNS = [
    "n",
    "trial",
    "dtype",
    "iterations",
    "converged",
    "norm_A",
    "norm_E",
    "rel_err",
    "ortho_err",
    "eig_err",
]


def random_symmetric(
    n: int,
    rng: np.random.Generator,
    dtype: np.dtype = np.float64,
    *,
    low: float = 0.0,
    high: float = 1.0,
) -> np.ndarray:
    """Symmetric n x n matrix with entries drawn uniformly from [low, high)."""
    A = rng.uniform(low, high, size=(n, n))
    A = np.triu(A) + np.triu(A, 1).T
    return A.astype(dtype, copy=False)


def reconstruction_error(A: np.ndarray, Q: np.ndarray, eigenvalues: np.ndarray) -> float:
    """|Q^T A Q - diag(eigenvalues)|_F, evaluated in float64."""
    A64 = np.asarray(A, dtype=np.float64)
    Q64 = np.asarray(Q, dtype=np.float64)
    E = Q64.T @ A64 @ Q64 - np.diag(np.asarray(eigenvalues, dtype=np.float64))
    return float(np.linalg.norm(E))


def orthogonality_error(Q: np.ndarray) -> float:
    """|Q^T Q - I|_F, evaluated in float64."""
    Q64 = np.asarray(Q, dtype=np.float64)
    return float(np.linalg.norm(Q64.T @ Q64 - np.eye(Q64.shape[1])))


def eigenvalue_error(A: np.ndarray, eigenvalues: np.ndarray) -> float:
    """Max deviation from the float64 LAPACK eigenvalues, scaled by max(1, |A|)."""
    A64 = np.asarray(A, dtype=np.float64)
    ref = np.linalg.eigvalsh(A64)
    got = np.sort(np.asarray(eigenvalues, dtype=np.float64))
    scale = max(1.0, float(np.linalg.norm(A64)))
    return float(np.max(np.abs(got - ref))) / scale


def run_accuracy_sweep(
    sizes: Iterable[int],
    *,
    trials: int = 4,
    seed: int = 0,
    max_iterations: Optional[int] = None,
    dtype: np.dtype = np.float64,
    sort: int = SortOrder.ASCENDING,
) -> pd.DataFrame:
    """Solve random symmetric matrices and collect the error metrics.

    max_iterations defaults to 30*n per size.
    """
    rng = np.random.default_rng(seed)
    dtype = np.dtype(dtype)
    rows = []
    for n in sizes:
        n = int(n)
        if n < 2:
            raise ValueError(f"matrix sizes must be >= 2 (got {n})")
        budget = 30 * n if max_iterations is None else int(max_iterations)
        solver = SymmetricEigensolver.from_config(SolverConfig(order=n, max_iterations=budget, dtype=dtype))
        logger.info("accuracy sweep: n=%d trials=%d dtype=%s", n, trials, dtype)
        for trial in range(trials):
            A = random_symmetric(n, rng, dtype)
            result = solver.solve(A, sort)
            eigenvalues = solver.get_eigenvalues()
            Q = solver.get_eigenvectors()
            norm_A = float(np.linalg.norm(np.asarray(A, dtype=np.float64)))
            norm_E = reconstruction_error(A, Q, eigenvalues)
            rows.append(
                {
                    "n": n,
                    "trial": trial,
                    "dtype": dtype.name,
                    "iterations": result.iterations,
                    "converged": result.converged,
                    "norm_A": norm_A,
                    "norm_E": norm_E,
                    "rel_err": norm_E / norm_A if norm_A > 0 else norm_E,
                    "ortho_err": orthogonality_error(Q),
                    "eig_err": eigenvalue_error(A, eigenvalues),
                }
            )
    return pd.DataFrame(rows, columns=SWEEP_COLUMNS)


def summarize_sweep(df: pd.DataFrame) -> pd.DataFrame:
    """Mean and std of each metric per matrix size."""
    if df.empty:
        raise ValueError("No data to summarize")
    metrics = ["iterations", "rel_err", "ortho_err", "eig_err"]
    grouped = df.groupby("n")[metrics]
    summary = grouped.mean()
    std = grouped.std(ddof=0).add_suffix("_std")
    summary = summary.join(std)
    summary["converged_frac"] = df.groupby("n")["converged"].mean()
    return summary.reset_index()
