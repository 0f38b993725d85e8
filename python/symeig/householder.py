"""householder.py

Householder reduction of a dense real symmetric matrix to tridiagonal form
(Golub & Van Loan, Algorithm 8.2.1).

Storage overlay
---------------
The reduction runs in place on an N x N working matrix W and reads/writes only
its upper triangle (diagonal included) as the symmetric matrix being reduced.
The strict lower triangle is free after each step, so reflection i is stored
in column i below the diagonal:

    W[i+1, i]   = 2 / (v^T v)        (v[i+1] == 1 is implied, not stored)
    W[r, i]     = v[r]               for r = i+2..N-1

with v[0..i] == 0 implied. After the reduction, W must be read with exactly
this interpretation: it is no longer a symmetric matrix.

A column whose subdiagonal part is already zero needs no reflection. Its
scalar slot holds 0, which makes the stored reflection the identity.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np


# -----------------------------------------------------------------------------
# Reflection store
# -----------------------------------------------------------------------------


def load_reflection(W: np.ndarray, i: int, v: np.ndarray) -> np.generic:
    """Expand reflection i of the overlay into v; return its 2/(v^T v) scalar.

    A zero scalar marks a skipped (identity) reflection.
    """
    n = W.shape[0]
    dtype = W.dtype.type
    v[: i + 1] = dtype(0)
    v[i + 1] = dtype(1)
    if i + 2 < n:
        v[i + 2 :] = W[i + 2 :, i]
    return W[i + 1, i]


def reflection_count(W: np.ndarray) -> int:
    """Number of non-identity reflections recorded in a reduced overlay."""
    n = W.shape[0]
    if n < 3:
        return 0
    scalars = W[np.arange(1, n - 1), np.arange(0, n - 2)]
    return int(np.count_nonzero(scalars))


# -----------------------------------------------------------------------------
# Reduction
# -----------------------------------------------------------------------------


def _householder_vector(W: np.ndarray, i: int, v: np.ndarray) -> np.generic:
    """Build the sign-stabilized Householder vector for column i into v.

    Returns v^T v, or 0 when the column is already reduced.
    """
    n = W.shape[0]
    dtype = W.dtype.type
    ip1 = i + 1

    v[:ip1] = dtype(0)
    v[ip1:] = W[i, ip1:]
    length = np.sqrt(np.dot(v[ip1:], v[ip1:]))
    if not length > dtype(0):
        return dtype(0)

    v1 = v[ip1]
    sgn = dtype(1) if v1 >= dtype(0) else dtype(-1)
    inv_denom = dtype(1) / (v1 + sgn * length)
    v[ip1] = dtype(1)
    vdv = dtype(1)
    if ip1 + 1 < n:
        v[ip1 + 1 :] *= inv_denom
        vdv += np.dot(v[ip1 + 1 :], v[ip1 + 1 :])
    return vdv


def _symmetric_rank2_update(
    W: np.ndarray, i: int, v: np.ndarray, p: np.ndarray, w: np.ndarray, vdv: np.generic
) -> np.generic:
    """Apply W[i:, i:] <- H W[i:, i:] H on the upper triangle; return 2/(v^T v).

    p = (2/vdv) A v,  w = p - (p^T v / vdv) v,  A <- A - v w^T - w v^T.
    """
    n = W.shape[0]
    dtype = W.dtype.type
    inv_vdv = dtype(1) / vdv
    two_inv_vdv = dtype(2) * inv_vdv

    # A is only valid on its upper triangle, so row r of the symmetric matrix
    # is column r above the diagonal followed by row r from the diagonal on.
    for r in range(i, n):
        p[r] = (np.dot(W[i:r, r], v[i:r]) + np.dot(W[r, r:], v[r:])) * two_inv_vdv

    pdv = np.dot(p[i:], v[i:]) * inv_vdv
    w[i:] = p[i:] - pdv * v[i:]

    for r in range(i, n):
        vr = v[r]
        wr = w[r]
        W[r, r] -= dtype(2) * vr * wr
        if r + 1 < n:
            W[r, r + 1 :] -= vr * w[r + 1 :] + wr * v[r + 1 :]
    return two_inv_vdv


def reduce_inplace(
    W: np.ndarray,
    diagonal: np.ndarray,
    superdiagonal: np.ndarray,
    v: np.ndarray,
    p: np.ndarray,
    w: np.ndarray,
) -> int:
    """Tridiagonalize W in place and extract its band.

    W holds a symmetric matrix on entry; on exit it holds the overlay
    described in the module docstring. diagonal (N) and superdiagonal (N-1)
    receive the tridiagonal band. v, p and w are N-length scratch buffers.

    Returns the number of non-identity reflections applied.
    """
    n = W.shape[0]
    dtype = W.dtype.type
    applied = 0

    for i in range(n - 2):
        vdv = _householder_vector(W, i, v)
        if vdv == dtype(0):
            W[i + 1, i] = dtype(0)
            W[i + 2 :, i] = dtype(0)
            continue

        two_inv_vdv = _symmetric_rank2_update(W, i, v, p, w, vdv)
        W[i + 1, i] = two_inv_vdv
        W[i + 2 :, i] = v[i + 2 :]
        applied += 1

    diagonal[:] = np.diagonal(W)
    superdiagonal[:] = np.diagonal(W, 1)
    return applied


def tridiagonalize(A: np.ndarray, dtype: np.dtype = np.float64) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Return (d, e, W): band of the tridiagonal similar to A and the overlay.

    Standalone entry point that allocates its own workspace; the solver uses
    reduce_inplace on preallocated buffers instead.
    """
    A = np.asarray(A)
    if A.ndim != 2 or A.shape[0] != A.shape[1]:
        raise ValueError("A must be a square 2D array")
    n = A.shape[0]
    W = np.array(A, dtype=dtype, copy=True)
    d = np.zeros((n,), dtype=dtype)
    e = np.zeros((max(0, n - 1),), dtype=dtype)
    if n == 0:
        return d, e, W
    v = np.empty((n,), dtype=dtype)
    p = np.empty((n,), dtype=dtype)
    w = np.empty((n,), dtype=dtype)
    reduce_inplace(W, d, e, v, p, w)
    return d, e, W
