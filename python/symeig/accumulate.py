"""accumulate.py

Form eigenvectors from the stored reflections and the Givens log.

With H_i the Householder reflections (i = 0..N-3) and G_k the logged
rotations in chronological order,

    Q = H_0 H_1 ... H_{N-3} G_1 G_2 ... G_K

so that Q^T A Q = D.

* Full matrix: backward accumulation of the reflections starting from the
  identity (H_{N-3} first, each touching only rows i+1..N-1), then the
  rotations applied on the right in chronological order.
* Single column: Q e_c is evaluated right to left, i.e. rotations in reverse
  chronological order, then reflections from the one nearest the rotations
  (H_{N-3}) back to H_0. The vector ping-pongs between two buffers so each
  reflection writes a fresh buffer instead of updating in place.
"""

from __future__ import annotations

import numpy as np

from .householder import load_reflection
from .qr_iteration import GivensLog


def accumulate_eigenvectors(
    W: np.ndarray,
    log: GivensLog,
    Q: np.ndarray,
    v: np.ndarray,
    w: np.ndarray,
    p: np.ndarray,
) -> None:
    """Write Q = H_0 ... H_{N-3} G_1 ... G_K into the N x N array Q."""
    n = W.shape[0]
    dtype = W.dtype.type

    Q.fill(dtype(0))
    np.fill_diagonal(Q, dtype(1))

    for i in range(n - 3, -1, -1):
        two_inv_vdv = load_reflection(W, i, v)
        if two_inv_vdv == dtype(0):
            continue
        rmin = i + 1
        # Q <- (I - (2/v^T v) v v^T) Q, restricted to the rows v touches.
        w[:] = np.dot(v[rmin:], Q[rmin:, :]) * two_inv_vdv
        Q[rmin:, :] -= np.outer(v[rmin:], w)

    for j, cs, sn in log:
        p[:] = Q[:, j]
        Q[:, j] = cs * p - sn * Q[:, j + 1]
        Q[:, j + 1] = sn * p + cs * Q[:, j + 1]


def accumulate_eigenvector(
    W: np.ndarray,
    log: GivensLog,
    basis_index: int,
    x: np.ndarray,
    y: np.ndarray,
) -> np.ndarray:
    """Compute Q e_{basis_index} using x and y as ping-pong buffers.

    Returns whichever of x and y holds the result.
    """
    n = W.shape[0]
    dtype = W.dtype.type

    x.fill(dtype(0))
    x[basis_index] = dtype(1)

    for j, cs, sn in reversed(log):
        xr = x[j]
        xrp1 = x[j + 1]
        x[j] = cs * xr + sn * xrp1
        x[j + 1] = -sn * xr + cs * xrp1

    for i in range(n - 3, -1, -1):
        two_inv_vdv = W[i + 1, i]
        if two_inv_vdv == dtype(0):
            continue
        r = i + 1
        tail = W[r + 1 :, i]

        # s = (x . v) * 2/(v^T v), with v[r] == 1 and v[:r] == 0.
        s = (x[r] + np.dot(x[r + 1 :], tail)) * two_inv_vdv
        y[:r] = x[:r]
        y[r] = x[r] - s
        y[r + 1 :] = x[r + 1 :] - s * tail
        x, y = y, x

    return x
