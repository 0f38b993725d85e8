"""qr_iteration.py

Implicit symmetric QR with Wilkinson shift on a tridiagonal band
(Golub & Van Loan, Algorithms 8.2.2 and 8.2.3).

The tridiagonal T is stored as its diagonal d (N) and superdiagonal e (N-1).
Each QR step chases a bulge through the lowest unreduced block of T with
Givens rotations. Every rotation is appended to a GivensLog so eigenvectors
can be formed afterwards.

Decoupling
----------
e[i] is treated as zero when it is below the precision of its diagonal
neighbours:

    s = |d[i]| + |d[i+1]|;   s + |e[i]| == s

evaluated in the working dtype.
"""

from __future__ import annotations

import logging
from typing import Iterator, Optional, Tuple

import numpy as np


logger = logging.getLogger(__name__)


class GivensLog:
    """Append-only record of Givens rotations with a fixed capacity.

    Rotation k is the identity with R[j,j] = c, R[j,j+1] = s, R[j+1,j] = -s
    and R[j+1,j+1] = c, where j = indices[k].
    """

    def __init__(self, capacity: int, dtype: np.dtype) -> None:
        self.indices = np.zeros((capacity,), dtype=np.intp)
        self.cosines = np.zeros((capacity,), dtype=dtype)
        self.sines = np.zeros((capacity,), dtype=dtype)
        self.size = 0

    @property
    def capacity(self) -> int:
        return self.indices.shape[0]

    def __len__(self) -> int:
        return self.size

    def clear(self) -> None:
        self.size = 0

    def append(self, index: int, cs: np.generic, sn: np.generic) -> None:
        if self.size >= self.capacity:
            raise IndexError("Givens log capacity exceeded")
        k = self.size
        self.indices[k] = index
        self.cosines[k] = cs
        self.sines[k] = sn
        self.size = k + 1

    def __iter__(self) -> Iterator[Tuple[int, np.generic, np.generic]]:
        for k in range(self.size):
            yield int(self.indices[k]), self.cosines[k], self.sines[k]

    def __reversed__(self) -> Iterator[Tuple[int, np.generic, np.generic]]:
        for k in range(self.size - 1, -1, -1):
            yield int(self.indices[k]), self.cosines[k], self.sines[k]


# -----------------------------------------------------------------------------
# Primitives
# -----------------------------------------------------------------------------


def givens_sin_cos(x: np.generic, y: np.generic) -> Tuple[np.generic, np.generic]:
    """Return (c, s) with s*x + c*y == 0 and c^2 + s^2 == 1."""
    dtype = type(x)
    if y == 0:
        return dtype(1), dtype(0)
    if abs(y) > abs(x):
        tau = -x / y
        sn = dtype(1) / np.sqrt(dtype(1) + tau * tau)
        cs = sn * tau
    else:
        tau = -y / x
        cs = dtype(1) / np.sqrt(dtype(1) + tau * tau)
        sn = cs * tau
    return cs, sn


def wilkinson_shift(a00: np.generic, a01: np.generic, a11: np.generic) -> np.generic:
    """Eigenvalue of [[a00, a01], [a01, a11]] closest to a11."""
    dtype = type(a11)
    dif = (a00 - a11) * dtype(0.5)
    sgn = dtype(1) if dif >= 0 else dtype(-1)
    a01sqr = a01 * a01
    return a11 - a01sqr / (dif + sgn * np.sqrt(dif * dif + a01sqr))


def find_unreduced_block(diagonal: np.ndarray, superdiagonal: np.ndarray) -> Optional[Tuple[int, int]]:
    """Locate the lowest unreduced block as (imin, imax) superdiagonal indices.

    Returns None when every superdiagonal entry is negligible.
    """
    imin = -1
    imax = -1
    for i in range(superdiagonal.shape[0] - 1, -1, -1):
        s = abs(diagonal[i]) + abs(diagonal[i + 1])
        if s + abs(superdiagonal[i]) != s:
            if imax == -1:
                imax = i
            imin = i
        elif imin >= 0:
            break
    if imax == -1:
        return None
    return imin, imax


# -----------------------------------------------------------------------------
# QR step
# -----------------------------------------------------------------------------


def qr_implicit_shift_step(
    diagonal: np.ndarray,
    superdiagonal: np.ndarray,
    imin: int,
    imax: int,
    log: GivensLog,
) -> None:
    """One implicit-shift QR sweep over rows/columns imin..imax+1 of T.

    Each rotation updates the 4x4 window

        b00 b01 b02 b03
        b01 b11 b12 b13
        b02 b12 b22 b23
        b03 b13 b23 b33

    whose interior {b11, b12, b22} always changes; b01 and b02 only exist
    past the first step and b13, b23 only before the last. b02 is the bulge.
    """
    d = diagonal
    e = superdiagonal
    dtype = d.dtype.type

    u = wilkinson_shift(d[imax], e[imax], d[imax + 1])
    x = d[imin] - u
    y = e[imin]

    a02 = dtype(0)
    for i1 in range(imin, imax + 1):
        i0 = i1 - 1
        i2 = i1 + 1

        cs, sn = givens_sin_cos(x, y)
        log.append(i1, cs, sn)

        if i1 > imin:
            e[i0] = cs * e[i0] - sn * a02

        a11 = d[i1]
        a12 = e[i1]
        a22 = d[i2]
        tmp11 = cs * a11 - sn * a12
        tmp12 = cs * a12 - sn * a22
        tmp21 = sn * a11 + cs * a12
        tmp22 = sn * a12 + cs * a22
        d[i1] = cs * tmp11 - sn * tmp12
        e[i1] = sn * tmp11 + cs * tmp12
        d[i2] = sn * tmp21 + cs * tmp22

        if i1 < imax:
            a23 = e[i2]
            a02 = -sn * a23
            e[i2] = cs * a23
            x = e[i1]
            y = a02


def iterate_to_convergence(
    diagonal: np.ndarray,
    superdiagonal: np.ndarray,
    max_iterations: int,
    log: GivensLog,
) -> Tuple[bool, int]:
    """Run QR steps until T is diagonal or the budget is spent.

    Returns (converged, iterations). On convergence, iterations is the number
    of QR steps taken; otherwise it equals max_iterations.
    """
    for j in range(max_iterations):
        block = find_unreduced_block(diagonal, superdiagonal)
        if block is None:
            return True, j
        imin, imax = block
        logger.debug("QR step %d on block [%d, %d]", j, imin, imax + 1)
        qr_implicit_shift_step(diagonal, superdiagonal, imin, imax, log)
    return False, max_iterations
