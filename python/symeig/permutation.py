"""permutation.py

Eigenvalue ordering and minimum-copy reordering of eigenvector columns.

The permutation P maps a sorted position to the index of the diagonal entry
that belongs there. Slot 0 holds UNSORTED (-1) when no ordering was requested.

Reordering columns by P is done cycle by cycle. A cycle
i0 -> i1 -> ... -> ik -> i0 is rotated with one saved column:

    save = col[i0]; col[i0] = col[i1]; ...; col[ik] = save

so the number of column copies past the saved ones is N minus the number of
cycles, which is also the minimum number of transpositions composing P.
"""

from __future__ import annotations

from enum import IntEnum

import numpy as np


UNSORTED = -1


class SortOrder(IntEnum):
    DESCENDING = -1
    NONE = 0
    ASCENDING = 1


def normalize_order(order: int) -> SortOrder:
    """Map any integer onto its sign, the convention for sort requests."""
    return SortOrder(int(np.sign(int(order))))


def compute_permutation(diagonal: np.ndarray, order: int, permutation: np.ndarray) -> None:
    """Fill permutation with the ordering of diagonal requested by order."""
    order = normalize_order(order)
    if order == SortOrder.NONE:
        permutation[0] = UNSORTED
        return
    if order == SortOrder.ASCENDING:
        permutation[:] = np.argsort(diagonal, kind="stable")
    else:
        permutation[:] = np.argsort(-diagonal, kind="stable")


def is_sorted(permutation: np.ndarray) -> bool:
    return bool(permutation[0] >= 0)


def permute_values(values: np.ndarray, permutation: np.ndarray, out: np.ndarray) -> None:
    """out[k] = values[P[k]], or a plain copy when unsorted."""
    if is_sorted(permutation):
        np.take(values, permutation, out=out)
    else:
        out[:] = values


def permute_columns(Q: np.ndarray, permutation: np.ndarray, visited: np.ndarray, scratch: np.ndarray) -> int:
    """Reorder Q's columns in place so column k becomes old column P[k].

    Returns the number of transpositions performed (N minus the number of
    cycles, counting fixed points as cycles).
    """
    n = Q.shape[1]
    visited[:] = 0
    transpositions = 0
    for i in range(n):
        if visited[i] or permutation[i] == i:
            continue
        # i starts a cycle of length >= 2.
        start = i
        current = i
        scratch[:] = Q[:, i]
        nxt = int(permutation[current])
        while nxt != start:
            transpositions += 1
            visited[current] = 1
            Q[:, current] = Q[:, nxt]
            current = nxt
            nxt = int(permutation[current])
        visited[current] = 1
        Q[:, current] = scratch
    return transpositions
