"""
Order-independent digests over sets of row indices.

Each row index is mapped through a splitmix64-style finalizer, which gives a
well-distributed 64-bit value with strong avalanche. A column's digests are
combined by wrapping 64-bit addition: associative and commutative, so row
order inside a column cannot matter, and multiplicity-sensitive, so a repeated
index adds instead of cancelling (unlike XOR). The sum is then finalized
together with the element count so that small or near-identical index sets do
not end up a predictable distance apart.

Public API (stable):
    map_row_index(row: int) -> int
    map_row_indices(rows) -> np.ndarray[uint64]
    combine(digests) -> int
    finalize(sums, counts) -> np.ndarray[uint64]
    EMPTY_COLUMN_DIGEST: int

Notes
-----
Equal digests are a statistical, not an absolute, guarantee of equal index
multisets. With uniform 64-bit digests the collision probability for any pair
of distinct columns is about 2**-64.
"""

from __future__ import annotations

from typing import Iterable

import numpy as np

__all__ = [
    "EMPTY_COLUMN_DIGEST",
    "map_row_index",
    "map_row_indices",
    "combine",
    "finalize",
]

_U64 = np.uint64

# splitmix64 constants
_GAMMA = _U64(0x9E3779B97F4A7C15)
_MUL1 = _U64(0xBF58476D1CE4E5B9)
_MUL2 = _U64(0x94D049BB133111EB)
_S30, _S27, _S31 = _U64(30), _U64(27), _U64(31)

# Keeps count digests out of the row-digest sequence.
_COUNT_SALT = _U64(0xD6E8FEB86659FD93)


def _mix64(x: np.ndarray) -> np.ndarray:
    # uint64 array arithmetic wraps modulo 2**64.
    x = x ^ (x >> _S30)
    x = x * _MUL1
    x = x ^ (x >> _S27)
    x = x * _MUL2
    return x ^ (x >> _S31)


def map_row_indices(rows: Iterable[int]) -> np.ndarray:
    """Vectorized `map_row_index` over an array of non-negative row indices."""
    r = np.asarray(rows, dtype=np.int64).astype(_U64)
    return _mix64((r + _U64(1)) * _GAMMA)


def map_row_index(row: int) -> int:
    """Return the 64-bit digest of a single row index."""
    return int(map_row_indices([row])[0])


def finalize(sums: np.ndarray, counts: np.ndarray) -> np.ndarray:
    """
    Turn per-column digest sums and nonzero counts into column digests.

    `sums` are wrapping uint64 sums of `map_row_indices` values; `counts` are
    the number of indices that went into each sum.
    """
    s = np.asarray(sums, dtype=_U64)
    n = np.asarray(counts, dtype=np.int64).astype(_U64)
    return _mix64(s ^ _mix64((n + _U64(1)) * _COUNT_SALT))


def combine(digests: Iterable[int]) -> int:
    """
    Combine row digests into one order-independent digest.

    `combine(ds)` is invariant under any reordering of `ds` and changes when
    an element is repeated.
    """
    d = np.fromiter((int(x) for x in digests), dtype=_U64)
    total = np.sum(d, dtype=_U64)
    return int(finalize(np.array([total], dtype=_U64), np.array([d.size]))[0])


EMPTY_COLUMN_DIGEST: int = combine(())
