"""
Per-column signatures over row-index sets.

A column signature summarizes *which* terms occur in a document, independent
of the order in which they are stored and of their weights. Two matrices whose
columns are a reordering of one another have the same multiset of signatures,
so sorting the digests makes the comparison blind to column order.

Public API (stable):
    ColumnSignature(column: int, digest: int)
    column_digests(offsets, rows) -> np.ndarray[uint64]
    build_column_signatures(matrix) -> list[ColumnSignature]
    sorted_digests(matrix) -> np.ndarray[uint64]
    first_disagreement(a, b) -> int | None
    duplicate_digest_count(digests) -> int
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional

import numpy as np

from tdmoracle.errors import MatrixFormatError
from tdmoracle.matrix.csc import SparseColumnMatrix, readonly_view
from tdmoracle.validate.hashing import finalize, map_row_indices

__all__ = [
    "ColumnSignature",
    "column_digests",
    "build_column_signatures",
    "sorted_digests",
    "first_disagreement",
    "duplicate_digest_count",
]


@dataclass(frozen=True)
class ColumnSignature:
    column: int
    digest: int


def column_digests(offsets: Any, rows: Any) -> np.ndarray:
    """
    Digest every column's row indices.

    Parameters
    ----------
    offsets : array-like of int
        Column offsets, length width + 1.
    rows : array-like of int
        Row index of every nonzero, in storage order.

    Returns
    -------
    np.ndarray
        uint64 array of length width; empty columns get EMPTY_COLUMN_DIGEST.
    """
    off = readonly_view(offsets, np.int64)
    r = readonly_view(rows, np.int64)
    if off.size == 0:
        raise MatrixFormatError("offsets must contain at least one entry")
    if int(off[-1]) != r.size:
        raise MatrixFormatError(
            f"offsets[width] = {int(off[-1])} but {r.size} row indices were given"
        )

    # Segment sums through a wrapping prefix sum: each nonzero is hashed once
    # and an empty column yields a zero sum.
    h = map_row_indices(r)
    prefix = np.zeros(h.size + 1, dtype=np.uint64)
    np.cumsum(h, dtype=np.uint64, out=prefix[1:])
    sums = prefix[off[1:]] - prefix[off[:-1]]
    return finalize(sums, np.diff(off))


def _digests_of(source: Any) -> np.ndarray:
    if isinstance(source, SparseColumnMatrix):
        return column_digests(source.offsets, source.rows)
    offsets, rows = source
    return column_digests(offsets, rows)


def build_column_signatures(source: Any) -> List[ColumnSignature]:
    """
    Return one signature per column, ordered by column index.

    `source` is a SparseColumnMatrix or an `(offsets, rows)` pair, so a
    caller can hash a row buffer that lives outside the matrix (e.g. a
    term-frequency view's own buffer).
    """
    digests = _digests_of(source)
    return [ColumnSignature(column=c, digest=int(d)) for c, d in enumerate(digests)]


def sorted_digests(source: Any) -> np.ndarray:
    """Column digests sorted ascending by value."""
    return np.sort(_digests_of(source), kind="stable")


def first_disagreement(a: np.ndarray, b: np.ndarray) -> Optional[int]:
    """
    Return the first index i where a[i] != b[i], or None if the sequences agree.

    Sequences of different length disagree at the shorter length.
    """
    n = min(len(a), len(b))
    diff = np.flatnonzero(np.asarray(a[:n]) != np.asarray(b[:n]))
    if diff.size:
        return int(diff[0])
    if len(a) != len(b):
        return n
    return None


def duplicate_digest_count(digests: np.ndarray) -> int:
    """Number of columns whose digest equals that of another column."""
    d = np.asarray(digests)
    if d.size < 2:
        return 0
    _, counts = np.unique(d, return_counts=True)
    return int(counts[counts > 1].sum())
