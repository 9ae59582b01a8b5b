"""Tests for per-column signatures."""

from __future__ import annotations

import numpy as np
import pytest
from hypothesis import given, settings

from strategies import from_columns, matrix_and_permutation
from tdmoracle.datasets import permute_columns
from tdmoracle.errors import MatrixFormatError
from tdmoracle.validate.hashing import EMPTY_COLUMN_DIGEST, combine, map_row_index
from tdmoracle.validate.signatures import (
    ColumnSignature,
    build_column_signatures,
    column_digests,
    duplicate_digest_count,
    first_disagreement,
    sorted_digests,
)


def test_signatures_are_tagged_and_ordered_by_column() -> None:
    m = from_columns(4, [{1: 2.0}, {}, {0: 1.0, 3: 5.0}])
    sigs = build_column_signatures(m)
    assert [s.column for s in sigs] == [0, 1, 2]
    assert sigs[0] == ColumnSignature(0, combine([map_row_index(1)]))
    assert sigs[1].digest == EMPTY_COLUMN_DIGEST
    assert sigs[2].digest == combine([map_row_index(3), map_row_index(0)])


def test_signatures_ignore_weights_and_row_order() -> None:
    a = from_columns(5, [{0: 1.0, 2: 1.0, 4: 1.0}])
    b = from_columns(5, [{4: 9.0, 0: 0.5, 2: 3.0}])
    assert np.array_equal(column_digests(a.offsets, a.rows), column_digests(b.offsets, b.rows))


def test_accepts_external_offsets_and_rows() -> None:
    m = from_columns(6, [{0: 1.0, 5: 1.0}, {2: 1.0}, {}])
    assert build_column_signatures((np.array(m.offsets), list(m.rows))) == build_column_signatures(m)


def test_all_empty_columns_share_the_empty_digest() -> None:
    d = column_digests([0, 0, 0, 0], [])
    assert d.tolist() == [EMPTY_COLUMN_DIGEST] * 3


def test_zero_width() -> None:
    assert build_column_signatures(([0], [])) == []


def test_offsets_rows_length_disagreement_raises() -> None:
    with pytest.raises(MatrixFormatError):
        column_digests([0, 2], [1])


@settings(deadline=None, max_examples=75)
@given(matrix_and_permutation())
def test_sorted_digests_invariant_under_column_permutation(case) -> None:
    m, perm, rng = case
    p = permute_columns(m, perm=perm, rng=rng, shuffle_rows=True)
    assert np.array_equal(sorted_digests(m), sorted_digests(p))
    # Per column, the digest travels with its column.
    assert np.array_equal(column_digests(p.offsets, p.rows), column_digests(m.offsets, m.rows)[perm])


@pytest.mark.parametrize(
    "a,b,expected",
    [
        ([], [], None),
        ([1, 2, 3], [1, 2, 3], None),
        ([1, 2, 3], [1, 5, 3], 1),
        ([4, 2], [1, 2], 0),
        ([1, 2], [1, 2, 3], 2),
    ],
)
def test_first_disagreement(a, b, expected) -> None:
    assert first_disagreement(np.array(a), np.array(b)) == expected


def test_duplicate_digest_count() -> None:
    assert duplicate_digest_count(np.array([], dtype=np.uint64)) == 0
    assert duplicate_digest_count(np.array([1, 2, 3], dtype=np.uint64)) == 0
    assert duplicate_digest_count(np.array([5, 1, 5, 5, 2, 2], dtype=np.uint64)) == 5
