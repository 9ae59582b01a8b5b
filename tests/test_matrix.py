"""Tests for the sparse column matrix wrapper and Matrix Market loading."""

from __future__ import annotations

import numpy as np
import pytest
import scipy.io
import scipy.sparse as sp

from strategies import from_columns
from tdmoracle.errors import LoadFailure, MatrixFormatError, ScoreAlignmentError
from tdmoracle.matrix import SparseColumnMatrix, load_matrix_market


@pytest.mark.parametrize(
    "height,width,offsets,rows,data",
    [
        (3, 2, [0, 1], [0], [1.0]),  # offsets too short
        (3, 1, [1, 1], [], []),  # offsets[0] != 0
        (3, 2, [0, 2, 1], [0, 1], [1.0, 1.0]),  # decreasing
        (3, 1, [0, 2], [0], [1.0]),  # offsets[-1] != len(rows)
        (3, 1, [0, 1], [0], [1.0, 2.0]),  # data length
        (3, 1, [0, 1], [3], [1.0]),  # row out of range
        (3, 1, [0, 1], [-1], [1.0]),  # negative row
        (3, 2, [0, 1, 3], [0, 2, 2], [1.0, 1.0, 1.0]),  # duplicate row in a column
        (-1, 0, [0], [], []),  # negative height
        (3, 1, [0, 1], [0.5], [1.0]),  # non-integer row index
    ],
)
def test_invalid_buffers_are_rejected(height, width, offsets, rows, data) -> None:
    with pytest.raises(MatrixFormatError):
        SparseColumnMatrix(height, width, offsets, rows, data)


def test_same_row_in_different_columns_is_fine() -> None:
    m = SparseColumnMatrix(3, 2, [0, 1, 2], [2, 2], [1.0, 1.0])
    assert m.nnz == 2
    assert m.shape == (3, 2)


def test_buffers_are_read_only_views() -> None:
    offsets = np.array([0, 1, 3], dtype=np.int64)
    rows = np.array([1, 0, 2], dtype=np.int64)
    data = np.array([2.0, 1.0, 1.0])
    m = SparseColumnMatrix(3, 2, offsets, rows, data)

    assert np.shares_memory(m.rows, rows)
    assert np.shares_memory(m.data, data)
    with pytest.raises(ValueError):
        m.data[0] = 5.0
    # the caller's own arrays stay writable
    data[0] = 2.0


def test_column_slices() -> None:
    m = from_columns(3, [{1: 2.0}, {0: 1.0, 2: 1.5}])
    rows, data = m.column(1)
    assert rows.tolist() == [0, 2]
    assert data.tolist() == [1.0, 1.5]
    with pytest.raises(IndexError):
        m.column(2)
    assert m.column_counts().tolist() == [1, 2]


def test_with_weights_and_boolean_collapse() -> None:
    m = from_columns(3, [{1: 2.0}, {0: 3.0, 2: 4.0}])
    b = m.as_boolean()
    assert b.data.tolist() == [1.0, 1.0, 1.0]
    assert np.array_equal(b.rows, m.rows)
    assert m.data.tolist() == [2.0, 3.0, 4.0]
    with pytest.raises(ScoreAlignmentError):
        m.with_weights([1.0])


def test_scipy_round_trip_keeps_storage_order() -> None:
    m = from_columns(4, [{3: 1.0, 0: 2.0}, {}, {1: 5.0}])
    back = SparseColumnMatrix.from_scipy(m.to_scipy())
    assert np.array_equal(back.offsets, m.offsets)
    assert np.array_equal(back.rows, m.rows)
    assert np.array_equal(back.data, m.data)


def test_from_scipy_converts_other_formats() -> None:
    dense = np.array([[0.0, 1.0], [2.0, 0.0], [0.0, 3.0]])
    m = SparseColumnMatrix.from_scipy(sp.csr_matrix(dense))
    assert m.shape == (3, 2)
    assert np.array_equal(m.to_scipy().toarray(), dense)


def test_from_scipy_rejects_dense() -> None:
    with pytest.raises(MatrixFormatError):
        SparseColumnMatrix.from_scipy(np.eye(2))


def test_load_matrix_market(tmp_path) -> None:
    dense = np.array([[0.0, 1.0, 0.0], [2.0, 0.0, 0.0], [4.0, 3.0, 0.0]])
    path = tmp_path / "matrix.mtx"
    scipy.io.mmwrite(str(path), sp.coo_matrix(dense))

    m = load_matrix_market(path)
    assert m.shape == (3, 3)
    assert m.nnz == 4
    assert m.offsets.tolist() == [0, 2, 4, 4]
    assert m.rows.tolist() == [1, 2, 0, 2]
    assert m.data.tolist() == [2.0, 4.0, 1.0, 3.0]


def test_load_missing_file(tmp_path) -> None:
    with pytest.raises(LoadFailure):
        load_matrix_market(tmp_path / "nope.mtx")


def test_load_garbage_file(tmp_path) -> None:
    path = tmp_path / "matrix.mtx"
    path.write_text("this is not a matrix\n", encoding="utf-8")
    with pytest.raises(LoadFailure):
        load_matrix_market(path)


def test_load_dense_array_file(tmp_path) -> None:
    path = tmp_path / "dense.mtx"
    scipy.io.mmwrite(str(path), np.eye(2))
    with pytest.raises(LoadFailure):
        load_matrix_market(path)


def test_load_rejects_repeated_coordinates(tmp_path) -> None:
    path = tmp_path / "repeated.mtx"
    path.write_text(
        "%%MatrixMarket matrix coordinate real general\n"
        "2 2 3\n"
        "1 1 1.0\n"
        "2 2 1.0\n"
        "1 1 2.0\n",
        encoding="utf-8",
    )
    with pytest.raises(LoadFailure, match="duplicate entry at row 1, column 1"):
        load_matrix_market(path)


def test_load_unsorted_coordinates(tmp_path) -> None:
    path = tmp_path / "unsorted.mtx"
    path.write_text(
        "%%MatrixMarket matrix coordinate real general\n"
        "3 2 3\n"
        "3 1 5.0\n"
        "1 2 2.0\n"
        "1 1 4.0\n",
        encoding="utf-8",
    )
    m = load_matrix_market(path)
    assert m.offsets.tolist() == [0, 2, 3]
    assert m.rows.tolist() == [0, 2, 0]
    assert m.data.tolist() == [4.0, 5.0, 2.0]
