"""Tests for the synthetic term-document matrix generators and transforms."""

from __future__ import annotations

import numpy as np
import pytest

from strategies import from_columns
from tdmoracle.datasets import (
    SUPPORTED_DISTS,
    drop_nonzeros,
    make_term_document_matrix,
    permute_columns,
    perturb_weights,
)

SPECS = [
    {"dist": "uniform", "params": {"density": 0.1}},
    {"dist": "zipf", "params": {"terms_per_doc": 7, "exponent": 1.2}},
    {"dist": "banded", "params": {"band": 5, "stride": 3}},
]


def _column_sets(m):
    return [frozenset(m.column(c)[0].tolist()) for c in range(m.width)]


@pytest.mark.parametrize("spec", SPECS)
def test_generators_are_seed_deterministic(spec) -> None:
    a = make_term_document_matrix(60, 25, spec, np.random.default_rng(7))
    b = make_term_document_matrix(60, 25, spec, np.random.default_rng(7))
    assert a.shape == (60, 25)
    assert np.array_equal(a.offsets, b.offsets)
    assert np.array_equal(a.rows, b.rows)
    assert np.array_equal(a.data, b.data)
    assert np.all(a.data >= 1.0)


@pytest.mark.parametrize("spec", SPECS)
@pytest.mark.parametrize("height,width", [(0, 0), (0, 4), (5, 0)])
def test_degenerate_shapes(spec, height, width) -> None:
    m = make_term_document_matrix(height, width, spec, np.random.default_rng(0))
    assert m.shape == (height, width)
    assert m.nnz == 0


def test_zipf_columns_have_requested_size() -> None:
    m = make_term_document_matrix(50, 10, SPECS[1], np.random.default_rng(1))
    assert m.column_counts().tolist() == [7] * 10


def test_banded_columns_wrap_around() -> None:
    m = make_term_document_matrix(6, 3, {"dist": "banded", "params": {"band": 3, "stride": 2}}, np.random.default_rng(0))
    assert _column_sets(m) == [frozenset({0, 1, 2}), frozenset({2, 3, 4}), frozenset({4, 5, 0})]


@pytest.mark.parametrize(
    "spec",
    [
        {"dist": "normal"},
        {"dist": "uniform", "params": {"density": 1.5}},
        {"dist": "zipf", "params": {"terms_per_doc": 0}},
        {"dist": "banded", "params": {"band": "wide"}},
        {"dist": "uniform", "params": {"lam": -1}},
        "uniform",
    ],
)
def test_invalid_specs(spec) -> None:
    with pytest.raises(ValueError):
        make_term_document_matrix(10, 10, spec, np.random.default_rng(0))


def test_supported_dists() -> None:
    assert SUPPORTED_DISTS == {"uniform", "zipf", "banded"}


def test_permute_columns_moves_whole_columns() -> None:
    m = from_columns(5, [{0: 1.0, 4: 2.0}, {}, {1: 3.0, 2: 4.0, 3: 5.0}])
    p = permute_columns(m, perm=[2, 0, 1], rng=np.random.default_rng(3))
    assert _column_sets(p) == [_column_sets(m)[i] for i in (2, 0, 1)]
    rows, data = p.column(0)
    assert dict(zip(rows.tolist(), data.tolist())) == {1: 3.0, 2: 4.0, 3: 5.0}


def test_permute_columns_without_row_shuffle_needs_no_rng() -> None:
    m = from_columns(3, [{2: 1.0, 0: 2.0}, {1: 3.0}])
    p = permute_columns(m, perm=[1, 0], shuffle_rows=False)
    assert p.rows.tolist() == [1, 2, 0]


def test_permute_columns_rejects_bad_input() -> None:
    m = from_columns(3, [{0: 1.0}, {1: 1.0}])
    with pytest.raises(ValueError):
        permute_columns(m, perm=[0, 0], shuffle_rows=False)
    with pytest.raises(ValueError):
        permute_columns(m)


def test_perturb_weights_keeps_pattern() -> None:
    m = make_term_document_matrix(40, 10, SPECS[0], np.random.default_rng(2))
    p = perturb_weights(m, 0.5, np.random.default_rng(3))
    assert np.array_equal(p.rows, m.rows)
    assert not np.array_equal(p.data, m.data)
    assert np.array_equal(perturb_weights(m, 0.0, np.random.default_rng(3)).data, m.data)


def test_drop_nonzeros() -> None:
    m = from_columns(4, [{0: 1.0, 1: 1.0}, {}, {2: 1.0, 3: 1.0}, {}])
    d = drop_nonzeros(m, 3, np.random.default_rng(0))
    assert d.nnz == 1
    assert d.width == 4
    assert drop_nonzeros(m, 0, np.random.default_rng(0)).nnz == 4
    with pytest.raises(ValueError):
        drop_nonzeros(m, 5, np.random.default_rng(0))
