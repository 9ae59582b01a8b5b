"""
Synthetic term-document matrices for exercising the oracle.

Currently implemented:
- dist == "uniform":
    Every (term, document) cell is nonzero independently with probability
    params["density"] (default 0.05).

- dist == "zipf":
    Documents draw params["terms_per_doc"] distinct terms with probability
    proportional to 1 / rank**params["exponent"], which gives the skewed term
    popularity of real corpora.

- dist == "banded":
    Document j holds the params["band"] consecutive terms starting at
    (j * params["stride"]) mod height. Every column has the same size and
    neighbouring columns overlap heavily: the regular input under which
    signature collisions would show up first.

Transforms (for building "reference" matrices):
    permute_columns(matrix, perm=None, rng=None, shuffle_rows=True)
    perturb_weights(matrix, scale, rng)
    drop_nonzeros(matrix, count, rng)

Public API (stable):
    make_term_document_matrix(height, width, spec, rng) -> SparseColumnMatrix

Conventions:
- Weights are positive term counts (float64) drawn from 1 + Poisson(lam),
  params["lam"] default 2.0; every dist accepts it.
- Rows inside each generated column are stored in ascending order.
- The caller supplies the RNG (for reproducibility across runs).
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import numpy as np

from tdmoracle.matrix.csc import SparseColumnMatrix, column_ids

SUPPORTED_DISTS = {
    "uniform",
    "zipf",
    "banded",
}
__all__ = [
    "SUPPORTED_DISTS",
    "make_term_document_matrix",
    "permute_columns",
    "perturb_weights",
    "drop_nonzeros",
]


def make_term_document_matrix(
    height: int, width: int, spec: Dict[str, Any], rng: np.random.Generator
) -> SparseColumnMatrix:
    """
    Generate a term-document matrix according to `spec`, using the provided RNG.

    Parameters
    ----------
    height : int
        Number of terms (rows). Must be >= 0.
    width : int
        Number of documents (columns). Must be >= 0.
    spec : dict
        Distribution specification.

        Uniform:
            {"dist": "uniform", "params": {"density": 0.05}}

        Zipf:
            {"dist": "zipf", "params": {"terms_per_doc": 20, "exponent": 1.1}}

        Banded:
            {"dist": "banded", "params": {"band": 8, "stride": 1}}

    rng : numpy.random.Generator
        Random number generator owned by the caller (seeded upstream).
        "banded" uses it only for the weights.

    Returns
    -------
    SparseColumnMatrix

    Raises
    ------
    ValueError
        If inputs are invalid or if the distribution is unsupported.
    """
    _validate_dim("height", height)
    _validate_dim("width", width)

    if not isinstance(spec, dict):
        raise ValueError("spec must be a dict")

    dist = spec.get("dist", None)
    if dist not in SUPPORTED_DISTS:
        raise ValueError(
            f"Unsupported dataset dist: {dist!r}. Supported: {sorted(SUPPORTED_DISTS)}"
        )

    params = spec.get("params", {}) or {}
    lam = _parse_nonneg_float(params, "lam", 2.0)

    if dist == "uniform":
        density = _parse_fraction(params, "density", 0.05)
        mask = rng.random((height, width)) < density
        columns = [np.flatnonzero(mask[:, j]) for j in range(width)]

    elif dist == "zipf":
        k = _parse_positive_int(params, "terms_per_doc", 20)
        exponent = _parse_nonneg_float(params, "exponent", 1.1)
        k = min(k, height)
        if height:
            p = 1.0 / np.arange(1, height + 1, dtype=np.float64) ** exponent
            p /= p.sum()
        columns = [
            np.sort(rng.choice(height, size=k, replace=False, p=p)) if k else np.empty(0, np.int64)
            for _ in range(width)
        ]

    elif dist == "banded":
        band = min(_parse_positive_int(params, "band", 8), height)
        stride = _parse_positive_int(params, "stride", 1)
        columns = []
        for j in range(width):
            if band == 0:
                columns.append(np.empty(0, dtype=np.int64))
                continue
            start = (j * stride) % height
            columns.append(np.sort((start + np.arange(band)) % height))

    else:
        # Should be unreachable because of the check above; keep explicit for clarity.
        raise ValueError(f"Unhandled dataset dist: {dist!r}")

    return _assemble(height, width, columns, rng, lam)


# ------------------------- transforms ------------------------- #


def permute_columns(
    matrix: SparseColumnMatrix,
    perm: Optional[Any] = None,
    rng: Optional[np.random.Generator] = None,
    shuffle_rows: bool = True,
) -> SparseColumnMatrix:
    """
    Reorder the columns of `matrix`: new column j is old column perm[j].

    Each column keeps its rows and weights together. With `shuffle_rows`, the
    storage order inside every column is also shuffled (needs `rng`). If
    `perm` is None a random permutation is drawn from `rng`.
    """
    if perm is None or shuffle_rows:
        if rng is None:
            raise ValueError("rng is required for a random permutation or row shuffle")
    if perm is None:
        perm = rng.permutation(matrix.width)
    perm = np.asarray(perm, dtype=np.int64)
    if perm.size != matrix.width or not np.array_equal(np.sort(perm), np.arange(matrix.width)):
        raise ValueError("perm must be a permutation of range(width)")

    rows_out: List[np.ndarray] = []
    data_out: List[np.ndarray] = []
    for c in perm:
        r, d = matrix.column(int(c))
        if shuffle_rows and r.size > 1:
            order = rng.permutation(r.size)
            r, d = r[order], d[order]
        rows_out.append(r)
        data_out.append(d)

    counts = np.diff(matrix.offsets)[perm]
    return _from_parts(matrix.height, matrix.width, counts, rows_out, data_out)


def perturb_weights(
    matrix: SparseColumnMatrix, scale: float, rng: np.random.Generator
) -> SparseColumnMatrix:
    """Add Gaussian noise with standard deviation `scale` to every weight."""
    if scale < 0:
        raise ValueError("scale must be nonnegative")
    noise = rng.normal(0.0, scale, size=matrix.nnz) if scale > 0 else 0.0
    return matrix.with_weights(matrix.data + noise)


def drop_nonzeros(
    matrix: SparseColumnMatrix, count: int, rng: np.random.Generator
) -> SparseColumnMatrix:
    """Remove `count` randomly chosen nonzeros (the pattern changes)."""
    if count < 0 or count > matrix.nnz:
        raise ValueError(f"count must be in [0, {matrix.nnz}]; got {count}")
    keep = np.ones(matrix.nnz, dtype=bool)
    keep[rng.choice(matrix.nnz, size=count, replace=False)] = False
    kept_cols = column_ids(matrix.offsets)[keep]
    offsets = np.concatenate(([0], np.cumsum(np.bincount(kept_cols, minlength=matrix.width))))
    return SparseColumnMatrix(
        matrix.height, matrix.width, offsets, matrix.rows[keep], matrix.data[keep]
    )


# ------------------------- helpers ------------------------- #


def _assemble(
    height: int,
    width: int,
    columns: List[np.ndarray],
    rng: np.random.Generator,
    lam: float,
) -> SparseColumnMatrix:
    counts = np.array([c.size for c in columns], dtype=np.int64)
    nnz = int(counts.sum())
    rows = np.concatenate(columns).astype(np.int64) if columns else np.empty(0, np.int64)
    data = (1 + rng.poisson(lam, size=nnz)).astype(np.float64)
    offsets = np.concatenate(([0], np.cumsum(counts)))
    return SparseColumnMatrix(height, width, offsets, rows, data)


def _from_parts(
    height: int,
    width: int,
    counts: np.ndarray,
    rows: List[np.ndarray],
    data: List[np.ndarray],
) -> SparseColumnMatrix:
    offsets = np.concatenate(([0], np.cumsum(counts)))
    r = np.concatenate(rows) if rows else np.empty(0, np.int64)
    d = np.concatenate(data) if data else np.empty(0, np.float64)
    return SparseColumnMatrix(height, width, offsets, r, d)


def _validate_dim(name: str, n: int) -> None:
    if not _is_int_like(n):
        raise ValueError(f"{name} must be an int")
    if n < 0:
        raise ValueError(f"{name} must be nonnegative")


def _parse_fraction(params: Dict[str, Any], key: str, default: float) -> float:
    """Parse and validate a float in [0.0, 1.0]."""
    val = params.get(key, default)
    try:
        x = float(val)
    except (TypeError, ValueError) as e:
        raise ValueError(f"params.{key} must be a float in [0.0, 1.0]; got {val!r}") from e
    if not (0.0 <= x <= 1.0):
        raise ValueError(f"params.{key} must be in [0.0, 1.0]; got {x}")
    return x


def _parse_nonneg_float(params: Dict[str, Any], key: str, default: float) -> float:
    val = params.get(key, default)
    try:
        x = float(val)
    except (TypeError, ValueError) as e:
        raise ValueError(f"params.{key} must be a nonnegative float; got {val!r}") from e
    if x < 0:
        raise ValueError(f"params.{key} must be nonnegative; got {x}")
    return x


def _parse_positive_int(params: Dict[str, Any], key: str, default: int) -> int:
    k = params.get(key, default)
    if not _is_int_like(k) or k < 1:
        raise ValueError(f"params.{key} must be an integer >= 1; got {k!r}")
    return int(k)


def _is_int_like(x: Any) -> bool:
    # Accept Python ints and NumPy integer types
    return isinstance(x, (int, np.integer)) and not isinstance(x, bool)
