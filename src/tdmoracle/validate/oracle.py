"""
Oracle for term-document preprocessing correctness.

Decides whether a pipeline's output (matrix + per-nonzero scores) and an
independent reference describe the same filtered dataset, without being told
how the reference ordered its columns:

1. Unequal widths: Mismatch, nothing else is computed.
2. Equal nonzero patterns: ExactPatternMatch with the Frobenius norm of the
   score difference.
3. Otherwise: sorted column signatures decide whether the columns are a
   permutation of each other, and the RMS error between sorted column norms
   measures how far the scores are apart. PermutedMatch or Mismatch.

Public API (stable):
    compare_scored(m0, scores0, m1, scores1, *, ...) -> ComparisonReport
    passes(report, tolerance) -> bool

Conventions:
- Inputs are never mutated; the call is a pure function of its arguments.
- Dimension disagreements are verdicts, not exceptions. Contract violations
  by collaborators raise InternalConsistencyFault.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Callable, Optional

import numpy as np

from tdmoracle.errors import InternalConsistencyFault, ScoreAlignmentError
from tdmoracle.matrix.csc import SparseColumnMatrix, readonly_view
from tdmoracle.validate.norms import column_norms, sorted_norm_rms_error
from tdmoracle.validate.pattern import canonical_order, same_sparsity_pattern
from tdmoracle.validate.signatures import (
    column_digests,
    duplicate_digest_count,
    first_disagreement,
)
from tdmoracle.validate.verdict import (
    ComparisonReport,
    ExactPatternMatch,
    Mismatch,
    PermutedMatch,
)

ORACLE_NAME: str = "sorted_signature_norm_profile"

__all__ = ["ORACLE_NAME", "compare_scored", "passes"]

logger = logging.getLogger(__name__)

PatternPredicate = Callable[[SparseColumnMatrix, SparseColumnMatrix], bool]


def compare_scored(
    m0: SparseColumnMatrix,
    scores0: Any,
    m1: SparseColumnMatrix,
    scores1: Any,
    *,
    boolean_mode0: bool = False,
    boolean_mode1: bool = False,
    pattern_equal: Optional[PatternPredicate] = None,
) -> ComparisonReport:
    """
    Compare two (matrix, scores) pairs.

    Parameters
    ----------
    m0, m1 : SparseColumnMatrix
        Pipeline output and reference. Only their patterns are read; the
        numbers compared are `scores0` / `scores1`.
    scores0, scores1 : array-like of float
        One score per nonzero, aligned with the matrix's storage order.
    boolean_mode0, boolean_mode1 : bool
        How each side was built. Recorded in the report; in boolean mode
        every document is a set of terms, so duplicate signatures are
        reported as suspicious.
    pattern_equal : callable, optional
        Replacement for `same_sparsity_pattern`, e.g. a term-frequency
        view's own boolean comparison.

    Returns
    -------
    ComparisonReport

    Raises
    ------
    ScoreAlignmentError
        If the widths agree and a score sequence is not one value per
        nonzero.
    InternalConsistencyFault
        If the patterns compare equal but the nonzero counts differ.
    """
    base = dict(
        height0=m0.height,
        height1=m1.height,
        width0=m0.width,
        width1=m1.width,
        nnz0=m0.nnz,
        nnz1=m1.nnz,
        boolean_mode0=bool(boolean_mode0),
        boolean_mode1=bool(boolean_mode1),
    )
    if boolean_mode0 != boolean_mode1:
        logger.warning(
            "comparing matrices built in different modes (boolean_mode %s vs %s)",
            boolean_mode0,
            boolean_mode1,
        )

    # ---- 1. width ----
    if m0.width != m1.width:
        detail = f"unequal widths: {m0.width} != {m1.width}"
        logger.info("mismatch: %s", detail)
        return ComparisonReport(verdict=Mismatch(None, detail), **base)

    s0 = _aligned_scores(scores0, m0, "scores0")
    s1 = _aligned_scores(scores1, m1, "scores1")

    if m0.width == 0:
        return ComparisonReport(verdict=ExactPatternMatch(0.0), pattern_equal=True, **base)

    # ---- 2./3. exact pattern ----
    predicate = pattern_equal or same_sparsity_pattern
    if predicate(m0, m1):
        if m0.nnz != m1.nnz:
            raise InternalConsistencyFault(
                f"patterns compare equal but nonzero counts differ: {m0.nnz} != {m1.nnz}"
            )
        diff = s0[canonical_order(m0)] - s1[canonical_order(m1)]
        norm = math.sqrt(float(np.dot(diff, diff)))
        logger.debug("identical nonzero pattern; Frobenius norm of difference %.6g", norm)
        return ComparisonReport(verdict=ExactPatternMatch(norm), pattern_equal=True, **base)

    # ---- 4. permutation detection ----
    d0 = column_digests(m0.offsets, m0.rows)
    d1 = column_digests(m1.offsets, m1.rows)
    dup0, dup1 = duplicate_digest_count(d0), duplicate_digest_count(d1)
    for mode, dup, side in ((boolean_mode0, dup0, 0), (boolean_mode1, dup1, 1)):
        if mode and dup:
            logger.warning("matrix %d: %d columns share a row-index signature", side, dup)

    first = first_disagreement(np.sort(d0), np.sort(d1))
    permuted = first is None

    # ---- 5. norm profile ----
    rms = sorted_norm_rms_error(column_norms(m0.offsets, s0), column_norms(m1.offsets, s1))

    if permuted:
        logger.info("columns are permutations of each other; RMS column-norm error %.6g", rms)
        verdict = PermutedMatch(rms)
    else:
        detail = f"sorted column signatures first differ at position {first}"
        logger.info("not a column permutation (%s); RMS column-norm error %.6g", detail, rms)
        verdict = Mismatch(rms, detail)

    return ComparisonReport(
        verdict=verdict,
        pattern_equal=False,
        permutation_consistent=permuted,
        first_signature_disagreement=first,
        duplicate_signatures0=dup0,
        duplicate_signatures1=dup1,
        **base,
    )


def passes(report: ComparisonReport, tolerance: float) -> bool:
    """True iff the verdict is an exact or permuted match within `tolerance`."""
    if isinstance(report.verdict, Mismatch):
        return False
    stat = report.statistic
    return stat is not None and stat <= tolerance


def _aligned_scores(scores: Any, matrix: SparseColumnMatrix, name: str) -> np.ndarray:
    s = readonly_view(scores, np.float64)
    if s.size != matrix.nnz:
        raise ScoreAlignmentError(
            f"{name} has {s.size} values but the matrix has {matrix.nnz} nonzeros"
        )
    return s
