"""
Validation package public API.

Re-exports:
    - Oracle:
        ORACLE_NAME
        compare_scored
        passes

    - Verdicts:
        ExactPatternMatch, PermutedMatch, Mismatch, ComparisonReport

    - Building blocks:
        map_row_index, combine, EMPTY_COLUMN_DIGEST
        ColumnSignature, build_column_signatures, column_digests
        ColumnNorm, build_column_norms, column_norms, sorted_norm_rms_error
        same_sparsity_pattern
"""

from .hashing import EMPTY_COLUMN_DIGEST, combine, map_row_index
from .norms import ColumnNorm, build_column_norms, column_norms, sorted_norm_rms_error
from .oracle import ORACLE_NAME, compare_scored, passes
from .pattern import same_sparsity_pattern
from .signatures import ColumnSignature, build_column_signatures, column_digests
from .verdict import ComparisonReport, ExactPatternMatch, Mismatch, PermutedMatch

__all__ = [
    "ORACLE_NAME",
    "compare_scored",
    "passes",
    "ExactPatternMatch",
    "PermutedMatch",
    "Mismatch",
    "ComparisonReport",
    "EMPTY_COLUMN_DIGEST",
    "map_row_index",
    "combine",
    "ColumnSignature",
    "build_column_signatures",
    "column_digests",
    "ColumnNorm",
    "build_column_norms",
    "column_norms",
    "sorted_norm_rms_error",
    "same_sparsity_pattern",
]
