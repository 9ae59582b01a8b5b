"""Correctness oracle for term-document matrix preprocessing."""

from tdmoracle.errors import (
    InternalConsistencyFault,
    LoadFailure,
    MatrixFormatError,
    PipelineFailure,
    ScoreAlignmentError,
    TdmOracleError,
)
from tdmoracle.matrix import SparseColumnMatrix, load_matrix_market
from tdmoracle.validate import compare_scored, passes

__version__ = "0.1.0"

__all__ = [
    "SparseColumnMatrix",
    "load_matrix_market",
    "compare_scored",
    "passes",
    "TdmOracleError",
    "MatrixFormatError",
    "ScoreAlignmentError",
    "LoadFailure",
    "PipelineFailure",
    "InternalConsistencyFault",
]
