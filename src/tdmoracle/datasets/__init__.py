"""
Datasets package public API.

Re-export the generators so callers can write:
    from tdmoracle.datasets import make_term_document_matrix, permute_columns
"""

from .generators import (
    SUPPORTED_DISTS,
    drop_nonzeros,
    make_term_document_matrix,
    permute_columns,
    perturb_weights,
)

__all__ = [
    "SUPPORTED_DISTS",
    "make_term_document_matrix",
    "permute_columns",
    "perturb_weights",
    "drop_nonzeros",
]
