"""
Comparison outcomes.

A Verdict is one of three frozen records, distinguished by `kind`:

    ExactPatternMatch(difference_norm)
        Both matrices have the same nonzero pattern; `difference_norm` is the
        Frobenius norm of the score difference.

    PermutedMatch(rms_column_norm_error)
        Patterns differ, but the sorted column signatures agree, so the
        columns are (with overwhelming probability) a reordering of each
        other. `rms_column_norm_error` compares sorted column norms.

    Mismatch(rms_column_norm_error, detail)
        Neither of the above. `rms_column_norm_error` is None when the
        widths differ and no statistic was computed.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional, Union

__all__ = [
    "ExactPatternMatch",
    "PermutedMatch",
    "Mismatch",
    "Verdict",
    "ComparisonReport",
]


@dataclass(frozen=True)
class ExactPatternMatch:
    difference_norm: float
    kind: str = field(default="exact", init=False)


@dataclass(frozen=True)
class PermutedMatch:
    rms_column_norm_error: float
    kind: str = field(default="permuted", init=False)


@dataclass(frozen=True)
class Mismatch:
    rms_column_norm_error: Optional[float]
    detail: str
    kind: str = field(default="mismatch", init=False)


Verdict = Union[ExactPatternMatch, PermutedMatch, Mismatch]


@dataclass(frozen=True)
class ComparisonReport:
    """Verdict plus the diagnostic scalars gathered on the way."""

    verdict: Verdict
    height0: int
    height1: int
    width0: int
    width1: int
    nnz0: int
    nnz1: int
    boolean_mode0: bool = False
    boolean_mode1: bool = False
    pattern_equal: Optional[bool] = None
    permutation_consistent: Optional[bool] = None
    first_signature_disagreement: Optional[int] = None
    duplicate_signatures0: Optional[int] = None
    duplicate_signatures1: Optional[int] = None

    @property
    def kind(self) -> str:
        return self.verdict.kind

    @property
    def statistic(self) -> Optional[float]:
        """The verdict's numeric figure (difference norm or RMS error)."""
        if isinstance(self.verdict, ExactPatternMatch):
            return self.verdict.difference_norm
        return self.verdict.rms_column_norm_error

    def to_record(self) -> Dict[str, Any]:
        """Flat dict suitable for a JSON line."""
        rec = asdict(self)
        verdict = rec.pop("verdict")
        rec["kind"] = verdict.pop("kind")
        rec["statistic"] = self.statistic
        rec["detail"] = verdict.get("detail")
        return rec
