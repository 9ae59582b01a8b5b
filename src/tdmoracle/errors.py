# tdmoracle/errors.py


class TdmOracleError(Exception):
    """Base exception for tdmoracle errors."""
    pass


class MatrixFormatError(TdmOracleError, ValueError):
    """Raised when sparse column buffers violate the storage invariants."""
    pass


class ScoreAlignmentError(TdmOracleError, ValueError):
    """Raised when a weight/score sequence is not aligned 1:1 with the nonzeros."""
    pass


class LoadFailure(TdmOracleError):
    """Raised when a matrix file cannot be read. Recoverable: the scenario is skipped."""
    pass


class PipelineFailure(TdmOracleError):
    """Raised by a pipeline collaborator when filtering or scoring fails."""
    pass


class InternalConsistencyFault(TdmOracleError):
    """
    Raised when the pattern comparison reports equality but the nonzero
    counts disagree. This is a contract violation in a collaborator and must
    never be treated as a match.
    """
    pass
