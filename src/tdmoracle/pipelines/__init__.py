"""
Pipeline collaborators.

A pipeline module exposes

    run(matrix, *, boolean_mode: bool, config: dict | None) -> (matrix, scores)

where `scores` holds one weight per nonzero of the returned matrix, in its
storage order. Filtering and scoring live outside this package; a module
signals a failed filter by raising PipelineFailure.
"""
