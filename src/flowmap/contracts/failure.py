"""Failure type for contract violations.

Contracts fail fast, loud, and once. All violations raise the same
exception type, allowing caller to handle pipeline bugs uniformly.
"""


class ContractViolation(RuntimeError):
    """Raised when a pipeline contract is violated.

    This indicates a bug in pipeline logic, not bad input data. Bad input
    (a missing MapID, a polygon in a line layer) is logged and skipped by
    the stage that meets it; a ContractViolation means a stage handed on
    output that breaks the invariants it promised.

    Key distinction:
    - ValidationError: User/config error (handled by Pydantic)
    - ContractViolation: Pipeline bug (programmer error)
    - FetchError / GeometryNormalizationError: Recoverable data issues
    """
    pass
