"""Contract enforcement helper.

Every flowmap contract (flow table, reconciled features) is a sequence of
require() calls; a failed check raises ContractViolation carrying a message
that names the stage and the offending identifier.
"""

from flowmap.contracts.failure import ContractViolation


def require(condition: bool, message: str) -> None:
    """Raise ContractViolation with ``message`` unless ``condition`` holds.

    Used at stage boundaries: after parse_flow_table() and before
    FlowReconciler.reconcile() returns. A violation is a pipeline bug, so
    nothing catches it on the way out; the worker reports it as the run's
    failure.

    Parameters
    ----------
    condition : bool
        Invariant that must hold.
    message : str
        Stage and offending value, e.g. ``"Table contract violated: ..."``.

    Raises
    ------
    ContractViolation
        If ``condition`` is false.

    Examples
    --------
    >>> require(identifier == identifier.strip(),
    ...         f"Table contract violated: identifier {identifier!r} is untrimmed")
    >>> require(feature.id.endswith("_weir"),
    ...         f"Feature contract violated: id '{feature.id}' does not end with '_weir'")
    """
    if not condition:
        raise ContractViolation(message)
