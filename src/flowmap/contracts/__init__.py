"""Pipeline contracts: fail-fast enforcement of stage invariants.

This package enforces semantic guarantees between pipeline stages.
Contracts fail immediately and loudly when pipeline stages don't produce
their promised invariants.

Key principle:
- Pydantic validates config correctness
- Contracts validate pipeline correctness
- Stages log and skip bad input data
"""

from flowmap.contracts.failure import ContractViolation
from flowmap.contracts.base import require
from flowmap.contracts.table import assert_flow_table
from flowmap.contracts.features import assert_flow_features

__all__ = [
    "ContractViolation",
    "require",
    "assert_flow_table",
    "assert_flow_features",
]
