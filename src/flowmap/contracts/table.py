"""Flow table stage contract.

Enforces the guarantee that after parsing, the identifier -> flows mapping
is keyed by trimmed identifiers and holds only finite yearly values.
"""

import math
import re

from flowmap.contracts.base import require

_YEAR = re.compile(r"^\d{4}$")


def assert_flow_table(flow_by_id: dict) -> None:
    """Enforce flow table contract.

    Called immediately after parse_flow_table().

    Parameters
    ----------
    flow_by_id : dict
        Mapping identifier -> {year: flow}

    Raises
    ------
    ContractViolation
        If any invariant is violated
    """
    require(
        isinstance(flow_by_id, dict),
        f"Table contract violated: output is {type(flow_by_id)}, expected dict"
    )

    for identifier, flows in flow_by_id.items():
        require(
            isinstance(identifier, str) and identifier != "" and identifier == identifier.strip(),
            f"Table contract violated: identifier {identifier!r} is empty or untrimmed"
        )
        for year, value in flows.items():
            require(
                bool(_YEAR.match(year)),
                f"Table contract violated: '{identifier}' has non-year key {year!r}"
            )
            require(
                isinstance(value, float) and math.isfinite(value),
                f"Table contract violated: '{identifier}' flow for {year} is {value!r}, expected finite float"
            )
