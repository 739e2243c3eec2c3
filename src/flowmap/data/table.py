"""Parse the yearly flow table into an identifier -> flows lookup.

The table is delimited text with a header row: one identifier column
(``MapID`` by default) and any number of four-digit year columns. Other
columns (notes, units, section names) are ignored. Every year cell is read
as its leading number (``"12.5 cfs"`` -> 12.5); anything without one, and
anything non-finite, is stored as 0.0 so the map and charts never see NaN.

Anomalies never abort the parse:
- rows without an identifier are skipped and logged
- rows with too many fields keep their first fields, the rest are logged
  and dropped; rows with too few fields are padded with empty cells
- a decoder error (e.g. a stray NUL byte) ends the table at that line;
  rows read before it are kept
- empty input gives an empty mapping

Cells are always bound to their header by position, so a trailing
delimiter on one row never shifts the other columns.
"""

import csv
import io
import logging
import re
from typing import Dict, List

import numpy as np
import pandas as pd

__all__ = ['parse_flow_table', 'YEAR_PATTERN', 'LEADING_NUMBER']

logger = logging.getLogger(__name__)

YEAR_PATTERN = re.compile(r"^\d{4}$")

# Leading decimal number of a cell, like JavaScript parseFloat
LEADING_NUMBER = r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"


def _read_rows(text: str) -> List[List[str]]:
    """Tokenize ``text``; blank lines are dropped."""
    rows = []
    reader = csv.reader(io.StringIO(text))
    try:
        for fields in reader:
            if any(field.strip() for field in fields):
                rows.append(fields)
    except csv.Error as e:
        logger.warning(
            "Flow table decode error at line %d: %s. Remaining text ignored.", reader.line_num, e
        )
    return rows


def _unique_columns(header: List[str]) -> List[str]:
    # Repeated headers get a ".N" suffix so only the first keeps its year
    seen: Dict[str, int] = {}
    columns = []
    for name in (h.strip() for h in header):
        count = seen.get(name, 0)
        seen[name] = count + 1
        columns.append(name if count == 0 else f"{name}.{count}")
    return columns


def parse_flow_table(text: str, id_column: str = "MapID") -> Dict[str, Dict[str, float]]:
    """Parse delimited flow table text.

    Parameters
    ----------
    text : str
        Table contents, header row first.
    id_column : str, optional
        Header of the identifier column (default "MapID").

    Returns
    -------
    dict
        ``{identifier: {"1979": 10.0, "1980": 12.0, ...}}``. Identifiers are
        trimmed and case-preserving; for duplicate identifiers the last row
        wins.

    Examples
    --------
    >>> parse_flow_table("MapID,1979,1980\\nC1,10,x\\n")
    {'C1': {'1979': 10.0, '1980': 0.0}}
    >>> parse_flow_table("MapID,1979\\nC1,12.5 cfs,\\n")
    {'C1': {'1979': 12.5}}
    """
    if text is None or not text.strip():
        logger.info("Flow table is empty")
        return {}

    rows = _read_rows(text)
    if not rows:
        logger.info("Flow table has no header row")
        return {}

    columns = _unique_columns(rows[0])
    width = len(columns)

    body = []
    for row_number, fields in enumerate(rows[1:], start=1):
        if len(fields) > width:
            logger.warning(
                "Flow table row %d has %d fields, expected %d. Extra fields ignored: %s",
                row_number, len(fields), width, fields[width:]
            )
            fields = fields[:width]
        elif len(fields) < width:
            logger.warning(
                "Flow table row %d has %d fields, expected %d. Missing cells read as empty.",
                row_number, len(fields), width
            )
            fields = fields + [""] * (width - len(fields))
        body.append(fields)

    df = pd.DataFrame(body, columns=columns)

    year_cols = [c for c in df.columns if YEAR_PATTERN.match(c)]
    if id_column not in df.columns:
        logger.warning("Flow table has no '%s' column; columns are %s", id_column, list(df.columns))
        identifiers = pd.Series([""] * len(df), index=df.index)
    else:
        identifiers = df[id_column].astype(str).str.strip()

    if year_cols and len(df):
        numeric = df[year_cols].apply(
            lambda col: pd.to_numeric(col.astype(str).str.extract(LEADING_NUMBER, expand=False),
                                      errors="coerce")
        )
        numeric = numeric.replace([np.inf, -np.inf], np.nan).fillna(0.0).astype(float)
        records = numeric.to_dict("index")
    else:
        records = {}

    flow_by_id: Dict[str, Dict[str, float]] = {}
    for row_number, (index, identifier) in enumerate(identifiers.items(), start=1):
        if not identifier:
            logger.warning("Skipping flow table row %d: missing %s", row_number, id_column)
            continue
        flows = records.get(index, {})
        flow_by_id[identifier] = {year: float(value) for year, value in flows.items()}

    logger.info(
        "Flow table parsed: %d rows, %d identifiers, %d year columns",
        len(df), len(flow_by_id), len(year_cols)
    )
    return flow_by_id
