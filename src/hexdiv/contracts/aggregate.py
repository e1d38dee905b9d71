"""Aggregate stage contract.

Enforces the guarantee that a cell table has the indicator columns, one row
per cell, and index values inside their mathematical ranges.
"""

import numpy as np
import pandas as pd
from hexdiv.contracts.base import require
from hexdiv.spatial.diversity import AGGREGATE_COLUMNS

# Float slack for range checks on sums of many terms
_TOL = 1e-9


def assert_aggregate_table(df: pd.DataFrame) -> None:
    """Enforce aggregate table contract.

    We do NOT recompute the indices here, we only check the structural
    requirements and the ranges every non-empty cell must satisfy.

    Raises
    ------
    ContractViolation
        If structural or range requirements are violated
    """
    require(
        isinstance(df, pd.DataFrame),
        f"Aggregate contract violated: output is {type(df)}, expected DataFrame"
    )
    for col in AGGREGATE_COLUMNS:
        require(
            col in df.columns,
            f"Aggregate contract violated: missing required column '{col}'"
        )
    require(
        df.index.name == "cell_id",
        f"Aggregate contract violated: index is '{df.index.name}', expected 'cell_id'"
    )
    require(
        df.index.is_unique,
        "Aggregate contract violated: duplicate cell ids in table"
    )

    if len(df) == 0:
        return

    require((df["n"] > 0).all(), "Aggregate contract violated: empty cell in table")
    require((df["sp"] > 0).all(), "Aggregate contract violated: cell without species")
    require(
        bool(np.isfinite(df[list(AGGREGATE_COLUMNS)].to_numpy(dtype=float)).all()),
        "Aggregate contract violated: non-finite index value"
    )
    require(
        ((df["simpson"] > 0) & (df["simpson"] <= 1 + _TOL)).all(),
        "Aggregate contract violated: simpson outside (0, 1]"
    )
    require(
        ((df["maxp"] > 0) & (df["maxp"] <= 1 + _TOL)).all(),
        "Aggregate contract violated: maxp outside (0, 1]"
    )
    require(
        (df["shannon"] >= -_TOL).all(),
        "Aggregate contract violated: negative shannon"
    )


def assert_disjoint_merge(parts) -> None:
    """Enforce the disjoint-union merge contract.

    Partition keys are a function of the cell id, so no cell id may appear in
    two partial tables of the same (resolution, filter) run.

    Parameters
    ----------
    parts : iterable of pd.DataFrame
        Partial cell tables, one per partition

    Raises
    ------
    ContractViolation
        If any cell id appears in more than one partial table
    """
    seen = set()
    for part in parts:
        cells = set(part.index)
        overlap = seen & cells
        require(
            not overlap,
            f"Merge contract violated: {len(overlap)} cell ids appear in two partitions "
            f"(e.g. {sorted(overlap)[:3]})"
        )
        seen |= cells
