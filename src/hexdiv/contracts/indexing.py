"""Indexing stage contract.

Enforces the guarantee that after spatial indexing, every surviving record
carries a species, a positive record count, and a cell id plus partition key
for every configured resolution.
"""

import pandas as pd
from hexdiv.contracts.base import require


def assert_indexed(df: pd.DataFrame, resolutions) -> None:
    """Enforce indexing stage contract.

    Called immediately after ``SpatialIndexer.index()``.

    Parameters
    ----------
    df : pd.DataFrame
        Indexed occurrence batch

    resolutions : iterable of int
        Resolutions the indexer was configured with

    Raises
    ------
    ContractViolation
        If any invariant is violated
    """
    require(
        isinstance(df, pd.DataFrame),
        f"Indexing contract violated: output is {type(df)}, expected DataFrame"
    )

    for col in ("species", "record_count", "depth"):
        require(
            col in df.columns,
            f"Indexing contract violated: missing '{col}' column"
        )

    for res in resolutions:
        for col in (f"cell_{res}", f"partition_{res}"):
            require(
                col in df.columns,
                f"Indexing contract violated: missing '{col}' column"
            )

    if len(df) > 0:
        require(
            df["species"].notna().all(),
            "Indexing contract violated: null species survived indexing"
        )
        require(
            (df["record_count"] > 0).all(),
            "Indexing contract violated: record_count must be > 0 for all rows"
        )
