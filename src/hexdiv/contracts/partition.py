"""Partition read-back contract.

Enforces the guarantee that records read back from the partitioned store
have the persisted column layout and belong to the requested partition.
"""

import pandas as pd
from hexdiv.contracts.base import require

PARTITION_COLUMNS = ("cell_id", "species", "record_count", "depth")


def assert_partition_records(df: pd.DataFrame, key: str, key_of=None) -> None:
    """Enforce partition read-back contract.

    Parameters
    ----------
    df : pd.DataFrame
        Records returned by ``PartitionedStore.read()``

    key : str
        Partition key that was requested

    key_of : callable, optional
        Partition key function (cell_id -> key). When given, every cell id
        must map back to ``key``.

    Raises
    ------
    ContractViolation
        If the layout is wrong or a record belongs to another partition
    """
    for col in PARTITION_COLUMNS:
        require(
            col in df.columns,
            f"Partition contract violated: missing '{col}' column in partition '{key}'"
        )

    if key_of is not None and len(df) > 0:
        foreign = {c for c in df["cell_id"].unique() if key_of(c) != key}
        require(
            not foreign,
            f"Partition contract violated: partition '{key}' holds {len(foreign)} foreign cells"
        )
