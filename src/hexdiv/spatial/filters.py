"""Row filters over the per-record depth summary.

A ``DepthFilter`` describes one aggregation pass. It can be pushed down to
the Parquet reader (``to_parquet_filters``) or applied to an in-memory frame
(``mask``); both forms select the same rows.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd

__all__ = ['DepthFilter', 'filters_from_config']


@dataclass(frozen=True)
class DepthFilter:
    """Half-open depth band ``min_depth <= depth < max_depth``.

    With neither bound set the filter is a no-op and records without a depth
    are kept. With any bound set, records without a depth are excluded.

    Examples
    --------
    >>> shallow = DepthFilter("shallow", max_depth=100)
    >>> deep = DepthFilter("deep", min_depth=100)
    >>> shallow.accepts(100.0), deep.accepts(100.0)
    (False, True)
    """

    name: str
    min_depth: Optional[float] = None
    max_depth: Optional[float] = None

    @property
    def is_noop(self) -> bool:
        return self.min_depth is None and self.max_depth is None

    def accepts(self, depth: Optional[float]) -> bool:
        """Scalar form of the predicate."""
        if self.is_noop:
            return True
        if depth is None or np.isnan(depth):
            return False
        if self.min_depth is not None and depth < self.min_depth:
            return False
        if self.max_depth is not None and depth >= self.max_depth:
            return False
        return True

    def mask(self, df: pd.DataFrame, column: str = "depth") -> pd.Series:
        """Boolean mask over a frame with a depth column."""
        if self.is_noop:
            return pd.Series(True, index=df.index)
        depth = df[column]
        keep = depth.notna()
        if self.min_depth is not None:
            keep &= depth >= self.min_depth
        if self.max_depth is not None:
            keep &= depth < self.max_depth
        return keep

    def to_parquet_filters(self, column: str = "depth") -> Optional[list]:
        """DNF filter list for ``pandas.read_parquet`` / pyarrow, or None.

        Null depths never satisfy a comparison in Arrow, so they are excluded
        by any bounded filter, matching ``mask``.
        """
        if self.is_noop:
            return None
        clauses = []
        if self.min_depth is not None:
            clauses.append((column, ">=", float(self.min_depth)))
        if self.max_depth is not None:
            clauses.append((column, "<", float(self.max_depth)))
        return clauses

    def __str__(self):
        if self.is_noop:
            return f"{self.name} (all depths)"
        lo = "-inf" if self.min_depth is None else f"{self.min_depth:g}"
        hi = "inf" if self.max_depth is None else f"{self.max_depth:g}"
        return f"{self.name} ([{lo}, {hi}) m)"


def filters_from_config(config) -> list:
    """Build one DepthFilter per configured pass, in config order."""
    return [
        DepthFilter(p.name, min_depth=p.min_depth, max_depth=p.max_depth)
        for p in config.passes
    ]
