"""Per-cell diversity indices from occurrence records.

Given the records of one partition, ``DiversityCalculator.compute`` returns
one row per cell with:

- ``n``: total records in the cell
- ``sp``: species richness (distinct species)
- ``shannon``: Shannon entropy, natural log
- ``simpson``: Simpson dominance, sum of squared proportions
- ``maxp``: proportion of the most abundant species
- ``es``: Hurlbert's expected number of species in a subsample of ``esn``
- ``hill_1``, ``hill_2``, ``hill_inf``: Hill numbers of order 1, 2 and infinity

Hurlbert's ES
=============
For species *i* with ``ni`` records in a cell of ``n`` records, the
probability that it appears in a random subsample of ``esn`` records is

    1 - C(n - ni, esn) / C(n, esn)

evaluated in log space with ``gammaln`` because the binomials overflow for
realistic ``n``. When ``n - ni < esn`` every subsample contains the species
(term = 1). When ``n < esn`` the subsample is impossible and the species
contributes nothing.

Author: hexdiv contributors
"""

import logging
from dataclasses import dataclass, asdict

import numpy as np
import pandas as pd
from scipy.special import gammaln

from hexdiv.core.errors import NumericDomainError

__all__ = ['DiversityCalculator', 'CellAggregate', 'AGGREGATE_COLUMNS']

logger = logging.getLogger(__name__)

AGGREGATE_COLUMNS = [
    "n", "sp", "shannon", "simpson", "maxp", "es",
    "hill_1", "hill_2", "hill_inf",
]


@dataclass(frozen=True)
class CellAggregate:
    """Diversity indicators for a single hex cell."""

    cell_id: str
    n: int
    sp: int
    shannon: float
    simpson: float
    maxp: float
    es: float
    hill_1: float
    hill_2: float
    hill_inf: float

    def as_dict(self) -> dict:
        return asdict(self)


def hurlbert_terms(ni, n, esn: int) -> np.ndarray:
    """Per-species contribution to Hurlbert's ES(esn).

    Parameters
    ----------
    ni : array-like of int
        Records of each species in its cell.
    n : array-like of int
        Total records of the cell each species belongs to (same shape).
    esn : int
        Subsample size.

    Returns
    -------
    np.ndarray
        Term per species; 0 where the term is undefined (``n < esn``).

    Examples
    --------
    >>> hurlbert_terms([60], [100], 50)
    array([1.])
    >>> float(hurlbert_terms([10], [100], 50)[0]) < 1
    True
    """
    ni = np.asarray(ni, dtype=float)
    n = np.asarray(n, dtype=float)
    rest = n - ni

    computable = rest >= esn
    certain = ~computable & (n >= esn)

    # Clamp so the gammaln arguments stay >= 1 on rows np.where discards
    safe_rest = np.where(computable, rest, esn)
    log_ratio = (
        gammaln(safe_rest + 1)
        + gammaln(np.maximum(n - esn, 0) + 1)
        - gammaln(safe_rest - esn + 1)
        - gammaln(n + 1)
    )
    terms = np.where(computable, 1.0 - np.exp(log_ratio), 0.0)
    terms = np.where(certain, 1.0, terms)
    return terms


class DiversityCalculator:
    """Compute per-cell diversity indices for one partition of records.

    Grouping is a single hash aggregation on ``(cell_id, species)``; the
    calculator holds no state between calls, so one instance can serve
    several threads.

    Parameters
    ----------
    esn : int, optional
        Hurlbert subsample size (default 50).

    Raises
    ------
    NumericDomainError
        If ``esn < 1``.

    Examples
    --------
    >>> calc = DiversityCalculator(esn=50)
    >>> table = calc.compute(records)   # records: cell_id, species, record_count
    >>> table.loc["83283bfffffffff", "hill_1"]
    """

    def __init__(self, esn: int = 50):
        if esn < 1:
            raise NumericDomainError(f"esn must be >= 1, got {esn}")
        self.esn = int(esn)

    @classmethod
    def from_config(cls, config) -> "DiversityCalculator":
        return cls(esn=config.diversity.esn)

    @staticmethod
    def empty_table() -> pd.DataFrame:
        """Table with the aggregate schema and no rows."""
        table = pd.DataFrame({
            "n": pd.Series(dtype=np.int64),
            "sp": pd.Series(dtype=np.int64),
            **{c: pd.Series(dtype=float) for c in AGGREGATE_COLUMNS[2:]},
        })
        table.index = pd.Index([], dtype=object, name="cell_id")
        return table

    def compute(self, records: pd.DataFrame, cell_column: str = "cell_id") -> pd.DataFrame:
        """Aggregate records into one indicator row per cell.

        Parameters
        ----------
        records : pd.DataFrame
            Columns ``cell_column``, ``species`` and ``record_count``.
        cell_column : str, optional
            Name of the cell id column (default ``cell_id``; pass ``cell_3``
            etc. to aggregate an indexed batch directly).

        Returns
        -------
        pd.DataFrame
            Indexed by ``cell_id`` and sorted, columns ``AGGREGATE_COLUMNS``.
            Cells with no records do not appear.
        """
        if len(records) == 0:
            return self.empty_table()

        # 1. species-level counts per cell
        per_species = (
            records.groupby([cell_column, "species"], sort=True, observed=True)["record_count"]
            .sum()
            .rename("ni")
            .reset_index()
        )
        per_species = per_species[per_species["ni"] > 0]
        if per_species.empty:
            return self.empty_table()

        # 2. cell totals broadcast back to species rows
        ni = per_species["ni"].to_numpy(dtype=float)
        n = per_species.groupby(cell_column, sort=False)["ni"].transform("sum").to_numpy(dtype=float)

        # 3. per-species terms
        qi = ni / n
        per_species["qi"] = qi
        per_species["hi"] = -qi * np.log(qi)
        per_species["si"] = qi ** 2
        # 4. Hurlbert
        per_species["esi"] = hurlbert_terms(ni, n, self.esn)

        # 5. cell-level sums
        grouped = per_species.groupby(cell_column, sort=True)
        table = pd.DataFrame({
            "n": grouped["ni"].sum().astype(np.int64),
            "sp": grouped["species"].size().astype(np.int64),
            "shannon": grouped["hi"].sum(),
            "simpson": grouped["si"].sum(),
            "maxp": grouped["qi"].max(),
            "es": grouped["esi"].sum(),
        })

        # 6. Hill numbers
        table["hill_1"] = np.exp(table["shannon"])
        table["hill_2"] = 1.0 / table["simpson"]
        table["hill_inf"] = 1.0 / table["maxp"]

        table.index.name = "cell_id"
        table = table[AGGREGATE_COLUMNS]

        values = table.to_numpy(dtype=float)
        if not np.isfinite(values).all():
            bad = table.index[~np.isfinite(values).all(axis=1)]
            raise NumericDomainError(
                f"Non-finite diversity index in {len(bad)} cells (e.g. {list(bad[:3])})"
            )

        logger.debug("Computed indices for %d cells from %d records", len(table), len(records))
        return table

    @staticmethod
    def to_aggregates(table: pd.DataFrame) -> dict:
        """Convert a cell table into ``{cell_id: CellAggregate}``."""
        return {
            cell_id: CellAggregate(
                cell_id=cell_id,
                n=int(row.n),
                sp=int(row.sp),
                shannon=float(row.shannon),
                simpson=float(row.simpson),
                maxp=float(row.maxp),
                es=float(row.es),
                hill_1=float(row.hill_1),
                hill_2=float(row.hill_2),
                hill_inf=float(row.hill_inf),
            )
            for cell_id, row in table.iterrows()
        }
