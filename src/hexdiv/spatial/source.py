"""Batch reader for the occurrence dataset.

Opens a columnar (Parquet) dataset, local or remote, projects the configured
columns, drops records without a species at scan time, and yields pandas
batches with canonical column names:

    longitude, latitude, min_depth, max_depth, species, record_count

Optional columns absent from the dataset come back as all-null columns so
downstream code sees one layout.
"""

import logging
from typing import TYPE_CHECKING, Iterator

import pandas as pd
import pyarrow.dataset as ds

if TYPE_CHECKING:
    from hexdiv.schemas import InternalConfig

__all__ = ['OccurrenceSource', 'CANONICAL_COLUMNS']

logger = logging.getLogger(__name__)

CANONICAL_COLUMNS = ("longitude", "latitude", "min_depth", "max_depth", "species", "record_count")


class OccurrenceSource:
    """Streams occurrence records from a Parquet dataset in batches.

    The dataset is only ever read through a scanner with column projection
    and a ``species IS NOT NULL`` predicate, so peak memory is bounded by
    ``batch_size`` rows regardless of dataset size.

    Parameters
    ----------
    config : InternalConfig
        Fully validated runtime configuration. ``config.source.location`` may
        be a local file, a directory of Parquet files, or a URI that pyarrow
        can resolve (``s3://...``, ``gs://...``).

    Examples
    --------
    >>> source = OccurrenceSource(config)
    >>> for batch in source.batches():
    ...     indexed = indexer.index(batch)
    """

    def __init__(self, config: "InternalConfig"):
        src = config.source
        if not src.location:
            raise ValueError("source.location is required")
        self.location = src.location
        self.format = src.format
        self.batch_size = src.batch_size
        # canonical name -> dataset column name (None = not configured)
        self.column_map = {
            "longitude": src.longitude_column,
            "latitude": src.latitude_column,
            "min_depth": src.min_depth_column,
            "max_depth": src.max_depth_column,
            "species": src.species_column,
            "record_count": src.record_count_column,
        }
        self._dataset = None

    def open(self) -> ds.Dataset:
        """Open the dataset lazily (no data is read here)."""
        if self._dataset is None:
            self._dataset = ds.dataset(self.location, format=self.format)
            logger.info("Opened source dataset: %s", self.location)
        return self._dataset

    def _projection(self, schema_names) -> dict:
        """Map canonical names to columns that actually exist in the dataset."""
        projected = {}
        for canonical, column in self.column_map.items():
            if column is None:
                continue
            if column in schema_names:
                projected[canonical] = column
            elif canonical in ("longitude", "latitude", "species"):
                raise KeyError(f"Required column '{column}' not found in {self.location}")
            else:
                logger.warning("Optional column '%s' not found in source, treating as missing", column)
        return projected

    def batches(self) -> Iterator[pd.DataFrame]:
        """Yield non-empty batches with canonical column names.

        Yields
        ------
        pd.DataFrame
            Columns ``CANONICAL_COLUMNS``; ``min_depth``/``max_depth``/
            ``record_count`` may be all-null.
        """
        dataset = self.open()
        projected = self._projection(set(dataset.schema.names))
        species_col = projected["species"]

        scanner = dataset.scanner(
            columns=list(projected.values()),
            filter=ds.field(species_col).is_valid(),
            batch_size=self.batch_size,
        )

        rename = {column: canonical for canonical, column in projected.items()}
        n_batches = 0
        n_rows = 0
        for batch in scanner.to_batches():
            if batch.num_rows == 0:
                continue
            df = batch.to_pandas().rename(columns=rename)
            for canonical in CANONICAL_COLUMNS:
                if canonical not in df.columns:
                    df[canonical] = None
            n_batches += 1
            n_rows += len(df)
            logger.debug("Source batch %d: %d rows", n_batches, len(df))
            yield df[list(CANONICAL_COLUMNS)]

        logger.info("Source exhausted: %d batches, %d rows with species", n_batches, n_rows)
