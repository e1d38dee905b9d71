"""Occurrence ingestion: source batches → indexer → partitioned store.

One pass over the source dataset fills the store for every configured
resolution. Memory is bounded by the source batch size.
"""

import logging
import time
from typing import TYPE_CHECKING, Optional

from hexdiv.spatial.source import OccurrenceSource
from hexdiv.spatial.indexer import SpatialIndexer
from hexdiv.contracts import ContractViolation, assert_indexed

if TYPE_CHECKING:
    from hexdiv.schemas import InternalConfig
    from hexdiv.pipeline.store import PartitionedStore

__all__ = ['IngestProcessor']

logger = logging.getLogger(__name__)


class IngestProcessor:
    """Streams the occurrence source into the partitioned store.

    **Processing Pipeline:**

    For each source batch, the processor performs (in order):

    1. **Read**: projected, species-filtered batch from ``OccurrenceSource``.
    2. **Index**: ``SpatialIndexer.index()`` drops malformed records and
       attaches a cell id and partition key per resolution.
    3. **Contract**: ``assert_indexed`` checks the indexed layout.
    4. **Write**: one ``PartitionedStore.write()`` per resolution.

    A ``StorageWriteError`` aborts ingestion; the store is left for the
    caller to dispose.

    Parameters
    ----------
    config : InternalConfig
        Fully validated runtime configuration.
    store : PartitionedStore
        Destination store (caller-owned).
    source : OccurrenceSource, optional
        Defaults to a source built from ``config``.
    indexer : SpatialIndexer, optional
        Defaults to an indexer built from ``config``.

    Examples
    --------
    >>> with PartitionedStore() as store:
    ...     stats = IngestProcessor(config, store).run()
    ...     stats["records_out"]
    """

    def __init__(self, config: "InternalConfig", store: "PartitionedStore",
                 source: Optional[OccurrenceSource] = None,
                 indexer: Optional[SpatialIndexer] = None):
        self.config = config
        self.store = store
        self.source = source or OccurrenceSource(config)
        self.indexer = indexer or SpatialIndexer(config)
        self.resolutions = list(config.indexer.resolutions)

    def process_batch(self, batch) -> int:
        """Index and persist one batch. Returns the number of records kept."""
        indexed = self.indexer.index(batch)
        assert_indexed(indexed, self.resolutions)
        if indexed.empty:
            return 0
        for res in self.resolutions:
            self.store.write(indexed, res)
        return len(indexed)

    def run(self) -> dict:
        """Ingest the whole source.

        Returns
        -------
        dict
            Indexer counters plus ``batches``, ``elapsed_seconds`` and the
            number of partitions per resolution.

        Raises
        ------
        ContractViolation
            If the indexer produced a malformed batch (pipeline bug).
        StorageWriteError
            If a partition could not be written.
        """
        start = time.time()
        n_batches = 0

        logger.info("Ingesting %s at resolutions %s", self.source.location, self.resolutions)
        try:
            for batch in self.source.batches():
                kept = self.process_batch(batch)
                n_batches += 1
                logger.debug("Batch %d: %d records persisted", n_batches, kept)
        except ContractViolation as e:
            logger.critical("Pipeline contract violated during ingestion: %s", e)
            raise

        self.indexer.log_summary()

        stats = dict(self.indexer.stats)
        stats["batches"] = n_batches
        stats["elapsed_seconds"] = time.time() - start
        for res in self.resolutions:
            n_parts = len(self.store.list_partitions(res))
            stats[f"partitions_{res}"] = n_parts
            logger.info("Resolution %d: %d partitions", res, n_parts)

        logger.info("Ingestion complete: %d batches in %.1f seconds",
                    n_batches, stats["elapsed_seconds"])
        return stats
