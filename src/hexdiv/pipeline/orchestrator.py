"""Whole-run pipeline orchestration.

Sets up logging, ingests the occurrence source into the partitioned store,
runs every (resolution, pass) aggregation, exports the cell tables and
disposes the store.
"""

import logging
import time
from typing import TYPE_CHECKING, Optional

from hexdiv.contracts import ContractViolation
from hexdiv.pipeline.store import PartitionedStore
from hexdiv.pipeline.ingest import IngestProcessor
from hexdiv.pipeline.aggregator import AggregationOrchestrator
from hexdiv.spatial.indexer import SpatialIndexer
from hexdiv.spatial.diversity import DiversityCalculator
from hexdiv.spatial.filters import filters_from_config
from hexdiv.spatial.hexgrid import HexGrid
from hexdiv.outputs.export import ResultWriter, restrict_to_region
from hexdiv.setup_directories import get_log_path

if TYPE_CHECKING:
    from hexdiv.schemas import InternalConfig

__all__ = ['PipelineOrchestrator']

logger = logging.getLogger(__name__)


class PipelineOrchestrator:
    """Runs the diversity pipeline from source dataset to result files.

    This is the main entry point for running ``hexdiv``.

    **Pipeline Architecture:**

    1. **Ingest**: Stream the occurrence source in batches, index each
       record at every configured resolution and write it to the partitioned
       store (``IngestProcessor``).

    2. **Aggregate**: For each resolution and each configured pass (depth
       band), compute the per-cell indices partition by partition and merge
       the disjoint partial tables (``AggregationOrchestrator``).

    3. **Export**: Optionally restrict tables to a region, then write one
       Parquet file per (resolution, pass) (``ResultWriter``).

    4. **Dispose**: Remove the partitioned store unless ``store.keep``.

    **Failure Isolation:**

    A failing pass is logged and left out of ``results``; the other passes
    still run. Failures are collected in ``failures`` keyed by
    ``(resolution, pass name)``. Ingestion failures stop the run.

    **Logging:**

    All output goes to both console and ``logs/hexdiv_pipeline.log``.
    Log level controlled via ``config.logging.level``.

    Example usage::

        from hexdiv.schemas import ParamConfig, UserConfig, resolve_config
        from hexdiv.setup_directories import setup_output_directories

        config = resolve_config(ParamConfig(), UserConfig(SOURCE="occ.parquet"), None)
        output_dirs = setup_output_directories(config.base_dir)

        orch = PipelineOrchestrator(config, output_dirs)
        results = orch.start()
        results[(3, "shallow")].head()
    """

    def __init__(self, config: "InternalConfig", output_dirs: dict,
                 grid: Optional[HexGrid] = None, source=None):
        """Initialize orchestrator with validated configuration.

        Parameters
        ----------
        config : InternalConfig
            Fully validated runtime configuration.
        output_dirs : dict
            Output directory paths from ``setup_output_directories()``:
            base, partitions, results, logs.
        grid : HexGrid, optional
            Hex-grid capability (default: H3).
        source : OccurrenceSource, optional
            Source override; built from ``config`` when omitted.
        """
        self.config = config
        self.output_dirs = output_dirs
        self.grid = grid or HexGrid()
        self.source = source

        self.store = None
        self.indexer = None
        self.ingest_stats = {}
        self.results = {}
        self.failures = {}
        self.saved_paths = {}

        self._start_time = None
        self._log_handlers = []

    def _setup_logging(self):
        """Configure root logger with file and console handlers."""
        log_level = getattr(logging, self.config.logging.level.upper(), logging.INFO)
        log_path = get_log_path(self.output_dirs)

        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        # Clear existing handlers and add new ones
        root = logging.getLogger()
        root.setLevel(log_level)
        for handler in root.handlers[:]:
            root.removeHandler(handler)
            handler.close()

        fh = logging.FileHandler(log_path)
        fh.setLevel(log_level)
        fh.setFormatter(formatter)
        root.addHandler(fh)

        ch = logging.StreamHandler()
        ch.setLevel(log_level)
        ch.setFormatter(formatter)
        root.addHandler(ch)
        self._log_handlers = [fh, ch]

        logger.info("Logging: level=%s, file=%s", logging.getLevelName(log_level), log_path)

    def start(self, setup_logging: bool = True) -> dict:
        """Run the whole pipeline (blocking).

        Parameters
        ----------
        setup_logging : bool, optional
            Install the root log handlers (default True). Embedding
            applications that configure logging themselves pass False.

        Returns
        -------
        dict
            ``{(resolution, pass name): cell table}`` for every pass that
            succeeded.

        Raises
        ------
        ValueError
            If ``config.source.location`` is not set.
        ContractViolation
            If a pipeline stage breaks its contract (bug).
        StorageError
            If ingestion cannot write the store.
        """
        if setup_logging:
            self._setup_logging()

        if not self.config.source.location:
            raise ValueError("No source dataset configured (source.location / SOURCE)")

        logger.info("=" * 60)
        logger.info("Starting Diversity Pipeline")
        logger.info("=" * 60)
        self._start_time = time.time()

        self.store = PartitionedStore.from_config(
            self.config, default_root=self.output_dirs.get("partitions")
        )
        try:
            self._ingest()
            self._aggregate_and_export()
        finally:
            self.stop()
        return self.results

    run = start

    def _ingest(self):
        logger.info("Ingesting occurrence records...")
        self.indexer = SpatialIndexer(self.config, grid=self.grid)
        processor = IngestProcessor(self.config, self.store, source=self.source, indexer=self.indexer)
        self.ingest_stats = processor.run()
        logger.info("✓ Ingestion complete")

    def _aggregate_and_export(self):
        aggregator = AggregationOrchestrator(
            self.store,
            DiversityCalculator.from_config(self.config),
            max_workers=self.config.aggregator.max_workers,
            key_of=self.indexer.partition_key,
        )
        writer = ResultWriter.from_config(self.config, self.output_dirs, grid=self.grid)
        filters = filters_from_config(self.config)
        bbox = self.config.output.region_bbox

        for res in self.config.indexer.resolutions:
            logger.info("Aggregating resolution %d (%d passes)...", res, len(filters))
            tables = aggregator.run_passes(res, filters)
            for name, error in aggregator.last_failures.items():
                self.failures[(res, name)] = error

            for name, table in tables.items():
                try:
                    if bbox is not None:
                        table = restrict_to_region(table, self.grid, tuple(bbox), res)
                    if self.config.output.enabled:
                        self.saved_paths[(res, name)] = writer.save(table, res, name)
                except ContractViolation:
                    raise
                except Exception as e:
                    logger.exception("Export failed for res %d pass '%s'", res, name)
                    self.failures[(res, name)] = e
                    continue
                self.results[(res, name)] = table

    def stop(self):
        """Dispose the store and log the run summary. Safe to call twice."""
        if self.store is not None:
            self.store.dispose(remove=not self.config.store.keep)
            if self.config.store.keep:
                logger.info("Partitions kept at: %s", self.store.root)
            self.store = None

        elapsed = time.time() - self._start_time if self._start_time else 0
        logger.info("=" * 60)
        logger.info("Pipeline finished. Runtime: %.1f seconds", elapsed)
        logger.info("Statistics: records in=%d, indexed=%d, tables=%d, failed passes=%d",
                    self.ingest_stats.get("records_in", 0),
                    self.ingest_stats.get("records_out", 0),
                    len(self.results), len(self.failures))
        for (res, name), error in sorted(self.failures.items()):
            logger.warning("Failed pass: res %d '%s': %s", res, name, error)
        logger.info("=" * 60)
        self._teardown_logging()

    def _teardown_logging(self):
        """Detach and close the handlers installed by _setup_logging."""
        root = logging.getLogger()
        for handler in self._log_handlers:
            root.removeHandler(handler)
            handler.close()
        self._log_handlers = []
