"""Partitioned Parquet store for indexed occurrence records.

Records are persisted per resolution, grouped by partition key:

    <root>/res=<resolution>/partition=<key>/part-<batch>.parquet

Each part file holds only ``cell_id, species, record_count, depth``. A
partition is read back on its own, optionally restricted by a depth filter
pushed down to the Parquet reader.
"""

import logging
import shutil
import tempfile
import threading
from pathlib import Path
from typing import Optional

import pandas as pd
import pyarrow as pa

from hexdiv.core.errors import StorageWriteError, PartitionNotFoundError
from hexdiv.contracts.partition import PARTITION_COLUMNS

__all__ = ['PartitionedStore']

logger = logging.getLogger(__name__)

_PARTITION_PREFIX = "partition="


class PartitionedStore:
    """Caller-owned storage handle for partitioned occurrence records.

    Lifecycle: create → write (per batch) → read (per partition, many times)
    → dispose. The first write to a resolution in the lifetime of a store
    clears anything previously stored for that resolution, so re-running a
    pipeline over the same root never mixes runs.

    **Thread Safety:**

    Writes are serialised by an internal lock; no two writers touch the same
    partition location. Reads take no lock: partitions are immutable once
    ingestion has finished.

    Parameters
    ----------
    root : str or Path, optional
        Directory holding all partitions. If None, a temporary directory is
        created and removed by ``dispose()``.
    compression : str, optional
        Parquet compression codec (default ``snappy``; ``none`` disables it).

    Examples
    --------
    >>> with PartitionedStore(tmp_path / "partitions") as store:
    ...     store.write(indexed_batch, resolution=3)
    ...     keys = store.list_partitions(3)
    ...     records = store.read(3, sorted(keys)[0])
    """

    def __init__(self, root=None, compression: str = "snappy"):
        if root is None:
            self.root = Path(tempfile.mkdtemp(prefix="hexdiv_partitions_"))
            self._owns_root = True
        else:
            self.root = Path(root)
            self._owns_root = False
        self.compression = None if compression == "none" else compression
        self._cleared = set()
        self._batch_counter = {}
        self._lock = threading.Lock()
        self._disposed = False
        logger.info("Partitioned store at: %s", self.root)

    @classmethod
    def from_config(cls, config, default_root=None) -> "PartitionedStore":
        root = config.store.root or default_root
        return cls(root, compression=config.store.compression)

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    def resolution_dir(self, resolution: int) -> Path:
        return self.root / f"res={resolution}"

    def partition_dir(self, resolution: int, key: str) -> Path:
        return self.resolution_dir(resolution) / f"{_PARTITION_PREFIX}{key}"

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def clear(self, resolution: int) -> None:
        """Remove all stored partitions of one resolution."""
        res_dir = self.resolution_dir(resolution)
        try:
            if res_dir.exists():
                shutil.rmtree(res_dir)
                logger.info("Cleared previous partitions: %s", res_dir)
            res_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageWriteError(f"Could not clear {res_dir}: {e}") from e
        self._cleared.add(resolution)
        self._batch_counter[resolution] = 0

    def write(self, records: pd.DataFrame, resolution: int) -> int:
        """Persist one indexed batch for one resolution.

        Parameters
        ----------
        records : pd.DataFrame
            Indexed batch from ``SpatialIndexer.index()``; must contain
            ``cell_<resolution>`` and ``partition_<resolution>``.
        resolution : int
            Which resolution's indexing columns to persist. The other
            resolutions' columns are discarded.

        Returns
        -------
        int
            Number of partitions touched by this batch.

        Raises
        ------
        StorageWriteError
            On any I/O failure.
        """
        cell_col = f"cell_{resolution}"
        key_col = f"partition_{resolution}"
        missing = [c for c in (cell_col, key_col, "species", "record_count", "depth")
                   if c not in records.columns]
        if missing:
            raise KeyError(f"Indexed batch lacks columns {missing} for resolution {resolution}")

        with self._lock:
            if resolution not in self._cleared:
                self.clear(resolution)
            batch_no = self._batch_counter[resolution]
            self._batch_counter[resolution] = batch_no + 1

            frame = records[[cell_col, key_col, "species", "record_count", "depth"]].rename(
                columns={cell_col: "cell_id"}
            )
            frame["depth"] = frame["depth"].astype(float)

            touched = 0
            for key, part in frame.groupby(key_col, sort=True):
                target = self.partition_dir(resolution, key) / f"part-{batch_no:06d}.parquet"
                try:
                    target.parent.mkdir(parents=True, exist_ok=True)
                    part[list(PARTITION_COLUMNS)].to_parquet(
                        target, engine="pyarrow", compression=self.compression, index=False
                    )
                except (OSError, pa.ArrowException) as e:
                    raise StorageWriteError(f"Failed writing partition {target}: {e}") from e
                touched += 1

        logger.debug("Wrote batch %d at res %d: %d rows into %d partitions",
                     batch_no, resolution, len(frame), touched)
        return touched

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def list_partitions(self, resolution: int) -> set:
        """Partition keys present on disk for a resolution."""
        res_dir = self.resolution_dir(resolution)
        if not res_dir.exists():
            return set()
        return {
            p.name[len(_PARTITION_PREFIX):]
            for p in res_dir.iterdir()
            if p.is_dir() and p.name.startswith(_PARTITION_PREFIX)
        }

    def read(self, resolution: int, key: str, row_filter=None,
             columns: Optional[list] = None) -> pd.DataFrame:
        """Read exactly the records of one partition.

        Parameters
        ----------
        resolution : int
            Resolution the partition was written for.
        key : str
            Partition key.
        row_filter : DepthFilter, optional
            Depth band pushed down to the Parquet reader.
        columns : list of str, optional
            Column projection (default: all persisted columns).

        Returns
        -------
        pd.DataFrame
            Possibly empty if the filter excludes every record.

        Raises
        ------
        PartitionNotFoundError
            If the key was never written at this resolution.
        """
        part_dir = self.partition_dir(resolution, key)
        if not part_dir.is_dir():
            raise PartitionNotFoundError(resolution, key)

        filters = row_filter.to_parquet_filters() if row_filter is not None else None
        df = pd.read_parquet(
            part_dir,
            engine="pyarrow",
            columns=list(columns) if columns else list(PARTITION_COLUMNS),
            filters=filters,
        )
        return df.reset_index(drop=True)

    def read_cells(self, resolution: int, cell_ids, keys) -> pd.DataFrame:
        """Records of the given cells, reading only the given partitions.

        Keys that were never written are skipped: a cell with no records
        simply has no rows.
        """
        cell_ids = list(cell_ids)
        present = self.list_partitions(resolution)
        frames = []
        for key in sorted(set(keys) & present):
            frames.append(pd.read_parquet(
                self.partition_dir(resolution, key),
                engine="pyarrow",
                columns=list(PARTITION_COLUMNS),
                filters=[("cell_id", "in", cell_ids)],
            ))
        if not frames:
            return pd.DataFrame({c: pd.Series(dtype=object) for c in PARTITION_COLUMNS})
        return pd.concat(frames, ignore_index=True)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def dispose(self, remove: Optional[bool] = None) -> None:
        """Release the store.

        Parameters
        ----------
        remove : bool, optional
            Delete the partition files. Defaults to True for a temporary
            root created by the store and False for a caller-supplied root.
        """
        if self._disposed:
            return
        self._disposed = True
        if remove is None:
            remove = self._owns_root
        if remove and self.root.exists():
            shutil.rmtree(self.root, ignore_errors=True)
            logger.info("Removed partition store: %s", self.root)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.dispose()
        return False
