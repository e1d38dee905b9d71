"""Assign occurrence records to hex cells and storage partitions.

For each configured resolution the indexer attaches a cell id
(``cell_<res>``) and a partition key (``partition_<res>``) derived only from
that cell id. It also summarises each record's depth range into a single
``depth`` value. Records that cannot be placed are dropped and counted,
never raised.
"""

import logging
import math
from collections import Counter
from typing import TYPE_CHECKING, Optional

import numpy as np
import pandas as pd

from hexdiv.core.errors import InputDataError
from hexdiv.spatial.hexgrid import HexGrid

if TYPE_CHECKING:
    from hexdiv.schemas import InternalConfig

__all__ = ['SpatialIndexer']

logger = logging.getLogger(__name__)


class SpatialIndexer:
    """Pure transform from raw occurrence batches to indexed batches.

    Partition key strategies
    ========================
    - ``substring``: a fixed slice of the cell id string (default offset 5,
      length 2). For H3 ids this mixes bits of several fine digits, which
      spreads records evenly over at most 256 keys.
    - ``parent``: the id of the cell's ancestor at ``parent_resolution``.
      Spatially coherent partitions, less even in size.

    Both are functions of the cell id alone, so a cell can never span two
    partitions at one resolution.

    Parameters
    ----------
    config : InternalConfig
        Fully validated runtime configuration.
    grid : HexGrid, optional
        Hex-grid capability. Defaults to the H3 implementation.

    Examples
    --------
    >>> indexer = SpatialIndexer(config)
    >>> indexed = indexer.index(batch)
    >>> indexed[["cell_3", "partition_3", "depth"]].head()
    """

    def __init__(self, config: "InternalConfig", grid: Optional[HexGrid] = None):
        self.resolutions = list(config.indexer.resolutions)
        pk = config.indexer.partition_key
        self.key_method = pk.method
        self.key_start = pk.start
        self.key_length = pk.length
        self.parent_resolution = pk.parent_resolution
        self.grid = grid or HexGrid()
        self.stats = Counter()

    # ------------------------------------------------------------------
    # Scalar helpers
    # ------------------------------------------------------------------

    def partition_key(self, cell_id: str) -> str:
        """Derive the partition key for a cell id."""
        if self.key_method == "parent":
            return self.grid.cell_to_parent(cell_id, self.parent_resolution)
        key = cell_id[self.key_start:self.key_start + self.key_length]
        if len(key) != self.key_length:
            raise InputDataError(
                f"Cell id '{cell_id}' too short for partition key "
                f"[{self.key_start}:{self.key_start + self.key_length}]"
            )
        return key

    def cell_for(self, lon, lat, resolution: int) -> str:
        """Cell id for one point.

        Raises
        ------
        InputDataError
            If a coordinate is missing, not a number, or out of range.
        """
        try:
            lon = float(lon)
            lat = float(lat)
        except (TypeError, ValueError):
            raise InputDataError(f"Invalid coordinates: ({lon!r}, {lat!r})")
        if math.isnan(lon) or math.isnan(lat):
            raise InputDataError("Missing coordinates")
        if not (-180.0 <= lon <= 180.0 and -90.0 <= lat <= 90.0):
            raise InputDataError(f"Coordinates out of range: ({lon}, {lat})")
        return self.grid.point_to_cell(lon, lat, resolution)

    @staticmethod
    def depth_of(min_depth: Optional[float], max_depth: Optional[float]) -> Optional[float]:
        """Mean of whichever depth bounds are present, or None.

        >>> SpatialIndexer.depth_of(50, 150)
        100.0
        >>> SpatialIndexer.depth_of(None, 20)
        20.0
        """
        present = [float(d) for d in (min_depth, max_depth)
                   if d is not None and not math.isnan(float(d))]
        if not present:
            return None
        return sum(present) / len(present)

    # ------------------------------------------------------------------
    # Batch transform
    # ------------------------------------------------------------------

    def index(self, df: pd.DataFrame) -> pd.DataFrame:
        """Index one batch of canonical occurrence records.

        Parameters
        ----------
        df : pd.DataFrame
            Columns ``longitude, latitude, min_depth, max_depth, species,
            record_count`` (as yielded by ``OccurrenceSource.batches()``).

        Returns
        -------
        pd.DataFrame
            Surviving records with columns ``species, record_count, depth``
            plus ``cell_<res>`` and ``partition_<res>`` per resolution.
            The input frame is not modified.

        Notes
        -----
        Species names are kept exactly as given; whitespace only matters when
        deciding that a name is empty. Record counts must be positive whole
        numbers, anything else is dropped under ``dropped_record_count``.
        """
        n_in = len(df)

        species = df["species"].astype("string")
        lon = pd.to_numeric(df["longitude"], errors="coerce")
        lat = pd.to_numeric(df["latitude"], errors="coerce")
        min_depth = pd.to_numeric(df["min_depth"], errors="coerce").astype(float)
        max_depth = pd.to_numeric(df["max_depth"], errors="coerce").astype(float)
        record_count = pd.to_numeric(df["record_count"], errors="coerce").fillna(1).astype(float)

        has_species = species.notna() & (species.str.strip() != "")
        has_coords = lon.between(-180.0, 180.0) & lat.between(-90.0, 90.0)
        depth_ok = ~(min_depth.notna() & max_depth.notna() & (min_depth > max_depth))
        # Counts must be positive whole numbers; 0.5 or 2.7 are malformed
        count_ok = (
            (record_count > 0)
            & np.isfinite(record_count)
            & (record_count == np.floor(record_count))
        )
        keep = (has_species & has_coords & depth_ok & count_ok).fillna(False).astype(bool)

        self.stats["records_in"] += n_in
        self.stats["dropped_species"] += int((~has_species.fillna(False)).sum())
        self.stats["dropped_coordinates"] += int((has_species.fillna(False) & ~has_coords).sum())
        self.stats["dropped_depth_range"] += int((has_species.fillna(False) & has_coords & ~depth_ok).sum())
        self.stats["dropped_record_count"] += int((has_species.fillna(False) & has_coords & depth_ok & ~count_ok).sum())

        out = pd.DataFrame({
            "species": species[keep].astype(str),
            "record_count": record_count[keep].astype(np.int64),
            "depth": pd.concat([min_depth[keep], max_depth[keep]], axis=1).mean(axis=1, skipna=True),
        })

        lons = lon[keep].to_numpy()
        lats = lat[keep].to_numpy()
        for res in self.resolutions:
            cells = self.grid.points_to_cells(lons, lats, res)
            # Many records share a cell; derive each key once
            keys = {c: self.partition_key(c) for c in set(cells)}
            out[f"cell_{res}"] = cells
            out[f"partition_{res}"] = [keys[c] for c in cells]

        out = out.reset_index(drop=True)
        self.stats["records_out"] += len(out)
        if len(out) < n_in:
            logger.debug("Indexed batch: kept %d of %d records", len(out), n_in)
        return out

    def log_summary(self):
        """Log cumulative drop counts since construction."""
        s = self.stats
        logger.info(
            "Indexing summary: in=%d, out=%d, dropped species=%d, coords=%d, depth=%d, count=%d",
            s["records_in"], s["records_out"], s["dropped_species"],
            s["dropped_coordinates"], s["dropped_depth_range"], s["dropped_record_count"],
        )
