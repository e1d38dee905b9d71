"""Export of cell tables and downstream lookups.

Cell tables leave the pipeline without geometry. Geometry, region
restriction and per-cell species lists are attached here, on demand, for
mapping and reporting tools.
"""

import logging
from pathlib import Path
from typing import Optional

import geopandas as gpd
import pandas as pd
import pyarrow as pa
from shapely.geometry import box

from hexdiv.core.errors import StorageWriteError
from hexdiv.setup_directories import get_result_path
from hexdiv.spatial.hexgrid import HexGrid

__all__ = [
    'ResultWriter',
    'attach_geometry',
    'restrict_to_region',
    'region_from_bbox',
    'species_by_cell',
]

logger = logging.getLogger(__name__)

# Cell ids from the H3 grid are WGS84 lon/lat
CRS = "EPSG:4326"


def attach_geometry(table: pd.DataFrame, grid: Optional[HexGrid] = None) -> gpd.GeoDataFrame:
    """Join each cell's boundary polygon to a cell table.

    Parameters
    ----------
    table : pd.DataFrame
        Cell table indexed by ``cell_id``.
    grid : HexGrid, optional
        Hex-grid capability (default: H3).

    Returns
    -------
    geopandas.GeoDataFrame
        Same rows and columns plus ``geometry`` (EPSG:4326), still indexed by
        ``cell_id``.
    """
    grid = grid or HexGrid()
    geometry = [grid.cell_to_boundary(cell_id) for cell_id in table.index]
    gdf = gpd.GeoDataFrame(table.copy(), geometry=geometry, crs=CRS)
    gdf.index.name = "cell_id"
    return gdf


def region_from_bbox(bbox):
    """(min_lon, min_lat, max_lon, max_lat) -> shapely Polygon."""
    min_lon, min_lat, max_lon, max_lat = bbox
    if min_lon >= max_lon or min_lat >= max_lat:
        raise ValueError(f"Degenerate bounding box: {bbox}")
    return box(min_lon, min_lat, max_lon, max_lat)


def restrict_to_region(table: pd.DataFrame, grid: Optional[HexGrid], region,
                       resolution: int) -> pd.DataFrame:
    """Keep only the cells of a table that cover a region.

    Parameters
    ----------
    table : pd.DataFrame
        Cell table indexed by ``cell_id`` at ``resolution``.
    grid : HexGrid or None
        Hex-grid capability (None: H3).
    region : shapely geometry or tuple
        Area in (lon, lat) order, or a bounding box tuple.
    resolution : int
        Resolution of the table's cells.

    Returns
    -------
    pd.DataFrame
        Subset of ``table`` (order preserved). Cells of the region with no
        records do not appear.
    """
    grid = grid or HexGrid()
    if isinstance(region, (tuple, list)):
        region = region_from_bbox(region)
    cells = grid.polygon_to_cells(region, resolution)
    subset = table[table.index.isin(cells)]
    logger.info("Region restriction at res %d: %d of %d cells kept",
                resolution, len(subset), len(table))
    return subset


def species_by_cell(store, indexer, resolution: int, cell_ids) -> dict:
    """Distinct species recorded in each requested cell.

    Only the partitions owning the requested cells are read.

    Parameters
    ----------
    store : PartitionedStore
        Store filled by ingestion.
    indexer : SpatialIndexer
        Indexer that filled the store (supplies the partition key function).
    resolution : int
        Resolution of ``cell_ids``.
    cell_ids : iterable of str
        Cells to look up.

    Returns
    -------
    dict
        ``{cell_id: set of species}``; cells with no records map to an empty
        set.
    """
    cell_ids = list(dict.fromkeys(cell_ids))
    keys = {indexer.partition_key(c) for c in cell_ids}
    records = store.read_cells(resolution, cell_ids, keys)

    lookup = {c: set() for c in cell_ids}
    for cell_id, species in records.groupby("cell_id")["species"]:
        lookup[cell_id] = set(species)
    return lookup


class ResultWriter:
    """Persist cell tables under the results directory.

    One file per (resolution, pass): ``results/res<R>/<pass>.parquet``.
    With ``geometry=True`` the file is GeoParquet with cell polygons.

    Parameters
    ----------
    output_dirs : dict
        Output directories from ``setup_output_directories()``.
    compression : str, optional
        Parquet compression codec (``none`` disables it).
    geometry : bool, optional
        Write cell boundary polygons (default False).
    grid : HexGrid, optional
        Hex-grid capability for geometry (default: H3).

    Examples
    --------
    >>> writer = ResultWriter(output_dirs)
    >>> path = writer.save(table, 3, "shallow")
    """

    def __init__(self, output_dirs, compression: str = "snappy",
                 geometry: bool = False, grid: Optional[HexGrid] = None):
        self.output_dirs = output_dirs
        self.compression = None if compression == "none" else compression
        self.geometry = geometry
        self.grid = grid or HexGrid()

    @classmethod
    def from_config(cls, config, output_dirs, grid=None) -> "ResultWriter":
        return cls(output_dirs, compression=config.output.compression,
                   geometry=config.output.geometry, grid=grid)

    def save(self, table: pd.DataFrame, resolution: int, pass_name: str) -> Path:
        """Write one cell table; returns the file path.

        Raises
        ------
        StorageWriteError
            If the file cannot be written.
        """
        path = get_result_path(self.output_dirs, resolution, pass_name)
        try:
            if self.geometry:
                attach_geometry(table, self.grid).to_parquet(path, compression=self.compression)
            else:
                table.to_parquet(path, engine="pyarrow", compression=self.compression)
        except (OSError, pa.ArrowException) as e:
            raise StorageWriteError(f"Failed writing results {path}: {e}") from e
        logger.info("Saved %d cells (res %d, %s) to %s", len(table), resolution, pass_name, path)
        return path
