"""Hexagonal grid capability backed by H3.

The pipeline treats the grid as three pure functions: point to cell id,
cell id to boundary polygon, and polygon to covering cell ids. Keeping them
behind one small class lets tests and callers swap in another discrete
global grid without touching the indexer.
"""

import logging

import h3
from shapely.geometry import Polygon

__all__ = ['HexGrid']

logger = logging.getLogger(__name__)


class HexGrid:
    """H3 (v4 API) implementation of the hex-grid capability.

    Cell ids are H3 index strings, e.g. ``'83283bfffffffff'``. Coordinates in
    and out of this class are (lon, lat) where a pair is passed positionally,
    matching GeoJSON and shapely; H3 itself uses (lat, lng) internally.

    Examples
    --------
    >>> grid = HexGrid()
    >>> cell = grid.point_to_cell(-122.42, 37.77, 3)
    >>> grid.resolution(cell)
    3
    >>> poly = grid.cell_to_boundary(cell)
    """

    def point_to_cell(self, lon: float, lat: float, resolution: int) -> str:
        """Return the id of the cell containing (lon, lat) at a resolution."""
        return h3.latlng_to_cell(lat, lon, resolution)

    def points_to_cells(self, lons, lats, resolution: int) -> list:
        """Vectorised ``point_to_cell`` over two equal-length sequences."""
        return [h3.latlng_to_cell(lat, lon, resolution) for lon, lat in zip(lons, lats)]

    def cell_to_parent(self, cell_id: str, resolution: int) -> str:
        """Return the ancestor of a cell at a coarser resolution."""
        return h3.cell_to_parent(cell_id, resolution)

    def resolution(self, cell_id: str) -> int:
        return h3.get_resolution(cell_id)

    def cell_to_boundary(self, cell_id: str) -> Polygon:
        """Return the cell boundary as a shapely Polygon in (lon, lat) order.

        Cells crossing the antimeridian are not split; their longitudes are
        returned as H3 reports them.
        """
        ring = [(lng, lat) for lat, lng in h3.cell_to_boundary(cell_id)]
        return Polygon(ring)

    def polygon_to_cells(self, polygon, resolution: int) -> set:
        """Return the ids of cells whose centroids fall inside ``polygon``.

        Parameters
        ----------
        polygon : shapely Polygon or any object with ``__geo_interface__``
            Area in (lon, lat) order.
        resolution : int
            Resolution of the returned cells.
        """
        cells = set(h3.geo_to_cells(polygon, resolution))
        logger.debug("Polygon covered by %d cells at resolution %d", len(cells), resolution)
        return cells
