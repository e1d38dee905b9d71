"""Tests for the H3-backed hex grid."""

import pytest
from shapely.geometry import Point, Polygon, box

from hexdiv.spatial.hexgrid import HexGrid

pytestmark = pytest.mark.unit


@pytest.fixture
def grid():
    return HexGrid()


def test_point_to_cell_resolution(grid):
    """Cells carry the requested resolution."""
    for res in (0, 3, 4, 7):
        assert grid.resolution(grid.point_to_cell(-122.42, 37.77, res)) == res


def test_points_to_cells_matches_scalar(grid):
    """Vector lookup equals scalar lookup."""
    lons = [-122.42, 2.35, 151.21]
    lats = [37.77, 48.86, -33.87]
    cells = grid.points_to_cells(lons, lats, 4)
    assert cells == [grid.point_to_cell(lon, lat, 4) for lon, lat in zip(lons, lats)]


def test_parent_contains_child(grid):
    """A point's coarse cell is the parent of its fine cell."""
    fine = grid.point_to_cell(2.35, 48.86, 4)
    coarse = grid.point_to_cell(2.35, 48.86, 3)
    assert grid.cell_to_parent(fine, 3) == coarse


def test_boundary_is_lon_lat_polygon(grid):
    """Boundary polygon contains the point, in (lon, lat) order."""
    cell = grid.point_to_cell(2.35, 48.86, 3)
    poly = grid.cell_to_boundary(cell)
    assert isinstance(poly, Polygon)
    assert poly.is_valid
    assert poly.contains(Point(2.35, 48.86))


def test_polygon_to_cells_covers_region(grid):
    """Cells covering a box include the cell of its centre."""
    region = box(1.0, 48.0, 4.0, 50.0)
    cells = grid.polygon_to_cells(region, 4)
    assert grid.point_to_cell(2.5, 49.0, 4) in cells
    assert all(grid.resolution(c) == 4 for c in cells)
