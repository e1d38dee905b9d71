"""Spatial and numeric building blocks.

- hexgrid: H3 hex-grid capability (point to cell, parent, boundary)
- source: Batched reader for the occurrence dataset
- indexer: Cell and partition key assignment
- filters: Depth band filters for aggregation passes
- diversity: Per-cell diversity indices
"""

from hexdiv.spatial.hexgrid import HexGrid
from hexdiv.spatial.source import OccurrenceSource
from hexdiv.spatial.indexer import SpatialIndexer
from hexdiv.spatial.filters import DepthFilter
from hexdiv.spatial.diversity import DiversityCalculator, CellAggregate

__all__ = [
    "HexGrid",
    "OccurrenceSource",
    "SpatialIndexer",
    "DepthFilter",
    "DiversityCalculator",
    "CellAggregate",
]
