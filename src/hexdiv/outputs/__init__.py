"""Result export and downstream lookups.

- export: Parquet/GeoParquet writer, cell geometry, region restriction,
  species lists per cell
"""

from hexdiv.outputs.export import (
    ResultWriter,
    attach_geometry,
    restrict_to_region,
    region_from_bbox,
    species_by_cell,
)

__all__ = [
    "ResultWriter",
    "attach_geometry",
    "restrict_to_region",
    "region_from_bbox",
    "species_by_cell",
]
