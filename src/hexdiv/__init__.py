"""`hexdiv` - Hexagonal diversity indicators for occurrence data.

Subpackages:
- spatial: Source reading, hex-grid indexing, diversity indices
- pipeline: Partitioned store, aggregation, orchestration
- outputs: Result export, geometry join, species lookup

Authors: hexdiv contributors
"""

__version__ = "0.1.0"
