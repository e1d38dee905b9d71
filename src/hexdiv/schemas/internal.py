"""InternalConfig: Authoritative runtime configuration.

This is the ONLY config schema that runtime code sees. It is fully validated,
normalized, and contains NO optional fields that processing code depends on.

All .get() calls, fallback defaults, and validation logic are FORBIDDEN in
runtime code - everything is explicit here.
"""

from typing import Literal, Optional
from pydantic import Field, ConfigDict
from hexdiv.schemas.base import HexdivBaseModel


# =============================================================================
# Nested Configuration Models (Runtime)
# =============================================================================

class InternalSourceConfig(HexdivBaseModel):
    """Runtime source configuration.

    Note: location may be None while configs are merged. The pipeline
    orchestrator requires it before ingestion.
    """
    location: Optional[str]
    format: Literal["parquet"]
    longitude_column: str
    latitude_column: str
    min_depth_column: Optional[str]
    max_depth_column: Optional[str]
    species_column: str
    record_count_column: Optional[str]
    batch_size: int = Field(ge=1)


class InternalPartitionKeyConfig(HexdivBaseModel):
    """Runtime partition key derivation."""
    method: Literal["substring", "parent"]
    start: int
    length: int
    parent_resolution: int


class InternalIndexerConfig(HexdivBaseModel):
    """Runtime indexing configuration."""
    resolutions: list[int]
    partition_key: InternalPartitionKeyConfig


class InternalStoreConfig(HexdivBaseModel):
    """Runtime store configuration."""
    root: Optional[str]  # None -> <base_dir>/partitions
    compression: Literal["snappy", "gzip", "zstd", "lz4", "none"]
    keep: bool


class InternalDiversityConfig(HexdivBaseModel):
    """Runtime diversity configuration."""
    esn: int = Field(ge=1)


class InternalPassConfig(HexdivBaseModel):
    """Runtime aggregation pass."""
    name: str
    min_depth: Optional[float]
    max_depth: Optional[float]


class InternalAggregatorConfig(HexdivBaseModel):
    """Runtime aggregation configuration."""
    max_workers: int = Field(ge=1)


class InternalOutputConfig(HexdivBaseModel):
    """Runtime output configuration."""
    enabled: bool
    compression: Literal["snappy", "gzip", "zstd", "lz4", "none"]
    geometry: bool
    region_bbox: Optional[tuple[float, float, float, float]]


class InternalLoggingConfig(HexdivBaseModel):
    """Runtime logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


# =============================================================================
# Main InternalConfig
# =============================================================================

class InternalConfig(HexdivBaseModel):
    """Authoritative runtime configuration.

    This is the ONLY configuration schema that processing code sees.
    It is fully validated, immutable, and contains explicit values for
    all parameters.

    Usage
    -----
    Runtime modules receive InternalConfig and access fields directly:

        def __init__(self, config: InternalConfig):
            self.esn = config.diversity.esn  # NOT .get()
            self.resolutions = config.indexer.resolutions

    Rules
    -----
    - NO .get() calls
    - NO fallback defaults
    - NO validation

    All of that happens during config resolution, not in runtime code.
    """

    base_dir: str
    source: InternalSourceConfig
    indexer: InternalIndexerConfig
    store: InternalStoreConfig
    diversity: InternalDiversityConfig
    passes: list[InternalPassConfig]
    aggregator: InternalAggregatorConfig
    output: InternalOutputConfig
    logging: InternalLoggingConfig

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
        frozen=True,  # Immutable after construction
    )
