"""ParamConfig: Expert defaults for the hexdiv pipeline.

This module defines the complete default configuration. ALL pipeline
parameters must have defaults here. No runtime code should define fallback
values - this is the single source of truth for defaults.

Runtime code NEVER reads from ParamConfig directly - it only receives InternalConfig.
"""

from typing import Literal, Optional
from pydantic import Field, field_validator, model_validator
from hexdiv.schemas.base import HexdivBaseModel

# H3 resolutions run from 0 (coarsest) to 15 (finest)
MAX_RESOLUTION = 15


# =============================================================================
# Nested Configuration Models
# =============================================================================

class SourceConfig(HexdivBaseModel):
    """Occurrence dataset configuration.

    Column defaults follow the Darwin Core names used by OBIS and GBIF
    Parquet exports.
    """
    location: Optional[str] = None
    format: Literal["parquet"] = "parquet"
    longitude_column: str = "decimalLongitude"
    latitude_column: str = "decimalLatitude"
    min_depth_column: Optional[str] = "minimumDepthInMeters"
    max_depth_column: Optional[str] = "maximumDepthInMeters"
    species_column: str = "species"
    record_count_column: Optional[str] = None
    batch_size: int = Field(1_000_000, ge=1, description="Rows per source batch")


class PartitionKeyConfig(HexdivBaseModel):
    """Partition key derivation from cell ids."""
    method: Literal["substring", "parent"] = "substring"
    start: int = Field(5, ge=0, description="Substring offset into the cell id")
    length: int = Field(2, ge=1, description="Substring length")
    parent_resolution: int = Field(0, ge=0, le=MAX_RESOLUTION)

    @field_validator("method", mode="before")
    @classmethod
    def normalize_method_name(cls, v):
        """Normalize method names to lowercase."""
        if isinstance(v, str):
            return v.lower().strip()
        return v


class IndexerConfig(HexdivBaseModel):
    """Spatial indexing configuration."""
    resolutions: list[int] = Field(default_factory=lambda: [3, 4])
    partition_key: PartitionKeyConfig = Field(default_factory=PartitionKeyConfig)

    @field_validator("resolutions")
    @classmethod
    def check_resolutions(cls, v):
        """Resolutions must be valid, unique, and non-empty."""
        if not v:
            raise ValueError("at least one resolution is required")
        for res in v:
            if not 0 <= res <= MAX_RESOLUTION:
                raise ValueError(f"resolution {res} outside 0..{MAX_RESOLUTION}")
        return sorted(set(v))

    @model_validator(mode="after")
    def check_parent_resolution(self):
        """Parent partitioning needs a parent coarser than every resolution."""
        pk = self.partition_key
        if pk.method == "parent" and pk.parent_resolution > min(self.resolutions):
            raise ValueError(
                f"parent_resolution {pk.parent_resolution} is finer than "
                f"resolution {min(self.resolutions)}"
            )
        return self


class StoreConfig(HexdivBaseModel):
    """Partitioned store configuration."""
    root: Optional[str] = None
    compression: Literal["snappy", "gzip", "zstd", "lz4", "none"] = "snappy"
    keep: bool = Field(False, description="Keep partitions on disk after the run")


class DiversityConfig(HexdivBaseModel):
    """Diversity index configuration."""
    esn: int = Field(50, ge=1, description="Hurlbert subsample size")


class PassConfig(HexdivBaseModel):
    """One aggregation pass: a named depth band.

    No bounds means no filter (records without depth included). Any bound
    excludes records without depth. Bands are half-open: min <= depth < max.
    """
    name: str
    min_depth: Optional[float] = None
    max_depth: Optional[float] = None

    @model_validator(mode="after")
    def check_band(self):
        """min_depth must be below max_depth."""
        if self.min_depth is not None and self.max_depth is not None:
            if self.min_depth >= self.max_depth:
                raise ValueError(
                    f"pass '{self.name}': min_depth {self.min_depth} >= max_depth {self.max_depth}"
                )
        return self


def default_passes(threshold: float = 100.0) -> list:
    """All depths, shallow (< threshold) and deep (>= threshold)."""
    return [
        {"name": "all"},
        {"name": "shallow", "max_depth": float(threshold)},
        {"name": "deep", "min_depth": float(threshold)},
    ]


class AggregatorConfig(HexdivBaseModel):
    """Aggregation orchestrator configuration."""
    max_workers: int = Field(1, ge=1, description="Partitions computed concurrently")


class OutputConfig(HexdivBaseModel):
    """Output file configuration."""
    enabled: bool = True
    compression: Literal["snappy", "gzip", "zstd", "lz4", "none"] = "snappy"
    geometry: bool = Field(False, description="Write cell polygons (GeoParquet)")
    region_bbox: Optional[tuple[float, float, float, float]] = Field(
        None, description="(min_lon, min_lat, max_lon, max_lat) to restrict results"
    )


class LoggingConfig(HexdivBaseModel):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"


# =============================================================================
# Main ParamConfig
# =============================================================================

class ParamConfig(HexdivBaseModel):
    """Complete expert configuration with all defaults.

    This is the single source of truth for all pipeline parameters.
    Every tunable parameter MUST have a default here.

    Usage
    -----
    This config is NOT used directly by runtime code. It serves as the
    base layer in config resolution:

        internal_cfg = resolve_config(param_cfg, user_cfg, cli_cfg)

    Runtime code only sees InternalConfig.
    """

    base_dir: str = "./output"
    source: SourceConfig = Field(default_factory=SourceConfig)
    indexer: IndexerConfig = Field(default_factory=IndexerConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    diversity: DiversityConfig = Field(default_factory=DiversityConfig)
    passes: list[PassConfig] = Field(
        default_factory=lambda: [PassConfig(**p) for p in default_passes()]
    )
    aggregator: AggregatorConfig = Field(default_factory=AggregatorConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("passes")
    @classmethod
    def check_unique_pass_names(cls, v):
        """Pass names label result tables, so they must be unique."""
        names = [p.name for p in v]
        if len(names) != len(set(names)):
            raise ValueError(f"duplicate pass names: {names}")
        return v
