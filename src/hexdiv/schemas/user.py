"""UserConfig: Forgiving, minimal user-facing configuration.

This schema accepts user inputs in a variety of formats, with aliases
for common naming patterns (e.g., SOURCE → source.location, ESN → diversity.esn).

UserConfig is intentionally minimal - users only specify what they want
to override from the expert defaults. Validation is lenient to accept
both uppercase and lowercase keys, integers where floats are expected, etc.
"""

from typing import Literal, Optional, Any
from pydantic import Field, field_validator, model_validator
from hexdiv.schemas.base import HexdivBaseModel
from hexdiv.schemas.param import default_passes


class UserSourceConfig(HexdivBaseModel):
    """User-facing source config."""
    location: Optional[str] = None
    format: Optional[str] = None
    longitude_column: Optional[str] = None
    latitude_column: Optional[str] = None
    min_depth_column: Optional[str] = None
    max_depth_column: Optional[str] = None
    species_column: Optional[str] = None
    record_count_column: Optional[str] = None
    batch_size: Optional[int] = None


class UserIndexerConfig(HexdivBaseModel):
    """User-facing indexer config."""
    resolutions: Optional[list[int]] = None
    partition_key: Optional[dict[str, Any]] = None


class UserStoreConfig(HexdivBaseModel):
    """User-facing store config."""
    root: Optional[str] = None
    compression: Optional[str] = None
    keep: Optional[bool] = None


class UserOutputConfig(HexdivBaseModel):
    """User-facing output config."""
    enabled: Optional[bool] = None
    compression: Optional[str] = None
    geometry: Optional[bool] = None
    region_bbox: Optional[tuple[float, float, float, float]] = None


class UserConfig(HexdivBaseModel):
    """User-facing configuration schema.

    Minimal, forgiving, and uses common aliases. Users only specify
    what they want to override from ParamConfig defaults.

    Usage
    -----
        user_cfg = UserConfig(
            source="s3://obis-open-data/occurrence/",
            base_dir="/data/hexdiv",
            resolutions=[3, 4],
            depth_threshold=200,
        )

        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    # Top-level operational settings
    source: Optional[str] = Field(None, alias="SOURCE")
    base_dir: Optional[str] = Field(None, alias="BASE_DIR")

    # Source columns (flat aliases)
    species_column: Optional[str] = Field(None, alias="SPECIES_COLUMN")
    record_count_column: Optional[str] = Field(None, alias="RECORD_COUNT_COLUMN")
    batch_size: Optional[int] = Field(None, alias="BATCH_SIZE")

    # Indexing settings (flat aliases)
    resolutions: Optional[list[int]] = Field(None, alias="RESOLUTIONS")
    partition_method: Optional[Literal["substring", "parent"]] = Field(None, alias="PARTITION_METHOD")

    # Diversity settings (flat aliases)
    esn: Optional[int] = Field(None, alias="ESN")
    depth_threshold: Optional[float] = Field(None, alias="DEPTH_THRESHOLD")
    passes: Optional[list[dict[str, Any]]] = Field(None, alias="PASSES")

    # Run settings (flat aliases)
    max_workers: Optional[int] = Field(None, alias="MAX_WORKERS")
    keep_partitions: Optional[bool] = Field(None, alias="KEEP_PARTITIONS")
    region_bbox: Optional[tuple[float, float, float, float]] = Field(None, alias="REGION_BBOX")

    # Nested overrides (advanced users)
    source_: Optional[UserSourceConfig] = Field(None, alias="source_config")
    indexer: Optional[UserIndexerConfig] = None
    store: Optional[UserStoreConfig] = None
    output: Optional[UserOutputConfig] = None

    model_config = HexdivBaseModel.model_config.copy()
    # Allow forgiving input dictionaries (ignore unknown legacy keys)
    model_config.update({"populate_by_name": True, "extra": "ignore"})

    @field_validator("depth_threshold", mode="before")
    @classmethod
    def coerce_numeric_fields(cls, v):
        """Accept int or float for numeric fields."""
        if v is not None:
            return float(v)
        return v

    @field_validator("partition_method", mode="before")
    @classmethod
    def normalize_method_names(cls, v):
        """Normalize method names to lowercase."""
        if isinstance(v, str):
            return v.lower().strip()
        return v

    @model_validator(mode="after")
    def check_passes_or_threshold(self):
        """An explicit pass list and a depth threshold are two ways to say
        the same thing; accepting both would silently drop one."""
        if self.passes is not None and self.depth_threshold is not None:
            raise ValueError("give either PASSES or DEPTH_THRESHOLD, not both")
        return self

    def to_internal_overrides(self) -> dict:
        """Convert flat UserConfig to nested InternalConfig structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}

        if self.base_dir is not None:
            overrides["base_dir"] = str(self.base_dir)

        # Source section
        source = {}
        if self.source is not None:
            source["location"] = self.source
        if self.species_column is not None:
            source["species_column"] = self.species_column
        if self.record_count_column is not None:
            source["record_count_column"] = self.record_count_column
        if self.batch_size is not None:
            source["batch_size"] = self.batch_size

        # Merge with explicit source config
        if self.source_ is not None:
            source.update(self.source_.model_dump(exclude_none=True))

        if source:
            overrides["source"] = source

        # Indexer section
        indexer = {}
        if self.resolutions is not None:
            indexer["resolutions"] = self.resolutions
        if self.partition_method is not None:
            indexer["partition_key"] = {"method": self.partition_method}

        # Merge with explicit indexer config
        if self.indexer is not None:
            nested = self.indexer.model_dump(exclude_none=True)
            if "partition_key" in nested and "partition_key" in indexer:
                indexer["partition_key"].update(nested.pop("partition_key"))
            indexer.update(nested)

        if indexer:
            overrides["indexer"] = indexer

        # Store section
        store = {}
        if self.keep_partitions is not None:
            store["keep"] = self.keep_partitions
        if self.store is not None:
            store.update(self.store.model_dump(exclude_none=True))
        if store:
            overrides["store"] = store

        # Diversity section
        if self.esn is not None:
            overrides["diversity"] = {"esn": self.esn}

        # Passes replace the default list wholesale
        if self.depth_threshold is not None:
            overrides["passes"] = default_passes(self.depth_threshold)
        elif self.passes is not None:
            overrides["passes"] = self.passes

        if self.max_workers is not None:
            overrides["aggregator"] = {"max_workers": self.max_workers}

        # Output section
        output = {}
        if self.region_bbox is not None:
            output["region_bbox"] = self.region_bbox
        if self.output is not None:
            output.update(self.output.model_dump(exclude_none=True))
        if output:
            overrides["output"] = output

        return overrides
