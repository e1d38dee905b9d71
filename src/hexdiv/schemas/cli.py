"""CLIConfig: Command-line operational overrides.

Minimal configuration for operational parameters that commonly change
between runs: source location, output path, resolutions, workers, verbosity.

This schema handles command-line arguments parsed by argparse.
"""

from typing import Literal, Optional
from pydantic import field_validator
from hexdiv.schemas.base import HexdivBaseModel


class CLIConfig(HexdivBaseModel):
    """Command-line configuration overrides.

    Operational-only settings that override user and param configs.
    Highest priority in config resolution.

    Usage
    -----
        cli_cfg = CLIConfig(
            source="/data/obis/occurrence.parquet",
            base_dir="/scratch/hexdiv_output",
            resolutions=[3],
        )

        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    source: Optional[str] = None
    base_dir: Optional[str] = None
    resolutions: Optional[list[int]] = None
    max_workers: Optional[int] = None
    keep_partitions: Optional[bool] = None
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = None

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        """Accept lowercase level names."""
        if isinstance(v, str):
            return v.upper().strip()
        return v

    def to_internal_overrides(self) -> dict:
        """Convert CLI config to internal config structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}

        if self.base_dir is not None:
            overrides["base_dir"] = str(self.base_dir)

        if self.source is not None:
            overrides["source"] = {"location": self.source}

        if self.resolutions is not None:
            overrides["indexer"] = {"resolutions": self.resolutions}

        if self.max_workers is not None:
            overrides["aggregator"] = {"max_workers": self.max_workers}

        if self.keep_partitions is not None:
            overrides["store"] = {"keep": self.keep_partitions}

        if self.log_level is not None:
            overrides["logging"] = {"level": self.log_level}

        return overrides
