"""hexdiv User Configuration.

This is the user-facing configuration file. Modify settings here to customize
the pipeline behavior. Advanced settings are in src/hexdiv/schemas/param.py

Usage:
    python scripts/run_diversity_pipeline.py scripts/user_config.py
    python scripts/run_diversity_pipeline.py scripts/user_config.py --resolutions 3,4,5
    hexdiv scripts/user_config.py --max-workers 4
"""

CONFIG = {
    # ========================================================================
    # SOURCE & OUTPUT
    # ========================================================================
    "SOURCE": "data/occurrence.parquet",  # Parquet file, directory or s3:// URI
    "BASE_DIR": "./output",               # All outputs go here

    # Darwin Core defaults are used for coordinates and depth; override
    # them under "source_config" if your export differs.
    "SPECIES_COLUMN": "species",
    "RECORD_COUNT_COLUMN": None,          # None = every row counts once
    "BATCH_SIZE": 1_000_000,              # Rows per source batch

    # ========================================================================
    # GRID
    # ========================================================================
    "RESOLUTIONS": [3, 4],                # H3 resolutions (0 coarse .. 15 fine)
    "PARTITION_METHOD": "substring",      # "substring" or "parent"

    # ========================================================================
    # DIVERSITY
    # ========================================================================
    "ESN": 50,                            # Hurlbert subsample size
    "DEPTH_THRESHOLD": 100,               # Passes: all, shallow (<100 m), deep (>=100 m)

    # ========================================================================
    # RUN
    # ========================================================================
    "MAX_WORKERS": 1,                     # Partitions computed concurrently
    "KEEP_PARTITIONS": False,             # Keep partition files after the run
    "REGION_BBOX": None,                  # (min_lon, min_lat, max_lon, max_lat)

    # ========================================================================
    # ADVANCED (nested overrides)
    # ========================================================================
    # "source_config": {
    #     "longitude_column": "decimalLongitude",
    #     "latitude_column": "decimalLatitude",
    # },
    # "output": {"geometry": True, "compression": "zstd"},
}
