#!/usr/bin/env python3
"""``hexdiv`` Diversity Pipeline Runner.

Usage:
    python scripts/run_diversity_pipeline.py scripts/user_config.py
    python scripts/run_diversity_pipeline.py scripts/user_config.py --resolutions 3
    python scripts/run_diversity_pipeline.py scripts/user_config.py --source s3://bucket/occurrence/ -v

Note: User config in scripts/user_config.py, expert defaults in hexdiv.schemas.param
"""

import sys

from hexdiv.cli.run_pipeline import main


if __name__ == "__main__":
    sys.exit(main())
