"""Command-line interface modules for hexdiv pipeline execution.

This package contains core execution logic, making scripts/ optional and deletable.
"""

from hexdiv.cli.run_pipeline import run_diversity_pipeline

__all__ = ['run_diversity_pipeline']
