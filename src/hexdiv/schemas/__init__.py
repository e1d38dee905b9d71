"""Pydantic configuration schemas for the hexdiv pipeline.

This module provides strictly typed configuration models for the hexdiv
diversity pipeline. All configuration validation, coercion, and
normalization happens at schema validation time via Pydantic.

Exports
-------
resolve_config : function
    Single entrypoint for configuration resolution
InternalConfig : class
    Fully validated, authoritative runtime configuration
ParamConfig : class
    Expert defaults (complete)
UserConfig : class
    User-facing configuration (forgiving, minimal)
CLIConfig : class
    Command-line operational overrides
"""

from hexdiv.schemas.resolve import resolve_config
from hexdiv.schemas.internal import InternalConfig
from hexdiv.schemas.param import ParamConfig
from hexdiv.schemas.user import UserConfig
from hexdiv.schemas.cli import CLIConfig

__all__ = [
    'resolve_config',
    'InternalConfig',
    'ParamConfig',
    'UserConfig',
    'CLIConfig',
]
