"""Core infrastructure for the hexdiv pipeline.

This module provides the error taxonomy shared by all pipeline stages.
"""

from hexdiv.core.errors import (
    HexdivError,
    InputDataError,
    StorageError,
    StorageWriteError,
    PartitionNotFoundError,
    NumericDomainError,
)

__all__ = [
    'HexdivError',
    'InputDataError',
    'StorageError',
    'StorageWriteError',
    'PartitionNotFoundError',
    'NumericDomainError',
]
