"""Error taxonomy for the hexdiv pipeline.

Key distinction:
- InputDataError: Bad occurrence record (dropped during indexing, never fatal)
- StorageError: Partition I/O failure (fatal to the affected run)
- NumericDomainError: Index arithmetic left its domain (fatal, never NaN)
- ContractViolation: Pipeline bug (see hexdiv.contracts)
"""


class HexdivError(Exception):
    """Base class for all hexdiv errors."""
    pass


class InputDataError(HexdivError, ValueError):
    """Raised when a single occurrence record is malformed.

    Batch indexing never raises this: malformed rows are filtered out and
    counted. Scalar helpers (e.g. ``SpatialIndexer.cell_for``) raise it so
    callers can decide.
    """
    pass


class StorageError(HexdivError):
    """Base class for partitioned store failures."""
    pass


class StorageWriteError(StorageError):
    """Raised when persisting a partition fails."""
    pass


class PartitionNotFoundError(StorageError, KeyError):
    """Raised when reading a partition key that was never written.

    This is NOT the same as an empty partition. A partition that exists but
    has no rows after filtering returns an empty frame.
    """

    def __init__(self, resolution: int, key: str):
        self.resolution = resolution
        self.key = key
        super().__init__(f"Partition '{key}' not found at resolution {resolution}")

    def __str__(self):
        # KeyError quotes its argument
        return self.args[0]


class NumericDomainError(HexdivError, ArithmeticError):
    """Raised when a diversity index would be undefined (NaN or infinite)."""
    pass
