"""Pipeline contracts: fail-fast enforcement of stage invariants.

This package enforces semantic guarantees between pipeline stages.
Contracts fail immediately and loudly when pipeline stages don't produce
their promised invariants.

Key principle:
- Pydantic validates config correctness
- Contracts validate pipeline correctness
- Indexing handles bad records by dropping them
"""

from hexdiv.contracts.failure import ContractViolation
from hexdiv.contracts.base import require
from hexdiv.contracts.indexing import assert_indexed
from hexdiv.contracts.partition import assert_partition_records
from hexdiv.contracts.aggregate import assert_aggregate_table, assert_disjoint_merge

__all__ = [
    "ContractViolation",
    "require",
    "assert_indexed",
    "assert_partition_records",
    "assert_aggregate_table",
    "assert_disjoint_merge",
]
