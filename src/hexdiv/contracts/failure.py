"""Exception type for contract violations.

Contracts fail fast, loud, and once. All violations raise the same
exception type, allowing caller to handle pipeline bugs uniformly.
"""


class ContractViolation(RuntimeError):
    """Raised when a pipeline contract is violated.

    This indicates a bug in pipeline logic, not bad input data or storage
    trouble. It means a pipeline stage did not produce the invariants it
    promised.

    Key distinction:
    - ValueError: User/config error (handled by Pydantic)
    - InputDataError: Bad occurrence record (dropped during indexing)
    - StorageError: Partition I/O failure
    - ContractViolation: Pipeline bug (programmer error)
    """
    pass
