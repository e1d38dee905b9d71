"""Base contract enforcement utilities.

The require() function is the single enforcement mechanism for all contracts.
"""

from hexdiv.contracts.failure import ContractViolation


def require(condition: bool, message: str) -> None:
    """Enforce a pipeline contract.

    This is called at stage boundaries to verify the preceding stage
    produced the guaranteed invariants. It is fail-fast: no recovery,
    no fallback, no silence.

    Parameters
    ----------
    condition : bool
        The invariant that must be true. If False, ContractViolation is raised.

    message : str
        Error message explaining the contract violation (for debugging).

    Raises
    ------
    ContractViolation
        If condition is False. This indicates a bug in pipeline logic.

    Examples
    --------
    >>> require("cell_id" in df.columns, "Partition contract: missing 'cell_id'")
    >>> require(df.index.is_unique, "Merge contract: duplicate cell ids")
    """
    if not condition:
        raise ContractViolation(message)
