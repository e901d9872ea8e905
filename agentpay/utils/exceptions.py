"""
Exception handling utilities.

Defines categorized exception types for the keeper and the indexer.

Handling strategy by category:
- LedgerConfigurationError: fatal, raised once at startup
- LedgerFetchError: transient, skip the chunk/entity and continue
- GasEstimationError / SubmissionError: per-entity, retried next tick
"""

from web3.exceptions import Web3Exception


class AgentPayError(Exception):
    """Base exception for keeper and indexer errors."""
    pass


class LedgerConfigurationError(AgentPayError):
    """Raised when no ledger endpoint or contract is configured for the chain."""
    pass


class LedgerFetchError(AgentPayError):
    """Raised when a read from the ledger fails (logs, records, blocks)."""
    pass


class GasEstimationError(AgentPayError):
    """Raised when the execution dry-run reverts or cannot be estimated."""

    def __init__(self, agent_id: int, reason: str):
        self.agent_id = agent_id
        self.reason = reason
        super().__init__(f"Gas estimation failed for agent #{agent_id}: {reason}")


class SubmissionError(AgentPayError):
    """Raised when signing, sending or confirming an execution fails."""

    def __init__(self, agent_id: int, reason: str, tx_hash: str | None = None):
        self.agent_id = agent_id
        self.reason = reason
        self.tx_hash = tx_hash
        super().__init__(f"Execution submission failed for agent #{agent_id}: {reason}")


class ExecutionRevertedError(SubmissionError):
    """Raised when the execution transaction was mined with status 0."""
    pass


# Exception categories based on handling strategy

# Must log but can continue - the next chunk / entity / tick proceeds
MUST_LOG = (
    LedgerFetchError,
    GasEstimationError,
    SubmissionError,
    Web3Exception,
    ConnectionError,
    TimeoutError,
)

# Must raise - nothing useful can run without them
MUST_RAISE = (
    LedgerConfigurationError,
)


def must_log(exc: Exception) -> bool:
    """
    Check if exception must be logged and the work unit skipped.

    Args:
        exc: Exception to check

    Returns:
        True if exception is recoverable by skipping
    """
    return isinstance(exc, MUST_LOG)


def must_raise(exc: Exception) -> bool:
    """
    Check if exception must be raised.

    Args:
        exc: Exception to check

    Returns:
        True if exception is fatal
    """
    return isinstance(exc, MUST_RAISE)
