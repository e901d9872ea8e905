"""
AgentPay ledger access.

The ledger (AgentPay contract) owns all authoritative state; everything in
this package is a read-only or submit-only view of it.
"""

from .client import LedgerClient
from .constants import (
    AGENT_PAY_ABI,
    CONTRACT_REGISTRY,
    LOG_EVENT_NAMES,
    explorer_tx_url,
)
from .revert_reasons import extract_revert_reason
from .rpc_wrapper import (
    BlockchainError,
    BlockchainTimeoutError,
    rpc_call_with_retry,
    with_timeout,
)

__all__ = [
    "AGENT_PAY_ABI",
    "BlockchainError",
    "BlockchainTimeoutError",
    "CONTRACT_REGISTRY",
    "LOG_EVENT_NAMES",
    "LedgerClient",
    "explorer_tx_url",
    "extract_revert_reason",
    "rpc_call_with_retry",
    "with_timeout",
]
