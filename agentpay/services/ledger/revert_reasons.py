"""
Revert reason mapping.

Turns web3 / RPC exceptions raised by a dry-run or a mined execution into
short operator-facing reasons.
"""

import re

from web3.exceptions import ContractLogicError

# Known AgentPay revert strings and their operator-facing text
KNOWN_REVERTS: dict[str, str] = {
    "Not due yet": "Payment is not due yet",
    "Payment not active": "Agent is paused or cancelled",
    "Not active": "Agent is paused or cancelled",
    "Insufficient balance": "Agent balance is below the payment amount",
    "Insufficient agent balance": "Agent balance is below the payment amount",
    "Payment ended": "Agent end date has passed",
    "Invalid id": "Agent does not exist",
    "Transfer failed": "Token transfer to recipient failed",
    "insufficient funds": "Keeper wallet cannot cover gas",
    "nonce too low": "Keeper nonce out of sync",
}

_REASON_PATTERNS = (
    re.compile(r"execution reverted:\s*([^,'\"\n]+)", re.IGNORECASE),
    re.compile(r"reason:\s*([^,'\"\n]+)", re.IGNORECASE),
)

UNKNOWN_REVERT = "Transaction would fail"


def extract_revert_reason(error: BaseException | str) -> str:
    """
    Extract a readable reason from a contract revert.

    Args:
        error: Exception raised by estimate_gas / call / receipt wait,
            or its string form

    Returns:
        Human-readable reason
    """
    if isinstance(error, ContractLogicError) and error.message:
        raw = error.message
    else:
        raw = str(error)

    for needle, friendly in KNOWN_REVERTS.items():
        if needle.lower() in raw.lower():
            return friendly

    for pattern in _REASON_PATTERNS:
        match = pattern.search(raw)
        if match:
            reason = match.group(1).strip()
            if reason:
                return reason

    if raw.strip().lower() == "execution reverted":
        return UNKNOWN_REVERT

    return raw.strip() or UNKNOWN_REVERT
