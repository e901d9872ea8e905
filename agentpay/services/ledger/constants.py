"""
AgentPay Ledger Constants.

Contains the AgentPay contract ABI subset, event names per lifecycle kind
and the known deployments per chain.
"""

from agentpay.models.lifecycle import EventKind

# Known AgentPay deployments
CONTRACT_REGISTRY: dict[int, str] = {
    5003: "0x250a83CC3Db28e0819b263c8E086F2d0d92a3E9f",  # Mantle Sepolia
    5000: "0x5dB9f58162feE7d957DF9E2f9112b4BF5D2a20d3",  # Mantle Mainnet
}

EXPLORERS: dict[int, str] = {
    5000: "https://mantlescan.xyz",
    5003: "https://sepolia.mantlescan.xyz",
}
DEFAULT_EXPLORER = "https://sepolia.mantlescan.xyz"

# Log fetch kinds. AgentStatusUpdated yields both PAUSED and RESUMED events.
EVENT_CREATED = "ScheduledPaymentCreated"
EVENT_EXECUTED = "ScheduledPaymentExecuted"
EVENT_CANCELLED = "ScheduledPaymentCancelled"
EVENT_STATUS_UPDATED = "AgentStatusUpdated"
EVENT_TOP_UP = "AgentTopUp"
EVENT_WITHDRAWN = "AgentWithdrawn"

# Fetch order within one chunk
LOG_EVENT_NAMES: tuple[str, ...] = (
    EVENT_CREATED,
    EVENT_EXECUTED,
    EVENT_CANCELLED,
    EVENT_STATUS_UPDATED,
    EVENT_TOP_UP,
    EVENT_WITHDRAWN,
)

# Events whose `from` topic is the agent owner
OWNER_FILTERABLE_EVENTS = frozenset({EVENT_CREATED, EVENT_EXECUTED})

EVENT_KIND_BY_NAME: dict[str, EventKind] = {
    EVENT_CREATED: EventKind.CREATED,
    EVENT_EXECUTED: EventKind.EXECUTED,
    EVENT_CANCELLED: EventKind.CANCELLED,
    EVENT_TOP_UP: EventKind.TOPPED_UP,
    EVENT_WITHDRAWN: EventKind.WITHDRAWN,
}

_SCHEDULED_PAYMENT_COMPONENTS = [
    {"internalType": "uint256", "name": "id", "type": "uint256"},
    {"internalType": "address", "name": "from", "type": "address"},
    {"internalType": "address", "name": "to", "type": "address"},
    {"internalType": "uint256", "name": "amount", "type": "uint256"},
    {"internalType": "address", "name": "token", "type": "address"},
    {"internalType": "uint256", "name": "nextExecution", "type": "uint256"},
    {"internalType": "uint256", "name": "interval", "type": "uint256"},
    {"internalType": "bool", "name": "isActive", "type": "bool"},
    {"internalType": "string", "name": "description", "type": "string"},
    {"internalType": "uint256", "name": "balance", "type": "uint256"},
    {"internalType": "uint256", "name": "tokenBalance", "type": "uint256"},
    {"internalType": "uint256", "name": "endDate", "type": "uint256"},
]

# AgentPay ABI subset used by the keeper and the indexer
AGENT_PAY_ABI = [
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "internalType": "uint256", "name": "id", "type": "uint256"},
            {"indexed": True, "internalType": "address", "name": "from", "type": "address"},
            {"indexed": True, "internalType": "address", "name": "to", "type": "address"},
            {"indexed": False, "internalType": "uint256", "name": "amount", "type": "uint256"},
            {"indexed": False, "internalType": "uint256", "name": "interval", "type": "uint256"},
        ],
        "name": EVENT_CREATED,
        "type": "event",
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "internalType": "uint256", "name": "id", "type": "uint256"},
            {"indexed": True, "internalType": "address", "name": "from", "type": "address"},
            {"indexed": True, "internalType": "address", "name": "to", "type": "address"},
            {"indexed": False, "internalType": "uint256", "name": "amount", "type": "uint256"},
        ],
        "name": EVENT_EXECUTED,
        "type": "event",
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "internalType": "uint256", "name": "id", "type": "uint256"},
        ],
        "name": EVENT_CANCELLED,
        "type": "event",
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "internalType": "uint256", "name": "id", "type": "uint256"},
            {"indexed": False, "internalType": "bool", "name": "isActive", "type": "bool"},
        ],
        "name": EVENT_STATUS_UPDATED,
        "type": "event",
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "internalType": "uint256", "name": "id", "type": "uint256"},
            {"indexed": False, "internalType": "uint256", "name": "amount", "type": "uint256"},
        ],
        "name": EVENT_TOP_UP,
        "type": "event",
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "internalType": "uint256", "name": "id", "type": "uint256"},
            {"indexed": False, "internalType": "uint256", "name": "amount", "type": "uint256"},
        ],
        "name": EVENT_WITHDRAWN,
        "type": "event",
    },
    {
        "inputs": [{"internalType": "uint256", "name": "_id", "type": "uint256"}],
        "name": "executeScheduledPayment",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "uint256", "name": "_id", "type": "uint256"}],
        "name": "getScheduledPayment",
        "outputs": [
            {
                "components": _SCHEDULED_PAYMENT_COMPONENTS,
                "internalType": "struct AgentPay.ScheduledPayment",
                "name": "",
                "type": "tuple",
            }
        ],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "nextScheduledPaymentId",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]


def explorer_tx_url(chain_id: int | None, tx_hash: str) -> str:
    """
    Build a block explorer link for a transaction.

    Unknown chains fall back to the Mantle Sepolia explorer.
    """
    base = EXPLORERS.get(chain_id, DEFAULT_EXPLORER) if chain_id else DEFAULT_EXPLORER
    return f"{base}/tx/{tx_hash}"
