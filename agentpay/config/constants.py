"""
Application constants.

Centralized constants for the keeper and history indexer.
"""

# ========================================================================
# BLOCKCHAIN CONSTANTS
# ========================================================================

# Blockchain operation timeouts (in seconds)
BLOCKCHAIN_TIMEOUT = 30.0  # Standard RPC operations (call, get_logs, get_block)
BLOCKCHAIN_RECEIPT_TIMEOUT = 120.0  # Waiting for an execution to be mined
BLOCKCHAIN_RPC_TIMEOUT = 30  # RPC provider HTTP timeout

# Blockchain retry settings
BLOCKCHAIN_MAX_RETRIES = 3  # Retry attempts for idempotent reads
BLOCKCHAIN_RETRY_DELAY_BASE = 2  # Base delay in seconds for exponential backoff

# Zero address marks the chain's native coin in AgentPay records
NATIVE_TOKEN = "0x0000000000000000000000000000000000000000"

# ========================================================================
# EVENT LOG SCANNING
# ========================================================================

# Mantle RPC rejects eth_getLogs ranges above 10,000 blocks
RPC_MAX_BLOCK_RANGE = 10_000
DEFAULT_LOG_CHUNK_SIZE = 9_000

# Concurrent reads during one indexer run
DEFAULT_SNAPSHOT_CONCURRENCY = 8
DEFAULT_TIMESTAMP_CONCURRENCY = 8

# ========================================================================
# KEEPER CONSTANTS
# ========================================================================

KEEPER_POLL_INTERVAL_SECONDS = 10
KEEPER_RATE_LIMIT_BACKOFF_SECONDS = 60

# Gas limit = estimate * multiplier; never below 1.2
GAS_LIMIT_MULTIPLIER = 1.2
MIN_GAS_LIMIT_MULTIPLIER = 1.2

# Substrings that identify an RPC rate-limit response
RATE_LIMIT_MARKERS = ("429", "Too Many Requests")

# ========================================================================
# HEALTH CHECK
# ========================================================================

HEALTH_CHECK_PORT = 8081
# Keeper is unhealthy if no tick finished within this many poll intervals
HEALTH_STALE_TICK_FACTOR = 3
HEALTH_STALE_TICK_SLACK_SECONDS = 30
