"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from agentpay.config.constants import (
    BLOCKCHAIN_RECEIPT_TIMEOUT,
    DEFAULT_LOG_CHUNK_SIZE,
    DEFAULT_SNAPSHOT_CONCURRENCY,
    DEFAULT_TIMESTAMP_CONCURRENCY,
    GAS_LIMIT_MULTIPLIER,
    HEALTH_CHECK_PORT,
    KEEPER_POLL_INTERVAL_SECONDS,
    KEEPER_RATE_LIMIT_BACKOFF_SECONDS,
    MIN_GAS_LIMIT_MULTIPLIER,
    RPC_MAX_BLOCK_RANGE,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Ledger endpoint
    rpc_url: str | None = None
    contract_address: str | None = None
    chain_id: int | None = Field(
        default=None,
        description="Chain ID; detected from the RPC endpoint when unset",
    )
    deploy_block: int = Field(
        default=0, ge=0, description="First block to scan for AgentPay events"
    )

    # Keeper wallet
    keeper_private_key: str | None = None

    # Keeper loop
    keeper_poll_interval: int = Field(
        default=KEEPER_POLL_INTERVAL_SECONDS,
        ge=1,
        description="Seconds to sleep between keeper ticks",
    )
    rate_limit_backoff: int = Field(
        default=KEEPER_RATE_LIMIT_BACKOFF_SECONDS,
        ge=1,
        description="Seconds to wait after the RPC reports rate limiting",
    )
    gas_limit_multiplier: float = Field(
        default=GAS_LIMIT_MULTIPLIER,
        description="Safety buffer applied to gas estimates",
    )
    receipt_timeout: float = Field(
        default=BLOCKCHAIN_RECEIPT_TIMEOUT, gt=0, description="Seconds to wait for a receipt"
    )

    # Indexer
    log_chunk_size: int = Field(
        default=DEFAULT_LOG_CHUNK_SIZE,
        ge=1,
        le=RPC_MAX_BLOCK_RANGE,
        description="Blocks per eth_getLogs request",
    )
    snapshot_concurrency: int = Field(default=DEFAULT_SNAPSHOT_CONCURRENCY, ge=1)
    timestamp_concurrency: int = Field(default=DEFAULT_TIMESTAMP_CONCURRENCY, ge=1)

    # Application
    log_level: str = "INFO"
    log_file: str | None = None
    health_check_enabled: bool = True
    health_check_port: int = Field(
        default=HEALTH_CHECK_PORT, ge=1, le=65535, description="Health check HTTP server port"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator('contract_address')
    @classmethod
    def validate_contract_address(cls, v: str | None) -> str | None:
        """Validate AgentPay contract address."""
        if v is None or v == "":
            return None
        if not v.startswith('0x') or len(v) != 42:
            raise ValueError(
                f'Invalid contract address: {v}. '
                'Must start with 0x and be 42 characters long.'
            )
        try:
            int(v[2:], 16)
        except ValueError as exc:
            raise ValueError(f'Invalid contract address format: {v}') from exc
        return v

    @field_validator('gas_limit_multiplier')
    @classmethod
    def validate_gas_multiplier(cls, v: float) -> float:
        """Reject gas buffers below the safety minimum."""
        if v < MIN_GAS_LIMIT_MULTIPLIER:
            raise ValueError(
                f'gas_limit_multiplier must be >= {MIN_GAS_LIMIT_MULTIPLIER}, got {v}'
            )
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize log level name."""
        level = v.upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f'Unknown log level: {v}')
        return level


# Global settings instance
settings = Settings()
