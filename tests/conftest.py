"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# Minimal environment for Settings; never touch a real endpoint
os.environ.setdefault("RPC_URL", "http://localhost:8545")
os.environ.setdefault("CHAIN_ID", "5003")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("HEALTH_CHECK_ENABLED", "false")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest  # noqa: E402

from agentpay.config.settings import Settings  # noqa: E402
from tests.fakes import FakeLedger  # noqa: E402


@pytest.fixture
def test_settings():
    """Settings with small chunks so multi-chunk paths are exercised."""
    return Settings(
        _env_file=None,
        rpc_url="http://localhost:8545",
        chain_id=5003,
        deploy_block=0,
        keeper_private_key="0x" + "11" * 32,
        log_chunk_size=100,
        keeper_poll_interval=10,
        rate_limit_backoff=60,
    )


@pytest.fixture
def fake_ledger():
    """Empty in-memory ledger at block 1000."""
    return FakeLedger()


@pytest.fixture
def sample_transaction_hash():
    """Sample transaction hash for testing."""
    return "0x1234567890abcdef1234567890abcdef1234567890abcdef1234567890abcdef"
