"""Tests for settings validation."""

import pytest
from pydantic import ValidationError

from agentpay.config.settings import Settings


class TestSettings:
    """Field defaults and validators."""

    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.keeper_poll_interval == 10
        assert settings.rate_limit_backoff == 60
        assert settings.gas_limit_multiplier == 1.2
        assert settings.log_chunk_size == 9000
        assert settings.deploy_block == 0

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("KEEPER_POLL_INTERVAL", "30")
        monkeypatch.setenv("DEPLOY_BLOCK", "123456")

        settings = Settings(_env_file=None)

        assert settings.keeper_poll_interval == 30
        assert settings.deploy_block == 123456

    def test_gas_multiplier_below_minimum_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, gas_limit_multiplier=1.1)

    def test_gas_multiplier_above_minimum_accepted(self):
        assert Settings(_env_file=None, gas_limit_multiplier=1.5).gas_limit_multiplier == 1.5

    def test_chunk_size_over_rpc_limit_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_chunk_size=10_001)

    def test_invalid_contract_address_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, contract_address="0x1234")

    def test_empty_contract_address_is_none(self):
        assert Settings(_env_file=None, contract_address="").contract_address is None

    def test_log_level_normalized(self):
        assert Settings(_env_file=None, log_level="warning").log_level == "WARNING"

    def test_unknown_log_level_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_level="loud")
