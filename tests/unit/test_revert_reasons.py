"""Tests for revert reason extraction."""

from web3.exceptions import ContractLogicError

from agentpay.services.ledger.revert_reasons import UNKNOWN_REVERT, extract_revert_reason


class TestExtractRevertReason:
    """Mapping of web3 errors to operator-facing reasons."""

    def test_known_contract_reason(self):
        error = ContractLogicError("execution reverted: Not due yet")
        assert extract_revert_reason(error) == "Payment is not due yet"

    def test_known_reason_is_case_insensitive(self):
        assert (
            extract_revert_reason("Execution Reverted: INSUFFICIENT BALANCE")
            == "Agent balance is below the payment amount"
        )

    def test_unknown_reason_is_extracted(self):
        error = ContractLogicError("execution reverted: Custom guard tripped")
        assert extract_revert_reason(error) == "Custom guard tripped"

    def test_reason_field_in_message(self):
        assert extract_revert_reason("call failed, reason: Paused by owner") == "Paused by owner"

    def test_bare_revert(self):
        assert extract_revert_reason(ContractLogicError("execution reverted")) == UNKNOWN_REVERT

    def test_keeper_gas_funds(self):
        error = ValueError("insufficient funds for gas * price + value")
        assert extract_revert_reason(error) == "Keeper wallet cannot cover gas"

    def test_other_errors_pass_through(self):
        assert extract_revert_reason(ConnectionError("connection reset")) == "connection reset"

    def test_empty_message(self):
        assert extract_revert_reason(RuntimeError("")) == UNKNOWN_REVERT
