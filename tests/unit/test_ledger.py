"""
Тесты для ledger границы: receipts, ProtocolContracts, SnapshotReader, TokenService

Проверяемые инварианты:
1. Revert и LogError debt kernel одинаково → TransactionReverted
2. Unlimited allowance не требует новой транзакции
3. Снапшот читается целиком до проверок (collateral токен по индексу)
"""

import pytest

from src.core.exceptions import SchemaInvalid, TransactionReverted
from src.core.domain.token import UNLIMITED_ALLOWANCE_IN_BASE_UNITS
from src.ledger import (
    DebtKernelError,
    LedgerClient,
    SnapshotReader,
    TokenService,
    TransactionReceipt,
    agreement_token_id,
    describe_kernel_error,
    raise_for_receipt,
)
from tests.fakes import (
    COLLATERAL_TOKEN,
    CREDITOR,
    DEBTOR,
    PRINCIPAL_TOKEN,
    START_TIME,
    FakeLedger,
    collateralized_terms,
    fully_signed,
    funded_ledger,
    make_contracts,
    make_order,
)


@pytest.fixture
def ledger():
    return funded_ledger()


@pytest.fixture
def tokens(ledger):
    return TokenService(ledger, ledger.contracts)


# =============================================================================
# RECEIPTS
# =============================================================================


class TestReceipts:
    def test_success(self):
        receipt = TransactionReceipt(tx_hash="0x01", status=True, block_number=1)
        assert receipt.succeeded
        assert raise_for_receipt(receipt) is receipt

    def test_revert(self):
        receipt = TransactionReceipt(tx_hash="0x01", status=False, block_number=1, revert_reason="nope")
        with pytest.raises(TransactionReverted) as exc_info:
            raise_for_receipt(receipt)
        assert exc_info.value.reason == "nope"
        assert exc_info.value.tx_hash == "0x01"

    def test_kernel_log_error(self):
        receipt = TransactionReceipt(
            tx_hash="0x01", status=True, block_number=1, kernel_error_codes=(0, 7)
        )
        assert not receipt.succeeded
        with pytest.raises(TransactionReverted) as exc_info:
            raise_for_receipt(receipt)
        assert exc_info.value.reason == "DEBT_ORDER_ALREADY_FILLED, ORDER_INVALID_EXPIRED"

    def test_describe_kernel_error(self):
        assert describe_kernel_error(DebtKernelError.ORDER_INVALID_NON_CONSENSUAL) == "ORDER_INVALID_NON_CONSENSUAL"
        assert describe_kernel_error(42) == "UNKNOWN_KERNEL_ERROR_42"


# =============================================================================
# PROTOCOL CONTRACTS
# =============================================================================


class TestProtocolContracts:
    def test_addresses_checksummed(self):
        contracts = make_contracts()
        assert contracts.debt_kernel != contracts.debt_kernel.lower()

    def test_terms_contract_lookup(self):
        contracts = make_contracts()
        address = contracts.terms_contract_for("SimpleInterestTermsContract")
        assert contracts.type_for_terms_contract(address.lower()) == "SimpleInterestTermsContract"
        assert contracts.type_for_terms_contract("0x" + "99" * 20) is None
        with pytest.raises(KeyError):
            contracts.terms_contract_for("CompoundInterestTermsContract")

    def test_fake_ledger_is_ledger_client(self):
        assert isinstance(FakeLedger(), LedgerClient)


# =============================================================================
# SNAPSHOT READER
# =============================================================================


class TestSnapshotReader:
    @pytest.mark.asyncio
    async def test_token_state(self, ledger):
        state = await SnapshotReader(ledger, ledger.contracts).read_token_state(CREDITOR.address, PRINCIPAL_TOKEN)
        assert state.token_symbol == "DAI"
        assert state.balance == 10_000 * 10**18
        assert state.spender == ledger.contracts.token_transfer_proxy

    @pytest.mark.asyncio
    async def test_fill_snapshot(self, ledger):
        terms = collateralized_terms()
        order = fully_signed(make_order(terms))
        snapshot = await SnapshotReader(ledger, ledger.contracts).read_fill_snapshot(order, terms)

        assert snapshot.current_time == START_TIME
        assert snapshot.native_balance(CREDITOR.address) == 10**18
        assert snapshot.collateral_token == COLLATERAL_TOKEN
        assert snapshot.token_state(DEBTOR.address, COLLATERAL_TOKEN).balance == 1_000 * 10**18
        assert not snapshot.issuance_exists
        assert not snapshot.order_cancelled

    @pytest.mark.asyncio
    async def test_fill_snapshot_unknown_collateral_index(self, ledger):
        terms = collateralized_terms().model_copy(
            update={"collateral": collateralized_terms().collateral.model_copy(update={"collateral_token_index": 9})}
        )
        order = fully_signed(make_order(terms))
        snapshot = await SnapshotReader(ledger, ledger.contracts).read_fill_snapshot(order, terms)
        assert snapshot.collateral_token is None

    @pytest.mark.asyncio
    async def test_agreement_snapshot_unknown_terms_contract(self, ledger):
        order = make_order()
        ledger.registry_entries[order.agreement_id] = {
            "beneficiary": CREDITOR.address,
            "termsContract": "0x" + "99" * 20,
            "termsContractParameters": 0,
            "issuanceBlockTimestamp": START_TIME,
        }
        ledger.debt_token_owners[agreement_token_id(order.agreement_id)] = CREDITOR.address

        with pytest.raises(SchemaInvalid) as exc_info:
            await SnapshotReader(ledger, ledger.contracts).read_agreement_snapshot(order.agreement_id)
        assert exc_info.value.field == "termsContract"

    @pytest.mark.asyncio
    async def test_agreement_snapshot(self, ledger):
        order = make_order()
        ledger.registry_entries[order.agreement_id] = {
            "beneficiary": CREDITOR.address,
            "termsContract": order.terms_contract,
            "termsContractParameters": order.terms_contract_parameters,
            "issuanceBlockTimestamp": START_TIME,
        }
        ledger.debt_token_owners[agreement_token_id(order.agreement_id)] = CREDITOR.address
        ledger.repaid[order.agreement_id] = 7

        snapshot = await SnapshotReader(ledger, ledger.contracts).read_agreement_snapshot(
            order.agreement_id, payer=DEBTOR.address
        )
        assert snapshot.terms_parameters == order.terms_parameters
        assert snapshot.terms_contract_type == order.terms_contract_type
        assert snapshot.value_repaid_to_date == 7
        assert snapshot.beneficiary == CREDITOR.address
        assert not snapshot.collateral_locked
        assert snapshot.payer_token_state.token_address == PRINCIPAL_TOKEN


# =============================================================================
# TOKEN SERVICE
# =============================================================================


class TestTokenService:
    @pytest.mark.asyncio
    async def test_data_for_symbol(self, tokens):
        data = await tokens.get_data_for_symbol("REP")
        assert (data.address, data.index, data.decimals) == (COLLATERAL_TOKEN, 1, 18)
        assert data.name == "Augur Reputation"

    @pytest.mark.asyncio
    async def test_data_for_index(self, tokens):
        data = await tokens.get_data_for_index(0)
        assert (data.address, data.symbol) == (PRINCIPAL_TOKEN, "DAI")

    @pytest.mark.asyncio
    async def test_all(self, tokens):
        states = await tokens.all(DEBTOR.address)
        assert [s.token_symbol for s in states] == ["DAI", "REP"]
        assert states[1].balance == 1_000 * 10**18

    @pytest.mark.asyncio
    async def test_set_and_revoke_allowance(self, tokens):
        await tokens.set_proxy_allowance(PRINCIPAL_TOKEN, CREDITOR.address, 123)
        assert await tokens.get_proxy_allowance(PRINCIPAL_TOKEN, CREDITOR.address) == 123

        await tokens.revoke_proxy_allowance(PRINCIPAL_TOKEN, CREDITOR.address)
        assert await tokens.get_proxy_allowance(PRINCIPAL_TOKEN, CREDITOR.address) == 0

    @pytest.mark.asyncio
    async def test_allowance_out_of_range(self, tokens, ledger):
        with pytest.raises(ValueError):
            await tokens.set_proxy_allowance(PRINCIPAL_TOKEN, CREDITOR.address, 2**256)
        assert ledger.sent == []

    @pytest.mark.asyncio
    async def test_unlimited_only_when_necessary(self, tokens, ledger):
        tx_hash = await tokens.make_allowance_unlimited_if_necessary(PRINCIPAL_TOKEN, CREDITOR.address)
        assert tx_hash is not None
        assert await tokens.get_proxy_allowance(PRINCIPAL_TOKEN, CREDITOR.address) == UNLIMITED_ALLOWANCE_IN_BASE_UNITS
        assert await tokens.has_unlimited_proxy_allowance(PRINCIPAL_TOKEN, CREDITOR.address)

        assert await tokens.make_allowance_unlimited_if_necessary(PRINCIPAL_TOKEN, CREDITOR.address) is None
        assert len(ledger.sent) == 1

    @pytest.mark.asyncio
    async def test_approve_revert(self, tokens, ledger):
        ledger.next_revert = "paused"
        with pytest.raises(TransactionReverted):
            await tokens.set_proxy_allowance_to_unlimited(PRINCIPAL_TOKEN, CREDITOR.address)
