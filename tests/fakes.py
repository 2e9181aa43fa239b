"""
In-memory ledger для тестов lifecycle / ledger.

FakeLedger реализует LedgerClient поверх словарей: ERC20 токены, token
registry, debt kernel (fill / cancel), debt registry, debt token,
repayment router и collateralizer. Подписи — настоящие (eth_account),
поэтому проверки подписей в AssertionEngine работают без моков.
"""

import asyncio
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from eth_account import Account
from eth_account.messages import encode_defunct

from src.adapters import TermsContractType, default_registry, split_words
from src.core.domain.addresses import NULL_ADDRESS, normalize_address
from src.core.domain.debt_order import DebtOrder, ECDSASignature
from src.core.domain.terms import AmortizationUnit, CollateralTerms, LoanTerms
from src.core.math.bit_fields import hex_to_word, word_to_hex
from src.ledger.client import ProtocolContracts, TransactionReceipt

# =============================================================================
# ACCOUNTS
# =============================================================================

DEBTOR = Account.from_key("0x" + "11" * 32)
CREDITOR = Account.from_key("0x" + "22" * 32)
OUTSIDER = Account.from_key("0x" + "33" * 32)

ACCOUNTS = {acct.address: acct for acct in (DEBTOR, CREDITOR, OUTSIDER)}

RELAYER = normalize_address("0x" + "5e" * 20)
UNDERWRITER = normalize_address("0x" + "6f" * 20)

PRINCIPAL_TOKEN = normalize_address("0x" + "d1" * 20)
COLLATERAL_TOKEN = normalize_address("0x" + "d2" * 20)

START_TIME = 1_700_000_000


def make_contracts() -> ProtocolContracts:
    return ProtocolContracts(
        debt_kernel="0x" + "a1" * 20,
        repayment_router="0x" + "a2" * 20,
        token_transfer_proxy="0x" + "a3" * 20,
        collateralizer="0x" + "a4" * 20,
        debt_token="0x" + "a5" * 20,
        debt_registry="0x" + "a6" * 20,
        token_registry="0x" + "a7" * 20,
        terms_contracts={
            TermsContractType.SIMPLE_INTEREST.value: "0x" + "b1" * 20,
            TermsContractType.COLLATERALIZED_SIMPLE_INTEREST.value: "0x" + "b2" * 20,
        },
    )


# =============================================================================
# FACTORIES
# =============================================================================


def simple_terms(**overrides) -> LoanTerms:
    values = dict(
        principal_token_index=0,
        principal_amount=1_000 * 10**18,
        interest_rate=Decimal("12.5"),
        amortization_unit=AmortizationUnit.MONTHS,
        term_length=12,
    )
    values.update(overrides)
    return LoanTerms(**values)


def collateralized_terms(grace_period_in_days: Optional[int] = 5, **overrides) -> LoanTerms:
    collateral = CollateralTerms(
        collateral_token_index=1,
        collateral_amount=500 * 10**18,
        grace_period_in_days=grace_period_in_days,
    )
    return simple_terms(collateral=collateral, **overrides)


def make_order(
    terms: Optional[LoanTerms] = None,
    contracts: Optional[ProtocolContracts] = None,
    **overrides,
) -> DebtOrder:
    """Неподписанный order над terms (кодирование через default_registry)."""
    terms = terms or simple_terms()
    contracts = contracts or make_contracts()
    registry = default_registry()

    type_code = registry.type_for_terms(terms)
    values: Dict[str, Any] = dict(
        kernel_version=contracts.debt_kernel,
        issuance_version=contracts.repayment_router,
        principal_token=PRINCIPAL_TOKEN,
        principal_amount=terms.principal_amount,
        debtor=DEBTOR.address,
        terms_contract=contracts.terms_contract_for(type_code.value),
        terms_contract_type=type_code.value,
        terms_parameters=registry.resolve(type_code).encode(terms),
        expiration_timestamp_in_sec=START_TIME + 7 * 24 * 3600,
        salt=42,
    )
    values.update(overrides)
    return DebtOrder(**values)


def sign_hash(payload_hash: str, account) -> ECDSASignature:
    signed = Account.sign_message(encode_defunct(hexstr=payload_hash), private_key=account.key)
    return ECDSASignature.from_vrs(signed.v, signed.r, signed.s)


def fully_signed(order: DebtOrder, creditor=CREDITOR) -> DebtOrder:
    order = order.with_debtor_signature(sign_hash(order.order_hash, DEBTOR))
    return order.with_creditor_signature(creditor.address, sign_hash(order.order_hash, creditor))


# =============================================================================
# FAKE LEDGER
# =============================================================================


@dataclass
class FakeToken:
    symbol: str
    name: str
    decimals: int
    balances: Dict[str, int] = field(default_factory=dict)
    allowances: Dict[Tuple[str, str], int] = field(default_factory=dict)

    def transfer(self, source: str, target: str, amount: int) -> None:
        if self.balances.get(source, 0) < amount:
            raise AssertionError(f"{self.symbol}: insufficient balance for transfer")
        self.balances[source] = self.balances.get(source, 0) - amount
        self.balances[target] = self.balances.get(target, 0) + amount


class FakeLedger:
    """LedgerClient в памяти."""

    def __init__(self, contracts: Optional[ProtocolContracts] = None, block_timestamp: int = START_TIME):
        self.contracts = contracts or make_contracts()
        self.block_timestamp = block_timestamp
        self.block_number = 1

        self.native_balances: Dict[str, int] = {}
        self.tokens: Dict[str, FakeToken] = {}
        self.token_index: List[str] = []

        self.registry_entries: Dict[str, Dict[str, Any]] = {}
        self.debt_token_owners: Dict[int, str] = {}
        self.repaid: Dict[str, int] = {}
        self.collateral_locked: Dict[str, Tuple[str, int]] = {}
        self.cancelled_orders: Set[str] = set()
        self.cancelled_issuances: Set[str] = set()

        self.sent: List[Tuple[str, str, Sequence[Any], str]] = []
        self.receipts: Dict[str, TransactionReceipt] = {}
        self.next_revert: Optional[str] = None
        self.next_kernel_errors: Tuple[int, ...] = ()
        self.mining_gate: Optional[asyncio.Event] = None

        self._tx_counter = 0
        self._terms_types = {
            address.lower(): type_code for type_code, address in self.contracts.terms_contracts.items()
        }

    # -------------------------------------------------------------------------
    # Setup
    # -------------------------------------------------------------------------

    def add_token(self, address: str, symbol: str, name: str = "", decimals: int = 18) -> FakeToken:
        token = FakeToken(symbol=symbol, name=name or symbol, decimals=decimals)
        self.tokens[normalize_address(address)] = token
        self.token_index.append(normalize_address(address))
        return token

    def token(self, address: str) -> FakeToken:
        return self.tokens[normalize_address(address)]

    def fund(self, token: str, owner: str, amount: int, allowance: Optional[int] = None) -> None:
        fake = self.token(token)
        owner = normalize_address(owner)
        fake.balances[owner] = fake.balances.get(owner, 0) + amount
        if allowance is not None:
            fake.allowances[(owner, self.contracts.token_transfer_proxy)] = allowance

    def advance(self, seconds: int) -> None:
        self.block_timestamp += seconds
        self.block_number += 1

    # -------------------------------------------------------------------------
    # LedgerClient
    # -------------------------------------------------------------------------

    async def get_block_timestamp(self) -> int:
        return self.block_timestamp

    async def get_native_balance(self, address: str) -> int:
        return self.native_balances.get(normalize_address(address), 0)

    async def sign(self, payload: str, account: str) -> ECDSASignature:
        return sign_hash(payload, ACCOUNTS[normalize_address(account)])

    async def call_read_only(self, contract_id: str, method: str, args: Sequence[Any] = ()) -> Any:
        contract = normalize_address(contract_id)
        c = self.contracts

        if contract in self.tokens:
            token = self.tokens[contract]
            if method == "symbol":
                return token.symbol
            if method == "balanceOf":
                return token.balances.get(normalize_address(args[0]), 0)
            if method == "allowance":
                return token.allowances.get((normalize_address(args[0]), normalize_address(args[1])), 0)

        if contract == c.token_registry:
            if method == "getNumTokens":
                return len(self.token_index)
            if method == "getTokenAddressByIndex":
                index = args[0]
                return self.token_index[index] if index < len(self.token_index) else NULL_ADDRESS
            if method == "getTokenAttributesByIndex":
                address = self.token_index[args[0]]
                token = self.tokens[address]
                return address, token.symbol, token.name, token.decimals
            if method == "getTokenAttributesBySymbol":
                for index, address in enumerate(self.token_index):
                    token = self.tokens[address]
                    if token.symbol == args[0]:
                        return address, index, token.name, token.decimals
                return NULL_ADDRESS, 0, "", 0

        if contract == c.debt_token:
            if method == "exists":
                return args[0] in self.debt_token_owners
            if method == "ownerOf":
                return self.debt_token_owners.get(args[0], NULL_ADDRESS)

        if contract == c.debt_kernel:
            if method == "issuanceCancelled":
                return args[0] in self.cancelled_issuances
            if method == "debtOrderCancelled":
                return args[0] in self.cancelled_orders

        if contract == c.debt_registry and method == "get":
            return dict(self.registry_entries[args[0]])

        if contract == c.collateralizer and method == "agreementToCollateralizer":
            return c.collateralizer if args[0] in self.collateral_locked else NULL_ADDRESS

        if contract.lower() in self._terms_types and method == "getValueRepaidToDate":
            return self.repaid.get(args[0], 0)

        raise NotImplementedError(f"FakeLedger: no read {method} on {contract}")

    async def send_transaction(self, contract_id: str, method: str, args: Sequence[Any], signer: str) -> str:
        self._tx_counter += 1
        tx_hash = "0x" + format(self._tx_counter, "064x")
        self.sent.append((normalize_address(contract_id), method, args, normalize_address(signer)))

        status, revert_reason = True, None
        kernel_errors = self.next_kernel_errors
        if self.next_revert is not None:
            status, revert_reason = False, self.next_revert
        elif not kernel_errors:
            self._execute(normalize_address(contract_id), method, args, normalize_address(signer))

        self.next_revert = None
        self.next_kernel_errors = ()
        self.block_number += 1
        self.receipts[tx_hash] = TransactionReceipt(
            tx_hash=tx_hash,
            status=status,
            block_number=self.block_number,
            block_timestamp=self.block_timestamp,
            revert_reason=revert_reason,
            kernel_error_codes=kernel_errors,
        )
        return tx_hash

    async def await_mined(self, tx_hash: str) -> TransactionReceipt:
        if self.mining_gate is not None:
            await self.mining_gate.wait()
        return self.receipts[tx_hash]

    # -------------------------------------------------------------------------
    # Effects
    # -------------------------------------------------------------------------

    def _order_from_args(self, addresses, values, words) -> DebtOrder:
        terms_contract = normalize_address(addresses[3])
        return DebtOrder(
            kernel_version=self.contracts.debt_kernel,
            issuance_version=addresses[0],
            debtor=addresses[1],
            underwriter=addresses[2],
            terms_contract=terms_contract,
            terms_contract_type=self._terms_types[terms_contract.lower()],
            principal_token=addresses[4],
            relayer=addresses[5],
            underwriter_risk_rating=values[0],
            salt=values[1],
            principal_amount=values[2],
            underwriter_fee=values[3],
            relayer_fee=values[4],
            creditor_fee=values[5],
            debtor_fee=values[6],
            expiration_timestamp_in_sec=values[7],
            terms_parameters=split_words(hex_to_word(words[0])),
        )

    def _execute(self, contract: str, method: str, args: Sequence[Any], signer: str) -> None:
        c = self.contracts

        if contract in self.tokens and method == "approve":
            self.tokens[contract].allowances[(signer, normalize_address(args[0]))] = args[1]
            return

        if contract == c.debt_kernel and method == "fillDebtOrder":
            creditor, addresses, values, words = args[0], args[1], args[2], args[3]
            order = self._order_from_args(addresses, values, words)
            agreement_id = order.agreement_id
            creditor = normalize_address(creditor)

            principal = self.token(order.principal_token)
            principal.transfer(creditor, order.debtor, order.principal_amount - order.debtor_fee)
            if order.creditor_fee + order.debtor_fee:
                principal.transfer(creditor, order.relayer, order.creditor_fee + order.debtor_fee)

            self.registry_entries[agreement_id] = {
                "beneficiary": creditor,
                "termsContract": order.terms_contract,
                "termsContractParameters": word_to_hex(order.terms_contract_parameters),
                "issuanceBlockTimestamp": self.block_timestamp,
            }
            self.debt_token_owners[int(agreement_id, 16)] = creditor

            if order.terms_contract_type == TermsContractType.COLLATERALIZED_SIMPLE_INTEREST.value:
                terms = default_registry().resolve(order.terms_contract_type).decode(*order.terms_parameters)
                collateral_token = self.token_index[terms.collateral.collateral_token_index]
                self.token(collateral_token).transfer(
                    order.debtor, c.collateralizer, terms.collateral.collateral_amount
                )
                self.collateral_locked[agreement_id] = (collateral_token, terms.collateral.collateral_amount)
            return

        if contract == c.debt_kernel and method == "cancelDebtOrder":
            order = self._order_from_args(*args)
            self.cancelled_orders.add(order.order_hash)
            return

        if contract == c.repayment_router and method == "repay":
            agreement_id, amount, token = args
            beneficiary = self.debt_token_owners[int(agreement_id, 16)]
            self.token(token).transfer(signer, beneficiary, amount)
            self.repaid[agreement_id] = self.repaid.get(agreement_id, 0) + amount
            return

        if contract == c.collateralizer and method == "seizeCollateral":
            agreement_id = args[0]
            collateral_token, amount = self.collateral_locked.pop(agreement_id)
            self.token(collateral_token).transfer(c.collateralizer, signer, amount)
            return

        raise NotImplementedError(f"FakeLedger: no transaction {method} on {contract}")


def funded_ledger(principal_allowance: Optional[int] = None) -> FakeLedger:
    """Ledger с двумя токенами (индексы 0, 1) и средствами creditor'а / debtor'а."""
    ledger = FakeLedger()
    ledger.add_token(PRINCIPAL_TOKEN, "DAI", "Dai Stablecoin")
    ledger.add_token(COLLATERAL_TOKEN, "REP", "Augur Reputation")

    allowance = 10**30 if principal_allowance is None else principal_allowance
    ledger.fund(PRINCIPAL_TOKEN, CREDITOR.address, 10_000 * 10**18, allowance=allowance)
    ledger.fund(PRINCIPAL_TOKEN, DEBTOR.address, 5_000 * 10**18, allowance=10**30)
    ledger.fund(COLLATERAL_TOKEN, DEBTOR.address, 1_000 * 10**18, allowance=10**30)
    ledger.native_balances[CREDITOR.address] = 10**18
    ledger.native_balances[DEBTOR.address] = 10**18
    return ledger
