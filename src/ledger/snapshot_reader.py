"""
SnapshotReader — пакетное чтение chain state для одной операции

Все чтения fill / repay / seize выполняются через asyncio.gather до запуска
проверок, результат — неизменяемый снапшот. Зависимые чтения (адрес
collateral токена → его баланс) выполняются второй пачкой, но тоже до
любых проверок.
"""

import asyncio
import logging
from typing import Optional

from src.adapters.base import SIMPLE_INTEREST_LAYOUT, split_words
from src.core.domain.addresses import NULL_ADDRESS, is_null_address
from src.core.domain.debt_order import DebtOrder
from src.core.domain.snapshot import AgreementSnapshot, FillSnapshot
from src.core.domain.terms import LoanTerms
from src.core.domain.token import TokenAllowanceState
from src.core.exceptions import SchemaInvalid
from src.core.math.bit_fields import hex_to_word
from src.ledger.client import LedgerClient, ProtocolContracts

logger = logging.getLogger(__name__)


def agreement_token_id(agreement_id: str) -> int:
    """Debt token id = agreement id как uint256."""
    return int(agreement_id, 16)


class SnapshotReader:
    """
    Args:
        ledger: LedgerClient
        contracts: адреса контрактов протокола
    """

    def __init__(self, ledger: LedgerClient, contracts: ProtocolContracts):
        self.ledger = ledger
        self.contracts = contracts

    # =========================================================================
    # Tokens
    # =========================================================================

    async def read_token_state(self, owner: str, token_address: str) -> TokenAllowanceState:
        """Баланс и allowance owner'а для token transfer proxy."""
        symbol, balance, allowance = await asyncio.gather(
            self.ledger.call_read_only(token_address, "symbol"),
            self.ledger.call_read_only(token_address, "balanceOf", [owner]),
            self.ledger.call_read_only(
                token_address, "allowance", [owner, self.contracts.token_transfer_proxy]
            ),
        )
        return TokenAllowanceState(
            owner=owner,
            spender=self.contracts.token_transfer_proxy,
            token_symbol=symbol,
            token_address=token_address,
            allowance=allowance,
            balance=balance,
        )

    async def token_address_by_index(self, index: int) -> str:
        return await self.ledger.call_read_only(
            self.contracts.token_registry, "getTokenAddressByIndex", [index]
        )

    # =========================================================================
    # Fill
    # =========================================================================

    async def read_fill_snapshot(self, order: DebtOrder, terms: Optional[LoanTerms] = None) -> FillSnapshot:
        """
        Снимок для fill.

        Args:
            order: order, который будет исполнен
            terms: декодированные условия (нужны для collateral токена)
        """
        agreement_id = order.agreement_id
        creditor = order.creditor or NULL_ADDRESS

        (
            current_time,
            creditor_native,
            creditor_state,
            issuance_exists,
            issuance_cancelled,
            order_cancelled,
        ) = await asyncio.gather(
            self.ledger.get_block_timestamp(),
            self.ledger.get_native_balance(creditor),
            self.read_token_state(creditor, order.principal_token),
            self.ledger.call_read_only(
                self.contracts.debt_token, "exists", [agreement_token_id(agreement_id)]
            ),
            self.ledger.call_read_only(self.contracts.debt_kernel, "issuanceCancelled", [agreement_id]),
            self.ledger.call_read_only(self.contracts.debt_kernel, "debtOrderCancelled", [order.order_hash]),
        )

        token_states = {(creditor_state.owner, creditor_state.token_address): creditor_state}
        collateral_token = None

        if terms is not None and terms.collateral is not None:
            collateral_token = await self.token_address_by_index(terms.collateral.collateral_token_index)
            if is_null_address(collateral_token):
                collateral_token = None
            else:
                debtor_state = await self.read_token_state(order.debtor, collateral_token)
                token_states[(debtor_state.owner, debtor_state.token_address)] = debtor_state

        snapshot = FillSnapshot(
            current_time=current_time,
            native_balances={creditor: creditor_native},
            token_states=token_states,
            issuance_exists=issuance_exists,
            issuance_cancelled=issuance_cancelled,
            order_cancelled=order_cancelled,
            collateral_token=collateral_token,
        )
        logger.debug("Fill snapshot read", extra={"agreement_id": agreement_id, "current_time": current_time})
        return snapshot

    # =========================================================================
    # Agreement (repay / seize)
    # =========================================================================

    async def read_agreement_snapshot(self, agreement_id: str, payer: Optional[str] = None) -> AgreementSnapshot:
        """
        Снимок выпущенного соглашения.

        Args:
            agreement_id: id соглашения (bytes32 hex)
            payer: плательщик для repay (баланс/allowance principal токена)

        Raises:
            SchemaInvalid: terms contract соглашения не известен протоколу
        """
        current_time, entry, beneficiary, collateralizer = await asyncio.gather(
            self.ledger.get_block_timestamp(),
            self.ledger.call_read_only(self.contracts.debt_registry, "get", [agreement_id]),
            self.ledger.call_read_only(
                self.contracts.debt_token, "ownerOf", [agreement_token_id(agreement_id)]
            ),
            self.ledger.call_read_only(
                self.contracts.collateralizer, "agreementToCollateralizer", [agreement_id]
            ),
        )

        terms_contract = entry["termsContract"]
        type_code = self.contracts.type_for_terms_contract(terms_contract)
        if type_code is None:
            raise SchemaInvalid("termsContract", f"Unknown terms contract {terms_contract}")

        parameters = entry["termsContractParameters"]
        if isinstance(parameters, str):
            parameters = hex_to_word(parameters, "termsContractParameters")
        word0, word1 = split_words(parameters)

        repaid_call = self.ledger.call_read_only(terms_contract, "getValueRepaidToDate", [agreement_id])
        if payer is not None:
            principal_token_index = SIMPLE_INTEREST_LAYOUT.field("principal_token_index").unpack(word0)
            value_repaid, principal_token = await asyncio.gather(
                repaid_call, self.token_address_by_index(principal_token_index)
            )
            payer_state = await self.read_token_state(payer, principal_token)
        else:
            value_repaid = await repaid_call
            payer_state = None

        return AgreementSnapshot(
            agreement_id=agreement_id,
            current_time=current_time,
            issuance_timestamp=entry["issuanceBlockTimestamp"],
            terms_contract_type=type_code,
            terms_parameters=(word0, word1),
            value_repaid_to_date=value_repaid,
            beneficiary=beneficiary,
            collateral_locked=not is_null_address(collateralizer),
            payer_token_state=payer_state,
        )
