"""
LoanLifecycle — async оркестрация займа: create → sign → countersign → fill → repay / seize

Каждая операция:
1. Проверяет структурную допустимость действия (LoanStateMachine)
2. Читает один снапшот chain state (SnapshotReader)
3. Оценивает проверки (AssertionEngine); первый отказ бросается типизированным
   исключением
4. Подписывает / отправляет транзакцию и ждёт её майнинга
5. Возвращает НОВЫЙ Loan

Loan неизменяем: если ожидание транзакции прервано (CancelledError) или
транзакция откатилась, у вызывающего кода остаётся прежний Loan.
"""

import logging
import secrets
from dataclasses import dataclass, replace
from typing import Any, List, Optional

from src.adapters.registry import AdapterRegistry
from src.assertions.engine import AssertionEngine
from src.core.domain.addresses import NULL_ADDRESS
from src.core.domain.debt_order import DebtOrder, ECDSASignature
from src.core.domain.terms import LoanTerms
from src.core.exceptions import OrderExpired, SignatureMismatch
from src.core.math.bit_fields import word_to_hex
from src.ledger.client import LedgerClient, ProtocolContracts, submit_and_confirm
from src.ledger.snapshot_reader import SnapshotReader
from src.lifecycle.state_machine import (
    LoanAction,
    LoanState,
    LoanStateMachine,
    LoanTransitionResult,
    PRE_FILL_STATES,
)

logger = logging.getLogger(__name__)

SALT_BITS = 256

_NULL_SIGNATURE = ECDSASignature(v=0, r="0x" + "0" * 64, s="0x" + "0" * 64)


@dataclass(frozen=True)
class LifecycleConfig:
    """Конфигурация LoanLifecycle."""

    # Время жизни order по умолчанию (сек от timestamp последнего блока)
    default_order_lifetime_seconds: int = 30 * 24 * 3600


@dataclass(frozen=True)
class Loan:
    """Неизменяемое состояние займа на стороне клиента."""

    order: DebtOrder
    terms: LoanTerms
    state: LoanState

    # Заполняются после fill
    issuance_timestamp: Optional[int] = None
    value_repaid_to_date: int = 0
    last_tx_hash: Optional[str] = None

    @property
    def agreement_id(self) -> str:
        return self.order.agreement_id

    @property
    def is_pre_fill(self) -> bool:
        return self.state in PRE_FILL_STATES

    def outstanding(self) -> int:
        return max(self.terms.total_expected_repayment() - self.value_repaid_to_date, 0)


# =============================================================================
# KERNEL ARGUMENTS
# =============================================================================


def order_arguments(order: DebtOrder) -> List[Any]:
    """[orderAddresses, orderValues, orderBytes32] в порядке debt kernel."""
    addresses = [
        order.issuance_version,
        order.debtor,
        order.underwriter,
        order.terms_contract,
        order.principal_token,
        order.relayer,
    ]
    values = [
        order.underwriter_risk_rating,
        order.salt,
        order.principal_amount,
        order.underwriter_fee,
        order.relayer_fee,
        order.creditor_fee,
        order.debtor_fee,
        order.expiration_timestamp_in_sec,
    ]
    return [addresses, values, [word_to_hex(order.terms_contract_parameters)]]


def fill_arguments(order: DebtOrder) -> List[Any]:
    """Аргументы fillDebtOrder. Подпись underwriter'а не поддерживается (нулевая)."""
    signatures = [order.debtor_signature, order.creditor_signature, _NULL_SIGNATURE]
    v = [sig.v for sig in signatures]
    r = [sig.r for sig in signatures]
    s = [sig.s for sig in signatures]
    return [order.creditor, *order_arguments(order), v, r, s]


# =============================================================================
# LIFECYCLE
# =============================================================================


class LoanLifecycle:
    """
    Args:
        ledger: LedgerClient
        contracts: адреса контрактов протокола
        registry: AdapterRegistry (создаётся один раз вызывающим кодом)
        engine: AssertionEngine (по умолчанию над тем же registry)
        config: LifecycleConfig
    """

    def __init__(
        self,
        ledger: LedgerClient,
        contracts: ProtocolContracts,
        registry: AdapterRegistry,
        engine: Optional[AssertionEngine] = None,
        config: Optional[LifecycleConfig] = None,
    ):
        self.ledger = ledger
        self.contracts = contracts
        self.registry = registry
        self.engine = engine or AssertionEngine(registry)
        self.config = config or LifecycleConfig()
        self.state_machine = LoanStateMachine()
        self.reader = SnapshotReader(ledger, contracts)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _transition(
        self,
        loan: Loan,
        action: LoanAction,
        current_time: int,
        repayment_complete: bool = False,
        default_observed: bool = False,
    ) -> LoanTransitionResult:
        result = self.state_machine.evaluate_transition(
            current_state=loan.state,
            action=action,
            current_time=current_time,
            expiration_timestamp=loan.order.expiration_timestamp_in_sec,
            repayment_complete=repayment_complete,
            default_observed=default_observed,
        )
        if result.new_state == LoanState.EXPIRED and action != LoanAction.OBSERVE:
            expired = replace(loan, state=result.new_state)
            self._log_transition(expired, result)
            raise OrderExpired(result.details, loan=expired)
        return result

    def _log_transition(self, loan: Loan, result: LoanTransitionResult, tx_hash: Optional[str] = None) -> None:
        logger.info(
            "Loan state transition",
            extra={
                "agreement_id": loan.agreement_id,
                "action": result.action.value,
                "previous_state": result.previous_state.value,
                "new_state": result.new_state.value,
                "reason": result.transition_reason,
                "tx_hash": tx_hash,
            },
        )

    def _default_observed(self, terms: LoanTerms, issuance_timestamp: int, repaid: int, now: int) -> bool:
        return repaid < terms.total_expected_repayment() and now >= terms.seizure_available_at(issuance_timestamp)

    # =========================================================================
    # Create
    # =========================================================================

    async def create(
        self,
        debtor: str,
        terms: LoanTerms,
        expiration_timestamp: Optional[int] = None,
        salt: Optional[int] = None,
        relayer: str = NULL_ADDRESS,
        relayer_fee: int = 0,
        underwriter: str = NULL_ADDRESS,
        underwriter_fee: int = 0,
        underwriter_risk_rating: int = 0,
        debtor_fee: int = 0,
        creditor_fee: int = 0,
    ) -> Loan:
        """
        Новый неподписанный займ.

        Terms кодируются codec'ом варианта (simple / collateralized) и
        проверяются round-trip декодированием.

        Raises:
            FieldOverflow: значение условий не помещается в битовое поле
            SchemaInvalid: условия или order не соответствуют схеме
            KeyError: для варианта нет развёрнутого terms contract
        """
        type_code = self.registry.type_for_terms(terms)
        codec = self.registry.resolve(type_code)
        words = codec.encode(terms)

        principal_token = await self.reader.token_address_by_index(terms.principal_token_index)
        if expiration_timestamp is None:
            now = await self.ledger.get_block_timestamp()
            expiration_timestamp = now + self.config.default_order_lifetime_seconds

        order = DebtOrder(
            kernel_version=self.contracts.debt_kernel,
            issuance_version=self.contracts.repayment_router,
            principal_token=principal_token,
            principal_amount=terms.principal_amount,
            debtor=debtor,
            relayer=relayer,
            relayer_fee=relayer_fee,
            underwriter=underwriter,
            underwriter_fee=underwriter_fee,
            underwriter_risk_rating=underwriter_risk_rating,
            debtor_fee=debtor_fee,
            creditor_fee=creditor_fee,
            terms_contract=self.contracts.terms_contract_for(type_code.value),
            terms_contract_type=type_code.value,
            terms_parameters=words,
            expiration_timestamp_in_sec=expiration_timestamp,
            salt=secrets.randbits(SALT_BITS) if salt is None else salt,
        )
        self.engine.schema.order_conforms(order.to_json_dict()).raise_for_failure()

        loan = Loan(order=order, terms=codec.decode(*words), state=LoanState.UNSIGNED)
        logger.info(
            "Loan created",
            extra={
                "agreement_id": loan.agreement_id,
                "terms_contract_type": type_code.value,
                "principal_amount": terms.principal_amount,
                "expiration": expiration_timestamp,
            },
        )
        return loan

    # =========================================================================
    # Signatures
    # =========================================================================

    async def sign_as_debtor(self, loan: Loan, signer: Optional[str] = None) -> Loan:
        """
        UNSIGNED → DEBTOR_SIGNED.

        Raises:
            InvalidStateTransition, OrderExpired, SchemaInvalid,
            SignatureMismatch (signer не debtor или подпись не восстанавливается)
        """
        signer = signer or loan.order.debtor
        self.state_machine.require_action_allowed(loan.state, LoanAction.SIGN)
        now = await self.ledger.get_block_timestamp()
        result = self._transition(loan, LoanAction.SIGN, now)

        self.engine.evaluate_sign(loan.order, signer, now).raise_for_failure()

        signature = await self.ledger.sign(loan.order.order_hash, signer)
        order = loan.order.with_debtor_signature(signature)
        self.engine.order.valid_debtor_signature(order).raise_for_failure()

        signed = replace(loan, order=order, state=result.new_state)
        self._log_transition(signed, result)
        return signed

    async def sign_as_creditor(
        self,
        loan: Loan,
        creditor: str,
        expected_order_hash: Optional[str] = None,
    ) -> Loan:
        """
        DEBTOR_SIGNED → FULLY_SIGNED (countersign).

        Args:
            creditor: адрес creditor'а
            expected_order_hash: order hash, который creditor согласился подписать

        Raises:
            InvalidStateTransition, OrderExpired,
            SignatureMismatch (order hash не совпадает или подпись debtor'а невалидна)
        """
        self.state_machine.require_action_allowed(loan.state, LoanAction.COUNTERSIGN)
        order_hash = loan.order.order_hash
        if expected_order_hash is not None and expected_order_hash.lower() != order_hash.lower():
            raise SignatureMismatch(f"Order hash {order_hash} does not match expected {expected_order_hash}")

        now = await self.ledger.get_block_timestamp()
        result = self._transition(loan, LoanAction.COUNTERSIGN, now)
        self.engine.evaluate_countersign(loan.order, now).raise_for_failure()

        signature = await self.ledger.sign(order_hash, creditor)
        order = loan.order.with_creditor_signature(creditor, signature)
        self.engine.order.valid_creditor_signature(order).raise_for_failure()

        signed = replace(loan, order=order, state=result.new_state)
        self._log_transition(signed, result)
        return signed

    # =========================================================================
    # Fill
    # =========================================================================

    async def fill(self, loan: Loan, filler: Optional[str] = None) -> Loan:
        """
        FULLY_SIGNED → FILLED.

        Все проверки над одним снапшотом; состояние меняется только после
        успешного майнинга fillDebtOrder.

        Raises:
            InvalidStateTransition, AssertionFailure (первая причина отказа),
            TransactionReverted
        """
        self.state_machine.require_action_allowed(loan.state, LoanAction.FILL)
        order = loan.order

        snapshot = await self.reader.read_fill_snapshot(order, loan.terms)
        result = self._transition(loan, LoanAction.FILL, snapshot.current_time)
        self.engine.evaluate_fill(order, snapshot).raise_for_failure()

        receipt = await submit_and_confirm(
            self.ledger,
            self.contracts.debt_kernel,
            "fillDebtOrder",
            fill_arguments(order),
            filler or order.creditor,
        )

        filled = replace(
            loan,
            state=result.new_state,
            issuance_timestamp=receipt.block_timestamp or snapshot.current_time,
            last_tx_hash=receipt.tx_hash,
        )
        self._log_transition(filled, result, receipt.tx_hash)
        return filled

    # =========================================================================
    # Repay / Seize
    # =========================================================================

    async def repay(self, loan: Loan, amount: int, payer: Optional[str] = None) -> Loan:
        """
        Погашение через repayment router.

        Raises:
            InvalidStateTransition, DebtAlreadyRepaid, RepaymentExceedsOutstanding,
            InsufficientBalance, InsufficientAllowance, TransactionReverted
        """
        self.state_machine.require_action_allowed(loan.state, LoanAction.REPAY)
        payer = payer or loan.order.debtor

        snapshot = await self.reader.read_agreement_snapshot(loan.agreement_id, payer)
        self.engine.evaluate_repayment(snapshot, amount).raise_for_failure()

        receipt = await submit_and_confirm(
            self.ledger,
            self.contracts.repayment_router,
            "repay",
            [loan.agreement_id, amount, loan.order.principal_token],
            payer,
        )

        repaid = snapshot.value_repaid_to_date + amount
        result = self._transition(
            loan,
            LoanAction.REPAY,
            snapshot.current_time,
            repayment_complete=repaid >= loan.terms.total_expected_repayment(),
            default_observed=self._default_observed(
                loan.terms, snapshot.issuance_timestamp, repaid, snapshot.current_time
            ),
        )

        updated = replace(
            loan,
            state=result.new_state,
            issuance_timestamp=snapshot.issuance_timestamp,
            value_repaid_to_date=repaid,
            last_tx_hash=receipt.tx_hash,
        )
        self._log_transition(updated, result, receipt.tx_hash)
        return updated

    async def seize_collateral(self, loan: Loan, caller: str) -> Loan:
        """
        Изъятие обеспечения держателем debt token.

        Raises:
            InvalidStateTransition, NotBeneficiary, DebtAlreadyRepaid,
            GracePeriodNotElapsed, CollateralAlreadyWithdrawn, TransactionReverted
        """
        self.state_machine.require_action_allowed(loan.state, LoanAction.SEIZE)

        snapshot = await self.reader.read_agreement_snapshot(loan.agreement_id)
        self.engine.evaluate_seizure(snapshot, caller).raise_for_failure()

        receipt = await submit_and_confirm(
            self.ledger,
            self.contracts.collateralizer,
            "seizeCollateral",
            [loan.agreement_id],
            caller,
        )

        result = self._transition(loan, LoanAction.SEIZE, snapshot.current_time)
        seized = replace(
            loan,
            state=result.new_state,
            issuance_timestamp=snapshot.issuance_timestamp,
            value_repaid_to_date=snapshot.value_repaid_to_date,
            last_tx_hash=receipt.tx_hash,
        )
        self._log_transition(seized, result, receipt.tx_hash)
        return seized

    # =========================================================================
    # Cancel / Terms / Refresh
    # =========================================================================

    async def cancel(self, loan: Loan) -> Loan:
        """
        UNSIGNED / DEBTOR_SIGNED → CANCELLED.

        Подписанный debtor'ом order отменяется on-chain (cancelDebtOrder от
        имени debtor'а), иначе подпись осталась бы пригодной для fill.
        """
        self.state_machine.require_action_allowed(loan.state, LoanAction.CANCEL)
        now = await self.ledger.get_block_timestamp()
        result = self._transition(loan, LoanAction.CANCEL, now)

        tx_hash = None
        if loan.state == LoanState.DEBTOR_SIGNED:
            receipt = await submit_and_confirm(
                self.ledger,
                self.contracts.debt_kernel,
                "cancelDebtOrder",
                order_arguments(loan.order),
                loan.order.debtor,
            )
            tx_hash = receipt.tx_hash

        cancelled = replace(loan, state=result.new_state, last_tx_hash=tx_hash or loan.last_tx_hash)
        self._log_transition(cancelled, result, tx_hash)
        return cancelled

    def get_terms(self, loan: Loan) -> LoanTerms:
        """Условия, декодированные из on-chain параметров order'а."""
        codec = self.registry.resolve(loan.order.terms_contract_type)
        return codec.decode(*loan.order.terms_parameters)

    async def refresh(self, loan: Loan) -> Loan:
        """
        Наблюдение lazy переходов: EXPIRED до fill, DEFAULTED / REPAID после.

        Returns:
            тот же Loan, если состояние не изменилось
        """
        if loan.state in PRE_FILL_STATES:
            now = await self.ledger.get_block_timestamp()
            result = self._transition(loan, LoanAction.OBSERVE, now)
            if not result.transition_occurred:
                return loan
            refreshed = replace(loan, state=result.new_state)
            self._log_transition(refreshed, result)
            return refreshed

        if loan.state not in (LoanState.FILLED, LoanState.REPAYING, LoanState.DEFAULTED):
            return loan

        snapshot = await self.reader.read_agreement_snapshot(loan.agreement_id)
        repaid = snapshot.value_repaid_to_date
        result = self._transition(
            loan,
            LoanAction.OBSERVE,
            snapshot.current_time,
            repayment_complete=repaid >= loan.terms.total_expected_repayment(),
            default_observed=self._default_observed(
                loan.terms, snapshot.issuance_timestamp, repaid, snapshot.current_time
            ),
        )
        refreshed = replace(
            loan,
            state=result.new_state,
            issuance_timestamp=snapshot.issuance_timestamp,
            value_repaid_to_date=repaid,
        )
        if result.transition_occurred:
            self._log_transition(refreshed, result)
        return refreshed

