"""
AssertionEngine — композиция семейств проверок для одной операции

Каждая операция (sign, countersign, fill, repay, seize) оценивается над
одним снапшотом. Все результаты собираются в AssertionReport; ни одна
проверка не бросает исключение и не изменяет общее состояние.

Порядок fill:
1. Expiration (всегда первой: просроченный order отклоняется как ORDER_EXPIRED
   независимо от остальных причин)
2. Schema + adapter (type code известен, параметры декодируются)
3. Подписи debtor / creditor
4. Issuance / cancellation
5. Fees
6. Средства creditor'а (native для gas, balance и allowance principal токена)
7. Обеспечение (опционально, только если terms декодированы)
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from src.adapters.registry import AdapterRegistry
from src.assertions.account import AccountAssertions
from src.assertions.adapter import AdapterAssertions
from src.assertions.collateral import CollateralAssertions
from src.assertions.debt_agreement import DebtAgreementAssertions
from src.assertions.debt_token import DebtTokenAssertions
from src.assertions.order import OrderAssertions
from src.assertions.result import AssertionReport, AssertionResult
from src.assertions.schema import SchemaAssertions
from src.assertions.token import TokenAssertions
from src.core.domain.debt_order import DebtOrder
from src.core.domain.snapshot import AgreementSnapshot, FillSnapshot
from src.core.domain.terms import LoanTerms

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssertionConfig:
    """Конфигурация AssertionEngine."""

    # Минимальный native баланс (wei) у аккаунта, отправляющего fill
    min_native_balance_for_fees: int = 0

    # Проверки обеспечения при fill (для займов без обеспечения всегда PASS)
    include_collateral_checks: bool = True


class AssertionEngine:
    """
    Композиция семейств проверок.

    Args:
        registry: AdapterRegistry для декодирования terms parameters
        config: AssertionConfig (defaults если None)
    """

    def __init__(self, registry: AdapterRegistry, config: Optional[AssertionConfig] = None):
        self.config = config or AssertionConfig()

        self.account = AccountAssertions(self.config.min_native_balance_for_fees)
        self.token = TokenAssertions()
        self.order = OrderAssertions(self.account, self.token)
        self.schema = SchemaAssertions()
        self.adapter = AdapterAssertions(registry)
        self.collateral = CollateralAssertions(self.token)
        self.debt_agreement = DebtAgreementAssertions(self.token)
        self.debt_token = DebtTokenAssertions()

    # =========================================================================
    # Helpers
    # =========================================================================

    def _decode(self, type_code: str, parameters: Tuple[int, int]) -> Tuple[List[AssertionResult], Optional[LoanTerms]]:
        known = self.adapter.terms_contract_type_known(type_code)
        if not known.passed:
            return [known], None
        decoded, terms = self.adapter.parameters_decode(type_code, parameters)
        return [known, decoded], terms

    def _report(self, operation: str, results: List[AssertionResult]) -> AssertionReport:
        report = AssertionReport(operation=operation, results=tuple(results))
        if not report.passed:
            first = report.first_failure
            logger.info(
                "Assertions failed",
                extra={
                    "operation": operation,
                    "reasons": [r.value for r in report.reasons],
                    "first_failure": first.name if first else None,
                    "details": first.details if first else None,
                },
            )
        return report

    # =========================================================================
    # Operations
    # =========================================================================

    def evaluate_sign(self, order: DebtOrder, signer: str, current_time: int) -> AssertionReport:
        """Debtor подписывает order: форма order корректна, подписант = debtor."""
        results: List[AssertionResult] = [self.order.not_expired(order, current_time)]
        results.append(self.schema.order_conforms(order.to_json_dict()))
        decode_results, _ = self._decode(order.terms_contract_type, order.terms_parameters)
        results.extend(decode_results)
        results.append(self.account.is_account(order.debtor, signer))
        results.append(self.order.fees_balanced(order))
        results.append(self.order.fee_recipients_specified(order))
        results.append(self.order.principal_covers_debtor_fee(order))
        return self._report("sign", results)

    def evaluate_countersign(self, order: DebtOrder, current_time: int) -> AssertionReport:
        """Creditor подписывает: подпись debtor'а валидна для того же order hash."""
        results = [
            self.order.not_expired(order, current_time),
            self.order.valid_debtor_signature(order),
        ]
        return self._report("countersign", results)

    def evaluate_fill(
        self,
        order: DebtOrder,
        snapshot: FillSnapshot,
        include_collateral: Optional[bool] = None,
    ) -> AssertionReport:
        """
        Все проверки fill над одним FillSnapshot.

        Args:
            order: полностью подписанный order
            snapshot: консистентный снимок chain state
            include_collateral: None → config.include_collateral_checks
        """
        if include_collateral is None:
            include_collateral = self.config.include_collateral_checks

        results: List[AssertionResult] = [self.order.not_expired(order, snapshot.current_time)]

        results.append(self.schema.order_conforms(order.to_json_dict()))
        decode_results, terms = self._decode(order.terms_contract_type, order.terms_parameters)
        results.extend(decode_results)

        results.append(self.order.valid_debtor_signature(order))
        results.append(self.order.valid_creditor_signature(order))

        results.append(self.order.issuance_not_used(snapshot))
        results.append(self.order.issuance_not_cancelled(snapshot))
        results.append(self.order.order_not_cancelled(snapshot))

        results.append(self.order.fees_balanced(order))
        results.append(self.order.fee_recipients_specified(order))
        results.append(self.order.principal_covers_debtor_fee(order))

        if order.creditor is not None:
            results.append(self.account.has_native_balance_for_fees(snapshot, order.creditor))
        results.append(self.order.creditor_has_sufficient_balance(order, snapshot))
        results.append(self.order.creditor_has_sufficient_allowance(order, snapshot))

        if include_collateral and terms is not None:
            results.append(self.collateral.debtor_has_collateral_balance(order, terms, snapshot))
            results.append(self.collateral.debtor_has_collateral_allowance(order, terms, snapshot))

        return self._report("fill", results)

    def evaluate_repayment(self, snapshot: AgreementSnapshot, amount: int) -> AssertionReport:
        results, terms = self._decode(snapshot.terms_contract_type, snapshot.terms_parameters)
        if terms is not None:
            results.append(self.debt_agreement.debt_not_repaid(terms, snapshot))
            results.append(self.debt_agreement.repayment_within_outstanding(terms, snapshot, amount))
        results.append(self.debt_agreement.payer_has_sufficient_balance(snapshot, amount))
        results.append(self.debt_agreement.payer_has_sufficient_allowance(snapshot, amount))
        return self._report("repay", results)

    def evaluate_seizure(self, snapshot: AgreementSnapshot, caller: str) -> AssertionReport:
        results, terms = self._decode(snapshot.terms_contract_type, snapshot.terms_parameters)
        results.append(self.debt_token.is_beneficiary(snapshot, caller))
        if terms is not None:
            results.append(self.debt_agreement.seizure_permitted(terms, snapshot))
        results.append(self.debt_agreement.collateral_not_withdrawn(snapshot))
        return self._report("seize", results)
