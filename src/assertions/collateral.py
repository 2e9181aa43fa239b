"""Collateral Assertions — средства debtor'а под обеспечение при fill

Для займа без обеспечения проверки не применимы и всегда проходят,
поэтому их отключение не меняет решение по такому займу.
"""

from dataclasses import replace

from src.assertions.result import AssertionResult, FailureReason
from src.assertions.token import TokenAssertions
from src.core.domain.debt_order import DebtOrder
from src.core.domain.snapshot import FillSnapshot
from src.core.domain.terms import LoanTerms


class CollateralAssertions:
    """Баланс и allowance collateral токена у debtor'а."""

    def __init__(self, token: TokenAssertions):
        self.token = token

    def _state(self, order: DebtOrder, snapshot: FillSnapshot):
        if snapshot.collateral_token is None:
            return None
        return snapshot.token_state(order.debtor, snapshot.collateral_token)

    def debtor_has_collateral_balance(
        self, order: DebtOrder, terms: LoanTerms, snapshot: FillSnapshot
    ) -> AssertionResult:
        name = "collateral.debtor_has_collateral_balance"
        if terms.collateral is None:
            return AssertionResult.ok(name, "PASS (not collateralized)")
        if snapshot.collateral_token is None:
            return AssertionResult.fail(
                name,
                FailureReason.INSUFFICIENT_BALANCE,
                f"Collateral token index {terms.collateral.collateral_token_index} not resolved",
                who=order.debtor,
            )
        result = self.token.has_sufficient_balance(
            self._state(order, snapshot), terms.collateral.collateral_amount, who=order.debtor
        )
        return replace(result, name=name)

    def debtor_has_collateral_allowance(
        self, order: DebtOrder, terms: LoanTerms, snapshot: FillSnapshot
    ) -> AssertionResult:
        name = "collateral.debtor_has_collateral_allowance"
        if terms.collateral is None:
            return AssertionResult.ok(name, "PASS (not collateralized)")
        if snapshot.collateral_token is None:
            return AssertionResult.fail(
                name,
                FailureReason.INSUFFICIENT_ALLOWANCE,
                f"Collateral token index {terms.collateral.collateral_token_index} not resolved",
                who=order.debtor,
            )
        result = self.token.has_sufficient_allowance(
            self._state(order, snapshot), terms.collateral.collateral_amount, who=order.debtor
        )
        return replace(result, name=name)
