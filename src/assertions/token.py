"""Token Assertions — баланс и allowance токенов

Allowance, равный maximal uint256, считается unlimited: он никогда не
требует обновления и никогда не даёт INSUFFICIENT_ALLOWANCE.
"""

from typing import Optional

from src.assertions.result import AssertionResult, FailureReason
from src.core.domain.token import TokenAllowanceState


class TokenAssertions:
    """Проверки токенов по снапшоту TokenAllowanceState."""

    def has_sufficient_balance(
        self,
        state: Optional[TokenAllowanceState],
        amount: int,
        who: str = "",
    ) -> AssertionResult:
        name = "token.has_sufficient_balance"
        if state is None:
            return AssertionResult.fail(
                name,
                FailureReason.INSUFFICIENT_BALANCE,
                "Token state missing from snapshot",
                who=who,
            )
        if state.balance < amount:
            return AssertionResult.fail(
                name,
                FailureReason.INSUFFICIENT_BALANCE,
                f"{state.token_symbol} balance {state.balance} < required {amount}",
                who=state.owner,
                token=state.token_symbol,
            )
        return AssertionResult.ok(name)

    def has_sufficient_allowance(
        self,
        state: Optional[TokenAllowanceState],
        amount: int,
        who: str = "",
    ) -> AssertionResult:
        name = "token.has_sufficient_allowance"
        if state is None:
            return AssertionResult.fail(
                name,
                FailureReason.INSUFFICIENT_ALLOWANCE,
                "Token state missing from snapshot",
                who=who,
            )
        if state.has_unlimited_allowance:
            return AssertionResult.ok(name, "PASS (unlimited allowance)")
        if state.allowance < amount:
            return AssertionResult.fail(
                name,
                FailureReason.INSUFFICIENT_ALLOWANCE,
                f"{state.token_symbol} allowance {state.allowance} for {state.spender} < required {amount}",
                who=state.owner,
                token=state.token_symbol,
            )
        return AssertionResult.ok(name)

    def has_unlimited_allowance(self, state: Optional[TokenAllowanceState]) -> AssertionResult:
        name = "token.has_unlimited_allowance"
        if state is None or not state.has_unlimited_allowance:
            return AssertionResult.fail(
                name,
                FailureReason.INSUFFICIENT_ALLOWANCE,
                "Allowance is not unlimited",
                who=state.owner if state else None,
                token=state.token_symbol if state else None,
            )
        return AssertionResult.ok(name)
