"""
Debt Agreement Assertions — проверки выпущенного соглашения

Repay:
- долг ещё не погашен
- сумма не превышает остаток (total expected - repaid to date)
- у плательщика хватает balance / allowance principal токена

Seize:
- долг не погашен к моменту seize
- term end + grace period уже наступили (current_time >= boundary)
- обеспечение ещё не выведено
"""

from dataclasses import replace
from typing import Optional

from src.assertions.result import AssertionResult, FailureReason
from src.assertions.token import TokenAssertions
from src.core.domain.snapshot import AgreementSnapshot
from src.core.domain.terms import LoanTerms


def outstanding_amount(terms: LoanTerms, snapshot: AgreementSnapshot) -> int:
    """Остаток долга: полная сумма погашения минус уже выплаченное."""
    return max(terms.total_expected_repayment() - snapshot.value_repaid_to_date, 0)


class DebtAgreementAssertions:
    """Проверки над AgreementSnapshot и декодированными LoanTerms."""

    def __init__(self, token: Optional[TokenAssertions] = None):
        self.token = token or TokenAssertions()

    # =========================================================================
    # Repayment
    # =========================================================================

    def debt_not_repaid(self, terms: LoanTerms, snapshot: AgreementSnapshot) -> AssertionResult:
        name = "debt_agreement.debt_not_repaid"
        if outstanding_amount(terms, snapshot) == 0:
            return AssertionResult.fail(
                name,
                FailureReason.DEBT_ALREADY_REPAID,
                f"Repaid {snapshot.value_repaid_to_date} of {terms.total_expected_repayment()}",
            )
        return AssertionResult.ok(name)

    def repayment_within_outstanding(
        self, terms: LoanTerms, snapshot: AgreementSnapshot, amount: int
    ) -> AssertionResult:
        name = "debt_agreement.repayment_within_outstanding"
        outstanding = outstanding_amount(terms, snapshot)
        if amount <= 0:
            return AssertionResult.fail(
                name,
                FailureReason.REPAYMENT_EXCEEDS_OUTSTANDING,
                f"Repayment amount must be positive, got {amount}",
                field="amount",
            )
        if amount > outstanding:
            return AssertionResult.fail(
                name,
                FailureReason.REPAYMENT_EXCEEDS_OUTSTANDING,
                f"Repayment {amount} exceeds outstanding {outstanding}",
                field="amount",
            )
        return AssertionResult.ok(name)

    def payer_has_sufficient_balance(self, snapshot: AgreementSnapshot, amount: int) -> AssertionResult:
        result = self.token.has_sufficient_balance(snapshot.payer_token_state, amount)
        return replace(result, name="debt_agreement.payer_has_sufficient_balance")

    def payer_has_sufficient_allowance(self, snapshot: AgreementSnapshot, amount: int) -> AssertionResult:
        result = self.token.has_sufficient_allowance(snapshot.payer_token_state, amount)
        return replace(result, name="debt_agreement.payer_has_sufficient_allowance")

    # =========================================================================
    # Seizure
    # =========================================================================

    def grace_period_elapsed(self, terms: LoanTerms, snapshot: AgreementSnapshot) -> AssertionResult:
        name = "debt_agreement.grace_period_elapsed"
        available_at = terms.seizure_available_at(snapshot.issuance_timestamp)
        if snapshot.current_time < available_at:
            return AssertionResult.fail(
                name,
                FailureReason.GRACE_PERIOD_NOT_ELAPSED,
                f"Seizure available at {available_at}, now {snapshot.current_time}",
            )
        return AssertionResult.ok(name)

    def seizure_permitted(self, terms: LoanTerms, snapshot: AgreementSnapshot) -> AssertionResult:
        """Долг не погашен И grace period истёк."""
        unpaid = self.debt_not_repaid(terms, snapshot)
        if not unpaid.passed:
            return replace(unpaid, name="debt_agreement.seizure_permitted")
        elapsed = self.grace_period_elapsed(terms, snapshot)
        return replace(elapsed, name="debt_agreement.seizure_permitted")

    def collateral_not_withdrawn(self, snapshot: AgreementSnapshot) -> AssertionResult:
        name = "debt_agreement.collateral_not_withdrawn"
        if not snapshot.collateral_locked:
            return AssertionResult.fail(
                name,
                FailureReason.COLLATERAL_ALREADY_WITHDRAWN,
                f"No collateral locked for agreement {snapshot.agreement_id}",
            )
        return AssertionResult.ok(name)
