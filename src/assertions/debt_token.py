"""Debt Token Assertions — владение debt token (beneficiary)"""

from src.assertions.result import AssertionResult, FailureReason
from src.core.domain.addresses import same_address
from src.core.domain.snapshot import AgreementSnapshot


class DebtTokenAssertions:
    def is_beneficiary(self, snapshot: AgreementSnapshot, account: str) -> AssertionResult:
        """Только держатель debt token может изымать обеспечение."""
        name = "debt_token.is_beneficiary"
        if not same_address(snapshot.beneficiary, account):
            return AssertionResult.fail(
                name,
                FailureReason.NOT_BENEFICIARY,
                f"{account} is not the beneficiary {snapshot.beneficiary}",
                who=account,
            )
        return AssertionResult.ok(name)
