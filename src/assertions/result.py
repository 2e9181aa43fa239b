"""
AssertionResult — результат одной проверки

Проверки никогда не бросают исключения как control flow: они возвращают
PASS или FAIL с типизированной причиной. Вызывающий код решает, считать ли
отказ фатальным (raise_for_failure) или исправить причину и повторить
(например, поднять allowance).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple, Type

from src.core.exceptions import (
    AssertionFailure,
    CollateralAlreadyWithdrawn,
    DebtAlreadyRepaid,
    GracePeriodNotElapsed,
    InsufficientAllowance,
    InsufficientBalance,
    InsufficientNativeBalance,
    InvalidFees,
    NotBeneficiary,
    OrderAlreadyFilled,
    OrderCancelled,
    OrderExpired,
    RepaymentExceedsOutstanding,
    SchemaInvalid,
    SignatureMismatch,
    UnknownAdapterType,
)


class FailureReason(str, Enum):
    """Типизированная причина отказа проверки."""

    SCHEMA_INVALID = "SCHEMA_INVALID"
    UNKNOWN_ADAPTER_TYPE = "UNKNOWN_ADAPTER_TYPE"
    ORDER_EXPIRED = "ORDER_EXPIRED"
    ORDER_ALREADY_FILLED = "ORDER_ALREADY_FILLED"
    ORDER_CANCELLED = "ORDER_CANCELLED"
    INVALID_FEES = "INVALID_FEES"
    SIGNATURE_MISMATCH = "SIGNATURE_MISMATCH"
    INSUFFICIENT_NATIVE_BALANCE = "INSUFFICIENT_NATIVE_BALANCE"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    INSUFFICIENT_ALLOWANCE = "INSUFFICIENT_ALLOWANCE"
    GRACE_PERIOD_NOT_ELAPSED = "GRACE_PERIOD_NOT_ELAPSED"
    DEBT_ALREADY_REPAID = "DEBT_ALREADY_REPAID"
    REPAYMENT_EXCEEDS_OUTSTANDING = "REPAYMENT_EXCEEDS_OUTSTANDING"
    COLLATERAL_ALREADY_WITHDRAWN = "COLLATERAL_ALREADY_WITHDRAWN"
    NOT_BENEFICIARY = "NOT_BENEFICIARY"


_SIMPLE_EXCEPTIONS: Dict[FailureReason, Type[AssertionFailure]] = {
    FailureReason.ORDER_EXPIRED: OrderExpired,
    FailureReason.ORDER_ALREADY_FILLED: OrderAlreadyFilled,
    FailureReason.ORDER_CANCELLED: OrderCancelled,
    FailureReason.INVALID_FEES: InvalidFees,
    FailureReason.SIGNATURE_MISMATCH: SignatureMismatch,
    FailureReason.GRACE_PERIOD_NOT_ELAPSED: GracePeriodNotElapsed,
    FailureReason.DEBT_ALREADY_REPAID: DebtAlreadyRepaid,
    FailureReason.REPAYMENT_EXCEEDS_OUTSTANDING: RepaymentExceedsOutstanding,
    FailureReason.COLLATERAL_ALREADY_WITHDRAWN: CollateralAlreadyWithdrawn,
    FailureReason.NOT_BENEFICIARY: NotBeneficiary,
}


@dataclass(frozen=True)
class AssertionResult:
    """Результат проверки.

    who / token / field: контекст отказа для InsufficientBalance(who, token)
    и SchemaInvalid(field, reason).
    """

    name: str
    passed: bool
    reason: Optional[FailureReason] = None
    details: str = ""
    who: Optional[str] = None
    token: Optional[str] = None
    field: Optional[str] = None

    @classmethod
    def ok(cls, name: str, details: str = "PASS") -> "AssertionResult":
        return cls(name=name, passed=True, details=details)

    @classmethod
    def fail(
        cls,
        name: str,
        reason: FailureReason,
        details: str,
        who: Optional[str] = None,
        token: Optional[str] = None,
        field: Optional[str] = None,
    ) -> "AssertionResult":
        return cls(
            name=name,
            passed=False,
            reason=reason,
            details=details,
            who=who,
            token=token,
            field=field,
        )

    def to_exception(self) -> Exception:
        """Типизированное исключение для отказа (вызывающий код решает, бросать ли)."""
        if self.passed or self.reason is None:
            raise ValueError(f"Assertion {self.name} passed; there is no failure to convert")

        if self.reason == FailureReason.INSUFFICIENT_BALANCE:
            return InsufficientBalance(self.who or "", self.token or "", self.details)
        if self.reason == FailureReason.INSUFFICIENT_ALLOWANCE:
            return InsufficientAllowance(self.who or "", self.token or "", self.details)
        if self.reason == FailureReason.INSUFFICIENT_NATIVE_BALANCE:
            return InsufficientNativeBalance(self.who or "", self.details)
        if self.reason == FailureReason.SCHEMA_INVALID:
            return SchemaInvalid(self.field or "<root>", self.details)
        if self.reason == FailureReason.UNKNOWN_ADAPTER_TYPE:
            return UnknownAdapterType(self.field)
        return _SIMPLE_EXCEPTIONS[self.reason](self.details)

    def raise_for_failure(self) -> None:
        if not self.passed:
            raise self.to_exception()


@dataclass(frozen=True)
class AssertionReport:
    """Набор результатов одной операции (fill / repay / seize)."""

    operation: str
    results: Tuple[AssertionResult, ...] = ()

    @property
    def passed(self) -> bool:
        return all(r.passed for r in self.results)

    @property
    def failures(self) -> List[AssertionResult]:
        return [r for r in self.results if not r.passed]

    @property
    def first_failure(self) -> Optional[AssertionResult]:
        failures = self.failures
        return failures[0] if failures else None

    @property
    def reasons(self) -> List[FailureReason]:
        return [r.reason for r in self.failures if r.reason is not None]

    def raise_for_failure(self) -> None:
        """Бросает исключение первой (наиболее приоритетной) причины отказа."""
        failure = self.first_failure
        if failure is not None:
            failure.raise_for_failure()
