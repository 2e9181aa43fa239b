"""
Exceptions — таксономия ошибок адаптера условий займа

Три группы ошибок:
1. Codec / schema: PrecisionOverflow, FieldOverflow, UnknownAdapterType,
   SchemaInvalid. Всегда пробрасываются вызывающему коду, значение никогда
   не кодируется приближённо.
2. Assertion failures: OrderExpired, InsufficientAllowance, ... Движок
   проверок возвращает их как AssertionResult; исключение формируется только
   когда вызывающий код решает считать отказ фатальным.
3. Transaction-level: TransactionReverted (on-chain revert с причиной от
   контракта, если она доступна).

Ошибки транспорта (ledger collaborator) сюда не входят и пробрасываются
без изменений.
"""

from typing import Any, Optional


class LoanAdapterError(Exception):
    """Базовое исключение для всех ошибок адаптера."""

    pass


# =============================================================================
# CODEC / SCHEMA
# =============================================================================


class PrecisionOverflow(LoanAdapterError):
    """Значение не представимо в fixed-point слове назначения без потерь."""

    pass


class FieldOverflow(LoanAdapterError):
    """Семантическое значение не помещается в ширину битового поля."""

    def __init__(self, field: str, message: Optional[str] = None):
        self.field = field
        super().__init__(message or f"Value for field '{field}' exceeds its bit width")


class UnknownAdapterType(LoanAdapterError):
    """Для terms contract type code не зарегистрирован codec."""

    def __init__(self, type_code: object):
        self.type_code = type_code
        super().__init__(f"No terms codec registered for type code {type_code!r}")


class SchemaInvalid(LoanAdapterError):
    """Поле не соответствует ожидаемой форме (schema / reserved bits / enum code)."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Schema invalid at '{field}': {reason}")


# =============================================================================
# LIFECYCLE / TRANSACTIONS
# =============================================================================


class InvalidStateTransition(LoanAdapterError):
    """Действие недопустимо в текущем состоянии займа."""

    def __init__(self, state: object, action: object):
        self.state = state
        self.action = action
        super().__init__(f"Action {action!s} is not allowed in state {state!s}")


class TransactionReverted(LoanAdapterError):
    """On-chain исполнение транзакции откатилось."""

    def __init__(self, reason: Optional[str] = None, tx_hash: Optional[str] = None):
        self.reason = reason
        self.tx_hash = tx_hash
        super().__init__(
            f"Transaction {tx_hash or ''} reverted: {reason or 'no reason supplied'}".replace("  ", " ")
        )


# =============================================================================
# ASSERTION FAILURES
# =============================================================================


class AssertionFailure(LoanAdapterError):
    """Отказ проверки, поднятый как исключение по решению вызывающего кода."""

    def __init__(self, details: str = ""):
        self.details = details
        super().__init__(details or self.__class__.__name__)


class OrderExpired(AssertionFailure):
    """
    Order просрочен.

    loan: займ в состоянии EXPIRED, если просрочку наблюдал LoanLifecycle
    (lazy expiry при очередной операции).
    """

    def __init__(self, details: str = "", loan: Any = None):
        super().__init__(details)
        self.loan = loan


class OrderAlreadyFilled(AssertionFailure):
    pass


class OrderCancelled(AssertionFailure):
    pass


class SignatureMismatch(AssertionFailure):
    pass


class GracePeriodNotElapsed(AssertionFailure):
    pass


class DebtAlreadyRepaid(AssertionFailure):
    pass


class RepaymentExceedsOutstanding(AssertionFailure):
    pass


class InvalidFees(AssertionFailure):
    pass


class CollateralAlreadyWithdrawn(AssertionFailure):
    pass


class NotBeneficiary(AssertionFailure):
    pass


class InsufficientNativeBalance(AssertionFailure):
    def __init__(self, who: str, details: str = ""):
        self.who = who
        super().__init__(details or f"{who} has insufficient native balance for fees")


class InsufficientBalance(AssertionFailure):
    def __init__(self, who: str, token: str, details: str = ""):
        self.who = who
        self.token = token
        super().__init__(details or f"{who} has insufficient {token} balance")


class InsufficientAllowance(AssertionFailure):
    def __init__(self, who: str, token: str, details: str = ""):
        self.who = who
        self.token = token
        super().__init__(details or f"{who} has insufficient {token} allowance")
