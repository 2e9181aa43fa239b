"""Order Assertions — проверки debt order перед подписью и fill

Повторяют условия, при которых debt kernel отклоняет fill (LogError),
чтобы отказ был виден до отправки транзакции:
- expiration
- issuance уже выпущен / отменён, order отменён
- fees: баланс, получатели, principal >= debtor fee
- подписи debtor и creditor
- баланс и allowance creditor'а на principal + creditor fee
"""

from dataclasses import replace

from src.assertions.account import AccountAssertions
from src.assertions.result import AssertionResult, FailureReason
from src.assertions.token import TokenAssertions
from src.core.domain.addresses import is_null_address
from src.core.domain.debt_order import DebtOrder
from src.core.domain.snapshot import FillSnapshot


class OrderAssertions:
    """Проверки debt order. Чистые функции над order и FillSnapshot."""

    def __init__(self, account: AccountAssertions, token: TokenAssertions):
        self.account = account
        self.token = token

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def not_expired(self, order: DebtOrder, current_time: int) -> AssertionResult:
        name = "order.not_expired"
        if order.is_expired_at(current_time):
            return AssertionResult.fail(
                name,
                FailureReason.ORDER_EXPIRED,
                f"Expired at {order.expiration_timestamp_in_sec}, now {current_time}",
            )
        return AssertionResult.ok(name)

    def issuance_not_used(self, snapshot: FillSnapshot) -> AssertionResult:
        name = "order.issuance_not_used"
        if snapshot.issuance_exists:
            return AssertionResult.fail(
                name,
                FailureReason.ORDER_ALREADY_FILLED,
                "Debt token for this agreement id already exists",
            )
        return AssertionResult.ok(name)

    def issuance_not_cancelled(self, snapshot: FillSnapshot) -> AssertionResult:
        name = "order.issuance_not_cancelled"
        if snapshot.issuance_cancelled:
            return AssertionResult.fail(name, FailureReason.ORDER_CANCELLED, "Issuance was cancelled")
        return AssertionResult.ok(name)

    def order_not_cancelled(self, snapshot: FillSnapshot) -> AssertionResult:
        name = "order.order_not_cancelled"
        if snapshot.order_cancelled:
            return AssertionResult.fail(name, FailureReason.ORDER_CANCELLED, "Debt order was cancelled")
        return AssertionResult.ok(name)

    # =========================================================================
    # Signatures
    # =========================================================================

    def valid_debtor_signature(self, order: DebtOrder) -> AssertionResult:
        result = self.account.signer_matches(order.order_hash, order.debtor_signature, order.debtor)
        return replace(result, name="order.valid_debtor_signature")

    def valid_creditor_signature(self, order: DebtOrder) -> AssertionResult:
        result = self.account.signer_matches(order.order_hash, order.creditor_signature, order.creditor)
        return replace(result, name="order.valid_creditor_signature")

    # =========================================================================
    # Fees
    # =========================================================================

    def fees_balanced(self, order: DebtOrder) -> AssertionResult:
        """Получатели fees получают ровно то, что платят стороны."""
        name = "order.fees_balanced"
        paid = order.creditor_fee + order.debtor_fee
        received = order.relayer_fee + order.underwriter_fee
        if paid != received:
            return AssertionResult.fail(
                name,
                FailureReason.INVALID_FEES,
                f"creditor_fee + debtor_fee = {paid} != relayer_fee + underwriter_fee = {received}",
            )
        return AssertionResult.ok(name)

    def fee_recipients_specified(self, order: DebtOrder) -> AssertionResult:
        name = "order.fee_recipients_specified"
        if order.relayer_fee > 0 and is_null_address(order.relayer):
            return AssertionResult.fail(
                name,
                FailureReason.INVALID_FEES,
                "Relayer fee is set but relayer is unspecified",
                field="relayer",
            )
        if order.underwriter_fee > 0 and is_null_address(order.underwriter):
            return AssertionResult.fail(
                name,
                FailureReason.INVALID_FEES,
                "Underwriter fee is set but underwriter is unspecified",
                field="underwriter",
            )
        return AssertionResult.ok(name)

    def principal_covers_debtor_fee(self, order: DebtOrder) -> AssertionResult:
        name = "order.principal_covers_debtor_fee"
        if order.principal_amount < order.debtor_fee:
            return AssertionResult.fail(
                name,
                FailureReason.INVALID_FEES,
                f"Principal {order.principal_amount} < debtor fee {order.debtor_fee}",
                field="debtor_fee",
            )
        return AssertionResult.ok(name)

    # =========================================================================
    # Creditor funds
    # =========================================================================

    def creditor_required_amount(self, order: DebtOrder) -> int:
        return order.principal_amount + order.creditor_fee

    def creditor_has_sufficient_balance(self, order: DebtOrder, snapshot: FillSnapshot) -> AssertionResult:
        creditor = order.creditor or ""
        state = snapshot.token_state(creditor, order.principal_token) if order.creditor else None
        return self.token.has_sufficient_balance(state, self.creditor_required_amount(order), who=creditor)

    def creditor_has_sufficient_allowance(self, order: DebtOrder, snapshot: FillSnapshot) -> AssertionResult:
        creditor = order.creditor or ""
        state = snapshot.token_state(creditor, order.principal_token) if order.creditor else None
        return self.token.has_sufficient_allowance(state, self.creditor_required_amount(order), who=creditor)
