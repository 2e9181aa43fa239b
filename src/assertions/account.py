"""Account Assertions — проверки аккаунтов

- Достаточный native баланс для оплаты fees (gas)
- Подписант совпадает с заявленным адресом debtor / creditor
"""

from typing import Optional

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_keys.exceptions import BadSignature, ValidationError as KeyValidationError

from src.assertions.result import AssertionResult, FailureReason
from src.core.domain.addresses import same_address
from src.core.domain.debt_order import ECDSASignature
from src.core.domain.snapshot import FillSnapshot


def recover_signer(payload_hash: str, signature: ECDSASignature) -> Optional[str]:
    """
    Адрес, подписавший payload_hash (personal_sign, EIP-191).

    Returns:
        checksum адрес или None, если подпись не восстанавливается
    """
    message = encode_defunct(hexstr=payload_hash)
    try:
        return Account.recover_message(message, vrs=signature.to_vrs())
    except (BadSignature, KeyValidationError, ValueError, TypeError):
        return None


class AccountAssertions:
    """Проверки аккаунтов (stateless, чистое чтение снапшота)."""

    def __init__(self, min_native_balance_for_fees: int = 0):
        """
        Args:
            min_native_balance_for_fees: минимальный native баланс (wei) для gas
        """
        self.min_native_balance_for_fees = min_native_balance_for_fees

    def has_native_balance_for_fees(self, snapshot: FillSnapshot, who: str) -> AssertionResult:
        name = "account.has_native_balance_for_fees"
        balance = snapshot.native_balance(who)

        if balance is None:
            return AssertionResult.fail(
                name,
                FailureReason.INSUFFICIENT_NATIVE_BALANCE,
                f"No native balance for {who} in snapshot",
                who=who,
            )
        if balance < self.min_native_balance_for_fees:
            return AssertionResult.fail(
                name,
                FailureReason.INSUFFICIENT_NATIVE_BALANCE,
                f"Native balance {balance} < required {self.min_native_balance_for_fees}",
                who=who,
            )
        return AssertionResult.ok(name)

    def is_account(self, expected: str, actual: str) -> AssertionResult:
        """Аккаунт, выполняющий действие, совпадает с заявленным."""
        name = "account.is_account"
        if not same_address(expected, actual):
            return AssertionResult.fail(
                name,
                FailureReason.SIGNATURE_MISMATCH,
                f"Account {actual} does not match expected {expected}",
                who=actual,
            )
        return AssertionResult.ok(name)

    def signer_matches(
        self,
        payload_hash: str,
        signature: Optional[ECDSASignature],
        expected: Optional[str],
    ) -> AssertionResult:
        """Подпись над payload_hash сделана expected адресом."""
        name = "account.signer_matches"

        if signature is None or expected is None:
            return AssertionResult.fail(
                name,
                FailureReason.SIGNATURE_MISMATCH,
                "Signature or expected signer is missing",
                who=expected,
            )

        signer = recover_signer(payload_hash, signature)
        if signer is None or not same_address(signer, expected):
            return AssertionResult.fail(
                name,
                FailureReason.SIGNATURE_MISMATCH,
                f"Recovered signer {signer} does not match {expected}",
                who=expected,
            )
        return AssertionResult.ok(name)
