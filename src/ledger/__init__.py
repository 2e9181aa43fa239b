"""Ledger — async граница с внешним ledger (чтения, транзакции, подписи)."""

from .client import (
    DebtKernelError,
    LedgerClient,
    ProtocolContracts,
    TransactionReceipt,
    describe_kernel_error,
    raise_for_receipt,
    submit_and_confirm,
)
from .snapshot_reader import SnapshotReader, agreement_token_id
from .tokens import TokenData, TokenService

__all__ = [
    "DebtKernelError",
    "LedgerClient",
    "ProtocolContracts",
    "TransactionReceipt",
    "describe_kernel_error",
    "raise_for_receipt",
    "submit_and_confirm",
    "SnapshotReader",
    "agreement_token_id",
    "TokenData",
    "TokenService",
]
