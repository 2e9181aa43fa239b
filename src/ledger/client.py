"""
Ledger Client — граница с внешним ledger (async)

LedgerClient — Protocol: реализация (web3 provider, тестовый fake) поставляется
вызывающим кодом. Ядро не создаёт соединений и не повторяет запросы:
transport ошибки пробрасываются без изменений.

Contract id — адрес контракта (checksum). Методы вызываются по именам ABI
протокола (fillDebtOrder, balanceOf, ...).

Debt kernel сообщает об отказе fill событием LogError(uint8 errorId, ...),
а не revert'ом: receipt со status=1 и error codes тоже считается отказом.
"""

from enum import IntEnum
from typing import Any, Dict, Optional, Protocol, Sequence, Tuple, runtime_checkable

from pydantic import BaseModel, Field, field_validator

from src.core.domain.addresses import normalize_address, same_address
from src.core.domain.debt_order import ECDSASignature
from src.core.exceptions import TransactionReverted


# =============================================================================
# DEBT KERNEL ERRORS
# =============================================================================


class DebtKernelError(IntEnum):
    """Коды LogError debt kernel (порядок фиксирован контрактом)."""

    DEBT_ORDER_ALREADY_FILLED = 0
    ISSUANCE_CANCELLED = 1
    DEBT_ORDER_CANCELLED = 2
    ORDER_INVALID_INSUFFICIENT_OR_EXCESSIVE_FEES = 3
    ORDER_INVALID_INSUFFICIENT_PRINCIPAL = 4
    ORDER_INVALID_UNSPECIFIED_FEE_RECIPIENT = 5
    ORDER_INVALID_NON_CONSENSUAL = 6
    ORDER_INVALID_EXPIRED = 7
    CREDITOR_BALANCE_OR_ALLOWANCE_INSUFFICIENT = 8


def describe_kernel_error(code: int) -> str:
    try:
        return DebtKernelError(code).name
    except ValueError:
        return f"UNKNOWN_KERNEL_ERROR_{code}"


# =============================================================================
# RECEIPTS
# =============================================================================


class TransactionReceipt(BaseModel):
    """Receipt смайненной транзакции."""

    tx_hash: str
    status: bool = Field(..., description="True если исполнение не откатилось")
    block_number: int = Field(..., ge=0)
    block_timestamp: int = Field(0, ge=0)
    revert_reason: Optional[str] = None
    kernel_error_codes: Tuple[int, ...] = Field(default=(), description="Коды LogError debt kernel")

    model_config = {"frozen": True}

    @property
    def succeeded(self) -> bool:
        return self.status and not self.kernel_error_codes


def raise_for_receipt(receipt: TransactionReceipt) -> TransactionReceipt:
    """
    Raises:
        TransactionReverted: revert или LogError debt kernel
    """
    if not receipt.status:
        raise TransactionReverted(receipt.revert_reason, receipt.tx_hash)
    if receipt.kernel_error_codes:
        reason = ", ".join(describe_kernel_error(code) for code in receipt.kernel_error_codes)
        raise TransactionReverted(reason, receipt.tx_hash)
    return receipt


# =============================================================================
# PROTOCOL CONTRACTS
# =============================================================================


class ProtocolContracts(BaseModel):
    """Адреса контрактов протокола одной версии."""

    debt_kernel: str
    repayment_router: str
    token_transfer_proxy: str
    collateralizer: str
    debt_token: str
    debt_registry: str
    token_registry: str

    # type code (TermsContractType.value) → адрес terms contract
    terms_contracts: Dict[str, str] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @field_validator(
        "debt_kernel",
        "repayment_router",
        "token_transfer_proxy",
        "collateralizer",
        "debt_token",
        "debt_registry",
        "token_registry",
    )
    @classmethod
    def checksum(cls, v: str) -> str:
        return normalize_address(v)

    @field_validator("terms_contracts")
    @classmethod
    def checksum_terms(cls, v: Dict[str, str]) -> Dict[str, str]:
        return {type_code: normalize_address(address) for type_code, address in v.items()}

    def terms_contract_for(self, type_code: str) -> str:
        """
        Raises:
            KeyError: для type code нет развёрнутого terms contract
        """
        return self.terms_contracts[type_code]

    def type_for_terms_contract(self, address: str) -> Optional[str]:
        for type_code, contract in self.terms_contracts.items():
            if same_address(contract, address):
                return type_code
        return None


# =============================================================================
# LEDGER CLIENT
# =============================================================================


@runtime_checkable
class LedgerClient(Protocol):
    """Внешний ledger collaborator."""

    async def call_read_only(self, contract_id: str, method: str, args: Sequence[Any] = ()) -> Any:
        ...

    async def send_transaction(
        self, contract_id: str, method: str, args: Sequence[Any], signer: str
    ) -> str:
        ...

    async def await_mined(self, tx_hash: str) -> TransactionReceipt:
        ...

    async def sign(self, payload: str, account: str) -> ECDSASignature:
        ...

    async def get_block_timestamp(self) -> int:
        ...

    async def get_native_balance(self, address: str) -> int:
        ...


async def submit_and_confirm(
    ledger: LedgerClient,
    contract_id: str,
    method: str,
    args: Sequence[Any],
    signer: str,
) -> TransactionReceipt:
    """
    send → await mined → проверка receipt.

    Raises:
        TransactionReverted: исполнение откатилось
    """
    tx_hash = await ledger.send_transaction(contract_id, method, args, signer)
    receipt = await ledger.await_mined(tx_hash)
    return raise_for_receipt(receipt)
