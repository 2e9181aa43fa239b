"""
TokenService — токены token registry и allowance для token transfer proxy

- Атрибуты токена по символу / индексу
- Балансы и allowance владельца по всем зарегистрированным токенам
- Unlimited allowance: approve(proxy, 2^256 - 1), не требует обновления
"""

import asyncio
import logging
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from src.core.domain.addresses import normalize_address
from src.core.domain.token import (
    UNLIMITED_ALLOWANCE_IN_BASE_UNITS,
    TokenAllowanceState,
    is_unlimited_allowance,
)
from src.ledger.client import LedgerClient, ProtocolContracts, submit_and_confirm
from src.ledger.snapshot_reader import SnapshotReader

logger = logging.getLogger(__name__)


class TokenData(BaseModel):
    """Атрибуты токена из token registry."""

    address: str
    symbol: str = Field(..., min_length=1)
    name: str
    decimals: int = Field(..., ge=0, le=255)
    index: int = Field(..., ge=0)

    model_config = {"frozen": True}

    @field_validator("address")
    @classmethod
    def checksum(cls, v: str) -> str:
        return normalize_address(v)


class TokenService:
    """
    Args:
        ledger: LedgerClient
        contracts: адреса контрактов протокола
    """

    def __init__(self, ledger: LedgerClient, contracts: ProtocolContracts):
        self.ledger = ledger
        self.contracts = contracts
        self._reader = SnapshotReader(ledger, contracts)

    # =========================================================================
    # Registry
    # =========================================================================

    async def get_data_for_symbol(self, symbol: str) -> TokenData:
        address, index, name, decimals = await self.ledger.call_read_only(
            self.contracts.token_registry, "getTokenAttributesBySymbol", [symbol]
        )
        return TokenData(address=address, symbol=symbol, name=name, decimals=decimals, index=index)

    async def get_data_for_index(self, index: int) -> TokenData:
        address, symbol, name, decimals = await self.ledger.call_read_only(
            self.contracts.token_registry, "getTokenAttributesByIndex", [index]
        )
        return TokenData(address=address, symbol=symbol, name=name, decimals=decimals, index=index)

    async def all(self, owner: str) -> List[TokenAllowanceState]:
        """Баланс и proxy allowance owner'а для каждого зарегистрированного токена."""
        count = await self.ledger.call_read_only(self.contracts.token_registry, "getNumTokens")
        tokens = await asyncio.gather(*(self.get_data_for_index(i) for i in range(count)))
        return list(
            await asyncio.gather(*(self._reader.read_token_state(owner, t.address) for t in tokens))
        )

    # =========================================================================
    # Balances / allowances
    # =========================================================================

    async def get_balance(self, token_address: str, owner: str) -> int:
        return await self.ledger.call_read_only(token_address, "balanceOf", [owner])

    async def get_proxy_allowance(self, token_address: str, owner: str) -> int:
        return await self.ledger.call_read_only(
            token_address, "allowance", [owner, self.contracts.token_transfer_proxy]
        )

    async def has_unlimited_proxy_allowance(self, token_address: str, owner: str) -> bool:
        return is_unlimited_allowance(await self.get_proxy_allowance(token_address, owner))

    async def set_proxy_allowance(self, token_address: str, owner: str, amount: int) -> str:
        """
        approve(proxy, amount) от имени owner.

        Returns:
            tx hash подтверждённой транзакции

        Raises:
            ValueError: amount вне диапазона uint256
            TransactionReverted: approve откатился
        """
        if not 0 <= amount <= UNLIMITED_ALLOWANCE_IN_BASE_UNITS:
            raise ValueError(f"Allowance {amount} outside uint256 range")

        receipt = await submit_and_confirm(
            self.ledger,
            token_address,
            "approve",
            [self.contracts.token_transfer_proxy, amount],
            owner,
        )
        logger.info(
            "Proxy allowance set",
            extra={
                "token": token_address,
                "owner": owner,
                "unlimited": is_unlimited_allowance(amount),
                "tx_hash": receipt.tx_hash,
            },
        )
        return receipt.tx_hash

    async def set_proxy_allowance_to_unlimited(self, token_address: str, owner: str) -> str:
        return await self.set_proxy_allowance(token_address, owner, UNLIMITED_ALLOWANCE_IN_BASE_UNITS)

    async def revoke_proxy_allowance(self, token_address: str, owner: str) -> str:
        return await self.set_proxy_allowance(token_address, owner, 0)

    async def make_allowance_unlimited_if_necessary(self, token_address: str, owner: str) -> Optional[str]:
        """
        Returns:
            tx hash, либо None если allowance уже unlimited (транзакция не нужна)
        """
        if await self.has_unlimited_proxy_allowance(token_address, owner):
            return None
        return await self.set_proxy_allowance_to_unlimited(token_address, owner)
