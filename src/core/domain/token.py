"""
TokenAllowanceState — снапшот баланса и allowance токена

Read-only снапшот (owner, spender=proxy, токен, allowance, balance).
Никогда не кэшируется между вызовами: устаревший снапшот даёт ложные
PASS в проверках.
"""

from typing import Final

from pydantic import BaseModel, Field, field_validator

from src.core.domain.addresses import normalize_address

# Максимальное значение uint256: allowance, равный ему, считается unlimited
UNLIMITED_ALLOWANCE_IN_BASE_UNITS: Final[int] = 2**256 - 1


def is_unlimited_allowance(allowance: int) -> bool:
    """Allowance с maximal value считается бесконечным и не требует обновления."""
    return allowance >= UNLIMITED_ALLOWANCE_IN_BASE_UNITS


class TokenAllowanceState(BaseModel):
    """Баланс и allowance владельца для spender (token transfer proxy)."""

    owner: str
    spender: str
    token_symbol: str = Field(..., min_length=1)
    token_address: str
    allowance: int = Field(..., ge=0)
    balance: int = Field(..., ge=0)

    model_config = {"frozen": True}

    @field_validator("owner", "spender", "token_address")
    @classmethod
    def checksum(cls, v: str) -> str:
        return normalize_address(v)

    @property
    def has_unlimited_allowance(self) -> bool:
        return is_unlimited_allowance(self.allowance)
