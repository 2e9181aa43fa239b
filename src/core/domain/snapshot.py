"""
Chain Snapshots — консистентные снимки on-chain состояния

Все чтения для одной операции (fill, repay, seize) выполняются пакетно до
запуска любых проверок; проверки работают только с этим снимком. Если после
долгого ожидания нужна повторная валидация, вызывающий код делает новый снимок.
"""

from typing import Dict, Optional, Tuple

from pydantic import BaseModel, Field

from src.core.domain.addresses import same_address
from src.core.domain.token import TokenAllowanceState


class FillSnapshot(BaseModel):
    """
    Снимок состояния для fill.

    token_states: ключ (owner, token_address) в checksum форме.
    collateral_token: заполнен только для займов с обеспечением.
    """

    current_time: int = Field(..., ge=0, description="Timestamp последнего блока (сек)")
    native_balances: Dict[str, int] = Field(default_factory=dict)
    token_states: Dict[Tuple[str, str], TokenAllowanceState] = Field(default_factory=dict)

    issuance_exists: bool = Field(False, description="Debt token для agreement_id уже выпущен")
    issuance_cancelled: bool = False
    order_cancelled: bool = False

    collateral_token: Optional[str] = Field(None, description="Адрес collateral токена (по индексу в token registry)")

    model_config = {"frozen": True}

    def token_state(self, owner: str, token_address: str) -> Optional[TokenAllowanceState]:
        for (state_owner, state_token), state in self.token_states.items():
            if same_address(state_owner, owner) and same_address(state_token, token_address):
                return state
        return None

    def native_balance(self, owner: str) -> Optional[int]:
        for address, balance in self.native_balances.items():
            if same_address(address, owner):
                return balance
        return None


class AgreementSnapshot(BaseModel):
    """
    Снимок состояния выпущенного соглашения (repay / seize).

    terms_parameters: слова параметров, как они записаны в debt registry.
    collateral_locked: обеспечение ещё удерживается collateralizer'ом.
    """

    agreement_id: str
    current_time: int = Field(..., ge=0)
    issuance_timestamp: int = Field(..., ge=0)
    terms_contract_type: str
    terms_parameters: Tuple[int, int]
    value_repaid_to_date: int = Field(0, ge=0)
    beneficiary: str
    collateral_locked: bool = False
    payer_token_state: Optional[TokenAllowanceState] = None

    model_config = {"frozen": True}
