"""Configuration management using Pydantic Settings"""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from src.assertions.engine import AssertionConfig
from src.lifecycle.loan import LifecycleConfig


class Settings(BaseSettings):
    """Конфигурация из переменных окружения (префикс LOAN_ADAPTER_) и .env"""

    model_config = SettingsConfigDict(
        env_prefix="LOAN_ADAPTER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Service
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "json"

    # Assertions
    min_native_balance_for_fees_wei: int = 0
    include_collateral_checks: bool = True

    # Lifecycle
    default_order_lifetime_seconds: int = 30 * 24 * 3600

    def assertion_config(self) -> AssertionConfig:
        return AssertionConfig(
            min_native_balance_for_fees=self.min_native_balance_for_fees_wei,
            include_collateral_checks=self.include_collateral_checks,
        )

    def lifecycle_config(self) -> LifecycleConfig:
        return LifecycleConfig(default_order_lifetime_seconds=self.default_order_lifetime_seconds)
