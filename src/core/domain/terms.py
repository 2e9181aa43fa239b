"""
LoanTerms — Модель условий займа (simple interest + collateral extension)

Immutable Pydantic модель структурированных условий займа в единицах протокола:
- principal_amount: base units токена (int)
- interest_rate: проценты, не более 4 знаков после запятой (Decimal)
- term_length: количество amortization units

Семантические диапазоны (ширина битовых полей) проверяются codec'ом при
кодировании, модель проверяет только форму значений. Float запрещён.
"""

from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Final, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from src.core.contracts.validators import LoanTermsValidator, schema_invalid_from
from src.core.math.fixed_point import INTEREST_RATE_DECIMALS, FixedPointDecimal

# =============================================================================
# КОНСТАНТЫ
# =============================================================================

HOUR_LENGTH_IN_SECONDS: Final[int] = 60 * 60
DAY_LENGTH_IN_SECONDS: Final[int] = HOUR_LENGTH_IN_SECONDS * 24
WEEK_LENGTH_IN_SECONDS: Final[int] = DAY_LENGTH_IN_SECONDS * 7
MONTH_LENGTH_IN_SECONDS: Final[int] = DAY_LENGTH_IN_SECONDS * 30
YEAR_LENGTH_IN_SECONDS: Final[int] = DAY_LENGTH_IN_SECONDS * 365

# interest_rate хранится как проценты × 10^4, поэтому доля = scaled / 10^6
INTEREST_RATE_SCALING_FACTOR_PERCENT: Final[int] = 10**INTEREST_RATE_DECIMALS
INTEREST_RATE_SCALING_FACTOR_MULTIPLIER: Final[int] = INTEREST_RATE_SCALING_FACTOR_PERCENT * 100


# =============================================================================
# ENUMS
# =============================================================================


class AmortizationUnit(str, Enum):
    """Гранулярность периодов погашения."""

    HOURS = "hours"
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"
    YEARS = "years"

    @property
    def code(self) -> int:
        """Код единицы в битовом поле параметров."""
        return AMORTIZATION_UNIT_CODES[self]

    @property
    def length_in_seconds(self) -> int:
        return AMORTIZATION_UNIT_LENGTHS[self]

    @classmethod
    def from_code(cls, code: int) -> "AmortizationUnit":
        for unit, unit_code in AMORTIZATION_UNIT_CODES.items():
            if unit_code == code:
                return unit
        raise ValueError(f"Unknown amortization unit code: {code}")


AMORTIZATION_UNIT_CODES: Final[Dict[AmortizationUnit, int]] = {
    AmortizationUnit.HOURS: 0,
    AmortizationUnit.DAYS: 1,
    AmortizationUnit.WEEKS: 2,
    AmortizationUnit.MONTHS: 3,
    AmortizationUnit.YEARS: 4,
}

AMORTIZATION_UNIT_LENGTHS: Final[Dict[AmortizationUnit, int]] = {
    AmortizationUnit.HOURS: HOUR_LENGTH_IN_SECONDS,
    AmortizationUnit.DAYS: DAY_LENGTH_IN_SECONDS,
    AmortizationUnit.WEEKS: WEEK_LENGTH_IN_SECONDS,
    AmortizationUnit.MONTHS: MONTH_LENGTH_IN_SECONDS,
    AmortizationUnit.YEARS: YEAR_LENGTH_IN_SECONDS,
}


def _reject_float(value):
    if isinstance(value, float):
        raise ValueError("floats are not accepted; pass int, str or Decimal")
    return value


# =============================================================================
# NESTED MODELS
# =============================================================================


class CollateralTerms(BaseModel):
    """
    Условия обеспечения.

    grace_period_in_days: None приводится к 0, decode никогда не различает
    "не задано" и "ноль".
    """

    collateral_token_index: int = Field(..., ge=0, description="Индекс collateral токена в token registry")
    collateral_amount: int = Field(..., ge=0, description="Сумма обеспечения (base units)")
    grace_period_in_days: int = Field(0, ge=0, description="Grace period после окончания срока (дни)")

    model_config = {"frozen": True}

    @field_validator("grace_period_in_days", mode="before")
    @classmethod
    def default_grace_period(cls, v):
        return 0 if v is None else v

    @field_validator("collateral_token_index", "collateral_amount", "grace_period_in_days", mode="before")
    @classmethod
    def no_floats(cls, v):
        return _reject_float(v)

    @property
    def grace_period_in_seconds(self) -> int:
        return self.grace_period_in_days * DAY_LENGTH_IN_SECONDS


# =============================================================================
# LOAN TERMS
# =============================================================================


class LoanTerms(BaseModel):
    """
    Структурированные условия займа.

    collateral is None → simple interest (без обеспечения).
    collateral задан → collateralized simple interest.
    """

    principal_token_index: int = Field(..., ge=0, description="Индекс principal токена в token registry")
    principal_amount: int = Field(..., ge=0, description="Principal (base units)")
    interest_rate: Decimal = Field(..., ge=0, description="Процентная ставка за срок (%), до 4 знаков")
    amortization_unit: AmortizationUnit
    term_length: int = Field(..., ge=0, description="Срок в amortization units")
    collateral: Optional[CollateralTerms] = None

    model_config = {"frozen": True}

    @field_validator("principal_token_index", "principal_amount", "term_length", "interest_rate", mode="before")
    @classmethod
    def no_floats(cls, v):
        return _reject_float(v)

    @property
    def is_collateralized(self) -> bool:
        return self.collateral is not None

    @property
    def scaled_interest_rate(self) -> int:
        """interest_rate × 10^4 (значение битового поля)."""
        return FixedPointDecimal.exact(self.interest_rate, INTEREST_RATE_DECIMALS).to_scaled_int()

    @property
    def term_length_in_seconds(self) -> int:
        return self.term_length * self.amortization_unit.length_in_seconds

    # -------------------------------------------------------------------------
    # Amortization
    # -------------------------------------------------------------------------

    def total_expected_repayment(self) -> int:
        """principal + interest за весь срок (base units, округление вниз как on-chain)."""
        interest = self.principal_amount * self.scaled_interest_rate // INTEREST_RATE_SCALING_FACTOR_MULTIPLIER
        return self.principal_amount + interest

    def term_end_timestamp(self, issuance_timestamp: int) -> int:
        return issuance_timestamp + self.term_length_in_seconds

    def repayment_schedule(self, issuance_timestamp: int) -> List[int]:
        """Timestamps окончания каждого amortization unit."""
        unit_length = self.amortization_unit.length_in_seconds
        return [issuance_timestamp + unit_length * i for i in range(1, self.term_length + 1)]

    def expected_repayment_at(self, issuance_timestamp: int, timestamp: int) -> int:
        """
        Ожидаемая сумма погашений к моменту timestamp.

        - timestamp <= issuance → 0
        - timestamp >= term end → вся сумма
        - иначе пропорционально числу полностью прошедших amortization units
        """
        total = self.total_expected_repayment()
        if timestamp <= issuance_timestamp:
            return 0
        if timestamp >= self.term_end_timestamp(issuance_timestamp) or self.term_length == 0:
            return total

        units_elapsed = (timestamp - issuance_timestamp) // self.amortization_unit.length_in_seconds
        return total * units_elapsed // self.term_length

    def seizure_available_at(self, issuance_timestamp: int) -> int:
        """Момент, начиная с которого разрешён seize (term end + grace period)."""
        grace = self.collateral.grace_period_in_seconds if self.collateral else 0
        return self.term_end_timestamp(issuance_timestamp) + grace

    # -------------------------------------------------------------------------
    # JSON
    # -------------------------------------------------------------------------

    def to_json_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "principalTokenIndex": self.principal_token_index,
            "principalAmount": str(self.principal_amount),
            "interestRate": format(self.interest_rate.normalize(), "f"),
            "amortizationUnit": self.amortization_unit.value,
            "termLength": self.term_length,
        }
        if self.collateral is not None:
            data["collateral"] = {
                "collateralTokenIndex": self.collateral.collateral_token_index,
                "collateralAmount": str(self.collateral.collateral_amount),
                "gracePeriodInDays": self.collateral.grace_period_in_days,
            }
        return data

    @classmethod
    def from_json_dict(cls, data: Dict[str, Any]) -> "LoanTerms":
        """
        Raises:
            SchemaInvalid: при нарушении loan_terms.json schema или ограничений
                модели (например, целочисленное поле передано как 1.0)
        """
        LoanTermsValidator().validate_or_raise(data)

        collateral = data.get("collateral")
        try:
            return cls(
                principal_token_index=data["principalTokenIndex"],
                principal_amount=int(data["principalAmount"]),
                interest_rate=Decimal(data["interestRate"]),
                amortization_unit=AmortizationUnit(data["amortizationUnit"]),
                term_length=data["termLength"],
                collateral=None if collateral is None else {
                    "collateral_token_index": collateral["collateralTokenIndex"],
                    "collateral_amount": int(collateral["collateralAmount"]),
                    "grace_period_in_days": collateral.get("gracePeriodInDays"),
                },
            )
        except ValidationError as e:
            raise schema_invalid_from(e) from e
