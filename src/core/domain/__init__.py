"""
Domain models and value objects.

Contains fundamental domain entities: LoanTerms, DebtOrder, token allowance
state and chain snapshots.
"""

from src.core.domain.addresses import (
    NULL_ADDRESS,
    is_null_address,
    normalize_address,
    same_address,
)
from src.core.domain.debt_order import DebtOrder, ECDSASignature
from src.core.domain.snapshot import AgreementSnapshot, FillSnapshot
from src.core.domain.terms import (
    AMORTIZATION_UNIT_CODES,
    DAY_LENGTH_IN_SECONDS,
    AmortizationUnit,
    CollateralTerms,
    LoanTerms,
)
from src.core.domain.token import (
    UNLIMITED_ALLOWANCE_IN_BASE_UNITS,
    TokenAllowanceState,
    is_unlimited_allowance,
)

__all__ = [
    # Addresses
    "NULL_ADDRESS",
    "is_null_address",
    "normalize_address",
    "same_address",
    # Terms
    "AMORTIZATION_UNIT_CODES",
    "DAY_LENGTH_IN_SECONDS",
    "AmortizationUnit",
    "CollateralTerms",
    "LoanTerms",
    # Debt order
    "DebtOrder",
    "ECDSASignature",
    # Token
    "UNLIMITED_ALLOWANCE_IN_BASE_UNITS",
    "TokenAllowanceState",
    "is_unlimited_allowance",
    # Snapshots
    "AgreementSnapshot",
    "FillSnapshot",
]
