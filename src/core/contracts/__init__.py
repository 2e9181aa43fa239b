"""
Contract Validation Module

Модуль для валидации JSON контрактов (debt order, loan terms).
"""

from .validators import (
    ContractValidator,
    DebtOrderValidator,
    LoanTermsValidator,
    SchemaLoader,
    error_field,
    model_error_field,
    schema_invalid_from,
    validate_debt_order,
    validate_loan_terms,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "DebtOrderValidator",
    "LoanTermsValidator",
    # Functions
    "error_field",
    "model_error_field",
    "schema_invalid_from",
    "validate_debt_order",
    "validate_loan_terms",
]
