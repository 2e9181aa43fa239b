"""Schema Assertions — JSON Schema проверки order и terms"""

from typing import Any, Dict

from src.assertions.result import AssertionResult, FailureReason
from src.core.contracts.validators import (
    ContractValidator,
    DebtOrderValidator,
    LoanTermsValidator,
    error_field,
)


class SchemaAssertions:
    """Проверки соответствия JSON Schema (Draft 2020-12)."""

    def __init__(self):
        self.order_validator = DebtOrderValidator()
        self.terms_validator = LoanTermsValidator()

    def _check(self, name: str, validator: ContractValidator, data: Dict[str, Any]) -> AssertionResult:
        error = validator.first_error(data)
        if error is None:
            return AssertionResult.ok(name)
        return AssertionResult.fail(
            name,
            FailureReason.SCHEMA_INVALID,
            error.message,
            field=error_field(error),
        )

    def order_conforms(self, data: Dict[str, Any]) -> AssertionResult:
        return self._check("schema.order_conforms", self.order_validator, data)

    def terms_conform(self, data: Dict[str, Any]) -> AssertionResult:
        return self._check("schema.terms_conform", self.terms_validator, data)
