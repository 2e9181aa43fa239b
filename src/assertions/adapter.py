"""Adapter Assertions — terms contract известен и параметры декодируются"""

import logging
from typing import Optional, Sequence, Tuple

from src.adapters.registry import AdapterRegistry
from src.assertions.result import AssertionResult, FailureReason
from src.core.domain.terms import LoanTerms
from src.core.exceptions import FieldOverflow, SchemaInvalid, UnknownAdapterType

logger = logging.getLogger(__name__)


class AdapterAssertions:
    """Проверки через AdapterRegistry."""

    def __init__(self, registry: AdapterRegistry):
        self.registry = registry

    def terms_contract_type_known(self, type_code: str) -> AssertionResult:
        name = "adapter.terms_contract_type_known"
        if not self.registry.is_registered(type_code):
            return AssertionResult.fail(
                name,
                FailureReason.UNKNOWN_ADAPTER_TYPE,
                f"No terms codec registered for {type_code!r}",
                field=type_code,
            )
        return AssertionResult.ok(name)

    def parameters_decode(
        self,
        type_code: str,
        parameters: Sequence[int],
    ) -> Tuple[AssertionResult, Optional[LoanTerms]]:
        """
        Декодирование параметров codec'ом для type_code.

        Returns:
            (результат, terms) — terms None при отказе
        """
        name = "adapter.parameters_decode"
        word0, word1 = parameters

        try:
            codec = self.registry.resolve(type_code)
        except UnknownAdapterType as e:
            return (
                AssertionResult.fail(name, FailureReason.UNKNOWN_ADAPTER_TYPE, str(e), field=type_code),
                None,
            )

        try:
            terms = codec.decode(word0, word1)
        except (SchemaInvalid, FieldOverflow) as e:
            logger.debug("Terms parameters failed to decode", extra={"type_code": type_code, "field": e.field})
            return (
                AssertionResult.fail(name, FailureReason.SCHEMA_INVALID, str(e), field=e.field),
                None,
            )

        return AssertionResult.ok(name), terms
