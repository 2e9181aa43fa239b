"""
Simple Interest Terms Codec

Кодирование условий займа без обеспечения в word0; word1 всегда 0.

Кодирование:
1. Проверка варианта (collateral должен отсутствовать)
2. interest_rate → FixedPointDecimal.exact(scale=4, 24 bits)
3. Упаковка полей; значение шире поля → FieldOverflow(field)

Декодирование — точная обратная операция:
1. Проверка reserved bits (SchemaInvalid)
2. Восстановление scale у interest_rate, код amortization unit → enum
"""

import logging
from decimal import Decimal

from src.adapters.base import SIMPLE_INTEREST_LAYOUT, TermsContractType, TermsWords
from src.core.domain.terms import AmortizationUnit, LoanTerms
from src.core.exceptions import FieldOverflow, SchemaInvalid
from src.core.math.bit_fields import validate_word
from src.core.math.fixed_point import INTEREST_RATE_DECIMALS, FixedPointDecimal

logger = logging.getLogger(__name__)

INTEREST_RATE_BITS = SIMPLE_INTEREST_LAYOUT.field("interest_rate").width

# Максимальная ставка, представимая в поле: (2^24 - 1) / 10^4 = 1677.7215%
MAX_INTEREST_RATE: Decimal = FixedPointDecimal.from_scaled_int(
    (1 << INTEREST_RATE_BITS) - 1, INTEREST_RATE_DECIMALS
).value


def encode_interest_rate(rate: Decimal) -> int:
    """
    Процентная ставка → значение битового поля.

    Raises:
        PrecisionOverflow: больше 4 знаков после запятой
        FieldOverflow: ставка больше MAX_INTEREST_RATE
    """
    scaled = FixedPointDecimal.exact(rate, INTEREST_RATE_DECIMALS).to_scaled_int()
    if scaled > (1 << INTEREST_RATE_BITS) - 1:
        raise FieldOverflow(
            "interest_rate",
            f"Interest rate {rate}% exceeds the maximum of {MAX_INTEREST_RATE}%",
        )
    return scaled


def decode_interest_rate(scaled: int) -> Decimal:
    return FixedPointDecimal.from_scaled_int(scaled, INTEREST_RATE_DECIMALS, INTEREST_RATE_BITS).value


def pack_simple_terms(terms: LoanTerms) -> int:
    """Упаковка simple interest части условий в word0."""
    return SIMPLE_INTEREST_LAYOUT.pack(
        {
            "principal_token_index": terms.principal_token_index,
            "principal": terms.principal_amount,
            "interest_rate": encode_interest_rate(terms.interest_rate),
            "amortization_unit": terms.amortization_unit.code,
            "term_length": terms.term_length,
        }
    )


def unpack_simple_terms(word0: int) -> dict:
    """word0 → поля LoanTerms (без collateral)."""
    values = SIMPLE_INTEREST_LAYOUT.unpack(word0)
    try:
        unit = AmortizationUnit.from_code(values["amortization_unit"])
    except ValueError as e:
        raise SchemaInvalid("amortization_unit", str(e))

    return {
        "principal_token_index": values["principal_token_index"],
        "principal_amount": values["principal"],
        "interest_rate": decode_interest_rate(values["interest_rate"]),
        "amortization_unit": unit,
        "term_length": values["term_length"],
    }


class SimpleInterestTermsCodec:
    """Codec для SimpleInterestTermsContract."""

    type_code = TermsContractType.SIMPLE_INTEREST

    def encode(self, terms: LoanTerms) -> TermsWords:
        """
        Raises:
            SchemaInvalid: если terms содержат collateral
            FieldOverflow: если поле не помещается в свою ширину
            PrecisionOverflow: если ставка не представима с 4 знаками
        """
        if terms.collateral is not None:
            raise SchemaInvalid("collateral", "simple interest terms cannot carry collateral")

        word0 = pack_simple_terms(terms)
        logger.debug("Encoded simple interest terms", extra={"word0": hex(word0)})
        return word0, 0

    def decode(self, word0: int, word1: int) -> LoanTerms:
        """
        Raises:
            SchemaInvalid: reserved bits, неизвестный код unit, word1 != 0
        """
        validate_word(word1, "word1")
        if word1 != 0:
            raise SchemaInvalid("word1", "simple interest terms do not use the collateral word")

        return LoanTerms(**unpack_simple_terms(word0))

