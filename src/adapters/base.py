"""
Terms Codec — общий контракт адаптеров условий займа

encode(LoanTerms) -> (word0, word1)
decode(word0, word1) -> LoanTerms

word0 содержит simple interest параметры, word1 — параметры обеспечения.
Диапазоны слов не пересекаются, поэтому on-chain значение
termsContractParameters (bytes32) = word0 | word1.

Bit-range таблица (simple interest / collateralized terms contracts):

    word0:
        principal_token_index   offset 248  width 8
        principal               offset 152  width 96
        interest_rate (x10^4)   offset 128  width 24
        amortization_unit       offset 124  width 4
        term_length             offset 108  width 16
    word1:
        collateral_token_index  offset 100  width 8
        collateral_amount       offset 8    width 92
        grace_period_in_days    offset 0    width 8
"""

from enum import Enum
from typing import Final, Protocol, Tuple, runtime_checkable

from src.core.domain.terms import LoanTerms
from src.core.math.bit_fields import BitField, WordLayout, validate_word

TermsWords = Tuple[int, int]


class TermsContractType(str, Enum):
    """Type code варианта terms contract."""

    SIMPLE_INTEREST = "SimpleInterestTermsContract"
    COLLATERALIZED_SIMPLE_INTEREST = "CollateralizedSimpleInterestTermsContract"


# =============================================================================
# LAYOUTS
# =============================================================================

SIMPLE_INTEREST_LAYOUT: Final[WordLayout] = WordLayout(
    "word0",
    [
        BitField("principal_token_index", offset=248, width=8),
        BitField("principal", offset=152, width=96),
        BitField("interest_rate", offset=128, width=24),
        BitField("amortization_unit", offset=124, width=4),
        BitField("term_length", offset=108, width=16),
    ],
)

COLLATERAL_LAYOUT: Final[WordLayout] = WordLayout(
    "word1",
    [
        BitField("collateral_token_index", offset=100, width=8),
        BitField("collateral_amount", offset=8, width=92),
        BitField("grace_period_in_days", offset=0, width=8),
    ],
)


@runtime_checkable
class TermsCodec(Protocol):
    """Codec одного варианта terms contract."""

    type_code: TermsContractType

    def encode(self, terms: LoanTerms) -> TermsWords:
        ...

    def decode(self, word0: int, word1: int) -> LoanTerms:
        ...


# =============================================================================
# ON-CHAIN PARAMETERS
# =============================================================================


def combine_words(word0: int, word1: int) -> int:
    """(word0, word1) → единое значение termsContractParameters."""
    validate_word(word0, "word0")
    validate_word(word1, "word1")
    if word0 & word1:
        raise ValueError("terms parameter words overlap")
    return word0 | word1


def split_words(parameters: int) -> TermsWords:
    """
    termsContractParameters → (word0, word1).

    Биты вне диапазонов simple interest относятся к word1; codec варианта
    затем отвергает биты, которые ему не принадлежат.
    """
    validate_word(parameters, "termsContractParameters")
    word0 = parameters & SIMPLE_INTEREST_LAYOUT.occupied_mask
    return word0, parameters ^ word0
