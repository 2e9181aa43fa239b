"""Adapters — codec'и условий займа для вариантов terms contract.

- SimpleInterestTermsCodec: займ без обеспечения (word1 = 0)
- CollateralizedSimpleInterestTermsCodec: займ с обеспечением и grace period
- AdapterRegistry: type code → codec
"""

from .base import (
    COLLATERAL_LAYOUT,
    SIMPLE_INTEREST_LAYOUT,
    TermsCodec,
    TermsContractType,
    TermsWords,
    combine_words,
    split_words,
)
from .collateralized import CollateralizedSimpleInterestTermsCodec
from .registry import AdapterRegistry, default_registry
from .simple_interest import MAX_INTEREST_RATE, SimpleInterestTermsCodec

__all__ = [
    "COLLATERAL_LAYOUT",
    "SIMPLE_INTEREST_LAYOUT",
    "MAX_INTEREST_RATE",
    "TermsCodec",
    "TermsContractType",
    "TermsWords",
    "combine_words",
    "split_words",
    "SimpleInterestTermsCodec",
    "CollateralizedSimpleInterestTermsCodec",
    "AdapterRegistry",
    "default_registry",
]
