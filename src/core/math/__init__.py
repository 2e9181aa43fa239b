"""
Core math modules

Арифметика с фиксированной точкой и упаковка битовых полей.
"""

# Fixed point
from src.core.math.fixed_point import (
    DECIMAL_PRECISION,
    INTEREST_RATE_DECIMALS,
    ROUNDING_POLICY,
    FixedPointDecimal,
    from_base_units,
    to_base_units,
)

# Bit fields
from src.core.math.bit_fields import (
    WORD_BITS,
    WORD_MAX,
    BitField,
    WordLayout,
    hex_to_word,
    validate_word,
    word_to_hex,
)

__all__ = [
    # Fixed point — Constants
    "DECIMAL_PRECISION",
    "INTEREST_RATE_DECIMALS",
    "ROUNDING_POLICY",
    # Fixed point — Types
    "FixedPointDecimal",
    # Fixed point — Functions
    "from_base_units",
    "to_base_units",
    # Bit fields — Constants
    "WORD_BITS",
    "WORD_MAX",
    # Bit fields — Types
    "BitField",
    "WordLayout",
    # Bit fields — Functions
    "hex_to_word",
    "validate_word",
    "word_to_hex",
]
