"""
Bit Fields — упаковка полей в 256-битные слова параметров

Каждое поле описывается (offset, width) внутри беззнакового слова.
Упаковка: value << offset с маской ширины поля.
Распаковка: (word >> offset) & mask.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Значение, не помещающееся в ширину поля → FieldOverflow(field), без wrap
2. Поля одного layout не пересекаются (проверяется при создании layout)
3. Биты слова вне описанных полей при распаковке должны быть нулевыми
"""

from dataclasses import dataclass
from typing import Dict, Final, Iterable, Tuple

from src.core.exceptions import FieldOverflow, SchemaInvalid

# Ширина слова параметров terms contract (bytes32)
WORD_BITS: Final[int] = 256
WORD_MAX: Final[int] = (1 << WORD_BITS) - 1


@dataclass(frozen=True)
class BitField:
    """Битовый диапазон поля внутри слова."""

    name: str
    offset: int
    width: int

    def __post_init__(self):
        if self.width <= 0:
            raise ValueError(f"Field {self.name}: width must be positive, got {self.width}")
        if self.offset < 0 or self.offset + self.width > WORD_BITS:
            raise ValueError(
                f"Field {self.name}: range [{self.offset}, {self.offset + self.width}) "
                f"does not fit a {WORD_BITS}-bit word"
            )

    @property
    def max_value(self) -> int:
        return (1 << self.width) - 1

    @property
    def mask(self) -> int:
        """Маска поля в координатах слова."""
        return self.max_value << self.offset

    def pack(self, value: int) -> int:
        """
        Размещение значения в диапазоне поля.

        Raises:
            FieldOverflow: если value < 0 или value > 2^width - 1
        """
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"Field {self.name}: expected int, got {type(value).__name__}")
        if value < 0 or value > self.max_value:
            raise FieldOverflow(
                self.name,
                f"Value {value} for field '{self.name}' does not fit {self.width} bits "
                f"(max {self.max_value})",
            )
        return value << self.offset

    def unpack(self, word: int) -> int:
        return (word >> self.offset) & self.max_value


class WordLayout:
    """
    Набор непересекающихся полей одного слова.

    Args:
        name: имя слова для диагностики ("word0", "word1")
        fields: поля слова
    """

    def __init__(self, name: str, fields: Iterable[BitField]):
        self.name = name
        self._fields: Dict[str, BitField] = {}

        occupied = 0
        for field in fields:
            if field.name in self._fields:
                raise ValueError(f"Duplicate field {field.name} in {name}")
            if occupied & field.mask:
                raise ValueError(f"Field {field.name} overlaps another field in {name}")
            occupied |= field.mask
            self._fields[field.name] = field

        self._occupied_mask = occupied

    @property
    def occupied_mask(self) -> int:
        return self._occupied_mask

    @property
    def fields(self) -> Tuple[BitField, ...]:
        return tuple(self._fields.values())

    def field(self, name: str) -> BitField:
        return self._fields[name]

    def pack(self, values: Dict[str, int]) -> int:
        """Упаковка всех полей layout в одно слово (порядок полей как в layout)."""
        missing = set(self._fields) - set(values)
        if missing:
            raise KeyError(f"Missing values for fields: {sorted(missing)}")

        word = 0
        for name, field in self._fields.items():
            word |= field.pack(values[name])
        return word

    def unpack(self, word: int) -> Dict[str, int]:
        """
        Распаковка слова в значения полей.

        Raises:
            SchemaInvalid: если слово вне [0, 2^256 - 1] или установлены биты вне полей
        """
        validate_word(word, self.name)
        if word & ~self._occupied_mask & WORD_MAX:
            raise SchemaInvalid(self.name, "bits set outside of the defined field ranges")
        return {name: field.unpack(word) for name, field in self._fields.items()}


def validate_word(word: int, name: str = "word") -> int:
    """Проверка, что значение является беззнаковым 256-битным словом."""
    if isinstance(word, bool) or not isinstance(word, int):
        raise SchemaInvalid(name, f"expected int, got {type(word).__name__}")
    if word < 0 or word > WORD_MAX:
        raise SchemaInvalid(name, f"value does not fit an unsigned {WORD_BITS}-bit word")
    return word


def word_to_hex(word: int) -> str:
    """Слово → 0x-строка из 64 hex символов (bytes32)."""
    validate_word(word)
    return "0x" + format(word, "064x")


def hex_to_word(value: str, name: str = "word") -> int:
    """0x-строка bytes32 → слово."""
    if not isinstance(value, str) or not value.startswith("0x") or len(value) != 66:
        raise SchemaInvalid(name, "expected 0x-prefixed 32-byte hex string")
    try:
        return int(value, 16)
    except ValueError:
        raise SchemaInvalid(name, "invalid hex digits")
