"""
FixedPointDecimal — арифметика с фиксированной точкой без float

Модуль обеспечивает точное представление денежных сумм и процентных ставок
в соглашении протокола:
- interest rate: проценты с 4 знаками после запятой (12.3456% → 123456)
- суммы токенов: целые base units ("wei"), scale = decimals токена

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Единая политика округления: ROUND_HALF_UP до scale
2. float запрещён на любом входе (TypeError), неявной конверсии нет
3. Выход за диапазон слова назначения → PrecisionOverflow, никогда не wrap
4. Все операции детерминированы и не зависят от глобального decimal context
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Final, Optional, Union

from src.core.exceptions import PrecisionOverflow

# =============================================================================
# КОНСТАНТЫ
# =============================================================================

# Точность decimal context для промежуточных вычислений
# 2^256 содержит 78 десятичных цифр, плюс запас под scale
DECIMAL_PRECISION: Final[int] = 120

# Количество знаков после запятой у interest rate в протоколе
INTEREST_RATE_DECIMALS: Final[int] = 4

ROUNDING_POLICY: Final[str] = ROUND_HALF_UP

Numeric = Union[int, str, Decimal, "FixedPointDecimal"]


def _to_decimal(value: Numeric) -> Decimal:
    """Конверсия входа в Decimal с запретом float."""
    if isinstance(value, FixedPointDecimal):
        return value.value
    if isinstance(value, bool):
        raise TypeError("bool is not a numeric amount")
    if isinstance(value, float):
        raise TypeError(
            f"float {value!r} is not permitted in fixed-point arithmetic; use str or Decimal"
        )
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise PrecisionOverflow(f"Non-finite decimal value: {value}")
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            raise ValueError(f"Invalid decimal literal: {value!r}")
        if not result.is_finite():
            raise PrecisionOverflow(f"Non-finite decimal value: {value}")
        return result
    raise TypeError(f"Unsupported numeric type: {type(value).__name__}")


def _quantize(value: Decimal, scale: int) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        try:
            return value.quantize(Decimal(1).scaleb(-scale), rounding=ROUNDING_POLICY)
        except InvalidOperation:
            raise PrecisionOverflow(
                f"Value {value} exceeds {DECIMAL_PRECISION} significant digits at scale {scale}"
            )


# =============================================================================
# FIXED POINT DECIMAL
# =============================================================================


class FixedPointDecimal:
    """
    Десятичное значение с фиксированным числом знаков после запятой.

    Args:
        value: int, str или Decimal (float запрещён)
        scale: количество знаков после запятой
        max_bits: ширина беззнакового слова назначения (None = без ограничения).
            Если задана, scaled integer обязан лежать в [0, 2^max_bits - 1].

    Конструктор округляет вход ROUND_HALF_UP до scale. Для пути кодирования,
    где округление недопустимо, используется FixedPointDecimal.exact().

    Examples:
        >>> FixedPointDecimal("12.34565", scale=4)
        FixedPointDecimal('12.3457', scale=4)
        >>> FixedPointDecimal("1.5", scale=4).to_scaled_int()
        15000
    """

    __slots__ = ("_value", "_scale", "_max_bits")

    def __init__(self, value: Numeric, scale: int, max_bits: Optional[int] = None):
        if scale < 0:
            raise ValueError(f"scale must be non-negative, got {scale}")
        if max_bits is not None and max_bits <= 0:
            raise ValueError(f"max_bits must be positive, got {max_bits}")

        self._scale = scale
        self._max_bits = max_bits
        self._value = _quantize(_to_decimal(value), scale)
        self._check_range()

    @classmethod
    def exact(cls, value: Numeric, scale: int, max_bits: Optional[int] = None) -> "FixedPointDecimal":
        """
        Создание значения без округления.

        Raises:
            PrecisionOverflow: если value содержит больше scale знаков после запятой
        """
        raw = _to_decimal(value)
        result = cls(raw, scale, max_bits)
        if result.value != raw:
            raise PrecisionOverflow(
                f"Value {raw} has more than {scale} decimal places and cannot be encoded exactly"
            )
        return result

    @classmethod
    def from_scaled_int(cls, scaled: int, scale: int, max_bits: Optional[int] = None) -> "FixedPointDecimal":
        """Восстановление значения из целого со scale (обратная к to_scaled_int)."""
        if isinstance(scaled, bool) or not isinstance(scaled, int):
            raise TypeError(f"scaled value must be int, got {type(scaled).__name__}")
        with localcontext() as ctx:
            ctx.prec = DECIMAL_PRECISION
            raw = Decimal(scaled).scaleb(-scale)
        return cls(raw, scale, max_bits)

    # -------------------------------------------------------------------------
    # Свойства
    # -------------------------------------------------------------------------

    @property
    def value(self) -> Decimal:
        return self._value

    @property
    def scale(self) -> int:
        return self._scale

    @property
    def max_bits(self) -> Optional[int]:
        return self._max_bits

    def to_scaled_int(self) -> int:
        """Целочисленное представление value * 10^scale (точное)."""
        with localcontext() as ctx:
            ctx.prec = DECIMAL_PRECISION
            return int(self._value.scaleb(self._scale))

    # -------------------------------------------------------------------------
    # Арифметика
    # -------------------------------------------------------------------------

    def _result(self, raw: Decimal) -> "FixedPointDecimal":
        return FixedPointDecimal(raw, self._scale, self._max_bits)

    def add(self, other: Numeric) -> "FixedPointDecimal":
        with localcontext() as ctx:
            ctx.prec = DECIMAL_PRECISION
            return self._result(self._value + _to_decimal(other))

    def sub(self, other: Numeric) -> "FixedPointDecimal":
        with localcontext() as ctx:
            ctx.prec = DECIMAL_PRECISION
            return self._result(self._value - _to_decimal(other))

    def mul(self, other: Numeric) -> "FixedPointDecimal":
        with localcontext() as ctx:
            ctx.prec = DECIMAL_PRECISION
            return self._result(self._value * _to_decimal(other))

    def div(self, other: Numeric) -> "FixedPointDecimal":
        divisor = _to_decimal(other)
        if divisor == 0:
            raise ZeroDivisionError("Fixed-point division by zero")
        with localcontext() as ctx:
            ctx.prec = DECIMAL_PRECISION
            return self._result(self._value / divisor)

    def compare(self, other: Numeric) -> int:
        """-1 / 0 / 1 как у классического cmp."""
        other_value = _to_decimal(other)
        if self._value < other_value:
            return -1
        if self._value > other_value:
            return 1
        return 0

    __add__ = add
    __sub__ = sub
    __mul__ = mul
    __truediv__ = div

    def __eq__(self, other: object) -> bool:
        if isinstance(other, (FixedPointDecimal, int, str, Decimal)) and not isinstance(other, bool):
            try:
                return self.compare(other) == 0
            except (TypeError, ValueError):
                return False
        return NotImplemented

    def __lt__(self, other: Numeric) -> bool:
        return self.compare(other) < 0

    def __le__(self, other: Numeric) -> bool:
        return self.compare(other) <= 0

    def __gt__(self, other: Numeric) -> bool:
        return self.compare(other) > 0

    def __ge__(self, other: Numeric) -> bool:
        return self.compare(other) >= 0

    def __hash__(self) -> int:
        return hash(self._value)

    def __repr__(self) -> str:
        return f"FixedPointDecimal('{self._value}', scale={self._scale})"

    def __str__(self) -> str:
        return str(self._value)

    # -------------------------------------------------------------------------
    # Внутреннее
    # -------------------------------------------------------------------------

    def _check_range(self) -> None:
        if self._max_bits is None:
            return
        scaled = self.to_scaled_int()
        if scaled < 0:
            raise PrecisionOverflow(
                f"Negative value {self._value} cannot be stored in an unsigned {self._max_bits}-bit word"
            )
        if scaled > (1 << self._max_bits) - 1:
            raise PrecisionOverflow(
                f"Value {self._value} (scaled {scaled}) exceeds {self._max_bits}-bit word"
            )


# =============================================================================
# КОНВЕРТЕРЫ СУММ ТОКЕНОВ
# =============================================================================


def to_base_units(amount: Numeric, decimals: int) -> int:
    """
    Конверсия человекочитаемой суммы в base units токена.

    Округление не допускается: сумма с большим числом знаков, чем decimals,
    не представима on-chain.

    Examples:
        >>> to_base_units("1.5", 18)
        1500000000000000000
    """
    return FixedPointDecimal.exact(amount, decimals).to_scaled_int()


def from_base_units(units: int, decimals: int) -> Decimal:
    """
    Конверсия base units в человекочитаемую сумму.

    Examples:
        >>> from_base_units(1500000000000000000, 18)
        Decimal('1.500000000000000000')
    """
    return FixedPointDecimal.from_scaled_int(units, decimals).value
