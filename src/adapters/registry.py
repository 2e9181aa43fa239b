"""
AdapterRegistry — type code → TermsCodec

Явный объект, создаётся один раз при старте и передаётся по ссылке
(в LoanLifecycle, AssertionEngine). Скрытого singleton нет.
Lookup — O(1) dict, без side effects.
"""

import logging
from typing import Dict, Iterable, Optional, Union

from src.adapters.base import TermsCodec, TermsContractType
from src.adapters.collateralized import CollateralizedSimpleInterestTermsCodec
from src.adapters.simple_interest import SimpleInterestTermsCodec
from src.core.domain.terms import LoanTerms
from src.core.exceptions import UnknownAdapterType

logger = logging.getLogger(__name__)

TypeCode = Union[TermsContractType, str]


def _key(type_code: TypeCode) -> str:
    if isinstance(type_code, TermsContractType):
        return type_code.value
    return type_code


class AdapterRegistry:
    """
    Реестр codec'ов terms contract.

    Args:
        codecs: начальный набор codec'ов (регистрируются по их type_code)
    """

    def __init__(self, codecs: Optional[Iterable[TermsCodec]] = None):
        self._codecs: Dict[str, TermsCodec] = {}
        for codec in codecs or ():
            self.register(codec.type_code, codec)

    def register(self, type_code: TypeCode, codec: TermsCodec) -> None:
        """
        Регистрация codec'а.

        Raises:
            TypeError: codec не реализует encode/decode
            ValueError: type code уже зарегистрирован
        """
        if not isinstance(codec, TermsCodec):
            raise TypeError(f"{type(codec).__name__} does not implement the TermsCodec protocol")

        key = _key(type_code)
        if key in self._codecs:
            raise ValueError(f"Terms codec already registered for type code {key!r}")

        self._codecs[key] = codec
        logger.debug("Registered terms codec", extra={"type_code": key, "codec": type(codec).__name__})

    def resolve(self, type_code: TypeCode) -> TermsCodec:
        """
        Raises:
            UnknownAdapterType: type code не зарегистрирован
        """
        try:
            return self._codecs[_key(type_code)]
        except (KeyError, TypeError):
            raise UnknownAdapterType(type_code)

    def is_registered(self, type_code: TypeCode) -> bool:
        try:
            return _key(type_code) in self._codecs
        except TypeError:
            return False

    def type_for_terms(self, terms: LoanTerms) -> TermsContractType:
        """Вариант terms contract, которому соответствуют условия."""
        if terms.is_collateralized:
            return TermsContractType.COLLATERALIZED_SIMPLE_INTEREST
        return TermsContractType.SIMPLE_INTEREST

    @property
    def type_codes(self) -> tuple:
        return tuple(self._codecs)

    def __contains__(self, type_code: object) -> bool:
        return isinstance(type_code, (str, TermsContractType)) and self.is_registered(type_code)


def default_registry() -> AdapterRegistry:
    """Реестр со встроенными вариантами (simple + collateralized)."""
    return AdapterRegistry(
        [
            SimpleInterestTermsCodec(),
            CollateralizedSimpleInterestTermsCodec(),
        ]
    )
