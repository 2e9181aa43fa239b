"""
Тесты для AdapterRegistry

Проверяемые инварианты:
1. resolve(type) для зарегистрированного типа возвращает его codec
2. Неизвестный type code → UnknownAdapterType, без side effects
3. Повторная регистрация и объект без encode/decode отвергаются
"""

import pytest

from src.adapters import (
    AdapterRegistry,
    CollateralizedSimpleInterestTermsCodec,
    SimpleInterestTermsCodec,
    TermsContractType,
    default_registry,
)
from src.core.exceptions import UnknownAdapterType
from tests.fakes import collateralized_terms, simple_terms


class NotACodec:
    type_code = "NotACodec"


class TestAdapterRegistry:
    def test_default_registry_resolves_builtin_codecs(self):
        registry = default_registry()
        assert isinstance(registry.resolve(TermsContractType.SIMPLE_INTEREST), SimpleInterestTermsCodec)
        assert isinstance(
            registry.resolve("CollateralizedSimpleInterestTermsContract"),
            CollateralizedSimpleInterestTermsCodec,
        )

    def test_type_codes(self):
        assert set(default_registry().type_codes) == {t.value for t in TermsContractType}

    def test_unknown_type(self):
        registry = default_registry()
        with pytest.raises(UnknownAdapterType) as exc_info:
            registry.resolve("CompoundInterestTermsContract")
        assert exc_info.value.type_code == "CompoundInterestTermsContract"
        assert "CompoundInterestTermsContract" not in registry

    def test_unhashable_type_code(self):
        with pytest.raises(UnknownAdapterType):
            default_registry().resolve(["not", "a", "code"])

    def test_empty_registry(self):
        registry = AdapterRegistry()
        assert not registry.is_registered(TermsContractType.SIMPLE_INTEREST)
        with pytest.raises(UnknownAdapterType):
            registry.resolve(TermsContractType.SIMPLE_INTEREST)

    def test_register(self):
        registry = AdapterRegistry()
        codec = SimpleInterestTermsCodec()
        registry.register("CustomSimpleInterest", codec)
        assert registry.resolve("CustomSimpleInterest") is codec
        assert "CustomSimpleInterest" in registry

    def test_duplicate_registration(self):
        registry = default_registry()
        with pytest.raises(ValueError):
            registry.register(TermsContractType.SIMPLE_INTEREST, SimpleInterestTermsCodec())

    def test_rejects_non_codec(self):
        with pytest.raises(TypeError):
            AdapterRegistry().register("NotACodec", NotACodec())

    def test_registries_are_independent(self):
        """Скрытого глобального состояния нет."""
        first = default_registry()
        second = AdapterRegistry()
        second.register("Extra", SimpleInterestTermsCodec())
        assert "Extra" not in first

    def test_type_for_terms(self):
        registry = default_registry()
        assert registry.type_for_terms(simple_terms()) == TermsContractType.SIMPLE_INTEREST
        assert (
            registry.type_for_terms(collateralized_terms())
            == TermsContractType.COLLATERALIZED_SIMPLE_INTEREST
        )
