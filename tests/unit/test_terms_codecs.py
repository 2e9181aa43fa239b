"""
Тесты для Terms Codecs — simple interest и collateralized simple interest

Проверяемые инварианты:
1. Bit-exact раскладка полей по word0 / word1
2. decode(encode(terms)) == terms для всех валидных условий (property-based)
3. Значение шире поля → FieldOverflow(field)
4. grace period не задан → кодируется 0, декодируется 0
5. Неизвестный код unit / биты вне полей → SchemaInvalid
"""

from decimal import Decimal

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from src.adapters import (
    COLLATERAL_LAYOUT,
    SIMPLE_INTEREST_LAYOUT,
    CollateralizedSimpleInterestTermsCodec,
    SimpleInterestTermsCodec,
    combine_words,
    default_registry,
    split_words,
)
from src.adapters.simple_interest import MAX_INTEREST_RATE, decode_interest_rate, encode_interest_rate
from src.core.domain.terms import AmortizationUnit, CollateralTerms, LoanTerms
from src.core.exceptions import FieldOverflow, PrecisionOverflow, SchemaInvalid


@pytest.fixture
def simple_codec():
    return SimpleInterestTermsCodec()


@pytest.fixture
def collateral_codec():
    return CollateralizedSimpleInterestTermsCodec()


@pytest.fixture
def terms():
    return LoanTerms(
        principal_token_index=0,
        principal_amount=1_000 * 10**18,
        interest_rate=Decimal("12.5"),
        amortization_unit=AmortizationUnit.MONTHS,
        term_length=12,
    )


@pytest.fixture
def collateral():
    return CollateralTerms(collateral_token_index=1, collateral_amount=500 * 10**18, grace_period_in_days=5)


EXPECTED_WORD0 = (
    (0 << 248)
    | (1_000 * 10**18 << 152)
    | (125_000 << 128)
    | (3 << 124)
    | (12 << 108)
)
EXPECTED_WORD1 = (1 << 100) | (500 * 10**18 << 8) | 5


# =============================================================================
# INTEREST RATE
# =============================================================================


class TestInterestRate:
    def test_encode_four_decimals(self):
        assert encode_interest_rate(Decimal("12.3456")) == 123456
        assert decode_interest_rate(123456) == Decimal("12.3456")

    def test_max_rate(self):
        assert MAX_INTEREST_RATE == Decimal("1677.7215")
        assert encode_interest_rate(MAX_INTEREST_RATE) == 2**24 - 1

    def test_rate_above_field(self):
        with pytest.raises(FieldOverflow) as exc_info:
            encode_interest_rate(Decimal("1677.7216"))
        assert exc_info.value.field == "interest_rate"

    def test_rate_with_too_many_decimals(self):
        with pytest.raises(PrecisionOverflow):
            encode_interest_rate(Decimal("12.34567"))


# =============================================================================
# SIMPLE INTEREST
# =============================================================================


class TestSimpleInterestCodec:
    def test_bit_exact_layout(self, simple_codec, terms):
        assert simple_codec.encode(terms) == (EXPECTED_WORD0, 0)

    def test_decode(self, simple_codec, terms):
        assert simple_codec.decode(EXPECTED_WORD0, 0) == terms

    def test_principal_overflow(self, simple_codec, terms):
        """Principal шире 96 бит → FieldOverflow("principal")."""
        too_big = terms.model_copy(update={"principal_amount": 2**96})
        with pytest.raises(FieldOverflow) as exc_info:
            simple_codec.encode(too_big)
        assert exc_info.value.field == "principal"

    def test_principal_at_field_max(self, simple_codec, terms):
        at_max = terms.model_copy(update={"principal_amount": 2**96 - 1})
        assert simple_codec.decode(*simple_codec.encode(at_max)) == at_max

    def test_term_length_overflow(self, simple_codec, terms):
        with pytest.raises(FieldOverflow) as exc_info:
            simple_codec.encode(terms.model_copy(update={"term_length": 2**16}))
        assert exc_info.value.field == "term_length"

    def test_token_index_overflow(self, simple_codec, terms):
        with pytest.raises(FieldOverflow) as exc_info:
            simple_codec.encode(terms.model_copy(update={"principal_token_index": 256}))
        assert exc_info.value.field == "principal_token_index"

    def test_rejects_collateral(self, simple_codec, terms, collateral):
        with pytest.raises(SchemaInvalid) as exc_info:
            simple_codec.encode(terms.model_copy(update={"collateral": collateral}))
        assert exc_info.value.field == "collateral"

    def test_unknown_amortization_code(self, simple_codec):
        word0 = (1 << 152) | (5 << 124)
        with pytest.raises(SchemaInvalid) as exc_info:
            simple_codec.decode(word0, 0)
        assert exc_info.value.field == "amortization_unit"

    def test_stray_bits_in_word0(self, simple_codec):
        with pytest.raises(SchemaInvalid) as exc_info:
            simple_codec.decode(EXPECTED_WORD0 | 1, 0)
        assert exc_info.value.field == "word0"

    def test_collateral_word_must_be_zero(self, simple_codec):
        with pytest.raises(SchemaInvalid) as exc_info:
            simple_codec.decode(EXPECTED_WORD0, EXPECTED_WORD1)
        assert exc_info.value.field == "word1"

    def test_word_out_of_range(self, simple_codec):
        with pytest.raises(SchemaInvalid):
            simple_codec.decode(2**256, 0)


# =============================================================================
# COLLATERALIZED
# =============================================================================


class TestCollateralizedCodec:
    def test_bit_exact_layout(self, collateral_codec, terms, collateral):
        collateralized = terms.model_copy(update={"collateral": collateral})
        assert collateral_codec.encode(collateralized) == (EXPECTED_WORD0, EXPECTED_WORD1)

    def test_decode(self, collateral_codec, terms, collateral):
        decoded = collateral_codec.decode(EXPECTED_WORD0, EXPECTED_WORD1)
        assert decoded == terms.model_copy(update={"collateral": collateral})
        assert decoded.collateral.grace_period_in_days == 5

    def test_absent_grace_period_is_zero(self, collateral_codec, terms):
        """Grace period не задан → 0 при кодировании и при декодировании (не None)."""
        collateral = CollateralTerms(collateral_token_index=1, collateral_amount=10, grace_period_in_days=None)
        word0, word1 = collateral_codec.encode(terms.model_copy(update={"collateral": collateral}))
        assert word1 & 0xFF == 0

        decoded = collateral_codec.decode(word0, word1)
        assert decoded.collateral.grace_period_in_days == 0
        assert decoded.collateral.grace_period_in_days is not None

    def test_requires_collateral(self, collateral_codec, terms):
        with pytest.raises(SchemaInvalid) as exc_info:
            collateral_codec.encode(terms)
        assert exc_info.value.field == "collateral"

    def test_collateral_amount_overflow(self, collateral_codec, terms):
        collateral = CollateralTerms(collateral_token_index=1, collateral_amount=2**92)
        with pytest.raises(FieldOverflow) as exc_info:
            collateral_codec.encode(terms.model_copy(update={"collateral": collateral}))
        assert exc_info.value.field == "collateral_amount"

    def test_grace_period_overflow(self, collateral_codec, terms):
        collateral = CollateralTerms(collateral_token_index=1, collateral_amount=1, grace_period_in_days=256)
        with pytest.raises(FieldOverflow) as exc_info:
            collateral_codec.encode(terms.model_copy(update={"collateral": collateral}))
        assert exc_info.value.field == "grace_period_in_days"

    def test_stray_bits_in_word1(self, collateral_codec):
        with pytest.raises(SchemaInvalid) as exc_info:
            collateral_codec.decode(EXPECTED_WORD0, EXPECTED_WORD1 | (1 << 200))
        assert exc_info.value.field == "word1"


# =============================================================================
# ON-CHAIN PARAMETERS
# =============================================================================


class TestCombinedParameters:
    def test_combine_and_split(self):
        parameters = combine_words(EXPECTED_WORD0, EXPECTED_WORD1)
        assert parameters == EXPECTED_WORD0 | EXPECTED_WORD1
        assert split_words(parameters) == (EXPECTED_WORD0, EXPECTED_WORD1)

    def test_overlapping_words(self):
        with pytest.raises(ValueError):
            combine_words(EXPECTED_WORD0, EXPECTED_WORD0)

    def test_layouts_disjoint(self):
        assert SIMPLE_INTEREST_LAYOUT.occupied_mask & COLLATERAL_LAYOUT.occupied_mask == 0
        assert SIMPLE_INTEREST_LAYOUT.occupied_mask | COLLATERAL_LAYOUT.occupied_mask == 2**256 - 1


# =============================================================================
# ROUND-TRIP (property-based)
# =============================================================================

collateral_strategy = st.builds(
    CollateralTerms,
    collateral_token_index=st.integers(min_value=0, max_value=255),
    collateral_amount=st.integers(min_value=0, max_value=2**92 - 1),
    grace_period_in_days=st.one_of(st.none(), st.integers(min_value=0, max_value=255)),
)

terms_strategy = st.builds(
    LoanTerms,
    principal_token_index=st.integers(min_value=0, max_value=255),
    principal_amount=st.integers(min_value=0, max_value=2**96 - 1),
    interest_rate=st.integers(min_value=0, max_value=2**24 - 1).map(lambda s: Decimal(s).scaleb(-4)),
    amortization_unit=st.sampled_from(list(AmortizationUnit)),
    term_length=st.integers(min_value=0, max_value=2**16 - 1),
    collateral=st.one_of(st.none(), collateral_strategy),
)


class TestRoundTrip:
    @settings(max_examples=200)
    @given(terms=terms_strategy)
    def test_decode_encode_identity(self, terms):
        registry = default_registry()
        codec = registry.resolve(registry.type_for_terms(terms))
        word0, word1 = codec.encode(terms)

        assert codec.decode(word0, word1) == terms
        assert split_words(combine_words(word0, word1)) == (word0, word1)
