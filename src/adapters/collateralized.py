"""
Collateralized Simple Interest Terms Codec

word0: simple interest параметры (общий layout с SimpleInterestTermsCodec)
word1: collateral_token_index, collateral_amount, grace_period_in_days

grace_period_in_days, не заданный при создании условий, кодируется как 0
и декодируется обратно в 0 (не None).
"""

import logging

from src.adapters.base import COLLATERAL_LAYOUT, TermsContractType, TermsWords
from src.adapters.simple_interest import pack_simple_terms, unpack_simple_terms
from src.core.domain.terms import CollateralTerms, LoanTerms
from src.core.exceptions import SchemaInvalid

logger = logging.getLogger(__name__)


class CollateralizedSimpleInterestTermsCodec:
    """Codec для CollateralizedSimpleInterestTermsContract."""

    type_code = TermsContractType.COLLATERALIZED_SIMPLE_INTEREST

    def encode(self, terms: LoanTerms) -> TermsWords:
        """
        Raises:
            SchemaInvalid: если terms не содержат collateral
            FieldOverflow: если поле не помещается в свою ширину
        """
        if terms.collateral is None:
            raise SchemaInvalid("collateral", "collateralized terms require collateral terms")

        word0 = pack_simple_terms(terms)
        word1 = COLLATERAL_LAYOUT.pack(
            {
                "collateral_token_index": terms.collateral.collateral_token_index,
                "collateral_amount": terms.collateral.collateral_amount,
                "grace_period_in_days": terms.collateral.grace_period_in_days,
            }
        )
        logger.debug(
            "Encoded collateralized terms",
            extra={"word0": hex(word0), "word1": hex(word1)},
        )
        return word0, word1

    def decode(self, word0: int, word1: int) -> LoanTerms:
        """
        Raises:
            SchemaInvalid: reserved bits или неизвестный код unit
        """
        simple = unpack_simple_terms(word0)
        values = COLLATERAL_LAYOUT.unpack(word1)

        collateral = CollateralTerms(
            collateral_token_index=values["collateral_token_index"],
            collateral_amount=values["collateral_amount"],
            grace_period_in_days=values["grace_period_in_days"],
        )
        return LoanTerms(**simple, collateral=collateral)
