"""Assertions — проверки debt order и соглашений над снапшотами chain state.

Семейства проверок независимы и вызываются по отдельности; AssertionEngine
компонует их для sign / countersign / fill / repay / seize.
"""

from .account import AccountAssertions, recover_signer
from .adapter import AdapterAssertions
from .collateral import CollateralAssertions
from .debt_agreement import DebtAgreementAssertions, outstanding_amount
from .debt_token import DebtTokenAssertions
from .engine import AssertionConfig, AssertionEngine
from .order import OrderAssertions
from .result import AssertionReport, AssertionResult, FailureReason
from .schema import SchemaAssertions
from .token import TokenAssertions

__all__ = [
    "AccountAssertions",
    "AdapterAssertions",
    "CollateralAssertions",
    "DebtAgreementAssertions",
    "DebtTokenAssertions",
    "OrderAssertions",
    "SchemaAssertions",
    "TokenAssertions",
    "AssertionConfig",
    "AssertionEngine",
    "AssertionReport",
    "AssertionResult",
    "FailureReason",
    "outstanding_amount",
    "recover_signer",
]
