"""Lifecycle — состояния займа и async оркестрация операций."""

from .loan import LifecycleConfig, Loan, LoanLifecycle, fill_arguments, order_arguments
from .state_machine import (
    ACTIVE_STATES,
    PRE_FILL_STATES,
    TERMINAL_STATES,
    LoanAction,
    LoanState,
    LoanStateMachine,
    LoanTransitionResult,
)

__all__ = [
    "LifecycleConfig",
    "Loan",
    "LoanLifecycle",
    "fill_arguments",
    "order_arguments",
    "ACTIVE_STATES",
    "PRE_FILL_STATES",
    "TERMINAL_STATES",
    "LoanAction",
    "LoanState",
    "LoanStateMachine",
    "LoanTransitionResult",
]
