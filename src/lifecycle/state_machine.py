"""Loan State Machine — состояния займа от подписи до погашения / изъятия.

Переходы:
- UNSIGNED --sign--> DEBTOR_SIGNED --countersign--> FULLY_SIGNED --fill--> FILLED
- FILLED / REPAYING / DEFAULTED --repay--> REPAYING | REPAID (DEFAULTED остаётся DEFAULTED до полного погашения)
- FILLED / REPAYING / DEFAULTED --seize--> COLLATERAL_SEIZED
- UNSIGNED / DEBTOR_SIGNED --cancel--> CANCELLED

Lazy переходы (без фонового таймера, проверяются при следующей операции):
- Pre-fill состояния при current_time > expiration → EXPIRED
- FILLED / REPAYING после term end + grace period без полного погашения → DEFAULTED

Терминальные: REPAID, COLLATERAL_SEIZED, CANCELLED, EXPIRED.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Tuple

from src.core.exceptions import InvalidStateTransition


class LoanState(str, Enum):
    """Состояние займа."""

    UNSIGNED = "UNSIGNED"
    DEBTOR_SIGNED = "DEBTOR_SIGNED"
    FULLY_SIGNED = "FULLY_SIGNED"
    FILLED = "FILLED"
    REPAYING = "REPAYING"
    REPAID = "REPAID"
    DEFAULTED = "DEFAULTED"
    COLLATERAL_SEIZED = "COLLATERAL_SEIZED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


class LoanAction(str, Enum):
    """Действие над займом. OBSERVE — только наблюдение lazy переходов (refresh)."""

    SIGN = "SIGN"
    COUNTERSIGN = "COUNTERSIGN"
    FILL = "FILL"
    REPAY = "REPAY"
    SEIZE = "SEIZE"
    CANCEL = "CANCEL"
    OBSERVE = "OBSERVE"


PRE_FILL_STATES: FrozenSet[LoanState] = frozenset(
    {LoanState.UNSIGNED, LoanState.DEBTOR_SIGNED, LoanState.FULLY_SIGNED}
)
ACTIVE_STATES: FrozenSet[LoanState] = frozenset(
    {LoanState.FILLED, LoanState.REPAYING, LoanState.DEFAULTED}
)
TERMINAL_STATES: FrozenSet[LoanState] = frozenset(
    {LoanState.REPAID, LoanState.COLLATERAL_SEIZED, LoanState.CANCELLED, LoanState.EXPIRED}
)

# (state, action) → state для переходов, не зависящих от chain state
_PRE_FILL_TRANSITIONS: Dict[Tuple[LoanState, LoanAction], LoanState] = {
    (LoanState.UNSIGNED, LoanAction.SIGN): LoanState.DEBTOR_SIGNED,
    (LoanState.DEBTOR_SIGNED, LoanAction.COUNTERSIGN): LoanState.FULLY_SIGNED,
    (LoanState.FULLY_SIGNED, LoanAction.FILL): LoanState.FILLED,
    (LoanState.UNSIGNED, LoanAction.CANCEL): LoanState.CANCELLED,
    (LoanState.DEBTOR_SIGNED, LoanAction.CANCEL): LoanState.CANCELLED,
}


@dataclass(frozen=True)
class LoanTransitionResult:
    """Результат перехода состояния займа."""

    new_state: LoanState
    previous_state: LoanState
    action: LoanAction

    # Диагностика
    transition_occurred: bool
    transition_reason: str
    details: str


class LoanStateMachine:
    """Чистая функция переходов: не хранит состояние, не обращается к ledger."""

    def is_action_allowed(self, state: LoanState, action: LoanAction) -> bool:
        """Структурная допустимость действия (без учёта expiry / default)."""
        if action == LoanAction.OBSERVE:
            return True
        if state in TERMINAL_STATES:
            return False
        if state in ACTIVE_STATES:
            return action in (LoanAction.REPAY, LoanAction.SEIZE)
        return (state, action) in _PRE_FILL_TRANSITIONS

    def require_action_allowed(self, state: LoanState, action: LoanAction) -> None:
        """
        Raises:
            InvalidStateTransition: действие недопустимо в состоянии
        """
        if not self.is_action_allowed(state, action):
            raise InvalidStateTransition(state.value, action.value)

    def evaluate_transition(
        self,
        current_state: LoanState,
        action: LoanAction,
        current_time: int,
        expiration_timestamp: int,
        repayment_complete: bool = False,
        default_observed: bool = False,
    ) -> LoanTransitionResult:
        """Оценка перехода.

        Args:
            current_state: текущее состояние займа
            action: действие
            current_time: timestamp последнего блока (сек)
            expiration_timestamp: expirationTimestampInSec order'а
            repayment_complete: после действия долг погашен полностью
            default_observed: term end + grace прошли, долг не погашен

        Returns:
            LoanTransitionResult. Для pre-fill займа после expiration
            new_state = EXPIRED при любом действии: вызывающий код решает,
            что делать с исходным действием.

        Raises:
            InvalidStateTransition: действие недопустимо в текущем состоянии
        """
        self.require_action_allowed(current_state, action)

        # 1. Терминальные состояния: только наблюдение
        if current_state in TERMINAL_STATES:
            return self._unchanged(current_state, action, "terminal_state")

        # 2. Lazy expiry (только до fill)
        if current_state in PRE_FILL_STATES and current_time > expiration_timestamp:
            return LoanTransitionResult(
                new_state=LoanState.EXPIRED,
                previous_state=current_state,
                action=action,
                transition_occurred=True,
                transition_reason="order_expired",
                details=f"now {current_time} > expiration {expiration_timestamp}",
            )

        # 3. Pre-fill переходы
        if current_state in PRE_FILL_STATES:
            if action == LoanAction.OBSERVE:
                return self._unchanged(current_state, action, "no_change")
            return self._moved(
                current_state,
                _PRE_FILL_TRANSITIONS[(current_state, action)],
                action,
                action.value.lower(),
            )

        # 4. Активный займ: lazy default
        effective_state = current_state
        if default_observed and current_state != LoanState.DEFAULTED and not repayment_complete:
            effective_state = LoanState.DEFAULTED

        if action == LoanAction.SEIZE:
            return self._moved(current_state, LoanState.COLLATERAL_SEIZED, action, "collateral_seized")

        if action == LoanAction.REPAY:
            if repayment_complete:
                return self._moved(current_state, LoanState.REPAID, action, "fully_repaid")
            if effective_state == LoanState.DEFAULTED:
                return self._moved(current_state, LoanState.DEFAULTED, action, "partial_repayment_in_default")
            return self._moved(current_state, LoanState.REPAYING, action, "partial_repayment")

        # OBSERVE
        if repayment_complete:
            return self._moved(current_state, LoanState.REPAID, action, "fully_repaid")
        if effective_state != current_state:
            return self._moved(current_state, effective_state, action, "default_observed")
        return self._unchanged(current_state, action, "no_change")

    # -------------------------------------------------------------------------

    def _moved(
        self, previous: LoanState, new: LoanState, action: LoanAction, reason: str
    ) -> LoanTransitionResult:
        return LoanTransitionResult(
            new_state=new,
            previous_state=previous,
            action=action,
            transition_occurred=new != previous,
            transition_reason=reason,
            details=f"{previous.value} → {new.value}",
        )

    def _unchanged(self, state: LoanState, action: LoanAction, reason: str) -> LoanTransitionResult:
        return LoanTransitionResult(
            new_state=state,
            previous_state=state,
            action=action,
            transition_occurred=False,
            transition_reason=reason,
            details=f"Remains {state.value}",
        )
