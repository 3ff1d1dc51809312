# src/core/joins/state_machine.py
"""
Допустимые переходы статуса заявки.
"""

from src.common.constants import JoinStatus
from src.common.exceptions import ConflictError


class JoinStateMachine:
    ALLOWED_TRANSITIONS = {
        JoinStatus.PENDING: [JoinStatus.ACCEPTED, JoinStatus.REJECTED],
        JoinStatus.ACCEPTED: [],
        JoinStatus.REJECTED: [],
    }

    @staticmethod
    def can_transition(current_status: str, new_status: str) -> bool:
        try:
            curr = JoinStatus(current_status)
            new = JoinStatus(new_status)
            return new in JoinStateMachine.ALLOWED_TRANSITIONS.get(curr, [])
        except ValueError:
            return False

    @staticmethod
    def ensure_transition(current_status: str, new_status: str) -> None:
        """Бросает ConflictError, если переход запрещён."""
        if not JoinStateMachine.can_transition(current_status, new_status):
            raise ConflictError(f"Переход {current_status} -> {new_status} недопустим")
