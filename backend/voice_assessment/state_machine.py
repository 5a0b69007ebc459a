"""
Turn state machine.

Holds the single current AssessmentStatus and the turn epoch. Every
transition, including Speaking -> Speaking, bumps the epoch so that timers
and in-flight calls issued under an older epoch can be recognized as stale.
"""

import asyncio
import logging

from voice_assessment.errors import InvalidTransitionError
from voice_assessment.models import AssessmentStatus

logger = logging.getLogger(__name__)


VALID_TRANSITIONS: dict[AssessmentStatus, frozenset[AssessmentStatus]] = {
    AssessmentStatus.IDLE: frozenset({AssessmentStatus.SPEAKING}),
    AssessmentStatus.SPEAKING: frozenset({
        AssessmentStatus.SPEAKING,
        AssessmentStatus.LISTENING,
        AssessmentStatus.IDLE,
    }),
    AssessmentStatus.LISTENING: frozenset({
        AssessmentStatus.PROCESSING,
        AssessmentStatus.SPEAKING,
        AssessmentStatus.IDLE,
    }),
    AssessmentStatus.PROCESSING: frozenset({
        AssessmentStatus.SPEAKING,
        AssessmentStatus.IDLE,
    }),
}


class StateMachine:
    """Validated status transitions plus the monotonic turn epoch."""

    def __init__(self):
        self._state = AssessmentStatus.IDLE
        self._epoch = 0
        self._lock = asyncio.Lock()

    @property
    def current_state(self) -> AssessmentStatus:
        return self._state

    @property
    def epoch(self) -> int:
        return self._epoch

    def is_current(self, epoch: int) -> bool:
        return epoch == self._epoch

    def can_transition(self, to_state: AssessmentStatus) -> bool:
        return to_state in VALID_TRANSITIONS[self._state]

    async def transition(self, to_state: AssessmentStatus, reason: str = "") -> int:
        """
        Move to to_state and bump the epoch.

        Returns:
            The new epoch

        Raises:
            InvalidTransitionError: if the move is not in VALID_TRANSITIONS
        """
        async with self._lock:
            from_state = self._state
            if not self.can_transition(to_state):
                raise InvalidTransitionError(
                    f"{from_state.value} -> {to_state.value} is not allowed"
                )
            self._state = to_state
            self._epoch += 1
            logger.info(
                f"State {from_state.value} -> {to_state.value} "
                f"(epoch {self._epoch}): {reason}"
            )
            return self._epoch

    def force_idle(self, reason: str = "") -> None:
        """Return to IDLE from any state. Used for abort and fatal errors."""
        if self._state is not AssessmentStatus.IDLE:
            logger.info(f"State {self._state.value} -> idle (forced): {reason}")
        self._state = AssessmentStatus.IDLE
        self._epoch += 1
