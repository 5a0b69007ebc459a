"""Append-only transcript of what the agent said and what the user answered."""

import logging
from typing import Awaitable, Callable, Optional

from voice_assessment.models import Message, SpeakerRole

logger = logging.getLogger(__name__)


class TranscriptLog:
    def __init__(
        self,
        session_id: str,
        on_message: Optional[Callable[[Message], Awaitable[None]]] = None,
    ):
        self.session_id = session_id
        self.on_message = on_message
        self._messages: list[Message] = []
        self._counter = 0

    async def add_agent(self, content: str) -> Message:
        return await self._append(SpeakerRole.AGENT, content)

    async def add_user(self, content: str) -> Message:
        return await self._append(SpeakerRole.USER, content)

    async def _append(self, role: SpeakerRole, content: str) -> Message:
        message = Message(
            id=f"{self.session_id}_{self._counter}",
            role=role,
            content=content,
        )
        self._counter += 1
        self._messages.append(message)

        if self.on_message:
            try:
                await self.on_message(message)
            except Exception as e:
                logger.error(f"Error in transcript message callback: {e}")
        return message

    def get_messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    def clear(self):
        self._messages.clear()
        self._counter = 0

    def __len__(self) -> int:
        return len(self._messages)
