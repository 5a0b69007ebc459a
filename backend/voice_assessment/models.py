"""Data model shared by the orchestrator, the capability clients and the host."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class AssessmentStatus(str, Enum):
    """Exactly one of these holds for a session at any instant."""

    IDLE = "idle"
    LISTENING = "listening"
    PROCESSING = "processing"
    SPEAKING = "speaking"


class SpeakerRole(str, Enum):
    USER = "user"
    AGENT = "agent"


class Question(BaseModel):
    """Question text plus its 1-based position in the active language's list."""

    model_config = ConfigDict(frozen=True)

    number: int = Field(ge=1)
    text: str


class SentimentResult(BaseModel):
    """
    Sentiment of a single answer.

    is_fallback is True only for the locally built neutral substitute used
    when the analysis service fails.
    """

    model_config = ConfigDict(frozen=True)

    sentiment: Literal["positive", "neutral", "negative"]
    score: float = Field(ge=0.0, le=1.0)
    keywords: tuple[str, ...] = ()
    summary: str = ""
    is_fallback: bool = False

    @classmethod
    def fallback(cls) -> "SentimentResult":
        return cls(
            sentiment="neutral",
            score=0.5,
            keywords=(),
            summary="Analysis unavailable",
            is_fallback=True,
        )


class Transcription(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str = ""


class TurnResponse(BaseModel):
    """One answered (non-skipped) question."""

    model_config = ConfigDict(frozen=True)

    question_number: int = Field(ge=1)
    question_text: str
    response_text: str
    sentiment: SentimentResult


class Message(BaseModel):
    """Transcript entry for display. Never read back by control logic."""

    model_config = ConfigDict(frozen=True)

    id: str
    role: SpeakerRole
    content: str
