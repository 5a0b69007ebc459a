"""
Contracts for the collaborators the TurnController drives.

Implementations live in stt/, llm/, tts/, languages.py and websocket.py.
Tests substitute in-memory fakes.
"""

from typing import AsyncIterator, Protocol, Sequence

from voice_assessment.models import SentimentResult, Transcription


class CaptureHandle(Protocol):
    def level_stream(self) -> AsyncIterator[float]:
        """Normalized amplitude samples in [0, 1] while capture is open."""
        ...

    async def stop(self) -> bytes:
        """Close the capture and return everything recorded."""
        ...


class AudioCapture(Protocol):
    async def start(self) -> CaptureHandle:
        """Open the microphone. Raises CaptureError when unavailable."""
        ...


class Transcriber(Protocol):
    async def transcribe(self, audio: bytes, language: str) -> Transcription:
        ...


class SentimentAnalyzer(Protocol):
    async def analyze(
        self, response_text: str, question_text: str, language: str
    ) -> SentimentResult:
        ...


class SpeechSynthesizer(Protocol):
    async def synthesize(self, text: str, language_code: str) -> bytes:
        ...


class AudioPlayer(Protocol):
    async def play(self, audio: bytes) -> None:
        """Return once playback has finished."""
        ...


class QuestionProvider(Protocol):
    def get_questions(self, language_code: str) -> Sequence[str]:
        ...
