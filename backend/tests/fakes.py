"""
In-memory stand-ins for the capabilities the TurnController drives.

Each listening window is scripted as a Window: level segments the fake
microphone produces, and the text the fake transcriber will "hear" for it.
"""

import asyncio
from collections import deque
from dataclasses import dataclass, field
from typing import Iterable, Optional

from voice_assessment.config import Settings
from voice_assessment.errors import AnalysisError, CaptureError, SynthesisError, TranscriptionError
from voice_assessment.models import AssessmentStatus, SentimentResult, Transcription

TICK_S = 0.005

QUESTIONS = {
    "en": (
        "How are you feeling?",
        "How are you sleeping?",
        "What went well this week?",
    )
}


def fast_settings(**overrides) -> Settings:
    values = dict(
        silence_threshold=0.04,
        min_speech_duration_ms=30,
        silence_duration_ms=100,
        no_speech_timeout_ms=300,
        playback_settle_ms=0,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


@dataclass
class Window:
    text: str
    segments: list[tuple[float, int]] = field(default_factory=list)  # (level, duration_ms)
    finite: bool = False  # stream ends after the segments instead of trailing silence


def answer(text: str, speech_ms: int = 120, level: float = 0.3) -> Window:
    return Window(text=text, segments=[(level, speech_ms)])


def silence() -> Window:
    return Window(text="", segments=[])


class FakeCaptureHandle:
    def __init__(self, capture: "FakeCapture", window: Window):
        self.capture = capture
        self.window = window
        self.stopped = False

    async def level_stream(self):
        for level, duration_ms in self.window.segments:
            ticks = max(1, int(duration_ms / (TICK_S * 1000)))
            for _ in range(ticks):
                if self.stopped:
                    return
                yield level
                await asyncio.sleep(TICK_S)
        if self.window.finite:
            return
        while not self.stopped:
            yield 0.0
            await asyncio.sleep(TICK_S)

    async def stop(self) -> bytes:
        if not self.stopped:
            self.stopped = True
            self.capture.open_handles -= 1
        return self.window.text.encode()


class FakeCapture:
    def __init__(
        self,
        windows: Iterable[Window] = (),
        fail_on_start: bool = False,
        start_error: Optional[Exception] = None,
    ):
        self.windows = deque(windows)
        self.fail_on_start = fail_on_start
        self.start_error = start_error
        self.open_handles = 0
        self.starts = 0
        self.controller = None
        self.violations: list[str] = []

    async def start(self) -> FakeCaptureHandle:
        self.starts += 1
        if self.fail_on_start:
            raise CaptureError("Permission denied")
        if self.start_error is not None:
            raise self.start_error
        if self.controller is not None and self.controller.status is not AssessmentStatus.LISTENING:
            self.violations.append(f"capture opened while {self.controller.status.value}")
        if not self.windows:
            raise AssertionError("Test script ran out of listening windows")
        self.open_handles += 1
        return FakeCaptureHandle(self, self.windows.popleft())


class FakeTranscriber:
    """Reads back the window text; texts starting with '!error' fail."""

    def __init__(self):
        self.calls: list[str] = []

    async def transcribe(self, audio: bytes, language: str) -> Transcription:
        text = audio.decode()
        self.calls.append(text)
        if text.startswith("!error"):
            raise TranscriptionError("service unavailable")
        return Transcription(text=text)


class FakeAnalyzer:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: list[tuple[str, str, str]] = []

    async def analyze(self, response_text: str, question_text: str, language: str) -> SentimentResult:
        self.calls.append((response_text, question_text, language))
        if self.fail:
            raise AnalysisError("model overloaded")
        return SentimentResult(
            sentiment="positive",
            score=0.9,
            keywords=("good",),
            summary="Feeling fine",
        )


class FakeSynthesizer:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.spoken: list[str] = []

    async def synthesize(self, text: str, language_code: str) -> bytes:
        self.spoken.append(text)
        if self.fail:
            raise SynthesisError("TTS quota exceeded")
        return text.encode()


class FakePlayer:
    def __init__(self, capture: Optional[FakeCapture] = None, delay_s: float = 0.0):
        self.capture = capture
        self.delay_s = delay_s
        self.played: list[bytes] = []
        self.controller = None
        self.violations: list[str] = []

    async def play(self, audio: bytes) -> None:
        if self.capture is not None and self.capture.open_handles:
            self.violations.append("playback while capture open")
        if self.controller is not None and self.controller.status is not AssessmentStatus.SPEAKING:
            self.violations.append(f"playback while {self.controller.status.value}")
        self.played.append(audio)
        if self.delay_s:
            await asyncio.sleep(self.delay_s)


async def wait_until(predicate, timeout: float = 3.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(TICK_S)
