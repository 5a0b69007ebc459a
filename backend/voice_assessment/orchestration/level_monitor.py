"""
Audio level monitor - energy based voice activity detection.

Classifies normalized amplitude samples into speech/silence with two
hysteresis rules:
- speech must stay above the threshold for min_speech_duration_ms before
  the user counts as speaking (rejects clicks and bumps)
- the caller arms an end-of-utterance debounce on PAUSE and cancels it on
  SPEAKING, so short pauses mid-sentence do not end the turn
"""

import logging
import time
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class VoiceActivity(str, Enum):
    SILENT = "silent"      # below threshold, nothing confirmed yet
    ONSET = "onset"        # above threshold, not yet long enough to trust
    SPEAKING = "speaking"  # confirmed speech
    PAUSE = "pause"        # below threshold after confirmed speech


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class AudioLevelMonitor:
    """
    Per-listening-window VAD state.

    A new monitor is created for every listening window so has_spoken always
    starts out False.
    """

    def __init__(
        self,
        silence_threshold: float = 0.04,
        min_speech_duration_ms: float = 300,
        clock: Callable[[], float] = _monotonic_ms,
    ):
        self.silence_threshold = silence_threshold
        self.min_speech_duration_ms = min_speech_duration_ms
        self._clock = clock

        self.has_spoken = False
        self.level = 0.0
        self._speech_started_at: Optional[float] = None

    def process(self, level: float) -> VoiceActivity:
        """
        Classify one sample.

        Args:
            level: Normalized amplitude in [0, 1]

        Returns:
            VoiceActivity for this sample
        """
        self.level = min(max(level, 0.0), 1.0)
        now = self._clock()

        if self.level > self.silence_threshold:
            if self._speech_started_at is None:
                self._speech_started_at = now

            if now - self._speech_started_at > self.min_speech_duration_ms:
                if not self.has_spoken:
                    logger.debug(f"Speech confirmed after {now - self._speech_started_at:.0f}ms")
                self.has_spoken = True
                return VoiceActivity.SPEAKING
            return VoiceActivity.ONSET

        self._speech_started_at = None
        if self.has_spoken:
            return VoiceActivity.PAUSE
        return VoiceActivity.SILENT
