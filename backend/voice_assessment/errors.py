"""
Error types raised by the assessment core and its capability clients.

Only CaptureError is fatal to a session. Everything derived from
CapabilityError is absorbed by the TurnController at the call site.
"""


class AssessmentError(Exception):
    """Base class for all assessment errors."""

    code = "ASSESSMENT_ERROR"


class CaptureError(AssessmentError):
    """Microphone permission denied or capture device unavailable."""

    code = "CAPTURE_ERROR"


class CapabilityError(AssessmentError):
    """An external service call failed. Never ends the session."""

    code = "CAPABILITY_ERROR"


class TranscriptionError(CapabilityError):
    code = "TRANSCRIPTION_ERROR"


class AnalysisError(CapabilityError):
    code = "ANALYSIS_ERROR"


class SynthesisError(CapabilityError):
    code = "SYNTHESIS_ERROR"


class PlaybackError(SynthesisError):
    code = "PLAYBACK_ERROR"


class InvalidTransitionError(AssessmentError):
    """Requested status change is not part of the turn state machine."""

    code = "INVALID_TRANSITION"


class StaleTurnError(AssessmentError):
    """A completion arrived for a turn epoch that is no longer live."""

    code = "STALE_TURN"

    def __init__(self, issued_epoch: int, live_epoch: int):
        super().__init__(f"epoch {issued_epoch} superseded by {live_epoch}")
        self.issued_epoch = issued_epoch
        self.live_epoch = live_epoch
