"""
Turn Controller - Orchestrates the spoken self-assessment.

This is the most complex component, coordinating:
- State machine transitions and the turn epoch
- Microphone capture and energy-based voice activity detection
- No-speech timeout and end-of-utterance debounce
- Transcription, sentiment analysis and speech synthesis calls
- Skip confirmation after the user stays silent

Critical: capture and playback never overlap, and every timer fire or call
result is checked against the live epoch before it touches session state.
"""

import asyncio
import logging
import uuid
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, Optional

from voice_assessment.capabilities import (
    AudioCapture,
    AudioPlayer,
    CaptureHandle,
    QuestionProvider,
    SentimentAnalyzer,
    SpeechSynthesizer,
    Transcriber,
)
from voice_assessment.config import Settings, settings as default_settings
from voice_assessment.errors import (
    AnalysisError,
    AssessmentError,
    CaptureError,
    StaleTurnError,
    SynthesisError,
    TranscriptionError,
)
from voice_assessment.languages import Phrases, StaticQuestionProvider, get_language, get_phrases
from voice_assessment.models import (
    AssessmentStatus,
    Message,
    Question,
    SentimentResult,
    TurnResponse,
)
from voice_assessment.orchestration.level_monitor import AudioLevelMonitor, VoiceActivity
from voice_assessment.orchestration.question_sequencer import QuestionSequencer
from voice_assessment.orchestration.silence_timer import SilenceTimer
from voice_assessment.orchestration.skip_confirmation import (
    KeywordSkipInterpreter,
    SkipReplyInterpreter,
)
from voice_assessment.orchestration.transcript_log import TranscriptLog
from voice_assessment.state_machine import StateMachine

logger = logging.getLogger(__name__)


class ListenOutcome(str, Enum):
    UTTERANCE = "utterance"
    NO_SPEECH = "no_speech"


class TurnController:
    """
    Drives one assessment from greeting to closing message.

    State Flow:
    IDLE → SPEAKING → LISTENING → PROCESSING → SPEAKING → ... → IDLE
                         ↓ no speech            ↑
                      SPEAKING (skip prompt) ───┘ (back to LISTENING)

    State Meanings:
    - SPEAKING: synthesized speech is playing, microphone closed
    - LISTENING: microphone open, level monitor and silence timers armed
    - PROCESSING: transcription and sentiment analysis of the captured answer
    - IDLE: no session running

    skip_confirm_pending is an orthogonal flag: while set, the next captured
    utterance is read as a yes/no reply to "skip this question?".
    """

    def __init__(
        self,
        *,
        capture: AudioCapture,
        transcriber: Transcriber,
        analyzer: SentimentAnalyzer,
        synthesizer: SpeechSynthesizer,
        player: AudioPlayer,
        on_complete: Callable[[list[TurnResponse]], Awaitable[None]],
        language: Optional[str] = None,
        question_provider: Optional[QuestionProvider] = None,
        phrases: Optional[Phrases] = None,
        skip_interpreter: Optional[SkipReplyInterpreter] = None,
        on_state_change: Optional[Callable[[AssessmentStatus, AssessmentStatus], Awaitable[None]]] = None,
        on_message: Optional[Callable[[Message], Awaitable[None]]] = None,
        on_error: Optional[Callable[[str, str, bool], Awaitable[None]]] = None,  # code, message, recoverable
        settings: Optional[Settings] = None,
        session_id: Optional[str] = None,
    ):
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self.settings = settings or default_settings
        self.language = get_language(language or self.settings.default_language)
        self.phrases = phrases or get_phrases(self.language.code)

        # Capabilities
        self.capture = capture
        self.transcriber = transcriber
        self.analyzer = analyzer
        self.synthesizer = synthesizer
        self.player = player
        self.question_provider = question_provider or StaticQuestionProvider()
        self.skip_interpreter = skip_interpreter or KeywordSkipInterpreter()

        # Callbacks
        self.on_complete = on_complete
        self.on_state_change = on_state_change
        self.on_error = on_error

        # Core components
        self.state_machine = StateMachine()
        self.transcript = TranscriptLog(self.session_id, on_message=on_message)
        self.no_speech_timer = SilenceTimer(
            name="no-speech",
            duration_ms=self.settings.no_speech_timeout_ms,
            on_expire=self._on_no_speech_timeout,
        )
        self.end_of_utterance_timer = SilenceTimer(
            name="end-of-utterance",
            duration_ms=self.settings.silence_duration_ms,
            on_expire=self._on_end_of_utterance,
        )

        # Session state
        self._sequencer: Optional[QuestionSequencer] = None
        self._responses: list[TurnResponse] = []
        self._skip_confirm_pending = False
        self._completed = False

        # Listening window resources (owned only while LISTENING)
        self._capture_handle: Optional[CaptureHandle] = None
        self._monitor: Optional[AudioLevelMonitor] = None
        self._monitor_task: Optional[asyncio.Task] = None
        self._listen_outcome: Optional[asyncio.Future] = None

        self._active = False
        self._abort_requested = False
        self._run_task: Optional[asyncio.Task] = None

        logger.info(f"TurnController initialized for session {self.session_id} ({self.language.code})")

    # ------------------------------------------------------------------
    # Public state
    # ------------------------------------------------------------------

    @property
    def status(self) -> AssessmentStatus:
        return self.state_machine.current_state

    @property
    def epoch(self) -> int:
        return self.state_machine.epoch

    @property
    def current_index(self) -> int:
        return self._sequencer.index if self._sequencer else 0

    @property
    def question_count(self) -> int:
        return self._sequencer.count if self._sequencer else 0

    @property
    def responses(self) -> tuple[TurnResponse, ...]:
        return tuple(self._responses)

    @property
    def skip_confirm_pending(self) -> bool:
        return self._skip_confirm_pending

    @property
    def has_spoken(self) -> bool:
        return self._monitor is not None and self._monitor.has_spoken

    @property
    def is_running(self) -> bool:
        return self._active

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start_assessment(self) -> asyncio.Task:
        """Start the conversation in the background and return its task."""
        self._claim()
        self._run_task = asyncio.create_task(self._run())
        return self._run_task

    async def run_assessment(self) -> list[TurnResponse]:
        """
        Run the whole conversation in the calling task.

        Returns:
            The answered questions, in question order

        Raises:
            CaptureError: if the microphone cannot be opened
        """
        self._claim()
        self._run_task = asyncio.current_task()
        return await self._run()

    async def stop(self):
        """Abort the running assessment. No-op while idle."""
        task = self._run_task
        if self.status is AssessmentStatus.IDLE and (task is None or task.done()):
            logger.debug("stop() while idle - nothing to do")
            return

        logger.info(f"Stopping assessment for session {self.session_id}")
        self._abort_requested = True
        await self._go_idle("Stopped by caller")
        await self._release_listening()

        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            # A task cancelled before its first step never runs _run's cleanup
            self._active = False
            self._run_task = None

    def _claim(self):
        if self._active:
            raise RuntimeError(f"Assessment already running for session {self.session_id}")
        self._active = True
        self._abort_requested = False

    async def _run(self) -> list[TurnResponse]:
        try:
            return await self._conversation()

        except StaleTurnError as e:
            logger.info(f"Assessment superseded ({e}) - exiting conversation loop")
            return list(self._responses)

        except CaptureError as e:
            logger.error(f"❌ Audio capture failed: {e}")
            await self._release_listening()
            await self._go_idle("Capture failed")
            await self._report_error(e, recoverable=False)
            raise

        except asyncio.CancelledError:
            logger.info("Assessment task cancelled")
            await self._release_listening()
            await self._go_idle("Assessment cancelled")
            raise

        except Exception as e:
            logger.error(f"❌ Assessment failed: {e}", exc_info=True)
            await self._release_listening()
            await self._go_idle("Unexpected error")
            error = e if isinstance(e, AssessmentError) else AssessmentError(str(e))
            await self._report_error(error, recoverable=False)
            raise

        finally:
            self._active = False
            self._run_task = None

    async def _conversation(self) -> list[TurnResponse]:
        questions = self.question_provider.get_questions(self.language.code)
        self._sequencer = QuestionSequencer(questions)
        self._responses = []
        self._skip_confirm_pending = False
        self._completed = False
        self.transcript.clear()

        first = self._sequencer.current()
        greeting = f"{self.phrases.greeting} {first.text}"
        await self.transcript.add_agent(greeting)
        await self._speak(greeting, reason="Greeting and first question")

        while True:
            outcome, audio = await self._listen()

            if outcome is ListenOutcome.NO_SPEECH:
                self._skip_confirm_pending = True
                await self._speak(self.phrases.ask_to_skip, reason="No speech - offering skip")
                continue

            if not await self._process(audio):
                # Same question, listen again
                continue

            if self._sequencer.is_complete():
                return await self._finish()

            question = self._sequencer.current()
            await self.transcript.add_agent(question.text)
            await self._speak(question.text, reason=f"Question {question.number}")

    async def _finish(self) -> list[TurnResponse]:
        closing = self.phrases.closing
        await self.transcript.add_agent(closing)
        await self._speak(closing, reason="Closing message")

        responses = list(self._responses)
        await self._transition(AssessmentStatus.IDLE, reason="Assessment complete")
        await self._complete(responses)
        return responses

    async def _complete(self, responses: list[TurnResponse]):
        if self._completed:
            logger.warning("Completion already delivered - ignoring")
            return
        self._completed = True
        logger.info(
            f"Assessment complete: {len(responses)} answered of {self.question_count} questions"
        )
        try:
            await self.on_complete(responses)
        except Exception as e:
            logger.error(f"Error in completion callback: {e}", exc_info=True)

    # ------------------------------------------------------------------
    # Speaking
    # ------------------------------------------------------------------

    async def _speak(self, text: str, reason: str):
        """
        Synthesize and play text. Synthesis or playback failure skips the
        audio and lets the conversation continue.
        """
        epoch = await self._transition(AssessmentStatus.SPEAKING, reason=reason)

        audio: Optional[bytes] = None
        try:
            audio = await self.synthesizer.synthesize(text, self.language.speech_code)
        except SynthesisError as e:
            logger.warning(f"Speech synthesis failed - continuing without audio: {e}")
            await self._report_error(e, recoverable=True)
        except Exception as e:
            logger.error(f"❌ Unexpected synthesis error: {e}", exc_info=True)
            await self._report_error(SynthesisError(str(e)), recoverable=True)
        self._ensure_current(epoch)

        if not audio:
            return

        try:
            await self.player.play(audio)
        except SynthesisError as e:
            logger.warning(f"Playback failed - continuing: {e}")
            await self._report_error(e, recoverable=True)
            self._ensure_current(epoch)
            return
        self._ensure_current(epoch)

        if self.settings.playback_settle_ms > 0:
            await asyncio.sleep(self.settings.playback_settle_ms / 1000.0)
            self._ensure_current(epoch)

    # ------------------------------------------------------------------
    # Listening
    # ------------------------------------------------------------------

    async def _listen(self) -> tuple[ListenOutcome, bytes]:
        """
        Open a listening window and wait for end-of-utterance or the
        no-speech timeout. All window resources are released on exit.
        """
        epoch = await self._transition(AssessmentStatus.LISTENING, reason="Awaiting answer")
        self._listen_outcome = asyncio.get_running_loop().create_future()

        try:
            self._capture_handle = await self.capture.start()
            self._ensure_current(epoch)

            self._monitor = AudioLevelMonitor(
                silence_threshold=self.settings.silence_threshold,
                min_speech_duration_ms=self.settings.min_speech_duration_ms,
            )
            self._monitor_task = asyncio.create_task(
                self._monitor_levels(self._capture_handle, self._monitor, epoch)
            )
            self.no_speech_timer.start(epoch)

            outcome = await self._listen_outcome
            audio = b""
            if outcome is ListenOutcome.UTTERANCE:
                handle, self._capture_handle = self._capture_handle, None
                audio = await handle.stop()
                self._ensure_current(epoch)
            return outcome, audio

        finally:
            await self._release_listening()

    async def _monitor_levels(self, handle: CaptureHandle, monitor: AudioLevelMonitor, epoch: int):
        """Feed level samples through the VAD and drive the two timers."""
        try:
            async for level in handle.level_stream():
                if not self.state_machine.is_current(epoch):
                    logger.debug(f"Level sample for stale epoch {epoch} - monitor exiting")
                    return

                activity = monitor.process(level)
                if activity is VoiceActivity.SPEAKING:
                    self.no_speech_timer.cancel()
                    self.end_of_utterance_timer.cancel()
                elif activity is VoiceActivity.PAUSE and not self.end_of_utterance_timer.is_running():
                    self.end_of_utterance_timer.start(epoch)

            # A finished stream produces no more PAUSE samples to arm the debounce
            if monitor.has_spoken and self._is_live_window(epoch):
                logger.info("Level stream ended after speech - treating as end of utterance")
                self.end_of_utterance_timer.cancel()
                self._listen_outcome.set_result(ListenOutcome.UTTERANCE)
            else:
                logger.debug("Level stream ended")

        except CaptureError as e:
            self._fail_listen(epoch, e)
        except Exception as e:
            logger.error(f"❌ Level stream failed: {e}", exc_info=True)
            self._fail_listen(epoch, CaptureError(f"Level stream failed: {e}"))

    async def _on_no_speech_timeout(self, epoch: int):
        if not self._is_live_window(epoch):
            logger.debug(f"No-speech timeout for stale epoch {epoch} - ignoring")
            return
        if self.has_spoken:
            return

        logger.info(f"No speech within {self.settings.no_speech_timeout_ms}ms")
        self._listen_outcome.set_result(ListenOutcome.NO_SPEECH)

    async def _on_end_of_utterance(self, epoch: int):
        if not self._is_live_window(epoch):
            logger.debug(f"End-of-utterance for stale epoch {epoch} - ignoring")
            return
        if not self.has_spoken:
            return

        logger.info(f"User stopped speaking ({self.settings.silence_duration_ms}ms silence)")
        self._listen_outcome.set_result(ListenOutcome.UTTERANCE)

    def _is_live_window(self, epoch: int) -> bool:
        return (
            self.state_machine.is_current(epoch)
            and self.status is AssessmentStatus.LISTENING
            and self._listen_outcome is not None
            and not self._listen_outcome.done()
        )

    def _fail_listen(self, epoch: int, error: CaptureError):
        if self._is_live_window(epoch):
            self._listen_outcome.set_exception(error)
        else:
            logger.debug(f"Capture error for stale epoch {epoch} - ignoring: {error}")

    async def _release_listening(self):
        """Release everything acquired for the listening window. Idempotent."""
        self.no_speech_timer.cancel()
        self.end_of_utterance_timer.cancel()

        if self._monitor_task and not self._monitor_task.done():
            self._monitor_task.cancel()
            try:
                await self._monitor_task
            except asyncio.CancelledError:
                pass
        self._monitor_task = None

        if self._listen_outcome and not self._listen_outcome.done():
            self._listen_outcome.cancel()
        self._listen_outcome = None

        handle, self._capture_handle = self._capture_handle, None
        if handle is not None:
            try:
                await handle.stop()
            except CaptureError as e:
                logger.warning(f"Error closing capture: {e}")

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    async def _process(self, audio: bytes) -> bool:
        """
        Transcribe and score the captured answer.

        Returns:
            True if the sequencer advanced, False to listen again on the
            same question
        """
        epoch = await self._transition(AssessmentStatus.PROCESSING, reason="Utterance captured")
        started = datetime.now()
        question = self._sequencer.current()

        try:
            transcription = await self.transcriber.transcribe(audio, self.language.code)
        except TranscriptionError as e:
            logger.warning(f"Transcription failed for question {question.number}: {e}")
            await self._report_error(e, recoverable=True)
            self._ensure_current(epoch)
            await self._speak(self.phrases.fallback, reason="Transcription failed")
            return False
        except Exception as e:
            logger.error(f"❌ Unexpected transcription error: {e}", exc_info=True)
            await self._report_error(TranscriptionError(str(e)), recoverable=True)
            self._ensure_current(epoch)
            await self._speak(self.phrases.fallback, reason="Transcription failed")
            return False
        self._ensure_current(epoch)

        text = transcription.text.strip()
        if not text:
            logger.info(f"Empty transcript for question {question.number} - asking again")
            await self._speak(self.phrases.fallback, reason="Empty transcript")
            return False

        if self._skip_confirm_pending:
            return await self._resolve_skip_reply(text, question)

        await self.transcript.add_user(text)
        sentiment = await self._analyze(epoch, text, question)

        self._responses.append(
            TurnResponse(
                question_number=question.number,
                question_text=question.text,
                response_text=text,
                sentiment=sentiment,
            )
        )
        self._sequencer.advance()

        elapsed = (datetime.now() - started).total_seconds() * 1000
        logger.info(f"⏱️ TIMING: Question {question.number} processed in {elapsed:.0f}ms")
        return True

    async def _analyze(self, epoch: int, text: str, question: Question) -> SentimentResult:
        try:
            result = await self.analyzer.analyze(text, question.text, self.language.code)
        except AnalysisError as e:
            logger.warning(f"Sentiment analysis failed - using neutral fallback: {e}")
            await self._report_error(e, recoverable=True)
            result = SentimentResult.fallback()
        except Exception as e:
            logger.error(f"❌ Unexpected analysis error: {e}", exc_info=True)
            await self._report_error(AnalysisError(str(e)), recoverable=True)
            result = SentimentResult.fallback()
        self._ensure_current(epoch)
        return result

    async def _resolve_skip_reply(self, text: str, question: Question) -> bool:
        self._skip_confirm_pending = False

        if self.skip_interpreter.is_affirmative(text):
            logger.info(f"Skip confirmed for question {question.number}: '{text}'")
            await self.transcript.add_user(f"{text} (Skipped)")
            self._sequencer.advance()
            await self._speak(self.phrases.skip_confirmed, reason=f"Skipped question {question.number}")
            return True

        logger.info(f"Skip declined for question {question.number}: '{text}'")
        await self._speak(self.phrases.skip_declined, reason="Skip declined")
        return False

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _transition(self, to_state: AssessmentStatus, reason: str) -> int:
        """Release listening resources if leaving LISTENING, then move."""
        if self._abort_requested:
            raise StaleTurnError(self.epoch, self.epoch)

        from_state = self.status
        if from_state is AssessmentStatus.LISTENING:
            await self._release_listening()

        epoch = await self.state_machine.transition(to_state, reason=reason)
        await self._notify_state_change(from_state, to_state)
        return epoch

    async def _go_idle(self, reason: str):
        from_state = self.status
        self.state_machine.force_idle(reason)
        if from_state is not AssessmentStatus.IDLE:
            await self._notify_state_change(from_state, AssessmentStatus.IDLE)

    def _ensure_current(self, epoch: int):
        if not self.state_machine.is_current(epoch):
            raise StaleTurnError(epoch, self.state_machine.epoch)

    async def _notify_state_change(self, from_state: AssessmentStatus, to_state: AssessmentStatus):
        """Notify state change via callback."""
        if not self.on_state_change:
            return
        try:
            await self.on_state_change(from_state, to_state)
        except Exception as e:
            logger.error(f"Error in state change callback: {e}")

    async def _report_error(self, error: AssessmentError, recoverable: bool):
        if not self.on_error:
            return
        try:
            await self.on_error(error.code, str(error), recoverable)
        except Exception as e:
            logger.error(f"Error in error callback: {e}")
