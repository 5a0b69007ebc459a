"""
Groq Whisper transcription client.

Uploads one captured utterance to the OpenAI-compatible
/audio/transcriptions endpoint and returns the recognized text.
"""

import asyncio
import logging
from typing import Optional

import aiohttp

from voice_assessment.config import Settings, settings as default_settings
from voice_assessment.errors import TranscriptionError
from voice_assessment.models import Transcription

logger = logging.getLogger(__name__)


class GroqTranscriber:
    """
    Batch speech-to-text for a single utterance.

    Features:
    - Multipart upload (browser MediaRecorder webm by default)
    - Language hint passed through to Whisper
    - Every failure surfaces as TranscriptionError
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        filename: str = "audio.webm",
    ):
        settings = settings or default_settings
        self.api_key = settings.groq_api_key
        self.model = settings.transcription_model
        self.url = f"{settings.groq_base_url.rstrip('/')}/audio/transcriptions"
        self.timeout = aiohttp.ClientTimeout(total=settings.http_timeout_s, connect=5)
        self.filename = filename

    async def transcribe(self, audio: bytes, language: str) -> Transcription:
        """
        Transcribe recorded audio.

        Args:
            audio: Encoded audio as produced by the capture device
            language: Short language code hint (e.g. "en")

        Returns:
            Transcription with the recognized text (may be empty)
        """
        if not self.api_key:
            raise TranscriptionError("GROQ_API_KEY is not set")
        if not audio:
            raise TranscriptionError("No audio to transcribe")

        form = aiohttp.FormData()
        form.add_field("file", audio, filename=self.filename, content_type="audio/webm")
        form.add_field("model", self.model)
        if language:
            form.add_field("language", language)
        form.add_field("response_format", "json")

        headers = {"Authorization": f"Bearer {self.api_key}"}

        logger.info(f"Sending {len(audio)} bytes to Groq for transcription")
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(self.url, headers=headers, data=form) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        logger.error(f"Groq API error {response.status}: {error_text}")
                        raise TranscriptionError(f"Groq API error: {response.status} {error_text[:200]}")

                    data = await response.json(content_type=None)

        except aiohttp.ClientError as e:
            raise TranscriptionError(f"Transcription request failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise TranscriptionError("Transcription request timed out") from e
        except ValueError as e:
            raise TranscriptionError(f"Invalid JSON from Groq: {e}") from e

        if not isinstance(data, dict):
            raise TranscriptionError("Unexpected transcription payload")

        transcription = Transcription(text=str(data.get("text") or ""))
        logger.debug(f"Transcription: '{transcription.text[:80]}'")
        return transcription
