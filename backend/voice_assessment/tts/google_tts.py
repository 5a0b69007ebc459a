"""
Google Cloud Text-to-Speech REST client.

Returns MP3 bytes for one line of agent speech.
"""

import asyncio
import logging
from typing import Optional

import aiohttp

from voice_assessment.config import Settings, settings as default_settings
from voice_assessment.errors import SynthesisError
from voice_assessment.utils.audio import decode_audio_base64

logger = logging.getLogger(__name__)

GOOGLE_TTS_URL = "https://texttospeech.googleapis.com/v1/text:synthesize"


class GoogleTTSClient:
    def __init__(self, settings: Optional[Settings] = None, url: str = GOOGLE_TTS_URL):
        settings = settings or default_settings
        self.api_key = settings.google_cloud_api_key
        self.voice_gender = settings.tts_voice_gender
        self.url = url
        self.timeout = aiohttp.ClientTimeout(total=settings.http_timeout_s, connect=5)

    async def synthesize(self, text: str, language_code: str) -> bytes:
        """
        Synthesize speech.

        Args:
            text: Text to speak
            language_code: Regional speech code (e.g. "en-US")

        Returns:
            MP3 audio bytes
        """
        if not text:
            raise SynthesisError("Text is required")
        if not self.api_key:
            raise SynthesisError("GOOGLE_CLOUD_API_KEY is not set")

        body = {
            "input": {"text": text},
            "voice": {"languageCode": language_code, "ssmlGender": self.voice_gender},
            "audioConfig": {"audioEncoding": "MP3"},
        }

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(self.url, params={"key": self.api_key}, json=body) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        logger.error(f"Google TTS API error {response.status}: {error_text}")
                        raise SynthesisError(f"TTS API error: {response.status}")

                    data = await response.json(content_type=None)

        except aiohttp.ClientError as e:
            raise SynthesisError(f"TTS request failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise SynthesisError("TTS request timed out") from e
        except ValueError as e:
            raise SynthesisError(f"Invalid JSON from TTS API: {e}") from e

        audio_content = data.get("audioContent") if isinstance(data, dict) else None
        if not audio_content:
            raise SynthesisError("TTS response contained no audio")

        audio = decode_audio_base64(audio_content)
        if not audio:
            raise SynthesisError("TTS audio could not be decoded")

        logger.debug(f"Synthesized {len(audio)} bytes for '{text[:40]}'")
        return audio
