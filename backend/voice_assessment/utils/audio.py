"""Audio utilities for base64 transport and buffering of captured chunks."""

import logging
import base64
import binascii
from typing import Optional

logger = logging.getLogger(__name__)


def decode_audio_base64(audio_b64: str) -> Optional[bytes]:
    """
    Decode base64-encoded audio to bytes.

    Args:
        audio_b64: Base64-encoded audio string

    Returns:
        Audio bytes or None on error
    """
    try:
        return base64.b64decode(audio_b64, validate=True)
    except (binascii.Error, ValueError) as e:
        logger.error(f"Failed to decode base64 audio: {e}")
        return None


def encode_audio_base64(audio_bytes: bytes) -> str:
    """
    Encode audio bytes to base64.

    Args:
        audio_bytes: Raw audio data

    Returns:
        Base64-encoded string
    """
    return base64.b64encode(audio_bytes).decode('utf-8')


class AudioBuffer:
    """
    Bounded buffer for the chunks of one recording.

    Chunks are container-encoded (webm/ogg), so the head must be kept intact:
    once the limit is reached further chunks are dropped instead of the
    oldest data. Default limit is ~2 minutes of browser Opus audio.
    """

    def __init__(self, max_bytes: int = 4 * 1024 * 1024):
        self.max_size = max_bytes
        self.buffer: bytearray = bytearray()
        self.total_bytes_received = 0
        self.truncated = False

    def add(self, audio_chunk: bytes):
        """
        Add audio chunk to buffer.

        Args:
            audio_chunk: Audio data to add
        """
        self.total_bytes_received += len(audio_chunk)

        if self.truncated or len(self.buffer) + len(audio_chunk) > self.max_size:
            if not self.truncated:
                logger.warning(f"Audio buffer full at {len(self.buffer)} bytes - dropping further chunks")
            self.truncated = True
            return

        self.buffer.extend(audio_chunk)

    def get_all(self) -> bytes:
        """
        Get all buffered audio.

        Returns:
            All audio data as bytes
        """
        return bytes(self.buffer)

    def clear(self):
        """Clear the buffer."""
        self.buffer.clear()
        self.total_bytes_received = 0
        self.truncated = False
        logger.debug("Audio buffer cleared")

    def size_bytes(self) -> int:
        """Get current buffer size in bytes."""
        return len(self.buffer)
