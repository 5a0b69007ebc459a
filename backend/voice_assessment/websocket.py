"""
WebSocket session plumbing.

ConnectionManager tracks open sockets and sends JSON messages.
WebSocketBridge turns the browser on the other end of a socket into the
AudioCapture and AudioPlayer the TurnController needs: the browser records
and streams chunks with their level while capture is open, and plays the
agent audio it is sent, reporting back when playback finished.
"""

import asyncio
import logging
import uuid
from typing import AsyncIterator, Optional, Union

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from voice_assessment.config import Settings, settings as default_settings
from voice_assessment.errors import CaptureError, PlaybackError
from voice_assessment.utils.audio import AudioBuffer, decode_audio_base64, encode_audio_base64

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Registry of active assessment sockets keyed by session id."""

    def __init__(self):
        self._connections: dict[str, WebSocket] = {}

    async def connect(self, websocket: WebSocket) -> str:
        await websocket.accept()
        session_id = uuid.uuid4().hex[:12]
        self._connections[session_id] = websocket
        await self.send_message(session_id, {"type": "session_ready", "data": {"session_id": session_id}})
        return session_id

    async def disconnect(self, session_id: str):
        websocket = self._connections.pop(session_id, None)
        if websocket and websocket.client_state == WebSocketState.CONNECTED:
            try:
                await websocket.close()
            except RuntimeError as e:
                logger.debug(f"Session {session_id} already closed: {e}")

    async def send_message(self, session_id: str, message: dict) -> bool:
        websocket = self._connections.get(session_id)
        if websocket is None:
            logger.debug(f"Session {session_id} gone - dropping {message.get('type')}")
            return False
        try:
            await websocket.send_json(message)
            return True
        except (RuntimeError, ConnectionError) as e:
            logger.warning(f"Failed to send {message.get('type')} to {session_id}: {e}")
            return False

    async def send_state_change(self, session_id: str, from_state: str, to_state: str):
        await self.send_message(
            session_id,
            {"type": "state_change", "data": {"from": from_state, "to": to_state}},
        )

    async def send_error(self, session_id: str, code: str, message_text: str, recoverable: bool):
        await self.send_message(
            session_id,
            {"type": "error", "data": {"code": code, "message": message_text, "recoverable": recoverable}},
        )

    def get_session_count(self) -> int:
        return len(self._connections)


_CLOSED = object()


class WebSocketCaptureHandle:
    """One open recording on the client."""

    def __init__(self, bridge: "WebSocketBridge"):
        self._bridge = bridge
        self._levels: asyncio.Queue[Union[float, CaptureError, object]] = asyncio.Queue()
        self.buffer = AudioBuffer()
        self.closed = False

    def feed(self, audio: Optional[bytes], level: float):
        if self.closed:
            return
        if audio:
            self.buffer.add(audio)
        self._levels.put_nowait(level)

    def fail(self, error: CaptureError):
        if not self.closed:
            self._levels.put_nowait(error)

    async def level_stream(self) -> AsyncIterator[float]:
        while True:
            item = await self._levels.get()
            if item is _CLOSED:
                return
            if isinstance(item, CaptureError):
                raise item
            yield item

    async def stop(self) -> bytes:
        if self.closed:
            return self.buffer.get_all()
        self.closed = True
        self._levels.put_nowait(_CLOSED)
        await self._bridge.capture_stopped(self)
        audio = self.buffer.get_all()
        logger.debug(f"Capture closed with {len(audio)} bytes")
        return audio


class WebSocketBridge:
    """AudioCapture + AudioPlayer backed by the browser on one socket."""

    def __init__(
        self,
        session_id: str,
        manager: ConnectionManager,
        settings: Optional[Settings] = None,
    ):
        self.session_id = session_id
        self.manager = manager
        self.settings = settings or default_settings

        self._handle: Optional[WebSocketCaptureHandle] = None
        self._capture_ack: Optional[asyncio.Future] = None
        self._playback_done: Optional[asyncio.Future] = None

    # AudioCapture

    async def start(self) -> WebSocketCaptureHandle:
        if self._handle is not None:
            raise CaptureError("Capture already open")

        self._capture_ack = asyncio.get_running_loop().create_future()
        try:
            sent = await self.manager.send_message(self.session_id, {"type": "capture_start", "data": {}})
            if not sent:
                raise CaptureError("Client disconnected")
            await asyncio.wait_for(self._capture_ack, timeout=self.settings.capture_start_timeout_s)
        except asyncio.TimeoutError as e:
            raise CaptureError("Client did not confirm microphone access") from e
        finally:
            self._capture_ack = None

        self._handle = WebSocketCaptureHandle(self)
        return self._handle

    async def capture_stopped(self, handle: WebSocketCaptureHandle):
        if self._handle is handle:
            self._handle = None
        await self.manager.send_message(self.session_id, {"type": "capture_stop", "data": {}})

    # AudioPlayer

    async def play(self, audio: bytes) -> None:
        self._playback_done = asyncio.get_running_loop().create_future()
        try:
            sent = await self.manager.send_message(
                self.session_id,
                {"type": "agent_audio", "data": {"audio": encode_audio_base64(audio), "format": "mp3"}},
            )
            if not sent:
                raise PlaybackError("Client disconnected")
            await asyncio.wait_for(self._playback_done, timeout=self.settings.playback_timeout_s)
        except asyncio.TimeoutError:
            logger.warning(f"Playback timeout after {self.settings.playback_timeout_s}s - continuing")
        finally:
            self._playback_done = None

    # Client messages

    def handle_capture_started(self):
        if self._capture_ack and not self._capture_ack.done():
            self._capture_ack.set_result(None)

    def handle_capture_error(self, message: str):
        error = CaptureError(message or "Microphone unavailable")
        if self._capture_ack and not self._capture_ack.done():
            self._capture_ack.set_exception(error)
        elif self._handle is not None:
            self._handle.fail(error)
        else:
            logger.debug(f"Capture error with no open capture: {message}")

    def handle_audio_chunk(self, audio_b64: str, level: float):
        if self._handle is None:
            return
        audio = decode_audio_base64(audio_b64) if audio_b64 else None
        try:
            level = float(level)
        except (TypeError, ValueError):
            level = 0.0
        self._handle.feed(audio, level)

    def handle_playback_complete(self):
        if self._playback_done and not self._playback_done.done():
            self._playback_done.set_result(None)
        else:
            logger.debug("Received playback_complete but not waiting for playback - ignoring")

    def handle_playback_error(self, message: str):
        if self._playback_done and not self._playback_done.done():
            self._playback_done.set_exception(PlaybackError(message or "Playback failed"))
