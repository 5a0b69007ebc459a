"""
FastAPI application entry point.
Sets up CORS, health check, and the assessment WebSocket endpoint.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from voice_assessment.config import settings
from voice_assessment.languages import LANGUAGES
from voice_assessment.llm.sentiment_client import SentimentClient
from voice_assessment.models import Message, TurnResponse
from voice_assessment.orchestration.turn_controller import TurnController
from voice_assessment.stt.groq import GroqTranscriber
from voice_assessment.tts.google_tts import GoogleTTSClient
from voice_assessment.websocket import ConnectionManager, WebSocketBridge

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "0.1.0"

connection_manager = ConnectionManager()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.
    Handles startup and shutdown events.
    """
    # Startup
    logger.info("Voice assessment backend starting...")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Host: {settings.host}:{settings.port}")
    logger.info(f"Frontend URL: {settings.frontend_url}")
    logger.info(f"Transcription model: {settings.transcription_model}")
    logger.info(f"Sentiment model: {settings.sentiment_model}")
    logger.info(
        f"VAD: threshold={settings.silence_threshold} "
        f"min_speech={settings.min_speech_duration_ms}ms "
        f"silence={settings.silence_duration_ms}ms "
        f"no_speech={settings.no_speech_timeout_ms}ms"
    )
    if not settings.groq_api_key:
        logger.warning("GROQ_API_KEY not set - transcription and sentiment will fail")
    if not settings.google_cloud_api_key:
        logger.warning("GOOGLE_CLOUD_API_KEY not set - agent speech will be skipped")

    yield

    # Shutdown
    logger.info("Voice assessment backend shutting down...")


# Create FastAPI application
app = FastAPI(
    title="Voice Assessment API",
    description="Hands-free spoken self-assessment with automatic turn-taking",
    version=VERSION,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url, "http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check() -> JSONResponse:
    """
    Health check endpoint.
    Returns 200 OK if server is running.
    """
    return JSONResponse(
        status_code=200,
        content={
            "status": "healthy",
            "environment": settings.environment,
            "version": VERSION,
            "languages": sorted(LANGUAGES),
            "active_sessions": connection_manager.get_session_count(),
        }
    )


def build_controller(session_id: str, bridge: WebSocketBridge, language: str) -> TurnController:
    """Wire a TurnController to the real services and to the socket."""

    async def on_state_change(from_state, to_state):
        await connection_manager.send_state_change(session_id, from_state.value, to_state.value)

    async def on_message(message: Message):
        await connection_manager.send_message(
            session_id,
            {"type": "transcript_message", "data": message.model_dump(mode="json")},
        )

    async def on_complete(responses: list[TurnResponse]):
        await connection_manager.send_message(
            session_id,
            {
                "type": "assessment_complete",
                "data": {"responses": [r.model_dump(mode="json") for r in responses]},
            },
        )

    async def on_error(code: str, message: str, recoverable: bool):
        await connection_manager.send_error(session_id, code, message, recoverable)

    return TurnController(
        session_id=session_id,
        language=language,
        capture=bridge,
        player=bridge,
        transcriber=GroqTranscriber(settings),
        analyzer=SentimentClient(settings),
        synthesizer=GoogleTTSClient(settings),
        on_complete=on_complete,
        on_state_change=on_state_change,
        on_message=on_message,
        on_error=on_error,
        settings=settings,
    )


def _log_task_result(task: asyncio.Task):
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.info(f"Assessment ended with {type(error).__name__}: {error}")


@app.websocket("/ws/assessment")
async def assessment_websocket(websocket: WebSocket, language: Optional[str] = None) -> None:
    """
    WebSocket endpoint for a hands-free assessment session.

    Message flow:
    1. Client connects -> send session_ready
    2. Client sends start -> agent greets and asks question 1 (agent_audio)
    3. Client plays audio -> sends playback_complete
    4. Server sends capture_start -> client opens mic, replies capture_started
    5. Client streams audio_chunk {audio, level} until capture_stop
    6. Loop until assessment_complete
    """
    session_id = None
    turn_controller = None

    try:
        session_id = await connection_manager.connect(websocket)
        logger.info(f"New assessment session: {session_id}")

        bridge = WebSocketBridge(session_id, connection_manager, settings)
        turn_controller = build_controller(session_id, bridge, language or settings.default_language)

        # Message handling loop
        while True:
            data = await websocket.receive_json()
            message_type = data.get("type", "unknown")
            message_data = data.get("data") or {}

            if message_type == "audio_chunk":
                bridge.handle_audio_chunk(message_data.get("audio", ""), message_data.get("level", 0.0))
                continue

            logger.debug(f"Session {session_id} received: {message_type}")

            if message_type == "ping":
                await websocket.send_json({"type": "pong", "data": {}})

            elif message_type == "start":
                if turn_controller.is_running:
                    await connection_manager.send_error(
                        session_id, "ALREADY_RUNNING", "Assessment already running", True
                    )
                else:
                    task = turn_controller.start_assessment()
                    task.add_done_callback(_log_task_result)

            elif message_type == "capture_started":
                bridge.handle_capture_started()

            elif message_type == "capture_error":
                bridge.handle_capture_error(message_data.get("message", ""))

            elif message_type == "playback_complete":
                bridge.handle_playback_complete()

            elif message_type == "playback_error":
                bridge.handle_playback_error(message_data.get("message", ""))

            elif message_type in ("stop", "disconnect"):
                logger.info(f"Session {session_id} requested {message_type}")
                await turn_controller.stop()
                if message_type == "disconnect":
                    break

            else:
                logger.warning(f"Session {session_id} sent unknown message type: {message_type}")

    except WebSocketDisconnect:
        logger.info(f"Session {session_id} disconnected")

    except Exception as e:
        logger.error(f"Session {session_id} error: {e}", exc_info=True)
        if session_id:
            await connection_manager.send_error(
                session_id,
                code="WS_INTERNAL_ERROR",
                message_text=f"Internal error: {str(e)}",
                recoverable=False
            )

    finally:
        if turn_controller:
            await turn_controller.stop()
        if session_id:
            await connection_manager.disconnect(session_id)
            logger.info(f"Session {session_id} cleaned up")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "voice_assessment.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
    )
