"""
WebSocket Handler for GBase Slides.

One connection drives one PresentationSession: configure the API key,
optionally upload a reference template, then request generation. Generation
runs as a background task so ``reset`` can cancel it mid-batch.

Client messages:
    {"type": "ping"}
    {"type": "configure", "payload": {"api_key": "...", "system_prompt": "..."}}
    {"type": "analyze_reference", "payload": {"image": "data:image/png;base64,..."}}
    {"type": "generate", "payload": {"text": "...", "richness": "auto", "slide_count": "auto"}}
    {"type": "reset"}
"""

import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from fastapi import WebSocket
from pydantic import ValidationError
from starlette.websockets import WebSocketState

from config.settings import Settings, get_settings
from gbase_slides.clients.analysis_client import GeminiAnalysisService
from gbase_slides.clients.base import AnalysisService, ImageGenerator
from gbase_slides.clients.image_generator import GeminiImageGenerator
from gbase_slides.core.cooldown_gate import CancellationToken, Clock
from gbase_slides.core.errors import AnalysisFailedError, BatchCancelledError, GenerationError
from gbase_slides.models.batch import BatchSummary, ImageData, QueueStatus, SlideJob
from gbase_slides.models.session import AppState, PresentationSession
from gbase_slides.models.slides import AnalysisOptions
from gbase_slides.models.websocket_messages import (
    BaseMessage,
    create_analysis_result,
    create_batch_complete,
    create_error,
    create_job_update,
    create_queue_status,
    create_status_update,
    create_style_suggestions,
)
from gbase_slides.services.presentation_service import PresentationService, build_orchestrator
from gbase_slides.utils.logger import setup_logger
from gbase_slides.utils.retry import RetryPolicy

logger = setup_logger(__name__)

ANALYSIS_ERROR_TEXT = "We encountered an issue analyzing your text. Please check your API Key and try again."
STYLE_ERROR_TEXT = "Failed to analyze visual style. Please try another image."
MISSING_KEY_TEXT = "Please configure your Gemini API Key in settings."


class WebSocketHandler:
    """
    WebSocket handler owning sessions, their cancellation tokens and
    background generation tasks.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        analysis_factory: Optional[Callable[[Optional[str]], AnalysisService]] = None,
        generator_factory: Optional[Callable[[Optional[str]], ImageGenerator]] = None,
        clock: Optional[Clock] = None
    ):
        logger.info("Initializing WebSocketHandler...")
        self.settings = settings or get_settings()
        self.clock = clock
        self._analysis_factory = analysis_factory or (lambda api_key: GeminiAnalysisService(api_key=api_key))
        self._generator_factory = generator_factory or (lambda api_key: GeminiImageGenerator(api_key=api_key))

        self.active_connections: Dict[str, WebSocket] = {}
        self.connection_lock = asyncio.Lock()
        self._tokens: Dict[str, CancellationToken] = {}
        self._tasks: Dict[str, asyncio.Task] = {}

    async def handle_connection(self, websocket: WebSocket, session_id: str):
        """
        Handle a WebSocket connection.

        Args:
            websocket: FastAPI WebSocket
            session_id: Session identifier
        """
        async with self.connection_lock:
            existing = self.active_connections.get(session_id)
            if existing and existing.client_state == WebSocketState.CONNECTED:
                logger.warning(f"Duplicate connection for session {session_id}, closing old")
                try:
                    await existing.close(code=4000, reason="New connection opened")
                except Exception as e:
                    logger.warning(f"Error closing old connection: {e}")
            self.active_connections[session_id] = websocket

        await websocket.accept()
        logger.info(f"Connected: session={session_id}")

        session = PresentationSession(id=session_id)
        await self._send(websocket, create_status_update(session.id, session.state))

        try:
            while True:
                raw_data = await websocket.receive_text()

                if raw_data.strip() == "ping":
                    await websocket.send_text("pong")
                    continue

                try:
                    data = json.loads(raw_data)
                except json.JSONDecodeError:
                    await self._send(websocket, create_error(session.id, "Message is not valid JSON", "invalid_message"))
                    continue

                if not isinstance(data, dict):
                    await self._send(websocket, create_error(session.id, "Message must be a JSON object", "invalid_message"))
                    continue

                if data.get('type') == 'ping':
                    await websocket.send_json({'type': 'pong', 'timestamp': datetime.now(timezone.utc).isoformat()})
                    continue

                await self._process_message(websocket, session, data)

        except Exception as e:
            logger.info(f"WebSocket closed for session {session_id}: {e!r}")

        finally:
            await self._cancel_generation(session.id, "disconnected")
            async with self.connection_lock:
                if self.active_connections.get(session_id) == websocket:
                    del self.active_connections[session_id]
            logger.info(f"WebSocket disconnected: session={session_id}")

    async def _process_message(self, websocket: WebSocket, session: PresentationSession, data: Dict[str, Any]):
        message_type = data.get('type')
        payload = data.get('payload') or {}

        if message_type == 'configure':
            await self._handle_configure(websocket, session, payload)
        elif message_type == 'analyze_reference':
            await self._handle_analyze_reference(websocket, session, payload)
        elif message_type == 'generate':
            await self._handle_generate(websocket, session, payload)
        elif message_type == 'reset':
            await self._handle_reset(websocket, session)
        else:
            logger.warning(f"Unknown message type: {message_type}")
            await self._send(websocket, create_error(session.id, f"Unknown message type: {message_type}", "unknown_type"))

    async def _handle_configure(self, websocket: WebSocket, session: PresentationSession, payload: Dict[str, Any]):
        if 'api_key' in payload:
            session.api_key = (payload.get('api_key') or '').strip() or None
        if 'system_prompt' in payload:
            session.system_prompt = payload.get('system_prompt') or None
        logger.info(f"Session {session.id} configured (api_key={'set' if session.api_key else 'unset'})")
        await self._send(websocket, create_status_update(session.id, session.state, "Settings saved"))

    def _has_api_key(self, session: PresentationSession) -> bool:
        return bool(session.api_key or self.settings.GEMINI_API_KEY)

    async def _handle_analyze_reference(self, websocket: WebSocket, session: PresentationSession, payload: Dict[str, Any]):
        if not self._has_api_key(session):
            await self._send(websocket, create_error(session.id, MISSING_KEY_TEXT, "missing_api_key"))
            return
        if session.is_busy:
            await self._send(websocket, create_error(session.id, "A request is already in progress", "busy"))
            return

        try:
            image = ImageData.from_data_url(payload.get('image') or '')
        except ValueError as e:
            await self._send(websocket, create_error(session.id, str(e), "invalid_image"))
            return

        # Kept for image-to-image generation even if style analysis fails
        session.reference_template = image
        await self._set_state(websocket, session, AppState.ANALYZING_STYLE, "Analyzing reference style...")

        analysis_service = self._analysis_factory(session.api_key)
        policy = RetryPolicy(
            max_retries=self.settings.ANALYSIS_MAX_RETRIES,
            initial_delay=self.settings.ANALYSIS_RETRY_INITIAL_DELAY,
            max_jitter=self.settings.RETRY_MAX_JITTER,
            operation_name="Reference style analysis"
        )
        try:
            suggestions = await policy.execute(lambda: analysis_service.analyze_reference_style(image))
        except GenerationError as e:
            logger.error(f"Style analysis failed for session {session.id}: {e.error_note}")
            await self._set_state(websocket, session, AppState.IDLE)
            await self._send(websocket, create_error(session.id, STYLE_ERROR_TEXT, e.error_note))
            return

        session.style_suggestions = suggestions
        await self._send(websocket, create_style_suggestions(session.id, suggestions))
        await self._set_state(websocket, session, AppState.IDLE)

    async def _handle_generate(self, websocket: WebSocket, session: PresentationSession, payload: Dict[str, Any]):
        if not self._has_api_key(session):
            await self._send(websocket, create_error(session.id, MISSING_KEY_TEXT, "missing_api_key"))
            return
        if session.is_busy:
            await self._send(websocket, create_error(session.id, "A request is already in progress", "busy"))
            return

        text = payload.get('text') or ''
        try:
            options = AnalysisOptions(
                richness=payload.get('richness', 'auto'),
                slide_count=payload.get('slide_count', 'auto'),
                system_prompt=session.system_prompt,
                reference_style=payload.get('reference_style'),
                visual_style=payload.get('visual_style')
            )
        except ValidationError as e:
            await self._send(websocket, create_error(session.id, f"Invalid generation options: {e}", "invalid_options"))
            return

        token = CancellationToken()
        self._tokens[session.id] = token
        # Set before the task starts so a second 'generate' is rejected as busy
        session.set_state(AppState.ANALYZING_TEXT)
        task = asyncio.create_task(self._run_generation(websocket, session, text, options, token))
        self._tasks[session.id] = task
        task.add_done_callback(lambda _t, sid=session.id: self._forget_task(sid, _t))

    def _forget_task(self, session_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(session_id) is task:
            del self._tasks[session_id]

    async def _run_generation(
        self,
        websocket: WebSocket,
        session: PresentationSession,
        text: str,
        options: AnalysisOptions,
        token: CancellationToken
    ):
        """Analysis, then sequential image generation, streaming every update."""
        orchestrator = build_orchestrator(
            self.settings, self._generator_factory(session.api_key), clock=self.clock
        )
        service = PresentationService(
            self._analysis_factory(session.api_key), orchestrator, settings=self.settings
        )

        try:
            await self._set_state(websocket, session, AppState.ANALYZING_TEXT, "Analyzing narrative...")
            try:
                analysis = await service.analyze(text, options, cancel_token=token)
            except AnalysisFailedError as e:
                logger.error(f"Analysis aborted batch for session {session.id}: {e}")
                await self._set_state(websocket, session, AppState.ERROR, ANALYSIS_ERROR_TEXT)
                await self._send(websocket, create_error(session.id, ANALYSIS_ERROR_TEXT, "analysis_failed"))
                return

            if token.cancelled:
                return

            batch = service.build_batch(analysis, session.reference_template)
            session.analysis = analysis
            session.batch = batch
            await self._send(websocket, create_analysis_result(session.id, batch.batch_id, analysis))
            await self._set_state(websocket, session, AppState.GENERATING_IMAGES, "Generating visuals...")

            async def on_progress(status: Optional[QueueStatus]):
                await self._send(websocket, create_queue_status(session.id, status))

            async def on_job_update(job: SlideJob):
                await self._send(websocket, create_job_update(session.id, job))

            async def on_batch_complete(summary: BatchSummary):
                await self._send(websocket, create_batch_complete(session.id, summary))

            summary = await orchestrator.run(
                batch,
                on_progress=on_progress,
                on_job_update=on_job_update,
                on_batch_complete=on_batch_complete,
                cancel_token=token
            )
            session.last_summary = summary
            if not summary.cancelled:
                await self._set_state(websocket, session, AppState.COMPLETE, "Ready")

        except BatchCancelledError:
            logger.info(f"Generation cancelled for session {session.id}")
        except Exception as e:
            logger.error(f"Generation task failed for session {session.id}: {e}", exc_info=True)
            session.set_state(AppState.ERROR, str(e))
            if websocket.client_state == WebSocketState.CONNECTED:
                await self._send(websocket, create_error(session.id, "Generation failed unexpectedly", "internal_error"))
        finally:
            if self._tokens.get(session.id) is token:
                del self._tokens[session.id]

    async def _handle_reset(self, websocket: WebSocket, session: PresentationSession):
        if session.state == AppState.ANALYZING_TEXT:
            await self._send(websocket, create_error(session.id, "Cannot reset while analyzing text", "reset_unavailable"))
            return

        await self._cancel_generation(session.id, "reset")
        session.reset()
        await self._send(websocket, create_status_update(session.id, session.state, "Reset"))

    async def _cancel_generation(self, session_id: str, reason: str):
        """Cancel the session's batch and wait for its task to wind down."""
        token = self._tokens.get(session_id)
        if token is not None:
            token.cancel(reason)

        task = self._tasks.get(session_id)
        if task is None or task.done() or task is asyncio.current_task():
            return
        try:
            # The gate notices the token within one tick; an in-flight request
            # is allowed to finish
            await asyncio.wait_for(asyncio.shield(task), timeout=self.settings.GEMINI_TIMEOUT_SECONDS)
        except asyncio.TimeoutError:
            logger.warning(f"Generation task for session {session_id} did not stop in time, cancelling")
            task.cancel()
        except Exception as e:
            logger.warning(f"Generation task for session {session_id} ended with error: {e!r}")

    async def _set_state(self, websocket: WebSocket, session: PresentationSession, state: AppState, text: str = ""):
        session.set_state(state, text if state == AppState.ERROR else None)
        await self._send(websocket, create_status_update(session.id, state, text))

    async def _send(self, websocket: WebSocket, message: BaseMessage):
        await websocket.send_json(message.model_dump(mode='json'))
