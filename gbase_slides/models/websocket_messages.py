"""
WebSocket message protocol models.

Each server message type maps to one observer event of the generation
pipeline: state changes, the analysis result, queue progress, per-job
updates, batch completion, style suggestions and errors.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Literal, Optional, Union
from pydantic import BaseModel, Field, field_serializer

from gbase_slides.models.batch import BatchSummary, JobStatus, QueueStatus, ReferenceSource, SlideJob
from gbase_slides.models.session import AppState
from gbase_slides.models.slides import PresentationAnalysis, SlideDescriptor, StyleSuggestion


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def format_timestamp(dt: datetime) -> str:
    """
    Format datetime to ISO 8601 with 'Z' suffix for UTC.

    Frontend JavaScript requires 'Z' suffix to correctly parse as UTC.
    """
    if dt.tzinfo is None:
        return dt.isoformat() + 'Z'
    return dt.astimezone(timezone.utc).isoformat().replace('+00:00', 'Z')


def new_message_id() -> str:
    return f"msg_{uuid.uuid4().hex[:8]}"


class MessageType(str, Enum):
    """All server -> client message types"""
    STATUS_UPDATE = "status_update"
    ANALYSIS_RESULT = "analysis_result"
    QUEUE_STATUS = "queue_status"
    JOB_UPDATE = "job_update"
    BATCH_COMPLETE = "batch_complete"
    STYLE_SUGGESTIONS = "style_suggestions"
    ERROR = "error"


class StatusPayload(BaseModel):
    state: AppState
    text: str = ""


class AnalysisPayload(BaseModel):
    batch_id: str
    detected_language: str
    global_style_definition: str
    visual_coherence: str = ""
    slides: List[SlideDescriptor]


class QueuePayload(BaseModel):
    """None fields mean the queue is idle (progress cleared)."""
    active: bool
    current_index: Optional[int] = None
    current_number: Optional[int] = None
    total: Optional[int] = None
    cooldown_remaining: Optional[int] = None
    eta_seconds: Optional[int] = None


class JobPayload(BaseModel):
    job_id: str
    status: JobStatus
    image_url: Optional[str] = Field(None, description="data: URL of the generated image")
    error_note: Optional[str] = None
    attempts: int = 0
    reference_source: Optional[ReferenceSource] = None


class StyleSuggestionsPayload(BaseModel):
    suggestions: List[StyleSuggestion]


class ErrorPayload(BaseModel):
    text: str
    code: str = Field("error", description="Machine-readable error code")


class BaseMessage(BaseModel):
    """Base message envelope for all message types"""
    message_id: str = Field(default_factory=new_message_id)
    session_id: str
    timestamp: datetime = Field(default_factory=utc_now)
    type: MessageType

    @field_serializer("timestamp")
    def _serialize_timestamp(self, value: datetime) -> str:
        return format_timestamp(value)


class StatusUpdate(BaseMessage):
    type: Literal[MessageType.STATUS_UPDATE] = MessageType.STATUS_UPDATE
    payload: StatusPayload


class AnalysisResult(BaseMessage):
    type: Literal[MessageType.ANALYSIS_RESULT] = MessageType.ANALYSIS_RESULT
    payload: AnalysisPayload


class QueueStatusMessage(BaseMessage):
    type: Literal[MessageType.QUEUE_STATUS] = MessageType.QUEUE_STATUS
    payload: QueuePayload


class JobUpdate(BaseMessage):
    type: Literal[MessageType.JOB_UPDATE] = MessageType.JOB_UPDATE
    payload: JobPayload


class BatchComplete(BaseMessage):
    type: Literal[MessageType.BATCH_COMPLETE] = MessageType.BATCH_COMPLETE
    payload: BatchSummary


class StyleSuggestionsMessage(BaseMessage):
    type: Literal[MessageType.STYLE_SUGGESTIONS] = MessageType.STYLE_SUGGESTIONS
    payload: StyleSuggestionsPayload


class ErrorMessage(BaseMessage):
    type: Literal[MessageType.ERROR] = MessageType.ERROR
    payload: ErrorPayload


ServerMessage = Union[
    StatusUpdate, AnalysisResult, QueueStatusMessage, JobUpdate,
    BatchComplete, StyleSuggestionsMessage, ErrorMessage
]


def create_status_update(session_id: str, state: AppState, text: str = "") -> StatusUpdate:
    return StatusUpdate(session_id=session_id, payload=StatusPayload(state=state, text=text))


def create_analysis_result(session_id: str, batch_id: str, analysis: PresentationAnalysis) -> AnalysisResult:
    return AnalysisResult(
        session_id=session_id,
        payload=AnalysisPayload(
            batch_id=batch_id,
            detected_language=analysis.detected_language,
            global_style_definition=analysis.global_style_definition,
            visual_coherence=analysis.visual_coherence,
            slides=analysis.slides
        )
    )


def create_queue_status(session_id: str, status: Optional[QueueStatus]) -> QueueStatusMessage:
    """Queue progress message; ``None`` clears the progress display."""
    if status is None:
        payload = QueuePayload(active=False)
    else:
        payload = QueuePayload(
            active=True,
            current_index=status.current_index,
            current_number=status.current_index + 1,
            total=status.total,
            cooldown_remaining=int(round(status.cooldown_remaining)),
            eta_seconds=int(round(status.eta_seconds))
        )
    return QueueStatusMessage(session_id=session_id, payload=payload)


def create_job_update(session_id: str, job: SlideJob) -> JobUpdate:
    return JobUpdate(
        session_id=session_id,
        payload=JobPayload(
            job_id=job.id,
            status=job.status,
            image_url=job.image.to_data_url() if job.image is not None else None,
            error_note=job.error_note,
            attempts=job.attempts,
            reference_source=job.reference_source
        )
    )


def create_batch_complete(session_id: str, summary: BatchSummary) -> BatchComplete:
    return BatchComplete(session_id=session_id, payload=summary)


def create_style_suggestions(session_id: str, suggestions: List[StyleSuggestion]) -> StyleSuggestionsMessage:
    return StyleSuggestionsMessage(
        session_id=session_id,
        payload=StyleSuggestionsPayload(suggestions=suggestions)
    )


def create_error(session_id: str, text: str, code: str = "error") -> ErrorMessage:
    return ErrorMessage(session_id=session_id, payload=ErrorPayload(text=text, code=code))
