"""
Batch models for sequential slide image generation.

A batch is the ordered set of SlideJobs produced from one analysis. Job
statuses are mutated by the GenerationOrchestrator only; everything else in
a BatchContext is fixed once the batch starts.
"""

import base64
import re
import uuid
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from gbase_slides.models.slides import PresentationAnalysis, SlideDescriptor

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[^;,]+);base64,(?P<data>.+)$", re.DOTALL)


class JobStatus(str, Enum):
    """Lifecycle of one slide job."""
    PENDING = "pending"
    WAITING = "waiting"
    REQUESTING = "requesting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ReferenceSource(str, Enum):
    """Which image, if any, anchors the style of a job."""
    USER_TEMPLATE = "user_template"
    FIRST_SLIDE = "first_slide"
    NONE = "none"


class ImageData(BaseModel):
    """Raw image bytes plus MIME type."""

    model_config = ConfigDict(frozen=True, ser_json_bytes="base64")

    data: bytes
    mime_type: str = "image/png"

    @classmethod
    def from_data_url(cls, data_url: str) -> "ImageData":
        """
        Parse a base64 ``data:`` URL.

        Raises:
            ValueError: If the string is not a base64 data URL
        """
        match = _DATA_URL_RE.match(data_url.strip())
        if not match:
            raise ValueError("Expected a base64 data URL (data:<mime>;base64,<data>)")
        return cls(data=base64.b64decode(match.group("data")), mime_type=match.group("mime"))

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{base64.b64encode(self.data).decode('ascii')}"


class SlideJob(BaseModel):
    """One slide's image generation unit."""
    id: str
    prompt: str
    title: Optional[str] = None
    status: JobStatus = JobStatus.PENDING
    image: Optional[ImageData] = None
    error_note: Optional[str] = Field(None, description="Machine-readable failure marker")
    attempts: int = Field(0, description="External calls made for this job")
    reference_source: Optional[ReferenceSource] = None

    @classmethod
    def from_descriptor(cls, descriptor: SlideDescriptor) -> "SlideJob":
        return cls(
            id=str(descriptor.id),
            prompt=descriptor.visual_prompt,
            title=descriptor.title
        )

    @property
    def is_resolved(self) -> bool:
        return self.status in (JobStatus.SUCCEEDED, JobStatus.FAILED)


class BatchContext(BaseModel):
    """
    Configuration of one batch.

    Frozen: the job list, style, language hint and template cannot be swapped
    after creation. The SlideJob objects inside stay mutable so the
    orchestrator can record their status.
    """

    model_config = ConfigDict(frozen=True)

    batch_id: str = Field(default_factory=lambda: f"batch_{uuid.uuid4().hex[:8]}")
    jobs: List[SlideJob]
    global_style: str = ""
    language_hint: Optional[str] = None
    user_template: Optional[ImageData] = None
    min_interval_seconds: float = Field(65.0, ge=0.0)

    @classmethod
    def from_analysis(
        cls,
        analysis: PresentationAnalysis,
        user_template: Optional[ImageData] = None,
        min_interval_seconds: float = 65.0
    ) -> "BatchContext":
        """Build a batch with one pending job per analysed slide."""
        return cls(
            jobs=[SlideJob.from_descriptor(slide) for slide in analysis.slides],
            global_style=analysis.global_style_definition,
            language_hint=analysis.detected_language or None,
            user_template=user_template,
            min_interval_seconds=min_interval_seconds
        )


class QueueStatus(BaseModel):
    """Live queue position, recomputed on every tick and transition."""
    current_index: int
    total: int
    cooldown_remaining: float = 0.0
    eta_seconds: float = 0.0


class JobOutcome(BaseModel):
    """Final state of one job in a BatchSummary."""
    job_id: str
    status: JobStatus
    error_note: Optional[str] = None
    attempts: int = 0
    has_image: bool = False
    reference_source: Optional[ReferenceSource] = None


class BatchSummary(BaseModel):
    """Per-job outcomes of a finished (or cancelled) batch."""
    batch_id: str
    outcomes: List[JobOutcome]
    success_count: int
    failure_count: int
    not_attempted_count: int
    cancelled: bool = False
    elapsed_seconds: float = 0.0

    @classmethod
    def from_jobs(
        cls,
        batch_id: str,
        jobs: List[SlideJob],
        cancelled: bool = False,
        elapsed_seconds: float = 0.0
    ) -> "BatchSummary":
        outcomes = [
            JobOutcome(
                job_id=job.id,
                status=job.status,
                error_note=job.error_note,
                attempts=job.attempts,
                has_image=job.image is not None,
                reference_source=job.reference_source
            )
            for job in jobs
        ]
        success_count = sum(1 for o in outcomes if o.status == JobStatus.SUCCEEDED)
        failure_count = sum(1 for o in outcomes if o.status == JobStatus.FAILED)
        return cls(
            batch_id=batch_id,
            outcomes=outcomes,
            success_count=success_count,
            failure_count=failure_count,
            not_attempted_count=len(outcomes) - success_count - failure_count,
            cancelled=cancelled,
            elapsed_seconds=elapsed_seconds
        )
