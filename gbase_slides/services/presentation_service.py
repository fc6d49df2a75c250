"""
Presentation pipeline: analysis followed by sequential image generation.

Analysis runs once per batch, through its own RetryPolicy. If it still fails
the whole request is aborted with AnalysisFailedError before any image call
is made. Image failures after that point stay per-job.
"""

from typing import Awaitable, Callable, Optional, Union

from config.settings import Settings, get_settings
from gbase_slides.clients.base import AnalysisService
from gbase_slides.core.cooldown_gate import CancellationToken, CooldownGate
from gbase_slides.core.errors import AnalysisFailedError, BatchCancelledError, GenerationError
from gbase_slides.core.observers import (
    BatchCompleteCallback,
    JobUpdateCallback,
    ProgressCallback,
    emit,
)
from gbase_slides.core.orchestrator import GenerationOrchestrator
from gbase_slides.models.batch import BatchContext, BatchSummary, ImageData
from gbase_slides.models.slides import AnalysisOptions, PresentationAnalysis
from gbase_slides.utils.logger import setup_logger
from gbase_slides.utils.retry import RetryPolicy

logger = setup_logger(__name__)

AnalysisCallback = Callable[[PresentationAnalysis, BatchContext], Union[None, Awaitable[None]]]


class PresentationService:
    """
    Runs analysis and generation for one request.

    Usage:
        service = PresentationService(analysis_service, orchestrator)
        analysis = await service.analyze(text, options)
        batch = service.build_batch(analysis, user_template)
        summary = await orchestrator.run(batch, ...)

    or in one step with ``create_presentation``.
    """

    def __init__(
        self,
        analysis_service: AnalysisService,
        orchestrator: GenerationOrchestrator,
        settings: Optional[Settings] = None,
        analysis_retry_policy: Optional[RetryPolicy] = None
    ):
        self.settings = settings or get_settings()
        self.analysis_service = analysis_service
        self.orchestrator = orchestrator
        self.analysis_retry_policy = analysis_retry_policy or RetryPolicy(
            max_retries=self.settings.ANALYSIS_MAX_RETRIES,
            initial_delay=self.settings.ANALYSIS_RETRY_INITIAL_DELAY,
            max_jitter=self.settings.RETRY_MAX_JITTER,
            operation_name="Text analysis"
        )

    async def analyze(
        self,
        text: str,
        options: AnalysisOptions,
        cancel_token: Optional[CancellationToken] = None
    ) -> PresentationAnalysis:
        """
        Analyse ``text`` into slide descriptors.

        Raises:
            AnalysisFailedError: If the text is empty, analysis fails or yields no slides
            BatchCancelledError: If cancelled between analysis attempts
        """
        if not text or not text.strip():
            raise AnalysisFailedError("Input text is empty")

        try:
            analysis = await self.analysis_retry_policy.execute(
                lambda: self.analysis_service.analyze(text, options),
                cancel_token=cancel_token
            )
        except GenerationError as e:
            logger.error(f"Analysis failed ({e.error_note}): {e.message}")
            raise AnalysisFailedError(f"Analysis failed: {e.message}") from e

        if not analysis.slides:
            raise AnalysisFailedError("Analysis returned no slides")
        return analysis

    def build_batch(
        self,
        analysis: PresentationAnalysis,
        user_template: Optional[ImageData] = None
    ) -> BatchContext:
        return BatchContext.from_analysis(
            analysis,
            user_template=user_template,
            min_interval_seconds=self.settings.MIN_CALL_INTERVAL_SECONDS
        )

    async def create_presentation(
        self,
        text: str,
        options: AnalysisOptions,
        user_template: Optional[ImageData] = None,
        on_analysis: Optional[AnalysisCallback] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_job_update: Optional[JobUpdateCallback] = None,
        on_batch_complete: Optional[BatchCompleteCallback] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> BatchSummary:
        """
        Analyse then generate every slide image.

        Raises:
            AnalysisFailedError: If analysis fails; no image call is made
            BatchCancelledError: If cancelled before generation started
        """
        analysis = await self.analyze(text, options, cancel_token=cancel_token)
        batch = self.build_batch(analysis, user_template)
        await emit(on_analysis, analysis, batch)

        if cancel_token is not None and cancel_token.cancelled:
            raise BatchCancelledError("Cancelled after analysis")

        return await self.orchestrator.run(
            batch,
            on_progress=on_progress,
            on_job_update=on_job_update,
            on_batch_complete=on_batch_complete,
            cancel_token=cancel_token
        )


def build_image_retry_policy(settings: Settings, clock=None) -> RetryPolicy:
    return RetryPolicy(
        max_retries=settings.IMAGE_MAX_TRANSIENT_RETRIES,
        initial_delay=settings.IMAGE_RETRY_INITIAL_DELAY,
        max_jitter=settings.RETRY_MAX_JITTER,
        operation_name="Slide image generation",
        sleep=clock.sleep if clock is not None else None,
        tick_seconds=settings.COOLDOWN_TICK_SECONDS
    )


def build_orchestrator(settings: Settings, generator, clock=None) -> GenerationOrchestrator:
    """Orchestrator configured from settings; ``clock`` drives cooldown and backoff waits."""
    gate = CooldownGate(clock=clock, tick_seconds=settings.COOLDOWN_TICK_SECONDS)
    return GenerationOrchestrator(
        generator,
        retry_policy=build_image_retry_policy(settings, clock),
        cooldown_gate=gate,
        per_job_estimate_seconds=settings.PER_JOB_ESTIMATE_SECONDS,
        clock=gate.clock
    )
