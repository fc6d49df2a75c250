"""
Sequential rate-limited generation orchestrator.

Drives the jobs of one batch through the cooldown gate, the reference
resolver, the external image generator and the retry policy, one job at a
time. A failed job is recorded and skipped; it never aborts the batch.

Ordering guarantee: call i+1 starts only after call i has finished and a
full ``min_interval_seconds`` cooldown has elapsed, so no two calls are ever
in flight and consecutive call starts are at least one interval apart.
"""

from typing import Optional

from gbase_slides.clients.base import ImageGenerator
from gbase_slides.core.cooldown_gate import CancellationToken, Clock, CooldownGate
from gbase_slides.core.errors import BatchCancelledError, GenerationError
from gbase_slides.core.observers import (
    BatchCompleteCallback,
    JobUpdateCallback,
    ProgressCallback,
    emit,
)
from gbase_slides.core.progress_reporter import ProgressReporter
from gbase_slides.core.reference_resolver import ReferenceResolver
from gbase_slides.models.batch import BatchContext, BatchSummary, ImageData, JobStatus, QueueStatus, SlideJob
from gbase_slides.utils.logger import setup_logger
from gbase_slides.utils.retry import RetryPolicy

logger = setup_logger(__name__)


class GenerationOrchestrator:
    """
    Runs batches of slide jobs against an ImageGenerator.

    Usage:
        orchestrator = GenerationOrchestrator(GeminiImageGenerator(api_key=key))
        summary = await orchestrator.run(
            batch,
            on_progress=lambda status: ...,
            on_job_update=lambda job: ...,
            cancel_token=token
        )
    """

    def __init__(
        self,
        generator: ImageGenerator,
        retry_policy: Optional[RetryPolicy] = None,
        cooldown_gate: Optional[CooldownGate] = None,
        reference_resolver: Optional[ReferenceResolver] = None,
        per_job_estimate_seconds: float = 30.0,
        clock: Optional[Clock] = None
    ):
        self.generator = generator
        self.clock = clock or (cooldown_gate.clock if cooldown_gate else Clock())
        self.cooldown_gate = cooldown_gate or CooldownGate(clock=self.clock)
        self.retry_policy = retry_policy or RetryPolicy(operation_name="Slide image generation")
        self.reference_resolver = reference_resolver or ReferenceResolver()
        self.per_job_estimate_seconds = per_job_estimate_seconds

    async def run(
        self,
        batch: BatchContext,
        on_progress: Optional[ProgressCallback] = None,
        on_job_update: Optional[JobUpdateCallback] = None,
        on_batch_complete: Optional[BatchCompleteCallback] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> BatchSummary:
        """
        Process every job of ``batch`` in order.

        ``on_progress`` receives a fresh QueueStatus on every cooldown tick and
        after every job transition, then ``None`` once the batch is over.

        Returns:
            BatchSummary with one outcome per job; jobs skipped because of
            cancellation are reported as not attempted
        """
        token = cancel_token or CancellationToken()
        interval = batch.min_interval_seconds
        reporter = ProgressReporter(interval, self.per_job_estimate_seconds)
        total = len(batch.jobs)
        started_at = self.clock.now()
        cached_first_image: Optional[ImageData] = None
        cancelled = False

        logger.info(
            f"Starting batch {batch.batch_id}: {total} jobs, interval={interval}s, "
            f"template={'yes' if batch.user_template is not None else 'no'}"
        )

        for index, job in enumerate(batch.jobs):
            if token.cancelled:
                cancelled = True
                break

            await self._transition(
                job, JobStatus.WAITING, on_job_update,
                on_progress, reporter.compute(index, total, interval if index > 0 else 0.0)
            )

            if index > 0:
                async def on_tick(remaining: int, _index: int = index) -> None:
                    await emit(on_progress, reporter.compute(_index, total, remaining))

                try:
                    await self.cooldown_gate.wait(interval, on_tick=on_tick, cancel_token=token)
                except BatchCancelledError:
                    logger.info(f"Batch {batch.batch_id} cancelled while cooling down before job {job.id}")
                    await self._transition(
                        job, JobStatus.PENDING, on_job_update, on_progress, reporter.compute(index, total, 0)
                    )
                    cancelled = True
                    break

            await self._transition(
                job, JobStatus.REQUESTING, on_job_update, on_progress, reporter.compute(index, total, 0)
            )

            reference = self.reference_resolver.resolve(batch, index, cached_first_image)
            job.reference_source = self.reference_resolver.source_for(batch, index, cached_first_image)

            try:
                image = await self._generate(job, batch, reference, token)
            except BatchCancelledError:
                logger.info(f"Batch {batch.batch_id} cancelled between retries of job {job.id}")
                job.error_note = "cancelled"
                await self._transition(
                    job, JobStatus.FAILED, on_job_update, on_progress, reporter.compute(index, total, 0)
                )
                cancelled = True
                break
            except GenerationError as e:
                job.error_note = e.error_note
                logger.warning(
                    f"Job {job.id} ({index + 1}/{total}) failed: {e.error_note} after "
                    f"{job.attempts} attempt(s); continuing with next job"
                )
                await self._transition(
                    job, JobStatus.FAILED, on_job_update, on_progress, reporter.compute(index, total, 0)
                )
                continue

            job.image = image
            job.error_note = None
            if index == 0 and batch.user_template is None:
                cached_first_image = image
            await self._transition(
                job, JobStatus.SUCCEEDED, on_job_update, on_progress, reporter.compute(index, total, 0)
            )

        await emit(on_progress, None)

        summary = BatchSummary.from_jobs(
            batch.batch_id,
            batch.jobs,
            cancelled=cancelled,
            elapsed_seconds=self.clock.now() - started_at
        )
        logger.info(
            f"Batch {batch.batch_id} finished: {summary.success_count} succeeded, "
            f"{summary.failure_count} failed, {summary.not_attempted_count} not attempted"
            f"{' (cancelled)' if cancelled else ''}"
        )
        await emit(on_batch_complete, summary)
        return summary

    async def _generate(
        self,
        job: SlideJob,
        batch: BatchContext,
        reference: Optional[ImageData],
        token: CancellationToken
    ) -> ImageData:
        def record_attempt(attempt: int) -> None:
            job.attempts = attempt

        return await self.retry_policy.execute(
            lambda: self.generator.generate(
                job.prompt,
                batch.global_style,
                reference,
                batch.language_hint
            ),
            cancel_token=token,
            on_attempt=record_attempt
        )

    async def _transition(
        self,
        job: SlideJob,
        status: JobStatus,
        on_job_update: Optional[JobUpdateCallback],
        on_progress: Optional[ProgressCallback] = None,
        snapshot: Optional[QueueStatus] = None
    ) -> None:
        job.status = status
        logger.debug(f"Job {job.id} -> {status.value}")
        await emit(on_job_update, job)
        if snapshot is not None:
            await emit(on_progress, snapshot)
